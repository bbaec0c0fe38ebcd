from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: int = Field(..., description="HTTP status code")
    name: str = Field(..., description="HTTP status phrase")
    message: str = Field(..., description="Human-readable error message")


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    status: str = "error"
    error: ErrorDetail
