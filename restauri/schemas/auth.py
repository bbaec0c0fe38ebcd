from pydantic import BaseModel, Field, field_validator
import re


class UserLoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=72)


class AdminRegistrationRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Admin registration token")
    username: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if not re.fullmatch(r"[A-Za-z0-9_.-]+", v):
            raise ValueError('Username may only contain letters, numbers, ".", "_" and "-"')
        return v

    @field_validator('password')
    @classmethod
    def validate_password_strength(cls, v):
        if not re.search(r"[A-Za-z]", v):
            raise ValueError('Password must contain at least one letter')
        if not re.search(r"\d", v):
            raise ValueError('Password must contain at least one number')
        return v


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayloadResponse(BaseModel):
    """Claims of the token used for the current request."""
    id: int
    username: str
    role: str
    exp: float


class UserResponse(BaseModel):
    id: int
    username: str
    role: str
    created_at: str | None = None

    class Config:
        from_attributes = True


class AdminRegistrationResponse(BaseModel):
    message: str
    user: UserResponse
