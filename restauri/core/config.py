from typing import Annotated, List, Union
from pydantic_settings import BaseSettings, NoDecode
from pydantic import field_validator
import json

class Settings(BaseSettings):
    PROJECT_NAME: str = "DF Restauri API"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str = "df-restauri-secret"  # Should be from environment
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    # Tokens closer than this to their "exp" are already treated as expired.
    # The admin client refreshes five minutes early; the server default is no buffer.
    TOKEN_EXPIRY_BUFFER_SECONDS: int = 0
    ADMIN_REGISTRATION_TOKEN: str = ""

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:5173"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str):
            if v.startswith("[") and v.endswith("]"):
                # Parse JSON array string
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    # Fallback to treating as comma-separated
                    return [i.strip() for i in v.strip("[]").split(",")]
            else:
                # Comma-separated string
                return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Database
    DATABASE_URL: str = "sqlite:///./restauri.db"
    DB_ECHO: bool = False

    # Circuit breaker guarding database calls
    DB_BREAKER_FAILURE_THRESHOLD: int = 5
    DB_BREAKER_RESET_TIMEOUT_MS: int = 30000

    @field_validator("DB_BREAKER_FAILURE_THRESHOLD", mode="before")
    def validate_failure_threshold(cls, v):
        """Failure threshold must be a positive integer."""
        if isinstance(v, str):
            # Handle comments in env values (e.g., "5  # failures")
            value = v.split('#')[0].strip()
            parsed = int(value)
        else:
            parsed = int(v)

        if parsed <= 0:
            raise ValueError(f"Failure threshold must be a positive integer, got: {parsed}")
        return parsed

    # Logging Configuration
    LOG_DIR: str = "./logs"
    LOG_LEVEL: str = "INFO"
    LOG_ROTATION_SIZE: int = 10485760  # 10MB
    LOG_BACKUP_COUNT: int = 5

    @field_validator(
        "ACCESS_TOKEN_EXPIRE_MINUTES", "TOKEN_EXPIRY_BUFFER_SECONDS",
        "DB_BREAKER_RESET_TIMEOUT_MS", "LOG_ROTATION_SIZE", "LOG_BACKUP_COUNT",
        mode="before"
    )
    def validate_integers(cls, v):
        if isinstance(v, str):
            # Handle comments in env values (e.g., "10485760  # 10MB")
            value = v.split('#')[0].strip()
            parsed = int(value)
        else:
            parsed = int(v)

        if parsed < 0:
            raise ValueError(f"Value must not be negative, got: {parsed}")
        return parsed

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "allow"

settings = Settings()
