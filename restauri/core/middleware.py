from http import HTTPStatus

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from restauri.core.config import settings
from restauri.core.logger import get_logger
from restauri.core.token_validator import ExpiredError, FormatError, TokenValidationError
from restauri.schemas.common import ErrorDetail, ErrorResponse
from restauri.services.auth_service import AuthService

logger = get_logger(__name__)

API = settings.API_V1_STR


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle authentication for protected endpoints.

    Reads of public content, login, admin registration and the basic health
    probes are open; every other API request needs an admin bearer token.
    """

    # Define unprotected endpoints (public routes)
    UNPROTECTED_PATHS = {
        f"{API}/auth/login",
        f"{API}/auth/register/admin",
        f"{API}/health",
        f"{API}/health/",
        f"{API}/health/ready",
        f"{API}/health/live",
        "/docs",
        "/redoc",
        "/openapi.json",
        f"{API}/openapi.json",
        "/",
    }

    # Paths that start with these prefixes are also unprotected
    UNPROTECTED_PREFIXES = {
        "/docs",
        "/redoc",
    }

    # Collections anyone may read
    PUBLIC_READ_PREFIXES = {
        f"{API}/team",
        f"{API}/projects",
        f"{API}/services",
    }

    SAFE_METHODS = {"GET", "HEAD"}

    async def dispatch(self, request: Request, call_next):
        """
        Process the request and check authentication for protected endpoints.
        """
        path = request.url.path
        method = request.method

        # Skip authentication for OPTIONS requests (CORS preflight)
        if method == "OPTIONS":
            return await call_next(request)

        if self._is_unprotected_path(path, method):
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return self._error_response(status.HTTP_401_UNAUTHORIZED, "Token is missing")

        try:
            payload = self._validate_token(request, token)
        except TokenValidationError as e:
            logger.warning(
                f"Rejected token for {method} {path}: {type(e).__name__}",
                extra={"component": "auth_middleware"},
            )
            return self._error_response(status.HTTP_401_UNAUTHORIZED, self._rejection_message(e))

        if not payload.is_admin:
            logger.warning(
                f"Non-admin user {payload.username} denied {method} {path}",
                extra={"component": "auth_middleware"},
            )
            return self._error_response(status.HTTP_403_FORBIDDEN, "Insufficient permissions")

        # Add payload to request state for use in endpoints
        request.state.token_payload = payload
        return await call_next(request)

    def _is_unprotected_path(self, path: str, method: str) -> bool:
        """Check if the path is unprotected."""
        # Only API routes are guarded
        if not path.startswith(API):
            return True

        if path in self.UNPROTECTED_PATHS:
            return True

        for prefix in self.UNPROTECTED_PREFIXES:
            if path.startswith(prefix):
                return True

        if method in self.SAFE_METHODS:
            for prefix in self.PUBLIC_READ_PREFIXES:
                if path == prefix or path.startswith(prefix + "/"):
                    return True

        return False

    def _extract_token(self, request: Request):
        """Extract JWT token from Authorization header."""
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return None

        scheme, _, credentials = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not credentials.strip():
            return None

        return credentials.strip()

    def _validate_token(self, request: Request, token: str):
        """Validate the token with the application's validator."""
        auth_service = AuthService(validator=request.app.state.token_validator)
        return auth_service.verify_token(token)

    @staticmethod
    def _rejection_message(error: TokenValidationError) -> str:
        if isinstance(error, ExpiredError):
            return "Token expired"
        if isinstance(error, FormatError):
            return "Invalid token format"
        return "Invalid token"

    def _error_response(self, status_code: int, message: str) -> JSONResponse:
        """Return standardized error response."""
        headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=status_code, name=HTTPStatus(status_code).phrase, message=message)
            ).model_dump(),
            headers=headers,
        )
