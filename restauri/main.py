from contextlib import asynccontextmanager
from http import HTTPStatus
import math

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from restauri.api.endpoints import auth, health, projects, services, team
from restauri.core.circuit_breaker import CircuitOpenError, create_db_circuit_breaker
from restauri.core.config import settings
from restauri.core.database import init_db
from restauri.core.logger import get_logger
from restauri.core.middleware import AuthenticationMiddleware
from restauri.core.token_validator import TokenValidator
from restauri.schemas.common import ErrorDetail, ErrorResponse

logger = get_logger(__name__)


def error_body(status_code: int, message: str) -> dict:
    return ErrorResponse(
        error=ErrorDetail(code=status_code, name=HTTPStatus(status_code).phrase, message=message)
    ).model_dump()


async def circuit_open_handler(request: Request, exc: CircuitOpenError) -> JSONResponse:
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_body(status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable"),
        headers={"Retry-After": str(max(1, math.ceil(exc.retry_after)))},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    # One breaker per protected resource, owned by this application
    app.state.db_breaker = create_db_circuit_breaker(
        failure_threshold=settings.DB_BREAKER_FAILURE_THRESHOLD,
        reset_timeout=settings.DB_BREAKER_RESET_TIMEOUT_MS,
    )
    app.state.token_validator = TokenValidator(
        expiry_buffer_seconds=settings.TOKEN_EXPIRY_BUFFER_SECONDS
    )

    app.add_exception_handler(CircuitOpenError, circuit_open_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # Add authentication middleware
    app.add_middleware(AuthenticationMiddleware)

    # CORS is added last so it also wraps authentication errors
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, prefix=f"{settings.API_V1_STR}/health", tags=["health"])
    app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["auth"])
    app.include_router(team.router, prefix=f"{settings.API_V1_STR}/team", tags=["team"])
    app.include_router(projects.router, prefix=f"{settings.API_V1_STR}/projects", tags=["projects"])
    app.include_router(services.router, prefix=f"{settings.API_V1_STR}/services", tags=["services"])

    return app

app = create_application()
