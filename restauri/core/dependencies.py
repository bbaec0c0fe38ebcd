from fastapi import Depends, HTTPException, status, Request

from restauri.core.circuit_breaker import CircuitBreaker
from restauri.core.token_validator import TokenPayload, TokenValidator
from restauri.services.auth_service import AuthService
from restauri.services.content import ProjectService, ServiceManager, TeamService


def get_db_breaker(request: Request) -> CircuitBreaker:
    """The circuit breaker owned by the application for database calls."""
    return request.app.state.db_breaker


def get_token_validator(request: Request) -> TokenValidator:
    return request.app.state.token_validator


# Service dependencies

def get_auth_service(
    breaker: CircuitBreaker = Depends(get_db_breaker),
    validator: TokenValidator = Depends(get_token_validator),
) -> AuthService:
    return AuthService(breaker=breaker, validator=validator)


def get_team_service(breaker: CircuitBreaker = Depends(get_db_breaker)) -> TeamService:
    return TeamService(breaker)


def get_project_service(breaker: CircuitBreaker = Depends(get_db_breaker)) -> ProjectService:
    return ProjectService(breaker)


def get_service_manager(breaker: CircuitBreaker = Depends(get_db_breaker)) -> ServiceManager:
    return ServiceManager(breaker)


# Auth dependencies

def get_token_payload_from_middleware(request: Request) -> TokenPayload:
    """Dependency to get the validated token payload from middleware state."""
    payload = getattr(request.state, 'token_payload', None)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def get_current_admin(payload: TokenPayload = Depends(get_token_payload_from_middleware)) -> TokenPayload:
    """Dependency for admin-only endpoints."""
    if not payload.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )
    return payload
