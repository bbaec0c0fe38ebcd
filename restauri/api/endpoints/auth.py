from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from restauri.core.database import get_db
from restauri.core.dependencies import get_auth_service, get_current_admin
from restauri.core.token_validator import TokenPayload
from restauri.schemas.auth import (
    AdminRegistrationRequest, AdminRegistrationResponse, TokenPayloadResponse,
    TokenResponse, UserLoginRequest
)
from restauri.services.auth_service import AuthService

router = APIRouter()

@router.post("/login", response_model=TokenResponse)
async def login(
    user_data: UserLoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Authenticate an admin and return a token."""
    return await auth_service.login(
        username=user_data.username,
        password=user_data.password,
        db=db
    )

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    payload: TokenPayload = Depends(get_current_admin),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Issue a new token for the current admin."""
    return await auth_service.refresh(payload, db)

@router.get("/me", response_model=TokenPayloadResponse)
async def get_current_user_info(
    payload: TokenPayload = Depends(get_current_admin)
):
    """Claims of the current token."""
    return payload.to_dict()

@router.post("/register/admin", response_model=AdminRegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_admin(
    registration: AdminRegistrationRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Create an admin account using the registration token."""
    return await auth_service.register_admin(
        registration_token=registration.token,
        username=registration.username,
        password=registration.password,
        db=db
    )
