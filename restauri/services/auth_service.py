import bcrypt
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from jose import JWTError, jwt
from starlette.concurrency import run_in_threadpool
import hmac

from restauri.core.circuit_breaker import CircuitBreaker
from restauri.core.config import settings
from restauri.core.logger import get_logger
from restauri.core.token_validator import TokenPayload, TokenValidationError, TokenValidator
from restauri.models.user import User

logger = get_logger(__name__)


class SignatureError(TokenValidationError):
    """The token is well formed but was not signed with our key."""


class AuthService:
    """Service for handling authentication-related operations."""

    # JWT Configuration
    SECRET_KEY = settings.SECRET_KEY
    ALGORITHM = settings.JWT_ALGORITHM
    ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def __init__(self, breaker: Optional[CircuitBreaker] = None, validator: Optional[TokenValidator] = None):
        self.breaker = breaker
        self.validator = validator or TokenValidator(settings.TOKEN_EXPIRY_BUFFER_SECONDS)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    @staticmethod
    def verify_password(password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        try:
            return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    @classmethod
    def create_access_token(cls, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token carrying id, username and role."""
        if expires_delta is None:
            expires_delta = timedelta(minutes=cls.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode = {
            "id": user.id,
            "username": user.username,
            "role": user.role,
            "exp": datetime.utcnow() + expires_delta,
        }
        return jwt.encode(to_encode, cls.SECRET_KEY, algorithm=cls.ALGORITHM)

    def verify_token(self, token: str) -> TokenPayload:
        """Validate structure, claims and expiry, then check the signature.

        Raises a TokenValidationError subclass on the first failure.
        """
        payload = self.validator.validate_and_decode(token)
        try:
            jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except JWTError as exc:
            raise SignatureError(f"Token signature verification failed: {exc}") from exc
        return payload

    def token_response(self, user: User) -> Dict[str, Any]:
        return {
            "token": self.create_access_token(user),
            "token_type": "bearer",
            "expires_in": self.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    async def _guarded(self, fn, *args):
        if self.breaker is None:
            return await run_in_threadpool(fn, *args)
        return await self.breaker.execute(lambda: run_in_threadpool(fn, *args))

    @staticmethod
    def _find_user_by_username(db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def create_user(db: Session, username: str, password: str, role: str = "user") -> User:
        """Insert a user with a freshly hashed password."""
        user = User(
            username=username,
            password=AuthService.hash_password(password),
            role=role,
        )
        try:
            db.add(user)
            db.commit()
            db.refresh(user)
        except Exception:
            db.rollback()
            raise
        return user

    @staticmethod
    def create_or_promote_admin(db: Session, username: str, password: str) -> User:
        """Create an admin, or make an existing user admin with a new password."""
        user = AuthService._find_user_by_username(db, username)
        if user is None:
            return AuthService.create_user(db, username, password, role="admin")

        user.password = AuthService.hash_password(password)
        user.role = "admin"
        try:
            db.commit()
            db.refresh(user)
        except Exception:
            db.rollback()
            raise
        return user

    async def authenticate(self, username: str, password: str, db: Session) -> User:
        """Return the admin user for these credentials or raise 401/403."""
        user = await self._guarded(self._find_user_by_username, db, username)
        if not user:
            logger.info(f"Login attempt failed: user not found - {username}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password"
            )

        if not await run_in_threadpool(self.verify_password, password, user.password):
            logger.info(f"Login attempt failed: invalid password for user - {username}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password"
            )

        if not user.is_admin:
            logger.info(f"Login attempt failed: insufficient permissions - {username}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Only administrators can sign in."
            )

        return user

    async def login(self, username: str, password: str, db: Session) -> Dict[str, Any]:
        """Authenticate an admin and return a fresh token."""
        user = await self.authenticate(username, password, db)
        logger.info(f"Successful login for user: {username}")
        return self.token_response(user)

    async def refresh(self, payload: TokenPayload, db: Session) -> Dict[str, Any]:
        """Issue a new token for the user behind a still-valid token."""
        user = await self._guarded(db.get, User, int(payload.id))
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        if not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return self.token_response(user)

    async def register_admin(self, registration_token: str, username: str, password: str, db: Session) -> Dict[str, Any]:
        """Create an admin account, gated by ADMIN_REGISTRATION_TOKEN."""
        expected = settings.ADMIN_REGISTRATION_TOKEN
        if not expected or not hmac.compare_digest(registration_token.encode(), expected.encode()):
            logger.warning("Admin registration rejected: invalid registration token")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid admin registration token"
            )

        existing_user = await self._guarded(self._find_user_by_username, db, username)
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already exists"
            )

        user = await self._guarded(self.create_user, db, username, password, "admin")
        logger.info(f"Registered admin user {user.username}")
        return {
            "message": "Admin registration completed",
            "user": user.to_dict(),
        }
