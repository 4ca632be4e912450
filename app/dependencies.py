"""FastAPI dependencies: service assembly and access-token authentication."""

from dataclasses import dataclass

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import NotAuthenticatedError
from app.repositories.password_reset import PasswordResetRepository
from app.repositories.user import UserRepository
from app.services.access_tokens import AccessTokenService
from app.services.auth import AuthService
from app.services.notifications import NotificationDispatcher


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    email: str
    username: str
    first_name: str
    last_name: str
    is_verified: bool
    token_id: str


def get_access_token_service(db: Session = Depends(get_db)) -> AccessTokenService:
    return AccessTokenService(db)


def get_auth_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    access_tokens: AccessTokenService = Depends(get_access_token_service),
) -> AuthService:
    """Build the workflow for the current request."""
    return AuthService(
        users=UserRepository(db),
        password_resets=PasswordResetRepository(db),
        access_tokens=access_tokens,
        notifier=NotificationDispatcher(background_tasks),
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    access_tokens: AccessTokenService = Depends(get_access_token_service),
) -> CurrentUser:
    """Resolve the Bearer token to an active user. Raises 401 if missing, invalid or revoked."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise NotAuthenticatedError()

    identity = access_tokens.resolve(token.strip())
    if identity is None:
        raise NotAuthenticatedError("Invalid or expired token")

    user = UserRepository(db).get(identity.user_id)
    if user is None:
        raise NotAuthenticatedError("Invalid or expired token")

    return CurrentUser(
        user_id=user.id,
        email=user.email,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        is_verified=user.is_verified,
        token_id=identity.token_id,
    )
