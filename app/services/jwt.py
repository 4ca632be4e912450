"""JWT Token Service."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import get_settings


class JWTService:
    """Handles JWT encoding and decoding."""

    def __init__(
        self,
        secret_key: str | None = None,
        algorithm: str | None = None,
        expire_minutes: int | None = None,
    ) -> None:
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY if secret_key is None else secret_key
        self.algorithm = settings.JWT_ALGORITHM if algorithm is None else algorithm
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES if expire_minutes is None else expire_minutes

    def expiry_from(self, issued_at: datetime) -> datetime:
        return issued_at + timedelta(minutes=self.expire_minutes)

    def create_token(self, user_id: int, email: str, token_id: str, scope: str, expires_at: datetime) -> str:
        """Create a signed token for the given user and token record."""
        payload = {
            "sub": str(user_id),
            "email": email,
            "jti": token_id,
            "scope": scope,
            "exp": expires_at,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """Decode and validate a JWT token. Returns None if invalid."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if "sub" not in payload or "jti" not in payload:
            return None
        return payload


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
