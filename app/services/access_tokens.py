"""Access token issuance and revocation."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.access_token import AccessToken
from app.models.user import User
from app.services.jwt import JWTService, get_jwt_service

logger = logging.getLogger("keystone")

USER_GRANT_SCOPE = "grant-token:user"


@dataclass
class TokenIdentity:
    """Claims of a decoded, still-active access token."""

    user_id: int
    token_id: str
    scope: str


class AccessTokenService:
    """Issues JWT access tokens backed by a revocable ``access_token`` row."""

    def __init__(self, db: Session, jwt_service: JWTService | None = None) -> None:
        self.db = db
        self.jwt = jwt_service or get_jwt_service()

    def issue(self, user: User, scope: str = USER_GRANT_SCOPE) -> str:
        """Persist a token record for ``user`` and return the signed token."""
        now = datetime.utcnow()
        record = AccessToken(
            id=str(uuid.uuid4()),
            user_id=user.id,
            name=scope,
            revoked=False,
            created_at=now,
            expires_at=self.jwt.expiry_from(now),
        )
        self.db.add(record)
        self.db.commit()
        return self.jwt.create_token(
            user_id=user.id,
            email=user.email,
            token_id=record.id,
            scope=scope,
            expires_at=record.expires_at,
        )

    def resolve(self, token: str) -> TokenIdentity | None:
        """Return the identity behind ``token`` if it is valid and not revoked."""
        payload = self.jwt.decode_token(token)
        if not payload:
            return None
        record = self.db.get(AccessToken, payload["jti"])
        if record is None or record.revoked or str(record.user_id) != payload["sub"]:
            return None
        return TokenIdentity(user_id=record.user_id, token_id=record.id, scope=record.name)

    def revoke_all(self, user_id: int) -> int:
        """Revoke every active token of a user. Returns how many were revoked."""
        count = (
            self.db.query(AccessToken)
            .filter(AccessToken.user_id == user_id, AccessToken.revoked.is_(False))
            .update({AccessToken.revoked: True}, synchronize_session=False)
        )
        self.db.commit()
        logger.info("Revoked %d access token(s) for user %s", count, user_id)
        return count
