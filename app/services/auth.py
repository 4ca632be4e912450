"""Authentication workflow: registration, login, email verification and password reset."""

import enum
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.config import get_settings
from app.exceptions import InvalidCredentialsError, InvalidTokenError
from app.models.user import USERNAME_MAX_LENGTH, User
from app.repositories.password_reset import PasswordResetRepository
from app.repositories.user import UserRepository
from app.services.access_tokens import USER_GRANT_SCOPE, AccessTokenService
from app.services.hashing import PasswordHasher
from app.services.notifications import NotificationDispatcher
from app.services.tokens import (
    EMAIL_VERIFICATION_TOKEN_LENGTH,
    LATEST_KEY_LENGTH,
    PASSWORD_RESET_TOKEN_LENGTH,
    random_string,
)

logger = logging.getLogger("keystone")

_USERNAME_STRIP = re.compile(r"[^a-z0-9]+")
# Room left for the numeric suffix added on collisions.
_USERNAME_SUFFIX_ROOM = 10
_dummy_hash: str | None = None


@dataclass
class AuthResult:
    """A user together with a freshly issued access token."""

    user: User
    token: str


class ResetTokenStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


def username_base(first_name: str, last_name: str) -> str:
    """Lowercase ``first.last`` with everything but letters and digits removed."""
    parts = [_USERNAME_STRIP.sub("", name.lower()) for name in (first_name, last_name)]
    base = ".".join(part for part in parts if part)[: USERNAME_MAX_LENGTH - _USERNAME_SUFFIX_ROOM].rstrip(".")
    return base or "user"


def _timing_hash(hasher: PasswordHasher) -> str:
    """Hash of a random string, checked against when the email is unknown."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hasher.hash(random_string(LATEST_KEY_LENGTH))
    return _dummy_hash


class AuthService:
    """Orchestrates the account lifecycle over injected stores and services."""

    def __init__(
        self,
        users: UserRepository,
        password_resets: PasswordResetRepository,
        access_tokens: AccessTokenService,
        notifier: NotificationDispatcher,
        hasher: PasswordHasher | None = None,
        now: Callable[[], datetime] = datetime.utcnow,
        reset_token_ttl: timedelta | None = None,
    ) -> None:
        self.users = users
        self.password_resets = password_resets
        self.access_tokens = access_tokens
        self.notifier = notifier
        self.hasher = PasswordHasher() if hasher is None else hasher
        self.now = now
        if reset_token_ttl is None:
            reset_token_ttl = timedelta(minutes=get_settings().PASSWORD_RESET_EXPIRE_MINUTES)
        self.reset_token_ttl = reset_token_ttl

    def register(self, first_name: str, last_name: str, email: str, password: str) -> AuthResult:
        """Create an account and log it in. Raises DuplicateUserError on conflicts."""
        first_name = first_name.strip()
        last_name = last_name.strip()
        verification_token = random_string(EMAIL_VERIFICATION_TOKEN_LENGTH)

        user = self.users.create(
            first_name=first_name,
            last_name=last_name,
            username=self.users.available_username(username_base(first_name, last_name)),
            email=email.strip().lower(),
            password_hash=self.hasher.hash(password),
            email_verification_token=verification_token,
            latest_key=random_string(LATEST_KEY_LENGTH),
        )
        logger.info("Registered user %s (%s)", user.id, user.username)

        self.notifier.dispatch_welcome(user, verification_token)
        return AuthResult(user=user, token=self.access_tokens.issue(user, USER_GRANT_SCOPE))

    def authenticate(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a new token. Raises InvalidCredentialsError."""
        user = self.users.find_by_email(email)
        if user is None:
            # Burn a hash check so unknown emails cost the same as wrong passwords.
            self.hasher.verify(password, _timing_hash(self.hasher))
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()

        self.users.record_login(user, self.now())
        return AuthResult(user=user, token=self.access_tokens.issue(user, USER_GRANT_SCOPE))

    def verify(self, verification_token: str) -> AuthResult:
        """Confirm an email address. The token is single use."""
        user = self.users.mark_verified_by_token(verification_token, self.now())
        if user is None:
            raise InvalidTokenError()
        logger.info("Verified email for user %s", user.id)
        return AuthResult(user=user, token=self.access_tokens.issue(user, USER_GRANT_SCOPE))

    def request_password_reset_link(self, email: str) -> None:
        """Issue a reset token and notify the user, if the email is registered.

        Returns nothing either way so callers cannot tell whether the account exists.
        """
        user = self.users.find_by_email(email)
        if user is None:
            return

        token = random_string(PASSWORD_RESET_TOKEN_LENGTH)
        self.password_resets.upsert(user.email, token, self.now())
        self.notifier.dispatch_password_reset(user, token)

    def validate_password_reset_token(self, token: str) -> ResetTokenStatus:
        record = self.password_resets.find_by_token(token)
        if record is None:
            return ResetTokenStatus.NOT_FOUND
        if record.created_at < self.now() - self.reset_token_ttl:
            return ResetTokenStatus.EXPIRED
        return ResetTokenStatus.VALID

    def set_password(self, token: str, new_password: str) -> None:
        """Replace the password of the account the reset token belongs to.

        Expiry is only enforced by ``validate_password_reset_token``; a present
        token is accepted here regardless of age.
        """
        record = self.password_resets.find_by_token(token)
        if record is None:
            raise InvalidTokenError()

        email = record.email
        self.users.update_password_by_email(email, self.hasher.hash(new_password))
        self.password_resets.delete_by_email(email)
        logger.info("Password reset completed for %s", email)

    def logout(self, user_id: int) -> None:
        self.access_tokens.revoke_all(user_id)
