"""User persistence."""

from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import DuplicateUserError
from app.models.user import User


class UserRepository:
    """Reads and writes ``user`` rows through a request-scoped session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        *,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password_hash: str,
        email_verification_token: str,
        latest_key: str,
    ) -> User:
        """Insert a user. Raises DuplicateUserError on a unique constraint violation."""
        user = User(
            first_name=first_name,
            last_name=last_name,
            username=username,
            email=email,
            password_hash=password_hash,
            email_verification_token=email_verification_token,
            latest_key=latest_key,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateUserError() from exc
        self.db.refresh(user)
        return user

    def get(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def find_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def username_taken(self, username: str) -> bool:
        return self.db.query(User.id).filter(User.username == username).first() is not None

    def available_username(self, base: str) -> str:
        """Return ``base`` or the first free ``base<n>`` for n = 2, 3, ..."""
        if not self.username_taken(base):
            return base
        taken = {
            row[0] for row in self.db.query(User.username).filter(User.username.like(f"{base}%")).all()
        }
        suffix = 2
        while f"{base}{suffix}" in taken:
            suffix += 1
        return f"{base}{suffix}"

    def find_id_by_verification_token(self, token: str) -> int | None:
        return self.db.query(User.id).filter(User.email_verification_token == token).scalar()

    def mark_verified_by_token(self, token: str, verified_at: datetime) -> User | None:
        """Verify the user holding ``token`` and clear it. None if no user holds it.

        The write is conditional on the token still being set, so only one of
        several concurrent calls with the same token succeeds.
        """
        user_id = self.find_id_by_verification_token(token)
        if user_id is None:
            return None
        updated = (
            self.db.query(User)
            .filter(User.id == user_id, User.email_verification_token == token)
            .update(
                {User.email_verified_at: verified_at, User.email_verification_token: None},
                synchronize_session=False,
            )
        )
        self.db.commit()
        if not updated:
            return None
        return self.get(user_id)

    def update_password_by_email(self, email: str, password_hash: str) -> User | None:
        user = self.find_by_email(email)
        if user is None:
            return None
        user.password_hash = password_hash
        self.db.commit()
        self.db.refresh(user)
        return user

    def record_login(self, user: User, logged_in_at: datetime) -> None:
        user.last_login_at = logged_in_at
        self.db.commit()
