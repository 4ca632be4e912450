"""Password reset token persistence."""

from datetime import datetime

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.password_reset import PasswordResetToken

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PasswordResetRepository:
    """Stores at most one reset token per email address."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def upsert(self, email: str, token: str, created_at: datetime) -> None:
        """Insert or replace the token for ``email`` in a single statement."""
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            # No native upsert; merge on the primary key instead.
            self.db.merge(PasswordResetToken(email=email, token=token, created_at=created_at))
            self.db.commit()
            return

        statement = insert(PasswordResetToken).values(email=email, token=token, created_at=created_at)
        statement = statement.on_conflict_do_update(
            index_elements=[PasswordResetToken.email],
            set_={"token": statement.excluded.token, "created_at": statement.excluded.created_at},
        )
        self.db.execute(statement)
        self.db.commit()

    def find_by_token(self, token: str) -> PasswordResetToken | None:
        return self.db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()

    def delete_by_email(self, email: str) -> int:
        count = self.db.query(PasswordResetToken).filter(PasswordResetToken.email == email).delete(
            synchronize_session=False
        )
        self.db.commit()
        return count
