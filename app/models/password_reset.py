"""Password reset token model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.database import Base


class PasswordResetToken(Base):
    """Outstanding reset token. At most one row per email."""

    __tablename__ = "password_reset_tokens"

    email = Column(String(256), primary_key=True)
    token = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
