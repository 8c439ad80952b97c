"""User model."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from app.database import Base


class User(Base):
    """Registered account."""

    __tablename__ = "user"
    __table_args__ = (
        CheckConstraint(
            "(password_reset_token IS NULL) = (password_reset_expires_at IS NULL)",
            name="ck_user_reset_token_pair",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)
    password_reset_token = Column(String(256), nullable=True, index=True)
    password_reset_expires_at = Column(DateTime, nullable=True)
