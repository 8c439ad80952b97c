"""Server-side web session model."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String

from app.database import Base


class WebSession(Base):
    """Session record addressed by the key stored in the browser cookie."""

    __tablename__ = "web_session"

    session_key = Column(String(128), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
