"""Server-side session store."""

import secrets
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.web_session import WebSession


class SessionStore:
    """Keeps session data in the database, addressed by an opaque key."""

    def __init__(self, expire_minutes: int | None = None) -> None:
        settings = get_settings()
        self.expire_minutes = expire_minutes or settings.SESSION_EXPIRE_MINUTES

    @staticmethod
    def new_key() -> str:
        return secrets.token_urlsafe(32)

    def get(self, db: Session, key: str) -> dict[str, Any] | None:
        """Return session data, or None if the key is unknown or expired."""
        record = db.get(WebSession, key)
        if record is None:
            return None
        if record.expires_at <= datetime.utcnow():
            db.delete(record)
            db.commit()
            return None
        return dict(record.data or {})

    def set(self, db: Session, key: str, data: dict[str, Any]) -> None:
        """Create or replace the session and push its expiry forward.

        Starting a new session also sweeps sessions abandoned past their expiry.
        """
        expires_at = datetime.utcnow() + timedelta(minutes=self.expire_minutes)
        record = db.get(WebSession, key)
        if record is None:
            self._delete_expired(db)
            record = WebSession(session_key=key, data=data, expires_at=expires_at)
            db.add(record)
        else:
            record.data = data
            record.expires_at = expires_at
        db.commit()

    def clear(self, db: Session, key: str) -> None:
        record = db.get(WebSession, key)
        if record is not None:
            db.delete(record)
            db.commit()

    @staticmethod
    def _delete_expired(db: Session) -> int:
        return db.query(WebSession).filter(WebSession.expires_at <= datetime.utcnow()).delete()


_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get singleton session store instance."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store
