"""Per-request session context for web routes."""

from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.services.auth import get_auth_service
from app.services.session import get_session_store

SESSION_COOKIE_NAME = "passgate_session"


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    email: str
    name: str


@dataclass
class SessionContext:
    """Session data for one request.

    Handlers mutate it and then call ``commit_session`` before returning
    the response so the store and the cookie stay in step.
    """

    key: str | None = None
    user_id: int | None = None
    flashes: list[str] = field(default_factory=list)
    modified: bool = False
    rotate: bool = False

    def login(self, user_id: int) -> None:
        self.user_id = user_id
        self.rotate = True
        self.modified = True

    def logout(self) -> None:
        self.user_id = None
        self.modified = True

    def flash(self, message: str) -> None:
        self.flashes.append(message)
        self.modified = True

    def pop_flashes(self) -> list[str]:
        messages = self.flashes
        if messages:
            self.flashes = []
            self.modified = True
        return messages

    def is_empty(self) -> bool:
        return self.user_id is None and not self.flashes

    def to_data(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "flashes": self.flashes}


def get_session(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    """Load the session named by the request cookie, or start an empty one."""
    key = request.cookies.get(SESSION_COOKIE_NAME)
    if not key:
        return SessionContext()

    data = get_session_store().get(db, key)
    if data is None:
        # Stale cookie; drop it on the next commit
        return SessionContext(key=key, modified=True)

    return SessionContext(
        key=key,
        user_id=data.get("user_id"),
        flashes=list(data.get("flashes") or []),
    )


def get_current_user(
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> CurrentUser | None:
    """Resolve the session's user, or None for anonymous visitors."""
    if session.user_id is None:
        return None

    user = get_auth_service().get_user(db, session.user_id)
    if not user:
        session.logout()
        return None

    return CurrentUser(user_id=user.id, email=user.email, name=user.name)


def commit_session(db: Session, response: Response, session: SessionContext) -> Response:
    """Persist session changes and attach the matching cookie to the response."""
    if not session.modified:
        return response

    store = get_session_store()
    if session.is_empty():
        if session.key:
            store.clear(db, session.key)
            clear_session_cookie(response)
        return response

    if session.rotate and session.key:
        store.clear(db, session.key)
        session.key = None
    if session.key is None:
        session.key = store.new_key()

    store.set(db, session.key, session.to_data())
    set_session_cookie(response, session.key)
    session.modified = False
    session.rotate = False
    return response


def set_session_cookie(response: Response, key: str) -> None:
    """Set the session cookie."""
    settings = get_settings()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=key,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
    )


def clear_session_cookie(response: Response) -> None:
    """Clear the session cookie."""
    response.delete_cookie(key=SESSION_COOKIE_NAME)
