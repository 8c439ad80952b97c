"""Tests for the server-side session store."""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.models.web_session import WebSession
from app.services.session import SessionStore


class TestSessionStore:
    def test_set_and_get(self, db_session: Session):
        store = SessionStore()
        key = store.new_key()
        store.set(db_session, key, {"user_id": 7, "flashes": ["hi"]})
        assert store.get(db_session, key) == {"user_id": 7, "flashes": ["hi"]}

    def test_set_replaces_data(self, db_session: Session):
        store = SessionStore()
        store.set(db_session, "k", {"user_id": 1})
        store.set(db_session, "k", {"user_id": None, "flashes": []})
        assert store.get(db_session, "k") == {"user_id": None, "flashes": []}
        assert db_session.query(WebSession).count() == 1

    def test_unknown_key(self, db_session: Session):
        assert SessionStore().get(db_session, "missing") is None

    def test_clear(self, db_session: Session):
        store = SessionStore()
        store.set(db_session, "k", {"user_id": 1})
        store.clear(db_session, "k")
        store.clear(db_session, "k")
        assert store.get(db_session, "k") is None

    def test_expiry(self, db_session: Session):
        store = SessionStore(expire_minutes=30)
        store.set(db_session, "k", {"user_id": 1})
        record = db_session.get(WebSession, "k")
        assert record.expires_at > datetime.utcnow() + timedelta(minutes=29)

        record.expires_at = datetime.utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert store.get(db_session, "k") is None
        assert db_session.get(WebSession, "k") is None

    def test_keys_are_unique(self):
        assert SessionStore.new_key() != SessionStore.new_key()

    def test_new_session_sweeps_expired(self, db_session: Session):
        """Abandoned sessions are removed when another session starts."""
        store = SessionStore()
        store.set(db_session, "abandoned", {"user_id": 1})
        store.set(db_session, "active", {"user_id": 2})
        db_session.get(WebSession, "abandoned").expires_at = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        store.set(db_session, "fresh", {"user_id": 3})

        keys = {row.session_key for row in db_session.query(WebSession).all()}
        assert keys == {"active", "fresh"}

    def test_updating_session_keeps_others(self, db_session: Session):
        store = SessionStore()
        store.set(db_session, "a", {"user_id": 1})
        store.set(db_session, "b", {"user_id": 2})
        store.set(db_session, "a", {"user_id": 1, "flashes": ["x"]})
        assert db_session.query(WebSession).count() == 2
