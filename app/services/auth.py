"""Account service: signup, login and password reset."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.user import User

EMAIL_EXISTS = "Email already exists"
BAD_CREDENTIALS = "Email or password is incorrect"
PASSWORD_MISMATCH = "Passwords do not match"
MISSING_FIELDS = "All fields are required"
UNKNOWN_EMAIL = "No user with that email address found"
INVALID_RESET_TOKEN = "Password reset token is invalid or has expired"
PASSWORD_TOO_LONG = "Password must be at most 72 bytes"

# bcrypt only reads the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


@dataclass
class AuthResult:
    """Result of an account operation."""

    success: bool
    error: str | None = None
    user_id: int | None = None
    email: str | None = None
    name: str | None = None

    @classmethod
    def ok(cls, user: User) -> "AuthResult":
        return cls(success=True, user_id=user.id, email=user.email, name=user.name)

    @classmethod
    def fail(cls, error: str) -> "AuthResult":
        return cls(success=False, error=error)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with a fresh bcrypt salt."""
    if rounds is None:
        rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    if password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class AuthService:
    """Handles registration, authentication and the reset-token lifecycle."""

    def __init__(self, reset_expire_minutes: int | None = None) -> None:
        settings = get_settings()
        self.reset_expire_minutes = reset_expire_minutes or settings.PASSWORD_RESET_EXPIRE_MINUTES

    def get_user(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def get_user_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    def register(self, db: Session, name: str, email: str, password: str, confirm_password: str) -> AuthResult:
        """Create a new account. Nothing is written unless every check passes."""
        if not name.strip() or not email.strip() or not password:
            return AuthResult.fail(MISSING_FIELDS)
        if password != confirm_password:
            return AuthResult.fail(PASSWORD_MISMATCH)
        if password_too_long(password):
            return AuthResult.fail(PASSWORD_TOO_LONG)

        if self.get_user_by_email(db, email):
            return AuthResult.fail(EMAIL_EXISTS)

        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=hash_password(password),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same address
            db.rollback()
            return AuthResult.fail(EMAIL_EXISTS)
        db.refresh(user)

        return AuthResult.ok(user)

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Authenticate by email and password. Unknown email and wrong password look the same."""
        user = self.get_user_by_email(db, email)
        if not user:
            return AuthResult.fail(BAD_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            return AuthResult.fail(BAD_CREDENTIALS)

        user.last_login_at = datetime.utcnow()
        db.commit()

        return AuthResult.ok(user)

    def request_password_reset(self, db: Session, email: str) -> tuple[User, str] | None:
        """Issue a reset token for the given email.

        Returns the user and the token if the account exists, None otherwise.
        Any earlier token for the account is replaced.
        """
        user = self.get_user_by_email(db, email)
        if not user:
            return None

        token = secrets.token_hex(20)
        user.password_reset_token = token
        user.password_reset_expires_at = datetime.utcnow() + timedelta(minutes=self.reset_expire_minutes)
        db.commit()

        return user, token

    def find_by_reset_token(self, db: Session, token: str) -> User | None:
        """Return the user holding a live reset token.

        A matching but expired token is cleared so the account returns to the no-token state.
        """
        if not token:
            return None
        user = db.query(User).filter(User.password_reset_token == token).first()
        if not user:
            return None

        if not user.password_reset_expires_at or user.password_reset_expires_at <= datetime.utcnow():
            self._clear_reset_token(user)
            db.commit()
            return None

        return user

    def reset_password(self, db: Session, token: str, password: str, confirm_password: str) -> AuthResult:
        """Consume a reset token and set a new password."""
        user = self.find_by_reset_token(db, token)
        if not user:
            return AuthResult.fail(INVALID_RESET_TOKEN)

        if not password:
            return AuthResult.fail(MISSING_FIELDS)
        if password != confirm_password:
            return AuthResult.fail(PASSWORD_MISMATCH)
        if password_too_long(password):
            return AuthResult.fail(PASSWORD_TOO_LONG)

        user.password_hash = hash_password(password)
        self._clear_reset_token(user)
        db.commit()

        return AuthResult.ok(user)

    @staticmethod
    def _clear_reset_token(user: User) -> None:
        user.password_reset_token = None
        user.password_reset_expires_at = None


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
