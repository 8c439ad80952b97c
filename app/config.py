"""Configuration settings for Passgate."""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./passgate.db")

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    # Public address used in emailed links; request headers are never trusted for this
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "") or f"http://localhost:{PORT}"

    # Passwords
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))
    PASSWORD_RESET_EXPIRE_MINUTES: int = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60"))

    # Sessions
    SESSION_EXPIRE_MINUTES: int = int(os.getenv("SESSION_EXPIRE_MINUTES", "480"))
    SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Mail
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    SMTP_TIMEOUT: float = float(os.getenv("SMTP_TIMEOUT", "10"))
    EMAIL_USER: str = os.getenv("EMAIL_USER", "")
    EMAIL_PASS: str = os.getenv("EMAIL_PASS", "")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "") or os.getenv("EMAIL_USER", "")

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not self.EMAIL_USER or not self.EMAIL_PASS:
            errors.append("EMAIL_USER/EMAIL_PASS are not set - password reset emails cannot be sent")
        if not 4 <= self.BCRYPT_ROUNDS <= 31:
            errors.append(f"BCRYPT_ROUNDS={self.BCRYPT_ROUNDS} is outside bcrypt's 4-31 range")
        if self.APP_ENV == "production" and not self.SESSION_COOKIE_SECURE:
            errors.append("SESSION_COOKIE_SECURE is false in production")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
