"""Outgoing mail over an SMTP relay."""

import logging
import smtplib
from email.mime.text import MIMEText

from app.config import get_settings

logger = logging.getLogger("passgate")


class MailService:
    """Sends plain-text messages through the configured SMTP relay."""

    def __init__(self) -> None:
        settings = get_settings()
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.use_tls = settings.SMTP_USE_TLS
        self.timeout = settings.SMTP_TIMEOUT
        self.username = settings.EMAIL_USER
        self.password = settings.EMAIL_PASS
        self.sender = settings.MAIL_FROM

    def send(self, to: str, subject: str, body: str) -> bool:
        """Send one message. Returns True if the relay accepted it.

        Failures are logged and reported as False; there is no retry.
        """
        if not self.username or not self.password:
            logger.error("Email credentials not configured. Set EMAIL_USER and EMAIL_PASS.")
            return False

        message = MIMEText(body, "plain", "utf-8")
        message["From"] = self.sender or self.username
        message["To"] = to
        message["Subject"] = subject

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.username, self.password)
                server.send_message(message)
        except smtplib.SMTPException as e:
            logger.error("SMTP error sending email to %s: %s", to, e)
            return False
        except OSError as e:
            logger.error("Could not reach SMTP relay %s:%s: %s", self.host, self.port, e)
            return False

        logger.info("Email '%s' sent to %s", subject, to)
        return True

    def send_password_reset(self, to: str, reset_url: str) -> bool:
        """Send the password reset link."""
        body = f"""Hello,

Someone asked to reset the password for your account.

Click here to reset your password: {reset_url}

The link expires in {get_settings().PASSWORD_RESET_EXPIRE_MINUTES} minutes and can be used once.
If you did not ask for this, you can ignore this email.
"""
        return self.send(to, "Password Reset", body)


_mail_service: MailService | None = None


def get_mail_service() -> MailService:
    """Get singleton mail service instance."""
    global _mail_service
    if _mail_service is None:
        _mail_service = MailService()
    return _mail_service
