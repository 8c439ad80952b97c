"""Tests for the SMTP mail dispatcher."""

import smtplib
from unittest.mock import patch

from app.services.mail import MailService


def make_service() -> MailService:
    service = MailService()
    service.host = "smtp.example.com"
    service.port = 587
    service.use_tls = True
    service.timeout = 5
    service.username = "mailer@example.com"
    service.password = "app-password"
    service.sender = "Passgate <mailer@example.com>"
    return service


class TestMailService:
    def test_send_success(self):
        service = make_service()
        with patch("app.services.mail.smtplib.SMTP") as mock_smtp:
            assert service.send("user@example.com", "Hello", "Body text") is True

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=5)
        server = mock_smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer@example.com", "app-password")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "user@example.com"
        assert message["From"] == "Passgate <mailer@example.com>"
        assert message["Subject"] == "Hello"

    def test_send_without_tls(self):
        service = make_service()
        service.use_tls = False
        with patch("app.services.mail.smtplib.SMTP") as mock_smtp:
            assert service.send("user@example.com", "Hello", "Body") is True
        mock_smtp.return_value.__enter__.return_value.starttls.assert_not_called()

    def test_missing_credentials(self):
        service = make_service()
        service.password = ""
        with patch("app.services.mail.smtplib.SMTP") as mock_smtp:
            assert service.send("user@example.com", "Hello", "Body") is False
        mock_smtp.assert_not_called()

    def test_smtp_error_is_reported(self):
        service = make_service()
        with patch("app.services.mail.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            assert service.send("user@example.com", "Hello", "Body") is False

    def test_unreachable_relay_is_reported(self):
        service = make_service()
        with patch("app.services.mail.smtplib.SMTP", side_effect=ConnectionRefusedError()):
            assert service.send("user@example.com", "Hello", "Body") is False

    def test_password_reset_message(self):
        service = make_service()
        with patch.object(MailService, "send", return_value=True) as mock_send:
            assert service.send_password_reset("user@example.com", "http://localhost:8000/reset-password/abc")

        to, subject, body = mock_send.call_args.args
        assert to == "user@example.com"
        assert subject == "Password Reset"
        assert "Click here to reset your password: http://localhost:8000/reset-password/abc" in body
        assert "60 minutes" in body
