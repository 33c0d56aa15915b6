"""
Tests for the SMTP mailer. smtplib.SMTP_SSL is patched; nothing is sent.
"""

import pytest
from unittest.mock import MagicMock, patch

from app.exceptions import ConfigurationError, MailDeliveryError
from app.services.mailer import SmtpMailer


@pytest.fixture
def mailer():
    return SmtpMailer(sender="alerts@dealdine.app", password="app-password")


class TestFromEnv:

    def test_reads_credentials_and_defaults(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_EMAIL", "alerts@dealdine.app")
        monkeypatch.setenv("NOTIFICATION_EMAIL_PASSWORD", "pw")
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("SMTP_PORT", raising=False)

        mailer = SmtpMailer.from_env()

        assert mailer.sender == "alerts@dealdine.app"
        assert mailer.host == "smtp.gmail.com"
        assert mailer.port == 465

    def test_missing_credentials_raise(self, monkeypatch):
        monkeypatch.delenv("NOTIFICATION_EMAIL", raising=False)
        monkeypatch.setenv("NOTIFICATION_EMAIL_PASSWORD", "pw")

        with pytest.raises(ConfigurationError):
            SmtpMailer.from_env()


class TestBuildMessage:

    def test_headers_and_html_alternative(self, mailer):
        msg = mailer.build_message("diner@example.com", "⏰ 1 Deal Expiring Soon!", "<p>Hi</p>")

        assert msg["To"] == "diner@example.com"
        assert msg["Subject"] == "⏰ 1 Deal Expiring Soon!"
        assert "alerts@dealdine.app" in msg["From"]
        html_part = msg.get_body(preferencelist=("html",))
        assert "<p>Hi</p>" in html_part.get_content()


    def test_malformed_port_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_EMAIL", "alerts@dealdine.app")
        monkeypatch.setenv("NOTIFICATION_EMAIL_PASSWORD", "pw")
        monkeypatch.setenv("SMTP_PORT", "smtps")

        with pytest.raises(ConfigurationError):
            SmtpMailer.from_env()

    def test_malformed_timeout_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_EMAIL", "alerts@dealdine.app")
        monkeypatch.setenv("NOTIFICATION_EMAIL_PASSWORD", "pw")
        monkeypatch.setenv("SMTP_PORT", "465")
        monkeypatch.setenv("SMTP_TIMEOUT_SECONDS", "half a minute")

        with pytest.raises(ConfigurationError):
            SmtpMailer.from_env()


class TestSend:

    @pytest.mark.asyncio
    async def test_logs_in_and_sends(self, mailer, mocker):
        server = MagicMock()
        mock_smtp = mocker.patch("app.services.mailer.smtplib.SMTP_SSL")
        mock_smtp.return_value.__enter__.return_value = server

        await mailer.send("diner@example.com", "Subject", "<p>Body</p>")

        mock_smtp.assert_called_once_with("smtp.gmail.com", 465, timeout=30.0)
        server.login.assert_called_once_with("alerts@dealdine.app", "app-password")
        sent = server.send_message.call_args[0][0]
        assert sent["To"] == "diner@example.com"

    @pytest.mark.asyncio
    async def test_smtp_failure_raises_delivery_error(self, mailer):
        with patch("app.services.mailer.smtplib.SMTP_SSL") as mock_smtp:
            mock_smtp.return_value.__enter__.return_value.login.side_effect = RuntimeError(
                "535 authentication failed"
            )

            with pytest.raises(MailDeliveryError) as exc_info:
                await mailer.send("diner@example.com", "Subject", "<p>Body</p>")

        assert "535" in str(exc_info.value)
