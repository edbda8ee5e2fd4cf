"""Tests for the SMTP transport backend."""

from __future__ import annotations

import io
import logging
import sys
from email.message import EmailMessage
from smtplib import SMTPException
from typing import Any, ClassVar

import pytest

from mailcraft.logging import TRACE_LEVEL
from mailcraft.mail import MailConfigurationError, MailSession, MailTransportError, SessionConfig
from mailcraft.mail.transports.smtp import (
    SMTPCredentials,
    SMTPSecurity,
    SMTPTransport,
    _capture_smtp_debug,
    _log_smtp_debug_output,
)

LOGGER_NAME = "mailcraft.mail.transports.smtp"


class DummySMTP:
    """Minimal SMTP client capturing invocations."""

    created: ClassVar[list[DummySMTP]] = []
    last_instance: ClassVar[DummySMTP | None] = None
    supports_starttls: ClassVar[bool] = True

    def __init__(self, **kwargs: Any) -> None:
        """Capture constructor kwargs and initialise tracking state."""
        self.kwargs = kwargs
        self.ehlo_called = 0
        self.starttls_called = False
        self.login_calls: list[tuple[str | None, str | None]] = []
        self.sent_messages: list[EmailMessage] = []
        self.send_kwargs: list[dict[str, Any]] = []
        self.closed = False
        self.debug_level = 0
        DummySMTP.created.append(self)

    def __enter__(self) -> DummySMTP:
        """Register instance as the last active client."""
        DummySMTP.last_instance = self
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any) -> None:
        """Mark the client as closed when leaving the context manager."""
        self.closed = True

    def ehlo(self) -> None:
        """Record EHLO invocations."""
        self.ehlo_called += 1

    def has_extn(self, name: str) -> bool:
        """Report supported SMTP extensions."""
        return name == "STARTTLS" and self.supports_starttls

    def starttls(self, *, context: Any) -> None:
        """Flag that STARTTLS was invoked."""
        self.starttls_called = True

    def login(self, username: str | None, password: str | None) -> None:
        """Track login attempts."""
        self.login_calls.append((username, password))

    def send_message(self, message: EmailMessage, **kwargs: Any) -> None:
        """Collect outgoing messages for later inspection."""
        self.sent_messages.append(message)
        self.send_kwargs.append(kwargs)

    def set_debuglevel(self, level: int) -> None:
        """Accept debug level setting and print like smtplib does."""
        self.debug_level = level
        print("send: 'ehlo client'", file=sys.stderr)
        print("reply: b'250 OK'", file=sys.stderr)


class ExplodingSMTP(DummySMTP):
    """Dummy SMTP client that raises on send."""

    def send_message(self, message: EmailMessage, **kwargs: Any) -> None:
        """Always raise an SMTPException to simulate transport errors."""
        raise SMTPException("boom")


class RefusingSMTP(DummySMTP):
    """Dummy SMTP client whose constructor fails like an unreachable host."""

    def __init__(self, **kwargs: Any) -> None:
        """Raise a connection error."""
        raise ConnectionRefusedError("connection refused")


@pytest.fixture(name="email_message")
def _email_message() -> EmailMessage:
    message = EmailMessage()
    message["From"] = "sender@example.com"
    message["To"] = "user@example.com"
    message["Subject"] = "Hello"
    message.set_content("Hello")
    return message


@pytest.fixture(autouse=True)
def _reset_dummy() -> None:
    """Reset dummy class state between tests."""
    DummySMTP.created.clear()
    DummySMTP.last_instance = None
    DummySMTP.supports_starttls = True


class TestSend:
    """Connection, TLS, login and delivery sequence."""

    def test_starttls_and_login(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        """Upgrade to STARTTLS and authenticate before sending."""
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)

        credentials = SMTPCredentials(username="user", password="pass")
        SMTPTransport("smtp.example.com", credentials=credentials).send(email_message)

        client = DummySMTP.last_instance
        assert client is not None
        assert client.kwargs["host"] == "smtp.example.com"
        assert client.kwargs["port"] == 587
        assert client.starttls_called is True
        assert client.ehlo_called == 2
        assert client.login_calls == [("user", "pass")]
        assert client.sent_messages == [email_message]
        assert client.closed is True

    def test_plain_when_starttls_disabled(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)

        SMTPTransport("smtp.example.com", 25, security=SMTPSecurity(use_starttls=False)).send(email_message)

        client = DummySMTP.last_instance
        assert client is not None
        assert client.starttls_called is False
        assert client.login_calls == []

    def test_missing_starttls_is_tolerated(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        DummySMTP.supports_starttls = False
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)

        SMTPTransport("smtp.example.com").send(email_message)

        assert DummySMTP.last_instance is not None
        assert DummySMTP.last_instance.sent_messages == [email_message]

    def test_required_starttls_missing_raises(
        self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage
    ) -> None:
        DummySMTP.supports_starttls = False
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)

        transport = SMTPTransport("smtp.example.com", security=SMTPSecurity(require_starttls=True))
        with pytest.raises(MailTransportError, match="STARTTLS"):
            transport.send(email_message)
        assert DummySMTP.last_instance is not None
        assert DummySMTP.last_instance.sent_messages == []

    def test_ssl_uses_smtp_ssl_with_context(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP_SSL", DummySMTP)

        SMTPTransport("smtp.example.com", 465, security=SMTPSecurity(use_ssl=True)).send(email_message)

        client = DummySMTP.last_instance
        assert client is not None
        assert client.kwargs["port"] == 465
        assert "context" in client.kwargs
        assert client.starttls_called is False

    def test_envelope_from_is_passed_to_client(
        self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage
    ) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)

        SMTPTransport("smtp.example.com", envelope_from="bounce@example.com").send(email_message)

        assert DummySMTP.last_instance is not None
        assert DummySMTP.last_instance.send_kwargs == [{"from_addr": "bounce@example.com"}]

    def test_smtp_errors_are_wrapped(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", ExplodingSMTP)

        with pytest.raises(MailTransportError) as exc_info:
            SMTPTransport("smtp.example.com").send(email_message)
        assert isinstance(exc_info.value.__cause__, SMTPException)

    def test_connection_errors_are_wrapped(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", RefusingSMTP)

        with pytest.raises(MailTransportError, match="connection refused"):
            SMTPTransport("smtp.example.com").send(email_message)


class TestConstruction:
    """Argument validation and session mapping."""

    def test_empty_host_is_rejected(self) -> None:
        with pytest.raises(MailConfigurationError):
            SMTPTransport("")

    @pytest.mark.parametrize("timeout", [0, -1.5])
    def test_non_positive_timeout_is_rejected(self, timeout: float) -> None:
        with pytest.raises(MailConfigurationError):
            SMTPTransport("smtp.example.com", timeout=timeout)

    def test_from_session_maps_properties(self) -> None:
        config = SessionConfig(
            host_name="smtp.example.com",
            port=2525,
            username="user",
            password="pass",
            connection_timeout=15000,
            socket_timeout=10000,
            start_tls_required=True,
            bounce_address="bounce@example.com",
        )
        transport = SMTPTransport.from_session(MailSession.from_config(config))

        assert transport.host == "smtp.example.com"
        assert transport.port == 2525
        assert transport.timeout == 15.0
        assert transport.credentials == SMTPCredentials("user", "pass")
        assert transport.security.use_starttls is True
        assert transport.security.require_starttls is True
        assert transport.security.use_ssl is False
        assert transport.envelope_from == "bounce@example.com"

    def test_from_session_uses_larger_timeout(self) -> None:
        config = SessionConfig(host_name="smtp.example.com", connection_timeout=5000, socket_timeout=90000)
        assert SMTPTransport.from_session(MailSession.from_config(config)).timeout == 90.0

    def test_from_session_with_ssl(self) -> None:
        config = SessionConfig(host_name="smtp.example.com", ssl_on_connect=True)
        transport = SMTPTransport.from_session(MailSession.from_config(config))
        assert transport.port == 465
        assert transport.security.use_ssl is True

    def test_from_session_without_host_raises(self) -> None:
        with pytest.raises(MailConfigurationError):
            SMTPTransport.from_session(MailSession())

    def test_from_session_with_bad_port_raises(self) -> None:
        session = MailSession({"mail.smtp.host": "smtp.example.com", "mail.smtp.port": "abc"})
        with pytest.raises(MailConfigurationError):
            SMTPTransport.from_session(session)


class TestTraceLogging:
    """SMTP dialogue capture at TRACE level."""

    def test_capture_smtp_debug_redirects_stderr(self) -> None:
        with _capture_smtp_debug() as buffer:
            print("send: 'noop'", file=sys.stderr)
        assert "send: 'noop'" in buffer.getvalue()

    def test_log_smtp_debug_output_prefixes_lines(self, caplog: pytest.LogCaptureFixture) -> None:
        buffer = io.StringIO("send: 'MAIL FROM:<a@x.com>'\nreply: b'250 OK'\n\nconnect: ('h', 25)\n")
        with caplog.at_level(TRACE_LEVEL, logger=LOGGER_NAME):
            _log_smtp_debug_output(buffer)

        messages = [record.getMessage() for record in caplog.records]
        assert messages == [
            "[SMTP] >>> 'MAIL FROM:<a@x.com>'",
            "[SMTP] <<< b'250 OK'",
            "[SMTP] connect: ('h', 25)",
        ]

    def test_log_smtp_debug_output_silent_above_trace(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            _log_smtp_debug_output(io.StringIO("send: 'x'\n"))
        assert caplog.records == []

    def test_send_logs_dialogue_at_trace(
        self,
        monkeypatch: pytest.MonkeyPatch,
        email_message: EmailMessage,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)
        credentials = SMTPCredentials(username="user", password="pass")

        with caplog.at_level(TRACE_LEVEL, logger=LOGGER_NAME):
            SMTPTransport("smtp.example.com", credentials=credentials).send(email_message)

        text = caplog.text
        assert "[SMTP] Connecting to smtp.example.com:587" in text
        assert "[SMTP] Authenticating as: user" in text
        assert "[SMTP] MAIL FROM: sender@example.com" in text
        assert "[SMTP] RCPT TO: user@example.com" in text
        assert "[SMTP] >>> 'ehlo client'" in text
        assert "[SMTP] <<< b'250 OK'" in text
        assert "[SMTP] Message sent successfully" in text
        assert DummySMTP.last_instance is not None
        assert DummySMTP.last_instance.debug_level == 1

    def test_password_is_never_logged(
        self,
        monkeypatch: pytest.MonkeyPatch,
        email_message: EmailMessage,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)
        credentials = SMTPCredentials(username="user", password="s3cr3t-value")

        with caplog.at_level(TRACE_LEVEL, logger=LOGGER_NAME):
            SMTPTransport("smtp.example.com", credentials=credentials).send(email_message)

        assert "s3cr3t-value" not in caplog.text

    def test_no_debug_level_without_trace(self, monkeypatch: pytest.MonkeyPatch, email_message: EmailMessage) -> None:
        monkeypatch.setattr("mailcraft.mail.transports.smtp.smtplib.SMTP", DummySMTP)
        logging.getLogger(LOGGER_NAME).setLevel(logging.INFO)
        try:
            SMTPTransport("smtp.example.com").send(email_message)
        finally:
            logging.getLogger(LOGGER_NAME).setLevel(logging.NOTSET)
        assert DummySMTP.last_instance is not None
        assert DummySMTP.last_instance.debug_level == 0
