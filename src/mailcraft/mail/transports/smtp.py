"""SMTP transport built on :mod:`smtplib`.

The transport opens one connection per :meth:`SMTPTransport.send` call and
closes it on exit. When TRACE logging is enabled the SMTP dialogue printed
by ``smtplib`` is captured and re-emitted through the module logger.

Examples:
    Deliver through a session derived by the builder::

        email = Email().set_host_name("smtp.example.com").set_smtp_port(2525)
        transport = SMTPTransport.from_session(email.get_mail_session())
"""

from __future__ import annotations

import io
import logging
import smtplib
import ssl
from collections.abc import Iterator
from contextlib import contextmanager, redirect_stderr
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mailcraft.logging import TRACE_LEVEL
from mailcraft.mail.exceptions import MailConfigurationError, MailTransportError
from mailcraft.mail.session import (
    MAIL_DEBUG,
    MAIL_HOST,
    MAIL_PORT,
    MAIL_SMTP_CONNECTIONTIMEOUT,
    MAIL_SMTP_FROM,
    MAIL_SMTP_SSL_ENABLE,
    MAIL_SMTP_TIMEOUT,
    MAIL_TRANSPORT_STARTTLS_ENABLE,
    MAIL_TRANSPORT_STARTTLS_REQUIRED,
)
from mailcraft.mail.transport import MailTransport

if TYPE_CHECKING:
    from email.message import EmailMessage

    from mailcraft.mail.session import MailSession

__all__ = ["SMTPCredentials", "SMTPSecurity", "SMTPTransport"]

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SMTPCredentials:
    """Login credentials for an SMTP server."""

    username: str
    password: str | None = None


@dataclass(frozen=True, slots=True)
class SMTPSecurity:
    """TLS options for an SMTP connection.

    Attributes:
        use_ssl: Connect with implicit TLS (``SMTP_SSL``).
        use_starttls: Upgrade with STARTTLS when the server offers it.
        require_starttls: Fail when STARTTLS is not offered.
        verify_certificates: Verify the server certificate.
    """

    use_ssl: bool = False
    use_starttls: bool = True
    require_starttls: bool = False
    verify_certificates: bool = True

    def ssl_context(self) -> ssl.SSLContext:
        """Return the TLS context for this configuration."""
        context = ssl.create_default_context()
        if not self.verify_certificates:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context


@contextmanager
def _capture_smtp_debug() -> Iterator[io.StringIO]:
    """Capture what ``smtplib`` prints to stderr at debug level."""
    buffer = io.StringIO()
    with redirect_stderr(buffer):
        yield buffer


def _log_smtp_debug_output(buffer: io.StringIO) -> None:
    """Re-emit captured ``smtplib`` debug lines at TRACE level."""
    if not log.isEnabledFor(TRACE_LEVEL):
        return
    for raw_line in buffer.getvalue().splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("send:"):
            log.log(TRACE_LEVEL, "[SMTP] >>> %s", line[len("send:") :].strip())
        elif line.startswith("reply:"):
            log.log(TRACE_LEVEL, "[SMTP] <<< %s", line[len("reply:") :].strip())
        else:
            log.log(TRACE_LEVEL, "[SMTP] %s", line)


class SMTPTransport(MailTransport):
    """Deliver messages to an SMTP server.

    Args:
        host: SMTP server host.
        port: SMTP server port.
        credentials: Optional login credentials.
        security: TLS options; STARTTLS when offered by default.
        timeout: Socket timeout in seconds.
        envelope_from: Envelope sender (bounce address) overriding ``From``.
        debug: Capture the SMTP dialogue even when TRACE is disabled.

    Raises:
        MailConfigurationError: If ``host`` is empty or ``timeout`` is not
            positive.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        credentials: SMTPCredentials | None = None,
        security: SMTPSecurity | None = None,
        timeout: float = 30.0,
        envelope_from: str | None = None,
        debug: bool = False,
    ) -> None:
        if not host:
            raise MailConfigurationError("SMTP host is required")
        if timeout <= 0:
            raise MailConfigurationError("Timeout must be greater than 0")
        self.host = host
        self.port = port
        self.credentials = credentials
        self.security = security or SMTPSecurity()
        self.timeout = timeout
        self.envelope_from = envelope_from
        self.debug = debug

    @classmethod
    def from_session(cls, session: MailSession) -> SMTPTransport:
        """Create a transport from ``mail.smtp.*`` session properties.

        ``smtplib`` has a single socket timeout, so the larger of the
        connection and read timeouts is used.

        Raises:
            MailConfigurationError: If the session has no host or an invalid
                port or timeout.
        """
        host = session.get_property(MAIL_HOST)
        if not host:
            raise MailConfigurationError("Mail session has no 'mail.smtp.host' property")

        try:
            port = int(session.get_property(MAIL_PORT) or 25)
            connect_ms = int(session.get_property(MAIL_SMTP_CONNECTIONTIMEOUT) or 60_000)
            read_ms = int(session.get_property(MAIL_SMTP_TIMEOUT) or 60_000)
        except ValueError as e:
            raise MailConfigurationError(f"Invalid numeric session property: {e}") from e

        credentials = None
        if session.credentials is not None:
            username, password = session.credentials
            credentials = SMTPCredentials(username=username, password=password)

        require_starttls = session.get_bool(MAIL_TRANSPORT_STARTTLS_REQUIRED)
        security = SMTPSecurity(
            use_ssl=session.get_bool(MAIL_SMTP_SSL_ENABLE),
            use_starttls=session.get_bool(MAIL_TRANSPORT_STARTTLS_ENABLE) or require_starttls,
            require_starttls=require_starttls,
        )
        return cls(
            host,
            port,
            credentials=credentials,
            security=security,
            timeout=max(connect_ms, read_ms) / 1000,
            envelope_from=session.get_property(MAIL_SMTP_FROM),
            debug=session.get_bool(MAIL_DEBUG),
        )

    def send(self, message: EmailMessage) -> None:
        """Send ``message`` over SMTP.

        Raises:
            MailTransportError: If the connection, TLS upgrade, login or
                delivery fails.
        """
        trace_enabled = log.isEnabledFor(TRACE_LEVEL)
        capture = trace_enabled or self.debug
        if trace_enabled:
            mode = "SSL" if self.security.use_ssl else "plain"
            log.log(TRACE_LEVEL, "[SMTP] Connecting to %s:%s (%s)", self.host, self.port, mode)

        try:
            if capture:
                with _capture_smtp_debug() as buffer:
                    try:
                        self._deliver(message, debug=True)
                    finally:
                        _log_smtp_debug_output(buffer)
            else:
                self._deliver(message, debug=False)
        except MailTransportError:
            raise
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError(f"SMTP delivery failed: {e}") from e

        log.debug("Email sent via SMTP to %s:%s", self.host, self.port)
        if trace_enabled:
            log.log(TRACE_LEVEL, "[SMTP] Message sent successfully")

    def _deliver(self, message: EmailMessage, *, debug: bool) -> None:
        trace_enabled = log.isEnabledFor(TRACE_LEVEL)
        client_cls = smtplib.SMTP_SSL if self.security.use_ssl else smtplib.SMTP
        kwargs: dict[str, object] = {"host": self.host, "port": self.port, "timeout": self.timeout}
        if self.security.use_ssl:
            kwargs["context"] = self.security.ssl_context()

        with client_cls(**kwargs) as client:  # type: ignore[arg-type]
            if debug:
                client.set_debuglevel(1)
            client.ehlo()
            self._maybe_starttls(client)

            if self.credentials is not None:
                if trace_enabled:
                    log.log(TRACE_LEVEL, "[SMTP] Authenticating as: %s", self.credentials.username)
                client.login(self.credentials.username, self.credentials.password or "")
                if trace_enabled:
                    log.log(TRACE_LEVEL, "[SMTP] Authentication successful")

            if trace_enabled:
                log.log(TRACE_LEVEL, "[SMTP] MAIL FROM: %s", self.envelope_from or message.get("From"))
                recipients = [message.get(name) for name in ("To", "Cc", "Bcc") if message.get(name)]
                log.log(TRACE_LEVEL, "[SMTP] RCPT TO: %s", ", ".join(str(r) for r in recipients))
                log.log(TRACE_LEVEL, "[SMTP] Subject: %s", message.get("Subject"))

            if self.envelope_from:
                client.send_message(message, from_addr=self.envelope_from)
            else:
                client.send_message(message)

    def _maybe_starttls(self, client: smtplib.SMTP) -> None:
        if self.security.use_ssl or not self.security.use_starttls:
            return
        if not client.has_extn("STARTTLS"):
            if self.security.require_starttls:
                raise MailTransportError(f"Server {self.host} does not support STARTTLS")
            log.debug("Server %s does not offer STARTTLS, continuing without TLS", self.host)
            return
        if log.isEnabledFor(TRACE_LEVEL):
            log.log(TRACE_LEVEL, "[SMTP] Upgrading connection with STARTTLS")
        client.starttls(context=self.security.ssl_context())
        client.ehlo()
        if log.isEnabledFor(TRACE_LEVEL):
            log.log(TRACE_LEVEL, "[SMTP] TLS: connection upgraded")
