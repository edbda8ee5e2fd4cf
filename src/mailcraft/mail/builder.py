"""Email builder: accumulates message state and builds it exactly once.

Validation is eager: every setter or adder rejects bad input immediately.
Only three checks are deferred to :meth:`Email.build_mime_message`: the
one-shot guard, the sender and the presence of at least one recipient.

Examples:
    >>> email = (
    ...     Email()
    ...     .set_host_name("smtp.example.com")
    ...     .set_from("sender@example.com")
    ...     .add_to("recipient@example.com")
    ...     .set_subject("Hello")
    ...     .set_content("Plain body", "text/plain")
    ... )
    >>> message = email.build_mime_message()
    >>> message.mime_type
    'text/plain'
    >>> email.build_mime_message()
    Traceback (most recent call last):
    ...
    mailcraft.mail.exceptions.MailStateError: The message has already been built
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from mailcraft.config import load_config
from mailcraft.mail.address import Address, parse_address, parse_address_list, validate_charset
from mailcraft.mail.exceptions import (
    IllegalInputError,
    InvalidAddressError,
    MailConfigurationError,
    MailStateError,
    MissingFieldError,
    NullArgumentError,
)
from mailcraft.mail.message import RecipientType, parse_content_type
from mailcraft.mail.session import MAIL_HOST, MailSession, SessionConfig
from mailcraft.mail.transports.smtp import SMTPTransport

if TYPE_CHECKING:
    from datetime import datetime

    from mailcraft.mail.message import BuiltMessage
    from mailcraft.mail.transport import MailTransport

log = logging.getLogger(__name__)

#: RFC 5322 field name: printable ASCII except colon.
HEADER_NAME_PATTERN = re.compile(r"^[!-9;-~]+$")

#: Headers owned by :meth:`Email.set_content`.
BODY_HEADER_PREFIXES = ("content-", "mime-version")


class Email:
    """Stateful builder for a single outgoing message.

    One instance describes one message and belongs to one caller. After a
    successful :meth:`build_mime_message` the instance is spent; create a new
    builder for the next message.

    Args:
        session_config: Initial transport configuration.
        session: Pre-built session, see :meth:`set_mail_session`.
    """

    def __init__(
        self,
        session_config: SessionConfig | None = None,
        *,
        session: MailSession | None = None,
    ) -> None:
        self._session_config = session_config or SessionConfig()
        self._injected_session = session
        self._derived_session: MailSession | None = None

        self._from: Address | None = None
        self._recipients: dict[RecipientType, list[Address]] = {role: [] for role in RecipientType}
        self._subject: str | None = None
        self._content: str | None = None
        self._content_type: str | None = None
        self._charset: str | None = None
        self._sent_date: datetime | None = None
        self._headers: dict[str, str] = {}

        self._message: BuiltMessage | None = None
        self._built = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> Email:
        """Create a builder from the ``mail`` section of ``mailcraft.conf.yml``.

        Args:
            config: Loaded configuration. When omitted it is read with
                :func:`mailcraft.config.load_config`.

        Raises:
            MailConfigurationError: If the session section is malformed.
        """
        if config is None:
            config = load_config()

        mail_section = config.get("mail") or {}
        email = cls(SessionConfig.from_mapping(mail_section.get("session") or {}))

        defaults = mail_section.get("defaults") or {}
        if defaults.get("charset"):
            email.set_charset(defaults["charset"])
        if defaults.get("from"):
            email.set_from(defaults["from"])
        return email

    # ------------------------------------------------------------------
    # Session configuration
    # ------------------------------------------------------------------

    def _update_session(self, **changes: Any) -> Email:
        self._session_config = replace(self._session_config, **changes)
        self._derived_session = None
        return self

    def set_host_name(self, host_name: str) -> Email:
        """Set the SMTP host name."""
        return self._update_session(host_name=host_name)

    def set_smtp_port(self, port: int) -> Email:
        """Set the SMTP port.

        Raises:
            IllegalInputError: If ``port`` is not an integer.
        """
        if isinstance(port, bool) or not isinstance(port, int):
            raise IllegalInputError("smtp_port", port, "must be an integer")
        return self._update_session(port=port)

    def set_authentication(self, username: str, password: str | None) -> Email:
        """Set login credentials, enabling SMTP authentication."""
        return self._update_session(username=username, password=password)

    def set_socket_connection_timeout(self, timeout_ms: int) -> Email:
        """Set the connection timeout in milliseconds."""
        return self._update_session(connection_timeout=timeout_ms)

    def set_socket_timeout(self, timeout_ms: int) -> Email:
        """Set the read timeout in milliseconds.

        The SMTP transport applies the larger of this and the connection
        timeout to its socket.
        """
        return self._update_session(socket_timeout=timeout_ms)

    def set_ssl_on_connect(self, enabled: bool) -> Email:
        """Connect with implicit TLS on :attr:`ssl_smtp_port`."""
        return self._update_session(ssl_on_connect=enabled)

    def set_ssl_smtp_port(self, port: int) -> Email:
        """Set the port used with :meth:`set_ssl_on_connect`."""
        return self._update_session(ssl_port=port)

    def set_start_tls_enabled(self, enabled: bool) -> Email:
        """Upgrade the connection with STARTTLS when offered."""
        return self._update_session(start_tls_enabled=enabled)

    def set_start_tls_required(self, required: bool) -> Email:
        """Refuse to deliver without STARTTLS."""
        return self._update_session(start_tls_required=required)

    def set_debug(self, enabled: bool) -> Email:
        """Capture the SMTP dialogue during delivery."""
        return self._update_session(debug=enabled)

    def set_bounce_address(self, address: str) -> Email:
        """Set the envelope sender that receives bounces.

        Raises:
            NullArgumentError: If ``address`` is None.
            InvalidAddressError: If ``address`` is not a valid address.
        """
        bounce = parse_address(address, role="bounce")
        return self._update_session(bounce_address=bounce.email)

    @property
    def session_config(self) -> SessionConfig:
        """Return the current transport configuration."""
        return self._session_config

    @property
    def host_name(self) -> str | None:
        """Return the host name.

        An explicitly set host name wins over the ``mail.smtp.host``
        property of an injected session.
        """
        if self._session_config.host_name:
            return self._session_config.host_name
        if self._injected_session is not None:
            return self._injected_session.get_property(MAIL_HOST)
        return None

    @property
    def smtp_port(self) -> int | None:
        return self._session_config.port

    @property
    def authentication(self) -> tuple[str, str | None] | None:
        """Return ``(username, password)`` when credentials are set."""
        if self._session_config.username is None:
            return None
        return self._session_config.username, self._session_config.password

    @property
    def socket_connection_timeout(self) -> int:
        return self._session_config.connection_timeout

    @property
    def socket_timeout(self) -> int:
        return self._session_config.socket_timeout

    @property
    def ssl_on_connect(self) -> bool:
        return self._session_config.ssl_on_connect

    @property
    def ssl_smtp_port(self) -> int:
        return self._session_config.ssl_port

    @property
    def start_tls_enabled(self) -> bool:
        return self._session_config.start_tls_enabled

    @property
    def start_tls_required(self) -> bool:
        return self._session_config.start_tls_required

    @property
    def debug(self) -> bool:
        return self._session_config.debug

    @property
    def bounce_address(self) -> str | None:
        return self._session_config.bounce_address

    def set_mail_session(self, session: MailSession) -> Email:
        """Inject a pre-built session, bypassing the host/port/auth setters.

        Raises:
            NullArgumentError: If ``session`` is None.
        """
        if session is None:
            raise NullArgumentError("session")
        self._injected_session = session
        self._derived_session = None
        return self

    def get_mail_session(self) -> MailSession:
        """Return the session used to create and deliver the message.

        The injected session is returned when there is one; otherwise a
        session is derived from the current configuration and cached until
        the next configuration change.

        Raises:
            MailConfigurationError: If no host name is available.
        """
        if self._injected_session is not None:
            if not self.host_name:
                raise MailConfigurationError("Cannot find valid hostname for mail session")
            return self._injected_session
        if self._derived_session is None:
            self._derived_session = MailSession.from_config(self._session_config)
        return self._derived_session

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def set_from(self, email: str, name: str | None = None, charset: str | None = None) -> Email:
        """Set the sender.

        Raises:
            NullArgumentError: If ``email`` is None.
            InvalidAddressError: If ``email`` is not a valid address.
        """
        self._from = parse_address(email, name, charset or self._charset, role="from")
        return self

    def _add(self, role: RecipientType, email: str, name: str | None, charset: str | None) -> Email:
        address = parse_address(email, name, charset or self._charset, role=role.value)
        self._recipients[role].append(address)
        return self

    def _add_list(self, role: RecipientType, emails: Iterable[str] | None) -> Email:
        self._recipients[role].extend(parse_address_list(emails, role=role.value))
        return self

    def _replace(self, role: RecipientType, addresses: Iterable[Address | str] | None) -> Email:
        if addresses is None or isinstance(addresses, str):
            raise InvalidAddressError(addresses, role=role.value, reason="expected a collection of addresses")
        parsed = [
            item if isinstance(item, Address) else parse_address(item, role=role.value) for item in addresses
        ]
        if not parsed:
            raise InvalidAddressError(parsed, role=role.value, reason="address list is empty")
        self._recipients[role] = parsed
        return self

    def add_to(self, email: str, name: str | None = None, charset: str | None = None) -> Email:
        """Add a ``To`` recipient.

        Raises:
            NullArgumentError: If ``email`` is None.
            InvalidAddressError: If ``email`` is not a valid address.
        """
        return self._add(RecipientType.TO, email, name, charset)

    def add_cc(self, email: str, name: str | None = None, charset: str | None = None) -> Email:
        """Add a ``Cc`` recipient."""
        return self._add(RecipientType.CC, email, name, charset)

    def add_bcc(self, email: str, name: str | None = None, charset: str | None = None) -> Email:
        """Add a ``Bcc`` recipient."""
        return self._add(RecipientType.BCC, email, name, charset)

    def add_reply_to(self, email: str, name: str | None = None, charset: str | None = None) -> Email:
        """Add a ``Reply-To`` address."""
        return self._add(RecipientType.REPLY_TO, email, name, charset)

    def add_to_list(self, emails: Iterable[str] | None) -> Email:
        """Add several ``To`` recipients.

        Nothing is added unless every entry is valid.

        Raises:
            InvalidAddressError: If ``emails`` is None, empty, or holds an
                invalid address.
        """
        return self._add_list(RecipientType.TO, emails)

    def add_cc_list(self, emails: Iterable[str] | None) -> Email:
        """Add several ``Cc`` recipients."""
        return self._add_list(RecipientType.CC, emails)

    def add_bcc_list(self, emails: Iterable[str] | None) -> Email:
        """Add several ``Bcc`` recipients."""
        return self._add_list(RecipientType.BCC, emails)

    def add_reply_to_list(self, emails: Iterable[str] | None) -> Email:
        """Add several ``Reply-To`` addresses."""
        return self._add_list(RecipientType.REPLY_TO, emails)

    def set_to(self, addresses: Iterable[Address | str] | None) -> Email:
        """Replace all ``To`` recipients.

        Raises:
            InvalidAddressError: If ``addresses`` is None, empty or invalid.
        """
        return self._replace(RecipientType.TO, addresses)

    def set_cc(self, addresses: Iterable[Address | str] | None) -> Email:
        """Replace all ``Cc`` recipients."""
        return self._replace(RecipientType.CC, addresses)

    def set_bcc(self, addresses: Iterable[Address | str] | None) -> Email:
        """Replace all ``Bcc`` recipients."""
        return self._replace(RecipientType.BCC, addresses)

    def set_reply_to(self, addresses: Iterable[Address | str] | None) -> Email:
        """Replace all ``Reply-To`` addresses."""
        return self._replace(RecipientType.REPLY_TO, addresses)

    @property
    def from_address(self) -> Address | None:
        return self._from

    @property
    def to_addresses(self) -> list[Address]:
        return list(self._recipients[RecipientType.TO])

    @property
    def cc_addresses(self) -> list[Address]:
        return list(self._recipients[RecipientType.CC])

    @property
    def bcc_addresses(self) -> list[Address]:
        return list(self._recipients[RecipientType.BCC])

    @property
    def reply_to_addresses(self) -> list[Address]:
        return list(self._recipients[RecipientType.REPLY_TO])

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_header(name: str | None, value: str | None) -> None:
        if not name:
            raise IllegalInputError("header name", name, "must not be empty")
        if not value:
            raise IllegalInputError("header value", value, "must not be empty")
        if not isinstance(name, str) or not HEADER_NAME_PATTERN.match(name):
            raise IllegalInputError("header name", name, "must be printable ASCII without ':' or spaces")
        if name.lower().startswith(BODY_HEADER_PREFIXES):
            raise IllegalInputError("header name", name, "body headers are set through set_content")
        if not isinstance(value, str) or "\r" in value or "\n" in value:
            raise IllegalInputError("header value", value, "must be a single-line string")

    def add_header(self, name: str | None, value: str | None) -> Email:
        """Add or overwrite a custom header.

        Raises:
            IllegalInputError: If ``name`` or ``value`` is None or empty, or
                ``name`` is a ``Content-*`` or ``MIME-Version`` header.
        """
        self._check_header(name, value)
        self._headers[name] = value  # type: ignore[index]
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Email:
        """Replace every custom header.

        Raises:
            IllegalInputError: If any entry is invalid; headers are left
                unchanged in that case.
        """
        for name, value in headers.items():
            self._check_header(name, value)
        self._headers = dict(headers)
        return self

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def set_subject(self, subject: str | None) -> Email:
        self._subject = subject
        return self

    def set_content(self, body: str | None, content_type: str) -> Email:
        """Set the body and its MIME type (``text/plain``, ``text/html``...).

        Raises:
            IllegalInputError: If ``content_type`` is empty or multipart.
        """
        if not content_type:
            raise IllegalInputError("content type", content_type, "must not be empty")
        maintype, _, _ = parse_content_type(content_type)
        if maintype == "multipart":
            raise IllegalInputError("content type", content_type, "multipart bodies are not supported")
        self._content = body
        self._content_type = content_type
        return self

    def set_charset(self, charset: str) -> Email:
        """Set the charset for subject, body and display names.

        Raises:
            IllegalInputError: If Python has no codec for ``charset``.
        """
        try:
            validate_charset(charset)
        except (LookupError, TypeError) as e:
            raise IllegalInputError("charset", charset, "unknown charset") from e
        self._charset = charset
        return self

    def set_sent_date(self, date: datetime) -> Email:
        self._sent_date = date
        return self

    @property
    def subject(self) -> str | None:
        return self._subject

    @property
    def content(self) -> str | None:
        return self._content

    @property
    def content_type(self) -> str | None:
        return self._content_type

    @property
    def charset(self) -> str | None:
        return self._charset

    @property
    def sent_date(self) -> datetime | None:
        return self._sent_date

    # ------------------------------------------------------------------
    # Build and send
    # ------------------------------------------------------------------

    @property
    def built(self) -> bool:
        """Whether :meth:`build_mime_message` already succeeded."""
        return self._built

    @property
    def mime_message(self) -> BuiltMessage | None:
        """Return the built message, or None before a build."""
        return self._message

    def _factory_session(self) -> MailSession:
        if self._injected_session is not None:
            return self._injected_session
        if self.host_name:
            return self.get_mail_session()
        return MailSession()

    def build_mime_message(self) -> BuiltMessage:
        """Build the immutable message. Succeeds at most once per instance.

        Raises:
            MailStateError: If the message was already built.
            MissingFieldError: If the sender or every recipient is missing.
            IllegalInputError: If the body cannot be encoded in its charset.
        """
        if self._built:
            raise MailStateError("The message has already been built")
        if self._from is None:
            raise MissingFieldError("from", "From address required")
        if not any(self._recipients[role] for role in (RecipientType.TO, RecipientType.CC, RecipientType.BCC)):
            raise MissingFieldError("recipients", "At least one receiver address required")

        message = self._factory_session().create_message(
            sender=self._from,
            to=self._recipients[RecipientType.TO],
            cc=self._recipients[RecipientType.CC],
            bcc=self._recipients[RecipientType.BCC],
            reply_to=self._recipients[RecipientType.REPLY_TO],
            subject=self._subject,
            content=self._content,
            content_type=self._content_type,
            charset=self._charset,
            headers=self._headers,
            sent_date=self._sent_date,
        )
        message.validate()

        self._message = message
        self._built = True
        log.debug(
            "Built message %s from %s to %d recipient(s)",
            message.message_id,
            message.sender.email,
            len(message.all_recipients),
        )
        return message

    def send(self, transport: MailTransport | None = None) -> str:
        """Build the message if needed and deliver it.

        Args:
            transport: Delivery backend. Defaults to an SMTP transport
                derived from :meth:`get_mail_session`.

        Returns:
            The ``Message-ID`` of the delivered message.

        Raises:
            MailConfigurationError: If no transport is given and no host
                name is configured.
            MailTransportError: If delivery fails.
        """
        message = self._message if self._message is not None else self.build_mime_message()
        if transport is None:
            transport = SMTPTransport.from_session(self.get_mail_session())
        transport.send(message.to_email_message())
        log.info("Sent message %s to %d recipient(s)", message.message_id, len(message.all_recipients))
        return message.message_id


class SimpleEmail(Email):
    """Builder for plain-text messages."""

    def set_msg(self, msg: str | None) -> SimpleEmail:
        """Set a ``text/plain`` body.

        Raises:
            IllegalInputError: If ``msg`` is None or empty.
        """
        if not msg:
            raise IllegalInputError("message", msg, "must not be empty")
        self.set_content(msg, "text/plain")
        return self


__all__ = ["Email", "SimpleEmail"]
