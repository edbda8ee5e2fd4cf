"""Mail session: transport configuration and message factory.

A :class:`MailSession` is a flat mapping of string properties using the
``mail.smtp.*`` naming convention, plus optional credentials kept out of the
property table. Sessions are created explicitly, either from a
:class:`SessionConfig` or from raw properties; there is no shared default
session.

Examples:
    >>> session = MailSession.from_config(SessionConfig(host_name="smtp.example.com", port=2525))
    >>> session.get_property("mail.smtp.port")
    '2525'
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from mailcraft.mail.exceptions import MailConfigurationError
from mailcraft.mail.message import BuiltMessage, make_message_id

if TYPE_CHECKING:
    from mailcraft.mail.address import Address

log = logging.getLogger(__name__)

MAIL_TRANSPORT_PROTOCOL = "mail.transport.protocol"
MAIL_HOST = "mail.smtp.host"
MAIL_PORT = "mail.smtp.port"
MAIL_SMTP_AUTH = "mail.smtp.auth"
MAIL_SMTP_USER = "mail.smtp.user"
MAIL_SMTP_FROM = "mail.smtp.from"
MAIL_SMTP_CONNECTIONTIMEOUT = "mail.smtp.connectiontimeout"
MAIL_SMTP_TIMEOUT = "mail.smtp.timeout"
MAIL_TRANSPORT_STARTTLS_ENABLE = "mail.smtp.starttls.enable"
MAIL_TRANSPORT_STARTTLS_REQUIRED = "mail.smtp.starttls.required"
MAIL_SMTP_SSL_ENABLE = "mail.smtp.ssl.enable"
MAIL_SMTP_SOCKET_FACTORY_PORT = "mail.smtp.socketFactory.port"
MAIL_DEBUG = "mail.debug"

SMTP = "smtp"
DEFAULT_SMTP_PORT = 25
DEFAULT_SSL_PORT = 465
#: Default connection and read timeout, in milliseconds.
DEFAULT_SOCKET_TIMEOUT_MS = 60_000


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Transport connection parameters handed to a :class:`MailSession`.

    Attributes:
        host_name: SMTP server host. The only mandatory parameter.
        port: SMTP port; ``None`` means the SMTP default (25).
        username: Login user name; enables authentication when set.
        password: Login password.
        connection_timeout: Connection timeout in milliseconds.
        socket_timeout: Read timeout in milliseconds.
        ssl_on_connect: Use implicit TLS from the first byte.
        ssl_port: Port used when ``ssl_on_connect`` is enabled.
        start_tls_enabled: Upgrade the connection with STARTTLS when offered.
        start_tls_required: Fail when the server does not offer STARTTLS.
        bounce_address: Envelope sender for bounces.
        debug: Enable transport debugging.
    """

    host_name: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    connection_timeout: int = DEFAULT_SOCKET_TIMEOUT_MS
    socket_timeout: int = DEFAULT_SOCKET_TIMEOUT_MS
    ssl_on_connect: bool = False
    ssl_port: int = DEFAULT_SSL_PORT
    start_tls_enabled: bool = False
    start_tls_required: bool = False
    bounce_address: str | None = None
    debug: bool = False

    @property
    def authenticated(self) -> bool:
        """Whether credentials were configured."""
        return self.username is not None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SessionConfig:
        """Build a SessionConfig from a ``mail.session`` config section.

        Unknown keys are ignored; ``None`` values keep the field defaults.

        Raises:
            MailConfigurationError: If a numeric field is not an integer.
        """
        values: dict[str, Any] = {}
        aliases = {"host": "host_name"}
        for key, value in data.items():
            field_name = aliases.get(key, key)
            if field_name not in cls.__dataclass_fields__ or value is None:
                continue
            values[field_name] = value

        for numeric in ("port", "connection_timeout", "socket_timeout", "ssl_port"):
            if numeric in values:
                try:
                    values[numeric] = int(values[numeric])
                except (TypeError, ValueError) as e:
                    raise MailConfigurationError(
                        f"Session setting '{numeric}' must be an integer, got {values[numeric]!r}",
                        details={"field": numeric},
                    ) from e
        return cls(**values)


class MailSession:
    """Transport session exposing ``mail.smtp.*`` properties.

    Args:
        properties: Session properties. Values are stored as strings.
        credentials: Optional ``(username, password)`` pair.
    """

    def __init__(
        self,
        properties: Mapping[str, Any] | None = None,
        credentials: tuple[str, str | None] | None = None,
    ) -> None:
        self._properties: dict[str, str] = {
            key: str(value) for key, value in (properties or {}).items() if value is not None
        }
        self._credentials = credentials

    @classmethod
    def from_config(cls, config: SessionConfig) -> MailSession:
        """Derive a session from a :class:`SessionConfig`.

        Raises:
            MailConfigurationError: If no host name is configured.
        """
        if not config.host_name:
            raise MailConfigurationError("Cannot find valid hostname for mail session")

        port = config.port if config.port is not None else DEFAULT_SMTP_PORT
        properties: dict[str, str] = {
            MAIL_TRANSPORT_PROTOCOL: SMTP,
            MAIL_HOST: config.host_name,
            MAIL_PORT: str(port),
            MAIL_DEBUG: _flag(config.debug),
            MAIL_TRANSPORT_STARTTLS_ENABLE: _flag(config.start_tls_enabled),
            MAIL_TRANSPORT_STARTTLS_REQUIRED: _flag(config.start_tls_required),
            MAIL_SMTP_CONNECTIONTIMEOUT: str(config.connection_timeout),
            MAIL_SMTP_TIMEOUT: str(config.socket_timeout),
        }

        credentials: tuple[str, str | None] | None = None
        if config.authenticated:
            properties[MAIL_SMTP_AUTH] = "true"
            properties[MAIL_SMTP_USER] = str(config.username)
            credentials = (str(config.username), config.password)

        if config.ssl_on_connect:
            properties[MAIL_PORT] = str(config.ssl_port)
            properties[MAIL_SMTP_SSL_ENABLE] = "true"
            properties[MAIL_SMTP_SOCKET_FACTORY_PORT] = str(config.ssl_port)

        if config.bounce_address:
            properties[MAIL_SMTP_FROM] = config.bounce_address

        log.debug("Derived mail session for %s:%s", config.host_name, properties[MAIL_PORT])
        return cls(properties, credentials)

    @property
    def properties(self) -> Mapping[str, str]:
        """Return a read-only view of the session properties."""
        return MappingProxyType(self._properties)

    @property
    def credentials(self) -> tuple[str, str | None] | None:
        """Return the ``(username, password)`` pair, if any."""
        return self._credentials

    def get_property(self, key: str, default: str | None = None) -> str | None:
        """Return a session property, or ``default`` when unset."""
        return self._properties.get(key, default)

    def get_bool(self, key: str) -> bool:
        """Return a ``"true"``/``"false"`` property as a bool."""
        return (self._properties.get(key) or "").strip().lower() == "true"

    def create_message(
        self,
        *,
        sender: Address,
        to: Sequence[Address] = (),
        cc: Sequence[Address] = (),
        bcc: Sequence[Address] = (),
        reply_to: Sequence[Address] = (),
        subject: str | None = None,
        content: str | None = None,
        content_type: str | None = None,
        charset: str | None = None,
        headers: Mapping[str, str] | None = None,
        sent_date: datetime | None = None,
    ) -> BuiltMessage:
        """Create an immutable message bound to this session.

        Sequences are copied into tuples and headers into a fresh mapping,
        so the result shares no mutable state with the caller.
        """
        return BuiltMessage(
            sender=sender,
            to=tuple(to),
            cc=tuple(cc),
            bcc=tuple(bcc),
            reply_to=tuple(reply_to),
            subject=subject,
            content=content,
            content_type=content_type,
            charset=charset,
            headers=MappingProxyType(dict(headers or {})),
            sent_date=sent_date or datetime.now().astimezone(),
            bounce_address=self.get_property(MAIL_SMTP_FROM),
            message_id=make_message_id(sender),
        )

    def __repr__(self) -> str:
        host = self._properties.get(MAIL_HOST)
        port = self._properties.get(MAIL_PORT)
        return f"MailSession(host={host!r}, port={port!r}, auth={self._credentials is not None})"


__all__ = [
    "DEFAULT_SMTP_PORT",
    "DEFAULT_SSL_PORT",
    "MAIL_DEBUG",
    "MAIL_HOST",
    "MAIL_PORT",
    "MAIL_SMTP_AUTH",
    "MAIL_SMTP_CONNECTIONTIMEOUT",
    "MAIL_SMTP_FROM",
    "MAIL_SMTP_SSL_ENABLE",
    "MAIL_SMTP_TIMEOUT",
    "MAIL_SMTP_USER",
    "MAIL_TRANSPORT_STARTTLS_ENABLE",
    "MAIL_TRANSPORT_STARTTLS_REQUIRED",
    "MailSession",
    "SessionConfig",
]
