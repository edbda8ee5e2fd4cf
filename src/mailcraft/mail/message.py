"""Immutable message artifact produced by a successful build.

:class:`BuiltMessage` is a frozen snapshot. It renders a fresh
:class:`email.message.EmailMessage` on every :meth:`BuiltMessage.to_email_message`
call, so callers can never mutate the artifact through the rendered form.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from email.header import Header
from email.headerregistry import HeaderRegistry
from email.message import EmailMessage
from email.utils import make_msgid
from enum import Enum

from mailcraft.mail.address import DEFAULT_CHARSET, Address
from mailcraft.mail.exceptions import IllegalInputError

DEFAULT_CONTENT_TYPE = "text/plain"

_HEADER_FACTORY = HeaderRegistry()


class RecipientType(str, Enum):
    """Recipient roles and their header names.

    Attributes:
        TO: Primary recipients.
        CC: Carbon-copy recipients.
        BCC: Blind carbon-copy recipients.
        REPLY_TO: Addresses replies should go to.
    """

    TO = "To"
    CC = "Cc"
    BCC = "Bcc"
    REPLY_TO = "Reply-To"

    @classmethod
    def _missing_(cls, value: object) -> RecipientType | None:
        if isinstance(value, str):
            wanted = value.strip().lower().replace("_", "-")
            for member in cls:
                if wanted in (member.value.lower(), member.name.lower().replace("_", "-")):
                    return member
        return None


def make_message_id(sender: Address) -> str:
    """Return a unique ``Message-ID`` in the sender's domain."""
    domain = sender.email.rpartition("@")[2]
    return make_msgid(domain=domain or None)


def parse_content_type(value: str) -> tuple[str, str, dict[str, str]]:
    """Split a content type into ``(maintype, subtype, params)``.

    Examples:
        >>> parse_content_type("text/html; charset=UTF-8")
        ('text', 'html', {'charset': 'UTF-8'})
    """
    header = _HEADER_FACTORY("content-type", value)
    params = {key: str(param) for key, param in header.params.items()}  # type: ignore[attr-defined]
    return header.maintype, header.subtype, params  # type: ignore[attr-defined]


def _set_subject(message: EmailMessage, subject: str, charset: str | None) -> None:
    """Set ``Subject``, RFC 2047 encoded in ``charset`` when it is not ASCII.

    Encoded words are stored raw so the policy keeps them in ``charset``.
    """
    if charset and not subject.isascii():
        try:
            encoded = Header(subject, charset, header_name="Subject").encode()
        except UnicodeEncodeError:
            # characters outside the charset keep the policy's UTF-8 encoding
            pass
        else:
            message.set_raw("Subject", encoded)
            return
    message["Subject"] = subject


@dataclass(frozen=True, slots=True)
class BuiltMessage:
    """Snapshot of a draft accepted by the transport layer.

    Attributes:
        sender: The ``From`` address.
        to: Primary recipients.
        cc: Carbon-copy recipients.
        bcc: Blind carbon-copy recipients.
        reply_to: Reply-To addresses.
        subject: Message subject.
        content: Message body.
        content_type: Declared MIME type of the body.
        charset: Charset for subject and body.
        headers: Custom headers, copied verbatim.
        sent_date: ``Date`` header value.
        bounce_address: Envelope sender taken from the session.
        message_id: Generated ``Message-ID``.
    """

    sender: Address
    to: tuple[Address, ...]
    cc: tuple[Address, ...]
    bcc: tuple[Address, ...]
    reply_to: tuple[Address, ...]
    subject: str | None
    content: str | None
    content_type: str | None
    charset: str | None
    headers: Mapping[str, str]
    sent_date: datetime
    bounce_address: str | None
    message_id: str

    def recipients(self, role: RecipientType | str) -> tuple[Address, ...]:
        """Return the addresses for a recipient role.

        Examples:
            >>> msg.recipients(RecipientType.CC)  # doctest: +SKIP
            (Address(email='cc@example.com', display_name=None, charset=None),)
        """
        role = RecipientType(role)
        return {
            RecipientType.TO: self.to,
            RecipientType.CC: self.cc,
            RecipientType.BCC: self.bcc,
            RecipientType.REPLY_TO: self.reply_to,
        }[role]

    @property
    def all_recipients(self) -> tuple[Address, ...]:
        """Envelope recipients: to, cc and bcc in that order."""
        return self.to + self.cc + self.bcc

    @property
    def mime_type(self) -> str:
        """Return the body MIME type without parameters."""
        if not self.content_type:
            return DEFAULT_CONTENT_TYPE
        maintype, subtype, _ = parse_content_type(self.content_type)
        return f"{maintype}/{subtype}"

    def get_header(self, name: str) -> list[str] | None:
        """Return every value of header ``name`` in the rendered message.

        Returns None when the header is absent.
        """
        values = self.to_email_message().get_all(name)
        if values is None:
            return None
        return [str(value) for value in values]

    def validate(self) -> None:
        """Check that the message renders.

        Raises:
            IllegalInputError: If the body cannot be encoded in its charset.
        """
        self.to_email_message()

    def to_email_message(self) -> EmailMessage:
        """Render a new :class:`EmailMessage` from this snapshot.

        Raises:
            IllegalInputError: If the body cannot be encoded in its charset.
        """
        message = EmailMessage()
        message["From"] = self.sender.to_header_address()
        for role in RecipientType:
            addresses = self.recipients(role)
            if addresses:
                message[role.value] = tuple(address.to_header_address() for address in addresses)

        if self.subject is not None:
            _set_subject(message, self.subject, self.charset)
        message["Date"] = self.sent_date
        message["Message-ID"] = self.message_id

        if self.content is not None or self.content_type is not None:
            self._set_body(message)

        # custom headers last so the body setup cannot clear them
        for name, value in self.headers.items():
            if name in message:
                del message[name]
            message[name] = value

        return message

    def _set_body(self, message: EmailMessage) -> None:
        maintype, subtype, params = parse_content_type(self.content_type or DEFAULT_CONTENT_TYPE)
        charset = params.pop("charset", None) or self.charset or DEFAULT_CHARSET
        body = self.content or ""
        try:
            if maintype == "text":
                message.set_content(body, subtype=subtype, charset=charset, params=params)
            else:
                message.set_content(body.encode(charset), maintype=maintype, subtype=subtype, params=params)
        except UnicodeEncodeError as e:
            raise IllegalInputError("content", body, f"cannot be encoded as {charset}") from e

    def as_string(self) -> str:
        """Return the RFC 5322 serialization."""
        return self.to_email_message().as_string()

    def as_bytes(self) -> bytes:
        """Return the RFC 5322 serialization as bytes."""
        return self.to_email_message().as_bytes()


__all__ = ["DEFAULT_CONTENT_TYPE", "BuiltMessage", "RecipientType", "make_message_id", "parse_content_type"]
