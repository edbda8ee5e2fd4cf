"""Email composition for mailcraft.

The :class:`Email` builder accumulates sender, recipients, headers, content
and session settings, then produces one immutable :class:`BuiltMessage`.

Examples:
    >>> from mailcraft.mail import Email
    >>> email = Email().set_from("sender@example.com").add_to("user@example.com")
    >>> email.set_subject("Hi").set_content("<p>Hi</p>", "text/html").build_mime_message().mime_type
    'text/html'
"""

from mailcraft.mail.address import Address, parse_address, parse_address_list
from mailcraft.mail.builder import Email, SimpleEmail
from mailcraft.mail.exceptions import (
    IllegalInputError,
    InvalidAddressError,
    MailConfigurationError,
    MailError,
    MailStateError,
    MailTransportError,
    MailValidationError,
    MissingFieldError,
    NullArgumentError,
)
from mailcraft.mail.message import BuiltMessage, RecipientType
from mailcraft.mail.session import MailSession, SessionConfig
from mailcraft.mail.transport import MailTransport

__all__ = [
    "Address",
    "BuiltMessage",
    "Email",
    "IllegalInputError",
    "InvalidAddressError",
    "MailConfigurationError",
    "MailError",
    "MailSession",
    "MailStateError",
    "MailTransport",
    "MailTransportError",
    "MailValidationError",
    "MissingFieldError",
    "NullArgumentError",
    "RecipientType",
    "SessionConfig",
    "SimpleEmail",
    "parse_address",
    "parse_address_list",
]
