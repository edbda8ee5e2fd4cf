"""Specialized exceptions raised by the mailcraft.mail module.

Exception hierarchy::

    MailcraftError
        MailError (base for all mail errors)
            NullArgumentError (single address argument is None, also TypeError)
            MailValidationError (bad caller data, also ValueError)
                InvalidAddressError (unparseable address or empty bulk input)
                IllegalInputError (empty header name/value, bad charset or body)
                MissingFieldError (sender or recipients absent at build time)
            MailStateError (message already built, also RuntimeError)
            MailConfigurationError (session cannot be derived)
            MailTransportError (delivery failed)

``NullArgumentError`` flags a programming mistake and is deliberately kept
outside ``MailValidationError``.
"""

from __future__ import annotations

from typing import Any

from mailcraft.config.exceptions import MailcraftError


class MailError(MailcraftError):
    """Base exception for all mail module errors."""


class NullArgumentError(MailError, TypeError):
    """A single-value address argument was ``None``.

    Attributes:
        argument: Name of the offending argument.
        role: Recipient role the address was meant for.
    """

    def __init__(self, argument: str, role: str | None = None) -> None:
        """Initialize NullArgumentError.

        Args:
            argument: Name of the offending argument.
            role: Recipient role the address was meant for.
        """
        target = f" for {role}" if role else ""
        super().__init__(
            f"Argument '{argument}'{target} must not be None",
            details={"argument": argument, "role": role},
        )
        self.argument = argument
        self.role = role


class MailValidationError(MailError, ValueError):
    """Input supplied to the mail builder is invalid."""


class InvalidAddressError(MailValidationError):
    """An address could not be parsed, or a bulk address list was empty.

    Attributes:
        value: The rejected input.
        role: Recipient role the address was meant for.
        reason: Why the input was rejected.

    Examples:
        >>> raise InvalidAddressError("invalid-email", reason="missing '@'")
        Traceback (most recent call last):
        ...
        mailcraft.mail.exceptions.InvalidAddressError: Invalid address 'invalid-email': missing '@'
    """

    def __init__(self, value: Any, *, role: str | None = None, reason: str = "unparseable address") -> None:
        """Initialize InvalidAddressError.

        Args:
            value: The rejected input.
            role: Recipient role the address was meant for.
            reason: Why the input was rejected.
        """
        super().__init__(
            f"Invalid address {value!r}: {reason}",
            details={"value": value, "role": role, "reason": reason},
        )
        self.value = value
        self.role = role
        self.reason = reason


class IllegalInputError(MailValidationError):
    """A header, charset or body argument is empty or unusable.

    Attributes:
        field: The field that was rejected.
        value: The rejected value.
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        """Initialize IllegalInputError.

        Args:
            field: The field that was rejected.
            value: The rejected value.
            reason: Why the value was rejected.
        """
        super().__init__(f"Illegal {field} {value!r}: {reason}", details={"field": field, "value": value})
        self.field = field
        self.value = value


class MissingFieldError(MailValidationError):
    """A field required to build the message is missing.

    Attributes:
        field: Name of the missing field (``from`` or ``recipients``).
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize MissingFieldError.

        Args:
            field: Name of the missing field.
            message: Human-readable error message.
        """
        super().__init__(message, details={"field": field})
        self.field = field


class MailStateError(MailError, RuntimeError):
    """The builder is not in a state that allows the requested operation."""


class MailConfigurationError(MailError):
    """Mail session or transport configuration is incomplete or invalid."""


class MailTransportError(MailError):
    """Delivery through a transport backend failed."""


__all__ = [
    "IllegalInputError",
    "InvalidAddressError",
    "MailConfigurationError",
    "MailError",
    "MailStateError",
    "MailTransportError",
    "MailValidationError",
    "MissingFieldError",
    "NullArgumentError",
]
