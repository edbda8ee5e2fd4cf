"""Address value object and parser.

Parsing relies on the RFC 5322 grammar implemented by :mod:`email.utils` and
:mod:`email.headerregistry`. A display name can be given explicitly or taken
from a ``Name <user@example.com>`` string; an explicit name wins.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable
from dataclasses import dataclass
from email.errors import HeaderParseError
from email.headerregistry import Address as HeaderAddress
from email.utils import formataddr, getaddresses

from mailcraft.mail.exceptions import InvalidAddressError, NullArgumentError

DEFAULT_CHARSET = "utf-8"


@dataclass(frozen=True, slots=True)
class Address:
    """A validated mailbox.

    Attributes:
        email: The ``local@domain`` part.
        display_name: Optional human-readable name.
        charset: Charset used to encode a non-ASCII display name.

    Examples:
        >>> Address("user@example.com", "User").render()
        'User <user@example.com>'
    """

    email: str
    display_name: str | None = None
    charset: str | None = None

    def render(self) -> str:
        """Return the RFC 5322 form, encoding the display name if needed."""
        return formataddr((self.display_name or "", self.email), charset=self.charset or DEFAULT_CHARSET)

    def to_header_address(self) -> HeaderAddress:
        """Return the :mod:`email.headerregistry` equivalent."""
        return HeaderAddress(display_name=self.display_name or "", addr_spec=self.email)

    def __str__(self) -> str:
        return self.render()


def validate_charset(charset: str) -> str:
    """Return the canonical codec name for ``charset``.

    Raises:
        LookupError: If Python has no codec for ``charset``.
    """
    return codecs.lookup(charset).name


def parse_address(
    raw: str | None,
    name: str | None = None,
    charset: str | None = None,
    *,
    role: str | None = None,
) -> Address:
    """Parse and validate a single address.

    Args:
        raw: Address string, optionally with a display name.
        name: Display name overriding any parsed one.
        charset: Charset for the display name.
        role: Recipient role, used in error context only.

    Returns:
        The validated Address.

    Raises:
        NullArgumentError: If ``raw`` is None.
        InvalidAddressError: If ``raw`` is not a single valid address, the
            charset is unknown or cannot encode the display name.

    Examples:
        >>> parse_address("Jane <jane@example.com>")
        Address(email='jane@example.com', display_name='Jane', charset=None)
        >>> parse_address("invalid-email")
        Traceback (most recent call last):
        ...
        mailcraft.mail.exceptions.InvalidAddressError: Invalid address 'invalid-email': missing '@'
    """
    if raw is None:
        raise NullArgumentError("email", role)
    if not isinstance(raw, str):
        raise InvalidAddressError(raw, role=role, reason=f"expected a string, got {type(raw).__name__}")

    candidate = raw.strip()
    if not candidate:
        raise InvalidAddressError(raw, role=role, reason="empty address")
    if any(ch in candidate for ch in "\r\n\0"):
        raise InvalidAddressError(raw, role=role, reason="control characters are not allowed")

    parsed = getaddresses([candidate])
    if len(parsed) != 1:
        raise InvalidAddressError(raw, role=role, reason="expected exactly one address")

    parsed_name, addr_spec = parsed[0]
    if "@" not in addr_spec:
        raise InvalidAddressError(raw, role=role, reason="missing '@'")

    local_part, _, domain = addr_spec.rpartition("@")
    if not local_part or not domain:
        raise InvalidAddressError(raw, role=role, reason="local part and domain are required")

    try:
        HeaderAddress(addr_spec=addr_spec)
    except (HeaderParseError, ValueError, IndexError) as e:
        raise InvalidAddressError(raw, role=role, reason=str(e) or "unparseable address") from e

    if charset is not None:
        try:
            validate_charset(charset)
        except LookupError as e:
            raise InvalidAddressError(raw, role=role, reason=f"unknown charset {charset!r}") from e

    display_name = name if name is not None else (parsed_name or None)
    if display_name and charset is not None:
        try:
            display_name.encode(charset)
        except UnicodeEncodeError as e:
            raise InvalidAddressError(raw, role=role, reason=f"display name cannot be encoded as {charset}") from e
    return Address(email=addr_spec, display_name=display_name, charset=charset)


def parse_address_list(values: Iterable[str] | None, *, role: str | None = None) -> list[Address]:
    """Parse a bulk address input.

    A missing or empty list is a data error, not a programming error, so it
    raises :class:`InvalidAddressError` rather than NullArgumentError.

    Raises:
        InvalidAddressError: If the list is None, empty, or holds an invalid
            entry.

    Examples:
        >>> [a.email for a in parse_address_list(["a@x.com", "b@x.com"])]
        ['a@x.com', 'b@x.com']
    """
    if values is None:
        raise InvalidAddressError(values, role=role, reason="address list is None")
    if isinstance(values, str):
        raise InvalidAddressError(values, role=role, reason="expected a sequence of addresses, got a string")

    items = list(values)
    if not items:
        raise InvalidAddressError(items, role=role, reason="address list is empty")

    addresses: list[Address] = []
    for item in items:
        if item is None:
            raise InvalidAddressError(item, role=role, reason="address list contains None")
        addresses.append(parse_address(item, role=role))
    return addresses


__all__ = ["DEFAULT_CHARSET", "Address", "parse_address", "parse_address_list", "validate_charset"]
