"""Transport abstraction consumed by :meth:`mailcraft.mail.Email.send`."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from email.message import EmailMessage


class MailTransport(ABC):
    """Synchronous delivery backend.

    Implementations must raise :class:`mailcraft.mail.MailTransportError`
    when delivery fails.
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """Deliver ``message``."""


__all__ = ["MailTransport"]
