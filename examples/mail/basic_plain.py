"""Plain-text mail composition using :class:`mailcraft.mail.SimpleEmail`."""

from __future__ import annotations

from mailcraft.mail import SimpleEmail


def build_plain_message() -> None:
    """Construct a plain-text message and print the RFC 5322 payload."""
    email = (
        SimpleEmail()
        .set_from("sender@example.com", "Sender")
        .add_to("user@example.com")
        .add_reply_to("support@example.com", "Support")
        .set_subject("Plain Greetings")
    )
    email.set_msg("Hello from mailcraft!\nThis message uses the plain content type.")
    message = email.build_mime_message()
    print(message.as_string())


if __name__ == "__main__":  # pragma: no cover - manual example
    build_plain_message()
