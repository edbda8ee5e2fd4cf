"""HTML body, custom headers and a non-ASCII subject."""

from __future__ import annotations

from mailcraft.mail import Email, RecipientType


def build_html_message() -> None:
    """Build an HTML message encoded as ISO-8859-1 and inspect it."""
    message = (
        Email()
        .set_charset("iso-8859-1")
        .set_from("newsletter@example.com", "Équipe")
        .add_to_list(["anna@example.com", "bruno@example.com"])
        .add_bcc("archive@example.com")
        .add_header("X-Campaign", "autumn")
        .set_subject("Nouveautés de la semaine")
        .set_content("<h1>Bonjour</h1><p>Voici les nouveautés.</p>", "text/html")
        .build_mime_message()
    )

    print("Bcc:", ", ".join(address.email for address in message.recipients(RecipientType.BCC)))
    print("X-Campaign:", message.get_header("X-Campaign"))
    print(message.as_string())


if __name__ == "__main__":  # pragma: no cover - manual example
    build_html_message()
