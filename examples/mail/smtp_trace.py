#!/usr/bin/env python3
"""Send a message with TRACE-level SMTP logging.

The SMTP dialogue (EHLO, STARTTLS, AUTH, MAIL FROM, RCPT TO) is printed
through the Rich console handler.

Setup:
    export SMTP_HOST="smtp.example.com"
    export SMTP_USER="you@example.com"
    export SMTP_PASS="your-password"

Usage:
    python examples/mail/smtp_trace.py
"""

from __future__ import annotations

import os
import sys

from mailcraft.logging import init_logging
from mailcraft.mail import Email, MailError


def main() -> None:
    """Send one message to yourself with TRACE logging enabled."""
    host = os.getenv("SMTP_HOST")
    user = os.getenv("SMTP_USER")
    password = os.getenv("SMTP_PASS")
    if not host or not user:
        print("Set SMTP_HOST, SMTP_USER and SMTP_PASS first.")
        sys.exit(1)

    log = init_logging(config={"console": {"level": "TRACE"}})
    log.info("TRACE logging enabled", host=host)

    email = (
        Email()
        .set_host_name(host)
        .set_smtp_port(587)
        .set_start_tls_enabled(True)
        .set_authentication(user, password)
        .set_from(user)
        .add_to(user)
        .set_subject("TRACE logging test from mailcraft")
        .set_content("This email was sent with TRACE-level logging enabled.", "text/plain")
    )

    try:
        message_id = email.send()
    except MailError as e:
        log.traceback(e)
        sys.exit(1)
    log.success("Email sent", message_id=message_id)


if __name__ == "__main__":  # pragma: no cover - manual example
    main()
