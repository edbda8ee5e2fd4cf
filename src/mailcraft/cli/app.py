"""Typer application: ``mailcraft compose``, ``mailcraft session``, ``mailcraft version``."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mailcraft import meta
from mailcraft.cli.common import console, exit_error
from mailcraft.config import ConfigError, load_config
from mailcraft.logging import init_logging
from mailcraft.mail import Email, MailError
from mailcraft.mail.message import BuiltMessage, RecipientType

app = typer.Typer(
    name=meta.__app_name__,
    help=f"{meta.__app_name__}: {meta.__description__}",
    no_args_is_help=True,
    add_completion=False,
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to a mailcraft.conf.yml file.", exists=False, dir_okay=False),
]
HostOption = Annotated[str | None, typer.Option("--host", help="SMTP host name.")]
PortOption = Annotated[int | None, typer.Option("--port", help="SMTP port.")]


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{meta.__app_name__} {meta.__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable TRACE logging.")] = False,
) -> None:
    """Compose email messages and inspect SMTP session settings."""
    if verbose:
        init_logging(preset="debug", config={"output": "console"})


@app.command()
def version() -> None:
    """Print the installed version."""
    console.print(f"{meta.__app_name__} {meta.__version__}")


def _load_builder(config_path: Path | None, host: str | None, port: int | None) -> Email:
    try:
        email = Email.from_config(load_config(config_path))
        if host:
            email.set_host_name(host)
        if port is not None:
            email.set_smtp_port(port)
    except (ConfigError, MailError) as e:
        exit_error(str(e))
    return email


def _split_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep:
        exit_error(f"Header must look like 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def _summary_table(message: BuiltMessage) -> Table:
    table = Table(title="Message", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Message-ID", message.message_id)
    table.add_row("From", Text(message.sender.render()))
    for role in RecipientType:
        addresses = message.recipients(role)
        if addresses:
            table.add_row(role.value, Text(", ".join(address.render() for address in addresses)))
    table.add_row("Subject", Text(message.subject) if message.subject else "[dim]-[/]")
    table.add_row("Content-Type", message.mime_type)
    for name, value in message.headers.items():
        table.add_row(Text(name), Text(value))
    return table


@app.command()
def compose(
    sender: Annotated[str, typer.Option("--from", "-f", help="Sender address.")],
    to: Annotated[list[str] | None, typer.Option("--to", "-t", help="To recipient (repeatable).")] = None,
    cc: Annotated[list[str] | None, typer.Option("--cc", help="Cc recipient (repeatable).")] = None,
    bcc: Annotated[list[str] | None, typer.Option("--bcc", help="Bcc recipient (repeatable).")] = None,
    reply_to: Annotated[list[str] | None, typer.Option("--reply-to", help="Reply-To address (repeatable).")] = None,
    subject: Annotated[str | None, typer.Option("--subject", "-s", help="Message subject.")] = None,
    body: Annotated[str | None, typer.Option("--body", "-b", help="Message body.")] = None,
    body_file: Annotated[
        Path | None,
        typer.Option("--body-file", help="Read the body from a file.", exists=True, dir_okay=False),
    ] = None,
    content_type: Annotated[str, typer.Option("--content-type", help="Body MIME type.")] = "text/plain",
    charset: Annotated[str | None, typer.Option("--charset", help="Charset for subject and body.")] = None,
    header: Annotated[list[str] | None, typer.Option("--header", "-H", help="Custom header 'Name: value'.")] = None,
    send: Annotated[bool, typer.Option("--send", help="Deliver the message through SMTP.")] = False,
    raw: Annotated[bool, typer.Option("--raw", help="Print the RFC 5322 source.")] = False,
    config: ConfigOption = None,
    host: HostOption = None,
    port: PortOption = None,
    user: Annotated[str | None, typer.Option("--user", help="SMTP login.")] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", envvar="MAILCRAFT_SMTP_PASSWORD", help="SMTP password.", show_default=False),
    ] = None,
) -> None:
    """Build a message, print it, and optionally send it.

    Examples:
        mailcraft compose --from me@example.com --to you@example.com -s Hi -b "Hello"

        mailcraft compose -f me@example.com -t you@example.com --send --host smtp.example.com
    """
    email = _load_builder(config, host, port)
    if body_file is not None:
        body = body_file.read_text(encoding="utf-8")

    try:
        if charset:
            email.set_charset(charset)
        if user:
            email.set_authentication(user, password)
        email.set_from(sender)
        if to:
            email.add_to_list(to)
        if cc:
            email.add_cc_list(cc)
        if bcc:
            email.add_bcc_list(bcc)
        if reply_to:
            email.add_reply_to_list(reply_to)
        for raw_header in header or []:
            email.add_header(*_split_header(raw_header))
        email.set_subject(subject)
        if body is not None:
            email.set_content(body, content_type)
        message = email.build_mime_message()
    except MailError as e:
        exit_error(str(e))

    if raw:
        console.print(message.as_string(), markup=False, highlight=False)
    else:
        console.print(_summary_table(message))
        if message.content:
            console.print(Panel(Text(message.content), title="Body", style="dim"))

    if send:
        try:
            message_id = email.send()
        except MailError as e:
            exit_error(str(e))
        console.print(f"[green]Sent[/] {message_id}")


@app.command()
def session(
    config: ConfigOption = None,
    host: HostOption = None,
    port: PortOption = None,
) -> None:
    """Show the SMTP session properties derived from configuration."""
    email = _load_builder(config, host, port)
    try:
        mail_session = email.get_mail_session()
    except MailError as e:
        exit_error(str(e))

    table = Table(title="Mail session")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    for key, value in sorted(mail_session.properties.items()):
        table.add_row(key, value)
    console.print(table)


def main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "main"]
