"""Outgoing mail transports.

The ``mail`` config block selects the transport:

- ``smtp``: authenticated SMTP relay (host, port, username, password)
- ``sendmail``: local sendmail binary (``sendmail`` holds the command)
- anything else, or no ``transport`` key: direct delivery through the
  local MTA on localhost:25
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from email.message import EmailMessage
from typing import Any, Protocol

import aiosmtplib

logger = logging.getLogger(__name__)

DEFAULT_SENDMAIL = "/usr/sbin/sendmail -bs"


class MailTransport(Protocol):
    kind: str

    async def send(self, message: EmailMessage) -> None: ...


class SmtpTransport:
    """Delivery through an SMTP server via aiosmtplib."""

    kind = "smtp"

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    async def send(self, message: EmailMessage) -> None:
        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            timeout=self.timeout,
        )


class SendmailTransport:
    """Delivery by piping the message to the sendmail binary."""

    kind = "sendmail"

    def __init__(self, command: str = DEFAULT_SENDMAIL):
        self.command = command

    async def send(self, message: EmailMessage) -> None:
        # -t reads recipients from the headers; -bs speaks SMTP on stdin
        args = [arg for arg in shlex.split(self.command) if arg != "-bs"]
        if "-t" not in args:
            args.append("-t")
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate(message.as_bytes())
        if process.returncode != 0:
            raise RuntimeError(
                f"sendmail exited with {process.returncode}: {stderr.decode(errors='replace')}"
            )


class LocalTransport(SmtpTransport):
    """Direct delivery to the local MTA."""

    kind = "mail"

    def __init__(self) -> None:
        super().__init__(host="localhost", port=25)


class Mailer:
    def __init__(self, transport: MailTransport):
        self.transport = transport

    async def send(self, message: EmailMessage) -> None:
        logger.info("Sending mail to %s via %s", message.get("To"), self.transport.kind)
        await self.transport.send(message)


def create_transport(settings: dict[str, Any]) -> MailTransport:
    kind = settings.get("transport")
    if kind == "smtp":
        return SmtpTransport(
            host=settings.get("host", "localhost"),
            port=int(settings.get("port", 25)),
            username=settings.get("username"),
            password=settings.get("password"),
        )
    if kind == "sendmail":
        return SendmailTransport(settings.get("sendmail") or DEFAULT_SENDMAIL)
    return LocalTransport()


def create_mailer(settings: dict[str, Any] | None) -> Mailer | None:
    """Build a mailer from the ``mail`` config block; None when absent."""
    if settings is None:
        return None
    return Mailer(create_transport(settings))
