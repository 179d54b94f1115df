"""SMTP mail transport adapter.

Implements MailTransportPort with aiosmtplib. Implicit TLS vs STARTTLS is
chosen by configuration; timeouts come from configuration in milliseconds.
"""

from __future__ import annotations

from email.message import EmailMessage
from email.utils import formatdate, make_msgid
import logging
from typing import List

import aiosmtplib

from core.config import SmtpConfig
from core.models import FormattedPayload

LOGGER = logging.getLogger(__name__)


def build_email(payload: FormattedPayload, config: SmtpConfig) -> EmailMessage:
    """Wrap a formatted payload into a UTF-8 plain-text message."""

    message = EmailMessage()
    message["From"] = config.sender
    message["To"] = config.recipient
    message["Subject"] = payload.subject
    message["Date"] = formatdate(localtime=False)
    domain = config.sender.rpartition("@")[2] or None
    message["Message-ID"] = make_msgid(domain=domain)
    message.set_content(payload.body, charset="utf-8")
    return message


class SmtpMailTransport:
    """MailTransportPort adapter that opens one SMTP session per send."""

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    def missing_configuration(self) -> List[str]:
        return self._config.missing_fields()

    def _client(self) -> aiosmtplib.SMTP:
        config = self._config
        return aiosmtplib.SMTP(
            hostname=config.host,
            port=config.port,
            username=config.username,
            password=config.password,
            use_tls=config.implicit_tls,
            start_tls=not config.implicit_tls,
            timeout=config.connect_timeout_ms / 1000,
        )

    async def send(self, payload: FormattedPayload) -> None:
        """Send the payload; any aiosmtplib or network error propagates."""

        message = build_email(payload, self._config)
        LOGGER.debug(
            "Connecting to %s:%s (%s)",
            self._config.host,
            self._config.port,
            "implicit TLS" if self._config.implicit_tls else "STARTTLS",
        )
        async with self._client() as smtp:
            errors, response = await smtp.send_message(
                message,
                timeout=self._config.read_timeout_ms / 1000,
            )
        if errors:
            rejected = ", ".join(f"{rcpt}: {err}" for rcpt, err in errors.items())
            raise RuntimeError(f"Recipients rejected: {rejected}")
        LOGGER.debug("SMTP server accepted message: %s", response)
