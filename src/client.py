"""SMTP transport factory for smsforward.

We read the SMTP password from the environment (optionally via a .env file)
so it never has to be written into config.json.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

import settings
from adapters.json_config import parse_smtp_config
from adapters.smtp_transport import SmtpMailTransport


def build_transport() -> SmtpMailTransport:
    """Create the SMTP transport from config.json plus SMTP_PASSWORD.

    Missing settings are not an error here: the delivery pipeline detects
    them before the first send and reports the message as not configured.
    """

    load_dotenv()

    config = parse_smtp_config(settings.SMTP, os.getenv("SMTP_PASSWORD"))
    logger = logging.getLogger(__name__)
    missing = config.missing_fields()
    if missing:
        logger.warning("SMTP transport incomplete, missing: %s", ", ".join(missing))
    else:
        logger.info("Initializing SMTP transport for %s:%s", config.host, config.port)

    return SmtpMailTransport(config)
