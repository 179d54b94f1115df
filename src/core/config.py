"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List

DEFAULT_COUNTRY_CODE = "385"
DEFAULT_SUBJECT_FORMAT = "SMS from %1$s - %2$s"
DEFAULT_DATE_FORMAT = "%d.%m.%Y %H:%M"
DEFAULT_BODY_DATE_FORMAT = "%A, %d %B %Y at %H:%M:%S"


class ConfigError(ValueError):
    """Raised when a configuration file holds values the core cannot use."""


class FilterMode(str, Enum):
    NONE = "none"
    BLACKLIST = "blacklist"
    WHITELIST = "whitelist"


@dataclass(frozen=True)
class FilterConfig:
    """Read-only filter snapshot, refreshed between messages."""

    enabled: bool = False
    mode: FilterMode = FilterMode.NONE
    blocked_numbers: FrozenSet[str] = frozenset()
    allowed_numbers: FrozenSet[str] = frozenset()
    keywords: FrozenSet[str] = frozenset()
    spam_filter_enabled: bool = True
    min_length: int = 1
    max_length: int = 1000
    country_code: str = DEFAULT_COUNTRY_CODE


@dataclass(frozen=True)
class TemplateConfig:
    """Subject/body rendering settings consumed by the formatter."""

    subject_format: str = DEFAULT_SUBJECT_FORMAT
    date_format: str = DEFAULT_DATE_FORMAT
    body_date_format: str = DEFAULT_BODY_DATE_FORMAT
    include_sender: bool = True
    include_timestamp: bool = True
    locale: str = "en"
    timezone: str = "UTC"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded linear backoff: waits base_delay_ms * attempt between tries."""

    max_attempts: int = 3
    base_delay_ms: int = 2000


@dataclass(frozen=True)
class SmtpConfig:
    """Mail transport settings. Timeouts are milliseconds."""

    host: str = ""
    port: int = 587
    username: str = ""
    password: str = field(default="", repr=False)
    sender: str = ""
    recipient: str = ""
    implicit_tls: bool = False
    connect_timeout_ms: int = 30000
    read_timeout_ms: int = 30000

    def missing_fields(self) -> List[str]:
        """Return names of required fields that are empty."""

        required = {
            "host": self.host,
            "username": self.username,
            "password": self.password,
            "sender": self.sender,
            "recipient": self.recipient,
        }
        missing = [name for name, value in required.items() if not value]
        if self.port <= 0:
            missing.append("port")
        return missing


@dataclass(frozen=True)
class ConfigSnapshot:
    """Everything the pipeline reads once at the start of a message."""

    filter: FilterConfig = field(default_factory=FilterConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)
