"""JSON configuration adapter.

Parses the flat, user-friendly config.json sections into the frozen core
config dataclasses and implements ConfigProviderPort with copy-on-read
snapshots: the file is re-read when its mtime changes, between messages.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from core.config import (
    DEFAULT_BODY_DATE_FORMAT,
    DEFAULT_COUNTRY_CODE,
    DEFAULT_DATE_FORMAT,
    DEFAULT_SUBJECT_FORMAT,
    ConfigError,
    ConfigSnapshot,
    FilterConfig,
    FilterMode,
    RetryPolicy,
    SmtpConfig,
    TemplateConfig,
)

LOGGER = logging.getLogger(__name__)


def load_json_config(path: str) -> dict:
    """Load config.json, failing fast with a readable error."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be an object")
    return data


def _int(section: dict, key: str, default: int, minimum: int = 0) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def parse_flag(section: dict, key: str, default: bool) -> bool:
    """Read a JSON boolean; strings such as "false" are rejected rather than coerced."""

    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _str(section: dict, key: str, default: str = "") -> str:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return str(value)


def _string_set(section: dict, key: str) -> frozenset:
    values = section.get(key)
    if values is None:
        return frozenset()
    if not isinstance(values, list):
        raise ConfigError(f"{key} must be a list, got {values!r}")
    return frozenset(str(v).strip() for v in values if str(v).strip())


def config_section(config: dict, key: str) -> dict:
    """Return a config section; a missing or null section means all defaults."""

    section = config.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"{key} section must be an object, got {type(section).__name__}")
    return section


def parse_filter_config(section: dict) -> FilterConfig:
    raw_mode = _str(section, "mode", FilterMode.NONE.value).lower()
    try:
        mode = FilterMode(raw_mode)
    except ValueError as exc:
        raise ConfigError(f"filter.mode must be none, blacklist or whitelist, got {raw_mode!r}") from exc

    min_length = _int(section, "min_length", 1)
    max_length = _int(section, "max_length", 1000)
    if min_length > max_length:
        raise ConfigError(f"filter.min_length ({min_length}) exceeds max_length ({max_length})")

    country_code = _str(section, "country_code", DEFAULT_COUNTRY_CODE).strip().lstrip("+")
    if not country_code.isdigit():
        raise ConfigError(f"filter.country_code must be numeric, got {country_code!r}")

    return FilterConfig(
        enabled=parse_flag(section, "enabled", False),
        mode=mode,
        blocked_numbers=_string_set(section, "blocked_numbers"),
        allowed_numbers=_string_set(section, "allowed_numbers"),
        keywords=_string_set(section, "keywords"),
        spam_filter_enabled=parse_flag(section, "spam_filter", True),
        min_length=min_length,
        max_length=max_length,
        country_code=country_code,
    )


def parse_template_config(section: dict) -> TemplateConfig:
    return TemplateConfig(
        subject_format=_str(section, "subject_format") or DEFAULT_SUBJECT_FORMAT,
        date_format=_str(section, "date_format") or DEFAULT_DATE_FORMAT,
        body_date_format=_str(section, "body_date_format") or DEFAULT_BODY_DATE_FORMAT,
        include_sender=parse_flag(section, "include_sender", True),
        include_timestamp=parse_flag(section, "include_timestamp", True),
        locale=_str(section, "locale", "en"),
        timezone=_str(section, "timezone", "UTC"),
    )


def parse_retry_policy(section: dict) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=_int(section, "max_attempts", 3, minimum=1),
        base_delay_ms=_int(section, "base_delay_ms", 2000),
    )


def parse_smtp_config(section: dict, password: Optional[str]) -> SmtpConfig:
    """Build transport settings; the password never lives in config.json."""

    port = _int(section, "port", 587)
    implicit_tls = section.get("implicit_tls")
    if implicit_tls is None:
        # Port 465 is the implicit-TLS submission port; everything else gets STARTTLS.
        implicit_tls = port == 465
    elif not isinstance(implicit_tls, bool):
        raise ConfigError(f"implicit_tls must be true or false, got {implicit_tls!r}")
    username = _str(section, "username").strip()
    return SmtpConfig(
        host=_str(section, "host").strip(),
        port=port,
        username=username,
        password=password or "",
        sender=_str(section, "from").strip() or username,
        recipient=_str(section, "to").strip(),
        implicit_tls=implicit_tls,
        connect_timeout_ms=_int(section, "connect_timeout_ms", 30000),
        read_timeout_ms=_int(section, "read_timeout_ms", 30000),
    )


def parse_snapshot(config: dict) -> ConfigSnapshot:
    return ConfigSnapshot(
        filter=parse_filter_config(config_section(config, "filter")),
        templates=parse_template_config(config_section(config, "templates")),
    )


class JsonConfigProvider:
    """ConfigProviderPort backed by config.json."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._mtime: Optional[float] = None
        self._snapshot: Optional[ConfigSnapshot] = None

    def snapshot(self) -> ConfigSnapshot:
        """Return the current snapshot, reloading if the file changed.

        A broken edit while running keeps the last good snapshot; the very
        first load propagates the error.
        """

        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            if self._snapshot is None:
                raise
            LOGGER.error("Config file %s disappeared, keeping previous settings", self._path)
            return self._snapshot

        if self._snapshot is not None and mtime == self._mtime:
            return self._snapshot

        try:
            snapshot = parse_snapshot(load_json_config(self._path))
        except (ConfigError, OSError):
            if self._snapshot is None:
                raise
            LOGGER.exception("Config reload failed, keeping previous settings")
            return self._snapshot

        if self._snapshot is not None:
            LOGGER.info("Configuration reloaded from %s", self._path)
        self._snapshot = snapshot
        self._mtime = mtime
        return snapshot


class StaticConfigProvider:
    """ConfigProviderPort that always returns one fixed snapshot."""

    def __init__(self, snapshot: ConfigSnapshot) -> None:
        self._snapshot = snapshot

    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot
