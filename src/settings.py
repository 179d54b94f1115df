"""Static configuration for smsforward.

All user-editable settings (filter, templates, retry, SMTP, notifications,
logging) live in a single JSON file for quick edits without touching Python.
Secrets such as the SMTP password come from the environment instead.
"""

import os

from adapters.json_config import config_section, load_json_config, parse_flag, parse_retry_policy

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# config.json sits at the project root unless SMSFORWARD_CONFIG points elsewhere.
CONFIG_PATH = os.getenv("SMSFORWARD_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

_CONFIG = load_json_config(CONFIG_PATH)

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Retry policy is fixed for the lifetime of the process; filter and template
# settings are re-read between messages by the config provider instead.
RETRY_POLICY = parse_retry_policy(config_section(_CONFIG, "retry"))

# SMTP settings without the password (see client.build_transport).
SMTP = config_section(_CONFIG, "smtp")

# Extra user spam patterns appended to the built-in catalog.
CUSTOM_SPAM_RULES = config_section(_CONFIG, "filter").get("custom_spam_rules") or []

# Status notifications:
# - method: "log" (default) or "bot" for Telegram Bot API pushes
# - bot_chat_id: required when method=bot
# - bot_events: event kinds pushed to the bot (defaults to failures only)
_notifications = config_section(_CONFIG, "notifications")
NOTIFICATION_METHOD = _notifications.get("method", "log")
BOT_CHAT_ID = _notifications.get("bot_chat_id")
BOT_EVENTS = _notifications.get("bot_events", ["delivery_failed"])

# Append-only event history in SQLite; disabled unless configured.
_event_log = config_section(_CONFIG, "event_log")
EVENT_LOG_ENABLED = parse_flag(_event_log, "enabled", False)
EVENT_LOG_TTL_DAYS = int(_event_log.get("ttl_days", 30))
DB_PATH = _event_log.get("path") or os.path.join(PROJECT_ROOT, "smsforward.db")

# Logging configuration (optional).
LOGGING = config_section(_CONFIG, "logging")
