"""Application entry point for the smsforward relay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import List, Optional, TextIO

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.json_config import JsonConfigProvider
from adapters.jsonl_ingress import IngressError, parse_event, stream_events
from adapters.sqlite_storage import SQLiteEventLog
from adapters.status_sinks import FanoutStatusSink, LoggingStatusSink
from adapters.telegram_bot_notifier import TelegramBotNotifier
from client import build_transport
from core.delivery import deliver
from core.filter_engine import decide, describe_config
from core.formatter import format_message
from core.models import AssembledMessage, StatusEventKind
from core.numbers import detect_carrier, normalize
from core.processor import MessageProcessor
from core.rules_engine import build_spam_rules, match_spam_rules

NAME = "SMSFORWARD"
FONT = "tarty-1"
DEFAULT_REDACT_ENV = ["SMTP_PASSWORD", "BOT_API"]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", DEFAULT_REDACT_ENV):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        # Logs go to stderr so command output on stdout stays clean.
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/smsforward.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_status_sink() -> FanoutStatusSink:
    logger = logging.getLogger(__name__)
    sinks: list = [LoggingStatusSink()]

    if settings.EVENT_LOG_ENABLED:
        event_log = SQLiteEventLog(settings.DB_PATH)
        event_log.init_db()
        removed = event_log.cleanup(settings.EVENT_LOG_TTL_DAYS)
        logger.info("Event log cleanup removed %s events", removed)
        sinks.append(event_log)

    # Select the notification adapter based on configuration to keep the core
    # processor independent from delivery details.
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notifications.method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        sinks.append(
            TelegramBotNotifier(
                bot_token=bot_token,
                chat_id=str(settings.BOT_CHAT_ID),
                kinds=[StatusEventKind(kind) for kind in settings.BOT_EVENTS],
            )
        )
    elif settings.NOTIFICATION_METHOD != "log":
        raise RuntimeError("notifications.method must be 'log' or 'bot'")
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    return FanoutStatusSink(sinks)


async def _consume(processor: MessageProcessor, stream: TextIO) -> int:
    """Hand every delivery event to a worker task without waiting for it."""

    logger = logging.getLogger(__name__)
    submitted = 0
    async for line_number, line in stream_events(stream):
        try:
            fragments = parse_event(line)
        except IngressError as exc:
            logger.warning("Skipping line %s: %s", line_number, exc)
            continue
        processor.submit(fragments)
        submitted += 1
    return submitted


async def _run_pipeline(processor: MessageProcessor, stream: TextIO) -> None:
    logger = logging.getLogger(__name__)
    try:
        submitted = await _consume(processor, stream)
        await processor.drain()
    finally:
        processor.stop()
        await processor.drain()

    state = processor.state
    logger.info(
        "Ingress closed: events=%s, forwarded=%s, filtered=%s, delivered=%s, failed=%s, invalid=%s",
        submitted,
        state.forwarded,
        state.filtered,
        state.delivered,
        state.failed,
        state.invalid,
    )


def _run(input_path: Optional[str]) -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting smsforward")

    config_provider = JsonConfigProvider(settings.CONFIG_PATH)
    config_provider.snapshot()
    spam_rules = build_spam_rules(settings.CUSTOM_SPAM_RULES)
    logger.info("%s spam rules are loaded", len(spam_rules))

    processor = MessageProcessor(
        config_provider=config_provider,
        transport=build_transport(),
        status_sink=_build_status_sink(),
        policy=settings.RETRY_POLICY,
        spam_rules=spam_rules,
    )

    if input_path:
        with open(input_path, "r", encoding="utf-8") as stream:
            asyncio.run(_run_pipeline(processor, stream))
    else:
        logger.info("Reading delivery events from stdin...")
        try:
            asyncio.run(_run_pipeline(processor, sys.stdin))
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")


def _check(sender: str, body: str) -> None:
    """Show what the filter would do with a message, reasons included."""

    snapshot = JsonConfigProvider(settings.CONFIG_PATH).snapshot()
    cfg = snapshot.filter
    message = AssembledMessage(sender=sender, body=body.strip(), timestamp=0)
    spam_rules = build_spam_rules(settings.CUSTOM_SPAM_RULES)
    decision = decide(message, cfg, spam_rules)
    normalized = normalize(sender, cfg.country_code).canonical

    print(f"Sender:     {sender} (normalized: {normalized}, {detect_carrier(normalized)})")
    print(f"Forward:    {'yes' if decision.forward else 'no'}")
    if not cfg.enabled:
        print("Reasons:    filtering disabled")
    elif decision.reasons:
        for reason in decision.reasons:
            print(f"Reason:     {reason}")
    else:
        print("Reasons:    message passed all filters")
    if cfg.enabled and cfg.spam_filter_enabled:
        fired = match_spam_rules(message.body, spam_rules)
        print(f"Spam rules: {', '.join(fired) if fired else 'none'}")


def _test_email() -> None:
    """Send a sample SMS through the formatter and delivery pipeline."""

    _configure_logging()
    snapshot = JsonConfigProvider(settings.CONFIG_PATH).snapshot()
    message = AssembledMessage(
        sender="+385911234567",
        body="This is a test message from smsforward. If you can read this, SMTP works.",
        timestamp=int(time.time() * 1000),
    )
    payload = format_message(message, snapshot.templates)
    outcome = asyncio.run(deliver(payload, build_transport(), settings.RETRY_POLICY))
    print(f"Result: {outcome.status.value} after {outcome.attempts} attempt(s)")
    if outcome.last_error:
        print(f"Last error: {outcome.last_error}")


def _show_config() -> None:
    load_dotenv()
    snapshot = JsonConfigProvider(settings.CONFIG_PATH).snapshot()
    print(describe_config(snapshot.filter))
    print()
    print("=== Delivery ===")
    policy = settings.RETRY_POLICY
    print(f"Max attempts: {policy.max_attempts}")
    print(f"Base delay: {policy.base_delay_ms} ms")
    missing = build_transport().missing_configuration()
    print(f"SMTP configured: {'yes' if not missing else 'no (missing: ' + ', '.join(missing) + ')'}")
    if settings.EVENT_LOG_ENABLED and os.path.exists(settings.DB_PATH):
        print()
        print("=== Event log ===")
        for kind, total in sorted(SQLiteEventLog(settings.DB_PATH).counts().items()):
            print(f"{kind}: {total}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="smsforward")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Forward delivery events read as JSON lines")
    run_parser.add_argument("--input", help="Read events from this file instead of stdin")
    check_parser = subparsers.add_parser("check", help="Show the filter decision for a message")
    check_parser.add_argument("--sender", required=True)
    check_parser.add_argument("--body", required=True)
    subparsers.add_parser("test-email", help="Send a sample SMS email with the current settings")
    subparsers.add_parser("show-config", help="Summarize filter and delivery settings")

    args = parser.parse_args(argv)
    if args.command == "check":
        _check(args.sender, args.body)
        return
    if args.command == "test-email":
        _test_email()
        return
    if args.command == "show-config":
        _show_config()
        return
    _run(getattr(args, "input", None))


if __name__ == "__main__":
    main()
