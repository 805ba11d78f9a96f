"""Process entry point for the medication reminder service.

Usage:
    med-reminder [--log-level LEVEL] [--no-health]
    python -m med_reminder

Loads configuration (see med_reminder.config), opens the state store,
starts the reminder loop, the Slack interaction listener, and the health
server, then waits for SIGINT/SIGTERM and shuts everything down in reverse
order. Exit code 0 on clean shutdown, 1 on startup failure.
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from med_reminder.acknowledgment import AcknowledgmentHandler
from med_reminder.config import ConfigError, load_config
from med_reminder.dispatcher import SlackDispatcher
from med_reminder.health import HealthServer
from med_reminder.scheduler import ReminderService
from med_reminder.slack_bot import ReminderBot
from med_reminder.store import ReminderStore, StoreError

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="med-reminder",
        description="Post medication reminders to Slack until they are acknowledged.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    parser.add_argument(
        "--no-health",
        action="store_true",
        help="Do not start the /health and /ready HTTP server.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint. Blocks until a termination signal arrives."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logger.info("Starting medication reminder service...")

    try:
        config = load_config()
    except ConfigError as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 1

    try:
        store = ReminderStore(config.db_path, tz=config.location)
    except StoreError as exc:
        logger.error("Failed to initialize database: %s", exc)
        return 1

    dispatcher = SlackDispatcher.from_config(config.slack)
    handler = AcknowledgmentHandler(config, store, dispatcher)
    service = ReminderService(config, store, dispatcher)
    health: HealthServer | None = None
    bot: ReminderBot | None = None

    shutdown = threading.Event()

    def _on_signal(signum: int, _frame: object) -> None:
        logger.info(
            "Received signal %s, initiating graceful shutdown...",
            signal.Signals(signum).name,
        )
        shutdown.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    try:
        bot = ReminderBot(config.slack, handler)
        bot.connect()
        service.start()
        if not args.no_health:
            health = HealthServer(config.health_port)
            health.start()
            health.mark_ready()
        logger.info("Medication reminder service is now running. Press CTRL-C to exit.")
        shutdown.wait()
    except Exception:
        logger.exception("Failed to start reminder service")
        return 1
    finally:
        logger.info("Stopping reminder service...")
        service.stop()
        if bot is not None:
            bot.close()
        if health is not None:
            health.shutdown()
        store.close()
        logger.info("Graceful shutdown completed")

    return 0
