"""Worker entry point: loads configuration and runs the queue sweeper."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

from notification_delivery.channels.base import BaseChannelAdapter
from notification_delivery.channels.email import EmailAdapter
from notification_delivery.channels.sms import SMSAdapter
from notification_delivery.config.environment import EnvironmentConfig
from notification_delivery.config.exceptions import ConfigurationError
from notification_delivery.config.loader import load_config
from notification_delivery.config.models import AppConfig
from notification_delivery.domain.models import Channel
from notification_delivery.logging import get_logger
from notification_delivery.logging.config import configure_logging
from notification_delivery.persistence.database import close_database, init_database
from notification_delivery.ratelimit.token_bucket import TokenBucket
from notification_delivery.scheduler import QueueSweeper, SchedulerService
from notification_delivery.tracking import DeliveryLog, DeliveryQueue, SuppressionList
from notification_delivery.transports.email import ResendEmailTransport
from notification_delivery.transports.sms import TwilioSMSTransport

logger = get_logger(__name__, component="worker")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """Load configuration and resolve the log level.

    Priority for the log level: CLI > LOG_LEVEL > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_adapters(
    app_config: AppConfig, env_config: EnvironmentConfig
) -> Dict[Channel, BaseChannelAdapter]:
    """Construct an adapter for every channel with credentials present."""
    delivery_log = DeliveryLog()
    queue = DeliveryQueue()
    adapters: Dict[Channel, BaseChannelAdapter] = {}

    timeout = app_config.advanced.http_request_timeout
    user_agent = app_config.advanced.user_agent

    if env_config.email_enabled:
        adapters[Channel.EMAIL] = EmailAdapter(
            transport=ResendEmailTransport(
                api_key=env_config.resend_api_key,
                api_url=app_config.email.api_url,
                timeout=timeout,
                user_agent=user_agent,
            ),
            suppression=SuppressionList(),
            delivery_log=delivery_log,
            queue=queue,
            retry_config=app_config.retry,
            from_email=env_config.email_from or app_config.email.from_email,
            batch_size=app_config.email.batch_size,
        )

    if env_config.sms_enabled:
        adapters[Channel.SMS] = SMSAdapter(
            transport=TwilioSMSTransport(
                account_sid=env_config.twilio_account_sid,
                auth_token=env_config.twilio_auth_token,
                from_phone=env_config.twilio_from_phone,
                api_url=app_config.sms.api_url,
                timeout=timeout,
                user_agent=user_agent,
            ),
            rate_limiter=TokenBucket(max_per_second=app_config.sms.rate_limit_per_second),
            delivery_log=delivery_log,
            queue=queue,
            retry_config=app_config.retry,
            max_message_length=app_config.sms.max_message_length,
        )

    return adapters


def build_sweeper(app_config: AppConfig, env_config: EnvironmentConfig) -> QueueSweeper:
    adapters = build_adapters(app_config, env_config)
    return QueueSweeper(
        queue=DeliveryQueue(),
        adapters=adapters,
        retry_config=app_config.retry,
        batch_size=app_config.queue.batch_size,
    )


def main(argv: Optional[list] = None) -> int:
    """Run the delivery worker.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Notification delivery worker - retries queued email and SMS deliveries"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    args = parser.parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Notification delivery worker starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "once": args.once,
                "email_enabled": env_config.email_enabled,
                "sms_enabled": env_config.sms_enabled,
            },
        )

        init_database(env_config.database_url)
        sweeper = build_sweeper(app_config, env_config)

        if args.once:
            completed = sweeper.run()
            close_database()
            logger.info(
                f"Single sweep finished, {completed} item(s) completed",
                extra={
                    "event": "service.stopping",
                    "completed": completed,
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            sweep_callable=sweeper.run,
            interval_seconds=app_config.sweep_interval_seconds,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            scheduler_service.shutdown(wait=False)

        close_database()
        logger.info(
            "Notification delivery worker stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
