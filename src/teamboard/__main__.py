import structlog
import uvicorn

from teamboard.broadcast import Broadcaster
from teamboard.cli import parse_args
from teamboard.errors import ConfigError
from teamboard.logging import setup_logging
from teamboard.metrics import MetricsUpdater
from teamboard.poller import Poller
from teamboard.provider.anthropic import AnthropicUsageProvider
from teamboard.server import create_app
from teamboard.snapshot import SnapshotBuilder

logger = structlog.get_logger()


def main() -> "None":
    try:
        config = parse_args()
        config.validate()
    except ConfigError as e:
        raise SystemExit(str(e)) from e

    setup_logging(config.log_level, config.log_format)

    metrics_updater = MetricsUpdater()
    provider = AnthropicUsageProvider(
        api_key=config.anthropic_admin_api_key,
        timeout=config.request_timeout_seconds,
    )
    builder = SnapshotBuilder(
        provider,
        all_time_days=config.all_time_days,
        on_day_error=lambda day, exc: metrics_updater.inc_day_fetch_error(
            type(exc).__name__
        ),
    )
    broadcaster = Broadcaster(on_subscribers_changed=metrics_updater.set_subscribers)
    poller = Poller(
        builder,
        interval_seconds=config.poll_interval_seconds,
        on_snapshot=broadcaster.publish,
        metrics=metrics_updater,
    )

    app = create_app(poller, broadcaster, provider=provider)
    logger.info(
        "dashboard_starting",
        host=config.host,
        port=config.port,
        poll_interval_seconds=config.poll_interval_seconds,
        all_time_days=config.all_time_days,
    )
    # logging is already configured, keep uvicorn from replacing it
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
