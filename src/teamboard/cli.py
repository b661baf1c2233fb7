import argparse

from teamboard.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    """
    reads the environment first, then applies command line overrides
    for the flags that were given.
    """
    parser = argparse.ArgumentParser(
        prog="teamboard",
        description="Live team dashboard for Claude Code usage",
    )
    parser.add_argument(
        "--host",
        dest="host",
        default=None,
        help="Address to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        dest="port",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT or 3000)",
    )
    parser.add_argument(
        "--poll.interval-ms",
        dest="poll_interval_ms",
        type=int,
        default=None,
        help="Poll interval in milliseconds (default: $POLL_INTERVAL_MS or 300000)",
    )
    parser.add_argument(
        "--all-time.days",
        dest="all_time_days",
        type=int,
        default=None,
        help="Size of the all-time window in days (default: $ALL_TIME_DAYS or 90)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    for field in ("host", "port", "poll_interval_ms", "all_time_days"):
        value = getattr(args, field)
        if value is not None:
            setattr(config, field, value)
    config.log_level = args.log_level
    config.log_format = args.log_format
    return config
