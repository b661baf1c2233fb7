import os
from dataclasses import dataclass

from teamboard.errors import ConfigError


def _env_int(name: "str", default: "int") -> "int":
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: "str", default: "float") -> "float":
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class Config:
    host: "str" = "0.0.0.0"
    port: "int" = 3000
    # poll interval in milliseconds, as configured in the environment
    poll_interval_ms: "int" = 300_000
    # size of the all-time window in days
    all_time_days: "int" = 90
    request_timeout_seconds: "float" = 10.0
    log_level: "str" = "info"
    # console or json
    log_format: "str" = "console"

    anthropic_admin_api_key: "str" = ""

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            port=_env_int("PORT", 3000),
            poll_interval_ms=_env_int("POLL_INTERVAL_MS", 300_000),
            all_time_days=_env_int("ALL_TIME_DAYS", 90),
            request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 10.0),
            anthropic_admin_api_key=os.environ.get("ANTHROPIC_ADMIN_API_KEY", ""),
        )

    @property
    def poll_interval_seconds(self) -> "float":
        return self.poll_interval_ms / 1000

    def validate(self) -> "None":
        """
        raises ConfigError for settings the service cannot start with.
        """
        if not self.anthropic_admin_api_key:
            raise ConfigError(
                "ANTHROPIC_ADMIN_API_KEY is required. "
                "Generate one at https://console.anthropic.com/settings/admin-keys"
            )
        if self.poll_interval_ms <= 0:
            raise ConfigError("POLL_INTERVAL_MS must be positive")
        if self.all_time_days < 0:
            raise ConfigError("ALL_TIME_DAYS must not be negative")
        if self.request_timeout_seconds <= 0:
            raise ConfigError("REQUEST_TIMEOUT_SECONDS must be positive")
