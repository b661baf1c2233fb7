from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from teamboard.models import Snapshot


class MetricsUpdater:
    """
    exposes the poller's health and the latest snapshot's headline
    figures as Prometheus metrics.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._registry: "CollectorRegistry" = registry
        self._poll_duration: "Histogram" = Histogram(
            "teamboard_poll_duration_seconds",
            "Duration of snapshot build cycles",
            registry=registry,
        )
        self._poll_errors: "Counter" = Counter(
            "teamboard_poll_errors_total",
            "Total number of failed poll cycles",
            registry=registry,
        )
        self._poll_skipped: "Counter" = Counter(
            "teamboard_poll_skipped_total",
            "Poll cycles skipped because the previous one was still running",
            registry=registry,
        )
        self._day_fetch_errors: "Counter" = Counter(
            "teamboard_day_fetch_errors_total",
            "Days skipped because their usage report could not be fetched",
            ["kind"],
            registry=registry,
        )
        self._last_poll_success: "Gauge" = Gauge(
            "teamboard_last_poll_success_timestamp_seconds",
            "Unix timestamp of the last successful poll cycle",
            registry=registry,
        )
        self._members: "Gauge" = Gauge(
            "teamboard_members",
            "Number of identities in the latest snapshot",
            registry=registry,
        )
        self._active_members: "Gauge" = Gauge(
            "teamboard_active_members",
            "Number of identities with at least one session today",
            registry=registry,
        )
        self._team_lines: "Gauge" = Gauge(
            "teamboard_team_lines",
            "Lines added across the team per window",
            ["window"],
            registry=registry,
        )
        self._subscribers: "Gauge" = Gauge(
            "teamboard_subscribers",
            "Number of connected event stream subscribers",
            registry=registry,
        )

    def observe_poll_duration(self, duration_seconds: "float") -> "None":
        self._poll_duration.observe(duration_seconds)

    def inc_poll_error(self) -> "None":
        self._poll_errors.inc()

    def inc_poll_skipped(self) -> "None":
        self._poll_skipped.inc()

    def inc_day_fetch_error(self, kind: "str") -> "None":
        self._day_fetch_errors.labels(kind=kind).inc()

    def set_last_poll_success(self, timestamp: "float") -> "None":
        self._last_poll_success.set(timestamp)

    def set_subscribers(self, count: "int") -> "None":
        self._subscribers.set(count)

    def update_snapshot(self, snapshot: "Snapshot") -> "None":
        """
        refreshes the gauges that summarise a freshly published snapshot.
        """
        self._members.set(len(snapshot))
        self._active_members.set(sum(1 for m in snapshot if m.active))
        self._team_lines.labels(window="today").set(
            sum(m.lines_today for m in snapshot)
        )
        self._team_lines.labels(window="week").set(
            sum(m.lines_this_week for m in snapshot)
        )
        self._team_lines.labels(window="all_time").set(
            sum(m.lines_all_time for m in snapshot)
        )
