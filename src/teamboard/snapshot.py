import datetime
import re
from typing import Callable, Sequence

import structlog

from teamboard.aggregator import aggregate_by_identity
from teamboard.models import Aggregate, Member, Snapshot, UsageRecord
from teamboard.provider.base import UsageProvider
from teamboard.range_fetcher import DayErrorHook, fetch_range

logger = structlog.get_logger()

DEFAULT_ALL_TIME_DAYS = 90

_SEPARATORS = re.compile(r"[._+]")
_WORD_START = re.compile(r"\b\w")

_EMPTY = Aggregate()


def today_utc() -> "datetime.date":
    return datetime.datetime.now(datetime.timezone.utc).date()


def week_start(today: "datetime.date") -> "datetime.date":
    """
    returns the Monday on or before today. A Sunday belongs to the
    week that started six days earlier.
    """
    return today - datetime.timedelta(days=today.weekday())


def all_time_start(today: "datetime.date", days: "int") -> "datetime.date":
    return today - datetime.timedelta(days=days)


def name_from_identity(identity: "str") -> "str":
    local = identity.split("@", 1)[0]
    spaced = _SEPARATORS.sub(" ", local)
    return _WORD_START.sub(lambda m: m.group(0).upper(), spaced)


def initials_from_name(name: "str") -> "str":
    return "".join(word[0] for word in name.split(" ") if word).upper()[:2]


def build_members(
    records: "Sequence[UsageRecord]",
    today: "datetime.date",
    week_start_day: "datetime.date",
) -> "Snapshot":
    """
    splits the all-time records into the today and this-week windows,
    aggregates all three, and derives one Member per identity seen
    in the all-time window.

    Members are numbered from 1 in the order identities first appear
    in records, so identical input yields identical ids.
    """
    today_totals = aggregate_by_identity(r for r in records if r.date == today)
    week_totals = aggregate_by_identity(r for r in records if r.date >= week_start_day)
    all_time_totals = aggregate_by_identity(records)

    members: "list[Member]" = []
    for member_id, (identity, all_time) in enumerate(all_time_totals.items(), start=1):
        today_agg = today_totals.get(identity, _EMPTY)
        week_agg = week_totals.get(identity, _EMPTY)
        name = name_from_identity(identity)

        members.append(
            Member(
                id=member_id,
                email=identity,
                name=name,
                avatar=initials_from_name(name),
                active=today_agg.sessions > 0,
                lines_today=today_agg.added,
                lines_this_week=week_agg.added,
                lines_all_time=all_time.added,
            )
        )

    return tuple(members)


class SnapshotBuilder:
    """
    SnapshotBuilder produces the current Snapshot. It fetches the whole
    all-time window once and derives the narrower windows from that
    superset by filtering on date, so no day is requested twice.
    """

    def __init__(
        self,
        provider: "UsageProvider",
        all_time_days: "int" = DEFAULT_ALL_TIME_DAYS,
        clock: "Callable[[], datetime.date]" = today_utc,
        on_day_error: "DayErrorHook | None" = None,
    ) -> "None":
        self._provider = provider
        self._all_time_days = all_time_days
        self._clock = clock
        self._on_day_error = on_day_error

    async def build(self) -> "Snapshot":
        today = self._clock()
        week = week_start(today)
        since = all_time_start(today, self._all_time_days)

        logger.info(
            "snapshot_build_start",
            today=today.isoformat(),
            week_start=week.isoformat(),
            all_time_start=since.isoformat(),
        )

        records = await fetch_range(
            self._provider, since, today, on_day_error=self._on_day_error
        )
        return build_members(records, today, week)
