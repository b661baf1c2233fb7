import datetime
from typing import Callable

import structlog

from teamboard.errors import UsageApiError
from teamboard.models import UsageRecord
from teamboard.provider.base import UsageProvider

logger = structlog.get_logger()

DayErrorHook = Callable[[datetime.date, UsageApiError], None]


def iter_days(
    start: "datetime.date", end: "datetime.date"
) -> "list[datetime.date]":
    """
    returns every day from start to end, both inclusive.
    """
    return [
        start + datetime.timedelta(days=offset)
        for offset in range((end - start).days + 1)
    ]


async def fetch_range(
    provider: "UsageProvider",
    start: "datetime.date",
    end: "datetime.date",
    on_day_error: "DayErrorHook | None" = None,
) -> "list[UsageRecord]":
    """
    fetches every day in [start, end] one after another and concatenates
    the results in day order.

    A request failure for one day is logged and skipped so that a single
    bad day does not abort the range. Credentials are checked once before
    any request; a ConfigError propagates to the caller.
    """
    provider.check_credentials()

    records: "list[UsageRecord]" = []
    for day in iter_days(start, end):
        try:
            day_records = await provider.fetch_day(day)
        except UsageApiError as e:
            logger.warning(
                "day_fetch_failed",
                provider=provider.name,
                day=day.isoformat(),
                error=str(e),
            )
            if on_day_error is not None:
                on_day_error(day, e)
            continue

        records.extend(day_records)

    return records
