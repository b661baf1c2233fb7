import datetime
from typing import Protocol, Sequence

from teamboard.models import UsageRecord


class UsageProvider(Protocol):
    """
    UsageProvider is the protocol the range fetcher and
    snapshot builder depend on.

    A provider fetches every usage record for one calendar
    day, paginating transparently.
    """

    @property
    def name(self) -> "str": ...

    def check_credentials(self) -> "None": ...

    async def fetch_day(self, day: "datetime.date") -> "Sequence[UsageRecord]": ...

    async def close(self) -> "None": ...
