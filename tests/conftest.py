import datetime

import pytest
from prometheus_client import CollectorRegistry

from teamboard.errors import ConfigError
from teamboard.models import API_ACTOR, USER_ACTOR, UsageRecord


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


def make_record(
    day: "datetime.date",
    identity: "str" = "jane.doe@example.com",
    added: "int" = 0,
    removed: "int" = 0,
    sessions: "int" = 0,
) -> "UsageRecord":
    """
    builds a record for a user, or for an API key when the identity
    has no "@".
    """
    is_user = "@" in identity
    return UsageRecord(
        date=day,
        actor_type=USER_ACTOR if is_user else API_ACTOR,
        email_address=identity if is_user else None,
        api_key_name=None if is_user else identity,
        lines_added=added,
        lines_removed=removed,
        session_count=sessions,
    )


class FakeProvider:
    """
    A fake provider serving pre-configured records per day.
    Days listed in failing raise the given error instead.
    """

    def __init__(
        self,
        records_by_day: "dict[datetime.date, list[UsageRecord]] | None" = None,
        failing: "dict[datetime.date, Exception] | None" = None,
        api_key: "str" = "sk-ant-admin-test",
    ) -> "None":
        self._records = records_by_day or {}
        self._failing = failing or {}
        self._api_key = api_key
        self.requested_days: "list[datetime.date]" = []
        self.closed = False

    @property
    def name(self) -> "str":
        return "fake"

    def check_credentials(self) -> "None":
        if not self._api_key:
            raise ConfigError("missing key")

    async def fetch_day(self, day: "datetime.date") -> "list[UsageRecord]":
        self.requested_days.append(day)
        if day in self._failing:
            raise self._failing[day]
        return list(self._records.get(day, []))

    async def close(self) -> "None":
        self.closed = True
