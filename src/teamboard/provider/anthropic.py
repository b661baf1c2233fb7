import datetime
from importlib.metadata import PackageNotFoundError, version

import httpx
import structlog

from teamboard.errors import ApiError, ConfigError, DecodeError, TransportError
from teamboard.models import API_ACTOR, USER_ACTOR, UsageRecord

logger = structlog.get_logger()

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
USAGE_REPORT_PATH = "/v1/organizations/usage_report/claude_code"
ANTHROPIC_VERSION = "2023-06-01"
PAGE_LIMIT = 1000


def _user_agent() -> "str":
    try:
        return f"teamboard/{version('teamboard')}"
    except PackageNotFoundError:
        return "teamboard"


def _count(metrics: "dict", key: "str") -> "int":
    value = metrics.get(key, 0)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(f"invalid {key}: {value!r}")
    return value


def parse_record(raw: "object") -> "UsageRecord":
    """
    converts one element of the report's data array into a
    UsageRecord, raising DecodeError on anything malformed.
    """
    if not isinstance(raw, dict):
        raise DecodeError(f"record is not an object: {raw!r}")

    # the API reports RFC 3339 timestamps, only the day matters here
    raw_date = raw.get("date")
    if not isinstance(raw_date, str):
        raise DecodeError(f"invalid date: {raw_date!r}")
    try:
        date = datetime.date.fromisoformat(raw_date[:10])
    except ValueError as e:
        raise DecodeError(f"invalid date: {raw_date!r}") from e

    actor = raw.get("actor")
    if not isinstance(actor, dict):
        raise DecodeError(f"invalid actor: {actor!r}")
    actor_type = actor.get("type")
    if actor_type == USER_ACTOR:
        email = actor.get("email_address")
        if not isinstance(email, str) or not email:
            raise DecodeError(f"user actor without email: {actor!r}")
    elif actor_type != API_ACTOR:
        raise DecodeError(f"unknown actor type: {actor_type!r}")
    else:
        email = None

    key_name = actor.get("api_key_name")
    if key_name is not None and not isinstance(key_name, str):
        raise DecodeError(f"invalid api_key_name: {key_name!r}")

    core = raw.get("core_metrics") or {}
    if not isinstance(core, dict):
        raise DecodeError(f"invalid core_metrics: {core!r}")
    lines = core.get("lines_of_code") or {}
    if not isinstance(lines, dict):
        raise DecodeError(f"invalid lines_of_code: {lines!r}")

    return UsageRecord(
        date=date,
        actor_type=actor_type,
        email_address=email,
        api_key_name=key_name or None,
        lines_added=_count(lines, "added"),
        lines_removed=_count(lines, "removed"),
        session_count=_count(core, "num_sessions"),
    )


class AnthropicUsageProvider:
    """
    AnthropicUsageProvider implements the UsageProvider protocol on top
    of the Anthropic Admin API's Claude Code usage report. It fetches a
    single day at a time and follows the has_more/next_page cursor until
    the day is exhausted.
    """

    def __init__(
        self,
        api_key: "str",
        timeout: "float" = 10.0,
        base_url: "str" = ANTHROPIC_BASE_URL,
    ) -> "None":
        self._api_key = api_key
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "User-Agent": _user_agent(),
            },
        )

    @property
    def name(self) -> "str":
        return "anthropic"

    def check_credentials(self) -> "None":
        """
        raises ConfigError if no admin key was configured.
        """
        if not self._api_key:
            raise ConfigError(
                "ANTHROPIC_ADMIN_API_KEY is required. "
                "Generate one at https://console.anthropic.com/settings/admin-keys"
            )

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        await self._client.aclose()

    async def fetch_day(self, day: "datetime.date") -> "list[UsageRecord]":
        """
        fetches every usage record for the given day, in page order.
        """
        self.check_credentials()

        records: "list[UsageRecord]" = []
        next_page = ""

        # loop instead of recursion until the cursor runs out
        while True:
            data = await self._fetch_page(day, next_page)

            records.extend(parse_record(raw) for raw in data["data"])

            if not data.get("has_more"):
                break

            next_page = data.get("next_page") or ""
            if not next_page:
                raise DecodeError("has_more is set but next_page is missing")

        logger.debug(
            "usage_day_fetched",
            day=day.isoformat(),
            record_count=len(records),
        )
        return records

    async def _fetch_page(self, day: "datetime.date", page: "str") -> "dict":
        params: "dict[str, str | int]" = {
            "starting_at": day.isoformat(),
            "limit": PAGE_LIMIT,
        }
        if page:
            params["page"] = page

        logger.debug("usage_fetch_page", day=day.isoformat(), page=page or None)
        try:
            resp = await self._client.get(USAGE_REPORT_PATH, params=params)
        except httpx.TransportError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise ApiError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"invalid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise DecodeError("response has no data array")

        return data
