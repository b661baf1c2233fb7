import datetime

import httpx
import pytest
import respx

from teamboard.errors import ApiError, ConfigError, DecodeError, TransportError
from teamboard.provider.anthropic import (
    ANTHROPIC_BASE_URL,
    USAGE_REPORT_PATH,
    AnthropicUsageProvider,
    parse_record,
)
from teamboard.range_fetcher import fetch_range
from teamboard.snapshot import build_members

USAGE_URL = f"{ANTHROPIC_BASE_URL}{USAGE_REPORT_PATH}"
DAY = datetime.date(2025, 3, 12)


def _raw_record(
    email: "str" = "jane.doe@example.com",
    added: "int" = 10,
    removed: "int" = 2,
    sessions: "int" = 1,
) -> "dict":
    return {
        "date": "2025-03-12T00:00:00Z",
        "actor": {"type": "user_actor", "email_address": email},
        "core_metrics": {
            "num_sessions": sessions,
            "lines_of_code": {"added": added, "removed": removed},
        },
    }


class TestParseRecord:
    def test_parses_user_actor(self) -> "None":
        record = parse_record(_raw_record(added=7, removed=3, sessions=2))
        assert record.date == DAY
        assert record.actor_type == "user_actor"
        assert record.email_address == "jane.doe@example.com"
        assert record.api_key_name is None
        assert record.lines_added == 7
        assert record.lines_removed == 3
        assert record.session_count == 2

    def test_parses_api_actor(self) -> "None":
        record = parse_record(
            {
                "date": "2025-03-12",
                "actor": {"type": "api_actor", "api_key_name": "ci-bot"},
                "core_metrics": {
                    "num_sessions": 4,
                    "lines_of_code": {"added": 1, "removed": 0},
                },
            }
        )
        assert record.actor_type == "api_actor"
        assert record.email_address is None
        assert record.api_key_name == "ci-bot"

    def test_missing_metrics_default_to_zero(self) -> "None":
        record = parse_record(
            {"date": "2025-03-12", "actor": {"type": "api_actor"}}
        )
        assert record.lines_added == 0
        assert record.lines_removed == 0
        assert record.session_count == 0
        assert record.api_key_name is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not an object",
            {"actor": {"type": "user_actor", "email_address": "a@b.c"}},
            {"date": "yesterday", "actor": {"type": "user_actor", "email_address": "a@b.c"}},
            {"date": "2025-03-12", "actor": {"type": "robot"}},
            {"date": "2025-03-12", "actor": {"type": "user_actor"}},
            {"date": "2025-03-12", "actor": {"type": "api_actor", "api_key_name": 12345}},
            {
                "date": "2025-03-12",
                "actor": {"type": "api_actor", "api_key_name": ["ci-bot"]},
            },
            {
                "date": "2025-03-12",
                "actor": {"type": "api_actor"},
                "core_metrics": {"num_sessions": -1},
            },
            {
                "date": "2025-03-12",
                "actor": {"type": "api_actor"},
                "core_metrics": {"lines_of_code": {"added": "12"}},
            },
        ],
    )
    def test_rejects_malformed_records(self, raw: "object") -> "None":
        with pytest.raises(DecodeError):
            parse_record(raw)


class TestAnthropicUsageProviderFetchDay:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fetches_single_page(self) -> "None":
        route = respx.get(USAGE_URL).mock(
            return_value=httpx.Response(
                200,
                json={"data": [_raw_record()], "has_more": False},
            )
        )

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        records = await provider.fetch_day(DAY)
        await provider.close()

        assert len(records) == 1
        assert records[0].email_address == "jane.doe@example.com"

        request = route.calls[0].request
        assert request.url.params["starting_at"] == "2025-03-12"
        assert request.url.params["limit"] == "1000"
        assert "page" not in request.url.params
        assert request.headers["x-api-key"] == "sk-ant-admin-test"
        assert request.headers["anthropic-version"] == "2023-06-01"

    @pytest.mark.asyncio
    @respx.mock
    async def test_handles_pagination(self) -> "None":
        def page(start: "int", count: "int") -> "list[dict]":
            return [_raw_record(added=start + i) for i in range(count)]

        route = respx.get(USAGE_URL).mock(
            side_effect=[
                httpx.Response(
                    200,
                    json={"data": page(0, 1000), "has_more": True, "next_page": "p2"},
                ),
                httpx.Response(
                    200,
                    json={"data": page(1000, 1000), "has_more": True, "next_page": "p3"},
                ),
                httpx.Response(
                    200,
                    json={"data": page(2000, 42), "has_more": False},
                ),
            ]
        )

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        records = await provider.fetch_day(DAY)

        assert len(records) == 2042
        # page order is preserved
        assert [r.lines_added for r in records] == list(range(2042))
        assert route.call_count == 3
        assert route.calls[1].request.url.params["page"] == "p2"
        assert route.calls[2].request.url.params["page"] == "p3"

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_success_status_raises_api_error(self) -> "None":
        respx.get(USAGE_URL).mock(
            return_value=httpx.Response(401, text="invalid x-api-key")
        )

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        with pytest.raises(ApiError) as exc_info:
            await provider.fetch_day(DAY)

        assert exc_info.value.status_code == 401
        assert exc_info.value.body == "invalid x-api-key"

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_failure_raises_transport_error(self) -> "None":
        respx.get(USAGE_URL).mock(side_effect=httpx.ConnectError("refused"))

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        with pytest.raises(TransportError):
            await provider.fetch_day(DAY)

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_raises_decode_error(self) -> "None":
        respx.get(USAGE_URL).mock(return_value=httpx.Response(200, text="<html>"))

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        with pytest.raises(DecodeError):
            await provider.fetch_day(DAY)

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_data_array_raises_decode_error(self) -> "None":
        respx.get(USAGE_URL).mock(
            return_value=httpx.Response(200, json={"has_more": False})
        )

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        with pytest.raises(DecodeError):
            await provider.fetch_day(DAY)

    @pytest.mark.asyncio
    @respx.mock
    async def test_has_more_without_cursor_raises_decode_error(self) -> "None":
        respx.get(USAGE_URL).mock(
            return_value=httpx.Response(200, json={"data": [], "has_more": True})
        )

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        with pytest.raises(DecodeError):
            await provider.fetch_day(DAY)

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_missing_key_raises_config_error_before_request(self) -> "None":
        route = respx.get(USAGE_URL).mock(
            return_value=httpx.Response(200, json={"data": [], "has_more": False})
        )

        provider = AnthropicUsageProvider(api_key="")
        with pytest.raises(ConfigError):
            await provider.fetch_day(DAY)

        assert route.call_count == 0


class TestAnthropicUsageProviderInRange:
    @pytest.mark.asyncio
    @respx.mock
    async def test_non_string_key_name_skips_only_that_day(self) -> "None":
        bad = {
            "date": "2025-03-11T00:00:00Z",
            "actor": {"type": "api_actor", "api_key_name": 12345},
            "core_metrics": {"num_sessions": 1},
        }
        respx.get(USAGE_URL).mock(
            side_effect=[
                httpx.Response(200, json={"data": [bad], "has_more": False}),
                httpx.Response(200, json={"data": [_raw_record()], "has_more": False}),
            ]
        )

        provider = AnthropicUsageProvider(api_key="sk-ant-admin-test")
        records = await fetch_range(provider, DAY - datetime.timedelta(days=1), DAY)
        members = build_members(records, DAY, DAY)

        assert [m.email for m in members] == ["jane.doe@example.com"]
