from __future__ import annotations

import re
from decimal import Decimal

import pytest

from shape_mcp.units import eth_to_str, iso_from_unix, tool_error, utc_now, wei_to_eth, wei_to_gwei


@pytest.mark.parametrize(
    ("wei", "places", "expected"),
    [
        (0, 6, "0.000000"),
        (10**18, 6, "1.000000"),
        (123_456_789_012_345_678, 6, "0.123457"),
        (1_500_000_000_000_000_000, 4, "1.5000"),
        (1_000_000, 12, "0.000000000001"),
        (1_000_000_000, 12, "0.000000001000"),
        (500, 18, "0.000000000000000500"),
    ],
)
def test_wei_to_eth(wei: int, places: int, expected: str) -> None:
    assert wei_to_eth(wei, places) == expected


def test_wei_to_eth_rounds_half_up() -> None:
    assert wei_to_eth(5 * 10**11) == "0.000001"
    assert wei_to_eth(5 * 10**11 - 1) == "0.000000"


def test_wei_to_eth_is_exact_for_large_amounts() -> None:
    wei = 123_456_789 * 10**18 + 1
    assert wei_to_eth(wei, 18) == "123456789.000000000000000001"


def test_wei_to_gwei() -> None:
    assert wei_to_gwei(1_000_000) == "0.0010"
    assert wei_to_gwei(25_123_456_789) == "25.1235"


def test_eth_to_str() -> None:
    assert eth_to_str(0.25) == "0.2500"
    assert eth_to_str(Decimal("12.34567")) == "12.3457"
    assert eth_to_str(0.1 + 0.2) == "0.3000"


def test_timestamps_are_iso_utc() -> None:
    assert iso_from_unix(0) == "1970-01-01T00:00:00.000Z"
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", utc_now())


def test_tool_error_carries_context() -> None:
    result = tool_error("Error fetching NFTs", RuntimeError("HTTP 500"), owner_address="0xabc")

    assert result["error"] is True
    assert result["message"] == "Error fetching NFTs: HTTP 500"
    assert result["owner_address"] == "0xabc"
    assert "creator_address" not in result
    assert result["timestamp"].endswith("Z")


def test_tool_error_with_blank_exception_uses_type() -> None:
    result = tool_error("Error fetching chain status", TimeoutError())

    assert result["message"] == "Error fetching chain status: TimeoutError"


def test_tool_error_without_exception() -> None:
    assert tool_error("Unable to resolve ENS name: x.eth")["message"] == "Unable to resolve ENS name: x.eth"


def test_result_models_describe_themselves() -> None:
    import inspect

    from pydantic import BaseModel

    from shape_mcp import models

    result_models = [
        cls
        for _, cls in inspect.getmembers(models, inspect.isclass)
        if issubclass(cls, BaseModel) and cls.__module__ == models.__name__
    ]

    assert result_models
    for cls in result_models:
        assert cls.model_json_schema().get("description"), cls.__name__
