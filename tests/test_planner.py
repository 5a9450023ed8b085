from typing import Any

import pytest

from logcascade.core.constants import UNCONSTRAINED
from logcascade.core.errors import InvalidRange
from logcascade.core.models import ChunkRequest
from logcascade.core.use_cases.fetch_chunk import build_get_logs_call, plan_to_block


def test_plan_unconstrained_never_shrinks(make_transport: Any) -> None:
    t = make_transport("a", max_num_blocks=UNCONSTRAINED)
    assert plan_to_block(1000, 10_999, t) == 10_999
    assert plan_to_block(1, 1, t) == 1


def test_plan_caps_inclusive_window(make_transport: Any) -> None:
    t = make_transport("a", max_num_blocks=2000)
    assert plan_to_block(1000, 10_999, t) == 2999
    assert plan_to_block(1000, 1500, t) == 1500


def test_plan_single_block_transport(make_transport: Any) -> None:
    t = make_transport("a", max_num_blocks=1)
    assert plan_to_block(42, 100, t) == 42


def test_chunk_request_rejects_inverted_or_negative_window() -> None:
    with pytest.raises(InvalidRange):
        ChunkRequest(from_block=10, to_block_max=9)
    with pytest.raises(InvalidRange):
        ChunkRequest(from_block=-1, to_block_max=9)
    # InvalidRange doubles as a ValueError for callers that only catch that
    with pytest.raises(ValueError):
        ChunkRequest(from_block=10, to_block_max=9)


def test_build_get_logs_call_hex_bounds_and_address() -> None:
    req = ChunkRequest(
        from_block=1000,
        to_block_max=10_999,
        topics=("0xabc", None, ["0x1", "0x2"]),
        address="0xAbC0000000000000000000000000000000000001",
    )
    call = build_get_logs_call(req, 2999)

    assert call["method"] == "eth_getLogs"
    (flt,) = call["params"]
    assert flt["fromBlock"] == "0x3e8"
    assert flt["toBlock"] == "0xbb7"
    assert flt["topics"] == ["0xabc", None, ["0x1", "0x2"]]
    assert flt["address"] == "0xabc0000000000000000000000000000000000001"


def test_build_get_logs_call_without_address() -> None:
    call = build_get_logs_call(ChunkRequest(from_block=0, to_block_max=0), 0)
    assert "address" not in call["params"][0]
