from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest

from logcascade.core.constants import UNCONSTRAINED
from logcascade.core.models import MaxNumBlocks, TransportDescriptor

TRANSFER_TOPIC0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def raw_log(block_number: int, log_index: int = 0, *, removed: bool = False) -> dict[str, Any]:
    """A log object shaped like an eth_getLogs response entry."""
    return {
        "address": "0xAbC0000000000000000000000000000000000001",
        "topics": [TRANSFER_TOPIC0],
        "data": "0x",
        "blockNumber": hex(block_number),
        "transactionHash": "0x" + f"{block_number:064x}",
        "logIndex": hex(log_index),
        "blockHash": "0x" + "ab" * 32,
        "removed": removed,
    }


def call_window(request: AsyncMock, n: int = -1) -> tuple[int, int]:
    """The (fromBlock, toBlock) a fake request primitive was called with."""
    call_spec = request.await_args_list[n].args[0]
    flt = call_spec["params"][0]
    return int(flt["fromBlock"], 16), int(flt["toBlock"], 16)


def logs_for_window(call_spec: dict[str, Any], _options: Any) -> list[dict[str, Any]]:
    """Fake eth_getLogs answering one log at the first block of the window."""
    return [raw_log(int(call_spec["params"][0]["fromBlock"], 16))]


@pytest.fixture
def make_transport() -> Callable[..., TransportDescriptor]:
    def _make(
        id: str,
        *,
        chain_id: int = 1,
        max_num_blocks: MaxNumBlocks = UNCONSTRAINED,
        return_value: Any = None,
        side_effect: Any = None,
        timeout_s: float = 5.0,
        retry_count: int = 0,
        retry_delay_s: float = 0.0,
    ) -> TransportDescriptor:
        request = AsyncMock(return_value=[] if return_value is None else return_value, side_effect=side_effect)
        return TransportDescriptor(
            id=id,
            chain_id=chain_id,
            request=request,
            max_num_blocks=max_num_blocks,
            timeout_s=timeout_s,
            retry_count=retry_count,
            retry_delay_s=retry_delay_s,
        )

    return _make


class FakeRPC:
    """Stands in for `RPC` in tests of the outer layers."""

    instances: list["FakeRPC"] = []

    def __init__(self, url: str, *, timeout_s: float = 30, **_: Any) -> None:
        self.url = url
        self.timeout_s = timeout_s
        self.latest = 2_999
        self.finalized = 2_000
        self.request = AsyncMock(side_effect=logs_for_window)
        self.closed = False
        FakeRPC.instances.append(self)

    async def latest_block(self) -> int:
        return self.latest

    async def finalized_block(self) -> int:
        return self.finalized

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_rpc_factory() -> type[FakeRPC]:
    FakeRPC.instances = []
    return FakeRPC
