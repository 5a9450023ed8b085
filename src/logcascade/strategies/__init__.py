"""Strategy configuration: validated specs, default endpoints, and binding to RPC clients.

This package provides:
- `TransportSpec` / `StrategySpec`: pydantic records, one strategy per chain
- `load_strategy_specs`: read a JSON strategy table
- `default_strategy_spec`: public endpoints per known chain
- `build_strategy`: turn a spec into a `Strategy` bound to `RPC` clients
"""

from __future__ import annotations

from collections.abc import Callable

from logcascade.clients.rpc import RPC
from logcascade.core.models import Strategy, TransportDescriptor
from logcascade.strategies.defaults import CHAIN_NAMES, DEFAULT_ENDPOINTS, default_strategy_spec
from logcascade.strategies.specs import (
    StrategySpec,
    TransportSpec,
    load_strategy_specs,
    parse_strategy_specs,
)


def build_strategy(
    spec: StrategySpec,
    client_factory: Callable[..., RPC] = RPC,
) -> tuple[Strategy, list[RPC]]:
    """Bind every transport of `spec` to its own client.

    Returns the strategy and the clients; the caller owns (and closes) the clients.
    """
    clients: list[RPC] = []
    transports: list[TransportDescriptor] = []
    for t in spec.transports:
        rpc = client_factory(t.url, timeout_s=t.timeout_s)
        clients.append(rpc)
        transports.append(
            TransportDescriptor(
                id=t.id,
                chain_id=spec.chain_id,
                request=rpc.request,
                max_num_blocks=t.max_num_blocks,
                timeout_s=t.timeout_s,
                retry_count=t.retry_count,
                retry_delay_s=t.retry_delay_s,
            )
        )
    return Strategy(chain_id=spec.chain_id, transports=tuple(transports)), clients


__all__ = [
    "CHAIN_NAMES",
    "DEFAULT_ENDPOINTS",
    "StrategySpec",
    "TransportSpec",
    "build_strategy",
    "default_strategy_spec",
    "load_strategy_specs",
    "parse_strategy_specs",
]
