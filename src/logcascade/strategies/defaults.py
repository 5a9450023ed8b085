"""Public endpoints per chain, ranked by preference."""

from __future__ import annotations

from logcascade.strategies.specs import StrategySpec, TransportSpec

CHAIN_NAMES: dict[int, str] = {
    1: "mainnet",
    10: "optimism",
    130: "unichain",
    137: "polygon",
    146: "sonic",
    252: "fraxtal",
    480: "worldchain",
    8453: "base",
    34443: "mode",
    42161: "arbitrum",
    43111: "hemi",
    57073: "ink",
    534352: "scroll",
    21000000: "corn",
}

DEFAULT_ENDPOINTS: dict[int, tuple[str, ...]] = {
    1: (
        "https://rpc.mevblocker.io",
        "https://rpc.ankr.com/eth",
        "https://eth.drpc.org",
        "https://eth.merkle.io",
    ),
    8453: (
        "https://base.gateway.tenderly.co",
        "https://base.drpc.org",
        "https://mainnet.base.org",
        "https://base.lava.build",
    ),
    57073: ("https://ink.drpc.org",),
    10: (
        "https://op-pokt.nodies.app",
        "https://optimism.drpc.org",
        "https://optimism.lava.build",
    ),
    42161: (
        "https://arbitrum.gateway.tenderly.co",
        "https://rpc.ankr.com/arbitrum",
        "https://arbitrum.drpc.org",
    ),
    137: ("https://polygon.drpc.org",),
    130: ("https://unichain.drpc.org",),
    480: ("https://worldchain.drpc.org",),
    534352: ("https://scroll.drpc.org",),
    252: ("https://fraxtal.drpc.org",),
    146: (
        "https://rpc.soniclabs.com",
        "https://rpc.ankr.com/sonic_mainnet",
        "https://sonic.drpc.org",
    ),
    21000000: (
        "https://mainnet.corn-rpc.com",
        "https://maizenet-rpc.usecorn.com",
    ),
    34443: ("https://mode.drpc.org",),
    43111: ("https://rpc.hemi.network/rpc",),
}


def default_strategy_spec(chain_id: int) -> StrategySpec:
    """Strategy over the public endpoints known for `chain_id`."""
    try:
        urls = DEFAULT_ENDPOINTS[chain_id]
    except KeyError:
        raise ValueError(
            f"No default endpoints for chain_id {chain_id}; known: {sorted(DEFAULT_ENDPOINTS)}"
        ) from None
    return StrategySpec(chain_id=chain_id, transports=[TransportSpec.model_validate({"url": u}) for u in urls])
