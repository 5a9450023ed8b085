"""Validated strategy configuration (one record per chain)."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)

from logcascade.core.constants import (
    DEFAULT_MAX_NUM_BLOCKS,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY_S,
    DEFAULT_TIMEOUT_S,
)


class TransportSpec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    url: str
    max_num_blocks: PositiveInt | Literal["unconstrained"] = DEFAULT_MAX_NUM_BLOCKS
    timeout_s: PositiveFloat = DEFAULT_TIMEOUT_S
    retry_count: NonNegativeInt = DEFAULT_RETRY_COUNT
    retry_delay_s: NonNegativeFloat = DEFAULT_RETRY_DELAY_S

    @model_validator(mode="before")
    @classmethod
    def _default_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id") and data.get("url"):
            data = {**data, "id": urlsplit(str(data["url"])).netloc or str(data["url"])}
        return data

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if urlsplit(v).scheme not in ("http", "https"):
            raise ValueError(f"only http(s) endpoints are supported, got {v!r}")
        return v


class StrategySpec(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    chain_id: PositiveInt
    transports: list[TransportSpec] = Field(min_length=1)

    @field_validator("transports")
    @classmethod
    def _unique_ids(cls, v: list[TransportSpec]) -> list[TransportSpec]:
        ids = [t.id for t in v]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"duplicate transport id(s): {dupes}")
        return v


def parse_strategy_specs(entries: Iterable[dict[str, Any]]) -> dict[int, StrategySpec]:
    """Validate raw entries into a `{chain_id: StrategySpec}` table."""
    table: dict[int, StrategySpec] = {}
    for entry in entries:
        spec = StrategySpec.model_validate(entry)
        if spec.chain_id in table:
            raise ValueError(f"chain_id {spec.chain_id} configured twice")
        table[spec.chain_id] = spec
    return table


def load_strategy_specs(path: Path) -> dict[int, StrategySpec]:
    """Load a JSON list of strategy specs from `path`."""
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        data = [data]
    return parse_strategy_specs(data)
