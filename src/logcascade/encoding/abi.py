import json
import re
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from eth_utils.abi import event_signature_to_log_topic
from pydantic import BaseModel


class AbiInput(BaseModel):
    indexed: bool = False
    internalType: str | None = None
    name: str
    type: str


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiInput]
    name: str
    type: Literal["event"] = "event"

    @property
    def indexed_inputs(self) -> list[AbiInput]:
        return [event_input for event_input in self.inputs if event_input.indexed]


def get_event_signature(event: AbiEvent):
    return f"{event.name}({','.join(event_input.type for event_input in event.inputs)})"


def get_event_topic0(event: AbiEvent):
    return "0x" + event_signature_to_log_topic(get_event_signature(event)).hex()


_SIGNATURE_RE = re.compile(r"^\s*(?:event\s+)?([A-Za-z_$][A-Za-z0-9_$]*)\s*\((.*)\)\s*(anonymous)?\s*;?\s*$", re.S)


def _split_params(body: str) -> list[str]:
    """Split on commas that are not nested inside parentheses."""
    parts: list[str] = []
    depth = 0
    cur = ""
    for ch in body:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(cur)
            cur = ""
        else:
            cur += ch
    if cur.strip():
        parts.append(cur)
    return [p.strip() for p in parts]


def parse_event_signature(signature: str) -> AbiEvent:
    """Parse a human-readable signature such as
    `Transfer(address indexed from, address indexed to, uint256 value)`.

    Unnamed parameters get positional names (`arg0`, `arg1`, ...).
    """
    m = _SIGNATURE_RE.match(signature)
    if m is None:
        raise ValueError(f"Invalid event signature: {signature!r}")
    name, body, anonymous = m.group(1), m.group(2), m.group(3)

    inputs: list[AbiInput] = []
    for idx, param in enumerate(_split_params(body)):
        tokens = param.split()
        if not tokens:
            raise ValueError(f"Empty parameter in event signature: {signature!r}")
        abi_type, rest = tokens[0], tokens[1:]
        indexed = "indexed" in rest
        names = [t for t in rest if t != "indexed"]
        if len(names) > 1:
            raise ValueError(f"Cannot parse parameter {param!r} in {signature!r}")
        inputs.append(AbiInput(indexed=indexed, name=names[0] if names else f"arg{idx}", type=abi_type))

    return AbiEvent(anonymous=bool(anonymous), inputs=inputs, name=name)


AbiJson = Iterable[dict[str, Any]]
AbiSpec = AbiJson | Path


def _load_abi(abi: AbiSpec) -> AbiJson:
    if isinstance(abi, Path):
        return json.loads(abi.read_text())
    return abi


def get_events_from_abi(abi: AbiSpec) -> dict[str, AbiEvent]:
    abi = _load_abi(abi)
    return {entry["name"]: AbiEvent.model_validate(entry) for entry in abi if entry.get("type") == "event"}


def resolve_event(event: "AbiEvent | str", abi: AbiSpec | None = None) -> AbiEvent:
    """Accept an AbiEvent, an event name looked up in `abi`, or a signature."""
    if isinstance(event, AbiEvent):
        return event
    if abi is not None:
        events = get_events_from_abi(abi)
        if event not in events:
            raise ValueError(f"Event {event!r} not found in ABI (has: {sorted(events)})")
        return events[event]
    return parse_event_signature(event)
