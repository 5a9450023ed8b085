"""Topic encoding for eth_getLogs filters.

`encode_event_topics(event, arg_filter)` returns the `topics` array of an
eth_getLogs filter: topic0 (unless the event is anonymous) followed by one
entry per indexed argument, in declaration order:

- `None` for an argument left open (wildcard),
- a 32-byte hex string for a single value,
- a list of hex strings when the filter value is a list/tuple (OR-set).

Trailing wildcards are trimmed.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from eth_utils import decode_hex, encode_hex, keccak, to_canonical_address

from logcascade.encoding.abi import AbiEvent, get_event_topic0, resolve_event

_UINT_RE = re.compile(r"^uint(\d*)$")
_INT_RE = re.compile(r"^int(\d*)$")
_BYTES_N_RE = re.compile(r"^bytes(\d+)$")


def _bits(suffix: str) -> int:
    bits = int(suffix) if suffix else 256
    if bits % 8 or not 8 <= bits <= 256:
        raise ValueError(f"Invalid integer width: {bits}")
    return bits


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return decode_hex(value)
    raise TypeError(f"Expected bytes or hex string, got {type(value).__name__}")


def encode_topic_value(abi_type: str, value: Any) -> str:
    """Encode one indexed argument value as a 32-byte topic (0x-prefixed hex)."""
    if abi_type == "address":
        return encode_hex(to_canonical_address(value).rjust(32, b"\x00"))

    if abi_type == "bool":
        if not isinstance(value, bool):
            raise TypeError(f"bool topic expects a bool, got {type(value).__name__}")
        return encode_hex(int(value).to_bytes(32, "big"))

    m = _UINT_RE.match(abi_type)
    if m:
        bits = _bits(m.group(1))
        v = int(value, 0) if isinstance(value, str) else int(value)
        if not 0 <= v < 2**bits:
            raise ValueError(f"{v} out of range for {abi_type}")
        return encode_hex(v.to_bytes(32, "big"))

    m = _INT_RE.match(abi_type)
    if m:
        bits = _bits(m.group(1))
        v = int(value, 0) if isinstance(value, str) else int(value)
        if not -(2 ** (bits - 1)) <= v < 2 ** (bits - 1):
            raise ValueError(f"{v} out of range for {abi_type}")
        return encode_hex((v % 2**256).to_bytes(32, "big"))

    m = _BYTES_N_RE.match(abi_type)
    if m:
        n = int(m.group(1))
        raw = _as_bytes(value)
        if not 1 <= n <= 32 or len(raw) != n:
            raise ValueError(f"{abi_type} topic expects exactly {n} bytes, got {len(raw)}")
        return encode_hex(raw.ljust(32, b"\x00"))

    # dynamic types are indexed by their hash
    if abi_type == "string":
        return encode_hex(keccak(text=str(value)))
    if abi_type == "bytes":
        return encode_hex(keccak(_as_bytes(value)))

    raise ValueError(f"Unsupported indexed argument type: {abi_type}")


def encode_event_topics(
    event: AbiEvent | str,
    arg_filter: Mapping[str, Any] | None = None,
) -> list[str | list[str] | None]:
    """Build the eth_getLogs `topics` array for `event` filtered by `arg_filter`."""
    ev = resolve_event(event)
    arg_filter = dict(arg_filter or {})

    names = {i.name for i in ev.inputs}
    indexed = {i.name for i in ev.indexed_inputs}
    unknown = sorted(set(arg_filter) - names)
    if unknown:
        raise ValueError(f"Unknown argument(s) for {ev.name}: {unknown}")
    not_indexed = sorted(set(arg_filter) - indexed)
    if not_indexed:
        raise ValueError(f"Argument(s) of {ev.name} are not indexed and cannot be filtered: {not_indexed}")

    topics: list[str | list[str] | None] = [] if ev.anonymous else [get_event_topic0(ev)]
    for event_input in ev.indexed_inputs:
        value = arg_filter.get(event_input.name)
        if value is None:
            topics.append(None)
        elif isinstance(value, (list, tuple, set, frozenset)):
            topics.append([encode_topic_value(event_input.type, v) for v in value])
        else:
            topics.append(encode_topic_value(event_input.type, value))

    while topics and topics[-1] is None:
        topics.pop()
    return topics
