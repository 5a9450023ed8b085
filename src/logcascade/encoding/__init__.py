"""Event descriptions and eth_getLogs topic encoding.

This package provides:
- ABI event models (AbiEvent, AbiInput) and a signature parser
- topic0 computation
- Indexed-argument filter encoding (encode_event_topics)
"""

from logcascade.encoding.abi import (
    AbiEvent,
    AbiInput,
    get_event_signature,
    get_event_topic0,
    get_events_from_abi,
    parse_event_signature,
    resolve_event,
)
from logcascade.encoding.topics import encode_event_topics, encode_topic_value

__all__ = [
    "AbiEvent",
    "AbiInput",
    "get_event_signature",
    "get_event_topic0",
    "get_events_from_abi",
    "parse_event_signature",
    "resolve_event",
    "encode_event_topics",
    "encode_topic_value",
]
