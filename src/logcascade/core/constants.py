from __future__ import annotations

UNCONSTRAINED = "unconstrained"

# Per-transport defaults (seconds)
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_RETRY_COUNT = 6
DEFAULT_RETRY_DELAY_S = 0.1

DEFAULT_MAX_NUM_BLOCKS = 10_000

GET_LOGS_METHOD = "eth_getLogs"

# HTTP statuses worth retrying within one transport attempt
RETRYABLE_HTTP_STATUS = frozenset({429, 500, 502, 503, 504})
