from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from logcascade.core.models import AttemptStat, CallOptions


# ---------------------------------------------------------------------------
# IRequestFn
# ---------------------------------------------------------------------------

@runtime_checkable
class IRequestFn(Protocol):
    """
    Request primitive bound to one endpoint.

    Domain expectations:
    - `call_spec` is `{"method": ..., "params": [...]}`; the wire encoding is
      the implementation's business.
    - `options` carries the transport's own timeout / retry budget and must
      be honored.
    - Calls are idempotent-safe for log queries.
    """

    async def __call__(self, call_spec: dict[str, Any], options: CallOptions) -> Any:
        """
        Return the decoded `result` member of the response, or raise.

        Implementations:
        - `RPC.request` (httpx JSON-RPC client)
        - In-memory fakes for testing
        """
        ...


# ---------------------------------------------------------------------------
# IFilterEncoder
# ---------------------------------------------------------------------------

@runtime_checkable
class IFilterEncoder(Protocol):
    """
    Turns an event description plus an optional indexed-argument filter into
    the provider's topic encoding.

    The cascade treats the output as opaque and forwards it untouched.
    """

    def __call__(self, event: Any, arg_filter: Mapping[str, Any] | None = None) -> list[Any]:
        ...


# ---------------------------------------------------------------------------
# IStatsSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IStatsSink(Protocol):
    """
    Append-only destination for attempt statistics.

    Domain expectations:
    - Stats arrive in attempt order.
    - Sinks are telemetry only; nothing in the retrieval path reads them back.
    """

    async def append(self, stat: AttemptStat) -> None:
        """
        Record one attempt.

        Implementations:
        - StatsCollector (in memory)
        - StatsJournal (JSONL file)
        """
        ...
