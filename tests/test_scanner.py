import asyncio
from typing import Any

import pytest

from conftest import call_window, logs_for_window, raw_log
from logcascade.core.config import ReorgPolicy
from logcascade.core.errors import AllTransportsExhausted, InvalidRange, StrategyMismatch
from logcascade.core.models import Strategy
from logcascade.orchestration.scanner import RangeScanner, ScanStep, scan_concurrently


def _scanner(strategy: Strategy, from_block: int, to_block: int, **kwargs: Any) -> RangeScanner:
    return RangeScanner(chain_id=strategy.chain_id, strategy=strategy, from_block=from_block, to_block=to_block, **kwargs)


@pytest.mark.asyncio
async def test_follow_up_request_resumes_after_achieved_block(make_transport: Any) -> None:
    a = make_transport("A", max_num_blocks=5000, side_effect=RuntimeError("boom"))
    b = make_transport("B", max_num_blocks=2000)
    scanner = _scanner(Strategy.of(a, b), 1000, 10_999)

    step = await scanner.step()

    assert step.window == (1000, 10_999)
    assert step.result.to_block == 2999
    assert step.progress.blocks_covered == 2000
    assert scanner.fraction_fetched == pytest.approx(0.2)
    assert scanner.next_window() == (3000, 10_999)

    await scanner.step()
    assert call_window(b.request) == (3000, 4999)


@pytest.mark.asyncio
async def test_forward_scan_progress_is_monotonic_and_ends_at_one(make_transport: Any) -> None:
    t = make_transport("A", max_num_blocks=1000, side_effect=logs_for_window)
    scanner = _scanner(Strategy.of(t), 0, 4499)

    fractions = [step.progress.fraction_fetched async for step in scanner]

    assert fractions == sorted(fractions)
    assert fractions[:-1] == [pytest.approx(x) for x in (1000 / 4500, 2000 / 4500, 3000 / 4500, 4000 / 4500)]
    assert fractions[-1] == 1.0
    assert all(f < 1.0 for f in fractions[:-1])
    assert scanner.is_complete
    assert scanner.coverage == ((0, 4499),)
    assert scanner.missing == []
    assert [log.block_number for log in scanner.logs] == [0, 1000, 2000, 3000, 4000]
    assert [(r.from_block, r.to_block) for r in scanner.results][-1] == (4000, 4499)


@pytest.mark.asyncio
async def test_reverse_scan_fills_short_windows_before_moving_down(make_transport: Any) -> None:
    preferred = make_transport("A", max_num_blocks=5000, side_effect=RuntimeError("down"))
    fallback = make_transport("B", max_num_blocks=2000, side_effect=logs_for_window)
    scanner = _scanner(Strategy.of(preferred, fallback), 0, 9999, reverse=True, max_block_range=5000)

    windows = [step.window async for step in scanner]

    assert windows == [
        (5000, 9999),
        (7000, 9999),
        (9000, 9999),
        (0, 4999),
        (2000, 4999),
        (4000, 4999),
    ]
    assert scanner.progress.is_complete
    assert scanner.coverage == ((0, 9999),)
    # results stay in traversal order
    assert [r.from_block for r in scanner.results] == [5000, 7000, 9000, 0, 2000, 4000]


@pytest.mark.asyncio
async def test_reverse_scan_first_window_is_the_newest(make_transport: Any) -> None:
    t = make_transport("A")
    scanner = _scanner(Strategy.of(t), 100, 1099, reverse=True, max_block_range=300)

    assert scanner.next_window() == (800, 1099)
    await scanner.run()
    assert call_window(t.request, 0) == (800, 1099)
    assert call_window(t.request) == (100, 199)


@pytest.mark.asyncio
async def test_default_reverse_scan_starts_at_the_top(make_transport: Any) -> None:
    t = make_transport("A", max_num_blocks=1000, side_effect=logs_for_window)
    scanner = _scanner(Strategy.of(t), 0, 2999, reverse=True)

    await scanner.step()
    assert call_window(t.request) == (2000, 2999)

    await scanner.run()
    assert [log.block_number for log in scanner.logs] == [2000, 1000, 0]
    assert scanner.is_complete


@pytest.mark.asyncio
async def test_reverse_window_defaults_to_max_num_blocks_constant(make_transport: Any) -> None:
    t = make_transport("A")
    scanner = _scanner(Strategy.of(t), 0, 49_999, reverse=True)

    assert scanner.next_window() == (40_000, 49_999)


@pytest.mark.asyncio
async def test_exhaustion_keeps_partial_state(make_transport: Any) -> None:
    t = make_transport("A", max_num_blocks=1000, side_effect=[[raw_log(10)], RuntimeError("down")])
    scanner = _scanner(Strategy.of(t), 0, 2999)

    with pytest.raises(AllTransportsExhausted):
        await scanner.run()

    assert isinstance(scanner.error, AllTransportsExhausted)
    assert scanner.progress.blocks_covered == 1000
    assert scanner.fraction_fetched == pytest.approx(1 / 3)
    assert not scanner.is_complete
    assert scanner.missing == [(1000, 2999)]
    assert [log.block_number for log in scanner.logs] == [10]
    assert [s.outcome for s in scanner.stats.snapshot()] == ["success", "failure"]


@pytest.mark.asyncio
async def test_mismatch_propagates_from_step(make_transport: Any) -> None:
    t = make_transport("A", chain_id=10)
    scanner = RangeScanner(chain_id=1, strategy=Strategy.of(t), from_block=0, to_block=10)

    with pytest.raises(StrategyMismatch):
        await scanner.step()
    assert isinstance(scanner.error, StrategyMismatch)
    t.request.assert_not_awaited()


def test_scanner_rejects_bad_range(make_transport: Any) -> None:
    strategy = Strategy.of(make_transport("A"))
    with pytest.raises(InvalidRange):
        _scanner(strategy, 10, 9)
    with pytest.raises(ValueError):
        _scanner(strategy, 0, 9, max_block_range=0)


@pytest.mark.asyncio
async def test_step_after_completion_raises(make_transport: Any) -> None:
    scanner = _scanner(Strategy.of(make_transport("A")), 1, 1)
    progress = await scanner.run()

    assert progress.fraction_fetched == 1.0
    assert scanner.next_window() is None
    with pytest.raises(RuntimeError):
        await scanner.step()


@pytest.mark.asyncio
async def test_on_step_callback_sees_every_step(make_transport: Any) -> None:
    seen: list[ScanStep] = []
    t = make_transport("A", max_num_blocks=10)
    scanner = _scanner(Strategy.of(t), 0, 29, on_step=seen.append)

    await scanner.run()

    assert [s.progress.blocks_covered for s in seen] == [10, 20, 30]


@pytest.mark.asyncio
async def test_reorg_policy_applies_to_logs_only(make_transport: Any) -> None:
    logs = [raw_log(5), raw_log(6, removed=True), raw_log(90)]
    t = make_transport("A", return_value=logs)
    scanner = _scanner(
        Strategy.of(t),
        0,
        99,
        reorg_policy=ReorgPolicy.FINALIZED_ONLY,
        finalized_block_number=50,
    )

    await scanner.run()

    assert [log.block_number for log in scanner.logs] == [5]
    assert len(scanner.results[0].logs) == 3


@pytest.mark.asyncio
async def test_scan_concurrently_reports_each_outcome(make_transport: Any) -> None:
    ok = _scanner(Strategy.of(make_transport("A", max_num_blocks=100)), 0, 999)
    broken = _scanner(Strategy.of(make_transport("B", side_effect=RuntimeError("down"))), 0, 999)

    outcomes = await scan_concurrently([ok, broken], concurrency=1)

    assert outcomes[0] is None
    assert isinstance(outcomes[1], AllTransportsExhausted)
    assert ok.is_complete
    assert broken.progress.blocks_covered == 0


@pytest.mark.asyncio
async def test_scan_concurrently_cancels_siblings_on_fatal_error(make_transport: Any) -> None:
    cancelled = asyncio.Event()

    async def hang(*_: Any) -> list[Any]:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return []

    slow = _scanner(Strategy.of(make_transport("A", side_effect=hang)), 0, 99)
    mismatched = RangeScanner(
        chain_id=1,
        strategy=Strategy.of(make_transport("B", chain_id=10)),
        from_block=0,
        to_block=99,
    )

    with pytest.raises(StrategyMismatch):
        await scan_concurrently([slow, mismatched], concurrency=2)

    assert cancelled.is_set()
    assert slow.error is None
