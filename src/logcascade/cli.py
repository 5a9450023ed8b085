import asyncio
import logging
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from logcascade.api.scan_events import ScanReport, scan_events
from logcascade.core.config import ReorgPolicy, ScanConfig
from logcascade.core.constants import DEFAULT_MAX_NUM_BLOCKS
from logcascade.core.errors import ScanError
from logcascade.orchestration.scanner import ScanStep
from logcascade.storage.parquet_sink import write_logs_parquet
from logcascade.strategies import (
    CHAIN_NAMES,
    StrategySpec,
    TransportSpec,
    default_strategy_spec,
    load_strategy_specs,
)

console = Console()


def _parse_block(value: str) -> int | str:
    v = value.strip().lower()
    if v in ("latest", "finalized", "earliest", "genesis"):
        return v
    return int(v, 0)


def _parse_arg_filter(args: tuple[str, ...]) -> dict[str, Any]:
    """`name=value` pairs; a comma-separated value is an OR-set."""
    out: dict[str, Any] = {}
    for item in args:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise click.UsageError(f"--arg expects name=value, got {item!r}")
        values: list[Any] = []
        for v in raw.split(","):
            v = v.strip()
            values.append({"true": True, "false": False}.get(v.lower(), v))
        out[name.strip()] = values if len(values) > 1 else values[0]
    return out


def _strategy_spec(
    chain_id: int,
    strategy_file: Path | None,
    rpcs: tuple[str, ...],
    max_num_blocks: int | None,
) -> StrategySpec:
    if strategy_file is not None:
        table = load_strategy_specs(strategy_file)
        if chain_id not in table:
            raise click.UsageError(f"{strategy_file} has no strategy for chain_id {chain_id}")
        return table[chain_id]
    if rpcs:
        extra = {"max_num_blocks": max_num_blocks} if max_num_blocks is not None else {}
        return StrategySpec(
            chain_id=chain_id,
            transports=[TransportSpec.model_validate({"url": url, **extra}) for url in rpcs],
        )
    try:
        return default_strategy_spec(chain_id)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


def _print_summary(report: ScanReport) -> None:
    table = Table(title="transports")
    table.add_column("transport")
    table.add_column("ok", justify="right", style="green")
    table.add_column("failed", justify="right", style="red")
    table.add_column("blocks served", justify="right")
    table.add_column("mean s", justify="right")
    for s in report.stats_summary.values():
        table.add_row(
            s.transport_id,
            str(s.successes),
            str(s.failures),
            f"{s.blocks_served:,}",
            f"{s.mean_duration_s:.2f}",
        )
    console.print(table)
    console.print(
        f"[bold]summary[/]: {len(report.logs)} logs • "
        f"{report.progress.blocks_covered:,}/{report.progress.blocks_total:,} blocks "
        f"({100 * report.progress.fraction_fetched:.2f}%) • chunks={len(report.results)}"
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log every attempt")
def cli(verbose: bool) -> None:
    """logcascade: historical event logs over flaky, range-capped RPC endpoints."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@cli.command("scan")
@click.option("--chain-id", type=int, required=True, help="Chain to scan")
@click.option("--address", default=None, help="Emitter contract address")
@click.option("--event", required=True, help="Event signature, or event name with --abi")
@click.option("--abi", "abi_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@click.option("--arg", "args", multiple=True, help="Indexed argument filter name=value; repeat; a,b to OR")
@click.option("--from-block", type=str, required=True, help="Block number or earliest")
@click.option("--to-block", type=str, default="latest", show_default=True, help="Block number, latest or finalized")
@click.option(
    "--max-block-range",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_NUM_BLOCKS,
    show_default=True,
    help="Blocks asked for per request",
)
@click.option("--reverse/--forward", default=True, show_default=True, help="Newest blocks first")
@click.option(
    "--reorg-policy",
    type=click.Choice([p.value for p in ReorgPolicy]),
    default=ReorgPolicy.KEEP.value,
    show_default=True,
)
@click.option(
    "--strategy-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON strategy table",
)
@click.option("--rpc", "rpcs", multiple=True, help="Endpoint URL, in preference order; repeat")
@click.option("--max-num-blocks", type=int, default=None, help="Block ceiling for every --rpc endpoint")
@click.option("--out", "out_path", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Parquet output")
@click.option("--stats-out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="JSONL attempt journal")
def scan_cmd(
    chain_id: int,
    address: str | None,
    event: str,
    abi_path: Path | None,
    args: tuple[str, ...],
    from_block: str,
    to_block: str,
    max_block_range: int | None,
    reverse: bool,
    reorg_policy: str,
    strategy_file: Path | None,
    rpcs: tuple[str, ...],
    max_num_blocks: int | None,
    out_path: Path | None,
    stats_out: Path | None,
) -> None:
    """Scan a block range for one event with a live progress bar."""
    try:
        config = ScanConfig(
            chain_id=chain_id,
            address=address,
            event=event,
            from_block=_parse_block(from_block),
            to_block=_parse_block(to_block),
            arg_filter=_parse_arg_filter(args),
            max_block_range=max_block_range,
            reverse=reverse,
            reorg_policy=ReorgPolicy(reorg_policy),
            abi_path=abi_path,
            stats_path=stats_out,
        )
        spec = _strategy_spec(chain_id, strategy_file, rpcs, max_num_blocks)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]collecting logs[/]"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn(" • {task.description}"),
        console=console,
        transient=False,
        expand=True,
    )

    async def run() -> ScanReport:
        with progress:
            task = progress.add_task(description=CHAIN_NAMES.get(chain_id, str(chain_id)), total=None)

            def on_step(step: ScanStep) -> None:
                progress.update(
                    task,
                    total=step.progress.blocks_total,
                    completed=step.progress.blocks_covered,
                    description=f"{step.result.from_block:,}-{step.result.to_block:,} • {len(step.result.logs)} logs",
                )

            return await scan_events(config, strategy_spec=spec, on_step=on_step)

    try:
        report = asyncio.run(run())
    except (ScanError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    _print_summary(report)
    if out_path is not None:
        written = write_logs_parquet(report.logs, out_path)
        console.print(f"wrote → {written}")
    if report.error is not None:
        raise click.ClickException(f"scan incomplete: {report.error}")


@cli.command("endpoints")
@click.option("--chain-id", type=int, default=None, help="Only this chain")
def endpoints_cmd(chain_id: int | None) -> None:
    """List the default endpoint strategy per chain."""
    chain_ids = [chain_id] if chain_id is not None else sorted(CHAIN_NAMES)
    table = Table(title="default strategies")
    table.add_column("chain")
    table.add_column("rank", justify="right")
    table.add_column("transport")
    table.add_column("max blocks", justify="right")
    for cid in chain_ids:
        try:
            spec = default_strategy_spec(cid)
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        for rank, t in enumerate(spec.transports):
            table.add_row(f"{CHAIN_NAMES.get(cid, cid)} ({cid})", str(rank), t.url, str(t.max_num_blocks))
    console.print(table)


if __name__ == "__main__":
    cli()
