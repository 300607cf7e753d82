import json
import sys
import time
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.table import Table

from ..chunking import (
    ADAPTIVE,
    SEGMENTERS,
    Chunk,
    Strategy,
    UnknownStrategyError,
    build_chunk_stats,
    fallback_chain,
    iter_chunks,
    tiktoken_estimator,
)
from ..chunking.assurance import current_rss_bytes
from ..chunking.engine import select_strategy
from ..core.config import Settings
from ..core.logging import log, setup_logging

app = typer.Typer(add_completion=False, help="Adaptive chunker CLI")

TOKENIZERS = ("heuristic", "tiktoken")

USAGE = (
    "Usage: adaptive-chunker chunk <file> [--strategy <name>] [--max-tokens <n>] "
    "[--overlap <n>] [--max-chunks-displayed <n>]\n"
    "       adaptive-chunker chunk --text 'your text here' [--strategy <name>] "
    "[--max-tokens <n>] [--overlap <n>] [--max-chunks-displayed <n>]"
)


def _load_settings(ctx: typer.Context, config_file: str | None = None) -> Settings:
    """Load settings and (re)configure logging; flags from the callback win."""
    flags = ctx.obj or {}
    try:
        settings = Settings.load_config(config_file)
        setup_logging(
            flags.get("log_format") or settings.LOG_FORMAT,  # type: ignore[arg-type]
            flags.get("log_level") or settings.LOG_LEVEL,
        )
    except (OSError, ValueError, yaml.YAMLError) as e:
        typer.echo(f"❌ Config error: {e}", err=True)
        raise typer.Exit(1) from e
    return settings


@app.callback()
def _init(
    ctx: typer.Context,
    log_format: str | None = typer.Option(
        None, "--log-format", help="Log format: json|plain|auto"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Minimum log level"),
) -> None:
    ctx.obj = {"log_format": log_format, "log_level": log_level}
    _load_settings(ctx)


def _read_input(file: Path | None, text: str | None) -> str:
    """Return inline text if given, else the file contents; exit 1 if neither."""
    if text is not None:
        return text
    if file is None:
        typer.echo(USAGE, err=True)
        raise typer.Exit(1)
    try:
        return file.read_text(encoding="utf-8")
    except OSError as e:
        typer.echo(f"❌ Cannot read {file}: {e}", err=True)
        raise typer.Exit(1) from e


def _console(settings: Settings) -> Console:
    return Console(
        file=sys.stdout,
        color_system=None if settings.NO_COLOR else "auto",
        highlight=False,
    )


def _render_stats(console: Console, strategy: Strategy, stats: dict) -> None:
    char_stats = stats["charStats"]
    table = Table(title="Stats", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Strategy", strategy.value)
    table.add_row("Total chunks", str(stats["chunkCount"]))
    table.add_row("Total characters", str(stats["totalChars"]))
    table.add_row("Chunks/s", f"{stats['chunksPerSec']:.2f}")
    table.add_row("Chars/s", f"{stats['charsPerSec']:.2f}")
    table.add_row("Mean chunk size (chars)", f"{char_stats['mean']:.2f}")
    table.add_row(
        "Min/Max chunk size (chars)", f"{char_stats['min']} / {char_stats['max']}"
    )
    table.add_row("Std dev chunk size (chars)", f"{char_stats['std']:.2f}")
    table.add_row("Oversized chunks", str(stats.get("oversizedCount", 0)))
    table.add_row("Total time", f"{stats['elapsedMs']:.2f} ms")
    memory = stats.get("memoryMb")
    if memory:
        table.add_row(
            "Memory usage", f"{memory['before']:.2f} MB -> {memory['after']:.2f} MB"
        )
    console.print(table)


@app.command()
def version() -> None:
    from .. import __version__

    typer.echo(__version__)


@app.command()
def chunk(
    ctx: typer.Context,
    file: Path | None = typer.Argument(None, help="Text file to chunk (UTF-8)"),
    text: str | None = typer.Option(None, "--text", help="Chunk this text instead of a file"),
    strategy: str | None = typer.Option(
        None, "--strategy", help="adaptive (default) or a strategy name"
    ),
    max_tokens: int | None = typer.Option(None, "--max-tokens", help="Maximum tokens per chunk"),
    overlap: int | None = typer.Option(None, "--overlap", help="Overlap tokens between chunks"),
    allow_fallback: bool | None = typer.Option(
        None, "--fallback/--no-fallback", help="Re-split blocks that exceed the budget"
    ),
    tokenizer: str | None = typer.Option(
        None, "--tokenizer", help="Token estimator: heuristic|tiktoken"
    ),
    max_chunks_displayed: int | None = typer.Option(
        None, "--max-chunks-displayed", min=0, help="Number of chunks to preview"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print chunks and stats as JSON"),
    config_file: str | None = typer.Option(
        None, "--config", help="Config file (.adaptive-chunker.yaml auto-discovered)"
    ),
) -> None:
    """
    Chunk a document into token-bounded pieces and report statistics.

    Config precedence: config file < env vars < CLI flags

    Example:
        adaptive-chunker chunk notes.md --max-tokens 256 --overlap 32
        adaptive-chunker chunk --text "First. Second." --strategy sentence
    """
    settings = _load_settings(ctx, config_file)
    source = _read_input(file, text)

    strategy_name = strategy or settings.CHUNK_STRATEGY
    try:
        chosen = select_strategy(source, strategy_name)
    except UnknownStrategyError:
        valid = ", ".join(s.value for s in Strategy)
        typer.echo(f"Unknown strategy: {strategy_name}\nValid strategies: {valid}", err=True)
        raise typer.Exit(1) from None

    tokenizer_name = tokenizer or settings.CHUNK_TOKENIZER
    if tokenizer_name not in TOKENIZERS:
        typer.echo(
            f"Unknown tokenizer: {tokenizer_name}\nValid tokenizers: {', '.join(TOKENIZERS)}",
            err=True,
        )
        raise typer.Exit(1)
    token_fn = (
        tiktoken_estimator(settings.TIKTOKEN_MODEL) if tokenizer_name == "tiktoken" else None
    )

    options = dict(
        max_tokens=max_tokens if max_tokens is not None else settings.CHUNK_MAX_TOKENS,
        overlap_tokens=overlap if overlap is not None else settings.CHUNK_OVERLAP_TOKENS,
        allow_fallback=(
            allow_fallback if allow_fallback is not None else settings.CHUNK_ALLOW_FALLBACK
        ),
        tokenizer=token_fn,
    )
    log.info(
        "chunk.start",
        strategy=chosen.value,
        chars=len(source),
        max_tokens=options["max_tokens"],
        overlap_tokens=options["overlap_tokens"],
        tokenizer=tokenizer_name,
    )

    rss_before = current_rss_bytes()
    start_time = time.perf_counter()
    records: list[Chunk] = list(iter_chunks(source, chosen, **options))
    elapsed = time.perf_counter() - start_time
    rss_after = current_rss_bytes()

    stats = build_chunk_stats(records, elapsed, rss_before, rss_after)
    log.info("chunk.complete", chunks=stats["chunkCount"], elapsed_ms=stats["elapsedMs"])

    if as_json:
        payload = {
            "strategy": chosen.value,
            "chunks": [record._asdict() for record in records],
            "stats": stats,
        }
        typer.echo(json.dumps(payload, ensure_ascii=False, default=str))
        return

    to_show = (
        max_chunks_displayed if max_chunks_displayed is not None else settings.PREVIEW_CHUNKS
    )
    for record in records[:to_show]:
        marker = " (oversized)" if record.oversized else ""
        typer.echo(f"--- Chunk {record.ord + 1}{marker} ---\n{record.text}\n")
    if len(records) > to_show:
        typer.echo(f"... ({len(records) - to_show} more chunks not shown)\n")

    _render_stats(_console(settings), chosen, stats)


@app.command()
def detect(
    file: Path | None = typer.Argument(None, help="Text file to classify (UTF-8)"),
    text: str | None = typer.Option(None, "--text", help="Classify this text instead of a file"),
) -> None:
    """Print the strategy the adaptive mode would pick for a document."""
    source = _read_input(file, text)
    typer.echo(select_strategy(source, ADAPTIVE).value)


@app.command()
def strategies(ctx: typer.Context) -> None:
    """List chunking strategies and their fallback chains."""
    table = Table(title="Strategies")
    table.add_column("Strategy", style="bold")
    table.add_column("Fallback chain")
    table.add_row(ADAPTIVE, "detected document type")
    for name in SEGMENTERS:
        chain = " -> ".join(tier.value for tier in fallback_chain(name)) or "-"
        table.add_row(name.value, chain)
    _console(_load_settings(ctx)).print(table)
