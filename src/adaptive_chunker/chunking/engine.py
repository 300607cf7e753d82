"""
Chunking engine: greedy token-budgeted packing with cascading fallback and
overlap, plus the public entry points.
"""

from __future__ import annotations

from typing import Iterator, List, NamedTuple, Optional, Sequence

from ..core.logging import log
from .boundaries import Strategy, get_segmenter
from .detection import detect_document_type
from .tokens import TokenCount, TokenizerFn, count_tokens, estimate_tokens

ADAPTIVE = "adaptive"
DEFAULT_MAX_TOKENS = 200


class UnknownStrategyError(ValueError):
    """Raised for a strategy name that is neither adaptive nor a known tier."""


class ChunkingOptions(NamedTuple):
    """Per-call chunking options. Immutable once resolved."""

    max_tokens: int = DEFAULT_MAX_TOKENS
    overlap_tokens: int = 0
    tokenizer: TokenizerFn = estimate_tokens
    allow_fallback: bool = True


class Chunk(NamedTuple):
    """A packed chunk and how it was produced."""

    text: str
    token_count: TokenCount
    strategy: str
    oversized: bool = False
    ord: int = 0


def resolve_options(
    options: Optional[ChunkingOptions] = None, **overrides
) -> ChunkingOptions:
    """
    Merge caller-supplied fields over the defaults (or over ``options``).

    Overrides set to None are ignored. Negative overlap is treated as none.
    """
    unknown = set(overrides) - set(ChunkingOptions._fields)
    if unknown:
        raise TypeError(f"Unknown chunking options: {', '.join(sorted(unknown))}")

    fields = {name: value for name, value in overrides.items() if value is not None}
    resolved = (options or ChunkingOptions())._replace(**fields)
    if resolved.overlap_tokens < 0:
        resolved = resolved._replace(overlap_tokens=0)
    return resolved


def resolve_strategy(name: Strategy | str) -> Strategy:
    """Validate a strategy name from the strategy table."""
    try:
        return Strategy(name)
    except ValueError:
        valid = ", ".join(strategy.value for strategy in Strategy)
        raise UnknownStrategyError(
            f"Unknown strategy: {name!r}. Valid strategies: {valid} (or {ADAPTIVE})"
        ) from None


def select_strategy(text: str, name: Strategy | str | None = ADAPTIVE) -> Strategy:
    """Resolve ``name``, running document type detection for ``adaptive``."""
    if name is None or name == ADAPTIVE:
        detected = detect_document_type(text)
        log.debug("chunk.detected", strategy=detected.value, chars=len(text))
        return detected
    return resolve_strategy(name)


def compute_overlap_step(weights: Sequence[TokenCount], overlap_tokens: int) -> int:
    """
    Count how many trailing blocks can be repeated in the next chunk while
    their accumulated weight stays below ``overlap_tokens``.
    """
    accumulated: TokenCount = 0
    step_back = 0
    for weight in reversed(weights):
        if accumulated + weight >= overlap_tokens:
            break
        accumulated += weight
        step_back += 1
    return step_back


def _expand_oversized(
    block: str,
    weight: TokenCount,
    options: ChunkingOptions,
    fallback: Optional[Strategy],
    strategy: str,
) -> Iterator[Chunk]:
    """Re-split an over-budget block with the fallback tier, or emit it as is."""
    if options.allow_fallback and fallback is not None:
        segmenter = get_segmenter(fallback)
        log.debug(
            "chunk.fallback",
            source=strategy,
            target=fallback.value,
            block_tokens=weight,
            max_tokens=options.max_tokens,
        )
        yield from pack_blocks(
            segmenter.split(block), options, segmenter.fallback, fallback.value
        )
        return

    log.warning(
        "chunk.oversized",
        strategy=strategy,
        block_tokens=weight,
        max_tokens=options.max_tokens,
        fallback_allowed=options.allow_fallback,
    )
    yield Chunk(text=block, token_count=weight, strategy=strategy, oversized=True)


def pack_blocks(
    blocks: Sequence[str],
    options: ChunkingOptions,
    fallback: Optional[Strategy] = None,
    strategy: str = "",
) -> Iterator[Chunk]:
    """
    Greedily pack consecutive blocks into chunks of at most ``max_tokens``.

    The budget applies to the sum of the blocks' weights, which is also the
    chunk's ``token_count``. Re-estimating the joined text can differ from
    that sum when the tokenizer rounds per block.

    A block that alone exceeds the budget flushes the pending chunk and is
    re-segmented with ``fallback`` (whose own fallback handles the next level
    down). Without a fallback, or with fallback disabled, it is emitted
    verbatim and flagged ``oversized``.

    With ``overlap_tokens`` set, each chunk after a budget break starts with
    trailing blocks of the previous chunk worth less than ``overlap_tokens``.
    The next chunk always starts at least one block after the previous one.

    Args:
        blocks: Ordered blocks from a segmenter
        options: Resolved chunking options
        fallback: Segmentation tier for over-budget blocks
        strategy: Name of the tier that produced ``blocks``

    Yields:
        Chunk records in document order
    """
    blocks = list(blocks)
    max_tokens = options.max_tokens
    tokenizer = options.tokenizer

    if max_tokens <= 0:
        if blocks:
            log.warning(
                "chunk.degenerate_budget", max_tokens=max_tokens, blocks=len(blocks)
            )
        for block in blocks:
            weight = count_tokens(block, tokenizer)
            yield Chunk(block, weight, strategy, oversized=weight > max_tokens)
        return

    weights: List[Optional[TokenCount]] = [None] * len(blocks)

    def weight_of(position: int) -> TokenCount:
        cached = weights[position]
        if cached is None:
            cached = weights[position] = count_tokens(blocks[position], tokenizer)
        return cached

    index = 0
    while index < len(blocks):
        chunk_start = index
        tokens: TokenCount = 0
        end = index

        while end < len(blocks):
            weight = weight_of(end)

            if weight > max_tokens:
                if end > chunk_start:
                    yield Chunk("".join(blocks[chunk_start:end]), tokens, strategy)
                    tokens = 0
                yield from _expand_oversized(
                    blocks[end], weight, options, fallback, strategy
                )
                end += 1
                chunk_start = end
                continue

            if end > chunk_start and tokens + weight > max_tokens:
                break

            tokens += weight
            end += 1

        if end > chunk_start:
            yield Chunk("".join(blocks[chunk_start:end]), tokens, strategy)

        if options.overlap_tokens > 0 and end < len(blocks):
            step_back = compute_overlap_step(
                [weight_of(i) for i in range(chunk_start, end)],
                options.overlap_tokens,
            )
            index = max(end - step_back, chunk_start + 1)
        else:
            index = end


def _numbered(chunks: Iterator[Chunk]) -> Iterator[Chunk]:
    for position, chunk in enumerate(chunks):
        yield chunk._replace(ord=position)


def _pack_text(text: str, strategy: Strategy, options: ChunkingOptions) -> Iterator[Chunk]:
    segmenter = get_segmenter(strategy)
    yield from pack_blocks(
        segmenter.split(text), options, segmenter.fallback, strategy.value
    )


def iter_chunks(
    text: str,
    strategy: Strategy | str | None = ADAPTIVE,
    options: Optional[ChunkingOptions] = None,
    **overrides,
) -> Iterator[Chunk]:
    """
    Lazily chunk ``text``, yielding Chunk records.

    The strategy and options are validated before the first chunk is pulled;
    segmentation and packing happen as the iterator is consumed.

    Example:
        for chunk in iter_chunks(text, "markdown", max_tokens=512):
            ...
    """
    resolved = resolve_options(options, **overrides)
    chosen = select_strategy(text, strategy)
    return _numbered(_pack_text(text, chosen, resolved))


def chunk_records(
    text: str,
    strategy: Strategy | str | None = ADAPTIVE,
    options: Optional[ChunkingOptions] = None,
    **overrides,
) -> List[Chunk]:
    """Chunk ``text`` eagerly, returning Chunk records."""
    return list(iter_chunks(text, strategy, options, **overrides))


def stream_chunks(
    text: str,
    strategy: Strategy | str | None = ADAPTIVE,
    options: Optional[ChunkingOptions] = None,
    **overrides,
) -> Iterator[str]:
    """Lazily chunk ``text``, yielding chunk strings."""
    return (chunk.text for chunk in iter_chunks(text, strategy, options, **overrides))


def chunk_text(
    text: str,
    strategy: Strategy | str | None = ADAPTIVE,
    options: Optional[ChunkingOptions] = None,
    **overrides,
) -> List[str]:
    """
    Chunk ``text`` into strings of at most ``max_tokens`` estimated tokens.

    Args:
        text: Document text
        strategy: ``adaptive`` (default) or a name from the strategy table
        options: Base options; keyword overrides are merged over them
        **overrides: max_tokens, overlap_tokens, tokenizer, allow_fallback

    Returns:
        Chunks in document order; their concatenation without overlap is the
        original text
    """
    return [chunk.text for chunk in iter_chunks(text, strategy, options, **overrides)]
