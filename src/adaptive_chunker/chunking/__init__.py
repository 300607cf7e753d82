"""
Adaptive Chunking Package

Structure-aware splitting of text into token-budgeted chunks, with document
type detection, cascading fallback tiers and token overlap.
"""

from .assurance import build_chunk_stats
from .boundaries import SEGMENTERS, Segmenter, Strategy, fallback_chain, segment
from .detection import detect_document_type
from .engine import (
    ADAPTIVE,
    Chunk,
    ChunkingOptions,
    UnknownStrategyError,
    chunk_records,
    chunk_text,
    iter_chunks,
    pack_blocks,
    resolve_options,
    resolve_strategy,
    stream_chunks,
)
from .tokens import TokenEstimateError, count_tokens, estimate_tokens, tiktoken_estimator

__all__ = [
    "ADAPTIVE",
    "Chunk",
    "ChunkingOptions",
    "SEGMENTERS",
    "Segmenter",
    "Strategy",
    "TokenEstimateError",
    "UnknownStrategyError",
    "build_chunk_stats",
    "chunk_records",
    "chunk_text",
    "count_tokens",
    "detect_document_type",
    "estimate_tokens",
    "fallback_chain",
    "iter_chunks",
    "pack_blocks",
    "resolve_options",
    "resolve_strategy",
    "segment",
    "stream_chunks",
    "tiktoken_estimator",
]
