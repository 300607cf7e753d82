"""Adaptive, structure-aware text chunking for embedding pipelines."""

from .chunking import (
    Chunk,
    ChunkingOptions,
    Strategy,
    chunk_records,
    chunk_text,
    detect_document_type,
    iter_chunks,
    stream_chunks,
)

__version__ = "0.1.0"

__all__ = [
    "Chunk",
    "ChunkingOptions",
    "Strategy",
    "__version__",
    "chunk_records",
    "chunk_text",
    "detect_document_type",
    "iter_chunks",
    "stream_chunks",
]
