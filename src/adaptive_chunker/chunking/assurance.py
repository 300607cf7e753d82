"""
Chunk run statistics.
"""

import statistics
from typing import Dict, Optional, Sequence, Union

import psutil

from .engine import Chunk

BYTES_PER_MB = 1024 * 1024


def current_rss_bytes() -> int:
    """Resident set size of the current process."""
    return psutil.Process().memory_info().rss


def _rate(amount: float, elapsed_s: float) -> float:
    return amount / elapsed_s if elapsed_s > 0 else float("inf")


def build_chunk_stats(
    chunks: Sequence[Union[Chunk, str]],
    elapsed_s: float,
    rss_before: Optional[int] = None,
    rss_after: Optional[int] = None,
) -> Dict:
    """
    Summarize a chunking run.

    Args:
        chunks: Chunk records or plain chunk strings
        elapsed_s: Wall-clock seconds spent producing the chunks
        rss_before: Process RSS in bytes before chunking
        rss_after: Process RSS in bytes after chunking

    Returns:
        Stats dictionary: counts, throughput, char and token distribution
    """
    texts = [chunk.text if isinstance(chunk, Chunk) else chunk for chunk in chunks]
    lengths = [len(text) for text in texts]
    records = [chunk for chunk in chunks if isinstance(chunk, Chunk)]
    total_chars = sum(lengths)

    stats: Dict = {
        "chunkCount": len(texts),
        "totalChars": total_chars,
        "chunksPerSec": _rate(len(texts), elapsed_s),
        "charsPerSec": _rate(total_chars, elapsed_s),
        "elapsedMs": elapsed_s * 1000,
        "charStats": {
            "mean": statistics.fmean(lengths) if lengths else 0.0,
            "min": min(lengths, default=0),
            "max": max(lengths, default=0),
            "std": statistics.pstdev(lengths) if lengths else 0.0,
        },
    }

    if records:
        token_counts = [record.token_count for record in records]
        stats["tokenStats"] = {
            "min": min(token_counts),
            "median": statistics.median(token_counts),
            "max": max(token_counts),
            "total": sum(token_counts),
        }
        stats["oversizedCount"] = sum(1 for record in records if record.oversized)

    if rss_before is not None and rss_after is not None:
        stats["memoryMb"] = {
            "before": rss_before / BYTES_PER_MB,
            "after": rss_after / BYTES_PER_MB,
        }

    return stats
