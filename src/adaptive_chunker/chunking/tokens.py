"""
Token estimation for chunk budgets.
"""

import math
from numbers import Real
from typing import Callable, Union

TokenCount = Union[int, float]
TokenizerFn = Callable[[str], TokenCount]

TOKENS_PER_WORD = 0.75


class TokenEstimateError(ValueError):
    """Raised when a tokenizer returns a value the packer cannot budget with."""


def estimate_tokens(text: str) -> int:
    """Default heuristic: ~0.75 tokens per whitespace-separated word."""
    words = len(text.split())
    # Round half up
    return int(math.floor(words * TOKENS_PER_WORD + 0.5))


def count_tokens(text: str, tokenizer: TokenizerFn | None = None) -> TokenCount:
    """
    Estimate the token weight of a text span.

    Exceptions raised by a custom tokenizer propagate unchanged.

    Raises:
        TokenEstimateError: if the tokenizer returns a negative, non-finite
            or non-numeric value.
    """
    value = (tokenizer or estimate_tokens)(text)
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TokenEstimateError(
            f"Tokenizer returned {value!r}; expected a non-negative number"
        )
    if not math.isfinite(value) or value < 0:
        raise TokenEstimateError(
            f"Tokenizer returned {value!r}; expected a non-negative finite number"
        )
    return value


def tiktoken_estimator(model: str = "text-embedding-3-small") -> TokenizerFn:
    """Build a tokenizer backed by tiktoken's encoding for ``model``."""
    import tiktoken

    try:
        encoding = tiktoken.encoding_for_model(model)
    except KeyError:
        # Unknown model name
        encoding = tiktoken.get_encoding("cl100k_base")

    def _count(text: str) -> int:
        return len(encoding.encode(text))

    return _count
