"""Approximate token counting shared by every component.

No real tokenizer is assumed: counts use a fixed characters-per-token ratio so
they are reproducible and monotonic in text length. Chunk sizing, context
budgeting and prompt accounting all go through `estimate_tokens`.
"""
import math
from typing import Optional


def estimate_tokens(text: str, chars_per_token: Optional[int] = None) -> int:
    """Return ceil(len(text) / chars_per_token); empty text is 0 tokens."""
    if not text:
        return 0
    if chars_per_token is None:
        from config import settings  # Lazy import
        chars_per_token = settings.CHARS_PER_TOKEN
    if chars_per_token <= 0:
        raise ValueError("chars_per_token must be positive")
    return math.ceil(len(text) / chars_per_token)
