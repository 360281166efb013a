from __future__ import annotations

from fibseq.sequence.generator import (
    DEFAULT_SEED,
    continuation_block,
    next_pair,
    seed_block,
    value_at,
)
from fibseq.sequence.terms import format_term, parse_term, summarize_term

__all__ = [
    "DEFAULT_SEED",
    "continuation_block",
    "format_term",
    "next_pair",
    "parse_term",
    "seed_block",
    "summarize_term",
    "value_at",
]
