from __future__ import annotations

from typing import Sequence

from fibseq.core.errors import InvalidLength, InvalidSeed
from fibseq.sequence.terms import summarize_term

# (term 0, term 1) of the classic sequence
DEFAULT_SEED: tuple[int, int] = (0, 1)


def _check_seed(a: int, b: int) -> None:
    if a < 0 or b < a:
        raise InvalidSeed(
            f"terms must be non-negative and the second must not precede the first: "
            f"a={summarize_term(a)} b={summarize_term(b)}"
        )


def _check_length(length: int) -> None:
    if length <= 0:
        raise InvalidLength(f"length must be positive: {length}")


def value_at(n: int, a: int = 0, b: int = 1) -> int:
    """
    n-th term (0-based) of the sequence seeded by (a, b).

    Walks the sequence from the seed; callers that advance indefinitely
    should chain blocks instead.
    """
    if n < 0:
        raise InvalidSeed(f"term index must be non-negative: {summarize_term(n)}")
    _check_seed(a, b)

    if n == 0:
        return a
    if n == 1:
        return b
    if b == 0:
        # a <= b, so every term is zero
        return 0

    for _ in range(n - 1):
        a, b = b, a + b
    return b


def seed_block(length: int, a: int = 0, b: int = 1) -> list[int]:
    """
    First `length` terms of the sequence: a, b, a+b, ...
    """
    _check_length(length)
    _check_seed(a, b)

    block = [a]
    if length >= 2:
        block.append(b)
    for _ in range(length - 2):
        a, b = b, a + b
        block.append(b)
    return block


def continuation_block(length: int, a: int, b: int) -> list[int]:
    """
    `length` terms continuing after the pair (a, b). First term is a + b.

    Feed the last two terms of the result back in as the next (a, b) to
    extend the sequence without rewalking it.
    """
    _check_length(length)
    _check_seed(a, b)

    block: list[int] = []
    for _ in range(length):
        a, b = b, a + b
        block.append(b)
    return block


def next_pair(block: Sequence[int]) -> tuple[int, int]:
    if len(block) < 2:
        raise InvalidLength(f"need at least two terms to chain a block, got {len(block)}")
    return block[-2], block[-1]
