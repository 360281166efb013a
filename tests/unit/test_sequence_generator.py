from __future__ import annotations

import pytest

from fibseq.core.errors import InvalidLength, InvalidSeed
from fibseq.sequence.generator import continuation_block, next_pair, seed_block, value_at

FIB = [0, 1, 1, 2, 3, 5, 8, 13, 21, 34, 55, 89, 144]


def test_value_at_matches_classic_sequence() -> None:
    assert [value_at(n) for n in range(len(FIB))] == FIB


def test_value_at_generalised_seed() -> None:
    assert value_at(0, 2, 5) == 2
    assert value_at(1, 2, 5) == 5
    assert value_at(4, 2, 5) == 19  # 2, 5, 7, 12, 19


def test_value_at_zero_seed_is_all_zero() -> None:
    assert value_at(50, 0, 0) == 0


@pytest.mark.parametrize("n,a,b", [(-1, 0, 1), (3, -1, 1), (3, 5, 3)])
def test_value_at_rejects_bad_input(n: int, a: int, b: int) -> None:
    with pytest.raises(InvalidSeed):
        value_at(n, a, b)


@pytest.mark.parametrize("a,b", [(0, 1), (3, 7), (10, 10)])
def test_seed_block_shape(a: int, b: int) -> None:
    block = seed_block(8, a, b)
    assert len(block) == 8
    assert block[0] == a
    assert block[1] == b
    for i in range(2, len(block)):
        assert block[i] == block[i - 1] + block[i - 2]


def test_seed_block_short_lengths() -> None:
    assert seed_block(1, 4, 9) == [4]
    assert seed_block(2, 4, 9) == [4, 9]


def test_continuation_block_starts_at_sum() -> None:
    block = continuation_block(5, 3, 7)
    assert block[0] == 10
    assert block == [10, 17, 27, 44, 71]


def test_blocks_chain_into_unbroken_sequence() -> None:
    terms = seed_block(4, 0, 1)
    pair = next_pair(terms)
    for _ in range(3):
        block = continuation_block(3, *pair)
        terms.extend(block)
        pair = next_pair(block)

    assert terms == [value_at(n) for n in range(13)]
    assert terms[1:11] == [1, 1, 2, 3, 5, 8, 13, 21, 34, 55]


def test_terms_exceed_64_bits() -> None:
    block = continuation_block(200, 0, 1)
    assert block[-1] > 2**64
    assert block[-1] == value_at(201)


def test_block_validation() -> None:
    with pytest.raises(InvalidLength):
        seed_block(0)
    with pytest.raises(InvalidLength):
        continuation_block(-2, 0, 1)
    with pytest.raises(InvalidSeed):
        seed_block(3, 5, 3)
    with pytest.raises(InvalidSeed):
        continuation_block(3, -1, 0)


def test_invalid_seed_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        seed_block(3, 5, 3)


def test_next_pair_needs_two_terms() -> None:
    assert next_pair([1, 2, 3]) == (2, 3)
    with pytest.raises(InvalidLength):
        next_pair([1])
