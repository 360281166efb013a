from __future__ import annotations

import orjson
import pytest

from fibseq.core.logging.setup import summarize_big_ints
from fibseq.sequence.terms import format_term, parse_term, summarize_term, summarize_text

# well past the interpreter's default 4300-digit str()/int() limit
HUGE = 10**5000


@pytest.mark.parametrize("value", [0, 7, -7, 10**19, 2**64 + 1, 10**511 - 1, 10**512])
def test_format_term_matches_str_below_limit(value: int) -> None:
    assert format_term(value) == str(value)


def test_format_term_beyond_digit_limit() -> None:
    assert format_term(HUGE) == "1" + "0" * 5000
    assert format_term(HUGE - 1) == "9" * 5000
    assert format_term(-(HUGE + 3)) == "-1" + "0" * 4999 + "3"


def test_format_term_keeps_inner_zeros() -> None:
    # low half has leading zeros that must survive the split
    value = 7 * 10**6000 + 42
    text = format_term(value)

    assert len(text) == 6001
    assert text.startswith("70000")
    assert text.endswith("00042")


def test_parse_term_beyond_digit_limit() -> None:
    assert parse_term("1" + "0" * 5000) == HUGE
    assert parse_term("9" * 5000) == HUGE - 1
    assert parse_term(format_term(3**20000)) == 3**20000


@pytest.mark.parametrize("text,expected", [("12", 12), (" 12 ", 12), ("+5", 5), ("-5", -5), ("007", 7)])
def test_parse_term_small_values(text: str, expected: int) -> None:
    assert parse_term(text) == expected


@pytest.mark.parametrize("text", ["", "-", "1.5", "abc", "1_000", "١٢", "1 2"])
def test_parse_term_rejects_non_decimal(text: str) -> None:
    with pytest.raises(ValueError):
        parse_term(text)


def test_summarize_term() -> None:
    assert summarize_term(42) == 42
    assert summarize_term(2**63 - 1) == 2**63 - 1
    assert summarize_term(-(2**63)) == -(2**63)
    assert summarize_term(2**63) == "<64-bit integer>"
    assert summarize_term(HUGE) == f"<{HUGE.bit_length()}-bit integer>"


def test_summarize_text() -> None:
    assert summarize_text("abc") == "abc"
    long = "9" * 100
    assert summarize_text(long) == "9" * 40 + "... (100 chars)"


def test_log_processor_makes_big_ints_renderable() -> None:
    event_dict = {"event": "tick.emitted", "tick": 3, "last": HUGE, "flag": True}

    out = summarize_big_ints(None, "debug", event_dict)

    assert out["tick"] == 3
    assert out["flag"] is True
    assert out["last"] == f"<{HUGE.bit_length()}-bit integer>"
    # the JSON renderer's serializer accepts the result
    assert orjson.loads(orjson.dumps(out))["last"] == out["last"]
