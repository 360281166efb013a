from __future__ import annotations

import math

# Digits converted by a single int()/str() call. Stays under the smallest
# non-zero value sys.set_int_max_str_digits() accepts (640), so the split
# conversions work whatever limit the interpreter runs with.
_CHUNK_DIGITS = 512
_CHUNK_BOUND = 10**_CHUNK_DIGITS

_LOG10_2 = math.log10(2)

# orjson and most JSON consumers stop at 64 bits
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def format_term(value: int) -> str:
    """
    Exact decimal text of an integer of any size.

    Plain str() refuses integers above the interpreter's conversion limit
    (4300 digits by default). Terms outgrow that after roughly 20,000 steps,
    so large values are split by a power of ten and converted in pieces.
    """
    if value < 0:
        return "-" + format_term(-value)
    if value < _CHUNK_BOUND:
        return str(value)

    # over-estimate of the digit count; half stays below the true count
    digits = int(value.bit_length() * _LOG10_2) + 1
    half = digits // 2
    high, low = divmod(value, 10**half)
    return format_term(high) + format_term(low).zfill(half)


def parse_term(text: str) -> int:
    """
    Inverse of format_term: optional sign followed by ASCII digits.

    Raises ValueError on anything else.
    """
    raw = text.strip()
    sign = 1
    if raw[:1] in ("+", "-"):
        sign = -1 if raw[0] == "-" else 1
        raw = raw[1:]
    if not raw or not (raw.isascii() and raw.isdigit()):
        raise ValueError(f"not a decimal integer: {summarize_text(text)!r}")
    return sign * _parse_digits(raw)


def _parse_digits(digits: str) -> int:
    if len(digits) <= _CHUNK_DIGITS:
        return int(digits)
    half = len(digits) // 2
    return _parse_digits(digits[:-half]) * 10**half + _parse_digits(digits[-half:])


def summarize_term(value: int) -> int | str:
    """
    Compact stand-in for a term in logs and messages.

    Integers that fit in 64 bits pass through unchanged; wider ones become
    "<N-bit integer>" so no decimal conversion is needed.
    """
    if _INT64_MIN <= value <= _INT64_MAX:
        return value
    return f"<{value.bit_length()}-bit integer>"


def summarize_text(text: str, *, limit: int = 40) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text)} chars)"
