"""Turn a statement value cell into a signed integer in base units."""
from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from edgarfin.errors import InvalidNumberError

_FOOTNOTE_RE = re.compile(r"\[[^\]]*\]|\(\s*[a-zA-Z]\s*\)|\*+")  # "[1]", "(a)", "*"
_CURRENCY_RE = re.compile(r"[$€£¥]|US\$|USD", re.IGNORECASE)
_MINUS_CHARS = ("-", "−")
_NUMBER_RE = re.compile(r"^\d*(?:\.\d*)?$")
_DIGIT_RE = re.compile(r"\d")


def normalize_number(raw: str, scale: int = 1) -> int:
    """
    Parse an accounting-formatted amount and apply the document scale.

    "(1,234)" -> -1234, "$ 1,234" -> 1234, "1.5" at scale 1_000_000 -> 1_500_000.
    Parentheses may be split across cells, so an opening "(" alone marks a negative.
    The scaled value is rounded half-up to a whole unit.
    """
    t = str(raw or "").replace("\xa0", " ").strip()
    t = _FOOTNOTE_RE.sub("", t)
    t = _CURRENCY_RE.sub("", t)
    t = t.replace(",", "").replace(" ", "")

    neg = False
    if t.startswith("("):
        neg = True
        t = t.strip("()")

    if t.startswith(_MINUS_CHARS):
        neg = not neg
        t = t[1:]

    if not _DIGIT_RE.search(t) or not _NUMBER_RE.match(t):
        raise InvalidNumberError(raw)

    try:
        value = Decimal(t) * scale
    except InvalidOperation as e:
        raise InvalidNumberError(raw) from e

    out = int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return -out if neg else out
