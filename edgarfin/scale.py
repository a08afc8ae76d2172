"""
Unit disclosure detection ("$ in Millions", "(in thousands, except per share data)").

A statement page states its scale once, near the top; the detected ScaleContext is
frozen for the rest of the document.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from edgarfin.amounts import normalize_number
from edgarfin.errors import InvalidNumberError
from edgarfin.fields import FinancialFieldType, UnitKind, unit_kind
from edgarfin.table_rows import Row, RowTokenizer

UNIT_MULTIPLIERS = {
    "thousands": 1_000,
    "millions": 1_000_000,
    "billions": 1_000_000_000,
}

_UNIT = r"(thousands|millions|billions)"
SHARES_UNITS_RE = re.compile(r"shares\s+in\s+" + _UNIT, re.IGNORECASE)
MONEY_UNITS_RE = re.compile(
    r"\$\s*in\s+" + _UNIT + r"|\bin\s+" + _UNIT + r"\s+of\s+(?:u\.?s\.?\s+)?dollars|\bin\s+" + _UNIT,
    re.IGNORECASE,
)
EXCEPT_SHARES_RE = re.compile(r"except\s+(?:for\s+)?(?:number\s+of\s+)?shares?\b(?!\s+per)", re.IGNORECASE)


@dataclass(frozen=True)
class ScaleContext:
    money: int = 1
    shares: int = 1

    def multiplier_for(self, field: FinancialFieldType) -> int:
        return self.shares if unit_kind(field) is UnitKind.SHARES else self.money

    @property
    def units_hint(self) -> str:
        return {v: k for k, v in UNIT_MULTIPLIERS.items()}.get(self.money, "units")


def _unit_of(m: re.Match) -> int:
    word = next(g for g in m.groups() if g)
    return UNIT_MULTIPLIERS[word.lower()]


def detect_scale(texts: Iterable[str]) -> ScaleContext:
    """
    Return the first unit disclosure found in `texts` (scanned in order).

    "shares in X" sets the share multiplier; a money disclosure sets the money
    multiplier and, when it is narrative and does not carve shares out
    ("except share data"), the share multiplier as well. Defaults to 1 for anything not disclosed.
    """
    money: Optional[int] = None
    shares: Optional[int] = None

    for text in texts:
        if not text:
            continue
        if shares is None:
            m = SHARES_UNITS_RE.search(text)
            if m:
                shares = _unit_of(m)
                text = text[: m.start()] + text[m.end():]
        if money is None:
            m = MONEY_UNITS_RE.search(text)
            if m:
                money = _unit_of(m)
                # "$ in Millions" and "in thousands of dollars" name the currency, so they
                # scale dollars only; "(in thousands, except per share data)" covers
                # share counts too.
                dollar_only = m.group(1) is not None or m.group(2) is not None
                if shares is None and not dollar_only and not EXCEPT_SHARES_RE.search(text):
                    shares = money
        if money is not None and shares is not None:
            break

    return ScaleContext(money=money or 1, shares=shares or 1)


def _has_value_cell(row: Row) -> bool:
    for cell in row[1:]:
        if not cell:
            continue
        try:
            normalize_number(cell)
            return True
        except InvalidNumberError:
            continue
    return False


def read_header_rows(tokenizer: RowTokenizer, *, max_rows: int = 50) -> List[Row]:
    """
    Read rows up to and including the first one that carries a numeric value cell.

    The rows are returned for the caller to replay; nothing is lost to detection.
    """
    rows: List[Row] = []
    for row in tokenizer:
        rows.append(row)
        if _has_value_cell(row) or len(rows) >= max_rows:
            break
    return rows


def detect_document_scale(tokenizer: RowTokenizer) -> Tuple[ScaleContext, List[Row]]:
    """Detect the scale from the preamble and header rows; return it with the rows read."""
    rows = read_header_rows(tokenizer)
    texts = [tokenizer.preamble] + [" ".join(r) for r in rows]
    return detect_scale(texts), rows
