"""
Canonical financial fields and the ordered keyword table used to classify row labels.

Classification is a plain substring walk: the label is lower-cased and the first
KeywordEntry whose keyword occurs in it decides the field. Order is priority, so
specific phrases must sit ahead of generic ones that would also match.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class FinancialFieldType(str, Enum):
    SHARES_OUTSTANDING = "Shares Outstanding"
    REVENUE = "Revenue"
    COST_OF_REVENUE = "Cost Of Revenue"
    GROSS_MARGIN = "Gross Margin"
    OPERATING_INCOME = "Operational Income"
    OPERATING_EXPENSE = "Operational Expense"
    NET_INCOME = "Net Income"
    OPERATING_CASH_FLOW = "Operating Cash Flow"
    CAPITAL_EXPENDITURE = "Capital Expenditure"
    LONG_TERM_DEBT = "Long-Term debt"
    SHORT_TERM_DEBT = "Short-Term debt"
    CURRENT_LIABILITIES = "Current Liabilities"
    DEFERRED_REVENUE = "Deferred revenue"
    RETAINED_EARNINGS = "Retained Earnings"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


class UnitKind(str, Enum):
    MONEY = "money"
    SHARES = "shares"


SHARE_FIELDS = frozenset({FinancialFieldType.SHARES_OUTSTANDING})


def unit_kind(field: FinancialFieldType) -> UnitKind:
    return UnitKind.SHARES if field in SHARE_FIELDS else UnitKind.MONEY


@dataclass(frozen=True)
class KeywordEntry:
    field: FinancialFieldType
    keyword: str  # lower-case substring


KeywordTable = Tuple[KeywordEntry, ...]

_F = FinancialFieldType

KEYWORD_TABLE: KeywordTable = tuple(
    KeywordEntry(f, kw)
    for f, kw in [
        # Masks: rows that would otherwise be caught by a generic entry below
        (_F.UNKNOWN, "per share"),
        (_F.UNKNOWN, "non-operating"),
        (_F.UNKNOWN, "nonoperating"),
        (_F.UNKNOWN, "depreciation"),
        (_F.UNKNOWN, "proceeds from"),
        # Cost rows ahead of revenue ("Cost of net revenues" must not read as revenue)
        (_F.COST_OF_REVENUE, "cost of sales"),
        (_F.COST_OF_REVENUE, "cost of revenue"),
        (_F.COST_OF_REVENUE, "cost of net sales"),
        (_F.COST_OF_REVENUE, "cost of net revenue"),
        (_F.REVENUE, "net revenue"),
        (_F.REVENUE, "net sales"),
        (_F.REVENUE, "total revenue"),
        (_F.REVENUE, "total sales"),
        (_F.GROSS_MARGIN, "gross margin"),
        (_F.GROSS_MARGIN, "gross profit"),
        (_F.SHARES_OUTSTANDING, "shares outstanding"),
        (_F.OPERATING_EXPENSE, "operating expenses"),
        (_F.OPERATING_INCOME, "operating income"),
        (_F.OPERATING_INCOME, "operating (loss)"),
        (_F.OPERATING_INCOME, "operating loss"),
        (_F.NET_INCOME, "net income"),
        (_F.OPERATING_CASH_FLOW, "operating activities"),
        (_F.CAPITAL_EXPENDITURE, "plant and equipment"),
        (_F.CAPITAL_EXPENDITURE, "capital expen"),
        (_F.SHORT_TERM_DEBT, "current portion of long-term"),
        (_F.LONG_TERM_DEBT, "long term debt"),
        (_F.LONG_TERM_DEBT, "long-term debt"),
        (_F.CURRENT_LIABILITIES, "total current liabilities"),
        (_F.DEFERRED_REVENUE, "deferred revenue"),
        (_F.RETAINED_EARNINGS, "retained earnings"),
    ]
)


def classify(label: str, table: KeywordTable = KEYWORD_TABLE) -> FinancialFieldType:
    """Map a row label to a canonical field; UNKNOWN when no keyword occurs in it."""
    key = (label or "").lower()
    if not key:
        return FinancialFieldType.UNKNOWN
    for entry in table:
        if entry.keyword in key:
            return entry.field
    return FinancialFieldType.UNKNOWN


def unreachable_keywords(table: KeywordTable = KEYWORD_TABLE) -> List[Tuple[KeywordEntry, KeywordEntry]]:
    """
    Return (shadowed, shadowing) pairs: entries whose own keyword is already caught
    by an earlier entry, so they can never decide a classification.
    """
    out: List[Tuple[KeywordEntry, KeywordEntry]] = []
    for j, later in enumerate(table):
        for earlier in table[:j]:
            if earlier.keyword in later.keyword:
                out.append((later, earlier))
                break
    return out
