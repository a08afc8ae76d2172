"""
Typed statement records and the static field-binding tables that drive population.

Each record shape has a RecordSchema: an ordered tuple of FieldBinding rows saying
which canonical field lands in which attribute, whether the attribute is required
for a complete record, and how to derive it when the filing never states it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

from edgarfin.amounts import normalize_number
from edgarfin.errors import FieldNotApplicableError
from edgarfin.fields import FinancialFieldType

_F = FinancialFieldType


class StatementType(str, Enum):
    ENTITY = "entity"
    OPERATIONS = "operations"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"


@dataclass
class EntityData:
    shares_outstanding: int = 0


@dataclass
class OpsData:
    revenue: int = 0
    cost_of_revenue: int = 0
    gross_margin: int = 0
    operating_income: int = 0
    operating_expense: int = 0
    net_income: int = 0


@dataclass
class CashFlowData:
    operating_cash_flow: int = 0
    capital_expenditure: int = 0


@dataclass
class BalanceSheetData:
    long_term_debt: int = 0
    short_term_debt: int = 0
    current_liabilities: int = 0
    deferred_revenue: int = 0
    retained_earnings: int = 0


@dataclass(frozen=True)
class FieldBinding:
    field: FinancialFieldType
    attr: str
    required: bool = True
    derive: Optional[Callable[[Any], int]] = None


@dataclass(frozen=True)
class RecordSchema:
    record_type: type
    bindings: Tuple[FieldBinding, ...]

    def binding_for(self, field: FinancialFieldType) -> Optional[FieldBinding]:
        for b in self.bindings:
            if b.field == field:
                return b
        return None

    def new_record(self) -> Any:
        return self.record_type()


def derive_gross_margin(ops: OpsData) -> int:
    return ops.revenue - ops.cost_of_revenue


ENTITY_SCHEMA = RecordSchema(
    EntityData,
    (FieldBinding(_F.SHARES_OUTSTANDING, "shares_outstanding"),),
)

OPS_SCHEMA = RecordSchema(
    OpsData,
    (
        FieldBinding(_F.REVENUE, "revenue"),
        FieldBinding(_F.COST_OF_REVENUE, "cost_of_revenue"),
        FieldBinding(_F.GROSS_MARGIN, "gross_margin", derive=derive_gross_margin),
        FieldBinding(_F.OPERATING_INCOME, "operating_income"),
        FieldBinding(_F.OPERATING_EXPENSE, "operating_expense"),
        FieldBinding(_F.NET_INCOME, "net_income"),
    ),
)

CASH_FLOW_SCHEMA = RecordSchema(
    CashFlowData,
    (
        FieldBinding(_F.OPERATING_CASH_FLOW, "operating_cash_flow"),
        FieldBinding(_F.CAPITAL_EXPENDITURE, "capital_expenditure"),
    ),
)

BALANCE_SHEET_SCHEMA = RecordSchema(
    BalanceSheetData,
    (
        FieldBinding(_F.LONG_TERM_DEBT, "long_term_debt"),
        FieldBinding(_F.SHORT_TERM_DEBT, "short_term_debt"),
        FieldBinding(_F.CURRENT_LIABILITIES, "current_liabilities"),
        FieldBinding(_F.DEFERRED_REVENUE, "deferred_revenue", required=False),
        FieldBinding(_F.RETAINED_EARNINGS, "retained_earnings"),
    ),
)

SCHEMAS: Mapping[type, RecordSchema] = MappingProxyType(
    {s.record_type: s for s in (ENTITY_SCHEMA, OPS_SCHEMA, CASH_FLOW_SCHEMA, BALANCE_SHEET_SCHEMA)}
)

STATEMENT_SCHEMAS: Mapping[StatementType, RecordSchema] = MappingProxyType(
    {
        StatementType.ENTITY: ENTITY_SCHEMA,
        StatementType.OPERATIONS: OPS_SCHEMA,
        StatementType.BALANCE_SHEET: BALANCE_SHEET_SCHEMA,
        StatementType.CASH_FLOW: CASH_FLOW_SCHEMA,
    }
)


def schema_for(record: Any) -> RecordSchema:
    rtype = record if isinstance(record, type) else type(record)
    try:
        return SCHEMAS[rtype]
    except KeyError:
        raise TypeError(f"No record schema registered for {rtype.__name__}") from None


def set_field(
    record: Any,
    field: FinancialFieldType,
    raw: str,
    scale: int = 1,
    *,
    schema: Optional[RecordSchema] = None,
) -> bool:
    """
    Store `raw` (normalized at `scale`) in the attribute bound to `field`.

    Returns False, leaving the record untouched, when the attribute already holds a
    value: the first matching row wins. Raises FieldNotApplicableError when the
    record shape has no slot for `field`, and InvalidNumberError when `raw` does not
    parse.
    """
    schema = schema or schema_for(record)
    binding = schema.binding_for(field)
    if binding is None:
        raise FieldNotApplicableError(field, schema.record_type)

    if getattr(record, binding.attr) != 0:
        return False

    setattr(record, binding.attr, normalize_number(raw, scale))
    return True
