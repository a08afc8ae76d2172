"""Financial statement figure extraction from SEC EDGAR statement pages."""

from edgarfin.errors import (
    ExtractionError,
    FieldNotApplicableError,
    InvalidNumberError,
    MissingFieldsError,
    StreamError,
)
from edgarfin.extraction import ExtractionResult, extract_statement
from edgarfin.fields import KEYWORD_TABLE, FinancialFieldType, KeywordEntry, classify
from edgarfin.amounts import normalize_number
from edgarfin.records import (
    BalanceSheetData,
    CashFlowData,
    EntityData,
    FieldBinding,
    OpsData,
    RecordSchema,
    StatementType,
    set_field,
)
from edgarfin.scale import ScaleContext, detect_scale
from edgarfin.table_rows import RowTokenizer
from edgarfin.validate import ValidationResult, finalize, is_complete

__all__ = [
    "ExtractionError",
    "FieldNotApplicableError",
    "InvalidNumberError",
    "MissingFieldsError",
    "StreamError",
    "ExtractionResult",
    "extract_statement",
    "KEYWORD_TABLE",
    "FinancialFieldType",
    "KeywordEntry",
    "classify",
    "normalize_number",
    "BalanceSheetData",
    "CashFlowData",
    "EntityData",
    "FieldBinding",
    "OpsData",
    "RecordSchema",
    "StatementType",
    "set_field",
    "ScaleContext",
    "detect_scale",
    "RowTokenizer",
    "ValidationResult",
    "finalize",
    "is_complete",
]
