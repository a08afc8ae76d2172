"""
Row-by-row extraction of one statement record from one filing document.

Flow per document:
  1) read header rows and freeze the unit scale
  2) for each row: classify the label, try value cells left to right, populate
  3) after every successful set, stop as soon as the record is complete
  4) finalize (derive + validate) exactly once
"""
from __future__ import annotations

from dataclasses import dataclass, field
from itertools import chain
from typing import Any, Dict, Optional, Tuple, Union

from edgarfin.errors import FieldNotApplicableError, InvalidNumberError, StreamError
from edgarfin.fields import KEYWORD_TABLE, FinancialFieldType, KeywordTable, classify
from edgarfin.records import STATEMENT_SCHEMAS, RecordSchema, StatementType, set_field
from edgarfin.scale import ScaleContext, detect_document_scale
from edgarfin.table_rows import Row, RowTokenizer, Source
from edgarfin.validate import ValidationResult, finalize, is_complete


@dataclass
class ExtractionResult:
    """Outcome of one extraction call."""
    record: Any
    validation: ValidationResult
    scale: ScaleContext
    rows_scanned: int
    stopped_early: bool                      # True when completeness ended the scan
    applied: Dict[FinancialFieldType, str] = field(default_factory=dict)  # field -> source label

    @property
    def ok(self) -> bool:
        return self.validation.ok

    @property
    def missing(self) -> Tuple[str, ...]:
        return self.validation.missing

    def raise_for_missing(self) -> None:
        self.validation.raise_for_missing()


def _apply_row(
    record: Any,
    row: Row,
    *,
    schema: RecordSchema,
    scale: ScaleContext,
    keywords: KeywordTable,
) -> Optional[FinancialFieldType]:
    """Populate from one row. Returns the field that was newly set, if any."""
    if len(row) < 2:
        return None
    fin_type = classify(row[0], keywords)
    if fin_type is FinancialFieldType.UNKNOWN:
        return None

    multiplier = scale.multiplier_for(fin_type)
    for cell in row[1:]:
        if not cell:
            continue
        try:
            was_set = set_field(record, fin_type, cell, multiplier, schema=schema)
        except InvalidNumberError:
            # "$" or a stray ")" in its own cell; the amount is further right
            continue
        except FieldNotApplicableError:
            return None
        return fin_type if was_set else None
    return None


def extract_statement(
    source: Union[Source, RowTokenizer],
    statement: Union[StatementType, str, RecordSchema],
    *,
    keywords: KeywordTable = KEYWORD_TABLE,
) -> ExtractionResult:
    """
    Extract one statement record from a filing document.

    `statement` selects the record shape (StatementType or its value), or is a
    RecordSchema to use directly. Raises StreamError, with `.record` holding the
    partial record, if the document stream fails; a record with missing required
    attributes is returned (check `.ok` / call `.raise_for_missing()`).
    """
    if isinstance(statement, RecordSchema):
        schema = statement
    else:
        schema = STATEMENT_SCHEMAS[StatementType(statement)]

    tokenizer = source if isinstance(source, RowTokenizer) else RowTokenizer(source)
    record = schema.new_record()
    applied: Dict[FinancialFieldType, str] = {}
    stopped_early = False

    try:
        scale, header_rows = detect_document_scale(tokenizer)
        for row in chain(header_rows, tokenizer):
            fin_type = _apply_row(record, row, schema=schema, scale=scale, keywords=keywords)
            if fin_type is None:
                continue
            applied[fin_type] = row[0]
            if is_complete(record, schema):
                stopped_early = True
                break
    except StreamError as e:
        e.record = record
        raise

    return ExtractionResult(
        record=record,
        validation=finalize(record, schema),
        scale=scale,
        rows_scanned=tokenizer.rows_read,
        stopped_early=stopped_early,
        applied=applied,
    )
