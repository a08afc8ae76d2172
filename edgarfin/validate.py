"""Completeness checks and derived fields for populated statement records."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from edgarfin.errors import MissingFieldsError
from edgarfin.records import RecordSchema, schema_for


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    missing: Tuple[str, ...] = ()
    derived: Tuple[str, ...] = ()

    @property
    def notes(self) -> str:
        if self.ok:
            return "OK"
        return f"Missing required attributes: {', '.join(self.missing)}"

    def raise_for_missing(self) -> None:
        if not self.ok:
            raise MissingFieldsError(self.missing)


def finalize(record: Any, schema: Optional[RecordSchema] = None) -> ValidationResult:
    """
    Check every required attribute; fill derivable ones that are still zero.

    A derivation that evaluates to zero counts as missing. All gaps are reported
    together rather than stopping at the first.
    """
    schema = schema or schema_for(record)
    missing: List[str] = []
    derived: List[str] = []

    for b in schema.bindings:
        if not b.required or getattr(record, b.attr) != 0:
            continue
        value = b.derive(record) if b.derive is not None else 0
        if value != 0:
            setattr(record, b.attr, value)
            derived.append(b.attr)
        else:
            missing.append(b.attr)

    return ValidationResult(ok=not missing, missing=tuple(missing), derived=tuple(derived))


def is_complete(record: Any, schema: Optional[RecordSchema] = None) -> bool:
    """Would `finalize` succeed right now? Does not modify the record."""
    schema = schema or schema_for(record)
    for b in schema.bindings:
        if not b.required or getattr(record, b.attr) != 0:
            continue
        if b.derive is None or b.derive(record) == 0:
            return False
    return True
