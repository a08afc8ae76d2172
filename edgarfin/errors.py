"""Error kinds raised by the extraction core."""
from __future__ import annotations

from typing import Any, Iterable, Optional


class ExtractionError(RuntimeError):
    pass


class InvalidNumberError(ExtractionError, ValueError):
    """A value cell held no digits after cleaning."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Not a number: {raw!r}")


class FieldNotApplicableError(ExtractionError):
    """The classified field has no slot on the target record shape."""

    def __init__(self, field: Any, record_type: type):
        self.field = field
        self.record_type = record_type
        super().__init__(f"{record_type.__name__} has no attribute for field: {field}")


class MissingFieldsError(ExtractionError):
    def __init__(self, missing: Iterable[str]):
        self.missing = tuple(missing)
        super().__init__("[" + ",".join(self.missing) + "] attributes did not parse")


class StreamError(ExtractionError):
    """The document stream itself failed; `record` holds whatever was populated."""

    def __init__(self, message: str, *, record: Optional[Any] = None):
        self.record = record
        super().__init__(message)
