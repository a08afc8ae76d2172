"""JSON artifacts for extracted filings, keyed by canonical field names."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from edgarfin.records import (
    BalanceSheetData,
    CashFlowData,
    EntityData,
    OpsData,
    schema_for,
)


@dataclass
class FinancialReport:
    form: str
    entity: Optional[EntityData] = None
    ops: Optional[OpsData] = None
    balance_sheet: Optional[BalanceSheetData] = None
    cash_flow: Optional[CashFlowData] = None


@dataclass
class Filing:
    date: str
    report: FinancialReport


@dataclass
class Company:
    ticker: str
    filings: List[Filing] = field(default_factory=list)


# Report attribute -> (JSON section name, record type)
_SECTIONS = [
    ("entity", "Entity Information", EntityData),
    ("ops", "Operational Information", OpsData),
    ("balance_sheet", "Balance Sheet Information", BalanceSheetData),
    ("cash_flow", "Cash Flow Information", CashFlowData),
]


def record_to_dict(record: Any) -> Dict[str, int]:
    return {b.field.value: int(getattr(record, b.attr)) for b in schema_for(record).bindings}


def record_from_dict(record_type: type, data: Dict[str, Any]) -> Any:
    record = record_type()
    for b in schema_for(record_type).bindings:
        if b.field.value in data:
            setattr(record, b.attr, int(data[b.field.value]))
    return record


def report_to_dict(report: FinancialReport) -> Dict[str, Any]:
    out: Dict[str, Any] = {"Filing Type": report.form}
    for attr, name, _ in _SECTIONS:
        rec = getattr(report, attr)
        if rec is not None:
            out[name] = record_to_dict(rec)
    return out


def report_from_dict(data: Dict[str, Any]) -> FinancialReport:
    report = FinancialReport(form=str(data.get("Filing Type", "")))
    for attr, name, rtype in _SECTIONS:
        if name in data:
            setattr(report, attr, record_from_dict(rtype, data[name]))
    return report


def company_to_dict(company: Company) -> Dict[str, Any]:
    return {
        "Company": company.ticker,
        "Financial Reports": [
            {"Report date": f.date, "Financial Data": report_to_dict(f.report)} for f in company.filings
        ],
    }


def company_from_dict(data: Dict[str, Any]) -> Company:
    return Company(
        ticker=str(data.get("Company", "")),
        filings=[
            Filing(date=str(f.get("Report date", "")), report=report_from_dict(f.get("Financial Data") or {}))
            for f in data.get("Financial Reports") or []
        ],
    )


def write_company_json(company: Company, out_dir: Path) -> Path:
    out_dir = out_dir.expanduser().resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{company.ticker.upper()}.json"
    out_path.write_text(json.dumps(company_to_dict(company), indent=4, ensure_ascii=False), encoding="utf-8")
    return out_path


def load_company_json(path: Path) -> Company:
    return company_from_dict(json.loads(path.read_text(encoding="utf-8")))
