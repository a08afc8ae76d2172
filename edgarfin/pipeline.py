from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import requests

from edgarfin.errors import StreamError
from edgarfin.extraction import extract_statement
from edgarfin.records import StatementType
from edgarfin.sec_edgar import (
    EdgarStatementFetcher,
    FilingRef,
    SecEdgarError,
    fetch_ticker_cik_map,
    get_company_submissions,
    select_filings,
)
from edgarfin.serialize import Company, Filing, FinancialReport, write_company_json

# Statement type -> FinancialReport attribute
_REPORT_ATTRS: Dict[StatementType, str] = {
    StatementType.ENTITY: "entity",
    StatementType.OPERATIONS: "ops",
    StatementType.BALANCE_SHEET: "balance_sheet",
    StatementType.CASH_FLOW: "cash_flow",
}

ALL_STATEMENTS: Tuple[StatementType, ...] = tuple(_REPORT_ATTRS)


class StatementFetcher(Protocol):
    def fetch(self, filing: FilingRef, statement: StatementType) -> bytes:
        ...


def build_financial_report(
    filing: FilingRef,
    statements: Iterable[StatementType],
    fetcher: StatementFetcher,
) -> FinancialReport:
    """
    Run one extraction per statement type for a filing.

    A statement that cannot be fetched or read is left out of the report; one that
    parsed with gaps is kept as-is and the gaps are reported.
    """
    tag = f"[{filing.ticker} {filing.form} {filing.report_date}]"
    report = FinancialReport(form=filing.form)

    for statement in statements:
        statement = StatementType(statement)
        try:
            doc = fetcher.fetch(filing, statement)
        except SecEdgarError as e:
            print(f"{tag} {statement.value}: skipped ({e})", flush=True)
            continue

        try:
            result = extract_statement(doc, statement)
        except StreamError as e:
            print(f"{tag} {statement.value}: unreadable document ({e})", flush=True)
            continue

        if result.ok:
            print(
                f"{tag} {statement.value}: complete after {result.rows_scanned} rows ({result.scale.units_hint})",
                flush=True,
            )
        else:
            print(f"{tag} {statement.value}: {result.validation.notes}", flush=True)
        setattr(report, _REPORT_ATTRS[statement], result.record)

    return report


def run_company(
    ticker: str,
    *,
    forms: Sequence[str] = ("10-K",),
    statements: Sequence[StatementType] = ALL_STATEMENTS,
    limit: Optional[int] = 1,
    cache_dir: Optional[Path] = None,
    min_interval_s: float = 0.2,
    session: Optional[requests.Session] = None,
    fetcher: Optional[StatementFetcher] = None,
) -> Company:
    ticker = ticker.upper().strip()
    cache_dir = cache_dir.expanduser().resolve() if cache_dir else None

    ticker_cik = fetch_ticker_cik_map(
        cache_path=(cache_dir / "ticker_cik.json") if cache_dir else None,
        min_interval_s=min_interval_s,
        session=session,
    )
    if ticker not in ticker_cik:
        raise SecEdgarError(f"Ticker not found in SEC mapping: {ticker}")

    cik = ticker_cik[ticker]
    print(f"[{ticker}] Fetching submissions for CIK {cik}...", flush=True)
    subs = get_company_submissions(cik, min_interval_s=min_interval_s, cache_dir=cache_dir, session=session)
    filings = select_filings(ticker, cik, subs, forms=forms, limit=limit)
    print(f"[{ticker}] {len(filings)} filing(s) selected", flush=True)

    fetcher = fetcher or EdgarStatementFetcher(min_interval_s=min_interval_s, session=session)
    company = Company(ticker=ticker)
    for filing in filings:
        report = build_financial_report(filing, statements, fetcher)
        company.filings.append(Filing(date=filing.report_date, report=report))
    return company


def run_tickers(
    tickers: Iterable[str],
    out_dir: Path,
    **kwargs,
) -> Dict[str, Tuple[bool, str]]:
    """Extract and write one JSON file per ticker.

    Returns: ticker -> (success, json_path_or_error_message)
    """
    ticker_list = [str(t).upper().strip() for t in tickers if str(t).strip()]
    total = len(ticker_list)
    results: Dict[str, Tuple[bool, str]] = {}
    for idx, t in enumerate(ticker_list, 1):
        print(f"[{idx}/{total}] Processing {t}...", flush=True)
        try:
            company = run_company(t, **kwargs)
            path = write_company_json(company, out_dir)
            print(f"[{idx}/{total}] ✓ {t} completed: {path}", flush=True)
            results[t] = (True, str(path))
        except (SecEdgarError, requests.RequestException, OSError) as e:
            print(f"[{idx}/{total}] ✗ {t} failed: {type(e).__name__}: {e}", flush=True)
            results[t] = (False, f"{type(e).__name__}: {e}")
    return results


def _parse_args(argv: Optional[List[str]] = None) -> Dict[str, object]:
    import argparse

    p = argparse.ArgumentParser(description="Extract financial statement figures from SEC EDGAR filings.")
    p.add_argument("--tickers", required=True, help="Comma-separated tickers, e.g. MSFT,AAPL,...")
    p.add_argument("--forms", default="10-K", help="Comma-separated form types, e.g. 10-K,10-Q")
    p.add_argument(
        "--statements",
        default=",".join(s.value for s in ALL_STATEMENTS),
        help="Comma-separated statement types: entity,operations,balance_sheet,cash_flow",
    )
    p.add_argument("--limit", type=int, default=1, help="Filings per ticker (most recent first)")
    p.add_argument("--out-dir", default="data/financials")
    p.add_argument("--cache-dir", default=None)
    p.add_argument("--min-interval", type=float, default=0.2, help="Seconds between SEC requests")
    args = p.parse_args(argv)
    return {
        "tickers": [t.strip() for t in args.tickers.split(",") if t.strip()],
        "forms": tuple(f.strip() for f in args.forms.split(",") if f.strip()),
        "statements": tuple(StatementType(s.strip()) for s in args.statements.split(",") if s.strip()),
        "limit": args.limit,
        "out_dir": Path(args.out_dir),
        "cache_dir": Path(args.cache_dir) if args.cache_dir else None,
        "min_interval_s": args.min_interval,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    results = run_tickers(
        args["tickers"],
        args["out_dir"],
        forms=args["forms"],
        statements=args["statements"],
        limit=args["limit"],
        cache_dir=args["cache_dir"],
        min_interval_s=args["min_interval_s"],
    )
    failed = [t for t, (ok, _) in results.items() if not ok]
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
