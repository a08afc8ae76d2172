from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup, Tag

from edgarfin.records import StatementType

SEC_TICKER_CIK_URL = "https://www.sec.gov/files/company_tickers.json"
SEC_SUBMISSIONS_URL_TMPL = "https://data.sec.gov/submissions/CIK{cik10}.json"
SEC_ARCHIVES_BASE = "https://www.sec.gov/Archives/edgar/data"


class SecEdgarError(RuntimeError):
    pass


@dataclass(frozen=True)
class FilingRef:
    ticker: str
    cik: int
    form: str
    accession_number: str
    filing_date: str
    report_date: str
    primary_document: str

    @property
    def cik10(self) -> str:
        return f"{self.cik:010d}"

    @property
    def accession_no_dashes(self) -> str:
        return self.accession_number.replace("-", "")

    @property
    def base_url(self) -> str:
        return f"{SEC_ARCHIVES_BASE}/{self.cik}/{self.accession_no_dashes}"

    @property
    def filing_summary_url(self) -> str:
        return f"{self.base_url}/FilingSummary.xml"

    def document_url(self, name: str) -> str:
        return f"{self.base_url}/{name}"


@dataclass(frozen=True)
class StatementReport:
    """One rendered statement page listed in a filing's FilingSummary.xml."""
    short_name: str
    long_name: str
    html_file: str
    report_type: str


# Phrases that identify (must) or disqualify (avoid) a report for each statement type
STATEMENT_REPORT_PHRASES: Dict[StatementType, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    StatementType.ENTITY: (
        ("document and entity information", "cover"),
        ("parenthetical",),
    ),
    StatementType.OPERATIONS: (
        (
            "statement of operations",
            "statements of operations",
            "statements of consolidated operations",
            "income statement",
            "statement of income",
            "statements of income",
            "statement of earnings",
            "statements of earnings",
        ),
        ("comprehensive", "parenthetical", "balance sheet", "cash flows", "equity"),
    ),
    StatementType.BALANCE_SHEET: (
        ("balance sheet", "financial position", "financial condition"),
        ("parenthetical", "cash flows", "operations", "income", "equity"),
    ),
    StatementType.CASH_FLOW: (
        ("cash flows", "cash flow"),
        ("parenthetical", "balance sheet", "operations", "equity"),
    ),
}


def _sec_user_agent() -> str:
    ua = os.getenv("SEC_USER_AGENT")
    if not ua or "@" not in ua:
        raise SecEdgarError(
            "SEC_USER_AGENT env var must be set and include contact info (e.g., email). "
            'Example: SEC_USER_AGENT="EdgarFin/0.1 (your.email@domain.com)"'
        )
    return ua


def _session() -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": _sec_user_agent(),
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json,text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Connection": "keep-alive",
        }
    )
    return s


# Timestamp of the most recent SEC request, shared by every caller in the process
_LAST_CALL_TS: List[float] = []


def _sleep_rate_limit(min_interval_s: float, last_call_ts: Optional[List[float]] = None) -> None:
    """Ensure at least min_interval_s seconds between SEC requests."""
    if last_call_ts is None:
        last_call_ts = _LAST_CALL_TS
    now = time.time()
    if last_call_ts and (now - last_call_ts[0]) < min_interval_s:
        time.sleep(min_interval_s - (now - last_call_ts[0]))
    if last_call_ts:
        last_call_ts[0] = time.time()
    else:
        last_call_ts.append(time.time())


def _read_json_cache(path: Optional[Path]) -> Optional[Any]:
    if path and path.exists():
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    return None


def _write_json_cache(path: Optional[Path], data: Any) -> None:
    if not path:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)


def _get_json(url: str, *, what: str, min_interval_s: float, session: Optional[requests.Session]) -> Any:
    s = session or _session()
    _sleep_rate_limit(min_interval_s)
    r = s.get(url, timeout=30)
    if r.status_code != 200:
        raise SecEdgarError(f"Failed to fetch {what}: HTTP {r.status_code}")
    return r.json()


def fetch_ticker_cik_map(
    cache_path: Optional[Path] = None,
    *,
    min_interval_s: float = 0.2,
    session: Optional[requests.Session] = None,
) -> Dict[str, int]:
    """Fetch SEC ticker->CIK mapping and normalize tickers to uppercase.

    If cache_path exists, reads from cache. If provided and missing, writes cache.
    """
    cached = _read_json_cache(cache_path)
    if cached is not None:
        return {k.upper(): int(v) for k, v in cached.items()}

    data = _get_json(SEC_TICKER_CIK_URL, what="ticker->CIK map", min_interval_s=min_interval_s, session=session)
    out: Dict[str, int] = {}
    for rec in data.values():
        t = str(rec.get("ticker", "")).upper().strip()
        cik = rec.get("cik_str")
        if t and cik is not None:
            out[t] = int(cik)

    _write_json_cache(cache_path, out)
    return out


def get_company_submissions(
    cik: int,
    *,
    min_interval_s: float = 0.2,
    cache_dir: Optional[Path] = None,
    session: Optional[requests.Session] = None,
) -> Dict[str, Any]:
    """Fetch company submissions JSON for a given CIK."""
    cik10 = f"{cik:010d}"
    cache_path = (cache_dir / f"CIK{cik10}.json") if cache_dir else None

    cached = _read_json_cache(cache_path)
    if cached is not None:
        return cached

    data = _get_json(
        SEC_SUBMISSIONS_URL_TMPL.format(cik10=cik10),
        what=f"submissions for CIK {cik10}",
        min_interval_s=min_interval_s,
        session=session,
    )
    _write_json_cache(cache_path, data)
    return data


def select_filings(
    ticker: str,
    cik: int,
    submissions: Dict[str, Any],
    *,
    forms: Iterable[str] = ("10-K",),
    limit: Optional[int] = None,
) -> List[FilingRef]:
    """Select filings of the given forms from submissions, most recent first."""
    recent = submissions.get("filings", {}).get("recent", {})
    form_list: List[str] = recent.get("form", [])
    accession: List[str] = recent.get("accessionNumber", [])
    filing_dates: List[str] = recent.get("filingDate", [])
    primary_docs: List[str] = recent.get("primaryDocument", [])
    report_dates: List[str] = recent.get("reportDate", []) or [""] * len(form_list)

    if not (len(form_list) == len(accession) == len(filing_dates) == len(primary_docs) == len(report_dates)):
        raise SecEdgarError(f"Malformed submissions JSON for {ticker}/{cik}")

    allowed = {f.upper() for f in forms}
    out: List[FilingRef] = []
    for form, acc, fdate, rdate, pdoc in zip(form_list, accession, filing_dates, report_dates, primary_docs):
        if form.upper() not in allowed:
            continue
        out.append(
            FilingRef(
                ticker=ticker.upper(),
                cik=cik,
                form=form,
                accession_number=acc,
                filing_date=fdate,
                report_date=rdate or fdate,
                primary_document=pdoc,
            )
        )
        if limit is not None and len(out) >= limit:
            break

    if not out:
        raise SecEdgarError(f"No {'/'.join(sorted(allowed))} filings found for {ticker}")
    return out


def _child_text(node: Tag, name: str) -> str:
    child = node.find(name)
    return child.get_text(strip=True) if child else ""


def parse_filing_summary(xml_text: str) -> List[StatementReport]:
    """List the rendered report pages (R1.htm, R2.htm, ...) of a filing."""
    soup = BeautifulSoup(xml_text, "xml")
    reports: List[StatementReport] = []
    for rep in soup.find_all("Report"):
        html_file = _child_text(rep, "HtmlFileName")
        if not html_file:
            continue
        reports.append(
            StatementReport(
                short_name=_child_text(rep, "ShortName"),
                long_name=_child_text(rep, "LongName"),
                html_file=Path(html_file).name,
                report_type=_child_text(rep, "ReportType"),
            )
        )
    return reports


def pick_statement_report(reports: List[StatementReport], statement: StatementType) -> Optional[StatementReport]:
    """Score reports on must/avoid phrases; return the best positive scorer."""
    must, avoid = STATEMENT_REPORT_PHRASES[StatementType(statement)]

    def score(r: StatementReport) -> int:
        t = f"{r.short_name} {r.long_name}".lower()
        s = 10 * sum(1 for m in must if m in t)
        if s == 0:
            return 0
        for a in avoid:
            if a in t:
                s -= 8
        if r.report_type.lower() in ("sheet", "statement"):
            s += 1
        return s

    best: Optional[StatementReport] = None
    best_s = 0
    for r in reports:
        sc = score(r)
        if sc > best_s:
            best_s = sc
            best = r
    return best


class EdgarStatementFetcher:
    """Fetch rendered statement pages for filings over one session.

    Requests share the module-wide rate limit with the JSON lookups above.
    """

    def __init__(self, *, min_interval_s: float = 0.2, session: Optional[requests.Session] = None):
        self.min_interval_s = min_interval_s
        self._session = session
        self._reports: Dict[str, List[StatementReport]] = {}

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = _session()
        return self._session

    def _get(self, url: str, *, timeout: int = 60) -> requests.Response:
        _sleep_rate_limit(self.min_interval_s)
        return self.session.get(url, timeout=timeout)

    def reports(self, filing: FilingRef) -> List[StatementReport]:
        if filing.accession_number not in self._reports:
            r = self._get(filing.filing_summary_url)
            if r.status_code != 200:
                raise SecEdgarError(
                    f"Failed to fetch FilingSummary.xml for {filing.accession_number}: HTTP {r.status_code}"
                )
            self._reports[filing.accession_number] = parse_filing_summary(r.text)
        return self._reports[filing.accession_number]

    def fetch(self, filing: FilingRef, statement: StatementType) -> bytes:
        """Return the raw markup of the statement page for `filing`."""
        report = pick_statement_report(self.reports(filing), statement)
        if report is None:
            raise SecEdgarError(f"No {StatementType(statement).value} report in filing {filing.accession_number}")
        url = filing.document_url(report.html_file)
        r = self._get(url, timeout=120)
        if r.status_code != 200:
            raise SecEdgarError(f"Failed to download statement page: HTTP {r.status_code} ({url})")
        return r.content
