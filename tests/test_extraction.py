"""End-to-end extraction over synthetic statement pages."""
import io
from concurrent.futures import ThreadPoolExecutor

import pytest

from edgarfin.errors import MissingFieldsError, StreamError
from edgarfin.extraction import extract_statement
from edgarfin.fields import FinancialFieldType
from edgarfin.records import (
    EntityData,
    FieldBinding,
    OpsData,
    RecordSchema,
    StatementType,
    derive_gross_margin,
)
from edgarfin.table_rows import RowTokenizer

F = FinancialFieldType


def _page(rows, preamble="<p>Consolidated Statements of Operations (in thousands)</p>"):
    body = "".join("<tr>" + "".join(f"<td>{c}</td>" for c in r) + "</tr>" for r in rows)
    return (
        f"<html><body>{preamble}<table>"
        f"<tr><th></th><th>Year Ended Dec. 31, 2023</th></tr>{body}"
        f"</table></body></html>"
    )


# Operating income is bound but not required, so a populated value would prove the
# row after completeness was read.
PARTIAL_OPS_SCHEMA = RecordSchema(
    OpsData,
    (
        FieldBinding(F.REVENUE, "revenue"),
        FieldBinding(F.COST_OF_REVENUE, "cost_of_revenue"),
        FieldBinding(F.GROSS_MARGIN, "gross_margin", derive=derive_gross_margin),
        FieldBinding(F.NET_INCOME, "net_income"),
        FieldBinding(F.OPERATING_INCOME, "operating_income", required=False),
    ),
)


class TestEndToEnd:
    """A statement page read top to bottom into a populated record."""

    ROWS = [
        ["Total revenues", "$1,000"],
        ["Cost of revenue", "$600"],
        ["Net income", "$250"],
        ["Operating income", "$999"],
        ["Revenues", "$5"],
    ]

    def test_scaled_values_and_derived_gross_margin(self):
        """Values pick up the "(in thousands)" scale; gross margin is derived."""
        result = extract_statement(_page(self.ROWS), PARTIAL_OPS_SCHEMA)
        ops = result.record
        assert result.ok is True
        assert ops.revenue == 1_000_000
        assert ops.cost_of_revenue == 600_000
        assert ops.net_income == 250_000
        assert ops.gross_margin == 400_000
        assert result.validation.derived == ("gross_margin",)
        assert result.scale.money == 1_000

    def test_stops_once_required_fields_are_satisfied(self):
        """Rows after the last required field are never read."""
        result = extract_statement(_page(self.ROWS), PARTIAL_OPS_SCHEMA)
        assert result.stopped_early is True
        assert result.record.operating_income == 0
        assert result.rows_scanned == 4  # header + three data rows
        assert result.applied == {
            F.REVENUE: "Total revenues",
            F.COST_OF_REVENUE: "Cost of revenue",
            F.NET_INCOME: "Net income",
        }

    def test_full_ops_schema_reports_gaps_after_exhaustion(self):
        """Running out of rows still finalizes and lists every gap."""
        rows = self.ROWS[:3]
        result = extract_statement(_page(rows), StatementType.OPERATIONS)
        assert result.ok is False
        assert result.stopped_early is False
        assert result.rows_scanned == 4
        assert result.missing == ("operating_income", "operating_expense")
        assert result.record.gross_margin == 400_000
        with pytest.raises(MissingFieldsError):
            result.raise_for_missing()

    def test_complete_ops_statement(self):
        """Multi-period rows take the first period; "(40" closed in the next cell is negative."""
        rows = [
            ["Net sales", "$", "2,000", "$", "1,800"],
            ["Cost of sales", "1,200", "1,100"],
            ["Gross margin", "800", "700"],
            ["Total operating expenses", "500", "450"],
            ["Operating income", "300", "250"],
            ["Net income", "(40", ")", "10"],
        ]
        result = extract_statement(_page(rows, preamble=""), "operations")
        assert result.ok is True
        ops = result.record
        assert (ops.revenue, ops.cost_of_revenue, ops.gross_margin) == (2000, 1200, 800)
        assert (ops.operating_expense, ops.operating_income, ops.net_income) == (500, 300, -40)
        assert result.validation.derived == ()


class TestRowHandling:
    """How individual rows and their value cells feed the record."""

    def test_first_matching_row_wins(self):
        """A restated row further down does not replace the first value."""
        rows = [["Total revenues", "1,000"], ["Total revenues (restated)", "2,000"]]
        result = extract_statement(_page(rows), StatementType.OPERATIONS)
        assert result.record.revenue == 1_000_000
        assert result.applied[F.REVENUE] == "Total revenues"

    def test_currency_cell_is_skipped_for_the_amount(self):
        """A lone "$" cell fails to parse and the next cell is used."""
        rows = [["Total revenues", "$", "1,000", "$", "900"]]
        result = extract_statement(_page(rows), StatementType.OPERATIONS)
        assert result.record.revenue == 1_000_000

    def test_row_with_only_empty_values_contributes_nothing(self):
        rows = [["Net income", "", " "], ["Net income attributable to parent", "70"]]
        result = extract_statement(_page(rows, preamble=""), StatementType.OPERATIONS)
        assert result.record.net_income == 70
        assert result.applied[F.NET_INCOME] == "Net income attributable to parent"

    def test_rows_for_other_statements_are_ignored(self):
        """Cash flow lines on an operations page are passed over."""
        rows = [["Net cash provided by operating activities", "55"], ["Net income", "10"]]
        result = extract_statement(_page(rows, preamble=""), StatementType.OPERATIONS)
        assert result.record.net_income == 10
        assert F.OPERATING_CASH_FLOW not in result.applied

    def test_unparseable_value_row_is_skipped(self):
        rows = [["Total revenues", "n/a"], ["Net sales", "10"]]
        result = extract_statement(_page(rows, preamble=""), StatementType.OPERATIONS)
        assert result.record.revenue == 10

    def test_component_revenue_lines_do_not_preempt_the_total(self):
        """Product and service lines above "Total revenues" leave Revenue to the total."""
        rows = [
            ["Revenues:"],
            ["Product revenues", "800"],
            ["Service revenues", "200"],
            ["Total revenues", "1,000"],
            ["Cost of revenues", "600"],
        ]
        result = extract_statement(_page(rows), StatementType.OPERATIONS)
        assert result.record.revenue == 1_000_000
        assert result.applied[F.REVENUE] == "Total revenues"
        assert result.record.cost_of_revenue == 600_000
        assert result.record.gross_margin == 400_000

    def test_label_only_rows(self):
        """Section captions with no value cells are passed over."""
        rows = [["Revenues:"], ["Total revenues", "10"]]
        result = extract_statement(_page(rows, preamble=""), StatementType.OPERATIONS)
        assert result.record.revenue == 10


class TestStatements:
    """Each statement type fills its own record."""

    def test_entity_shares_use_share_scale(self):
        """A "$ in Millions" header scales dollars only, not the share count."""
        html = """<table>
          <tr><th>Document and Entity Information - USD ($) $ in Millions</th><th>Jan. 20, 2024</th></tr>
          <tr><td>Entity Registrant Name</td><td>Example Corp</td></tr>
          <tr><td>Entity Common Stock, Shares Outstanding</td><td>1,234,567</td></tr>
          <tr><td>Entity Public Float</td><td>$ 900</td></tr>
        </table>"""
        result = extract_statement(html, StatementType.ENTITY)
        assert isinstance(result.record, EntityData)
        assert result.record.shares_outstanding == 1_234_567
        assert result.ok is True
        assert result.stopped_early is True

    def test_cash_flow_statement(self):
        html = """<table>
          <tr><th>Consolidated Statements of Cash Flows - USD ($) $ in Millions</th><th>12 Months Ended</th></tr>
          <tr><td>Net income</td><td>$ 100</td></tr>
          <tr><td>Depreciation of property, plant and equipment</td><td>30</td></tr>
          <tr><td>Net cash provided by operating activities</td><td>150</td></tr>
          <tr><td>Purchases of property, plant and equipment</td><td>(45)</td></tr>
        </table>"""
        result = extract_statement(html.encode("utf-8"), StatementType.CASH_FLOW)
        cf = result.record
        assert cf.operating_cash_flow == 150_000_000
        assert cf.capital_expenditure == -45_000_000
        assert result.ok is True

    def test_balance_sheet_optional_deferred_revenue(self):
        """The optional field is not waited for once the required ones are in."""
        html = """<p>(in thousands)</p><table>
          <tr><td>Current portion of long-term debt</td><td>20</td></tr>
          <tr><td>Total current liabilities</td><td>300</td></tr>
          <tr><td>Long-term debt, net of current portion</td><td>900</td></tr>
          <tr><td>Retained earnings</td><td>(1,000)</td></tr>
          <tr><td>Deferred revenue</td><td>77</td></tr>
        </table>"""
        result = extract_statement(io.BytesIO(html.encode("utf-8")), StatementType.BALANCE_SHEET)
        bs = result.record
        assert (bs.short_term_debt, bs.current_liabilities, bs.long_term_debt) == (20_000, 300_000, 900_000)
        assert bs.retained_earnings == -1_000_000
        assert result.stopped_early is True
        assert bs.deferred_revenue == 0  # optional, after completeness

    def test_accepts_prepared_tokenizer(self):
        tok = RowTokenizer(_page([["Net income", "3"]], preamble=""))
        result = extract_statement(tok, StatementType.OPERATIONS)
        assert result.record.net_income == 3

    def test_unknown_statement_name(self):
        with pytest.raises(ValueError):
            extract_statement("<table></table>", "income_statement")


class TestFailures:
    """Stream failures and empty input."""

    def test_stream_error_carries_partial_record(self):
        """A read failure mid-document surfaces the record built so far."""
        head = _page([["Total revenues", "1,000"]] * 50).encode("utf-8")[:600]

        class FailingStream:
            def __init__(self):
                self.calls = 0

            def read(self, n):
                self.calls += 1
                if self.calls == 1:
                    return head
                raise OSError("truncated transfer")

        with pytest.raises(StreamError) as exc:
            extract_statement(FailingStream(), StatementType.OPERATIONS)
        assert isinstance(exc.value.record, OpsData)

    def test_empty_document(self):
        result = extract_statement("", StatementType.CASH_FLOW)
        assert result.ok is False
        assert result.rows_scanned == 0
        assert result.missing == ("operating_cash_flow", "capital_expenditure")


def test_concurrent_extractions_are_independent():
    """Parallel calls share the keyword table but nothing else."""
    docs = [_page([["Total revenues", str(i)], ["Net income", str(i * 2)]], preamble="") for i in range(1, 21)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda d: extract_statement(d, StatementType.OPERATIONS), docs))
    for i, r in enumerate(results, 1):
        assert r.record.revenue == i
        assert r.record.net_income == i * 2
