"""
Report Export Service

Turns a list of transactions into a CSV text blob or a PDF byte blob.

CRITICAL: Both exports are PURE. They don't sort, filter, fetch or write.
The caller decides the order of the rows and where the output goes.

The CSV and the PDF share one column order and one header text, so the
two formats can be checked against each other.
"""

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from fpdf import FPDF, XPos, YPos

from expense_tracker.models.transaction import Transaction


REPORT_COLUMNS = ["Date", "Category", "Type", "Amount", "Currency", "USD Amount", "Receipt"]

CSV_DATE_FORMAT = "%Y-%m-%d %H:%M"
PDF_DATE_FORMAT = "%Y-%m-%d"

NO_RECEIPT = "No receipt"

# A4 landscape: 297mm wide, 10mm margins
PDF_COLUMN_WIDTHS = [26, 45, 22, 28, 20, 30, 106]
PDF_ROW_HEIGHT = 8


def format_money(value: Decimal) -> str:
    """Two decimal places, rounded half-up."""
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _report_row(transaction: Transaction, date_format: str) -> list[str]:
    return [
        transaction.occurred_at.strftime(date_format),
        transaction.category,
        transaction.transaction_type,
        format_money(transaction.amount_original),
        transaction.currency_code,
        format_money(transaction.amount_usd),
        transaction.receipt_uri or NO_RECEIPT,
    ]


def summarize(transactions: Sequence[Transaction]) -> tuple[Decimal, Decimal, Decimal]:
    """(total income, total expenses, balance) in USD."""
    income = sum((t.amount_usd for t in transactions if t.is_income), Decimal("0"))
    expenses = sum((t.amount_usd for t in transactions if not t.is_income), Decimal("0"))
    return income, expenses, income - expenses


class ReportExporter:
    """
    Builds CSV and PDF reports.

    Args:
        compress_pdf: Compress PDF page streams. Turn off to get
            human-readable page content.
    """

    def __init__(self, compress_pdf: bool = True):
        self._compress_pdf = compress_pdf

    def to_csv(self, transactions: Sequence[Transaction]) -> str:
        """Header row plus one row per transaction, in input order."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(REPORT_COLUMNS)
        for transaction in transactions:
            writer.writerow(_report_row(transaction, CSV_DATE_FORMAT))
        return output.getvalue()

    def to_pdf(self, transactions: Sequence[Transaction]) -> bytes:
        """Title, income/expense/balance summary, then a 7-column table."""
        pdf = FPDF(orientation="L", unit="mm", format="A4")
        pdf.set_compression(self._compress_pdf)
        pdf.set_margins(10, 10, 10)
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()

        # Title
        pdf.set_font("Helvetica", style="B", size=20)
        pdf.cell(0, 12, "Expense Report", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(4)

        # Summary
        income, expenses, balance = summarize(transactions)
        pdf.set_font("Helvetica", style="B", size=12)
        pdf.cell(0, 7, "Summary:", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", size=12)
        for line in (
            f"Total Income: ${format_money(income)}",
            f"Total Expenses: ${format_money(expenses)}",
            f"Balance: ${format_money(balance)}",
        ):
            pdf.cell(0, 7, line, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(6)

        # Table
        pdf.set_font("Helvetica", style="B", size=10)
        self._write_row(pdf, REPORT_COLUMNS)
        pdf.set_font("Helvetica", size=10)
        for transaction in transactions:
            self._write_row(pdf, _report_row(transaction, PDF_DATE_FORMAT))

        return bytes(pdf.output())

    def _write_row(self, pdf: FPDF, values: list[str]) -> None:
        for width, value in zip(PDF_COLUMN_WIDTHS, values):
            pdf.cell(width, PDF_ROW_HEIGHT, self._fit(pdf, value, width), border=1)
        pdf.ln(PDF_ROW_HEIGHT)

    def _fit(self, pdf: FPDF, text: str, width: float) -> str:
        """Make text printable with core fonts and short enough for its cell."""
        text = text.encode("latin-1", "replace").decode("latin-1")
        available = width - 2 * pdf.c_margin
        if pdf.get_string_width(text) <= available:
            return text
        while text and pdf.get_string_width(text + "...") > available:
            text = text[:-1]
        return text + "..."
