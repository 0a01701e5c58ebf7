"""Register filtering and CSV export for the Sales/Purchase views."""
from __future__ import annotations
import csv
import io
from datetime import date
from typing import Iterable

from .models import RegisterKind, Transaction

CSV_HEADERS = ["Date", "Invoice No", "Party Name", "Amount", "Status"]


def filter_transactions(rows: Iterable[Transaction], search: str = "", status: str = "All") -> list[Transaction]:
    """
    Case-insensitive match on party name or invoice number, plus an exact
    status filter. ``status="All"`` keeps every status.
    """
    needle = (search or "").strip().lower()
    out = []
    for row in rows:
        if needle and needle not in row.party_name.lower() and needle not in row.invoice_no.lower():
            continue
        if status and status != "All" and row.status.value != status:
            continue
        out.append(row)
    return out


def _amount(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def transactions_to_csv(rows: Iterable[Transaction]) -> str:
    """CSV text with dates as DD/MM/YYYY; text fields quoted, amounts bare."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow([
            row.date.strftime("%d/%m/%Y"),
            row.invoice_no,
            row.party_name,
            _amount(row.amount),
            row.status.value,
        ])
    return buf.getvalue()


def export_filename(kind: RegisterKind | str, today: date | None = None) -> str:
    today = today or date.today()
    return f"{RegisterKind(kind).value}_Register_{today.isoformat()}.csv"
