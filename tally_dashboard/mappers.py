"""
Report mappers.

Translate generator dicts (demo mode) or parsed envelopes (live mode) into
the canonical shapes in ``tally_dashboard.models``. Mappers never raise on
missing data: absent fields fall back to defaults.

Live mapping for KPIs, monthly trend, receivables and alerts has no field
extraction rules yet. Those reports return zeroed/empty defaults and are
listed in LIVE_MAPPING_GAPS.
"""
from __future__ import annotations
from typing import Iterable, Optional
from loguru import logger

from .models import (
    Alert,
    AdvisoryTotals,
    AgingBuckets,
    Company,
    DashboardBundle,
    DashboardKPIs,
    LineItem,
    MonthlyDataPoint,
    ReceivablesRow,
    RegisterKind,
    Transaction,
    TransactionPage,
)
from .parsers.base import ParsedDocument
from .parsers.masters import parse_companies
from .parsers.transactions import parse_vouchers

LIVE_MAPPING_GAPS = frozenset({"kpis", "monthly", "receivables", "alerts"})


def paginate(rows: list, page: int, page_size: int) -> list:
    """1-indexed page slice; pages outside the collection are empty."""
    if page < 1 or page_size <= 0:
        return []
    start = (page - 1) * page_size
    return rows[start:start + page_size]


# --- generator output -------------------------------------------------------

def map_companies(rows: Iterable[dict]) -> list[Company]:
    return [Company(**r) for r in rows]


def map_kpis(d: dict) -> DashboardKPIs:
    return DashboardKPIs(**d)


def map_monthly(rows: Iterable[dict]) -> list[MonthlyDataPoint]:
    return [MonthlyDataPoint(**r) for r in rows]


def map_receivables(rows: Iterable[dict]) -> list[ReceivablesRow]:
    return [
        ReceivablesRow(
            customer_name=r["customer_name"],
            total_due=r["total_due"],
            buckets=AgingBuckets.model_validate(r["buckets"]),
        )
        for r in rows
    ]


def map_alerts(rows: Iterable[dict]) -> list[Alert]:
    return [Alert(**r) for r in rows]


def map_transaction(d: dict) -> Transaction:
    items = d.get("items")
    return Transaction(
        id=d["id"],
        date=d["date"],
        invoice_no=d.get("invoice_no") or "",
        party_name=d.get("party_name") or "",
        amount=d.get("amount") or 0.0,
        status=d["status"],
        items=[LineItem(**i) for i in items] if items is not None else None,
        raw_xml=d.get("raw_xml"),
    )


def map_transactions_page(rows: list[dict], total_count: int) -> TransactionPage:
    return TransactionPage(rows=[map_transaction(r) for r in rows], total_count=total_count)


# --- live envelopes ---------------------------------------------------------

def _gap(report: str) -> None:
    logger.debug(f"No live mapping for {report}; returning empty default")


def map_live_companies(doc: ParsedDocument) -> list[Company]:
    return map_companies(parse_companies(doc))


def map_live_kpis(doc: Optional[ParsedDocument] = None) -> DashboardKPIs:
    _gap("kpis")
    return DashboardKPIs()


def map_live_monthly(doc: Optional[ParsedDocument] = None) -> list[MonthlyDataPoint]:
    _gap("monthly")
    return []


def map_live_receivables(doc: Optional[ParsedDocument] = None) -> list[ReceivablesRow]:
    _gap("receivables")
    return []


def map_live_alerts(doc: Optional[ParsedDocument] = None) -> list[Alert]:
    _gap("alerts")
    return []


def map_live_transactions(
    doc: ParsedDocument, kind: RegisterKind | str, page: int, page_size: int
) -> TransactionPage:
    rows = parse_vouchers(doc, voucher_type=RegisterKind(kind).value)
    return map_transactions_page(paginate(rows, page, page_size), len(rows))


# --- derived views ----------------------------------------------------------

# Drill-down split shown when a KPI card is opened
_KPI_BREAKDOWN = {
    "revenue": [("Sales Account (Goods)", 0.65), ("Service Income", 0.25), ("Other Income", 0.10)],
    "net_profit": [("Operating Profit", 0.8), ("Non-Operating Income", 0.2)],
    "cash_balance": [("HDFC Bank", 0.55), ("SBI Current", 0.35), ("Petty Cash", 0.10)],
    "gst_payable": [("Output CGST", 0.45), ("Output SGST", 0.45), ("Output IGST", 0.10)],
}


def kpi_breakdown(metric: str, total: float) -> list[dict]:
    """Split a KPI total into its component ledgers; unknown metrics give []."""
    return [{"name": name, "value": total * share} for name, share in _KPI_BREAKDOWN.get(metric, [])]


def advisory_totals(bundle: DashboardBundle) -> AdvisoryTotals:
    """Totals triple handed to the advisory service."""
    return AdvisoryTotals(
        sales=sum(m.sales for m in bundle.monthly),
        purchase=sum(m.purchase for m in bundle.monthly),
        cash=bundle.kpis.cash_balance,
    )
