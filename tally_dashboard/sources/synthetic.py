"""
Synthetic data source ("demo mode").

Stands in for every live query so the dashboard works without a reachable
Tally server. The ``generate_*`` functions are pure: output depends only on
their arguments and the constants below. Amounts that look random are drawn
from a generator seeded by (register kind, company id, row index).

Scaling follows the demo data the dashboard has always shipped with:
company ``c2`` is 1.5x on KPIs, 1.2x on monthly sales/purchase and 0.8x on
receivables. Receivable buckets are not all scaled, so for ``c2`` a row's
buckets do not add up to its total_due.
"""
from __future__ import annotations
import asyncio
import random
from datetime import date
from typing import Optional
from loguru import logger

from ..mappers import (
    map_alerts,
    map_companies,
    map_kpis,
    map_monthly,
    map_receivables,
    map_transactions_page,
    paginate,
)
from ..models import (
    Alert,
    Company,
    DashboardKPIs,
    DateRange,
    MonthlyDataPoint,
    ReceivablesRow,
    RegisterKind,
    TransactionPage,
)
from ..requests import render

COMPANIES = (
    {"id": "c1", "name": "Acme Corp (Demo)", "tax_id": "29AAACA1234A1Z5", "currency": "INR"},
    {"id": "c2", "name": "Globex Ltd (Demo)", "tax_id": "27ABCDE5678F1Z2", "currency": "USD"},
)

ALERTS = (
    {"id": "a1", "severity": "critical", "message": "Cash balance below threshold (₹50,000)",
     "date": date(2024, 9, 28), "is_read": False},
    {"id": "a2", "severity": "warning", "message": "GST Payment due in 2 days",
     "date": date(2024, 9, 29), "is_read": False},
    {"id": "a3", "severity": "info", "message": "New Tally Connector version available",
     "date": date(2024, 9, 30), "is_read": True},
)

KPI_MULTIPLIERS = {"c2": 1.5}
MONTHLY_MULTIPLIERS = {"c2": 1.2}
RECEIVABLES_MULTIPLIERS = {"c2": 0.8}

BASE_KPIS = {"revenue": 2450000, "net_profit": 450000, "cash_balance": 125000, "gst_payable": 85000}

# (month, sales, purchase, expenses); expenses are never scaled
BASE_MONTHLY = (
    ("Apr", 120000, 80000, 15000),
    ("May", 150000, 90000, 18000),
    ("Jun", 110000, 85000, 14000),
    ("Jul", 180000, 110000, 22000),
    ("Aug", 190000, 105000, 20000),
    ("Sep", 210000, 130000, 25000),
)

REGISTER_SIZE = 50

# Seconds of artificial latency per operation, scaled by config.demo_latency
DELAYS = {
    "companies": 0.5,
    "kpis": 0.6,
    "monthly": 0.4,
    "receivables": 0.7,
    "transactions": 0.5,
    "alerts": 0.3,
}


def _multiplier(table: dict, company_id: str) -> float:
    return table.get(company_id, 1)


def _sales_status(i: int) -> str:
    if i % 5 == 0:
        return "Overdue"
    if i % 3 == 0:
        return "Pending"
    return "Paid"


def _purchase_status(i: int) -> str:
    return "Pending" if i % 4 == 0 else "Paid"


REGISTER_RULES = {
    RegisterKind.SALES: {
        "prefix": "INV",
        "first_number": 1000,
        "parties": ("ABC Corp", "XYZ Ltd", "Global Tech"),
        "status": _sales_status,
        "amount_range": (5000, 54999),
        "ledger": "Sales Account",
        "deemed_positive": "No",
        "sign": 1,
        "items": (
            {"id": "1", "description": "Consulting Services", "quantity": 1, "unit": "hrs", "rate": 2500, "amount": 2500},
            {"id": "2", "description": "Maintenance", "quantity": 1, "unit": "amt", "rate": 2500, "amount": 2500},
        ),
    },
    RegisterKind.PURCHASE: {
        "prefix": "PUR",
        "first_number": 5000,
        "parties": ("Office Depot", "Raw Material Suppliers", "Tech Wholesalers"),
        "status": _purchase_status,
        "amount_range": (2000, 81999),
        "ledger": "Purchase Account",
        "deemed_positive": "Yes",
        "sign": -1,
        "items": (
            {"id": "1", "description": "Office Supplies", "quantity": 10, "unit": "box", "rate": 450, "amount": 4500},
            {"id": "2", "description": "Printer Paper", "quantity": 20, "unit": "rim", "rate": 250, "amount": 5000},
        ),
    },
}


def generate_companies() -> list[dict]:
    return [dict(c) for c in COMPANIES]


def generate_kpis(company_id: str, start: date | None = None, end: date | None = None) -> dict:
    """KPI snapshot. The date range is accepted but does not vary the output."""
    m = _multiplier(KPI_MULTIPLIERS, company_id)
    return {k: v * m for k, v in BASE_KPIS.items()}


def generate_monthly_trend(company_id: str) -> list[dict]:
    m = _multiplier(MONTHLY_MULTIPLIERS, company_id)
    return [
        {"month": month, "sales": sales * m, "purchase": purchase * m, "expenses": expenses}
        for month, sales, purchase, expenses in BASE_MONTHLY
    ]


def generate_receivables(company_id: str) -> list[dict]:
    m = _multiplier(RECEIVABLES_MULTIPLIERS, company_id)
    return [
        {
            "customer_name": "ABC Corp",
            "total_due": 45000 * m,
            "buckets": {"0-30": 20000, "31-60": 15000 * m, "61-90": 10000, "90+": 0},
        },
        {
            "customer_name": "XYZ Ltd",
            "total_due": 23500 * m,
            "buckets": {"0-30": 0, "31-60": 0, "61-90": 5000, "90+": 18500 * m},
        },
        {
            "customer_name": "Global Tech",
            "total_due": 12000 * m,
            "buckets": {"0-30": 12000 * m, "31-60": 0, "61-90": 0, "90+": 0},
        },
    ]


def generate_alerts(company_id: str) -> list[dict]:
    return [dict(a) for a in ALERTS]


def audit_xml(kind: RegisterKind, voucher_id: str, invoice_no: str, party_name: str,
              voucher_date: date, amount: float) -> str:
    """Voucher import envelope shown in the audit tab."""
    rule = REGISTER_RULES[kind]
    return render(
        "audit_voucher",
        voucher_type=kind.value,
        date=voucher_date.strftime("%Y%m%d"),
        guid=voucher_id,
        invoice_no=invoice_no,
        party_name=party_name,
        ledger_name=rule["ledger"],
        deemed_positive=rule["deemed_positive"],
        amount=f"{rule['sign'] * amount:.2f}",
    )


def _party(parties: tuple[str, str, str], i: int) -> str:
    if i % 3 == 0:
        return parties[0]
    if i % 2 == 0:
        return parties[1]
    return parties[2]


def generate_register(kind: RegisterKind | str, company_id: str) -> list[dict]:
    """The full 50-row backing set for a register."""
    kind = RegisterKind(kind)
    rule = REGISTER_RULES[kind]
    low, high = rule["amount_range"]
    rows = []
    for i in range(REGISTER_SIZE):
        number = rule["first_number"] + i
        voucher_id = f"{rule['prefix']}-{number}"
        invoice_no = f"{rule['prefix']}-24-{number}"
        party = _party(rule["parties"], i)
        voucher_date = date(2024, 9, 30 - (i % 20))
        amount = random.Random(f"{kind.value}:{company_id}:{i}").randint(low, high)
        rows.append({
            "id": voucher_id,
            "date": voucher_date,
            "invoice_no": invoice_no,
            "party_name": party,
            "amount": amount,
            "status": rule["status"](i),
            "items": [dict(item) for item in rule["items"]],
            "raw_xml": audit_xml(kind, voucher_id, invoice_no, party, voucher_date, amount),
        })
    return rows


def generate_transactions(kind: RegisterKind | str, company_id: str, page: int, page_size: int) -> tuple[list[dict], int]:
    """One page of a register plus the register's total row count."""
    rows = generate_register(kind, company_id)
    return paginate(rows, page, page_size), len(rows)


class SyntheticDataSource:
    """
    Async data source backed by the generators above.

    Each call sleeps for its DELAYS entry times ``latency`` to mimic a round
    trip; pass ``latency=0`` in tests.
    """

    name = "synthetic"

    def __init__(self, latency: float = 1.0):
        self.latency = latency

    async def _pause(self, operation: str):
        if self.latency > 0:
            await asyncio.sleep(DELAYS[operation] * self.latency)

    async def check_reachable(self) -> bool:
        return True

    async def list_companies(self) -> list[Company]:
        await self._pause("companies")
        return map_companies(generate_companies())

    async def get_kpis(self, company_id: str, date_range: Optional[DateRange] = None) -> DashboardKPIs:
        await self._pause("kpis")
        date_range = date_range or DateRange()
        return map_kpis(generate_kpis(company_id, date_range.start, date_range.end))

    async def get_monthly_trend(self, company_id: str) -> list[MonthlyDataPoint]:
        await self._pause("monthly")
        return map_monthly(generate_monthly_trend(company_id))

    async def get_receivables(self, company_id: str) -> list[ReceivablesRow]:
        await self._pause("receivables")
        return map_receivables(generate_receivables(company_id))

    async def list_alerts(self, company_id: str) -> list[Alert]:
        await self._pause("alerts")
        return map_alerts(generate_alerts(company_id))

    async def get_transactions(
        self,
        kind: RegisterKind | str,
        company_id: str,
        page: int = 1,
        page_size: int = 10,
        date_range: Optional[DateRange] = None,
    ) -> TransactionPage:
        await self._pause("transactions")
        rows, total = generate_transactions(kind, company_id, page, page_size)
        logger.debug(f"Synthetic {RegisterKind(kind).value} page {page}: {len(rows)} of {total}")
        return map_transactions_page(rows, total)

    async def close(self):
        pass
