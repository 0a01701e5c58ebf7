"""
Canonical shapes returned by the acquisition layer.

Every fetch produces fresh instances; nothing here is mutated by the core.
"""
from __future__ import annotations
import datetime as dt
from enum import Enum
from math import ceil
from pydantic import BaseModel, Field


class ConnectionStatus(str, Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting..."
    CONNECTED = "Connected"
    ERROR = "Connection Error"


class TransactionStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"
    OVERDUE = "Overdue"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class RegisterKind(str, Enum):
    SALES = "Sales"
    PURCHASE = "Purchase"


class DateRange(BaseModel):
    start: dt.date = dt.date(2024, 4, 1)
    end: dt.date = dt.date(2024, 9, 30)


class Company(BaseModel):
    id: str
    name: str
    tax_id: str | None = None     # GSTIN for Indian companies
    currency: str = "INR"


class DashboardKPIs(BaseModel):
    revenue: float = 0.0
    net_profit: float = 0.0
    cash_balance: float = 0.0
    gst_payable: float = 0.0


class MonthlyDataPoint(BaseModel):
    month: str
    sales: float
    purchase: float
    expenses: float


class AgingBuckets(BaseModel):
    """Receivable amounts bucketed by days overdue."""
    days_0_30: float = Field(0.0, alias="0-30")
    days_31_60: float = Field(0.0, alias="31-60")
    days_61_90: float = Field(0.0, alias="61-90")
    days_90_plus: float = Field(0.0, alias="90+")

    model_config = {"populate_by_name": True}

    def total(self) -> float:
        return self.days_0_30 + self.days_31_60 + self.days_61_90 + self.days_90_plus


class ReceivablesRow(BaseModel):
    customer_name: str
    total_due: float
    buckets: AgingBuckets


class LineItem(BaseModel):
    id: str
    description: str
    quantity: float
    unit: str
    rate: float
    amount: float


class Transaction(BaseModel):
    id: str
    date: dt.date
    invoice_no: str
    party_name: str
    amount: float
    status: TransactionStatus
    items: list[LineItem] | None = None
    raw_xml: str | None = None   # verbatim voucher XML for the audit viewer


class TransactionPage(BaseModel):
    rows: list[Transaction] = Field(default_factory=list)
    total_count: int = 0

    def total_pages(self, page_size: int) -> int:
        if page_size <= 0:
            return 0
        return ceil(self.total_count / page_size)


class Alert(BaseModel):
    id: str
    severity: AlertSeverity
    message: str
    date: dt.date
    is_read: bool = False


class DashboardBundle(BaseModel):
    kpis: DashboardKPIs
    monthly: list[MonthlyDataPoint]
    receivables: list[ReceivablesRow]
    alerts: list[Alert]


class AdvisoryTotals(BaseModel):
    sales: float
    purchase: float
    cash: float


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class AdvisoryInsight(BaseModel):
    summary: str
    recommendation: str
    risk_assessment: RiskLevel = Field(RiskLevel.LOW, alias="riskAssessment")

    model_config = {"populate_by_name": True}


__all__ = [
    "ConnectionStatus",
    "TransactionStatus",
    "AlertSeverity",
    "RegisterKind",
    "DateRange",
    "Company",
    "DashboardKPIs",
    "MonthlyDataPoint",
    "AgingBuckets",
    "ReceivablesRow",
    "LineItem",
    "Transaction",
    "TransactionPage",
    "Alert",
    "DashboardBundle",
    "AdvisoryTotals",
    "RiskLevel",
    "AdvisoryInsight",
]
