"""
Data sources behind the orchestrator.

Both variants expose the same async surface, so the orchestrator selects one
per configuration and never re-checks demo mode at call sites.
"""
from __future__ import annotations
from typing import Optional, Protocol
import httpx

from ..client import TallyClient
from ..config import DashboardConfig
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
from .live import LiveDataSource
from .synthetic import SyntheticDataSource


class DataSource(Protocol):
    name: str

    async def check_reachable(self) -> bool: ...
    async def list_companies(self) -> list[Company]: ...
    async def get_kpis(self, company_id: str, date_range: Optional[DateRange] = None) -> DashboardKPIs: ...
    async def get_monthly_trend(self, company_id: str) -> list[MonthlyDataPoint]: ...
    async def get_receivables(self, company_id: str) -> list[ReceivablesRow]: ...
    async def list_alerts(self, company_id: str) -> list[Alert]: ...
    async def get_transactions(
        self,
        kind: RegisterKind | str,
        company_id: str,
        page: int = 1,
        page_size: int = 10,
        date_range: Optional[DateRange] = None,
    ) -> TransactionPage: ...
    async def close(self) -> None: ...


def build_source(config: DashboardConfig, http_client: Optional[httpx.AsyncClient] = None) -> DataSource:
    """Pick the data source for a configuration."""
    if config.is_demo_mode:
        return SyntheticDataSource(latency=config.demo_latency)
    return LiveDataSource(TallyClient(config, http_client=http_client), company_name=config.tally_company)


__all__ = ["DataSource", "LiveDataSource", "SyntheticDataSource", "build_source"]
