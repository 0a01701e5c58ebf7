"""
Live data source: reads from a running Tally server over HTTP.

Companies and register pages are exported and parsed; the dashboard
aggregates (KPIs, monthly trend, receivables, alerts) have no live mapping
yet and come back as the mappers' empty defaults without a request.
"""
from __future__ import annotations
from typing import Optional
from loguru import logger

from ..client import TallyClient
from ..mappers import (
    map_live_alerts,
    map_live_companies,
    map_live_kpis,
    map_live_monthly,
    map_live_receivables,
    map_live_transactions,
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
from ..parsers.base import build_request
from ..requests import render, tally_date


class LiveDataSource:
    """Data source backed by TallyClient."""

    name = "live"

    def __init__(self, client: TallyClient, company_name: Optional[str] = None):
        self.client = client
        self.company_name = company_name
        self._names: dict[str, str] = {}

    def _company_for(self, company_id: str) -> str:
        """Name Tally expects in SVCURRENTCOMPANY for a company id."""
        return self._names.get(company_id) or company_id or self.company_name or ""

    async def check_reachable(self) -> bool:
        return await self.client.check_reachable()

    async def list_companies(self) -> list[Company]:
        doc = await self.client.send(build_request("Export Data", render("list_of_companies")))
        companies = map_live_companies(doc)
        self._names = {c.id: c.name for c in companies}
        logger.info(f"Tally reported {len(companies)} companies")
        return companies

    async def get_kpis(self, company_id: str, date_range: Optional[DateRange] = None) -> DashboardKPIs:
        return map_live_kpis()

    async def get_monthly_trend(self, company_id: str) -> list[MonthlyDataPoint]:
        return map_live_monthly()

    async def get_receivables(self, company_id: str) -> list[ReceivablesRow]:
        return map_live_receivables()

    async def list_alerts(self, company_id: str) -> list[Alert]:
        return map_live_alerts()

    async def get_transactions(
        self,
        kind: RegisterKind | str,
        company_id: str,
        page: int = 1,
        page_size: int = 10,
        date_range: Optional[DateRange] = None,
    ) -> TransactionPage:
        kind = RegisterKind(kind)
        date_range = date_range or DateRange()
        body = render(
            "voucher_register",
            company=self._company_for(company_id),
            from_date=tally_date(date_range.start),
            to_date=tally_date(date_range.end),
            voucher_type=kind.value,
        )
        doc = await self.client.send(build_request("Export Data", body))
        result = map_live_transactions(doc, kind, page, page_size)
        logger.debug(f"Live {kind.value} page {page}: {len(result.rows)} of {result.total_count}")
        return result

    async def close(self):
        await self.client.close()
