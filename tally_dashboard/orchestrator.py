"""
Acquisition orchestrator.

Single entry point for the rendering layer: selects the data source for the
current configuration, runs the connect sequence and keeps the connection
status, cached company list and last dashboard bundle.

Connect sequence (connect_and_fetch):
1. Reachability check (the synthetic source is always reachable, so demo
   mode never touches the transport). Failure -> Error.
2. Fetch and cache the company list if not cached; select the first
   company when none (or an unknown one) is selected.
3. Fetch KPIs, monthly trend, receivables and alerts concurrently for the
   selected company and date range; any failure fails the whole bundle.

Every exception ends in the Error status and ``loading`` is cleared on every
exit path. A call made while another is still running cancels the older one.

Usage:
    async with DashboardOrchestrator(config) as orch:
        status = await orch.connect_and_fetch()
        if status is ConnectionStatus.CONNECTED:
            render(orch.bundle)
"""
from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar
import httpx
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .client import TransportError, UnreachableError
from .config import DashboardConfig
from .models import (
    Company,
    ConnectionStatus,
    DashboardBundle,
    DateRange,
    RegisterKind,
    TransactionPage,
)
from .sources import DataSource, build_source

T = TypeVar("T")


class DashboardOrchestrator:
    """
    Mode-selecting facade over the data sources.

    State owned here: ``config``, ``status``, ``loading``, ``companies``
    (None until fetched), ``selected_company_id``, ``date_range``,
    ``bundle`` and ``last_error``. Callers change inputs through the setters
    or by passing them to connect_and_fetch.
    """

    def __init__(
        self,
        config: Optional[DashboardConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        source_factory: Callable[..., DataSource] = build_source,
    ):
        self.config = config or DashboardConfig.from_env()
        self.status = ConnectionStatus.DISCONNECTED
        self.loading = False
        self.companies: Optional[list[Company]] = None
        self.selected_company_id: Optional[str] = None
        self.date_range = DateRange()
        self.bundle: Optional[DashboardBundle] = None
        self.last_error: Optional[BaseException] = None

        self._http_client = http_client
        self._source_factory = source_factory
        self._source: Optional[DataSource] = None
        self._retired: list[DataSource] = []
        self._inflight: Optional[asyncio.Task] = None

    # --- inputs ---------------------------------------------------------

    def set_config(self, config: DashboardConfig) -> None:
        """
        Replace the configuration.

        Retry, advisory and logging settings take effect on the next call.
        A change to ``source_key`` also drops the cached companies and the
        data source.
        """
        previous, self.config = self.config, config
        if config.source_key == previous.source_key:
            return
        if config.mode_key != previous.mode_key:
            logger.info(
                f"Connection target changed to {config.base_url} "
                f"({'demo' if config.is_demo_mode else 'live'} mode)"
            )
        self.companies = None
        if self._source is not None:
            self._retired.append(self._source)
            self._source = None

    def select_company(self, company_id: Optional[str]) -> None:
        self.selected_company_id = company_id

    def set_date_range(self, date_range: DateRange) -> None:
        self.date_range = date_range

    @property
    def source(self) -> DataSource:
        if self._source is None:
            self._source = self._source_factory(self.config, http_client=self._http_client)
            logger.debug(f"Using {self._source.name} data source")
        return self._source

    # --- helpers --------------------------------------------------------

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is not self.status:
            logger.info(f"Tally status: {self.status.value} -> {status.value}")
        self.status = status

    def _retrying(self) -> AsyncRetrying:
        # retry_attempts=1 is a single attempt
        return AsyncRetrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_exponential(multiplier=self.config.retry_delay, min=self.config.retry_delay, max=30),
            retry=retry_if_exception_type(TransportError),
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying Tally request (attempt {retry_state.attempt_number})..."
            ),
            reraise=True,
        )

    async def _call(self, fn: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        return await self._retrying()(fn, *args, **kwargs)

    async def _close_retired(self) -> None:
        while self._retired:
            await self._retired.pop().close()

    # --- connect sequence ----------------------------------------------

    async def connect_and_fetch(
        self,
        config: Optional[DashboardConfig] = None,
        selected_company_id: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> ConnectionStatus:
        """
        Run the connect sequence and return the resulting status.

        Arguments, when given, are applied through the setters first. A call
        superseded by a newer one returns the status current at that moment.
        """
        if config is not None:
            self.set_config(config)
        if selected_company_id is not None:
            self.select_company(selected_company_id)
        if date_range is not None:
            self.set_date_range(date_range)

        previous = self._inflight
        if previous is not None and not previous.done():
            logger.debug("Superseding in-flight acquisition")
            previous.cancel()

        task = asyncio.ensure_future(self._acquire())
        self._inflight = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._inflight is not task:
                return self.status
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

    async def _acquire(self) -> ConnectionStatus:
        me = asyncio.current_task()
        self.loading = True
        self._set_status(ConnectionStatus.CONNECTING)
        try:
            await self._close_retired()
            source = self.source

            if not await source.check_reachable():
                self.last_error = UnreachableError(
                    f"Could not connect to Tally at {self.config.base_url}. "
                    "Ensure Tally is open or switch to demo mode."
                )
                logger.warning(str(self.last_error))
                self._set_status(ConnectionStatus.ERROR)
                return self.status
            self._set_status(ConnectionStatus.CONNECTED)

            company_id = self.selected_company_id
            if self.companies is None:
                companies = await self._call(source.list_companies)
                self.companies = companies
                known = {c.id for c in companies}
                if companies and company_id not in known:
                    company_id = companies[0].id
                    self.selected_company_id = company_id
                    logger.info(f"Selected company {companies[0].name}")

            if company_id:
                self.bundle = await self._call(self._fetch_bundle, source, company_id, self.date_range)
            self.last_error = None
            return self.status

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Dashboard acquisition failed: {e!r}")
            self.last_error = e
            self._set_status(ConnectionStatus.ERROR)
            return self.status
        finally:
            # A superseding call owns the loading flag from here on
            if self._inflight is None or self._inflight is me:
                self.loading = False

    async def _fetch_bundle(self, source: DataSource, company_id: str, date_range: DateRange) -> DashboardBundle:
        tasks = [
            asyncio.ensure_future(source.get_kpis(company_id, date_range)),
            asyncio.ensure_future(source.get_monthly_trend(company_id)),
            asyncio.ensure_future(source.get_receivables(company_id)),
            asyncio.ensure_future(source.list_alerts(company_id)),
        ]
        try:
            kpis, monthly, receivables, alerts = await asyncio.gather(*tasks)
        except BaseException:
            # a failed bundle cancels its sibling queries
            for t in tasks:
                t.cancel()
            raise
        logger.debug(
            f"Fetched bundle for {company_id}: {len(monthly)} months, "
            f"{len(receivables)} receivables, {len(alerts)} alerts"
        )
        return DashboardBundle(kpis=kpis, monthly=monthly, receivables=receivables, alerts=alerts)

    # --- registers ------------------------------------------------------

    async def fetch_transactions(
        self,
        kind: RegisterKind | str,
        page: int = 1,
        page_size: int = 10,
        company_id: Optional[str] = None,
    ) -> TransactionPage:
        """
        One page of the Sales or Purchase register.

        Errors propagate to the caller; the connection status is untouched.
        """
        company_id = company_id or self.selected_company_id
        if not company_id:
            return TransactionPage()
        return await self._call(
            self.source.get_transactions, kind, company_id, page, page_size, self.date_range
        )

    # --- lifecycle ------------------------------------------------------

    async def close(self):
        """Cancel any running acquisition and release data sources."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        await self._close_retired()
        if self._source is not None:
            await self._source.close()
            self._source = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
