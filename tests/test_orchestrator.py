"""Connect sequence, mode switching and in-flight handling."""
import asyncio
from datetime import date
import httpx
import pytest
from tally_dashboard.client import TransportError, UnreachableError
from tally_dashboard.models import ConnectionStatus, DateRange
from tally_dashboard.orchestrator import DashboardOrchestrator
from tally_dashboard.sources import SyntheticDataSource
from conftest import FakeTally


def run_orch(fake, config, scenario, **kwargs):
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as http:
            async with DashboardOrchestrator(config, http_client=http, **kwargs) as orch:
                return await scenario(orch)
    return asyncio.run(main())


class BrokenReceivables(SyntheticDataSource):
    async def get_receivables(self, company_id):
        raise RuntimeError("receivables exploded")


class Unreachable(SyntheticDataSource):
    async def check_reachable(self):
        return False


class SlowKpisBrokenReceivables(SyntheticDataSource):
    def __init__(self):
        super().__init__(latency=0)
        self.kpis_cancelled = False

    async def get_kpis(self, company_id, date_range=None):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.kpis_cancelled = True
            raise

    async def get_receivables(self, company_id):
        raise RuntimeError("receivables exploded")


class TestDemoMode:
    def test_connects_without_transport(self, demo_config):
        fake = FakeTally()

        async def scenario(orch):
            assert orch.status is ConnectionStatus.DISCONNECTED
            status = await orch.connect_and_fetch()
            return status, orch

        status, orch = run_orch(fake, demo_config, scenario)
        assert status is ConnectionStatus.CONNECTED
        assert fake.requests == []
        assert [c.id for c in orch.companies] == ["c1", "c2"]
        assert orch.selected_company_id == "c1"
        assert orch.bundle.kpis.revenue == 2450000
        assert len(orch.bundle.monthly) == 6
        assert orch.loading is False
        assert orch.last_error is None

    def test_selecting_second_company(self, demo_config):
        async def scenario(orch):
            await orch.connect_and_fetch()
            await orch.connect_and_fetch(selected_company_id="c2")
            return orch

        orch = run_orch(FakeTally(), demo_config, scenario)
        assert orch.selected_company_id == "c2"
        assert orch.bundle.kpis.revenue == 3675000

    def test_unknown_selection_falls_back_to_first_company(self, demo_config):
        async def scenario(orch):
            orch.select_company("nope")
            await orch.connect_and_fetch()
            return orch.selected_company_id

        assert run_orch(FakeTally(), demo_config, scenario) == "c1"

    def test_demo_transactions(self, demo_config):
        async def scenario(orch):
            await orch.connect_and_fetch()
            return await orch.fetch_transactions("Purchase", page=5, page_size=10)

        page = run_orch(FakeTally(), demo_config, scenario)
        assert page.total_count == 50
        assert page.rows[-1].id == "PUR-5049"

    def test_transactions_without_company_are_empty(self, demo_config):
        async def scenario(orch):
            return await orch.fetch_transactions("Sales")

        page = run_orch(FakeTally(), demo_config, scenario)
        assert page.rows == []
        assert page.total_count == 0


class TestLiveMode:
    def test_unreachable_server(self, live_config):
        fake = FakeTally(reachable=False)

        async def scenario(orch):
            return await orch.connect_and_fetch(), orch

        status, orch = run_orch(fake, live_config, scenario)
        assert status is ConnectionStatus.ERROR
        assert isinstance(orch.last_error, UnreachableError)
        assert orch.companies is None
        assert orch.loading is False
        assert fake.count("List of Accounts") == 1

    def test_switch_from_demo_to_unreachable_live(self, demo_config, live_config):
        fake = FakeTally(reachable=False)

        async def scenario(orch):
            statuses = [await orch.connect_and_fetch()]
            statuses.append(await orch.connect_and_fetch(config=live_config))
            return statuses, orch

        statuses, orch = run_orch(fake, demo_config, scenario)
        assert statuses == [ConnectionStatus.CONNECTED, ConnectionStatus.ERROR]
        assert orch.companies is None
        assert orch.loading is False

    def test_live_companies_and_empty_aggregates(self, live_config):
        fake = FakeTally()

        async def scenario(orch):
            await orch.connect_and_fetch()
            await orch.connect_and_fetch()
            return orch

        orch = run_orch(fake, live_config, scenario)
        assert orch.status is ConnectionStatus.CONNECTED
        assert orch.selected_company_id == "guid-modi-001"
        assert orch.bundle.kpis.revenue == 0
        assert orch.bundle.monthly == []
        assert orch.bundle.alerts == []
        # company list is cached after the first connect
        assert fake.count("List of Companies") == 1
        assert fake.count("List of Accounts") == 2
        assert fake.count("Voucher Register") == 0

    def test_live_register_request(self, live_config):
        fake = FakeTally()

        async def scenario(orch):
            await orch.connect_and_fetch(date_range=DateRange(start=date(2024, 9, 1), end=date(2024, 9, 30)))
            return await orch.fetch_transactions("Sales", page=1, page_size=10)

        page = run_orch(fake, live_config, scenario)
        assert page.total_count == 2
        assert [t.invoice_no for t in page.rows] == ["S-101", "S-102"]
        (body,) = [b for b in fake.requests if "Voucher Register" in b]
        assert "<SVCURRENTCOMPANY>Modi Chemplast Materials Pvt Ltd</SVCURRENTCOMPANY>" in body
        assert "01-Sep-2024" in body
        assert "<VOUCHERTYPENAME>Sales</VOUCHERTYPENAME>" in body

    def test_register_errors_propagate(self, live_config):
        fake = FakeTally(failures={"Voucher Register": [500]})

        async def scenario(orch):
            await orch.connect_and_fetch()
            with pytest.raises(TransportError):
                await orch.fetch_transactions("Sales")
            return orch.status

        assert run_orch(fake, live_config, scenario) is ConnectionStatus.CONNECTED

    def test_retry_recovers_from_transient_failure(self, live_config):
        fake = FakeTally(failures={"List of Companies": [503]})
        config = live_config.with_changes(retry_attempts=2, retry_delay=0)

        async def scenario(orch):
            return await orch.connect_and_fetch()

        assert run_orch(fake, config, scenario) is ConnectionStatus.CONNECTED
        assert fake.count("List of Companies") == 2

    def test_single_attempt_by_default(self, live_config):
        fake = FakeTally(failures={"List of Companies": [503]})

        async def scenario(orch):
            return await orch.connect_and_fetch(), orch.last_error

        status, error = run_orch(fake, live_config, scenario)
        assert status is ConnectionStatus.ERROR
        assert isinstance(error, TransportError)
        assert error.status_code == 503
        assert fake.count("List of Companies") == 1


class TestFailures:
    def test_failing_sub_query_fails_bundle(self, demo_config):
        factory = lambda config, http_client=None: BrokenReceivables(latency=0)

        async def scenario(orch):
            return await orch.connect_and_fetch(), orch

        status, orch = run_orch(FakeTally(), demo_config, scenario, source_factory=factory)
        assert status is ConnectionStatus.ERROR
        assert isinstance(orch.last_error, RuntimeError)
        assert orch.bundle is None
        assert orch.loading is False

    def test_unreachable_source(self, demo_config):
        factory = lambda config, http_client=None: Unreachable(latency=0)

        async def scenario(orch):
            return await orch.connect_and_fetch(), orch

        status, orch = run_orch(FakeTally(), demo_config, scenario, source_factory=factory)
        assert status is ConnectionStatus.ERROR
        assert orch.companies is None


class TestStateChanges:
    def test_settings_outside_the_source_keep_cached_companies(self, demo_config):
        async def scenario(orch):
            await orch.connect_and_fetch()
            source = orch.source
            orch.set_config(demo_config.with_changes(gemini_model="other-model", log_level="DEBUG", retry_attempts=3))
            return orch.source is source, orch

        same_source, orch = run_orch(FakeTally(), demo_config, scenario)
        assert same_source
        assert orch.companies is not None
        assert orch.config.retry_attempts == 3

    @pytest.mark.parametrize("changes", [
        {"base_url": "http://other:9000"},
        {"is_demo_mode": False},
        {"demo_latency": 0.5},
        {"tally_company": "Other Co"},
    ])
    def test_source_settings_drop_cached_companies(self, demo_config, changes):
        async def scenario(orch):
            await orch.connect_and_fetch()
            orch.set_config(demo_config.with_changes(**changes))
            return orch.companies

        assert run_orch(FakeTally(), demo_config, scenario) is None

    def test_failed_sub_query_cancels_the_others(self, demo_config):
        source = SlowKpisBrokenReceivables()

        async def scenario(orch):
            status = await orch.connect_and_fetch()
            await asyncio.sleep(0)
            return status

        status = run_orch(FakeTally(), demo_config, scenario, source_factory=lambda config, http_client=None: source)
        assert status is ConnectionStatus.ERROR
        assert source.kpis_cancelled is True

    def test_newer_call_supersedes_older(self, demo_config):
        config = demo_config.with_changes(demo_latency=0.01)

        async def scenario(orch):
            first = asyncio.ensure_future(orch.connect_and_fetch())
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            assert orch.loading is True
            second = await orch.connect_and_fetch(selected_company_id="c2")
            first_status = await first
            return first_status, second, orch

        first_status, second, orch = run_orch(FakeTally(), config, scenario)
        assert isinstance(first_status, ConnectionStatus)
        assert second is ConnectionStatus.CONNECTED
        assert orch.selected_company_id == "c2"
        assert orch.bundle.kpis.revenue == 3675000
        assert orch.loading is False
