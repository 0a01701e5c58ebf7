from pathlib import Path
import httpx
import pytest
from tally_dashboard.config import DashboardConfig

FIX = Path(__file__).parent / "fixtures"


def read(p): return (FIX / p).read_text(encoding="utf-8")


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires a running Tally server)"
    )


class FakeTally:
    """
    httpx.MockTransport handler that answers like a Tally server.

    Routes on the report named in the request body. ``failures`` maps a
    report name to a list of HTTP statuses returned before the real answer.
    """

    def __init__(self, reachable=True, failures=None):
        self.reachable = reachable
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = request.content.decode("utf-8")
        self.requests.append(body)
        if not self.reachable:
            raise httpx.ConnectError("Connection refused", request=request)
        for report, fixture in (
            ("List of Accounts", "accounts_ok.xml"),
            ("List of Companies", "companies.xml"),
            ("Voucher Register", "voucher_register.xml"),
        ):
            if report in body:
                pending = self.failures.get(report)
                if pending:
                    return httpx.Response(pending.pop(0), text="Service Unavailable")
                return httpx.Response(200, text=read(fixture))
        return httpx.Response(400, text="Unknown request")

    def count(self, report: str) -> int:
        return sum(1 for body in self.requests if report in body)


@pytest.fixture
def demo_config():
    return DashboardConfig(base_url="http://localhost:9000", is_demo_mode=True, demo_latency=0)


@pytest.fixture
def live_config():
    return DashboardConfig(
        base_url="http://localhost:9000",
        is_demo_mode=False,
        demo_latency=0,
        request_timeout=5,
        retry_attempts=1,
        retry_delay=0,
    )
