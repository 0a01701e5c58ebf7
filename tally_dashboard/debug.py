"""
Debugging and diagnostic utilities for the Tally dashboard.

Provides tools for:
- Testing Tally connectivity
- Running the connect sequence and printing the dashboard bundle
- Paging through the Sales/Purchase registers (optionally exporting CSV)
- Printing a voucher's audit XML
- Requesting an advisory insight for the current bundle
"""
from __future__ import annotations
import asyncio
import sys
from pathlib import Path
from typing import Optional
from loguru import logger

from .advisory import AdvisoryService
from .client import TallyClient
from .config import DashboardConfig
from .export import export_filename, filter_transactions, transactions_to_csv
from .mappers import advisory_totals, kpi_breakdown
from .models import ConnectionStatus, RegisterKind
from .orchestrator import DashboardOrchestrator


def configure_logging(config: DashboardConfig, verbose: bool = False) -> None:
    """Replace loguru's default sink with one at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else config.log_level)
    if config.log_file:
        logger.add(config.log_file, level="DEBUG", rotation="10 MB")


class DashboardDebugger:
    """
    Usage:
        debugger = DashboardDebugger()
        asyncio.run(debugger.test_connection())
        asyncio.run(debugger.show_dashboard())
    """

    def __init__(self, config: Optional[DashboardConfig] = None):
        self.config = config or DashboardConfig.from_env()

    async def test_connection(self) -> bool:
        async with TallyClient(self.config) as client:
            ok = await client.check_reachable()
        print("\n=== Tally Connection Test ===")
        print(f"URL: {self.config.base_url}")
        print(f"Reachable: {'yes' if ok else 'no'}")
        return ok

    async def show_dashboard(self, company_id: Optional[str] = None) -> ConnectionStatus:
        async with DashboardOrchestrator(self.config) as orch:
            status = await orch.connect_and_fetch(selected_company_id=company_id)
            print(f"\nStatus: {status.value}")
            if status is ConnectionStatus.ERROR:
                print(f"Error: {orch.last_error}")
                return status
            for c in orch.companies or []:
                marker = "*" if c.id == orch.selected_company_id else " "
                print(f" {marker} {c.id}: {c.name} ({c.currency})")
            if orch.bundle is not None:
                k = orch.bundle.kpis
                print("\n=== KPIs ===")
                print(f"Revenue:      {k.revenue:>14,.2f}")
                print(f"Net profit:   {k.net_profit:>14,.2f}")
                print(f"Cash balance: {k.cash_balance:>14,.2f}")
                print(f"GST payable:  {k.gst_payable:>14,.2f}")
                for metric in ("revenue", "net_profit", "cash_balance", "gst_payable"):
                    for part in kpi_breakdown(metric, getattr(k, metric)):
                        print(f"  {metric}: {part['name']:<24} {part['value']:>14,.2f}")
                print("\n=== Monthly ===")
                for m in orch.bundle.monthly:
                    print(f"{m.month}: sales {m.sales:,.0f} purchase {m.purchase:,.0f} expenses {m.expenses:,.0f}")
                print("\n=== Receivables ===")
                for r in orch.bundle.receivables:
                    print(f"{r.customer_name}: {r.total_due:,.0f}")
                print("\n=== Alerts ===")
                for a in orch.bundle.alerts:
                    print(f"[{a.severity.value}] {a.message}")
            return status

    async def show_register(
        self,
        kind: RegisterKind,
        page: int = 1,
        page_size: int = 10,
        search: str = "",
        status: str = "All",
        save_csv: Optional[str] = None,
    ) -> int:
        async with DashboardOrchestrator(self.config) as orch:
            if await orch.connect_and_fetch() is ConnectionStatus.ERROR:
                print(f"Error: {orch.last_error}")
                return 0
            result = await orch.fetch_transactions(kind, page, page_size)
        rows = filter_transactions(result.rows, search, status)
        print(f"\n=== {kind.value} Register: page {page} of {result.total_pages(page_size)} ===")
        for t in rows:
            print(f"{t.date:%d/%m/%Y}  {t.invoice_no:<14} {t.party_name:<24} {t.amount:>12,.2f}  {t.status.value}")
        if save_csv is not None:
            path = Path(save_csv or export_filename(kind))
            path.write_text(transactions_to_csv(rows), encoding="utf-8")
            print(f"Saved {len(rows)} rows to {path}")
        return len(rows)

    async def show_audit_xml(self, kind: RegisterKind, voucher_id: str, page_size: int = 50) -> Optional[str]:
        async with DashboardOrchestrator(self.config) as orch:
            if await orch.connect_and_fetch() is ConnectionStatus.ERROR:
                print(f"Error: {orch.last_error}")
                return None
            page = 1
            while True:
                result = await orch.fetch_transactions(kind, page, page_size)
                for t in result.rows:
                    if t.id == voucher_id or t.invoice_no == voucher_id:
                        print(t.raw_xml or "(no audit XML)")
                        return t.raw_xml
                if page >= result.total_pages(page_size):
                    break
                page += 1
        print(f"Voucher {voucher_id} not found")
        return None

    async def show_insight(self) -> None:
        async with DashboardOrchestrator(self.config) as orch:
            await orch.connect_and_fetch()
            bundle = orch.bundle
        if bundle is None:
            print("No dashboard data available.")
            return
        insight = await AdvisoryService(self.config).generate_insight(bundle.monthly, advisory_totals(bundle))
        print("\n=== Insight ===")
        print(f"Summary: {insight.summary}")
        print(f"Recommendation: {insight.recommendation}")
        print(f"Risk: {insight.risk_assessment.value}")


# CLI entry point
def main(argv: Optional[list[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Tally Dashboard - Debug Utilities")
    parser.add_argument("--url", help="Tally base URL (overrides TALLY_URL)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--demo", dest="demo", action="store_true", default=None, help="Use the synthetic source")
    mode.add_argument("--live", dest="demo", action="store_false", help="Use the Tally server")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Debug command")

    subparsers.add_parser("test-connection", help="Test Tally connection")

    dash_parser = subparsers.add_parser("dashboard", help="Run the connect sequence and print the bundle")
    dash_parser.add_argument("--company", help="Company id to select")

    reg_parser = subparsers.add_parser("register", help="Print a page of a register")
    reg_parser.add_argument("kind", choices=[k.value for k in RegisterKind])
    reg_parser.add_argument("--page", "-p", type=int, default=1)
    reg_parser.add_argument("--size", "-n", type=int, default=10)
    reg_parser.add_argument("--search", "-s", default="")
    reg_parser.add_argument("--status", default="All", choices=["All", "Paid", "Pending", "Overdue"])
    reg_parser.add_argument("--csv", nargs="?", const="", default=None, help="Save the page as CSV")

    audit_parser = subparsers.add_parser("audit-xml", help="Print a voucher's audit XML")
    audit_parser.add_argument("kind", choices=[k.value for k in RegisterKind])
    audit_parser.add_argument("voucher", help="Voucher id or invoice number")

    subparsers.add_parser("insight", help="Generate an advisory insight")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = DashboardConfig.from_env()
    if args.url:
        config = config.with_changes(base_url=args.url)
    if args.demo is not None:
        config = config.with_changes(is_demo_mode=args.demo)
    configure_logging(config, args.verbose)

    errors = config.validate()
    if errors:
        for err in errors:
            logger.error(err)
        return 1

    debugger = DashboardDebugger(config)
    try:
        if args.command == "test-connection":
            return 0 if asyncio.run(debugger.test_connection()) else 1

        elif args.command == "dashboard":
            status = asyncio.run(debugger.show_dashboard(args.company))
            return 0 if status is ConnectionStatus.CONNECTED else 1

        elif args.command == "register":
            asyncio.run(debugger.show_register(
                RegisterKind(args.kind), args.page, args.size, args.search, args.status, args.csv
            ))

        elif args.command == "audit-xml":
            found = asyncio.run(debugger.show_audit_xml(RegisterKind(args.kind), args.voucher))
            return 0 if found else 1

        elif args.command == "insight":
            asyncio.run(debugger.show_insight())

    except Exception as e:
        logger.exception(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
