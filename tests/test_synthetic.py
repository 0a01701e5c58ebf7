"""Tests for the synthetic (demo mode) data source."""
import asyncio
from datetime import date
import pytest
from tally_dashboard.models import AlertSeverity, RegisterKind, TransactionStatus
from tally_dashboard.parsers.base import ParsedDocument, get_first_tag_value, parse_envelope
from tally_dashboard.sources.synthetic import (
    REGISTER_SIZE,
    SyntheticDataSource,
    generate_alerts,
    generate_companies,
    generate_kpis,
    generate_monthly_trend,
    generate_receivables,
    generate_register,
    generate_transactions,
)


class TestGenerators:
    def test_companies_have_distinct_currencies(self):
        companies = generate_companies()
        assert [c["id"] for c in companies] == ["c1", "c2"]
        assert len({c["currency"] for c in companies}) == len(companies)

    def test_kpis_scale_by_company(self):
        assert generate_kpis("c1")["revenue"] == 2450000
        assert generate_kpis("c2")["revenue"] == 3675000
        assert generate_kpis("c2")["gst_payable"] == 85000 * 1.5

    def test_kpis_ignore_date_range(self):
        assert generate_kpis("c1", date(2024, 4, 1), date(2024, 4, 30)) == generate_kpis("c1")

    def test_monthly_trend_is_six_months_april_to_september(self):
        rows = generate_monthly_trend("c1")
        assert [r["month"] for r in rows] == ["Apr", "May", "Jun", "Jul", "Aug", "Sep"]

    def test_monthly_expenses_not_scaled(self):
        c1 = generate_monthly_trend("c1")
        c2 = generate_monthly_trend("c2")
        assert [r["expenses"] for r in c1] == [r["expenses"] for r in c2]
        assert c2[0]["sales"] == 120000 * 1.2
        assert c2[0]["purchase"] == 80000 * 1.2

    def test_receivables_scale_only_some_buckets(self):
        abc = generate_receivables("c2")[0]
        assert abc["customer_name"] == "ABC Corp"
        assert abc["total_due"] == 45000 * 0.8
        assert abc["buckets"]["0-30"] == 20000
        assert abc["buckets"]["31-60"] == 15000 * 0.8
        assert len(generate_receivables("c1")) == 3

    def test_alerts_span_all_severities(self):
        alerts = generate_alerts("c1")
        assert {a["severity"] for a in alerts} == {"info", "warning", "critical"}

    def test_sales_status_rules(self):
        rows = generate_register(RegisterKind.SALES, "c1")
        assert rows[0]["status"] == "Overdue"
        assert rows[1]["status"] == "Paid"
        assert rows[3]["status"] == "Pending"
        assert rows[15]["status"] == "Overdue"

    def test_purchase_status_rules(self):
        rows = generate_register("Purchase", "c1")
        assert [r["status"] for r in rows[:5]] == ["Pending", "Paid", "Paid", "Paid", "Pending"]

    def test_register_shape(self):
        sales = generate_register("Sales", "c1")
        purchases = generate_register("Purchase", "c1")
        assert len(sales) == REGISTER_SIZE == 50
        assert sales[0]["id"] == "INV-1000"
        assert sales[0]["invoice_no"] == "INV-24-1000"
        assert purchases[49]["id"] == "PUR-5049"
        assert sales[0]["date"] == date(2024, 9, 30)
        assert sales[21]["date"] == date(2024, 9, 29)
        assert {r["party_name"] for r in sales} == {"ABC Corp", "XYZ Ltd", "Global Tech"}
        assert {r["party_name"] for r in purchases} == {"Office Depot", "Raw Material Suppliers", "Tech Wholesalers"}
        assert all(len(r["items"]) == 2 for r in sales + purchases)

    def test_amounts_within_range(self):
        assert all(5000 <= r["amount"] <= 54999 for r in generate_register("Sales", "c1"))
        assert all(2000 <= r["amount"] <= 81999 for r in generate_register("Purchase", "c2"))

    def test_pagination_is_deterministic(self):
        first = generate_transactions("Sales", "c1", 2, 10)
        second = generate_transactions("Sales", "c1", 2, 10)
        assert [r["id"] for r in first[0]] == [r["id"] for r in second[0]]
        assert [r["amount"] for r in first[0]] == [r["amount"] for r in second[0]]
        assert first[1] == second[1] == 50

    def test_page_slices(self):
        rows, total = generate_transactions("Sales", "c1", 2, 10)
        assert [r["id"] for r in rows] == [f"INV-{1010 + i}" for i in range(10)]
        assert total == 50
        rows, _ = generate_transactions("Sales", "c1", 3, 20)
        assert len(rows) == 10

    @pytest.mark.parametrize("page", [6, 7, 100, 0, -1])
    def test_out_of_range_page_is_empty(self, page):
        rows, total = generate_transactions("Sales", "any", page, 10)
        assert rows == []
        assert total == 50

    def test_audit_xml_is_parseable(self):
        row = generate_register("Sales", "c1")[4]
        doc = parse_envelope(row["raw_xml"])
        assert isinstance(doc, ParsedDocument)
        assert get_first_tag_value(doc, "TALLYREQUEST") == "Import Data"
        assert get_first_tag_value(doc, "VOUCHERNUMBER") == row["invoice_no"]
        assert get_first_tag_value(doc, "PARTYLEDGERNAME") == row["party_name"]
        assert get_first_tag_value(doc, "DATE") == row["date"].strftime("%Y%m%d")
        assert float(get_first_tag_value(doc, "AMOUNT")) == row["amount"]
        assert doc.find_one(".//TALLYMESSAGE/VOUCHER").get("VCHTYPE") == "Sales"

    def test_purchase_audit_amount_is_debit(self):
        row = generate_register("Purchase", "c1")[0]
        doc = parse_envelope(row["raw_xml"])
        assert float(get_first_tag_value(doc, "AMOUNT")) == -row["amount"]


class TestSyntheticDataSource:
    def test_async_source_returns_models(self):
        source = SyntheticDataSource(latency=0)

        async def scenario():
            return (
                await source.list_companies(),
                await source.get_kpis("c2"),
                await source.get_monthly_trend("c1"),
                await source.get_receivables("c1"),
                await source.list_alerts("c1"),
                await source.get_transactions("Sales", "c1", 1, 10),
            )

        companies, kpis, monthly, receivables, alerts, page = asyncio.run(scenario())
        assert companies[0].name == "Acme Corp (Demo)"
        assert companies[1].currency == "USD"
        assert kpis.revenue == 3675000
        assert len(monthly) == 6
        assert receivables[1].buckets.days_90_plus == 18500
        assert alerts[0].severity is AlertSeverity.CRITICAL
        assert page.total_count == 50
        assert page.total_pages(10) == 5
        assert page.rows[0].status is TransactionStatus.OVERDUE
        assert page.rows[0].items[0].description == "Consulting Services"
        assert page.rows[0].raw_xml.startswith("<ENVELOPE>")

    def test_source_is_always_reachable(self):
        assert asyncio.run(SyntheticDataSource(latency=0).check_reachable()) is True
