from datetime import date
from tally_dashboard.export import export_filename, filter_transactions, transactions_to_csv
from tally_dashboard.mappers import map_transaction
from tally_dashboard.models import RegisterKind


def rows():
    return [
        map_transaction({"id": "1", "date": date(2024, 9, 30), "invoice_no": "INV-24-1000",
                         "party_name": "ABC Corp", "amount": 12000.0, "status": "Overdue"}),
        map_transaction({"id": "2", "date": date(2024, 9, 29), "invoice_no": "INV-24-1001",
                         "party_name": "Global Tech", "amount": 850.5, "status": "Paid"}),
        map_transaction({"id": "3", "date": date(2024, 9, 28), "invoice_no": "INV-24-1002",
                         "party_name": "XYZ Ltd", "amount": 400, "status": "Paid"}),
    ]


def test_filter_by_party_case_insensitive():
    assert [t.id for t in filter_transactions(rows(), search="global")] == ["2"]


def test_filter_by_invoice_number():
    assert [t.id for t in filter_transactions(rows(), search="1002")] == ["3"]


def test_filter_by_status():
    assert [t.id for t in filter_transactions(rows(), status="Paid")] == ["2", "3"]
    assert len(filter_transactions(rows(), status="All")) == 3
    assert filter_transactions(rows(), search="abc", status="Paid") == []


def test_csv_output():
    lines = transactions_to_csv(rows()).splitlines()
    assert lines[0] == '"Date","Invoice No","Party Name","Amount","Status"'
    assert lines[1] == '"30/09/2024","INV-24-1000","ABC Corp",12000,"Overdue"'
    assert lines[2] == '"29/09/2024","INV-24-1001","Global Tech",850.5,"Paid"'
    assert len(lines) == 4


def test_csv_of_nothing_is_header_only():
    assert transactions_to_csv([]) == '"Date","Invoice No","Party Name","Amount","Status"\n'


def test_export_filename():
    assert export_filename(RegisterKind.SALES, date(2024, 10, 1)) == "Sales_Register_2024-10-01.csv"
    assert export_filename("Purchase", date(2024, 10, 1)) == "Purchase_Register_2024-10-01.csv"
