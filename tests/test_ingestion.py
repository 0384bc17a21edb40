"""Tests for bank statement ingestion."""

import json
from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.cache import TTLCache
from ledgerflow.domain.classifier import ClassificationService
from ledgerflow.domain.errors import NotFoundError
from ledgerflow.domain.ingestion import IngestionService, load_records


STATEMENT = [
    {"date": "2026-03-12", "description": "NEFT CR INV-1042 GLOBEX", "amount": "11800", "type": "credit"},
    {"date": "2026-03-13", "description": "Zomato team lunch", "amount": "800", "type": "debit"},
]


@pytest.fixture
def ingestion(temp_db, ledger):
    return IngestionService(temp_db, ledger=ledger)


def postings(ledger, company_id, **filters):
    return [(e.account_code, e.debit, e.credit) for e in ledger.list_entries(company_id, **filters)]


class TestLoadRecords:
    """Tests for reading statement files."""

    def test_json_list(self, tmp_path):
        path = tmp_path / "statement.json"
        path.write_text(json.dumps(STATEMENT))

        assert load_records(str(path)) == STATEMENT

    def test_json_wrapped(self, tmp_path):
        path = tmp_path / "statement.json"
        path.write_text(json.dumps({"transactions": STATEMENT}))

        assert len(load_records(str(path))) == 2

    def test_json_wrong_shape(self, tmp_path):
        path = tmp_path / "statement.json"
        path.write_text(json.dumps({"rows": 3}))

        with pytest.raises(ValueError, match="must be a list"):
            load_records(str(path))

    def test_csv(self, tmp_path):
        path = tmp_path / "statement.csv"
        path.write_text("Date,Description,Amount\n2026-03-13,Zomato team lunch,-800\n")

        assert load_records(str(path)) == [
            {"date": "2026-03-13", "description": "Zomato team lunch", "amount": "-800"}
        ]

    def test_csv_missing_columns(self, tmp_path):
        path = tmp_path / "statement.csv"
        path.write_text("Date,Narration\n2026-03-13,Lunch\n")

        with pytest.raises(ValueError, match="missing required columns: description, amount"):
            load_records(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_records(str(tmp_path / "nope.csv"))


class TestIngest:
    """Tests for IngestionService.ingest."""

    def test_statement(self, ingestion, ledger, invoice_service, transaction_service, sample_company, sample_invoice):
        stats = ingestion.ingest(sample_company.id, STATEMENT)

        assert stats["imported"] == 2
        assert stats["invoices_paid"] == 1
        assert stats["errors"] == []
        assert stats["classification"]["total"] == 2
        assert invoice_service.get_invoice(sample_invoice.id).status == "paid"

        payment, lunch = transaction_service.list_transactions(sample_company.id)
        assert payment.amount == Decimal("11800")
        assert lunch.amount == Decimal("-800")
        assert lunch.category == "Meals"
        assert postings(ledger, sample_company.id, linked_transaction_id=lunch.id) == [
            ("5480", Decimal("800.00"), Decimal("0.00")),
            ("1010", Decimal("0.00"), Decimal("800.00")),
        ]
        assert postings(ledger, sample_company.id, linked_transaction_id=payment.id) == [
            ("1010", Decimal("11800.00"), Decimal("0.00")),
            ("1100", Decimal("0.00"), Decimal("11800.00")),
        ]
        assert ledger.trial_balance(sample_company.id).is_balanced

    def test_reimport_skips_duplicates(self, ingestion, sample_company):
        ingestion.ingest(sample_company.id, STATEMENT)

        stats = ingestion.ingest(sample_company.id, STATEMENT)

        assert stats["imported"] == 0
        assert stats["skipped"] == 2

    def test_bad_record_is_reported(self, ingestion, transaction_service, sample_company):
        records = [STATEMENT[1], {"date": "someday", "description": "Cab", "amount": "-300"}]

        stats = ingestion.ingest(sample_company.id, records)

        assert stats["imported"] == 1
        assert len(stats["errors"]) == 1
        assert stats["errors"][0].startswith("Record 2:")
        assert len(transaction_service.list_transactions(sample_company.id)) == 1

    def test_excess_over_invoice_is_revenue(self, ingestion, ledger, transaction_service, sample_company, sample_invoice):
        record = dict(STATEMENT[0], amount="12000")

        ingestion.ingest(sample_company.id, [record])

        (payment,) = transaction_service.list_transactions(sample_company.id)
        assert postings(ledger, sample_company.id, linked_transaction_id=payment.id) == [
            ("1010", Decimal("11800.00"), Decimal("0.00")),
            ("1100", Decimal("0.00"), Decimal("11800.00")),
            ("1010", Decimal("200.00"), Decimal("0.00")),
            ("4000", Decimal("0.00"), Decimal("200.00")),
        ]

    def test_without_posting(self, temp_db, ledger, transaction_service, sample_company):
        service = IngestionService(temp_db, post_to_ledger=False)

        stats = service.ingest(sample_company.id, [STATEMENT[1]])

        assert stats["imported"] == 1
        assert ledger.list_entries(sample_company.id) == []
        assert len(transaction_service.list_transactions(sample_company.id)) == 1

    def test_ingest_file(self, ingestion, sample_company, tmp_path):
        path = tmp_path / "statement.csv"
        path.write_text("date;description;amount\n2026-03-13;Uber cab to airport;-650\n")

        stats = ingestion.ingest_file(sample_company.id, str(path))

        assert stats["imported"] == 1
        assert stats["needs_review"] == 1

    def test_unknown_company(self, ingestion):
        with pytest.raises(NotFoundError):
            ingestion.ingest(999, STATEMENT)

    def test_repeated_line_with_cache_pays_each_bill(self, temp_db, ledger, bill_service, sample_company):
        """A cached classification must not point a second payment at a settled bill."""
        for number, due in (("R-1", date(2026, 3, 1)), ("R-2", date(2026, 4, 1))):
            bill_service.create_bill(
                sample_company.id, number, "RentCo", Decimal("5000"),
                issue_date=date(2026, 2, 25), due_date=due, category="Rent",
            )
        classifier = ClassificationService(temp_db, cache=TTLCache())
        service = IngestionService(temp_db, classifier=classifier, ledger=ledger)
        records = [
            {"date": "2026-03-01", "description": "UPI-RENTCO", "amount": "5000", "type": "debit"},
            {"date": "2026-04-01", "description": "UPI-RENTCO", "amount": "5000", "type": "debit"},
        ]

        stats = service.ingest(sample_company.id, records)

        assert stats["bills_paid"] == 2
        assert [b.status for b in bill_service.list_bills(sample_company.id)] == ["paid", "paid"]
