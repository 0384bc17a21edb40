"""Shared pytest fixtures for ledgerflow tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from ledgerflow.database.factories import create_sqlite_database
from ledgerflow.domain.classifier import ClassificationService
from ledgerflow.domain.company import CompanyService
from ledgerflow.domain.documents import BillService, InvoiceService
from ledgerflow.domain.ledger import LedgerService
from ledgerflow.domain.transaction import TransactionService
from ledgerflow.domain.vendor import VendorService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture(autouse=True)
def no_ai_key(monkeypatch):
    """Keep tests away from the real Anthropic API."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("LEDGERFLOW_DB_PATH", raising=False)
    monkeypatch.delenv("LEDGERFLOW_CATEGORY_TABLE", raising=False)


@pytest.fixture
def company_service(temp_db):
    """Create a CompanyService with a temporary database."""
    return CompanyService(temp_db)


@pytest.fixture
def ledger(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def invoice_service(temp_db, ledger):
    """Create an InvoiceService that posts to the ledger."""
    return InvoiceService(temp_db, ledger)


@pytest.fixture
def bill_service(temp_db, ledger):
    """Create a BillService that posts to the ledger."""
    return BillService(temp_db, ledger)


@pytest.fixture
def transaction_service(temp_db, ledger):
    """Create a TransactionService that posts to the ledger."""
    return TransactionService(temp_db, ledger=ledger)


@pytest.fixture
def vendor_service(temp_db):
    """Create a VendorService with a temporary database."""
    return VendorService(temp_db)


@pytest.fixture
def classifier(temp_db):
    """Rule cascade without an external classifier."""
    return ClassificationService(temp_db)


@pytest.fixture
def sample_company(company_service):
    """Create a sample company with the default chart of accounts."""
    company_id = company_service.create_company("Acme Traders")
    return company_service.get_company(company_id)


@pytest.fixture
def sample_invoice(invoice_service, sample_company):
    """Open invoice INV-1042 for 11,800 due 2026-03-10."""
    invoice_id = invoice_service.create_invoice(
        company_id=sample_company.id,
        number="INV-1042",
        counterparty_name="Globex Corp",
        total_amount=Decimal("11800.00"),
        issue_date=date(2026, 2, 10),
        due_date=date(2026, 3, 10),
        tax_amount=Decimal("1800.00"),
    )
    return invoice_service.get_invoice(invoice_id)


@pytest.fixture
def sample_bill(bill_service, sample_company):
    """Open bill BILL-77 for 5,000 due 2026-03-05."""
    bill_id = bill_service.create_bill(
        company_id=sample_company.id,
        number="BILL-77",
        counterparty_name="Northwind Supplies",
        total_amount=Decimal("5000.00"),
        issue_date=date(2026, 2, 20),
        due_date=date(2026, 3, 5),
        category="Office Supplies",
    )
    return bill_service.get_bill(bill_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
