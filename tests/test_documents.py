"""Tests for invoice and bill services."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.documents import InvoiceService, _DocumentService, settle
from ledgerflow.domain.errors import ConflictError, NotFoundError, ValidationError


def postings(ledger, company_id, reference):
    return [(e.account_code, e.debit, e.credit) for e in ledger.list_entries(company_id, reference=reference)]


class TestInvoiceService:
    """Tests for InvoiceService."""

    def test_create_posts_receivable(self, ledger, sample_company, sample_invoice):
        assert sample_invoice.status == "pending"
        assert sample_invoice.balance_amount == Decimal("11800")
        assert sample_invoice.is_open

        assert postings(ledger, sample_company.id, "INV-1042") == [
            ("1100", Decimal("11800.00"), Decimal("0.00")),
            ("4000", Decimal("0.00"), Decimal("10000.00")),
            ("2102", Decimal("0.00"), Decimal("1800.00")),
        ]

    def test_duplicate_number(self, invoice_service, sample_company, sample_invoice):
        with pytest.raises(ConflictError, match="already exists"):
            invoice_service.create_invoice(sample_company.id, "INV-1042", "Other", Decimal("10"))

    def test_invalid_initial_status(self, invoice_service, sample_company):
        with pytest.raises(ValidationError, match="Invalid initial invoice status"):
            invoice_service.create_invoice(sample_company.id, "INV-1", "Globex", Decimal("10"), status="paid")

    def test_invalid_amounts(self, invoice_service, sample_company):
        with pytest.raises(ValidationError, match="must be positive"):
            invoice_service.create_invoice(sample_company.id, "INV-1", "Globex", Decimal("0"))
        with pytest.raises(ValidationError, match="Tax amount"):
            invoice_service.create_invoice(
                sample_company.id, "INV-1", "Globex", Decimal("10"), tax_amount=Decimal("10")
            )

    def test_unknown_company(self, invoice_service):
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(999, "INV-1", "Globex", Decimal("10"))

    def test_partial_then_full_payment(self, temp_db, invoice_service, sample_company, sample_invoice):
        invoice = invoice_service.record_payment(
            sample_invoice.id, Decimal("5000"), payment_date=date(2026, 3, 1)
        )
        assert invoice.status == "partial"
        assert invoice.paid_amount == Decimal("5000")
        assert invoice.balance_amount == Decimal("6800")

        invoice = invoice_service.record_payment(sample_invoice.id, Decimal("6800"))
        assert invoice.status == "paid"
        assert invoice.balance_amount == Decimal("0")
        assert not invoice.is_open

        # Receivable is cleared and the bank holds the cash
        assert temp_db.get_accounting_account(sample_company.id, "1100").balance == Decimal("0")
        assert temp_db.get_accounting_account(sample_company.id, "1010").balance == Decimal("11800")

    def test_overpayment(self, invoice_service, sample_invoice):
        with pytest.raises(ValidationError, match="exceeds the outstanding balance"):
            invoice_service.record_payment(sample_invoice.id, Decimal("20000"))

    def test_payment_on_paid_invoice(self, invoice_service, sample_invoice):
        invoice_service.record_payment(sample_invoice.id, Decimal("11800"))

        with pytest.raises(ValidationError, match="it is paid"):
            invoice_service.record_payment(sample_invoice.id, Decimal("1"))

    def test_payment_on_missing_invoice(self, invoice_service):
        with pytest.raises(NotFoundError, match="Invoice 42 not found"):
            invoice_service.record_payment(42, Decimal("1"))

    def test_cancel_reverses_postings(self, ledger, invoice_service, sample_company, sample_invoice):
        invoice_service.cancel_invoice(sample_invoice.id)

        assert invoice_service.get_invoice(sample_invoice.id).status == "cancelled"
        assert len(postings(ledger, sample_company.id, "INV-1042")) == 6
        assert ledger.trial_balance(sample_company.id).rows == ()

    def test_cancel_partly_paid(self, invoice_service, sample_invoice):
        invoice_service.record_payment(sample_invoice.id, Decimal("100"))

        with pytest.raises(ValidationError, match="cannot be cancelled"):
            invoice_service.cancel_invoice(sample_invoice.id)

    def test_without_ledger(self, temp_db, ledger, sample_company):
        service = InvoiceService(temp_db)
        service.create_invoice(sample_company.id, "INV-9", "Globex", Decimal("500"))

        assert ledger.list_entries(sample_company.id) == []

    def test_list_open(self, invoice_service, sample_company, sample_invoice):
        invoice_service.create_invoice(sample_company.id, "INV-2", "Initech", Decimal("100"))
        invoice_service.record_payment(sample_invoice.id, Decimal("11800"))

        assert [i.number for i in invoice_service.list_invoices(sample_company.id)] == ["INV-1042", "INV-2"]
        assert [i.number for i in invoice_service.list_invoices(sample_company.id, open_only=True)] == ["INV-2"]


class TestBillService:
    """Tests for BillService."""

    def test_create_posts_payable(self, ledger, sample_company, sample_bill):
        assert sample_bill.status == "unpaid"
        assert postings(ledger, sample_company.id, "BILL-77") == [
            ("5460", Decimal("5000.00"), Decimal("0.00")),
            ("2000", Decimal("0.00"), Decimal("5000.00")),
        ]

    def test_create_with_input_gst(self, ledger, bill_service, sample_company):
        bill_service.create_bill(
            sample_company.id, "B-9", "Slack", Decimal("1180"), category="SaaS", tax_amount=Decimal("180")
        )

        assert postings(ledger, sample_company.id, "B-9") == [
            ("5200", Decimal("1000.00"), Decimal("0.00")),
            ("1110", Decimal("180.00"), Decimal("0.00")),
            ("2000", Decimal("0.00"), Decimal("1180.00")),
        ]

    def test_payment(self, temp_db, ledger, bill_service, sample_company, sample_bill):
        bill = bill_service.record_payment(sample_bill.id, Decimal("5000"), payment_date=date(2026, 3, 5))

        assert bill.status == "paid"
        assert postings(ledger, sample_company.id, "BILL-77")[-2:] == [
            ("2000", Decimal("5000.00"), Decimal("0.00")),
            ("1010", Decimal("0.00"), Decimal("5000.00")),
        ]
        assert temp_db.get_accounting_account(sample_company.id, "2000").balance == Decimal("0")

    def test_cancel(self, ledger, bill_service, sample_company, sample_bill):
        bill_service.cancel_bill(sample_bill.id)

        assert bill_service.get_bill(sample_bill.id).status == "cancelled"
        assert ledger.trial_balance(sample_company.id).rows == ()
        with pytest.raises(ValidationError):
            bill_service.record_payment(sample_bill.id, Decimal("1"))

    def test_cancel_does_not_reverse_other_documents(self, ledger, bill_service, sample_company, sample_bill):
        bill_service.create_bill(sample_company.id, "BILL-78", "Northwind", Decimal("300"))
        bill_service.cancel_bill(sample_bill.id)

        assert len(ledger.trial_balance(sample_company.id).rows) == 2


class TestSettle:
    """Tests for the payment arithmetic."""

    def test_settle(self, sample_invoice):
        assert settle(sample_invoice, "invoice", Decimal("800")) == (
            Decimal("800"), Decimal("11000"), "partial"
        )
        assert settle(sample_invoice, "invoice", Decimal("11800"))[2] == "paid"

    def test_non_positive(self, sample_invoice):
        with pytest.raises(ValidationError, match="must be positive"):
            settle(sample_invoice, "invoice", Decimal("0"))


def test_document_service_needs_a_number_lookup(temp_db):
    with pytest.raises(TypeError):
        _DocumentService(temp_db)
