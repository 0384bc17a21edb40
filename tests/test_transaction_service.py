"""Tests for the book transaction service."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.entities import Direction, ExpenseType, Frequency, TransactionStatus
from ledgerflow.domain.errors import ConflictError, NotFoundError, ValidationError
from ledgerflow.domain.transaction import TransactionService, transaction_fingerprint


@pytest.fixture
def posted_expense(transaction_service, ledger, sample_company):
    """An 800 Meals debit with its expense posted to the ledger."""
    txn_id = transaction_service.create_transaction(
        sample_company.id, date(2026, 3, 5), Decimal("-800"), "Zomato team lunch", category="Meals"
    )
    ledger.post_expense(
        sample_company.id, date(2026, 3, 5), Decimal("800"), "Meals", "Zomato team lunch",
        linked_transaction_id=txn_id,
    )
    return transaction_service.get_transaction(txn_id)


def balance(db, company_id, code):
    return db.get_accounting_account(company_id, code).balance


class TestCreateTransaction:
    """Tests for TransactionService.create_transaction."""

    def test_create(self, transaction_service, sample_company):
        txn_id = transaction_service.create_transaction(
            sample_company.id,
            date(2026, 3, 1),
            Decimal("-1499"),
            "Slack subscription",
            category="SaaS",
            counterparty_name="Slack",
            expense_type=ExpenseType.RECURRING,
            frequency=Frequency.MONTHLY,
        )

        txn = transaction_service.get_transaction(txn_id)
        assert txn.amount == Decimal("-1499")
        assert txn.direction == Direction.DEBIT
        assert txn.frequency == Frequency.MONTHLY
        assert txn.status == TransactionStatus.ACTIVE
        assert txn.is_reconciled is False
        assert txn.unique_id == transaction_fingerprint(
            date(2026, 3, 1), "Slack subscription", Decimal("-1499")
        )

    def test_duplicate_fingerprint(self, transaction_service, sample_company):
        transaction_service.create_transaction(sample_company.id, date(2026, 3, 1), Decimal("-10"), "Tea")

        with pytest.raises(ConflictError, match="already exists"):
            transaction_service.create_transaction(
                sample_company.id, date(2026, 3, 1), Decimal("-10.00"), "  tea "
            )

    def test_duplicate_unique_id(self, transaction_service, sample_company):
        transaction_service.create_transaction(
            sample_company.id, date(2026, 3, 1), Decimal("-10"), "Tea", unique_id="bank-1"
        )

        with pytest.raises(ConflictError):
            transaction_service.create_transaction(
                sample_company.id, date(2026, 3, 2), Decimal("-99"), "Coffee", unique_id="bank-1"
            )

    def test_zero_amount(self, transaction_service, sample_company):
        with pytest.raises(ValidationError, match="non-zero"):
            transaction_service.create_transaction(sample_company.id, date(2026, 3, 1), Decimal("0"))

    def test_unknown_company(self, transaction_service):
        with pytest.raises(NotFoundError, match="Company 999 not found"):
            transaction_service.create_transaction(999, date(2026, 3, 1), Decimal("1"))


def test_fingerprint_depends_on_sign():
    assert transaction_fingerprint(date(2026, 3, 1), "Tea", Decimal("10")) != transaction_fingerprint(
        date(2026, 3, 1), "Tea", Decimal("-10")
    )


def test_list_transactions(transaction_service, sample_company):
    first = transaction_service.create_transaction(sample_company.id, date(2026, 3, 1), Decimal("-10"), "Tea", category="Meals")
    second = transaction_service.create_transaction(sample_company.id, date(2026, 3, 9), Decimal("500"), "Refund")
    transaction_service.cancel(second)

    assert [t.id for t in transaction_service.list_transactions(sample_company.id)] == [first]
    assert len(transaction_service.list_transactions(sample_company.id, include_cancelled=True)) == 2
    assert transaction_service.list_transactions(sample_company.id, start_date=date(2026, 3, 2)) == []
    assert [t.id for t in transaction_service.list_transactions(sample_company.id, category="Meals")] == [first]

    transaction_service.mark_reconciled(first)
    assert transaction_service.list_transactions(sample_company.id, unreconciled_only=True) == []


class TestRecategorize:
    """Tests for TransactionService.recategorize."""

    def test_moves_posted_expense(self, temp_db, transaction_service, sample_company, posted_expense):
        txn = transaction_service.recategorize(posted_expense.id, "travel")

        assert txn.category == "Travel"
        # Meals has no account of its own and posts to miscellaneous expenses
        assert balance(temp_db, sample_company.id, "5480") == Decimal("0")
        assert balance(temp_db, sample_company.id, "5450") == Decimal("800")

    def test_same_account_posts_nothing(self, ledger, transaction_service, sample_company, posted_expense):
        transaction_service.recategorize(posted_expense.id, "Entertainment")

        assert len(ledger.list_entries(sample_company.id, linked_transaction_id=posted_expense.id)) == 2

    def test_unknown_category(self, transaction_service, posted_expense):
        with pytest.raises(ValidationError, match="Unknown category 'Groceries'"):
            transaction_service.recategorize(posted_expense.id, "Groceries")

    def test_missing_transaction(self, transaction_service):
        with pytest.raises(NotFoundError, match="Transaction 42 not found"):
            transaction_service.recategorize(42, "Travel")

    def test_without_ledger(self, temp_db, sample_company):
        service = TransactionService(temp_db)
        txn_id = service.create_transaction(sample_company.id, date(2026, 3, 1), Decimal("-10"), "Tea")

        assert service.recategorize(txn_id, "Meals").category == "Meals"


class TestCancel:
    """Tests for TransactionService.cancel."""

    def test_cancel_reverses_postings(self, temp_db, ledger, transaction_service, sample_company, posted_expense):
        transaction_service.cancel(posted_expense.id)

        assert transaction_service.get_transaction(posted_expense.id).status == TransactionStatus.CANCELLED
        assert len(ledger.list_entries(sample_company.id, linked_transaction_id=posted_expense.id)) == 4
        assert balance(temp_db, sample_company.id, "1010") == Decimal("0")

    def test_cancel_twice(self, transaction_service, posted_expense):
        transaction_service.cancel(posted_expense.id)

        with pytest.raises(ValidationError, match="already cancelled"):
            transaction_service.cancel(posted_expense.id)

    def test_cancelled_cannot_be_recategorized(self, transaction_service, posted_expense):
        transaction_service.cancel(posted_expense.id)

        with pytest.raises(ValidationError, match="cancelled"):
            transaction_service.recategorize(posted_expense.id, "Travel")

    def test_reconciled_cannot_be_cancelled(self, transaction_service, posted_expense):
        transaction_service.mark_reconciled(posted_expense.id)

        with pytest.raises(ValidationError, match="reconciled"):
            transaction_service.cancel(posted_expense.id)

        transaction_service.mark_reconciled(posted_expense.id, False)
        transaction_service.cancel(posted_expense.id)

    def test_document_payment_cannot_be_cancelled(self, ledger, transaction_service, sample_company, sample_invoice):
        txn_id = transaction_service.create_transaction(
            sample_company.id, date(2026, 3, 9), Decimal("11800"), "NEFT CR INV-1042"
        )
        ledger.post_payment_received(
            sample_company.id, date(2026, 3, 9), Decimal("11800"), "Payment for invoice INV-1042",
            linked_transaction_id=txn_id, reference="INV-1042",
        )

        with pytest.raises(ValidationError, match="settled INV-1042"):
            transaction_service.cancel(txn_id)
