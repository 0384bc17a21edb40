"""Book transaction domain service."""

import hashlib
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.categories import CategoryTable, default_category_table
from ledgerflow.domain.entities import (
    BookTransaction,
    ExpenseType,
    Frequency,
    PostingLine,
    TransactionStatus,
)
from ledgerflow.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    company_not_found,
    transaction_not_found,
)
from ledgerflow.domain.ledger import LedgerService

logger = logging.getLogger(__name__)


def transaction_fingerprint(txn_date: date, description: Optional[str], amount: Decimal) -> str:
    """Stable unique_id for a (date, description, signed amount) triple."""
    text = " ".join((description or "").lower().split())
    raw = f"{txn_date.isoformat()}|{text}|{Decimal(amount).quantize(Decimal('0.01'))}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


class TransactionService:
    """Service for managing book transactions."""

    def __init__(
        self,
        db: Database,
        categories: Optional[CategoryTable] = None,
        ledger: Optional[LedgerService] = None,
    ):
        """Initialize transaction service.

        Args:
            db: Database instance
            categories: Category vocabulary used to validate recategorization
            ledger: When given, recategorization and cancellation post
                offsetting journal entries
        """
        self.db = db
        self.categories = categories or default_category_table()
        self.ledger = ledger

    def create_transaction(
        self,
        company_id: int,
        date: date,
        amount: Decimal,
        description: Optional[str] = None,
        category: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        expense_type: ExpenseType = ExpenseType.ONE_TIME,
        frequency: Optional[Frequency] = None,
        end_date: Optional[date] = None,
        unique_id: Optional[str] = None,
    ) -> int:
        """Create a book transaction.

        Args:
            company_id: Company ID
            date: Transaction date
            amount: Signed amount (credits positive, debits negative)
            description: Optional description
            category: Optional category name
            counterparty_name: Optional counterparty
            expense_type: One-time or recurring
            frequency: Recurrence frequency, for recurring transactions
            end_date: Last expected occurrence, for recurring transactions
            unique_id: Deduplication key; defaults to the fingerprint of
                date, description and amount

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If the company doesn't exist
            ConflictError: If the transaction already exists
            ValidationError: If the amount is zero
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        if amount == 0:
            raise ValidationError("Transaction amount must be non-zero")

        unique_id = unique_id or transaction_fingerprint(date, description, amount)
        if self.db.transaction_exists(company_id, unique_id):
            raise ConflictError(
                f"Transaction with unique_id '{unique_id}' already exists for company {company_id}"
            )

        return self.db.create_transaction(
            company_id=company_id,
            unique_id=unique_id,
            date=date,
            amount=amount,
            description=description,
            category=category,
            counterparty_name=counterparty_name,
            expense_type=expense_type,
            frequency=frequency,
            end_date=end_date,
        )

    def get_transaction(self, transaction_id: int) -> Optional[BookTransaction]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def _require(self, transaction_id: int) -> BookTransaction:
        txn = self.db.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def list_transactions(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        include_cancelled: bool = False,
        unreconciled_only: bool = False,
    ) -> list[BookTransaction]:
        """List a company's transactions with filters, oldest first."""
        return self.db.list_transactions(
            company_id,
            start_date=start_date,
            end_date=end_date,
            status=None if include_cancelled else TransactionStatus.ACTIVE,
            is_reconciled=False if unreconciled_only else None,
            category=category,
        )

    def recategorize(self, transaction_id: int, category: str) -> BookTransaction:
        """Move a transaction to another category.

        With a ledger, the expense already posted for the transaction is
        moved to the new category's account by a reclassification entry.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If the category is unknown or the transaction is cancelled
        """
        txn = self._require(transaction_id)
        resolved = self.categories.resolve(category)
        if resolved is None:
            raise ValidationError(
                f"Unknown category '{category}' "
                f"(expected one of {', '.join(self.categories.categories)})"
            )
        if txn.status == TransactionStatus.CANCELLED:
            raise ValidationError(f"Transaction {transaction_id} is cancelled")
        if resolved == txn.category:
            return txn

        if self.ledger is not None:
            self._post_reclassification(txn, resolved)
        self.db.update_transaction_category(transaction_id, resolved)
        logger.info(
            "Recategorized transaction %d from %s to %s", transaction_id, txn.category, resolved
        )
        return self.db.get_transaction(transaction_id)

    def _post_reclassification(self, txn: BookTransaction, category: str) -> None:
        policy = self.ledger.policy
        old_code = policy.expense_code(txn.category)
        new_code = policy.expense_code(category)
        if old_code == new_code:
            return
        entries = self.ledger.list_entries(
            txn.company_id, linked_transaction_id=txn.id, account_code=old_code
        )
        posted = sum((e.debit - e.credit for e in entries), Decimal("0"))
        if posted <= 0:
            return
        self.ledger.post(
            txn.company_id,
            date.today(),
            f"Reclassify transaction {txn.id} from {txn.category} to {category}",
            [PostingLine(new_code, debit=posted), PostingLine(old_code, credit=posted)],
            linked_transaction_id=txn.id,
        )

    def cancel(self, transaction_id: int) -> None:
        """Cancel a transaction; it is kept with status ``cancelled``.

        With a ledger, every journal entry linked to the transaction is
        reversed.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If it is already cancelled, reconciled, or settled
                an invoice or bill
        """
        txn = self._require(transaction_id)
        if txn.status == TransactionStatus.CANCELLED:
            raise ValidationError(f"Transaction {transaction_id} is already cancelled")
        if txn.is_reconciled:
            raise ValidationError(
                f"Transaction {transaction_id} is reconciled; unreconcile it before cancelling"
            )

        if self.ledger is not None:
            entries = self.ledger.list_entries(txn.company_id, linked_transaction_id=txn.id)
            settled = sorted({e.reference for e in entries if e.reference})
            if settled:
                raise ValidationError(
                    f"Transaction {transaction_id} settled {', '.join(settled)}; "
                    "it cannot be cancelled"
                )
            self.ledger.reverse(
                txn.company_id, date.today(), f"Cancel transaction {txn.id}", entries
            )
        self.db.update_transaction_status(transaction_id, TransactionStatus.CANCELLED)
        logger.info("Cancelled transaction %d", transaction_id)

    def mark_reconciled(self, transaction_id: int, is_reconciled: bool = True) -> None:
        """Flag a transaction as reconciled against the bank statement (or clear the flag).

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        self._require(transaction_id)
        self.db.set_transaction_reconciled(transaction_id, is_reconciled)
