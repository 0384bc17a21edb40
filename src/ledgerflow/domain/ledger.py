"""Double-entry ledger service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.entities import (
    JournalEntry,
    PostingLine,
    TrialBalance,
    TrialBalanceRow,
)
from ledgerflow.domain.errors import (
    LedgerImbalanceError,
    UnknownAccountError,
    ValidationError,
)
from ledgerflow.domain.posting import PostingPolicy

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")
ZERO = Decimal("0")


class LedgerService:
    """Validate and post balanced journal entries."""

    def __init__(
        self,
        db: Database,
        policy: Optional[PostingPolicy] = None,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ):
        """Initialize ledger service.

        Args:
            db: Database instance
            policy: Account mapping for the named events
            tolerance: Largest accepted debit/credit difference (use 0 for
                zero-decimal currencies)
        """
        if tolerance < 0:
            raise ValueError("tolerance must not be negative")
        self.db = db
        self.policy = policy or PostingPolicy()
        self.tolerance = Decimal(tolerance)

    def validate(self, company_id: int, entries: Iterable[Any]) -> list[PostingLine]:
        """Check a batch without posting it.

        Raises:
            ValidationError: Fewer than two lines, or a negative/empty line
            LedgerImbalanceError: Debits and credits differ by more than the tolerance
            UnknownAccountError: An account code does not exist for the company
        """
        lines = [PostingLine.coerce(e) for e in entries]
        if len(lines) < 2:
            raise ValidationError(
                "Journal entry must have at least 2 entries (debit and credit)"
            )

        total_debits = sum((line.debit for line in lines), ZERO)
        total_credits = sum((line.credit for line in lines), ZERO)
        if abs(total_debits - total_credits) > self.tolerance:
            raise LedgerImbalanceError(total_debits, total_credits)

        for code in dict.fromkeys(line.account_code for line in lines):
            if self.db.get_accounting_account(company_id, code) is None:
                raise UnknownAccountError(code, company_id)
        return lines

    def post(
        self,
        company_id: int,
        date: date,
        description: str,
        entries: Iterable[Any],
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """Post a balanced batch and update account balances atomically.

        Args:
            company_id: Company ID
            date: Posting date
            description: Narration shared by all lines
            entries: PostingLine objects or ``{account_code, debit, credit}`` dicts
            linked_transaction_id: Optional book transaction the batch belongs to
            reference: Optional external reference (invoice number, UTR, ...)

        Returns:
            The created journal entries, in input order

        Raises:
            ValidationError: See :meth:`validate`; nothing is written on failure
        """
        lines = self.validate(company_id, entries)
        posted = self.db.post_journal_entries(
            company_id=company_id,
            date=date,
            description=description,
            lines=lines,
            linked_transaction_id=linked_transaction_id,
            reference=reference,
        )
        logger.info(
            "Posted %d journal entries for company %d (%s)", len(posted), company_id, description
        )
        return posted

    # Named events

    def expense_lines(self, amount: Decimal, category: Optional[str], tax_amount: Decimal = ZERO):
        policy = self.policy
        _check_tax(amount, tax_amount)
        lines = [PostingLine(policy.expense_code(category), debit=amount - tax_amount)]
        lines.extend(policy.tax_regime.input_credit_lines(tax_amount))
        return lines

    def expense_payment_lines(
        self, amount: Decimal, category: Optional[str], tax_amount: Decimal = ZERO
    ) -> list[PostingLine]:
        lines = self.expense_lines(amount, category, tax_amount)
        lines.append(PostingLine(self.policy.bank_code, credit=amount))
        return lines

    def post_expense(
        self,
        company_id: int,
        date: date,
        amount: Decimal,
        category: Optional[str],
        description: str,
        tax_amount: Decimal = ZERO,
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """Money paid out for an expense: Dr expense (+ input tax), Cr bank."""
        lines = self.expense_payment_lines(amount, category, tax_amount)
        return self.post(company_id, date, description, lines, linked_transaction_id, reference)

    def post_bill(
        self,
        company_id: int,
        date: date,
        amount: Decimal,
        category: Optional[str],
        description: str,
        tax_amount: Decimal = ZERO,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """A vendor bill received: Dr expense (+ input tax), Cr accounts payable."""
        lines = self.bill_lines(amount, category, tax_amount)
        return self.post(company_id, date, description, lines, reference=reference)

    def bill_lines(
        self, amount: Decimal, category: Optional[str], tax_amount: Decimal = ZERO
    ) -> list[PostingLine]:
        lines = self.expense_lines(amount, category, tax_amount)
        lines.append(PostingLine(self.policy.payable_code, credit=amount))
        return lines

    def post_revenue(
        self,
        company_id: int,
        date: date,
        amount: Decimal,
        description: str,
        tax_amount: Decimal = ZERO,
        inter_state: bool = True,
        settled: bool = False,
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """Revenue earned: Dr receivable (or bank when ``settled``), Cr revenue (+ output tax)."""
        lines = self.revenue_lines(amount, tax_amount, inter_state, settled)
        return self.post(company_id, date, description, lines, linked_transaction_id, reference)

    def revenue_lines(
        self,
        amount: Decimal,
        tax_amount: Decimal = ZERO,
        inter_state: bool = True,
        settled: bool = False,
    ) -> list[PostingLine]:
        policy = self.policy
        _check_tax(amount, tax_amount)
        debit_code = policy.bank_code if settled else policy.receivable_code
        lines = [
            PostingLine(debit_code, debit=amount),
            PostingLine(policy.revenue_code, credit=amount - tax_amount),
        ]
        lines.extend(policy.tax_regime.output_liability_lines(tax_amount, inter_state))
        return lines

    def post_payment_received(
        self,
        company_id: int,
        date: date,
        amount: Decimal,
        description: str,
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """Customer paid an invoice: Dr bank, Cr receivable."""
        lines = self.payment_received_lines(amount)
        return self.post(company_id, date, description, lines, linked_transaction_id, reference)

    def payment_received_lines(self, amount: Decimal) -> list[PostingLine]:
        return [
            PostingLine(self.policy.bank_code, debit=amount),
            PostingLine(self.policy.receivable_code, credit=amount),
        ]

    def post_bill_payment(
        self,
        company_id: int,
        date: date,
        amount: Decimal,
        description: str,
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """Company paid a vendor bill: Dr payable, Cr bank."""
        lines = self.bill_payment_lines(amount)
        return self.post(company_id, date, description, lines, linked_transaction_id, reference)

    def bill_payment_lines(self, amount: Decimal) -> list[PostingLine]:
        return [
            PostingLine(self.policy.payable_code, debit=amount),
            PostingLine(self.policy.bank_code, credit=amount),
        ]

    def reverse(
        self, company_id: int, date: date, description: str, entries: Iterable[JournalEntry]
    ) -> list[JournalEntry]:
        """Post offsetting entries for earlier postings; the ledger is never edited."""
        entries = list(entries)
        if not entries:
            return []
        lines = [PostingLine(e.account_code, debit=e.credit, credit=e.debit) for e in entries]
        return self.post(
            company_id,
            date,
            description,
            lines,
            linked_transaction_id=entries[0].linked_transaction_id,
            reference=entries[0].reference,
        )

    # Queries

    def list_entries(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_code: Optional[str] = None,
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        return self.db.list_journal_entries(
            company_id,
            start_date=start_date,
            end_date=end_date,
            account_code=account_code,
            linked_transaction_id=linked_transaction_id,
            reference=reference,
        )

    def trial_balance(self, company_id: int, as_of: Optional[date] = None) -> TrialBalance:
        """Net debit or credit of every account with activity up to ``as_of``."""
        rows = []
        total_debits = ZERO
        total_credits = ZERO
        for account, debits, credits in self.db.get_account_activity(company_id, as_of=as_of):
            net = debits - credits
            if net == 0:
                continue
            debit = net if net > 0 else ZERO
            credit = -net if net < 0 else ZERO
            rows.append(
                TrialBalanceRow(
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.type,
                    debit=debit,
                    credit=credit,
                )
            )
            total_debits += debit
            total_credits += credit
        return TrialBalance(
            rows=tuple(rows),
            total_debits=total_debits,
            total_credits=total_credits,
            as_of=as_of,
        )


def _check_tax(amount: Decimal, tax_amount: Decimal) -> None:
    if amount <= 0:
        raise ValidationError("Amount must be positive")
    if tax_amount < 0 or tax_amount >= amount:
        raise ValidationError(
            f"Tax amount {tax_amount} must be between 0 and the total amount {amount}"
        )
