"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerflow.domain.entities import (
    AccountingAccount,
    AccountType,
    Bill,
    BookTransaction,
    Company,
    ExpenseType,
    Frequency,
    Invoice,
    JournalEntry,
    PostingLine,
    TransactionStatus,
    Vendor,
)


class Database(ABC):
    """Abstract database interface for ledgerflow."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Company operations
    @abstractmethod
    def create_company(self, name: str) -> int:
        """Create a company. Returns company ID."""
        pass

    @abstractmethod
    def get_company(self, company_id: int) -> Optional[Company]:
        """Get company by ID."""
        pass

    @abstractmethod
    def get_company_by_name(self, name: str) -> Optional[Company]:
        """Get company by name."""
        pass

    @abstractmethod
    def list_companies(self) -> list[Company]:
        """List all companies."""
        pass

    # Book transaction operations
    @abstractmethod
    def create_transaction(
        self,
        company_id: int,
        unique_id: str,
        date: date,
        amount: Decimal,
        description: Optional[str] = None,
        category: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        expense_type: ExpenseType = ExpenseType.ONE_TIME,
        frequency: Optional[Frequency] = None,
        end_date: Optional[date] = None,
    ) -> int:
        """Create a book transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[BookTransaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def transaction_exists(self, company_id: int, unique_id: str) -> bool:
        """Check if a transaction with given unique_id exists for company."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[TransactionStatus] = None,
        is_reconciled: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[BookTransaction]:
        """List a company's transactions with optional filters, oldest first."""
        pass

    @abstractmethod
    def update_transaction_category(self, transaction_id: int, category: Optional[str]) -> None:
        """Update transaction category."""
        pass

    @abstractmethod
    def update_transaction_status(self, transaction_id: int, status: TransactionStatus) -> None:
        """Update transaction status."""
        pass

    @abstractmethod
    def set_transaction_reconciled(self, transaction_id: int, is_reconciled: bool = True) -> None:
        """Mark transaction as reconciled (or not)."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        company_id: int,
        number: str,
        counterparty_name: str,
        total_amount: Decimal,
        issue_date: date,
        due_date: Optional[date] = None,
        status: str = "pending",
    ) -> int:
        """Create an invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def get_invoice_by_number(self, company_id: int, number: str) -> Optional[Invoice]:
        """Get invoice by number within a company."""
        pass

    @abstractmethod
    def list_invoices(self, company_id: int, open_only: bool = False) -> list[Invoice]:
        """List invoices; open ones only when requested."""
        pass

    @abstractmethod
    def update_invoice_payment(
        self, invoice_id: int, paid_amount: Decimal, balance_amount: Decimal, status: str
    ) -> None:
        """Store new paid/balance amounts and status of an invoice."""
        pass

    @abstractmethod
    def update_invoice_status(self, invoice_id: int, status: str) -> None:
        """Update invoice status."""
        pass

    # Bill operations
    @abstractmethod
    def create_bill(
        self,
        company_id: int,
        number: str,
        counterparty_name: str,
        total_amount: Decimal,
        issue_date: date,
        due_date: Optional[date] = None,
        status: str = "unpaid",
    ) -> int:
        """Create a bill. Returns bill ID."""
        pass

    @abstractmethod
    def get_bill(self, bill_id: int) -> Optional[Bill]:
        """Get bill by ID."""
        pass

    @abstractmethod
    def get_bill_by_number(self, company_id: int, number: str) -> Optional[Bill]:
        """Get bill by number within a company."""
        pass

    @abstractmethod
    def list_bills(self, company_id: int, open_only: bool = False) -> list[Bill]:
        """List bills; open ones only when requested."""
        pass

    @abstractmethod
    def update_bill_payment(
        self, bill_id: int, paid_amount: Decimal, balance_amount: Decimal, status: str
    ) -> None:
        """Store new paid/balance amounts and status of a bill."""
        pass

    @abstractmethod
    def update_bill_status(self, bill_id: int, status: str) -> None:
        """Update bill status."""
        pass

    # Vendor operations
    @abstractmethod
    def create_vendor(self, company_id: int, name: str, category: Optional[str] = None) -> int:
        """Create a vendor. Returns vendor ID."""
        pass

    @abstractmethod
    def get_vendor_by_name(self, company_id: int, name: str) -> Optional[Vendor]:
        """Get vendor by name (case-insensitive)."""
        pass

    @abstractmethod
    def list_vendors(self, company_id: int, active_only: bool = False) -> list[Vendor]:
        """List vendors."""
        pass

    @abstractmethod
    def set_vendor_active(self, vendor_id: int, is_active: bool) -> None:
        """Activate or deactivate a vendor."""
        pass

    # Chart of accounts operations
    @abstractmethod
    def create_accounting_account(
        self, company_id: int, code: str, name: str, account_type: AccountType
    ) -> int:
        """Create a ledger account. Returns account ID."""
        pass

    @abstractmethod
    def get_accounting_account(self, company_id: int, code: str) -> Optional[AccountingAccount]:
        """Get ledger account by code."""
        pass

    @abstractmethod
    def list_accounting_accounts(self, company_id: int) -> list[AccountingAccount]:
        """List ledger accounts ordered by code."""
        pass

    # Journal operations
    @abstractmethod
    def post_journal_entries(
        self,
        company_id: int,
        date: date,
        description: str,
        lines: Sequence[PostingLine],
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """Write journal entries and apply balance changes in one transaction.

        Raises:
            UnknownAccountError: If a code does not resolve; nothing is written
        """
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_code: Optional[str] = None,
        linked_transaction_id: Optional[int] = None,
        reference: Optional[str] = None,
    ) -> list[JournalEntry]:
        """List journal entries ordered by date and ID."""
        pass

    @abstractmethod
    def get_account_activity(
        self, company_id: int, as_of: Optional[date] = None
    ) -> list[tuple[AccountingAccount, Decimal, Decimal]]:
        """Total debits and credits per account up to a date, ordered by code."""
        pass
