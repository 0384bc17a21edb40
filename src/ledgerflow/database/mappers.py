"""Mapper functions to convert SQLAlchemy models into domain entities.

The domain layer never sees ORM objects, so schema changes stay local to
this module and the models.
"""

from decimal import Decimal

from ledgerflow.domain import entities as domain
from ledgerflow.database.models import (
    AccountingAccount as ORMAccountingAccount,
    Bill as ORMBill,
    BookTransaction as ORMBookTransaction,
    Company as ORMCompany,
    Invoice as ORMInvoice,
    JournalEntry as ORMJournalEntry,
    Vendor as ORMVendor,
)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalize a stored amount to a 2-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT)


def company_to_domain(orm_company: ORMCompany) -> domain.Company:
    """Convert SQLAlchemy Company model to domain Company entity."""
    return domain.Company(
        id=orm_company.id,
        name=orm_company.name,
        created_at=orm_company.created_at,
    )


def transaction_to_domain(orm_transaction: ORMBookTransaction) -> domain.BookTransaction:
    """Convert SQLAlchemy BookTransaction model to domain BookTransaction entity."""
    return domain.BookTransaction(
        id=orm_transaction.id,
        company_id=orm_transaction.company_id,
        unique_id=orm_transaction.unique_id,
        date=orm_transaction.date,
        amount=to_money(orm_transaction.amount),
        description=orm_transaction.description,
        category=orm_transaction.category,
        counterparty_name=orm_transaction.counterparty_name,
        expense_type=domain.ExpenseType(orm_transaction.expense_type),
        frequency=domain.Frequency(orm_transaction.frequency) if orm_transaction.frequency else None,
        end_date=orm_transaction.end_date,
        status=domain.TransactionStatus(orm_transaction.status),
        is_reconciled=orm_transaction.is_reconciled,
        created_at=orm_transaction.created_at,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        company_id=orm_invoice.company_id,
        number=orm_invoice.number,
        counterparty_name=orm_invoice.counterparty_name,
        total_amount=to_money(orm_invoice.total_amount),
        paid_amount=to_money(orm_invoice.paid_amount),
        balance_amount=to_money(orm_invoice.balance_amount),
        status=orm_invoice.status,
        due_date=orm_invoice.due_date,
        issue_date=orm_invoice.issue_date,
    )


def bill_to_domain(orm_bill: ORMBill) -> domain.Bill:
    """Convert SQLAlchemy Bill model to domain Bill entity."""
    return domain.Bill(
        id=orm_bill.id,
        company_id=orm_bill.company_id,
        number=orm_bill.number,
        counterparty_name=orm_bill.counterparty_name,
        total_amount=to_money(orm_bill.total_amount),
        paid_amount=to_money(orm_bill.paid_amount),
        balance_amount=to_money(orm_bill.balance_amount),
        status=orm_bill.status,
        due_date=orm_bill.due_date,
        issue_date=orm_bill.issue_date,
    )


def vendor_to_domain(orm_vendor: ORMVendor) -> domain.Vendor:
    """Convert SQLAlchemy Vendor model to domain Vendor entity."""
    return domain.Vendor(
        id=orm_vendor.id,
        company_id=orm_vendor.company_id,
        name=orm_vendor.name,
        category=orm_vendor.category,
        is_active=orm_vendor.is_active,
    )


def accounting_account_to_domain(orm_account: ORMAccountingAccount) -> domain.AccountingAccount:
    """Convert SQLAlchemy AccountingAccount model to domain AccountingAccount entity."""
    return domain.AccountingAccount(
        id=orm_account.id,
        company_id=orm_account.company_id,
        code=orm_account.code,
        name=orm_account.name,
        type=domain.AccountType(orm_account.type),
        balance=to_money(orm_account.balance),
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model to domain JournalEntry entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        company_id=orm_entry.company_id,
        account_id=orm_entry.account_id,
        account_code=orm_entry.account.code,
        date=orm_entry.date,
        debit=to_money(orm_entry.debit),
        credit=to_money(orm_entry.credit),
        description=orm_entry.description,
        linked_transaction_id=orm_entry.linked_transaction_id,
        reference=orm_entry.reference,
        created_at=orm_entry.created_at,
    )
