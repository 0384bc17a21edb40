"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class LedgerImbalanceError(ValidationError):
    """Journal entry batch whose debits and credits do not agree."""

    def __init__(self, total_debits: Decimal, total_credits: Decimal):
        self.total_debits = total_debits
        self.total_credits = total_credits
        self.difference = abs(total_debits - total_credits)
        super().__init__(
            ledger_imbalance(total_debits, total_credits, self.difference)
        )


class UnknownAccountError(ValidationError):
    """Posting references an account code the company does not have."""

    def __init__(self, account_code: str, company_id: int):
        self.account_code = account_code
        self.company_id = company_id
        super().__init__(account_code_not_found(account_code, company_id))


class ExternalClassifierError(Exception):
    """Failure of the optional external classification backend.

    Not a DomainError: the classifier cascade treats it as a miss and never
    lets it reach callers.
    """


class ExternalClassifierUnavailable(ExternalClassifierError):
    """Backend not configured, unreachable, or timed out."""


class ExternalClassifierResponseError(ExternalClassifierError):
    """Backend answered with something that is not a usable classification."""


def format_money(amount: Decimal) -> str:
    """Format an amount in rupees with thousands separators."""
    return f"₹{amount:,.2f}"


def ledger_imbalance(total_debits: Decimal, total_credits: Decimal, difference: Decimal) -> str:
    """Return message for an unbalanced journal batch."""
    return (
        f"Debits ({format_money(total_debits)}) do not equal credits "
        f"({format_money(total_credits)}). Difference: {format_money(difference)}"
    )


def account_code_not_found(account_code: str, company_id: int) -> str:
    """Return message for a missing chart-of-accounts code."""
    return f"Account code {account_code} not found for company {company_id}"


def company_not_found(company_id: int) -> str:
    """Return message for missing company."""
    return f"Company {company_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing book transaction."""
    return f"Transaction {transaction_id} not found"


def invoice_not_found(invoice_id: int) -> str:
    """Return message for missing invoice."""
    return f"Invoice {invoice_id} not found"


def bill_not_found(bill_id: int) -> str:
    """Return message for missing bill."""
    return f"Bill {bill_id} not found"


def duplicate_document_number(kind: str, number: str, company_id: int) -> str:
    """Return message for a reused invoice or bill number."""
    return f"{kind.capitalize()} '{number}' already exists for company {company_id}"


def overpayment(kind: str, number: str, amount: Decimal, balance: Decimal) -> str:
    """Return message when a payment exceeds the outstanding balance."""
    return (
        f"Payment of {format_money(amount)} exceeds the outstanding balance "
        f"{format_money(balance)} of {kind} '{number}'"
    )


def document_closed(kind: str, number: str, status: str) -> str:
    """Return message for a payment against a paid or cancelled document."""
    return f"Cannot record a payment against {kind} '{number}': it is {status}"
