"""Invoice and bill domain services."""

import logging
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from ledgerflow.database.base import Database
from ledgerflow.domain.entities import Bill, Invoice
from ledgerflow.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    bill_not_found,
    company_not_found,
    document_closed,
    duplicate_document_number,
    invoice_not_found,
    overpayment,
)
from ledgerflow.domain.ledger import LedgerService

logger = logging.getLogger(__name__)

INITIAL_INVOICE_STATUSES = ("draft", "sent", "pending")
CLOSED_STATUSES = ("paid", "cancelled")


def settle(document: Union[Invoice, Bill], kind: str, amount: Decimal) -> tuple[Decimal, Decimal, str]:
    """Paid amount, balance and status after a payment.

    Raises:
        ValidationError: If the amount is not positive, the document is
            closed, or the payment exceeds the balance
    """
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    if document.status in CLOSED_STATUSES:
        raise ValidationError(document_closed(kind, document.number, document.status))
    if amount > document.balance_amount:
        raise ValidationError(overpayment(kind, document.number, amount, document.balance_amount))

    paid = document.paid_amount + amount
    balance = document.total_amount - paid
    return paid, balance, "paid" if balance == 0 else "partial"


class _DocumentService(ABC):
    kind = "document"

    def __init__(self, db: Database, ledger: Optional[LedgerService] = None):
        """Initialize the service.

        Args:
            db: Database instance
            ledger: When given, new documents, payments and cancellations
                are posted to the ledger
        """
        self.db = db
        self.ledger = ledger

    def _check_new(self, company_id, number, counterparty_name, total_amount, tax_amount):
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        if not (number or "").strip():
            raise ValidationError(f"{self.kind.capitalize()} number is required")
        if not (counterparty_name or "").strip():
            raise ValidationError("Counterparty name is required")
        if total_amount <= 0:
            raise ValidationError(f"{self.kind.capitalize()} amount must be positive")
        if tax_amount < 0 or tax_amount >= total_amount:
            raise ValidationError("Tax amount must be between 0 and the total amount")
        if self._by_number(company_id, number.strip()) is not None:
            raise ConflictError(duplicate_document_number(self.kind, number.strip(), company_id))

    @abstractmethod
    def _by_number(self, company_id, number):
        """The company's document with this number, or None."""

    def _reverse_postings(self, company_id, number, description):
        if self.ledger is None:
            return
        prefix = f"{self.kind.capitalize()} {number} "
        entries = [
            e
            for e in self.ledger.list_entries(company_id, reference=number)
            if e.description.startswith(prefix)
        ]
        self.ledger.reverse(company_id, date.today(), description, entries)


class InvoiceService(_DocumentService):
    """Service for managing customer invoices."""

    kind = "invoice"

    def _by_number(self, company_id, number):
        return self.db.get_invoice_by_number(company_id, number)

    def create_invoice(
        self,
        company_id: int,
        number: str,
        counterparty_name: str,
        total_amount: Decimal,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        status: str = "pending",
        tax_amount: Decimal = Decimal("0"),
        inter_state: bool = True,
    ) -> int:
        """Create an invoice and, with a ledger, post the receivable.

        Raises:
            NotFoundError: If the company doesn't exist
            ConflictError: If the number is already used by the company
            ValidationError: If any field is invalid
        """
        if status not in INITIAL_INVOICE_STATUSES:
            raise ValidationError(
                f"Invalid initial invoice status '{status}' "
                f"(expected one of {', '.join(INITIAL_INVOICE_STATUSES)})"
            )
        self._check_new(company_id, number, counterparty_name, total_amount, tax_amount)
        if self.ledger is not None:
            self.ledger.validate(
                company_id, self.ledger.revenue_lines(total_amount, tax_amount, inter_state)
            )
        issue_date = issue_date or date.today()
        invoice_id = self.db.create_invoice(
            company_id=company_id,
            number=number.strip(),
            counterparty_name=counterparty_name.strip(),
            total_amount=total_amount,
            issue_date=issue_date,
            due_date=due_date,
            status=status,
        )
        if self.ledger is not None:
            self.ledger.post_revenue(
                company_id,
                issue_date,
                total_amount,
                f"Invoice {number.strip()} to {counterparty_name.strip()}",
                tax_amount=tax_amount,
                inter_state=inter_state,
                reference=number.strip(),
            )
        return invoice_id

    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.get_invoice(invoice_id)

    def list_invoices(self, company_id: int, open_only: bool = False) -> list[Invoice]:
        return self.db.list_invoices(company_id, open_only=open_only)

    def record_payment(
        self,
        invoice_id: int,
        amount: Decimal,
        payment_date: Optional[date] = None,
        description: Optional[str] = None,
        linked_transaction_id: Optional[int] = None,
    ) -> Invoice:
        """Apply a customer payment to an invoice.

        With a ledger the receipt is posted as well (Dr bank, Cr receivable);
        the posting is validated before anything is written.

        Raises:
            NotFoundError: If the invoice doesn't exist
            ValidationError: On overpayment or a paid/cancelled invoice
        """
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        paid, balance, status = settle(invoice, self.kind, amount)
        if self.ledger is not None:
            self.ledger.validate(invoice.company_id, self.ledger.payment_received_lines(amount))
        self.db.update_invoice_payment(invoice_id, paid, balance, status)
        if self.ledger is not None:
            self.ledger.post_payment_received(
                invoice.company_id,
                payment_date or date.today(),
                amount,
                description or f"Payment for invoice {invoice.number}",
                linked_transaction_id=linked_transaction_id,
                reference=invoice.number,
            )
        logger.info("Recorded payment of %s on invoice %s (%s)", amount, invoice.number, status)
        return self.db.get_invoice(invoice_id)

    def cancel_invoice(self, invoice_id: int) -> None:
        """Cancel an invoice that has received no payment.

        Raises:
            NotFoundError: If the invoice doesn't exist
            ValidationError: If it is already closed or partly paid
        """
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        if invoice.status in CLOSED_STATUSES or invoice.paid_amount > 0:
            raise ValidationError(f"Invoice '{invoice.number}' cannot be cancelled: it is {invoice.status}")
        self.db.update_invoice_status(invoice_id, "cancelled")
        self._reverse_postings(invoice.company_id, invoice.number, f"Cancel invoice {invoice.number}")
        logger.info("Cancelled invoice %s", invoice.number)


class BillService(_DocumentService):
    """Service for managing vendor bills."""

    kind = "bill"

    def _by_number(self, company_id, number):
        return self.db.get_bill_by_number(company_id, number)

    def create_bill(
        self,
        company_id: int,
        number: str,
        counterparty_name: str,
        total_amount: Decimal,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        category: Optional[str] = None,
        tax_amount: Decimal = Decimal("0"),
    ) -> int:
        """Create a bill and, with a ledger, post the payable.

        Raises:
            NotFoundError: If the company doesn't exist
            ConflictError: If the number is already used by the company
            ValidationError: If any field is invalid
        """
        self._check_new(company_id, number, counterparty_name, total_amount, tax_amount)
        if self.ledger is not None:
            self.ledger.validate(
                company_id, self.ledger.bill_lines(total_amount, category, tax_amount)
            )
        issue_date = issue_date or date.today()
        bill_id = self.db.create_bill(
            company_id=company_id,
            number=number.strip(),
            counterparty_name=counterparty_name.strip(),
            total_amount=total_amount,
            issue_date=issue_date,
            due_date=due_date,
        )
        if self.ledger is not None:
            self.ledger.post_bill(
                company_id,
                issue_date,
                total_amount,
                category,
                f"Bill {number.strip()} from {counterparty_name.strip()}",
                tax_amount=tax_amount,
                reference=number.strip(),
            )
        return bill_id

    def get_bill(self, bill_id: int) -> Optional[Bill]:
        return self.db.get_bill(bill_id)

    def list_bills(self, company_id: int, open_only: bool = False) -> list[Bill]:
        return self.db.list_bills(company_id, open_only=open_only)

    def record_payment(
        self,
        bill_id: int,
        amount: Decimal,
        payment_date: Optional[date] = None,
        description: Optional[str] = None,
        linked_transaction_id: Optional[int] = None,
    ) -> Bill:
        """Apply a payment to a vendor bill.

        With a ledger the payment is posted as well (Dr payable, Cr bank).

        Raises:
            NotFoundError: If the bill doesn't exist
            ValidationError: On overpayment or a paid/cancelled bill
        """
        bill = self.db.get_bill(bill_id)
        if bill is None:
            raise NotFoundError(bill_not_found(bill_id))
        paid, balance, status = settle(bill, self.kind, amount)
        if self.ledger is not None:
            self.ledger.validate(bill.company_id, self.ledger.bill_payment_lines(amount))
        self.db.update_bill_payment(bill_id, paid, balance, status)
        if self.ledger is not None:
            self.ledger.post_bill_payment(
                bill.company_id,
                payment_date or date.today(),
                amount,
                description or f"Payment for bill {bill.number}",
                linked_transaction_id=linked_transaction_id,
                reference=bill.number,
            )
        logger.info("Recorded payment of %s on bill %s (%s)", amount, bill.number, status)
        return self.db.get_bill(bill_id)

    def cancel_bill(self, bill_id: int) -> None:
        """Cancel a bill that has not been paid.

        Raises:
            NotFoundError: If the bill doesn't exist
            ValidationError: If it is already closed or partly paid
        """
        bill = self.db.get_bill(bill_id)
        if bill is None:
            raise NotFoundError(bill_not_found(bill_id))
        if bill.status in CLOSED_STATUSES or bill.paid_amount > 0:
            raise ValidationError(f"Bill '{bill.number}' cannot be cancelled: it is {bill.status}")
        self.db.update_bill_status(bill_id, "cancelled")
        self._reverse_postings(bill.company_id, bill.number, f"Cancel bill {bill.number}")
        logger.info("Cancelled bill %s", bill.number)
