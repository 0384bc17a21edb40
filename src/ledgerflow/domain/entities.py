"""Domain model entities for ledgerflow.

These are pure data classes representing business concepts, independent of
database schema. Ephemeral pipeline results (classification and match results)
live here too so the domain services and the CLI share one vocabulary.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from ledgerflow.domain.errors import ValidationError
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


class Direction(str, Enum):
    """Money flow as seen from the company's bank account."""

    CREDIT = "credit"
    DEBIT = "debit"


class ExpenseType(str, Enum):
    ONE_TIME = "one-time"
    RECURRING = "recurring"


class Frequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class TransactionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class ClassificationType(str, Enum):
    INVOICE_PAYMENT = "invoice_payment"
    BILL_PAYMENT = "bill_payment"
    EXPENSE = "expense"
    REVENUE = "revenue"
    TRANSFER = "transfer"
    UNKNOWN = "unknown"


class MatchTier(str, Enum):
    """Reconciliation tiers, strongest first."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    PATTERN = "pattern"
    SPLIT = "split"
    UNMATCHED = "unmatched"


class CandidateKind(str, Enum):
    TRANSACTION = "transaction"
    INVOICE = "invoice"
    BILL = "bill"


class AccountType(str, Enum):
    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"

    @property
    def is_debit_normal(self) -> bool:
        """Asset and Expense balances grow with debits."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class PaymentMethod(str, Enum):
    UPI = "UPI"
    NEFT = "NEFT"
    IMPS = "IMPS"
    RTGS = "RTGS"
    CHEQUE = "CHEQUE"
    CARD = "CARD"
    CASH = "CASH"
    NACH = "NACH"
    DD = "DD"
    WIRE = "WIRE"
    UNKNOWN = "UNKNOWN"


INVOICE_OPEN_STATUSES = ("draft", "sent", "pending", "partial")
BILL_OPEN_STATUSES = ("unpaid", "partial")


@dataclass(frozen=True)
class RawLine:
    """Bank statement line as produced by the statement text extractor."""

    date: date
    description: str
    amount: Decimal
    direction: Direction

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == Direction.CREDIT else -self.amount

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RawLine":
        """Build a line from a parsed ``{date, description, amount, type}`` record.

        A signed amount without a type infers the direction from its sign.

        Raises:
            ValidationError: If the date, amount or type is missing or malformed
        """
        raw_date = record.get("date")
        if raw_date is None or raw_date == "":
            raise ValidationError("Missing date")
        if isinstance(raw_date, datetime):
            line_date = raw_date.date()
        elif isinstance(raw_date, date):
            line_date = raw_date
        else:
            try:
                line_date = parse_date(str(raw_date))
            except ValueError as e:
                raise ValidationError(str(e)) from e

        raw_amount = record.get("amount")
        if raw_amount is None or raw_amount == "":
            raise ValidationError("Missing amount")
        try:
            if isinstance(raw_amount, Decimal):
                amount = raw_amount
            elif isinstance(raw_amount, (int, float)):
                amount = Decimal(str(raw_amount))
            else:
                amount = parse_amount(str(raw_amount))
        except (ValueError, InvalidOperation) as e:
            raise ValidationError(f"Malformed amount '{raw_amount}': {e}") from e
        if not amount.is_finite():
            raise ValidationError(f"Malformed amount '{raw_amount}'")

        raw_type = record.get("type") or record.get("direction")
        if raw_type:
            try:
                direction = Direction(str(raw_type).strip().lower())
            except ValueError as e:
                raise ValidationError(
                    f"Unknown transaction type '{raw_type}' (expected credit or debit)"
                ) from e
        else:
            direction = Direction.DEBIT if amount < 0 else Direction.CREDIT

        if amount == 0:
            raise ValidationError("Amount must be non-zero")

        return cls(
            date=line_date,
            description=(record.get("description") or "").strip(),
            amount=abs(amount),
            direction=direction,
        )


@dataclass(frozen=True)
class Company:
    """Company owning a set of books."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class BookTransaction:
    """Internally recorded financial event."""

    id: int
    company_id: int
    unique_id: str
    date: date
    amount: Decimal
    description: Optional[str]
    category: Optional[str]
    counterparty_name: Optional[str]
    expense_type: ExpenseType
    frequency: Optional[Frequency]
    end_date: Optional[date]
    status: TransactionStatus
    is_reconciled: bool
    created_at: datetime

    @property
    def direction(self) -> Direction:
        return Direction.CREDIT if self.amount >= 0 else Direction.DEBIT


@dataclass(frozen=True)
class Invoice:
    """Customer invoice (incoming money)."""

    id: int
    company_id: int
    number: str
    counterparty_name: str
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: str
    due_date: Optional[date]
    issue_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.status in INVOICE_OPEN_STATUSES and self.balance_amount > 0


@dataclass(frozen=True)
class Bill:
    """Vendor bill (outgoing money)."""

    id: int
    company_id: int
    number: str
    counterparty_name: str
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: str
    due_date: Optional[date]
    issue_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.status in BILL_OPEN_STATUSES and self.balance_amount > 0


@dataclass(frozen=True)
class Vendor:
    """Known vendor with an optional default category."""

    id: int
    company_id: int
    name: str
    category: Optional[str]
    is_active: bool


@dataclass(frozen=True)
class AccountingAccount:
    """Chart-of-accounts entry with its running balance."""

    id: int
    company_id: int
    code: str
    name: str
    type: AccountType
    balance: Decimal


@dataclass(frozen=True)
class JournalEntry:
    """One side of a double-entry posting."""

    id: int
    company_id: int
    account_id: int
    account_code: str
    date: date
    debit: Decimal
    credit: Decimal
    description: str
    linked_transaction_id: Optional[int]
    reference: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ExtractedEntities:
    """Structured signals pulled out of a transaction description."""

    vendor: Optional[str] = None
    vendor_is_known: bool = False
    invoice_number: Optional[str] = None
    bill_number: Optional[str] = None
    reference_number: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.UNKNOWN
    upi_id: Optional[str] = None
    keywords: tuple[str, ...] = ()
    amount: Optional[Decimal] = None
    confidence: int = 0


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a single transaction."""

    type: ClassificationType
    category: str
    confidence: int
    needs_review: bool
    expense_type: ExpenseType = ExpenseType.ONE_TIME
    frequency: Optional[Frequency] = None
    counterparty_name: Optional[str] = None
    matched_invoice_id: Optional[int] = None
    matched_bill_id: Optional[int] = None
    strategy: Optional[str] = None
    reasoning: tuple[str, ...] = ()

    @property
    def is_recurring(self) -> bool:
        return self.expense_type == ExpenseType.RECURRING


@dataclass(frozen=True)
class MatchCandidate:
    """Book-side record offered to the matcher.

    Transactions, invoices and bills are flattened into this shape so the
    matching tiers do not need to know where a record came from.
    """

    id: str
    kind: CandidateKind
    record_id: int
    date: date
    amount: Decimal
    direction: Direction
    description: str
    counterparty_name: Optional[str] = None
    document_number: Optional[str] = None

    @property
    def counterparty_field(self) -> str:
        return (self.counterparty_name or self.description or "").lower()


@dataclass(frozen=True)
class MatchResult:
    """Reconciliation outcome for one bank line."""

    raw_line: RawLine
    match_tier: MatchTier
    confidence: int
    reason: str
    matched_record_id: Optional[str] = None
    matched_record_ids: tuple[str, ...] = ()
    group_id: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.match_tier != MatchTier.UNMATCHED


@dataclass(frozen=True)
class ReconciliationSummary:
    """Batch-level reconciliation statistics."""

    total: int
    auto_matched: int
    unmatched: int
    auto_match_rate: float
    breakdown: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TrialBalanceRow:
    account_code: str
    account_name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Debit/credit totals of every account as of a date."""

    rows: tuple[TrialBalanceRow, ...]
    total_debits: Decimal
    total_credits: Decimal
    as_of: Optional[date]

    @property
    def difference(self) -> Decimal:
        return abs(self.total_debits - self.total_credits)

    @property
    def is_balanced(self) -> bool:
        return self.difference <= Decimal("0.01")


@dataclass(frozen=True)
class PostingLine:
    """Requested debit or credit against one account code."""

    account_code: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")

    @classmethod
    def coerce(cls, value: Any) -> "PostingLine":
        """Accept a PostingLine or a ``{account_code, debit, credit}`` dict.

        Raises:
            ValidationError: If the code is missing or an amount is negative,
                malformed or both are zero
        """
        if isinstance(value, cls):
            line = value
        elif isinstance(value, dict):
            code = value.get("account_code") or value.get("code")
            try:
                line = cls(
                    account_code=str(code) if code is not None else "",
                    debit=Decimal(str(value.get("debit") or 0)),
                    credit=Decimal(str(value.get("credit") or 0)),
                )
            except InvalidOperation as e:
                raise ValidationError(f"Malformed amount in journal line {value}") from e
        else:
            raise ValidationError(f"Cannot interpret journal line {value!r}")

        if not line.account_code:
            raise ValidationError("Journal line is missing an account code")
        if not (line.debit.is_finite() and line.credit.is_finite()):
            raise ValidationError(f"Malformed amount in journal line for {line.account_code}")
        if line.debit < 0 or line.credit < 0:
            raise ValidationError(
                f"Journal line for account {line.account_code} has a negative amount"
            )
        if line.debit == 0 and line.credit == 0:
            raise ValidationError(f"Journal line for account {line.account_code} is empty")
        return line
