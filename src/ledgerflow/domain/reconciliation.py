"""Bank reconciliation domain service."""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from ledgerflow.database.base import Database
from ledgerflow.domain.documents import BillService, InvoiceService
from ledgerflow.domain.entities import (
    CandidateKind,
    MatchCandidate,
    MatchResult,
    MatchTier,
    RawLine,
    ReconciliationSummary,
    TransactionStatus,
)
from ledgerflow.domain.errors import (
    NotFoundError,
    bill_not_found,
    company_not_found,
    invoice_not_found,
)
from ledgerflow.domain.ledger import LedgerService
from ledgerflow.domain.matcher import (
    TIER_CONFIDENCE,
    BatchMatcher,
    candidate_from_bill,
    candidate_from_invoice,
    candidate_from_transaction,
    summarize_matches,
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 90
DEFAULT_MIN_CONFIDENCE = TIER_CONFIDENCE[MatchTier.SPLIT]

_KIND_BY_PREFIX = {
    "txn": CandidateKind.TRANSACTION,
    "inv": CandidateKind.INVOICE,
    "bill": CandidateKind.BILL,
}


def parse_candidate_id(candidate_id: str) -> tuple[CandidateKind, int]:
    """Split ``"inv:3"`` into ``(CandidateKind.INVOICE, 3)``."""
    prefix, _, record_id = candidate_id.partition(":")
    if prefix not in _KIND_BY_PREFIX or not record_id.isdigit():
        raise ValueError(f"Malformed candidate id '{candidate_id}'")
    return _KIND_BY_PREFIX[prefix], int(record_id)


class ReconciliationService:
    """Match bank statement lines against a company's books and apply the matches."""

    def __init__(
        self,
        db: Database,
        ledger: Optional[LedgerService] = None,
        matcher: Optional[BatchMatcher] = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            ledger: Ledger used to post applied invoice/bill payments
            matcher: Matcher (defaults to the standard tiers)
            lookback_days: How far before the earliest line candidates are loaded
        """
        if lookback_days < 0:
            raise ValueError("lookback_days must not be negative")
        self.db = db
        self.ledger = ledger or LedgerService(db)
        self.matcher = matcher or BatchMatcher()
        self.lookback_days = lookback_days
        self.invoices = InvoiceService(db, self.ledger)
        self.bills = BillService(db, self.ledger)

    def load_candidates(self, company_id: int, lines: Sequence[RawLine]) -> list[MatchCandidate]:
        """Active unreconciled transactions and open documents within the lookback window."""
        if not lines:
            return []
        start = min(line.date for line in lines) - timedelta(days=self.lookback_days)
        end = max(line.date for line in lines) + timedelta(days=self.lookback_days)

        candidates = [
            candidate_from_transaction(txn)
            for txn in self.db.list_transactions(
                company_id,
                start_date=start,
                end_date=end,
                status=TransactionStatus.ACTIVE,
                is_reconciled=False,
            )
        ]
        for invoice in self.db.list_invoices(company_id, open_only=True):
            candidate = candidate_from_invoice(invoice)
            if candidate.date is not None and start <= candidate.date <= end:
                candidates.append(candidate)
        for bill in self.db.list_bills(company_id, open_only=True):
            candidate = candidate_from_bill(bill)
            if candidate.date is not None and start <= candidate.date <= end:
                candidates.append(candidate)
        return candidates

    def reconcile(
        self, company_id: int, lines: Iterable[Any]
    ) -> tuple[list[MatchResult], ReconciliationSummary]:
        """Match lines (RawLine objects or parsed records) against the books.

        Returns:
            One result per line in input order, and the batch summary

        Raises:
            NotFoundError: If the company doesn't exist
            ValidationError: If a record is malformed
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))
        raw_lines = [line if isinstance(line, RawLine) else RawLine.from_record(line) for line in lines]
        candidates = self.load_candidates(company_id, raw_lines)
        results = self.matcher.match(raw_lines, candidates)
        summary = summarize_matches(results)
        logger.info(
            "Reconciled %d lines for company %d: %d matched (%.1f%%)",
            summary.total, company_id, summary.auto_matched, summary.auto_match_rate,
        )
        return results, summary

    def apply(
        self,
        company_id: int,
        results: Iterable[MatchResult],
        min_confidence: int = DEFAULT_MIN_CONFIDENCE,
    ) -> dict[str, Any]:
        """Record the payments and reconciliations implied by match results.

        Invoice and bill matches record a payment of the line amount (capped
        at the document balance) and post it to the ledger; transaction
        matches are marked reconciled. Results below ``min_confidence`` are
        skipped.

        Returns:
            Dict with counts (``invoices_paid``, ``bills_paid``,
            ``transactions_reconciled``, ``skipped``) and ``errors``
        """
        stats = {
            "invoices_paid": 0,
            "bills_paid": 0,
            "transactions_reconciled": 0,
            "skipped": 0,
            "errors": [],
        }
        for result in results:
            if not result.is_matched or result.confidence < min_confidence:
                stats["skipped"] += 1
                continue
            remaining = result.raw_line.amount
            for candidate_id in result.matched_record_ids:
                if remaining <= 0:
                    break
                try:
                    kind, record_id = parse_candidate_id(candidate_id)
                    if kind == CandidateKind.TRANSACTION:
                        self.db.set_transaction_reconciled(record_id)
                        stats["transactions_reconciled"] += 1
                    elif kind == CandidateKind.INVOICE:
                        remaining -= self._apply_invoice(company_id, record_id, remaining, result)
                        stats["invoices_paid"] += 1
                    else:
                        remaining -= self._apply_bill(company_id, record_id, remaining, result)
                        stats["bills_paid"] += 1
                except ValueError as e:
                    logger.warning("Could not apply %s: %s", candidate_id, e)
                    stats["errors"].append(f"{candidate_id}: {e}")
        return stats

    def _apply_invoice(
        self, company_id: int, invoice_id: int, available: Decimal, result: MatchResult
    ) -> Decimal:
        invoice = self.invoices.get_invoice(invoice_id)
        if invoice is None or invoice.company_id != company_id:
            raise NotFoundError(invoice_not_found(invoice_id))
        amount = min(available, invoice.balance_amount)
        self.invoices.record_payment(
            invoice_id,
            amount,
            payment_date=result.raw_line.date,
            description=f"Payment for invoice {invoice.number}: {result.raw_line.description}",
        )
        return amount

    def _apply_bill(
        self, company_id: int, bill_id: int, available: Decimal, result: MatchResult
    ) -> Decimal:
        bill = self.bills.get_bill(bill_id)
        if bill is None or bill.company_id != company_id:
            raise NotFoundError(bill_not_found(bill_id))
        amount = min(available, bill.balance_amount)
        self.bills.record_payment(
            bill_id,
            amount,
            payment_date=result.raw_line.date,
            description=f"Payment for bill {bill.number}: {result.raw_line.description}",
        )
        return amount
