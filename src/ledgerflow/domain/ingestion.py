"""Bank statement ingestion domain service."""

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional

from ledgerflow.database.base import Database
from ledgerflow.domain.classifier import ClassificationService, summarize
from ledgerflow.domain.documents import BillService, InvoiceService
from ledgerflow.domain.entities import ClassificationResult, Direction, PostingLine, RawLine
from ledgerflow.domain.errors import NotFoundError, company_not_found
from ledgerflow.domain.ledger import LedgerService
from ledgerflow.domain.transaction import TransactionService, transaction_fingerprint

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("date", "description", "amount")


def load_records(file_path: str) -> list[dict[str, Any]]:
    """Read ``{date, description, amount, type}`` records from a JSON or CSV file.

    JSON files hold a list of records (or ``{"transactions": [...]}``); any
    other file is read as CSV with a header row.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file has the wrong shape or misses required columns
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Statement file not found: {file_path}")

    if path.suffix.lower() == ".json":
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {file_path}: {e}") from e
        if isinstance(data, dict):
            data = data.get("transactions")
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise ValueError("JSON statement must be a list of transaction records")
        return data

    with open(path, "r", encoding="utf-8-sig") as f:
        sample = f.read(1024)
        f.seek(0)
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            delimiter = ","
        reader = csv.DictReader(f, delimiter=delimiter)
        if reader.fieldnames is None:
            raise ValueError("CSV file has no columns")
        columns = {name.strip().lower() for name in reader.fieldnames}
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValueError(f"CSV file missing required columns: {', '.join(missing)}")
        return [
            {(k or "").strip().lower(): (v.strip() if isinstance(v, str) else v) for k, v in row.items()}
            for row in reader
        ]


class IngestionService:
    """Turn parsed bank lines into classified, posted book transactions."""

    def __init__(
        self,
        db: Database,
        classifier: Optional[ClassificationService] = None,
        ledger: Optional[LedgerService] = None,
        post_to_ledger: bool = True,
    ):
        """Initialize ingestion service.

        Args:
            db: Database instance
            classifier: Classification service (defaults to the rule cascade
                without an external classifier)
            ledger: Ledger the transactions are posted to
            post_to_ledger: Post journal entries for each imported line
        """
        self.db = db
        self.classifier = classifier or ClassificationService(db)
        self.ledger = ledger or LedgerService(db)
        self.post_to_ledger = post_to_ledger
        self.transactions = TransactionService(db, self.classifier.categories, self.ledger)
        self.invoices = InvoiceService(db)
        self.bills = BillService(db)

    def ingest_file(self, company_id: int, file_path: str) -> dict[str, Any]:
        return self.ingest(company_id, load_records(file_path))

    def ingest(self, company_id: int, records: Iterable[Any]) -> dict[str, Any]:
        """Import records for a company.

        Each line is classified and stored as a book transaction. A line
        classified as an invoice or bill payment settles that document;
        every other line is posted as an expense (debits) or as revenue
        received (credits). Lines already imported are skipped.

        Returns:
            Dict with import statistics:
            - imported: number of transactions imported
            - skipped: number of duplicates skipped
            - invoices_paid / bills_paid: documents settled by imported lines
            - needs_review: imported lines whose classification needs review
            - classification: :func:`ledgerflow.domain.classifier.summarize` of the batch
            - errors: list of error messages

        Raises:
            NotFoundError: If the company doesn't exist
        """
        if self.db.get_company(company_id) is None:
            raise NotFoundError(company_not_found(company_id))

        stats = {
            "imported": 0,
            "skipped": 0,
            "invoices_paid": 0,
            "bills_paid": 0,
            "needs_review": 0,
            "errors": [],
        }
        results = []
        for number, record in enumerate(records, start=1):
            try:
                line = record if isinstance(record, RawLine) else RawLine.from_record(record)
                unique_id = transaction_fingerprint(line.date, line.description, line.signed_amount)
                if self.db.transaction_exists(company_id, unique_id):
                    stats["skipped"] += 1
                    continue

                result = self.classifier.classify_line(company_id, line)
                paid = self._import_line(company_id, line, result, unique_id)
            except ValueError as e:
                logger.warning("Skipping record %d: %s", number, e)
                stats["errors"].append(f"Record {number}: {e}")
                continue

            results.append(result)
            stats["imported"] += 1
            if result.needs_review:
                stats["needs_review"] += 1
            if paid is not None:
                stats[f"{paid}s_paid"] += 1

        stats["classification"] = summarize(results)
        logger.info(
            "Imported %d transactions for company %d (%d skipped, %d errors)",
            stats["imported"], company_id, stats["skipped"], len(stats["errors"]),
        )
        return stats

    def _import_line(
        self, company_id: int, line: RawLine, result: ClassificationResult, unique_id: str
    ) -> Optional[str]:
        """Store one line and post it. Returns the kind of document it paid, if any."""
        document_kind, document, applied = self._document_payment(line, result)
        postings = self._planned_postings(line, result, document_kind, document, applied)
        for _, lines, _ in postings:
            self.ledger.validate(company_id, lines)

        txn_id = self.transactions.create_transaction(
            company_id=company_id,
            date=line.date,
            amount=line.signed_amount,
            description=line.description,
            category=result.category,
            counterparty_name=result.counterparty_name,
            expense_type=result.expense_type,
            frequency=result.frequency,
            unique_id=unique_id,
        )

        if document_kind == "invoice":
            self.invoices.record_payment(document.id, applied)
        elif document_kind == "bill":
            self.bills.record_payment(document.id, applied)

        for description, lines, reference in postings:
            self.ledger.post(
                company_id,
                line.date,
                description,
                lines,
                linked_transaction_id=txn_id,
                reference=reference,
            )
        return document_kind

    def _document_payment(self, line: RawLine, result: ClassificationResult):
        """The open document the line pays and the amount applied to it."""
        if result.matched_invoice_id is not None and line.direction == Direction.CREDIT:
            document = self.invoices.get_invoice(result.matched_invoice_id)
            kind = "invoice"
        elif result.matched_bill_id is not None and line.direction == Direction.DEBIT:
            document = self.bills.get_bill(result.matched_bill_id)
            kind = "bill"
        else:
            return None, None, Decimal("0")
        if document is None or not document.is_open:
            return None, None, Decimal("0")
        return kind, document, min(line.amount, document.balance_amount)

    def _planned_postings(
        self, line: RawLine, result: ClassificationResult, document_kind, document, applied: Decimal
    ) -> list[tuple[str, list[PostingLine], Optional[str]]]:
        """(description, lines, reference) for each journal batch the line produces."""
        if not self.post_to_ledger:
            return []
        postings = []
        if document_kind == "invoice":
            postings.append((
                f"Payment for invoice {document.number}: {line.description}",
                self.ledger.payment_received_lines(applied),
                document.number,
            ))
        elif document_kind == "bill":
            postings.append((
                f"Payment for bill {document.number}: {line.description}",
                self.ledger.bill_payment_lines(applied),
                document.number,
            ))

        rest = line.amount - applied
        if rest > 0:
            if line.direction == Direction.DEBIT:
                postings.append((
                    line.description or "Bank debit",
                    self.ledger.expense_payment_lines(rest, result.category),
                    None,
                ))
            else:
                postings.append((
                    line.description or "Bank credit",
                    self.ledger.revenue_lines(rest, settled=True),
                    None,
                ))
        return postings
