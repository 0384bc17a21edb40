"""Transaction classification cascade.

A transaction is offered to an ordered list of strategies, strongest first:

1. exact invoice/bill reference (95)
2. amount match against open invoices/bills (85, 70 when ambiguous)
3. counterparty name match (75)
4. historical pattern (70 recurring, 60 otherwise)
5. external classifier (up to 85)
6. keyword rules (50, always answers)

The first strategy that produces a result wins. Every strategy consulted
leaves a line in the result's reasoning.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Sequence

from dateutil.relativedelta import relativedelta

from ledgerflow.database.base import Database
from ledgerflow.domain.cache import TTLCache, classification_key
from ledgerflow.domain.categories import CategoryTable, default_category_table
from ledgerflow.domain.entities import (
    ClassificationResult,
    ClassificationType,
    Direction,
    ExpenseType,
    ExtractedEntities,
    Frequency,
    RawLine,
    TransactionStatus,
)
from ledgerflow.domain.entity_extractor import EntityExtractor, normalize_document_number
from ledgerflow.domain.errors import (
    ExternalClassifierError,
    ExternalClassifierUnavailable,
    ValidationError,
)
from ledgerflow.domain.external_classifier import (
    ExternalClassifier,
    UnavailableExternalClassifier,
)
from ledgerflow.domain.similarity import name_similarity
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

REVIEW_THRESHOLD = 70

EXACT_REFERENCE_CONFIDENCE = 95
AMOUNT_MATCH_CONFIDENCE = 85
AMOUNT_MATCH_AMBIGUOUS_CONFIDENCE = 70
NAME_MATCH_CONFIDENCE = 75
HISTORICAL_RECURRING_CONFIDENCE = 70
HISTORICAL_CONFIDENCE = 60
EXTERNAL_MAX_CONFIDENCE = 85
RULE_CONFIDENCE = 50

AMOUNT_TOLERANCE = Decimal("0.01")
NAME_SIMILARITY_THRESHOLD = 0.6
HISTORY_MONTHS = 6
HISTORY_LIMIT = 10
HISTORY_AMOUNT_TOLERANCE = Decimal("0.10")

# Document payments are booked against receivable/payable, not an expense head
PAYMENT_CATEGORY = "G&A"

# (frequency, min mean gap in days, max mean gap in days)
RECURRENCE_BUCKETS = (
    (Frequency.WEEKLY, 5, 10),
    (Frequency.MONTHLY, 25, 35),
    (Frequency.QUARTERLY, 85, 95),
    (Frequency.YEARLY, 360, 370),
)

FAILURE_FLAGS = frozenset({"llm_error", "parse_error"})


@dataclass(frozen=True)
class TransactionContext:
    """Validated classifier input."""

    company_id: int
    description: str
    amount: Decimal
    date: date
    direction: Direction
    entities: ExtractedEntities = field(default_factory=ExtractedEntities)

    @classmethod
    def create(
        cls,
        company_id: int,
        description: Any,
        amount: Any,
        txn_date: Any,
        direction: Any = None,
    ) -> "TransactionContext":
        """Validate raw input.

        A negative amount with no direction is a debit.

        Raises:
            ValidationError: If description, amount or date is missing or
                malformed, or the direction is unknown
        """
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("Transaction description is required")

        if amount is None or amount == "":
            raise ValidationError("Transaction amount is required")
        try:
            if isinstance(amount, Decimal):
                value = amount
            elif isinstance(amount, (int, float)):
                value = Decimal(str(amount))
            else:
                value = parse_amount(str(amount))
        except (ValueError, InvalidOperation) as e:
            raise ValidationError(f"Malformed amount '{amount}'") from e
        if not value.is_finite():
            raise ValidationError(f"Malformed amount '{amount}'")

        if txn_date is None or txn_date == "":
            raise ValidationError("Transaction date is required")
        if isinstance(txn_date, datetime):
            txn_date = txn_date.date()
        elif not isinstance(txn_date, date):
            try:
                txn_date = parse_date(str(txn_date))
            except ValueError as e:
                raise ValidationError(str(e)) from e

        if direction is None or direction == "":
            direction = Direction.DEBIT if value < 0 else Direction.CREDIT
        elif not isinstance(direction, Direction):
            try:
                direction = Direction(str(direction).strip().lower())
            except ValueError as e:
                raise ValidationError(
                    f"Unknown direction '{direction}' (expected credit or debit)"
                ) from e

        return cls(
            company_id=company_id,
            description=description.strip(),
            amount=abs(value),
            date=txn_date,
            direction=direction,
        )

    @property
    def is_credit(self) -> bool:
        return self.direction == Direction.CREDIT

    @property
    def default_type(self) -> ClassificationType:
        return ClassificationType.REVENUE if self.is_credit else ClassificationType.EXPENSE

    def fingerprint(self) -> str:
        """Short stable hash of the input, safe to log."""
        raw = f"{self.company_id}|{self.description}|{self.amount}|{self.date}|{self.direction.value}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class StrategyOutcome:
    """What one strategy made of a transaction."""

    reason: str
    result: Optional[ClassificationResult] = None

    @property
    def matched(self) -> bool:
        return self.result is not None


def _miss(reason: str) -> StrategyOutcome:
    return StrategyOutcome(reason=reason)


class ClassificationStrategy(ABC):
    """One step of the cascade."""

    name = "strategy"
    # Results that depend on ledger state are never cached
    reads_database = False

    @abstractmethod
    def attempt(self, context: TransactionContext) -> StrategyOutcome:
        pass


class ExactReferenceStrategy(ClassificationStrategy):
    """Invoice/bill number in the description equals an open document's number."""

    name = "exact_reference"
    reads_database = True

    def __init__(self, db: Database):
        self.db = db

    def attempt(self, context):
        entities = context.entities
        number = entities.invoice_number if context.is_credit else entities.bill_number
        if not number:
            kind = "invoice" if context.is_credit else "bill"
            return _miss(f"No {kind} number in description")

        kind, documents = _open_documents(self.db, context)
        wanted = normalize_document_number(number)
        for document in documents:
            if normalize_document_number(document.number) != wanted:
                continue
            return StrategyOutcome(
                reason=f"Exact match on {kind} {document.number}",
                result=_document_result(
                    context, kind, document.id, document.counterparty_name,
                    EXACT_REFERENCE_CONFIDENCE,
                ),
            )
        return _miss(f"No open {kind} numbered {number}")


class AmountMatchStrategy(ClassificationStrategy):
    """Amount within 1% of the balance of an open invoice/bill."""

    name = "amount_match"
    reads_database = True

    def __init__(self, db: Database, tolerance: Decimal = AMOUNT_TOLERANCE):
        self.db = db
        self.tolerance = tolerance

    def attempt(self, context):
        kind, documents = _open_documents(self.db, context)

        limit = context.amount * self.tolerance
        hits = [d for d in documents if abs(d.balance_amount - context.amount) <= limit]
        if not hits:
            return _miss(f"No open {kind} with a balance near {context.amount}")

        def due_distance(document):
            if document.due_date is None:
                return (1, 0, document.id)
            return (0, abs((document.due_date - context.date).days), document.id)

        hits.sort(key=due_distance)
        best = hits[0]
        if len(hits) == 1:
            return StrategyOutcome(
                reason=f"Amount matches {kind} {best.number}",
                result=_document_result(
                    context, kind, best.id, best.counterparty_name, AMOUNT_MATCH_CONFIDENCE
                ),
            )
        return StrategyOutcome(
            reason=f"Amount matches {len(hits)} open {kind}s; closest due date is {best.number}",
            result=_document_result(
                context, kind, best.id, best.counterparty_name,
                AMOUNT_MATCH_AMBIGUOUS_CONFIDENCE, needs_review=True,
            ),
        )


class CounterpartyNameStrategy(ClassificationStrategy):
    """Description mentions an open document's counterparty or a known vendor."""

    name = "counterparty_name"
    reads_database = True

    def __init__(
        self,
        db: Database,
        threshold: float = NAME_SIMILARITY_THRESHOLD,
        categories: Optional[CategoryTable] = None,
    ):
        self.db = db
        self.threshold = threshold
        self.categories = categories or default_category_table()

    def attempt(self, context):
        kind, documents = _open_documents(self.db, context)

        best = self._best(context.description, documents, lambda d: d.counterparty_name)
        if best is not None:
            score, matches = best
            document = matches[0]
            names = {d.counterparty_name.lower() for d in matches}
            ambiguous = len(names) > 1
            reason = f"Counterparty '{document.counterparty_name}' matches {kind} {document.number}"
            if ambiguous:
                reason += f" ({len(names)} names score {score:.2f})"
            return StrategyOutcome(
                reason=reason,
                result=_document_result(
                    context, kind, document.id, document.counterparty_name,
                    NAME_MATCH_CONFIDENCE, needs_review=ambiguous,
                ),
            )

        if context.is_credit:
            return _miss("No customer name match found")

        vendors = self.db.list_vendors(context.company_id, active_only=True)
        best = self._best(context.description, vendors, lambda v: v.name)
        if best is None:
            return _miss("No vendor/customer name match found")
        score, matches = best
        vendor = matches[0]
        category = self.categories.resolve(vendor.category) or vendor.category or PAYMENT_CATEGORY
        ambiguous = len({v.name.lower() for v in matches}) > 1
        return StrategyOutcome(
            reason=f"Known vendor '{vendor.name}' (similarity {score:.2f})",
            result=ClassificationResult(
                type=ClassificationType.EXPENSE,
                category=category,
                confidence=NAME_MATCH_CONFIDENCE,
                needs_review=ambiguous,
                counterparty_name=vendor.name,
            ),
        )

    def _best(self, description, records, name_of):
        scored = []
        for record in records:
            name = name_of(record)
            if not name:
                continue
            score = name_similarity(description, name)
            if score >= self.threshold:
                scored.append((score, record))
        if not scored:
            return None
        top = max(score for score, _ in scored)
        return top, [record for score, record in scored if score == top]


class HistoricalPatternStrategy(ClassificationStrategy):
    """Reuse the category of similar earlier transactions."""

    name = "historical_pattern"
    reads_database = True

    def __init__(self, db: Database, months: int = HISTORY_MONTHS, limit: int = HISTORY_LIMIT):
        self.db = db
        self.months = months
        self.limit = limit

    def similar_transactions(self, context: TransactionContext):
        low = context.amount * (1 - HISTORY_AMOUNT_TOLERANCE)
        high = context.amount * (1 + HISTORY_AMOUNT_TOLERANCE)
        history = self.db.list_transactions(
            context.company_id,
            start_date=context.date - relativedelta(months=self.months),
            end_date=context.date,
            status=TransactionStatus.ACTIVE,
        )
        similar = [
            t for t in history
            if t.direction == context.direction and low <= abs(t.amount) <= high
        ]
        similar.sort(key=lambda t: (t.date, t.id), reverse=True)
        return similar[: self.limit]

    def attempt(self, context):
        similar = [t for t in self.similar_transactions(context) if t.category]
        if len(similar) < 2:
            return _miss("No historical pattern found")

        frequency = recurrence_frequency([t.date for t in similar])
        counterparty = context.entities.vendor
        if frequency is not None:
            category = similar[0].category
            return StrategyOutcome(
                reason=f"Recurring {frequency.value} pattern across {len(similar)} transactions",
                result=ClassificationResult(
                    type=context.default_type,
                    category=category,
                    confidence=HISTORICAL_RECURRING_CONFIDENCE,
                    needs_review=False,
                    expense_type=ExpenseType.RECURRING,
                    frequency=frequency,
                    counterparty_name=counterparty,
                ),
            )

        category, count = Counter(t.category for t in similar).most_common(1)[0]
        return StrategyOutcome(
            reason=f"Category {category} used by {count} of {len(similar)} similar transactions",
            result=ClassificationResult(
                type=context.default_type,
                category=category,
                confidence=HISTORICAL_CONFIDENCE,
                needs_review=True,
                counterparty_name=counterparty,
            ),
        )


class ExternalClassifierStrategy(ClassificationStrategy):
    """Ask the configured external classifier; any failure is a miss."""

    name = "external"

    def __init__(self, external: ExternalClassifier, categories: Optional[CategoryTable] = None):
        self.external = external
        self.categories = categories or default_category_table()

    def attempt(self, context):
        try:
            answer = self.external.classify(
                context.description, context.amount, context.date, context.direction
            )
        except ExternalClassifierUnavailable as e:
            logger.debug("%s skipped for input %s: %s", self.name, context.fingerprint(), e)
            return _miss(f"External classification unavailable: {e}")
        except ExternalClassifierError as e:
            logger.warning("%s failed for input %s: %s", self.name, context.fingerprint(), e)
            return _miss(f"External classification failed: {e}")

        failed = FAILURE_FLAGS.intersection(answer.flags)
        if failed:
            logger.warning(
                "%s returned failure flags %s for input %s",
                self.name, sorted(failed), context.fingerprint(),
            )
            return _miss(f"External classification flagged {', '.join(sorted(failed))}")

        category = self.categories.resolve(answer.category)
        if category is None:
            logger.warning(
                "%s returned unknown category %r for input %s",
                self.name, answer.category, context.fingerprint(),
            )
            return _miss(f"External classifier returned unknown category '{answer.category}'")

        confidence = min(answer.confidence, EXTERNAL_MAX_CONFIDENCE)
        return StrategyOutcome(
            reason=f"External classification: {answer.reasoning or category}",
            result=ClassificationResult(
                type=context.default_type,
                category=category,
                confidence=confidence,
                needs_review=bool(answer.flags),
                expense_type=ExpenseType.RECURRING if answer.is_recurring else ExpenseType.ONE_TIME,
                frequency=answer.suggested_frequency if answer.is_recurring else None,
                counterparty_name=answer.counterparty_name or context.entities.vendor,
            ),
        )


class KeywordRuleStrategy(ClassificationStrategy):
    """Keyword table lookup. Always produces a result."""

    name = "keyword_rules"

    def __init__(self, categories: Optional[CategoryTable] = None):
        self.categories = categories or default_category_table()

    def attempt(self, context):
        hit = self.categories.match(context.description)
        if hit is None:
            category = self.categories.default_category
            reason = f"No keyword matched; using default category {category}"
        else:
            category, keyword = hit
            reason = f"Keyword '{keyword}' matched {category}"
        return StrategyOutcome(
            reason=reason,
            result=ClassificationResult(
                type=context.default_type,
                category=category,
                confidence=RULE_CONFIDENCE,
                needs_review=True,
                counterparty_name=context.entities.vendor,
            ),
        )


def _open_documents(db: Database, context: TransactionContext):
    """Open invoices for money in, open bills for money out."""
    if context.is_credit:
        return "invoice", db.list_invoices(context.company_id, open_only=True)
    return "bill", db.list_bills(context.company_id, open_only=True)


def _document_result(context, kind, document_id, counterparty, confidence, needs_review=False):
    is_invoice = kind == "invoice"
    return ClassificationResult(
        type=ClassificationType.INVOICE_PAYMENT if is_invoice else ClassificationType.BILL_PAYMENT,
        category=PAYMENT_CATEGORY,
        confidence=confidence,
        needs_review=needs_review,
        counterparty_name=counterparty,
        matched_invoice_id=document_id if is_invoice else None,
        matched_bill_id=None if is_invoice else document_id,
    )


def recurrence_frequency(dates: Iterable[date]) -> Optional[Frequency]:
    """Bucket the mean gap between dates into a frequency, if it fits one."""
    ordered = sorted(dates)
    if len(ordered) < 2:
        return None
    gaps = [(b - a).days for a, b in zip(ordered, ordered[1:])]
    mean_gap = sum(gaps) / len(gaps)
    for frequency, low, high in RECURRENCE_BUCKETS:
        if low <= mean_gap <= high:
            return frequency
    return None


def default_strategies(
    db: Database,
    categories: Optional[CategoryTable] = None,
    external: Optional[ExternalClassifier] = None,
) -> list[ClassificationStrategy]:
    """The standard six-step cascade."""
    categories = categories or default_category_table()
    return [
        ExactReferenceStrategy(db),
        AmountMatchStrategy(db),
        CounterpartyNameStrategy(db, categories=categories),
        HistoricalPatternStrategy(db),
        ExternalClassifierStrategy(external or UnavailableExternalClassifier(), categories),
        KeywordRuleStrategy(categories),
    ]


class ClassificationService:
    """Classify bank transactions for a company."""

    def __init__(
        self,
        db: Database,
        categories: Optional[CategoryTable] = None,
        external: Optional[ExternalClassifier] = None,
        strategies: Optional[Sequence[ClassificationStrategy]] = None,
        extractor: Optional[EntityExtractor] = None,
        cache: Optional[TTLCache] = None,
        review_threshold: int = REVIEW_THRESHOLD,
    ):
        """Initialize classification service.

        Args:
            db: Database instance
            categories: Category vocabulary (defaults to the built-in table)
            external: External classifier for the AI step
            strategies: Full cascade, overriding the default six steps
            extractor: Entity extractor used to enrich the input
            cache: Optional result cache
            review_threshold: Results below this confidence need review
        """
        self.db = db
        self.categories = categories or default_category_table()
        self.strategies = list(
            strategies
            if strategies is not None
            else default_strategies(db, self.categories, external)
        )
        if not self.strategies:
            raise ValueError("At least one classification strategy is required")
        self.extractor = extractor or EntityExtractor()
        self.cache = cache
        self.review_threshold = review_threshold

    def classify(
        self,
        company_id: int,
        description: Any,
        amount: Any,
        txn_date: Any,
        direction: Any = None,
    ) -> ClassificationResult:
        """Classify one transaction.

        Returns:
            The result of the first strategy that answered

        Raises:
            ValidationError: If the input is missing or malformed
        """
        context = TransactionContext.create(company_id, description, amount, txn_date, direction)
        context = replace(context, entities=self.extractor.extract(context.description))
        reasoning = []
        result = None
        for strategy in self.strategies:
            outcome = self._attempt(strategy, context)
            reasoning.append(f"{strategy.name}: {outcome.reason}")
            if outcome.matched:
                result = replace(
                    outcome.result,
                    strategy=strategy.name,
                    needs_review=(
                        outcome.result.needs_review
                        or outcome.result.confidence < self.review_threshold
                    ),
                    reasoning=tuple(reasoning),
                )
                break

        if result is None:
            # Only reachable with a custom cascade lacking an always-answering step
            result = ClassificationResult(
                type=ClassificationType.UNKNOWN,
                category=self.categories.default_category,
                confidence=0,
                needs_review=True,
                counterparty_name=context.entities.vendor,
                reasoning=tuple(reasoning),
            )

        logger.debug(
            "Classified %s as %s/%s (%d) via %s",
            context.fingerprint(), result.type.value, result.category,
            result.confidence, result.strategy,
        )
        return result

    def _attempt(self, strategy: ClassificationStrategy, context: TransactionContext) -> StrategyOutcome:
        """Run one strategy, serving answers of database-free strategies from the cache.

        Strategies that read open documents or history always run, since
        every posted payment changes what they would answer.
        """
        if self.cache is None or strategy.reads_database:
            return strategy.attempt(context)

        key = classification_key(
            context.company_id, context.description, context.amount, context.direction
        ) + (strategy.name,)
        outcome = self.cache.get(key)
        if outcome is None:
            outcome = strategy.attempt(context)
            if outcome.matched:
                self.cache.set(key, outcome)
        return outcome

    def classify_line(self, company_id: int, line: RawLine) -> ClassificationResult:
        return self.classify(company_id, line.description, line.amount, line.date, line.direction)

    def classify_batch(self, company_id: int, lines: Iterable[Any]) -> list[ClassificationResult]:
        """Classify raw lines or ``{date, description, amount, type}`` records in order."""
        results = []
        for line in lines:
            if not isinstance(line, RawLine):
                line = RawLine.from_record(line)
            results.append(self.classify_line(company_id, line))
        return results


def summarize(results: Sequence[ClassificationResult]) -> dict:
    """Confidence, review and category counts for a batch of results."""
    summary = {
        "total": len(results),
        "high_confidence": 0,
        "medium_confidence": 0,
        "low_confidence": 0,
        "needs_review": 0,
        "by_type": {},
        "by_category": {},
    }
    for result in results:
        if result.confidence >= 80:
            summary["high_confidence"] += 1
        elif result.confidence >= 60:
            summary["medium_confidence"] += 1
        else:
            summary["low_confidence"] += 1
        if result.needs_review:
            summary["needs_review"] += 1
        summary["by_type"][result.type.value] = summary["by_type"].get(result.type.value, 0) + 1
        summary["by_category"][result.category] = summary["by_category"].get(result.category, 0) + 1
    return summary
