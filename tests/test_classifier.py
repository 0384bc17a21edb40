"""Tests for the classification cascade."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.cache import TTLCache
from ledgerflow.domain.classifier import (
    ClassificationService,
    KeywordRuleStrategy,
    TransactionContext,
    recurrence_frequency,
    summarize,
)
from ledgerflow.domain.entities import (
    ClassificationType,
    Direction,
    ExpenseType,
    Frequency,
)
from ledgerflow.domain.errors import ExternalClassifierResponseError, ValidationError
from ledgerflow.domain.external_classifier import ExternalClassification, ExternalClassifier


class FakeExternal(ExternalClassifier):
    name = "fake"

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = 0

    def classify(self, description, amount, txn_date, direction):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.answer


class TestDocumentStrategies:
    """Reference, amount and name matching against open invoices and bills."""

    def test_exact_reference(self, classifier, sample_company, sample_invoice):
        result = classifier.classify(
            sample_company.id, "NEFT CR INV-1042 GLOBEX CORP", "11800", date(2026, 3, 9), "credit"
        )

        assert result.type == ClassificationType.INVOICE_PAYMENT
        assert result.confidence == 95
        assert result.matched_invoice_id == sample_invoice.id
        assert result.strategy == "exact_reference"
        assert result.needs_review is False

    def test_amount_match(self, classifier, sample_company, sample_bill):
        result = classifier.classify(
            sample_company.id, "NEFT TRANSFER 88213", "5000", date(2026, 3, 4), "debit"
        )

        assert result.type == ClassificationType.BILL_PAYMENT
        assert result.confidence == 85
        assert result.matched_bill_id == sample_bill.id
        assert result.strategy == "amount_match"

    def test_ambiguous_amount_match_needs_review(self, classifier, bill_service, sample_company):
        for number, due in (("B-1", date(2026, 3, 1)), ("B-2", date(2026, 3, 20))):
            bill_service.create_bill(
                sample_company.id, number, "Initech", Decimal("2000"), date(2026, 2, 1), due
            )

        result = classifier.classify(
            sample_company.id, "NEFT TRANSFER 1", "2000", date(2026, 3, 3), "debit"
        )

        assert result.confidence == 70
        assert result.needs_review is True
        assert result.matched_bill_id == bill_service.db.get_bill_by_number(sample_company.id, "B-1").id

    def test_counterparty_name(self, classifier, sample_company, sample_invoice):
        result = classifier.classify(
            sample_company.id, "NEFT FROM GLOBEX CORP", "3000", date(2026, 3, 9), "credit"
        )

        assert result.type == ClassificationType.INVOICE_PAYMENT
        assert result.confidence == 75
        assert result.counterparty_name == "Globex Corp"
        assert result.strategy == "counterparty_name"

    def test_known_vendor(self, classifier, vendor_service, sample_company):
        vendor_service.create_vendor(sample_company.id, "Northwind Supplies", "Office Supplies")

        result = classifier.classify(
            sample_company.id, "IMPS NORTHWIND SUPPLIES 2231", "1234", date(2026, 3, 9), "debit"
        )

        assert result.type == ClassificationType.EXPENSE
        assert result.category == "Office Supplies"
        assert result.counterparty_name == "Northwind Supplies"
        assert result.confidence == 75


class TestHistoricalPattern:
    """Categories learned from earlier transactions."""

    def test_recurring_monthly(self, classifier, transaction_service, sample_company):
        for day in (date(2026, 1, 5), date(2026, 2, 5), date(2026, 3, 5)):
            transaction_service.create_transaction(
                sample_company.id, day, Decimal("-450"), "UPI-SWIGGY-xyz@okaxis", category="Meals"
            )

        result = classifier.classify(
            sample_company.id, "UPI-SWIGGY-xyz@okaxis", "450", date(2026, 4, 5), "debit"
        )

        assert result.category == "Meals"
        assert result.expense_type == ExpenseType.RECURRING
        assert result.frequency == Frequency.MONTHLY
        assert result.confidence == 70
        assert result.needs_review is False
        assert result.strategy == "historical_pattern"

    def test_irregular_history(self, classifier, transaction_service, sample_company):
        for day in (date(2026, 3, 1), date(2026, 3, 16)):
            transaction_service.create_transaction(
                sample_company.id, day, Decimal("-1200"), "Courier charges", category="G&A"
            )

        result = classifier.classify(
            sample_company.id, "Courier charges", "1150", date(2026, 3, 20), "debit"
        )

        assert result.category == "G&A"
        assert result.expense_type == ExpenseType.ONE_TIME
        assert result.confidence == 60
        assert result.needs_review is True

    def test_history_ignores_other_direction(self, classifier, transaction_service, sample_company):
        for day in (date(2026, 1, 5), date(2026, 2, 5)):
            transaction_service.create_transaction(
                sample_company.id, day, Decimal("450"), "Refund", category="Refunds"
            )

        result = classifier.classify(sample_company.id, "qzx", "450", date(2026, 3, 5), "debit")
        assert result.strategy == "keyword_rules"


class TestExternalStep:
    """External classifier step of the cascade."""

    def test_external_answer(self, temp_db, sample_company):
        external = FakeExternal(
            ExternalClassification(
                category="cloud",
                confidence=95,
                reasoning="Hosting",
                is_recurring=True,
                suggested_frequency=Frequency.MONTHLY,
            )
        )
        service = ClassificationService(temp_db, external=external)

        result = service.classify(sample_company.id, "qzx vendor 77", "999", date(2026, 3, 5), "debit")

        assert result.category == "Cloud"
        assert result.confidence == 85
        assert result.frequency == Frequency.MONTHLY
        assert result.strategy == "external"

    def test_external_failure_falls_through(self, temp_db, sample_company):
        external = FakeExternal(error=ExternalClassifierResponseError("garbage"))
        service = ClassificationService(temp_db, external=external)

        result = service.classify(sample_company.id, "Zomato team lunch", "800", date(2026, 3, 5), "debit")

        assert result.category == "Meals"
        assert result.strategy == "keyword_rules"
        assert any("External classification failed" in r for r in result.reasoning)

    def test_unknown_category_is_a_miss(self, temp_db, sample_company):
        external = FakeExternal(ExternalClassification(category="Groceries", confidence=90))
        service = ClassificationService(temp_db, external=external)

        result = service.classify(sample_company.id, "qzx", "10", date(2026, 3, 5), "debit")
        assert result.strategy == "keyword_rules"

    def test_failure_flags_are_a_miss(self, temp_db, sample_company):
        external = FakeExternal(
            ExternalClassification(category="Cloud", confidence=90, flags=("parse_error",))
        )
        service = ClassificationService(temp_db, external=external)

        result = service.classify(sample_company.id, "qzx", "10", date(2026, 3, 5), "debit")
        assert result.strategy == "keyword_rules"


class TestKeywordRules:
    """The final, always-answering step."""

    def test_keyword_match(self, classifier, sample_company):
        result = classifier.classify(sample_company.id, "Zomato team lunch", "-800", date(2026, 3, 5))

        assert result.type == ClassificationType.EXPENSE
        assert result.category == "Meals"
        assert result.confidence == 50
        assert result.needs_review is True

    def test_every_input_gets_a_result(self, classifier, sample_company):
        result = classifier.classify(sample_company.id, "qzx", "10", date(2026, 3, 5), "credit")

        assert result.type == ClassificationType.REVENUE
        assert result.category == "Other"
        assert len(result.reasoning) == 6


class TestValidation:
    """Malformed input is rejected before any strategy runs."""

    def test_missing_description(self, classifier, sample_company):
        with pytest.raises(ValidationError, match="description"):
            classifier.classify(sample_company.id, "  ", "10", date(2026, 3, 5))

    def test_malformed_amount(self, classifier, sample_company):
        with pytest.raises(ValidationError, match="Malformed amount"):
            classifier.classify(sample_company.id, "rent", "abc", date(2026, 3, 5))

    def test_missing_date(self, classifier, sample_company):
        with pytest.raises(ValidationError, match="date"):
            classifier.classify(sample_company.id, "rent", "10", None)

    def test_unknown_direction(self, classifier, sample_company):
        with pytest.raises(ValidationError, match="Unknown direction"):
            classifier.classify(sample_company.id, "rent", "10", date(2026, 3, 5), "sideways")

    def test_direction_from_sign(self):
        context = TransactionContext.create(1, "rent", "-500", "2026-03-05")

        assert context.direction == Direction.DEBIT
        assert context.amount == Decimal("500")
        assert context.date == date(2026, 3, 5)


def test_cache_returns_stored_result(temp_db, sample_company):
    """A second identical request is served from the cache."""
    external = FakeExternal(ExternalClassification(category="Cloud", confidence=80))
    service = ClassificationService(temp_db, external=external, cache=TTLCache())

    first = service.classify(sample_company.id, "qzx", "10", date(2026, 3, 5), "debit")
    second = service.classify(sample_company.id, "QZX ", "10.00", date(2026, 3, 5), "debit")

    assert second == first
    assert external.calls == 1
    assert service.cache.hits == 1


def test_custom_cascade(temp_db, sample_company):
    service = ClassificationService(temp_db, strategies=[KeywordRuleStrategy()])
    result = service.classify(sample_company.id, "uber cab", "300", date(2026, 3, 5), "debit")

    assert result.category == "Travel"
    assert result.reasoning == ("keyword_rules: Keyword 'cab' matched Travel",)


def test_classify_batch(classifier, sample_company):
    results = classifier.classify_batch(
        sample_company.id,
        [
            {"date": "2026-03-05", "description": "Zomato team lunch", "amount": "-800"},
            {"date": "2026-03-06", "description": "Uber cab", "amount": "300", "type": "debit"},
        ],
    )

    assert [r.category for r in results] == ["Meals", "Travel"]
    summary = summarize(results)
    assert summary["total"] == 2
    assert summary["low_confidence"] == 2
    assert summary["by_category"] == {"Meals": 1, "Travel": 1}


def test_recurrence_frequency():
    assert recurrence_frequency([date(2026, 1, 1), date(2026, 1, 8), date(2026, 1, 15)]) == Frequency.WEEKLY
    assert recurrence_frequency([date(2026, 1, 1), date(2026, 4, 1)]) == Frequency.QUARTERLY
    assert recurrence_frequency([date(2026, 1, 1), date(2026, 1, 20)]) is None
    assert recurrence_frequency([date(2026, 1, 1)]) is None
