"""Tests for bank reconciliation."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.entities import CandidateKind, MatchTier
from ledgerflow.domain.errors import NotFoundError
from ledgerflow.domain.reconciliation import ReconciliationService, parse_candidate_id


@pytest.fixture
def reconciliation(temp_db, ledger):
    return ReconciliationService(temp_db, ledger=ledger)


def test_parse_candidate_id():
    assert parse_candidate_id("inv:3") == (CandidateKind.INVOICE, 3)
    assert parse_candidate_id("bill:12") == (CandidateKind.BILL, 12)
    assert parse_candidate_id("txn:1") == (CandidateKind.TRANSACTION, 1)
    with pytest.raises(ValueError, match="Malformed candidate id"):
        parse_candidate_id("invoice-3")


class TestReconcile:
    """Tests for ReconciliationService.reconcile (no writes)."""

    def test_invoice_by_reference(self, reconciliation, sample_company, sample_invoice):
        results, summary = reconciliation.reconcile(
            sample_company.id,
            [{"date": "2026-03-12", "description": "NEFT CR INV-1042 GLOBEX", "amount": "11800", "type": "credit"}],
        )

        assert results[0].match_tier == MatchTier.EXACT
        assert results[0].matched_record_id == f"inv:{sample_invoice.id}"
        assert summary.auto_matched == 1
        assert summary.auto_match_rate == 100.0

    def test_candidates_outside_lookback_are_ignored(self, temp_db, ledger, sample_company, sample_invoice):
        service = ReconciliationService(temp_db, ledger=ledger, lookback_days=10)

        results, summary = service.reconcile(
            sample_company.id,
            [{"date": "2026-06-30", "description": "NEFT CR INV-1042 GLOBEX", "amount": "11800", "type": "credit"}],
        )

        assert results[0].match_tier == MatchTier.UNMATCHED
        assert summary.unmatched == 1

    def test_unknown_company(self, reconciliation):
        with pytest.raises(NotFoundError):
            reconciliation.reconcile(999, [])

    def test_negative_lookback(self, temp_db):
        with pytest.raises(ValueError):
            ReconciliationService(temp_db, lookback_days=-1)


class TestApply:
    """Tests for ReconciliationService.apply."""

    def test_invoice_payment(self, ledger, reconciliation, invoice_service, sample_company, sample_invoice):
        results, _ = reconciliation.reconcile(
            sample_company.id,
            [{"date": "2026-03-12", "description": "NEFT CR INV-1042 GLOBEX", "amount": "11800", "type": "credit"}],
        )

        stats = reconciliation.apply(sample_company.id, results)

        assert stats["invoices_paid"] == 1
        assert stats["errors"] == []
        invoice = invoice_service.get_invoice(sample_invoice.id)
        assert invoice.status == "paid"
        payment = ledger.list_entries(sample_company.id, reference="INV-1042", account_code="1010")
        assert [(e.date, e.debit) for e in payment] == [(date(2026, 3, 12), Decimal("11800.00"))]
        assert ledger.trial_balance(sample_company.id).is_balanced

    def test_split_bill_payment(self, reconciliation, bill_service, sample_company, sample_bill):
        results, summary = reconciliation.reconcile(
            sample_company.id,
            [
                {"date": "2026-03-05", "description": "NEFT TRANSFER 1", "amount": "-3000"},
                {"date": "2026-03-06", "description": "NEFT TRANSFER 2", "amount": "-2000"},
            ],
        )
        assert summary.breakdown["split"] == 2
        assert results[0].group_id == results[1].group_id

        stats = reconciliation.apply(sample_company.id, results)

        assert stats["bills_paid"] == 2
        bill = bill_service.get_bill(sample_bill.id)
        assert bill.status == "paid"
        assert bill.paid_amount == Decimal("5000")

    def test_transaction_reconciled(self, reconciliation, transaction_service, sample_company):
        txn_id = transaction_service.create_transaction(
            sample_company.id, date(2026, 3, 1), Decimal("-50000"), "ACME RENT MARCH"
        )
        lines = [{"date": "2026-03-01", "description": "ACME RENT MARCH", "amount": "50000", "type": "debit"}]

        results, _ = reconciliation.reconcile(sample_company.id, lines)
        stats = reconciliation.apply(sample_company.id, results)

        assert stats["transactions_reconciled"] == 1
        assert transaction_service.get_transaction(txn_id).is_reconciled

        # Reconciled transactions are no longer candidates
        results, _ = reconciliation.reconcile(sample_company.id, lines)
        assert results[0].match_tier == MatchTier.UNMATCHED

    def test_low_confidence_skipped(self, reconciliation, invoice_service, sample_company, sample_invoice):
        results, _ = reconciliation.reconcile(
            sample_company.id,
            [{"date": "2026-03-12", "description": "NEFT CR INV-1042 GLOBEX", "amount": "11800", "type": "credit"}],
        )

        stats = reconciliation.apply(sample_company.id, results, min_confidence=99)

        assert stats["skipped"] == 1
        assert invoice_service.get_invoice(sample_invoice.id).status == "pending"

    def test_other_company_document_is_an_error(self, reconciliation, company_service, sample_company, sample_invoice):
        other_id = company_service.create_company("Other Co")
        results, _ = reconciliation.reconcile(
            sample_company.id,
            [{"date": "2026-03-12", "description": "NEFT CR INV-1042 GLOBEX", "amount": "11800", "type": "credit"}],
        )

        stats = reconciliation.apply(other_id, results)

        assert stats["invoices_paid"] == 0
        assert len(stats["errors"]) == 1
        assert "not found" in stats["errors"][0]
