"""Tests for the double-entry ledger."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.domain.entities import PostingLine
from ledgerflow.domain.errors import (
    LedgerImbalanceError,
    UnknownAccountError,
    ValidationError,
)
from ledgerflow.domain.ledger import LedgerService
from ledgerflow.domain.posting import DEFAULT_CATEGORY_ACCOUNTS, PostingPolicy
from ledgerflow.domain.tax import NoTaxRegime


def balance(db, company_id, code):
    return db.get_accounting_account(company_id, code).balance


class TestPost:
    """Tests for LedgerService.post."""

    def test_balanced_batch(self, temp_db, ledger, sample_company):
        entries = ledger.post(
            sample_company.id,
            date(2026, 3, 1),
            "Office rent",
            [PostingLine("5400", debit=Decimal("50000")), PostingLine("1010", credit=Decimal("50000"))],
            reference="RENT-03",
        )

        assert [e.account_code for e in entries] == ["5400", "1010"]
        assert entries[0].reference == "RENT-03"
        assert balance(temp_db, sample_company.id, "5400") == Decimal("50000")
        # Bank is debit-normal, so a credit lowers it
        assert balance(temp_db, sample_company.id, "1010") == Decimal("-50000")

    def test_dict_lines(self, ledger, sample_company):
        entries = ledger.post(
            sample_company.id,
            date(2026, 3, 1),
            "Capital introduced",
            [
                {"account_code": "1010", "debit": "100000"},
                {"account_code": "3000", "credit": "100000"},
            ],
        )
        assert len(entries) == 2

    def test_imbalance_rejected(self, ledger, sample_company):
        with pytest.raises(LedgerImbalanceError) as excinfo:
            ledger.post(
                sample_company.id,
                date(2026, 3, 1),
                "Broken",
                [PostingLine("5200", debit=Decimal("1000")), PostingLine("1010", credit=Decimal("900"))],
            )

        assert excinfo.value.difference == Decimal("100")
        assert "Difference: ₹100.00" in str(excinfo.value)
        assert ledger.list_entries(sample_company.id) == []

    def test_unknown_account(self, ledger, sample_company):
        with pytest.raises(UnknownAccountError, match="9999"):
            ledger.post(
                sample_company.id,
                date(2026, 3, 1),
                "Unknown",
                [PostingLine("9999", debit=Decimal("10")), PostingLine("1010", credit=Decimal("10"))],
            )
        assert ledger.list_entries(sample_company.id) == []

    def test_single_line_rejected(self, ledger, sample_company):
        with pytest.raises(ValidationError, match="at least 2"):
            ledger.post(sample_company.id, date(2026, 3, 1), "One", [PostingLine("1010", debit=Decimal("1"))])

    def test_negative_and_empty_lines_rejected(self, ledger, sample_company):
        with pytest.raises(ValidationError, match="negative"):
            ledger.validate(
                sample_company.id,
                [PostingLine("1010", debit=Decimal("-1")), PostingLine("3000", credit=Decimal("-1"))],
            )
        with pytest.raises(ValidationError, match="empty"):
            ledger.validate(sample_company.id, [PostingLine("1010"), PostingLine("3000")])

    def test_tolerance(self, temp_db, sample_company):
        lines = [PostingLine("5200", debit=Decimal("100.01")), PostingLine("1010", credit=Decimal("100.00"))]

        LedgerService(temp_db).validate(sample_company.id, lines)
        with pytest.raises(LedgerImbalanceError):
            LedgerService(temp_db, tolerance=Decimal("0")).validate(sample_company.id, lines)

    def test_failed_write_is_rolled_back(self, temp_db, ledger, sample_company, monkeypatch):
        """A failure while updating balances leaves no entries and no balance change."""
        def fail(session, account, delta):
            raise RuntimeError("disk full")

        monkeypatch.setattr(temp_db, "_apply_balance_delta", fail)

        with pytest.raises(RuntimeError):
            ledger.post(
                sample_company.id,
                date(2026, 3, 1),
                "Office rent",
                [PostingLine("5400", debit=Decimal("500")), PostingLine("1010", credit=Decimal("500"))],
            )

        monkeypatch.undo()
        assert ledger.list_entries(sample_company.id) == []
        assert balance(temp_db, sample_company.id, "5400") == Decimal("0")


class TestNamedEvents:
    """Tests for the event helpers that build journal lines."""

    def test_expense_with_input_gst(self, ledger, sample_company):
        entries = ledger.post_expense(
            sample_company.id, date(2026, 3, 2), Decimal("1180"), "SaaS", "Slack", tax_amount=Decimal("180")
        )

        assert [(e.account_code, e.debit, e.credit) for e in entries] == [
            ("5200", Decimal("1000.00"), Decimal("0.00")),
            ("1110", Decimal("180.00"), Decimal("0.00")),
            ("1010", Decimal("0.00"), Decimal("1180.00")),
        ]

    def test_unmapped_category_posts_to_miscellaneous(self, ledger):
        lines = ledger.expense_payment_lines(Decimal("800"), "Meals")
        assert lines[0].account_code == "5480"

    def test_intra_state_revenue_splits_gst(self, ledger):
        lines = ledger.revenue_lines(Decimal("11800"), Decimal("1800"), inter_state=False)

        assert lines == [
            PostingLine("1100", debit=Decimal("11800")),
            PostingLine("4000", credit=Decimal("10000")),
            PostingLine("2100", credit=Decimal("900.00")),
            PostingLine("2101", credit=Decimal("900")),
        ]

    def test_settled_revenue_debits_bank(self, ledger):
        assert ledger.revenue_lines(Decimal("200"), settled=True)[0].account_code == "1010"

    def test_tax_must_be_below_amount(self, ledger):
        with pytest.raises(ValidationError, match="Tax amount"):
            ledger.revenue_lines(Decimal("100"), Decimal("100"))

    def test_payment_lines(self, ledger):
        assert [l.account_code for l in ledger.payment_received_lines(Decimal("5"))] == ["1010", "1100"]
        assert [l.account_code for l in ledger.bill_payment_lines(Decimal("5"))] == ["2000", "1010"]

    def test_custom_policy(self, temp_db):
        policy = PostingPolicy(tax_regime=NoTaxRegime()).with_category("Meals", "5460")
        ledger = LedgerService(temp_db, policy=policy)

        assert ledger.expense_payment_lines(Decimal("800"), "Meals")[0].account_code == "5460"
        with pytest.raises(ValidationError, match="not supported"):
            ledger.expense_lines(Decimal("118"), "Meals", Decimal("18"))

    def test_default_policy_is_not_shared(self):
        custom = PostingPolicy().with_category("Meals", "5460")

        assert custom.expense_code("Meals") == "5460"
        assert PostingPolicy().expense_code("Meals") == "5480"
        assert PostingPolicy().category_accounts is DEFAULT_CATEGORY_ACCOUNTS


class TestReverseAndTrialBalance:
    """Reversal entries and the trial balance."""

    def test_reverse(self, temp_db, ledger, sample_company):
        posted = ledger.post_expense(
            sample_company.id, date(2026, 3, 2), Decimal("900"), "Travel", "Cab", reference="TRIP-1"
        )

        reversal = ledger.reverse(sample_company.id, date(2026, 3, 3), "Undo cab", posted)

        assert [(e.account_code, e.debit, e.credit) for e in reversal] == [
            ("5450", Decimal("0.00"), Decimal("900.00")),
            ("1010", Decimal("900.00"), Decimal("0.00")),
        ]
        assert reversal[0].reference == "TRIP-1"
        assert balance(temp_db, sample_company.id, "5450") == Decimal("0")
        assert len(ledger.list_entries(sample_company.id)) == 4

    def test_reverse_nothing(self, ledger, sample_company):
        assert ledger.reverse(sample_company.id, date(2026, 3, 3), "Nothing", []) == []

    def test_trial_balance(self, ledger, sample_company):
        ledger.post_revenue(sample_company.id, date(2026, 3, 1), Decimal("11800"), "Invoice", Decimal("1800"))
        ledger.post_expense(sample_company.id, date(2026, 3, 5), Decimal("500"), "Travel", "Cab")

        tb = ledger.trial_balance(sample_company.id)

        assert tb.is_balanced
        assert tb.total_debits == tb.total_credits == Decimal("12300")
        rows = {row.account_code: (row.debit, row.credit) for row in tb.rows}
        assert rows["1100"] == (Decimal("11800"), Decimal("0"))
        assert rows["1010"] == (Decimal("0"), Decimal("500"))

    def test_trial_balance_as_of(self, ledger, sample_company):
        ledger.post_expense(sample_company.id, date(2026, 3, 5), Decimal("500"), "Travel", "Cab")

        assert ledger.trial_balance(sample_company.id, as_of=date(2026, 3, 4)).rows == ()
        assert len(ledger.trial_balance(sample_company.id, as_of=date(2026, 3, 5)).rows) == 2

    def test_list_entries_filters(self, ledger, sample_company):
        ledger.post_expense(sample_company.id, date(2026, 3, 5), Decimal("500"), "Travel", "Cab")
        ledger.post_expense(sample_company.id, date(2026, 3, 9), Decimal("50"), "Bank Fees", "Charges")

        assert len(ledger.list_entries(sample_company.id, account_code="1010")) == 2
        assert len(ledger.list_entries(sample_company.id, start_date=date(2026, 3, 6))) == 2
        assert ledger.list_entries(sample_company.id, reference="none") == []
