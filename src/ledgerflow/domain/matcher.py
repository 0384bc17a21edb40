"""Tiered matching of bank statement lines against book records.

Each line is tried against the candidates tier by tier, strongest first:

* exact   (98) amount within ₹1 and either date within a day with nearly
  identical descriptions, or the same invoice/bill number
* fuzzy   (85) amount within 2%, date within 3 days, similar description
* pattern (75) amount within 5%, date within 7 days, vendor keyword shared
* split   (70) two candidates adding up to the line
* unmatched (0)

A candidate belongs to at most one match group. After the per-line pass,
pairs of still-unmatched lines that together pay one candidate are grouped
as a split as well.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledgerflow.domain.entities import (
    Bill,
    BookTransaction,
    CandidateKind,
    Direction,
    Invoice,
    MatchCandidate,
    MatchResult,
    MatchTier,
    RawLine,
    ReconciliationSummary,
)
from ledgerflow.domain.entity_extractor import EntityExtractor, normalize_document_number
from ledgerflow.domain.similarity import similarity, words

TIER_CONFIDENCE = {
    MatchTier.EXACT: 98,
    MatchTier.FUZZY: 85,
    MatchTier.PATTERN: 75,
    MatchTier.SPLIT: 70,
    MatchTier.UNMATCHED: 0,
}


@dataclass(frozen=True)
class MatchingRules:
    """Tolerances for each tier."""

    exact_amount: Decimal = Decimal("1.00")
    exact_days: int = 1
    exact_similarity: float = 0.9
    fuzzy_ratio: Decimal = Decimal("0.02")
    fuzzy_days: int = 3
    fuzzy_similarity: float = 0.7
    pattern_ratio: Decimal = Decimal("0.05")
    pattern_days: int = 7
    split_ratio: Decimal = Decimal("0.01")
    split_days: int = 3


def candidate_from_transaction(txn: BookTransaction) -> MatchCandidate:
    return MatchCandidate(
        id=f"txn:{txn.id}",
        kind=CandidateKind.TRANSACTION,
        record_id=txn.id,
        date=txn.date,
        amount=abs(txn.amount),
        direction=txn.direction,
        description=txn.description or "",
        counterparty_name=txn.counterparty_name,
    )


def candidate_from_invoice(invoice: Invoice) -> MatchCandidate:
    return MatchCandidate(
        id=f"inv:{invoice.id}",
        kind=CandidateKind.INVOICE,
        record_id=invoice.id,
        date=invoice.due_date or invoice.issue_date,
        amount=invoice.balance_amount,
        direction=Direction.CREDIT,
        description=f"Invoice {invoice.number} {invoice.counterparty_name}",
        counterparty_name=invoice.counterparty_name,
        document_number=invoice.number,
    )


def candidate_from_bill(bill: Bill) -> MatchCandidate:
    return MatchCandidate(
        id=f"bill:{bill.id}",
        kind=CandidateKind.BILL,
        record_id=bill.id,
        date=bill.due_date or bill.issue_date,
        amount=bill.balance_amount,
        direction=Direction.DEBIT,
        description=f"Bill {bill.number} {bill.counterparty_name}",
        counterparty_name=bill.counterparty_name,
        document_number=bill.number,
    )


def _days_apart(line: RawLine, candidate: MatchCandidate) -> int:
    return abs((line.date - candidate.date).days)


class BatchMatcher:
    """Match a batch of lines against candidates. Pure; no I/O."""

    def __init__(
        self,
        rules: Optional[MatchingRules] = None,
        extractor: Optional[EntityExtractor] = None,
    ):
        self.rules = rules or MatchingRules()
        self.extractor = extractor or EntityExtractor()

    def match(
        self, lines: Sequence[RawLine], candidates: Iterable[MatchCandidate]
    ) -> list[MatchResult]:
        """Return one result per line, in input order."""
        ordered = sorted(
            (c for c in candidates if c.date is not None), key=lambda c: (c.date, c.id)
        )
        consumed: set[str] = set()
        results = []
        for line in lines:
            eligible = [
                c for c in ordered if c.id not in consumed and c.direction == line.direction
            ]
            result = self.match_line(line, eligible)
            consumed.update(result.matched_record_ids)
            results.append(result)
        return self._group_splits(results, ordered, consumed)

    def match_line(self, line: RawLine, eligible: Sequence[MatchCandidate]) -> MatchResult:
        """Try every tier for one line against unconsumed candidates."""
        for tier in (self._exact, self._fuzzy, self._pattern, self._split):
            result = tier(line, eligible)
            if result is not None:
                return result
        return MatchResult(
            raw_line=line,
            match_tier=MatchTier.UNMATCHED,
            confidence=TIER_CONFIDENCE[MatchTier.UNMATCHED],
            reason="No matching record found",
        )

    def _exact(self, line, eligible):
        rules = self.rules
        entities = self.extractor.extract(line.description)
        references = {
            normalize_document_number(n)
            for n in (entities.invoice_number, entities.bill_number)
            if n
        }
        for candidate in eligible:
            if abs(line.amount - candidate.amount) > rules.exact_amount:
                continue
            if candidate.document_number and (
                normalize_document_number(candidate.document_number) in references
            ):
                return _matched(
                    line, MatchTier.EXACT, candidate,
                    f"Amount and reference {candidate.document_number} match",
                )
            if _days_apart(line, candidate) > rules.exact_days:
                continue
            score = similarity(line.description, candidate.description)
            if score >= rules.exact_similarity:
                return _matched(
                    line, MatchTier.EXACT, candidate,
                    f"Amount, date and description match ({score:.0%} similar)",
                )
        return None

    def _fuzzy(self, line, eligible):
        rules = self.rules
        limit = line.amount * rules.fuzzy_ratio
        best, best_score = None, 0.0
        for candidate in eligible:
            if abs(line.amount - candidate.amount) > limit:
                continue
            if _days_apart(line, candidate) > rules.fuzzy_days:
                continue
            score = similarity(line.description, candidate.description)
            if score >= rules.fuzzy_similarity and score > best_score:
                best, best_score = candidate, score
        if best is None:
            return None
        return _matched(
            line, MatchTier.FUZZY, best,
            f"Amount within {rules.fuzzy_ratio:.0%}, {_days_apart(line, best)} days apart, "
            f"{best_score:.0%} similar",
        )

    def _pattern(self, line, eligible):
        rules = self.rules
        keywords = self.extractor.vendor_keywords(line.description)
        if not keywords:
            return None
        limit = line.amount * rules.pattern_ratio
        for candidate in eligible:
            if abs(line.amount - candidate.amount) > limit:
                continue
            if _days_apart(line, candidate) > rules.pattern_days:
                continue
            field_words = words(candidate.counterparty_field)
            for keyword in keywords:
                if keyword in field_words:
                    return _matched(
                        line, MatchTier.PATTERN, candidate,
                        f"Vendor keyword '{keyword}' matches {candidate.id}",
                    )
        return None

    def _split(self, line, eligible):
        rules = self.rules
        nearby = [c for c in eligible if _days_apart(line, c) <= rules.split_days]
        limit = line.amount * rules.split_ratio
        for i, first in enumerate(nearby):
            for second in nearby[i + 1:]:
                if abs(first.amount + second.amount - line.amount) <= limit:
                    return MatchResult(
                        raw_line=line,
                        match_tier=MatchTier.SPLIT,
                        confidence=TIER_CONFIDENCE[MatchTier.SPLIT],
                        reason=f"Split across {first.id} and {second.id}",
                        matched_record_id=first.id,
                        matched_record_ids=(first.id, second.id),
                    )
        return None

    def _group_splits(self, results, ordered, consumed):
        """Pair consecutive unmatched lines that together settle one candidate."""
        rules = self.rules
        pending = [i for i, r in enumerate(results) if not r.is_matched]
        group_number = 0
        position = 0
        while position < len(pending) - 1:
            i, j = pending[position], pending[position + 1]
            first, second = results[i].raw_line, results[j].raw_line
            candidate = None
            if first.direction == second.direction:
                total = first.amount + second.amount
                for c in ordered:
                    if c.id in consumed or c.direction != first.direction:
                        continue
                    if _days_apart(first, c) > rules.split_days:
                        continue
                    if _days_apart(second, c) > rules.split_days:
                        continue
                    if abs(total - c.amount) <= c.amount * rules.split_ratio:
                        candidate = c
                        break
            if candidate is None:
                position += 1
                continue

            group_number += 1
            group_id = f"split-{group_number}"
            consumed.add(candidate.id)
            for index, partner in ((i, second), (j, first)):
                line = results[index].raw_line
                results[index] = MatchResult(
                    raw_line=line,
                    match_tier=MatchTier.SPLIT,
                    confidence=TIER_CONFIDENCE[MatchTier.SPLIT],
                    reason=(
                        f"Paid together with the {partner.amount} line "
                        f"towards {candidate.id} ({candidate.amount})"
                    ),
                    matched_record_id=candidate.id,
                    matched_record_ids=(candidate.id,),
                    group_id=group_id,
                )
            position += 2
        return results


def _matched(line: RawLine, tier: MatchTier, candidate: MatchCandidate, reason: str) -> MatchResult:
    return MatchResult(
        raw_line=line,
        match_tier=tier,
        confidence=TIER_CONFIDENCE[tier],
        reason=reason,
        matched_record_id=candidate.id,
        matched_record_ids=(candidate.id,),
    )


def summarize_matches(results: Sequence[MatchResult]) -> ReconciliationSummary:
    """Counts per tier and the auto-match rate (percent, one decimal)."""
    total = len(results)
    matched = sum(1 for r in results if r.is_matched)
    breakdown = {tier.value: 0 for tier in MatchTier}
    for result in results:
        breakdown[result.match_tier.value] += 1
    rate = round(matched / total * 100, 1) if total else 0.0
    return ReconciliationSummary(
        total=total,
        auto_matched=matched,
        unmatched=total - matched,
        auto_match_rate=rate,
        breakdown=breakdown,
    )
