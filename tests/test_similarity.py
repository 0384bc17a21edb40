"""Tests for string similarity."""

import pytest

from ledgerflow.domain.similarity import (
    edit_similarity,
    levenshtein_distance,
    name_similarity,
    normalize,
    similarity,
    word_overlap,
)


def test_normalize():
    assert normalize("INV-1042 Globex, Corp.") == "inv1042globexcorp"
    assert normalize(None) == ""


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_identical_strings_score_one():
    assert similarity("ACME RENT", "acme-rent") == 1.0
    assert similarity("", "") == 1.0


def test_similarity_is_symmetric():
    a, b = "NEFT GLOBEX CORP", "Globex Corporation"
    assert similarity(a, b) == similarity(b, a)


def test_edit_similarity():
    assert edit_similarity("abc", "abd") == pytest.approx(2 / 3)
    assert edit_similarity("Globex-Corp", "globex corp") == 1.0
    assert edit_similarity("abc", "") == 0.0


def test_word_overlap():
    assert word_overlap("team lunch swiggy", "swiggy lunch order") == pytest.approx(2 / 3)
    assert word_overlap("", "words") == 0.0


def test_auto_uses_word_overlap_for_long_strings():
    a = "payment towards annual maintenance contract for office air conditioning units"
    b = "annual maintenance contract for office air conditioning units payment towards"
    assert similarity(a, b) == 1.0
    assert similarity(a, b, method="edit") < 1.0


def test_unknown_method():
    with pytest.raises(ValueError, match="Unknown similarity method"):
        similarity("a", "b", method="cosine")


def test_name_similarity():
    assert name_similarity("NEFT CR GLOBEX CORP 8812", "Globex Corp") == 1.0
    assert name_similarity("NEFT CR GLOBEX CORP", "") == 0.0
    assert name_similarity("SWIGGY ORDER", "Northwind Supplies") < 0.6
