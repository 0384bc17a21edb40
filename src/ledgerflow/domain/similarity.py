"""String similarity primitives shared by the classifier and the matcher."""

import re

from rapidfuzz.distance import Levenshtein

# Above this normalized length edit distance gets expensive and noisy, so the
# "auto" method switches to word overlap.
LONG_STRING_THRESHOLD = 64

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_WORD = re.compile(r"[a-z0-9]+")


def normalize(text: str) -> str:
    """Case-fold and strip everything that is not a letter or digit."""
    return _NON_ALNUM.sub("", (text or "").casefold())


def words(text: str, min_length: int = 1) -> set[str]:
    """Return the set of case-folded alphanumeric words of ``text``."""
    return {w for w in _WORD.findall((text or "").casefold()) if len(w) >= min_length}


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    return Levenshtein.distance(a, b)


def edit_similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity in [0, 1]."""
    return Levenshtein.normalized_similarity(normalize(a), normalize(b))


def word_overlap(a: str, b: str) -> float:
    """Shared words divided by the larger word count, in [0, 1]."""
    w1, w2 = words(a), words(b)
    if not w1 and not w2:
        return 1.0
    if not w1 or not w2:
        return 0.0
    return len(w1 & w2) / max(len(w1), len(w2))


def similarity(a: str, b: str, method: str = "auto") -> float:
    """Similarity of two strings in [0, 1].

    Args:
        a: First string
        b: Second string
        method: "edit" for normalized edit distance, "words" for word
            overlap, or "auto" to use word overlap only when both strings
            are long

    Returns:
        1.0 for identical strings; the measure is symmetric in a and b

    Raises:
        ValueError: If method is not recognized
    """
    if method == "edit":
        return edit_similarity(a, b)
    if method == "words":
        return word_overlap(a, b)
    if method != "auto":
        raise ValueError(f"Unknown similarity method: '{method}'")

    if (
        len(normalize(a)) > LONG_STRING_THRESHOLD
        and len(normalize(b)) > LONG_STRING_THRESHOLD
    ):
        return word_overlap(a, b)
    return edit_similarity(a, b)


def name_similarity(description: str, name: str) -> float:
    """How strongly a free-text description mentions a counterparty name.

    A description containing every word of the name scores 1.0; otherwise
    the better of edit similarity and word overlap is used.
    """
    name_words = words(name)
    if not name_words:
        return 0.0
    if name_words <= words(description):
        return 1.0
    return max(edit_similarity(description, name), word_overlap(description, name))
