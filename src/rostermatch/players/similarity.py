"""
String similarity kernel.

Pure functions used by every field comparator. All scores are
percentages in [0, 100] so they can be fed straight into the weighted
scorer.

Player data arrives in many shapes:
- Casing: "O'BRIEN" vs "O'Brien"
- Punctuation: "O'Brien" vs "OBrien", "St. John" vs "St John"
- Accents: "José" vs "Jose"
- Stray whitespace from spreadsheets: "  Mary   Ann "

normalize() removes those differences; compare() then takes the more
lenient of two algorithms so near-misses are not lost:
1. Edit (Levenshtein) similarity: good for typos in short strings
2. Jaro-Winkler: good for transpositions and shared prefixes
"""

import re
import unicodedata

import jellyfish
from rapidfuzz.distance import Levenshtein

# Anything that is neither a word character nor whitespace
_PUNCTUATION_RE = re.compile(r"[^\w\s]")

# Jaro-Winkler prefix bonus: scaling factor and longest prefix considered
_WINKLER_SCALING = 0.1
_WINKLER_MAX_PREFIX = 4


def normalize(text: str) -> str:
    """
    Normalize text for comparison.

    Normalization steps:
    1. Convert to lowercase
    2. Remove accents (é → e, ñ → n)
    3. Strip punctuation
    4. Trim and collapse internal whitespace to single spaces

    Examples:
        >>> normalize("  O'Brien ")
        'obrien'
        >>> normalize("José   MARÍA")
        'jose maria'
    """
    if not text:
        return ""

    normalized = text.lower()

    # NFD splits accented characters into base + combining mark (Mn),
    # then the marks are dropped
    normalized = unicodedata.normalize("NFD", normalized)
    normalized = "".join(
        char for char in normalized
        if unicodedata.category(char) != "Mn"
    )

    normalized = _PUNCTUATION_RE.sub("", normalized)

    return " ".join(normalized.split())


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance: minimum single-character inserts, deletes and
    substitutions needed to turn a into b.

    Examples:
        >>> edit_distance("kitten", "sitting")
        3
    """
    return Levenshtein.distance(a, b)


def edit_similarity(a: str, b: str) -> float:
    """
    Edit distance expressed as a percentage of the longer string.

    Returns 100 for equal strings and 0 when only one side is empty.
    """
    if a == b:
        return 100.0
    if not a or not b:
        return 0.0

    max_len = max(len(a), len(b))
    return (max_len - edit_distance(a, b)) / max_len * 100.0


def jaro_winkler(a: str, b: str) -> float:
    """
    Jaro-Winkler similarity as a percentage.

    Classic Jaro (match window of max(len)/2 - 1) plus a prefix bonus of
    0.1 per shared leading character, up to four characters. The bonus is
    always applied, with no minimum Jaro score.

    Examples:
        >>> round(jaro_winkler("MARTHA", "MARHTA"), 1)
        96.1
    """
    if a == b:
        return 100.0
    if not a or not b:
        return 0.0

    jaro = jellyfish.jaro_similarity(a, b)

    prefix = 0
    for char_a, char_b in zip(a[:_WINKLER_MAX_PREFIX], b[:_WINKLER_MAX_PREFIX]):
        if char_a != char_b:
            break
        prefix += 1

    return (jaro + _WINKLER_SCALING * prefix * (1.0 - jaro)) * 100.0


def compare(a: str, b: str) -> float:
    """
    Compare two strings and return the better of the two similarity scores.

    Both inputs are normalized first. Taking the maximum biases towards
    fewer false negatives; the weighted scorer and thresholds decide what
    counts as a duplicate.

    Examples:
        >>> compare("O'Brien", "obrien")
        100.0
    """
    n1 = normalize(a)
    n2 = normalize(b)

    return max(edit_similarity(n1, n2), jaro_winkler(n1, n2))
