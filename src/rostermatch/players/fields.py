"""
Per-attribute comparison policies.

Each comparator takes the candidate's value and the stored player's value
for one attribute and returns a FieldScore. A score is "counted" (reported
in MatchResult.matched_fields) when it reaches the field's cutoff.

Absence rules:
- Both sides absent: neutral, the field drops out of the weighted mean
- One side absent: a real mismatch scored through the zero-credit path
- Date of birth and nationality are neutral when either side is absent
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Union

from rostermatch.players.similarity import compare

# Field names double as attribute names on CandidateInput / Player and as
# the labels reported in matched_fields
FIRST_NAME = "first_name"
LAST_NAME = "last_name"
EMAIL = "email"
PHONE = "phone"
DATE_OF_BIRTH = "date_of_birth"
BIRTH_YEAR = "birth_year"
HEIGHT = "height"
NATIONALITY = "nationality"

TEXT_CUTOFF = 90.0
EXACT_CUTOFF = 100.0

_NON_DIGIT_RE = re.compile(r"\D")

# Recognised height encodings, tried in order against the whole string:
#   "77 inches", "77in", '77"', "77''"
#   6'5", 6' 5'', 6'
#   6-5
_HEIGHT_INCHES_RE = re.compile(r"(\d+)\s*(?:inches|inch|in|\"|'')")
_HEIGHT_FEET_INCHES_RE = re.compile(r"(\d+)\s*'\s*(?:(\d+)\s*(?:\"|''|inches|inch|in)?)?")
_HEIGHT_DASHED_RE = re.compile(r"(\d+)\s*-\s*(\d+)")


@dataclass(frozen=True)
class FieldScore:
    """
    Result of comparing one attribute.

    Attributes:
        score: 0-100 similarity for this field
        counted: Whether the score reached the field's cutoff
        label: Name reported in matched_fields when counted
        neutral: Field excluded from the weighted mean entirely
    """
    score: float
    counted: bool = False
    label: Optional[str] = None
    neutral: bool = False


NEUTRAL = FieldScore(score=0.0, neutral=True)


def _present(value) -> bool:
    """A value is present unless it is None or a blank string."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _scored(score: float, label: str, cutoff: float) -> FieldScore:
    counted = score >= cutoff
    return FieldScore(score=score, counted=counted, label=label if counted else None)


def compare_name(
    candidate: Optional[str],
    stored: Optional[str],
    label: str = FIRST_NAME,
    cutoff: float = TEXT_CUTOFF,
) -> FieldScore:
    """Compare a first or last name. Names are required, so never neutral."""
    return _scored(compare(candidate or "", stored or ""), label, cutoff)


def compare_email(
    candidate: Optional[str],
    stored: Optional[str],
    cutoff: float = TEXT_CUTOFF,
) -> FieldScore:
    """
    Case-insensitive exact match scores 100; anything else gets partial
    credit from the string kernel.
    """
    if not _present(candidate) and not _present(stored):
        return NEUTRAL
    if not _present(candidate) or not _present(stored):
        return FieldScore(score=0.0)

    if candidate.strip().lower() == stored.strip().lower():
        return _scored(100.0, EMAIL, cutoff)
    return _scored(compare(candidate, stored), EMAIL, cutoff)


def normalize_phone(phone: Optional[str]) -> str:
    """Strip everything but digits: "(555) 010-2030" → "5550102030"."""
    if not phone:
        return ""
    return _NON_DIGIT_RE.sub("", phone)


def compare_phone(
    candidate: Optional[str],
    stored: Optional[str],
    cutoff: float = EXACT_CUTOFF,
) -> FieldScore:
    """Digit-string equality only: 100 or 0."""
    digits1 = normalize_phone(candidate)
    digits2 = normalize_phone(stored)

    if not digits1 and not digits2:
        return NEUTRAL
    if digits1 and digits1 == digits2:
        return _scored(100.0, PHONE, cutoff)
    return FieldScore(score=0.0)


DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def compare_date_of_birth(
    candidate: Optional[DateLike],
    stored: Optional[DateLike],
    cutoff: float = EXACT_CUTOFF,
) -> FieldScore:
    """
    Exact date scores 100. Same year only scores 50 and is reported as
    birth_year rather than a full date_of_birth match.
    """
    if candidate is None or stored is None:
        return NEUTRAL

    d1 = _as_date(candidate)
    d2 = _as_date(stored)

    if d1 == d2:
        return _scored(100.0, DATE_OF_BIRTH, cutoff)
    if d1.year == d2.year:
        return FieldScore(score=50.0, counted=True, label=BIRTH_YEAR)
    return FieldScore(score=0.0)


def parse_height_inches(height: Optional[str]) -> Optional[int]:
    """
    Parse a free-text height into inches.

    Returns None when the text matches none of the known encodings.

    Examples:
        >>> parse_height_inches("6'5\\"")
        77
        >>> parse_height_inches("77 inches")
        77
        >>> parse_height_inches("6-5")
        77
    """
    if not height:
        return None

    text = height.strip().lower()

    match = _HEIGHT_INCHES_RE.fullmatch(text)
    if match:
        return int(match.group(1))

    match = _HEIGHT_FEET_INCHES_RE.fullmatch(text)
    if match:
        return int(match.group(1)) * 12 + int(match.group(2) or 0)

    match = _HEIGHT_DASHED_RE.fullmatch(text)
    if match:
        return int(match.group(1)) * 12 + int(match.group(2))

    return None


def height_difference_score(diff: int) -> float:
    """Score an absolute difference in inches."""
    if diff == 0:
        return 100.0
    if diff == 1:
        return 95.0
    if diff <= 2:
        return 85.0
    return float(max(0, 100 - diff * 10))


def compare_height(
    candidate: Optional[str],
    stored: Optional[str],
    cutoff: float = TEXT_CUTOFF,
) -> FieldScore:
    """
    Compare heights by inch difference when both parse, otherwise fall
    back to comparing the raw text.
    """
    if not _present(candidate) and not _present(stored):
        return NEUTRAL
    if not _present(candidate) or not _present(stored):
        return FieldScore(score=0.0)

    inches1 = parse_height_inches(candidate)
    inches2 = parse_height_inches(stored)

    if inches1 is not None and inches2 is not None:
        return _scored(height_difference_score(abs(inches1 - inches2)), HEIGHT, cutoff)
    return _scored(compare(candidate, stored), HEIGHT, cutoff)


def compare_nationality(
    candidate: Optional[str],
    stored: Optional[str],
    cutoff: float = TEXT_CUTOFF,
) -> FieldScore:
    """String kernel comparison; neutral unless both sides are present."""
    if not _present(candidate) or not _present(stored):
        return NEUTRAL
    return _scored(compare(candidate, stored), NATIONALITY, cutoff)


def _first_name(candidate, stored, cutoff):
    return compare_name(candidate, stored, label=FIRST_NAME, cutoff=cutoff)


def _last_name(candidate, stored, cutoff):
    return compare_name(candidate, stored, label=LAST_NAME, cutoff=cutoff)


# Comparator per attribute, called as comparator(candidate_value, stored_value, cutoff)
FIELD_COMPARATORS: dict[str, Callable[..., FieldScore]] = {
    FIRST_NAME: _first_name,
    LAST_NAME: _last_name,
    DATE_OF_BIRTH: compare_date_of_birth,
    NATIONALITY: compare_nationality,
    HEIGHT: compare_height,
    EMAIL: compare_email,
    PHONE: compare_phone,
}
