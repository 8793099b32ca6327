"""Pattern-based fact recognizers for offer copy.

Each recognizer is a small pure function over text with an explicit list of
patterns. Recognizers never raise: text that does not parse yields None
(or False for the restriction flag). This is a drift guard, not a general
date or number parser.
"""

import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

from pydantic import ValidationError

from regenlock.models.locked_facts import DateFact, LockedFacts, NumericFact
from regenlock.models.version_set import ContentItem


_NUMBER = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?"


@dataclass(frozen=True)
class NumericPattern:
    kind: str
    regex: Pattern[str]


# Priority order: percentages win over currency amounts.
NUMERIC_PATTERNS = (
    NumericPattern(
        "percent",
        re.compile(rf"(?<![\d.,$])({_NUMBER})\s*(?:%|percent\b)", re.IGNORECASE),
    ),
    NumericPattern(
        "currency",
        re.compile(rf"\$\s?({_NUMBER})"),
    ),
)


_AUDIENCE = r"(?:customers?|clients?|patients?|members?|guests?|visitors?)"

# Longest phrasings first so removal takes the whole phrase.
RESTRICTION_PATTERNS = (
    re.compile(
        rf"\b(?:valid\s+|available\s+|offer\s+)?(?:only\s+)?for\s+(?:new|first[-\s]time)\s+{_AUDIENCE}(?:\s+only)?\b",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\b(?:limited|exclusive|restricted)\s+to\s+(?:new|first[-\s]time)\s+{_AUDIENCE}\b",
        re.IGNORECASE,
    ),
    re.compile(rf"\b(?:new|first[-\s]time)\s+{_AUDIENCE}\s+only\b", re.IGNORECASE),
    re.compile(rf"\bfirst[-\s]time\s+{_AUDIENCE}\b", re.IGNORECASE),
)


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_MONTH_LOOKUP = {name[:3].lower(): i + 1 for i, name in enumerate(MONTH_NAMES)}

_MONTH_TOKEN = (
    r"Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|"
    r"Aug(?:ust)?|Sept?(?:ember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?"
)


@dataclass(frozen=True)
class DatePattern:
    family: str
    regex: Pattern[str]


DATE_PATTERNS = (
    DatePattern(
        "month_name",
        re.compile(
            rf"\b(?P<month>{_MONTH_TOKEN})\.?\s+(?P<day>\d{{1,2}})(?:st|nd|rd|th)?\b"
            rf"(?:,?\s+(?P<year>\d{{4}})\b)?",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        "slash",
        re.compile(
            r"\b(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{4}|\d{2}))?\b"
            r"(?!\s*(?:off|price|priced)\b)",
            re.IGNORECASE,
        ),
    ),
    DatePattern(
        "iso",
        re.compile(r"\b(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})\b"),
    ),
)


@dataclass(frozen=True)
class DateMatch:
    """A recognized date plus where it sits and how it was written."""

    start: int
    end: int
    fact: DateFact
    year_digits: int = 0
    abbreviated: bool = False


def _parse_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def extract_numeric(text: str) -> Optional[NumericFact]:
    """
    Find the offer value in text.

    Percentages are checked first, then currency amounts. Only the first
    match of the winning pattern is authoritative.

    Args:
        text: Free text to scan

    Returns:
        NumericFact, or None when no value is stated

    Example:
        >>> extract_numeric("Save 15% or $10 today")
        NumericFact(value=15.0, kind='percent')
    """
    if not text:
        return None
    for pattern in NUMERIC_PATTERNS:
        match = pattern.regex.search(text)
        if match:
            try:
                return NumericFact(value=_parse_number(match.group(1)), kind=pattern.kind)
            except (ValueError, ValidationError):
                continue
    return None


def render_numeric(fact: NumericFact) -> str:
    """Render a numeric fact the way offer copy writes it ('20%', '$1,000', '$9.50')."""
    value = fact.value
    if fact.kind == "percent":
        number = str(int(value)) if value.is_integer() else f"{value:f}".rstrip("0").rstrip(".")
        return f"{number}%"
    number = f"{int(value):,}" if value.is_integer() else f"{value:,.2f}"
    return f"${number}"


def numeric_matches(left: NumericFact, right: NumericFact) -> bool:
    """Same unit kind and same amount."""
    return left.kind == right.kind and math.isclose(left.value, right.value)


def replace_numeric(text: str, replacement: str) -> str:
    """Replace every percentage and currency amount in text."""
    for pattern in NUMERIC_PATTERNS:
        text = pattern.regex.sub(lambda _m: replacement, text)
    return text


def extract_restriction(text: str) -> bool:
    """True when text restates an audience restriction such as 'new customers only'."""
    if not text:
        return False
    return any(pattern.search(text) for pattern in RESTRICTION_PATTERNS)


def remove_restriction(text: str) -> str:
    """Remove restriction phrases and tidy the whitespace/punctuation left behind."""
    capitalized = bool(text[:1]) and text[:1].isupper()
    for pattern in RESTRICTION_PATTERNS:
        text = pattern.sub("", text)

    text = re.sub(r"\(\s*\)", "", text)
    # "Save 20%. New customers only." leaves an orphaned terminator
    text = re.sub(r"([.!?])\s+[.!?]", r"\1", text)
    text = re.sub(r"\s+([,.;:!?])", r"\1", text)
    text = re.sub(r"([,;:])\s*([,.;:!?])", r"\2", text)
    text = re.sub(r"\s*[-–—]\s*(?=[.!?]|$)", "", text)
    text = re.sub(r"^[\s,;:\-–—]+", "", text)
    text = re.sub(r"[ \t]{2,}", " ", text).strip()

    if capitalized and text[:1].islower():
        text = text[:1].upper() + text[1:]
    return text


def _build_date(pattern: DatePattern, match: re.Match) -> Optional[DateMatch]:
    raw_month = match.group("month")
    raw_year = match.group("year")
    abbreviated = False

    if pattern.family == "month_name":
        month = _MONTH_LOOKUP.get(raw_month[:3].lower())
        abbreviated = len(raw_month) <= 4 and raw_month.lower() not in ("june", "july")
    else:
        month = int(raw_month)

    year = None
    if raw_year:
        year = int(raw_year)
        if len(raw_year) == 2:
            year += 2000

    try:
        fact = DateFact(
            month=month,
            day=int(match.group("day")),
            year=year,
            family=pattern.family,
            text=match.group(0),
        )
    except (TypeError, ValueError, ValidationError):
        return None

    return DateMatch(
        start=match.start(),
        end=match.end(),
        fact=fact,
        year_digits=len(raw_year) if raw_year else 0,
        abbreviated=abbreviated,
    )


def find_dates(text: str) -> List[DateMatch]:
    """
    Find every recognized date in text, ordered by position.

    Matches that are not real calendar dates (13/40, Feb 30) are skipped.
    """
    if not text:
        return []

    found: List[DateMatch] = []
    for pattern in DATE_PATTERNS:
        for match in pattern.regex.finditer(text):
            date_match = _build_date(pattern, match)
            if date_match is None:
                continue
            overlaps = any(
                date_match.start < other.end and other.start < date_match.end
                for other in found
            )
            if not overlaps:
                found.append(date_match)

    return sorted(found, key=lambda m: m.start)


def extract_date(text: str) -> Optional[DateFact]:
    """Return the first recognized date in text, whichever pattern matched it."""
    matches = find_dates(text)
    return matches[0].fact if matches else None


def render_date(fact: DateFact, family: str, year_digits: int = 4, abbreviated: bool = False) -> str:
    """
    Render a date in a given pattern family.

    The year is written only when the template had one (year_digits > 0)
    and the fact knows it.

    Args:
        fact: Date to render
        family: "month_name", "slash" or "iso"
        year_digits: 0 (no year), 2 or 4, copied from the text being rewritten
        abbreviated: Use a three-letter month name

    Returns:
        Rendered date string
    """
    with_year = year_digits > 0 and fact.year is not None

    if family == "iso" and fact.year is not None:
        return f"{fact.year:04d}-{fact.month:02d}-{fact.day:02d}"

    if family == "slash":
        rendered = f"{fact.month}/{fact.day}"
        if with_year:
            rendered += f"/{fact.year % 100:02d}" if year_digits == 2 else f"/{fact.year}"
        return rendered

    name = MONTH_NAMES[fact.month - 1]
    if abbreviated:
        name = name[:3]
    rendered = f"{name} {fact.day}"
    if with_year:
        rendered += f", {fact.year}"
    return rendered


def replace_dates(text: str, fact: DateFact) -> str:
    """Rewrite every recognized date in text to `fact`, keeping each match's family."""
    for match in reversed(find_dates(text)):
        rendered = render_date(fact, match.fact.family, match.year_digits, match.abbreviated)
        text = text[:match.start] + rendered + text[match.end:]
    return text


def contains_cta(text: str, cta: str) -> bool:
    """Case-insensitive containment check for a locked call-to-action."""
    if not cta:
        return True
    return cta.casefold() in (text or "").casefold()


def extract_locked_facts(items: Iterable[ContentItem], cta_keys: Iterable[str] = ()) -> LockedFacts:
    """
    Capture locked facts from the effective content of a version.

    Scans items in display order: the first stated value and first date win,
    and the CTA is the effective text of the first non-blank CTA-bearing item.
    The restriction is locked on if any item states one and locked off when
    there is copy but none of it does, so a restriction the user edited out
    stays out.

    Args:
        items: Content items (effective values are used, so user edits count)
        cta_keys: Slot keys that carry a call-to-action

    Returns:
        LockedFacts; value, date and CTA slots with nothing found stay unset
    """
    cta_keys = set(cta_keys)
    numeric = None
    expiration = None
    restriction = None
    cta = None

    for item in items:
        text = item.effective
        if text.strip() and restriction is None:
            restriction = False
        if numeric is None:
            numeric = extract_numeric(text)
        if expiration is None:
            expiration = extract_date(text)
        if extract_restriction(text):
            restriction = True
        if cta is None and item.slot in cta_keys and text.strip():
            cta = text.strip()

    return LockedFacts(numeric=numeric, restriction=restriction, expiration=expiration, cta=cta)
