"""Death and funeral date heuristics over OCR text (Czech and Polish).

All finders return ISO ``YYYY-MM-DD`` strings or None.
"""

import re
from collections.abc import Callable
from datetime import date

from parte.logging.logger import Log

CZECH_MONTHS: dict[str, int] = {
    "ledna": 1,
    "února": 2,
    "března": 3,
    "dubna": 4,
    "května": 5,
    "června": 6,
    "července": 7,
    "srpna": 8,
    "září": 9,
    "října": 10,
    "listopadu": 11,
    "prosince": 12,
}

POLISH_MONTHS: dict[str, int] = {
    "stycznia": 1,
    "lutego": 2,
    "marca": 3,
    "kwietnia": 4,
    "maja": 5,
    "czerwca": 6,
    "lipca": 7,
    "sierpnia": 8,
    "września": 9,
    "października": 10,
    "listopada": 11,
    "grudnia": 12,
}

_CZ_MONTH = "(" + "|".join(CZECH_MONTHS) + ")"
_PL_MONTH = "(" + "|".join(POLISH_MONTHS) + ")"
_NUMERIC = r"(\d{1,2})\.\s*(\d{1,2})\.\s*(\d{4})"

# Includes common Tesseract misreads of "zemřel" (rn for m, f for ř).
_DEATH_WORD = (
    r"(?:ze(?:m|rn)[řrf]el[a]?|zesnul[a]?|skonal[a]?|odešel|odešla"
    r"|zmarł[a]?|zmarl[a]?|odszedł|odeszła|zasnął|zasnęła)"
)
_PL_DEATH_WORD = r"(?:zmarł[a]?|zmarl[a]?|odszedł|odeszła|zasnął|zasnęła)"
_WEEKDAY = (
    r"(?:pondělí|úterý|středu|čtvrtek|pátek|sobotu|neděli"
    r"|poniedziałek|wtorek|środę|czwartek|piątek|sobotę|niedzielę)"
)
_FUNERAL_WORD = r"(?:pohřeb|pohřbu|rozloučení|rozloučíme|pogrzeb|pożegnanie|msza\s+święta)"

CZECH_MONTH_DATE_RE = re.compile(rf"(\d{{1,2}})\.\s*{_CZ_MONTH}\s+(\d{{4}})", re.IGNORECASE)
POLISH_DATE_THEN_KEYWORD_RE = re.compile(
    rf"dnia\s+(\d{{1,2}})\s+{_PL_MONTH}\s+(\d{{4}})(?:\s*r(?:oku|\.)?)?[^.]{{0,60}}?{_PL_DEATH_WORD}",
    re.IGNORECASE,
)
POLISH_KEYWORD_THEN_DATE_RE = re.compile(
    rf"{_PL_DEATH_WORD}[^.]{{0,60}}?dnia\s+(\d{{1,2}})\s+{_PL_MONTH}\s+(\d{{4}})",
    re.IGNORECASE,
)
KEYWORD_THEN_NUMERIC_RE = re.compile(
    rf"(?:(?:{_DEATH_WORD}|data\s+śmierci)[:\s]+(?:(?:dne|dnia|w|v)\s+)?"
    rf"(?:{_WEEKDAY},?\s+)?(?:(?:dne|dnia)\s+)?|†\s*){_NUMERIC}",
    re.IGNORECASE,
)
NUMERIC_THEN_KEYWORD_RE = re.compile(
    rf"{_NUMERIC}\s*(?:r\.\s*|roku\s+)?{_DEATH_WORD}", re.IGNORECASE
)
FUNERAL_NUMERIC_RE = re.compile(rf"{_FUNERAL_WORD}[^\d]{{0,80}}?{_NUMERIC}", re.IGNORECASE)
FUNERAL_POLISH_MONTH_RE = re.compile(
    rf"{_FUNERAL_WORD}[^\d]{{0,80}}?(\d{{1,2}})\s+{_PL_MONTH}\s+(\d{{4}})", re.IGNORECASE
)
BARE_NUMERIC_RE = re.compile(_NUMERIC)


def to_iso(year: int, month: int, day: int) -> str | None:
    """Build an ISO date string, or None for impossible dates."""
    try:
        return date(year, month, day).isoformat()
    except ValueError as exc:
        Log.warning(f"Failed to parse date {day}.{month}.{year}: {exc}")
        return None


def _numeric(match: re.Match[str]) -> str | None:
    day, month, year = match.groups()[-3:]
    return to_iso(int(year), int(month), int(day))


def _month_name(months: dict[str, int]) -> Callable[[re.Match[str]], str | None]:
    def convert(match: re.Match[str]) -> str | None:
        day, month_name, year = match.groups()[-3:]
        month = months.get(month_name.lower())
        if month is None:
            return None
        return to_iso(int(year), month, int(day))

    return convert


_Rule = tuple[re.Pattern[str], Callable[[re.Match[str]], str | None]]

DEATH_DATE_RULES: tuple[_Rule, ...] = (
    (CZECH_MONTH_DATE_RE, _month_name(CZECH_MONTHS)),
    (POLISH_DATE_THEN_KEYWORD_RE, _month_name(POLISH_MONTHS)),
    (POLISH_KEYWORD_THEN_DATE_RE, _month_name(POLISH_MONTHS)),
    (KEYWORD_THEN_NUMERIC_RE, _numeric),
    (NUMERIC_THEN_KEYWORD_RE, _numeric),
)

FUNERAL_DATE_RULES: tuple[_Rule, ...] = (
    (FUNERAL_NUMERIC_RE, _numeric),
    (FUNERAL_POLISH_MONTH_RE, _month_name(POLISH_MONTHS)),
)


def _first_match(text: str, rules: tuple[_Rule, ...]) -> str | None:
    for pattern, convert in rules:
        for match in pattern.finditer(text):
            found = convert(match)
            if found is not None:
                return found
    return None


def find_death_date(text: str) -> str | None:
    """Keyword- or month-anchored death date; earlier rules win."""
    return _first_match(text, DEATH_DATE_RULES)


def find_funeral_date(text: str) -> str | None:
    return _first_match(text, FUNERAL_DATE_RULES)


def all_numeric_dates(text: str) -> list[str]:
    """Every valid ``D.M.YYYY`` date in order of appearance."""
    dates = []
    for match in BARE_NUMERIC_RE.finditer(text):
        found = _numeric(match)
        if found is not None:
            dates.append(found)
    return dates


def find_dates(text: str) -> tuple[str | None, str | None]:
    """Return ``(death_date, funeral_date)``.

    When no anchored pattern hits at all, bare dates are used by position:
    two or more mean death then funeral, a single one is the funeral.
    """
    death_date = find_death_date(text)
    funeral_date = find_funeral_date(text)
    if death_date or funeral_date:
        return death_date, funeral_date

    bare = all_numeric_dates(text)
    if len(bare) >= 2:
        return bare[0], bare[1]
    if len(bare) == 1:
        return None, bare[0]
    return None, None
