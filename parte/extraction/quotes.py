"""Split a leading motto/verse off an announcement when the provider did not.

Parte announcements typically open with a short quotation, optionally signed
by its author and a Bible reference, followed by a fixed opener phrase such as
"S hlubokým zármutkem oznamujeme" or "Z głębokim żalem zawiadamiamy".
"""

import re

MIN_QUOTE_LENGTH = 20
MAX_QUOTE_LENGTH = 600

_UPPER = "A-ZÁČĎÉĚÍŇÓŘŠŤÚŮÝŽĄĆĘŁŃŚŹŻ"
_LOWER = "a-záčďéěíňóřšťúůýžąćęłńśźż"
_NAME = rf"[{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)?"

ANNOUNCEMENT_OPENERS: tuple[str, ...] = (
    # Czech
    "S hlubokým zármutkem",
    "S hlubokou bolestí",
    "S bolestí v srdci",
    "S velkou bolestí",
    "S velkým zármutkem",
    "Se zármutkem",
    "Se smutkem",
    "V hlubokém zármutku",
    "Smutnou zprávu",
    "Oznamujeme",
    "Sdělujeme",
    "Opustil nás",
    "Opustila nás",
    "Odešel",
    "Odešla",
    "Zemřel",
    "Zemřela",
    "Náhle",
    "Tiše",
    "Dne",
    # Polish
    "Z głębokim smutkiem",
    "Z głębokim żalem",
    "Z wielkim smutkiem",
    "Z wielkim żalem",
    "Z ogromnym smutkiem",
    "Z ogromnym żalem",
    "Z żalem",
    "Z bólem",
    "Ze smutkiem",
    "Pogrążeni w smutku",
    "Pogrążeni w żałobie",
    "Zawiadamiamy",
    "Odszedł",
    "Odeszła",
    "Zmarł",
    "Zmarła",
    "W dniu",
    "Dnia",
)

_OPENER = "(?:" + "|".join(re.escape(o) for o in ANNOUNCEMENT_OPENERS) + r")\b"
_BODY = r"(?P<quote>.+?(?:\.\.\.|[.!?…])[\"'”“„«»]?"
_ATTRIBUTION = rf"(?:[-–—]\s*)?(?:ks\.\s+)?(?:{_NAME}\s+{_NAME}|[{_UPPER}]\.\s*{_NAME})"
_VERSE = rf"\(?(?:[1-3]\s?)?[{_UPPER}][{_LOWER}]{{0,5}}\.?\s?\d{{1,3}}[,:]\s?\d{{1,3}}(?:[-–]\d{{1,3}})?\)?"
_REST = rf"\s+(?P<rest>{_OPENER}.*)$"

# Most specific shape first: a quote followed by its author and a verse.
QUOTE_BOUNDARY_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.DOTALL)
    for pattern in (
        rf"^{_BODY}\s+{_ATTRIBUTION}\s+{_VERSE})" + _REST,
        rf"^{_BODY}\s+{_ATTRIBUTION})" + _REST,
        rf"^{_BODY}\s+{_VERSE})" + _REST,
        rf"^{_BODY})" + _REST,
    )
)


def split_opening_quote(text: str) -> tuple[str, str] | None:
    """Return ``(opening_quote, remainder)`` or None when no boundary is found."""
    for pattern in QUOTE_BOUNDARY_PATTERNS:
        match = pattern.match(text)
        if match is None:
            continue
        quote = match.group("quote").strip()
        if not MIN_QUOTE_LENGTH <= len(quote) <= MAX_QUOTE_LENGTH:
            continue
        return quote, match.group("rest").strip()
    return None
