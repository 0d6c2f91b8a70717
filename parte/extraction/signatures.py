"""Remove funeral-company boilerplate that trails the family signature.

Scanned partes usually end with "Zarmoucená rodina" (or the Polish
"Zasmucona rodzina") followed by the funeral home's name, legal form, address
and phone numbers. The family phrase stays, everything after it goes.
"""

import re

FAMILY_SIGNATURES: tuple[str, ...] = (
    "Zarmoucená rodina",
    "Zarmoucené rodiny",
    "Truchlící rodina",
    "Za zarmoucenou rodinu",
    "Rodina zesnulého",
    "Rodina zesnulé",
    "Zasmucona rodzina",
    "Pogrążona w smutku rodzina",
    "Pogrążona w żałobie rodzina",
    "Pogrążeni w smutku",
    "Rodzina zmarłego",
    "Rodzina zmarłej",
)

_SIGNATURE = "(?P<signature>" + "|".join(re.escape(s) for s in FAMILY_SIGNATURES) + ")"
_LEGAL_FORM = r"(?:s\.\s?r\.\s?o\.|spol\.\s?s\s?r\.\s?o\.|a\.\s?s\.|v\.\s?o\.\s?s\.|sp\.\s?z\s?o\.\s?o\.|s\.\s?c\.)"
_COMPANY_WORDS = r"(?:Pohřební\s+služba|Pohřebnictví|Pohřební\s+ústav|Kamenictví|Zakład\s+pogrzebowy|Usługi\s+pogrzebowe|Dom\s+pogrzebowy)"
_CONTACT = r"(?:tel\.|tel:|telefon|mob\.|mobil|mobile|e-mail|email|www\.|ul\.|ulice)"
_PHONE = r"\+?\d{3}\s?\d{3}\s?\d{3}"
_LEAD = r"[.,;:!]?\s+"

# Applied in order; each only fires on its own footer shape.
FOOTER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE | re.DOTALL)
    for pattern in (
        rf"{_SIGNATURE}{_LEAD}[^\s,]+(?:\s+[^\s,]+){{0,4}},?\s*{_LEGAL_FORM}.*$",
        rf"{_SIGNATURE}{_LEAD}{_COMPANY_WORDS}.*$",
        rf"{_SIGNATURE}{_LEAD}(?:[^\s,]+[\s,]+){{0,5}}{_CONTACT}.*$",
        rf"{_SIGNATURE}{_LEAD}(?:[^\s]+\s+){{0,6}}{_PHONE}.*$",
    )
)


def strip_business_footer(text: str) -> str:
    """Drop funeral-home contact details after the family signature."""
    for pattern in FOOTER_PATTERNS:
        text = pattern.sub(lambda match: match.group("signature"), text)
    return text.strip()
