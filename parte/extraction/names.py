"""Deceased-name cleanup and known-name integrity enforcement."""

from typing import ClassVar

import icu  # type: ignore[import-untyped]

from parte.logging.logger import Log

DECEASED_PREFIXES: tuple[str, ...] = ("śp. ", "sp. ", "ś.p. ", "Śp. ", "Sp. ", "Ś.p. ")


def clean_full_name(name: str) -> str:
    """Strip one leading "the late" marker (Polish ``śp.`` and variants) and trim."""
    for prefix in DECEASED_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):].strip()
    return name.strip()


class NameGuard:
    """Keeps an already verified name from being "corrected" by a provider.

    The ICU transform folds diacritics so that the log can say whether a
    provider only dropped accents (``Dvořák`` -> ``Dvorak``).
    """

    _ICU_TRANSFORM: ClassVar[str] = "Any-Latin; Latin-ASCII"

    def __init__(self) -> None:
        self._transliterator: icu.Transliterator = icu.Transliterator.createInstance(
            self._ICU_TRANSFORM
        )

    def enforce(self, extracted: str | None, known: str | None) -> str | None:
        """Return the known name whenever it is set and differs from ``extracted``."""
        if not known:
            return extracted
        if extracted == known:
            return extracted
        Log.warning(
            "Provider changed a verified name, restoring the known name",
            known=known,
            extracted=extracted,
            difference=self.describe_difference(extracted or "", known),
        )
        return known

    def describe_difference(self, extracted: str, known: str) -> str:
        if extracted.lower() == known.lower():
            return "case-only"
        if self.fold(extracted) == self.fold(known):
            return "diacritics-only"
        return f"length-delta={len(extracted) - len(known)}"

    def fold(self, value: str) -> str:
        return self._transliterator.transliterate(value)
