import re

from parte.extraction.local.dates import find_dates
from parte.extraction.models import LocalParseResult
from parte.logging.logger import Log

# Czech: "Oznamujeme, že nás opustil pan" -> the name follows on the next lines.
HONORIFIC_LINE_RE = re.compile(r"\b(?:paní|panem|pan)\s*$", re.IGNORECASE)
# Polish: "śp. Jan Kowalski" on one line. Tesseract often reads "ś" as "§".
POLISH_MARKER_RE = re.compile(r"(?<!\w)(?:§p\.|śp\.|sp\.)\s+(.+)", re.IGNORECASE)
CAPITALIZED_LINE_RE = re.compile(r"^[A-ZČŘŠŽÝÁÍÉÚŮĎŤŇÓĚĻĶŅĢĄĆĘŁŃŚŹŻ]")
LOWERCASE_LINE_RE = re.compile(r"^[a-záčďéěíňóřšťúůýžąćęłńśźż]")
SECTION_HEADING_RE = re.compile(
    r"^(?:ROZLOUČENÍ|POHŘEB|SMUTEČNÍ|PARTE|KREMACE|OBŘAD)", re.IGNORECASE
)


class ParteTextParser:
    """Recovers name and dates from raw OCR text of a parte."""

    def parse(self, text: str) -> LocalParseResult:
        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line]

        full_name = self.find_name(lines)
        death_date, funeral_date = find_dates(" ".join(lines))

        if full_name is None:
            Log.warning("Could not extract name from OCR text", text=text[:500])
        return LocalParseResult(
            full_name=full_name,
            death_date=death_date,
            funeral_date=funeral_date,
            raw_text=text,
        )

    @staticmethod
    def find_name(lines: list[str]) -> str | None:
        """Polish inline marker wins; otherwise join the Czech name lines."""
        collecting = False
        name_parts: list[str] = []

        for index, line in enumerate(lines):
            if HONORIFIC_LINE_RE.search(line):
                collecting = True
                continue

            marker = POLISH_MARKER_RE.search(line)
            if marker:
                return marker.group(1).strip()

            if not collecting:
                continue
            if not CAPITALIZED_LINE_RE.match(line) or SECTION_HEADING_RE.match(line):
                break
            name_parts.append(line)
            is_last = index + 1 >= len(lines)
            if is_last or LOWERCASE_LINE_RE.match(lines[index + 1]):
                break

        return " ".join(name_parts) if name_parts else None
