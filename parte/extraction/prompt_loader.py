from pathlib import Path

from parte.extraction.exceptions import ExtractionError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"

TEXT_EXTRACTION_PROMPT = "text_extraction.txt"
PHOTO_DETECTION_PROMPT = "photo_detection.txt"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt template by file name.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load prompt template {name}: {exc}") from exc


def render_text_prompt(template: str, known_name: str | None) -> str:
    """Fill the known-name hint into the text extraction template."""
    if known_name:
        hint = (
            f'The deceased\'s name has already been verified as "{known_name}". '
            "Return it exactly as written, including diacritics."
        )
    else:
        hint = "The deceased's name is not known yet; read it from the image."
    return template.replace("{known_name_hint}", hint)
