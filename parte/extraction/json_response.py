import json
import re
from typing import Any

from parte.extraction.exceptions import ProviderResponseError


_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def strip_code_fence(raw: str) -> str:
    """Return the body of the first markdown code fence (```json ... ```), if any."""
    match = _CODE_FENCE.search(raw)
    if match is not None:
        return match.group(1).strip()
    return raw.strip()


def parse_json_object(raw: str) -> dict[str, Any] | None:
    """Best-effort decode of a provider reply into a JSON object.

    Tries the fence-stripped text first, then the outermost ``{...}`` span.
    """
    cleaned = strip_code_fence(raw)
    candidates = [cleaned]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end:
        candidates.append(cleaned[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def parse_required(
    raw: str, required_field: str, error_message: str, *, non_empty: bool = False
) -> dict[str, Any]:
    """Decode a reply and insist on the task's discriminator field.

    Raises:
        ProviderResponseError: when the JSON is invalid or the field is absent.
            With ``non_empty`` a falsy value counts as absent.
    """
    parsed = parse_json_object(raw)
    if parsed is None or required_field not in parsed:
        raise ProviderResponseError(error_message)
    if non_empty and not parsed[required_field]:
        raise ProviderResponseError(error_message)
    return parsed
