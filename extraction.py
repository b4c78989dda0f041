import json
import logging
import re
from typing import Any, Dict, Optional

from errors import ExtractionError

FENCE_MARKERS = re.compile(r"```(?:json)?")


def _payload_pattern(anchor: Optional[str]) -> "re.Pattern[str]":
    # A ```json fence, or the widest {...} span (containing the anchor key when given).
    if anchor:
        brace_span = r"\{[\s\S]*" + re.escape(f'"{anchor}"') + r"[\s\S]*\}"
    else:
        brace_span = r"\{[\s\S]*\}"
    return re.compile(r"```json[\s\S]*?```|" + brace_span)


def extract(raw_text: str, anchor: Optional[str] = None) -> Dict[str, Any]:
    """
    Finds the JSON object embedded in free-form model output and parses it.

    The model is asked for bare JSON but often wraps it in prose or markdown
    fences. The first candidate found scanning left to right wins; there is no
    attempt to pick a better one among several.

    Args:
        raw_text: Complete text returned by the model.
        anchor: Key the payload must mention (e.g. "slides"). None accepts any object.

    Returns:
        The parsed JSON object.

    Raises:
        ExtractionError: No JSON-shaped span was found, it failed to parse,
            or it did not decode to an object.
    """
    if not raw_text:
        raise ExtractionError("Model response was empty")

    match = _payload_pattern(anchor).search(raw_text)
    if not match:
        raise ExtractionError("Model response did not include JSON")

    candidate = FENCE_MARKERS.sub("", match.group(0)).strip()
    logging.debug(f"Extracted JSON candidate: {candidate}")

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model response contained malformed JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise ExtractionError("Model response JSON was not an object")
    return parsed
