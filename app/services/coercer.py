import json
import re
from typing import Any

# Greedy: first "{" through the last "}" in the text, not a balanced parse.
_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON and cannot be sent back to the caller.
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_strict_json(text: str) -> Any:
    """``json.loads`` without the non-standard constants.

    Raises ValueError or RecursionError (for pathologically nested input).
    """
    return json.loads(text, parse_constant=reject_constant)


def coerce_output(text: str) -> Any:
    """Best-effort JSON extraction from model text. Never raises."""
    raw = text if isinstance(text, str) else str(text or "")
    match = _JSON_SPAN.search(raw)
    if match:
        try:
            return parse_strict_json(match.group(0))
        except (ValueError, RecursionError):
            pass
    return {"response": raw}
