import json
from typing import Any

from .result import Error, Ok, Result


def _parse_json_safely(json_str: str) -> Result[Any, str]:
    """
    Safely parse JSON string, returning Result instead of raising.

    Args:
        json_str: JSON string to parse

    Returns:
        Ok(value) if parsing succeeds, Error(str) if parsing fails
    """
    try:  # nosemgrep: forbid-try-except
        return Ok(json.loads(json_str))
    except json.JSONDecodeError as e:
        return Error(f"JSON decode error: {e!s}")


def _parse_json_object(json_str: str | None) -> Result[dict[str, Any] | None, str]:
    """
    Parse a JSON object (tool call arguments). Empty input means "no arguments".

    Args:
        json_str: JSON text, possibly empty or None

    Returns:
        Ok(dict) or Ok(None) for empty input, Error(str) for invalid JSON or non-objects
    """
    if json_str is None or not json_str.strip():
        return Ok(None)

    match _parse_json_safely(json_str):
        case Ok(dict() as parsed):
            return Ok(parsed)
        case Ok(other):
            return Error(f"Expected JSON object, got {type(other).__name__}")
        case Error(message):
            return Error(message)


def _to_json_text(value: Any) -> str:
    """
    Serialize a value for the wire. Strings pass through unchanged.

    Pydantic models are dumped in JSON mode; anything else json.dumps can't
    handle falls back to str().
    """
    if isinstance(value, str):
        return value
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    return json.dumps(value, default=str)
