from __future__ import annotations

import json
import re
from typing import Any, Dict

from jsonschema import Draft202012Validator

from libs.core.models import DEFAULT_LANGUAGE, MIN_TEXT_LENGTH, ReviewRequest

from .errors import ReviewError

TEXT_TOO_SHORT = f"Text is too short (min {MIN_TEXT_LENGTH} chars)"
NON_JSON_OUTPUT = "Model returned non-JSON"
SCHEMA_MISMATCH = "Model output did not match the expected schema"

REVIEW_RESULT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["overallScore", "sections", "bulletsRewrite", "checklist"],
    "properties": {
        "overallScore": {"type": "number"},
        "sections": {"type": "array"},
        "bulletsRewrite": {"type": "array"},
        "checklist": {"type": "array"},
    },
}

_REVIEW_RESULT_VALIDATOR = Draft202012Validator(REVIEW_RESULT_SCHEMA)
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def decode_request_body(body: bytes | str | None) -> Dict[str, Any]:
    """Leniently decode a request body; anything but a JSON object becomes {}."""
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _optional_str(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def parse_review_request(payload: Any) -> ReviewRequest:
    if not isinstance(payload, dict):
        payload = {}
    text = payload.get("text")
    if not isinstance(text, str) or len(text) < MIN_TEXT_LENGTH:
        raise ReviewError(TEXT_TOO_SHORT, status_code=422)
    return ReviewRequest(
        text=text,
        job=_optional_str(payload.get("job"), ""),
        language=_optional_str(payload.get("language"), DEFAULT_LANGUAGE),
    )


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def extract_json(text: str) -> str:
    """Return the first JSON object embedded in model output, or ""."""
    if not text:
        return ""
    stripped = strip_code_fences(text)
    start = stripped.find("{")
    if start == -1:
        return ""
    try:
        _, end = json.JSONDecoder().raw_decode(stripped, start)
    except json.JSONDecodeError:
        # Hand the widest candidate to the parser so the decode error surfaces there.
        end = stripped.rfind("}") + 1
        if end <= start:
            return ""
    return stripped[start:end]


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are not JSON and cannot be rendered back to the caller.
    raise ValueError(f"non-standard JSON constant: {token}")


def parse_json_object(json_text: str) -> Dict[str, Any]:
    if not json_text:
        raise ReviewError(NON_JSON_OUTPUT, status_code=502)
    try:
        payload = json.loads(json_text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ReviewError(NON_JSON_OUTPUT, status_code=502) from exc
    if not isinstance(payload, dict):
        raise ReviewError(NON_JSON_OUTPUT, status_code=502)
    return payload


def review_result_errors(payload: Any) -> list[str]:
    errors = sorted(_REVIEW_RESULT_VALIDATOR.iter_errors(payload), key=lambda err: list(err.path))
    return [f"{'/'.join(map(str, err.path)) or '<root>'}: {err.message}" for err in errors[:5]]


def ensure_review_result_shape(payload: Any) -> None:
    if review_result_errors(payload):
        raise ReviewError(SCHEMA_MISMATCH, status_code=502)
