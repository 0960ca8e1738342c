from __future__ import annotations

import os
from typing import Any, Dict, Optional

from libs.core import llm_provider, logging as core_logging, prompts
from libs.core.llm_provider import LLMConnectionError, LLMProvider, LLMUpstreamError

from .errors import ReviewError
from .fallback import no_credential_result, unavailable_result
from .validation import (
    ensure_review_result_shape,
    extract_json,
    parse_json_object,
    parse_review_request,
    review_result_errors,
)

ANALYSIS_FAILED = "Analysis failed"
LOGGER = core_logging.get_logger("review")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_optional_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def _resolve_timeout_s(value: str | None) -> float:
    parsed = _parse_optional_float(value)
    if parsed is None or parsed <= 0:
        return llm_provider.DEFAULT_TIMEOUT_S
    return parsed


def create_provider_from_env() -> Optional[LLMProvider]:
    return llm_provider.resolve_provider(
        api_key=os.getenv("GEMINI_API_KEY", ""),
        model=os.getenv("GEMINI_MODEL") or llm_provider.DEFAULT_GEMINI_MODEL,
        base_url=os.getenv("GEMINI_BASE_URL") or llm_provider.GEMINI_BASE_URL,
        timeout_s=_resolve_timeout_s(os.getenv("GEMINI_TIMEOUT_S")),
        json_mode=_parse_bool(os.getenv("GEMINI_JSON_MODE"), True),
    )


def fallback_on_failure_from_env() -> bool:
    return _parse_bool(os.getenv("REVIEW_FALLBACK_ON_FAILURE"), True)


def _provider_model(provider: Any) -> str:
    model = getattr(provider, "model", None)
    if isinstance(model, str) and model.strip():
        return model.strip()
    return ""


def review_resume(
    payload: Any,
    provider: Optional[LLMProvider],
    *,
    fallback_on_failure: bool = True,
) -> Dict[str, Any]:
    """Review resume text and return a ReviewResult payload.

    Raises ReviewError carrying the HTTP status the caller should answer with:
    422 for short or missing text, 502 for upstream or model-output problems,
    500 for transport failures when ``fallback_on_failure`` is disabled.
    """
    request = parse_review_request(payload)

    if provider is None:
        LOGGER.info("review_fallback_no_credential", text_length=len(request.text))
        return no_credential_result()

    model = _provider_model(provider)
    log = LOGGER.bind(model=model)
    prompt = prompts.resume_review_prompt(request.text, request.job, request.language)
    try:
        response = provider.generate(prompt)
    except LLMUpstreamError as exc:
        log.error(
            "review_upstream_error",
            upstream_status=exc.status_code,
            detail=exc.detail,
        )
        raise ReviewError(exc.detail, status_code=502) from exc
    except LLMConnectionError as exc:
        log.error(
            "review_provider_unreachable",
            detail=exc.detail,
            fallback=fallback_on_failure,
        )
        if fallback_on_failure:
            return unavailable_result()
        raise ReviewError(ANALYSIS_FAILED, status_code=500) from exc

    content = response.content or ""
    try:
        result = parse_json_object(extract_json(content))
    except ReviewError:
        log.error("review_non_json_output", output_snippet=content[:200])
        raise

    try:
        ensure_review_result_shape(result)
    except ReviewError:
        log.error("review_schema_mismatch", errors=review_result_errors(result))
        raise

    core_logging.log_event(
        log,
        "review_completed",
        {
            "text_length": len(request.text),
            "language": request.language,
            "overall_score": result.get("overallScore"),
        },
    )
    return result
