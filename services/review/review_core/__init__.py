from .errors import ReviewError
from .service import (
    ANALYSIS_FAILED,
    create_provider_from_env,
    fallback_on_failure_from_env,
    review_resume,
)
from .validation import decode_request_body

__all__ = [
    "ANALYSIS_FAILED",
    "ReviewError",
    "create_provider_from_env",
    "decode_request_body",
    "fallback_on_failure_from_env",
    "review_resume",
]
