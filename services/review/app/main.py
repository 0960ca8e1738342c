from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from libs.core import logging as core_logging
from libs.core.models import ErrorResponse, ReviewResult
from services.review.review_core import (
    ANALYSIS_FAILED,
    ReviewError,
    create_provider_from_env,
    decode_request_body,
    fallback_on_failure_from_env,
    review_resume,
)


core_logging.configure_logging("review")
LOGGER = core_logging.get_logger("review")

_HTTP_ERROR_MESSAGES = {405: "Method not allowed"}

app = FastAPI(title="Resume Review Service")
app.state.review_provider = create_provider_from_env()
app.state.fallback_on_failure = fallback_on_failure_from_env()


def _error_response(error: ReviewError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content={"error": error.detail})


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = _HTTP_ERROR_MESSAGES.get(exc.status_code) or str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.get("/healthz")
def healthz(request: Request) -> dict:
    return {
        "status": "ok",
        "provider_configured": request.app.state.review_provider is not None,
    }


# Model output is relayed as-is, so the schemas below only document the contract.
@app.post(
    "/api/review",
    responses={
        200: {"model": ReviewResult},
        405: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def review_endpoint(request: Request) -> JSONResponse:
    request_id = core_logging.resolve_request_id(
        request.headers.get(core_logging.REQUEST_ID_HEADER)
    )
    with core_logging.bind_context(request_id=request_id, route="review"):
        response = await _review(request)
    response.headers[core_logging.REQUEST_ID_HEADER] = request_id
    return response


async def _review(request: Request) -> JSONResponse:
    payload = decode_request_body(await request.body())
    try:
        result = await run_in_threadpool(
            review_resume,
            payload,
            request.app.state.review_provider,
            fallback_on_failure=request.app.state.fallback_on_failure,
        )
        return JSONResponse(status_code=200, content=result)
    except ReviewError as exc:
        return _error_response(exc)
    except Exception:  # noqa: BLE001
        LOGGER.exception("review_failed")
        return _error_response(ReviewError(ANALYSIS_FAILED, status_code=500))
