from __future__ import annotations

import json
import os

import pytest
from fastapi.testclient import TestClient

os.environ.pop("GEMINI_API_KEY", None)

from libs.core.llm_provider import LLMConnectionError, LLMUpstreamError  # noqa: E402
from services.review.app import main  # noqa: E402
from services.review.review_core.fallback import no_credential_result, unavailable_result  # noqa: E402

client = TestClient(main.app)

RESUME_TEXT = "Built and operated payment services handling 2M requests per day. " * 4


class _FakeLLMResponse:
    def __init__(self, content: str) -> None:
        self.content = content


class _FakeProvider:
    model = "fake-model"

    def __init__(self, output: object) -> None:
        self._output = output
        self.calls = 0

    def generate(self, _prompt: str) -> _FakeLLMResponse:
        self.calls += 1
        if isinstance(self._output, Exception):
            raise self._output
        return _FakeLLMResponse(str(self._output))


@pytest.fixture
def use_provider(monkeypatch):
    def _install(provider, fallback_on_failure: bool = True):
        monkeypatch.setattr(main.app.state, "review_provider", provider)
        monkeypatch.setattr(main.app.state, "fallback_on_failure", fallback_on_failure)
        return provider

    return _install


def _review_result() -> dict:
    return {
        "overallScore": 8,
        "sections": [{"key": "experience", "score": 9, "feedback": "Great metrics."}],
        "bulletsRewrite": ["Scaled payment services to 2M requests/day with 99.99% uptime."],
        "checklist": ["Move skills above education."],
    }


@pytest.mark.parametrize("method", ["get", "put", "delete", "patch"])
def test_non_post_methods_are_rejected(method):
    response = client.request(method.upper(), "/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


def test_short_text_is_rejected():
    response = client.post("/api/review", json={"text": "short"})
    assert response.status_code == 422
    assert response.json() == {"error": "Text is too short (min 200 chars)"}


def test_malformed_body_is_treated_as_empty():
    response = client.post(
        "/api/review", content=b"{oops", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 422
    assert response.json() == {"error": "Text is too short (min 200 chars)"}


def test_missing_credential_returns_fixed_fallback(use_provider):
    use_provider(None)
    for body in ({"text": RESUME_TEXT}, {"text": "q" * 900, "job": "Nurse", "language": "es"}):
        response = client.post("/api/review", json=body)
        assert response.status_code == 200
        assert response.json() == no_credential_result()


def test_fenced_model_output_is_relayed_unchanged(use_provider):
    expected = _review_result()
    provider = use_provider(_FakeProvider(f"```json\n{json.dumps(expected)}\n```"))

    response = client.post("/api/review", json={"text": RESUME_TEXT, "job": "SRE"})

    assert response.status_code == 200
    assert response.json() == expected
    assert provider.calls == 1


def test_upstream_http_error_returns_502(use_provider):
    use_provider(_FakeProvider(LLMUpstreamError("Quota exceeded.", status_code=429)))
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 502
    assert response.json() == {"error": "Quota exceeded."}


def test_unreachable_provider_returns_unavailable_fallback(use_provider):
    use_provider(_FakeProvider(LLMConnectionError("timed out")))
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 200
    assert response.json() == unavailable_result()


def test_unreachable_provider_returns_500_when_fallback_disabled(use_provider):
    use_provider(_FakeProvider(LLMConnectionError("timed out")), fallback_on_failure=False)
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 500
    assert response.json() == {"error": "Analysis failed"}


def test_non_json_model_output_returns_502(use_provider):
    use_provider(_FakeProvider("Sorry, I can only answer in prose."))
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 502
    assert response.json() == {"error": "Model returned non-JSON"}


def test_model_output_without_sections_array_returns_502(use_provider):
    payload = _review_result()
    payload["sections"] = None
    use_provider(_FakeProvider(json.dumps(payload)))
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 502
    assert response.json() == {"error": "Model output did not match the expected schema"}


def test_unexpected_failure_returns_500(use_provider):
    use_provider(_FakeProvider(RuntimeError("boom")))
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 500
    assert response.json() == {"error": "Analysis failed"}


def test_unknown_route_uses_error_body():
    response = client.get("/api/unknown")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_healthz_reports_provider_state(use_provider):
    use_provider(None)
    assert client.get("/healthz").json() == {"status": "ok", "provider_configured": False}
    use_provider(_FakeProvider("{}"))
    assert client.get("/healthz").json() == {"status": "ok", "provider_configured": True}


@pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
def test_non_standard_numbers_in_model_output_return_502(use_provider, token):
    output = f'{{"overallScore": {token}, "sections": [], "bulletsRewrite": [], "checklist": []}}'
    use_provider(_FakeProvider(output))
    response = client.post("/api/review", json={"text": RESUME_TEXT})
    assert response.status_code == 502
    assert response.json() == {"error": "Model returned non-JSON"}


def test_review_echoes_caller_request_id(use_provider):
    use_provider(None)
    response = client.post(
        "/api/review", json={"text": RESUME_TEXT}, headers={"X-Request-ID": "req-123"}
    )
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


def test_review_mints_request_id_for_errors(use_provider):
    use_provider(None)
    response = client.post("/api/review", json={"text": "short"})
    assert response.status_code == 422
    assert len(response.headers["X-Request-ID"]) == 32
