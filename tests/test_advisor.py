from __future__ import annotations

import asyncio

import litellm
import pytest

from core.errors import (
    AuthorizationError,
    ForbiddenError,
    QuotaExceeded,
    UpstreamError,
    UpstreamUnavailable,
    ValidationError,
)
from llm.advisor_client import AdvisorClient, classify_model_error
from llm.prompts import business_advice
from services.advisory_service import AdvisoryService, sanitize_model_html
from tests.fakes import InMemoryDocumentStore, RecordingSleep, ScriptedCompletion, seed_user

MODEL = "gemini/gemini-2.0-flash"
SUMMARY = {"ventasHoy": 125000, "stockBajo": ["arroz", "aceite"]}


def _rate_limited() -> litellm.RateLimitError:
    return litellm.RateLimitError(message="429 quota exceeded", llm_provider="gemini", model=MODEL)


def _unavailable() -> litellm.ServiceUnavailableError:
    return litellm.ServiceUnavailableError(message="503 overloaded", llm_provider="gemini", model=MODEL)


def _advisor(completion: ScriptedCompletion, sleep: RecordingSleep, *, api_key: str = "test-key") -> AdvisorClient:
    return AdvisorClient(model=MODEL, api_key=api_key, completion=completion, sleep=sleep)


def test_classify_model_error_kinds() -> None:
    quota, transient = classify_model_error(_rate_limited())
    assert isinstance(quota, QuotaExceeded) and transient
    assert quota.status_code == 429

    unavailable, transient = classify_model_error(_unavailable())
    assert isinstance(unavailable, UpstreamUnavailable) and transient

    auth, transient = classify_model_error(
        litellm.AuthenticationError(message="bad key", llm_provider="gemini", model=MODEL)
    )
    assert isinstance(auth, UpstreamError) and not transient

    other, transient = classify_model_error(ValueError("boom"))
    assert isinstance(other, UpstreamError) and not transient


def test_generate_retries_transient_failures_with_linear_backoff() -> None:
    completion = ScriptedCompletion(_unavailable(), _rate_limited(), "<div>ok</div>")
    sleep = RecordingSleep()

    text = asyncio.run(_advisor(completion, sleep).generate([{"role": "user", "content": "hola"}]))

    assert text == "<div>ok</div>"
    assert len(completion.calls) == 3
    assert sleep.delays == [1.0, 2.0]
    assert completion.calls[0]["model"] == MODEL
    assert completion.calls[0]["api_key"] == "test-key"


def test_generate_surfaces_quota_after_exhausting_retries() -> None:
    completion = ScriptedCompletion(_rate_limited())
    sleep = RecordingSleep()

    with pytest.raises(QuotaExceeded) as exc:
        asyncio.run(_advisor(completion, sleep).generate([]))

    assert exc.value.code == "advisor.quota_exceeded"
    assert len(completion.calls) == 4
    assert sleep.delays == [1.0, 2.0, 3.0]


def test_generate_does_not_retry_permanent_failures() -> None:
    completion = ScriptedCompletion(
        litellm.AuthenticationError(message="bad key", llm_provider="gemini", model=MODEL)
    )
    sleep = RecordingSleep()

    with pytest.raises(UpstreamError):
        asyncio.run(_advisor(completion, sleep).generate([]))
    assert len(completion.calls) == 1
    assert sleep.delays == []


def test_prompt_embeds_summary_as_json() -> None:
    messages = business_advice.get_prompt(SUMMARY)
    assert messages[0]["role"] == "system"
    assert '"stockBajo": ["arroz", "aceite"]' in messages[1]["content"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("```html\n<div>Hola</div>\n```", "<div>Hola</div>"),
        ("<div>Hola</div> Espero que te sirva!", "<div>Hola</div>"),
        ("Sin etiquetas", "Sin etiquetas"),
    ],
)
def test_sanitize_model_html(raw, expected) -> None:
    assert sanitize_model_html(raw) == expected


def test_advise_requires_user_before_calling_model() -> None:
    completion = ScriptedCompletion("<div>x</div>")
    service = AdvisoryService(InMemoryDocumentStore(), _advisor(completion, RecordingSleep()))

    with pytest.raises(AuthorizationError):
        asyncio.run(service.advise(None, SUMMARY))
    assert completion.calls == []


def test_advise_blocks_non_premium_accounts() -> None:
    documents = InMemoryDocumentStore()
    seed_user(documents, "basic", plan="Plan Básico")
    completion = ScriptedCompletion("<div>x</div>")
    service = AdvisoryService(documents, _advisor(completion, RecordingSleep()))

    with pytest.raises(ForbiddenError) as exc:
        asyncio.run(service.advise("basic", SUMMARY))
    assert "Solo Plan Premium" in exc.value.payload["html"]
    assert completion.calls == []

    with pytest.raises(ForbiddenError):
        asyncio.run(service.advise("ghost", SUMMARY))


def test_advise_rereads_plan_on_every_call() -> None:
    documents = InMemoryDocumentStore()
    seed_user(documents, "u1", plan="Plan Premium")
    completion = ScriptedCompletion("```html\n<div>Compra arroz</div>\n```")
    service = AdvisoryService(documents, _advisor(completion, RecordingSleep()))

    assert asyncio.run(service.advise("u1", SUMMARY)) == "<div>Compra arroz</div>"

    documents.documents["users/u1"]["plan"] = "Plan Básico"
    with pytest.raises(ForbiddenError):
        asyncio.run(service.advise("u1", SUMMARY))
    assert len(completion.calls) == 1


def test_advise_validates_summary_and_configuration() -> None:
    documents = InMemoryDocumentStore()
    seed_user(documents, "u1", plan="Plan Premium")
    completion = ScriptedCompletion("<div>x</div>")

    with pytest.raises(ValidationError):
        asyncio.run(AdvisoryService(documents, _advisor(completion, RecordingSleep())).advise("u1", None))

    unconfigured = _advisor(completion, RecordingSleep(), api_key="")
    with pytest.raises(UpstreamUnavailable):
        asyncio.run(AdvisoryService(documents, unconfigured).advise("u1", SUMMARY))
    assert completion.calls == []
