"""
Tests for stage4_enrichment.py - the LLM recap client.
"""

from types import SimpleNamespace

import httpx
import openai
import pytest

from clearance_engine.config.settings import LLM_CONFIG
from clearance_engine.errors import (
    EnrichmentDisabledError,
    EnrichmentQuotaError,
    EnrichmentResponseError,
    EnrichmentStatusError,
    EnrichmentTimeoutError,
    MissingCredentialError,
)
from clearance_engine.stages.stage4_enrichment import RecapEnricher


REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content=None, error=None):
    completions = FakeCompletions(content=content, error=error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def make_enricher(content=None, error=None, **kwargs):
    return RecapEnricher(client=fake_client(content, error), enabled=True, **kwargs)


class TestGating:
    """Disabled feature and missing credentials."""

    def test_disabled(self):
        enricher = RecapEnricher(client=fake_client("text"), enabled=False)
        with pytest.raises(EnrichmentDisabledError):
            enricher.generate("Acme")

    def test_missing_credential(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setitem(LLM_CONFIG, "api_key", "")

        enricher = RecapEnricher(enabled=True)

        assert not enricher.configured
        with pytest.raises(MissingCredentialError):
            enricher.generate("Acme")

    def test_client_built_from_api_key(self):
        enricher = RecapEnricher(api_key="sk-test-123456789", enabled=True, timeout=5)
        assert enricher.configured
        assert enricher.timeout == 5

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            RecapEnricher(api_key="sk-test-123456789", provider="carrier-pigeon")


class TestResponses:
    """Completion validation."""

    def test_success(self):
        enricher = make_enricher("  Acme Medical makes spinal implants.  ")
        assert enricher.generate("Acme Medical") == "Acme Medical makes spinal implants."

    def test_prompt_names_company_and_passes_timeout(self):
        enricher = make_enricher("Recap.", timeout=12)
        enricher.generate("Acme Medical")

        kwargs = enricher.client.chat.completions.kwargs
        assert "Acme Medical" in kwargs["messages"][-1]["content"]
        assert kwargs["timeout"] == 12

    def test_code_fence_removed(self):
        assert make_enricher("```\nAcme recap\n```").generate("Acme") == "Acme recap"

    @pytest.mark.parametrize("content", ["", "   ", None, "UNKNOWN", "unknown.", "Error: no data"])
    def test_error_indicators_rejected(self, content):
        with pytest.raises(EnrichmentResponseError):
            make_enricher(content).generate("Acme")

    def test_overlong_response_rejected(self):
        with pytest.raises(EnrichmentResponseError):
            make_enricher("x" * 5000).generate("Acme")

    def test_malformed_completion(self):
        client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(
            create=lambda **kwargs: SimpleNamespace(choices=[])
        )))
        enricher = RecapEnricher(client=client, enabled=True)
        with pytest.raises(EnrichmentResponseError):
            enricher.generate("Acme")


class TestSdkErrors:
    """SDK exceptions map to enrichment error subtypes."""

    def test_timeout(self):
        error = openai.APITimeoutError(request=REQUEST)
        with pytest.raises(EnrichmentTimeoutError):
            make_enricher(error=error).generate("Acme")

    def test_connection_error(self):
        error = openai.APIConnectionError(request=REQUEST)
        with pytest.raises(EnrichmentTimeoutError):
            make_enricher(error=error).generate("Acme")

    def test_rate_limit(self):
        response = httpx.Response(429, request=REQUEST)
        error = openai.RateLimitError("quota exceeded", response=response, body=None)
        with pytest.raises(EnrichmentQuotaError):
            make_enricher(error=error).generate("Acme")

    def test_bad_status(self):
        response = httpx.Response(500, request=REQUEST)
        error = openai.InternalServerError("server error", response=response, body=None)
        with pytest.raises(EnrichmentStatusError) as exc:
            make_enricher(error=error).generate("Acme")
        assert "500" in str(exc.value)
