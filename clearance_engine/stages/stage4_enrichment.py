"""
Stage 4: Company Recap Enrichment
=================================
Generates a short company description with an LLM.
This call is the only paid, blocking operation in a batch, so it is only
made on recap cache misses and only when the caller allows it.

Failures surface as EnrichmentError subtypes; the recap cache turns them
into the default recap.
"""

import os
from typing import Optional

from ..config.settings import CACHE_CONFIG, LLM_CONFIG
from ..errors import (
    EnrichmentDisabledError,
    EnrichmentError,
    EnrichmentQuotaError,
    EnrichmentResponseError,
    EnrichmentStatusError,
    EnrichmentTimeoutError,
    MissingCredentialError,
)

# Answers the model gives when it has nothing useful to say
ERROR_INDICATORS = ("UNKNOWN", "ERROR", "#ERROR", "N/A")


class RecapEnricher:
    """
    OpenAI-compatible chat completion client for company recaps.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
        client=None,
    ):
        """
        Initialize LLM client.

        Args:
            api_key: API key for LLM provider
            provider: LLM provider ("openrouter" or "openai")
            model: Model name in the provider's format
            timeout: Seconds before a call is abandoned
            enabled: Feature switch; defaults to LLM_CONFIG["enabled"]
            client: Pre-built client exposing chat.completions.create
        """
        self.api_key = api_key or LLM_CONFIG.get("api_key") or os.getenv("OPENROUTER_API_KEY")
        self.provider = provider or LLM_CONFIG.get("provider", "openrouter")
        self.model = model or LLM_CONFIG.get("model")
        self.base_url = LLM_CONFIG.get("base_url", "https://openrouter.ai/api/v1")
        self.site_url = LLM_CONFIG.get("site_url", "http://localhost:8000")
        self.app_name = LLM_CONFIG.get("app_name", "510k Clearance Scoring Engine")
        self.timeout = timeout if timeout is not None else LLM_CONFIG.get("timeout_seconds", 60)
        self.enabled = LLM_CONFIG.get("enabled", False) if enabled is None else enabled
        self.max_response_chars = CACHE_CONFIG["max_response_chars"]
        self.client = client

        if self.client is None:
            self._initialize_client()

    def _initialize_client(self):
        """Initialize the LLM client based on provider"""
        if not self.api_key:
            return

        from openai import OpenAI

        if self.provider == "openrouter":
            self.client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self.site_url,
                    "X-Title": self.app_name,
                },
            )
        elif self.provider == "openai":
            self.client = OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        else:
            raise ValueError(f"Unknown provider: {self.provider}")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def generate(self, company_name: str) -> str:
        """
        Generate a recap for a company.

        Args:
            company_name: Applicant name as it appears on the clearance

        Returns:
            The raw recap text (the cache applies length truncation)

        Raises:
            EnrichmentError: any failure, by subtype
        """
        if not self.enabled:
            raise EnrichmentDisabledError("Enrichment is disabled")
        if self.client is None:
            raise MissingCredentialError(f"No API key configured for {self.provider}")

        prompt = self._generate_prompt(company_name)
        response = self._call_llm(prompt)
        return self._parse_response(response)

    def _generate_prompt(self, company_name: str) -> str:
        return f"""Write a factual 2-3 sentence recap of the medical device company "{company_name}".
Cover what the company makes, its approximate size, and its best-known product lines.
If you do not recognize the company, reply with exactly: UNKNOWN

Return only the recap text, no headings or markdown."""

    def _call_llm(self, prompt: str) -> str:
        """Call the LLM API, mapping SDK failures to enrichment errors"""
        import openai

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a concise medical device industry analyst."},
                    {"role": "user", "content": prompt},
                ],
                temperature=LLM_CONFIG.get("temperature", 0.2),
                max_tokens=LLM_CONFIG.get("max_tokens", 300),
                timeout=self.timeout,
            )
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise EnrichmentTimeoutError(str(e)) from e
        except openai.RateLimitError as e:
            raise EnrichmentQuotaError(str(e)) from e
        except openai.APIStatusError as e:
            raise EnrichmentStatusError(f"HTTP {e.status_code}: {e.message}") from e
        except openai.OpenAIError as e:
            raise EnrichmentError(str(e)) from e

        try:
            return response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise EnrichmentResponseError(f"Malformed completion: {e}") from e

    def _parse_response(self, response: Optional[str]) -> str:
        """Validate the completion text"""
        if not isinstance(response, str):
            raise EnrichmentResponseError("Completion has no text content")

        clean = response.strip()
        # Remove markdown code fences if present
        if clean.startswith("```"):
            clean = clean.strip("`").strip()

        if not clean:
            raise EnrichmentResponseError("Empty completion")
        if clean.upper().rstrip(".") in ERROR_INDICATORS or clean.upper().startswith("ERROR"):
            raise EnrichmentResponseError(f"Error indicator in completion: {clean[:50]}")
        if len(clean) > self.max_response_chars:
            raise EnrichmentResponseError(
                f"Completion too long: {len(clean)} > {self.max_response_chars} chars"
            )
        return clean
