"""
Audit generation service.

Asks Groq's OpenAI-compatible chat completions endpoint to write the
"AI-Powered Business Automation Audit" for a buyer's website.

Generation never fails from the caller's point of view: any provider error
(non-2xx, timeout, bad JSON, unexpected shape, missing API key) is logged and
replaced with a customer-safe fallback that promises manual delivery within
24 hours.  Only one attempt is made per sale.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from app.models.providers import ChatCompletionResponse
from app.models.sale import AuditResult

logger = logging.getLogger(__name__)

# Model configuration
GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
MODEL = "llama-3.3-70b-versatile"
TEMPERATURE = 0.7
MAX_TOKENS = 2500
GENERATION_TIMEOUT = 60.0

PLACEHOLDER_AUDIT = "Audit generation completed."

AUDIT_PROMPT = """\
As a senior automation consultant at Cyrnel Origin, analyze {website} and create a detailed "AI-Powered Business Automation Audit" with the following structure:

1. EXECUTIVE SUMMARY: 3-4 key findings on automation potential.
2. IDENTIFIED PROCESSES: 3-5 repetitive tasks suitable for automation.
3. QUICK-WIN AUTOMATIONS: Specific implementable solutions with time estimates.
4. TECHNOLOGY RECOMMENDATIONS: Appropriate tools for implementation.
5. 90-DAY ROADMAP: Phased implementation plan.
6. ROI ANALYSIS: Time and cost savings projections.

Tone: Professional, actionable, value-focused."""

FALLBACK_AUDIT = """\
**AI-Powered Business Automation Audit for {website}**

Thank you for choosing Cyrnel Origin. Our system has received your request for {website}.

Due to high demand on our AI systems, your full customized audit is being finalized by our specialists and will be delivered within 24 hours.

In the meantime, our preliminary analysis suggests significant automation potential in lead management and customer onboarding processes.

-- Cyrnel Origin Automation Team"""


def build_audit_prompt(website: str) -> str:
    return AUDIT_PROMPT.replace("{website}", website)


def build_fallback_audit(website: str) -> str:
    return FALLBACK_AUDIT.replace("{website}", website)


class AuditGenerator:
    """
    Thin client around the chat completions endpoint.

    Args:
        api_key: Groq API key.  When empty, generate() returns the fallback
                 without calling the provider.
        http_client: Optional httpx.Client; tests pass one backed by
                     httpx.MockTransport.
    """

    def __init__(self, api_key: Optional[str], http_client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self._http = http_client or httpx.Client(timeout=GENERATION_TIMEOUT)

    def _fallback(self, website: str) -> AuditResult:
        return AuditResult(content=build_fallback_audit(website), source="fallback")

    def generate(self, website: str) -> AuditResult:
        """
        Produce the audit for ``website``.

        Returns:
            AuditResult with source "model" (provider text, verbatim),
            "placeholder" (provider answered without content), or
            "fallback" (provider unavailable or any unexpected error).
        """
        try:
            return self._request_audit(website)
        except Exception:
            logger.exception(f"Audit generation failed unexpectedly for {website}")
            return self._fallback(website)

    def _request_audit(self, website: str) -> AuditResult:
        logger.info(f"Generating audit for website: {website}")

        if not self.api_key:
            logger.warning("GROQ_API_KEY is not set; using fallback audit")
            return self._fallback(website)

        payload = {
            "model": MODEL,
            "messages": [{"role": "user", "content": build_audit_prompt(website)}],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }

        try:
            response = self._http.post(
                GROQ_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=GENERATION_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            logger.error(f"Audit generation request failed: {exc!r}")
            return self._fallback(website)

        if not response.is_success:
            logger.error(f"Groq API error {response.status_code}: {response.text}")
            return self._fallback(website)

        try:
            completion = ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            # json.JSONDecodeError is a ValueError subclass
            logger.error(f"Malformed Groq response: {exc}")
            return self._fallback(website)

        content = completion.first_content()
        if content is None:
            logger.warning("Groq response contained no message content")
            return AuditResult(content=PLACEHOLDER_AUDIT, source="placeholder")

        logger.info("AI audit generated successfully")
        return AuditResult(content=content, source="model")
