"""
Response schemas for the external providers.

Only the fields the engine reads are modelled; unknown fields are ignored so
that provider additions never break parsing.

  ChatCompletionResponse — Groq (OpenAI-compatible) chat completions
  EmailSendResult        — Resend POST /emails
"""

from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Chat completions
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    model_config = {"extra": "ignore"}

    role: Optional[str] = None
    content: Optional[str] = None


class ChatChoice(BaseModel):
    model_config = {"extra": "ignore"}

    message: Optional[ChatMessage] = None


class ChatCompletionResponse(BaseModel):
    model_config = {"extra": "ignore"}

    choices: list[ChatChoice]

    def first_content(self) -> Optional[str]:
        """
        Return the first choice's message content, or None when the provider
        sent no choices, no message, or an empty content string.
        """
        if not self.choices:
            return None
        message = self.choices[0].message
        if message is None or not message.content:
            return None
        return message.content


# ---------------------------------------------------------------------------
# Transactional email
# ---------------------------------------------------------------------------

class EmailSendError(BaseModel):
    """Resend error body: {"statusCode": 422, "name": "...", "message": "..."}."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: str = "application_error"
    message: str = "Unknown email provider error"
    status_code: Optional[int] = Field(default=None, alias="statusCode")


class EmailSendResult(BaseModel):
    """Either ``id`` (accepted) or ``error`` (rejected) is set."""

    id: Optional[str] = None
    error: Optional[EmailSendError] = None
