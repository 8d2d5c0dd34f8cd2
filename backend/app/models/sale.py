"""
Pydantic models for the sale webhook flow.

Models:
  SaleEvent           — validated view over the form-encoded webhook body
  NormalizedOrder     — derived, immutable order used by generation and delivery
  AuditResult         — generated audit text (model output, placeholder, or fallback)
  DeliveryOutcome     — result of sending the audit email
  AuditSummary        — "audit" object in the webhook response
  ProcessSaleResponse — webhook response body
  ErrorResponse       — body for terminal 4xx responses
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator


class SalePayloadError(ValueError):
    """Raised when the webhook body cannot be turned into a SaleEvent."""


# ---------------------------------------------------------------------------
# Inbound sale
# ---------------------------------------------------------------------------

class SaleEvent(BaseModel):
    """
    Subset of the commerce platform's sale ping that the engine consumes.

    Form keys map to fields through aliases; every other key in the ping is
    ignored.  Blank strings are treated the same as absent keys.
    """

    model_config = {"extra": "ignore"}

    email: str
    product_name: Optional[str] = None
    price: Optional[str] = None
    sale_id: Optional[str] = None
    full_name: Optional[str] = None
    custom_website: Optional[str] = Field(default=None, alias="custom_fields[website]")
    website: Optional[str] = None

    @field_validator(
        "product_name", "price", "sale_id", "full_name", "custom_website", "website",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _require_email(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("email must not be blank")
        return value.strip()

    @classmethod
    def from_form(cls, fields: dict[str, str]) -> "SaleEvent":
        """
        Validate a decoded form mapping.

        Raises:
            SalePayloadError: if the recipient email is missing or blank.
        """
        try:
            return cls.model_validate(fields)
        except ValidationError as exc:
            missing = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
            raise SalePayloadError(
                f"Missing required field: {', '.join(missing) or 'email'}"
            ) from exc


class NormalizedOrder(BaseModel):
    """Order fields after defaults and normalization have been applied."""

    model_config = {"frozen": True}

    email: str
    customer_name: str
    product_name: str
    price: str
    order_id: str
    website: str


# ---------------------------------------------------------------------------
# Step results
# ---------------------------------------------------------------------------

class AuditResult(BaseModel):
    """Audit text handed to delivery. ``source`` records where it came from."""

    content: str
    source: Literal["model", "placeholder", "fallback"]


class DeliveryOutcome(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Webhook responses
# ---------------------------------------------------------------------------

class AuditSummary(BaseModel):
    generated: bool = True
    delivered: bool
    order_id: str
    business_website: str


class ProcessSaleResponse(BaseModel):
    """Body returned with HTTP 200 once intake validation has passed."""

    success: bool
    message: str
    audit: AuditSummary


class ErrorResponse(BaseModel):
    error: str
