"""
Sale webhook router.

Receives the commerce platform's sale ping, generates the automation audit
and emails it to the buyer.

Flow for POST /process-sale:
  1. Intake     — decode the form body and derive the order (400 on failure)
  2. Generation — AuditGenerator.generate (never fails; falls back to canned text)
  3. Delivery   — send_audit_email (never raises; failure reported in the body)
  4. Response   — always 200 once intake passed

Any other method on the path gets 405 before the body is looked at.

Webhook authenticity is not checked here; the path is expected to sit behind
a gateway that verifies the platform's requests.

Environment variables (read by app.clients)
-------------------------------------------
GROQ_API_KEY     Bearer token for the chat completions API.
RESEND_API_KEY   Bearer token for the Resend email API.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.clients import get_audit_generator, get_email_client
from app.models.sale import (
    AuditSummary,
    DeliveryOutcome,
    ErrorResponse,
    NormalizedOrder,
    ProcessSaleResponse,
    SalePayloadError,
)
from app.services.audit_generator import AuditGenerator
from app.services.email_delivery import ResendEmailClient, send_audit_email
from app.services.sale_intake import parse_sale

logger = logging.getLogger(__name__)

router = APIRouter()

DELIVERED_MESSAGE = "Audit completed and delivered."
DELIVERY_FAILED_MESSAGE = "Audit generated but delivery failed."


async def _read_body(request: Request) -> bytes:
    return await request.body()


def _error(status_code: int, message: str, **kwargs) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        **kwargs,
    )


def build_response(order: NormalizedOrder, outcome: DeliveryOutcome) -> ProcessSaleResponse:
    """Map the delivery outcome onto the webhook response body."""
    return ProcessSaleResponse(
        success=outcome.success,
        message=DELIVERED_MESSAGE if outcome.success else DELIVERY_FAILED_MESSAGE,
        audit=AuditSummary(
            generated=True,
            delivered=outcome.success,
            order_id=order.order_id,
            business_website=order.website,
        ),
    )


@router.post(
    "/process-sale",
    response_model=ProcessSaleResponse,
    responses={400: {"model": ErrorResponse}},
)
def process_sale(
    body: bytes = Depends(_read_body),
    generator: AuditGenerator = Depends(get_audit_generator),
    email_client: ResendEmailClient = Depends(get_email_client),
):
    """
    Handle one sale ping end to end.

    Returns 400 when the body cannot be decoded or has no buyer email;
    otherwise 200 with the delivery outcome in the body.
    """
    logger.info(f"Sale webhook received at {datetime.now(timezone.utc).isoformat()}")

    # ------------------------------------------------------------------
    # Step 1: intake
    # ------------------------------------------------------------------
    try:
        order = parse_sale(body)
    except SalePayloadError as exc:
        logger.error(f"Rejected sale webhook: {exc}")
        return _error(400, str(exc))

    # ------------------------------------------------------------------
    # Step 2: audit generation
    # ------------------------------------------------------------------
    audit = generator.generate(order.website)
    logger.info(f"Audit content ready for order {order.order_id} (source: {audit.source})")

    # ------------------------------------------------------------------
    # Step 3: delivery
    # ------------------------------------------------------------------
    outcome = send_audit_email(
        email_client,
        recipient=order.email,
        customer_name=order.customer_name,
        website=order.website,
        audit_content=audit.content,
        order_id=order.order_id,
    )

    return build_response(order, outcome)


@router.api_route(
    "/process-sale",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
def process_sale_method_not_allowed():
    return _error(405, "Method not allowed", headers={"Allow": "POST"})
