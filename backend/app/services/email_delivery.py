"""
Audit email delivery service.

Renders the audit email (HTML + plain text) and sends it through Resend's
REST API.  Delivery never raises: provider rejections and transport errors
come back as ``DeliveryOutcome(success=False, error=...)`` so the webhook can
report them in its body.

Resend POST /emails
-------------------
Request JSON:  from, to[], subject, html, text, tags[{name, value}]
200 response:  {"id": "<message id>"}
Error response: {"statusCode": 422, "name": "validation_error", "message": "..."}

Tag values may only contain ASCII letters, numbers, underscores or dashes,
so the order id is sanitized before it is used as a tag.  The email body
always shows the order id exactly as the platform sent it.
"""

import html
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from app.models.providers import EmailSendError, EmailSendResult
from app.models.sale import DeliveryOutcome

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_TIMEOUT = 30.0

SENDER = "Cyrnel Origin <audits@cyrnelorigin.online>"
BRAND_NAME = "Cyrnel Origin"
DEFAULT_GREETING_NAME = "Business Leader"

TAG_NAME = "audit"
_TAG_MAX_LENGTH = 50
_TAG_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_-]")

_AUDIT_EMAIL_HTML = """\
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Your AI-Powered Business Automation Audit</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: linear-gradient(135deg, #4f46e5 0%, #7c3aed 100%); padding: 40px; text-align: center; border-radius: 12px 12px 0 0; color: white; }}
        .content {{ background: white; padding: 40px; border-radius: 0 0 12px 12px; box-shadow: 0 4px 6px rgba(0,0,0,0.05); }}
        .audit-box {{ background: #f8fafc; border-left: 4px solid #4f46e5; padding: 25px; margin: 30px 0; white-space: pre-wrap; font-family: monospace; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; text-align: center; font-size: 13px; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>Your AI-Powered Business Audit</h1>
        <p>{brand} Automation Analysis</p>
    </div>
    <div class="content">
        <p>Hi <strong>{customer_name}</strong>,</p>
        <p>Your customized automation audit for <strong>{website}</strong> is ready.</p>
        <div class="audit-box">{audit_html}</div>
        <p>Best regards,<br><strong>The {brand} Team</strong></p>
        <div class="footer">
            <p>Order Reference: {order_id} | &copy; {year} {brand}</p>
        </div>
    </div>
</body>
</html>"""


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def sanitize_tag_value(order_id: str) -> str:
    """Replace characters Resend rejects in tag values with ``_``; cap at 50 chars."""
    return _TAG_INVALID_CHARS.sub("_", order_id)[:_TAG_MAX_LENGTH]


def build_subject(website: str) -> str:
    return f"Your AI-Powered Business Automation Audit for {website} | {BRAND_NAME}"


def render_audit_email_html(
    customer_name: str,
    website: str,
    audit_content: str,
    order_id: str,
    year: Optional[int] = None,
) -> str:
    """
    Render the HTML email body.

    All interpolated values are HTML-escaped; newlines in the audit become
    ``<br>`` so the report keeps its layout in mail clients.
    """
    if year is None:
        year = datetime.now(timezone.utc).year

    audit_html = "<br>".join(
        html.escape(line) for line in audit_content.replace("\r\n", "\n").split("\n")
    )

    return _AUDIT_EMAIL_HTML.format(
        brand=BRAND_NAME,
        customer_name=html.escape(customer_name or DEFAULT_GREETING_NAME),
        website=html.escape(website),
        audit_html=audit_html,
        order_id=html.escape(order_id),
        year=year,
    )


def render_audit_email_text(website: str, audit_content: str, order_id: str) -> str:
    """Plain-text body for clients that do not render HTML."""
    return (
        f"{BRAND_NAME.upper()} AUDIT\n\n"
        f"For: {website}\n\n"
        f"{audit_content}\n\n"
        f"---\n"
        f"Order Reference: {order_id}"
    )


# ---------------------------------------------------------------------------
# Resend client
# ---------------------------------------------------------------------------

class ResendEmailClient:
    """
    Minimal Resend API client.

    One instance is built per process (see app.clients) and injected into the
    webhook, so tests can swap it for a double.  The official ``resend`` SDK
    keeps its API key in module-level state (``resend.api_key``), which would
    make every instance share one key; calling the REST endpoint with httpx
    keeps the key on the instance.
    """

    def __init__(self, api_key: Optional[str], http_client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self._http = http_client or httpx.Client(timeout=EMAIL_TIMEOUT)

    def send(self, params: dict[str, Any]) -> EmailSendResult:
        """
        Send one email.

        Returns:
            EmailSendResult with ``id`` on success or ``error`` when Resend
            rejects the request.

        Raises:
            httpx.HTTPError: on transport failures (DNS, timeout, reset).
        """
        if not self.api_key:
            return EmailSendResult(
                error=EmailSendError(
                    name="missing_api_key",
                    message="RESEND_API_KEY is not configured",
                )
            )

        response = self._http.post(
            RESEND_API_URL,
            json=params,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=EMAIL_TIMEOUT,
        )

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not response.is_success:
            if body.get("message"):
                error = EmailSendError.model_validate(body)
            else:
                error = EmailSendError(
                    message=f"HTTP {response.status_code}: {response.text[:200]}",
                )
            if error.status_code is None:
                error.status_code = response.status_code
            return EmailSendResult(error=error)

        message_id = body.get("id")
        if not message_id:
            return EmailSendResult(
                error=EmailSendError(
                    status_code=response.status_code,
                    message="Email provider response did not include a message id",
                )
            )
        return EmailSendResult(id=message_id)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def send_audit_email(
    email_client: ResendEmailClient,
    recipient: str,
    customer_name: str,
    website: str,
    audit_content: str,
    order_id: str,
) -> DeliveryOutcome:
    """
    Render and send the audit email to ``recipient``.

    Returns:
        DeliveryOutcome(success=True, message_id=...) when the provider
        accepted the email, otherwise DeliveryOutcome(success=False, error=...).
    """
    logger.info(f"Sending audit to: {recipient}")

    params = {
        "from": SENDER,
        "to": [recipient],
        "subject": build_subject(website),
        "html": render_audit_email_html(customer_name, website, audit_content, order_id),
        "text": render_audit_email_text(website, audit_content, order_id),
        "tags": [{"name": TAG_NAME, "value": sanitize_tag_value(order_id)}],
    }

    try:
        result = email_client.send(params)
    except Exception as exc:
        logger.error(f"Email delivery failed for order {order_id}: {exc!r}")
        return DeliveryOutcome(success=False, error=str(exc) or exc.__class__.__name__)

    if result.error is not None:
        logger.error(
            f"Email provider rejected order {order_id}: "
            f"{result.error.name} ({result.error.status_code}): {result.error.message}"
        )
        return DeliveryOutcome(success=False, error=result.error.message)

    logger.info(f"Email delivered, message id: {result.id}")
    return DeliveryOutcome(success=True, message_id=result.id)
