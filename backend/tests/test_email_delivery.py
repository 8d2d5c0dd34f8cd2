"""
Audit email delivery tests.

Covers email rendering, tag sanitization, the Resend client (via
httpx.MockTransport) and send_audit_email's never-raise contract.
"""

import json
import re

import httpx
import pytest
from unittest.mock import MagicMock

from app.models.providers import EmailSendError, EmailSendResult
from app.services.email_delivery import (
    RESEND_API_URL,
    SENDER,
    ResendEmailClient,
    build_subject,
    render_audit_email_html,
    render_audit_email_text,
    sanitize_tag_value,
    send_audit_email,
)


def _resend_client(handler, api_key: str = "test-resend-key") -> ResendEmailClient:
    return ResendEmailClient(
        api_key=api_key,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


# ---------------------------------------------------------------------------
# sanitize_tag_value
# ---------------------------------------------------------------------------

class TestSanitizeTagValue:

    def test_replaces_padding_and_punctuation(self):
        assert sanitize_tag_value("abc==123!!") == "abc__123__"

    def test_keeps_allowed_characters(self):
        assert sanitize_tag_value("Order_42-b") == "Order_42-b"

    def test_truncates_to_50_characters(self):
        assert sanitize_tag_value("x" * 80) == "x" * 50

    def test_replaces_non_ascii(self):
        assert sanitize_tag_value("café") == "caf_"

    @pytest.mark.parametrize(
        "order_id",
        ["", "S1", "aGVsbG8gd29ybGQ=", "a b/c+d", "ü" * 70, "ORD-1700000000500"],
    )
    def test_output_always_valid_tag(self, order_id):
        assert re.fullmatch(r"[A-Za-z0-9_-]{0,50}", sanitize_tag_value(order_id))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class TestRenderAuditEmail:

    def test_html_contains_greeting_website_and_footer(self):
        body = render_audit_email_html("Jane Doe", "acme.com", "Report", "S1", year=2026)

        assert "Hi <strong>Jane Doe</strong>" in body
        assert "<strong>acme.com</strong>" in body
        assert "Order Reference: S1 | &copy; 2026 Cyrnel Origin" in body

    def test_html_audit_box_preserves_whitespace(self):
        body = render_audit_email_html("Jane", "acme.com", "  - indented item", "S1")

        assert "white-space: pre-wrap" in body
        assert "  - indented item" in body

    def test_html_converts_line_breaks(self):
        body = render_audit_email_html("Jane", "acme.com", "line one\nline two\r\nline three", "S1")

        assert "line one<br>line two<br>line three" in body

    def test_html_escapes_interpolated_values(self):
        body = render_audit_email_html("<script>x</script>", "acme.com", "a < b & c", "S1")

        assert "<script>x</script>" not in body
        assert "&lt;script&gt;" in body
        assert "a &lt; b &amp; c" in body

    def test_html_uses_default_greeting_when_name_blank(self):
        assert "Hi <strong>Business Leader</strong>" in render_audit_email_html("", "acme.com", "x", "S1")

    def test_html_defaults_to_current_year(self):
        from datetime import datetime, timezone

        body = render_audit_email_html("Jane", "acme.com", "x", "S1")
        assert f"&copy; {datetime.now(timezone.utc).year} Cyrnel Origin" in body

    def test_html_shows_raw_order_id(self):
        body = render_audit_email_html("Jane", "acme.com", "x", "abc==123")
        assert "Order Reference: abc==123" in body

    def test_text_body(self):
        text = render_audit_email_text("acme.com", "Report body", "S1")

        assert text == (
            "CYRNEL ORIGIN AUDIT\n\nFor: acme.com\n\nReport body\n\n---\nOrder Reference: S1"
        )

    def test_subject_includes_website(self):
        assert build_subject("acme.com") == (
            "Your AI-Powered Business Automation Audit for acme.com | Cyrnel Origin"
        )


# ---------------------------------------------------------------------------
# ResendEmailClient
# ---------------------------------------------------------------------------

class TestResendEmailClient:

    def test_success_returns_id(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("Authorization")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-123"})

        result = _resend_client(handler).send({"to": ["a@b.co"]})

        assert result == EmailSendResult(id="email-123")
        assert captured["url"] == RESEND_API_URL
        assert captured["auth"] == "Bearer test-resend-key"
        assert captured["body"] == {"to": ["a@b.co"]}

    def test_provider_error_body_is_parsed(self):
        error_body = {"statusCode": 422, "name": "validation_error", "message": "Invalid `to` field."}
        result = _resend_client(lambda request: httpx.Response(422, json=error_body)).send({})

        assert result.id is None
        assert result.error.name == "validation_error"
        assert result.error.message == "Invalid `to` field."
        assert result.error.status_code == 422

    def test_error_without_json_body(self):
        result = _resend_client(lambda request: httpx.Response(502, text="Bad Gateway")).send({})

        assert result.error.status_code == 502
        assert "Bad Gateway" in result.error.message

    def test_success_without_id_is_an_error(self):
        result = _resend_client(lambda request: httpx.Response(200, json={})).send({})

        assert result.id is None
        assert result.error is not None

    def test_missing_api_key_does_not_call_provider(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"id": "email-123"})

        result = _resend_client(handler, api_key="").send({})

        assert calls == []
        assert result.error.name == "missing_api_key"

    def test_transport_error_propagates(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(httpx.ConnectError):
            _resend_client(handler).send({})


# ---------------------------------------------------------------------------
# send_audit_email
# ---------------------------------------------------------------------------

class TestSendAuditEmail:

    def _send(self, client, order_id: str = "S1"):
        return send_audit_email(
            client,
            recipient="jane@acme.com",
            customer_name="Jane Doe",
            website="acme.com",
            audit_content="Line 1\nLine 2",
            order_id=order_id,
        )

    def test_success_outcome(self):
        client = MagicMock()
        client.send.return_value = EmailSendResult(id="email-123")

        outcome = self._send(client)

        assert outcome.success is True
        assert outcome.message_id == "email-123"
        assert outcome.error is None

    def test_builds_provider_params(self):
        client = MagicMock()
        client.send.return_value = EmailSendResult(id="email-123")

        self._send(client, order_id="abc==123")

        params = client.send.call_args[0][0]
        assert params["from"] == SENDER
        assert params["to"] == ["jane@acme.com"]
        assert params["subject"] == build_subject("acme.com")
        assert "Line 1<br>Line 2" in params["html"]
        assert "Order Reference: abc==123" in params["html"]
        assert "Order Reference: abc==123" in params["text"]
        assert params["tags"] == [{"name": "audit", "value": "abc__123"}]

    def test_provider_error_becomes_failed_outcome(self):
        client = MagicMock()
        client.send.return_value = EmailSendResult(
            error=EmailSendError(name="validation_error", message="Invalid `to` field.", status_code=422)
        )

        outcome = self._send(client)

        assert outcome.success is False
        assert outcome.error == "Invalid `to` field."
        assert outcome.message_id is None

    def test_exception_becomes_failed_outcome(self):
        client = MagicMock()
        client.send.side_effect = RuntimeError("provider exploded")

        outcome = self._send(client)

        assert outcome.success is False
        assert outcome.error == "provider exploded"

    def test_transport_error_through_real_client(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = self._send(_resend_client(handler))

        assert outcome.success is False
        assert "connection refused" in outcome.error
