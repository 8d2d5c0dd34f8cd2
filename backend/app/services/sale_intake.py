"""
Sale intake service.

Turns the raw webhook body sent by the commerce platform into a
NormalizedOrder.  No external calls are made here.

Public API:
  parse_sale_form(body)       -> dict[str, str]
  normalize_website(value)    -> str
  normalize_order(event)      -> NormalizedOrder
  parse_sale(body)            -> NormalizedOrder   (parse + validate + normalize)

The platform posts ``application/x-www-form-urlencoded`` pings.  The website
the buyer entered at checkout arrives either as the custom field
``custom_fields[website]`` or, for older products, as a plain ``website`` key.
"""

import logging
import re
import time
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import parse_qsl

from app.models.sale import NormalizedOrder, SaleEvent, SalePayloadError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

WEBSITE_NOT_PROVIDED = "Not provided"
DEFAULT_PRODUCT_NAME = "AI Audit"
DEFAULT_CUSTOMER_NAME = "Valued Client"
DEFAULT_PRICE = "0.00"

# Upper bound on form fields accepted from a single ping
_MAX_FORM_FIELDS = 200

_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)
_WWW_PREFIX = re.compile(r"^www\.", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_sale_form(body: bytes | str) -> dict[str, str]:
    """
    Decode a URL-encoded form body into a flat field -> value mapping.

    Blank values are kept (``website=`` yields ``{"website": ""}``); when a key
    repeats, the last value wins.

    Raises:
        SalePayloadError: if the body is not valid UTF-8, a percent escape
        does not decode to UTF-8, or the ping carries too many fields.
    """
    try:
        text = body.decode("utf-8") if isinstance(body, bytes) else body
        pairs = parse_qsl(
            text,
            keep_blank_values=True,
            encoding="utf-8",
            errors="strict",
            max_num_fields=_MAX_FORM_FIELDS,
        )
    except ValueError as exc:
        # UnicodeDecodeError is a ValueError subclass
        raise SalePayloadError("Invalid data format") from exc

    return dict(pairs)


# ---------------------------------------------------------------------------
# Field derivation
# ---------------------------------------------------------------------------

def normalize_website(value: str) -> str:
    """
    Strip the scheme and ``www.`` prefix from a website the buyer typed.

    Prefixes are removed until none remain, so applying the function to its
    own output never changes it:

        https://www.Example.com  -> Example.com
        example.com              -> example.com

    An input that is empty once stripped becomes ``"Not provided"``.
    """
    website = value.strip()
    while True:
        stripped = _SCHEME_PREFIX.sub("", website, count=1)
        stripped = _WWW_PREFIX.sub("", stripped, count=1).strip()
        if stripped == website:
            break
        website = stripped

    return website or WEBSITE_NOT_PROVIDED


def _format_price(cents: Optional[str]) -> str:
    """Integer cents (as sent by the platform) -> "99.00"."""
    if cents is None:
        return DEFAULT_PRICE
    try:
        amount = Decimal(int(cents.strip())) / 100
    except (ValueError, InvalidOperation):
        logger.warning(f"Unparseable sale price {cents!r}; reporting {DEFAULT_PRICE}")
        return DEFAULT_PRICE
    return f"{amount:.2f}"


def _customer_name(event: SaleEvent) -> str:
    if event.full_name:
        return event.full_name
    local_part = event.email.split("@")[0]
    return local_part or DEFAULT_CUSTOMER_NAME


def _synthetic_order_id() -> str:
    return f"ORD-{int(time.time() * 1000)}"


def normalize_order(event: SaleEvent) -> NormalizedOrder:
    """Apply defaults and normalization to a validated SaleEvent."""
    raw_website = event.custom_website or event.website or WEBSITE_NOT_PROVIDED

    order = NormalizedOrder(
        email=event.email,
        customer_name=_customer_name(event),
        product_name=event.product_name or DEFAULT_PRODUCT_NAME,
        price=_format_price(event.price),
        order_id=event.sale_id or _synthetic_order_id(),
        website=normalize_website(raw_website),
    )

    logger.info(
        "Processing %s | customer: %s (%s) | amount: %s | order: %s | website: %s",
        order.product_name,
        order.customer_name,
        order.email,
        order.price,
        order.order_id,
        order.website,
    )
    return order


def parse_sale(body: bytes | str) -> NormalizedOrder:
    """
    Full intake pipeline: raw body -> form fields -> SaleEvent -> NormalizedOrder.

    Raises:
        SalePayloadError: on undecodable bodies or a missing recipient email.
    """
    fields = parse_sale_form(body)
    logger.info(f"Sale webhook parsed ({len(fields)} fields)")
    event = SaleEvent.from_form(fields)
    return normalize_order(event)
