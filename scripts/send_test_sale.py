#!/usr/bin/env python3
"""
Dev helper: send a test sale webhook to the local audit engine.

Builds a form-encoded sale ping shaped like the commerce platform's and
POST-s it to the /api/webhooks/process-sale endpoint.

Usage
-----
# Basic — sample sale for acme.com, targeting localhost:8000
python scripts/send_test_sale.py

# Buyer's website entered as the checkout custom field
python scripts/send_test_sale.py --website https://www.example.com

# Send the website under the plain ``website`` key instead
python scripts/send_test_sale.py --plain-website-key

# Deliver the audit to your own inbox
python scripts/send_test_sale.py --email you@example.com --name "Your Name"

# Target a different backend URL
python scripts/send_test_sale.py --url http://staging.example.com

The backend needs GROQ_API_KEY and RESEND_API_KEY to generate and deliver
a real audit; without them the response still comes back 200 with
``delivered: false``.
"""

import argparse
import json
import sys
import textwrap
import time
from urllib.parse import urlencode

import httpx


# ---------------------------------------------------------------------------
# Payload builder
# ---------------------------------------------------------------------------

def _build_sale_form(
    email: str,
    full_name: str,
    website: str,
    sale_id: str,
    price_cents: int,
    product_name: str,
    plain_website_key: bool,
) -> dict:
    """
    Build a sale ping (form fields).

    The platform sends the checkout custom field as ``custom_fields[website]``;
    older products send a plain ``website`` key.
    """
    website_key = "website" if plain_website_key else "custom_fields[website]"
    return {
        "email": email,
        "full_name": full_name,
        "product_name": product_name,
        "price": str(price_cents),
        "sale_id": sale_id,
        website_key: website,
        "test": "true",
    }


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        body = response.json()
        print(json.dumps(body, indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    parser = argparse.ArgumentParser(
        prog="send_test_sale.py",
        description="Send a test sale webhook to the Cyrnel Origin audit engine.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_sale.py
              python scripts/send_test_sale.py --website https://www.example.com
              python scripts/send_test_sale.py --email you@example.com
              python scripts/send_test_sale.py --url http://localhost:8000
        """),
    )
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--email",
        default="jane@acme.com",
        help="Buyer email the audit is delivered to (default: jane@acme.com)",
    )
    parser.add_argument(
        "--name",
        default="Jane Doe",
        help='Buyer full name (default: "Jane Doe")',
    )
    parser.add_argument(
        "--website",
        default="https://www.acme.com",
        help="Website entered at checkout (default: https://www.acme.com)",
    )
    parser.add_argument(
        "--plain-website-key",
        action="store_true",
        help="Send the website as `website` instead of `custom_fields[website]`.",
    )
    parser.add_argument(
        "--sale-id",
        default=None,
        help="Sale id (default: a generated TEST-<timestamp> id)",
    )
    parser.add_argument(
        "--price",
        type=int,
        default=9900,
        metavar="CENTS",
        help="Price in cents (default: 9900)",
    )
    parser.add_argument(
        "--product",
        default="AI Audit",
        help='Product name (default: "AI Audit")',
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the form body without sending it.",
    )

    args = parser.parse_args()

    form = _build_sale_form(
        email=args.email,
        full_name=args.name,
        website=args.website,
        sale_id=args.sale_id or f"TEST-{int(time.time())}",
        price_cents=args.price,
        product_name=args.product,
        plain_website_key=args.plain_website_key,
    )
    body = urlencode(form)

    endpoint = f"{args.url.rstrip('/')}/api/webhooks/process-sale"

    print(f"\nEndpoint : {endpoint}")
    print(f"Buyer    : {args.name} <{args.email}>")
    print(f"Website  : {args.website}")
    print(f"Sale id  : {form['sale_id']}")

    if args.dry_run:
        print("\n[DRY RUN] Body:")
        print(body)
        return 0

    try:
        response = httpx.post(
            endpoint,
            content=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=120,
        )
        _print_response(response)
        return 0 if response.status_code == 200 else 1
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && source .venv/bin/activate && uvicorn app.main:app --reload",
            file=sys.stderr,
        )
        return 1
    except httpx.HTTPError as exc:
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
