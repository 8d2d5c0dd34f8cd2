"""
External client configuration.
Uses Groq for audit generation and Resend for email delivery.

Each client is built once per process and handed to the webhook through
FastAPI dependencies; tests replace them with app.dependency_overrides.
"""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

from app.services.audit_generator import AuditGenerator
from app.services.email_delivery import ResendEmailClient

load_dotenv()

logger = logging.getLogger(__name__)


@lru_cache
def get_audit_generator() -> AuditGenerator:
    api_key = os.getenv("GROQ_API_KEY")
    if not api_key:
        logger.warning("GROQ_API_KEY not set - every audit will use the fallback text")
    return AuditGenerator(api_key=api_key)


@lru_cache
def get_email_client() -> ResendEmailClient:
    api_key = os.getenv("RESEND_API_KEY")
    if not api_key:
        logger.warning("RESEND_API_KEY not set - audit emails will not be delivered")
    return ResendEmailClient(api_key=api_key)
