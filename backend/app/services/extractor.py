"""
Deal extraction service.
Sends the plain-text body of a promotional email to Claude and turns the
reply into a DealDraft.

Claude is asked for a single JSON object but sometimes wraps it in prose,
so the reply is searched for the outermost {...} span before parsing. A reply
with no usable JSON means "no deal in this email", not an error.

Environment variables
---------------------
ANTHROPIC_API_KEY            API key for the extraction client.
ANTHROPIC_MODEL              Model name (default: MODEL).
EXTRACTION_TIMEOUT_SECONDS   Per-email timeout for the Claude call (default: 60).
"""

import asyncio
import json
import logging
import os
import re
from typing import Optional

import anthropic
from pydantic import ValidationError

from app.models.deal import DealDraft, DealType

logger = logging.getLogger(__name__)

# Model configuration
MODEL = "claude-sonnet-4-5-20250929"
MAX_TOKENS = 2000
DEFAULT_TIMEOUT_SECONDS = 60.0

DEAL_EXTRACTION_PROMPT = """\
You are a deal extraction expert. Analyze this promotional email and extract deal information.

EMAIL FROM: {sender}
SUBJECT: {subject}
CONTENT:
{content}

Extract the following information and respond in JSON format:
{
  "restaurant": "Restaurant name",
  "dealDescription": "Clear description of the deal/offer",
  "originalPrice": 15.99 (number or null),
  "discountedPrice": 7.99 (number or null),
  "savings": 8.00 (calculated savings as number),
  "expiryDate": "2024-02-20" (ISO date string or null if no expiry),
  "dealCode": "SAVE50" (promo code if any, or null),
  "termsAndConditions": "Brief terms if mentioned",
  "dealType": "{deal_types}"
}

If you cannot find certain information, use null. Be accurate and extract only what's clearly stated.
"""

# Greedy on purpose: first "{" through last "}" so nested objects stay intact.
_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)

_PLACEHOLDER = re.compile(r"\{(sender|subject|content|deal_types)\}")


def build_extraction_prompt(content: str, subject: str, sender: str) -> str:
    values = {
        "sender": sender or "",
        "subject": subject or "",
        "content": content or "",
        "deal_types": "|".join(t.value for t in DealType),
    }
    # Single pass so placeholder text inside the email is never expanded.
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], DEAL_EXTRACTION_PROMPT)


def extract_json_object(text: Optional[str]) -> Optional[dict]:
    """
    Recover the JSON object embedded in a free-text model reply.

    Returns None when the reply has no {...} span, the span is not valid
    JSON, or it decodes to something other than an object.
    """
    if not text:
        return None

    match = _JSON_SPAN.search(text)
    if not match:
        return None

    try:
        parsed = json.loads(match.group(0))
    except (ValueError, RecursionError):
        return None

    if not isinstance(parsed, dict):
        return None
    return parsed


def parse_deal_draft(payload: Optional[dict]) -> Optional[DealDraft]:
    """Validate an extracted payload into a DealDraft (None if it won't fit)."""
    if payload is None:
        return None
    try:
        return DealDraft.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Extraction payload did not validate as a deal: {e}")
        return None


def create_extraction_client(api_key: Optional[str] = None) -> anthropic.AsyncAnthropic:
    """Build the Claude client used for deal extraction."""
    if api_key is None:
        api_key = os.getenv("ANTHROPIC_API_KEY")
    return anthropic.AsyncAnthropic(api_key=api_key)


def _timeout_seconds() -> float:
    raw = os.getenv("EXTRACTION_TIMEOUT_SECONDS", "").strip()
    try:
        return float(raw) if raw else DEFAULT_TIMEOUT_SECONDS
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS


async def extract_deal_with_claude(
    client,
    email_content: str,
    subject: str,
    sender: str,
    timeout: Optional[float] = None,
) -> Optional[DealDraft]:
    """
    Ask Claude for the deal in one email.

    Args:
        client: anthropic.AsyncAnthropic (or anything with the same
            ``messages.create`` coroutine)
        email_content: Plain-text body of the email
        subject: Subject header
        sender: From header
        timeout: Seconds to wait for the reply (default from env)

    Returns:
        DealDraft, or None if the call failed, timed out, or the reply held
        no parsable deal. Failures are logged; nothing is retried.
    """
    if timeout is None:
        timeout = _timeout_seconds()

    prompt = build_extraction_prompt(email_content, subject, sender)

    try:
        response = await asyncio.wait_for(
            client.messages.create(
                model=os.getenv("ANTHROPIC_MODEL", MODEL),
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Claude extraction timed out after {timeout}s (subject={subject!r})")
        return None
    except Exception as e:
        logger.error(f"Claude extraction failed (subject={subject!r}): {e}")
        return None

    try:
        raw_text = response.content[0].text
    except (AttributeError, IndexError, TypeError):
        logger.warning(f"Claude returned no text content (subject={subject!r})")
        return None

    payload = extract_json_object(raw_text)
    if payload is None:
        logger.warning(f"No JSON deal found in Claude response (subject={subject!r})")
        return None

    return parse_deal_draft(payload)
