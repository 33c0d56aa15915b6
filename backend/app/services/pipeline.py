"""
Deal scan pipeline: Gmail message -> DealDraft + images -> stored Deal.

Per email:
  1. fetch the full message
  2. flatten MIME parts, pull out text/HTML/inline images
  3. skip if there is no plain text, or the email already produced a deal
  4. ask Claude for the deal (None -> skip)
  5. classify images, pick deal image + logo
  6. insert the deal row

Emails are processed concurrently up to a bound; a failure in one email is
logged and skipped without affecting the rest. Only the initial Gmail search
can fail the whole scan.

Environment variables
---------------------
SCAN_CONCURRENCY   Max emails processed at once (default: 5).
SCAN_MAX_RESULTS   Max messages requested from Gmail per scan (default: 50).
"""

import asyncio
import logging
import os
from typing import List, Optional

from app.models.deal import Deal, DealCreate, DealDraft
from app.models.email import EmailImages, RawEmail
from app.models.user import User
from app.services.extractor import extract_deal_with_claude
from app.services.gmail_client import DEFAULT_MAX_RESULTS
from app.services.images import (
    classify_images,
    select_best_deal_image,
    select_best_logo_image,
)
from app.services.mime_parts import extract_email_content

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5


def scan_concurrency() -> int:
    try:
        return max(1, int(os.getenv("SCAN_CONCURRENCY", DEFAULT_CONCURRENCY)))
    except ValueError:
        return DEFAULT_CONCURRENCY


def scan_max_results() -> int:
    try:
        return max(1, int(os.getenv("SCAN_MAX_RESULTS", DEFAULT_MAX_RESULTS)))
    except ValueError:
        return DEFAULT_MAX_RESULTS


def assemble_deal(
    user_id: str,
    email_id: str,
    draft: Optional[DealDraft],
    images: EmailImages,
) -> Optional[DealCreate]:
    """
    Combine an extracted draft with the email's images into an insert payload.

    Returns None when there is no draft or it lacks a restaurant or
    description.
    """
    if draft is None or not draft.is_complete:
        return None

    return DealCreate(
        user_id=user_id,
        email_id=email_id,
        restaurant=draft.restaurant,
        deal_description=draft.deal_description,
        original_price=draft.original_price,
        discounted_price=draft.discounted_price,
        savings=draft.savings if draft.savings is not None else 0.0,
        expiry_date=draft.expiry_date,
        deal_code=draft.deal_code,
        terms_and_conditions=draft.terms_and_conditions,
        deal_type=draft.deal_type,
        image_url=select_best_deal_image(images),
        logo_url=select_best_logo_image(images, draft.restaurant),
        is_active=True,
        is_notified=False,
    )


async def process_email(
    email: RawEmail,
    user: User,
    extraction_client,
    store,
) -> Optional[Deal]:
    """
    Turn one fetched email into a stored deal.

    Returns the saved Deal, or None if the email was skipped. Storage errors
    propagate to the caller.
    """
    content = extract_email_content(email)
    if not content.text:
        logger.info(f"Skipping email {email.id}: no text/plain body")
        return None

    existing = await store.find_deal_by_email_id(user.id, email.id)
    if existing is not None:
        logger.info(f"Skipping email {email.id}: deal {existing.id} already stored")
        return None

    draft = await extract_deal_with_claude(
        extraction_client,
        content.text,
        email.subject,
        email.sender,
    )
    if draft is None:
        return None

    images = classify_images(content.html, content.inline_images)
    deal = assemble_deal(user.id, email.id, draft, images)
    if deal is None:
        logger.warning(f"Discarding extraction for email {email.id}: missing restaurant or description")
        return None

    return await store.insert_deal(deal)


async def scan_user_deals(
    user: User,
    gmail,
    extraction_client,
    store,
    max_results: Optional[int] = None,
    concurrency: Optional[int] = None,
) -> List[Deal]:
    """
    Scan a user's promotional mail and store any new deals.

    Raises:
        GmailAPIError: if the initial search fails (nothing is processed)

    Returns:
        Newly stored deals, in mailbox order.
    """
    max_results = max_results or scan_max_results()
    concurrency = concurrency or scan_concurrency()

    message_ids = await gmail.search_promotional_emails(max_results=max_results)
    logger.info(f"Found {len(message_ids)} promotional emails for {user.email}")

    semaphore = asyncio.Semaphore(concurrency)

    async def _one(message_id: str) -> Optional[Deal]:
        async with semaphore:
            try:
                email = await gmail.fetch(message_id)
                return await process_email(email, user, extraction_client, store)
            except Exception as e:
                logger.error(f"Error processing email {message_id}: {e}")
                return None

    results = await asyncio.gather(*(_one(mid) for mid in message_ids))
    deals = [d for d in results if d is not None]

    logger.info(f"Scan for {user.email} stored {len(deals)} new deals")
    return deals
