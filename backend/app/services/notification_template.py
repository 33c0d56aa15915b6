"""
HTML email template for the "deals expiring soon" notification.

Public API:
  render_expiring_deals_email(deals, frontend_url=None) -> (subject, html)
"""

import os
from datetime import date
from html import escape
from typing import List, Optional, Tuple

from app.models.deal import Deal

DEFAULT_FRONTEND_URL = "http://localhost:3000"

_BRAND_COLOR = "#FF6B35"

# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------

_DEAL_BLOCK = """\
      <div style="margin: 20px 0; padding: 15px; background: #f9f9f9; border-left: 4px solid {color};">
        <h3 style="margin: 0 0 10px 0; color: {color};">{restaurant}</h3>
        <p style="margin: 0 0 5px 0;"><strong>{description}</strong></p>
        <p style="margin: 0; color: #666;">
          💰 Save ${savings} |
          ⏰ Expires: {expires}
        </p>
      </div>
"""

_PAGE = """\
<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: 'Arial', sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ text-align: center; padding: 30px 0; background: linear-gradient(135deg, #FF6B35 0%, #F7931E 100%); color: white; border-radius: 10px 10px 0 0; }}
    .logo {{ font-size: 2.5rem; font-weight: bold; margin: 0; }}
    .content {{ background: white; padding: 30px; border-radius: 0 0 10px 10px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1 class="logo">🍔 DealDine</h1>
      <p style="margin: 10px 0 0 0;">Deals Expiring Soon!</p>
    </div>
    <div class="content">
      <p>Hey there! 👋</p>
      <p>You have <strong>{count}</strong> restaurant {noun} expiring in the next 3 days:</p>
{deals}
      <p style="margin-top: 30px;">Don't miss out on these savings! 🎉</p>
      <p style="text-align: center; margin-top: 30px;">
        <a href="{frontend_url}" style="display: inline-block; padding: 12px 30px; background: {color}; color: white; text-decoration: none; border-radius: 25px; font-weight: bold;">
          View All Deals
        </a>
      </p>
    </div>
  </div>
</body>
</html>
"""


def _plural(count: int) -> str:
    return "Deal" if count == 1 else "Deals"


def format_expiry(expiry: Optional[date]) -> str:
    """US-style short date, e.g. 2/20/2024."""
    if expiry is None:
        return "No expiry"
    return f"{expiry.month}/{expiry.day}/{expiry.year}"


def render_deal_block(deal: Deal) -> str:
    return _DEAL_BLOCK.format(
        color=_BRAND_COLOR,
        restaurant=escape(deal.restaurant),
        description=escape(deal.deal_description),
        savings=f"{deal.savings or 0:.2f}",
        expires=format_expiry(deal.expiry_date),
    )


def render_expiring_deals_email(
    deals: List[Deal],
    frontend_url: Optional[str] = None,
) -> Tuple[str, str]:
    """
    Build the subject line and HTML body for one user's expiring deals.
    """
    frontend_url = frontend_url or os.getenv("FRONTEND_URL", DEFAULT_FRONTEND_URL)
    count = len(deals)

    subject = f"⏰ {count} {_plural(count)} Expiring Soon!"
    html = _PAGE.format(
        count=count,
        noun=_plural(count).lower(),
        deals="".join(render_deal_block(d) for d in deals),
        frontend_url=escape(frontend_url, quote=True),
        color=_BRAND_COLOR,
    )
    return subject, html
