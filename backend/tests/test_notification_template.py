"""
Tests for the expiring-deals email template.
"""

from datetime import date

from app.models.deal import Deal
from app.services.notification_template import (
    format_expiry,
    render_deal_block,
    render_expiring_deals_email,
)


def _deal(**overrides) -> Deal:
    data = {
        "id": "deal-1",
        "user_id": "user-1",
        "email_id": "msg-1",
        "restaurant": "Subway",
        "deal_description": "$6.99 Footlong",
        "savings": 3,
        "expiry_date": date(2026, 10, 21),
    }
    data.update(overrides)
    return Deal(**data)


class TestFormatExpiry:

    def test_us_short_date_without_padding(self):
        assert format_expiry(date(2024, 2, 5)) == "2/5/2024"

    def test_missing_expiry(self):
        assert format_expiry(None) == "No expiry"


class TestRenderDealBlock:

    def test_contains_restaurant_description_savings_and_expiry(self):
        block = render_deal_block(_deal())

        assert "Subway" in block
        assert "$6.99 Footlong" in block
        assert "Save $3.00" in block
        assert "Expires: 10/21/2026" in block

    def test_html_in_deal_text_is_escaped(self):
        block = render_deal_block(_deal(restaurant="A&W", deal_description="<b>Free</b> float"))

        assert "A&amp;W" in block
        assert "&lt;b&gt;Free&lt;/b&gt; float" in block
        assert "<b>Free</b>" not in block


class TestRenderExpiringDealsEmail:

    def test_singular_subject(self):
        subject, html = render_expiring_deals_email([_deal()], frontend_url="https://dealdine.app")

        assert subject == "⏰ 1 Deal Expiring Soon!"
        assert "<strong>1</strong> restaurant deal expiring" in html

    def test_plural_subject_and_every_deal_listed(self):
        deals = [
            _deal(id="d1", restaurant="KFC"),
            _deal(id="d2", restaurant="Wendy's"),
            _deal(id="d3", restaurant="Chipotle"),
        ]

        subject, html = render_expiring_deals_email(deals, frontend_url="https://dealdine.app")

        assert subject == "⏰ 3 Deals Expiring Soon!"
        assert "<strong>3</strong> restaurant deals expiring" in html
        assert html.index("KFC") < html.index("Wendy&#x27;s") < html.index("Chipotle")

    def test_links_to_frontend(self):
        _, html = render_expiring_deals_email([_deal()], frontend_url="https://dealdine.app")

        assert 'href="https://dealdine.app"' in html

    def test_frontend_url_defaults_from_env(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://staging.dealdine.app")

        _, html = render_expiring_deals_email([_deal()])

        assert 'href="https://staging.dealdine.app"' in html

    def test_css_braces_render_literally(self):
        _, html = render_expiring_deals_email([_deal()], frontend_url="https://dealdine.app")

        assert "body { font-family:" in html
