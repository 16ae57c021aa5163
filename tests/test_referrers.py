import pytest

from surfaced.analytics.referrers import (
    AITrafficTracker,
    detect_ai_platform,
    generate_tracking_script,
    is_ai_referrer,
)
from surfaced.utils.errors import ValidationError


@pytest.mark.parametrize(
    "referrer,platform",
    [
        ("https://chatgpt.com/c/123", "chatgpt"),
        ("https://chat.openai.com/", "chatgpt"),
        ("www.perplexity.ai/search?q=socks", "perplexity"),
        ("https://claude.ai/chat/abc", "claude"),
        ("https://gemini.google.com/app", "gemini"),
        ("https://www.bing.com/chat?q=socks", "copilot"),
        ("https://you.com/search", "you"),
    ],
)
def test_detects_ai_platforms(referrer, platform):
    assert detect_ai_platform(referrer) == platform


@pytest.mark.parametrize(
    "referrer",
    [
        None,
        "",
        "https://www.google.com/search?q=socks",
        "https://www.bing.com/search?q=socks",
        "https://notchatgpt.com/",
        "https://example.com/?from=chatgpt.com",
    ],
)
def test_ignores_other_referrers(referrer):
    assert detect_ai_platform(referrer) is None
    assert not is_ai_referrer(referrer)


def test_tracking_script_embeds_sanitized_values():
    script = generate_tracking_script("cool-socks.myshopify.com<script>", "https://api.test/track/visit")

    assert 'var SHOP_DOMAIN = "cool-socks.myshopify.comscript";' in script
    assert 'var API_ENDPOINT = "https://api.test/track/visit";' in script
    assert "chatgpt.com" in script


def test_tracking_script_rejects_bad_endpoint():
    with pytest.raises(ValidationError):
        generate_tracking_script("cool-socks.myshopify.com", "javascript:alert(1)")


def test_traffic_stats(db, shop):
    tracker = AITrafficTracker(db)

    assert tracker.record_ai_visit(shop.shop_domain, "https://chatgpt.com/", "/products/a", session_id="s1") == "chatgpt"
    tracker.record_ai_visit(shop.shop_domain, "https://claude.ai/", "/products/a", session_id="s2")
    tracker.record_ai_visit(shop.shop_domain, "https://claude.ai/", "/products/b", session_id="s2")
    assert tracker.record_ai_visit(shop.shop_domain, "https://google.com/", "/", session_id="s3") is None
    tracker.record_ai_conversion(shop.shop_domain, "s2", order_id="1001", order_value=49.5)

    stats = tracker.get_ai_traffic_stats(shop.shop_domain)

    assert stats["total_visits"] == 3
    assert stats["unique_sessions"] == 2
    assert stats["platform_breakdown"] == {"chatgpt": 1, "claude": 2}
    assert stats["conversions"] == 1
    assert stats["conversion_rate"] == 50
    assert stats["total_conversion_value"] == 49.5
    assert stats["top_landing_pages"][0] == {"url": "/products/a", "visits": 2, "conversions": 1}
