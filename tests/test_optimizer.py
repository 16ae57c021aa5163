from datetime import datetime, timedelta

import pytest

from conftest import FakeLLM, make_product
from surfaced.scoring.optimizer import (
    OPTIMIZATION_ACTION,
    ContentOptimizer,
    content_score,
    parse_meta_tags,
)
from surfaced.shopify.graphql import ProductImage
from surfaced.storage.models import AuditLog
from surfaced.utils.errors import ExternalServiceError, PlanLimitError, ServiceUnavailableError

DESCRIPTION = "Soft merino wool keeps feet warm and dry on long trail days. " * 8
TAGS = "merino, hiking, wool, socks, outdoor, trail"


def writer(prompt):
    """Answer each suggestion prompt with a plausible draft."""
    if prompt.startswith("Write an AI-friendly product description"):
        return DESCRIPTION
    if prompt.startswith("Write an SEO page title"):
        return '"Merino Hiking Sock | Cool Socks"'
    if prompt.startswith("Write an SEO meta description"):
        return "Warm, breathable merino hiking socks built for long trails. Shop the Cool Socks range today."
    if prompt.startswith("Suggest product tags"):
        return TAGS
    if prompt.startswith("Write alt text"):
        return "Merino hiking sock shown on a trail boot"
    return ""


def test_content_score_penalties_and_bonuses():
    assert content_score("", None, None, []) == 45
    assert content_score("short", "Title", "Meta", ["a", "b"]) == 73
    assert content_score("x" * 200, "Title", None, ["a", "b", "c"]) == 95
    assert content_score("x" * 300, "Title", "Meta", ["a", "b", "c", "d", "e"]) == 100


def test_parse_meta_tags_strips_code_fence():
    text = '```json\n{"seo_title": " Merino Sock ", "og_title": ""}\n```'
    assert parse_meta_tags(text) == {"seo_title": "Merino Sock"}

    with pytest.raises(ValueError):
        parse_meta_tags('["not", "an", "object"]')


async def test_suggest_content_drafts_every_weak_field(db, shop):
    llm = FakeLLM({"chatgpt": writer})
    optimizer = ContentOptimizer(db, llm)

    result = await optimizer.suggest_content(shop.shop_domain, make_product())

    assert result["product_id"] == "1"
    assert result["current_score"] == 48
    assert result["estimated_score"] == 100
    suggestions = {s["field"]: s for s in result["suggestions"]}
    assert set(suggestions) == {"description", "seo_title", "seo_description", "tags"}
    assert suggestions["seo_title"]["suggested"] == "Merino Hiking Sock | Cool Socks"
    assert suggestions["tags"]["original"] == "hiking"
    assert suggestions["description"]["improvement"] == "Added a product description"
    assert len(llm.calls) == 4

    log = db.get_audit_logs(shop.id, action=OPTIMIZATION_ACTION)[0]
    assert log.details == {"type": "content", "product_id": "1", "suggestions_count": 4}


async def test_suggest_content_skips_fields_already_good(db, shop):
    llm = FakeLLM({"chatgpt": writer})
    product = make_product(
        description=DESCRIPTION,
        seo_title="Merino Hiking Sock",
        seo_description="Warm socks",
        tags=["a", "b", "c", "d", "e"],
    )

    result = await ContentOptimizer(db, llm).suggest_content(shop.shop_domain, product)

    assert result["suggestions"] == []
    assert result["current_score"] == result["estimated_score"] == 100
    assert llm.calls == []
    assert db.count_audit_logs(shop.id, OPTIMIZATION_ACTION) == 0


async def test_failed_fields_are_left_out(db, shop):
    def flaky(prompt):
        if prompt.startswith("Suggest product tags"):
            raise RuntimeError("boom")
        return writer(prompt)

    result = await ContentOptimizer(db, FakeLLM({"chatgpt": flaky})).suggest_content(
        shop.shop_domain, make_product()
    )

    assert [s["field"] for s in result["suggestions"]] == ["description", "seo_title", "seo_description"]


async def test_writer_prefers_chatgpt_and_needs_a_platform(db, shop):
    llm = FakeLLM({"gemini": writer, "chatgpt": writer}, platforms=("gemini", "chatgpt"))
    await ContentOptimizer(db, llm).suggest_content(shop.shop_domain, make_product())
    assert {key for key, _ in llm.calls} == {"chatgpt"}

    with pytest.raises(ServiceUnavailableError):
        await ContentOptimizer(db, FakeLLM(platforms=())).suggest_content(shop.shop_domain, make_product())


async def test_monthly_quota_is_enforced(db):
    shop = db.upsert_shop("tiny.myshopify.com", name="Tiny", plan="FREE")
    optimizer = ContentOptimizer(db, FakeLLM({"chatgpt": writer}))

    for _ in range(3):
        await optimizer.suggest_content(shop.shop_domain, make_product())

    assert optimizer.check_quota(shop.shop_domain) == {"available": False, "used": 3, "limit": 3, "remaining": 0}
    with pytest.raises(PlanLimitError) as exc:
        await optimizer.suggest_content(shop.shop_domain, make_product())
    assert exc.value.details == {"limit": 3, "used": 3}
    assert "AI optimization limit reached (3/month)" in exc.value.message


def test_last_months_optimizations_do_not_count(db):
    shop = db.upsert_shop("tiny.myshopify.com", name="Tiny", plan="FREE")
    for _ in range(3):
        db.record_audit_log(shop.id, OPTIMIZATION_ACTION, {"type": "content"})

    month_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    with db.session() as session:
        for entry in session.query(AuditLog).filter(AuditLog.action == OPTIMIZATION_ACTION):
            entry.created_at = month_start - timedelta(days=1)

    quota = ContentOptimizer(db, FakeLLM()).check_quota(shop.shop_domain)
    assert quota == {"available": True, "used": 0, "limit": 3, "remaining": 3}


async def test_suggest_alt_text_only_for_weak_images(db, shop):
    llm = FakeLLM({"chatgpt": writer})
    product = make_product(images=0)
    product.images = [
        ProductImage(url="https://cdn.test/a.jpg", alt_text="Merino hiking sock, side view"),
        ProductImage(url="https://cdn.test/b.jpg", alt_text="sock"),
        ProductImage(url="https://cdn.test/c.jpg", alt_text=None),
    ]

    result = await ContentOptimizer(db, llm).suggest_alt_text(shop.shop_domain, product)

    assert [s["image_url"] for s in result["suggestions"]] == ["https://cdn.test/b.jpg", "https://cdn.test/c.jpg"]
    assert result["suggestions"][0]["original_alt"] == "sock"
    assert result["suggestions"][0]["suggested_alt"] == "Merino hiking sock shown on a trail boot"
    assert db.get_audit_logs(shop.id, action=OPTIMIZATION_ACTION)[0].details["type"] == "alt_text"


async def test_suggest_alt_text_with_nothing_to_fix(db, shop):
    llm = FakeLLM({"chatgpt": writer})
    product = make_product(alt_text="Merino hiking sock, side view")

    result = await ContentOptimizer(db, llm).suggest_alt_text(shop.shop_domain, product)

    assert result["suggestions"] == []
    assert llm.calls == []


async def test_suggest_meta_tags(db, shop):
    answer = (
        '{"seo_title": "Merino Hiking Sock | Cool Socks", "seo_description": "Warm merino socks.", '
        '"og_title": "Merino Hiking Sock for long trails"}'
    )
    product = make_product(seo_title="Sock")

    result = await ContentOptimizer(db, FakeLLM({"chatgpt": answer})).suggest_meta_tags(shop.shop_domain, product)

    suggestions = result["suggestions"]
    assert suggestions["seo_title"]["original"] == "Sock"
    assert suggestions["seo_title"]["suggested"] == "Merino Hiking Sock | Cool Socks"
    assert "original" not in suggestions["og_title"]
    assert suggestions["og_description"] is None
    log = db.get_audit_logs(shop.id, action=OPTIMIZATION_ACTION)[0]
    assert log.details["type"] == "meta_tags"
    assert log.details["suggestions_count"] == 3


async def test_unparseable_meta_tags_raise(db, shop):
    optimizer = ContentOptimizer(db, FakeLLM({"chatgpt": "Here are some great tags!"}))

    with pytest.raises(ExternalServiceError) as exc:
        await optimizer.suggest_meta_tags(shop.shop_domain, make_product())
    assert "Failed to generate meta tags" in exc.value.message
    assert db.count_audit_logs(shop.id, OPTIMIZATION_ACTION) == 0


def test_products_for_optimization(db, shop):
    db.save_product_audits(
        shop.id,
        [
            {"shopify_product_id": "1", "title": "Good Sock", "ai_score": 85, "issues": []},
            {
                "shopify_product_id": "2",
                "title": "Bare Sock",
                "ai_score": 30,
                "issues": [{"type": "critical", "code": "NO_DESCRIPTION", "message": "No description"}],
            },
            {"shopify_product_id": "3", "title": "Plain Sock", "ai_score": 55, "issues": []},
        ],
    )

    products = ContentOptimizer(db, FakeLLM()).products_for_optimization(shop.shop_domain)

    assert [p["shopify_product_id"] for p in products] == ["2", "3"]
    assert products[0]["issues"] == [{"code": "NO_DESCRIPTION", "message": "No description"}]
