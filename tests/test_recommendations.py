from conftest import make_product
from surfaced.scoring.audit import ProductScorer
from surfaced.scoring.recommendations import (
    RecommendationContext,
    build_context,
    generate_recommendations,
    quick_wins,
)


def audit(product_id, has_images=True, has_description=True, description_length=200, issues=None):
    return {
        "shopify_product_id": product_id,
        "ai_score": 50,
        "issues": issues or [],
        "has_images": has_images,
        "has_description": has_description,
        "description_length": description_length,
    }


def titles(summary):
    return [r["title"] for r in summary["all_recommendations"]]


def test_new_shop_gets_onboarding_recommendations():
    summary = generate_recommendations(RecommendationContext())

    assert titles(summary) == ["Run visibility checks", "Track competitors"]
    assert summary["by_priority"] == {"critical": 0, "high": 0, "medium": 2, "low": 0}
    assert summary["by_category"]["visibility"] == 1
    assert summary["estimated_total_impact"] == 10


def test_recommendations_are_ordered_by_priority_then_impact():
    context = RecommendationContext(
        ai_score=70,
        product_audits=[
            audit("1", has_images=False),
            audit("2", has_description=False, description_length=0),
            audit("3", description_length=80),
        ],
        visibility_mentions=[False, False, False, False, True],
        competitor_count=1,
    )

    summary = generate_recommendations(context)

    assert titles(summary) == [
        "Add descriptions to products",
        "Add images to products",
        "Improve AI visibility",
        "Expand short descriptions",
    ]
    images = summary["all_recommendations"][1]
    assert images["description"].startswith("1 product has no images")
    assert images["metadata"] == {"product_ids": ["1"]}
    assert "20% of AI searches" in summary["all_recommendations"][2]["description"]
    # capped by the points left to gain
    assert summary["estimated_total_impact"] == 30
    assert [r["title"] for r in quick_wins(summary)] == ["Expand short descriptions"]


def test_issue_code_thresholds():
    seo_issues = [{"type": "warning", "code": "NO_SEO_TITLE", "message": ""}]
    context = RecommendationContext(
        product_audits=[audit(str(n), issues=seo_issues) for n in range(6)],
        visibility_mentions=[True],
        competitor_count=2,
    )

    summary = generate_recommendations(context)

    assert titles(summary) == ["Add SEO titles"]
    assert summary["all_recommendations"][0]["affected_products"] == 6


def test_top_recommendations_limited_to_five():
    seo = [
        {"code": "NO_SEO_TITLE"},
        {"code": "NO_SEO_DESCRIPTION"},
        {"code": "NO_PRODUCT_TYPE"},
        {"code": "NO_TAGS"},
    ]
    context = RecommendationContext(
        product_audits=[audit(str(n), has_images=False, issues=seo) for n in range(11)],
    )

    summary = generate_recommendations(context)

    assert summary["total_recommendations"] == 7
    assert len(summary["top_recommendations"]) == 5
    assert summary["all_recommendations"][-1]["title"] == "Add product tags"


def test_build_context_reads_storage(db, shop):
    result = ProductScorer().score(make_product())
    db.save_product_audits(shop.id, [result.to_row()])
    db.update_shop_audit_summary(shop.id, result.ai_score, 1)
    db.save_visibility_checks(shop.id, [{"platform": "chatgpt", "query": "q", "is_mentioned": True}])

    context = build_context(db, shop.shop_domain)

    assert context.ai_score == 46
    assert context.product_audits[0]["shopify_product_id"] == "1"
    assert context.product_audits[0]["issues"][0]["code"] == "NO_DESCRIPTION"
    assert context.visibility_mentions == [True]
    assert context.competitor_count == 0
