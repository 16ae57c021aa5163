import pytest

from surfaced.analytics.benchmarks import (
    INDUSTRY_BENCHMARKS,
    compare_to_industry,
    detect_industry,
    detect_industry_from_titles,
    score_percentile,
)
from surfaced.utils.errors import ValidationError


def test_every_industry_has_a_benchmark():
    assert len(INDUSTRY_BENCHMARKS) == 12
    fashion = INDUSTRY_BENCHMARKS["fashion"].to_dict()
    assert fashion["metrics"]["avg_ai_score"] == 62
    assert fashion["sample_size"] == 1500


def test_detect_industry_from_titles():
    assert detect_industry_from_titles(["Leather Dog Collar", "Cat Treat Bag"]) == "pets"
    # a single keyword is not enough
    assert detect_industry_from_titles(["Merino Hiking Sock", "Dress Sock"]) == "other"
    assert detect_industry_from_titles([]) == "other"


def test_detect_industry_from_audits(db, shop):
    db.save_product_audits(
        shop.id,
        [
            {"shopify_product_id": "1", "title": "Yoga Mat"},
            {"shopify_product_id": "2", "title": "Running Tights"},
            {"shopify_product_id": "3", "title": "Gym Bag"},
        ],
    )

    assert detect_industry(db, shop.shop_domain) == "sports"
    assert detect_industry(db, "unknown.myshopify.com") == "other"


def test_score_percentile_interpolates_between_markers():
    fashion = INDUSTRY_BENCHMARKS["fashion"]

    assert score_percentile(None, fashion) == 50
    assert score_percentile(0, fashion) == 0
    assert score_percentile(59, fashion) == 31
    assert score_percentile(66, fashion) == 56
    assert score_percentile(78, fashion) == 75
    assert score_percentile(100, fashion) == 97


def test_compare_to_industry(db, shop):
    db.update_shop_audit_summary(shop.id, 80, 2)
    db.save_product_audits(
        shop.id,
        [
            {"shopify_product_id": "1", "title": "Wool Sock", "ai_score": 85, "has_images": True,
             "description_length": 400, "issues": []},
            {"shopify_product_id": "2", "title": "Trail Sock", "ai_score": 75, "has_images": True,
             "description_length": 300, "issues": [{"type": "warning", "code": "NO_SEO_TITLE"}]},
        ],
    )
    db.save_visibility_checks(
        shop.id, [{"platform": "chatgpt", "query": f"q{i}", "is_mentioned": False} for i in range(4)]
    )

    report = compare_to_industry(db, shop.shop_domain, "fashion")

    assert report["shop"] == {
        "ai_score": 80,
        "visibility_rate": 0,
        "avg_description_length": 350,
        "products_with_images": 100,
        "products_with_seo": 50,
    }
    comparison = report["comparison"]
    assert comparison["score_vs_avg"] == 18
    assert comparison["score_percentile"] == 77
    assert comparison["visibility_vs_avg"] == -35
    assert comparison["description_length_vs_avg"] == 70
    assert comparison["strengths"] == [
        "Your AI score is well above industry average",
        "Excellent product image coverage",
        "Detailed product descriptions",
    ]
    assert comparison["weaknesses"] == ["AI visibility is below industry average"]


def test_compare_to_unknown_industry(db, shop):
    with pytest.raises(ValidationError):
        compare_to_industry(db, shop.shop_domain, "space_travel")
