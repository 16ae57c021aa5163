from datetime import datetime, timedelta

import pytest

from surfaced.analytics.trends import BrandAnalytics, parse_platform_result


@pytest.fixture
def brand(db):
    brand = db.upsert_brand("Blue Bottle", "bluebottlecoffee.com")
    db.save_brand_check(
        brand.id,
        aeo_score=40,
        chatgpt_result={"mentioned": True, "position": 2, "sentiment": "positive"},
        claude_result={"mentioned": False},
        checked_at=datetime.utcnow() - timedelta(days=2),
    )
    db.save_brand_check(
        brand.id,
        aeo_score=60,
        chatgpt_result={"mentioned": True, "position": 4, "sentiment": "ecstatic"},
        claude_result={"mentioned": True, "position": None, "sentiment": "negative"},
        checked_at=datetime.utcnow(),
    )
    return brand


def test_parse_platform_result_defaults():
    assert parse_platform_result(None) == {"mentioned": False, "position": None, "sentiment": "neutral"}
    assert parse_platform_result({"mentioned": 1, "position": 0})["position"] is None


def test_share_of_voice(db, brand):
    rows = {r["platform"]: r for r in BrandAnalytics(db).share_of_voice(brand.id)}

    assert rows["chatgpt"]["mentions"] == 2
    assert rows["chatgpt"]["share_percent"] == 100.0
    assert rows["chatgpt"]["avg_position"] == 3.0
    assert rows["chatgpt"]["sentiment"] == {"positive": 1, "neutral": 1, "negative": 0}
    assert rows["claude"]["share_percent"] == 50.0
    assert rows["claude"]["avg_position"] is None
    assert rows["perplexity"]["mentions"] == 0


def test_trend_data_groups_by_day(db, brand):
    trends = BrandAnalytics(db).trend_data(brand.id)

    assert [t["aeo_score"] for t in trends] == [40, 60]
    assert [t["mention_rate"] for t in trends] == [25.0, 50.0]
    assert [t["avg_position"] for t in trends] == [2.0, 4.0]


def test_compare_with_competitors(db, brand):
    rival = db.upsert_brand("Stumptown")

    comparison = BrandAnalytics(db).compare_with_competitors(brand.id, [rival.id, 999])

    assert [c["brand"] for c in comparison] == ["Blue Bottle", "Stumptown"]
    assert comparison[0]["aeo_score"] == 60
    assert comparison[0]["mention_rate"] == 50.0
    assert comparison[1]["platforms"] == []


def test_analytics_summary(db, brand):
    summary = BrandAnalytics(db).analytics_summary(brand.id)

    assert summary["current_score"] == 60
    assert summary["score_change"] == 0
    assert summary["total_checks"] == 2
    assert len(summary["position_history"]) == 8
