import pytest

from conftest import FakeLLM
from surfaced.utils.errors import PlanLimitError, ValidationError
from surfaced.visibility.competitors import (
    CompetitorService,
    build_insights,
    compare_response,
    comparison_queries,
)

RIVALS = [{"domain": "warmfeet.com", "name": "Warm Feet"}, {"domain": "sockhub.com", "name": None}]


def test_comparison_queries_fill_missing_titles():
    assert comparison_queries(["Merino Sock"]) == [
        "What are the best online stores for Merino Sock?",
        "Recommend top brands for shopping online",
        "Where should I buy quality products?",
    ]


def test_compare_response_picks_best_ranked_winner():
    response = "1. Amazon\n2. Cool Socks\n3. Warm Feet"

    result = compare_response("q", response, "Cool Socks", "cool-socks.myshopify.com", RIVALS)

    assert result["your_brand"]["position"] == 2
    assert result["competitors"][0]["position"] == 3
    assert result["competitors"][1]["is_mentioned"] is False
    assert result["winner"] == "Cool Socks"
    assert result["gap"] == "Great! Your brand is in the top 3 recommendations."


def test_compare_response_when_only_rivals_are_named():
    result = compare_response("q", "1. Warm Feet", "Cool Socks", "cool-socks.myshopify.com", RIVALS)

    assert result["winner"] == "Warm Feet"
    assert result["gap"] == "Your brand is not mentioned but Warm Feet is."


def test_compare_response_low_rank():
    response = "1. A\n2. B\n3. C\n4. D\n5. Cool Socks"

    result = compare_response("q", response, "Cool Socks", "cool-socks.myshopify.com", [])

    assert "ranked #5" in result["gap"]


def test_insights_when_invisible():
    stats = [{"domain": "warmfeet.com", "name": "Warm Feet", "mention_rate": 67}]

    insights = build_insights(0, stats)

    assert [i["type"] for i in insights] == ["danger", "warning"]
    assert insights[1]["title"] == "Warm Feet is beating you"


def test_insights_when_trailing_and_leading():
    stats = [{"domain": "warmfeet.com", "name": None, "mention_rate": 100}]
    trailing = build_insights(50, stats)
    assert trailing[0]["description"] == "warmfeet.com has 100% mention rate vs your 50%."
    assert trailing[1]["description"].startswith("They appear 50% more often")

    leading = build_insights(100, [dict(stats[0], mention_rate=50)])
    assert [i["type"] for i in leading] == ["opportunity"]


def test_beating_you_needs_a_lead_above_the_margin():
    at_margin = build_insights(30, [{"domain": "warmfeet.com", "name": "Warm Feet", "mention_rate": 50}])
    assert [i["title"] for i in at_margin] == ["Competitors outperforming you"]

    past_margin = build_insights(30, [{"domain": "warmfeet.com", "name": "Warm Feet", "mention_rate": 51}])
    assert past_margin[-1]["title"] == "Warm Feet is beating you"


def test_competitor_limit(db, shop):
    service = CompetitorService(db, FakeLLM(), query_delay=0)
    for domain in ("a.com", "https://B.com/", "c.com"):
        service.add_competitor(shop.shop_domain, domain)

    with pytest.raises(PlanLimitError):
        service.add_competitor(shop.shop_domain, "d.com")

    # already tracked, so the limit does not apply
    assert service.add_competitor(shop.shop_domain, "b.com", name="Bee").name == "Bee"

    listing = service.get_competitors(shop.shop_domain)
    assert [c["domain"] for c in listing["competitors"]] == ["a.com", "b.com", "c.com"]
    assert listing["remaining"] == 0

    assert service.remove_competitor(shop.shop_domain, "A.com")
    assert service.get_competitors(shop.shop_domain)["remaining"] == 1


def test_empty_domain_is_rejected(db, shop):
    with pytest.raises(ValidationError):
        CompetitorService(db, FakeLLM()).add_competitor(shop.shop_domain, "  ")


async def test_analysis_requires_competitors(db, shop):
    with pytest.raises(ValidationError):
        await CompetitorService(db, FakeLLM()).run_competitor_analysis(shop.shop_domain)


async def test_competitor_analysis_round_trip(db, shop):
    llm = FakeLLM(default="1. Warm Feet\n2. Cool Socks")
    service = CompetitorService(db, llm, query_delay=0)
    service.add_competitor(shop.shop_domain, "warmfeet.com", name="Warm Feet")

    report = await service.run_competitor_analysis(shop.shop_domain, product_titles=["Merino Sock"])

    assert len(llm.calls) == 3
    assert report["competitors"] == [
        {"domain": "warmfeet.com", "name": "Warm Feet", "mention_rate": 100, "average_position": 1}
    ]
    assert report["summary"] == {
        "your_mention_rate": 100,
        "best_competitor_mention_rate": 100,
        "gap_percentage": 0,
    }
    assert [i["type"] for i in report["insights"]] == ["opportunity"]

    last = service.get_last_analysis(shop.shop_domain)
    assert last["queries_run"] == 3
    assert last["avg_position"] == 2
    assert last["competitors"] == [{"domain": "warmfeet.com", "mention_rate": 100, "avg_position": 1}]

    trends = service.get_competitor_trends(shop.shop_domain)
    assert len(trends["dates"]) == 1
    assert trends["your_brand"] == {"mention_rates": [100], "avg_positions": [2]}
    assert trends["competitors"][0]["mention_rates"] == [100]


async def test_failed_comparison_queries_are_skipped(db, shop):
    llm = FakeLLM({"chatgpt": RuntimeError("down")})
    service = CompetitorService(db, llm, query_delay=0)
    service.add_competitor(shop.shop_domain, "warmfeet.com", name="Warm Feet")

    report = await service.run_competitor_analysis(shop.shop_domain)

    assert report["comparisons"] == []
    assert report["summary"]["your_mention_rate"] == 0
    assert service.get_last_analysis(shop.shop_domain) is None
