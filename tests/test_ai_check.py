import pytest

from conftest import FakeLLM
from surfaced.utils.errors import NotFoundError
from surfaced.visibility.ai_check import (
    AIChecker,
    BrandMonitor,
    analyze_brand_response,
    brand_recommendations,
    calculate_aeo_score,
)

ANSWER = "Top picks:\n1. Nike\n2. Blue Bottle is excellent for coffee lovers"


def platform_result(mentioned, position=None, sentiment="neutral", competitors=(), name="ChatGPT"):
    return {
        "display_name": name,
        "mentioned": mentioned,
        "position": position,
        "sentiment": sentiment,
        "competitors": list(competitors),
    }


def test_analyze_brand_response():
    result = analyze_brand_response(ANSWER, "Blue Bottle")

    assert result["mentioned"]
    assert result["position"] == 2
    assert result["sentiment"] == "positive"
    assert result["snippet"] == ANSWER
    assert result["competitors"] == ["nike"]


def test_snippet_gets_ellipses_when_cut():
    response = "a" * 80 + " BlueBottle roasts beans " + "b" * 200

    result = analyze_brand_response(response, "BlueBottle")

    assert result["snippet"].startswith("...")
    assert result["snippet"].endswith("...")


def test_unmentioned_brand():
    result = analyze_brand_response("I have not heard of that company.", "Blue Bottle")

    assert result == {
        "mentioned": False,
        "position": None,
        "sentiment": "neutral",
        "snippet": "",
        "competitors": [],
    }


def test_aeo_score():
    assert calculate_aeo_score([]) == 0
    assert calculate_aeo_score([platform_result(True, 2, "positive")]) == 100
    assert calculate_aeo_score([platform_result(True), platform_result(False)]) == 30


def test_brand_recommendations():
    results = [
        platform_result(True, sentiment="negative", competitors=["apple"]),
        platform_result(False, name="Claude"),
    ]

    recommendations = brand_recommendations(results, "Blue Bottle")

    assert recommendations[0].startswith("Improve visibility on Claude")
    assert any("llms.txt" in r for r in recommendations)
    assert any("negative sentiment" in r for r in recommendations)
    assert recommendations[-1].startswith("Competitors mentioned alongside your brand: apple.")

    assert brand_recommendations([platform_result(True)], "Blue Bottle")[0].startswith("Your brand has good AI visibility")


async def test_run_ai_check_tolerates_platform_failures():
    llm = FakeLLM({
        "openai/gpt-4o-mini": "Blue Bottle is an excellent roaster.",
        "anthropic/claude-3.5-haiku": RuntimeError("rate limited"),
    })

    report = await AIChecker(llm).run_ai_check("Blue Bottle", "bluebottlecoffee.com")

    by_platform = {p["platform"]: p for p in report["platforms"]}
    assert list(by_platform) == ["chatgpt", "claude", "perplexity", "gemini"]
    assert by_platform["chatgpt"]["mentioned"]
    assert by_platform["claude"]["raw_response"] == ""
    # one platform mentioned with positive sentiment: 20 of 100 points
    assert report["aeo_score"] == 20
    assert report["recommendations"][0] == (
        "Improve visibility on Claude, Perplexity, Gemini by creating more authoritative content about Blue Bottle."
    )


async def test_brand_monitor_saves_history(db):
    brand = db.upsert_brand("Blue Bottle", "bluebottlecoffee.com")
    llm = FakeLLM(default="Blue Bottle is great")
    monitor = BrandMonitor(db, AIChecker(llm))

    result = await monitor.check_brand(brand.id)

    checks = db.get_brand_checks(brand.id)
    assert len(checks) == 1
    assert checks[0].aeo_score == result["aeo_score"] == 80
    assert checks[0].gemini_result["mentioned"] is True

    with pytest.raises(NotFoundError):
        await monitor.check_brand(999)
