from datetime import datetime

import pytest

from conftest import FakeLLM
from surfaced.visibility.checker import (
    VisibilityChecker,
    analyze_response,
    default_brand_name,
    generate_queries,
)
from surfaced.utils.errors import PlanLimitError, ValidationError

LISTING = "Popular options:\n1. Amazon\n2. Cool Socks - I recommend them for hikers"


def test_default_brand_name_from_domain():
    assert default_brand_name("cool-socks.myshopify.com") == "cool socks"
    assert default_brand_name("cool-socks.myshopify.com", "Cool Socks") == "Cool Socks"


def test_generate_queries():
    assert len(generate_queries("Cool Socks")) == 3
    queries = generate_queries("Cool Socks", "socks")
    assert queries[0] == "What are the best socks brands?"
    assert queries[-1] == "Tell me about Cool Socks products"


def test_analyze_response_finds_mention_and_rank():
    result = analyze_response(LISTING, "Cool Socks", "cool-socks.myshopify.com")

    assert result["is_mentioned"]
    assert result["position"] == 2
    assert result["response_quality"] == "good"
    assert result["competitors_found"] == [{"name": "amazon"}]
    assert result["mention_context"].startswith("Popular options")


def test_analyze_response_matches_domain_handle():
    result = analyze_response("Try cool-socks for gear", "Sock Emporium", "cool-socks.myshopify.com")

    assert result["is_mentioned"]
    assert result["position"] is None
    assert result["response_quality"] == "partial"


def test_analyze_response_without_mention():
    result = analyze_response("Try Etsy", "Cool Socks", "cool-socks.myshopify.com")

    assert result["is_mentioned"] is False
    assert result["mention_context"] is None
    assert result["response_quality"] == "none"


async def test_run_visibility_check_records_results(db, shop):
    llm = FakeLLM({"chatgpt": LISTING})
    checker = VisibilityChecker(db, llm)

    report = await checker.run_visibility_check(shop.shop_domain, product_type="socks")

    assert report["brand_name"] == "Cool Socks"
    assert [prompt for _, prompt in llm.calls] == generate_queries("Cool Socks", "socks")[:3]
    assert report["summary"] == {
        "total_checks": 3,
        "mentioned": 3,
        "not_mentioned": 0,
        "competitors_found": ["amazon"],
    }

    history = checker.get_visibility_history(shop.shop_domain)
    assert len(history) == 3
    assert history[0]["position"] == 2
    assert db.get_audit_logs(shop.id, action="visibility_check")[0].details["mentioned"] == 3


async def test_failed_platform_queries_are_dropped(db, shop):
    llm = FakeLLM(
        {"chatgpt": RuntimeError("boom"), "perplexity": "No idea"},
        platforms=("chatgpt", "perplexity"),
    )
    checker = VisibilityChecker(db, llm)

    report = await checker.run_visibility_check(shop.shop_domain, platforms=["chatgpt", "perplexity"])

    assert {r["platform"] for r in report["results"]} == {"perplexity"}
    assert report["summary"]["mentioned"] == 0


async def test_unconfigured_platform_is_rejected(db, shop):
    checker = VisibilityChecker(db, FakeLLM())

    with pytest.raises(ValidationError):
        await checker.run_visibility_check(shop.shop_domain, platforms=["gemini"])


async def test_monthly_allowance(db):
    shop = db.upsert_shop("tiny.myshopify.com", plan="FREE")
    db.save_visibility_checks(
        shop.id,
        [{"platform": "chatgpt", "query": "q", "checked_at": datetime.utcnow()} for _ in range(2)],
    )
    llm = FakeLLM(default="nothing")
    checker = VisibilityChecker(db, llm)

    report = await checker.run_visibility_check(shop.shop_domain)
    assert len(report["results"]) == 1

    with pytest.raises(PlanLimitError) as exc:
        await checker.run_visibility_check(shop.shop_domain)
    assert exc.value.details == {"limit": 3, "used": 3}
