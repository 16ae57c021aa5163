import pytest

from conftest import make_product
from surfaced.scoring.audit import AuditEngine, ProductScorer, summarize_scores
from surfaced.shopify.graphql import ShopInfo

RICH = dict(
    description="x" * 320,
    images=3,
    tags=["merino", "hiking", "wool", "socks", "outdoor"],
    seo_title="Merino Hiking Sock | Cool Socks",
    seo_description="Cushioned merino socks for long trails.",
    vendor="Cool Socks",
    metafields=[{"namespace": "specs", "key": "material", "value": "merino"}],
)


def codes(result):
    return [issue.code for issue in result.issues]


def test_complete_product_is_capped_at_100():
    result = ProductScorer().score(make_product(**RICH))

    assert result.ai_score == 100
    assert result.issues == []
    assert result.shopify_product_id == "1"


def test_bare_product_collects_penalties():
    result = ProductScorer().score(make_product())

    # 100 - 40 description - 5 seo title - 5 seo description - 2 metafields - 2 vendor
    assert result.ai_score == 46
    assert codes(result) == [
        "NO_DESCRIPTION",
        "NO_SEO_TITLE",
        "NO_SEO_DESCRIPTION",
        "NO_METAFIELDS",
        "NO_VENDOR",
    ]
    assert not result.has_description


@pytest.mark.parametrize(
    "length,code,expected",
    [(20, "SHORT_DESCRIPTION", 100 - 25), (60, "BRIEF_DESCRIPTION", 100 - 10)],
)
def test_description_length_bands(length, code, expected):
    fields = dict(RICH, description="d" * length)

    result = ProductScorer().score(make_product(**fields))

    assert codes(result) == [code]
    # rich-image and tag bonuses still apply
    assert result.ai_score == min(100, expected + 3 + 2)


def test_missing_alt_text_penalty_is_capped():
    fields = dict(RICH, images=5)
    result = ProductScorer().score(make_product(alt_text=None, **fields))

    assert codes(result) == ["MISSING_ALT_TEXT"]
    assert "5 image(s)" in result.issues[0].message
    assert result.ai_score == 100 - 15 + 5 + 3 + 2


def test_no_images_and_no_categorization():
    result = ProductScorer().score(make_product(images=0, product_type=None, tags=[]))

    assert {"NO_IMAGES", "NO_PRODUCT_TYPE", "NO_TAGS"} <= set(codes(result))
    severities = {issue.code: issue.type for issue in result.issues}
    assert severities["NO_IMAGES"] == "critical"
    assert severities["NO_TAGS"] == "info"
    assert result.ai_score == 0


def test_summarize_scores_bands():
    scorer = ProductScorer()
    results = [
        scorer.score(make_product(1, images=0)),
        scorer.score(make_product(2)),
        scorer.score(make_product(3, **RICH)),
    ]

    summary = summarize_scores(results)

    assert summary["issues"] == {"critical": 1, "warning": 1, "info": 0}
    assert summary["average_score"] == round((results[0].ai_score + 46 + 100) / 3)
    assert summarize_scores([]) == {"average_score": 0, "issues": {"critical": 0, "warning": 0, "info": 0}}


class FakeShopifyClient:
    def __init__(self, products):
        self.products = products
        self.requested_limit = None

    async def fetch_shop_info(self):
        return ShopInfo(name="Cool Socks Co", email="hi@coolsocks.test", products_count=120)

    async def fetch_all_products(self, limit=250, page_size=50):
        self.requested_limit = limit
        return self.products[:limit]


async def test_audit_engine_persists_results(db, shop):
    client = FakeShopifyClient([make_product(n) for n in range(1, 4)])
    engine = AuditEngine(db, lambda s: client, max_products=2)

    result = await engine.run_audit(shop.shop_domain)

    assert client.requested_limit == 2
    assert result.audited_products == 2
    assert result.total_products == 120
    assert result.average_score == 46

    assert len(db.get_product_audits(shop.id)) == 2
    stored = db.get_shop(shop.shop_domain)
    assert stored.ai_score == 46
    assert stored.products_count == 120
    assert stored.name == "Cool Socks Co"

    log = db.get_audit_logs(shop.id, action="audit_completed")[0]
    assert log.details["audited_products"] == 2


async def test_audit_engine_respects_plan_limit(db):
    db.upsert_shop("tiny.myshopify.com", plan="FREE")
    client = FakeShopifyClient([make_product(n) for n in range(1, 20)])
    engine = AuditEngine(db, lambda s: client, max_products=50)

    result = await engine.run_audit("tiny.myshopify.com")

    assert client.requested_limit == 10
    assert result.audited_products == 10
