from datetime import datetime, timedelta

import pytest

from conftest import FakeLLM, make_product
from surfaced.orchestrator.coordinator import JobCoordinator
from surfaced.scoring.audit import ProductScorer
from surfaced.shopify.graphql import ShopInfo
from surfaced.storage.models import AuditLog
from surfaced.utils.config import Config, Settings
from surfaced.utils.errors import ExternalServiceError, PlanLimitError, UnauthorizedError


def build(db, llm=None, webhook="", discord=None, token=""):
    config = Config(
        visibility={"competitor_query_delay": 0},
        alerts={"discord": discord or {}},
    )
    settings = Settings(_env_file=None, discord_webhook_url=webhook, shopify_access_token=token)
    return JobCoordinator(config=config, settings=settings, db=db, llm=llm or FakeLLM(default="Cool Socks"))


class RecordingAlerter:
    def __init__(self):
        self.sent = []

    async def send_alert(self, shop, alert):
        self.sent.append((shop.shop_domain, alert.type))
        return True


def test_discord_alerter_setup(db):
    assert build(db).discord is None
    assert build(db, webhook="https://discord.test/hook").discord.webhook_url == "https://discord.test/hook"
    assert build(db, webhook="https://discord.test/hook", discord={"enabled": False}).discord is None


def test_shopify_client_needs_token(db, shop):
    with pytest.raises(UnauthorizedError):
        build(db).shopify_client(shop)

    client = build(db, token="shpat_env").shopify_client(shop)
    assert client.endpoint == "https://cool-socks.myshopify.com/admin/api/2025-01/graphql.json"


async def test_fetch_catalog_tolerates_missing_collections(db, shop):
    class Client:
        async def fetch_shop_info(self):
            return ShopInfo(name="Cool Socks")

        async def fetch_all_products(self, limit=250, page_size=50):
            return [make_product()]

        async def fetch_collections(self, first=50):
            raise ExternalServiceError("shopify", "collections unavailable")

    coordinator = build(db)
    coordinator.shopify_client = lambda s: Client()

    catalog = await coordinator.fetch_catalog(shop.shop_domain)

    assert catalog["collections"] == []
    assert len(catalog["products"]) == 1


async def test_check_alerts_delivers_and_logs(db, shop):
    db.save_product_audits(shop.id, [ProductScorer().score(make_product(images=0)).to_row()])
    coordinator = build(db)
    coordinator.discord = RecordingAlerter()

    raised = await coordinator.check_alerts()

    assert [(a["shop_domain"], a["type"], a["sent"]) for a in raised] == [
        ("cool-socks.myshopify.com", "critical_issues", True)
    ]
    assert coordinator.discord.sent == [("cool-socks.myshopify.com", "critical_issues")]
    assert db.get_audit_logs(shop.id, action="alert_critical_issues")


async def test_sent_alerts_wait_for_the_cooldown(db, shop):
    db.save_product_audits(shop.id, [ProductScorer().score(make_product(images=0)).to_row()])
    coordinator = build(db)
    coordinator.discord = RecordingAlerter()

    for _ in range(3):
        await coordinator.check_alerts()

    assert coordinator.discord.sent == [("cool-socks.myshopify.com", "critical_issues")]
    # the dashboard still lists the active alert
    assert [a.type for a in coordinator.alert_engine.check_alerts(shop.shop_domain)] == ["critical_issues"]


async def test_cooldown_expires(db, shop):
    db.save_product_audits(shop.id, [ProductScorer().score(make_product(images=0)).to_row()])
    coordinator = build(db)
    coordinator.discord = RecordingAlerter()
    await coordinator.check_alerts()

    with db.session() as session:
        for entry in session.query(AuditLog).filter(AuditLog.action == "alert_critical_issues"):
            entry.created_at = datetime.utcnow() - timedelta(hours=25)
    await coordinator.check_alerts()

    assert len(coordinator.discord.sent) == 2


async def test_alerts_without_channel_are_not_logged(db, shop):
    db.save_product_audits(shop.id, [ProductScorer().score(make_product(images=0)).to_row()])

    raised = await build(db).check_alerts()

    assert raised[0]["sent"] is False
    assert db.get_audit_logs(shop.id, action_prefix="alert_") == []


async def test_run_audits_survives_failures(db, shop):
    # no access token, so the audit fails and is only logged
    await build(db).run_audits()

    assert db.get_audit_logs(shop.id, action="audit_completed") == []


async def test_visibility_job_skips_without_platforms(db, shop):
    llm = FakeLLM(platforms=())

    await build(db, llm=llm).run_visibility_checks()

    assert llm.calls == []


async def test_visibility_job_runs_for_each_shop(db, shop):
    await build(db).run_visibility_checks()

    assert len(db.get_visibility_history(shop.id)) == 3


async def test_brand_checks_job(db):
    brand = db.upsert_brand("Cool Socks")

    await build(db).run_brand_checks()

    assert len(db.get_brand_checks(brand.id)) == 1


async def test_cleanup_respects_plan_history(db, shop):
    now = datetime.utcnow()
    db.save_visibility_checks(
        shop.id,
        [
            {"platform": "chatgpt", "query": "old", "checked_at": now - timedelta(days=100)},
            {"platform": "chatgpt", "query": "recent", "checked_at": now - timedelta(days=10)},
        ],
    )
    brand = db.upsert_brand("Cool Socks")
    db.save_brand_check(brand.id, aeo_score=10, checked_at=now - timedelta(days=400))
    db.save_brand_check(brand.id, aeo_score=20, checked_at=now - timedelta(days=100))

    await build(db).cleanup_old_data()

    assert [c.query for c in db.get_visibility_history(shop.id)] == ["recent"]
    assert [c.aeo_score for c in db.get_brand_checks(brand.id)] == [20]


async def test_optimize_checks_quota_before_fetching_the_catalog(db):
    shop = db.upsert_shop("tiny.myshopify.com", plan="FREE")
    for _ in range(3):
        db.record_audit_log(shop.id, "ai_optimization", {"type": "content"})

    # no access token, so a catalog fetch would raise UnauthorizedError
    with pytest.raises(PlanLimitError):
        await build(db).optimize_product(shop.shop_domain, "1")
