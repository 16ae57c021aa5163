from datetime import datetime, timedelta

from surfaced.storage import Database
from surfaced.storage.models import CompetitorAnalysisResult, ProductAudit, VisibilityCheck


def test_save_product_audits_is_idempotent_for_same_product():
    db = Database("sqlite:///:memory:")
    shop = db.upsert_shop("socks.myshopify.com", name="Socks")

    payload = {
        "shopify_product_id": "101",
        "title": "Wool Sock",
        "handle": "wool-sock",
        "ai_score": 55.0,
        "issues": [{"type": "warning", "code": "SHORT_DESCRIPTION", "message": "short"}],
    }

    db.save_product_audits(shop.id, [payload])
    db.save_product_audits(shop.id, [{**payload, "ai_score": 80.0, "issues": []}])

    with db.session() as session:
        assert session.query(ProductAudit).count() == 1

    audits = db.get_product_audits(shop.id)
    assert audits[0].ai_score == 80.0
    assert audits[0].issues == []


def test_upsert_shop_updates_existing_record():
    db = Database("sqlite:///:memory:")

    first = db.upsert_shop("socks.myshopify.com", name="Socks")
    second = db.upsert_shop("socks.myshopify.com", plan="PREMIUM")

    assert first.id == second.id
    assert second.name == "Socks"
    assert second.plan == "PREMIUM"
    assert len(db.list_shops()) == 1


def test_add_competitor_reactivates_instead_of_duplicating():
    db = Database("sqlite:///:memory:")
    shop = db.upsert_shop("socks.myshopify.com")

    db.add_competitor(shop.id, "rival.com")
    db.add_competitor(shop.id, "rival.com", name="Rival")

    competitors = db.list_competitors(shop.id)
    assert [c.domain for c in competitors] == ["rival.com"]
    assert competitors[0].name == "Rival"

    assert db.remove_competitor(shop.id, "rival.com") is True
    assert db.remove_competitor(shop.id, "rival.com") is False


def test_generator_config_defaults_to_empty_and_upserts():
    db = Database("sqlite:///:memory:")
    shop = db.upsert_shop("socks.myshopify.com")

    assert db.get_generator_config("robots_txt", shop.id) == {}

    db.save_generator_config("robots_txt", shop.id, crawl_delay=5)
    saved = db.save_generator_config("robots_txt", shop.id, allow_ai_bots=False)

    assert saved["crawl_delay"] == 5
    assert saved["allow_ai_bots"] is False
    assert db.get_generator_config("robots_txt", shop.id)["crawl_delay"] == 5


def test_cleanup_shop_history_removes_only_old_rows():
    db = Database("sqlite:///:memory:")
    shop = db.upsert_shop("socks.myshopify.com")
    now = datetime.utcnow()

    db.save_visibility_checks(
        shop.id,
        [
            {"platform": "chatgpt", "query": "old", "checked_at": now - timedelta(days=40)},
            {"platform": "chatgpt", "query": "new", "checked_at": now},
        ],
    )
    db.save_competitor_results(
        shop.id,
        [{"competitor_domain": "rival.com", "query": "q", "analyzed_at": now - timedelta(days=40)}],
    )

    deleted = db.cleanup_shop_history(shop.id, now - timedelta(days=30))

    assert deleted == 2
    with db.session() as session:
        assert [c.query for c in session.query(VisibilityCheck).all()] == ["new"]
        assert session.query(CompetitorAnalysisResult).count() == 0


def test_audit_logs_are_returned_newest_first():
    db = Database("sqlite:///:memory:")
    shop = db.upsert_shop("socks.myshopify.com")

    db.record_audit_log(shop.id, "audit_completed", {"average_score": 50})
    db.record_audit_log(shop.id, "audit_completed", {"average_score": 70})
    db.record_audit_log(shop.id, "alert_score_drop", {})

    logs = db.get_audit_logs(shop.id, action="audit_completed")
    assert [log.details["average_score"] for log in logs] == [70, 50]
    assert len(db.get_audit_logs(shop.id, action_prefix="alert_")) == 1
