"""Return-on-investment metrics for the merchant dashboard."""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, List

from loguru import logger

from ..scoring.optimizer import OPTIMIZATION_ACTION
from ..storage.database import Database
from ..utils.errors import ValidationError

PERIODS = {"7d": 7, "30d": 30, "90d": 90, "365d": 365}

# Assumed mention rate of an average store
AVERAGE_MENTION_RATE = 20


def period_start(period: str) -> datetime:
    """Start of a 7d, 30d, 90d or 365d window ending now.

    Raises:
        ValidationError: If the period is unknown
    """
    if period not in PERIODS:
        raise ValidationError(f"Unknown period: {period}", {"allowed": list(PERIODS)})
    return datetime.utcnow() - timedelta(days=PERIODS[period])


def score_distribution(scores: List[float]) -> Dict[str, int]:
    """Count products per readiness band."""
    return {
        "excellent": sum(1 for s in scores if s >= 90),
        "good": sum(1 for s in scores if 70 <= s < 90),
        "needs_work": sum(1 for s in scores if 40 <= s < 70),
        "critical": sum(1 for s in scores if s < 40),
    }


def _rate(mentioned: int, total: int) -> int:
    return int(round(mentioned / total * 100)) if total else 0


def get_roi_metrics(db: Database, shop_domain: str, period: str = "30d") -> Dict[str, Any]:
    """Score, product, visibility and optimization metrics over a period.

    Args:
        db: Database instance
        shop_domain: Shop domain
        period: 7d, 30d, 90d or 365d

    Returns:
        Dictionary with current_score, score_at_period_start, score_improvement,
        score_improvement_percent, total_products, products_improved,
        products_with_critical_issues, visibility, optimizations_used,
        score_trend, visibility_trend and score_distribution
    """
    shop = db.require_shop(shop_domain)
    since = period_start(period)
    logger.info(f"Fetching ROI metrics for {shop_domain} over {period}")

    current_score = shop.ai_score or 0

    # Newest first; the last entry opens the period
    audit_logs = [
        log for log in db.get_audit_logs(shop.id, action="audit_completed", since=since)
        if (log.details or {}).get("average_score") is not None
    ]
    score_at_start = audit_logs[-1].details["average_score"] if audit_logs else current_score
    improvement = current_score - score_at_start
    improvement_percent = int(round(improvement / score_at_start * 100)) if score_at_start > 0 else 0

    scores = [audit.ai_score or 0 for audit in db.get_product_audits(shop.id)]
    distribution = score_distribution(scores)
    total_products = len(scores)

    checks = list(reversed(db.get_visibility_history(shop.id, limit=None, since=since)))
    mentioned = sum(1 for c in checks if c.is_mentioned)

    by_platform: "OrderedDict[str, List[bool]]" = OrderedDict()
    by_date: "OrderedDict[str, List[bool]]" = OrderedDict()
    for check in checks:
        by_platform.setdefault(check.platform, []).append(bool(check.is_mentioned))
        by_date.setdefault(check.checked_at.date().isoformat(), []).append(bool(check.is_mentioned))

    # Last audit of each day wins
    score_by_date: Dict[str, float] = {}
    for log in reversed(audit_logs):
        score_by_date[log.created_at.date().isoformat()] = log.details["average_score"]

    products_improved = 0
    if improvement > 0:
        products_improved = min(total_products, int(round(improvement / 10 * total_products * 0.3)))

    return {
        "period": period,
        "current_score": current_score,
        "score_at_period_start": score_at_start,
        "score_improvement": improvement,
        "score_improvement_percent": improvement_percent,
        "total_products": total_products,
        "products_improved": products_improved,
        "products_with_critical_issues": distribution["critical"],
        "visibility": {
            "total_checks": len(checks),
            "mentioned": mentioned,
            "mention_rate": _rate(mentioned, len(checks)),
            "by_platform": [
                {
                    "platform": platform,
                    "checks": len(results),
                    "mentioned": sum(results),
                    "rate": _rate(sum(results), len(results)),
                }
                for platform, results in by_platform.items()
            ],
        },
        "optimizations_used": db.count_audit_logs(shop.id, OPTIMIZATION_ACTION, since=since),
        "score_trend": [{"date": date, "value": value} for date, value in sorted(score_by_date.items())],
        "visibility_trend": [
            {"date": date, "value": _rate(sum(results), len(results))} for date, results in sorted(by_date.items())
        ],
        "score_distribution": distribution,
    }


def calculate_estimated_roi(metrics: Dict[str, Any]) -> Dict[str, str]:
    """Headline estimates for a metrics dictionary from get_roi_metrics."""
    visibility = metrics["visibility"]
    visibility_increase = "0%"
    if visibility["total_checks"]:
        difference = visibility["mention_rate"] - AVERAGE_MENTION_RATE
        if difference > 0:
            visibility_increase = f"+{difference}% above average"
        else:
            visibility_increase = f"{difference}% vs average"

    improvement = metrics["score_improvement"]
    if improvement > 0:
        reach = f"~{int(round(max(1, improvement / 10) * 15))}% more AI recommendations"
    else:
        reach = "No change"

    distribution = metrics["score_distribution"]
    ready = 0
    if metrics["total_products"]:
        ready = int(round((distribution["excellent"] + distribution["good"]) / metrics["total_products"] * 100))

    return {
        "visibility_increase": visibility_increase,
        "potential_reach_increase": reach,
        "quality_improvement": f"{ready}% of products AI-ready",
    }
