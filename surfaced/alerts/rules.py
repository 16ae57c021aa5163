"""Alert rules over audits, visibility checks and product scores."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from ..storage.database import Database
from ..storage.models import Shop
from ..utils.config import AlertThresholds

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass
class Alert:
    """Something a merchant should know about."""

    id: str
    type: str  # score_drop, visibility_issue, critical_issues, weekly_report
    priority: str
    title: str
    message: str
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "priority": self.priority,
            "title": self.title,
            "message": self.message,
            "action_url": self.action_url,
            "action_label": self.action_label,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


def _alert_id(kind: str) -> str:
    return f"{kind}_{int(datetime.utcnow().timestamp() * 1000)}"


class AlertEngine:
    """Evaluate alert rules for a shop.

    Rules:
    - score_drop: average audit score fell by at least the threshold
      between the last two audits
    - visibility_issue: recent mention rate is below the threshold
    - critical_issues: products scoring below the critical score exist
    """

    def __init__(self, db: Database, thresholds: Optional[AlertThresholds] = None):
        """Initialize alert engine.

        Args:
            db: Database instance
            thresholds: Alert thresholds (defaults to AlertThresholds())
        """
        self.db = db
        self.thresholds = thresholds or AlertThresholds()

    def check_score_drop(self, shop: Shop) -> List[Alert]:
        audits = self.db.get_audit_logs(shop.id, action="audit_completed", limit=2)
        if len(audits) < 2:
            return []

        current = (audits[0].details or {}).get("average_score")
        if current is None:
            current = shop.ai_score or 0
        previous = (audits[1].details or {}).get("average_score") or 0
        drop = previous - current

        if drop < self.thresholds.score_drop:
            return []

        return [Alert(
            id=_alert_id("score_drop"),
            type="score_drop",
            priority="critical" if drop >= self.thresholds.critical_score_drop else "high",
            title="AI Readiness Score Dropped",
            message=(
                f"Your AI readiness score dropped from {previous} to {current} (-{drop} points). "
                "This may affect how AI assistants recommend your products."
            ),
            action_url="/admin/audit",
            action_label="View Audit",
            metadata={"previous_score": previous, "current_score": current, "drop": drop},
        )]

    def check_visibility(self, shop: Shop) -> List[Alert]:
        since = datetime.utcnow() - timedelta(days=self.thresholds.visibility_window_days)
        checks = self.db.get_visibility_history(shop.id, limit=None, since=since)
        if not checks:
            return []

        total = len(checks)
        mentioned = sum(1 for c in checks if c.is_mentioned)
        rate = mentioned / total * 100
        if rate >= self.thresholds.low_visibility_rate:
            return []

        name = shop.name or "Your brand"
        if mentioned == 0:
            message = (
                f"{name} was not mentioned in any of the {total} AI searches in the last "
                f"{self.thresholds.visibility_window_days} days. Consider improving your product content and SEO."
            )
        else:
            message = (
                f"{name} was only mentioned in {mentioned} of {total} AI searches ({round(rate)}%). "
                "This is below the recommended threshold."
            )

        return [Alert(
            id=_alert_id("visibility_issue"),
            type="visibility_issue",
            priority="critical" if mentioned == 0 else "high",
            title="Low AI Visibility Detected",
            message=message,
            action_url="/admin/visibility",
            action_label="Check Visibility",
            metadata={"mentioned_count": mentioned, "total_checks": total, "mention_rate": rate},
        )]

    def check_critical_products(self, shop: Shop) -> List[Alert]:
        audits = self.db.get_product_audits(shop.id)
        critical = sum(1 for a in audits if (a.ai_score or 0) < self.thresholds.critical_product_score)
        if not critical:
            return []

        noun = "products have" if critical != 1 else "product has"
        return [Alert(
            id=_alert_id("critical_issues"),
            type="critical_issues",
            priority="critical" if critical > self.thresholds.critical_product_count else "high",
            title="Products with Critical Issues",
            message=(
                f"{critical} {noun} critical AI readiness issues (score below "
                f"{self.thresholds.critical_product_score}). These products are unlikely to be "
                "recommended by AI assistants."
            ),
            action_url="/admin/audit",
            action_label="Fix Issues",
            metadata={"critical_count": critical},
        )]

    def check_alerts(self, shop_domain: str) -> List[Alert]:
        """Run every rule and return alerts, most urgent and newest first."""
        shop = self.db.require_shop(shop_domain)
        alerts = self.check_score_drop(shop) + self.check_visibility(shop) + self.check_critical_products(shop)
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        alerts.sort(key=lambda a: PRIORITY_ORDER[a.priority])
        logger.debug(f"{len(alerts)} alerts for {shop_domain}")
        return alerts

    def get_alert_candidates(self, shop_domain: str) -> List[Alert]:
        """Active alerts whose type was not sent within the cooldown window."""
        shop = self.db.require_shop(shop_domain)
        recent = self.db.get_recent_alert_types(shop.id, self.thresholds.min_hours_between_alerts)
        alerts = self.check_alerts(shop_domain)
        candidates = [a for a in alerts if a.type not in recent]
        if len(candidates) < len(alerts):
            logger.debug(f"Suppressed {len(alerts) - len(candidates)} recently sent alerts for {shop_domain}")
        return candidates

    def generate_weekly_report(self, shop_domain: str) -> Dict[str, Any]:
        """Metrics for the last seven days with top issues and suggestions."""
        shop = self.db.require_shop(shop_domain)
        now = datetime.utcnow()
        week_ago = now - timedelta(days=7)

        audits = self.db.get_product_audits(shop.id)
        critical = sum(1 for a in audits if (a.ai_score or 0) < self.thresholds.critical_product_score)

        checks = self.db.get_visibility_history(shop.id, limit=None, since=week_ago)
        mentioned = sum(1 for c in checks if c.is_mentioned)
        mention_rate = mentioned / len(checks) * 100 if checks else 0.0

        current_score = shop.ai_score or 0
        older = [
            log for log in self.db.get_audit_logs(shop.id, action="audit_completed")
            if log.created_at < week_ago
        ]
        previous_score = current_score
        if older and (older[0].details or {}).get("average_score") is not None:
            previous_score = older[0].details["average_score"]

        issue_counts = Counter(
            issue.get("code") for audit in audits for issue in (audit.issues or []) if isinstance(issue, dict)
        )
        top_issues = [{"code": code, "count": count} for code, count in issue_counts.most_common(5)]
        top_codes = {i["code"] for i in top_issues}

        recommendations = []
        if critical:
            plural = "s" if critical != 1 else ""
            recommendations.append(f"Fix critical issues in {critical} product{plural} to improve AI visibility.")
        if mention_rate < 50:
            recommendations.append("Improve product descriptions and SEO to increase AI mention rate.")
        if "NO_DESCRIPTION" in top_codes:
            recommendations.append("Add descriptions to products without any description text.")
        if "NO_IMAGES" in top_codes:
            recommendations.append("Upload images for products that are missing visual content.")
        if (shop.plan or "FREE").upper() == "FREE":
            recommendations.append("Upgrade to a paid plan to audit more products and run more visibility checks.")

        return {
            "period": {"start": week_ago.isoformat(), "end": now.isoformat()},
            "metrics": {
                "ai_score": current_score,
                "score_change": current_score - previous_score,
                "products_audited": len(audits),
                "critical_issues": critical,
                "visibility_checks": len(checks),
                "mention_rate": mention_rate,
            },
            "top_issues": top_issues,
            "recommendations": recommendations,
        }

    def log_alert_sent(self, shop: Shop, alert: Alert):
        self.db.record_audit_log(shop.id, f"alert_{alert.type}", {"alert_id": alert.id, **alert.metadata})
        logger.info(f"Alert {alert.type} logged for {shop.shop_domain}")
