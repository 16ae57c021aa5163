"""Share of voice, position tracking and trend analysis over brand checks."""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import numpy as np

from ..storage.database import Database
from ..storage.models import BrandVisibilityCheck

PLATFORMS = ["chatgpt", "claude", "perplexity", "gemini"]
SENTIMENTS = ("positive", "neutral", "negative")


def parse_platform_result(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Normalize a stored platform result, tolerating missing data."""
    if not data:
        return {"mentioned": False, "position": None, "sentiment": "neutral"}
    sentiment = data.get("sentiment")
    return {
        "mentioned": bool(data.get("mentioned")),
        "position": data.get("position") or None,
        "sentiment": sentiment if sentiment in SENTIMENTS else "neutral",
    }


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return float(np.mean(values))


class BrandAnalytics:
    """Aggregate BrandVisibilityCheck history into dashboards."""

    def __init__(self, db: Database):
        self.db = db

    def _checks(self, brand_id: int, days: int) -> List[BrandVisibilityCheck]:
        since = datetime.utcnow() - timedelta(days=days)
        return self.db.get_brand_checks(brand_id, since=since)

    def position_history(self, brand_id: int, days: int = 30) -> List[Dict[str, Any]]:
        """One entry per platform per check, oldest first."""
        history = []
        for check in self._checks(brand_id, days):
            for platform, data in check.platform_results().items():
                history.append({
                    "platform": platform,
                    "date": check.checked_at.isoformat(),
                    **parse_platform_result(data),
                })
        return history

    def share_of_voice(
        self, brand_id: int, competitor_ids: Optional[List[int]] = None, days: int = 30
    ) -> List[Dict[str, Any]]:
        """Mention share per brand and platform.

        Args:
            brand_id: Brand being analyzed
            competitor_ids: Other tracked brands to include
            days: Look-back window

        Returns:
            List of dicts with brand, platform, mentions, total_queries,
            share_percent, avg_position and sentiment counts
        """
        rows = []
        for brand_id_ in [brand_id] + list(competitor_ids or []):
            brand = self.db.get_brand(brand_id_)
            if brand is None:
                continue
            checks = self._checks(brand_id_, days)

            for platform in PLATFORMS:
                results = [parse_platform_result(c.platform_results()[platform]) for c in checks]
                mentioned = [r for r in results if r["mentioned"]]
                sentiment = {s: 0 for s in SENTIMENTS}
                for result in mentioned:
                    sentiment[result["sentiment"]] += 1

                rows.append({
                    "brand": brand.name,
                    "platform": platform,
                    "mentions": len(mentioned),
                    "total_queries": len(checks),
                    "share_percent": len(mentioned) / len(checks) * 100 if checks else 0.0,
                    "avg_position": _mean([r["position"] for r in mentioned if r["position"]]),
                    "sentiment": sentiment,
                })
        return rows

    def trend_data(self, brand_id: int, days: int = 30) -> List[Dict[str, Any]]:
        """Daily average AEO score, mention rate and position, oldest first."""
        by_date: "OrderedDict[str, List[BrandVisibilityCheck]]" = OrderedDict()
        for check in self._checks(brand_id, days):
            by_date.setdefault(check.checked_at.date().isoformat(), []).append(check)

        trends = []
        for date, checks in by_date.items():
            results = [parse_platform_result(data) for c in checks for data in c.platform_results().values()]
            mentioned = [r for r in results if r["mentioned"]]
            trends.append({
                "date": date,
                "aeo_score": int(round(np.mean([c.aeo_score or 0 for c in checks]))),
                "mention_rate": len(mentioned) / len(results) * 100 if results else 0.0,
                "avg_position": _mean([r["position"] for r in mentioned if r["position"]]),
            })
        return trends

    def compare_with_competitors(self, brand_id: int, competitor_ids: List[int]) -> List[Dict[str, Any]]:
        """Latest check of each brand side by side."""
        comparisons = []
        for brand_id_ in [brand_id] + list(competitor_ids):
            brand = self.db.get_brand(brand_id_)
            if brand is None:
                continue

            latest = self.db.get_brand_checks(brand_id_, newest_first=True, limit=1)
            if not latest:
                comparisons.append({
                    "brand": brand.name, "aeo_score": 0, "mention_rate": 0.0, "avg_position": None, "platforms": [],
                })
                continue

            check = latest[0]
            platforms = []
            for platform, data in check.platform_results().items():
                result = parse_platform_result(data)
                platforms.append({"platform": platform, "mentioned": result["mentioned"], "position": result["position"]})
            mentioned = [p for p in platforms if p["mentioned"]]

            comparisons.append({
                "brand": brand.name,
                "aeo_score": check.aeo_score,
                "mention_rate": len(mentioned) / len(platforms) * 100,
                "avg_position": _mean([p["position"] for p in mentioned if p["position"]]),
                "platforms": platforms,
            })
        return comparisons

    def analytics_summary(self, brand_id: int) -> Dict[str, Any]:
        """Current score and week-over-week change of the daily trend."""
        trends = self.trend_data(brand_id, 30)
        latest = self.db.get_brand_checks(brand_id, newest_first=True, limit=1)

        recent = [t["aeo_score"] for t in trends[-7:]]
        previous = [t["aeo_score"] for t in trends[-14:-7]]
        current_avg = float(np.mean(recent)) if recent else 0.0
        previous_avg = float(np.mean(previous)) if previous else 0.0
        change = (current_avg - previous_avg) / previous_avg * 100 if previous_avg > 0 else 0.0

        return {
            "current_score": latest[0].aeo_score if latest else 0,
            "score_change": round(change),
            "total_checks": len(trends),
            "position_history": self.position_history(brand_id, 7),
            "trends": trends,
            "last_checked_at": latest[0].checked_at.isoformat() if latest else None,
        }
