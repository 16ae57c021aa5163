"""Competitor tracking and head-to-head AI visibility comparison."""

import asyncio
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from ..storage.database import Database
from ..storage.models import Competitor
from ..utils.errors import PlanLimitError, ValidationError
from ..utils.plans import get_plan_limits
from ..utils.text import normalize_domain
from .checker import MYSHOPIFY_SUFFIX, default_brand_name
from .llm import LLMClient
from .mining import extract_context, extract_position

COMPARISON_PROMPT = (
    "You are a shopping assistant helping users find the best products and brands. Provide "
    "detailed, ranked recommendations with specific brand names. Always try to mention at "
    "least 5-10 specific brands or stores when relevant."
)

LEAD_MARGIN = 20


def competitor_label(competitor: Dict[str, Any]) -> str:
    return competitor.get("name") or competitor["domain"]


def comparison_queries(product_titles: List[str]) -> List[str]:
    titles = list(product_titles) + [None, None, None]
    return [
        f"What are the best online stores for {titles[0] or 'products'}?",
        f"Recommend top brands for {titles[1] or 'shopping online'}",
        f"Where should I buy {titles[2] or 'quality products'}?",
    ]


def compare_response(
    query: str,
    response: str,
    brand_name: str,
    shop_domain: str,
    competitors: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Score one comparison answer for the store and each competitor.

    Returns:
        Dictionary with query, your_brand, competitors, winner and gap
    """
    lower = response.lower()
    domain_base = shop_domain.replace(MYSHOPIFY_SUFFIX, "").lower()

    your_term = next((t for t in (brand_name.lower(), domain_base) if t and t in lower), None)
    your_brand = {
        "is_mentioned": your_term is not None,
        "position": extract_position(response, your_term) if your_term else None,
        "context": extract_context(response, your_term) if your_term else None,
    }

    results = []
    for competitor in competitors:
        domain = competitor["domain"]
        name = competitor.get("name") or domain.replace(MYSHOPIFY_SUFFIX, "").replace(".com", "")
        term = next((t for t in (name.lower(), domain.lower()) if t in lower), None)
        results.append({
            "domain": domain,
            "name": competitor.get("name"),
            "is_mentioned": term is not None,
            "mention_context": extract_context(response, term) if term else None,
            "position": extract_position(response, term) if term else None,
        })

    winner = None
    best = None
    if your_brand["is_mentioned"] and your_brand["position"]:
        winner, best = brand_name, your_brand["position"]
    for result in results:
        if result["is_mentioned"] and result["position"] and (best is None or result["position"] < best):
            winner, best = competitor_label(result), result["position"]

    mentioned = [competitor_label(r) for r in results if r["is_mentioned"]]
    position = your_brand["position"]
    if not your_brand["is_mentioned"] and mentioned:
        verb = "is" if len(mentioned) == 1 else "are"
        gap = f"Your brand is not mentioned but {', '.join(mentioned)} {verb}."
    elif your_brand["is_mentioned"] and position and position > 3:
        gap = f"Your brand is mentioned but ranked #{position}. Improve your content to rank higher."
    elif your_brand["is_mentioned"] and position:
        gap = "Great! Your brand is in the top 3 recommendations."
    elif not your_brand["is_mentioned"]:
        gap = "Neither you nor your competitors are mentioned for this query."
    else:
        gap = "Analysis complete."

    return {"query": query, "your_brand": your_brand, "competitors": results, "winner": winner, "gap": gap}


def _rate(hits: int, total: int) -> int:
    return round(hits / total * 100) if total else 0


def _average(values: List[int]) -> Optional[float]:
    return round(sum(values) / len(values)) if values else None


def build_insights(your_rate: int, stats: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Danger, warning and opportunity notes comparing mention rates."""
    best_rate = max([s["mention_rate"] for s in stats] + [0])
    insights = []

    if your_rate == 0 and best_rate > 0:
        insights.append({
            "type": "danger",
            "title": "You are invisible to AI",
            "description": (
                f"Your competitors are mentioned {best_rate}% of the time, but you are never "
                "mentioned. Urgent action needed."
            ),
        })

    if 0 < your_rate < best_rate:
        top = next(s for s in stats if s["mention_rate"] == best_rate)
        insights.append({
            "type": "warning",
            "title": "Competitors outperforming you",
            "description": f"{competitor_label(top)} has {best_rate}% mention rate vs your {your_rate}%.",
        })

    if your_rate > 0 and your_rate >= best_rate:
        insights.append({
            "type": "opportunity",
            "title": "You are leading!",
            "description": f"You have the best mention rate ({your_rate}%) among tracked competitors.",
        })

    for stat in stats:
        if stat["mention_rate"] > your_rate + LEAD_MARGIN:
            insights.append({
                "type": "warning",
                "title": f"{competitor_label(stat)} is beating you",
                "description": (
                    f"They appear {stat['mention_rate'] - your_rate}% more often. "
                    "Analyze their content strategy."
                ),
            })

    return insights


class CompetitorService:
    """Manage tracked competitors and compare AI visibility against them."""

    def __init__(self, db: Database, llm: LLMClient, query_delay: float = 1.5, platform: Optional[str] = None):
        """Initialize competitor service.

        Args:
            db: Database instance
            llm: Client used for comparison queries
            query_delay: Seconds to wait between sequential LLM calls
            platform: Platform to query (defaults to the first configured one)
        """
        self.db = db
        self.llm = llm
        self.query_delay = query_delay
        self.platform = platform

    def add_competitor(self, shop_domain: str, domain: str, name: Optional[str] = None) -> Competitor:
        """Track a competitor domain.

        Re-adding a tracked domain updates it instead of counting against the limit.

        Raises:
            ValidationError: If the domain is empty
            PlanLimitError: If the plan's competitor allowance is used up
        """
        shop = self.db.require_shop(shop_domain)
        domain = normalize_domain(domain)
        if not domain:
            raise ValidationError("Competitor domain is required")

        limit = get_plan_limits(shop.plan).competitors_tracked
        tracked = self.db.list_competitors(shop.id, active_only=False)
        if domain not in {c.domain for c in tracked} and len(tracked) >= limit:
            raise PlanLimitError(
                f"Competitor limit reached ({limit}). Upgrade your plan to track more competitors.",
                limit=limit,
                used=len(tracked),
            )

        competitor = self.db.add_competitor(shop.id, domain, name)
        logger.info(f"Competitor {domain} added for {shop_domain}")
        return competitor

    def remove_competitor(self, shop_domain: str, domain: str) -> bool:
        shop = self.db.require_shop(shop_domain)
        removed = self.db.remove_competitor(shop.id, normalize_domain(domain))
        if removed:
            logger.info(f"Competitor {domain} removed for {shop_domain}")
        return removed

    def get_competitors(self, shop_domain: str) -> Dict[str, Any]:
        shop = self.db.require_shop(shop_domain)
        limit = get_plan_limits(shop.plan).competitors_tracked
        competitors = self.db.list_competitors(shop.id, active_only=False)
        return {
            "competitors": [
                {
                    "id": c.id,
                    "domain": c.domain,
                    "name": c.name,
                    "is_active": c.is_active,
                    "created_at": c.created_at.isoformat() if c.created_at else None,
                }
                for c in competitors
            ],
            "limit": limit,
            "remaining": max(0, limit - len(competitors)),
        }

    def _platform(self) -> str:
        if self.platform:
            return self.platform
        available = self.llm.available_platforms()
        if not available:
            raise ValidationError("No AI platforms configured. Please add API keys in your environment.")
        return available[0]

    async def run_comparison_query(
        self,
        query: str,
        brand_name: str,
        shop_domain: str,
        competitors: List[Dict[str, Any]],
        platform: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Ask one comparison question and score everyone named in the answer."""
        response = await self.llm.complete(
            platform or self._platform(), query, system=COMPARISON_PROMPT, max_tokens=1500
        )
        return compare_response(query, response, brand_name, shop_domain, competitors)

    async def run_competitor_analysis(
        self, shop_domain: str, product_titles: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Compare the shop against its tracked competitors.

        Args:
            shop_domain: The shop's myshopify.com domain
            product_titles: Products to build queries around (defaults to audited products)

        Returns:
            Dictionary with competitors stats, comparisons, insights and summary

        Raises:
            ValidationError: If the shop tracks no competitors
        """
        shop = self.db.require_shop(shop_domain)
        tracked = self.db.list_competitors(shop.id)
        if not tracked:
            raise ValidationError("No competitors tracked. Add competitors first.")

        limits = get_plan_limits(shop.plan)
        brand_name = default_brand_name(shop_domain, shop.name)
        platform = self._platform()

        if product_titles is None:
            product_titles = [a.title for a in self.db.get_product_audits(shop.id, limit=5) if a.title]
        queries = comparison_queries(product_titles)[: min(3, limits.visibility_checks_per_month)]
        competitors = [{"domain": c.domain, "name": c.name} for c in tracked]

        comparisons = []
        for query in queries:
            try:
                comparisons.append(
                    await self.run_comparison_query(query, brand_name, shop_domain, competitors, platform)
                )
            except Exception as e:
                logger.error(f"Comparison query failed ({query!r}): {e}")
            await asyncio.sleep(self.query_delay)

        total = len(comparisons)
        stats = []
        for competitor in competitors:
            rows = [r for c in comparisons for r in c["competitors"] if r["domain"] == competitor["domain"]]
            stats.append({
                "domain": competitor["domain"],
                "name": competitor["name"],
                "mention_rate": _rate(sum(1 for r in rows if r["is_mentioned"]), total),
                "average_position": _average([r["position"] for r in rows if r["position"]]),
            })

        your_rate = _rate(sum(1 for c in comparisons if c["your_brand"]["is_mentioned"]), total)
        best_rate = max([s["mention_rate"] for s in stats] + [0])
        insights = build_insights(your_rate, stats)

        self._store_results(shop.id, platform, comparisons)
        self.db.record_audit_log(
            shop.id,
            "competitor_analysis",
            {
                "competitors_analyzed": len(competitors),
                "queries_run": total,
                "your_mention_rate": your_rate,
                "best_competitor_rate": best_rate,
            },
        )
        logger.info(f"Competitor analysis for {shop_domain}: you {your_rate}%, best rival {best_rate}%")

        return {
            "shop_domain": shop_domain,
            "brand_name": brand_name,
            "competitors": stats,
            "comparisons": comparisons,
            "insights": insights,
            "summary": {
                "your_mention_rate": your_rate,
                "best_competitor_mention_rate": best_rate,
                "gap_percentage": max(0, best_rate - your_rate),
            },
        }

    def _store_results(self, shop_id: int, platform: str, comparisons: List[Dict[str, Any]]):
        """One row per query for the store (no competitor_domain) and per competitor."""
        analyzed_at = datetime.utcnow()
        rows = []
        for comparison in comparisons:
            own = comparison["your_brand"]
            rows.append({
                "competitor_domain": None,
                "query": comparison["query"],
                "platform": platform,
                "mentioned": own["is_mentioned"],
                "position": own["position"],
                "context": own["context"],
                "analyzed_at": analyzed_at,
            })
            for result in comparison["competitors"]:
                rows.append({
                    "competitor_domain": result["domain"],
                    "query": comparison["query"],
                    "platform": platform,
                    "mentioned": result["is_mentioned"],
                    "position": result["position"],
                    "context": result["mention_context"],
                    "analyzed_at": analyzed_at,
                })
        if rows:
            self.db.save_competitor_results(shop_id, rows)

    def get_competitor_trends(self, shop_domain: str, days: int = 30) -> Dict[str, Any]:
        """Daily mention rate and average position for the store and each competitor.

        Days without a row for the store repeat its previous value.
        """
        shop = self.db.require_shop(shop_domain)
        since = datetime.utcnow() - timedelta(days=days)
        rows = self.db.get_competitor_results(shop.id, since=since)

        by_date: "OrderedDict[str, list]" = OrderedDict()
        for row in rows:
            by_date.setdefault(row.analyzed_at.date().isoformat(), []).append(row)

        your_rates: List[int] = []
        your_positions: List[Optional[float]] = []
        rivals: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

        for day_rows in by_date.values():
            own = [r for r in day_rows if not r.competitor_domain]
            if own:
                your_rates.append(_rate(sum(1 for r in own if r.mentioned), len(own)))
                your_positions.append(_average([r.position for r in own if r.position]))
            elif your_rates:
                your_rates.append(your_rates[-1])
                your_positions.append(your_positions[-1])

            by_domain: Dict[str, list] = {}
            for row in day_rows:
                if row.competitor_domain:
                    by_domain.setdefault(row.competitor_domain, []).append(row)
            for domain, domain_rows in by_domain.items():
                entry = rivals.setdefault(domain, {"domain": domain, "mention_rates": [], "avg_positions": []})
                entry["mention_rates"].append(_rate(sum(1 for r in domain_rows if r.mentioned), len(domain_rows)))
                entry["avg_positions"].append(_average([r.position for r in domain_rows if r.position]))

        return {
            "dates": list(by_date.keys()),
            "your_brand": {"mention_rates": your_rates, "avg_positions": your_positions},
            "competitors": list(rivals.values()),
        }

    def get_last_analysis(self, shop_domain: str) -> Optional[Dict[str, Any]]:
        """Summary of the most recent analysis run, None when there is none."""
        shop = self.db.get_shop(shop_domain)
        if shop is None:
            return None
        rows = self.db.get_latest_competitor_results(shop.id)
        if not rows:
            return None

        own = [r for r in rows if not r.competitor_domain]
        rivals: "OrderedDict[str, list]" = OrderedDict()
        for row in rows:
            if row.competitor_domain:
                rivals.setdefault(row.competitor_domain, []).append(row)

        return {
            "analyzed_at": rows[0].analyzed_at.isoformat(),
            "your_mention_rate": _rate(sum(1 for r in own if r.mentioned), len(own)),
            "queries_run": len(own),
            "avg_position": _average([r.position for r in own if r.position]),
            "competitors": [
                {
                    "domain": domain,
                    "mention_rate": _rate(sum(1 for r in domain_rows if r.mentioned), len(domain_rows)),
                    "avg_position": _average([r.position for r in domain_rows if r.position]),
                }
                for domain, domain_rows in rivals.items()
            ],
        }
