"""Check whether AI assistants mention a store when asked about its products."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from ..storage.database import Database
from ..utils.errors import PlanLimitError, ValidationError
from ..utils.plans import get_plan_limits
from .llm import LLMClient
from .mining import NUMBERED_ITEM, extract_competitors, response_quality

MYSHOPIFY_SUFFIX = ".myshopify.com"


def default_brand_name(shop_domain: str, shop_name: Optional[str] = None) -> str:
    return shop_name or shop_domain.replace(MYSHOPIFY_SUFFIX, "").replace("-", " ")


def generate_queries(brand_name: str, product_type: Optional[str] = None) -> List[str]:
    """Discovery queries for a category followed by questions about the brand."""
    queries = []
    if product_type:
        queries.extend([
            f"What are the best {product_type} brands?",
            f"Recommend some good {product_type} online stores",
            f"Where can I buy quality {product_type}?",
        ])
    queries.extend([
        f"What do you know about {brand_name}?",
        f"Is {brand_name} a good brand? What do they sell?",
        f"Tell me about {brand_name} products",
    ])
    return queries


def analyze_response(response: str, brand_name: str, shop_domain: str) -> Dict[str, Any]:
    """Mine a response for a store mention.

    Returns:
        Dictionary with is_mentioned, mention_context, position,
        competitors_found and response_quality
    """
    lower = response.lower()
    domain_base = shop_domain.replace(MYSHOPIFY_SUFFIX, "").lower()
    terms = [brand_name.lower(), domain_base, shop_domain.lower()]

    indexes = [lower.find(term) for term in terms if term]
    indexes = [i for i in indexes if i != -1]
    is_mentioned = bool(indexes)

    mention_context = None
    position = None
    if is_mentioned:
        index = min(indexes)
        mention_context = response[max(0, index - 100): index + 200].strip()
        position = len(NUMBERED_ITEM.findall(response[:index])) or None

    return {
        "is_mentioned": is_mentioned,
        "mention_context": mention_context,
        "position": position,
        "competitors_found": [{"name": name} for name in extract_competitors(response, terms)],
        "response_quality": response_quality(response, is_mentioned),
    }


class VisibilityChecker:
    """Ask AI platforms about a store and record whether it was mentioned."""

    def __init__(self, db: Database, llm: LLMClient, max_queries_per_platform: int = 3):
        """Initialize visibility checker.

        Args:
            db: Database instance
            llm: Client used to query the platforms
            max_queries_per_platform: Cap on queries sent to each platform per run
        """
        self.db = db
        self.llm = llm
        self.max_queries_per_platform = max_queries_per_platform

    async def _check(self, platform: str, query: str, brand_name: str, shop_domain: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.llm.complete(platform, query)
        except Exception as e:
            logger.error(f"Visibility query failed on {platform} ({query!r}): {e}")
            return None
        return {
            "platform": platform,
            "query": query,
            "raw_response": raw,
            **analyze_response(raw, brand_name, shop_domain),
        }

    async def run_visibility_check(
        self,
        shop_domain: str,
        platforms: Optional[List[str]] = None,
        brand_name: Optional[str] = None,
        product_type: Optional[str] = None,
        queries: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Run a visibility check within the shop's monthly allowance.

        Args:
            shop_domain: The shop's myshopify.com domain
            platforms: Platforms to query (defaults to the first configured one)
            brand_name: Name to look for (defaults to the shop name)
            product_type: Category used for discovery queries
            queries: Explicit queries replacing the generated ones

        Returns:
            Dictionary with shop_domain, brand_name, results and summary

        Raises:
            PlanLimitError: If the monthly allowance is used up
            ValidationError: If no requested platform is configured
        """
        shop = self.db.require_shop(shop_domain)
        limits = get_plan_limits(shop.plan)

        month_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        used = self.db.count_visibility_checks_since(shop.id, month_start)
        allowance = limits.visibility_checks_per_month
        if used >= allowance:
            raise PlanLimitError(
                f"Visibility check limit reached ({allowance}/month). Upgrade your plan for more checks.",
                limit=allowance,
                used=used,
            )

        available = self.llm.available_platforms()
        if platforms:
            selected = [p for p in platforms if p in available]
        else:
            selected = available[:1]
        selected = selected[: limits.platforms]
        if not selected:
            raise ValidationError("No AI platforms configured. Please add API keys in your environment.")

        brand_name = brand_name or default_brand_name(shop_domain, shop.name)
        if product_type is None:
            audits = self.db.get_product_audits(shop.id, limit=1)
            if audits and audits[0].title:
                product_type = audits[0].title.split()[-1]

        per_platform = min(self.max_queries_per_platform, (allowance - used) // len(selected))
        to_run = (queries or generate_queries(brand_name, product_type))[:per_platform]
        if not to_run:
            raise PlanLimitError("Not enough remaining checks this month", limit=allowance, used=used)

        logger.info(f"Checking visibility of {brand_name} on {', '.join(selected)} ({len(to_run)} queries each)")

        outcomes = await asyncio.gather(
            *(self._check(p, q, brand_name, shop_domain) for p in selected for q in to_run)
        )
        results = [r for r in outcomes if r is not None]

        if results:
            now = datetime.utcnow()
            self.db.save_visibility_checks(shop.id, [{**r, "checked_at": now} for r in results])

        mentioned = sum(1 for r in results if r["is_mentioned"])
        self.db.record_audit_log(
            shop.id,
            "visibility_check",
            {"queries_run": len(to_run), "platforms_checked": selected, "mentioned": mentioned},
        )

        competitors: List[str] = []
        for result in results:
            for found in result["competitors_found"]:
                if found["name"] not in competitors:
                    competitors.append(found["name"])

        summary = {
            "total_checks": len(results),
            "mentioned": mentioned,
            "not_mentioned": len(results) - mentioned,
            "competitors_found": competitors,
        }
        logger.info(f"Visibility check completed for {shop_domain}: {mentioned}/{len(results)} mentioned")

        return {"shop_domain": shop_domain, "brand_name": brand_name, "results": results, "summary": summary}

    def get_visibility_history(self, shop_domain: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Latest visibility checks for a shop, newest first."""
        shop = self.db.require_shop(shop_domain)
        return [
            {
                "id": c.id,
                "platform": c.platform,
                "query": c.query,
                "is_mentioned": c.is_mentioned,
                "mention_context": c.mention_context,
                "position": c.position,
                "competitors_found": c.competitors_found or [],
                "response_quality": c.response_quality,
                "raw_response": c.raw_response,
                "checked_at": c.checked_at.isoformat(),
            }
            for c in self.db.get_visibility_history(shop.id, limit=limit)
        ]
