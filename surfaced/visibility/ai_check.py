"""Brand visibility check across AI assistants, independent of Shopify."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from ..storage.database import Database
from ..utils.errors import NotFoundError
from .llm import LLMClient
from .mining import COMMON_BRANDS, brand_variants, detect_sentiment, extract_competitors, extract_list_position

PLATFORM_MODELS = {
    "chatgpt": "openai/gpt-4o-mini",
    "claude": "anthropic/claude-3.5-haiku",
    "perplexity": "perplexity/sonar",
    "gemini": "google/gemini-2.0-flash-001",
}

DISPLAY_NAMES = {
    "chatgpt": "ChatGPT",
    "claude": "Claude",
    "perplexity": "Perplexity",
    "gemini": "Gemini",
}

BRAND_ASSISTANT_PROMPT = (
    "You are a helpful assistant. Provide detailed, honest information about brands and "
    "products when asked. Include specific details and recommendations when relevant."
)

MENTION_POINTS = 15
TOP_POSITION_POINTS = 5
POSITIVE_POINTS = 5
MAX_PLATFORM_POINTS = MENTION_POINTS + TOP_POSITION_POINTS + POSITIVE_POINTS


def brand_prompts(brand: str) -> List[str]:
    return [
        f"What do you know about {brand}?",
        f"Is {brand} a good brand? What are they known for?",
        f"Can you recommend {brand}? Tell me about their products or services.",
    ]


def analyze_brand_response(response: str, brand: str) -> Dict[str, Any]:
    """Mine an assistant answer about a brand.

    Returns:
        Dictionary with mentioned, position, sentiment, snippet and competitors
    """
    lower = response.lower()
    variants = brand_variants(brand)
    mentioned = any(v in lower for v in variants)

    position = None
    snippet = ""
    sentiment = "neutral"
    if mentioned:
        position = extract_list_position(response, variants)
        index = lower.find(brand.lower())
        if index != -1:
            start = max(0, index - 50)
            end = min(len(response), index + 150)
            snippet = response[start:end].strip()
            if start > 0:
                snippet = "..." + snippet
            if end < len(response):
                snippet = snippet + "..."
        sentiment = detect_sentiment(response)

    return {
        "mentioned": mentioned,
        "position": position,
        "sentiment": sentiment,
        "snippet": snippet,
        "competitors": extract_competitors(response, [brand], COMMON_BRANDS),
    }


def calculate_aeo_score(results: List[Dict[str, Any]]) -> int:
    """0-100 score: each platform earns up to 25 points."""
    if not results:
        return 0
    points = 0
    for result in results:
        if result["mentioned"]:
            points += MENTION_POINTS
            if result["position"] and result["position"] <= 3:
                points += TOP_POSITION_POINTS
            if result["sentiment"] == "positive":
                points += POSITIVE_POINTS
    return min(round(points / (len(results) * MAX_PLATFORM_POINTS) * 100), 100)


def brand_recommendations(results: List[Dict[str, Any]], brand: str) -> List[str]:
    recommendations = []
    missing = [r for r in results if not r["mentioned"]]

    if missing:
        names = ", ".join(r["display_name"] for r in missing)
        recommendations.append(
            f"Improve visibility on {names} by creating more authoritative content about {brand}."
        )
    if results and len(missing) >= len(results) / 2:
        recommendations.append("Add an llms.txt file to your website to help AI crawlers understand your brand.")
        recommendations.append(
            "Implement JSON-LD structured data (Organization, Product schemas) for better AI indexing."
        )
    if any(r["sentiment"] == "negative" for r in results):
        recommendations.append("Address negative sentiment by improving customer reviews and public perception.")

    competitors: List[str] = []
    for result in results:
        competitors.extend(c for c in result["competitors"] if c not in competitors)
    if competitors:
        recommendations.append(
            f"Competitors mentioned alongside your brand: {', '.join(competitors[:5])}. "
            "Consider competitive positioning."
        )

    if not recommendations:
        recommendations.append(
            "Your brand has good AI visibility! Continue creating quality content to maintain your position."
        )
    return recommendations


class AIChecker:
    """Query several assistants through OpenRouter about a brand."""

    def __init__(self, llm: LLMClient, platform_models: Optional[Dict[str, str]] = None):
        self.llm = llm
        self.platform_models = platform_models or PLATFORM_MODELS

    async def check_platform(self, platform: str, brand: str) -> Dict[str, Any]:
        """Query one platform; failures produce a not-mentioned result."""
        base = {"platform": platform, "display_name": DISPLAY_NAMES.get(platform, platform)}
        try:
            raw = await self.llm.complete_openrouter(
                self.platform_models[platform],
                brand_prompts(brand)[0],
                system=BRAND_ASSISTANT_PROMPT,
                max_tokens=800,
            )
        except Exception as e:
            logger.error(f"AI check failed on {platform} for {brand}: {e}")
            return {
                **base,
                "mentioned": False,
                "position": None,
                "sentiment": "neutral",
                "snippet": "",
                "raw_response": "",
                "competitors": [],
            }
        return {**base, "raw_response": raw, **analyze_brand_response(raw, brand)}

    async def run_ai_check(
        self, brand: str, domain: Optional[str] = None, platforms: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Check a brand on every requested platform concurrently.

        Args:
            brand: Brand name
            domain: Brand website, echoed back
            platforms: Platforms to check (defaults to all four)

        Returns:
            Dictionary with brand, domain, aeo_score, platforms, recommendations and checked_at
        """
        platforms = platforms or list(self.platform_models)
        logger.info(f"Running AI check for {brand} on {', '.join(platforms)}")

        results = list(await asyncio.gather(*(self.check_platform(p, brand) for p in platforms)))
        return {
            "brand": brand,
            "domain": domain,
            "aeo_score": calculate_aeo_score(results),
            "platforms": results,
            "recommendations": brand_recommendations(results, brand),
            "checked_at": datetime.utcnow().isoformat(),
        }


class BrandMonitor:
    """Run AI checks for stored brands and keep their history."""

    def __init__(self, db: Database, checker: AIChecker):
        self.db = db
        self.checker = checker

    async def check_brand(self, brand_id: int) -> Dict[str, Any]:
        brand = self.db.get_brand(brand_id)
        if brand is None:
            raise NotFoundError("Brand")

        result = await self.checker.run_ai_check(brand.name, brand.domain)
        by_platform = {r["platform"]: r for r in result["platforms"]}
        self.db.save_brand_check(
            brand.id,
            aeo_score=result["aeo_score"],
            chatgpt_result=by_platform.get("chatgpt"),
            claude_result=by_platform.get("claude"),
            perplexity_result=by_platform.get("perplexity"),
            gemini_result=by_platform.get("gemini"),
            recommendations=result["recommendations"],
        )
        logger.info(f"Brand check saved for {brand.name}: AEO score {result['aeo_score']}")
        return result
