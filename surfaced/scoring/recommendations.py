"""Personalized improvement recommendations for a shop."""

from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from ..storage.database import Database

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}
CATEGORIES = ["content", "seo", "structure", "visibility", "competitive"]

VISIBILITY_WINDOW_DAYS = 30
LOW_MENTION_RATE = 30


@dataclass
class Recommendation:
    """A suggested action with its expected score improvement."""

    id: str
    category: str
    priority: str
    title: str
    description: str
    impact: str
    estimated_impact: int
    effort_level: str  # "easy", "medium", "hard"
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    affected_products: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecommendationContext:
    """Everything the rules look at.

    product_audits are dicts with shopify_product_id, ai_score, issues,
    has_images, has_description and description_length.
    """

    ai_score: float = 0
    product_audits: List[Dict[str, Any]] = field(default_factory=list)
    visibility_mentions: List[bool] = field(default_factory=list)
    competitor_count: int = 0


def _plural(count: int) -> str:
    return "s have" if count > 1 else " has"


def build_context(db: Database, shop_domain: str) -> RecommendationContext:
    """Load the recommendation inputs for a shop from storage."""
    shop = db.require_shop(shop_domain)
    since = datetime.utcnow() - timedelta(days=VISIBILITY_WINDOW_DAYS)
    audits = db.get_product_audits(shop.id)
    checks = db.get_visibility_history(shop.id, limit=None, since=since)
    return RecommendationContext(
        ai_score=shop.ai_score or 0,
        product_audits=[
            {
                "shopify_product_id": a.shopify_product_id,
                "ai_score": a.ai_score,
                "issues": a.issues or [],
                "has_images": a.has_images,
                "has_description": a.has_description,
                "description_length": a.description_length or 0,
            }
            for a in audits
        ],
        visibility_mentions=[bool(c.is_mentioned) for c in checks],
        competitor_count=len(db.list_competitors(shop.id)),
    )


def _build(context: RecommendationContext) -> List[Recommendation]:
    recommendations: List[Recommendation] = []

    def add(**kwargs):
        recommendations.append(Recommendation(id=f"rec_{len(recommendations) + 1}", **kwargs))

    audits = context.product_audits
    without_images = [a for a in audits if not a["has_images"]]
    without_description = [a for a in audits if not a["has_description"]]
    short_description = [a for a in audits if a["has_description"] and a["description_length"] < 150]

    if without_images:
        count = len(without_images)
        add(
            category="content",
            priority="critical",
            title="Add images to products",
            description=(
                f"{count} product{_plural(count)} no images. AI assistants heavily rely on "
                "visual content to understand and recommend products."
            ),
            impact="Products with images are 3x more likely to be recommended by AI.",
            action_url="/admin/products",
            action_label="View Products",
            estimated_impact=15,
            effort_level="medium",
            affected_products=count,
            metadata={"product_ids": [str(a["shopify_product_id"]) for a in without_images[:10]]},
        )

    if without_description:
        count = len(without_description)
        add(
            category="content",
            priority="critical",
            title="Add descriptions to products",
            description=(
                f"{count} product{_plural(count)} no description. AI cannot understand or "
                "recommend products without text content."
            ),
            impact="Descriptions are essential for AI to understand your products.",
            action_url="/admin/optimize",
            action_label="Use AI Optimizer",
            estimated_impact=20,
            effort_level="medium",
            affected_products=count,
        )

    if short_description:
        count = len(short_description)
        add(
            category="content",
            priority="high",
            title="Expand short descriptions",
            description=(
                f"{count} product{_plural(count)} descriptions under 150 characters. Longer, detailed "
                "descriptions help AI understand product features better."
            ),
            impact="Detailed descriptions improve AI understanding by up to 40%.",
            action_url="/admin/optimize",
            action_label="Optimize Content",
            estimated_impact=10,
            effort_level="easy",
            affected_products=count,
        )

    total_checks = len(context.visibility_mentions)
    mention_rate = sum(context.visibility_mentions) / total_checks * 100 if total_checks else 0

    if total_checks and mention_rate < LOW_MENTION_RATE:
        add(
            category="visibility",
            priority="high",
            title="Improve AI visibility",
            description=(
                f"Your brand is only mentioned in {round(mention_rate)}% of AI searches. "
                "This is below the recommended 50% threshold."
            ),
            impact="Higher visibility directly correlates with more organic traffic.",
            action_url="/admin/visibility",
            action_label="Check Visibility",
            estimated_impact=15,
            effort_level="medium",
        )

    if not total_checks:
        add(
            category="visibility",
            priority="medium",
            title="Run visibility checks",
            description=(
                "You have not run any AI visibility checks. Understanding where you appear "
                "in AI searches is crucial for optimization."
            ),
            impact="Visibility data helps prioritize optimization efforts.",
            action_url="/admin/visibility",
            action_label="Check Visibility",
            estimated_impact=5,
            effort_level="easy",
        )

    if not context.competitor_count:
        add(
            category="competitive",
            priority="medium",
            title="Track competitors",
            description=(
                "You are not tracking any competitors. Understanding how competitors appear "
                "in AI results helps identify opportunities."
            ),
            impact="Competitor insights help you find gaps in their strategy.",
            action_url="/admin/competitors",
            action_label="Add Competitors",
            estimated_impact=5,
            effort_level="easy",
        )

    issue_counts = Counter(
        issue.get("code") for audit in audits for issue in audit["issues"] if isinstance(issue, dict)
    )

    if issue_counts["NO_SEO_TITLE"] > 5:
        add(
            category="seo",
            priority="high",
            title="Add SEO titles",
            description=(
                f"{issue_counts['NO_SEO_TITLE']} products are missing SEO titles. "
                "Custom titles help AI understand product relevance."
            ),
            impact="SEO titles improve search ranking and AI understanding.",
            action_url="/admin/optimize",
            action_label="Optimize SEO",
            estimated_impact=8,
            effort_level="easy",
            affected_products=issue_counts["NO_SEO_TITLE"],
        )

    if issue_counts["NO_SEO_DESCRIPTION"] > 5:
        add(
            category="seo",
            priority="medium",
            title="Add SEO descriptions",
            description=(
                f"{issue_counts['NO_SEO_DESCRIPTION']} products are missing SEO descriptions. "
                "Meta descriptions help AI summarize your products."
            ),
            impact="Better meta descriptions improve click-through rates.",
            action_url="/admin/optimize",
            action_label="Optimize SEO",
            estimated_impact=6,
            effort_level="easy",
            affected_products=issue_counts["NO_SEO_DESCRIPTION"],
        )

    if issue_counts["NO_PRODUCT_TYPE"] > 10:
        add(
            category="structure",
            priority="medium",
            title="Categorize products",
            description=(
                f"{issue_counts['NO_PRODUCT_TYPE']} products have no product type set. "
                "Categories help AI organize and find products."
            ),
            impact="Proper categorization improves product discoverability.",
            estimated_impact=5,
            effort_level="medium",
            affected_products=issue_counts["NO_PRODUCT_TYPE"],
        )

    if issue_counts["NO_TAGS"] > 10:
        add(
            category="structure",
            priority="low",
            title="Add product tags",
            description=(
                f"{issue_counts['NO_TAGS']} products have no tags. "
                "Tags help AI find products for specific queries."
            ),
            impact="Tags improve product matching for niche queries.",
            action_url="/admin/optimize",
            action_label="Add Tags",
            estimated_impact=4,
            effort_level="easy",
            affected_products=issue_counts["NO_TAGS"],
        )

    recommendations.sort(key=lambda r: (PRIORITY_ORDER[r.priority], -r.estimated_impact))
    return recommendations


def generate_recommendations(context: RecommendationContext) -> Dict[str, Any]:
    """Apply the recommendation rules and summarize them.

    Args:
        context: Audit, visibility and competitor inputs

    Returns:
        Dictionary with counts by priority and category, the estimated total
        impact, the top five and all recommendations (as dicts)
    """
    recommendations = _build(context)

    by_priority = {priority: 0 for priority in PRIORITY_ORDER}
    by_category = {category: 0 for category in CATEGORIES}
    for rec in recommendations:
        by_priority[rec.priority] += 1
        by_category[rec.category] += 1

    estimated_total_impact = min(
        100 - (context.ai_score or 0),
        sum(r.estimated_impact for r in recommendations),
    )

    logger.debug(f"Generated {len(recommendations)} recommendations")

    all_recommendations = [r.to_dict() for r in recommendations]
    return {
        "total_recommendations": len(recommendations),
        "by_priority": by_priority,
        "by_category": by_category,
        "estimated_total_impact": estimated_total_impact,
        "top_recommendations": all_recommendations[:5],
        "all_recommendations": all_recommendations,
    }


def quick_wins(summary: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Easy recommendations worth at least 5 points, at most three."""
    return [
        r for r in summary["all_recommendations"]
        if r["effort_level"] == "easy" and r["estimated_impact"] >= 5
    ][:3]
