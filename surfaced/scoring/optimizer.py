"""AI-written content suggestions for weak products.

Suggestions are drafts for the merchant to review; nothing is written
back to Shopify. Every generation run counts against the shop's
monthly ``ai_optimizations_per_month`` allowance.
"""

import asyncio
import json
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from ..shopify.graphql import ShopifyProduct
from ..storage.database import Database
from ..storage.models import Shop
from ..utils.errors import ExternalServiceError, PlanLimitError, ServiceUnavailableError
from ..utils.plans import get_plan_limits
from ..visibility.llm import LLMClient

OPTIMIZATION_ACTION = "ai_optimization"

# Products scoring below this are offered for optimization
NEEDS_WORK_SCORE = 70
TARGET_DESCRIPTION_LENGTH = 150
TARGET_TAG_COUNT = 5
MIN_ALT_TEXT_LENGTH = 10
MAX_ALT_TEXT_IMAGES = 5

COPYWRITER_SYSTEM = (
    "You are an expert e-commerce copywriter. You write product content that shoppers enjoy "
    "reading and that AI assistants can summarize and recommend accurately."
)
SEO_SYSTEM = "You are an SEO specialist for online stores. You write concise, keyword-rich metadata."
ALT_TEXT_SYSTEM = (
    "You write accessible, descriptive image alt text for product photos. The text helps "
    "visually impaired shoppers and AI systems understand what the image shows."
)

CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass
class OptimizationSuggestion:
    """A drafted replacement for one product field."""

    field: str  # description, seo_title, seo_description, tags
    original: str
    suggested: str
    reasoning: str
    improvement: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def content_score(
    description: str,
    seo_title: Optional[str],
    seo_description: Optional[str],
    tags: List[str],
) -> int:
    """Score the fields content suggestions can change, from 0 to 100."""
    score = 100
    length = len(description or "")

    if not length:
        score -= 40
    elif length < 50:
        score -= 25
    elif length < TARGET_DESCRIPTION_LENGTH:
        score -= 10

    if not seo_title:
        score -= 5
    if not seo_description:
        score -= 5

    if not tags:
        score -= 5
    elif len(tags) < 3:
        score -= 2

    if length >= 300:
        score += 5
    if len(tags) >= TARGET_TAG_COUNT:
        score += 2

    return max(0, min(100, score))


def split_tags(text: str) -> List[str]:
    return [tag.strip() for tag in text.split(",") if tag.strip()]


def estimated_score(product: ShopifyProduct, suggestions: List[OptimizationSuggestion]) -> int:
    """Content score the product would reach with every suggestion applied."""
    fields = {
        "description": product.description,
        "seo_title": product.seo_title,
        "seo_description": product.seo_description,
        "tags": list(product.tags),
    }
    for suggestion in suggestions:
        if suggestion.field == "tags":
            fields["tags"] = split_tags(suggestion.suggested)
        else:
            fields[suggestion.field] = suggestion.suggested
    return content_score(**fields)


def _product_facts(product: ShopifyProduct, description_chars: int) -> str:
    description = (product.description or "")[:description_chars] or "None"
    return (
        f"Product: {product.title}\n"
        f"Type: {product.product_type or 'Not specified'}\n"
        f"Brand: {product.vendor or 'Not specified'}\n"
        f"Current description: {description}\n"
        f"Current tags: {', '.join(product.tags) or 'None'}"
    )


def description_prompt(product: ShopifyProduct) -> str:
    return (
        "Write an AI-friendly product description for this product.\n\n"
        f"{_product_facts(product, 1000)}\n\n"
        "Requirements:\n"
        "- 150 to 300 words\n"
        "- Cover the key features and the benefits to the customer\n"
        "- Plain, natural language with relevant keywords used naturally\n"
        "- No hype, clickbait or exaggerated claims\n\n"
        "Return only the description text."
    )


def seo_title_prompt(product: ShopifyProduct) -> str:
    return (
        "Write an SEO page title for this product.\n\n"
        f"{_product_facts(product, 200)}\n\n"
        "Requirements:\n"
        "- At most 60 characters\n"
        "- Lead with the primary keyword (the product type)\n"
        "- Mention the brand when it helps\n\n"
        "Return only the title, without quotes."
    )


def seo_description_prompt(product: ShopifyProduct) -> str:
    return (
        "Write an SEO meta description for this product.\n\n"
        f"{_product_facts(product, 200)}\n\n"
        "Requirements:\n"
        "- 150 to 160 characters\n"
        "- Summarize the main benefit and end with a call to action\n"
        "- Use the primary keyword naturally\n\n"
        "Return only the meta description, without quotes."
    )


def tags_prompt(product: ShopifyProduct) -> str:
    return (
        "Suggest product tags that improve discoverability and filtering.\n\n"
        f"{_product_facts(product, 300)}\n\n"
        "Requirements:\n"
        "- 5 to 10 specific tags covering category, material, style and use case\n"
        "- Separate tags with commas\n\n"
        "Return only the comma-separated tags."
    )


def alt_text_prompt(product: ShopifyProduct, image_url: str, number: int) -> str:
    return (
        f"Write alt text for image {number} of the product \"{product.title}\".\n\n"
        f"{_product_facts(product, 200)}\n"
        f"Image URL: {image_url}\n\n"
        "Requirements:\n"
        "- 50 to 125 characters\n"
        "- Describe what the image likely shows: angle, context or use\n"
        "- Include the product name naturally\n"
        "- Do not start with \"Image of\" or \"Picture of\"\n\n"
        "Return only the alt text, without quotes."
    )


def meta_tags_prompt(product: ShopifyProduct) -> str:
    return (
        "Write meta tags for this product page.\n\n"
        f"{_product_facts(product, 300)}\n"
        f"Current SEO title: {product.seo_title or 'None'}\n"
        f"Current SEO description: {product.seo_description or 'None'}\n\n"
        "Answer with a JSON object with these keys:\n"
        "- seo_title: 50 to 60 characters, primary keyword first\n"
        "- seo_description: 150 to 160 characters with a call to action\n"
        "- og_title: 60 to 90 characters for social sharing\n"
        "- og_description: about 200 characters for social sharing\n\n"
        "Return only the JSON object, without markdown."
    )


def parse_meta_tags(text: str) -> Dict[str, str]:
    """Parse the meta tag JSON, tolerating a surrounding code fence."""
    data = json.loads(CODE_FENCE.sub("", text.strip()))
    if not isinstance(data, dict):
        raise ValueError("meta tags must be a JSON object")
    return {key: str(value).strip() for key, value in data.items() if value}


class ContentOptimizer:
    """Draft better descriptions, SEO fields, tags and alt text with an LLM."""

    def __init__(self, db: Database, llm: LLMClient, platform: Optional[str] = None):
        """Initialize content optimizer.

        Args:
            db: Database instance
            llm: Client used to write suggestions
            platform: Platform to write with (defaults to ChatGPT, else the first configured)
        """
        self.db = db
        self.llm = llm
        self.platform = platform

    def _writer_platform(self) -> str:
        available = self.llm.available_platforms()
        if self.platform:
            if self.platform not in available:
                raise ServiceUnavailableError(f"{self.platform} is not configured for content suggestions")
            return self.platform
        if not available:
            raise ServiceUnavailableError("No AI platform configured for content suggestions")
        return "chatgpt" if "chatgpt" in available else available[0]

    def check_quota(self, shop_domain: str) -> Dict[str, Any]:
        """Monthly optimization allowance for a shop.

        Returns:
            Dictionary with available, used, limit and remaining
        """
        shop = self.db.require_shop(shop_domain)
        return self._quota(shop)

    def _quota(self, shop: Shop) -> Dict[str, Any]:
        limit = get_plan_limits(shop.plan).ai_optimizations_per_month
        month_start = datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        used = self.db.count_audit_logs(shop.id, OPTIMIZATION_ACTION, since=month_start)
        return {
            "available": used < limit,
            "used": used,
            "limit": limit,
            "remaining": max(0, limit - used),
        }

    def require_quota(self, shop_domain: str) -> Shop:
        """Return the shop, or raise PlanLimitError when the allowance is used up."""
        shop = self.db.require_shop(shop_domain)
        quota = self._quota(shop)
        if not quota["available"]:
            raise PlanLimitError(
                f"AI optimization limit reached ({quota['limit']}/month). Upgrade your plan for more.",
                limit=quota["limit"],
                used=quota["used"],
            )
        return shop

    def _record(self, shop: Shop, product: ShopifyProduct, kind: str, count: int):
        self.db.record_audit_log(
            shop.id,
            OPTIMIZATION_ACTION,
            {"type": kind, "product_id": product.numeric_id, "suggestions_count": count},
        )
        logger.info(f"{count} {kind} suggestions generated for {product.title} ({shop.shop_domain})")

    async def _write(
        self,
        platform: str,
        prompt: str,
        system: str,
        max_tokens: int,
        temperature: float,
    ) -> Optional[str]:
        try:
            text = await self.llm.complete(
                platform, prompt, system=system, max_tokens=max_tokens, temperature=temperature
            )
        except Exception as e:
            logger.error(f"Content suggestion failed on {platform}: {e}")
            return None
        return text.strip().strip('"').strip() or None

    async def suggest_content(self, shop_domain: str, product: ShopifyProduct) -> Dict[str, Any]:
        """Draft the description, SEO title, SEO description and tags a product lacks.

        A field is drafted when the description is under 150 characters, an
        SEO field is empty or the product has fewer than 5 tags. Fields are
        written concurrently; a failed field is left out of the result.

        Returns:
            Dictionary with product_id, title, handle, current_score,
            estimated_score and suggestions

        Raises:
            PlanLimitError: If the monthly allowance is used up
            ServiceUnavailableError: If no AI platform is configured
        """
        shop = self.require_quota(shop_domain)
        current = content_score(product.description, product.seo_title, product.seo_description, product.tags)

        tasks = []
        if len(product.description or "") < TARGET_DESCRIPTION_LENGTH:
            tasks.append((
                OptimizationSuggestion(
                    "description", product.description or "", "",
                    "AI assistants need detailed, natural descriptions to recommend a product accurately.",
                    "Expanded description" if product.description else "Added a product description",
                ),
                description_prompt(product), COPYWRITER_SYSTEM, 500, 0.7,
            ))
        if not product.seo_title:
            tasks.append((
                OptimizationSuggestion(
                    "seo_title", "", "",
                    "A focused page title tells search engines and AI what the product is.",
                    "Added an SEO page title",
                ),
                seo_title_prompt(product), SEO_SYSTEM, 100, 0.5,
            ))
        if not product.seo_description:
            tasks.append((
                OptimizationSuggestion(
                    "seo_description", "", "",
                    "Meta descriptions appear in results and give AI a short summary of the product.",
                    "Added a meta description",
                ),
                seo_description_prompt(product), SEO_SYSTEM, 100, 0.5,
            ))
        if len(product.tags) < TARGET_TAG_COUNT:
            tasks.append((
                OptimizationSuggestion(
                    "tags", ", ".join(product.tags), "",
                    "Tags describe attributes such as material, style and use case.",
                    "Added descriptive product tags",
                ),
                tags_prompt(product), SEO_SYSTEM, 150, 0.5,
            ))

        suggestions: List[OptimizationSuggestion] = []
        if tasks:
            platform = self._writer_platform()
            drafts = await asyncio.gather(
                *(self._write(platform, prompt, system, tokens, temp) for _, prompt, system, tokens, temp in tasks)
            )
            for (suggestion, *_), draft in zip(tasks, drafts):
                if draft:
                    suggestion.suggested = draft
                    suggestions.append(suggestion)
            self._record(shop, product, "content", len(suggestions))

        return {
            "product_id": product.numeric_id,
            "title": product.title,
            "handle": product.handle,
            "current_score": current,
            "estimated_score": estimated_score(product, suggestions),
            "suggestions": [s.to_dict() for s in suggestions],
        }

    async def suggest_alt_text(self, shop_domain: str, product: ShopifyProduct) -> Dict[str, Any]:
        """Draft alt text for up to five images with missing or very short alt text.

        Raises:
            PlanLimitError: If the monthly allowance is used up
            ServiceUnavailableError: If no AI platform is configured
        """
        shop = self.require_quota(shop_domain)

        images = [
            image for image in product.images
            if len((image.alt_text or "").strip()) < MIN_ALT_TEXT_LENGTH
        ][:MAX_ALT_TEXT_IMAGES]
        if not images:
            return {"product_id": product.numeric_id, "title": product.title, "suggestions": []}

        platform = self._writer_platform()
        drafts = await asyncio.gather(
            *(
                self._write(platform, alt_text_prompt(product, image.url, number), ALT_TEXT_SYSTEM, 100, 0.6)
                for number, image in enumerate(images, start=1)
            )
        )
        suggestions = [
            {
                "image_url": image.url,
                "original_alt": image.alt_text,
                "suggested_alt": draft,
                "reasoning": "Descriptive alt text lets AI assistants and screen readers understand the image.",
            }
            for image, draft in zip(images, drafts)
            if draft
        ]
        self._record(shop, product, "alt_text", len(suggestions))
        return {"product_id": product.numeric_id, "title": product.title, "suggestions": suggestions}

    async def suggest_meta_tags(self, shop_domain: str, product: ShopifyProduct) -> Dict[str, Any]:
        """Draft SEO and Open Graph meta tags in a single completion.

        Raises:
            PlanLimitError: If the monthly allowance is used up
            ServiceUnavailableError: If no AI platform is configured
            ExternalServiceError: If the model did not answer with a JSON object
        """
        shop = self.require_quota(shop_domain)
        platform = self._writer_platform()

        text = await self.llm.complete(
            platform, meta_tags_prompt(product), system=SEO_SYSTEM, max_tokens=400, temperature=0.6
        )
        try:
            tags = parse_meta_tags(text)
        except ValueError as e:
            logger.error(f"Unparseable meta tags for {product.title}: {e}")
            raise ExternalServiceError(platform, "Failed to generate meta tags") from e

        reasons = {
            "seo_title": "SEO titles work best at 50-60 characters with the primary keyword first.",
            "seo_description": "Meta descriptions work best at 150-160 characters with a clear call to action.",
            "og_title": "Open Graph titles appear when the product is shared on social media.",
            "og_description": "Open Graph descriptions give context to social media shares.",
        }
        originals = {"seo_title": product.seo_title or "", "seo_description": product.seo_description or ""}
        suggestions = {}
        for key, reasoning in reasons.items():
            if key not in tags:
                suggestions[key] = None
                continue
            suggestions[key] = {"suggested": tags[key], "reasoning": reasoning}
            if key in originals:
                suggestions[key]["original"] = originals[key]

        self._record(shop, product, "meta_tags", sum(1 for s in suggestions.values() if s))
        return {"product_id": product.numeric_id, "title": product.title, "suggestions": suggestions}

    def products_for_optimization(self, shop_domain: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Audited products scoring below 70, worst first."""
        shop = self.db.require_shop(shop_domain)
        return [
            {
                "shopify_product_id": audit.shopify_product_id,
                "title": audit.title,
                "handle": audit.handle,
                "ai_score": audit.ai_score,
                "issues": [
                    {"code": issue.get("code"), "message": issue.get("message")}
                    for issue in (audit.issues or [])
                    if isinstance(issue, dict)
                ],
            }
            for audit in self.db.get_product_audits(shop.id)
            if (audit.ai_score or 0) < NEEDS_WORK_SCORE
        ][:limit]
