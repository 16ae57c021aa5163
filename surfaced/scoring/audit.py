"""AI readiness audit of a store's product catalog."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..shopify.graphql import ShopifyClient, ShopifyProduct
from ..storage.database import Database
from ..storage.models import Shop
from ..utils.plans import get_plan_limits


@dataclass
class AuditIssue:
    """A single problem found on a product."""

    type: str  # "critical", "warning", "info"
    code: str
    message: str
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "code": self.code, "message": self.message}
        if self.field:
            data["field"] = self.field
        return data


@dataclass
class ProductAuditResult:
    """Score and issues for one product."""

    shopify_product_id: str
    title: str
    handle: str
    ai_score: int
    issues: List[AuditIssue]
    has_images: bool
    has_description: bool
    has_metafields: bool
    description_length: int

    def to_row(self) -> Dict[str, Any]:
        """Columns for a ProductAudit row."""
        return {
            "shopify_product_id": self.shopify_product_id,
            "title": self.title,
            "handle": self.handle,
            "ai_score": self.ai_score,
            "issues": [issue.to_dict() for issue in self.issues],
            "has_images": self.has_images,
            "has_description": self.has_description,
            "has_metafields": self.has_metafields,
            "description_length": self.description_length,
        }


@dataclass
class AuditResult:
    """Outcome of auditing a store."""

    total_products: int
    audited_products: int
    average_score: int
    issues: Dict[str, int]
    products: List[ProductAuditResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_products": self.total_products,
            "audited_products": self.audited_products,
            "average_score": self.average_score,
            "issues": dict(self.issues),
            "products": [p.to_row() for p in self.products],
        }


class ProductScorer:
    """Score how well an AI assistant can understand and recommend a product.

    Every product starts at 100. Missing content costs points, with the
    heaviest penalties for a missing description or missing images. Rich
    content earns a few bonus points. The result is clamped to 0-100.

    Bands used across the app:
    - 0-39: Critical
    - 40-69: Needs work
    - 70-89: Good
    - 90-100: Excellent
    """

    SHORT_DESCRIPTION = 50
    BRIEF_DESCRIPTION = 150
    RICH_DESCRIPTION = 300

    def score(self, product: ShopifyProduct) -> ProductAuditResult:
        """Score a single product.

        Args:
            product: Product fetched from Shopify

        Returns:
            ProductAuditResult with score and issues
        """
        issues: List[AuditIssue] = []
        score = 100

        description_length = len(product.description or "")
        has_description = description_length > 0
        has_images = len(product.images) > 0
        has_metafields = len(product.metafields) > 0

        if not has_description:
            issues.append(AuditIssue(
                "critical", "NO_DESCRIPTION",
                "Product has no description. AI cannot recommend products without descriptions.",
                "description",
            ))
            score -= 40
        elif description_length < self.SHORT_DESCRIPTION:
            issues.append(AuditIssue(
                "critical", "SHORT_DESCRIPTION",
                f"Description is too short ({description_length} chars). Aim for at least 150 characters.",
                "description",
            ))
            score -= 25
        elif description_length < self.BRIEF_DESCRIPTION:
            issues.append(AuditIssue(
                "warning", "BRIEF_DESCRIPTION",
                f"Description could be longer ({description_length} chars). 200+ characters recommended.",
                "description",
            ))
            score -= 10

        if not has_images:
            issues.append(AuditIssue(
                "critical", "NO_IMAGES",
                "Product has no images. Visual content helps AI understand your product.",
                "images",
            ))
            score -= 30
        else:
            missing_alt = sum(1 for image in product.images if not image.alt_text)
            if missing_alt:
                issues.append(AuditIssue(
                    "warning", "MISSING_ALT_TEXT",
                    f"{missing_alt} image(s) missing alt text. Alt text helps AI understand images.",
                    "images",
                ))
                score -= 5 * min(missing_alt, 3)

        if not product.seo_title:
            issues.append(AuditIssue(
                "warning", "NO_SEO_TITLE",
                "No SEO title set. Custom SEO titles help AI understand your product better.",
                "seo.title",
            ))
            score -= 5

        if not product.seo_description:
            issues.append(AuditIssue(
                "warning", "NO_SEO_DESCRIPTION",
                "No SEO description set. Meta descriptions provide context to AI.",
                "seo.description",
            ))
            score -= 5

        if not product.product_type:
            issues.append(AuditIssue(
                "info", "NO_PRODUCT_TYPE",
                "No product type set. Product categorization helps AI recommendations.",
                "productType",
            ))
            score -= 5

        if not product.tags:
            issues.append(AuditIssue(
                "info", "NO_TAGS",
                "No tags set. Tags help AI understand product attributes.",
                "tags",
            ))
            score -= 5

        if not has_metafields:
            issues.append(AuditIssue(
                "info", "NO_METAFIELDS",
                "Consider adding custom metafields for richer product data.",
                "metafields",
            ))
            score -= 2

        if not product.vendor:
            issues.append(AuditIssue(
                "info", "NO_VENDOR",
                "No vendor set. Brand information can improve AI recommendations.",
                "vendor",
            ))
            score -= 2

        # Bonuses
        if description_length >= self.RICH_DESCRIPTION:
            score += 5
        if len(product.images) >= 3:
            score += 3
        if len(product.tags) >= 5:
            score += 2

        return ProductAuditResult(
            shopify_product_id=product.numeric_id,
            title=product.title,
            handle=product.handle,
            ai_score=max(0, min(100, score)),
            issues=issues,
            has_images=has_images,
            has_description=has_description,
            has_metafields=has_metafields,
            description_length=description_length,
        )


def summarize_scores(results: List[ProductAuditResult]) -> Dict[str, Any]:
    """Average score and per-band product counts."""
    scores = [r.ai_score for r in results]
    average = round(sum(scores) / len(scores)) if scores else 0
    return {
        "average_score": average,
        "issues": {
            "critical": sum(1 for s in scores if s < 40),
            "warning": sum(1 for s in scores if 40 <= s < 70),
            "info": sum(1 for s in scores if 70 <= s < 90),
        },
    }


class AuditEngine:
    """Fetch a store's products, score them and persist the results."""

    def __init__(
        self,
        db: Database,
        client_factory: Callable[[Shop], ShopifyClient],
        max_products: int = 50,
        scorer: Optional[ProductScorer] = None,
    ):
        """Initialize audit engine.

        Args:
            db: Database instance
            client_factory: Builds a Shopify client for a shop
            max_products: Hard cap on products audited per run
            scorer: Product scorer (defaults to ProductScorer)
        """
        self.db = db
        self.client_factory = client_factory
        self.max_products = max_products
        self.scorer = scorer or ProductScorer()

    async def run_audit(self, shop_domain: str) -> AuditResult:
        """Audit a shop's catalog.

        Args:
            shop_domain: The shop's myshopify.com domain

        Returns:
            AuditResult with summary and per-product results
        """
        shop = self.db.require_shop(shop_domain)
        limits = get_plan_limits(shop.plan)
        product_limit = int(min(limits.products_audited, self.max_products))

        logger.info(f"Starting audit for {shop_domain} (plan {shop.plan}, up to {product_limit} products)")

        client = self.client_factory(shop)
        shop_info = await client.fetch_shop_info()
        products = await client.fetch_all_products(limit=product_limit)

        results = [self.scorer.score(product) for product in products[:product_limit]]
        summary = summarize_scores(results)
        total_products = shop_info.products_count or len(products)

        self.db.save_product_audits(shop.id, [r.to_row() for r in results])
        self.db.update_shop_audit_summary(shop.id, summary["average_score"], total_products)
        self.db.upsert_shop(shop_domain, name=shop_info.name, email=shop_info.email)
        self.db.record_audit_log(
            shop.id,
            "audit_completed",
            {
                "total_products": total_products,
                "audited_products": len(results),
                "average_score": summary["average_score"],
                "issues": summary["issues"],
            },
        )

        logger.success(
            f"Audit completed for {shop_domain}: {len(results)} products, average score {summary['average_score']}"
        )

        return AuditResult(
            total_products=total_products,
            audited_products=len(results),
            average_score=summary["average_score"],
            issues=summary["issues"],
            products=results,
        )
