"""llms.txt generation following the llmstxt.org layout.

The file is a markdown document: an H1 title, a blockquote summary,
optional free text, then H2 sections listing links.
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional

from ..shopify.graphql import ShopifyCollection, ShopifyProduct
from ..utils.errors import ForbiddenError
from ..utils.text import strip_html, truncate

DEFAULT_ALLOWED_BOTS = ["ChatGPT-User", "GPTBot", "ClaudeBot", "PerplexityBot", "Google-Extended"]
MAX_PRODUCTS = 500
DISABLED_MESSAGE = "llms.txt generation is disabled for this shop"

DEFAULT_LLMS_TXT_CONFIG = {
    "is_enabled": True,
    "allowed_bots": DEFAULT_ALLOWED_BOTS,
    "include_products": True,
    "include_collections": True,
    "include_blog": False,
    "excluded_product_ids": [],
    "custom_instructions": None,
}


def ensure_enabled(config: Optional[Dict[str, Any]]):
    """Raise ForbiddenError when a stored config turns llms.txt off."""
    if not {**DEFAULT_LLMS_TXT_CONFIG, **(config or {})}["is_enabled"]:
        raise ForbiddenError(DISABLED_MESSAGE)


def main_categories(products: List[ShopifyProduct], limit: int = 5) -> List[str]:
    """Most common product types, most frequent first."""
    counts = Counter(p.product_type or "General" for p in products)
    return [product_type for product_type, _ in counts.most_common(limit)]


def format_price(product: ShopifyProduct) -> str:
    if product.min_price is None:
        return ""
    high = product.max_price if product.max_price is not None else product.min_price
    if product.min_price == high:
        return f"{product.currency} {product.min_price:.2f}"
    return f"{product.currency} {product.min_price:.2f} - {high:.2f}"


def generate_llms_txt(
    shop_domain: str,
    shop_name: str,
    products: List[ShopifyProduct],
    collections: Optional[List[ShopifyCollection]] = None,
    config: Optional[Dict[str, Any]] = None,
    description: Optional[str] = None,
) -> str:
    """Render the llms.txt for a store.

    Args:
        shop_domain: Public domain of the store
        shop_name: Store name used as the title
        products: Catalog products
        collections: Store collections
        config: Stored llms.txt settings, merged over the defaults
        description: Optional free-text store description

    Returns:
        llms.txt content

    Raises:
        ForbiddenError: If the shop has turned llms.txt off
    """
    ensure_enabled(config)
    config = {**DEFAULT_LLMS_TXT_CONFIG, **(config or {})}
    base = f"https://{shop_domain}"
    lines = [f"# {shop_name}", ""]

    categories = main_categories(products)
    category_text = f"selling {', '.join(categories)}" if categories else "online store"
    lines.append(
        f"> {shop_name} is an e-commerce store {category_text}. Browse our products and collections below."
    )
    lines.append("")

    if description:
        lines.extend([description, ""])

    allowed_bots = config.get("allowed_bots") or []
    if allowed_bots:
        lines.extend(["## AI Crawlers", "", f"This content is optimized for: {', '.join(allowed_bots)}", ""])

    if config["include_products"] and products:
        excluded = set(config.get("excluded_product_ids") or [])
        listed = [
            p for p in products
            if p.id not in excluded and p.numeric_id not in excluded and p.available
        ][:MAX_PRODUCTS]

        if listed:
            lines.extend(["## Products", ""])
            for product in listed:
                summary = truncate(strip_html(product.description_html or product.description), 150)
                details = " - ".join(part for part in (summary, format_price(product)) if part)
                link = f"- [{product.title}]({base}/products/{product.handle})"
                lines.append(f"{link}: {details}" if details else link)
            lines.append("")

    if config["include_collections"] and collections:
        lines.extend(["## Collections", ""])
        for collection in collections:
            summary = truncate(strip_html(collection.description), 100)
            link = f"- [{collection.title}]({base}/collections/{collection.handle})"
            lines.append(f"{link}: {summary}" if summary else link)
        lines.append("")

    if config.get("include_blog"):
        lines.extend(["## Blog", "", f"- [News]({base}/blogs/news): Latest articles and announcements", ""])

    if config.get("custom_instructions"):
        lines.extend(["## Additional Information", "", config["custom_instructions"], ""])

    lines.extend(
        [
            "## Optional",
            "",
            f"- [All Products]({base}/collections/all): Browse our complete product catalog",
            f"- [Contact Us]({base}/pages/contact): Get in touch with our team",
            "",
            "---",
            "*Generated by [Surfaced](https://surfaced.vercel.app) - AI Visibility for Shopify*",
            f"*Last updated: {date.today().isoformat()}*",
        ]
    )
    return "\n".join(lines)
