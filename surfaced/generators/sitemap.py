"""XML sitemap generation with image extensions."""

from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from ..shopify.graphql import ShopifyCollection, ShopifyProduct

XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

STANDARD_PAGES = ["about", "contact", "faq", "shipping", "returns", "privacy-policy", "terms-of-service"]

DEFAULT_SITEMAP_CONFIG = {
    "include_products": True,
    "include_collections": True,
    "include_pages": True,
    "include_blog": True,
    "default_changefreq": "weekly",
    "product_priority": 0.8,
    "collection_priority": 0.7,
    "page_priority": 0.5,
}


def _escape(value: str) -> str:
    return escape(value, XML_ENTITIES)


def generate_sitemap_xml(urls: List[Dict[str, Any]]) -> str:
    """Render a urlset.

    Each url dict has loc and optionally lastmod, changefreq, priority and
    images (list of {loc, title, caption}).
    """
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"',
        '        xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">',
    ]

    for url in urls:
        lines.append("  <url>")
        lines.append(f"    <loc>{_escape(url['loc'])}</loc>")
        if url.get("lastmod"):
            lines.append(f"    <lastmod>{url['lastmod']}</lastmod>")
        if url.get("changefreq"):
            lines.append(f"    <changefreq>{url['changefreq']}</changefreq>")
        if url.get("priority") is not None:
            lines.append(f"    <priority>{url['priority']:.1f}</priority>")
        for image in url.get("images") or []:
            lines.append("    <image:image>")
            lines.append(f"      <image:loc>{_escape(image['loc'])}</image:loc>")
            if image.get("title"):
                lines.append(f"      <image:title>{_escape(image['title'])}</image:title>")
            if image.get("caption"):
                lines.append(f"      <image:caption>{_escape(image['caption'])}</image:caption>")
            lines.append("    </image:image>")
        lines.append("  </url>")

    lines.append("</urlset>")
    return "\n".join(lines)


def generate_sitemap_index(sitemaps: List[Dict[str, str]]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
    ]
    for sitemap in sitemaps:
        lines.append("  <sitemap>")
        lines.append(f"    <loc>{_escape(sitemap['loc'])}</loc>")
        if sitemap.get("lastmod"):
            lines.append(f"    <lastmod>{sitemap['lastmod']}</lastmod>")
        lines.append("  </sitemap>")
    lines.append("</sitemapindex>")
    return "\n".join(lines)


def build_shop_urls(
    shop_domain: str,
    products: List[ShopifyProduct],
    collections: Optional[List[ShopifyCollection]] = None,
    config: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """List the URLs of a store in sitemap order: home, products, collections, pages, blog."""
    config = {**DEFAULT_SITEMAP_CONFIG, **(config or {})}
    base = f"https://{shop_domain}"
    urls: List[Dict[str, Any]] = [{"loc": f"{base}/", "changefreq": "daily", "priority": 1.0}]

    if config["include_products"]:
        for product in products:
            url: Dict[str, Any] = {
                "loc": f"{base}/products/{product.handle}",
                "changefreq": config["default_changefreq"],
                "priority": config["product_priority"],
            }
            if product.images:
                url["images"] = [
                    {"loc": image.url, "title": product.title, "caption": image.alt_text or product.title}
                    for image in product.images
                ]
            urls.append(url)

    if config["include_collections"]:
        urls.append({"loc": f"{base}/collections", "changefreq": "weekly", "priority": config["collection_priority"]})
        urls.append({"loc": f"{base}/collections/all", "changefreq": "daily", "priority": config["collection_priority"]})
        for collection in collections or []:
            urls.append(
                {
                    "loc": f"{base}/collections/{collection.handle}",
                    "changefreq": "weekly",
                    "priority": config["collection_priority"],
                }
            )

    if config["include_pages"]:
        for page in STANDARD_PAGES:
            urls.append({"loc": f"{base}/pages/{page}", "changefreq": "monthly", "priority": config["page_priority"]})

    if config["include_blog"]:
        urls.append({"loc": f"{base}/blogs/news", "changefreq": "weekly", "priority": 0.6})

    return urls


def generate_shop_sitemap(
    shop_domain: str,
    products: List[ShopifyProduct],
    collections: Optional[List[ShopifyCollection]] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Generate a store sitemap.

    Returns:
        Dictionary with sitemap (XML string), url_count and image_count
    """
    urls = build_shop_urls(shop_domain, products, collections, config)
    return {
        "sitemap": generate_sitemap_xml(urls),
        "url_count": len(urls),
        "image_count": sum(len(url.get("images") or []) for url in urls),
    }
