"""schema.org JSON-LD generation for products, the store and breadcrumbs."""

import json
from typing import Any, Dict, List, Optional

from ..shopify.graphql import ShopifyProduct
from ..utils.text import strip_html, truncate

SCHEMA_CONTEXT = "https://schema.org"
MAX_PRODUCTS = 100

# JSON escapes that keep a document from closing its <script> element
SCRIPT_SAFE_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}

DEFAULT_JSON_LD_CONFIG = {
    "is_enabled": True,
    "include_organization": True,
    "include_products": True,
    "include_breadcrumbs": True,
    "excluded_product_ids": [],
    "custom_organization": None,
}


def generate_product_json_ld(product: ShopifyProduct, shop_domain: str, shop_name: str) -> Dict[str, Any]:
    """Build a Product schema with an Offer when the product has a price."""
    product_url = f"https://{shop_domain}/products/{product.handle}"
    data: Dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": "Product",
        "name": product.title,
        "url": product_url,
    }

    description = truncate(strip_html(product.description_html or product.description), 500)
    if description:
        data["description"] = description

    images = [image.url for image in product.images]
    if not images and product.featured_image:
        images = [product.featured_image.url]
    if images:
        data["image"] = images[0] if len(images) == 1 else images

    sku = next((v.sku for v in product.variants if v.sku), None)
    if sku:
        data["sku"] = sku

    if product.vendor:
        data["brand"] = {"@type": "Brand", "name": product.vendor}

    price = product.min_price
    if price is None:
        price = next((v.price for v in product.variants if v.price is not None), None)
    if price:
        data["offers"] = {
            "@type": "Offer",
            "price": f"{price:.2f}",
            "priceCurrency": product.currency,
            "availability": (
                "https://schema.org/InStock" if product.available else "https://schema.org/OutOfStock"
            ),
            "url": product_url,
            "seller": {"@type": "Organization", "name": shop_name},
        }

    return data


def generate_organization_json_ld(
    shop_domain: str,
    shop_name: str,
    description: Optional[str] = None,
    logo: Optional[str] = None,
    email: Optional[str] = None,
    social_links: Optional[List[str]] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "name": shop_name,
        "url": f"https://{shop_domain}",
    }
    if description:
        data["description"] = truncate(strip_html(description), 500)
    if logo:
        data["logo"] = logo
    if email:
        data["contactPoint"] = {
            "@type": "ContactPoint",
            "email": email,
            "contactType": "customer service",
        }
    if social_links:
        data["sameAs"] = list(social_links)
    return data


def generate_breadcrumb_json_ld(items: List[Dict[str, str]]) -> Dict[str, Any]:
    """Build a BreadcrumbList; positions start at 1."""
    elements = []
    for position, item in enumerate(items, start=1):
        element = {"@type": "ListItem", "position": position, "name": item["name"]}
        if item.get("url"):
            element["item"] = item["url"]
        elements.append(element)

    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": elements,
    }


def generate_all_json_ld(
    shop_domain: str,
    shop_name: str,
    products: List[ShopifyProduct],
    config: Optional[Dict[str, Any]] = None,
    email: Optional[str] = None,
) -> Dict[str, Any]:
    """Generate every enabled schema for a shop.

    Args:
        shop_domain: Public domain of the store
        shop_name: Store name
        products: Catalog products
        config: Stored JSON-LD settings, merged over the defaults
        email: Customer service email for the Organization schema

    Returns:
        Dictionary with organization, products and breadcrumbs (None/[] when disabled)
    """
    config = {**DEFAULT_JSON_LD_CONFIG, **(config or {})}
    result: Dict[str, Any] = {"organization": None, "products": [], "breadcrumbs": None}

    if not config["is_enabled"]:
        return result

    if config["include_organization"]:
        custom = config.get("custom_organization") or {}
        result["organization"] = generate_organization_json_ld(
            shop_domain,
            custom.get("name") or shop_name,
            description=custom.get("description"),
            logo=custom.get("logo"),
            email=custom.get("email") or email,
            social_links=custom.get("social_links"),
        )

    if config["include_products"]:
        excluded = set(config.get("excluded_product_ids") or [])
        eligible = [
            p for p in products
            if p.id not in excluded and p.numeric_id not in excluded and p.available
        ]
        result["products"] = [
            generate_product_json_ld(p, shop_domain, shop_name) for p in eligible[:MAX_PRODUCTS]
        ]

    if config["include_breadcrumbs"]:
        result["breadcrumbs"] = generate_breadcrumb_json_ld(
            [
                {"name": "Home", "url": f"https://{shop_domain}"},
                {"name": "Products", "url": f"https://{shop_domain}/collections/all"},
            ]
        )

    return result


def script_safe_json(document: Dict[str, Any]) -> str:
    """Serialize a document for inline use; merchant text cannot end the tag."""
    text = json.dumps(document, ensure_ascii=False)
    for char, escaped in SCRIPT_SAFE_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def render_script_tags(schemas: Dict[str, Any]) -> str:
    """Render generated schemas as embeddable <script> tags."""
    documents = []
    if schemas.get("organization"):
        documents.append(schemas["organization"])
    documents.extend(schemas.get("products") or [])
    if schemas.get("breadcrumbs"):
        documents.append(schemas["breadcrumbs"])

    return "\n".join(
        f'<script type="application/ld+json">{script_safe_json(doc)}</script>' for doc in documents
    )
