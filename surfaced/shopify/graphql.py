"""Shopify Admin GraphQL client."""

import re
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from ..utils.errors import ExternalServiceError

SHOPIFY_API_VERSION = "2025-01"

PRODUCTS_QUERY = """
query GetProducts($first: Int!, $after: String) {
  products(first: $first, after: $after) {
    nodes {
      id
      title
      handle
      descriptionHtml
      description
      vendor
      productType
      tags
      status
      featuredImage { url altText }
      images(first: 10) { nodes { url altText } }
      metafields(first: 20) { nodes { namespace key value } }
      seo { title description }
      priceRangeV2 {
        minVariantPrice { amount currencyCode }
        maxVariantPrice { amount currencyCode }
      }
      variants(first: 10) { nodes { sku price availableForSale } }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

COLLECTIONS_QUERY = """
query GetCollections($first: Int!) {
  collections(first: $first) {
    nodes { id handle title description }
  }
}
"""

SHOP_INFO_QUERY = """
query GetShopInfo {
  shop {
    name
    email
    currencyCode
    primaryDomain { host }
    plan { displayName }
  }
  productsCount { count }
}
"""


class ProductImage(BaseModel):
    url: str
    alt_text: Optional[str] = None


class ProductVariant(BaseModel):
    sku: Optional[str] = None
    price: Optional[float] = None
    available_for_sale: bool = True


class ShopifyProduct(BaseModel):
    """Normalized product as returned by the Admin API."""

    id: str
    title: str
    handle: str
    description: str = ""
    description_html: str = ""
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    featured_image: Optional[ProductImage] = None
    images: List[ProductImage] = Field(default_factory=list)
    metafields: List[Dict[str, Any]] = Field(default_factory=list)
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    currency: str = "USD"
    variants: List[ProductVariant] = Field(default_factory=list)

    @property
    def numeric_id(self) -> str:
        """Trailing number of the product GID, or the GID itself."""
        match = re.search(r"/(\d+)$", self.id)
        return match.group(1) if match else self.id

    @property
    def available(self) -> bool:
        if not self.variants:
            return self.status in (None, "ACTIVE")
        return any(v.available_for_sale for v in self.variants)

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "ShopifyProduct":
        seo = node.get("seo") or {}
        price_range = node.get("priceRangeV2") or {}
        min_price = (price_range.get("minVariantPrice") or {})
        max_price = (price_range.get("maxVariantPrice") or {})
        featured = node.get("featuredImage")

        return cls(
            id=node["id"],
            title=node.get("title") or "",
            handle=node.get("handle") or "",
            description=node.get("description") or "",
            description_html=node.get("descriptionHtml") or "",
            vendor=node.get("vendor") or None,
            product_type=node.get("productType") or None,
            tags=node.get("tags") or [],
            status=node.get("status"),
            featured_image=(
                ProductImage(url=featured["url"], alt_text=featured.get("altText"))
                if featured
                else None
            ),
            images=[
                ProductImage(url=img["url"], alt_text=img.get("altText"))
                for img in (node.get("images") or {}).get("nodes", [])
            ],
            metafields=(node.get("metafields") or {}).get("nodes", []),
            seo_title=seo.get("title"),
            seo_description=seo.get("description"),
            min_price=float(min_price["amount"]) if min_price.get("amount") else None,
            max_price=float(max_price["amount"]) if max_price.get("amount") else None,
            currency=min_price.get("currencyCode") or "USD",
            variants=[
                ProductVariant(
                    sku=v.get("sku"),
                    price=float(v["price"]) if v.get("price") else None,
                    available_for_sale=v.get("availableForSale", True),
                )
                for v in (node.get("variants") or {}).get("nodes", [])
            ],
        )


class ShopifyCollection(BaseModel):
    id: str
    handle: str
    title: str
    description: str = ""


class ShopInfo(BaseModel):
    name: str
    email: Optional[str] = None
    primary_domain: Optional[str] = None
    plan_name: Optional[str] = None
    currency: str = "USD"
    products_count: int = 0


class ShopifyClient:
    """Thin async client for the Shopify Admin GraphQL API."""

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = SHOPIFY_API_VERSION,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Shopify client.

        Args:
            shop_domain: The shop's myshopify.com domain
            access_token: Admin API access token
            api_version: Admin API version
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.endpoint = f"https://{shop_domain}/admin/api/{api_version}/graphql.json"
        self.timeout = timeout
        self.transport = transport

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL query and return its data payload.

        Raises:
            ExternalServiceError: On HTTP failure or GraphQL errors
        """
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint, json={"query": query, "variables": variables or {}}, headers=headers
                )
        except httpx.HTTPError as e:
            logger.error(f"Shopify request failed for {self.shop_domain}: {e}")
            raise ExternalServiceError("shopify", str(e)) from e

        if response.status_code >= 400:
            logger.error(
                f"GraphQL request failed for {self.shop_domain}: {response.status_code} {response.text[:200]}"
            )
            raise ExternalServiceError("shopify", f"GraphQL request failed: {response.status_code}")

        payload = response.json()
        if payload.get("errors"):
            logger.error(f"GraphQL errors for {self.shop_domain}: {payload['errors']}")
            raise ExternalServiceError("shopify", f"GraphQL errors: {payload['errors']}")

        return payload.get("data") or {}

    async def fetch_products(self, first: int = 50, cursor: Optional[str] = None) -> Dict[str, Any]:
        """Fetch one page of products.

        Returns:
            Dictionary with products list, has_next_page and end_cursor
        """
        data = await self.execute(PRODUCTS_QUERY, {"first": min(first, 250), "after": cursor})
        products = data.get("products") or {}
        page_info = products.get("pageInfo") or {}
        return {
            "products": [ShopifyProduct.from_node(n) for n in products.get("nodes", [])],
            "has_next_page": bool(page_info.get("hasNextPage")),
            "end_cursor": page_info.get("endCursor"),
        }

    async def fetch_all_products(self, limit: int = 250, page_size: int = 50) -> List[ShopifyProduct]:
        """Follow pagination until limit products are collected."""
        products: List[ShopifyProduct] = []
        cursor = None
        while len(products) < limit:
            page = await self.fetch_products(first=min(page_size, limit - len(products)), cursor=cursor)
            products.extend(page["products"])
            if not page["has_next_page"]:
                break
            cursor = page["end_cursor"]
        return products[:limit]

    async def fetch_collections(self, first: int = 50) -> List[ShopifyCollection]:
        data = await self.execute(COLLECTIONS_QUERY, {"first": first})
        return [
            ShopifyCollection(
                id=n["id"],
                handle=n.get("handle") or "",
                title=n.get("title") or "",
                description=n.get("description") or "",
            )
            for n in (data.get("collections") or {}).get("nodes", [])
        ]

    async def fetch_shop_info(self) -> ShopInfo:
        data = await self.execute(SHOP_INFO_QUERY)
        shop = data.get("shop") or {}
        return ShopInfo(
            name=shop.get("name") or self.shop_domain,
            email=shop.get("email"),
            primary_domain=(shop.get("primaryDomain") or {}).get("host"),
            plan_name=(shop.get("plan") or {}).get("displayName"),
            currency=shop.get("currencyCode") or "USD",
            products_count=(data.get("productsCount") or {}).get("count", 0),
        )
