"""Shopify Admin API access"""

from .graphql import ShopifyClient, ShopifyCollection, ShopifyProduct, ShopInfo, ProductImage, ProductVariant

__all__ = [
    "ShopifyClient",
    "ShopifyCollection",
    "ShopifyProduct",
    "ShopInfo",
    "ProductImage",
    "ProductVariant",
]
