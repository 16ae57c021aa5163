from typing import List, Optional

import pytest

from surfaced.shopify.graphql import ProductImage, ProductVariant, ShopifyProduct
from surfaced.storage import Database


@pytest.fixture
def db():
    return Database("sqlite:///:memory:")


@pytest.fixture
def shop(db):
    return db.upsert_shop("cool-socks.myshopify.com", name="Cool Socks", plan="PLUS")


def make_product(
    number: int = 1,
    title: str = "Merino Hiking Sock",
    description: str = "",
    images: int = 1,
    alt_text: Optional[str] = "Sock",
    product_type: Optional[str] = "Socks",
    tags: Optional[List[str]] = None,
    seo_title: Optional[str] = None,
    seo_description: Optional[str] = None,
    price: Optional[float] = 12.0,
    available: bool = True,
    **fields,
) -> ShopifyProduct:
    """Build a ShopifyProduct with sensible defaults for tests."""
    return ShopifyProduct(
        id=f"gid://shopify/Product/{number}",
        title=title,
        handle=title.lower().replace(" ", "-"),
        description=description,
        description_html=f"<p>{description}</p>" if description else "",
        product_type=product_type,
        tags=["hiking"] if tags is None else tags,
        images=[ProductImage(url=f"https://cdn.test/{number}-{i}.jpg", alt_text=alt_text) for i in range(images)],
        seo_title=seo_title,
        seo_description=seo_description,
        min_price=price,
        max_price=price,
        variants=[ProductVariant(sku=f"SKU-{number}", price=price, available_for_sale=available)],
        **fields,
    )


class FakeLLM:
    """Stand-in for LLMClient returning canned responses."""

    def __init__(self, responses=None, platforms=("chatgpt",), default="", openrouter=True):
        self.responses = responses or {}
        self.platforms = list(platforms)
        self.default = default
        self.has_openrouter = openrouter
        self.calls = []

    def available_platforms(self):
        return list(self.platforms)

    def _answer(self, key, prompt):
        self.calls.append((key, prompt))
        answer = self.responses.get(key, self.default)
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer

    async def complete(self, platform, prompt, system=None, max_tokens=1000, temperature=0.7):
        return self._answer(platform, prompt)

    async def complete_openrouter(self, model, prompt, system=None, max_tokens=1000, temperature=0.7):
        return self._answer(model, prompt)
