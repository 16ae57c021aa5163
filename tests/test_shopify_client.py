import json

import httpx
import pytest

from surfaced.shopify.graphql import ShopifyClient, ShopifyProduct
from surfaced.utils.errors import ExternalServiceError


def product_node(number, **overrides):
    node = {
        "id": f"gid://shopify/Product/{number}",
        "title": f"Sock {number}",
        "handle": f"sock-{number}",
        "description": "Warm sock",
        "descriptionHtml": "<p>Warm sock</p>",
        "vendor": "",
        "productType": "Socks",
        "tags": ["wool"],
        "status": "ACTIVE",
        "featuredImage": {"url": "https://cdn.test/a.jpg", "altText": None},
        "images": {"nodes": [{"url": "https://cdn.test/a.jpg", "altText": None}]},
        "metafields": {"nodes": []},
        "seo": {"title": None, "description": "Cozy"},
        "priceRangeV2": {
            "minVariantPrice": {"amount": "9.5", "currencyCode": "EUR"},
            "maxVariantPrice": {"amount": "12.0", "currencyCode": "EUR"},
        },
        "variants": {"nodes": [{"sku": "S1", "price": "9.5", "availableForSale": False}]},
    }
    node.update(overrides)
    return node


def make_client(handler):
    return ShopifyClient("cool-socks.myshopify.com", "shpat_test", transport=httpx.MockTransport(handler))


def test_from_node_normalizes_fields():
    product = ShopifyProduct.from_node(product_node(42))

    assert product.numeric_id == "42"
    assert product.vendor is None
    assert product.min_price == 9.5
    assert product.currency == "EUR"
    assert product.seo_description == "Cozy"
    assert product.available is False


async def test_pagination_follows_cursor():
    requests = []

    def handler(request):
        body = json.loads(request.content)
        requests.append(body["variables"])
        assert request.headers["X-Shopify-Access-Token"] == "shpat_test"
        if body["variables"]["after"] is None:
            data = {"nodes": [product_node(1), product_node(2)], "pageInfo": {"hasNextPage": True, "endCursor": "c1"}}
        else:
            data = {"nodes": [product_node(3)], "pageInfo": {"hasNextPage": False, "endCursor": None}}
        return httpx.Response(200, json={"data": {"products": data}})

    products = await make_client(handler).fetch_all_products(limit=10, page_size=2)

    assert [p.handle for p in products] == ["sock-1", "sock-2", "sock-3"]
    assert requests == [{"first": 2, "after": None}, {"first": 2, "after": "c1"}]


async def test_shop_info():
    def handler(request):
        return httpx.Response(200, json={"data": {
            "shop": {"name": "Cool Socks", "email": "hi@cool.test", "currencyCode": "USD",
                     "primaryDomain": {"host": "coolsocks.com"}, "plan": {"displayName": "Basic"}},
            "productsCount": {"count": 12},
        }})

    info = await make_client(handler).fetch_shop_info()

    assert info.primary_domain == "coolsocks.com"
    assert info.products_count == 12


async def test_graphql_errors_raise():
    client = make_client(lambda r: httpx.Response(200, json={"errors": [{"message": "Throttled"}]}))

    with pytest.raises(ExternalServiceError) as exc:
        await client.fetch_collections()
    assert exc.value.status_code == 502


async def test_http_errors_raise():
    client = make_client(lambda r: httpx.Response(401, text="Invalid API key"))

    with pytest.raises(ExternalServiceError, match="401"):
        await client.fetch_shop_info()
