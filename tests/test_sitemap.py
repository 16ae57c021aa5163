import httpx
import pytest
from lxml import etree

from conftest import make_product

from surfaced.analyzers.sitemap import analyze_sitemap, check_sitemap, parse_sitemap, validate_sitemap_url
from surfaced.generators.sitemap import generate_shop_sitemap, generate_sitemap_index, generate_sitemap_xml
from surfaced.shopify.graphql import ShopifyCollection
from surfaced.utils.errors import ValidationError

NS = {"s": "http://www.sitemaps.org/schemas/sitemap/0.9", "image": "http://www.google.com/schemas/sitemap-image/1.1"}


def test_shop_sitemap_is_well_formed_xml():
    products = [make_product(1, title="Sock & Sandal", images=2)]
    collections = [ShopifyCollection(id="c1", handle="winter", title="Winter")]

    result = generate_shop_sitemap("cool-socks.com", products, collections)
    root = etree.fromstring(result["sitemap"].encode())

    locs = root.xpath("//s:url/s:loc/text()", namespaces=NS)
    assert locs[0] == "https://cool-socks.com/"
    assert "https://cool-socks.com/products/sock-&-sandal" in locs
    assert "https://cool-socks.com/collections/winter" in locs
    assert "https://cool-socks.com/blogs/news" in locs
    assert result["url_count"] == len(locs)
    assert result["image_count"] == 2
    assert root.xpath("//image:image/image:title/text()", namespaces=NS) == ["Sock & Sandal", "Sock & Sandal"]


def test_priorities_are_formatted_with_one_decimal():
    xml = generate_sitemap_xml([{"loc": "https://x.test/", "priority": 1, "changefreq": "daily"}])

    assert "<priority>1.0</priority>" in xml
    assert "<changefreq>daily</changefreq>" in xml


def test_sections_can_be_turned_off():
    result = generate_shop_sitemap(
        "cool-socks.com",
        [make_product(1)],
        config={"include_products": False, "include_pages": False, "include_blog": False, "include_collections": False},
    )

    assert result["url_count"] == 1


def test_sitemap_index_lists_children():
    xml = generate_sitemap_index([{"loc": "https://x.test/a.xml", "lastmod": "2025-01-01"}])
    root = etree.fromstring(xml.encode())

    assert root.xpath("//s:sitemap/s:loc/text()", namespaces=NS) == ["https://x.test/a.xml"]
    assert root.xpath("//s:sitemap/s:lastmod/text()", namespaces=NS) == ["2025-01-01"]


def test_parse_generated_sitemap():
    result = generate_shop_sitemap("cool-socks.com", [make_product(1)])

    parsed = parse_sitemap(result["sitemap"])

    assert parsed["url_count"] == result["url_count"]


def test_check_sitemap_flags_missing_lastmod():
    content = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"><url><loc>https://cool-socks.com/</loc></url></urlset>'
    )

    result = check_sitemap("https://cool-socks.com/sitemap.xml", content)

    assert result["url_count"] == 1
    assert result["issues"] == ["No lastmod dates found - helps search engines know when to re-crawl"]


@pytest.mark.parametrize(
    "url",
    ["http://x.test/sitemap.xml", "https://localhost/sitemap.xml", "https://10.0.0.1/sitemap.xml", "not a url"],
)
def test_validate_sitemap_url_rejects_unsafe_urls(url):
    with pytest.raises(ValidationError):
        validate_sitemap_url(url)


async def test_analyze_sitemap_reports_unreachable_sitemap():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))

    result = await analyze_sitemap("https://cool-socks.com/sitemap.xml", transport=transport)

    assert result["is_valid"] is False
    assert result["score"] == 0
    assert result["issues"] == ["Sitemap not accessible: HTTP 404"]


async def test_analyze_sitemap_scores_generated_sitemap():
    body = generate_shop_sitemap("cool-socks.com", [make_product(1)])["sitemap"]
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=body))

    result = await analyze_sitemap("https://cool-socks.com/sitemap.xml", transport=transport)

    assert result["is_valid"] is True
    assert result["issues"] == []
    assert result["suggestions"] == ["Add lastmod dates to help crawlers prioritize fresh content"]
    assert result["score"] == 95
