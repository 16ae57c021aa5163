"""Sitemap parsing and quality analysis."""

import ipaddress
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
from lxml import etree
from loguru import logger

from ..utils.errors import ValidationError

SITEMAP_NS = {
    "sm": "http://www.sitemaps.org/schemas/sitemap/0.9",
    "image": "http://www.google.com/schemas/sitemap-image/1.1",
}

# No entity expansion or network access while parsing untrusted sitemaps
SAFE_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)

MAX_SITEMAP_BYTES = 50 * 1024 * 1024
MAX_SITEMAP_URLS = 50000

BLOCKED_HOST_PATTERNS = ["localhost", "internal", "0.0.0.0"]


def parse_sitemap(content: str) -> Dict[str, Any]:
    """Summarize a sitemap or sitemap index.

    Returns:
        Dictionary with is_xml, is_index, url_count, loc_count,
        first_lastmod, has_lastmod, has_images and has_priority
    """
    summary = {
        "is_xml": False,
        "is_index": False,
        "url_count": 0,
        "loc_count": 0,
        "first_lastmod": None,
        "has_lastmod": False,
        "has_images": False,
        "has_priority": False,
    }

    try:
        root = etree.fromstring(content.encode("utf-8") if isinstance(content, str) else content, SAFE_PARSER)
    except etree.XMLSyntaxError:
        # Loose fallback for malformed documents
        summary["loc_count"] = len(re.findall(r"<loc>", content, re.IGNORECASE))
        summary["url_count"] = len(re.findall(r"<url>", content, re.IGNORECASE))
        match = re.search(r"<lastmod>([^<]+)</lastmod>", content, re.IGNORECASE)
        if match:
            summary["first_lastmod"] = match.group(1).strip()
            summary["has_lastmod"] = True
        return summary

    summary["is_xml"] = True
    summary["is_index"] = root.tag.endswith("sitemapindex")
    summary["url_count"] = len(root.findall(".//sm:url", SITEMAP_NS))
    summary["loc_count"] = len(root.findall(".//sm:loc", SITEMAP_NS))

    lastmods = root.findall(".//sm:lastmod", SITEMAP_NS)
    if lastmods:
        summary["has_lastmod"] = True
        summary["first_lastmod"] = (lastmods[0].text or "").strip() or None

    summary["has_images"] = root.find(".//image:image", SITEMAP_NS) is not None
    summary["has_priority"] = root.find(".//sm:priority", SITEMAP_NS) is not None
    return summary


def check_sitemap(url: Optional[str], content: Optional[str]) -> Dict[str, Any]:
    """Website-readiness view of the first sitemap found."""
    if content is None:
        return {
            "exists": False,
            "url": None,
            "url_count": 0,
            "last_modified": None,
            "issues": ["No sitemap found at common locations"],
        }

    summary = parse_sitemap(content)
    issues = []
    if summary["loc_count"] == 0:
        issues.append("Sitemap appears empty")
    if not summary["first_lastmod"]:
        issues.append("No lastmod dates found - helps search engines know when to re-crawl")

    return {
        "exists": True,
        "url": url,
        "url_count": summary["loc_count"],
        "last_modified": summary["first_lastmod"],
        "issues": issues,
    }


def validate_sitemap_url(url: str) -> str:
    """Reject URLs that could reach internal services.

    Raises:
        ValidationError: If the URL is malformed, not HTTPS, or internal
    """
    parsed = urlparse(url or "")
    if not parsed.scheme or not parsed.hostname:
        raise ValidationError("Invalid URL format")
    if parsed.scheme != "https":
        raise ValidationError("Only HTTPS URLs are allowed")

    hostname = parsed.hostname.lower()
    if any(pattern in hostname for pattern in BLOCKED_HOST_PATTERNS):
        raise ValidationError("Internal URLs are not allowed")

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return url

    if address.is_private or address.is_loopback or address.is_link_local or address.is_unspecified:
        raise ValidationError("Internal URLs are not allowed")
    return url


async def analyze_sitemap(
    sitemap_url: str, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """Fetch a sitemap and grade it.

    Score is 100 minus 20 per issue and 5 per suggestion, clamped to 0-100.
    """
    validate_sitemap_url(sitemap_url)

    issues = []
    suggestions = []

    try:
        async with httpx.AsyncClient(
            headers={"User-Agent": "Surfaced/1.0 (Sitemap Analyzer)"},
            follow_redirects=True,
            timeout=10.0,
            transport=transport,
        ) as client:
            response = await client.get(sitemap_url)
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch sitemap {sitemap_url}: {e}")
        return {
            "is_valid": False,
            "url_count": 0,
            "issues": [f"Sitemap not accessible: {e}"],
            "suggestions": ["Ensure your sitemap is publicly accessible"],
            "score": 0,
        }

    if not response.is_success:
        return {
            "is_valid": False,
            "url_count": 0,
            "issues": [f"Sitemap not accessible: HTTP {response.status_code}"],
            "suggestions": ["Ensure your sitemap is publicly accessible"],
            "score": 0,
        }

    content = response.text
    summary = parse_sitemap(content)

    invalid = not summary["is_xml"] or not (summary["is_index"] or "<urlset" in content)
    if invalid:
        issues.append("Invalid sitemap format")

    url_count = summary["url_count"]
    if url_count == 0 and not summary["is_index"]:
        issues.append("Sitemap contains no URLs")

    if not summary["has_images"]:
        suggestions.append("Add image sitemap entries to help search engines discover your product images")
    if not summary["has_lastmod"]:
        suggestions.append("Add lastmod dates to help crawlers prioritize fresh content")
    if not summary["has_priority"]:
        suggestions.append("Add priority values to indicate page importance")

    if len(response.content) > MAX_SITEMAP_BYTES:
        issues.append("Sitemap exceeds 50MB limit")

    if url_count > MAX_SITEMAP_URLS:
        issues.append("Sitemap exceeds 50,000 URL limit")
        suggestions.append("Split into multiple sitemaps with a sitemap index")

    score = 100 - len(issues) * 20 - len(suggestions) * 5

    return {
        "is_valid": not invalid,
        "url_count": url_count,
        "issues": issues,
        "suggestions": suggestions,
        "score": max(0, min(100, score)),
    }
