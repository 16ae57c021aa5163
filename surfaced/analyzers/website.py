"""Website AI-readiness analyzer.

Combines five independent checks into a 0-100 score:

- robots.txt (15): file present, GPTBot/Claude/Perplexity/Google allowed
- llms.txt (20): file present and declares a name or description
- JSON-LD (25): any schema, Organization, Product, WebSite, FAQPage
- Sitemap (15): found at a common location and lists URLs
- Content (25): H1, meta description, Open Graph, Twitter Card, fast load
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .fetcher import fetch_site
from .llms_txt import parse_llms_txt
from .parser import extract_schemas, parse_html
from .robots_txt import check_bot_access
from .sitemap import check_sitemap

MAX_SCHEMAS = 10
SLOW_LOAD_MS = 3000


def check_robots(content: Optional[str]) -> Dict[str, Any]:
    result = {"exists": content is not None, **check_bot_access(content)}
    if content is not None:
        result["content"] = content[:2000]
    return result


def check_json_ld(html: Optional[str]) -> Dict[str, Any]:
    schemas = extract_schemas(parse_html(html)["json_ld_blocks"]) if html else []
    types = {schema["type"].lower() for schema in schemas}

    return {
        "exists": bool(schemas),
        "schemas": [{"type": s["type"], "is_valid": s["is_valid"]} for s in schemas[:MAX_SCHEMAS]],
        "has_organization": bool(types & {"organization", "localbusiness"}),
        "has_product": "product" in types,
        "has_website": "website" in types,
        "has_breadcrumb": "breadcrumblist" in types,
        "has_faq": "faqpage" in types,
    }


def check_content(homepage: Dict[str, Any], slow_load_ms: int = SLOW_LOAD_MS) -> Dict[str, Any]:
    html = homepage.get("html")
    load_time_ms = homepage.get("load_time_ms")

    if not html:
        return {
            "has_h1": False,
            "has_meta": False,
            "has_open_graph": False,
            "has_twitter_card": False,
            "load_time_ms": load_time_ms,
            "issues": ["Could not load page"],
        }

    parsed = parse_html(html)
    result = {
        "has_h1": bool(parsed["h1"]),
        "has_meta": bool(parsed["meta_description"]),
        "has_open_graph": bool(parsed["open_graph"]),
        "has_twitter_card": bool(parsed["twitter_card"]),
        "load_time_ms": load_time_ms,
    }

    issues = []
    if not result["has_h1"]:
        issues.append("Missing H1 heading")
    if not result["has_meta"]:
        issues.append("Missing meta description")
    if not result["has_open_graph"]:
        issues.append("Missing Open Graph meta tags")
    if not result["has_twitter_card"]:
        issues.append("Missing Twitter Card meta tags")
    if load_time_ms is not None and load_time_ms > slow_load_ms:
        issues.append(f"Slow page load time ({load_time_ms / 1000:.1f}s) - affects AI crawling")
    result["issues"] = issues
    return result


def calculate_score(checks: Dict[str, Dict[str, Any]], slow_load_ms: int = SLOW_LOAD_MS) -> int:
    robots = checks["robots_txt"]
    llms = checks["llms_txt"]
    json_ld = checks["json_ld"]
    sitemap = checks["sitemap"]
    content = checks["content"]

    points = [
        (robots["exists"], 3),
        (robots["gpt_bot_allowed"], 3),
        (robots["claude_bot_allowed"], 3),
        (robots["perplexity_bot_allowed"], 3),
        (robots["google_bot_allowed"], 3),
        (llms["exists"], 10),
        (llms["is_valid"], 10),
        (json_ld["exists"], 5),
        (json_ld["has_organization"], 5),
        (json_ld["has_product"], 5),
        (json_ld["has_website"], 5),
        (json_ld["has_faq"], 5),
        (sitemap["exists"], 10),
        (sitemap["url_count"] > 0, 5),
        (content["has_h1"], 5),
        (content["has_meta"], 5),
        (content["has_open_graph"], 5),
        (content["has_twitter_card"], 5),
        (content["load_time_ms"] is not None and content["load_time_ms"] < slow_load_ms, 5),
    ]
    return min(100, sum(value for passed, value in points if passed))


def generate_recommendations(checks: Dict[str, Dict[str, Any]], slow_load_ms: int = SLOW_LOAD_MS) -> List[str]:
    robots = checks["robots_txt"]
    llms = checks["llms_txt"]
    json_ld = checks["json_ld"]
    content = checks["content"]
    recommendations = []

    if not robots["gpt_bot_allowed"]:
        recommendations.append("Allow GPTBot in robots.txt to enable ChatGPT to access your content")
    if not robots["claude_bot_allowed"]:
        recommendations.append("Allow ClaudeBot/anthropic-ai in robots.txt for Claude access")
    if not robots["perplexity_bot_allowed"]:
        recommendations.append("Allow PerplexityBot in robots.txt for Perplexity access")

    if not llms["exists"]:
        recommendations.append("Add an llms.txt file to help AI crawlers understand your brand and content")
    elif not llms["is_valid"]:
        recommendations.append("Improve your llms.txt with a clear name, description, and contact info")

    if not json_ld["exists"]:
        recommendations.append("Add JSON-LD structured data to help AI understand your content")
    else:
        if not json_ld["has_organization"]:
            recommendations.append("Add Organization schema to establish brand identity for AI")
        if not json_ld["has_faq"]:
            recommendations.append("Add FAQPage schema - AI assistants love structured Q&A content")

    if not checks["sitemap"]["exists"]:
        recommendations.append("Add an XML sitemap to help AI crawlers discover all your content")

    if not content["has_h1"]:
        recommendations.append("Add a clear H1 heading that describes your page content")
    if not content["has_meta"]:
        recommendations.append("Add a compelling meta description for better AI understanding")
    if content["load_time_ms"] is not None and content["load_time_ms"] > slow_load_ms:
        recommendations.append("Improve page load speed - slow sites may be skipped by AI crawlers")

    if not recommendations:
        recommendations.append("Great job! Your website is well-optimized for AI visibility.")
    return recommendations


async def analyze_website(
    domain: str,
    user_agent: str = "Surfaced AEO Analyzer/1.0",
    page_timeout: float = 15.0,
    file_timeout: float = 10.0,
    slow_load_ms: int = SLOW_LOAD_MS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Run every readiness check against a domain.

    Args:
        domain: Domain or URL of the site
        user_agent: User-Agent header for all requests
        page_timeout: Homepage timeout in seconds
        file_timeout: Timeout for robots.txt, llms.txt and sitemap requests
        slow_load_ms: Homepage load time above which the site counts as slow
        transport: Optional httpx transport (used by tests)

    Returns:
        Dictionary with domain, score, checks, recommendations and analyzed_at
    """
    site = await fetch_site(
        domain,
        user_agent=user_agent,
        page_timeout=page_timeout,
        file_timeout=file_timeout,
        transport=transport,
    )
    logger.info(f"Analyzing website readiness for {site['domain']}")

    checks = {
        "robots_txt": check_robots(site["robots_txt"]),
        "llms_txt": parse_llms_txt(site["llms_txt"]),
        "json_ld": check_json_ld(site["homepage"].get("html")),
        "sitemap": check_sitemap(site["sitemap"]["url"], site["sitemap"]["content"]),
        "content": check_content(site["homepage"], slow_load_ms),
    }

    score = calculate_score(checks, slow_load_ms)
    logger.info(f"Website analysis for {site['domain']} complete: score={score}")

    return {
        "domain": site["domain"],
        "score": score,
        "checks": checks,
        "recommendations": generate_recommendations(checks, slow_load_ms),
        "analyzed_at": datetime.utcnow().isoformat(),
    }
