"""robots.txt generation tuned for AI crawlers."""

from datetime import date
from typing import Any, Dict, Optional

DEFAULT_AI_BOTS = [
    "GPTBot",
    "ChatGPT-User",
    "ClaudeBot",
    "anthropic-ai",
    "PerplexityBot",
    "Google-Extended",
    "Googlebot",
    "Bingbot",
    "CCBot",
]

SUGGESTED_DISALLOW_PATHS = [
    "/admin",
    "/cart",
    "/checkout",
    "/account",
    "/orders",
    "/*?variant=*",
    "/*?sort_by=*",
    "/search",
]

AI_ALLOWED_SECTIONS = ["/products/", "/collections/", "/pages/"]
AI_DISALLOWED_SECTIONS = ["/cart", "/checkout"]


def default_robots_config() -> Dict[str, Any]:
    return {
        "allow_all_bots": True,
        "allow_ai_bots": True,
        "ai_bots": list(DEFAULT_AI_BOTS),
        "disallowed_paths": list(SUGGESTED_DISALLOW_PATHS),
        "crawl_delay": None,
        "sitemap_url": None,
        "custom_rules": None,
    }


def generate_robots_txt(
    shop_domain: str,
    config: Optional[Dict[str, Any]] = None,
    include_ai_section: bool = True,
) -> str:
    """Render a robots.txt for a store.

    Args:
        shop_domain: Public domain of the store
        config: Settings merged over default_robots_config()
        include_ai_section: Emit per-bot groups for AI crawlers

    Returns:
        robots.txt content
    """
    config = {**default_robots_config(), **(config or {})}

    lines = [
        f"# robots.txt for {shop_domain}",
        "# Generated by Surfaced - AI Visibility for Shopify",
        f"# Last updated: {date.today().isoformat()}",
        "",
        "User-agent: *",
    ]
    if config["allow_all_bots"]:
        lines.append("Allow: /")
    for path in config.get("disallowed_paths") or []:
        lines.append(f"Disallow: {path}")
    if config.get("crawl_delay"):
        lines.append(f"Crawl-delay: {config['crawl_delay']}")
    lines.append("")

    if include_ai_section and config["allow_ai_bots"]:
        lines.extend(["# AI Crawlers", "# Let AI assistants read products, collections and pages", ""])
        for bot in config.get("ai_bots") or []:
            lines.append(f"User-agent: {bot}")
            lines.extend(f"Allow: {path}" for path in AI_ALLOWED_SECTIONS)
            lines.extend(f"Disallow: {path}" for path in AI_DISALLOWED_SECTIONS)
            lines.append("")

    if config.get("custom_rules"):
        lines.extend(["# Custom Rules", config["custom_rules"].strip(), ""])

    sitemap_url = config.get("sitemap_url") or f"https://{shop_domain}/sitemap.xml"
    lines.extend(
        [
            f"Sitemap: {sitemap_url}",
            "",
            "# AI-readable store summary",
            f"# https://{shop_domain}/.well-known/llms.txt",
            f"# https://{shop_domain}/llms.txt",
        ]
    )
    return "\n".join(lines)
