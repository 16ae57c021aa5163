"""Website and crawler-file analyzers"""

from .fetcher import fetch_site
from .llms_txt import parse_llms_txt
from .parser import extract_schemas, parse_html
from .robots_txt import analyze_robots_txt, check_bot_access, is_bot_allowed
from .sitemap import analyze_sitemap, parse_sitemap, validate_sitemap_url
from .website import analyze_website

__all__ = [
    "fetch_site",
    "parse_llms_txt",
    "extract_schemas",
    "parse_html",
    "analyze_robots_txt",
    "check_bot_access",
    "is_bot_allowed",
    "analyze_sitemap",
    "parse_sitemap",
    "validate_sitemap_url",
    "analyze_website",
]
