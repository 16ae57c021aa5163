"""Generators for AI-facing store files"""

from .json_ld import generate_all_json_ld, generate_breadcrumb_json_ld, generate_organization_json_ld, generate_product_json_ld, render_script_tags
from .llms_txt import generate_llms_txt
from .robots_txt import DEFAULT_AI_BOTS, SUGGESTED_DISALLOW_PATHS, default_robots_config, generate_robots_txt
from .sitemap import generate_shop_sitemap, generate_sitemap_index, generate_sitemap_xml

__all__ = [
    "generate_all_json_ld",
    "generate_breadcrumb_json_ld",
    "generate_organization_json_ld",
    "generate_product_json_ld",
    "render_script_tags",
    "generate_llms_txt",
    "DEFAULT_AI_BOTS",
    "SUGGESTED_DISALLOW_PATHS",
    "default_robots_config",
    "generate_robots_txt",
    "generate_shop_sitemap",
    "generate_sitemap_index",
    "generate_sitemap_xml",
]
