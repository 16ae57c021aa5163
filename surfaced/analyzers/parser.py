"""
Parse homepage HTML and extract the elements AI assistants rely on.
"""

import json
from typing import Any, Dict, List

from bs4 import BeautifulSoup


def parse_html(html: str) -> dict:
    """Parse HTML and extract headings, meta tags and JSON-LD blocks."""
    soup = BeautifulSoup(html, "lxml")

    result = {
        "title": None,
        "h1": [],
        "meta_description": None,
        "open_graph": {},
        "twitter_card": {},
        "json_ld_blocks": [],
    }

    title_tag = soup.find("title")
    if title_tag:
        result["title"] = title_tag.get_text(strip=True)

    for heading in soup.find_all("h1"):
        text = heading.get_text(strip=True)
        if text:
            result["h1"].append(text)

    for meta in soup.find_all("meta"):
        name = (meta.get("name") or "").lower()
        prop = (meta.get("property") or "").lower()
        content = meta.get("content", "")

        if name == "description" and content:
            result["meta_description"] = content
        if prop.startswith("og:"):
            result["open_graph"][prop] = content
        # Some themes put twitter tags in property instead of name
        if name.startswith("twitter:") or prop.startswith("twitter:"):
            result["twitter_card"][name or prop] = content

    for script in soup.find_all("script", type="application/ld+json"):
        result["json_ld_blocks"].append(script.string or script.get_text() or "")

    return result


def extract_schemas(blocks: List[str]) -> List[Dict[str, Any]]:
    """Decode JSON-LD blocks into typed schema entries.

    Arrays and @graph containers are flattened. Blocks that fail to decode
    are kept as a single entry of type "Invalid".
    """
    schemas: List[Dict[str, Any]] = []

    for block in blocks:
        try:
            data = json.loads(block)
        except (json.JSONDecodeError, TypeError):
            schemas.append({"type": "Invalid", "is_valid": False})
            continue

        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            nested = item.get("@graph")
            for entry in nested if isinstance(nested, list) else [item]:
                if not isinstance(entry, dict):
                    continue
                schema_type = entry.get("@type", "Unknown")
                if isinstance(schema_type, list):
                    schema_type = schema_type[0] if schema_type else "Unknown"
                schemas.append({"type": str(schema_type), "is_valid": True, "data": entry})

    return schemas
