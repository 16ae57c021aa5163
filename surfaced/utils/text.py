"""Small text helpers shared by analyzers and generators."""

import html
import re
from typing import Optional


def normalize_domain(domain: str) -> str:
    """Reduce a URL or domain to a bare lowercase host.

    >>> normalize_domain("https://Example.com/path/")
    'example.com'
    """
    domain = (domain or "").strip().lower()
    domain = re.sub(r"^[a-z][a-z0-9+.-]*://", "", domain)
    domain = domain.split("/")[0]
    return domain.rstrip(".")


def strip_html(value: Optional[str]) -> str:
    """Remove tags and collapse whitespace."""
    if not value:
        return ""
    text = re.sub(r"<[^>]*>", " ", value)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def truncate(value: str, max_length: int) -> str:
    """Cut text to max_length characters, ending with an ellipsis when shortened."""
    if len(value) <= max_length:
        return value
    return value[: max_length - 3].rstrip() + "..."
