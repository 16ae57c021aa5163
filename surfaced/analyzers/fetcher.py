"""
Fetch a site's homepage plus the files AI crawlers look at
(robots.txt, llms.txt, sitemap) in parallel.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..utils.text import normalize_domain

USER_AGENT = "Surfaced AEO Analyzer/1.0"

PAGE_TIMEOUT = 15.0
FILE_TIMEOUT = 10.0

SITEMAP_PATHS = ["/sitemap.xml", "/sitemap_index.xml", "/sitemap/sitemap.xml"]


async def _get_text(client: httpx.AsyncClient, url: str, timeout: float) -> Optional[str]:
    """Return the body of a 2xx response, None for anything else."""
    try:
        response = await client.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.debug(f"Fetch failed for {url}: {e}")
        return None
    if not response.is_success:
        return None
    return response.text


async def _fetch_homepage(client: httpx.AsyncClient, url: str, timeout: float) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        response = await client.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch homepage {url}: {e}")
        return {"html": None, "status_code": None, "load_time_ms": None, "error": str(e)}

    load_time_ms = int((time.monotonic() - start) * 1000)
    return {
        "html": response.text if response.is_success else None,
        "status_code": response.status_code,
        "load_time_ms": load_time_ms,
        "error": None if response.is_success else f"HTTP {response.status_code}",
    }


async def _fetch_sitemap(client: httpx.AsyncClient, origin: str, timeout: float) -> Dict[str, Any]:
    """Try the common sitemap locations in order."""
    for path in SITEMAP_PATHS:
        url = f"{origin}{path}"
        content = await _get_text(client, url, timeout)
        if content is not None:
            return {"url": url, "content": content}
    return {"url": None, "content": None}


async def fetch_site(
    domain: str,
    user_agent: str = USER_AGENT,
    page_timeout: float = PAGE_TIMEOUT,
    file_timeout: float = FILE_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Fetch homepage, robots.txt, llms.txt and sitemap for a domain.

    Never raises: anything that cannot be fetched is reported as None.

    Args:
        domain: Domain or URL to fetch
        user_agent: User-Agent header sent with every request
        page_timeout: Timeout for the homepage request
        file_timeout: Timeout for each supporting file
        transport: Optional httpx transport (used by tests)

    Returns:
        Dictionary with domain, homepage, robots_txt, llms_txt and sitemap
    """
    domain = normalize_domain(domain)
    origin = f"https://{domain}"

    async with httpx.AsyncClient(
        headers={"User-Agent": user_agent},
        follow_redirects=True,
        transport=transport,
    ) as client:
        homepage, robots_txt, llms_txt, sitemap = await asyncio.gather(
            _fetch_homepage(client, origin, page_timeout),
            _get_text(client, f"{origin}/robots.txt", file_timeout),
            _get_text(client, f"{origin}/llms.txt", file_timeout),
            _fetch_sitemap(client, origin, file_timeout),
        )

    return {
        "domain": domain,
        "homepage": homepage,
        "robots_txt": robots_txt,
        "llms_txt": llms_txt,
        "sitemap": sitemap,
    }
