"""Detection and tracking of visitors arriving from AI assistants."""

import json
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from loguru import logger

from ..storage.database import Database
from ..utils.errors import ValidationError

AI_REFERRER_PATTERNS = {
    "chatgpt": ["chat.openai.com", "chatgpt.com", "openai.com"],
    "perplexity": ["perplexity.ai", "labs.perplexity.ai"],
    "claude": ["claude.ai", "anthropic.com"],
    "gemini": ["gemini.google.com", "bard.google.com"],
    "copilot": ["copilot.microsoft.com", "bing.com/chat"],
    "you": ["you.com"],
    "phind": ["phind.com"],
    "kagi": ["kagi.com"],
}

ALL_AI_DOMAINS = [domain for domains in AI_REFERRER_PATTERNS.values() for domain in domains]

VISIT_ACTION = "ai_traffic_visit"
CONVERSION_ACTION = "ai_traffic_conversion"

UNSAFE_SCRIPT_CHARS = re.compile(r"[<>\"'\\`${}]")


def _host_and_path(referrer: str):
    referrer = referrer.strip().lower()
    if "://" not in referrer:
        referrer = "//" + referrer
    parsed = urlparse(referrer)
    return (parsed.hostname or "").rstrip("."), parsed.path or "/"


def _matches(host: str, path: str, pattern: str) -> bool:
    pattern_host, _, pattern_path = pattern.partition("/")
    if host != pattern_host and not host.endswith("." + pattern_host):
        return False
    return not pattern_path or path.lstrip("/").startswith(pattern_path)


def detect_ai_platform(referrer: Optional[str]) -> Optional[str]:
    """Name of the AI platform a referrer URL belongs to, None otherwise.

    >>> detect_ai_platform("https://chatgpt.com/c/abc")
    'chatgpt'
    """
    if not referrer:
        return None
    host, path = _host_and_path(referrer)
    if not host:
        return None
    for platform, patterns in AI_REFERRER_PATTERNS.items():
        if any(_matches(host, path, pattern) for pattern in patterns):
            return platform
    return None


def is_ai_referrer(referrer: Optional[str]) -> bool:
    return detect_ai_platform(referrer) is not None


def generate_tracking_script(shop_domain: str, api_endpoint: str) -> str:
    """Storefront snippet reporting AI-referred visits to api_endpoint.

    Raises:
        ValidationError: If the endpoint is not an http(s) URL
    """
    domain = UNSAFE_SCRIPT_CHARS.sub("", shop_domain)
    endpoint = UNSAFE_SCRIPT_CHARS.sub("", api_endpoint)

    parsed = urlparse(endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid API endpoint URL")

    return f"""
<!-- Surfaced AI Traffic Tracking -->
<script>
(function() {{
  var AI_DOMAINS = {json.dumps(ALL_AI_DOMAINS)};
  var SHOP_DOMAIN = {json.dumps(domain)};
  var API_ENDPOINT = {json.dumps(endpoint)};
  var referrer = document.referrer;
  var isAI = AI_DOMAINS.some(function(d) {{ return referrer.toLowerCase().includes(d); }});

  if (isAI || sessionStorage.getItem('surfaced_ai_visit')) {{
    sessionStorage.setItem('surfaced_ai_visit', 'true');
    sessionStorage.setItem('surfaced_ai_referrer', referrer || sessionStorage.getItem('surfaced_ai_referrer'));
    if (!sessionStorage.getItem('surfaced_session_id')) {{
      sessionStorage.setItem('surfaced_session_id', Date.now() + '-' + Math.random().toString(36).substring(2, 15));
    }}

    fetch(API_ENDPOINT, {{
      method: 'POST',
      headers: {{ 'Content-Type': 'application/json' }},
      body: JSON.stringify({{
        shop_domain: SHOP_DOMAIN,
        referrer: sessionStorage.getItem('surfaced_ai_referrer'),
        landing_page: window.location.pathname,
        user_agent: navigator.userAgent,
        session_id: sessionStorage.getItem('surfaced_session_id')
      }}),
      keepalive: true
    }}).catch(function() {{}});
  }}
}})();
</script>
<!-- End Surfaced AI Traffic Tracking -->
"""


class AITrafficTracker:
    """Record AI-referred visits and conversions as audit log events."""

    def __init__(self, db: Database):
        self.db = db

    def record_ai_visit(
        self,
        shop_domain: str,
        referrer: str,
        landing_page: str,
        user_agent: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Optional[str]:
        """Store a visit when the referrer is an AI platform.

        Returns:
            The detected platform, or None when the visit was ignored
        """
        shop = self.db.require_shop(shop_domain)
        platform = detect_ai_platform(referrer)
        if platform is None:
            logger.warning(f"Ignoring non-AI referrer {referrer!r} for {shop_domain}")
            return None

        self.db.record_audit_log(
            shop.id,
            VISIT_ACTION,
            {
                "platform": platform,
                "referrer": referrer,
                "landing_page": landing_page,
                "user_agent": user_agent,
                "session_id": session_id,
                "timestamp": datetime.utcnow().isoformat(),
            },
        )
        logger.info(f"AI visit from {platform} recorded for {shop_domain} ({landing_page})")
        return platform

    def record_ai_conversion(
        self,
        shop_domain: str,
        session_id: str,
        order_id: Optional[str] = None,
        order_value: Optional[float] = None,
    ):
        shop = self.db.require_shop(shop_domain)
        self.db.record_audit_log(
            shop.id,
            CONVERSION_ACTION,
            {
                "session_id": session_id,
                "order_id": order_id,
                "order_value": order_value,
                "timestamp": datetime.utcnow().isoformat(),
            },
        )
        logger.info(f"AI conversion recorded for {shop_domain} (order {order_id})")

    def get_ai_traffic_stats(self, shop_domain: str, days: int = 30) -> Dict[str, Any]:
        """Visit, session and conversion totals for the period.

        Returns:
            Dictionary with total_visits, unique_sessions, platform_breakdown,
            top_landing_pages, conversions, conversion_rate (%),
            total_conversion_value and period
        """
        shop = self.db.require_shop(shop_domain)
        end = datetime.utcnow()
        start = end - timedelta(days=days)

        visits = self.db.get_audit_logs(shop.id, action=VISIT_ACTION, since=start)
        conversions = self.db.get_audit_logs(shop.id, action=CONVERSION_ACTION, since=start)

        platforms: Counter = Counter()
        sessions = set()
        pages: Dict[str, Dict[str, int]] = {}
        visit_pages: Dict[str, set] = {}
        for visit in visits:
            details = visit.details or {}
            if details.get("platform"):
                platforms[details["platform"]] += 1
            if details.get("session_id"):
                sessions.add(details["session_id"])
            page = details.get("landing_page")
            if page:
                pages.setdefault(page, {"visits": 0, "conversions": 0})["visits"] += 1
                if details.get("session_id"):
                    visit_pages.setdefault(details["session_id"], set()).add(page)

        converted = set()
        total_value = 0.0
        for conversion in conversions:
            details = conversion.details or {}
            session_id = details.get("session_id")
            if session_id and session_id not in converted:
                converted.add(session_id)
                for page in visit_pages.get(session_id, ()):
                    pages[page]["conversions"] += 1
            if details.get("order_value"):
                total_value += float(details["order_value"])

        top_pages = sorted(
            ({"url": url, **counts} for url, counts in pages.items()),
            key=lambda p: p["visits"],
            reverse=True,
        )[:10]

        return {
            "total_visits": len(visits),
            "unique_sessions": len(sessions),
            "platform_breakdown": dict(platforms),
            "top_landing_pages": top_pages,
            "conversions": len(conversions),
            "conversion_rate": round(len(converted & sessions) / len(sessions) * 100) if sessions else 0,
            "total_conversion_value": round(total_value, 2),
            "period": {"start": start.isoformat(), "end": end.isoformat()},
        }
