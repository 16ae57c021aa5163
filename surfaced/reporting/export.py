"""Audit and visibility report export (JSON, CSV and plain text)."""

import csv
import io
import json
import re
from datetime import datetime
from typing import Any, Dict, List

from loguru import logger

from ..storage.database import Database
from ..storage.models import Shop
from ..utils.errors import ForbiddenError, ValidationError
from ..utils.plans import has_feature

REPORT_PLATFORMS = ["chatgpt", "perplexity", "gemini", "claude", "copilot"]
MAX_AUDIT_ROWS = 1000
MAX_VISIBILITY_ROWS = 500

AUDIT_CSV_HEADER = [
    "Product ID", "Title", "Handle", "AI Score", "Has Images", "Has Description",
    "Description Length", "Issues Count", "Issue Types", "Last Audit",
]
VISIBILITY_CSV_HEADER = [
    "Check ID", "Platform", "Query", "Mentioned", "Position", "Response Quality",
    "Competitors Found", "Checked At",
]

# Leading characters a spreadsheet would evaluate as a formula
FORMULA_PREFIX = re.compile(r"^[=@+\-\t\r]")


def sanitize_csv_field(value: Any) -> str:
    """Neutralize spreadsheet formula injection in a cell value."""
    text = "" if value is None else str(value)
    if FORMULA_PREFIX.match(text):
        text = "'" + text
    return text


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _rate(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def _write_csv(header: List[str], rows: List[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([sanitize_csv_field(cell) for cell in row])
    return buffer.getvalue()


def get_audit_report_data(db: Database, shop_domain: str) -> Dict[str, Any]:
    """Collect audit, issue and visibility figures for a shop.

    Args:
        db: Database instance
        shop_domain: Shop to report on

    Returns:
        Dictionary with shop, summary, products, visibility and generated_at
    """
    shop = db.require_shop(shop_domain)
    audits = db.get_product_audits(shop.id, limit=MAX_AUDIT_ROWS)
    checks = db.get_visibility_history(shop.id, limit=None)

    critical = sum(1 for a in audits if a.ai_score < 40)
    warning = sum(1 for a in audits if 40 <= a.ai_score < 70)
    info = sum(1 for a in audits if 70 <= a.ai_score < 90)
    average = round(sum(a.ai_score for a in audits) / len(audits)) if audits else 0

    breakdown = []
    for platform in REPORT_PLATFORMS:
        platform_checks = [c for c in checks if c.platform == platform]
        if not platform_checks:
            continue
        mentions = sum(1 for c in platform_checks if c.is_mentioned)
        breakdown.append({
            "platform": platform,
            "checks": len(platform_checks),
            "mentions": mentions,
            "rate": _rate(mentions, len(platform_checks)),
        })
    mentioned = sum(1 for c in checks if c.is_mentioned)

    logger.info(f"Generated audit report data for {shop_domain} ({len(audits)} products)")

    return {
        "shop": {
            "name": shop.name or shop_domain,
            "domain": shop_domain,
            "plan": shop.plan,
            "ai_score": shop.ai_score,
            "products_count": shop.products_count or 0,
            "last_audit_at": shop.last_audit_at.isoformat() if shop.last_audit_at else None,
        },
        "summary": {
            "total_products": shop.products_count or 0,
            "audited_products": len(audits),
            "average_score": average,
            "critical_issues": critical,
            "warning_issues": warning,
            "info_issues": info,
        },
        "products": [
            {
                "shopify_product_id": a.shopify_product_id,
                "title": a.title or "",
                "handle": a.handle or "",
                "ai_score": a.ai_score,
                "has_images": bool(a.has_images),
                "has_description": bool(a.has_description),
                "has_metafields": bool(a.has_metafields),
                "description_length": a.description_length or 0,
                "issues": a.issues or [],
                "last_audit_at": a.last_audit_at.isoformat() if a.last_audit_at else None,
            }
            for a in audits
        ],
        "visibility": {
            "total_checks": len(checks),
            "mentioned_count": mentioned,
            "mention_rate": _rate(mentioned, len(checks)),
            "platform_breakdown": breakdown,
        },
        "generated_at": datetime.utcnow().isoformat(),
    }


def get_visibility_report_data(db: Database, shop_domain: str) -> Dict[str, Any]:
    """Collect the most recent visibility checks for a shop."""
    shop = db.require_shop(shop_domain)
    checks = db.get_visibility_history(shop.id, limit=MAX_VISIBILITY_ROWS)

    mentioned = sum(1 for c in checks if c.is_mentioned)
    positions = [c.position for c in checks if c.is_mentioned and c.position]

    logger.info(f"Generated visibility report data for {shop_domain} ({len(checks)} checks)")

    return {
        "shop": {"name": shop.name or shop_domain, "domain": shop_domain},
        "summary": {
            "total_checks": len(checks),
            "mentioned_count": mentioned,
            "mention_rate": _rate(mentioned, len(checks)),
            "average_position": round(sum(positions) / len(positions)) if positions else None,
        },
        "checks": [
            {
                "id": c.id,
                "platform": c.platform,
                "query": c.query,
                "is_mentioned": bool(c.is_mentioned),
                "position": c.position,
                "response_quality": c.response_quality,
                "competitors_found": [comp.get("name", "") for comp in (c.competitors_found or [])],
                "checked_at": c.checked_at.isoformat() if c.checked_at else None,
            }
            for c in checks
        ],
        "generated_at": datetime.utcnow().isoformat(),
    }


def audit_csv(data: Dict[str, Any]) -> str:
    rows = [
        [
            p["shopify_product_id"],
            p["title"],
            p["handle"],
            p["ai_score"],
            _yes_no(p["has_images"]),
            _yes_no(p["has_description"]),
            p["description_length"],
            len(p["issues"]),
            "; ".join(issue.get("code", "") for issue in p["issues"]),
            p["last_audit_at"] or "",
        ]
        for p in data["products"]
    ]
    return _write_csv(AUDIT_CSV_HEADER, rows)


def visibility_csv(data: Dict[str, Any]) -> str:
    rows = [
        [
            c["id"],
            c["platform"],
            c["query"],
            _yes_no(c["is_mentioned"]),
            c["position"] if c["position"] is not None else "N/A",
            c["response_quality"] or "N/A",
            "; ".join(c["competitors_found"]),
            c["checked_at"] or "",
        ]
        for c in data["checks"]
    ]
    return _write_csv(VISIBILITY_CSV_HEADER, rows)


def audit_report_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, default=str)


def summary_report(data: Dict[str, Any]) -> str:
    """Plain-text summary of an audit report."""
    shop = data["shop"]
    summary = data["summary"]
    visibility = data["visibility"]
    rule = "=" * 60
    section = "-" * 40

    lines = [
        rule,
        "SURFACED AI VISIBILITY REPORT",
        f"Store: {shop['name']} ({shop['domain']})",
        f"Generated: {data['generated_at']}",
        rule,
        "",
        "SUMMARY",
        section,
        f"Overall AI Score: {shop['ai_score'] if shop['ai_score'] is not None else 'N/A'}/100",
        f"Total Products: {summary['total_products']}",
        f"Audited Products: {summary['audited_products']}",
        f"Average Score: {summary['average_score']}/100",
        "",
        "ISSUES BREAKDOWN",
        section,
        f"Critical (Score < 40): {summary['critical_issues']} products",
        f"Warning (Score 40-69): {summary['warning_issues']} products",
        f"Info (Score 70-89): {summary['info_issues']} products",
        "",
        "AI VISIBILITY",
        section,
        f"Total Checks: {visibility['total_checks']}",
        f"Times Mentioned: {visibility['mentioned_count']}",
        f"Mention Rate: {visibility['mention_rate']}%",
        "",
    ]

    if visibility["platform_breakdown"]:
        lines.append("BY PLATFORM:")
        for platform in visibility["platform_breakdown"]:
            lines.append(
                f"  {platform['platform']}: {platform['mentions']}/{platform['checks']} ({platform['rate']}%)"
            )
        lines.append("")

    lines.extend(["TOP PRODUCTS NEEDING ATTENTION", section])
    critical_products = [p for p in data["products"] if p["ai_score"] < 40][:10]
    if critical_products:
        for product in critical_products:
            lines.append(f"• {product['title']} (Score: {product['ai_score']})")
            for issue in product["issues"][:2]:
                lines.append(f"  - {issue.get('message', '')}")
    else:
        lines.append("No critical products found! Great job!")

    lines.extend(["", rule, "Report generated by Surfaced - https://surfaced.vercel.app", rule])
    return "\n".join(lines)


def require_export(shop: Shop):
    """Raise ForbiddenError unless the shop's plan includes CSV export."""
    if not has_feature(shop.plan or "FREE", "export_csv"):
        raise ForbiddenError(
            "CSV export requires the Plus plan or higher. Please upgrade to access this feature."
        )


def export_csv(db: Database, shop_domain: str, kind: str) -> str:
    """Render the audit or visibility report as CSV.

    Args:
        db: Database instance
        shop_domain: Shop to export
        kind: "audit" or "visibility"

    Raises:
        ForbiddenError: If the plan does not include CSV export
        ValidationError: If kind is unknown
    """
    if kind not in ("audit", "visibility"):
        raise ValidationError(f"Unknown report type: {kind}", {"allowed": ["audit", "visibility"]})

    require_export(db.require_shop(shop_domain))

    if kind == "audit":
        return audit_csv(get_audit_report_data(db, shop_domain))
    return visibility_csv(get_visibility_report_data(db, shop_domain))
