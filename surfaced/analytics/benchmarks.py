"""Industry benchmarks and how a shop compares against them."""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from ..storage.database import Database
from ..utils.errors import ValidationError

BENCHMARKS_UPDATED = "2025-01-01"
VISIBILITY_WINDOW_DAYS = 30
DETECTION_SAMPLE = 50
MIN_KEYWORD_MATCHES = 2

SEO_ISSUE_CODES = {"NO_SEO_TITLE", "NO_SEO_DESCRIPTION"}


@dataclass(frozen=True)
class IndustryBenchmark:
    industry: str
    avg_ai_score: int
    median_ai_score: int
    top_quartile_score: int
    avg_visibility_rate: int
    avg_description_length: int
    avg_products_with_images: int
    avg_products_with_seo: int
    sample_size: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        industry = data.pop("industry")
        sample_size = data.pop("sample_size")
        return {
            "industry": industry,
            "metrics": data,
            "sample_size": sample_size,
            "last_updated": BENCHMARKS_UPDATED,
        }


INDUSTRY_BENCHMARKS: Dict[str, IndustryBenchmark] = {
    "fashion": IndustryBenchmark("fashion", 62, 58, 78, 35, 280, 92, 45, 1500),
    "electronics": IndustryBenchmark("electronics", 68, 65, 82, 42, 350, 95, 55, 1200),
    "home_garden": IndustryBenchmark("home_garden", 55, 52, 72, 28, 220, 85, 35, 900),
    "beauty": IndustryBenchmark("beauty", 65, 62, 80, 38, 300, 94, 50, 1100),
    "sports": IndustryBenchmark("sports", 58, 55, 75, 32, 250, 88, 40, 800),
    "food_beverage": IndustryBenchmark("food_beverage", 52, 48, 68, 25, 180, 80, 30, 700),
    "toys_games": IndustryBenchmark("toys_games", 60, 57, 76, 30, 240, 90, 42, 600),
    "health": IndustryBenchmark("health", 64, 61, 79, 36, 320, 91, 52, 650),
    "automotive": IndustryBenchmark("automotive", 56, 53, 73, 28, 270, 86, 38, 450),
    "pets": IndustryBenchmark("pets", 59, 56, 74, 33, 230, 89, 44, 550),
    "jewelry": IndustryBenchmark("jewelry", 63, 60, 78, 34, 260, 93, 48, 500),
    "other": IndustryBenchmark("other", 55, 52, 70, 28, 200, 82, 35, 2000),
}

INDUSTRY_KEYWORDS: Dict[str, List[str]] = {
    "fashion": ["dress", "shirt", "pants", "jacket", "shoes", "clothing", "apparel", "wear"],
    "electronics": ["phone", "laptop", "computer", "tablet", "headphones", "cable", "charger"],
    "home_garden": ["furniture", "decor", "garden", "plant", "home", "kitchen", "bed"],
    "beauty": ["makeup", "skincare", "cosmetic", "cream", "serum", "lipstick", "mascara"],
    "sports": ["fitness", "workout", "gym", "sport", "exercise", "yoga", "running"],
    "food_beverage": ["coffee", "tea", "snack", "chocolate", "drink", "food", "organic"],
    "toys_games": ["toy", "game", "puzzle", "doll", "lego", "play", "kids"],
    "health": ["vitamin", "supplement", "health", "wellness", "medical", "organic"],
    "automotive": ["car", "auto", "vehicle", "motor", "tire", "oil", "brake"],
    "pets": ["dog", "cat", "pet", "animal", "collar", "food", "treat"],
    "jewelry": ["ring", "necklace", "bracelet", "earring", "gold", "silver", "diamond"],
}


def get_industry_benchmark(industry: str) -> IndustryBenchmark:
    """Benchmark for an industry.

    Raises:
        ValidationError: If the industry is unknown
    """
    if industry not in INDUSTRY_BENCHMARKS:
        raise ValidationError(f"Unknown industry: {industry}", {"allowed": list(INDUSTRY_BENCHMARKS)})
    return INDUSTRY_BENCHMARKS[industry]


def detect_industry_from_titles(titles: List[str]) -> str:
    """Pick the industry whose keywords appear most often in product titles.

    Each keyword counts once. Fewer than two matching keywords means "other";
    ties go to the industry listed first.
    """
    text = " ".join(title.lower() for title in titles if title)

    best, best_score = "other", 0
    for industry, keywords in INDUSTRY_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in text)
        if score > best_score:
            best, best_score = industry, score

    return best if best_score >= MIN_KEYWORD_MATCHES else "other"


def detect_industry(db: Database, shop_domain: str) -> str:
    """Guess a shop's industry from the titles of its audited products."""
    shop = db.get_shop(shop_domain)
    if shop is None:
        return "other"
    audits = db.get_product_audits(shop.id, limit=DETECTION_SAMPLE)
    return detect_industry_from_titles([a.title for a in audits])


def score_percentile(score: Optional[float], benchmark: IndustryBenchmark) -> int:
    """Estimate where a score ranks within its industry, from 0 to 100.

    Interpolates linearly between the median, average and top quartile.
    """
    if score is None:
        return 50

    if score >= benchmark.top_quartile_score:
        percentile = 75 + (score - benchmark.top_quartile_score) / 25 * 25
    elif score >= benchmark.avg_ai_score:
        percentile = 50 + (score - benchmark.avg_ai_score) / (
            benchmark.top_quartile_score - benchmark.avg_ai_score
        ) * 25
    elif score >= benchmark.median_ai_score:
        percentile = 25 + (score - benchmark.median_ai_score) / (
            benchmark.avg_ai_score - benchmark.median_ai_score
        ) * 25
    else:
        percentile = score / benchmark.median_ai_score * 25

    return max(0, min(100, int(round(percentile))))


def _percent(part: int, whole: int) -> int:
    return int(round(part / whole * 100)) if whole else 0


def _strengths_and_weaknesses(shop_metrics: Dict[str, Any], benchmark: IndustryBenchmark):
    # (metric, benchmark value, strength margin, weakness margin, strength, weakness)
    rules = [
        (
            shop_metrics["ai_score"] or 0, benchmark.avg_ai_score, 10, 10,
            "Your AI score is well above industry average",
            "Your AI score is below industry average",
        ),
        (
            shop_metrics["products_with_images"], benchmark.avg_products_with_images, 5, 10,
            "Excellent product image coverage",
            "Product image coverage is below industry standard",
        ),
        (
            shop_metrics["avg_description_length"], benchmark.avg_description_length, 50, 50,
            "Detailed product descriptions",
            "Product descriptions are shorter than industry average",
        ),
        (
            shop_metrics["products_with_seo"], benchmark.avg_products_with_seo, 10, 10,
            "Strong SEO implementation",
            "SEO coverage needs improvement",
        ),
        (
            shop_metrics["visibility_rate"], benchmark.avg_visibility_rate, 10, 10,
            "Excellent AI visibility",
            "AI visibility is below industry average",
        ),
    ]

    strengths, weaknesses = [], []
    for value, average, above, below, strength, weakness in rules:
        if value >= average + above:
            strengths.append(strength)
        elif value <= average - below:
            weaknesses.append(weakness)
    return strengths, weaknesses


def compare_to_industry(db: Database, shop_domain: str, industry: Optional[str] = None) -> Dict[str, Any]:
    """Compare a shop's audit and visibility metrics with its industry.

    Args:
        db: Database instance
        shop_domain: Shop domain
        industry: Industry to compare against (detected when omitted)

    Returns:
        Dictionary with shop metrics, the benchmark and a comparison holding
        score_vs_avg, score_percentile, visibility_vs_avg,
        description_length_vs_avg, strengths and weaknesses

    Raises:
        NotFoundError: If the shop is not installed
        ValidationError: If the industry is unknown
    """
    shop = db.require_shop(shop_domain)
    industry = industry or detect_industry(db, shop_domain)
    benchmark = get_industry_benchmark(industry)

    audits = db.get_product_audits(shop.id)
    with_seo = sum(
        1 for audit in audits
        if not any(
            isinstance(issue, dict) and issue.get("code") in SEO_ISSUE_CODES for issue in (audit.issues or [])
        )
    )
    since = datetime.utcnow() - timedelta(days=VISIBILITY_WINDOW_DAYS)
    checks = db.get_visibility_history(shop.id, limit=None, since=since)

    shop_metrics = {
        "ai_score": shop.ai_score,
        "visibility_rate": _percent(sum(1 for c in checks if c.is_mentioned), len(checks)),
        "avg_description_length": (
            int(round(np.mean([a.description_length or 0 for a in audits]))) if audits else 0
        ),
        "products_with_images": _percent(sum(1 for a in audits if a.has_images), len(audits)),
        "products_with_seo": _percent(with_seo, len(audits)),
    }
    strengths, weaknesses = _strengths_and_weaknesses(shop_metrics, benchmark)
    percentile = score_percentile(shop.ai_score, benchmark)

    logger.info(f"Benchmark comparison for {shop_domain}: industry={industry}, percentile={percentile}")

    return {
        "shop": shop_metrics,
        "benchmark": benchmark.to_dict(),
        "comparison": {
            "score_vs_avg": (shop.ai_score or 0) - benchmark.avg_ai_score,
            "score_percentile": percentile,
            "visibility_vs_avg": shop_metrics["visibility_rate"] - benchmark.avg_visibility_rate,
            "description_length_vs_avg": shop_metrics["avg_description_length"] - benchmark.avg_description_length,
            "strengths": strengths,
            "weaknesses": weaknesses,
        },
    }
