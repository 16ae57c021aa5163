"""Brand trends, AI referrer tracking, industry benchmarks and ROI metrics"""

from .benchmarks import INDUSTRY_BENCHMARKS, compare_to_industry, detect_industry, get_industry_benchmark
from .referrers import AI_REFERRER_PATTERNS, AITrafficTracker, detect_ai_platform, generate_tracking_script, is_ai_referrer
from .roi import calculate_estimated_roi, get_roi_metrics
from .trends import BrandAnalytics

__all__ = [
    "INDUSTRY_BENCHMARKS",
    "compare_to_industry",
    "detect_industry",
    "get_industry_benchmark",
    "AI_REFERRER_PATTERNS",
    "AITrafficTracker",
    "detect_ai_platform",
    "generate_tracking_script",
    "is_ai_referrer",
    "calculate_estimated_roi",
    "get_roi_metrics",
    "BrandAnalytics",
]
