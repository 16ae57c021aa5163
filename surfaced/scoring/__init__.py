"""Catalog scoring: product audits, duplicates, recommendations and content suggestions"""

from .audit import AuditEngine, AuditIssue, AuditResult, ProductAuditResult, ProductScorer
from .duplicates import analyze_duplicate_content, find_duplicate_groups
from .optimizer import ContentOptimizer, OptimizationSuggestion, content_score
from .recommendations import RecommendationContext, generate_recommendations, quick_wins

__all__ = [
    "AuditEngine",
    "AuditIssue",
    "AuditResult",
    "ProductAuditResult",
    "ProductScorer",
    "analyze_duplicate_content",
    "find_duplicate_groups",
    "ContentOptimizer",
    "OptimizationSuggestion",
    "content_score",
    "RecommendationContext",
    "generate_recommendations",
    "quick_wins",
]
