"""AI visibility checks for stores, competitors and brands"""

from .ai_check import AIChecker, BrandMonitor, analyze_brand_response, calculate_aeo_score
from .checker import VisibilityChecker, analyze_response, generate_queries
from .competitors import CompetitorService, compare_response
from .llm import LLMClient

__all__ = [
    "AIChecker",
    "BrandMonitor",
    "analyze_brand_response",
    "calculate_aeo_score",
    "VisibilityChecker",
    "analyze_response",
    "generate_queries",
    "CompetitorService",
    "compare_response",
    "LLMClient",
]
