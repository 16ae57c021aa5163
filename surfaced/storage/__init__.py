"""Data storage and persistence layer"""

from .models import (
    AuditLog,
    Brand,
    BrandVisibilityCheck,
    Competitor,
    CompetitorAnalysisResult,
    JsonLdConfig,
    LlmsTxtConfig,
    ProductAudit,
    RobotsTxtConfig,
    Shop,
    VisibilityCheck,
)
from .database import Database

__all__ = [
    "AuditLog",
    "Brand",
    "BrandVisibilityCheck",
    "Competitor",
    "CompetitorAnalysisResult",
    "JsonLdConfig",
    "LlmsTxtConfig",
    "ProductAudit",
    "RobotsTxtConfig",
    "Shop",
    "VisibilityCheck",
    "Database",
]
