"""Database models for Surfaced."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Shop(Base):
    """A Shopify store using the app."""

    __tablename__ = "shops"

    id = Column(Integer, primary_key=True)
    shop_domain = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    email = Column(String)
    plan = Column(String, default="FREE")
    access_token = Column(String)

    ai_score = Column(Float)
    products_count = Column(Integer, default=0)
    last_audit_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    audits = relationship("ProductAudit", back_populates="shop", cascade="all, delete-orphan")
    competitors = relationship("Competitor", back_populates="shop", cascade="all, delete-orphan")
    visibility_checks = relationship(
        "VisibilityCheck", back_populates="shop", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Shop(id={self.id}, domain='{self.shop_domain}', plan='{self.plan}')>"


class ProductAudit(Base):
    """Latest AI-readiness audit of a single product."""

    __tablename__ = "product_audits"
    __table_args__ = (UniqueConstraint("shop_id", "shopify_product_id"),)

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)
    shopify_product_id = Column(String, nullable=False)

    title = Column(String)
    handle = Column(String)
    ai_score = Column(Float, default=0.0, index=True)
    issues = Column(JSON)  # [{type, code, message}]

    has_images = Column(Boolean, default=False)
    has_description = Column(Boolean, default=False)
    has_metafields = Column(Boolean, default=False)
    description_length = Column(Integer, default=0)

    last_audit_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="audits")

    def __repr__(self):
        return f"<ProductAudit(id={self.id}, product='{self.shopify_product_id}', score={self.ai_score})>"


class Competitor(Base):
    """Competitor store tracked by a shop."""

    __tablename__ = "competitors"
    __table_args__ = (UniqueConstraint("shop_id", "domain"),)

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)
    domain = Column(String, nullable=False)
    name = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    shop = relationship("Shop", back_populates="competitors")

    def __repr__(self):
        return f"<Competitor(id={self.id}, domain='{self.domain}')>"


class VisibilityCheck(Base):
    """One query sent to one AI platform for a shop."""

    __tablename__ = "visibility_checks"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)

    platform = Column(String, index=True, nullable=False)
    query = Column(Text, nullable=False)
    is_mentioned = Column(Boolean, default=False)
    mention_context = Column(Text)
    position = Column(Integer)
    response_quality = Column(String)  # good, partial, none
    competitors_found = Column(JSON)
    raw_response = Column(Text)

    checked_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    shop = relationship("Shop", back_populates="visibility_checks")

    def __repr__(self):
        return f"<VisibilityCheck(id={self.id}, platform='{self.platform}', mentioned={self.is_mentioned})>"


class CompetitorAnalysisResult(Base):
    """Per-query outcome of a competitor comparison run.

    Rows with a null competitor_domain describe the shop itself.
    """

    __tablename__ = "competitor_analysis_results"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)
    competitor_domain = Column(String, index=True)

    query = Column(Text)
    platform = Column(String, default="chatgpt")
    mentioned = Column(Boolean, default=False)
    position = Column(Integer)
    context = Column(Text)

    analyzed_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<CompetitorAnalysisResult(id={self.id}, competitor='{self.competitor_domain}')>"


class Brand(Base):
    """Any brand monitored outside of Shopify."""

    __tablename__ = "brands"

    id = Column(Integer, primary_key=True)
    name = Column(String, index=True, nullable=False)
    domain = Column(String, index=True)
    industry = Column(String)
    keywords = Column(JSON)
    description = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    checks = relationship("BrandVisibilityCheck", back_populates="brand", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Brand(id={self.id}, name='{self.name}')>"


class BrandVisibilityCheck(Base):
    """Snapshot of a brand across all AI platforms."""

    __tablename__ = "brand_visibility_checks"

    id = Column(Integer, primary_key=True)
    brand_id = Column(Integer, ForeignKey("brands.id"), index=True, nullable=False)

    aeo_score = Column(Integer, default=0)
    chatgpt_result = Column(JSON)
    claude_result = Column(JSON)
    perplexity_result = Column(JSON)
    gemini_result = Column(JSON)
    recommendations = Column(JSON)

    checked_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    brand = relationship("Brand", back_populates="checks")

    def platform_results(self) -> dict:
        return {
            "chatgpt": self.chatgpt_result,
            "claude": self.claude_result,
            "perplexity": self.perplexity_result,
            "gemini": self.gemini_result,
        }

    def __repr__(self):
        return f"<BrandVisibilityCheck(id={self.id}, brand_id={self.brand_id}, score={self.aeo_score})>"


class JsonLdConfig(Base):
    """Structured data settings for a shop."""

    __tablename__ = "json_ld_configs"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), unique=True, nullable=False)
    is_enabled = Column(Boolean, default=True)
    include_organization = Column(Boolean, default=True)
    include_products = Column(Boolean, default=True)
    include_breadcrumbs = Column(Boolean, default=True)
    excluded_product_ids = Column(JSON, default=list)
    custom_organization = Column(JSON)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class LlmsTxtConfig(Base):
    """llms.txt settings for a shop."""

    __tablename__ = "llms_txt_configs"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), unique=True, nullable=False)
    is_enabled = Column(Boolean, default=True)
    allowed_bots = Column(JSON)
    include_products = Column(Boolean, default=True)
    include_collections = Column(Boolean, default=True)
    include_blog = Column(Boolean, default=False)
    excluded_product_ids = Column(JSON, default=list)
    custom_instructions = Column(Text)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class RobotsTxtConfig(Base):
    """robots.txt settings for a shop."""

    __tablename__ = "robots_txt_configs"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), unique=True, nullable=False)
    allow_all_bots = Column(Boolean, default=True)
    allow_ai_bots = Column(Boolean, default=True)
    ai_bots = Column(JSON)
    disallowed_paths = Column(JSON)
    crawl_delay = Column(Integer)
    sitemap_url = Column(String)
    custom_rules = Column(Text)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    """Event stream: audits, alerts, AI visits and conversions."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)
    action = Column(String, index=True, nullable=False)
    details = Column(JSON)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}')>"
