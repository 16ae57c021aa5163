"""Database operations and management"""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Type

from loguru import logger
from sqlalchemy import create_engine, func
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..utils.errors import NotFoundError
from .models import (
    AuditLog,
    Base,
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

GENERATOR_CONFIGS = {
    "json_ld": JsonLdConfig,
    "llms_txt": LlmsTxtConfig,
    "robots_txt": RobotsTxtConfig,
}


class Database:
    """Database management class"""

    def __init__(self, db_url: str = "sqlite:///data/db/surfaced.db", echo: bool = False):
        self.db_url = db_url
        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if db_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in db_url:
                # Share the single in-memory connection across threads
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(db_url, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"Database initialized: {db_url}")

    @contextmanager
    def session(self):
        """Context manager for database sessions"""
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Shops
    # ------------------------------------------------------------------

    def get_shop(self, shop_domain: str) -> Optional[Shop]:
        """Get a shop by its myshopify domain"""
        with self.session() as session:
            shop = session.query(Shop).filter(Shop.shop_domain == shop_domain).first()
            if shop:
                session.expunge(shop)
            return shop

    def require_shop(self, shop_domain: str) -> Shop:
        shop = self.get_shop(shop_domain)
        if shop is None:
            raise NotFoundError("Shop")
        return shop

    def upsert_shop(self, shop_domain: str, **fields) -> Shop:
        """Create a shop or update the given fields on the existing one"""
        with self.session() as session:
            shop = session.query(Shop).filter(Shop.shop_domain == shop_domain).first()
            if shop is None:
                shop = Shop(shop_domain=shop_domain)
                session.add(shop)
            for key, value in fields.items():
                setattr(shop, key, value)
            session.flush()
            session.refresh(shop)
            session.expunge(shop)
            return shop

    def list_shops(self) -> list[Shop]:
        with self.session() as session:
            shops = session.query(Shop).order_by(Shop.id).all()
            session.expunge_all()
            return shops

    def update_shop_audit_summary(self, shop_id: int, ai_score: float, products_count: int):
        """Store the outcome of an audit run on the shop"""
        with self.session() as session:
            shop = session.query(Shop).filter(Shop.id == shop_id).first()
            if shop:
                shop.ai_score = ai_score
                shop.products_count = products_count
                shop.last_audit_at = datetime.utcnow()

    # ------------------------------------------------------------------
    # Product audits
    # ------------------------------------------------------------------

    def save_product_audits(self, shop_id: int, audits: Iterable[Dict[str, Any]]) -> int:
        """Insert or update product audits.

        One row is kept per (shop, product); re-auditing overwrites it.
        """
        count = 0
        with self.session() as session:
            for data in audits:
                audit = (
                    session.query(ProductAudit)
                    .filter(
                        ProductAudit.shop_id == shop_id,
                        ProductAudit.shopify_product_id == data["shopify_product_id"],
                    )
                    .first()
                )
                if audit is None:
                    audit = ProductAudit(
                        shop_id=shop_id, shopify_product_id=data["shopify_product_id"]
                    )
                    session.add(audit)

                for key, value in data.items():
                    if key != "shopify_product_id":
                        setattr(audit, key, value)
                audit.last_audit_at = datetime.utcnow()
                count += 1
        return count

    def get_product_audits(self, shop_id: int, limit: Optional[int] = None) -> list[ProductAudit]:
        """Get product audits ordered from worst to best score"""
        with self.session() as session:
            query = (
                session.query(ProductAudit)
                .filter(ProductAudit.shop_id == shop_id)
                .order_by(ProductAudit.ai_score.asc(), ProductAudit.id.asc())
            )
            if limit:
                query = query.limit(limit)
            audits = query.all()
            session.expunge_all()
            return audits

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def record_audit_log(self, shop_id: int, action: str, details: Optional[dict] = None) -> AuditLog:
        with self.session() as session:
            entry = AuditLog(shop_id=shop_id, action=action, details=details or {})
            session.add(entry)
            session.flush()
            session.refresh(entry)
            session.expunge(entry)
            return entry

    def get_audit_logs(
        self,
        shop_id: int,
        action: Optional[str] = None,
        action_prefix: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[AuditLog]:
        """Get audit log entries, newest first"""
        with self.session() as session:
            query = session.query(AuditLog).filter(AuditLog.shop_id == shop_id)
            if action:
                query = query.filter(AuditLog.action == action)
            if action_prefix:
                query = query.filter(AuditLog.action.like(f"{action_prefix}%"))
            if since:
                query = query.filter(AuditLog.created_at >= since)
            query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            if limit:
                query = query.limit(limit)
            entries = query.all()
            session.expunge_all()
            return entries

    def count_audit_logs(self, shop_id: int, action: str, since: Optional[datetime] = None) -> int:
        with self.session() as session:
            query = session.query(func.count(AuditLog.id)).filter(
                AuditLog.shop_id == shop_id, AuditLog.action == action
            )
            if since:
                query = query.filter(AuditLog.created_at >= since)
            return query.scalar()

    def get_recent_alert_types(self, shop_id: int, cooldown_hours: int = 24) -> set:
        """Alert types already sent to a shop within the cooldown window"""
        cutoff = datetime.utcnow() - timedelta(hours=cooldown_hours)
        with self.session() as session:
            actions = (
                session.query(AuditLog.action)
                .filter(
                    AuditLog.shop_id == shop_id,
                    AuditLog.action.like("alert_%"),
                    AuditLog.created_at >= cutoff,
                )
                .distinct()
                .all()
            )
            return {action[len("alert_"):] for (action,) in actions}

    # ------------------------------------------------------------------
    # Visibility checks
    # ------------------------------------------------------------------

    def save_visibility_checks(self, shop_id: int, checks: List[Dict[str, Any]]) -> int:
        """Bulk insert visibility check rows"""
        with self.session() as session:
            session.add_all(VisibilityCheck(shop_id=shop_id, **check) for check in checks)
        return len(checks)

    def get_visibility_history(
        self, shop_id: int, limit: Optional[int] = 50, since: Optional[datetime] = None
    ) -> list[VisibilityCheck]:
        """Get visibility checks, newest first"""
        with self.session() as session:
            query = session.query(VisibilityCheck).filter(VisibilityCheck.shop_id == shop_id)
            if since:
                query = query.filter(VisibilityCheck.checked_at >= since)
            query = query.order_by(VisibilityCheck.checked_at.desc(), VisibilityCheck.id.desc())
            if limit:
                query = query.limit(limit)
            checks = query.all()
            session.expunge_all()
            return checks

    def count_visibility_checks_since(self, shop_id: int, since: datetime) -> int:
        with self.session() as session:
            return (
                session.query(func.count(VisibilityCheck.id))
                .filter(VisibilityCheck.shop_id == shop_id, VisibilityCheck.checked_at >= since)
                .scalar()
            )

    # ------------------------------------------------------------------
    # Competitors
    # ------------------------------------------------------------------

    def list_competitors(self, shop_id: int, active_only: bool = True) -> list[Competitor]:
        with self.session() as session:
            query = session.query(Competitor).filter(Competitor.shop_id == shop_id)
            if active_only:
                query = query.filter(Competitor.is_active.is_(True))
            competitors = query.order_by(Competitor.created_at.asc(), Competitor.id.asc()).all()
            session.expunge_all()
            return competitors

    def add_competitor(self, shop_id: int, domain: str, name: Optional[str] = None) -> Competitor:
        """Add a competitor, reactivating it if it already exists"""
        with self.session() as session:
            competitor = (
                session.query(Competitor)
                .filter(Competitor.shop_id == shop_id, Competitor.domain == domain)
                .first()
            )
            if competitor is None:
                competitor = Competitor(shop_id=shop_id, domain=domain)
                session.add(competitor)
            competitor.name = name or competitor.name or domain
            competitor.is_active = True
            session.flush()
            session.refresh(competitor)
            session.expunge(competitor)
            return competitor

    def remove_competitor(self, shop_id: int, domain: str) -> bool:
        with self.session() as session:
            deleted = (
                session.query(Competitor)
                .filter(Competitor.shop_id == shop_id, Competitor.domain == domain)
                .delete()
            )
            return deleted > 0

    def save_competitor_results(self, shop_id: int, rows: List[Dict[str, Any]]) -> int:
        with self.session() as session:
            session.add_all(CompetitorAnalysisResult(shop_id=shop_id, **row) for row in rows)
        return len(rows)

    def get_competitor_results(
        self, shop_id: int, since: Optional[datetime] = None
    ) -> list[CompetitorAnalysisResult]:
        """Get competitor analysis rows in chronological order"""
        with self.session() as session:
            query = session.query(CompetitorAnalysisResult).filter(
                CompetitorAnalysisResult.shop_id == shop_id
            )
            if since:
                query = query.filter(CompetitorAnalysisResult.analyzed_at >= since)
            rows = query.order_by(
                CompetitorAnalysisResult.analyzed_at.asc(), CompetitorAnalysisResult.id.asc()
            ).all()
            session.expunge_all()
            return rows

    def get_latest_competitor_results(self, shop_id: int) -> list[CompetitorAnalysisResult]:
        """Get the rows written by the most recent competitor analysis run"""
        with self.session() as session:
            latest = (
                session.query(func.max(CompetitorAnalysisResult.analyzed_at))
                .filter(CompetitorAnalysisResult.shop_id == shop_id)
                .scalar()
            )
            if latest is None:
                return []
            rows = (
                session.query(CompetitorAnalysisResult)
                .filter(
                    CompetitorAnalysisResult.shop_id == shop_id,
                    CompetitorAnalysisResult.analyzed_at == latest,
                )
                .order_by(CompetitorAnalysisResult.id.asc())
                .all()
            )
            session.expunge_all()
            return rows

    # ------------------------------------------------------------------
    # Brands
    # ------------------------------------------------------------------

    def upsert_brand(self, name: str, domain: Optional[str] = None, **fields) -> Brand:
        with self.session() as session:
            query = session.query(Brand).filter(Brand.name == name)
            if domain:
                query = query.filter(Brand.domain == domain)
            brand = query.first()
            if brand is None:
                brand = Brand(name=name, domain=domain)
                session.add(brand)
            for key, value in fields.items():
                setattr(brand, key, value)
            session.flush()
            session.refresh(brand)
            session.expunge(brand)
            return brand

    def get_brand(self, brand_id: int) -> Optional[Brand]:
        with self.session() as session:
            brand = session.query(Brand).filter(Brand.id == brand_id).first()
            if brand:
                session.expunge(brand)
            return brand

    def list_brands(self, active_only: bool = True) -> list[Brand]:
        with self.session() as session:
            query = session.query(Brand)
            if active_only:
                query = query.filter(Brand.is_active.is_(True))
            brands = query.order_by(Brand.id).all()
            session.expunge_all()
            return brands

    def save_brand_check(self, brand_id: int, **fields) -> BrandVisibilityCheck:
        with self.session() as session:
            check = BrandVisibilityCheck(brand_id=brand_id, **fields)
            session.add(check)
            session.flush()
            session.refresh(check)
            session.expunge(check)
            return check

    def get_brand_checks(
        self,
        brand_id: int,
        since: Optional[datetime] = None,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> list[BrandVisibilityCheck]:
        with self.session() as session:
            query = session.query(BrandVisibilityCheck).filter(
                BrandVisibilityCheck.brand_id == brand_id
            )
            if since:
                query = query.filter(BrandVisibilityCheck.checked_at >= since)
            order = BrandVisibilityCheck.checked_at
            query = query.order_by(order.desc() if newest_first else order.asc())
            if limit:
                query = query.limit(limit)
            checks = query.all()
            session.expunge_all()
            return checks

    # ------------------------------------------------------------------
    # Generator configs
    # ------------------------------------------------------------------

    def get_generator_config(self, kind: str, shop_id: int) -> Dict[str, Any]:
        """Get a stored generator config as a dict of set columns, empty when absent"""
        model = GENERATOR_CONFIGS[kind]
        with self.session() as session:
            row = session.query(model).filter(model.shop_id == shop_id).first()
            if row is None:
                return {}
            return _config_values(model, row)

    def save_generator_config(self, kind: str, shop_id: int, **fields) -> Dict[str, Any]:
        model = GENERATOR_CONFIGS[kind]
        with self.session() as session:
            row = session.query(model).filter(model.shop_id == shop_id).first()
            if row is None:
                row = model(shop_id=shop_id)
                session.add(row)
            for key, value in fields.items():
                setattr(row, key, value)
            session.flush()
            return _config_values(model, row)

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def cleanup_shop_history(self, shop_id: int, cutoff: datetime) -> int:
        """Remove visibility and competitor history older than cutoff for one shop"""
        with self.session() as session:
            deleted = (
                session.query(VisibilityCheck)
                .filter(VisibilityCheck.shop_id == shop_id, VisibilityCheck.checked_at < cutoff)
                .delete()
            )
            deleted += (
                session.query(CompetitorAnalysisResult)
                .filter(
                    CompetitorAnalysisResult.shop_id == shop_id,
                    CompetitorAnalysisResult.analyzed_at < cutoff,
                )
                .delete()
            )
            return deleted

    def cleanup_brand_history(self, cutoff: datetime) -> int:
        with self.session() as session:
            deleted = (
                session.query(BrandVisibilityCheck)
                .filter(BrandVisibilityCheck.checked_at < cutoff)
                .delete()
            )
            logger.info(f"Deleted {deleted} old brand checks")
            return deleted


def _config_values(model: Type[Base], row) -> Dict[str, Any]:
    skip = {"id", "shop_id", "updated_at"}
    return {
        column.name: getattr(row, column.name)
        for column in model.__table__.columns
        if column.name not in skip and getattr(row, column.name) is not None
    }
