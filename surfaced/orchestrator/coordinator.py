"""Job coordination for Surfaced."""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from ..alerts.discord import DiscordAlerter
from ..alerts.rules import AlertEngine
from ..analytics.referrers import AITrafficTracker
from ..analytics.trends import BrandAnalytics
from ..generators.json_ld import generate_all_json_ld
from ..generators.llms_txt import ensure_enabled as ensure_llms_txt_enabled, generate_llms_txt
from ..generators.robots_txt import generate_robots_txt
from ..generators.sitemap import generate_shop_sitemap
from ..scoring.audit import AuditEngine
from ..scoring.optimizer import ContentOptimizer
from ..shopify.graphql import ShopifyClient
from ..storage.database import Database
from ..storage.models import Shop
from ..utils.config import Config, Settings, get_config, get_settings
from ..utils.errors import NotFoundError, UnauthorizedError, ValidationError
from ..utils.plans import get_plan_limits
from ..visibility.ai_check import AIChecker, BrandMonitor
from ..visibility.checker import VisibilityChecker
from ..visibility.competitors import CompetitorService
from ..visibility.llm import LLMClient

# Brands are not tied to a plan; keep a year of checks
BRAND_HISTORY_DAYS = 365


class JobCoordinator:
    """Coordinates audits, visibility checks, alerting and generated files."""

    def __init__(
        self,
        config: Optional[Config] = None,
        settings: Optional[Settings] = None,
        db: Optional[Database] = None,
        llm: Optional[LLMClient] = None,
    ):
        """Initialize job coordinator.

        Args:
            config: Application config (defaults to get_config())
            settings: Environment settings (defaults to get_settings())
            db: Database instance (built from config when omitted)
            llm: LLM client (built from settings when omitted)
        """
        self.config = config or get_config()
        self.settings = settings or get_settings()

        self.db = db or Database(self.config.database.url, echo=self.config.database.echo)
        self.llm = llm or LLMClient(self.settings, self.config.llm)

        self._init_services()
        self._init_alerters()

    def _init_services(self):
        self.auditor = AuditEngine(self.db, self.shopify_client, max_products=self.config.audit.max_products)
        self.visibility = VisibilityChecker(
            self.db, self.llm, max_queries_per_platform=self.config.visibility.max_queries_per_platform
        )
        self.competitors = CompetitorService(
            self.db, self.llm, query_delay=self.config.visibility.competitor_query_delay
        )
        self.ai_checker = AIChecker(self.llm, self.config.llm.platform_models)
        self.brand_monitor = BrandMonitor(self.db, self.ai_checker)
        self.brand_analytics = BrandAnalytics(self.db)
        self.traffic = AITrafficTracker(self.db)
        self.alert_engine = AlertEngine(self.db, self.config.alerts.thresholds)
        self.optimizer = ContentOptimizer(self.db, self.llm)

        logger.info(f"Initialized services, LLM platforms: {self.llm.available_platforms() or 'none'}")

    def _init_alerters(self):
        """Initialize alert channels."""
        self.discord = None

        discord_config = self.config.alerts.discord
        webhook_url = discord_config.get("webhook_url") or self.settings.discord_webhook_url
        if discord_config.get("enabled", True) and webhook_url:
            self.discord = DiscordAlerter(webhook_url)
            logger.info("Initialized Discord alerter")

    def shopify_client(self, shop: Shop) -> ShopifyClient:
        """Build an Admin API client for a shop.

        Raises:
            UnauthorizedError: If no access token is known for the shop
        """
        token = shop.access_token or self.settings.shopify_access_token
        if not token:
            raise UnauthorizedError(f"No Shopify access token for {shop.shop_domain}")
        return ShopifyClient(
            shop.shop_domain,
            token,
            api_version=self.config.shopify.api_version,
            timeout=self.config.shopify.timeout,
        )

    async def fetch_catalog(self, shop_domain: str, limit: int = 250) -> Dict[str, Any]:
        """Fetch shop info, products and collections concurrently.

        Returns:
            Dictionary with shop, info, products and collections
        """
        shop = self.db.require_shop(shop_domain)
        client = self.shopify_client(shop)

        info, products, collections = await asyncio.gather(
            client.fetch_shop_info(),
            client.fetch_all_products(limit=limit, page_size=self.config.shopify.page_size),
            client.fetch_collections(),
            return_exceptions=True,
        )
        if isinstance(info, Exception):
            raise info
        if isinstance(products, Exception):
            raise products
        if isinstance(collections, Exception):
            logger.warning(f"Could not fetch collections for {shop_domain}: {collections}")
            collections = []

        return {"shop": shop, "info": info, "products": products, "collections": collections}

    # ------------------------------------------------------------------
    # Generated files
    # ------------------------------------------------------------------

    def generate_robots(self, shop_domain: str) -> str:
        shop = self.db.require_shop(shop_domain)
        return generate_robots_txt(shop_domain, self.db.get_generator_config("robots_txt", shop.id))

    async def generate_llms(self, shop_domain: str) -> str:
        shop = self.db.require_shop(shop_domain)
        llms_config = self.db.get_generator_config("llms_txt", shop.id)
        ensure_llms_txt_enabled(llms_config)

        catalog = await self.fetch_catalog(shop_domain)
        return generate_llms_txt(
            shop_domain,
            catalog["info"].name or shop.name or shop_domain,
            catalog["products"],
            catalog["collections"],
            config=llms_config,
        )

    async def generate_sitemap(self, shop_domain: str) -> Dict[str, Any]:
        catalog = await self.fetch_catalog(shop_domain)
        return generate_shop_sitemap(shop_domain, catalog["products"], catalog["collections"])

    async def generate_json_ld(self, shop_domain: str) -> Dict[str, Any]:
        catalog = await self.fetch_catalog(shop_domain)
        shop = catalog["shop"]
        return generate_all_json_ld(
            shop_domain,
            catalog["info"].name or shop.name or shop_domain,
            catalog["products"],
            config=self.db.get_generator_config("json_ld", shop.id),
            email=catalog["info"].email or shop.email,
        )

    # ------------------------------------------------------------------
    # Content suggestions
    # ------------------------------------------------------------------

    async def optimize_product(self, shop_domain: str, product_id: str, kind: str = "content") -> Dict[str, Any]:
        """Draft AI suggestions for one catalog product.

        Args:
            shop_domain: Shop domain
            product_id: Product GID or numeric id
            kind: content, alt_text or meta_tags

        Raises:
            ValidationError: If kind is unknown
            PlanLimitError: If the monthly optimization allowance is used up
            NotFoundError: If the product is not in the catalog
        """
        handlers = {
            "content": self.optimizer.suggest_content,
            "alt_text": self.optimizer.suggest_alt_text,
            "meta_tags": self.optimizer.suggest_meta_tags,
        }
        if kind not in handlers:
            raise ValidationError(f"Unknown optimization type: {kind}", {"allowed": sorted(handlers)})

        # Quota is checked again by the handler; this one runs before the catalog fetch
        self.optimizer.require_quota(shop_domain)

        catalog = await self.fetch_catalog(shop_domain)
        product = next(
            (p for p in catalog["products"] if product_id in (p.id, p.numeric_id)),
            None,
        )
        if product is None:
            raise NotFoundError("Product")

        return await handlers[kind](shop_domain, product)

    # ------------------------------------------------------------------
    # Scheduled jobs
    # ------------------------------------------------------------------

    async def run_audits(self):
        """Audit every installed shop."""
        shops = self.db.list_shops()
        logger.info(f"Starting audits for {len(shops)} shops")

        completed = 0
        for shop in shops:
            try:
                result = await self.auditor.run_audit(shop.shop_domain)
                completed += 1
                logger.info(f"Audited {shop.shop_domain}: score={result.average_score}")
            except Exception as e:
                logger.error(f"Audit failed for {shop.shop_domain}: {e}")

        logger.info(f"Completed audits for {completed}/{len(shops)} shops")

    async def run_visibility_checks(self):
        """Run a visibility check for every shop with quota left."""
        shops = self.db.list_shops()
        if not self.llm.available_platforms():
            logger.warning("No LLM platform configured, skipping visibility checks")
            return

        logger.info(f"Starting visibility checks for {len(shops)} shops")
        for shop in shops:
            try:
                result = await self.visibility.run_visibility_check(shop.shop_domain)
                summary = result["summary"]
                logger.info(
                    f"Visibility for {shop.shop_domain}: {summary['mentioned']}/{summary['total_checks']} mentions"
                )
            except Exception as e:
                logger.warning(f"Visibility check skipped for {shop.shop_domain}: {e}")

    async def run_brand_checks(self):
        """Run the universal AI check for every active brand."""
        brands = self.db.list_brands()
        if not brands:
            logger.info("No brands to check")
            return

        for brand in brands:
            try:
                result = await self.brand_monitor.check_brand(brand.id)
                logger.info(f"Brand check for {brand.name}: AEO score {result['aeo_score']}")
            except Exception as e:
                logger.error(f"Brand check failed for {brand.name}: {e}")

            # Rate limiting
            await asyncio.sleep(self.config.visibility.competitor_query_delay)

        logger.info(f"Completed brand checks for {len(brands)} brands")

    async def check_alerts(self) -> List[Dict[str, Any]]:
        """Evaluate alert rules for every shop and deliver new alerts."""
        logger.info("Checking for alert conditions")
        raised = []

        for shop in self.db.list_shops():
            try:
                alerts = self.alert_engine.get_alert_candidates(shop.shop_domain)
            except Exception as e:
                logger.error(f"Alert check failed for {shop.shop_domain}: {e}")
                continue

            for alert in alerts:
                sent = await self._send_alert(shop, alert)
                if sent:
                    self.alert_engine.log_alert_sent(shop, alert)
                raised.append({"shop_domain": shop.shop_domain, "sent": sent, **alert.to_dict()})

        logger.info(f"Raised {len(raised)} alerts")
        return raised

    async def _send_alert(self, shop: Shop, alert) -> bool:
        if not self.discord:
            return False
        try:
            return await self.discord.send_alert(shop, alert)
        except Exception as e:
            logger.error(f"Discord alert failed: {e}")
            return False

    async def cleanup_old_data(self):
        """Drop history older than each shop's plan retention."""
        logger.info("Cleaning up old visibility and competitor history")
        now = datetime.utcnow()

        deleted = 0
        for shop in self.db.list_shops():
            history_days = get_plan_limits(shop.plan or "FREE").history_days
            try:
                deleted += self.db.cleanup_shop_history(shop.id, now - timedelta(days=history_days))
            except Exception as e:
                logger.error(f"Cleanup failed for {shop.shop_domain}: {e}")

        deleted += self.db.cleanup_brand_history(now - timedelta(days=BRAND_HISTORY_DAYS))
        logger.info(f"Cleaned up {deleted} old records")
