"""FastAPI application for Surfaced."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from loguru import logger
from pydantic import BaseModel, Field

from ..analytics.benchmarks import INDUSTRY_BENCHMARKS, compare_to_industry
from ..analytics.referrers import generate_tracking_script
from ..analytics.roi import calculate_estimated_roi, get_roi_metrics
from ..analyzers.robots_txt import analyze_robots_txt
from ..analyzers.website import analyze_website
from ..orchestrator.coordinator import JobCoordinator
from ..reporting.export import export_csv
from ..scoring.duplicates import analyze_duplicate_content, product_duplicate_suggestions
from ..scoring.recommendations import build_context, generate_recommendations, quick_wins
from ..storage.database import GENERATOR_CONFIGS
from ..utils.config import get_config, get_settings
from ..utils.errors import AppError, NotFoundError, ServiceUnavailableError, UnauthorizedError, ValidationError
from ..utils.plans import get_plan_limits

# Initialize FastAPI app
app = FastAPI(
    title="Surfaced API",
    description="AI visibility toolkit for Shopify stores",
    version="1.0.0",
)

# Load configuration
config = get_config()

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_coordinator: Optional[JobCoordinator] = None


def get_coordinator() -> JobCoordinator:
    """Shared coordinator, built on first use."""
    global _coordinator
    if _coordinator is None:
        _coordinator = JobCoordinator(config)
    return _coordinator


def require_api_key(x_api_key: Optional[str] = Header(None)):
    """Check the X-API-Key header when an API key is configured."""
    expected = get_settings().api_key
    if expected and x_api_key != expected:
        raise UnauthorizedError("Invalid or missing API key")


# ----------------------------------------------------------------------
# Request bodies
# ----------------------------------------------------------------------


class WebsiteAnalysisRequest(BaseModel):
    domain: str = Field(..., min_length=1)


class RobotsAnalysisRequest(BaseModel):
    content: str = ""


class ShopRequest(BaseModel):
    shop_domain: str = Field(..., min_length=1)
    name: Optional[str] = None
    email: Optional[str] = None
    plan: str = "FREE"
    access_token: Optional[str] = None


class VisibilityRequest(BaseModel):
    platforms: Optional[List[str]] = None
    brand_name: Optional[str] = None
    product_type: Optional[str] = None
    queries: Optional[List[str]] = None


class CompetitorRequest(BaseModel):
    domain: str = Field(..., min_length=1)
    name: Optional[str] = None


class CompetitorAnalysisRequest(BaseModel):
    product_titles: Optional[List[str]] = None


class BrandRequest(BaseModel):
    name: str = Field(..., min_length=1)
    domain: Optional[str] = None
    industry: Optional[str] = None
    keywords: Optional[List[str]] = None
    description: Optional[str] = None


class AICheckRequest(BaseModel):
    brand: str = Field(..., min_length=1)
    domain: Optional[str] = None
    platforms: Optional[List[str]] = None


class OptimizeRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    kind: str = "content"


class VisitRequest(BaseModel):
    shop_domain: str
    referrer: str
    landing_page: str
    user_agent: Optional[str] = None
    session_id: Optional[str] = None


class ConversionRequest(BaseModel):
    shop_domain: str
    session_id: str
    order_id: Optional[str] = None
    order_value: Optional[float] = None


# ----------------------------------------------------------------------
# Error handling and lifecycle
# ----------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


@app.on_event("startup")
async def startup_event():
    """Run on application startup."""
    logger.info("Surfaced API starting up")


@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown."""
    logger.info("Surfaced API shutting down")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Surfaced API",
        "version": "1.0.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
    }


# ----------------------------------------------------------------------
# Website and crawler files
# ----------------------------------------------------------------------


@app.post("/analyze/website", dependencies=[Depends(require_api_key)])
async def analyze_website_endpoint(body: WebsiteAnalysisRequest):
    """Score a public website's readiness for AI crawlers."""
    analyzer = config.analyzer
    return await analyze_website(
        body.domain,
        user_agent=analyzer.user_agent,
        page_timeout=analyzer.page_timeout,
        file_timeout=analyzer.file_timeout,
        slow_load_ms=analyzer.slow_load_ms,
    )


@app.post("/robots/analyze", dependencies=[Depends(require_api_key)])
async def analyze_robots_endpoint(body: RobotsAnalysisRequest):
    return analyze_robots_txt(body.content)


# ----------------------------------------------------------------------
# Shops
# ----------------------------------------------------------------------


@app.post("/shops", dependencies=[Depends(require_api_key)])
async def register_shop(body: ShopRequest, coordinator: JobCoordinator = Depends(get_coordinator)):
    """Create or update a shop installation."""
    fields = body.model_dump(exclude={"shop_domain"}, exclude_none=True)
    fields["plan"] = fields["plan"].upper()
    shop = coordinator.db.upsert_shop(body.shop_domain, **fields)
    return {"id": shop.id, "shop_domain": shop.shop_domain, "plan": shop.plan}


@app.get("/shops/{shop_domain}", dependencies=[Depends(require_api_key)])
async def get_shop(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    shop = coordinator.db.require_shop(shop_domain)
    limits = get_plan_limits(shop.plan or "FREE")
    return {
        "shop_domain": shop.shop_domain,
        "name": shop.name,
        "plan": shop.plan,
        "ai_score": shop.ai_score,
        "products_count": shop.products_count,
        "last_audit_at": shop.last_audit_at.isoformat() if shop.last_audit_at else None,
        "limits": limits.to_dict(),
    }


@app.get("/shops/{shop_domain}/robots.txt", dependencies=[Depends(require_api_key)])
async def shop_robots(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    return PlainTextResponse(coordinator.generate_robots(shop_domain))


@app.get("/shops/{shop_domain}/llms.txt", dependencies=[Depends(require_api_key)])
async def shop_llms(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    return PlainTextResponse(await coordinator.generate_llms(shop_domain))


@app.get("/shops/{shop_domain}/sitemap.xml", dependencies=[Depends(require_api_key)])
async def shop_sitemap(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    result = await coordinator.generate_sitemap(shop_domain)
    return Response(content=result["sitemap"], media_type="application/xml")


@app.get("/shops/{shop_domain}/json-ld", dependencies=[Depends(require_api_key)])
async def shop_json_ld(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    return await coordinator.generate_json_ld(shop_domain)


@app.get("/shops/{shop_domain}/config/{kind}", dependencies=[Depends(require_api_key)])
async def get_generator_config(
    shop_domain: str, kind: str, coordinator: JobCoordinator = Depends(get_coordinator)
):
    if kind not in GENERATOR_CONFIGS:
        raise NotFoundError("Generator")
    shop = coordinator.db.require_shop(shop_domain)
    return coordinator.db.get_generator_config(kind, shop.id)


@app.put("/shops/{shop_domain}/config/{kind}", dependencies=[Depends(require_api_key)])
async def save_generator_config(
    shop_domain: str,
    kind: str,
    body: Dict[str, Any],
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    if kind not in GENERATOR_CONFIGS:
        raise NotFoundError("Generator")
    shop = coordinator.db.require_shop(shop_domain)
    columns = {c.name for c in GENERATOR_CONFIGS[kind].__table__.columns} - {"id", "shop_id", "updated_at"}
    unknown = sorted(set(body) - columns)
    if unknown:
        raise ValidationError("Unknown config fields", {"fields": unknown})
    return coordinator.db.save_generator_config(kind, shop.id, **body)


# ----------------------------------------------------------------------
# Audits and recommendations
# ----------------------------------------------------------------------


@app.post("/shops/{shop_domain}/audit", dependencies=[Depends(require_api_key)])
async def run_audit(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    result = await coordinator.auditor.run_audit(shop_domain)
    return result.to_dict()


@app.get("/shops/{shop_domain}/recommendations", dependencies=[Depends(require_api_key)])
async def recommendations(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    summary = generate_recommendations(build_context(coordinator.db, shop_domain))
    return {**summary, "quick_wins": quick_wins(summary)}


@app.get("/shops/{shop_domain}/duplicates", dependencies=[Depends(require_api_key)])
async def duplicates(
    shop_domain: str,
    product_id: Optional[str] = Query(None, description="Limit to products resembling this one"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    catalog = await coordinator.fetch_catalog(shop_domain)
    if product_id is None:
        return analyze_duplicate_content(catalog["products"])
    try:
        return product_duplicate_suggestions(catalog["products"], product_id)
    except KeyError:
        raise NotFoundError("Product")


# ----------------------------------------------------------------------
# Content suggestions
# ----------------------------------------------------------------------


@app.post("/shops/{shop_domain}/optimize", dependencies=[Depends(require_api_key)])
async def optimize_product(
    shop_domain: str, body: OptimizeRequest, coordinator: JobCoordinator = Depends(get_coordinator)
):
    return await coordinator.optimize_product(shop_domain, body.product_id, body.kind)


@app.get("/shops/{shop_domain}/optimize/quota", dependencies=[Depends(require_api_key)])
async def optimization_quota(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    return coordinator.optimizer.check_quota(shop_domain)


@app.get("/shops/{shop_domain}/optimize/candidates", dependencies=[Depends(require_api_key)])
async def optimization_candidates(
    shop_domain: str,
    limit: int = Query(10, ge=1, le=100, description="Number of products"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    products = coordinator.optimizer.products_for_optimization(shop_domain, limit=limit)
    return {"products": products, "total": len(products)}


# ----------------------------------------------------------------------
# Visibility and competitors
# ----------------------------------------------------------------------


@app.post("/shops/{shop_domain}/visibility", dependencies=[Depends(require_api_key)])
async def run_visibility(
    shop_domain: str,
    body: Optional[VisibilityRequest] = None,
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    body = body or VisibilityRequest()
    return await coordinator.visibility.run_visibility_check(
        shop_domain,
        platforms=body.platforms,
        brand_name=body.brand_name,
        product_type=body.product_type,
        queries=body.queries,
    )


@app.get("/shops/{shop_domain}/visibility", dependencies=[Depends(require_api_key)])
async def visibility_history(
    shop_domain: str,
    limit: int = Query(50, ge=1, le=500, description="Number of results"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    checks = coordinator.visibility.get_visibility_history(shop_domain, limit=limit)
    return {"checks": checks, "total": len(checks)}


@app.get("/shops/{shop_domain}/competitors", dependencies=[Depends(require_api_key)])
async def list_competitors(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    return coordinator.competitors.get_competitors(shop_domain)


@app.post("/shops/{shop_domain}/competitors", dependencies=[Depends(require_api_key)])
async def add_competitor(
    shop_domain: str, body: CompetitorRequest, coordinator: JobCoordinator = Depends(get_coordinator)
):
    competitor = coordinator.competitors.add_competitor(shop_domain, body.domain, body.name)
    return {"id": competitor.id, "domain": competitor.domain, "name": competitor.name}


@app.delete("/shops/{shop_domain}/competitors", dependencies=[Depends(require_api_key)])
async def remove_competitor(
    shop_domain: str,
    domain: str = Query(..., description="Competitor domain"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    if not coordinator.competitors.remove_competitor(shop_domain, domain):
        raise NotFoundError("Competitor")
    return {"success": True}


@app.post("/shops/{shop_domain}/competitors/analyze", dependencies=[Depends(require_api_key)])
async def analyze_competitors(
    shop_domain: str,
    body: Optional[CompetitorAnalysisRequest] = None,
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    titles = body.product_titles if body else None
    return await coordinator.competitors.run_competitor_analysis(shop_domain, titles)


@app.get("/shops/{shop_domain}/competitors/trends", dependencies=[Depends(require_api_key)])
async def competitor_trends(
    shop_domain: str,
    days: int = Query(30, ge=1, le=365),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    return coordinator.competitors.get_competitor_trends(shop_domain, days=days)


# ----------------------------------------------------------------------
# Alerts and reports
# ----------------------------------------------------------------------


@app.get("/shops/{shop_domain}/alerts", dependencies=[Depends(require_api_key)])
async def shop_alerts(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    alerts = coordinator.alert_engine.check_alerts(shop_domain)
    return {"alerts": [a.to_dict() for a in alerts], "total": len(alerts)}


@app.get("/shops/{shop_domain}/report/weekly", dependencies=[Depends(require_api_key)])
async def weekly_report(shop_domain: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    return coordinator.alert_engine.generate_weekly_report(shop_domain)


@app.get("/shops/{shop_domain}/export/{kind}.csv", dependencies=[Depends(require_api_key)])
async def export_report(shop_domain: str, kind: str, coordinator: JobCoordinator = Depends(get_coordinator)):
    content = export_csv(coordinator.db, shop_domain, kind)
    filename = f"surfaced-{kind}-report-{datetime.utcnow().date().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ----------------------------------------------------------------------
# Benchmarks and ROI
# ----------------------------------------------------------------------


@app.get("/benchmarks", dependencies=[Depends(require_api_key)])
async def industry_benchmarks():
    return {"benchmarks": [b.to_dict() for b in INDUSTRY_BENCHMARKS.values()]}


@app.get("/shops/{shop_domain}/benchmarks", dependencies=[Depends(require_api_key)])
async def shop_benchmarks(
    shop_domain: str,
    industry: Optional[str] = Query(None, description="Industry to compare against, detected when omitted"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    return compare_to_industry(coordinator.db, shop_domain, industry)


@app.get("/shops/{shop_domain}/roi", dependencies=[Depends(require_api_key)])
async def shop_roi(
    shop_domain: str,
    period: str = Query("30d", description="7d, 30d, 90d or 365d"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    metrics = get_roi_metrics(coordinator.db, shop_domain, period)
    return {**metrics, "estimated_roi": calculate_estimated_roi(metrics)}


# ----------------------------------------------------------------------
# AI traffic
# ----------------------------------------------------------------------


@app.post("/track/visit")
async def track_visit(body: VisitRequest, coordinator: JobCoordinator = Depends(get_coordinator)):
    platform = coordinator.traffic.record_ai_visit(
        body.shop_domain, body.referrer, body.landing_page, body.user_agent, body.session_id
    )
    return {"tracked": platform is not None, "platform": platform}


@app.post("/track/conversion")
async def track_conversion(body: ConversionRequest, coordinator: JobCoordinator = Depends(get_coordinator)):
    coordinator.traffic.record_ai_conversion(body.shop_domain, body.session_id, body.order_id, body.order_value)
    return {"tracked": True}


@app.get("/shops/{shop_domain}/ai-traffic", dependencies=[Depends(require_api_key)])
async def ai_traffic(
    shop_domain: str,
    days: int = Query(30, ge=1, le=365),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    return coordinator.traffic.get_ai_traffic_stats(shop_domain, days=days)


@app.get("/shops/{shop_domain}/tracking-script", dependencies=[Depends(require_api_key)])
async def tracking_script(
    shop_domain: str,
    endpoint: str = Query(..., description="Public URL of POST /track/visit"),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    coordinator.db.require_shop(shop_domain)
    return PlainTextResponse(generate_tracking_script(shop_domain, endpoint))


# ----------------------------------------------------------------------
# Brands
# ----------------------------------------------------------------------


@app.post("/ai-check", dependencies=[Depends(require_api_key)])
async def ai_check(body: AICheckRequest, coordinator: JobCoordinator = Depends(get_coordinator)):
    """Check how AI assistants talk about any brand."""
    if not coordinator.llm.has_openrouter:
        raise ServiceUnavailableError("OpenRouter is not configured")
    return await coordinator.ai_checker.run_ai_check(body.brand, body.domain, body.platforms)


@app.post("/brands", dependencies=[Depends(require_api_key)])
async def create_brand(body: BrandRequest, coordinator: JobCoordinator = Depends(get_coordinator)):
    fields = body.model_dump(exclude={"name", "domain"}, exclude_none=True)
    brand = coordinator.db.upsert_brand(body.name, body.domain, **fields)
    return {"id": brand.id, "name": brand.name, "domain": brand.domain}


@app.post("/brands/{brand_id}/check", dependencies=[Depends(require_api_key)])
async def check_brand(brand_id: int, coordinator: JobCoordinator = Depends(get_coordinator)):
    return await coordinator.brand_monitor.check_brand(brand_id)


@app.get("/brands/{brand_id}/analytics", dependencies=[Depends(require_api_key)])
async def brand_analytics(
    brand_id: int,
    competitor_ids: List[int] = Query([], description="Other tracked brands to compare"),
    days: int = Query(30, ge=1, le=365),
    coordinator: JobCoordinator = Depends(get_coordinator),
):
    if coordinator.db.get_brand(brand_id) is None:
        raise NotFoundError("Brand")

    analytics = coordinator.brand_analytics
    return {
        "summary": analytics.analytics_summary(brand_id),
        "share_of_voice": analytics.share_of_voice(brand_id, competitor_ids, days),
        "comparison": analytics.compare_with_competitors(brand_id, competitor_ids) if competitor_ids else [],
    }
