"""Configuration management for Surfaced."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite:///data/db/surfaced.db"
    echo: bool = False


class ShopifyConfig(BaseModel):
    """Shopify Admin API configuration."""

    api_version: str = "2025-01"
    timeout: int = 30
    page_size: int = 50


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    openai_model: str = "gpt-4o-mini"
    perplexity_model: str = "sonar"
    gemini_model: str = "gemini-2.0-flash"
    timeout: float = 30.0
    max_retries: int = 2
    platform_models: Dict[str, str] = Field(
        default_factory=lambda: {
            "chatgpt": "openai/gpt-4o-mini",
            "claude": "anthropic/claude-3.5-haiku",
            "perplexity": "perplexity/sonar",
            "gemini": "google/gemini-2.0-flash-001",
        }
    )


class AnalyzerConfig(BaseModel):
    """Website analyzer configuration."""

    user_agent: str = "Surfaced AEO Analyzer/1.0"
    page_timeout: float = 15.0
    file_timeout: float = 10.0
    slow_load_ms: int = 3000


class VisibilityConfig(BaseModel):
    """Visibility and competitor check configuration."""

    max_queries_per_platform: int = 3
    competitor_query_delay: float = 1.5
    history_limit: int = 50


class AuditConfig(BaseModel):
    """Product audit configuration."""

    max_products: int = 50


class AlertThresholds(BaseModel):
    """Alert threshold configuration."""

    score_drop: int = 10
    critical_score_drop: int = 20
    low_visibility_rate: float = 30.0
    visibility_window_days: int = 7
    critical_product_score: int = 40
    critical_product_count: int = 10
    min_hours_between_alerts: int = 24


class AlertsConfig(BaseModel):
    """Alerts configuration."""

    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)
    discord: Dict[str, Any] = Field(default_factory=dict)


class ScheduleConfig(BaseModel):
    """Scheduling configuration."""

    audit_hours: int = 24
    visibility_hours: int = 168
    brand_check_hours: int = 24
    alert_check_minutes: int = 60
    max_instances_per_job: int = 1
    misfire_grace_time_seconds: int = 300


class APIConfig(BaseModel):
    """API configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = "data/logs/surfaced.log"


class Config(BaseModel):
    """Main configuration model."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    shopify: ShopifyConfig = Field(default_factory=ShopifyConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    visibility: VisibilityConfig = Field(default_factory=VisibilityConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Settings(BaseSettings):
    """Environment-based settings."""

    # Database
    database_url: str = ""

    # Shopify
    shopify_access_token: str = ""

    # LLM providers
    openai_api_key: str = ""
    perplexity_api_key: str = ""
    openrouter_api_key: str = ""
    google_ai_api_key: str = ""

    # Alerting
    discord_webhook_url: str = ""

    # Logging
    log_level: str = ""

    # API
    api_host: str = ""
    api_port: int = 0
    api_key: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class ConfigManager:
    """Configuration manager for loading and merging config sources."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to YAML configuration file
        """
        load_dotenv()

        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config" / "config.yaml"

        self.config_path = config_path
        self.yaml_config = self._load_yaml()

        self.env_settings = Settings()

        self.config = self._merge_config()

    def _load_yaml(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path, "r") as f:
            return yaml.safe_load(f) or {}

    def _merge_config(self) -> Config:
        """Merge YAML config with environment variables."""
        merged = self.yaml_config.copy()

        if self.env_settings.database_url:
            merged.setdefault("database", {})["url"] = self.env_settings.database_url

        if self.env_settings.discord_webhook_url:
            merged.setdefault("alerts", {}).setdefault("discord", {})[
                "webhook_url"
            ] = self.env_settings.discord_webhook_url

        if self.env_settings.log_level:
            merged.setdefault("logging", {})["level"] = self.env_settings.log_level

        if self.env_settings.api_host:
            merged.setdefault("api", {})["host"] = self.env_settings.api_host

        if self.env_settings.api_port:
            merged.setdefault("api", {})["port"] = self.env_settings.api_port

        return Config(**merged)


# Global config instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> Config:
    """Get global configuration instance."""
    return get_config_manager().config


def get_settings() -> Settings:
    """Get environment settings."""
    return get_config_manager().env_settings


def get_config_manager() -> ConfigManager:
    """Get configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
