"""
Sales Analytics Engine - Configuration

Layered configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteAnalyticsSettings(BaseSettings):
    """Optional remote analytics source, tried before local computation."""

    model_config = SettingsConfigDict(env_prefix="REMOTE_")

    enabled: bool = Field(
        default=False,
        description="Query the remote analytics API before computing locally"
    )
    base_url: str = Field(
        default="http://127.0.0.1:5000/api",
        description="Remote analytics API base URL"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent to the remote API"
    )
    timeout: float = Field(
        default=10.0,
        description="Request timeout in seconds"
    )
    max_attempts: int = Field(
        default=2,
        ge=1,
        description="Total request attempts, the first one included"
    )


class CacheSettings(BaseSettings):
    """Report caching configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    enabled: bool = Field(default=True, description="Enable report caching")
    max_size: int = Field(default=32, description="LRU cache max size")
    ttl_seconds: int = Field(default=300, description="Cache TTL in seconds")


class AnalysisSettings(BaseSettings):
    """Analytics engine thresholds."""

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    # Trends
    trend_slope_threshold: float = Field(
        default=0.1,
        description="Daily revenue slope (currency units/day) that counts as movement"
    )
    trend_direction_deadband: float = Field(
        default=10.0,
        description="Percent change between halves treated as stable"
    )
    product_trend_limit: int = Field(
        default=5,
        description="Products reported in the top/bottom trend lists"
    )
    top_products_limit: int = Field(
        default=10,
        description="Products reported in the top products ranking"
    )
    concentration_share: float = Field(
        default=0.2,
        description="Share of distinct products used for the concentration ratio"
    )
    top_customers_limit: int = Field(
        default=5,
        description="Customers reported in top spender lists"
    )

    # Seasonality
    seasonality_min_days: int = Field(
        default=7,
        description="Minimum distinct days for weekly seasonality"
    )

    # Anomaly Detection
    anomaly_min_days: int = Field(
        default=3,
        description="Minimum days of data for sales anomaly detection"
    )
    anomaly_zscore_threshold: float = Field(
        default=2.0,
        description="Z-score above which a day is anomalous"
    )
    anomaly_high_zscore: float = Field(
        default=3.0,
        description="Z-score above which an anomaly is high severity"
    )
    high_demand_min_orders: int = Field(
        default=50,
        description="Orders a product needs before the high-demand check applies"
    )
    high_demand_max_avg_quantity: float = Field(
        default=1.5,
        description="Average quantity per order below which demand is flagged"
    )
    high_volume_trigger_orders: int = Field(
        default=10,
        description="Orders by one customer that trigger the high-volume check"
    )
    high_volume_list_orders: int = Field(
        default=8,
        description="Orders above which a customer is listed as high-volume"
    )

    # Forecasting
    forecast_min_days: int = Field(
        default=7,
        description="Minimum days of history before forecasting"
    )
    forecast_band: float = Field(
        default=0.2,
        description="Fixed relative width of the forecast range"
    )


class QuerySettings(BaseSettings):
    """Natural language query engine configuration."""

    model_config = SettingsConfigDict(env_prefix="QUERY_")

    max_length: int = Field(
        default=200,
        description="Maximum accepted question length"
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Overall query timeout"
    )
    handler_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for a single intent handler"
    )
    default_top_n: int = Field(default=5, description="Default top-N products")
    max_top_n: int = Field(default=20, description="Upper bound for top-N products")

    @model_validator(mode="after")
    def check_timeouts(self) -> "QuerySettings":
        if self.handler_timeout_seconds >= self.timeout_seconds:
            raise ValueError("handler_timeout_seconds must be shorter than timeout_seconds")
        return self


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Application
    app_name: str = "Sales Analytics Engine"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Logging
    log_level: str = Field(default="INFO", description="Minimum log level")
    log_dir: str = Field(default="./logs", description="Directory for log files")

    # Order snapshots
    max_orders_per_upload: int = Field(
        default=50000,
        description="Maximum order records accepted in one snapshot"
    )
    session_ttl_hours: int = Field(
        default=24,
        description="Session time-to-live in hours"
    )

    # Nested settings
    remote: RemoteAnalyticsSettings = Field(default_factory=RemoteAnalyticsSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
