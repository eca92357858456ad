"""Configuration system for LandMapAnalyzr.

Uses pydantic-settings to load configuration from environment variables
and .env files with sensible defaults for the Israeli land-plot market.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with LANDMAP_ (e.g., LANDMAP_API_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="LANDMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Mortgage defaults (Israeli land financing is typically capped at 50% LTV)
    mortgage_ltv: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Loan-to-value ratio used for monthly payment estimates",
    )
    mortgage_annual_rate: float = Field(
        default=0.06,
        ge=0,
        description="Annual interest rate (e.g., 0.06 for 6%)",
    )
    mortgage_years: int = Field(
        default=15,
        description="Loan term in years",
    )

    # Aggregation / presentation heuristics
    histogram_buckets: int = Field(
        default=5,
        ge=1,
        description="Number of buckets in the price distribution histogram",
    )
    compare_limit: int = Field(
        default=3,
        ge=1,
        description="Maximum number of plots in the compare set",
    )
    demand_hot_velocity: float = Field(
        default=3.0,
        ge=0,
        description="Views per day at or above which demand is 'hot'",
    )
    demand_growing_velocity: float = Field(
        default=1.5,
        ge=0,
        description="Views per day at or above which demand is 'growing'",
    )
    demand_steady_velocity: float = Field(
        default=0.5,
        ge=0,
        description="Views per day at or above which demand is 'steady'",
    )
    new_listing_days: int = Field(
        default=7,
        ge=0,
        description="Listings younger than this are labelled 'new'",
    )
    listing_days_max: int = Field(
        default=30,
        ge=0,
        description="Listings up to this age are labelled in days",
    )
    listing_weeks_max_days: int = Field(
        default=90,
        ge=0,
        description="Listings up to this age (in days) are labelled in weeks",
    )
    listing_months_max_days: int = Field(
        default=365,
        ge=0,
        description="Listings up to this age (in days) are labelled in months; older ones in years",
    )
    best_value_price_ratio: float = Field(
        default=1.0,
        gt=0,
        description="Best value needs a price per sqm strictly below this fraction of the average",
    )
    best_value_score_quantile: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Best value needs a score at or above this quantile of all scores (0.5 = median)",
    )
    best_category_min_plots: int = Field(
        default=3,
        ge=1,
        description="Minimum available plots before best-in-category badges are assigned",
    )

    # Remote API
    api_url: str | None = Field(
        default=None,
        description="Base URL of the plots REST API (None disables the API source)",
    )
    api_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout in seconds for API requests",
    )
    fetch_cache_ttl: int = Field(
        default=120,
        ge=0,
        description="Seconds a successful fetch is served from memory",
    )
    fetch_cache_size: int = Field(
        default=32,
        ge=1,
        description="Distinct filter states kept in the fetch cache",
    )

    # Storage paths
    db_path: Path = Field(
        default=Path.home() / ".landmapanalyzr" / "landmap.db",
        description="SQLite database holding plots, leads and POIs",
    )
    state_path: Path = Field(
        default=Path.home() / ".landmapanalyzr" / "state.json",
        description="JSON file persisting favorites and the compare set",
    )

    # API server
    jwt_secret_key: str = Field(
        default="change-me-in-production",
        description="Secret used to sign access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_access_token_expire_minutes: int = Field(
        default=60,
        gt=0,
        description="Lifetime of admin access tokens",
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Allowed browser origins",
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Load the bundled demo plots into an empty database on startup",
    )


# Singleton instance for easy import
config = Settings()
