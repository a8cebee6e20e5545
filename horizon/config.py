"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Application
    APP_ENV: str = "development"
    SECRET_KEY: str
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT_DEFAULT: str = "120/minute"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Money
    DEFAULT_CURRENCY: str = "USD"

    # Market comparables provider (empty URL = neutral provider)
    MARKET_DATA_URL: str = ""
    MARKET_DATA_API_KEY: str = ""
    MARKET_DATA_TIMEOUT_SECONDS: float = 10.0

    # Runway / Monte Carlo
    MONTE_CARLO_ITERATIONS: int = 1000
    MONTE_CARLO_VARIANCE: float = 0.15
    DEFAULT_PROJECTION_MONTHS: int = 24

    # Cash-flow forecast
    FORECAST_DEFAULT_HORIZON_MONTHS: int = 3
    FORECAST_MAX_WEEKS: int = 104
    FORECAST_LOW_CASH_THRESHOLD: float = 100000.0
    FORECAST_HIGH_BURN_THRESHOLD: float = 50000.0
    FORECAST_BEST_CASE_MULTIPLIER: float = 1.2
    FORECAST_WORST_CASE_MULTIPLIER: float = 0.7
    PAYROLL_CATEGORIES: List[str] = ["Salaries & Wages"]

    # Cohorts
    COHORT_DISCOUNT_RATE: float = 0.1
    COHORT_LTV_HORIZON_MONTHS: int = 24
    COHORT_MAX_PROJECTED_PERIODS: int = 24
    COHORT_LONG_PAYBACK_MONTHS: float = 12.0

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]  # Allow all origins in development
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )


settings = Settings()
