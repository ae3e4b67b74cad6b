from __future__ import annotations

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    api_key: str = Field("test-api-key", alias="API_KEY")
    hmac_secret: str = Field("test-hmac-secret", alias="HMAC_SECRET")
    secure_webhook: bool = Field(False, alias="SECURE_WEBHOOK")
    payment_ips: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "testclient"], alias="PAYMENT_IPS"
    )
    trusted_proxies: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "testclient"]
    )
    rate_limit_ip: int = 30
    rate_limit_user: int = 120

    database_url: str = Field(
        "sqlite:////tmp/pathgate_test.db", alias="DATABASE_URL"
    )
    db_create_all: bool = Field(False, alias="DB_CREATE_ALL")

    redis_url: str = Field("redis://localhost:6379", alias="REDIS_URL")

    timezone: str = Field(
        "UTC",
        alias="TIMEZONE",
        description="Timezone used to compute day and month counter keys",
    )

    currency: str = Field("INR", alias="CURRENCY")
    basic_price: int = Field(99, alias="BASIC_PRICE")
    premium_price: int = Field(199, alias="PREMIUM_PRICE")
    basic_daily_chat_limit: int = 3
    basic_monthly_mcq_limit: int = 3
    premium_daily_chat_limit: int = 5
    premium_monthly_mcq_limit: int = 5
    max_learning_paths_per_payment: int = 1
    subscription_days: int = Field(30, alias="SUBSCRIPTION_DAYS")

    passing_score: float = Field(
        60.0,
        alias="PASSING_SCORE",
        description="Minimum recorded chapter score counted as completion",
    )

    model_config = ConfigDict(
        extra="ignore",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
    )
