from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)
      - JWT_SECRET_KEY (HS256 signing secret for access tokens)

    Optional:
      - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (image uploads to Storage)
      - STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET (card checkout)
      - ENVIRONMENT=development to expose tracebacks in error responses
    """

    PROJECT_NAME: str = "E-Commerce API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "production"

    # DB config
    DATABASE_URL: str

    # Access tokens
    JWT_SECRET_KEY: str
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 60 * 24 * 90
    BCRYPT_ROUNDS: int = 12

    # Supabase Storage (images)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "assets"

    # Stripe checkout
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    PAYMENT_CURRENCY: str = "usd"
    CHECKOUT_SUCCESS_URL: str = "http://localhost:3000/orders"
    CHECKOUT_CANCEL_URL: str = "http://localhost:3000/cart"

    # Order pricing
    TAX_PRICE: float = 0.0
    SHIPPING_PRICE: float = 0.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
