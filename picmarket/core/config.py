from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load the .env file from the project root when running from a checkout
load_dotenv(Path(__file__).resolve().parents[2] / ".env")


class Settings(BaseSettings):
    # JWT
    JWT_SECRET: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "picmarket"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    # Pricing: "per_item" charges ITEM_PRICE_CENTS per image,
    # "unlimited" charges UNLIMITED_PRICE_CENTS once for every image
    PRICING_MODEL: str = "per_item"
    ITEM_PRICE_CENTS: int = 500
    UNLIMITED_PRICE_CENTS: int = 999
    CURRENCY: str = "usd"

    # Object storage (any S3 compatible endpoint)
    STORAGE_BUCKET: str = "picmarket-assets"
    STORAGE_ENDPOINT_URL: str = ""
    STORAGE_ACCESS_KEY_ID: str = ""
    STORAGE_SECRET_ACCESS_KEY: str = ""
    STORAGE_REGION: str = "us-east-1"
    # Probed in order; the first prefix is where new uploads go
    ASSET_PREFIXES: List[str] = ["protected-images/", "images/"]
    SIGNED_URL_EXPIRE_SECONDS: int = 3600
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    ADMIN_SETUP_ENABLED: bool = True
    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(case_sensitive=True)


settings = Settings()
