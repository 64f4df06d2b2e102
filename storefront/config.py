# storefront/config.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from pathlib import Path
from functools import lru_cache


class Settings(BaseSettings):
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    DATA_DIR: Path = Path("data")  # where the CSV table files live
    USERS_FILE: str = "users.csv"
    CATEGORIES_FILE: str = "categories.csv"
    PRODUCTS_FILE: str = "products.csv"
    CART_ITEMS_FILE: str = "cart_items.csv"
    ORDERS_FILE: str = "orders.csv"
    ORDER_ITEMS_FILE: str = "order_items.csv"
    # seconds to wait for a table lock before giving up
    LOCK_TIMEOUT_SECONDS: float = 10.0

    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # comma separated; empty means http://localhost:3000 only
    CORS_ORIGINS: str = ""

    # allow orders to push stock below zero
    ALLOW_BACKORDER: bool = False
    # "test" uses the built-in test gateway, "disabled" rejects ONLINE checkouts
    PAYMENT_PROVIDER: str = "test"

    # Example .env:
    # DATA_DIR=./data
    # JWT_SECRET=something-long-and-random

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def table_files(self) -> dict:
        return {
            "users": self.USERS_FILE,
            "categories": self.CATEGORIES_FILE,
            "products": self.PRODUCTS_FILE,
            "cart_items": self.CART_ITEMS_FILE,
            "orders": self.ORDERS_FILE,
            "order_items": self.ORDER_ITEMS_FILE,
        }


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
