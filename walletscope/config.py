"""Centralized configuration via pydantic-settings. All secrets from .env."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from walletscope.errors import InvalidInputError


PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Helius (Transaction Source)
    helius_api_key: str = ""
    helius_api_url: str = "https://api.helius.xyz/v0"

    # Jupiter (Price Source)
    jupiter_price_url: str = "https://api.jup.ag/price/v2"

    request_timeout: float = 15.0
    page_limit: int = Field(default=100, ge=1, le=100)
    max_pages: int = Field(default=10, ge=1)

    # P&L
    fallback_sol_price: float = 100.0

    # Related wallets
    related_wallet_limit: int = 10
    enrichment_concurrency: int = 5

    # Synthetic data
    use_demo_data: bool = False
    demo_fallback: bool = True

    # Data paths
    data_dir: Path = Field(default_factory=lambda: PROJECT_ROOT / "data")
    duckdb_path: Path = Field(default_factory=lambda: PROJECT_ROOT / "data" / "walletscope.duckdb")

    def require_helius_key(self, override: str | None = None) -> str:
        """Return the Helius key to use, preferring an explicit override."""
        key = override or self.helius_api_key
        if not key:
            raise InvalidInputError("Missing Helius API key (set HELIUS_API_KEY or pass one explicitly)")
        return key


@lru_cache
def get_settings() -> Settings:
    return Settings()
