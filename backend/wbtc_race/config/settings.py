"""
Configuration settings for the Wrapped BTC Race service
Manages environment variables and application settings
"""
from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application configuration settings"""

    # Application
    APP_NAME: str = "Wrapped BTC Race"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Blockchain RPC Endpoints
    ETHEREUM_RPC_URL: str = "https://eth-mainnet.g.alchemy.com/v2/demo"
    ETHEREUM_FALLBACK_RPC_URL: str = "https://eth.llamarpc.com"
    SOLANA_RPC_URL: str = "https://api.mainnet-beta.solana.com"

    # REST Endpoints
    BITCOIN_STATS_URL: str = "https://api.blockchair.com/bitcoin/stats"
    PRICE_API_URL: str = "https://api.coingecko.com/api/v3/simple/price?ids=solana&vs_currencies=btc"

    # Resilient fetching
    RETRY_ATTEMPTS: int = 3
    ETHEREUM_FALLBACK_RETRY_ATTEMPTS: int = 1
    RETRY_BASE_DELAY_SECONDS: float = 1.0
    REQUEST_TIMEOUT_SECONDS: float = 5.0

    # Response cache
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 3600  # 1 hour
    CACHE_MAX_ENTRIES: int = 256

    # Redis Configuration (optional second cache tier)
    REDIS_ENABLED: bool = False
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
