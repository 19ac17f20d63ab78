"""
Application configuration for api-dca.

Centralizes environment variables using python-dotenv.
"""

import os

from dotenv import load_dotenv

# Load variables from .env (if present)
load_dotenv()


class Settings:
    """
    Configuration settings for the api-dca service.
    """

    # MongoDB
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "dca_db")
    MONGODB_MAX_POOL_SIZE: int = int(os.getenv("MONGODB_MAX_POOL_SIZE", "50"))
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000")
    )
    MONGODB_CONNECT_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_CONNECT_TIMEOUT_MS", "3000")
    )
    MONGODB_SOCKET_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "10000")
    )

    # Binance (paths are relative to the /api prefix: /v3/ticker/price, /v3/order, ...)
    BINANCE_REST_BASE_URL: str = os.getenv(
        "BINANCE_REST_BASE_URL", "https://testnet.binance.vision/api"
    )
    BINANCE_TIMEOUT_SEC: float = float(os.getenv("BINANCE_TIMEOUT_SEC", "10"))
    # 0 = do not send recvWindow (exchange default applies)
    BINANCE_RECV_WINDOW_MS: int = int(os.getenv("BINANCE_RECV_WINDOW_MS", "0"))

    DEFAULT_EXCHANGE: str = os.getenv("DEFAULT_EXCHANGE", "BINANCE").upper()

    # Price cache
    PRICE_CACHE_TTL_MS: int = int(os.getenv("PRICE_CACHE_TTL_MS", "5000"))

    # Scheduler
    SCHEDULER_INTERVAL_SEC: float = float(os.getenv("SCHEDULER_INTERVAL_SEC", "60"))
    # Max wait for a running pass on shutdown before it is cancelled
    SCHEDULER_SHUTDOWN_GRACE_SEC: float = float(os.getenv("SCHEDULER_SHUTDOWN_GRACE_SEC", "10"))
    ENABLE_SCHEDULER: bool = (
        os.getenv("ENABLE_SCHEDULER", "true").lower() == "true"
    )

    # Shared secret for /triggers and /admin (X-API-Key). Empty = every call is rejected.
    BOT_API_KEY: str = os.getenv("BOT_API_KEY", "")

    # Log / app
    APP_NAME: str = os.getenv("APP_NAME", "api-dca")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
