"""
MongoDB client factory for api-dca.

Provides a shared, properly configured AsyncIOMotorClient.
"""

from motor.motor_asyncio import AsyncIOMotorClient

from config.settings import settings


def get_mongo_client() -> AsyncIOMotorClient:
    """
    Create a configured AsyncIOMotorClient.

    Centralizes timeouts, pool size and options so all callers share the same behavior.
    tz_aware=True so start_date / last_executed come back as UTC-aware datetimes.
    """
    client = AsyncIOMotorClient(
        settings.MONGODB_URI,
        uuidRepresentation="standard",
        tz_aware=True,
        maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        connectTimeoutMS=settings.MONGODB_CONNECT_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGODB_SOCKET_TIMEOUT_MS,
    )
    return client
