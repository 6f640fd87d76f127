"""MongoDB connection and Beanie document registration."""
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from geoattend.config import settings
from geoattend.models import (
    User,
    AttendanceToken,
    AttendanceRecord,
    ManualOverride,
    Holiday,
)


_client = None


async def db_startup():
    """Connect to MongoDB, initialize Beanie and build indexes (including the ledger's unique key)."""
    global _client
    _client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
    await init_beanie(
        database=_client[settings.mongodb_db_name],
        document_models=[
            User,
            AttendanceToken,
            AttendanceRecord,
            ManualOverride,
            Holiday,
        ],
    )


async def db_shutdown():
    """Close MongoDB connection."""
    global _client
    if _client:
        _client.close()
        _client = None
