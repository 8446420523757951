# novanector/database.py
import logging

import certifi
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from novanector.core.config import settings

logger = logging.getLogger(__name__)


def _client_options(url: str) -> dict:
    # Atlas clusters need a CA bundle on hosts without system certificates
    if url.startswith("mongodb+srv://"):
        return {"tlsCAFile": certifi.where()}
    return {}


client = AsyncIOMotorClient(
    settings.MONGO_URL, tz_aware=True, **_client_options(settings.MONGO_URL)
)
db = client[settings.MONGO_DB_NAME]
user_collection = db.users


def get_user_collection():
    """FastAPI dependency returning the users collection."""
    return user_collection


async def ensure_indexes(collection=None):
    """Create the indexes the users collection relies on.

    The unique indexes on ``email`` and ``username`` are what actually
    guarantees uniqueness; the service-level lookups only give nicer errors.
    """
    collection = collection if collection is not None else user_collection
    await collection.create_index([("email", ASCENDING)], unique=True, name="email_unique")
    await collection.create_index([("username", ASCENDING)], unique=True, name="username_unique")
    await collection.create_index([("createdAt", DESCENDING)], name="created_at_desc")


async def ping():
    await client.admin.command("ping")
