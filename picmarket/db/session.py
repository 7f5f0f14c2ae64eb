from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from picmarket.core.config import settings

client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None


def init_mongo() -> AsyncIOMotorDatabase:
    """Create the process-wide client once and return the database handle."""
    global client, db
    if client is None:
        client = AsyncIOMotorClient(settings.MONGO_URL, maxPoolSize=10, minPoolSize=10)
        db = client[settings.DB_NAME]
    return db


def get_db() -> AsyncIOMotorDatabase:
    return init_mongo()


async def ensure_indexes(database: AsyncIOMotorDatabase):
    await database.payments.create_index("user_id", unique=True)
    await database.items.create_index("id", unique=True)
    await database.items.create_index([("approval_state", 1), ("uploaded_at", -1)])
    await database.users.create_index("id", unique=True)


def close_mongo_connection():
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None
