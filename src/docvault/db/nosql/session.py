from __future__ import annotations

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from docvault.app.settings import ServiceSettings

logger = logging.getLogger(__name__)


def create_mongo_client(settings: ServiceSettings) -> AsyncIOMotorClient:
    # tz_aware so created_at round-trips as an aware UTC datetime
    return AsyncIOMotorClient(settings.mongo_uri, tz_aware=True)


def get_database(client: AsyncIOMotorClient, settings: ServiceSettings) -> AsyncIOMotorDatabase:
    return client[settings.mongo_db]


def dispose_mongo(client: AsyncIOMotorClient) -> None:
    client.close()
    logger.info("Mongo client closed")
