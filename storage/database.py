"""
MongoDB connection management for the catalog.
Handles connection, indexing and health checks.
"""

from typing import Any, Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

logger = structlog.get_logger(__name__)

USERS = "users"
AUTHORS = "authors"
BOOKS = "books"


class MongoDBManager:
    """
    Async MongoDB manager owning the client and the catalog collections.
    """

    def __init__(self, connection_url: str, database_name: str, server_selection_timeout_ms: int = 5000):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            server_selection_timeout_ms: How long to wait for a reachable server
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and ensure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(
                self.connection_url,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            )
            self.database = self.client[self.database_name]

            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()
            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create the unique constraints and the indexes behind owner-scoped listing."""
        try:
            users = self.database[USERS]
            authors = self.database[AUTHORS]
            books = self.database[BOOKS]

            await users.create_index("email", unique=True)

            await authors.create_index([("created_by_id", ASCENDING), ("created_at", DESCENDING)])

            # ISBN is optional; only documents that carry one take part in uniqueness
            await books.create_index(
                "isbn",
                unique=True,
                partialFilterExpression={"isbn": {"$type": "string"}},
            )
            await books.create_index([("created_by_id", ASCENDING), ("created_at", DESCENDING)])
            await books.create_index("author_ids")

            logger.info("Successfully created MongoDB indexes")

        except PyMongoError as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        if self.database is None:
            return {"status": "unhealthy", "error": "not connected"}
        try:
            await self.database.command("ping")
            return {"status": "healthy", "database": self.database_name}
        except PyMongoError as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
