from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
import os
import logging
from pathlib import Path

from utils.errors import DependencyUnavailableError

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

DEFAULT_MONGO_URL = "mongodb://localhost:27017"
DEFAULT_DB_NAME = "case_tracker"

# Collections holding user-owned records (shared {id, user_id, organization_id} envelope)
RECORD_COLLECTIONS = ("cases", "clients", "payments")


class Database:
    client: AsyncIOMotorClient = None
    db = None

    async def connect(self):
        try:
            mongo_url = os.environ.get('MONGO_URL', DEFAULT_MONGO_URL)
            db_name = os.environ.get('DB_NAME', DEFAULT_DB_NAME)
            self.client = AsyncIOMotorClient(mongo_url)
            self.db = self.client[db_name]
            # Verify connection
            await self.db.command("ping")
            logger.info(f"Connected to MongoDB: {db_name}")

            await self._create_indexes()
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def close(self):
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    def get_db(self):
        if self.db is None:
            raise DependencyUnavailableError("Database is not connected")
        return self.db

    async def _create_indexes(self):
        """Create MongoDB indexes for ownership and tenancy lookups."""
        try:
            for name in RECORD_COLLECTIONS:
                collection = self.db[name]
                await collection.create_index("id", unique=True)
                await collection.create_index([("user_id", 1), ("organization_id", 1)])

            await self.db.payments.create_index([("client_id", 1), ("date", -1)])

            await self.db.organizations.create_index("id", unique=True)
            await self.db.organizations.create_index("created_by")
            await self.db.organizations.create_index("is_default", sparse=True)

            await self.db.users.create_index("id", unique=True)

            # Case stats lookups
            for name in ("documents", "hearings", "tasks", "conversations"):
                await self.db[name].create_index("case_id")

            await self.db.audit_logs.create_index([("resource_type", 1), ("resource_id", 1), ("timestamp", -1)])
            await self.db.audit_logs.create_index("timestamp")
            logger.info("MongoDB indexes created/verified")
        except Exception as e:
            # Indexes may already exist, log but don't fail
            logger.warning(f"Index creation note: {e}")


# Global database instance
database = Database()
