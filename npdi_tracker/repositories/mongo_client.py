"""MongoDB Client - shared connection, collection names and startup indexes"""
import time
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

TICKETS = "tickets"
COUNTERS = "counters"
TICKET_TEMPLATES = "ticket_templates"
FORM_CONFIGURATIONS = "form_configurations"
USERS = "users"
USER_PREFERENCES = "user_preferences"
SYSTEM_SETTINGS = "system_settings"

_client: Optional[PyMongoClient] = None


def get_client() -> PyMongoClient:
    """Process-wide client, pinged once when first created"""
    global _client
    if _client is None:
        client = PyMongoClient(
            settings.mongo_uri,
            appname="npdi-tracker",
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
            tz_aware=True,
        )
        try:
            client.admin.command("ping")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            client.close()
            raise
        logger.info(f"Connected to MongoDB, database {settings.mongo_db}")
        _client = client
    return _client


def get_database() -> Database:
    return get_client()[settings.mongo_db]


def get_collection(name: str) -> Collection:
    return get_database()[name]


def close_connection() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """
    Indexes backing ticket numbering, list filters, dashboard scans and the
    recent-activity window
    """
    db = get_database()

    tickets = db[TICKETS]
    tickets.create_index("ticketNumber", unique=True)
    tickets.create_index("status")
    tickets.create_index("sbu")
    tickets.create_index("priority")
    tickets.create_index("createdBy")
    tickets.create_index("chemicalProperties.casNumber")
    tickets.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
    tickets.create_index("updatedAt", background=True)
    tickets.create_index("statusHistory.changedAt", background=True)
    tickets.create_index("comments.timestamp", background=True)

    db[USER_PREFERENCES].create_index("userId", unique=True)

    templates = db[TICKET_TEMPLATES]
    templates.create_index("name", unique=True)
    templates.create_index([("isDefault", ASCENDING), ("isActive", ASCENDING)])

    db[USERS].create_index("email")
    db[USERS].create_index("employeeId", sparse=True)

    logger.info("MongoDB indexes ensured")


def health_check() -> Dict[str, Any]:
    """Ping result with round-trip time, reported rather than raised"""
    started = time.perf_counter()
    try:
        get_client().admin.command("ping")
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {"status": "unhealthy", "database": settings.mongo_db, "error": str(e)}
    return {
        "status": "healthy",
        "database": settings.mongo_db,
        "latencyMs": round((time.perf_counter() - started) * 1000, 1),
    }
