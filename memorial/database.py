"""MongoDB connection lifecycle and the document store used by the services."""

from typing import TYPE_CHECKING, Annotated, Any, Protocol

from beanie import init_beanie
from bson import ObjectId
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from memorial.config import settings

if TYPE_CHECKING:
    from beanie import Document

# Global database client and database references
client: AsyncIOMotorClient | None = None
database: AsyncIOMotorDatabase | None = None


class DocumentStore(Protocol):
    """Collection-scoped CRUD contract the exchange services depend on.

    Records are plain dicts. Every returned record carries its identifier
    under ``"id"``.
    """

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def find(
        self, collection: str, filters: dict[str, Any], limit: int | None = None
    ) -> list[dict[str, Any]]: ...

    async def list_all(self, collection: str) -> list[dict[str, Any]]: ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> bool: ...

    async def delete(self, collection: str, doc_id: str) -> bool: ...


def _id_filter(doc_id: str) -> dict[str, Any]:
    """Match a record by id, whether it was stored as a string or an ObjectId."""
    if ObjectId.is_valid(doc_id):
        return {"_id": {"$in": [doc_id, ObjectId(doc_id)]}}
    return {"_id": doc_id}


def _to_record(document: dict[str, Any]) -> dict[str, Any]:
    """Convert a raw MongoDB document into a record dict."""
    record = dict(document)
    raw_id = record.pop("_id", None)
    if raw_id is not None:
        record.setdefault("id", str(raw_id))
    return record


class MongoDocumentStore:
    """DocumentStore backed by a motor database."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self._db = db

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = await self._db[collection].find_one(_id_filter(doc_id))
        return _to_record(document) if document is not None else None

    async def find(
        self, collection: str, filters: dict[str, Any], limit: int | None = None
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(filters)
        if limit:
            cursor = cursor.limit(limit)
        documents = await cursor.to_list(length=None)
        return [_to_record(doc) for doc in documents]

    async def list_all(self, collection: str) -> list[dict[str, Any]]:
        return await self.find(collection, {})

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        document = {**data, "_id": doc_id}
        await self._db[collection].replace_one({"_id": doc_id}, document, upsert=True)

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> bool:
        result = await self._db[collection].update_one(_id_filter(doc_id), {"$set": changes})
        return result.matched_count > 0

    async def delete(self, collection: str, doc_id: str) -> bool:
        result = await self._db[collection].delete_one(_id_filter(doc_id))
        return result.deleted_count > 0


def get_document_models() -> list[type["Document"]]:
    """Beanie document models to initialize. Content collections stay schema-less."""
    from memorial.models import BackupSchedule

    return [BackupSchedule]


async def init_db(
    mongodb_url: str | None = None,
    mongodb_database: str | None = None,
    motor_client: AsyncIOMotorClient | None = None,
) -> None:
    """Initialize the MongoDB database connection.

    Args:
        mongodb_url: Optional MongoDB connection URL. Defaults to settings.
        mongodb_database: Optional database name. Defaults to settings.
        motor_client: Optional pre-configured motor client (for testing).
    """
    global client, database

    if motor_client is not None:
        client = motor_client
    else:
        url = mongodb_url or settings.mongodb_url
        client = AsyncIOMotorClient(
            url,
            minPoolSize=settings.min_pool_size,
            maxPoolSize=settings.max_pool_size,
        )

    db_name = mongodb_database or settings.mongodb_database
    database = client[db_name]

    await init_beanie(database=database, document_models=get_document_models())


async def close_db() -> None:
    """Close the MongoDB database connection."""
    global client, database

    if client is not None:
        client.close()
        client = None
        database = None


def get_database() -> AsyncIOMotorDatabase:
    """Get the current database instance.

    Raises:
        RuntimeError: If database is not initialized.
    """
    if database is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return database


def get_document_store() -> DocumentStore:
    """FastAPI dependency returning the store for the active database."""
    return MongoDocumentStore(get_database())


Store = Annotated[DocumentStore, Depends(get_document_store)]
