"""
MongoDB storage adapter for the book inventory.
Owns the single client shared by every request and the five collection
operations the API needs.
"""

import json
from typing import Any, Dict, List, Optional

import structlog
from bson import DBRef, Decimal128, MaxKey, MinKey, ObjectId, Regex, Timestamp, json_util
from bson.code import Code
from bson.json_util import RELAXED_JSON_OPTIONS
from fastapi.encoders import jsonable_encoder
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from library_api.errors import InvalidBookIdError, InvalidBookPayloadError
from library_api.models import (
    BookDocument, InsertBookResponse, UpdateBookResponse, DeleteBookResponse
)

logger = structlog.get_logger(__name__)

DATABASE_NAME = "library-management"
COLLECTION_NAME = "books"


def parse_book_id(book_id: str) -> ObjectId:
    """
    Convert a path identifier to an ObjectId.

    Raises:
        InvalidBookIdError: if `book_id` is not a 24-character hex string
    """
    if not ObjectId.is_valid(book_id):
        raise InvalidBookIdError(book_id)
    return ObjectId(book_id)


def _extended_json(value: Any) -> Any:
    return json.loads(json_util.dumps(value, json_options=RELAXED_JSON_OPTIONS))


# bytes also covers bson.Binary
_BSON_ENCODERS = {
    ObjectId: str,
    Decimal128: _extended_json,
    bytes: _extended_json,
    Regex: _extended_json,
    Timestamp: _extended_json,
    Code: _extended_json,
    DBRef: _extended_json,
    MinKey: _extended_json,
    MaxKey: _extended_json,
}


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[BookDocument]:
    """
    Make a stored document JSON-safe.

    ObjectIds become hex strings and datetimes ISO strings. Other BSON
    types (Decimal128, Binary, Timestamp, ...) are rendered as relaxed
    Extended JSON, e.g. `{"$numberDecimal": "1.5"}`.
    """
    if document is None:
        return None
    return jsonable_encoder(document, custom_encoder=_BSON_ENCODERS)


def _without_id(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if key != "_id"}


class BookStore:
    """
    Async MongoDB adapter for the `books` collection.
    One instance is created at startup and shared by all handlers.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str = DATABASE_NAME,
        collection_name: str = COLLECTION_NAME
    ):
        """
        Initialize the book store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    def connect(self) -> None:
        """
        Create the MongoDB client.

        The driver connects lazily, so this never blocks on the server;
        use `ping()` to check reachability.
        """
        self.client = AsyncIOMotorClient(
            self.connection_url,
            server_api=ServerApi("1", strict=True, deprecation_errors=True)
        )
        self.database = self.client[self.database_name]
        self.collection = self.database[self.collection_name]
        logger.info("MongoDB client created",
                    database=self.database_name,
                    collection=self.collection_name)

    async def ping(self) -> bool:
        """
        Confirm the deployment answers a ping.

        Returns:
            bool: True if the server responded, False otherwise
        """
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            return False

        logger.info("Pinged your deployment. Successfully connected to MongoDB",
                    database=self.database_name)
        return True

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def insert_book(self, book: Dict[str, Any]) -> InsertBookResponse:
        """
        Insert a client-supplied book document.

        Any `_id` in the payload is dropped so the database assigns one.
        """
        result = await self.collection.insert_one(_without_id(book))
        return InsertBookResponse(
            acknowledged=result.acknowledged,
            inserted_id=str(result.inserted_id)
        )

    async def list_books(self, category: Optional[str] = None) -> List[BookDocument]:
        """
        Get every book, or only those whose category equals `category`.

        Args:
            category: Exact, case-sensitive category to match

        Returns:
            Books in the collection's natural order
        """
        filter_query = {}
        if category:
            filter_query["category"] = category

        cursor = self.collection.find(filter_query)
        books_docs = await cursor.to_list(length=None)
        return [serialize_document(doc) for doc in books_docs]

    async def get_book(self, book_id: str) -> Optional[BookDocument]:
        """
        Get a single book by ID.

        Returns:
            The document if found, None otherwise
        """
        object_id = parse_book_id(book_id)
        book_doc = await self.collection.find_one({"_id": object_id})
        return serialize_document(book_doc)

    async def update_book(self, book_id: str, fields: Dict[str, Any]) -> UpdateBookResponse:
        """
        Overwrite the given fields on a book, creating it if the id is unknown.

        Fields not present in `fields` are left untouched. `_id` is never
        rewritten.

        Raises:
            InvalidBookIdError: if `book_id` is malformed
            InvalidBookPayloadError: if no writable field remains
        """
        object_id = parse_book_id(book_id)
        update_fields = _without_id(fields)
        if not update_fields:
            raise InvalidBookPayloadError("Update body must contain at least one field other than _id")

        result = await self.collection.update_one(
            {"_id": object_id},
            {"$set": update_fields},
            upsert=True
        )
        upserted_id = result.upserted_id
        return UpdateBookResponse(
            acknowledged=result.acknowledged,
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_count=0 if upserted_id is None else 1,
            upserted_id=None if upserted_id is None else str(upserted_id)
        )

    async def delete_book(self, book_id: str) -> DeleteBookResponse:
        """Delete a book by ID. Unknown ids report a zero count."""
        object_id = parse_book_id(book_id)
        result = await self.collection.delete_one({"_id": object_id})
        return DeleteBookResponse(
            acknowledged=result.acknowledged,
            deleted_count=result.deleted_count
        )
