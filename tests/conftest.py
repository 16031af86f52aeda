"""
Pytest configuration and shared fixtures.
"""

import copy

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

from library_api.database import BookStore
from library_api.main import app, get_book_store


def _matches(document, filter_query):
    return all(document.get(key) == value for key, value in filter_query.items())


class InMemoryCursor:
    """Stands in for AsyncIOMotorCursor."""

    def __init__(self, documents):
        self._documents = documents

    async def to_list(self, length=None):
        documents = self._documents if length is None else self._documents[:length]
        return [copy.deepcopy(doc) for doc in documents]


class InMemoryBooksCollection:
    """
    Equality-filter subset of AsyncIOMotorCollection backed by a list.
    Returns real pymongo result objects so BookStore sees driver-shaped data.
    """

    def __init__(self):
        self.documents = []

    async def insert_one(self, document):
        # The driver assigns _id on the caller's dict
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return InsertOneResult(document["_id"], True)

    def find(self, filter_query=None):
        filter_query = filter_query or {}
        return InMemoryCursor([doc for doc in self.documents if _matches(doc, filter_query)])

    async def find_one(self, filter_query):
        for doc in self.documents:
            if _matches(doc, filter_query):
                return copy.deepcopy(doc)
        return None

    async def update_one(self, filter_query, update, upsert=False):
        fields = update["$set"]
        for doc in self.documents:
            if _matches(doc, filter_query):
                before = dict(doc)
                doc.update(copy.deepcopy(fields))
                return UpdateResult({"n": 1, "nModified": int(doc != before)}, True)

        if upsert:
            new_doc = dict(filter_query)
            new_doc.update(copy.deepcopy(fields))
            self.documents.append(new_doc)
            return UpdateResult({"n": 1, "nModified": 0, "upserted": new_doc["_id"]}, True)

        return UpdateResult({"n": 0, "nModified": 0}, True)

    async def delete_one(self, filter_query):
        for index, doc in enumerate(self.documents):
            if _matches(doc, filter_query):
                del self.documents[index]
                return DeleteResult({"n": 1}, True)
        return DeleteResult({"n": 0}, True)


@pytest.fixture
def books_collection():
    """Create an empty in-memory books collection."""
    return InMemoryBooksCollection()


@pytest.fixture
def book_store(books_collection):
    """Create a book store wired to the in-memory collection."""
    store = BookStore(connection_url="mongodb://localhost:27017")
    store.collection = books_collection
    return store


@pytest.fixture
def client(book_store):
    """Create a test client whose handlers use the in-memory book store."""
    app.dependency_overrides[get_book_store] = lambda: book_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_book():
    """Create sample book data for testing."""
    return {
        "bookTitle": "A Light in the Attic",
        "authorName": "Shel Silverstein",
        "category": "Poetry",
        "imageURL": "https://example.com/attic.jpg",
        "bookDescription": "It's hard to imagine a world without A Light in the Attic.",
        "bookPDFURL": "https://example.com/attic.pdf",
        "price": 51.77
    }
