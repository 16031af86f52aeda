"""
FastAPI REST API for the library's book inventory.

This package exposes create, read, update and delete operations over the
MongoDB `books` collection:
- Upload a book record
- List every book, optionally filtered by category
- Fetch, patch (upsert) and delete a book by its ObjectId
"""

__version__ = "1.0.0"
