"""
Request failures raised by the API and the storage adapter.

Each error carries the `error_kind` and HTTP status that the exception
handlers in `library_api.main` put on the wire.
"""

from fastapi import status


class LibraryAPIError(Exception):
    """Base class for failures with a known client-facing shape."""

    error_kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidBookIdError(LibraryAPIError):
    """The path identifier is not a valid ObjectId."""

    error_kind = "invalid_id"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, book_id: str):
        super().__init__(f"'{book_id}' is not a valid book id")
        self.book_id = book_id


class InvalidBookPayloadError(LibraryAPIError):
    """The request body cannot be written to the collection."""

    error_kind = "invalid_body"
    status_code = status.HTTP_400_BAD_REQUEST
