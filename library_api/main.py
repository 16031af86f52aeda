"""
FastAPI main application for the Library Management API.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Any, Dict, List, Optional

import structlog
from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.errors import ConnectionFailure, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from library_api.config import config
from library_api.database import BookStore
from library_api.errors import LibraryAPIError
from library_api.models import (
    BookDocument, InsertBookResponse, UpdateBookResponse, DeleteBookResponse,
    ErrorResponse
)
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup (logging is already set up when launched via run_api.py)
    if not structlog.is_configured():
        setup_logging(
            log_level=config.log_level,
            log_format=config.log_format,
            log_file=config.log_file,
            debug=config.debug
        )
    logger.info("Starting Library Management API", host=config.host, port=config.port)

    book_store = BookStore(config.mongodb_url)
    book_store.connect()
    app.state.book_store = book_store

    # The listener does not wait for the ping; a failure is only logged
    ping_task = asyncio.create_task(book_store.ping())

    yield

    # Shutdown
    logger.info("Shutting down Library Management API")
    if not ping_task.done():
        ping_task.cancel()
        with suppress(asyncio.CancelledError):
            await ping_task
    await book_store.disconnect()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description="""
    A REST API for managing a library's book inventory.

    ## Features

    * **Upload**: Store any JSON object as a new book
    * **Browse**: List every book or filter by exact category
    * **Manage**: Fetch, patch (upsert) and delete books by id
    """,
    version=config.api_version,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


def get_book_store(request: Request) -> BookStore:
    """Return the book store created during startup."""
    return request.app.state.book_store


def _error_response(
    status_code: int,
    error_kind: str,
    message: str,
    detail: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_kind=error_kind,
            message=message,
            detail=detail
        ).model_dump(by_alias=True, exclude_none=True),
        headers=headers
    )


# Exception handlers
@app.exception_handler(LibraryAPIError)
async def library_error_handler(request: Request, exc: LibraryAPIError):
    """Handle invalid ids and unwritable bodies."""
    logger.warning("Request rejected", error_kind=exc.error_kind,
                   error=exc.message, path=request.url.path)
    return _error_response(exc.status_code, exc.error_kind, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle bodies that are not a JSON object."""
    logger.warning("Invalid request body", errors=str(exc.errors()), path=request.url.path)
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "invalid_body",
        "Request body must be a JSON object"
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (unknown routes, wrong methods)."""
    return _error_response(
        exc.status_code,
        "http_error",
        str(exc.detail),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(ConnectionFailure)
async def storage_unavailable_handler(request: Request, exc: ConnectionFailure):
    """Handle an unreachable database."""
    logger.error("Storage unavailable", error=str(exc), path=request.url.path)
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "storage_unavailable",
        "Database is unreachable",
        detail=str(exc) if config.debug else None
    )


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    """Handle any other driver failure."""
    logger.error("Storage operation failed", error=str(exc), path=request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "storage_error",
        "Database operation failed",
        detail=str(exc) if config.debug else None
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal",
        "Internal server error",
        detail=str(exc) if config.debug else None
    )


@app.get("/", response_class=PlainTextResponse, tags=["Health"])
async def root():
    """Greeting used as a liveness probe."""
    return "Hello World!"


# Books endpoints
@app.post("/upload-book", response_model=InsertBookResponse, tags=["Books"])
async def upload_book(
    book: Dict[str, Any] = Body(...),
    book_store: BookStore = Depends(get_book_store)
):
    """Insert the posted JSON object as a new book."""
    return await book_store.insert_book(book)


@app.get("/all-books", response_model=List[BookDocument], tags=["Books"])
async def get_all_books(
    category: Optional[str] = None,
    book_store: BookStore = Depends(get_book_store)
):
    """
    Get all books.

    - **category**: Only return books whose category matches exactly
    """
    return await book_store.list_books(category)


@app.get("/book/{book_id}", response_model=Optional[BookDocument], tags=["Books"])
async def get_book(
    book_id: str,
    book_store: BookStore = Depends(get_book_store)
):
    """
    Get a single book by ID.

    Returns `null` when no book has this id.
    """
    return await book_store.get_book(book_id)


@app.patch("/book/{book_id}", response_model=UpdateBookResponse, tags=["Books"])
async def update_book(
    book_id: str,
    fields: Dict[str, Any] = Body(...),
    book_store: BookStore = Depends(get_book_store)
):
    """
    Overwrite the posted fields on a book.

    A well-formed id with no matching book creates one.
    """
    return await book_store.update_book(book_id, fields)


@app.delete("/book/{book_id}", response_model=DeleteBookResponse, tags=["Books"])
async def delete_book(
    book_id: str,
    book_store: BookStore = Depends(get_book_store)
):
    """Delete a book by ID."""
    return await book_store.delete_book(book_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "library_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
