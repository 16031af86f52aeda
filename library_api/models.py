"""
API models and schemas for the FastAPI application.

Book documents themselves are schema-less and travel as plain dictionaries;
only the write acknowledgements and error bodies have a fixed shape.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# A stored book: arbitrary JSON fields plus the `_id` hex string.
BookDocument = Dict[str, Any]


class InsertBookResponse(BaseModel):
    """Acknowledgement for an uploaded book."""
    acknowledged: bool = Field(..., description="Whether the write was acknowledged")
    inserted_id: str = Field(..., alias="insertedId", description="Generated book identifier")

    model_config = {"populate_by_name": True}


class UpdateBookResponse(BaseModel):
    """Acknowledgement for a patched (or upserted) book."""
    acknowledged: bool = Field(..., description="Whether the write was acknowledged")
    matched_count: int = Field(..., alias="matchedCount", description="Documents matching the id")
    modified_count: int = Field(..., alias="modifiedCount", description="Documents actually changed")
    upserted_count: int = Field(..., alias="upsertedCount", description="Documents created by the upsert")
    upserted_id: Optional[str] = Field(None, alias="upsertedId", description="Identifier of the created document")

    model_config = {"populate_by_name": True}


class DeleteBookResponse(BaseModel):
    """Acknowledgement for a deleted book."""
    acknowledged: bool = Field(..., description="Whether the write was acknowledged")
    deleted_count: int = Field(..., alias="deletedCount", description="Documents removed (0 or 1)")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Error response model."""
    error_kind: str = Field(..., alias="errorKind", description="Failure category")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")

    model_config = {"populate_by_name": True}
