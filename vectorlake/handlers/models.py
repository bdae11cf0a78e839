"""
Request and response schemas for the Lambda handlers.

Field names accept both the current ``location``/``description`` names and
the ``image_location``/``image_description`` names used by existing callers.

Dependencies: pydantic
System role: Data validation and contract definition for handler payloads
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IngestRequest(BaseModel):
    """Payload of the index handler."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "collection": "images",
                "vector": [0.12, None, 0.5],
                "image_location": "s3://bucket/images/cat.png",
                "image_description": "A cat on a sofa",
            }
        }
    )

    collection: str = Field(..., min_length=1, description="Collection (table) name")
    vector: list[float | None] = Field(..., min_length=1, description="Vector; elements may be null")
    location: str = Field(
        ...,
        validation_alias=AliasChoices("location", "image_location"),
        description="Location of the described object",
    )
    description: str = Field(
        ...,
        validation_alias=AliasChoices("description", "image_description"),
        description="Text description",
    )


class IngestResponse(BaseModel):
    """Body returned by the index handler."""

    req_id: str
    status: str
    message: str
    version: int | None = None


class SearchRequest(BaseModel):
    """Payload of the query handler."""

    collection: str = Field(..., min_length=1, description="Collection (table) name")
    vector: list[float] = Field(..., min_length=1, description="Query vector")
    k: int | None = Field(default=None, ge=1, le=1000, description="Number of results")


class SearchResult(BaseModel):
    """One ranked result."""

    location: str
    description: str
    distance: float


class SearchResponse(BaseModel):
    """Body returned by the query handler."""

    req_id: str
    results: list[SearchResult]
    top1: str | None = Field(default=None, description="Description of the closest result")
    top2: str | None = Field(default=None, description="Description of the second result")


class ErrorResponse(BaseModel):
    """Body returned on failure."""

    req_id: str
    status: str = "failed"
    error: dict
