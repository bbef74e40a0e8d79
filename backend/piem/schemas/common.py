"""
PIEM Backend — Shared Schema Types and Response Envelopes
==========================================================

What:  Field types and the JSON envelopes every endpoint returns.
How:   Documents from the store are validated into `*Out` models built on
       `DocumentOut`; routes wrap them in `DataEnvelope` / `ListEnvelope`.
       FastAPI serializes by alias, so clients see `_id`, `createdAt`, ...

Envelope shapes:
    list    → {"success": true, "count": 2, "data": [...]}
    single  → {"success": true, "message": "...", "data": {...}}
    delete  → {"success": true, "message": "..."}
    error   → {"success": false, "message": "...", "errors": [{"field", "message"}]}
"""

from datetime import datetime, timezone
from typing import Annotated, Generic, List, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes coming back from the driver are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ObjectId → 24-hex string on the way out
ObjectIdStr = Annotated[str, BeforeValidator(lambda v: str(v) if v is not None else v)]
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Base for payload and response models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DocumentOut(CamelModel):
    """Fields every stored document carries."""

    id: ObjectIdStr = Field(alias="_id", description="Store-assigned identifier")
    created_at: UtcDatetime = Field(description="Creation time (UTC ISO 8601)")
    updated_at: UtcDatetime = Field(description="Last successful mutation (UTC ISO 8601)")


T = TypeVar("T")


class DataEnvelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: T


class ListEnvelope(BaseModel, Generic[T]):
    success: bool = True
    count: int
    data: List[T]


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Fields:
        message:    Human-readable description
        errors:     Field-level validation failures (400 only)
        error:      Underlying fault text, outside production only
        suggestion: Hint attached to unmatched-route 404s
    """
    success: bool = False
    message: str
    errors: Optional[List[FieldError]] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None


class HealthResponse(CamelModel):
    """Process and store connectivity report returned by GET /health."""

    success: bool
    status: str = Field(description="healthy or unhealthy")
    message: str
    service: str
    version: str
    environment: str
    database: str = Field(description="connected or disconnected")
    timestamp: datetime
    uptime_seconds: float
