"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.

The record representation uses camelCase field names on the wire:
{id, targetUrl, shortCode, accessCount, createdAt, updatedAt}, all fields
always present, timestamps as ISO-8601 strings in UTC.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from shortlink.db.models import UrlRecord, as_utc


class TargetRequest(BaseModel):
    """Request body for create and update. The URL is validated by the service."""
    url: str = Field(..., description="The long URL to shorten or point to")


class RecordResponse(BaseModel):
    """Serialized URL record."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    target_url: str
    short_code: str
    access_count: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _iso_utc(self, value: datetime) -> str:
        return as_utc(value).isoformat()

    @classmethod
    def from_record(cls, record: UrlRecord) -> "RecordResponse":
        return cls(
            id=str(record.id),
            target_url=record.target_url,
            short_code=record.short_code,
            access_count=record.access_count,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""
    status: str = "error"
    kind: str
    message: str
    retry_after: Optional[int] = Field(default=None, description="Seconds to wait, rate limited requests only")
    detail: Optional[str] = Field(default=None, description="Diagnostic text, debug mode only")
