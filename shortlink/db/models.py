"""
Database Models for the Shortener Service

This module defines the SQLModel schema for UrlRecord, the mapping between a
short code and its target URL together with its access counter.

Design Decisions:
- Opaque hex id assigned when the record object is built, never reused
- Unique index on short_code: the store-level safety net behind the generator's pre-check
- access_count kept on the row and bumped with a single UPDATE, never read-modify-write
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return uuid.uuid4().hex


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they were written as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UrlRecord(SQLModel, table=True):
    """
    Main table storing URL records.

    Fields:
    - id: Opaque identifier, immutable
    - target_url: The long URL; replaced by update
    - short_code: Unique fixed-length code, immutable
    - access_count: Successful resolves so far, never decremented
    - created_at: Creation time, immutable
    - updated_at: Refreshed on target change and on every resolve

    Indexes:
    - short_code: Unique index for lookups and collision detection
    """
    __tablename__ = "url_records"

    id: str = Field(
        default_factory=new_record_id,
        sa_column=Column(String(32), primary_key=True)
    )
    target_url: str = Field(sa_column=Column(Text, nullable=False))
    short_code: str = Field(
        sa_column=Column(String(32), nullable=False, unique=True, index=True),
        max_length=32
    )
    access_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
