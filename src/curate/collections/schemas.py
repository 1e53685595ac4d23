"""Pydantic schemas for collection endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

_COLOR = r"^#[0-9A-Fa-f]{6}$"


# --- Collections ---


class CreateCollectionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    is_public: bool = False
    color: str | None = Field(None, pattern=_COLOR)
    icon: str | None = Field(None, min_length=1, max_length=16)


class UpdateCollectionRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    is_public: bool | None = None
    color: str | None = Field(None, pattern=_COLOR)
    icon: str | None = Field(None, min_length=1, max_length=16)


class CollectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    description: str | None = None
    is_public: bool
    color: str
    icon: str
    items_count: int
    created_at: datetime
    updated_at: datetime


class CollectionListResponse(BaseModel):
    collections: list[CollectionResponse]
    total: int
    page: int
    per_page: int


# --- Items ---


class AddItemRequest(BaseModel):
    resource_id: str = Field(..., min_length=1, max_length=256)
    category_id: str = Field(..., min_length=1, max_length=64)
    notes: str | None = Field(None, max_length=2000)


class UpdateItemRequest(BaseModel):
    category_id: str | None = Field(None, min_length=1, max_length=64)
    notes: str | None = Field(None, max_length=2000)


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    collection_id: uuid.UUID
    resource_id: str
    category_id: str
    notes: str | None = None
    added_at: datetime


class ItemListResponse(BaseModel):
    items: list[ItemResponse]
    total: int
