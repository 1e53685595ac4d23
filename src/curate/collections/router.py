"""Collection and collection-item endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response

from curate.access.gateway import AccessGateway
from curate.collections.schemas import (
    AddItemRequest,
    CollectionListResponse,
    CollectionResponse,
    CreateCollectionRequest,
    ItemListResponse,
    ItemResponse,
    UpdateCollectionRequest,
    UpdateItemRequest,
)
from curate.config import get_settings
from curate.dependencies import get_gateway

router = APIRouter(prefix="/api/v1", tags=["Collections"])

# Columns that may be cleared; everything else ignores an explicit null.
_NULLABLE = frozenset({"description", "notes"})


def _changes(body: UpdateCollectionRequest | UpdateItemRequest) -> dict:
    """Fields the client actually sent, minus nulls for non-nullable columns."""
    return {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE
    }


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


@router.post("/collections", response_model=CollectionResponse, status_code=201)
async def create_collection(
    body: CreateCollectionRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> CollectionResponse:
    """Create a collection owned by the caller."""
    settings = get_settings()
    collection = await gateway.create_collection(
        body.name,
        description=body.description,
        is_public=body.is_public,
        color=body.color or settings.default_collection_color,
        icon=body.icon or settings.default_collection_icon,
    )
    return CollectionResponse.model_validate(collection)


@router.get("/collections/public", response_model=CollectionListResponse)
async def list_public_collections(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    gateway: AccessGateway = Depends(get_gateway),
) -> CollectionListResponse:
    """Browse public collections (no authentication required)."""
    collections, total = await gateway.list_public_collections(page, per_page)
    return CollectionListResponse(
        collections=[CollectionResponse.model_validate(c) for c in collections],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/{owner_id}/collections", response_model=CollectionListResponse)
async def list_user_collections(
    owner_id: uuid.UUID,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    gateway: AccessGateway = Depends(get_gateway),
) -> CollectionListResponse:
    """A user's collections: all of them for the owner, public ones for everyone else."""
    collections, total = await gateway.list_collections(owner_id, page, per_page)
    return CollectionListResponse(
        collections=[CollectionResponse.model_validate(c) for c in collections],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/collections/{collection_id}", response_model=CollectionResponse)
async def get_collection(
    collection_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> CollectionResponse:
    collection = await gateway.get_collection(collection_id)
    return CollectionResponse.model_validate(collection)


@router.patch("/collections/{collection_id}", response_model=CollectionResponse)
async def update_collection(
    collection_id: uuid.UUID,
    body: UpdateCollectionRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> CollectionResponse:
    """Rename, restyle, or change the visibility of a collection."""
    collection = await gateway.update_collection(collection_id, **_changes(body))
    return CollectionResponse.model_validate(collection)


@router.delete("/collections/{collection_id}", status_code=204)
async def delete_collection(
    collection_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> Response:
    """Delete a collection and every item in it."""
    await gateway.delete_collection(collection_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@router.post("/collections/{collection_id}/items", response_model=ItemResponse, status_code=201)
async def add_item(
    collection_id: uuid.UUID,
    body: AddItemRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> ItemResponse:
    """Add a resource to a collection. 409 if it is already there."""
    item = await gateway.add_item(collection_id, body.resource_id, body.category_id, body.notes)
    return ItemResponse.model_validate(item)


@router.get("/collections/{collection_id}/items", response_model=ItemListResponse)
async def list_items(
    collection_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> ItemListResponse:
    items = await gateway.list_items(collection_id)
    return ItemListResponse(items=[ItemResponse.model_validate(i) for i in items], total=len(items))


@router.get("/items/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> ItemResponse:
    item = await gateway.get_item(item_id)
    return ItemResponse.model_validate(item)


@router.patch("/items/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: uuid.UUID,
    body: UpdateItemRequest,
    gateway: AccessGateway = Depends(get_gateway),
) -> ItemResponse:
    item = await gateway.update_item(item_id, **_changes(body))
    return ItemResponse.model_validate(item)


@router.delete("/items/{item_id}", status_code=204)
async def remove_item(
    item_id: uuid.UUID,
    gateway: AccessGateway = Depends(get_gateway),
) -> Response:
    await gateway.remove_item(item_id)
    return Response(status_code=204)
