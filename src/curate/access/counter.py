"""Membership counter — keeps ``user_collections.items_count`` in step with its items.

The counter is maintained by mapper events that run on the flush connection,
so the increment or decrement commits or rolls back together with the item
insert/delete that caused it. Both directions use ``items_count = items_count
± 1`` so concurrent writers serialize on the row instead of losing updates.

Importing this module registers the hooks; :mod:`curate.access.gateway` does so.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from curate.db.models import Collection, CollectionItem
from curate.errors import InvariantViolation

logger = logging.getLogger(__name__)

_collections = Collection.__table__


def _apply_delta(connection: Connection, collection_id: Any, delta: int) -> int:  # noqa: ANN401
    """Atomically add ``delta`` to the collection's counter. Returns rows matched."""
    stmt = (
        update(_collections)
        .where(_collections.c.id == collection_id)
        .values(items_count=_collections.c.items_count + delta)
    )
    try:
        result = connection.execute(stmt)
    except SQLAlchemyError as exc:
        raise InvariantViolation(
            "Failed to update collection item count",
            details={"collection_id": str(collection_id), "delta": delta},
        ) from exc
    return result.rowcount


def on_item_inserted(_mapper: Any, connection: Connection, target: CollectionItem) -> None:  # noqa: ANN401
    """after_insert: count the new item against its collection."""
    if _apply_delta(connection, target.collection_id, +1) == 0:
        raise InvariantViolation(
            "Collection vanished while adding an item",
            details={"collection_id": str(target.collection_id)},
        )


def on_item_deleted(_mapper: Any, connection: Connection, target: CollectionItem) -> None:  # noqa: ANN401
    """after_delete: uncount the item.

    A miss means the collection row is already gone (collection-first
    cascade), so there is nothing left to keep consistent.
    """
    if _apply_delta(connection, target.collection_id, -1) == 0:
        logger.debug("Skipped decrement for deleted collection %s", target.collection_id)


_LISTENERS = (
    ("after_insert", on_item_inserted),
    ("after_delete", on_item_deleted),
)


def install() -> None:
    """Register the counter hooks (idempotent)."""
    for name, fn in _LISTENERS:
        if not event.contains(CollectionItem, name, fn):
            event.listen(CollectionItem, name, fn)


def uninstall() -> None:
    """Remove the counter hooks."""
    for name, fn in _LISTENERS:
        if event.contains(CollectionItem, name, fn):
            event.remove(CollectionItem, name, fn)


def is_installed() -> bool:
    return all(event.contains(CollectionItem, name, fn) for name, fn in _LISTENERS)


install()
