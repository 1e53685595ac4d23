"""Access gateway — the single entry point for reads and writes on owned rows.

Every operation runs as one transaction:

1. load the target row (or the parent collection, for items) under a row lock
2. build a :class:`Snapshot` and run the policy engine
3. apply the change; the membership counter fires on the same connection
4. commit, or roll back and raise on any failure

``FOR UPDATE`` guards mutations and ``FOR SHARE`` guards reads, so a
visibility flip by the owner cannot slip between another caller's check and
the row it was checked against.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar

import structlog
from sqlalchemy import UniqueConstraint, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from curate.access import counter  # noqa: F401  registers the item-count hooks
from curate.access.policy import (
    SYSTEM_WRITER_ROLE,
    Caller,
    EntityKind,
    Operation,
    Snapshot,
    authorize,
    evaluate,
)
from curate.db.models import Achievement, Collection, CollectionItem, Notification
from curate.errors import AuthorizationDenied, Conflict, NotFound

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", Achievement, Collection, CollectionItem, Notification)

COLLECTION_FIELDS = frozenset({"name", "description", "is_public", "color", "icon"})
ITEM_FIELDS = frozenset({"category_id", "notes"})

# Unique constraints reported as Conflict. Any other integrity failure propagates.
CONFLICT_CONSTRAINTS: tuple[UniqueConstraint, ...] = tuple(
    c
    for table in (Achievement.__table__, CollectionItem.__table__)
    for c in table.constraints
    if isinstance(c, UniqueConstraint)
)


def unique_violation(exc: IntegrityError) -> str | None:
    """Name of the conflict constraint ``exc`` violated, or None.

    PostgreSQL reports the constraint name; SQLite reports
    ``UNIQUE constraint failed: table.col, table.col``.
    """
    message = str(exc.orig)
    for constraint in CONFLICT_CONSTRAINTS:
        columns = ", ".join(f"{constraint.table.name}.{col.name}" for col in constraint.columns)
        if constraint.name in message or f"UNIQUE constraint failed: {columns}" in message:
            return constraint.name
    return None


class AccessGateway:
    """Policy-checked, transactional access to the entity store for one caller."""

    def __init__(
        self,
        session: AsyncSession,
        caller: Caller,
        *,
        open_system_writes: bool = False,
        system_writer_role: str = SYSTEM_WRITER_ROLE,
    ) -> None:
        self.session = session
        self.caller = caller
        self.open_system_writes = open_system_writes
        self.system_writer_role = system_writer_role

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, conflict_detail: str = "Duplicate entry") -> AsyncIterator[None]:
        """Commit on success; roll back and translate store failures otherwise."""
        try:
            yield
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            constraint = unique_violation(exc)
            if constraint is None:
                raise
            logger.info(
                "access_conflict",
                caller=self._caller_label(),
                constraint=constraint,
                detail=conflict_detail,
            )
            raise Conflict(conflict_detail) from exc
        except Exception:
            await self.session.rollback()
            raise

    def _caller_label(self) -> str:
        return "anonymous" if self.caller.is_anonymous else str(self.caller.user_id)

    def _check(self, operation: Operation, snapshot: Snapshot) -> None:
        try:
            authorize(
                self.caller,
                operation,
                snapshot,
                open_system_writes=self.open_system_writes,
                system_writer_role=self.system_writer_role,
            )
        except AuthorizationDenied as exc:
            logger.warning(
                "access_denied",
                caller=self._caller_label(),
                operation=operation.value,
                kind=snapshot.kind.value,
                rule=exc.details.get("rule"),
            )
            raise

    def _allows(self, operation: Operation, snapshot: Snapshot) -> bool:
        return evaluate(
            self.caller,
            operation,
            snapshot,
            open_system_writes=self.open_system_writes,
            system_writer_role=self.system_writer_role,
        ).allowed

    async def _load(self, model: type[ModelT], ident: uuid.UUID, *, for_write: bool) -> ModelT:
        """Fetch a row by id under a row lock, refreshing any stale copy in the session."""
        stmt = (
            select(model)
            .where(model.id == ident)
            .with_for_update(read=not for_write)
            .execution_options(populate_existing=True)
        )
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise NotFound(f"{model.__name__} not found", details={"id": str(ident)})
        return row

    async def _load_item(self, item_id: uuid.UUID, *, for_write: bool) -> tuple[CollectionItem, Collection]:
        """Fetch an item and its parent collection; a missing parent is NotFound."""
        item = await self._load(CollectionItem, item_id, for_write=for_write)
        parent = await self._load(Collection, item.collection_id, for_write=for_write)
        return item, parent

    @staticmethod
    def _collection_snapshot(collection: Collection) -> Snapshot:
        return Snapshot(EntityKind.COLLECTION, collection.owner_id, collection.is_public)

    @staticmethod
    def _item_snapshot(parent: Collection) -> Snapshot:
        return Snapshot(EntityKind.COLLECTION_ITEM, parent.owner_id, parent.is_public)

    @staticmethod
    def _apply(row: Any, changes: dict[str, Any], allowed: frozenset[str]) -> None:  # noqa: ANN401
        unknown = set(changes) - allowed
        if unknown:
            msg = f"Immutable or unknown fields: {sorted(unknown)}"
            raise ValueError(msg)
        for name, value in changes.items():
            setattr(row, name, value)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def create_collection(
        self,
        name: str,
        *,
        owner_id: uuid.UUID | None = None,
        description: str | None = None,
        is_public: bool = False,
        color: str | None = None,
        icon: str | None = None,
    ) -> Collection:
        owner_id = owner_id or self.caller.user_id
        async with self._transaction():
            self._check(Operation.CREATE, Snapshot(EntityKind.COLLECTION, owner_id, is_public))
            collection = Collection(
                owner_id=owner_id,
                name=name,
                description=description,
                is_public=is_public,
                items_count=0,
            )
            if color is not None:
                collection.color = color
            if icon is not None:
                collection.icon = icon
            self.session.add(collection)
            await self.session.flush()
        return collection

    async def get_collection(self, collection_id: uuid.UUID) -> Collection:
        async with self._transaction():
            collection = await self._load(Collection, collection_id, for_write=False)
            self._check(Operation.READ, self._collection_snapshot(collection))
        return collection

    async def list_collections(
        self, owner_id: uuid.UUID, page: int = 1, per_page: int = 20
    ) -> tuple[list[Collection], int]:
        """The owner sees all their collections; everyone else sees the public ones."""
        sees_private = self._allows(Operation.READ, Snapshot(EntityKind.COLLECTION, owner_id, False))
        filters = [Collection.owner_id == owner_id]
        if not sees_private:
            filters.append(Collection.is_public.is_(True))
        return await self._page_collections(filters, page, per_page)

    async def list_public_collections(self, page: int = 1, per_page: int = 20) -> tuple[list[Collection], int]:
        return await self._page_collections([Collection.is_public.is_(True)], page, per_page)

    async def _page_collections(
        self, filters: list[Any], page: int, per_page: int
    ) -> tuple[list[Collection], int]:
        async with self._transaction():
            total = (
                await self.session.execute(select(func.count()).select_from(Collection).where(*filters))
            ).scalar_one()
            result = await self.session.execute(
                select(Collection)
                .where(*filters)
                .order_by(Collection.created_at.desc(), Collection.id)
                .offset((page - 1) * per_page)
                .limit(per_page)
                .execution_options(populate_existing=True)
            )
            collections = list(result.scalars().all())
        return collections, total

    async def update_collection(self, collection_id: uuid.UUID, **changes: Any) -> Collection:  # noqa: ANN401
        async with self._transaction():
            collection = await self._load(Collection, collection_id, for_write=True)
            self._check(Operation.UPDATE, self._collection_snapshot(collection))
            self._apply(collection, changes, COLLECTION_FIELDS)
            collection.updated_at = datetime.now(timezone.utc)
            await self.session.flush()
        return collection

    async def delete_collection(self, collection_id: uuid.UUID) -> None:
        """Delete a collection; its items go with it through the FK cascade."""
        async with self._transaction():
            collection = await self._load(Collection, collection_id, for_write=True)
            self._check(Operation.DELETE, self._collection_snapshot(collection))
            await self.session.delete(collection)
            await self.session.flush()

    # ------------------------------------------------------------------
    # Collection items
    # ------------------------------------------------------------------

    async def add_item(
        self,
        collection_id: uuid.UUID,
        resource_id: str,
        category_id: str,
        notes: str | None = None,
    ) -> CollectionItem:
        async with self._transaction("Resource is already in this collection"):
            parent = await self._load(Collection, collection_id, for_write=True)
            self._check(Operation.CREATE, self._item_snapshot(parent))
            item = CollectionItem(
                collection_id=parent.id,
                resource_id=resource_id,
                category_id=category_id,
                notes=notes,
            )
            self.session.add(item)
            await self.session.flush()
        return item

    async def get_item(self, item_id: uuid.UUID) -> CollectionItem:
        async with self._transaction():
            item, parent = await self._load_item(item_id, for_write=False)
            self._check(Operation.READ, self._item_snapshot(parent))
        return item

    async def list_items(self, collection_id: uuid.UUID) -> list[CollectionItem]:
        async with self._transaction():
            parent = await self._load(Collection, collection_id, for_write=False)
            self._check(Operation.READ, self._item_snapshot(parent))
            result = await self.session.execute(
                select(CollectionItem)
                .where(CollectionItem.collection_id == parent.id)
                .order_by(CollectionItem.added_at.desc(), CollectionItem.id)
            )
            items = list(result.scalars().all())
        return items

    async def update_item(self, item_id: uuid.UUID, **changes: Any) -> CollectionItem:  # noqa: ANN401
        async with self._transaction():
            item, parent = await self._load_item(item_id, for_write=True)
            self._check(Operation.UPDATE, self._item_snapshot(parent))
            self._apply(item, changes, ITEM_FIELDS)
            await self.session.flush()
        return item

    async def remove_item(self, item_id: uuid.UUID) -> None:
        async with self._transaction():
            item, parent = await self._load_item(item_id, for_write=True)
            self._check(Operation.DELETE, self._item_snapshot(parent))
            await self.session.delete(item)
            await self.session.flush()

    # ------------------------------------------------------------------
    # Achievements
    # ------------------------------------------------------------------

    async def award_achievement(
        self, owner_id: uuid.UUID, kind: str, payload: dict[str, Any] | None = None
    ) -> Achievement:
        """Record an earned achievement. Earning the same kind twice is a Conflict."""
        async with self._transaction("Achievement already earned"):
            self._check(Operation.CREATE, Snapshot(EntityKind.ACHIEVEMENT, owner_id))
            achievement = Achievement(owner_id=owner_id, kind=kind, payload=payload or {})
            self.session.add(achievement)
            await self.session.flush()
        return achievement

    async def get_achievement(self, achievement_id: uuid.UUID) -> Achievement:
        async with self._transaction():
            achievement = await self._load(Achievement, achievement_id, for_write=False)
            self._check(Operation.READ, Snapshot(EntityKind.ACHIEVEMENT, achievement.owner_id))
        return achievement

    async def list_achievements(self, owner_id: uuid.UUID) -> list[Achievement]:
        async with self._transaction():
            self._check(Operation.READ, Snapshot(EntityKind.ACHIEVEMENT, owner_id))
            result = await self.session.execute(
                select(Achievement)
                .where(Achievement.owner_id == owner_id)
                .order_by(Achievement.earned_at.desc(), Achievement.id)
            )
            achievements = list(result.scalars().all())
        return achievements

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def create_notification(
        self,
        owner_id: uuid.UUID,
        type_: str,
        title: str,
        message: str,
        payload: dict[str, Any] | None = None,
    ) -> Notification:
        async with self._transaction():
            self._check(Operation.CREATE, Snapshot(EntityKind.NOTIFICATION, owner_id))
            notification = Notification(
                owner_id=owner_id,
                type=type_,
                title=title,
                message=message,
                payload=payload or {},
                is_read=False,
            )
            self.session.add(notification)
            await self.session.flush()
        return notification

    async def get_notification(self, notification_id: uuid.UUID) -> Notification:
        async with self._transaction():
            notification = await self._load(Notification, notification_id, for_write=False)
            self._check(Operation.READ, Snapshot(EntityKind.NOTIFICATION, notification.owner_id))
        return notification

    async def list_notifications(
        self,
        owner_id: uuid.UUID,
        *,
        unread_only: bool = False,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Notification], int]:
        """Recipient's notifications, most recent first."""
        filters = [Notification.owner_id == owner_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))
        async with self._transaction():
            self._check(Operation.READ, Snapshot(EntityKind.NOTIFICATION, owner_id))
            total = (
                await self.session.execute(select(func.count()).select_from(Notification).where(*filters))
            ).scalar_one()
            result = await self.session.execute(
                select(Notification)
                .where(*filters)
                .order_by(Notification.created_at.desc(), Notification.id)
                .offset((page - 1) * per_page)
                .limit(per_page)
                .execution_options(populate_existing=True)
            )
            notifications = list(result.scalars().all())
        return notifications, total

    async def set_read(self, notification_id: uuid.UUID, is_read: bool = True) -> Notification:
        async with self._transaction():
            notification = await self._load(Notification, notification_id, for_write=True)
            self._check(Operation.UPDATE, Snapshot(EntityKind.NOTIFICATION, notification.owner_id))
            notification.is_read = is_read
            await self.session.flush()
        return notification

    async def mark_all_read(self, owner_id: uuid.UUID) -> int:
        """Mark every unread notification of ``owner_id`` as read. Returns count updated."""
        async with self._transaction():
            self._check(Operation.UPDATE, Snapshot(EntityKind.NOTIFICATION, owner_id))
            result = await self.session.execute(
                update(Notification)
                .where(Notification.owner_id == owner_id, Notification.is_read.is_(False))
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount

    async def unread_count(self, owner_id: uuid.UUID) -> int:
        async with self._transaction():
            self._check(Operation.READ, Snapshot(EntityKind.NOTIFICATION, owner_id))
            count = (
                await self.session.execute(
                    select(func.count())
                    .select_from(Notification)
                    .where(Notification.owner_id == owner_id, Notification.is_read.is_(False))
                )
            ).scalar_one()
        return count
