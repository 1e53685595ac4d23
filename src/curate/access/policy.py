"""Access policy engine — decides ALLOW/DENY for (caller, operation, row snapshot).

The engine is pure: it never touches the store and never raises. Callers build
a :class:`Snapshot` of the row (for collection items, of the parent collection's
owner and visibility) and pass it to :func:`evaluate`.

Precedence, first match wins:

1. anonymous callers may only read public rows
2. owners get the operations granted to ``Grant.OWNER``
3. non-owners may only read public rows
4. system writers may create achievements and notifications for anyone
5. deny
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum

from curate.errors import AuthorizationDenied


class Operation(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EntityKind(str, Enum):
    ACHIEVEMENT = "achievement"
    COLLECTION = "collection"
    COLLECTION_ITEM = "collection_item"
    NOTIFICATION = "notification"


class Grant(str, Enum):
    """Who a (kind, operation) pair is open to."""

    OWNER = "owner"
    PUBLIC = "public"
    SYSTEM_WRITER = "system_writer"


_MANAGE = (Operation.CREATE, Operation.UPDATE, Operation.DELETE)

# (kind, operation) -> grants. Pairs missing from the table are denied.
RULES: dict[tuple[EntityKind, Operation], frozenset[Grant]] = {
    # Achievements are immutable once earned.
    (EntityKind.ACHIEVEMENT, Operation.READ): frozenset({Grant.OWNER}),
    (EntityKind.ACHIEVEMENT, Operation.CREATE): frozenset({Grant.OWNER, Grant.SYSTEM_WRITER}),
    # Notifications are never deleted; the recipient may only toggle them.
    (EntityKind.NOTIFICATION, Operation.READ): frozenset({Grant.OWNER}),
    (EntityKind.NOTIFICATION, Operation.CREATE): frozenset({Grant.OWNER, Grant.SYSTEM_WRITER}),
    (EntityKind.NOTIFICATION, Operation.UPDATE): frozenset({Grant.OWNER}),
    (EntityKind.COLLECTION, Operation.READ): frozenset({Grant.OWNER, Grant.PUBLIC}),
    **{(EntityKind.COLLECTION, op): frozenset({Grant.OWNER}) for op in _MANAGE},
    (EntityKind.COLLECTION_ITEM, Operation.READ): frozenset({Grant.OWNER, Grant.PUBLIC}),
    **{(EntityKind.COLLECTION_ITEM, op): frozenset({Grant.OWNER}) for op in _MANAGE},
}


@dataclass(frozen=True)
class Caller:
    """A pre-verified identity; ``user_id`` is None for anonymous callers."""

    user_id: uuid.UUID | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def anonymous(cls) -> Caller:
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True)
class Snapshot:
    """The authorization-relevant attributes of one row."""

    kind: EntityKind
    owner_id: uuid.UUID | None
    public: bool = False


@dataclass(frozen=True)
class Decision:
    allowed: bool
    rule: str

    def __bool__(self) -> bool:
        return self.allowed


SYSTEM_WRITER_ROLE = "system_writer"


def evaluate(
    caller: Caller,
    operation: Operation,
    snapshot: Snapshot,
    *,
    open_system_writes: bool = False,
    system_writer_role: str = SYSTEM_WRITER_ROLE,
) -> Decision:
    """Return the decision for ``caller`` performing ``operation`` on ``snapshot``.

    ``open_system_writes`` extends the system-writer grant to every
    authenticated caller.
    """
    grants = RULES.get((snapshot.kind, operation), frozenset())
    public_read = operation is Operation.READ and Grant.PUBLIC in grants and snapshot.public

    if caller.is_anonymous:
        if public_read:
            return Decision(True, "anonymous_public_read")
        return Decision(False, "anonymous")

    if caller.user_id == snapshot.owner_id:
        if Grant.OWNER in grants:
            return Decision(True, "owner")
    elif public_read:
        return Decision(True, "public_read")

    if Grant.SYSTEM_WRITER in grants and (open_system_writes or caller.has_role(system_writer_role)):
        return Decision(True, "system_writer")

    return Decision(False, "default_deny")


def authorize(
    caller: Caller,
    operation: Operation,
    snapshot: Snapshot,
    *,
    open_system_writes: bool = False,
    system_writer_role: str = SYSTEM_WRITER_ROLE,
) -> Decision:
    """Evaluate and raise :class:`AuthorizationDenied` on DENY."""
    decision = evaluate(
        caller,
        operation,
        snapshot,
        open_system_writes=open_system_writes,
        system_writer_role=system_writer_role,
    )
    if not decision:
        raise AuthorizationDenied(
            f"{operation.value} on {snapshot.kind.value} not permitted",
            details={"rule": decision.rule},
        )
    return decision
