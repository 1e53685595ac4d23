"""Unit tests for the access policy engine (pure, no store)."""

from __future__ import annotations

import uuid

import pytest

from curate.access.policy import (
    RULES,
    Caller,
    Decision,
    EntityKind,
    Operation,
    Snapshot,
    authorize,
    evaluate,
)
from curate.errors import AuthorizationDenied

OWNER = uuid.uuid4()
STRANGER = uuid.uuid4()


def _caller(user_id: uuid.UUID | None = OWNER, *roles: str) -> Caller:
    return Caller(user_id=user_id, roles=frozenset(roles))


class TestOwnerRules:
    @pytest.mark.parametrize("op", list(Operation))
    def test_owner_manages_collections(self, op: Operation) -> None:
        decision = evaluate(_caller(), op, Snapshot(EntityKind.COLLECTION, OWNER))
        assert decision.allowed
        assert decision.rule == "owner"

    @pytest.mark.parametrize("op", list(Operation))
    def test_owner_manages_items_of_own_collection(self, op: Operation) -> None:
        assert evaluate(_caller(), op, Snapshot(EntityKind.COLLECTION_ITEM, OWNER))

    @pytest.mark.parametrize(
        ("op", "allowed"),
        [
            (Operation.READ, True),
            (Operation.CREATE, True),
            (Operation.UPDATE, False),
            (Operation.DELETE, False),
        ],
    )
    def test_achievements_are_immutable(self, op: Operation, allowed: bool) -> None:
        assert evaluate(_caller(), op, Snapshot(EntityKind.ACHIEVEMENT, OWNER)).allowed is allowed

    @pytest.mark.parametrize(
        ("op", "allowed"),
        [
            (Operation.READ, True),
            (Operation.CREATE, True),
            (Operation.UPDATE, True),
            (Operation.DELETE, False),
        ],
    )
    def test_notifications_cannot_be_deleted(self, op: Operation, allowed: bool) -> None:
        assert evaluate(_caller(), op, Snapshot(EntityKind.NOTIFICATION, OWNER)).allowed is allowed


class TestNonOwnerRules:
    def test_reads_public_collection(self) -> None:
        decision = evaluate(_caller(STRANGER), Operation.READ, Snapshot(EntityKind.COLLECTION, OWNER, True))
        assert decision == Decision(True, "public_read")

    def test_cannot_read_private_collection(self) -> None:
        decision = evaluate(_caller(STRANGER), Operation.READ, Snapshot(EntityKind.COLLECTION, OWNER, False))
        assert decision == Decision(False, "default_deny")

    @pytest.mark.parametrize("op", [Operation.CREATE, Operation.UPDATE, Operation.DELETE])
    @pytest.mark.parametrize("kind", [EntityKind.COLLECTION, EntityKind.COLLECTION_ITEM])
    def test_public_does_not_grant_writes(self, kind: EntityKind, op: Operation) -> None:
        assert not evaluate(_caller(STRANGER), op, Snapshot(kind, OWNER, True))

    def test_reads_items_of_public_collection(self) -> None:
        assert evaluate(_caller(STRANGER), Operation.READ, Snapshot(EntityKind.COLLECTION_ITEM, OWNER, True))

    @pytest.mark.parametrize("kind", [EntityKind.ACHIEVEMENT, EntityKind.NOTIFICATION])
    def test_public_flag_ignored_for_private_kinds(self, kind: EntityKind) -> None:
        assert not evaluate(_caller(STRANGER), Operation.READ, Snapshot(kind, OWNER, True))


class TestAnonymous:
    def test_reads_public_collection(self) -> None:
        decision = evaluate(Caller.anonymous(), Operation.READ, Snapshot(EntityKind.COLLECTION, OWNER, True))
        assert decision == Decision(True, "anonymous_public_read")

    def test_cannot_read_private_collection(self) -> None:
        decision = evaluate(Caller.anonymous(), Operation.READ, Snapshot(EntityKind.COLLECTION, OWNER))
        assert decision == Decision(False, "anonymous")

    @pytest.mark.parametrize("op", [Operation.CREATE, Operation.UPDATE, Operation.DELETE])
    def test_never_writes(self, op: Operation) -> None:
        assert not evaluate(Caller.anonymous(), op, Snapshot(EntityKind.COLLECTION, OWNER, True))

    def test_create_without_owner_is_denied(self) -> None:
        assert not evaluate(Caller.anonymous(), Operation.CREATE, Snapshot(EntityKind.COLLECTION, None))

    def test_open_system_writes_does_not_cover_anonymous(self) -> None:
        decision = evaluate(
            Caller.anonymous(),
            Operation.CREATE,
            Snapshot(EntityKind.NOTIFICATION, OWNER),
            open_system_writes=True,
        )
        assert not decision


class TestSystemWriter:
    @pytest.mark.parametrize("kind", [EntityKind.ACHIEVEMENT, EntityKind.NOTIFICATION])
    def test_creates_for_anyone(self, kind: EntityKind) -> None:
        decision = evaluate(_caller(STRANGER, "system_writer"), Operation.CREATE, Snapshot(kind, OWNER))
        assert decision == Decision(True, "system_writer")

    @pytest.mark.parametrize("kind", [EntityKind.ACHIEVEMENT, EntityKind.NOTIFICATION])
    def test_plain_user_cannot_create_for_others(self, kind: EntityKind) -> None:
        assert not evaluate(_caller(STRANGER), Operation.CREATE, Snapshot(kind, OWNER))

    @pytest.mark.parametrize("op", [Operation.READ, Operation.UPDATE])
    def test_grant_is_create_only(self, op: Operation) -> None:
        caller = _caller(STRANGER, "system_writer")
        assert not evaluate(caller, op, Snapshot(EntityKind.NOTIFICATION, OWNER))

    def test_no_cross_owner_collections(self) -> None:
        caller = _caller(STRANGER, "system_writer")
        assert not evaluate(caller, Operation.CREATE, Snapshot(EntityKind.COLLECTION, OWNER))

    def test_open_system_writes(self) -> None:
        decision = evaluate(
            _caller(STRANGER),
            Operation.CREATE,
            Snapshot(EntityKind.ACHIEVEMENT, OWNER),
            open_system_writes=True,
        )
        assert decision.allowed

    def test_custom_role_name(self) -> None:
        caller = _caller(STRANGER, "badge_engine")
        snapshot = Snapshot(EntityKind.ACHIEVEMENT, OWNER)
        assert not evaluate(caller, Operation.CREATE, snapshot)
        assert evaluate(caller, Operation.CREATE, snapshot, system_writer_role="badge_engine")


class TestRuleTable:
    def test_missing_pairs_are_denied(self) -> None:
        assert (EntityKind.ACHIEVEMENT, Operation.DELETE) not in RULES
        assert (EntityKind.NOTIFICATION, Operation.DELETE) not in RULES

    def test_evaluate_is_deterministic(self) -> None:
        args = (_caller(STRANGER), Operation.READ, Snapshot(EntityKind.COLLECTION, OWNER, True))
        assert evaluate(*args) == evaluate(*args)


class TestAuthorize:
    def test_returns_decision_on_allow(self) -> None:
        decision = authorize(_caller(), Operation.DELETE, Snapshot(EntityKind.COLLECTION, OWNER))
        assert decision.rule == "owner"

    def test_raises_on_deny(self) -> None:
        with pytest.raises(AuthorizationDenied) as exc_info:
            authorize(_caller(STRANGER), Operation.DELETE, Snapshot(EntityKind.COLLECTION, OWNER, True))
        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"rule": "default_deny"}
        assert "delete on collection" in exc_info.value.detail
