"""
Tests for the SQLAlchemy-backed document store.

Tests cover:
- Single-document reads and writes
- Equality and array-membership queries
- All-or-nothing batches (logical failure and database failure)
"""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from errors import NotFoundError, RemoteOperationError, ValidationError
from store import ARRAY_CONTAINS, EQ, DocumentStore, where

logger = logging.getLogger(__name__)


def fail_on_write(monkeypatch, call_number: int):
    """Make the store's N-th applied write raise a database error."""
    original_apply = DocumentStore._apply
    calls = {"count": 0}

    def flaky_apply(self, *args):
        calls["count"] += 1
        if calls["count"] == call_number:
            raise OperationalError("UPDATE documents", {}, Exception("disk I/O error"))
        return original_apply(self, *args)

    monkeypatch.setattr(DocumentStore, "_apply", flaky_apply)


def test_add_and_get(store: DocumentStore):
    doc_id = store.add("projects", {"name": "Alpha", "team_member_ids": ["u1"]})

    doc = store.get("projects", doc_id)

    assert doc == {"id": doc_id, "name": "Alpha", "team_member_ids": ["u1"]}


def test_get_missing_returns_none(store: DocumentStore):
    assert store.get("projects", "nope") is None


def test_collections_are_separate(store: DocumentStore):
    store.set("users", "same-id", {"name": "A user"})
    assert store.get("projects", "same-id") is None


def test_update_merges_fields(store: DocumentStore):
    doc_id = store.add("tasks", {"title": "Write docs", "status": "pending"})

    store.update("tasks", doc_id, {"status": "doing"})

    assert store.get("tasks", doc_id) == {"id": doc_id, "title": "Write docs", "status": "doing"}


def test_update_missing_document_fails(store: DocumentStore):
    with pytest.raises(NotFoundError):
        store.update("tasks", "missing", {"status": "done"})


def test_set_replaces_document(store: DocumentStore):
    store.set("users", "u1", {"name": "Ana", "email": "ana@test.com"})
    store.set("users", "u1", {"name": "Ana B"})

    assert store.get("users", "u1") == {"id": "u1", "name": "Ana B"}


def test_delete_is_unconditional(store: DocumentStore):
    doc_id = store.add("tasks", {"title": "Temp"})

    store.delete("tasks", doc_id)
    store.delete("tasks", doc_id)

    assert store.get("tasks", doc_id) is None


def test_query_by_equality_and_membership(store: DocumentStore):
    first = store.add("projects", {"owner_id": "u1", "team_member_ids": ["u1", "u2"]})
    second = store.add("projects", {"owner_id": "u2", "team_member_ids": ["u2"]})
    store.add("projects", {"owner_id": "u3", "team_member_ids": ["u3"]})

    owned = store.query("projects", where("owner_id", EQ, "u1"))
    member_of = store.query("projects", where("team_member_ids", ARRAY_CONTAINS, "u2"))

    assert [doc["id"] for doc in owned] == [first]
    assert {doc["id"] for doc in member_of} == {first, second}


def test_query_combines_predicates(store: DocumentStore):
    match = store.add("tasks", {"project_id": "p1", "assignee_id": "u2"})
    store.add("tasks", {"project_id": "p1", "assignee_id": "u3"})
    store.add("tasks", {"project_id": "p2", "assignee_id": "u2"})

    results = store.query(
        "tasks",
        where("project_id", EQ, "p1"),
        where("assignee_id", EQ, "u2"),
    )

    assert [doc["id"] for doc in results] == [match]


def test_unsupported_operator_rejected():
    with pytest.raises(ValidationError):
        where("name", ">=", "a")


def test_batch_applies_all_writes(store: DocumentStore):
    a = store.add("tasks", {"title": "A", "assignee_id": "u2"})
    b = store.add("tasks", {"title": "B", "assignee_id": "u2"})

    batch = store.batch()
    batch.update("tasks", a, {"assignee_id": None})
    batch.update("tasks", b, {"assignee_id": None})
    batch.delete("tasks", a)
    assert len(batch) == 3
    batch.commit()

    assert store.get("tasks", a) is None
    assert store.get("tasks", b)["assignee_id"] is None


def test_batch_with_missing_document_applies_nothing(store: DocumentStore):
    """A failing write in the middle rolls back the writes before it."""
    doc_id = store.add("projects", {"name": "Before"})

    batch = store.batch()
    batch.update("projects", doc_id, {"name": "After"})
    batch.update("projects", "missing", {"name": "After"})

    with pytest.raises(NotFoundError):
        batch.commit()

    assert store.get("projects", doc_id)["name"] == "Before"


def test_batch_database_failure_applies_nothing(store: DocumentStore, monkeypatch):
    first = store.add("projects", {"name": "One"})
    second = store.add("projects", {"name": "Two"})

    fail_on_write(monkeypatch, call_number=2)
    batch = store.batch()
    batch.update("projects", first, {"name": "Renamed"})
    batch.update("projects", second, {"name": "Renamed"})

    with pytest.raises(RemoteOperationError):
        batch.commit()

    monkeypatch.undo()
    assert store.get("projects", first)["name"] == "One"
    assert store.get("projects", second)["name"] == "Two"


def test_query_predicates_stay_within_collection(store: DocumentStore):
    """Matching field values in another collection never leak into results."""
    match = store.add("tasks", {"project_id": "p1", "assignee_id": "u2", "tags": ["ui"]})
    store.add("tasks", {"project_id": "p1", "assignee_id": "u3", "tags": ["ui"]})
    store.add("projects", {"project_id": "p1", "assignee_id": "u2", "tags": ["ui"]})
    store.add("users", {"project_id": "p1", "assignee_id": "u2", "tags": ["ui"]})

    results = store.query(
        "tasks",
        where("project_id", EQ, "p1"),
        where("assignee_id", EQ, "u2"),
        where("tags", ARRAY_CONTAINS, "ui"),
    )

    assert [doc["id"] for doc in results] == [match]


def test_query_equality_on_missing_field(store: DocumentStore):
    store.add("users", {"name": "No email"})
    with_email = store.add("users", {"name": "Ana", "email": "ana@test.com"})

    assert [doc["id"] for doc in store.query("users", where("email", EQ, "ana@test.com"))] == [with_email]
    assert store.query("users", where("email", EQ, "nobody@test.com")) == []


def test_query_orders_by_document_created_at(store: DocumentStore):
    """Order follows the stored created_at, not insertion time or id."""
    late = store.add("projects", {"name": "Late", "created_at": "2026-10-19T10:00:00.000300+00:00"})
    early = store.add("projects", {"name": "Early", "created_at": "2026-10-19T10:00:00.000100+00:00"})
    middle = store.add("projects", {"name": "Middle", "created_at": "2026-10-19T10:00:00.000200+00:00"})

    assert [doc["id"] for doc in store.query("projects")] == [early, middle, late]
