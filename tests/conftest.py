"""Common utilities for tests."""

from __future__ import annotations

import unittest.mock
from typing import Any, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and equality."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any = None) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


class MockBatch:
    """Queues writes and applies them on commit, like a Firestore WriteBatch."""

    def __init__(self, db: Any, error: Optional[Exception] = None) -> None:
        self.db = db
        self.error = error
        self.operations: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.operations.append(("set", ref, data))

    def update(self, ref: Any, data: Any) -> None:
        self.operations.append(("update", ref, data))

    def delete(self, ref: Any) -> None:
        self.operations.append(("delete", ref, None))

    def _real_commit(self) -> None:
        if self.error is not None:
            raise self.error
        for action, ref, data in self.operations:
            if action == "delete":
                ref.delete()
            elif action == "set":
                ref.set(data)
            else:
                ref.update(data)


def install_mock_batches(
    db: MockFirestore, failures: Optional[dict[int, Exception]] = None
) -> list[MockBatch]:
    """Make db.batch() hand out MockBatch objects.

    ``failures`` maps the index of a batch (in creation order) to the error
    its commit raises. Returns the list the created batches are appended to.
    """
    failures = failures or {}
    created: list[MockBatch] = []

    def factory() -> MockBatch:
        batch = MockBatch(db, failures.get(len(created)))
        created.append(batch)
        return batch

    db.batch = unittest.mock.MagicMock(side_effect=factory)
    return created


def seed_competition(
    db: MockFirestore,
    competition_id: str = "comp1",
    teams: Optional[list[tuple[str, str, Optional[int]]]] = None,
    **fields: Any,
) -> None:
    """Create a competition document and its teams in the mock database."""
    data = {
        "sport_name": "Futsal",
        "format": "knockout",
        "match_type": "5v5",
        "participant_type": "house",
        "status": "registration",
        "max_participants": None,
    }
    data.update(fields)
    db.collection("competitions").document(competition_id).set(data)
    for team_id, name, seed in teams or []:
        db.collection("competition_teams").document(team_id).set(
            {"competition_id": competition_id, "name": name, "seed_number": seed}
        )


def mock_firestore_module(db: MockFirestore) -> unittest.mock.MagicMock:
    """Build a stand-in for ``firebase_admin.firestore`` bound to a mock db."""
    module = unittest.mock.MagicMock()
    module.client.return_value = db
    module.FieldFilter = MockFieldFilter
    module.SERVER_TIMESTAMP = "2024-01-01T00:00:00Z"
    return module
