"""Core data types for the estateportal application."""

from typing import Any, TypedDict


class _FirestoreDocumentBase(TypedDict):
    id: str
    created_at: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    updated_at: Any
