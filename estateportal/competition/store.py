"""Firestore persistence for competition matches."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPICallError

from estateportal.core.constants import FIRESTORE_BATCH_LIMIT, MATCHES_COLLECTION
from estateportal.errors import BracketInconsistentError, PersistenceError

from .models import BracketMatch

if TYPE_CHECKING:
    from google.cloud.firestore_v1.batch import WriteBatch
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


class MatchStore:
    """Reads and replaces the match collection of a competition."""

    def __init__(self, db: Client, batch_limit: int = FIRESTORE_BATCH_LIMIT) -> None:
        """Initialize the store."""
        self.db = db
        self.batch_limit = batch_limit

    @property
    def collection(self) -> Any:
        """Return the matches collection reference."""
        return self.db.collection(MATCHES_COLLECTION)

    def _match_refs(self, competition_id: str) -> list[DocumentReference]:
        query = self.collection.where(
            filter=firestore.FieldFilter("competition_id", "==", competition_id)
        )
        try:
            return [doc.reference for doc in query.stream()]
        except GoogleAPICallError as e:
            logging.error(f"Failed to read matches of {competition_id}: {e}")
            raise PersistenceError(
                "Could not read the existing matches.", stage="read"
            ) from e

    def list_for_competition(self, competition_id: str) -> list[dict[str, Any]]:
        """Fetch all matches of a competition, ordered by round and number."""
        query = self.collection.where(
            filter=firestore.FieldFilter("competition_id", "==", competition_id)
        )
        matches = []
        for doc in query.stream():
            data = doc.to_dict()
            if data:
                data["id"] = doc.id
                matches.append(data)
        matches.sort(
            key=lambda m: (m.get("round_number", 0), m.get("match_number", 0))
        )
        return matches

    def delete_all(self, competition_id: str, batch: WriteBatch | None = None) -> int:
        """Delete every match of a competition.

        When a batch is given the deletes are only queued on it and the caller
        commits; otherwise they are committed here.
        """
        refs = self._match_refs(competition_id)
        if batch is not None:
            for ref in refs:
                batch.delete(ref)
            return len(refs)

        for start in range(0, len(refs), self.batch_limit):
            chunk = self.db.batch()
            for ref in refs[start : start + self.batch_limit]:
                chunk.delete(ref)
            try:
                chunk.commit()
            except GoogleAPICallError as e:
                logging.error(f"Failed to delete matches of {competition_id}: {e}")
                raise PersistenceError(
                    "Could not delete the existing matches.",
                    stage="delete",
                    old_matches_removed=start > 0,
                ) from e
        return len(refs)

    def replace_all(
        self, competition_id: str, matches: Iterable[BracketMatch]
    ) -> list[str]:
        """Replace all matches of a competition with a new set.

        Returns the ids of the removed matches. A replacement that fits in one
        batch is committed atomically; larger ones are written in chunks and
        raise BracketInconsistentError if they stop after the first chunk.
        """
        new_matches = list(matches)
        old_refs = self._match_refs(competition_id)
        old_ids = [ref.id for ref in old_refs]

        operations: list[tuple[str, DocumentReference, dict[str, Any] | None]] = [
            ("delete", ref, None) for ref in old_refs
        ]
        operations += [
            ("insert", self.collection.document(m.id), m.to_document())
            for m in new_matches
        ]

        if len(operations) <= self.batch_limit:
            batch = self.db.batch()
            for action, ref, data in operations:
                if action == "delete":
                    batch.delete(ref)
                else:
                    batch.set(ref, {**data, "created_at": firestore.SERVER_TIMESTAMP})
            try:
                batch.commit()
            except GoogleAPICallError as e:
                logging.error(f"Bracket replacement for {competition_id} failed: {e}")
                raise PersistenceError(
                    "Could not save the bracket. The previous bracket is unchanged.",
                    stage="commit",
                ) from e
            logging.info(
                f"Replaced {len(old_ids)} matches of {competition_id} "
                f"with {len(new_matches)}"
            )
            return old_ids

        self._commit_in_chunks(competition_id, operations)
        logging.info(
            f"Replaced {len(old_ids)} matches of {competition_id} "
            f"with {len(new_matches)} in chunks"
        )
        return old_ids

    def _commit_in_chunks(
        self,
        competition_id: str,
        operations: list[tuple[str, DocumentReference, dict[str, Any] | None]],
    ) -> None:
        committed = 0
        deleted_any = False
        for start in range(0, len(operations), self.batch_limit):
            chunk = operations[start : start + self.batch_limit]
            batch = self.db.batch()
            for action, ref, data in chunk:
                if action == "delete":
                    batch.delete(ref)
                else:
                    batch.set(ref, {**data, "created_at": firestore.SERVER_TIMESTAMP})
            stage = chunk[-1][0]
            try:
                batch.commit()
            except GoogleAPICallError as e:
                logging.error(
                    f"Chunked bracket replacement for {competition_id} failed "
                    f"after {committed} writes: {e}"
                )
                if committed == 0:
                    raise PersistenceError(
                        "Could not save the bracket. "
                        "The previous bracket is unchanged.",
                        stage=stage,
                    ) from e
                raise BracketInconsistentError(
                    stage=stage, old_matches_removed=deleted_any
                ) from e
            committed += len(chunk)
            deleted_any = deleted_any or any(op[0] == "delete" for op in chunk)
