"""Service layer for competition business logic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from estateportal.core.constants import (
    COMPETITION_FORMATS,
    COMPETITION_STATUS_REGISTRATION,
    COMPETITION_STATUSES,
    COMPETITIONS_COLLECTION,
    FIRESTORE_BATCH_LIMIT,
    FORMAT_KNOCKOUT,
    MATCH_STATUS_COMPLETED,
    MATCH_STATUS_SCHEDULED,
    MATCH_STATUSES,
    MATCH_TYPES,
    MATCHES_COLLECTION,
    PARTICIPANT_TYPES,
    REFEREES_COLLECTION,
    TEAM_MEMBERS_COLLECTION,
    TEAMS_COLLECTION,
    USERS_COLLECTION,
)
from estateportal.errors import DuplicateResourceError, NotFoundError, ValidationError

from .bracket import BracketBuilder
from .models import BracketMatch, Participant
from .store import MatchStore

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

    from estateportal.auth.permissions import Permissions


MATCH_UPDATE_FIELDS = (
    "score1",
    "score2",
    "winner_id",
    "status",
    "match_datetime",
    "location",
    "notes",
)
COMPETITION_UPDATE_FIELDS = (
    "sport_name",
    "format",
    "match_type",
    "participant_type",
    "rules",
    "max_participants",
    "registration_deadline",
    "status",
)


def _seed_key(team: dict[str, Any]) -> tuple[bool, int]:
    seed = team.get("seed_number")
    return (seed is None, seed if seed is not None else 0)


def _optional_positive_int(value: Any, label: str) -> int | None:
    if value in (None, ""):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number.") from None
    if number < 1:
        raise ValidationError(f"{label} must be at least 1.")
    return number


class CompetitionService:
    """Handles business logic and data access for competitions."""

    @staticmethod
    def _stream_where(
        db: Client, collection: str, field: str, value: Any
    ) -> list[dict[str, Any]]:
        """Fetch documents of a collection whose field equals value."""
        docs = (
            db.collection(collection)
            .where(filter=firestore.FieldFilter(field, "==", value))
            .stream()
        )
        results = []
        for doc in docs:
            data = doc.to_dict()
            if data:
                data["id"] = doc.id
                results.append(data)
        return results

    @staticmethod
    def _commit_deletes(db: Client, refs: list[DocumentReference]) -> None:
        """Delete references in batches that respect the write limit."""
        for start in range(0, len(refs), FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for ref in refs[start : start + FIRESTORE_BATCH_LIMIT]:
                batch.delete(ref)
            batch.commit()

    @staticmethod
    def _validate_choices(data: dict[str, Any]) -> None:
        choices = {
            "format": COMPETITION_FORMATS,
            "match_type": MATCH_TYPES,
            "participant_type": PARTICIPANT_TYPES,
            "status": COMPETITION_STATUSES,
        }
        for field, allowed in choices.items():
            if field in data and data[field] not in allowed:
                raise ValidationError(
                    f"Invalid {field.replace('_', ' ')}: {data[field]!r}."
                )

    # Competitions

    @staticmethod
    def list_competitions(
        event_id: str | None = None, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Fetch competitions, optionally only those of one event."""
        if db is None:
            db = firestore.client()
        if event_id:
            competitions = CompetitionService._stream_where(
                db, COMPETITIONS_COLLECTION, "event_id", event_id
            )
        else:
            competitions = []
            for doc in db.collection(COMPETITIONS_COLLECTION).stream():
                data = doc.to_dict()
                if data:
                    data["id"] = doc.id
                    competitions.append(data)
        competitions.sort(key=lambda c: c.get("sport_name", "").lower())
        return competitions

    @staticmethod
    def get_competition(competition_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch a single competition or raise NotFoundError."""
        if db is None:
            db = firestore.client()
        doc = cast(Any, db.collection(COMPETITIONS_COLLECTION).document(competition_id).get())
        if not doc.exists:
            raise NotFoundError("Competition not found.")
        data = cast(dict[str, Any], doc.to_dict() or {})
        data["id"] = doc.id
        return data

    @staticmethod
    def list_teams(competition_id: str, db: Client | None = None) -> list[dict[str, Any]]:
        """Fetch the teams of a competition in seed order."""
        if db is None:
            db = firestore.client()
        teams = CompetitionService._stream_where(
            db, TEAMS_COLLECTION, "competition_id", competition_id
        )
        teams.sort(key=_seed_key)
        return teams

    @staticmethod
    def list_referees(
        competition_id: str, db: Client | None = None
    ) -> list[dict[str, Any]]:
        """Fetch the referees of a competition."""
        if db is None:
            db = firestore.client()
        return CompetitionService._stream_where(
            db, REFEREES_COLLECTION, "competition_id", competition_id
        )

    @staticmethod
    def get_competition_details(
        competition_id: str, db: Client | None = None
    ) -> dict[str, Any]:
        """Fetch a competition with its teams, members, matches and referees."""
        if db is None:
            db = firestore.client()
        competition = CompetitionService.get_competition(competition_id, db)

        teams = CompetitionService.list_teams(competition_id, db)
        members = CompetitionService._stream_where(
            db, TEAM_MEMBERS_COLLECTION, "competition_id", competition_id
        )
        for team in teams:
            team["members"] = [m for m in members if m.get("team_id") == team["id"]]

        team_map = {t["id"]: t for t in teams}
        matches = MatchStore(db).list_for_competition(competition_id)
        for match in matches:
            for slot in ("team1", "team2", "winner"):
                team_id = match.get(f"{slot}_id")
                if team_id and team_id in team_map:
                    match[slot] = team_map[team_id]

        competition["teams"] = teams
        competition["matches"] = matches
        competition["referees"] = CompetitionService.list_referees(competition_id, db)
        return competition

    @staticmethod
    def create_competition(
        data: dict[str, Any], permissions: Permissions, db: Client | None = None
    ) -> str:
        """Create a competition and return its ID."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()

        sport_name = (data.get("sport_name") or "").strip()
        if not sport_name:
            raise ValidationError("Sport name is required.")

        payload = {
            "event_id": data.get("event_id") or None,
            "sport_name": sport_name,
            "format": data.get("format", FORMAT_KNOCKOUT),
            "match_type": data.get("match_type", "1v1"),
            "participant_type": data.get("participant_type", "team"),
            "rules": data.get("rules") or None,
            "max_participants": _optional_positive_int(
                data.get("max_participants"), "Maximum participants"
            ),
            "registration_deadline": data.get("registration_deadline"),
            "status": COMPETITION_STATUS_REGISTRATION,
            "created_by": permissions.user_id,
            "created_at": firestore.SERVER_TIMESTAMP,
        }
        CompetitionService._validate_choices(payload)
        _, ref = db.collection(COMPETITIONS_COLLECTION).add(payload)
        logging.info(f"Competition {ref.id} created by {permissions.user_id}")
        return str(ref.id)

    @staticmethod
    def update_competition(
        competition_id: str,
        update_data: dict[str, Any],
        permissions: Permissions,
        db: Client | None = None,
    ) -> None:
        """Update competition details."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        CompetitionService.get_competition(competition_id, db)

        updates = {
            k: v for k, v in update_data.items() if k in COMPETITION_UPDATE_FIELDS
        }
        if not updates:
            raise ValidationError("Nothing to update.")
        CompetitionService._validate_choices(updates)
        if "max_participants" in updates:
            updates["max_participants"] = _optional_positive_int(
                updates["max_participants"], "Maximum participants"
            )
        updates["updated_at"] = firestore.SERVER_TIMESTAMP
        db.collection(COMPETITIONS_COLLECTION).document(competition_id).update(updates)

    @staticmethod
    def delete_competition(
        competition_id: str, permissions: Permissions, db: Client | None = None
    ) -> None:
        """Delete a competition together with its matches, teams and referees."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        CompetitionService.get_competition(competition_id, db)

        removed_matches = MatchStore(db).delete_all(competition_id)
        refs: list[DocumentReference] = []
        for collection in (
            TEAM_MEMBERS_COLLECTION,
            TEAMS_COLLECTION,
            REFEREES_COLLECTION,
        ):
            refs += [
                db.collection(collection).document(d["id"])
                for d in CompetitionService._stream_where(
                    db, collection, "competition_id", competition_id
                )
            ]
        refs.append(db.collection(COMPETITIONS_COLLECTION).document(competition_id))
        CompetitionService._commit_deletes(db, refs)
        logging.info(
            f"Competition {competition_id} deleted with {removed_matches} matches "
            f"and {len(refs) - 1} related documents"
        )

    # Teams

    @staticmethod
    def add_team(
        competition_id: str,
        data: dict[str, Any],
        permissions: Permissions,
        db: Client | None = None,
    ) -> str:
        """Register a team while the competition is open for registration."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        competition = CompetitionService.get_competition(competition_id, db)
        if competition.get("status") != COMPETITION_STATUS_REGISTRATION:
            raise ValidationError("Teams can only be added while registration is open.")

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Team name is required.")

        teams = CompetitionService.list_teams(competition_id, db)
        max_participants = competition.get("max_participants")
        if max_participants and len(teams) >= max_participants:
            raise ValidationError("This competition is full.")
        if any(t.get("name", "").lower() == name.lower() for t in teams):
            raise DuplicateResourceError(f"A team named {name!r} already exists.")

        payload = {
            "competition_id": competition_id,
            "name": name,
            "house_id": data.get("house_id") or None,
            "logo_url": data.get("logo_url") or None,
            "seed_number": _optional_positive_int(data.get("seed_number"), "Seed"),
            "is_eliminated": False,
            "created_at": firestore.SERVER_TIMESTAMP,
        }
        _, ref = db.collection(TEAMS_COLLECTION).add(payload)
        return str(ref.id)

    @staticmethod
    def _get_team(db: Client, competition_id: str, team_id: str) -> dict[str, Any]:
        doc = cast(Any, db.collection(TEAMS_COLLECTION).document(team_id).get())
        data = doc.to_dict() if doc.exists else None
        if not data or data.get("competition_id") != competition_id:
            raise NotFoundError("Team not found.")
        data["id"] = doc.id
        return data

    @staticmethod
    def delete_team(
        competition_id: str,
        team_id: str,
        permissions: Permissions,
        db: Client | None = None,
    ) -> None:
        """Remove a team and its members."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        competition = CompetitionService.get_competition(competition_id, db)
        if competition.get("status") != COMPETITION_STATUS_REGISTRATION:
            raise ValidationError(
                "Teams can only be removed while registration is open."
            )
        CompetitionService._get_team(db, competition_id, team_id)

        refs = [
            db.collection(TEAM_MEMBERS_COLLECTION).document(m["id"])
            for m in CompetitionService._stream_where(
                db, TEAM_MEMBERS_COLLECTION, "team_id", team_id
            )
        ]
        refs.append(db.collection(TEAMS_COLLECTION).document(team_id))
        CompetitionService._commit_deletes(db, refs)

    @staticmethod
    def add_team_member(
        competition_id: str,
        team_id: str,
        user_id: str,
        permissions: Permissions,
        is_captain: bool = False,
        db: Client | None = None,
    ) -> str:
        """Add a resident to a team."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        CompetitionService._get_team(db, competition_id, team_id)
        if not cast(Any, db.collection(USERS_COLLECTION).document(user_id).get()).exists:
            raise NotFoundError("User not found.")

        existing = CompetitionService._stream_where(
            db, TEAM_MEMBERS_COLLECTION, "team_id", team_id
        )
        if any(m.get("user_id") == user_id for m in existing):
            raise DuplicateResourceError("This resident is already on the team.")

        _, ref = db.collection(TEAM_MEMBERS_COLLECTION).add(
            {
                "competition_id": competition_id,
                "team_id": team_id,
                "user_id": user_id,
                "is_captain": bool(is_captain),
                "created_at": firestore.SERVER_TIMESTAMP,
            }
        )
        return str(ref.id)

    @staticmethod
    def remove_team_member(
        competition_id: str,
        member_id: str,
        permissions: Permissions,
        db: Client | None = None,
    ) -> None:
        """Remove a resident from a team."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        ref = db.collection(TEAM_MEMBERS_COLLECTION).document(member_id)
        doc = cast(Any, ref.get())
        data = doc.to_dict() if doc.exists else None
        if not data or data.get("competition_id") != competition_id:
            raise NotFoundError("Team member not found.")
        ref.delete()

    # Referees

    @staticmethod
    def assign_referee(
        competition_id: str,
        user_id: str,
        permissions: Permissions,
        db: Client | None = None,
    ) -> str:
        """Assign a resident as referee of a competition."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        CompetitionService.get_competition(competition_id, db)
        if not cast(Any, db.collection(USERS_COLLECTION).document(user_id).get()).exists:
            raise NotFoundError("User not found.")
        referees = CompetitionService.list_referees(competition_id, db)
        if any(r.get("user_id") == user_id for r in referees):
            raise DuplicateResourceError("This resident is already a referee.")

        _, ref = db.collection(REFEREES_COLLECTION).add(
            {
                "competition_id": competition_id,
                "user_id": user_id,
                "created_at": firestore.SERVER_TIMESTAMP,
            }
        )
        return str(ref.id)

    @staticmethod
    def remove_referee(
        competition_id: str,
        referee_id: str,
        permissions: Permissions,
        db: Client | None = None,
    ) -> None:
        """Remove a referee assignment."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        ref = db.collection(REFEREES_COLLECTION).document(referee_id)
        doc = cast(Any, ref.get())
        data = doc.to_dict() if doc.exists else None
        if not data or data.get("competition_id") != competition_id:
            raise NotFoundError("Referee not found.")
        ref.delete()

    # Matches

    @staticmethod
    def create_match(
        competition_id: str,
        data: dict[str, Any],
        permissions: Permissions,
        db: Client | None = None,
    ) -> str:
        """Schedule a single match by hand."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        CompetitionService.get_competition(competition_id, db)

        round_number = _optional_positive_int(data.get("round_number"), "Round")
        match_number = _optional_positive_int(data.get("match_number"), "Match number")
        if round_number is None or match_number is None:
            raise ValidationError("Round and match number are required.")

        team_ids = [data.get("team1_id") or None, data.get("team2_id") or None]
        for team_id in team_ids:
            if team_id:
                CompetitionService._get_team(db, competition_id, team_id)
        if team_ids[0] and team_ids[0] == team_ids[1]:
            raise ValidationError("A team cannot play against itself.")

        match = BracketMatch(
            id="",
            competition_id=competition_id,
            round_number=round_number,
            match_number=match_number,
            team1_id=team_ids[0],
            team2_id=team_ids[1],
        )
        payload = match.to_document()
        payload.update(
            {
                "group_name": data.get("group_name") or None,
                "match_datetime": data.get("match_datetime") or None,
                "location": data.get("location") or None,
                "created_at": firestore.SERVER_TIMESTAMP,
            }
        )
        _, ref = db.collection(MATCHES_COLLECTION).add(payload)
        return str(ref.id)

    @staticmethod
    def delete_match(
        competition_id: str,
        match_id: str,
        permissions: Permissions,
        db: Client | None = None,
    ) -> None:
        """Delete a single match."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        ref = db.collection(MATCHES_COLLECTION).document(match_id)
        CompetitionService._get_match(ref, competition_id)
        ref.delete()

    @staticmethod
    def _get_match(ref: DocumentReference, competition_id: str) -> dict[str, Any]:
        doc = cast(Any, ref.get())
        data = doc.to_dict() if doc.exists else None
        if not data or data.get("competition_id") != competition_id:
            raise NotFoundError("Match not found.")
        data["id"] = doc.id
        return data

    @staticmethod
    def update_match(
        competition_id: str,
        match_id: str,
        update_data: dict[str, Any],
        permissions: Permissions,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Record scores, status or the winner of a match.

        A completed match with a winner moves the winner into the linked
        next match: odd match numbers fill slot one, even ones slot two.
        """
        if db is None:
            db = firestore.client()
        referee_ids = [
            r["user_id"]
            for r in CompetitionService.list_referees(competition_id, db)
            if r.get("user_id")
        ]
        permissions.require_match_access(referee_ids)

        match_ref = db.collection(MATCHES_COLLECTION).document(match_id)
        match = CompetitionService._get_match(match_ref, competition_id)

        updates = {k: v for k, v in update_data.items() if k in MATCH_UPDATE_FIELDS}
        for field in MATCH_UPDATE_FIELDS:
            if field in updates and updates[field] == "":
                updates[field] = None

        status = updates.get("status", match.get("status", MATCH_STATUS_SCHEDULED))
        if status not in MATCH_STATUSES:
            raise ValidationError(f"Invalid match status: {status!r}.")

        winner_id = updates.get("winner_id", match.get("winner_id"))
        if winner_id and winner_id not in (match.get("team1_id"), match.get("team2_id")):
            raise ValidationError("The winner must be one of the teams in this match.")
        if status == MATCH_STATUS_COMPLETED and not winner_id:
            raise ValidationError("A completed match needs a winner.")

        updates["updated_at"] = firestore.SERVER_TIMESTAMP
        batch = db.batch()
        batch.update(match_ref, updates)

        next_match_id = match.get("next_match_id")
        if status == MATCH_STATUS_COMPLETED and winner_id and next_match_id:
            slot = "team1_id" if match.get("match_number", 1) % 2 else "team2_id"
            next_ref = db.collection(MATCHES_COLLECTION).document(next_match_id)
            batch.update(next_ref, {slot: winner_id})
            logging.info(
                f"Match {match_id} winner {winner_id} advanced to "
                f"{next_match_id} ({slot})"
            )
        batch.commit()

        match.update(updates)
        return match

    @staticmethod
    def generate_bracket(
        competition_id: str,
        permissions: Permissions,
        auto_advance_byes: bool = False,
        db: Client | None = None,
        batch_limit: int = FIRESTORE_BATCH_LIMIT,
    ) -> list[BracketMatch]:
        """Replace the matches of a knockout competition with a fresh bracket."""
        permissions.require_manage()
        if db is None:
            db = firestore.client()
        competition = CompetitionService.get_competition(competition_id, db)
        if competition.get("format") != FORMAT_KNOCKOUT:
            raise ValidationError(
                "Brackets can only be generated for knockout competitions."
            )

        participants = [
            Participant.from_document(t["id"], t)
            for t in CompetitionService._stream_where(
                db, TEAMS_COLLECTION, "competition_id", competition_id
            )
        ]
        matches = BracketBuilder.build(
            competition_id, participants, auto_advance_byes=auto_advance_byes
        )
        removed = MatchStore(db, batch_limit).replace_all(competition_id, matches)
        logging.info(
            f"Bracket generated for {competition_id}: {len(participants)} teams, "
            f"{len(matches)} matches, {len(removed)} old matches removed"
        )
        return matches
