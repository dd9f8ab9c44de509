"""Data models for the competition blueprint."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional, TypedDict

from estateportal.core.constants import MATCH_STATUS_SCHEDULED
from estateportal.core.types import FirestoreDocument


class Competition(FirestoreDocument, total=False):
    """A competition document in Firestore."""

    event_id: Optional[str]
    sport_name: str
    format: str
    match_type: str
    participant_type: str
    rules: Optional[str]
    max_participants: Optional[int]
    registration_deadline: Any
    status: str


class CompetitionTeam(FirestoreDocument, total=False):
    """A team registered in a competition."""

    competition_id: str
    name: str
    house_id: Optional[str]
    logo_url: Optional[str]
    seed_number: Optional[int]
    is_eliminated: bool


class TeamMember(TypedDict, total=False):
    """A resident belonging to a competition team."""

    id: str
    team_id: str
    user_id: str
    is_captain: bool


class Referee(TypedDict, total=False):
    """A resident assigned as referee of a competition."""

    id: str
    competition_id: str
    user_id: str


class CompetitionMatch(FirestoreDocument, total=False):
    """A match document in Firestore."""

    competition_id: str
    round_number: int
    match_number: int
    group_name: Optional[str]
    team1_id: Optional[str]
    team2_id: Optional[str]
    score1: Optional[str]
    score2: Optional[str]
    winner_id: Optional[str]
    status: str
    match_datetime: Any
    location: Optional[str]
    notes: Optional[str]
    next_match_id: Optional[str]

    # UI and calculated fields
    team1: dict[str, Any]
    team2: dict[str, Any]
    winner: dict[str, Any]


@dataclass(frozen=True)
class Participant:
    """A seeded entrant of a knockout bracket."""

    id: str
    name: str = ""
    seed: Optional[int] = None

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Participant:
        """Build a participant from a competition team document."""
        seed = data.get("seed_number")
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            seed=int(seed) if seed is not None else None,
        )


@dataclass
class BracketMatch:
    """A generated bracket match, matching the Firestore match structure."""

    id: str
    competition_id: str
    round_number: int
    match_number: int
    team1_id: Optional[str] = None
    team2_id: Optional[str] = None
    winner_id: Optional[str] = None
    score1: Optional[str] = None
    score2: Optional[str] = None
    status: str = MATCH_STATUS_SCHEDULED
    next_match_id: Optional[str] = None

    @property
    def is_bye(self) -> bool:
        """Return True if exactly one slot is filled."""
        return (self.team1_id is None) != (self.team2_id is None)

    def to_document(self) -> dict[str, Any]:
        """Return the Firestore payload for this match (without the id)."""
        data = asdict(self)
        del data["id"]
        return data
