"""Single-elimination bracket generation."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable

from estateportal.core.constants import (
    MATCH_STATUS_COMPLETED,
    MIN_BRACKET_PARTICIPANTS,
)
from estateportal.errors import InsufficientParticipantsError, ValidationError

from .models import BracketMatch, Participant


def _new_match_id() -> str:
    return str(uuid.uuid4())


class BracketBuilder:
    """Builds the round-by-round match schedule of a knockout competition."""

    MIN_PARTICIPANTS = MIN_BRACKET_PARTICIPANTS

    @staticmethod
    def seed_order(participants: Iterable[Participant]) -> list[Participant]:
        """Sort participants by seed, unseeded last, keeping input order on ties."""
        return sorted(
            participants,
            key=lambda p: (p.seed is None, p.seed if p.seed is not None else 0),
        )

    @staticmethod
    def round_count(participant_count: int) -> int:
        """Return ceil(log2(n)), the number of rounds for n participants."""
        if participant_count < BracketBuilder.MIN_PARTICIPANTS:
            raise InsufficientParticipantsError(
                participant_count, BracketBuilder.MIN_PARTICIPANTS
            )
        return (participant_count - 1).bit_length()

    @staticmethod
    def build(
        competition_id: str,
        participants: Iterable[Participant],
        auto_advance_byes: bool = False,
        id_factory: Callable[[], str] | None = None,
    ) -> list[BracketMatch]:
        """Generate every match of a single-elimination bracket.

        Round one folds the seed order: slot A of match ``i`` holds seed ``i``
        and slot B holds seed ``total_slots - 1 - i``, so the top seeds meet
        the empty slots when the field is not a power of two. Later rounds
        start empty and are linked through ``next_match_id``.

        Byes are left for manual result entry unless ``auto_advance_byes`` is
        set, in which case the lone team is recorded as the winner and moved
        into its next match.
        """
        if not competition_id:
            raise ValidationError("A competition id is required.")

        ordered = BracketBuilder.seed_order(participants)
        count = len(ordered)
        rounds = BracketBuilder.round_count(count)
        total_slots = 2**rounds
        new_id = id_factory or _new_match_id

        match_ids: dict[tuple[int, int], str] = {}
        for round_number in range(1, rounds + 1):
            for match_number in range(1, 2 ** (rounds - round_number) + 1):
                match_ids[(round_number, match_number)] = new_id()

        matches: list[BracketMatch] = []
        for (round_number, match_number), match_id in match_ids.items():
            next_match_id = match_ids.get((round_number + 1, (match_number + 1) // 2))
            match = BracketMatch(
                id=match_id,
                competition_id=competition_id,
                round_number=round_number,
                match_number=match_number,
                next_match_id=next_match_id,
            )
            if round_number == 1:
                slot_a = match_number - 1
                slot_b = total_slots - match_number
                match.team1_id = ordered[slot_a].id
                match.team2_id = ordered[slot_b].id if slot_b < count else None
            matches.append(match)

        if auto_advance_byes:
            BracketBuilder._advance_byes(matches)

        return matches

    @staticmethod
    def _advance_byes(matches: list[BracketMatch]) -> None:
        """Complete round-one byes and seat their winners in round two."""
        by_id = {m.id: m for m in matches}
        for match in matches:
            if match.round_number != 1 or not match.is_bye:
                continue
            match.winner_id = match.team1_id or match.team2_id
            match.status = MATCH_STATUS_COMPLETED
            next_match = by_id.get(match.next_match_id or "")
            if next_match is None:
                continue
            if match.match_number % 2:
                next_match.team1_id = match.winner_id
            else:
                next_match.team2_id = match.winner_id
