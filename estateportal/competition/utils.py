"""Utility functions for presenting competition brackets."""

from __future__ import annotations

from typing import Any

BRACKET_MATCH_FIELDS = (
    "id",
    "round_number",
    "match_number",
    "team1_id",
    "team2_id",
    "winner_id",
    "score1",
    "score2",
    "status",
    "next_match_id",
)


def round_label(round_number: int, total_rounds: int) -> str:
    """Name a round by its distance from the final."""
    remaining = total_rounds - round_number
    if remaining == 0:
        return "Final"
    if remaining == 1:
        return "Semifinal"
    if remaining == 2:  # noqa: PLR2004
        return "Quarterfinal"
    return f"Round {round_number}"


def group_matches_by_round(matches: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Group match dicts into ordered rounds for display."""
    rounds: dict[int, list[dict[str, Any]]] = {}
    for match in matches:
        rounds.setdefault(match.get("round_number", 0), []).append(match)

    total_rounds = max(rounds) if rounds else 0
    grouped = []
    for round_number in sorted(rounds):
        grouped.append(
            {
                "round_number": round_number,
                "label": round_label(round_number, total_rounds),
                "matches": sorted(
                    rounds[round_number], key=lambda m: m.get("match_number", 0)
                ),
            }
        )
    return grouped


def bracket_payload(competition: dict[str, Any]) -> dict[str, Any]:
    """Build a JSON-safe view of a competition's bracket."""
    team_names = {t["id"]: t.get("name") for t in competition.get("teams", [])}
    rounds = []
    for group in group_matches_by_round(competition.get("matches", [])):
        matches = []
        for match in group["matches"]:
            item = {field: match.get(field) for field in BRACKET_MATCH_FIELDS}
            item["team1_name"] = team_names.get(match.get("team1_id"))
            item["team2_name"] = team_names.get(match.get("team2_id"))
            matches.append(item)
        rounds.append({**group, "matches": matches})

    return {
        "competition_id": competition["id"],
        "format": competition.get("format"),
        "status": competition.get("status"),
        "rounds": rounds,
    }
