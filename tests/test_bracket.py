"""Tests for knockout bracket generation."""

from __future__ import annotations

import itertools
import unittest

from estateportal.competition.bracket import BracketBuilder
from estateportal.competition.models import Participant
from estateportal.errors import InsufficientParticipantsError, ValidationError


def make_participants(count: int, seeded: bool = True) -> list[Participant]:
    return [
        Participant(id=f"t{i}", name=f"Team {i}", seed=i if seeded else None)
        for i in range(1, count + 1)
    ]


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"m{next(counter)}"


class SeedOrderTestCase(unittest.TestCase):
    """Test case for seed sorting."""

    def test_sorts_ascending_by_seed(self) -> None:
        """Lower seeds come first."""
        participants = [
            Participant("c", seed=3),
            Participant("a", seed=1),
            Participant("b", seed=2),
        ]
        ordered = BracketBuilder.seed_order(participants)
        self.assertEqual([p.id for p in ordered], ["a", "b", "c"])

    def test_unseeded_after_seeded_in_input_order(self) -> None:
        """Unseeded teams follow all seeded ones and keep their input order."""
        participants = [
            Participant("x"),
            Participant("b", seed=2),
            Participant("y"),
            Participant("a", seed=1),
            Participant("z"),
        ]
        ordered = BracketBuilder.seed_order(participants)
        self.assertEqual([p.id for p in ordered], ["a", "b", "x", "y", "z"])

    def test_large_seed_still_before_unseeded(self) -> None:
        """A seed above 999 is still a real seed."""
        participants = [Participant("u"), Participant("big", seed=5000)]
        ordered = BracketBuilder.seed_order(participants)
        self.assertEqual([p.id for p in ordered], ["big", "u"])

    def test_equal_seeds_keep_input_order(self) -> None:
        participants = [Participant("p", seed=1), Participant("q", seed=1)]
        ordered = BracketBuilder.seed_order(participants)
        self.assertEqual([p.id for p in ordered], ["p", "q"])


class RoundCountTestCase(unittest.TestCase):
    """Test case for the number of rounds."""

    def test_round_count(self) -> None:
        expected = {2: 1, 3: 2, 4: 2, 5: 3, 8: 3, 9: 4, 16: 4, 17: 5, 64: 6}
        for count, rounds in expected.items():
            with self.subTest(count=count):
                self.assertEqual(BracketBuilder.round_count(count), rounds)

    def test_round_count_rejects_small_fields(self) -> None:
        for count in (0, 1):
            with self.subTest(count=count):
                with self.assertRaises(InsufficientParticipantsError):
                    BracketBuilder.round_count(count)


class BracketBuilderTestCase(unittest.TestCase):
    """Test case for BracketBuilder.build."""

    def test_two_teams_make_a_single_final(self) -> None:
        """N=2 gives one match and no further rounds."""
        matches = BracketBuilder.build("comp1", make_participants(2))

        self.assertEqual(len(matches), 1)
        final = matches[0]
        self.assertEqual(final.round_number, 1)
        self.assertEqual(final.match_number, 1)
        self.assertEqual(final.team1_id, "t1")
        self.assertEqual(final.team2_id, "t2")
        self.assertIsNone(final.next_match_id)
        self.assertEqual(final.status, "scheduled")

    def test_three_teams(self) -> None:
        """N=3: seed 1 gets the bye, seeds 2 and 3 meet."""
        participants = [
            Participant("A", seed=1),
            Participant("B", seed=2),
            Participant("C", seed=3),
        ]
        matches = BracketBuilder.build("comp1", participants)

        self.assertEqual(len(matches), 3)
        m1, m2, final = matches
        self.assertEqual((m1.round_number, m1.match_number), (1, 1))
        self.assertEqual((m1.team1_id, m1.team2_id), ("A", None))
        self.assertEqual((m2.round_number, m2.match_number), (1, 2))
        self.assertEqual((m2.team1_id, m2.team2_id), ("B", "C"))
        self.assertEqual((final.round_number, final.match_number), (2, 1))
        self.assertIsNone(final.team1_id)
        self.assertIsNone(final.team2_id)

    def test_five_teams_with_unseeded_entries(self) -> None:
        """N=5: eight slots, three byes, unseeded teams fill the back."""
        participants = [
            Participant("u1"),
            Participant("s2", seed=2),
            Participant("u2"),
            Participant("s1", seed=1),
            Participant("u3"),
        ]
        matches = BracketBuilder.build("comp1", participants)
        round_one = [m for m in matches if m.round_number == 1]

        self.assertEqual(len(matches), 7)
        self.assertEqual(len(round_one), 4)
        self.assertEqual(sum(1 for m in round_one if m.is_bye), 3)
        # Sorted order is s1, s2, u1, u2, u3; slot B of match i is sorted[7 - i].
        self.assertEqual(
            [(m.team1_id, m.team2_id) for m in round_one],
            [("s1", None), ("s2", None), ("u1", None), ("u2", "u3")],
        )

    def test_fold_pairing(self) -> None:
        """Round one pairs sorted[i] with sorted[total_slots - 1 - i]."""
        for count in range(2, 20):
            with self.subTest(count=count):
                participants = make_participants(count)
                matches = BracketBuilder.build("comp1", participants)
                total_slots = 2 ** BracketBuilder.round_count(count)
                round_one = [m for m in matches if m.round_number == 1]
                for i, match in enumerate(round_one):
                    self.assertEqual(match.team1_id, participants[i].id)
                    opposite = total_slots - 1 - i
                    expected = participants[opposite].id if opposite < count else None
                    self.assertEqual(match.team2_id, expected)

    def test_structure_for_many_sizes(self) -> None:
        """Match counts, round sizes, numbering and byes hold for every size."""
        for count in range(2, 40):
            with self.subTest(count=count):
                matches = BracketBuilder.build("comp1", make_participants(count))
                rounds = BracketBuilder.round_count(count)
                total_slots = 2**rounds

                self.assertEqual(len(matches), total_slots - 1)
                for round_number in range(1, rounds + 1):
                    in_round = [m for m in matches if m.round_number == round_number]
                    self.assertEqual(len(in_round), 2 ** (rounds - round_number))
                    self.assertEqual(
                        sorted(m.match_number for m in in_round),
                        list(range(1, len(in_round) + 1)),
                    )

                round_one = [m for m in matches if m.round_number == 1]
                self.assertEqual(
                    sum(1 for m in round_one if m.is_bye), total_slots - count
                )
                self.assertFalse(
                    any(m.team1_id is None and m.team2_id is None for m in round_one)
                )
                for match in matches:
                    if match.round_number > 1:
                        self.assertIsNone(match.team1_id)
                        self.assertIsNone(match.team2_id)

    def test_matches_are_linked_to_the_next_round(self) -> None:
        """Match m feeds match ceil(m/2) of the next round; the final feeds none."""
        matches = BracketBuilder.build("comp1", make_participants(8))
        by_position = {(m.round_number, m.match_number): m for m in matches}

        for match in matches:
            if match.round_number == 3:
                self.assertIsNone(match.next_match_id)
                continue
            target = by_position[(match.round_number + 1, (match.match_number + 1) // 2)]
            self.assertEqual(match.next_match_id, target.id)

    def test_build_is_deterministic(self) -> None:
        """Same participants and id source give the same bracket."""
        participants = make_participants(6)
        first = BracketBuilder.build("comp1", participants, id_factory=sequential_ids())
        second = BracketBuilder.build("comp1", participants, id_factory=sequential_ids())
        self.assertEqual(first, second)

    def test_match_ids_are_unique(self) -> None:
        matches = BracketBuilder.build("comp1", make_participants(13))
        ids = [m.id for m in matches]
        self.assertEqual(len(ids), len(set(ids)))

    def test_rejects_fewer_than_two_participants(self) -> None:
        for count in (0, 1):
            with self.subTest(count=count):
                with self.assertRaises(InsufficientParticipantsError) as ctx:
                    BracketBuilder.build("comp1", make_participants(count))
                self.assertEqual(ctx.exception.count, count)
                self.assertEqual(ctx.exception.status_code, 400)

    def test_rejects_missing_competition_id(self) -> None:
        with self.assertRaises(ValidationError):
            BracketBuilder.build("", make_participants(4))

    def test_to_document_drops_the_id(self) -> None:
        match = BracketBuilder.build("comp1", make_participants(2))[0]
        document = match.to_document()
        self.assertNotIn("id", document)
        self.assertEqual(document["competition_id"], "comp1")
        self.assertEqual(document["team1_id"], "t1")


class AutoAdvanceByesTestCase(unittest.TestCase):
    """Test case for the opt-in bye advancement."""

    def test_byes_are_left_alone_by_default(self) -> None:
        matches = BracketBuilder.build("comp1", make_participants(3))
        bye = matches[0]
        self.assertIsNone(bye.winner_id)
        self.assertEqual(bye.status, "scheduled")

    def test_byes_advance_when_enabled(self) -> None:
        """Top seeds with byes are seated in round two."""
        matches = BracketBuilder.build(
            "comp1", make_participants(5), auto_advance_byes=True
        )
        round_one = [m for m in matches if m.round_number == 1]
        round_two = [m for m in matches if m.round_number == 2]

        for match in round_one[:3]:
            self.assertEqual(match.status, "completed")
            self.assertEqual(match.winner_id, match.team1_id)
        self.assertEqual(round_one[3].status, "scheduled")
        self.assertIsNone(round_one[3].winner_id)

        # Matches 1 and 2 feed round-two match 1; match 3 fills slot A of match 2.
        self.assertEqual((round_two[0].team1_id, round_two[0].team2_id), ("t1", "t2"))
        self.assertEqual((round_two[1].team1_id, round_two[1].team2_id), ("t3", None))

    def test_full_field_has_nothing_to_advance(self) -> None:
        matches = BracketBuilder.build(
            "comp1", make_participants(4), auto_advance_byes=True
        )
        self.assertTrue(all(m.status == "scheduled" for m in matches))


if __name__ == "__main__":
    unittest.main()
