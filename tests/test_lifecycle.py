"""Tests for creating, editing and closing games."""

from __future__ import annotations

import datetime
import unittest

from matchpoint.errors import NotFoundError, StateConflictError, ValidationError
from matchpoint.game.models import GameFieldsUpdate, GameSubmission
from matchpoint.game.services import (
    cancel_registration,
    create_game,
    delete_game,
    get_game,
    list_group_games,
    process_waitlist,
    register_participant,
    update_game,
    update_game_status,
)
from tests.helpers import GROUP_ID, NOW, UTC, FirestoreTestCase


def _submission(**overrides) -> GameSubmission:
    data = {
        "groupId": GROUP_ID,
        "title": "Friday Open Play",
        "location": "Court 2",
        "scheduledTime": "2024-06-07T18:00:00Z",
        "maxParticipants": 4,
    }
    data.update(overrides)
    return GameSubmission.from_dict(data)


class CreateGameTestCase(FirestoreTestCase):
    """Test case for create_game, get_game and list_group_games."""

    def test_create_and_get(self) -> None:
        game = create_game(self.db, _submission(), "organizer", now=NOW)

        stored = get_game(self.db, game["id"])
        self.assertEqual(stored["title"], "Friday Open Play")
        self.assertEqual(stored["status"], "UPCOMING")
        self.assertEqual(stored["currentParticipants"], 0)
        self.assertEqual(stored["maxParticipants"], 4)
        self.assertFalse(stored["isRecurring"])
        self.assertEqual(
            stored["scheduledTime"], datetime.datetime(2024, 6, 7, 18, tzinfo=UTC)
        )

    def test_offset_times_are_stored_in_utc(self) -> None:
        game = create_game(
            self.db,
            _submission(scheduledTime="2024-06-07T18:00:00-04:00"),
            "organizer",
            now=NOW,
        )
        self.assertEqual(
            game["scheduledTime"], datetime.datetime(2024, 6, 7, 22, tzinfo=UTC)
        )

    def test_rejects_invalid_games(self) -> None:
        for overrides in (
            {"groupId": ""},
            {"title": ""},
            {"scheduledTime": "friday"},
            {"scheduledTime": None},
            {"maxParticipants": -3},
        ):
            with self.assertRaises(ValidationError):
                create_game(self.db, _submission(**overrides), "organizer", now=NOW)
        self.assertEqual(list(self.db.collection("games").stream()), [])

    def test_get_unknown_game(self) -> None:
        with self.assertRaises(NotFoundError):
            get_game(self.db, "missing")

    def test_list_by_scheduled_time(self) -> None:
        self.add_game("later", scheduledTime=NOW + datetime.timedelta(days=9))
        self.add_game(
            "sooner", scheduledTime=NOW + datetime.timedelta(days=2), status="CANCELLED"
        )
        self.add_game("middle", scheduledTime=NOW + datetime.timedelta(days=5))
        self.add_game("elsewhere", groupId="other")

        games = list_group_games(self.db, GROUP_ID)
        self.assertEqual([g["id"] for g in games], ["sooner", "middle", "later"])

        upcoming = list_group_games(self.db, GROUP_ID, status="UPCOMING")
        self.assertEqual([g["id"] for g in upcoming], ["middle", "later"])

        with self.assertRaises(ValidationError):
            list_group_games(self.db, GROUP_ID, status="POSTPONED")


class UpdateGameTestCase(FirestoreTestCase):
    """Test case for update_game and update_game_status."""

    def setUp(self) -> None:
        super().setUp()
        self.add_game("g1", maxParticipants=1, currentParticipants=1)
        self.add_participant("g1", "alice", "CONFIRMED")
        self.add_participant(
            "g1", "bob", "WAITLIST", priorityScore=50, waitlistJoinedAt=NOW
        )

    def test_edit_details(self) -> None:
        game, promoted = update_game(
            self.db,
            "g1",
            GameFieldsUpdate(title="Moved Inside", location="Gym"),
            scheduled_time="2024-06-05T20:00:00+00:00",
            now=NOW,
        )
        self.assertEqual(promoted, 0)
        self.assertEqual(game["title"], "Moved Inside")
        self.assertEqual(game["location"], "Gym")
        self.assertEqual(
            game["scheduledTime"], datetime.datetime(2024, 6, 5, 20, tzinfo=UTC)
        )

    def test_raising_cap_through_edit_promotes(self) -> None:
        game, promoted = update_game(
            self.db, "g1", GameFieldsUpdate(maxParticipants=2), now=NOW
        )
        self.assertEqual(promoted, 1)
        self.assertEqual(game["currentParticipants"], 2)
        self.assertEqual(self.statuses("g1")["bob"], "CONFIRMED")

    def test_closed_game_cannot_be_edited(self) -> None:
        update_game_status(self.db, "g1", "CANCELLED", now=NOW)
        with self.assertRaises(StateConflictError):
            update_game(self.db, "g1", GameFieldsUpdate(title="Again"), now=NOW)

    def test_lifecycle(self) -> None:
        self.assertEqual(
            update_game_status(self.db, "g1", "IN_PROGRESS", now=NOW)["status"],
            "IN_PROGRESS",
        )
        self.assertEqual(
            update_game_status(self.db, "g1", "COMPLETED", now=NOW)["status"],
            "COMPLETED",
        )
        with self.assertRaises(StateConflictError):
            update_game_status(self.db, "g1", "UPCOMING", now=NOW)

    def test_same_status_is_a_no_op(self) -> None:
        game = update_game_status(self.db, "g1", "UPCOMING", now=NOW)
        self.assertEqual(game["status"], "UPCOMING")

    def test_unknown_status(self) -> None:
        with self.assertRaises(ValidationError):
            update_game_status(self.db, "g1", "POSTPONED", now=NOW)

    def test_cancelled_game_is_frozen(self) -> None:
        update_game_status(self.db, "g1", "CANCELLED", now=NOW)
        self.db.collection("games").document("g1").update({"maxParticipants": 5})

        self.assertEqual(process_waitlist(self.db, "g1", now=NOW), 0)
        with self.assertRaises(StateConflictError):
            register_participant(self.db, "g1", "carol", now=NOW)
        with self.assertRaises(StateConflictError):
            cancel_registration(self.db, "g1", "alice", now=NOW)
        self.assertEqual(self.statuses("g1"), {"alice": "CONFIRMED", "bob": "WAITLIST"})


class DeleteGameTestCase(FirestoreTestCase):
    """Test case for delete_game."""

    def test_deletes_game_and_registrations(self) -> None:
        self.add_game("g1")
        self.add_game("g2")
        self.add_participant("g1", "alice", "CONFIRMED")
        self.add_participant("g1", "bob", "WAITLIST")
        self.add_participant("g2", "alice", "CONFIRMED")

        self.assertEqual(delete_game(self.db, "g1"), 2)
        self.assertIsNone(self.game("g1"))
        self.assertIsNone(self.participant("g1", "alice"))
        self.assertIsNotNone(self.participant("g2", "alice"))

    def test_unknown_game(self) -> None:
        with self.assertRaises(NotFoundError):
            delete_game(self.db, "missing")


if __name__ == "__main__":
    unittest.main()
