"""Shared fixtures for service and route tests."""

import datetime
import unittest
from typing import Optional
from unittest.mock import MagicMock, patch

from mockfirestore import MockFirestore

from tests.conftest import (
    MockBatch,
    MockTransaction,
    mock_transactional,
    patch_mockfirestore,
)

UTC = datetime.timezone.utc
NOW = datetime.datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
GROUP_ID = "group1"


class FirestoreTestCase(unittest.TestCase):
    """Base test case backed by an in-memory Firestore."""

    def setUp(self) -> None:
        patch_mockfirestore()
        self.db = MockFirestore()
        self.db.batch = lambda: MockBatch(self.db)
        self.db.transaction = lambda **kwargs: MockTransaction(**kwargs)

        patcher = patch(
            "matchpoint.core.transactions.firestore.transactional",
            side_effect=mock_transactional,
        )
        self.mock_transactional = patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.db.reset()

    def add_game(self, game_id: str, **fields) -> dict:
        data = {
            "id": game_id,
            "groupId": GROUP_ID,
            "title": "Tuesday Doubles",
            "scheduledTime": NOW + datetime.timedelta(days=3),
            "status": "UPCOMING",
            "maxParticipants": 4,
            "currentParticipants": 0,
            "createdBy": "organizer",
            "createdAt": NOW,
        }
        data.update(fields)
        self.db.collection("games").document(game_id).set(data)
        return data

    def add_member(
        self,
        user_id: str,
        role: str = "member",
        joined_days_ago: int = 30,
        group_id: str = GROUP_ID,
        **fields,
    ) -> None:
        data = {
            "groupId": group_id,
            "userId": user_id,
            "role": role,
            "joinedAt": NOW - datetime.timedelta(days=joined_days_ago),
        }
        data.update(fields)
        self.db.collection("groupMembers").document(f"{group_id}_{user_id}").set(data)

    def add_participant(self, game_id: str, user_id: str, status: str, **fields) -> None:
        data = {
            "id": f"{game_id}_{user_id}",
            "gameId": game_id,
            "groupId": GROUP_ID,
            "userId": user_id,
            "status": status,
            "isGuest": False,
            "registeredAt": NOW,
        }
        data.update(fields)
        self.db.collection("gameParticipants").document(f"{game_id}_{user_id}").set(
            data
        )

    def game(self, game_id: str) -> Optional[dict]:
        snapshot = self.db.collection("games").document(game_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    def participant(self, game_id: str, user_id: str) -> Optional[dict]:
        snapshot = (
            self.db.collection("gameParticipants")
            .document(f"{game_id}_{user_id}")
            .get()
        )
        return snapshot.to_dict() if snapshot.exists else None

    def statuses(self, game_id: str) -> dict:
        docs = (
            self.db.collection("gameParticipants")
            .where("gameId", "==", game_id)
            .stream()
        )
        return {d.to_dict()["userId"]: d.to_dict()["status"] for d in docs}


class RouteTestCase(FirestoreTestCase):
    """Base test case for the JSON API with an authenticated caller."""

    user_id = "alice"

    def setUp(self) -> None:
        super().setUp()
        from matchpoint import create_app

        self.mock_firestore_service = MagicMock()
        self.mock_firestore_service.client.return_value = self.db

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "game_firestore": patch(
                "matchpoint.game.routes.firestore", new=self.mock_firestore_service
            ),
            "series_firestore": patch(
                "matchpoint.series.routes.firestore", new=self.mock_firestore_service
            ),
            "verify_id_token": patch("firebase_admin.auth.verify_id_token"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)
        self.mocks["verify_id_token"].return_value = {"uid": self.user_id}

        self.app = create_app({"TESTING": True, "SERVER_NAME": "localhost"})
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.addCleanup(self.app_context.pop)

    def _get_auth_headers(self) -> dict:
        return {"Authorization": "Bearer mock-token"}
