"""Helpers shared by the registration and waitlist services."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from matchpoint.core.constants import (
    FIRESTORE_BATCH_LIMIT,
    GAMES_COLLECTION,
    PARTICIPANT_WAITLIST,
    PARTICIPANTS_COLLECTION,
)
from matchpoint.errors import NotFoundError
from matchpoint.game.priority import waitlist_sort_key

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction


def utcnow() -> datetime.datetime:
    """Timezone-aware current time."""
    return datetime.datetime.now(datetime.timezone.utc)


def participant_id(game_id: str, user_id: str) -> str:
    """Document id of a participant record."""
    return f"{game_id}_{user_id}"


def game_ref(db: Client, game_id: str) -> DocumentReference:
    """Reference to a game document."""
    return db.collection(GAMES_COLLECTION).document(game_id)


def participant_ref(db: Client, game_id: str, user_id: str) -> DocumentReference:
    """Reference to a participant document."""
    return db.collection(PARTICIPANTS_COLLECTION).document(
        participant_id(game_id, user_id)
    )


def read_game(
    ref: DocumentReference, transaction: Transaction | None = None
) -> dict[str, Any]:
    """Read a game document or raise NotFoundError."""
    snapshot = cast("DocumentSnapshot", ref.get(transaction=transaction))
    if not snapshot.exists:
        raise NotFoundError("Game not found.")
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def read_waitlist(
    db: Client, game_id: str, transaction: Transaction | None = None
) -> list[dict[str, Any]]:
    """Waitlisted participants of a game, best candidate first."""
    docs = (
        db.collection(PARTICIPANTS_COLLECTION)
        .where(filter=firestore.FieldFilter("gameId", "==", game_id))
        .where(filter=firestore.FieldFilter("status", "==", PARTICIPANT_WAITLIST))
        .stream(transaction=transaction)
    )
    waitlist = [doc.to_dict() or {} for doc in docs]
    waitlist.sort(key=waitlist_sort_key)
    return waitlist


def free_capacity(game: dict[str, Any]) -> int | None:
    """Open spots left in a game, or None when the game is unlimited."""
    max_participants = int(game.get("maxParticipants") or 0)
    if max_participants <= 0:
        return None
    return max(0, max_participants - int(game.get("currentParticipants") or 0))


def capacity_grew(previous: int, new: int) -> bool:
    """True when a cap change can make room for waitlisted participants."""
    return previous > 0 and (new == 0 or new > previous)


def commit_in_chunks(db: Client, operations: list[tuple[str, Any, Any]]) -> None:
    """Apply (op, ref, data) writes in batches below the Firestore limit."""
    batch = db.batch()
    operation_count = 0
    for op, ref, data in operations:
        if op == "create":
            batch.create(ref, data)
        elif op == "update":
            batch.update(ref, data)
        else:
            batch.delete(ref)
        operation_count += 1

        if operation_count >= FIRESTORE_BATCH_LIMIT:
            batch.commit()
            batch = db.batch()
            operation_count = 0

    if operation_count > 0:
        batch.commit()
