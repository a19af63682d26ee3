"""Creating, listing, editing and closing one-off games."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from matchpoint.core.constants import (
    GAME_LIST_LIMIT,
    GAME_STATUS_TRANSITIONS,
    GAME_STATUS_UPCOMING,
    GAME_STATUSES,
    GAMES_COLLECTION,
    OPEN_GAME_STATUSES,
    PARTICIPANTS_COLLECTION,
)
from matchpoint.core.transactions import TransactionSettings, run_in_transaction
from matchpoint.errors import StateConflictError, ValidationError
from matchpoint.game.models import Game, GameFieldsUpdate, GameSubmission, parse_datetime

from .common import commit_in_chunks, game_ref, read_game, utcnow
from .registration import update_game_capacity

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction


def create_game(
    db: Client,
    submission: GameSubmission,
    created_by: str,
    now: datetime.datetime | None = None,
) -> Game:
    """Validate and store a new game with no participants."""
    data = submission.to_document()
    now = now or utcnow()
    ref = db.collection(GAMES_COLLECTION).document()
    data.update(
        {
            "id": ref.id,
            "status": GAME_STATUS_UPCOMING,
            "currentParticipants": 0,
            "isRecurring": False,
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    ref.set(data)
    logging.info(f"Game {ref.id} created for group {data['groupId']}.")
    return cast("Game", data)


def get_game(db: Client, game_id: str) -> Game:
    """Fetch a game or raise NotFoundError."""
    if not game_id:
        raise ValidationError("Game ID is required.")
    return cast("Game", read_game(game_ref(db, game_id)))


def list_group_games(
    db: Client,
    group_id: str,
    status: str | None = None,
    limit: int = GAME_LIST_LIMIT,
) -> list[Game]:
    """A group's games by scheduled time, optionally with one status only."""
    if not group_id:
        raise ValidationError("Group ID is required.")
    if status is not None and status not in GAME_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(GAME_STATUSES)}.")

    query = db.collection(GAMES_COLLECTION).where(
        filter=firestore.FieldFilter("groupId", "==", group_id)
    )
    if status:
        query = query.where(filter=firestore.FieldFilter("status", "==", status))

    games = []
    for doc in query.order_by("scheduledTime").limit(limit).stream():
        data = doc.to_dict() or {}
        data["id"] = doc.id
        games.append(cast("Game", data))
    return games


def update_game(
    db: Client,
    game_id: str,
    fields: GameFieldsUpdate,
    scheduled_time: Any = None,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> tuple[Game, int]:
    """Edit an open game; returns the stored game and how many were promoted.

    A new ``maxParticipants`` goes through the capacity ledger, so raising
    or removing the cap fills spots from the waitlist.
    """
    fields.validate()
    now = now or utcnow()
    ref = game_ref(db, game_id)
    game = read_game(ref)
    if game.get("status") not in OPEN_GAME_STATUSES:
        raise StateConflictError(f"A {game.get('status')} game cannot be edited.")

    changes = fields.to_update()
    changes.pop("maxParticipants", None)
    if scheduled_time is not None:
        changes["scheduledTime"] = parse_datetime(scheduled_time, "Scheduled time")
    if changes:
        changes["updatedAt"] = now
        ref.update(changes)

    promoted = 0
    if fields.maxParticipants is not None:
        promoted = update_game_capacity(
            db, game_id, fields.maxParticipants, settings=settings, now=now
        )
    return cast("Game", read_game(ref)), promoted


def _set_status(
    transaction: Transaction,
    g_ref: DocumentReference,
    status: str,
    now: datetime.datetime,
) -> str:
    game = read_game(g_ref, transaction)
    current = game.get("status", GAME_STATUS_UPCOMING)
    if current == status:
        return current
    if status not in GAME_STATUS_TRANSITIONS.get(current, ()):
        raise StateConflictError(f"A {current} game cannot become {status}.")
    transaction.update(g_ref, {"status": status, "updatedAt": now})
    return current


def update_game_status(
    db: Client,
    game_id: str,
    status: str,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> Game:
    """Move a game along its lifecycle, e.g. start or cancel it.

    Completed and cancelled games are final. Participants are kept when a
    game is cancelled; registration, cancellation and promotion simply stop.
    """
    if status not in GAME_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(GAME_STATUSES)}.")
    now = now or utcnow()
    ref = game_ref(db, game_id)

    previous = run_in_transaction(
        db,
        _set_status,
        ref,
        status,
        now,
        settings=settings,
        description=f"status change for game {game_id}",
    )
    if previous != status:
        logging.info(f"Game {game_id} moved from {previous} to {status}.")
    return cast("Game", read_game(ref))


def delete_game(db: Client, game_id: str) -> int:
    """Delete a game and its participant records; returns how many records went."""
    ref = game_ref(db, game_id)
    read_game(ref)

    participants = (
        db.collection(PARTICIPANTS_COLLECTION)
        .where(filter=firestore.FieldFilter("gameId", "==", game_id))
        .stream()
    )
    operations: list[tuple[str, Any, Any]] = [
        ("delete", p.reference, None) for p in participants
    ]
    removed = len(operations)
    operations.append(("delete", ref, None))
    commit_in_chunks(db, operations)
    logging.info(f"Deleted game {game_id} and {removed} participant record(s).")
    return removed
