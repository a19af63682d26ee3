"""Capacity ledger: admission, waitlisting and cancellation."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from matchpoint.core.constants import (
    ACTIVE_PARTICIPANT_STATUSES,
    OPEN_GAME_STATUSES,
    PARTICIPANT_CONFIRMED,
    PARTICIPANT_DECLINED,
    PARTICIPANT_WAITLIST,
)
from matchpoint.core.transactions import TransactionSettings, run_in_transaction
from matchpoint.errors import NotFoundError, StateConflictError, ValidationError
from matchpoint.game.models import Participant, RegistrationResult
from matchpoint.game.priority import PriorityWeights, calculate_priority_score

from .common import (
    capacity_grew,
    free_capacity,
    game_ref,
    participant_id,
    participant_ref,
    read_game,
    read_waitlist,
    utcnow,
)
from .history import get_attendance_history
from .waitlist import backfill_after_capacity_change, process_waitlist

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction


def _ensure_open(game: dict[str, Any]) -> None:
    status = game.get("status")
    if status not in OPEN_GAME_STATUSES:
        raise StateConflictError(f"Registration is closed for this game ({status}).")


def _admit_or_waitlist(  # noqa: PLR0913
    transaction: Transaction,
    db: Client,
    g_ref: DocumentReference,
    p_ref: DocumentReference,
    user_id: str,
    is_guest: bool,
    priority_score: int | None,
    now: datetime.datetime,
) -> tuple[RegistrationResult, bool]:
    """Read-modify-write of one registration; runs inside a transaction.

    Returns the result and whether free spots were left to the waitlist,
    in which case the promoter has to run once this commits.
    """
    game = read_game(g_ref, transaction)
    _ensure_open(game)
    spots = free_capacity(game)

    snapshot = cast("DocumentSnapshot", p_ref.get(transaction=transaction))
    existing = (snapshot.to_dict() or {}) if snapshot.exists else {}
    status = existing.get("status")
    if status == PARTICIPANT_WAITLIST and spots is None:
        # The cap was removed while this user was waiting
        transaction.update(p_ref, {"status": PARTICIPANT_CONFIRMED, "promotedAt": now})
        transaction.update(
            g_ref,
            {
                "currentParticipants": int(game.get("currentParticipants") or 0) + 1,
                "updatedAt": now,
            },
        )
        return RegistrationResult(status=PARTICIPANT_CONFIRMED, created=False), False
    if status in ACTIVE_PARTICIPANT_STATUSES:
        result = RegistrationResult(
            status=existing["status"],
            priority_score=existing.get("priorityScore"),
            created=False,
        )
        return result, False

    record: Participant = {
        "id": p_ref.id,
        "gameId": game["id"],
        "groupId": game.get("groupId", ""),
        "userId": user_id,
        "isGuest": is_guest,
        "registeredAt": now,
    }

    # Open spots go to the waitlist first when people are already waiting
    queued = bool(spots) and bool(read_waitlist(db, game["id"], transaction))
    if spots is None or (spots > 0 and not queued):
        record["status"] = PARTICIPANT_CONFIRMED
        transaction.set(p_ref, record)
        transaction.update(
            g_ref,
            {
                "currentParticipants": int(game.get("currentParticipants") or 0) + 1,
                "updatedAt": now,
            },
        )
        return RegistrationResult(status=PARTICIPANT_CONFIRMED), False

    score = priority_score if priority_score is not None else 0
    record["status"] = PARTICIPANT_WAITLIST
    record["priorityScore"] = score
    record["waitlistJoinedAt"] = now
    transaction.set(p_ref, record)
    return RegistrationResult(status=PARTICIPANT_WAITLIST, priority_score=score), queued


def register_participant(  # noqa: PLR0913
    db: Client,
    game_id: str,
    user_id: str,
    is_guest: bool = False,
    weights: PriorityWeights | None = None,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> RegistrationResult:
    """Register a user for a game as CONFIRMED or WAITLIST.

    Registering again while CONFIRMED or WAITLIST returns the existing status
    without touching anything, except that a waitlisted user on a game whose
    cap has since been removed is confirmed. The priority score is only
    needed when the game is capped, and it is computed before the
    transaction starts so the scorer never runs against the database.

    When spots are open but others are already waiting, the newcomer joins
    the waitlist and the promoter fills the spots in priority order, so the
    returned status is the one the newcomer ends up with.
    """
    if not game_id or not user_id:
        raise ValidationError("Game ID and user ID are required.")
    now = now or utcnow()

    g_ref = game_ref(db, game_id)
    game = read_game(g_ref)
    _ensure_open(game)

    weights = weights or PriorityWeights()
    priority_score = None
    if free_capacity(game) is not None:
        history = get_attendance_history(
            db, user_id, game.get("groupId", ""), now=now, limit=weights.history_limit
        )
        priority_score = calculate_priority_score(history, weights)

    p_ref = participant_ref(db, game_id, user_id)
    result, queued = run_in_transaction(
        db,
        _admit_or_waitlist,
        db,
        g_ref,
        p_ref,
        user_id,
        bool(is_guest),
        priority_score,
        now,
        settings=settings,
        description=f"registration for game {game_id}",
    )

    if queued:
        process_waitlist(db, game_id, settings=settings, now=now)
        record = cast("DocumentSnapshot", p_ref.get()).to_dict() or {}
        if record.get("status") == PARTICIPANT_CONFIRMED:
            result = RegistrationResult(status=PARTICIPANT_CONFIRMED)

    if result.created:
        logging.info(f"User {user_id} registered for game {game_id}: {result.status}")
    return result


def _decline(
    transaction: Transaction,
    g_ref: DocumentReference,
    p_ref: DocumentReference,
    now: datetime.datetime,
) -> str:
    """Flip a participant to DECLINED and release their spot; returns old status."""
    game = read_game(g_ref, transaction)
    if game.get("status") not in OPEN_GAME_STATUSES:
        raise StateConflictError(
            f"Registrations can no longer be cancelled ({game.get('status')})."
        )
    snapshot = cast("DocumentSnapshot", p_ref.get(transaction=transaction))
    if not snapshot.exists:
        raise NotFoundError("Registration not found.")
    previous = (snapshot.to_dict() or {}).get("status", "")
    if previous == PARTICIPANT_DECLINED:
        return previous

    transaction.update(p_ref, {"status": PARTICIPANT_DECLINED, "cancelledAt": now})
    if previous == PARTICIPANT_CONFIRMED:
        transaction.update(
            g_ref,
            {
                "currentParticipants": max(
                    0, int(game.get("currentParticipants") or 0) - 1
                ),
                "updatedAt": now,
            },
        )
    return previous


def cancel_registration(
    db: Client,
    game_id: str,
    user_id: str,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> int:
    """Cancel a registration and backfill from the waitlist.

    Returns the number of waitlisted participants promoted into the freed
    spot.
    """
    if not game_id or not user_id:
        raise ValidationError("Game ID and user ID are required.")
    now = now or utcnow()

    previous = run_in_transaction(
        db,
        _decline,
        game_ref(db, game_id),
        participant_ref(db, game_id, user_id),
        now,
        settings=settings,
        description=f"cancellation of {participant_id(game_id, user_id)}",
    )
    logging.info(f"User {user_id} cancelled for game {game_id} (was {previous}).")

    if previous != PARTICIPANT_CONFIRMED:
        return 0
    return process_waitlist(db, game_id, settings=settings, now=now)


def _set_capacity(
    transaction: Transaction,
    g_ref: DocumentReference,
    max_participants: int,
    now: datetime.datetime,
) -> int:
    game = read_game(g_ref, transaction)
    transaction.update(g_ref, {"maxParticipants": max_participants, "updatedAt": now})
    return int(game.get("maxParticipants") or 0)


def update_game_capacity(
    db: Client,
    game_id: str,
    max_participants: int,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> int:
    """Change a game's cap and promote from the waitlist if it was raised.

    Lowering the cap below the current count evicts nobody; it only stops
    new admissions until enough people cancel. Removing the cap (0)
    confirms everyone still waiting.
    """
    if isinstance(max_participants, bool) or not isinstance(max_participants, int):
        raise ValidationError("Max participants must be a whole number.")
    if max_participants < 0:
        raise ValidationError("Max participants cannot be negative.")
    now = now or utcnow()

    previous = run_in_transaction(
        db,
        _set_capacity,
        game_ref(db, game_id),
        max_participants,
        now,
        settings=settings,
        description=f"capacity change for game {game_id}",
    )
    if not capacity_grew(previous, max_participants):
        return 0
    return backfill_after_capacity_change(
        db, game_id, max_participants, settings=settings, now=now
    )
