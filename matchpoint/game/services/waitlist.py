"""Waitlist promoter and waitlist position reporting."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, Callable, cast

from matchpoint.core.constants import OPEN_GAME_STATUSES, PARTICIPANT_CONFIRMED
from matchpoint.core.transactions import TransactionSettings, run_in_transaction
from matchpoint.errors import AppError, PartialPromotionError, ValidationError
from matchpoint.game.models import PriorityStatus

from .common import (
    free_capacity,
    game_ref,
    participant_ref,
    read_game,
    read_waitlist,
    utcnow,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction


def _confirm_first(
    transaction: Transaction,
    db: Client,
    game: dict[str, Any],
    g_ref: DocumentReference,
    now: datetime.datetime,
) -> str | None:
    waitlist = read_waitlist(db, game["id"], transaction)
    if not waitlist:
        return None

    user_id = waitlist[0]["userId"]
    transaction.update(
        participant_ref(db, game["id"], user_id),
        {"status": PARTICIPANT_CONFIRMED, "promotedAt": now},
    )
    transaction.update(
        g_ref,
        {
            "currentParticipants": int(game.get("currentParticipants") or 0) + 1,
            "updatedAt": now,
        },
    )
    return user_id


def _promote_next(
    transaction: Transaction,
    db: Client,
    g_ref: DocumentReference,
    now: datetime.datetime,
) -> str | None:
    """Promote the single best waitlisted participant, if there is room.

    Returns the promoted user's id, or None when nothing was done.
    """
    game = read_game(g_ref, transaction)
    if game.get("status") not in OPEN_GAME_STATUSES:
        return None
    if not free_capacity(game):
        return None
    return _confirm_first(transaction, db, game, g_ref, now)


def _release_next(
    transaction: Transaction,
    db: Client,
    g_ref: DocumentReference,
    now: datetime.datetime,
) -> str | None:
    """Confirm the best waitlisted participant of a game without a cap."""
    game = read_game(g_ref, transaction)
    if game.get("status") not in OPEN_GAME_STATUSES:
        return None
    if free_capacity(game) is not None:
        return None
    return _confirm_first(transaction, db, game, g_ref, now)


def _run_promotions(
    db: Client,
    game_id: str,
    step: Callable[..., str | None],
    settings: TransactionSettings | None,
    now: datetime.datetime,
) -> int:
    g_ref = game_ref(db, game_id)
    promoted = 0
    while True:
        try:
            user_id = run_in_transaction(
                db,
                step,
                db,
                g_ref,
                now,
                settings=settings,
                description=f"waitlist promotion for game {game_id}",
            )
        except Exception as e:
            if not promoted:
                raise
            reason = e.message if isinstance(e, AppError) else str(e)
            logging.error(
                f"Waitlist for game {game_id} failed after {promoted} "
                f"promotion(s): {reason}"
            )
            raise PartialPromotionError(promoted, reason) from e

        if user_id is None:
            break
        promoted += 1
        logging.info(f"Promoted {user_id} from the waitlist of game {game_id}.")

    return promoted


def process_waitlist(
    db: Client,
    game_id: str,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> int:
    """Promote waitlisted participants into free spots, best first.

    Each promotion commits on its own, so the counter always matches the set
    of confirmed participants. If a step fails after some promotions went
    through, a PartialPromotionError reports how many did. Unlimited games,
    full games, closed games and empty waitlists are left untouched and
    return 0.
    """
    if not game_id:
        raise ValidationError("Game ID is required.")
    return _run_promotions(db, game_id, _promote_next, settings, now or utcnow())


def release_waitlist(
    db: Client,
    game_id: str,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> int:
    """Confirm everyone left on the waitlist once a game's cap is removed.

    Promotes in the same order and with the same per-step commits as
    ``process_waitlist``. Does nothing while the game still has a cap.
    """
    if not game_id:
        raise ValidationError("Game ID is required.")
    return _run_promotions(db, game_id, _release_next, settings, now or utcnow())


def backfill_after_capacity_change(
    db: Client,
    game_id: str,
    max_participants: int,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> int:
    """Fill the room a raised or removed cap opened up."""
    if max_participants == 0:
        return release_waitlist(db, game_id, settings=settings, now=now)
    return process_waitlist(db, game_id, settings=settings, now=now)


def _chance_of_promotion(position: int, spots: int) -> str:
    if position > 0 and spots > 0:
        if position <= spots:
            return "high"
        if position <= spots * 2:
            return "medium"
    return "low"


def get_user_priority_status(db: Client, game_id: str, user_id: str) -> PriorityStatus:
    """Report where a user stands for a game.

    ``estimatedPosition`` is 1-based and 0 for anyone not on the waitlist.
    """
    if not game_id or not user_id:
        raise ValidationError("Game ID and user ID are required.")
    game = read_game(game_ref(db, game_id))

    snapshot = cast("DocumentSnapshot", participant_ref(db, game_id, user_id).get())
    record: dict[str, Any] = (snapshot.to_dict() or {}) if snapshot.exists else {}

    waitlist = read_waitlist(db, game_id)
    position = next(
        (i + 1 for i, entry in enumerate(waitlist) if entry.get("userId") == user_id),
        0,
    )
    spots = free_capacity(game) or 0

    return {
        "status": record.get("status"),
        "priorityScore": int(record.get("priorityScore") or 0),
        "estimatedPosition": position,
        "totalWaitlisted": len(waitlist),
        "chanceOfPromotion": _chance_of_promotion(position, spots),
    }
