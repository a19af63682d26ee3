"""Attendance history: the inputs of the priority scorer."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from matchpoint.core.constants import (
    GAME_STATUS_CANCELLED,
    GAME_STATUS_COMPLETED,
    GAMES_COLLECTION,
    PARTICIPANT_CONFIRMED,
    PARTICIPANTS_COLLECTION,
    PRIORITY_HISTORY_LIMIT,
)
from matchpoint.errors import NotFoundError, StateConflictError, ValidationError
from matchpoint.game.priority import AttendanceHistory
from matchpoint.group.services import get_membership

from .common import participant_id, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _membership_days(membership: dict[str, Any], now: datetime.datetime) -> int:
    joined_at = membership.get("joinedAt")
    if not isinstance(joined_at, datetime.datetime):
        return 0
    if joined_at.tzinfo is None:
        joined_at = joined_at.replace(tzinfo=datetime.timezone.utc)
    return max(0, (now - joined_at).days)


def _parse_override(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def get_attendance_history(
    db: Client,
    user_id: str,
    group_id: str,
    now: datetime.datetime | None = None,
    limit: int = PRIORITY_HISTORY_LIMIT,
) -> AttendanceHistory:
    """Collect a user's attendance over the group's most recent completed games.

    A confirmed participant counts as attended unless the game's recorded
    ``attendeeIds`` leave them out, in which case it is a no-show.
    """
    now = now or utcnow()
    membership = get_membership(db, group_id, user_id) or {}

    games = list(
        db.collection(GAMES_COLLECTION)
        .where(filter=firestore.FieldFilter("groupId", "==", group_id))
        .where(filter=firestore.FieldFilter("status", "==", GAME_STATUS_COMPLETED))
        .order_by("scheduledTime", direction=firestore.Query.DESCENDING)
        .limit(limit)
        .stream()
    )

    attended = 0
    no_shows = 0
    if games:
        refs = [
            db.collection(PARTICIPANTS_COLLECTION).document(
                participant_id(game.id, user_id)
            )
            for game in games
        ]
        participants = {
            snap.id: snap.to_dict() or {}
            for snap in db.get_all(refs)
            if cast("DocumentSnapshot", snap).exists
        }
        for game in games:
            record = participants.get(participant_id(game.id, user_id))
            if not record or record.get("status") != PARTICIPANT_CONFIRMED:
                continue
            attendee_ids = (game.to_dict() or {}).get("attendeeIds")
            if attendee_ids is None or user_id in attendee_ids:
                attended += 1
            else:
                no_shows += 1

    return AttendanceHistory(
        attended=attended,
        no_shows=no_shows,
        membership_days=_membership_days(membership, now),
        override=_parse_override(membership.get("priorityOverride")),
    )


def record_attendance(
    db: Client,
    game_id: str,
    attendee_ids: list[str],
    now: datetime.datetime | None = None,
) -> None:
    """Mark a game completed and store who actually showed up."""
    if not isinstance(attendee_ids, list) or not all(
        isinstance(uid, str) and uid for uid in attendee_ids
    ):
        raise ValidationError("Attendees must be a list of user IDs.")

    game_ref = db.collection(GAMES_COLLECTION).document(game_id)
    game_doc = cast("DocumentSnapshot", game_ref.get())
    if not game_doc.exists:
        raise NotFoundError("Game not found.")
    if (game_doc.to_dict() or {}).get("status") == GAME_STATUS_CANCELLED:
        raise StateConflictError("Cannot record attendance for a cancelled game.")

    game_ref.update(
        {
            "status": GAME_STATUS_COMPLETED,
            "attendeeIds": sorted(set(attendee_ids)),
            "updatedAt": now or utcnow(),
        }
    )
