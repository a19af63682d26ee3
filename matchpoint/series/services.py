"""Service functions for recurring series and their game instances."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from matchpoint.core.constants import (
    GAME_STATUS_UPCOMING,
    GAMES_COLLECTION,
    PARTICIPANTS_COLLECTION,
    SERIES_COLLECTION,
    SERIES_INSTANCE_LIMIT,
    SERIES_LIST_LIMIT,
)
from matchpoint.core.transactions import TransactionSettings
from matchpoint.errors import NotFoundError, ValidationError
from matchpoint.game.models import Game, GameFieldsUpdate
from matchpoint.game.services import backfill_after_capacity_change
from matchpoint.game.services.common import capacity_grew, commit_in_chunks, utcnow

from .models import (
    RecurringSeries,
    SeriesRules,
    SeriesSubmission,
    SeriesUpdate,
    parse_date,
    validate_template,
)
from .schedule import calculate_recurring_dates, scheduled_time

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def instance_id(series_id: str, instance_date: datetime.date) -> str:
    """Document id of the game generated for a series on a date."""
    return f"{series_id}_{instance_date.isoformat()}"


def _series_ref(db: Client, series_id: str) -> DocumentReference:
    return db.collection(SERIES_COLLECTION).document(series_id)


def create_series(
    db: Client,
    submission: SeriesSubmission,
    created_by: str,
    now: datetime.datetime | None = None,
) -> RecurringSeries:
    """Validate and store a new recurring series."""
    data = submission.to_document()
    now = now or utcnow()
    ref = db.collection(SERIES_COLLECTION).document()
    data.update(
        {
            "id": ref.id,
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
        }
    )
    ref.set(data)
    logging.info(f"Recurring series {ref.id} created for group {data['groupId']}.")
    return cast("RecurringSeries", data)


def get_series(db: Client, series_id: str) -> RecurringSeries:
    """Fetch a series or raise NotFoundError."""
    if not series_id:
        raise ValidationError("Series ID is required.")
    snapshot = cast("DocumentSnapshot", _series_ref(db, series_id).get())
    if not snapshot.exists:
        raise NotFoundError("Recurring series not found.")
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return cast("RecurringSeries", data)


def list_group_series(
    db: Client, group_id: str, limit: int = SERIES_LIST_LIMIT
) -> list[RecurringSeries]:
    """A group's series, newest first."""
    if not group_id:
        raise ValidationError("Group ID is required.")
    docs = (
        db.collection(SERIES_COLLECTION)
        .where(filter=firestore.FieldFilter("groupId", "==", group_id))
        .order_by("createdAt", direction=firestore.Query.DESCENDING)
        .limit(limit)
        .stream()
    )
    result = []
    for doc in docs:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        result.append(cast("RecurringSeries", data))
    return result


def update_series(
    db: Client,
    series_id: str,
    update: SeriesUpdate,
    now: datetime.datetime | None = None,
) -> RecurringSeries:
    """Apply a validated update to a series and return the stored result."""
    current = get_series(db, series_id)
    changes = update.apply(dict(current))
    if changes:
        changes["updatedAt"] = now or utcnow()
        _series_ref(db, series_id).update(changes)
    return get_series(db, series_id)


def get_series_instances(
    db: Client,
    series_id: str,
    include_completed: bool = False,
    limit: int = SERIES_INSTANCE_LIMIT,
    now: datetime.datetime | None = None,
) -> list[Game]:
    """Instances of a series by scheduled time, upcoming only by default."""
    query = db.collection(GAMES_COLLECTION).where(
        filter=firestore.FieldFilter("seriesId", "==", series_id)
    )
    if not include_completed:
        query = query.where(
            filter=firestore.FieldFilter("scheduledTime", ">=", now or utcnow())
        )
    docs = query.order_by("scheduledTime").limit(limit).stream()

    instances = []
    for doc in docs:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        instances.append(cast("Game", data))
    return instances


def _existing_instance_dates(db: Client, series_id: str) -> set[str]:
    docs = (
        db.collection(GAMES_COLLECTION)
        .where(filter=firestore.FieldFilter("seriesId", "==", series_id))
        .stream()
    )
    return {(doc.to_dict() or {}).get("instanceDate", "") for doc in docs}


def generate_series_instances(  # noqa: PLR0913
    db: Client,
    series_id: str,
    start_date: Any,
    end_date: Any,
    created_by: str,
    template_game: dict[str, Any] | None = None,
    now: datetime.datetime | None = None,
) -> list[Game]:
    """Materialize game instances of a series for a date range.

    Dates that already have an instance are skipped, so running this again
    over an overlapping range only creates the missing games. All input is
    validated before anything is written.
    """
    if not start_date:
        raise ValidationError("Start date is required.")
    if not end_date:
        raise ValidationError("End date is required.")
    window_start = parse_date(start_date, "Start date")
    window_end = parse_date(end_date, "End date")

    series = get_series(db, series_id)
    rules = SeriesRules.from_document(dict(series))
    template = validate_template(
        template_game if template_game is not None else series.get("templateGame")
    )
    dates = calculate_recurring_dates(
        rules.frequency,
        rules.start_date,
        window_start,
        window_end,
        day_of_week=rules.day_of_week,
        series_end=rules.end_date,
    )

    existing = _existing_instance_dates(db, series_id)
    now = now or utcnow()
    games_ref = db.collection(GAMES_COLLECTION)
    created: list[Game] = []
    operations = []
    for day in dates:
        if day.isoformat() in existing:
            continue
        doc_id = instance_id(series_id, day)
        game: Game = {
            "id": doc_id,
            "groupId": series.get("groupId", ""),
            "title": template["title"],
            "description": template["description"],
            "location": template["location"],
            "scheduledTime": scheduled_time(day, rules.time_of_day, rules.timezone),
            "status": GAME_STATUS_UPCOMING,
            "maxParticipants": template["maxParticipants"],
            "currentParticipants": 0,
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
            "isRecurring": True,
            "seriesId": series_id,
            "instanceDate": day.isoformat(),
        }
        operations.append(("create", games_ref.document(doc_id), game))
        created.append(game)

    commit_in_chunks(db, operations)
    logging.info(
        f"Generated {len(created)} instance(s) for series {series_id} "
        f"between {window_start} and {window_end}."
    )
    return created


def _future_upcoming_instances(
    db: Client, series_id: str, now: datetime.datetime
) -> list[Any]:
    docs = (
        db.collection(GAMES_COLLECTION)
        .where(filter=firestore.FieldFilter("seriesId", "==", series_id))
        .where(filter=firestore.FieldFilter("scheduledTime", ">", now))
        .stream()
    )
    return [
        doc
        for doc in docs
        if (doc.to_dict() or {}).get("status") == GAME_STATUS_UPCOMING
    ]


def update_future_series_instances(
    db: Client,
    series_id: str,
    fields: GameFieldsUpdate,
    settings: TransactionSettings | None = None,
    now: datetime.datetime | None = None,
) -> int:
    """Copy game field changes onto the series' upcoming instances.

    Lowering ``maxParticipants`` leaves existing participants in place;
    raising or removing it promotes from each instance's waitlist.
    """
    fields.validate()
    if fields.is_empty():
        return 0
    now = now or utcnow()
    changes = fields.to_update()
    changes["updatedAt"] = now

    new_max = fields.maxParticipants
    operations = []
    raised = []
    for doc in _future_upcoming_instances(db, series_id, now):
        operations.append(("update", doc.reference, changes))
        previous = int((doc.to_dict() or {}).get("maxParticipants") or 0)
        if new_max is not None and capacity_grew(previous, new_max):
            raised.append(doc.id)

    commit_in_chunks(db, operations)
    logging.info(f"Updated {len(operations)} future instance(s) of series {series_id}.")

    for game_id in raised:
        backfill_after_capacity_change(
            db, game_id, new_max, settings=settings, now=now
        )
    return len(operations)


def delete_recurring_series(
    db: Client,
    series_id: str,
    cascade_delete_instances: bool = False,
    now: datetime.datetime | None = None,
) -> int:
    """Delete a series, optionally with its upcoming instances.

    Past, in-progress, completed and cancelled instances are always kept.
    Returns the number of instances deleted.
    """
    get_series(db, series_id)
    now = now or utcnow()

    operations: list[tuple[str, Any, Any]] = []
    deleted = 0
    if cascade_delete_instances:
        for doc in _future_upcoming_instances(db, series_id, now):
            participants = (
                db.collection(PARTICIPANTS_COLLECTION)
                .where(filter=firestore.FieldFilter("gameId", "==", doc.id))
                .stream()
            )
            operations.extend(("delete", p.reference, None) for p in participants)
            operations.append(("delete", doc.reference, None))
            deleted += 1

    operations.append(("delete", _series_ref(db, series_id), None))
    commit_in_chunks(db, operations)
    logging.info(f"Deleted recurring series {series_id} and {deleted} instance(s).")
    return deleted
