"""Service layer for game registration and waitlists."""

from .history import get_attendance_history, record_attendance
from .lifecycle import (
    create_game,
    delete_game,
    get_game,
    list_group_games,
    update_game,
    update_game_status,
)
from .registration import cancel_registration, register_participant, update_game_capacity
from .waitlist import (
    backfill_after_capacity_change,
    get_user_priority_status,
    process_waitlist,
    release_waitlist,
)

__all__ = [
    "backfill_after_capacity_change",
    "cancel_registration",
    "create_game",
    "delete_game",
    "get_attendance_history",
    "get_game",
    "get_user_priority_status",
    "list_group_games",
    "process_waitlist",
    "record_attendance",
    "register_participant",
    "release_waitlist",
    "update_game",
    "update_game_capacity",
    "update_game_status",
]
