"""Group membership and role lookups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from matchpoint.core.constants import GROUP_MEMBERS_COLLECTION, MANAGER_ROLES

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def membership_id(group_id: str, user_id: str) -> str:
    """Document id of a membership record."""
    return f"{group_id}_{user_id}"


def get_membership(db: Client, group_id: str, user_id: str) -> dict[str, Any] | None:
    """Fetch a user's membership record in a group, if any."""
    if not group_id or not user_id:
        return None
    ref = db.collection(GROUP_MEMBERS_COLLECTION).document(
        membership_id(group_id, user_id)
    )
    doc = cast("DocumentSnapshot", ref.get())
    if not doc.exists:
        return None
    return doc.to_dict() or {}


def is_group_member(db: Client, user_id: str, group_id: str) -> bool:
    """Check whether a user belongs to a group."""
    return get_membership(db, group_id, user_id) is not None


def can_manage_games(db: Client, group_id: str, user_id: str) -> bool:
    """Admins and organizers of a group can manage its games."""
    membership = get_membership(db, group_id, user_id)
    if membership is None:
        return False
    return membership.get("role") in MANAGER_ROLES
