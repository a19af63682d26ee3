"""Data models for the game blueprint."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, fields
from typing import Any, Optional, TypedDict

from matchpoint.core.types import FirestoreDocument
from matchpoint.errors import ValidationError


class Game(FirestoreDocument, total=False):
    """A game document in Firestore."""

    groupId: str
    title: str
    description: str
    location: str
    scheduledTime: datetime.datetime
    status: str
    maxParticipants: int
    currentParticipants: int
    createdBy: str

    # Recurring series instances
    isRecurring: bool
    seriesId: str
    instanceDate: str

    # Recorded when the game is completed
    attendeeIds: list[str]


class Participant(TypedDict, total=False):
    """A participant document, one per (gameId, userId)."""

    id: str
    gameId: str
    groupId: str
    userId: str
    status: str
    isGuest: bool
    priorityScore: int
    waitlistJoinedAt: Any
    registeredAt: Any
    promotedAt: Any
    cancelledAt: Any


class PriorityStatus(TypedDict):
    """A user's standing on a game's waitlist."""

    status: Optional[str]
    priorityScore: int
    estimatedPosition: int
    totalWaitlisted: int
    chanceOfPromotion: str


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a registration: CONFIRMED or WAITLIST."""

    status: str
    priority_score: Optional[int] = None
    created: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape returned by the API."""
        data: dict[str, Any] = {"status": self.status}
        if self.priority_score is not None:
            data["priorityScore"] = self.priority_score
        return data


@dataclass
class GameFieldsUpdate:
    """Fields a series edit may push onto its future instances.

    A field left as None is not touched.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    maxParticipants: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameFieldsUpdate:
        """Pick the instance fields out of a larger payload."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def validate(self) -> None:
        """Reject values no game could hold."""
        if self.title is not None and not str(self.title).strip():
            raise ValidationError("Title cannot be empty.")
        if self.maxParticipants is not None:
            if isinstance(self.maxParticipants, bool) or not isinstance(
                self.maxParticipants, int
            ):
                raise ValidationError("Max participants must be a whole number.")
            if self.maxParticipants < 0:
                raise ValidationError("Max participants cannot be negative.")

    def is_empty(self) -> bool:
        """True when no field was provided."""
        return not self.to_update()

    def to_update(self) -> dict[str, Any]:
        """Firestore update map with only the provided fields."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


def parse_datetime(value: Any, label: str = "Date") -> datetime.datetime:
    """Accept a datetime or an ISO 8601 string; naive values are taken as UTC."""
    parsed = value if isinstance(value, datetime.datetime) else None
    if parsed is None and isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.datetime.fromisoformat(text)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError(f"{label} must be an ISO 8601 date and time.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


@dataclass
class GameSubmission:
    """A one-off game a manager creates directly."""

    group_id: str
    title: str
    scheduled_time: Any
    description: str = ""
    location: str = ""
    max_participants: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameSubmission:
        """Read the camelCase API payload."""
        return cls(
            group_id=data.get("groupId") or "",
            title=data.get("title") or "",
            scheduled_time=data.get("scheduledTime"),
            description=data.get("description") or "",
            location=data.get("location") or "",
            max_participants=data.get("maxParticipants") or 0,
        )

    def to_document(self) -> dict[str, Any]:
        """Validate and return the fields stored on a new game."""
        if not self.group_id:
            raise ValidationError("Group ID is required.")
        fields_update = GameFieldsUpdate(
            title=self.title,
            description=self.description,
            location=self.location,
            maxParticipants=self.max_participants,
        )
        if not self.title:
            raise ValidationError("Title is required.")
        fields_update.validate()
        return {
            "groupId": self.group_id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "scheduledTime": parse_datetime(self.scheduled_time, "Scheduled time"),
            "maxParticipants": self.max_participants,
        }
