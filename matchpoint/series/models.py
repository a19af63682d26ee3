"""Data models for the recurring series blueprint."""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field, fields
from typing import Any, Optional, TypedDict

from matchpoint.core.constants import DEFAULT_TIMEZONE, FREQUENCIES
from matchpoint.core.types import FirestoreDocument
from matchpoint.errors import ValidationError
from matchpoint.game.models import GameFieldsUpdate

from .schedule import resolve_timezone

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
RULE_FIELDS = (
    "frequency",
    "dayOfWeek",
    "startDate",
    "endDate",
    "timeOfDay",
    "timezone",
)


class TemplateGame(TypedDict, total=False):
    """Fields copied onto every generated instance."""

    title: str
    description: str
    location: str
    maxParticipants: int


class RecurringSeries(FirestoreDocument, total=False):
    """A recurring series document in Firestore."""

    groupId: str
    frequency: str
    dayOfWeek: Optional[int]
    startDate: str
    endDate: Optional[str]
    timeOfDay: str
    timezone: str
    templateGame: TemplateGame
    createdBy: str


def parse_date(value: Any, label: str = "Date") -> datetime.date:
    """Accept a date, a datetime or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValidationError(f"{label} must be a date in YYYY-MM-DD format.")


def parse_time_of_day(value: Any) -> datetime.time:
    """Parse an ``HH:MM`` time of day."""
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value):
        raise ValidationError("Time of day is required in HH:MM format.")
    hours, minutes = value.split(":")
    return datetime.time(int(hours), int(minutes))


def validate_template(template: Any) -> TemplateGame:
    """Check a template game and return the fields instances copy."""
    if not isinstance(template, dict):
        raise ValidationError("Template game is required.")
    update = GameFieldsUpdate.from_dict(template)
    if not update.title:
        raise ValidationError("Template game needs a title.")
    update.validate()
    return {
        "title": update.title,
        "description": update.description or "",
        "location": update.location or "",
        "maxParticipants": update.maxParticipants or 0,
    }


@dataclass
class SeriesRules:
    """Validated scheduling rules of a series."""

    frequency: str
    start_date: datetime.date
    time_of_day: datetime.time
    day_of_week: Optional[int] = None
    end_date: Optional[datetime.date] = None
    timezone: str = DEFAULT_TIMEZONE

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> SeriesRules:
        """Validate the scheduling fields of a stored or submitted series."""
        frequency = data.get("frequency")
        if frequency not in FREQUENCIES:
            raise ValidationError(
                f"Frequency must be one of: {', '.join(FREQUENCIES)}."
            )

        day_of_week = data.get("dayOfWeek")
        if day_of_week is not None and (
            isinstance(day_of_week, bool)
            or not isinstance(day_of_week, int)
            or not 0 <= day_of_week <= 6  # noqa: PLR2004
        ):
            raise ValidationError("Day of week must be between 0 (Sunday) and 6.")

        if not data.get("startDate"):
            raise ValidationError("Start date is required.")
        start_date = parse_date(data.get("startDate"), "Start date")
        end_date = None
        if data.get("endDate"):
            end_date = parse_date(data.get("endDate"), "End date")
            if end_date < start_date:
                raise ValidationError("End date cannot be before the start date.")

        timezone = data.get("timezone") or DEFAULT_TIMEZONE
        resolve_timezone(timezone)

        return cls(
            frequency=frequency,
            start_date=start_date,
            time_of_day=parse_time_of_day(data.get("timeOfDay")),
            day_of_week=day_of_week,
            end_date=end_date,
            timezone=timezone,
        )


@dataclass
class SeriesSubmission:
    """A new recurring series as submitted by a manager."""

    group_id: str
    frequency: str
    start_date: Any
    time_of_day: str
    template_game: dict[str, Any] = field(default_factory=dict)
    day_of_week: Optional[int] = None
    end_date: Any = None
    timezone: str = DEFAULT_TIMEZONE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SeriesSubmission:
        """Build a submission from an API payload.

        Template fields may be nested under ``templateGame`` or given at the
        top level of the payload.
        """
        template = data.get("templateGame")
        if not isinstance(template, dict):
            template = {
                k: data[k]
                for k in ("title", "description", "location", "maxParticipants")
                if k in data
            }
        return cls(
            group_id=data.get("groupId") or "",
            frequency=data.get("frequency") or "",
            start_date=data.get("startDate"),
            time_of_day=data.get("timeOfDay") or "",
            template_game=template,
            day_of_week=data.get("dayOfWeek"),
            end_date=data.get("endDate"),
            timezone=data.get("timezone") or DEFAULT_TIMEZONE,
        )

    def to_document(self) -> dict[str, Any]:
        """Validate and convert to the stored field layout."""
        if not self.group_id:
            raise ValidationError("Group ID is required.")
        data = {
            "groupId": self.group_id,
            "frequency": self.frequency,
            "dayOfWeek": self.day_of_week,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "timeOfDay": self.time_of_day,
            "timezone": self.timezone,
        }
        rules = SeriesRules.from_document(data)
        data["startDate"] = rules.start_date.isoformat()
        data["endDate"] = rules.end_date.isoformat() if rules.end_date else None
        data["templateGame"] = validate_template(self.template_game)
        return data


@dataclass
class SeriesUpdate:
    """Changes to an existing series; None leaves a field as it is."""

    frequency: Optional[str] = None
    dayOfWeek: Optional[int] = None
    startDate: Any = None
    endDate: Any = None
    timeOfDay: Optional[str] = None
    timezone: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    maxParticipants: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SeriesUpdate:
        """Pick the known fields out of a payload."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def game_fields(self) -> GameFieldsUpdate:
        """The part of this update that applies to game instances."""
        return GameFieldsUpdate(
            title=self.title,
            description=self.description,
            location=self.location,
            maxParticipants=self.maxParticipants,
        )

    def apply(self, current: dict[str, Any]) -> dict[str, Any]:
        """Validate this update against the stored series; return the update map."""
        updates = {
            name: getattr(self, name)
            for name in RULE_FIELDS
            if getattr(self, name) is not None
        }
        merged = {**current, **updates}
        rules = SeriesRules.from_document(merged)
        if "startDate" in updates:
            updates["startDate"] = rules.start_date.isoformat()
        if "endDate" in updates and rules.end_date:
            updates["endDate"] = rules.end_date.isoformat()

        game_fields = self.game_fields()
        if not game_fields.is_empty():
            game_fields.validate()
            template = dict(current.get("templateGame") or {})
            template.update(game_fields.to_update())
            updates["templateGame"] = template
        return updates
