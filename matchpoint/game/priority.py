"""Waitlist priority scoring.

Everything in this module is pure: the caller fetches the inputs (see
``matchpoint.game.services.history``) and passes them in.
"""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from matchpoint.core.constants import (
    PRIORITY_DEFAULT_SCORE,
    PRIORITY_HISTORY_LIMIT,
    PRIORITY_MAX_SCORE,
    PRIORITY_MIN_SCORE,
    PRIORITY_RELIABILITY_WEIGHT,
    PRIORITY_SENIORITY_SATURATION_DAYS,
    PRIORITY_SENIORITY_WEIGHT,
)

# Sorts after any real join time
_LATEST = datetime.datetime.max.replace(tzinfo=datetime.timezone.utc)


@dataclass(frozen=True)
class AttendanceHistory:
    """A user's record within one group at the moment priority is needed."""

    attended: int = 0
    no_shows: int = 0
    membership_days: int = 0
    override: Optional[int] = None

    @property
    def has_history(self) -> bool:
        """Whether the user ever showed up or failed to."""
        return self.attended + self.no_shows > 0


@dataclass(frozen=True)
class PriorityWeights:
    """Tunable constants of the scoring formula."""

    reliability: float = PRIORITY_RELIABILITY_WEIGHT
    seniority: float = PRIORITY_SENIORITY_WEIGHT
    saturation_days: int = PRIORITY_SENIORITY_SATURATION_DAYS
    default_score: int = PRIORITY_DEFAULT_SCORE
    history_limit: int = PRIORITY_HISTORY_LIMIT

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> PriorityWeights:
        """Build weights from a Flask config mapping."""
        return cls(
            reliability=float(
                config.get("PRIORITY_RELIABILITY_WEIGHT", PRIORITY_RELIABILITY_WEIGHT)
            ),
            seniority=float(
                config.get("PRIORITY_SENIORITY_WEIGHT", PRIORITY_SENIORITY_WEIGHT)
            ),
            saturation_days=int(
                config.get(
                    "PRIORITY_SENIORITY_SATURATION_DAYS",
                    PRIORITY_SENIORITY_SATURATION_DAYS,
                )
            ),
            default_score=int(
                config.get("PRIORITY_DEFAULT_SCORE", PRIORITY_DEFAULT_SCORE)
            ),
            history_limit=int(
                config.get("PRIORITY_HISTORY_LIMIT", PRIORITY_HISTORY_LIMIT)
            ),
        )


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into [0, 100]."""
    return max(PRIORITY_MIN_SCORE, min(PRIORITY_MAX_SCORE, int(round(value))))


def seniority_ratio(membership_days: int, saturation_days: int) -> float:
    """Saturating 0..1 term: half credit at ``saturation_days``."""
    days = max(0, membership_days)
    if saturation_days <= 0:
        return 1.0 if days > 0 else 0.0
    return days / (days + saturation_days)


def calculate_priority_score(
    history: AttendanceHistory, weights: PriorityWeights | None = None
) -> int:
    """Compute a registrant's waitlist priority in [0, 100].

    A manager override wins outright. A user with no attendance record gets
    the neutral default. Otherwise attendance reliability and group seniority
    are blended with the configured weights.
    """
    weights = weights or PriorityWeights()

    if history.override is not None:
        return clamp_score(history.override)

    if not history.has_history:
        return clamp_score(weights.default_score)

    reliability = history.attended / (history.attended + history.no_shows)
    seniority = seniority_ratio(history.membership_days, weights.saturation_days)
    raw = 100 * (weights.reliability * reliability + weights.seniority * seniority)
    return clamp_score(raw)


def waitlist_sort_key(participant: Mapping[str, Any]) -> tuple[int, Any, str]:
    """Order waitlisted participants: score desc, then earliest join, then uid."""
    joined_at = participant.get("waitlistJoinedAt")
    if not isinstance(joined_at, datetime.datetime):
        joined_at = _LATEST
    elif joined_at.tzinfo is None:
        joined_at = joined_at.replace(tzinfo=datetime.timezone.utc)
    return (
        -int(participant.get("priorityScore") or 0),
        joined_at,
        str(participant.get("userId", "")),
    )
