"""Bounded-retry wrapper around Firestore transactions."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from matchpoint.core.constants import (
    TRANSACTION_MAX_ATTEMPTS,
    TRANSACTION_TIMEOUT_SECONDS,
)
from matchpoint.errors import PersistenceError, StateConflictError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

T = TypeVar("T")


@dataclass(frozen=True)
class TransactionSettings:
    """Retry and deadline policy for one unit of work."""

    max_attempts: int = TRANSACTION_MAX_ATTEMPTS
    timeout: float | None = TRANSACTION_TIMEOUT_SECONDS

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TransactionSettings:
        """Build settings from a Flask config mapping."""
        timeout = config.get("TRANSACTION_TIMEOUT_SECONDS", TRANSACTION_TIMEOUT_SECONDS)
        return cls(
            max_attempts=int(
                config.get("TRANSACTION_MAX_ATTEMPTS", TRANSACTION_MAX_ATTEMPTS)
            ),
            timeout=float(timeout) if timeout else None,
        )


def _is_lost_race(error: ValueError) -> bool:
    """Check whether ``firestore.transactional`` gave up because of contention."""
    return isinstance(error.__cause__, google_exceptions.Aborted)


def run_in_transaction(
    db: Client,
    func: Callable[..., T],
    *args: Any,
    settings: TransactionSettings | None = None,
    description: str = "transaction",
    **kwargs: Any,
) -> T:
    """Run ``func(transaction, *args, **kwargs)`` atomically.

    Each attempt is a single Firestore transaction, so nothing is written
    unless an attempt commits. Contention is retried up to
    ``settings.max_attempts`` times as long as the deadline has not passed;
    after that a StateConflictError is raised. Any other Firestore failure is
    surfaced at once as a PersistenceError.
    """
    settings = settings or TransactionSettings()
    deadline = (
        time.monotonic() + settings.timeout if settings.timeout is not None else None
    )

    for attempt in range(1, settings.max_attempts + 1):
        if deadline is not None and time.monotonic() > deadline:
            logging.warning(f"{description} timed out after {attempt - 1} attempt(s).")
            raise StateConflictError(f"Timed out during {description}.")

        transaction = db.transaction(max_attempts=1)
        try:
            return firestore.transactional(func)(transaction, *args, **kwargs)
        except google_exceptions.Aborted:
            pass
        except ValueError as e:
            if not _is_lost_race(e):
                raise
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Firestore error during {description}: {e}")
            raise PersistenceError() from e

        logging.warning(
            f"{description} lost a concurrent update "
            f"(attempt {attempt}/{settings.max_attempts})."
        )

    raise StateConflictError(
        f"Could not complete {description} after {settings.max_attempts} attempts."
    )
