"""
Ephemeral occurrence ids.

A recurring series produces virtual tasks before they are stored. Such a task
carries an id of the form

    series:<series_id>:<yyyy-MM-dd>

or is flagged with metadata["ephemeral"] = True. Exactly three colon-delimited
segments are valid; any other shape is malformed and decodes to None.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from calendar_sync.domain.task_ref import ConcreteRef, OccurrenceRef, TaskRef

logger = logging.getLogger(__name__)

SERIES_PREFIX = "series:"
_SEPARATOR = ":"


class OccurrenceIdError(ValueError):
    pass


@dataclass(frozen=True)
class OccurrenceId:
    series_id: str
    local_date: str


def _flagged(task_id: str, metadata: Mapping[str, Any] | None) -> bool:
    return task_id.startswith(SERIES_PREFIX) or (metadata or {}).get("ephemeral") is True


def is_ephemeral(task) -> bool:
    return _flagged(task.id, getattr(task, "metadata", None))


def decode(task_id: str) -> OccurrenceId | None:
    """Split an ephemeral id into series id and local date, None if malformed."""
    if not task_id.startswith(SERIES_PREFIX):
        return None
    parts = task_id.split(_SEPARATOR)
    if len(parts) != 3:
        return None
    return OccurrenceId(series_id=parts[1], local_date=parts[2])


def encode(series_id: str, local_date: date | str) -> str:
    if _SEPARATOR in series_id:
        # a colon would shift the segments and decode to the wrong series
        raise OccurrenceIdError(f"series id must not contain '{_SEPARATOR}': {series_id!r}")
    if isinstance(local_date, date):
        local_date = local_date.isoformat()
    return f"{SERIES_PREFIX}{series_id}{_SEPARATOR}{local_date}"


def task_ref_for(
    task_id: str,
    metadata: Mapping[str, Any] | None = None,
    timezone: str | None = None,
) -> TaskRef:
    """
    Resolve a task id into a TaskRef.

    Ephemeral ids that cannot be decoded (wrong segment count, unparseable
    date) fall back to a ConcreteRef so completion still goes through by id.
    """
    if not _flagged(task_id, metadata):
        return ConcreteRef(task_id)

    decoded = decode(task_id)
    if decoded is not None:
        try:
            local_date = date.fromisoformat(decoded.local_date)
        except ValueError:
            local_date = None
        if local_date is not None:
            return OccurrenceRef(
                series_id=decoded.series_id,
                local_date=local_date,
                timezone=timezone,
            )

    logger.debug("Malformed occurrence id %r resolved to a concrete ref", task_id)
    return ConcreteRef(task_id)
