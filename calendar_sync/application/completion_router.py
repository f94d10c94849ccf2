"""
Completion router - sends a completion to the right backend operation.

OccurrenceRef -> complete_recurring_instance(series_id, local midnight in task tz)
ConcreteRef   -> complete_task(id)

Malformed ephemeral ids resolve to ConcreteRef when the Task is built and are
warned about here, when they are actually completed.
Collaborator errors propagate unchanged; no retry, no refetch.
"""
import logging

from calendar_sync.application.ports import CompletionService
from calendar_sync.domain.occurrence_id import is_ephemeral
from calendar_sync.domain.task import Task
from calendar_sync.domain.task_ref import OccurrenceRef, TaskRef

logger = logging.getLogger(__name__)


class CompletionRouter:
    def __init__(self, service: CompletionService, default_timezone: str = "UTC"):
        self.service = service
        self.default_timezone = default_timezone

    async def complete(self, task: Task) -> TaskRef:
        ref = task.ref
        if isinstance(ref, OccurrenceRef):
            occurrence = ref.occurrence_instant(self.default_timezone)
            logger.debug("Completing occurrence %s of series %s", ref.local_date, ref.series_id)
            await self.service.complete_recurring_instance(ref.series_id, occurrence)
        else:
            if is_ephemeral(task):
                logger.warning("Malformed occurrence id %r, falling back to direct completion", task.id)
            await self.service.complete_task(ref.task_id)
        return ref
