"""
Calendar fetch orchestrator - the only stateful part of calendar sync.

Flow of one fetch attempt:

    Debouncing -> Fetching(primary) -> Fetching(secondary) -> Published
    any state  -> Superseded   (newer attempt, disable or close; no side effects)
    Fetching   -> Failed       (logged, is_loading cleared if still current,
                                previously published state kept)

Primary: pending + completed tasks for the whole window.
Secondary: plant projections for the tasks of the selected day.
State is published only if the attempt's generation is still current after
each phase, so a slow plant lookup cannot overwrite a newer fetch.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Callable, Sequence
from zoneinfo import ZoneInfo

from calendar_sync.application.debounce import Debouncer, is_cancelled
from calendar_sync.application.fetch_state import FetchStateMachine
from calendar_sync.application.plant_projection import PlantProjectionCache
from calendar_sync.application.ports import TaskRepository
from calendar_sync.domain.aggregation import DayAggregate, aggregate, plant_ids_for_tasks
from calendar_sync.domain.task import PlantProjection, Task
from calendar_sync.domain.window import FetchWindow, compute_window

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class FetchOutcome(enum.Enum):
    PUBLISHED = "published"
    SUPERSEDED = "superseded"
    FAILED = "failed"
    SKIPPED = "skipped"  # disabled when the attempt started


@dataclass(frozen=True)
class CalendarSnapshot:
    """Everything the calendar view reads. Replaced wholesale, never patched."""
    selected_date: date
    pending: tuple[Task, ...] = ()
    completed: tuple[Task, ...] = ()
    task_counts: dict[str, int] = field(default_factory=dict)
    day_pending_tasks: tuple[Task, ...] = ()
    day_completed_tasks: tuple[Task, ...] = ()
    plant_map: dict[str, PlantProjection] = field(default_factory=dict)
    is_loading: bool = False


Listener = Callable[[CalendarSnapshot], Any]


class CalendarFetchOrchestrator:
    """
    Debounced, generation-guarded task fetching for one calendar view.

    Args:
        task_repository: source of pending/completed tasks
        plant_cache: resolves plant projections for the selected day
        timezone: calendar zone; windows and day boundaries are computed in it
        debounce_seconds: selection changes closer than this collapse into one fetch
        week_start: first weekday of a calendar week (Monday=0)
        weeks_back / weeks_forward: window size around the selected week
        selected_date: initial selection (today in timezone by default)
        enabled: whether the view is visible
    """

    def __init__(
        self,
        task_repository: TaskRepository,
        plant_cache: PlantProjectionCache,
        *,
        timezone: str = "UTC",
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        week_start: int = 0,
        weeks_back: int = 2,
        weeks_forward: int = 2,
        selected_date: date | None = None,
        enabled: bool = True,
    ):
        self.task_repository = task_repository
        self.plant_cache = plant_cache
        self.zone = ZoneInfo(timezone)
        self.week_start = week_start
        self.weeks_back = weeks_back
        self.weeks_forward = weeks_forward

        self._state = FetchStateMachine(enabled=enabled)
        self._debouncer = Debouncer(debounce_seconds)
        self._listeners: list[Listener] = []
        self._scheduled: asyncio.Task | None = None
        self._closed = False

        if selected_date is None:
            selected_date = datetime.now(tz=self.zone).date()
        self._snapshot = CalendarSnapshot(selected_date=_as_date(selected_date), is_loading=enabled)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> CalendarSnapshot:
        return self._snapshot

    @property
    def selected_date(self) -> date:
        return self._snapshot.selected_date

    @property
    def day_pending_tasks(self) -> tuple[Task, ...]:
        return self._snapshot.day_pending_tasks

    @property
    def day_completed_tasks(self) -> tuple[Task, ...]:
        return self._snapshot.day_completed_tasks

    @property
    def task_counts(self) -> dict[str, int]:
        return self._snapshot.task_counts

    @property
    def plant_map(self) -> dict[str, PlantProjection]:
        return self._snapshot.plant_map

    @property
    def is_loading(self) -> bool:
        return self._snapshot.is_loading

    @property
    def enabled(self) -> bool:
        return self._state.enabled

    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def window(self) -> FetchWindow:
        return compute_window(
            self.selected_date, self.zone,
            week_start=self.week_start,
            weeks_back=self.weeks_back,
            weeks_forward=self.weeks_forward,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task | None:
        """Schedule the initial debounced fetch. Must run inside an event loop."""
        return self._schedule()

    def select_date(self, day: date | datetime) -> asyncio.Task | None:
        """
        Change the selection. Day views are re-derived from the tasks already
        fetched, and a debounced fetch for the new window is scheduled.
        """
        day = _as_date(day)
        snap = self._snapshot
        derived = aggregate(snap.pending, snap.completed, day, self.zone)
        self._publish(replace(
            snap,
            selected_date=day,
            day_pending_tasks=derived.day_pending,
            day_completed_tasks=derived.day_completed,
        ))
        return self._schedule()

    def set_enabled(self, enabled: bool) -> asyncio.Task | None:
        if self._closed:
            return None
        if not enabled:
            if self._state.enabled:
                self._state.disable()
                self._debouncer.cancel()
                logger.debug("Calendar fetching disabled at generation %d", self._state.generation)
            self._set_loading(False)
            return None

        if self._state.enable():
            return self._schedule()
        return None

    async def refetch(self) -> FetchOutcome:
        """Fetch immediately, skipping the debounce delay."""
        generation = self._state.advance()
        if generation is None:
            self._set_loading(False)
            return FetchOutcome.SKIPPED
        return await self._load(generation)

    def close(self) -> None:
        """Tear down: invalidate in-flight work and drop listeners."""
        self._closed = True
        self._state.disable()
        self._debouncer.cancel()
        self._set_loading(False)
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _schedule(self) -> asyncio.Task | None:
        # advancing here invalidates any in-flight fetch for the old selection
        generation = self._state.advance()
        if generation is None:
            return None
        self._scheduled = asyncio.ensure_future(self._debounced_load(generation))
        return self._scheduled

    async def _debounced_load(self, generation: int) -> Any:
        result = await self._debouncer.call(self._load, generation)
        if is_cancelled(result):
            logger.debug("Fetch for generation %d cancelled before it fired", generation)
        return result

    async def _load(self, generation: int) -> FetchOutcome:
        if not self._state.is_current(generation):
            return FetchOutcome.SUPERSEDED

        selected = self.selected_date
        window = compute_window(
            selected, self.zone,
            week_start=self.week_start,
            weeks_back=self.weeks_back,
            weeks_forward=self.weeks_forward,
        )
        self._set_loading(True)

        try:
            pending, completed = await asyncio.gather(
                self.task_repository.get_tasks_by_date_range(window.start, window.end),
                self.task_repository.get_completed_tasks_by_date_range(window.start, window.end),
            )
            if not self._state.is_current(generation):
                logger.debug("Discarding tasks of superseded generation %d", generation)
                return FetchOutcome.SUPERSEDED

            derived = aggregate(pending, completed, selected, self.zone)
            plant_map = await self.plant_cache.project(
                plant_ids_for_tasks([*derived.day_pending, *derived.day_completed])
            )
            if not self._state.is_current(generation):
                logger.debug("Discarding plants of superseded generation %d", generation)
                return FetchOutcome.SUPERSEDED
        except Exception:
            if self._state.is_current(generation):
                logger.warning("Failed to load calendar data for %s", window, exc_info=True)
                self._set_loading(False)
            return FetchOutcome.FAILED

        self._apply(selected, pending, completed, derived, plant_map)
        return FetchOutcome.PUBLISHED

    def _apply(
        self,
        selected: date,
        pending: Sequence[Task],
        completed: Sequence[Task],
        derived: DayAggregate,
        plant_map: dict[str, PlantProjection],
    ) -> None:
        snap = CalendarSnapshot(
            selected_date=selected,
            pending=tuple(pending),
            completed=tuple(completed),
            task_counts=derived.counts,
            day_pending_tasks=derived.day_pending,
            day_completed_tasks=derived.day_completed,
            plant_map=plant_map,
            is_loading=False,
        )
        self._publish(snap)

    def _set_loading(self, loading: bool) -> None:
        if self._snapshot.is_loading != loading:
            self._publish(replace(self._snapshot, is_loading=loading))

    def _publish(self, snapshot: CalendarSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Calendar listener failed")


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
