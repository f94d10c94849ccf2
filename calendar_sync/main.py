"""
Calendar sync wiring - builds a CalendarSession on top of the SQL collaborators
"""
import logging

from sqlalchemy.orm import sessionmaker

from calendar_sync.application.calendar_session import CalendarSession
from calendar_sync.application.completion_router import CompletionRouter
from calendar_sync.application.fetch_orchestrator import CalendarFetchOrchestrator
from calendar_sync.application.plant_projection import PlantProjectionCache
from calendar_sync.config import Settings, get_settings
from calendar_sync.infrastructure.db.repositories import (
    OccurrenceExpander,
    SqlCompletionService,
    SqlPlantRepository,
    SqlTaskRepository,
)
from calendar_sync.infrastructure.db.session import get_session_factory

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def build_calendar_session(
    settings: Settings | None = None,
    *,
    session_factory: sessionmaker | None = None,
    expander: OccurrenceExpander | None = None,
    enabled: bool = True,
) -> CalendarSession:
    """
    Application factory for one calendar view.

    Args:
        settings: defaults to get_settings()
        session_factory: defaults to the engine built from DATABASE_URL
        expander: source of ephemeral series occurrences (none by default)
        enabled: whether the view starts visible
    """
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()

    orchestrator = CalendarFetchOrchestrator(
        SqlTaskRepository(session_factory, expander=expander),
        PlantProjectionCache(SqlPlantRepository(session_factory)),
        timezone=settings.TIMEZONE,
        debounce_seconds=settings.debounce_seconds,
        week_start=settings.WEEK_START,
        weeks_back=settings.WINDOW_WEEKS_BACK,
        weeks_forward=settings.WINDOW_WEEKS_FORWARD,
        enabled=enabled,
    )
    router = CompletionRouter(
        SqlCompletionService(session_factory),
        default_timezone=settings.DEFAULT_OCCURRENCE_TIMEZONE,
    )
    logger.info(
        "Calendar session ready: tz=%s, debounce=%dms, window=-%d/+%d weeks",
        settings.TIMEZONE, settings.FETCH_DEBOUNCE_MS,
        settings.WINDOW_WEEKS_BACK, settings.WINDOW_WEEKS_FORWARD,
    )
    return CalendarSession(orchestrator, router)
