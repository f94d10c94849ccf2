"""
Cancellable debouncing for async calls.

Every call gets its own CancellationToken. Issuing a new call cancels the
previous token; the superseded caller resumes right away with CANCELLED
instead of an exception, so it can return without logging anything.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class Cancelled:
    """Outcome of a debounced call that was superseded before it fired."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CANCELLED"

    def __bool__(self) -> bool:
        return False


CANCELLED = Cancelled()


def is_cancelled(result: Any) -> bool:
    return result is CANCELLED


class CancellationToken:
    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, delay: float) -> bool:
        """Wait for delay seconds. Returns False if cancelled first."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return not self.cancelled
        return False


class Debouncer:
    """
    Collapse a burst of calls into one call of the latest arguments.

    Usage:
        debouncer = Debouncer(0.3)
        result = await debouncer.call(load, day)
        if is_cancelled(result):
            return
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._token: CancellationToken | None = None

    @property
    def pending(self) -> bool:
        return self._token is not None and not self._token.cancelled

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        self.cancel()
        token = self._token = CancellationToken()

        fire = await token.sleep(self.delay)
        if not fire:
            logger.debug("Debounced call superseded")
            return CANCELLED

        if self._token is token:
            self._token = None
        return await func(*args)

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
