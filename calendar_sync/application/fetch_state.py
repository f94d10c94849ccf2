"""
Generation / enabled state of the fetch orchestrator.

The two values are one tagged variant, Active(generation) | Disabled(generation),
so "fetching while disabled" cannot be expressed. Transitions go through a lock:
the compare-and-discard check must stay atomic if completion callbacks run on
worker threads.

Generation advances on every new fetch attempt, every disable and on close.
"""
import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class Active:
    generation: int


@dataclass(frozen=True)
class Disabled:
    generation: int


FetchState = Active | Disabled


class FetchStateMachine:
    def __init__(self, enabled: bool = True):
        self._lock = threading.Lock()
        self._state: FetchState = Active(0) if enabled else Disabled(0)

    @property
    def state(self) -> FetchState:
        with self._lock:
            return self._state

    @property
    def enabled(self) -> bool:
        return isinstance(self.state, Active)

    @property
    def generation(self) -> int:
        return self.state.generation

    def advance(self) -> int | None:
        """Start a new attempt. Returns its generation, or None while disabled."""
        with self._lock:
            if isinstance(self._state, Disabled):
                return None
            self._state = Active(self._state.generation + 1)
            return self._state.generation

    def disable(self) -> None:
        with self._lock:
            self._state = Disabled(self._state.generation + 1)

    def enable(self) -> bool:
        """Returns True if this was a Disabled -> Active transition."""
        with self._lock:
            if isinstance(self._state, Active):
                return False
            self._state = Active(self._state.generation)
            return True

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return isinstance(self._state, Active) and self._state.generation == generation
