"""Generation-tagged run state shared between a pipeline and its observers."""

from __future__ import annotations

from typing import Callable, Generic, List, Optional, TypeVar

from loguru import logger

from models.base import PipelineRun

RunT = TypeVar("RunT", bound=PipelineRun)
Observer = Callable[[RunT], None]


class RunChannel(Generic[RunT]):
    """
    Holds the current run of one pipeline and fans its changes out to observers.

    Every ``begin`` starts a new generation and replaces the previous run
    outright.  Writes are tagged with the generation they were started under
    and dropped once a newer run has begun, so completions of an abandoned
    run never reach the current state or the observers.  An observer that
    raises is logged and skipped; the pipeline keeps running.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._state: Optional[RunT] = None
        self._observers: List[Observer] = []

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> Optional[RunT]:
        """The current run, or None before the first run starts."""
        return self._state

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer`` for snapshots of every accepted write; returns an unsubscribe callable."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def begin(self, run: RunT) -> int:
        """Make ``run`` the current run and return its generation."""
        self._generation += 1
        self._state = run
        logger.debug(f"{type(run).__name__}: generation {self._generation} started ({run.status.value})")
        self._notify(run)
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def commit(self, generation: int, run: RunT) -> bool:
        """
        Publish ``run`` as the state of ``generation``.

        Returns:
            False (and publishes nothing) when ``generation`` has been superseded.
        """
        if not self.is_current(generation):
            logger.debug(f"Discarding stale write from generation {generation} (current={self._generation})")
            return False
        self._state = run
        self._notify(run)
        return True

    def _notify(self, run: RunT) -> None:
        for observer in list(self._observers):
            try:
                observer(run.model_copy(deep=True))
            except Exception:
                logger.exception(f"Observer {observer!r} failed on {type(run).__name__} ({run.status.value})")
