"""Linear state machine shared by the pipeline run objects."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple

from pydantic import BaseModel


class PipelineRun(BaseModel):
    """
    Base for AuditRun, ComparativeRun and FactCheckRun.

    Subclasses declare a ``status`` field (a str Enum that has ``idle`` and
    ``error`` members) and a ``TRANSITIONS`` table listing the statuses each
    status may move to.  Runs only ever move forward through that table.
    """

    TRANSITIONS: ClassVar[Dict[str, Tuple[str, ...]]] = {}
    TERMINAL: ClassVar[Tuple[str, ...]] = ("complete", "error")

    error: Optional[str] = None

    def transition_to(self, status: Enum) -> None:
        current = self.status.value  # type: ignore[attr-defined]
        if status.value not in self.TRANSITIONS.get(current, ()):
            raise ValueError(f"{type(self).__name__}: illegal transition {current} -> {status.value}")
        self.status = status  # type: ignore[attr-defined]

    def fail(self, message: str) -> None:
        """Move to the ``error`` status and record the message."""
        status_type = type(self.status)  # type: ignore[attr-defined]
        self.transition_to(status_type("error"))
        self.error = message

    @property
    def is_finished(self) -> bool:
        return self.status.value in self.TERMINAL  # type: ignore[attr-defined]
