"""
Stage telemetry.

Each pipeline stage reports what it did as a StageEvent. Events are
collected per generation run and logged with structured fields; nothing in
the pipeline branches on them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageEvent:
    """A structured record of one stage's work."""

    stage: str
    fields: dict[str, Any] = field(default_factory=dict)


class EventLog:
    """Per-run event collector. Not shared between runs."""

    def __init__(self) -> None:
        self._events: list[StageEvent] = []

    def emit(self, stage: str, **fields: Any) -> StageEvent:
        """Record and log a stage event."""
        event = StageEvent(stage=stage, fields=fields)
        self._events.append(event)
        logger.info(stage, extra={"stage_fields": fields})
        return event

    @property
    def events(self) -> tuple[StageEvent, ...]:
        return tuple(self._events)
