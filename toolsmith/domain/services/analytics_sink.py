"""
Downstream analytics sink.

Aggregation and reporting happen elsewhere; the core only emits events.
Emission must never break the operation that produced the event.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsEvent:
    name: str
    properties: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class AnalyticsSink(Protocol):
    async def emit(self, name: str, **properties: Any) -> None:
        ...


class LoggingAnalyticsSink:
    """Writes events as structured log records on the `toolsmith.analytics` logger."""

    def __init__(self, logger_name: str = "toolsmith.analytics"):
        self._logger = logging.getLogger(logger_name)

    async def emit(self, name: str, **properties: Any) -> None:
        self._logger.info(
            f"analytics event: {name}",
            extra={"event": name, "properties": {k: str(v) for k, v in properties.items()}},
        )


class InMemoryAnalyticsSink:
    """Collects events for tests."""

    def __init__(self):
        self.events: List[AnalyticsEvent] = []

    async def emit(self, name: str, **properties: Any) -> None:
        self.events.append(AnalyticsEvent(name=name, properties=properties))

    def names(self) -> List[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        self.events.clear()


async def emit_safely(sink: AnalyticsSink, name: str, **properties: Any) -> None:
    try:
        await sink.emit(name, **properties)
    except Exception as e:
        logger.warning(f"Analytics emit failed for {name}: {e}")
