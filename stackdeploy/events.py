"""Deployment event log: what the engine did, in order, for the CLI and for audit files."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from stackdeploy.models import Event

logger = logging.getLogger(__name__)


class EventBus:
    """Records engine events and fans them out.

    Every event is kept in ``history``. With ``log_file`` set it is also
    appended as one JSON object per line, so a deployment leaves an audit
    trail. Subscribers get a queue fed with the events whose type starts
    with their prefix (``"resource."`` for per-resource progress).
    """

    def __init__(self, log_file: Path | None = None):
        self._log_file = log_file
        self._history: list[Event] = []
        self._subscribers: list[tuple[str, asyncio.Queue]] = []

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, event: Event):
        self._history.append(event)
        self._persist(event)
        self._notify(event)
        logger.debug(f"Event: {event.type} [{event.deployment_id}] {event.data}")

    def emit_simple(self, type: str, deployment_id: str, **data):
        self.emit(Event(type=type, deployment_id=deployment_id, data=data))

    @property
    def history(self) -> tuple[Event, ...]:
        return tuple(self._history)

    def of_type(self, type: str) -> list[Event]:
        return [e for e in self._history if e.type == type]

    def subscribe(self, prefix: str = "", maxsize: int = 1000) -> asyncio.Queue:
        """Queue of future events whose type starts with ``prefix``."""
        q: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append((prefix, q))
        return q

    def unsubscribe(self, q: asyncio.Queue):
        self._subscribers = [(prefix, sub) for prefix, sub in self._subscribers if sub is not q]

    def _persist(self, event: Event):
        if self._log_file:
            with open(self._log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict(), default=str) + "\n")

    def _notify(self, event: Event):
        for prefix, q in self._subscribers:
            if not event.type.startswith(prefix):
                continue
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping event {event.type}: subscriber queue full")
