"""In-memory backend: idempotent create-or-update store for dry runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from stackdeploy.backends.base import BackendAdapter
from stackdeploy.models import ApplyResult, ResourceHandle, ResourceSpec, thaw

logger = logging.getLogger(__name__)


class InMemoryBackend(BackendAdapter):
    """Keeps applied resources in a dict keyed by (type, id).

    ``fail_on`` maps resource ids to the error they should fail with (an
    iterable of ids gets a generic message). ``delay`` makes every apply
    call sleep, which lets tests observe concurrency.
    """

    name = "memory"

    def __init__(self, fail_on: dict[str, str] | Iterable[str] | None = None, delay: float = 0.0):
        if fail_on is None:
            fail_on = {}
        elif not isinstance(fail_on, dict):
            fail_on = {rid: "simulated failure" for rid in fail_on}
        self.fail_on: dict[str, str] = dict(fail_on)
        self.delay = delay
        self.state: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[str] = []  # resource ids in the order apply() was entered
        self.timeline: list[tuple[str, str]] = []  # ("start" | "end", resource id)

    async def apply(self, spec: ResourceSpec) -> ApplyResult:
        self.calls.append(spec.id)
        self.timeline.append(("start", spec.id))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if spec.id in self.fail_on:
                return ApplyResult.failure(self.fail_on[spec.id])

            key = (spec.type, spec.id)
            existing = self.state.get(key)
            if existing is None:
                action = "created"
            elif existing == thaw(spec.properties):
                action = "unchanged"
            else:
                action = "updated"
            self.state[key] = thaw(spec.properties)
            logger.debug(f"{action} {spec.type} '{spec.id}'")

            return ApplyResult.success(
                ResourceHandle(
                    backend_id=f"/{spec.type}/{spec.id}",
                    action=action,
                    outputs={"name": spec.properties.get("name", spec.id)},
                )
            )
        finally:
            self.timeline.append(("end", spec.id))

    def get(self, type: str, resource_id: str) -> dict[str, Any] | None:
        return self.state.get((type, resource_id))
