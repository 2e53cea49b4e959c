"""Deployment engine: walks an execution plan and applies each resource through a backend."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from stackdeploy.errors import ApplyError
from stackdeploy.models import (
    ApplyResult,
    DeploymentReport,
    ResourceOutcome,
    ResourceSpec,
    ResourceStatus,
    generate_id,
)

if TYPE_CHECKING:
    from stackdeploy.backends.base import BackendAdapter
    from stackdeploy.events import EventBus
    from stackdeploy.scheduler import ExecutionPlan

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "deployment cancelled"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DeploymentEngine:
    """Applies resources in plan order and records one terminal status per resource.

    A failed resource never aborts the run: its dependents are skipped and
    independent branches carry on. Nothing is rolled back.

    With ``max_workers > 1`` independent branches are applied concurrently;
    a resource still only starts once every dependency is terminal.
    """

    def __init__(self, max_workers: int = 1, event_bus: "EventBus | None" = None):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._event_bus = event_bus
        self.statuses: dict[str, ResourceStatus] = {}
        self._outcomes: dict[str, ResourceOutcome] = {}
        self._deployment_id = ""

    async def deploy(
        self,
        plan: "ExecutionPlan",
        backend: "BackendAdapter",
        cancel: asyncio.Event | None = None,
    ) -> DeploymentReport:
        """Deploy every resource of ``plan`` and return the final report."""
        self._deployment_id = generate_id()
        self.statuses = {spec.id: ResourceStatus.PENDING for spec in plan}
        self._outcomes = {}
        cancel = cancel or asyncio.Event()
        started_at = _now()

        logger.info(
            f"Deployment {self._deployment_id}: {len(plan)} resources via {backend.name} "
            f"(workers={self.max_workers})"
        )
        self._emit("deployment.started", resources=plan.order, backend=backend.name)

        if self.max_workers == 1:
            for spec in plan:
                await self._process(spec, backend, cancel)
        else:
            await self._deploy_parallel(plan, backend, cancel)

        report = DeploymentReport(
            deployment_id=self._deployment_id,
            resources={spec.id: self._outcomes[spec.id] for spec in plan},
            started_at=started_at,
            completed_at=_now(),
            cancelled=cancel.is_set(),
        )
        logger.info(
            f"Deployment {report.deployment_id} finished: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        self._emit(
            "deployment.completed",
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            cancelled=report.cancelled,
        )
        return report

    async def _deploy_parallel(self, plan: "ExecutionPlan", backend: "BackendAdapter", cancel: asyncio.Event):
        done = {spec.id: asyncio.Event() for spec in plan}
        semaphore = asyncio.Semaphore(self.max_workers)

        async def run(spec: ResourceSpec):
            try:
                for dep_id in spec.depends_on:
                    await done[dep_id].wait()
                async with semaphore:
                    await self._process(spec, backend, cancel)
            finally:
                done[spec.id].set()

        await asyncio.gather(*(run(spec) for spec in plan))

    async def _process(self, spec: ResourceSpec, backend: "BackendAdapter", cancel: asyncio.Event):
        """Take one resource from Pending to a terminal status."""
        if cancel.is_set():
            self._record(spec.id, ResourceOutcome(status=ResourceStatus.SKIPPED, error=CANCELLED_MESSAGE))
            return

        for dep_id in spec.depends_on:
            dep_status = self.statuses[dep_id]
            if dep_status in (ResourceStatus.FAILED, ResourceStatus.SKIPPED):
                self._record(
                    spec.id,
                    ResourceOutcome(status=ResourceStatus.SKIPPED, error=f"dependency '{dep_id}' {dep_status.value}"),
                )
                return

        self.statuses[spec.id] = ResourceStatus.IN_PROGRESS
        self._emit("resource.started", resource_id=spec.id, resource_type=spec.type)
        logger.info(f"Applying {spec.type} '{spec.id}'")

        start = time.monotonic()
        try:
            result = await backend.apply(spec)
            if not isinstance(result, ApplyResult):
                result = ApplyResult.failure(f"backend returned {type(result).__name__}, expected ApplyResult")
        except ApplyError as e:
            result = ApplyResult.failure(e.detail)
        except Exception as e:
            logger.error(f"Backend raised while applying '{spec.id}': {e}", exc_info=True)
            result = ApplyResult.failure(f"{type(e).__name__}: {e}")
        duration = time.monotonic() - start

        if result.ok:
            outcome = ResourceOutcome(status=ResourceStatus.SUCCEEDED, handle=result.handle, duration=duration)
        else:
            outcome = ResourceOutcome(
                status=ResourceStatus.FAILED, error=result.error or "apply failed", duration=duration
            )
        self._record(spec.id, outcome)

    def _record(self, resource_id: str, outcome: ResourceOutcome):
        """Write the terminal outcome of a resource. Each resource is written once."""
        if resource_id in self._outcomes:
            raise RuntimeError(f"Outcome for '{resource_id}' already recorded")
        self._outcomes[resource_id] = outcome
        self.statuses[resource_id] = outcome.status

        if outcome.status == ResourceStatus.SUCCEEDED:
            logger.info(f"Resource '{resource_id}' succeeded ({outcome.duration:.2f}s)")
        elif outcome.status == ResourceStatus.FAILED:
            logger.error(f"Resource '{resource_id}' failed: {outcome.error}")
        else:
            logger.warning(f"Resource '{resource_id}' skipped: {outcome.error}")
        self._emit(f"resource.{outcome.status.value}", resource_id=resource_id, error=outcome.error)

    def _emit(self, type: str, **data):
        if self._event_bus:
            self._event_bus.emit_simple(type, self._deployment_id, **data)
