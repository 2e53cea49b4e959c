"""Data models for resource declarations, backend results and deployment reports."""

from __future__ import annotations

import copy
import json
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def freeze(value: Any) -> Any:
    """Deep read-only copy: mappings become MappingProxyType, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return copy.deepcopy(value)


def thaw(value: Any) -> Any:
    """Plain dicts and lists again, e.g. for JSON payloads."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


class ResourceSpec(BaseModel):
    """A declared unit of infrastructure. Immutable once built.

    ``properties`` is a read-only copy of what the caller passed in, so later
    edits to the caller's dict never reach the graph, the plan or a backend.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)  # opaque type tag, e.g. "storage.account"
    properties: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)
    depends_on: tuple[str, ...] = ()  # ids of prerequisite resources, declaration order

    @field_validator("properties", mode="after")
    @classmethod
    def _freeze_properties(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @field_validator("depends_on", mode="before")
    @classmethod
    def _normalize_depends_on(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        # Keep first occurrence of each id
        return tuple(dict.fromkeys(value))


# ---------------------------------------------------------------------------
# Backend results
# ---------------------------------------------------------------------------


class ResourceHandle(BaseModel):
    """What a backend hands back for a resource it applied."""

    backend_id: str
    action: Literal["created", "updated", "unchanged"] = "created"
    outputs: dict[str, Any] = Field(default_factory=dict)


class ApplyResult(BaseModel):
    ok: bool
    handle: ResourceHandle | None = None
    error: str | None = None

    @classmethod
    def success(cls, handle: ResourceHandle) -> "ApplyResult":
        return cls(ok=True, handle=handle)

    @classmethod
    def failure(cls, error: str) -> "ApplyResult":
        return cls(ok=False, error=error)


# ---------------------------------------------------------------------------
# Deployment state
# ---------------------------------------------------------------------------


class ResourceStatus(str, Enum):
    """Lifecycle of a resource within one deployment run."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (ResourceStatus.SUCCEEDED, ResourceStatus.FAILED, ResourceStatus.SKIPPED)


class ResourceOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ResourceStatus
    error: str | None = None
    handle: ResourceHandle | None = None
    duration: float | None = None  # seconds spent in the backend call


class DeploymentReport(BaseModel):
    """Final status of every declared resource, in plan order."""

    model_config = ConfigDict(frozen=True)

    deployment_id: str = Field(default_factory=generate_id)
    resources: dict[str, ResourceOutcome] = Field(default_factory=dict)
    started_at: str | None = None
    completed_at: str | None = None
    cancelled: bool = False

    def status(self, resource_id: str) -> ResourceStatus:
        return self.resources[resource_id].status

    def _with_status(self, status: ResourceStatus) -> list[str]:
        return [rid for rid, outcome in self.resources.items() if outcome.status == status]

    @property
    def succeeded(self) -> list[str]:
        return self._with_status(ResourceStatus.SUCCEEDED)

    @property
    def failed(self) -> list[str]:
        return self._with_status(ResourceStatus.FAILED)

    @property
    def skipped(self) -> list[str]:
        return self._with_status(ResourceStatus.SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped

    def to_dict(self) -> dict:
        resources = {}
        for rid, outcome in self.resources.items():
            entry: dict[str, Any] = {"status": outcome.status.value}
            if outcome.error:
                entry["error"] = outcome.error
            if outcome.handle:
                entry["backend_id"] = outcome.handle.backend_id
                entry["action"] = outcome.handle.action
                if outcome.handle.outputs:
                    entry["outputs"] = outcome.handle.outputs
            if outcome.duration is not None:
                entry["duration"] = round(outcome.duration, 3)
            resources[rid] = entry
        return {
            "deployment_id": self.deployment_id,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "cancelled": self.cancelled,
            "resources": resources,
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass
class Event:
    type: str  # deployment.started | resource.started | resource.succeeded | ...
    deployment_id: str
    ts: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type, "deployment_id": self.deployment_id, "ts": self.ts, "data": self.data}
