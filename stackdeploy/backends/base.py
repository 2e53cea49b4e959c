"""Base backend adapter: the boundary between the engine and the system being provisioned."""

from __future__ import annotations

from abc import ABC, abstractmethod

from stackdeploy.models import ApplyResult, ResourceSpec


class BackendAdapter(ABC):
    """Performs create-or-update for one resource at a time.

    The engine treats adapters as opaque: retries, network calls and
    idempotence are the adapter's business. Returning a failed ApplyResult
    and raising ApplyError are both recorded as a failed resource.
    """

    name: str = "backend"

    @abstractmethod
    async def apply(self, spec: ResourceSpec) -> ApplyResult:
        """Bring the remote resource in line with ``spec``."""

    async def close(self) -> None:
        """Release any connections held by the adapter."""
