"""HTTP backend: applies resources through a REST control plane."""

from __future__ import annotations

import asyncio
import logging

import httpx

from stackdeploy.backends.base import BackendAdapter
from stackdeploy.errors import ApplyError
from stackdeploy.models import ApplyResult, ResourceHandle, ResourceSpec, thaw

logger = logging.getLogger(__name__)


class HttpBackend(BackendAdapter):
    """PUTs each resource to ``{base_url}/resources/{type}/{id}``.

    The control plane is expected to answer with JSON of the form
    ``{"id": ..., "action": "created|updated|unchanged", "outputs": {...}}``.
    Transport errors and 5xx responses are retried; 4xx responses fail the
    resource immediately.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30,
        retries: int = 2,
        backoff: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise ValueError("HttpBackend requires a base_url")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.retries = retries
        self.backoff = backoff
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def apply(self, spec: ResourceSpec) -> ApplyResult:
        try:
            data = await self._put(spec)
        except ApplyError as e:
            return ApplyResult.failure(e.detail)

        action = data.get("action", "created")
        if action not in ("created", "updated", "unchanged"):
            return ApplyResult.failure(f"Unexpected action in response: {action!r}")
        return ApplyResult.success(
            ResourceHandle(
                backend_id=str(data.get("id", spec.id)),
                action=action,
                outputs=data.get("outputs") or {},
            )
        )

    async def _put(self, spec: ResourceSpec) -> dict:
        url = f"/resources/{spec.type}/{spec.id}"
        payload = {"type": spec.type, "id": spec.id, "properties": thaw(spec.properties)}

        last_error = ""
        for attempt in range(self.retries + 1):
            if attempt:
                await asyncio.sleep(self.backoff * 2 ** (attempt - 1))
                logger.info(f"Retrying {spec.id} (attempt {attempt + 1}/{self.retries + 1})")
            try:
                resp = await self.client.put(url, json=payload)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.warning(f"Transport error applying {spec.id}: {last_error}")
                continue

            if resp.status_code >= 500:
                last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"
                logger.warning(f"Server error applying {spec.id}: {last_error}")
                continue
            if resp.status_code >= 400:
                raise ApplyError(spec.id, f"HTTP {resp.status_code}: {resp.text[:200]}")

            try:
                return resp.json() if resp.content else {}
            except ValueError as e:
                raise ApplyError(spec.id, f"Invalid JSON response: {e}") from e

        raise ApplyError(spec.id, f"Giving up after {self.retries + 1} attempts: {last_error}")

    async def close(self) -> None:
        await self.client.aclose()
