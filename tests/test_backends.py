"""Test backend adapters (HTTP backend against httpx.MockTransport)."""

import asyncio
import json

import httpx
import pytest

from conftest import spec
from stackdeploy.backends import InMemoryBackend, create_backend
from stackdeploy.backends.http import HttpBackend


def apply(backend, resource):
    async def run():
        try:
            return await backend.apply(resource)
        finally:
            await backend.close()

    return asyncio.run(run())


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


def test_memory_create_update_unchanged():
    backend = InMemoryBackend()
    created = asyncio.run(backend.apply(spec("sa", type="storage", tier="Standard")))
    unchanged = asyncio.run(backend.apply(spec("sa", type="storage", tier="Standard")))
    updated = asyncio.run(backend.apply(spec("sa", type="storage", tier="Premium")))

    assert [r.handle.action for r in (created, unchanged, updated)] == ["created", "unchanged", "updated"]
    assert backend.get("storage", "sa") == {"tier": "Premium"}
    assert backend.calls == ["sa", "sa", "sa"]


def test_memory_unchanged_with_nested_properties():
    backend = InMemoryBackend()
    resource = spec("api", type="api", protocols=["https"], tags={"owner": "IT"})
    asyncio.run(backend.apply(resource))
    assert asyncio.run(backend.apply(resource)).handle.action == "unchanged"
    assert backend.get("api", "api") == {"protocols": ["https"], "tags": {"owner": "IT"}}


def test_memory_outputs_name():
    backend = InMemoryBackend()
    result = asyncio.run(backend.apply(spec("rg", type="resource_group", name="acme-rg")))
    assert result.handle.outputs == {"name": "acme-rg"}
    assert result.handle.backend_id == "/resource_group/rg"


def test_memory_fail_on():
    backend = InMemoryBackend(fail_on={"kv": "vault name taken"})
    result = asyncio.run(backend.apply(spec("kv")))
    assert not result.ok
    assert result.error == "vault name taken"
    assert backend.get("test.resource", "kv") is None
    assert backend.timeline == [("start", "kv"), ("end", "kv")]


def test_memory_fail_on_list():
    backend = InMemoryBackend(fail_on=["kv"])
    assert asyncio.run(backend.apply(spec("kv"))).error == "simulated failure"


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def make_http(handler, **kwargs):
    kwargs.setdefault("backoff", 0)
    return HttpBackend("https://control.test/api/", transport=httpx.MockTransport(handler), **kwargs)


def test_http_success():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "rg-123", "action": "updated", "outputs": {"location": "westeurope"}})

    result = apply(make_http(handler, token="secret"), spec("rg", type="resource_group", name="acme-rg"))

    assert result.ok
    assert result.handle.backend_id == "rg-123"
    assert result.handle.action == "updated"
    assert result.handle.outputs == {"location": "westeurope"}

    [request] = seen
    assert request.method == "PUT"
    assert request.url.path == "/api/resources/resource_group/rg"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"type": "resource_group", "id": "rg", "properties": {"name": "acme-rg"}}


def test_http_payload_thaws_nested_properties():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={})

    resource = spec("api", type="api", protocols=["https"], tags={"owner": "IT"})
    assert apply(make_http(handler), resource).ok
    assert seen[0]["properties"] == {"protocols": ["https"], "tags": {"owner": "IT"}}


def test_http_empty_body_defaults():
    result = apply(make_http(lambda request: httpx.Response(204)), spec("rg"))
    assert result.ok
    assert result.handle.backend_id == "rg"
    assert result.handle.action == "created"


def test_http_client_error_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(409, text="conflict")

    result = apply(make_http(handler, retries=3), spec("rg"))
    assert not result.ok
    assert result.error == "HTTP 409: conflict"
    assert len(calls) == 1


def test_http_server_error_retried():
    responses = iter([httpx.Response(503, text="busy"), httpx.Response(200, json={"id": "rg-1"})])
    result = apply(make_http(lambda request: next(responses), retries=2), spec("rg"))
    assert result.ok
    assert result.handle.backend_id == "rg-1"


def test_http_gives_up_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    result = apply(make_http(handler, retries=2), spec("rg"))
    assert not result.ok
    assert result.error.startswith("Giving up after 3 attempts: ConnectError")
    assert len(calls) == 3


def test_http_unexpected_action():
    result = apply(make_http(lambda request: httpx.Response(200, json={"action": "deleted"})), spec("rg"))
    assert not result.ok
    assert "deleted" in result.error


def test_http_invalid_json():
    result = apply(make_http(lambda request: httpx.Response(200, text="<html>")), spec("rg"))
    assert not result.ok
    assert result.error.startswith("Invalid JSON response")


def test_http_requires_base_url():
    with pytest.raises(ValueError):
        HttpBackend("")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_create_backend():
    assert isinstance(create_backend("memory"), InMemoryBackend)
    assert isinstance(create_backend("MEMORY", fail_on=["a"]), InMemoryBackend)
    http = create_backend("http", base_url="https://control.test")
    assert isinstance(http, HttpBackend)
    asyncio.run(http.close())


def test_create_backend_unknown():
    with pytest.raises(ValueError, match="Unknown backend"):
        create_backend("terraform")
