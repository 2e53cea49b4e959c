"""Backend factory: create the right adapter by name."""

from __future__ import annotations

from stackdeploy.backends.base import BackendAdapter


def create_backend(name: str, **options) -> BackendAdapter:
    """Create a backend adapter. ``options`` are passed to its constructor."""
    name = name.lower()
    if name == "memory":
        from stackdeploy.backends.memory import InMemoryBackend
        return InMemoryBackend(**options)
    elif name == "http":
        from stackdeploy.backends.http import HttpBackend
        return HttpBackend(**options)
    else:
        raise ValueError(f"Unknown backend: {name}. Use 'memory' or 'http'.")
