"""Backend adapter layer: where resources actually get provisioned."""

from stackdeploy.backends.base import BackendAdapter
from stackdeploy.backends.factory import create_backend
from stackdeploy.backends.memory import InMemoryBackend

__all__ = ["BackendAdapter", "InMemoryBackend", "create_backend"]
