"""Exception hierarchy for stackdeploy."""

from __future__ import annotations


class StackDeployError(Exception):
    """Base class for every error raised by stackdeploy."""


class ConfigError(StackDeployError):
    """Invalid or missing configuration value."""


class DeclarationError(StackDeployError):
    """A resource declaration file could not be read or is malformed."""


# ---------------------------------------------------------------------------
# Structural errors: raised before any backend call is made
# ---------------------------------------------------------------------------


class GraphError(StackDeployError):
    """The declared resources do not form a valid dependency graph."""


class DuplicateResourceError(GraphError):
    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"Resource '{resource_id}' is declared more than once")


class SelfDependencyError(GraphError):
    def __init__(self, resource_id: str):
        self.resource_id = resource_id
        super().__init__(f"Resource '{resource_id}' depends on itself")


class UnknownDependencyError(GraphError):
    def __init__(self, resource_id: str, missing_id: str):
        self.resource_id = resource_id
        self.missing_id = missing_id
        super().__init__(f"Resource '{resource_id}' depends on unknown resource '{missing_id}'")


class CyclicDependencyError(GraphError):
    """A dependency cycle was found. ``cycle`` repeats its first id at the end."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle: {' -> '.join(self.cycle)}")


# ---------------------------------------------------------------------------
# Per-resource errors: recorded in the deployment report
# ---------------------------------------------------------------------------


class ApplyError(StackDeployError):
    """A backend could not apply a single resource."""

    def __init__(self, resource_id: str, detail: str):
        self.resource_id = resource_id
        self.detail = detail
        super().__init__(f"Failed to apply '{resource_id}': {detail}")
