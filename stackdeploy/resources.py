"""Resource model: declaration validation and config-driven resource naming."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from pydantic import BaseModel, Field

from stackdeploy.errors import ConfigError, DuplicateResourceError, SelfDependencyError
from stackdeploy.models import ResourceSpec

logger = logging.getLogger(__name__)

DEFAULT_NAME_PATTERN = "{prefix}-{function}-{environment}-{region}"


def validate_resources(specs: Iterable[ResourceSpec]) -> list[ResourceSpec]:
    """Check ids are unique and no resource depends on itself.

    Returns the specs as a list, in declaration order.
    """
    validated: list[ResourceSpec] = []
    seen: set[str] = set()
    for spec in specs:
        if spec.id in seen:
            raise DuplicateResourceError(spec.id)
        if spec.id in spec.depends_on:
            raise SelfDependencyError(spec.id)
        seen.add(spec.id)
        validated.append(spec)
    return validated


class StackConfig(BaseModel):
    """Naming and tagging parameters shared by every resource of a stack."""

    prefix: str
    resource_function: str
    environment: str
    region: str
    location: str = ""
    tags: dict[str, str] = Field(default_factory=dict)

    def resource_name(self, pattern: str = DEFAULT_NAME_PATTERN, kind: str = "") -> str:
        """Render a resource name, e.g. ``{prefix}-{function}-{kind}-{environment}-{region}``."""
        try:
            return pattern.format(
                prefix=self.prefix,
                function=self.resource_function,
                environment=self.environment,
                region=self.region,
                kind=kind,
            )
        except KeyError as e:
            raise ConfigError(f"Unknown placeholder {e} in name pattern '{pattern}'") from e


class Stack:
    """Builds ResourceSpecs whose names, tags and location come from a StackConfig.

    Dependencies are never inferred from property values; pass them in
    ``depends_on`` explicitly.
    """

    def __init__(self, config: StackConfig):
        self.config = config
        self._specs: dict[str, ResourceSpec] = {}

    def add(
        self,
        resource_id: str,
        type: str,
        properties: dict[str, Any] | None = None,
        depends_on: Iterable[str] = (),
        *,
        name_pattern: str | None = DEFAULT_NAME_PATTERN,
        kind: str = "",
        tagged: bool = True,
        located: bool = False,
    ) -> ResourceSpec:
        if resource_id in self._specs:
            raise DuplicateResourceError(resource_id)

        props: dict[str, Any] = {}
        if name_pattern is not None:
            props["name"] = self.config.resource_name(name_pattern, kind=kind)
        if located and self.config.location:
            props["location"] = self.config.location
        props.update(properties or {})
        if tagged:
            # Resource-level tags win over stack-wide ones
            props["tags"] = {**self.config.tags, **(properties or {}).get("tags", {})}

        spec = ResourceSpec(id=resource_id, type=type, properties=props, depends_on=tuple(depends_on))
        self._specs[resource_id] = spec
        logger.debug(f"Declared {type} '{resource_id}' depends_on={list(spec.depends_on)}")
        return spec

    def get(self, resource_id: str) -> ResourceSpec | None:
        return self._specs.get(resource_id)

    def resources(self) -> list[ResourceSpec]:
        return validate_resources(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)
