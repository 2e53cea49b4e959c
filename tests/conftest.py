"""Shared fixtures and helpers."""

import pytest

from stackdeploy.models import ResourceSpec


def spec(resource_id, *deps, type="test.resource", **properties):
    return ResourceSpec(id=resource_id, type=type, properties=properties, depends_on=deps)


@pytest.fixture
def gateway_resources():
    """Resource group, storage and key vault, then the gateway that needs both."""
    return [
        spec("rg", type="resource_group"),
        spec("storage", "rg", type="storage.account"),
        spec("keyvault", "rg", type="key_vault"),
        spec("gateway", "storage", "keyvault", type="api_management.service"),
    ]
