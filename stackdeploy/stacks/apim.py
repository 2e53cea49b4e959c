"""API gateway stack: resource group, storage, key vault, gateway service, product and monitoring.

Every edge is declared explicitly, including the ones a provider SDK would
normally infer from property references (e.g. the key vault living in the
resource group).
"""

from __future__ import annotations

from pydantic import BaseModel

from stackdeploy.resources import Stack, StackConfig

DEFAULT_TAGS = {
    "belongsto": "Core Resources",
    "environment": "Development",
    "costcenter": "Backend",
    "owner": "IT",
}

DEMO_CONFIG = StackConfig(
    prefix="demo",
    resource_function="api",
    environment="dev",
    region="weu",
    location="westeurope",
    tags=DEFAULT_TAGS,
)

PRODUCT_POLICY_XML = """<policies>
    <inbound>
        <base />
    </inbound>
    <backend>
        <base />
    </backend>
    <outbound>
        <set-header name='Server' exists-action='delete' />
        <set-header name='X-Powered-By' exists-action='delete' />
        <set-header name='X-AspNet-Version' exists-action='delete' />
        <base />
    </outbound>
    <on-error>
        <base />
    </on-error>
</policies>"""

HEALTH_PROBE_POLICY_XML = """<policies>
    <inbound>
        <return-response>
            <set-status code='200' />
        </return-response>
        <base />
    </inbound>
</policies>"""


class GatewaySettings(BaseModel):
    """Product and publisher parameters of the gateway."""

    publisher_email: str = "api@example.com"
    publisher_name: str = "Example"
    product_name: str = "Starter"
    product_id: str = "starter"
    approval_required: bool = False
    published: bool = True
    subscription_required: bool = True
    subscriptions_limit: int = 1
    subscription_key: str = ""
    email_domain: str = "example.com"
    sku: str = "Developer_1"


def build_apim_stack(config: StackConfig = DEMO_CONFIG, settings: GatewaySettings | None = None) -> Stack:
    settings = settings or GatewaySettings()
    stack = Stack(config)

    stack.add("rg", "resource_group", located=True)

    # Storage for policy files and API definitions
    stack.add(
        "sa",
        "storage.account",
        {
            "account_kind": "StorageV2",
            "replication_type": "LRS",
            "account_tier": "Standard",
            "https_only": True,
        },
        depends_on=["rg"],
        name_pattern="{prefix}{function}sa{environment}{region}",
    )
    for container in ("apim-files", "api-files"):
        stack.add(
            container.replace("-", "_"),
            "storage.container",
            {"name": container, "access_type": "private"},
            depends_on=["rg", "sa"],
            name_pattern=None,
            tagged=False,
        )

    stack.add(
        "kv",
        "key_vault",
        {
            "sku": "standard",
            "enabled_for_disk_encryption": False,
            "access_policies": [
                {
                    "principal": "deployer",
                    "secret_permissions": ["get"],
                    "certificate_permissions": ["delete", "create", "get", "import", "list", "update"],
                }
            ],
        },
        depends_on=["rg"],
        name_pattern="{prefix}-{function}-{kind}-{environment}-{region}",
        kind="kv",
    )

    apim = stack.add(
        "apim",
        "api_management.service",
        {
            "sku": settings.sku,
            "publisher_email": settings.publisher_email,
            "publisher_name": settings.publisher_name,
            "identity": "SystemAssigned",
            "create_timeout_minutes": 60,
        },
        depends_on=["rg", "sa", "kv"],
    )
    apim_name = apim.properties["name"]
    service_props = {"api_management_name": apim_name}

    stack.add(
        "product",
        "api_management.product",
        {
            **service_props,
            "display_name": settings.product_name,
            "product_id": settings.product_id,
            "approval_required": settings.approval_required,
            "published": settings.published,
            "subscription_required": settings.subscription_required,
            "subscriptions_limit": settings.subscriptions_limit,
        },
        depends_on=["apim"],
        name_pattern=None,
        tagged=False,
    )
    stack.add(
        "product_policy",
        "api_management.product_policy",
        {**service_props, "product_id": settings.product_id, "xml_content": PRODUCT_POLICY_XML},
        depends_on=["apim", "product"],
        name_pattern=None,
        tagged=False,
    )
    stack.add(
        "user",
        "api_management.user",
        {
            **service_props,
            "user_id": f"{settings.product_id}-user",
            "email": f"{settings.product_id}-{config.environment}@{settings.email_domain}",
            "first_name": "user",
            "last_name": settings.product_name,
            "state": "active",
        },
        depends_on=["apim"],
        name_pattern=None,
        tagged=False,
    )
    stack.add(
        "subscription",
        "api_management.subscription",
        {
            **service_props,
            "display_name": f"{settings.product_name} subscription",
            "product": "product",
            "user": "user",
            "primary_key": settings.subscription_key,
        },
        depends_on=["apim", "product", "user"],
        name_pattern=None,
        tagged=False,
    )

    # Monitoring
    stack.add(
        "appinsights",
        "app_insights",
        {"application_type": "web"},
        depends_on=["rg"],
        name_pattern="{prefix}-{function}-{kind}-{environment}-{region}",
        kind="appinsights",
    )
    stack.add(
        "apim_logger",
        "api_management.logger",
        {**service_props, "name": f"{apim_name}-logger", "application_insights": "appinsights"},
        depends_on=["appinsights", "apim"],
        name_pattern=None,
        tagged=False,
    )

    # Health probe API answering 200 on GET /, published through the product
    stack.add(
        "health_probe_api",
        "api_management.api",
        {
            **service_props,
            "display_name": "Health probe",
            "path": "health-probe",
            "protocols": ["https"],
            "revision": "1",
        },
        depends_on=["apim"],
        name_pattern=None,
        tagged=False,
    )
    stack.add(
        "ping_operation",
        "api_management.api_operation",
        {
            **service_props,
            "api": "health_probe_api",
            "display_name": "Ping",
            "method": "GET",
            "url_template": "/",
            "operation_id": "get-ping",
        },
        depends_on=["health_probe_api"],
        name_pattern=None,
        tagged=False,
    )
    stack.add(
        "health_probe_policy",
        "api_management.api_policy",
        {**service_props, "api": "health_probe_api", "xml_content": HEALTH_PROBE_POLICY_XML},
        depends_on=["ping_operation"],
        name_pattern=None,
        tagged=False,
    )
    stack.add(
        "health_probe_product",
        "api_management.product_api",
        {**service_props, "api": "health_probe_api", "product_id": settings.product_id},
        depends_on=["apim", "product", "health_probe_policy"],
        name_pattern=None,
        tagged=False,
    )

    return stack
