"""stackdeploy: deploy a graph of declared resources in dependency order."""

from stackdeploy.engine import DeploymentEngine
from stackdeploy.errors import (
    ApplyError,
    CyclicDependencyError,
    DuplicateResourceError,
    GraphError,
    SelfDependencyError,
    StackDeployError,
    UnknownDependencyError,
)
from stackdeploy.graph import DependencyGraph, build_graph
from stackdeploy.models import ApplyResult, DeploymentReport, ResourceHandle, ResourceSpec, ResourceStatus
from stackdeploy.resources import Stack, StackConfig, validate_resources
from stackdeploy.scheduler import ExecutionPlan, create_plan, plan_resources

__all__ = [
    "ApplyError",
    "ApplyResult",
    "CyclicDependencyError",
    "DependencyGraph",
    "DeploymentEngine",
    "DeploymentReport",
    "DuplicateResourceError",
    "ExecutionPlan",
    "GraphError",
    "ResourceHandle",
    "ResourceSpec",
    "ResourceStatus",
    "SelfDependencyError",
    "Stack",
    "StackConfig",
    "StackDeployError",
    "UnknownDependencyError",
    "build_graph",
    "create_plan",
    "plan_resources",
    "validate_resources",
]
