"""Ready-made stacks built on top of Stack."""

from stackdeploy.stacks.apim import GatewaySettings, build_apim_stack

__all__ = ["GatewaySettings", "build_apim_stack"]
