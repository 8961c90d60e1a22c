"""Built-in addon services.

Addons are registered in the order listed here; a later entry with the same
name replaces an earlier one.
"""
from blueprint.addons.umami import UMAMI
from blueprint.core.registry import ServiceRegistry

BUILTIN_ADDONS = [
    UMAMI,
]


def register_builtin_addons(registry: ServiceRegistry) -> ServiceRegistry:
    """Register every built-in addon and return the registry."""
    for descriptor in BUILTIN_ADDONS:
        registry.register(descriptor)
    return registry
