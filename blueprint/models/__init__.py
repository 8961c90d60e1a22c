"""Data models for Blueprint."""
from blueprint.models.deployment import (
    DeploymentConfig,
    InstallOptions,
    RemoveOptions,
)
from blueprint.models.service import (
    SecretSpec,
    ServiceDescriptor,
    ServiceTemplates,
)

__all__ = [
    'DeploymentConfig',
    'InstallOptions',
    'RemoveOptions',
    'SecretSpec',
    'ServiceDescriptor',
    'ServiceTemplates',
]
