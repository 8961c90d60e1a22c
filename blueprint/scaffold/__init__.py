"""Deployment scaffolding for the base Caddy + Authelia stack."""

from .core import DeploymentScaffolder, ScaffoldResult, validate_admin_password
from .reset import ResetReport, StackResetter

__all__ = [
    "DeploymentScaffolder",
    "ResetReport",
    "ScaffoldResult",
    "StackResetter",
    "validate_admin_password",
]
