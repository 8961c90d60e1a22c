"""Deployment configuration and lifecycle option models."""
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILENAME = "blueprint.yml"

# Values never written to blueprint.yml
_UNSAVED_FIELDS = {"smtp_password", "admin_password"}

# Stored as SMTP_PASSWORD until the operator sets the real relay password
SMTP_PASSWORD_PLACEHOLDER = "your-mailgun-smtp-password"


def is_valid_hostname(value: str) -> bool:
    """Bare hostname check: no scheme, path, port or leading/trailing dot."""
    return bool(re.match(r'^[A-Za-z0-9.-]+$', value)) and not value.startswith('.') and not value.endswith('.')


class DeploymentConfig(BaseModel):
    """Values templates are rendered against.

    Extra keys are preserved so addon templates can read their own settings.
    """

    model_config = ConfigDict(extra='allow')

    name: str = "my-deployment"
    domain: str = "example.local"
    email: Optional[str] = None
    use_https: bool = True
    admin_username: str = "admin"
    admin_display_name: str = "Administrator"
    admin_password: Optional[str] = Field(None, repr=False)
    smtp_host: str = "smtp.eu.mailgun.org"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = Field(None, repr=False)
    smtp_sender: Optional[str] = None

    @field_validator('domain')
    @classmethod
    def validate_domain(cls, v):
        """Domain must be a bare hostname (no scheme, no path)."""
        if not is_valid_hostname(v):
            raise ValueError(f"Invalid domain '{v}'. Use a bare hostname like example.com")
        return v.lower()

    @field_validator('smtp_port')
    @classmethod
    def validate_port(cls, v):
        if not 0 < v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    def model_post_init(self, __context: Any) -> None:
        if not self.email:
            self.email = f"admin@{self.domain}"
        if not self.smtp_username:
            self.smtp_username = f"no-reply@mg.{self.domain}"
        if not self.smtp_sender:
            self.smtp_sender = self.smtp_username

    @property
    def smtp_address(self) -> str:
        return f"{self.smtp_host}:{self.smtp_port}"

    def with_values(self, **values: Any) -> "DeploymentConfig":
        """Copy with extra or replaced template values."""
        return type(self).model_validate({**self.model_dump(), **values})

    @classmethod
    def coerce(cls, value: Union["DeploymentConfig", Mapping[str, Any], None]) -> "DeploymentConfig":
        """Accept a config object or a plain mapping."""
        if isinstance(value, cls):
            return value
        return cls.model_validate(dict(value or {}))

    def save(self, deploy_dir: Path) -> Path:
        """Write blueprint.yml into the deployment directory (without passwords)."""
        path = Path(deploy_dir) / CONFIG_FILENAME
        data = self.model_dump(exclude=_UNSAVED_FIELDS)
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    @classmethod
    def load(cls, deploy_dir: Path) -> "DeploymentConfig":
        """Load blueprint.yml from the deployment directory.

        Raises:
            FileNotFoundError: The directory is not a Blueprint deployment
            ValueError: The file is not a YAML mapping
        """
        path = Path(deploy_dir) / CONFIG_FILENAME
        if not path.exists():
            raise FileNotFoundError(f"No {CONFIG_FILENAME} in {deploy_dir}")

        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML mapping")
        return cls.model_validate(data)


@dataclass
class InstallOptions:
    """Options for ServiceOrchestrator.install."""
    skip_secrets: bool = False
    keep_data: bool = False
    shared_smtp: bool = False


@dataclass
class RemoveOptions:
    """Options for ServiceOrchestrator.remove."""
    keep_data: bool = False


def render_context(config: Union[DeploymentConfig, Dict[str, Any]]) -> Dict[str, Any]:
    """Flatten a config into a template context."""
    if isinstance(config, DeploymentConfig):
        return config.model_dump()
    return dict(config)
