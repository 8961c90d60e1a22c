"""Service descriptor models for installable addons."""
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# A secret value: a literal, or a producer given the values generated so far
SecretProducer = Callable[[Mapping[str, str]], str]
SecretValue = Union[str, SecretProducer]

# Unit template: a render function taking the deployment config, or fixed text
UnitTemplate = Union[str, Callable[[Any], str]]

_NAME_PATTERN = re.compile(r'^[a-z0-9][a-z0-9_-]*$')
_KEY_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9_]*$')


class SecretSpec(BaseModel):
    """One secret of a service, evaluated in declaration order."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    key: str
    value: SecretValue

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        """Validate the key can be part of a secret/env var name."""
        if not _KEY_PATTERN.match(v):
            raise ValueError(
                f"Secret key '{v}' must start with a letter and contain only "
                "letters, numbers, and underscores."
            )
        return v

    def evaluate(self, prior: Mapping[str, str]) -> str:
        """Resolve the value, calling the producer with the results so far."""
        if callable(self.value):
            return self.value(prior)
        return self.value


class ServiceTemplates(BaseModel):
    """Unit templates keyed by unit identifier."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    containers: Dict[str, UnitTemplate]
    volumes: Dict[str, UnitTemplate] = Field(default_factory=dict)
    networks: Dict[str, UnitTemplate] = Field(default_factory=dict)

    @field_validator('containers')
    @classmethod
    def validate_containers(cls, v):
        if not v:
            raise ValueError("At least one container template is required")
        return v


class ServiceDescriptor(BaseModel):
    """Static definition of an installable service.

    Built once at startup and never mutated. The unit files, secrets and
    volumes it describes are the only persisted state.
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    name: str
    display_name: Optional[str] = None
    networks: List[str] = Field(default_factory=list)
    containers: List[str]
    volumes: List[str] = Field(default_factory=list)
    secrets: List[SecretSpec] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list, description="Informational only, never enforced")
    caddyfile: Optional[Callable[[Any], str]] = Field(None, description="Proxy route fragment renderer")
    templates: ServiceTemplates

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not _NAME_PATTERN.match(v):
            raise ValueError(
                f"Service name '{v}' must be lowercase letters, numbers, hyphens, "
                "and underscores."
            )
        return v

    @field_validator('containers')
    @classmethod
    def validate_containers(cls, v):
        if not v:
            raise ValueError("A service needs at least one container")
        return v

    @field_validator('secrets', mode='before')
    @classmethod
    def coerce_secrets(cls, v):
        """Accept a {key: value} mapping, keeping its insertion order."""
        if isinstance(v, Mapping):
            return [{'key': key, 'value': value} for key, value in v.items()]
        return v

    @model_validator(mode='after')
    def validate_templates(self) -> 'ServiceDescriptor':
        """Every declared container must have a unit template."""
        missing = [c for c in self.containers if c not in self.templates.containers]
        if missing:
            raise ValueError(f"Containers without a template: {', '.join(missing)}")

        keys = [spec.key for spec in self.secrets]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"Duplicate secret keys: {', '.join(duplicates)}")
        return self

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def secret_keys(self) -> List[str]:
        return [spec.key for spec in self.secrets]

    @property
    def has_proxy_fragment(self) -> bool:
        return self.caddyfile is not None

    def owned_networks(self, shared: Union[List[str], tuple]) -> List[str]:
        """Networks this service creates and destroys (shared base networks excluded)."""
        ordered = list(self.networks) + [n for n in self.templates.networks if n not in self.networks]
        return [n for n in ordered if n not in shared]

    def owned_volumes(self) -> List[str]:
        return list(self.volumes) + [v for v in self.templates.volumes if v not in self.volumes]

    def container_units(self) -> List[str]:
        return list(self.containers) + [c for c in self.templates.containers if c not in self.containers]
