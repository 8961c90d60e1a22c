"""Blueprint runtime configuration and settings."""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _split_names(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass
class BlueprintConfig:
    """Runtime configuration for Blueprint operations.

    Attributes:
        container_tool: Container CLI used for secrets and volumes (default: podman)
        systemctl_scope: Scope flag passed to systemctl/journalctl (default: --user)
        proxy_unit: Unit name of the shared reverse proxy (default: caddy)
        shared_networks: Networks owned by the base stack, never touched by addons
        secret_backend: Where secrets are stored, "podman" or "file" (default: podman)
        command_timeout: Safety-net timeout in seconds per external command (default: 300)
        authelia_image: Image used for Authelia and its password hashing helper
    """

    container_tool: str = "podman"
    systemctl_scope: str = "--user"
    proxy_unit: str = "caddy"
    shared_networks: Tuple[str, ...] = field(default=("core", "addon"))
    secret_backend: str = "podman"
    command_timeout: Optional[int] = 300  # unit files carry their own start timeouts
    authelia_image: str = "docker.io/authelia/authelia:4"

    @classmethod
    def from_env(cls) -> "BlueprintConfig":
        """Create config from environment variables.

        Environment variables:
            BLUEPRINT_CONTAINER_TOOL: Container CLI (podman)
            BLUEPRINT_SYSTEMCTL_SCOPE: systemctl scope flag (--user); empty for system scope
            BLUEPRINT_PROXY_UNIT: Reverse proxy unit name (caddy)
            BLUEPRINT_SHARED_NETWORKS: Comma separated base network names (core,addon)
            BLUEPRINT_SECRET_BACKEND: "podman" or "file"
            BLUEPRINT_COMMAND_TIMEOUT: Seconds per command, 0 disables the timeout
            BLUEPRINT_AUTHELIA_IMAGE: Authelia container image

        Returns:
            BlueprintConfig instance with values from environment or defaults
        """
        defaults = cls()
        timeout = int(os.getenv("BLUEPRINT_COMMAND_TIMEOUT", defaults.command_timeout or 0))
        shared = os.getenv("BLUEPRINT_SHARED_NETWORKS")

        return cls(
            container_tool=os.getenv("BLUEPRINT_CONTAINER_TOOL", defaults.container_tool),
            systemctl_scope=os.getenv("BLUEPRINT_SYSTEMCTL_SCOPE", defaults.systemctl_scope),
            proxy_unit=os.getenv("BLUEPRINT_PROXY_UNIT", defaults.proxy_unit),
            shared_networks=_split_names(shared) if shared is not None else defaults.shared_networks,
            secret_backend=os.getenv("BLUEPRINT_SECRET_BACKEND", defaults.secret_backend).lower(),
            command_timeout=timeout or None,
            authelia_image=os.getenv("BLUEPRINT_AUTHELIA_IMAGE", defaults.authelia_image),
        )


# Global config instance (can be overridden)
_config: Optional[BlueprintConfig] = None


def get_config() -> BlueprintConfig:
    """Get the global Blueprint configuration.

    Returns:
        BlueprintConfig instance (creates from environment if not set)
    """
    global _config
    if _config is None:
        _config = BlueprintConfig.from_env()
    return _config


def set_config(config: Optional[BlueprintConfig]):
    """Set the global Blueprint configuration.

    Args:
        config: BlueprintConfig instance to use globally, or None to re-read the environment
    """
    global _config
    _config = config
