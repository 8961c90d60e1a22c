"""Secret generation, storage backends, and per-service provisioning."""
import os
import secrets
import shlex
import string
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence, Union

from blueprint.core.command_runner import CommandRunner, attempt
from blueprint.core.config import get_config
from blueprint.core.errors import CommandError, SecretProvisionError, is_absent_error
from blueprint.core.logger import get_logger
from blueprint.models.service import SecretSpec

logger = get_logger(__name__)

_ALPHANUMERIC = string.ascii_letters + string.digits


def generate_password(length: int = 32) -> str:
    """Random alphanumeric password (safe inside URLs and unit files)."""
    return ''.join(secrets.choice(_ALPHANUMERIC) for _ in range(length))


def generate_secret(length: int = 32) -> str:
    """Hex encoding of ``length`` random bytes."""
    return secrets.token_hex(length)


def secret_name(service: str, key: str) -> str:
    """Namespaced backend name, e.g. ("umami", "APP_SECRET") -> UMAMI_APP_SECRET."""
    return f"{service.upper()}_{key.upper()}".replace('-', '_')


class SecretBackend(ABC):
    """Where secret values live."""

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def create(self, name: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        """Delete a secret; raises if it does not exist."""
        pass

    @abstractmethod
    def list_names(self) -> List[str]:
        pass

    @abstractmethod
    def read(self, name: str) -> str:
        """Return a stored value; raises if it does not exist."""
        pass


class PodmanSecretBackend(SecretBackend):
    """Podman-managed secrets, referenced from units via ``Secret=NAME``."""

    def __init__(self, runner: CommandRunner, tool: str = None):
        self.runner = runner
        self.tool = tool or get_config().container_tool

    def exists(self, name: str) -> bool:
        try:
            self.runner.run(f"{self.tool} secret inspect {shlex.quote(name)}")
            return True
        except CommandError:
            return False

    def create(self, name: str, value: str) -> None:
        # Value goes through stdin so it never shows up in the process list
        self.runner.run(f"{self.tool} secret create {shlex.quote(name)} -", input=value)

    def delete(self, name: str) -> None:
        self.runner.run(f"{self.tool} secret rm {shlex.quote(name)}")

    def list_names(self) -> List[str]:
        output = self.runner.run(f"{self.tool} secret ls --format '{{{{.Name}}}}'")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def read(self, name: str) -> str:
        return self.runner.run(
            f"{self.tool} secret inspect --showsecret --format '{{{{.SecretData}}}}' {shlex.quote(name)}"
        ).rstrip("\n")


class FileSecretBackend(SecretBackend):
    """One file per secret under the deployment's ``secrets/`` directory."""

    def __init__(self, secrets_dir: Path):
        self.secrets_dir = Path(secrets_dir)

    def _path(self, name: str) -> Path:
        return self.secrets_dir / name

    def exists(self, name: str) -> bool:
        return self._path(name).is_file()

    def create(self, name: str, value: str) -> None:
        self.secrets_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w') as f:
            f.write(value)
        os.chmod(path, 0o600)

    def delete(self, name: str) -> None:
        self._path(name).unlink()

    def list_names(self) -> List[str]:
        if not self.secrets_dir.is_dir():
            return []
        return sorted(p.name for p in self.secrets_dir.iterdir() if p.is_file())

    def read(self, name: str) -> str:
        return self._path(name).read_text()


def get_secret_backend(runner: CommandRunner, deploy_dir: Path, kind: str = None) -> SecretBackend:
    """Build the configured secret backend for a deployment."""
    kind = (kind or get_config().secret_backend).lower()
    if kind == 'file':
        return FileSecretBackend(Path(deploy_dir) / 'secrets')
    if kind == 'podman':
        return PodmanSecretBackend(runner)
    raise ValueError(f"Unknown secret backend '{kind}' (expected 'podman' or 'file')")


SecretsInput = Union[Sequence[SecretSpec], Mapping[str, object]]


def _as_specs(secrets_input: SecretsInput) -> List[SecretSpec]:
    if isinstance(secrets_input, Mapping):
        return [SecretSpec(key=k, value=v) for k, v in secrets_input.items()]
    return list(secrets_input)


class SecretProvisioner:
    """Turns a service's secret specs into stored, namespaced secrets."""

    def __init__(self, backend: SecretBackend):
        self.backend = backend

    def provision(self, service: str, secrets_input: SecretsInput, overwrite: bool = True) -> Dict[str, str]:
        """Evaluate and store secrets in declaration order.

        Each producer sees the values produced before it, so a connection URL
        can embed a password generated earlier in the same pass. Empty values
        are skipped. Existing secrets are deleted and recreated, because
        backends such as podman do not update in place.

        Args:
            service: Service name used as the namespace prefix
            secrets_input: Ordered SecretSpecs, or a {key: value-or-producer} mapping
            overwrite: When False, existing secrets are kept and their stored
                value is what later producers see

        Returns:
            Mapping of key -> value for everything that was evaluated

        Raises:
            SecretProvisionError: Creating a secret failed; later keys are not attempted
        """
        produced: Dict[str, str] = {}

        for spec in _as_specs(secrets_input):
            name = secret_name(service, spec.key)

            if not overwrite and self.backend.exists(name):
                logger.debug(f"Keeping existing secret: {name}")
                try:
                    produced[spec.key] = self.backend.read(name)
                except (CommandError, OSError) as e:
                    raise SecretProvisionError(service, name, e) from e
                continue

            value = spec.evaluate(dict(produced))
            produced[spec.key] = value

            if not value:
                logger.debug(f"Skipping empty secret: {name}")
                continue

            self.replace(service, name, value)

        return produced

    def replace(self, service: str, name: str, value: str) -> None:
        """Store ``value`` under ``name``, deleting any previous secret first.

        Raises:
            SecretProvisionError: The old secret could not be deleted or the new one created
        """
        if self.backend.exists(name):
            logger.debug(f"Removing existing secret: {name}")
            try:
                self.backend.delete(name)
            except (CommandError, OSError) as e:
                if not is_absent_error(e):
                    raise SecretProvisionError(service, name, e) from e
                logger.debug(f"Secret {name} vanished before removal")

        logger.debug(f"Creating secret: {name}")
        try:
            self.backend.create(name, value)
        except (CommandError, OSError) as e:
            raise SecretProvisionError(service, name, e) from e

    def deprovision(self, service: str, keys: Iterable[str]) -> List[str]:
        """Delete every namespaced secret, best-effort.

        Returns:
            Names whose removal failed for a reason other than being absent
        """
        failed = []
        for key in keys:
            name = secret_name(service, key)
            result = attempt(f"Removing secret {name}", lambda n=name: self.backend.delete(n))
            if result.unexpected:
                failed.append(name)
        return failed
