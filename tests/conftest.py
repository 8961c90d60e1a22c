"""Shared test fixtures for Blueprint tests."""
import shlex

import pytest

from blueprint.addons import register_builtin_addons
from blueprint.core.command_runner import CommandRunner
from blueprint.core.config import BlueprintConfig, set_config
from blueprint.core.errors import CommandError
from blueprint.core.orchestrator import ServiceOrchestrator
from blueprint.core.registry import ServiceRegistry
from blueprint.models.service import ServiceDescriptor


class FakeRunner(CommandRunner):
    """Records commands and simulates podman's secrets, volumes, containers and networks.

    ``failures`` maps a command substring to the stderr the command should
    fail with. ``responses`` maps a command substring to canned stdout.
    """

    def __init__(self, failures=None, responses=None, secrets=None, volumes=None, containers=None, networks=None):
        self.mock = False
        self.timeout = None
        self.calls = []
        self.failures = dict(failures or {})
        self.responses = dict(responses or {})
        self.secrets = dict(secrets or {})
        self.volumes = set(volumes or ())
        self.containers = set(containers or ())
        self.networks = set(networks or ())

    @property
    def commands(self):
        return [command for command, _ in self.calls]

    def systemctl(self, action):
        """Units passed to ``systemctl --user {action}`` in call order."""
        prefix = f"systemctl --user {action} "
        return [c[len(prefix):] for c in self.commands if c.startswith(prefix)]

    def run(self, command, input=None):
        self.calls.append((command, input))

        for pattern, stderr in self.failures.items():
            if pattern in command:
                raise CommandError(command, 1, stderr=stderr)

        for pattern, stdout in self.responses.items():
            if pattern in command:
                return stdout

        argv = shlex.split(command)
        if argv[:2] == ["podman", "secret"]:
            return self._secret(command, argv[2:], input)
        if argv[:3] == ["podman", "volume", "rm"]:
            name = argv[3]
            if name not in self.volumes:
                raise CommandError(command, 1, stderr=f'Error: no volume with name "{name}" found: no such volume')
            self.volumes.discard(name)
        if argv[:3] == ["podman", "rm", "-f"]:
            name = argv[3]
            if name not in self.containers:
                raise CommandError(command, 1, stderr=f'Error: no container with name or ID "{name}" found: no such container')
            self.containers.discard(name)
        if argv[:3] == ["podman", "network", "rm"]:
            name = argv[3]
            if name not in self.networks:
                raise CommandError(command, 1, stderr=f'Error: unable to find network with name or ID {name}: network not found')
            self.networks.discard(name)
        return ""

    def _secret(self, command, args, input):
        action = args[0]
        if action == "ls":
            return "".join(f"{name}\n" for name in self.secrets)

        name = args[-1] if action == "inspect" else args[1]
        if action == "inspect":
            if name not in self.secrets:
                raise CommandError(command, 125, stderr=f'Error: inspecting secret: no secret with name or id "{name}": no such secret')
            if "--showsecret" in args:
                return f"{self.secrets[name]}\n"
            return "[]"
        if action == "create":
            if name in self.secrets:
                raise CommandError(command, 125, stderr=f'Error: {name}: secret name in use')
            self.secrets[name] = input
            return "0123456789abcdef\n"
        if action == "rm":
            if name not in self.secrets:
                raise CommandError(command, 1, stderr=f'Error: no secret with name or id "{name}": no such secret')
            del self.secrets[name]
            return name
        return ""


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Run every test against default settings, independent of the environment."""
    monkeypatch.delenv("BLUEPRINT_MOCK", raising=False)
    monkeypatch.delenv("BLUEPRINT_DEPLOY_DIR", raising=False)
    set_config(BlueprintConfig())
    yield
    set_config(None)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def deploy_dir(tmp_path):
    """Empty deployment directory."""
    path = tmp_path / "deploy"
    path.mkdir()
    return path


@pytest.fixture
def registry():
    """Registry holding the built-in addons."""
    return register_builtin_addons(ServiceRegistry())


@pytest.fixture
def orchestrator(registry, runner):
    return ServiceOrchestrator(registry, runner)


def whoami_container(config):
    return f"[Container]\nImage=docker.io/traefik/whoami\nLabel=domain={config.domain}\n"


@pytest.fixture
def whoami():
    """Minimal single-container service without a proxy route."""
    return ServiceDescriptor(
        name="whoami",
        containers=["whoami"],
        secrets={"TOKEN": "fixed-token"},
        templates={"containers": {"whoami": whoami_container}},
    )
