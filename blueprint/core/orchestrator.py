"""Install/remove orchestration for registered services."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from blueprint.core.command_runner import CommandRunner, attempt
from blueprint.core.config import BlueprintConfig, get_config
from blueprint.core.errors import (
    CommandError,
    ContainerStartError,
    InstallError,
    ProxyReloadError,
    SecretProvisionError,
)
from blueprint.core.logger import get_logger
from blueprint.core.registry import ServiceRegistry
from blueprint.core.secret_provisioner import (
    SecretBackend,
    SecretProvisioner,
    get_secret_backend,
    secret_name,
)
from blueprint.core.systemd import SystemdController, network_unit_name
from blueprint.core.units import UnitMaterializer, unit_path
from blueprint.models.deployment import (
    SMTP_PASSWORD_PLACEHOLDER,
    DeploymentConfig,
    InstallOptions,
    RemoveOptions,
)
from blueprint.models.service import SecretSpec, ServiceDescriptor
from blueprint.templates.systemd import volume_unit

logger = get_logger(__name__)

# Keys install(shared_smtp=True) adds under the service's namespace
SHARED_SMTP_KEYS = ('SMTP_HOST', 'SMTP_PORT', 'SMTP_USERNAME', 'SMTP_PASSWORD', 'SMTP_SENDER')

# Deployment-wide relay password created by init
DEPLOYMENT_SMTP_PASSWORD = secret_name('smtp', 'PASSWORD')


@dataclass
class RemovalReport:
    """Sub-steps of a removal that failed for a reason other than absence."""
    service: str
    failures: List[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.failures


class ServiceOrchestrator:
    """Sequences install and removal of a service's secrets, units and processes.

    Install runs: secrets -> networks -> volumes -> containers -> proxy fragment
    -> daemon-reload -> start, failing fast on the first fatal error. There is
    no rollback; earlier artifacts stay in place and a repeated install or a
    remove converges from there.

    Remove runs the mirror image and never fails on a missing piece, so it can
    be used to clean up after a broken install.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        runner: CommandRunner,
        systemd: Optional[SystemdController] = None,
        materializer: Optional[UnitMaterializer] = None,
        secret_backend: Optional[SecretBackend] = None,
        config: Optional[BlueprintConfig] = None,
    ):
        """Initialize service orchestrator.

        Args:
            registry: Populated service registry
            runner: Command runner for systemctl/podman calls
            systemd: systemctl wrapper (built from runner if omitted)
            materializer: Unit file writer
            secret_backend: Fixed secret backend; by default one is chosen per deployment
            config: Runtime settings (defaults to the global config)
        """
        self.registry = registry
        self.runner = runner
        self.config = config or get_config()
        self.systemd = systemd or SystemdController(runner, scope=self.config.systemctl_scope)
        self.materializer = materializer or UnitMaterializer()
        self._secret_backend = secret_backend

    def _provisioner(self, deploy_dir: Path) -> SecretProvisioner:
        backend = self._secret_backend or get_secret_backend(
            self.runner, deploy_dir, self.config.secret_backend
        )
        return SecretProvisioner(backend)

    @property
    def shared_networks(self):
        return tuple(self.config.shared_networks)

    def install(
        self,
        service_name: str,
        deploy_dir: Union[str, Path],
        config: Union[DeploymentConfig, Mapping[str, Any], None] = None,
        options: Optional[InstallOptions] = None,
    ) -> None:
        """Install a registered service into a deployment.

        Args:
            service_name: Registered service name
            deploy_dir: Deployment root (unit files go to ``containers/``)
            config: Deployment config the templates render against
            options: Install options

        Raises:
            ServiceNotFoundError: Unknown service (nothing was touched)
            SecretProvisionError: A secret could not be created
            ContainerStartError: A container unit failed to start
            ProxyReloadError: The route was written but the proxy did not restart
            InstallError: Any other step failed
        """
        service = self.registry.get(service_name)
        deploy_dir = Path(deploy_dir)
        config = DeploymentConfig.coerce(config)
        options = options or InstallOptions()

        logger.info(f"Installing {service.label}...")

        if options.shared_smtp:
            # Unit templates check this to map the relay secrets into the container
            config = config.with_values(shared_smtp=True)

        if not options.skip_secrets:
            provisioner = self._provisioner(deploy_dir)
            specs = list(service.secrets)
            if options.shared_smtp:
                specs += self._shared_smtp_specs(service, config, provisioner.backend)
            if specs:
                logger.debug("Creating secrets...")
                provisioner.provision(service.name, specs)

        if service.templates.networks:
            logger.debug("Creating network configurations...")
            self._write_step(service, "networks", lambda: self.materializer.write_networks(
                deploy_dir, service.templates.networks, config))

        volumes = self._volume_templates(service)
        if volumes:
            logger.debug("Creating volume configurations...")
            self._write_step(service, "volumes", lambda: self.materializer.write_volumes(
                deploy_dir, volumes, config))

        logger.debug("Creating container configurations...")
        self._write_step(service, "containers", lambda: self.materializer.write_containers(
            deploy_dir, service.templates.containers, config))

        if service.caddyfile is not None:
            logger.debug("Creating Caddy route fragment...")
            self._write_step(service, "proxy-fragment", lambda: self.materializer.write_proxy_fragment(
                deploy_dir, service.name, service.caddyfile(config)))

        logger.debug("Reloading systemd...")
        try:
            self.systemd.daemon_reload()
        except CommandError as e:
            raise InstallError(service.name, "daemon-reload", e) from e

        logger.debug("Starting services...")
        self._start(service)

        logger.info(f"✓ {service.label} installed successfully")

    def _write_step(self, service: ServiceDescriptor, step: str, write) -> None:
        """Render and write one group of files, naming the step on any failure."""
        try:
            write()
        except Exception as e:
            raise InstallError(service.name, step, e) from e

    @staticmethod
    def _volume_templates(service: ServiceDescriptor) -> Dict[str, Any]:
        """Declared volumes without a template get a plain named volume unit."""
        templates = service.templates.volumes
        return {
            volume: templates[volume] if volume in templates else volume_unit(volume)
            for volume in service.owned_volumes()
        }

    def _shared_smtp_specs(
        self, service: ServiceDescriptor, config: DeploymentConfig, backend: SecretBackend
    ) -> List[SecretSpec]:
        password = config.smtp_password
        if not password:
            # blueprint.yml never holds the password; init stored it as a secret
            try:
                if backend.exists(DEPLOYMENT_SMTP_PASSWORD):
                    password = backend.read(DEPLOYMENT_SMTP_PASSWORD)
            except (CommandError, OSError) as e:
                raise SecretProvisionError(service.name, DEPLOYMENT_SMTP_PASSWORD, e) from e
            if not password:
                logger.warning(f"No {DEPLOYMENT_SMTP_PASSWORD} secret found; {service.name} gets a placeholder")

        values: Dict[str, str] = {
            'SMTP_HOST': config.smtp_host,
            'SMTP_PORT': str(config.smtp_port),
            'SMTP_USERNAME': config.smtp_username or '',
            'SMTP_PASSWORD': password or SMTP_PASSWORD_PLACEHOLDER,
            'SMTP_SENDER': config.smtp_sender or '',
        }
        return [SecretSpec(key=k, value=values[k]) for k in SHARED_SMTP_KEYS]

    def _start(self, service: ServiceDescriptor) -> None:
        # Network units may already be active or exit once the network exists
        for network in service.owned_networks(self.shared_networks):
            attempt(f"Starting network {network}",
                    lambda n=network: self.systemd.start(network_unit_name(n)))

        for container in service.containers:
            try:
                self.systemd.start(container)
            except CommandError as e:
                raise ContainerStartError(service.name, container, e) from e

        if service.caddyfile is not None:
            proxy = self.config.proxy_unit
            try:
                self.systemd.restart(proxy)
            except CommandError as e:
                raise ProxyReloadError(service.name, proxy, e) from e

    def remove(
        self,
        service_name: str,
        deploy_dir: Union[str, Path],
        options: Optional[RemoveOptions] = None,
    ) -> RemovalReport:
        """Remove a service, tolerating any part of it already being gone.

        Raises:
            ServiceNotFoundError: Unknown service
        """
        service = self.registry.get(service_name)
        deploy_dir = Path(deploy_dir)
        options = options or RemoveOptions()
        report = RemovalReport(service.name)

        logger.info(f"Removing {service.label}...")

        logger.debug("Stopping services...")
        for container in reversed(service.containers):
            self._best_effort(report, f"Stopping {container}", lambda c=container: self.systemd.stop(c))
            self._best_effort(report, f"Disabling {container}", lambda c=container: self.systemd.disable(c))

        for network in service.owned_networks(self.shared_networks):
            unit = network_unit_name(network)
            self._best_effort(report, f"Stopping {unit}", lambda u=unit: self.systemd.stop(u))
            self._best_effort(report, f"Disabling {unit}", lambda u=unit: self.systemd.disable(u))

        logger.debug("Removing configuration files...")
        for path in self.materializer.remove_artifacts(deploy_dir, service, self.shared_networks):
            report.failures.append(f"Removing {path}")

        if not options.keep_data and service.volumes:
            logger.debug("Removing data volumes...")
            tool = self.config.container_tool
            for volume in service.volumes:
                self._best_effort(report, f"Removing volume {volume}",
                                  lambda v=volume: self.runner.run(f"{tool} volume rm {v}"))

        # Shared SMTP keys are absent unless installed with shared_smtp
        keys = service.secret_keys + [k for k in SHARED_SMTP_KEYS if k not in service.secret_keys]
        logger.debug("Removing secrets...")
        for name in self._provisioner(deploy_dir).deprovision(service.name, keys):
            report.failures.append(f"Removing secret {name}")

        logger.debug("Reloading systemd...")
        self._best_effort(report, "Reloading systemd", self.systemd.daemon_reload)

        if service.caddyfile is not None:
            proxy = self.config.proxy_unit
            self._best_effort(report, f"Restarting {proxy}", lambda: self.systemd.restart(proxy))

        if report.clean:
            logger.info(f"✓ {service.label} removed successfully")
        else:
            logger.warning(f"{service.label} removed with {len(report.failures)} problem(s)")
        return report

    def _best_effort(self, report: RemovalReport, description: str, action) -> None:
        result = attempt(description, action)
        if result.unexpected:
            report.failures.append(description)

    def is_installed(self, service_name: str, deploy_dir: Union[str, Path]) -> bool:
        """True if the first container's unit file exists.

        A crash between writing the first and last container unit still reads
        as installed; re-running install or remove converges either way.
        """
        service = self.registry.lookup(service_name)
        if service is None:
            return False
        return unit_path(Path(deploy_dir), service.containers[0], "container").exists()

    def list(self) -> List[str]:
        return self.registry.list()
