"""Resetting the base stack's containers and data for a fresh start."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from blueprint.core.command_runner import CommandRunner, attempt
from blueprint.core.config import BlueprintConfig, get_config
from blueprint.core.errors import BlueprintError, CommandError
from blueprint.core.logger import get_logger
from blueprint.core.systemd import SystemdController, network_unit_name

from .core import BASE_START_ORDER

logger = get_logger(__name__)


@dataclass(frozen=True)
class BaseComponent:
    """A base-stack container and the volumes holding its data."""
    unit: str
    container: str
    volumes: Tuple[str, ...]


BASE_COMPONENTS: Dict[str, BaseComponent] = {
    'postgres': BaseComponent('authelia-postgres', 'authelia-postgres', ('authelia-postgres-data',)),
    'authelia': BaseComponent('authelia', 'authelia', ('authelia-data',)),
    'caddy': BaseComponent('caddy', 'caddy', ('caddy-data', 'caddy-config')),
}

# Front to back, so nothing restarts a stopped upstream
STOP_ORDER = ['caddy', 'authelia', 'postgres']


@dataclass
class ResetReport:
    """Steps of a reset that failed for a reason other than absence."""
    failures: List[str] = field(default_factory=list)
    started: List[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.failures


class StackResetter:
    """Stops the base stack and deletes its containers, volumes and networks.

    Every step is best-effort: missing containers, volumes or units are only
    logged at debug level, and other failures are collected in the report.
    Unit files and secrets are left alone, so the stack comes back from the
    same configuration with empty data.
    """

    def __init__(
        self,
        runner: CommandRunner,
        systemd: Optional[SystemdController] = None,
        config: Optional[BlueprintConfig] = None,
    ):
        self.runner = runner
        self.config = config or get_config()
        self.systemd = systemd or SystemdController(runner, scope=self.config.systemctl_scope)

    @property
    def tool(self) -> str:
        return self.config.container_tool

    def _step(self, report: ResetReport, description: str, action) -> None:
        if attempt(description, action).unexpected:
            report.failures.append(description)

    def _stop(self, report: ResetReport, unit: str) -> None:
        self._step(report, f"Stopping {unit}", lambda: self.systemd.stop(unit))

    def _remove_container(self, report: ResetReport, container: str) -> None:
        self._step(report, f"Removing container {container}",
                   lambda: self.runner.run(f"{self.tool} rm -f {container}"))

    def _remove_volume(self, report: ResetReport, volume: str) -> None:
        self._step(report, f"Removing volume {volume}",
                   lambda: self.runner.run(f"{self.tool} volume rm {volume}"))

    def _start(self, report: ResetReport, unit: str) -> None:
        try:
            self.systemd.start(unit)
        except CommandError as e:
            if e.is_not_found:
                logger.warning(f"{unit} unit not found; run 'blueprint system setup-links' first")
            else:
                logger.warning(f"Starting {unit} failed: {e}")
            report.failures.append(f"Starting {unit}")
            return
        report.started.append(unit)

    def reset_service(self, name: str) -> ResetReport:
        """Wipe one base component's data and start it again.

        Raises:
            BlueprintError: Unknown component name
        """
        if name not in BASE_COMPONENTS:
            raise BlueprintError(
                f"Invalid service: {name}. Valid options: {', '.join(BASE_COMPONENTS)}"
            )
        component = BASE_COMPONENTS[name]
        report = ResetReport()

        logger.info(f"Resetting {name}...")
        self._stop(report, component.unit)
        self._remove_container(report, component.container)
        for volume in component.volumes:
            self._remove_volume(report, volume)
        self._start(report, component.unit)
        return report

    def reset_volumes(self) -> ResetReport:
        """Wipe every base volume, then start the stack again on empty data."""
        report = ResetReport()

        logger.info("Stopping containers...")
        for name in STOP_ORDER:
            self._stop(report, BASE_COMPONENTS[name].unit)

        logger.info("Removing containers to free volumes...")
        for name in STOP_ORDER:
            self._remove_container(report, BASE_COMPONENTS[name].container)

        logger.info("Removing volumes...")
        for name in STOP_ORDER:
            for volume in BASE_COMPONENTS[name].volumes:
                self._remove_volume(report, volume)

        self._step(report, "Reloading systemd", self.systemd.daemon_reload)

        logger.info("Restarting containers...")
        for unit in BASE_START_ORDER:
            self._start(report, unit)
        return report

    def reset_all(self) -> ResetReport:
        """Stop everything and delete containers, volumes and shared networks."""
        report = ResetReport()
        networks = list(self.config.shared_networks)

        logger.info("Stopping all services...")
        for name in STOP_ORDER:
            self._stop(report, BASE_COMPONENTS[name].unit)
        for network in networks:
            self._stop(report, network_unit_name(network))

        logger.info("Removing containers...")
        for name in STOP_ORDER:
            self._remove_container(report, BASE_COMPONENTS[name].container)

        logger.info("Removing volumes...")
        for name in STOP_ORDER:
            for volume in BASE_COMPONENTS[name].volumes:
                self._remove_volume(report, volume)

        logger.info("Removing networks...")
        for network in networks:
            self._step(report, f"Removing network {network}",
                       lambda n=network: self.runner.run(f"{self.tool} network rm {n}"))
        return report
