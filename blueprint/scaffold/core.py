"""Deployment scaffolding: directory tree, proxy and auth config, base units, secrets."""
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from blueprint.core.command_runner import CommandRunner
from blueprint.core.config import BlueprintConfig, get_config
from blueprint.core.errors import BlueprintError
from blueprint.core.logger import get_logger
from blueprint.core.secret_provisioner import (
    SecretProvisioner,
    generate_password,
    generate_secret,
    get_secret_backend,
)
from blueprint.core.systemd import SystemdController, setup_links
from blueprint.core.units import UnitMaterializer, authelia_config_dir, fragments_dir, units_dir
from blueprint.models.deployment import SMTP_PASSWORD_PLACEHOLDER, DeploymentConfig
from blueprint.models.service import SecretSpec
from blueprint.templates.authelia import authelia_configuration, dump_yaml, users_database
from blueprint.templates.caddy import caddyfile
from blueprint.templates.systemd import (
    CADDY_SOCKET_UNIT,
    authelia_container_unit,
    authelia_postgres_container_unit,
    caddy_container_unit,
    network_unit,
    volume_unit,
)

logger = get_logger(__name__)

# Base units start in this order; caddy last so its upstreams exist
BASE_START_ORDER = ["authelia-postgres", "authelia", "caddy.socket", "caddy"]

_SPECIAL_CHARS = r'[!@#$%^&*(),.?":{}|<>]'


def validate_admin_password(password: str) -> Optional[str]:
    """Return a problem description, or None if the password is strong enough."""
    if not password or len(password) < 12:
        return "Password must be at least 12 characters long"
    if not re.search(r'[a-z]', password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r'[A-Z]', password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r'\d', password):
        return "Password must contain at least one number"
    if not re.search(_SPECIAL_CHARS, password):
        return 'Password must contain at least one special character (!@#$%^&*(),.?":{}|<>)'
    return None


def hash_password(runner: CommandRunner, password: str, image: str) -> str:
    """Hash a password with Authelia's own argon2 implementation.

    Runs ``authelia crypto hash generate argon2`` in a throwaway container so
    the users database uses exactly the format Authelia expects. The password
    is piped to the container's stdin so it stays out of the podman command
    line and the debug log.
    """
    if runner.mock:
        return "$argon2id$v=19$m=65536,t=3,p=4$MOCKSALT$MOCKHASH"

    script = 'read -r password && exec authelia crypto hash generate argon2 --password "$password"'
    command = (
        f"{get_config().container_tool} run --rm -i {shlex.quote(image)} "
        f"sh -c {shlex.quote(script)}"
    )
    output = runner.run(command, input=f"{password}\n")
    for line in output.splitlines():
        if line.startswith("Digest:"):
            return line.split(":", 1)[1].strip()
    raise BlueprintError("Could not read password digest from authelia output")


def base_secrets(config: DeploymentConfig) -> dict:
    """Secrets of the base stack, grouped by namespace."""
    return {
        'authelia': [
            SecretSpec(key='JWT_SECRET', value=lambda prior: generate_secret(64)),
            SecretSpec(key='SESSION_SECRET', value=lambda prior: generate_secret(64)),
            SecretSpec(key='STORAGE_ENCRYPTION_KEY', value=lambda prior: generate_secret(64)),
            SecretSpec(key='POSTGRES_PASSWORD', value=lambda prior: generate_password()),
            SecretSpec(key='POSTGRES_DB', value='authelia'),
            SecretSpec(key='POSTGRES_USER', value='authelia'),
        ],
        'smtp': [
            SecretSpec(key='ADDRESS', value=f"smtp://{config.smtp_address}"),
            SecretSpec(key='USERNAME', value=config.smtp_username or ''),
            SecretSpec(key='PASSWORD', value=config.smtp_password or SMTP_PASSWORD_PLACEHOLDER),
            SecretSpec(key='SENDER', value=config.smtp_sender or ''),
        ],
    }


@dataclass
class ScaffoldResult:
    """What init produced."""
    deploy_dir: Path
    files: List[Path] = field(default_factory=list)
    generated_admin_password: Optional[str] = None
    started: List[str] = field(default_factory=list)


class DeploymentScaffolder:
    """Creates a new deployment: Caddy in front, Authelia behind it."""

    def __init__(
        self,
        runner: CommandRunner,
        materializer: Optional[UnitMaterializer] = None,
        config: Optional[BlueprintConfig] = None,
    ):
        self.runner = runner
        self.materializer = materializer or UnitMaterializer()
        self.config = config or get_config()

    def scaffold(
        self,
        deployment: DeploymentConfig,
        output_dir: Optional[Path] = None,
        start: bool = False,
        home: Optional[Path] = None,
    ) -> ScaffoldResult:
        """Scaffold a complete deployment.

        Args:
            deployment: Deployment settings (name, domain, admin, SMTP)
            output_dir: Parent directory (defaults to current dir)
            start: Link the units into systemd and start the base stack
            home: Home directory used for linking (defaults to the user's)

        Returns:
            ScaffoldResult describing the created deployment
        """
        output_dir = Path(output_dir) if output_dir else Path.cwd()
        deploy_dir = output_dir / deployment.name
        result = ScaffoldResult(deploy_dir=deploy_dir)

        logger.info(f"📦 Creating deployment: {deployment.name}")

        self._create_directory_structure(deploy_dir)
        result.files += self._generate_caddy(deploy_dir, deployment)
        result.files += self._generate_authelia(deploy_dir, deployment, result)
        result.files += self._generate_units(deploy_dir, deployment)
        self._generate_secrets(deploy_dir, deployment)
        result.files.append(deployment.save(deploy_dir))

        logger.info("✓ Generated Caddy and Authelia configuration")
        logger.info("✓ Created base secrets")

        if start:
            result.started = self.start(deploy_dir, home=home)

        return result

    def _create_directory_structure(self, deploy_dir: Path) -> None:
        for directory in [
            units_dir(deploy_dir),
            fragments_dir(deploy_dir),
            authelia_config_dir(deploy_dir),
            deploy_dir / "user",
            deploy_dir / "backups",
        ]:
            directory.mkdir(parents=True, exist_ok=True)

    def _generate_caddy(self, deploy_dir: Path, deployment: DeploymentConfig) -> List[Path]:
        path = units_dir(deploy_dir) / "Caddyfile"
        path.write_text(caddyfile(deployment))
        return [path]

    def _generate_authelia(self, deploy_dir: Path, deployment: DeploymentConfig, result: ScaffoldResult) -> List[Path]:
        config_dir = authelia_config_dir(deploy_dir)

        password = deployment.admin_password
        if not password:
            password = generate_password(20)
            result.generated_admin_password = password

        digest = hash_password(self.runner, password, self.config.authelia_image)

        configuration = config_dir / "configuration.yml"
        configuration.write_text(dump_yaml(authelia_configuration(deployment)))

        users = config_dir / "users_database.yml"
        users.write_text(dump_yaml(users_database(deployment, digest)))
        users.chmod(0o600)

        return [configuration, users]

    def _generate_units(self, deploy_dir: Path, deployment: DeploymentConfig) -> List[Path]:
        containers_dir = str(units_dir(deploy_dir).resolve())
        shared = list(self.config.shared_networks)

        written = self.materializer.write_networks(
            deploy_dir, {network: network_unit(network) for network in shared}
        )
        written += self.materializer.write_volumes(deploy_dir, {
            'caddy-data': volume_unit('caddy-data', '1G'),
            'caddy-config': volume_unit('caddy-config', '100M'),
            'authelia-data': volume_unit('authelia-data', '500M'),
            'authelia-postgres-data': volume_unit('authelia-postgres-data', '2G'),
        })
        written += self.materializer.write_containers(deploy_dir, {
            'caddy': lambda cfg: caddy_container_unit(cfg, containers_dir),
            'authelia': lambda cfg: authelia_container_unit(cfg, containers_dir, self.config.authelia_image),
            'authelia-postgres': authelia_postgres_container_unit,
        }, deployment)

        socket = deploy_dir / "user" / "caddy.socket"
        socket.write_text(CADDY_SOCKET_UNIT)
        written.append(socket)
        return written

    def _generate_secrets(self, deploy_dir: Path, deployment: DeploymentConfig) -> None:
        if not deployment.smtp_password:
            logger.warning(
                "No SMTP password given; SMTP_PASSWORD holds a placeholder until you replace it"
            )
        backend = get_secret_backend(self.runner, deploy_dir, self.config.secret_backend)
        provisioner = SecretProvisioner(backend)
        for namespace, specs in base_secrets(deployment).items():
            provisioner.provision(namespace, specs)

    def start(self, deploy_dir: Path, home: Optional[Path] = None) -> List[str]:
        """Link units into systemd, reload, and start the base stack in order.

        Raises:
            CommandError: A unit failed to start
        """
        for link in setup_links(deploy_dir, home=home):
            if link.linked:
                logger.debug(f"Linked {link.name}: {link.target}")

        systemd = SystemdController(self.runner, scope=self.config.systemctl_scope)
        systemd.daemon_reload()

        started = []
        for unit in BASE_START_ORDER:
            logger.info(f"Starting {unit}...")
            systemd.start(unit)
            started.append(unit)
        return started
