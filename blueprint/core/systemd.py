"""systemd unit control and unit-directory linking."""
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from blueprint.core.command_runner import CommandRunner
from blueprint.core.config import get_config
from blueprint.core.logger import get_logger

logger = get_logger(__name__)


def unit_name(name: str) -> str:
    """Map a short name to a systemd unit.

    Quadlet turns ``foo.container`` into ``foo.service``, so bare names get the
    ``.service`` suffix. Names that already carry a suffix are used as-is.
    """
    return name if "." in name else f"{name}.service"


def network_unit_name(network: str) -> str:
    """Quadlet service generated for ``{network}.network``."""
    return f"{network}-network.service"


class SystemdController:
    """Thin wrapper over systemctl and journalctl."""

    def __init__(self, runner: CommandRunner, scope: Optional[str] = None):
        self.runner = runner
        self.scope = scope if scope is not None else get_config().systemctl_scope

    def _systemctl(self, *args: str) -> str:
        parts = ["systemctl"]
        if self.scope:
            parts.append(self.scope)
        parts.extend(shlex.quote(arg) for arg in args)
        return self.runner.run(" ".join(parts))

    def daemon_reload(self) -> str:
        return self._systemctl("daemon-reload")

    def start(self, unit: str) -> str:
        return self._systemctl("start", unit_name(unit))

    def stop(self, unit: str) -> str:
        return self._systemctl("stop", unit_name(unit))

    def restart(self, unit: str) -> str:
        return self._systemctl("restart", unit_name(unit))

    def enable(self, unit: str) -> str:
        return self._systemctl("enable", unit_name(unit))

    def disable(self, unit: str) -> str:
        return self._systemctl("disable", unit_name(unit))

    def reset_failed(self, unit: Optional[str] = None) -> str:
        if unit:
            return self._systemctl("reset-failed", unit_name(unit))
        return self._systemctl("reset-failed")

    def status(self, unit: str) -> str:
        return self._systemctl("status", unit_name(unit), "--no-pager")

    def list_units(self, pattern: str = "*.service") -> str:
        return self._systemctl("list-units", pattern, "--all", "--no-pager")

    def logs(self, unit: str, lines: int = 50) -> str:
        """Return the last journal lines of a unit."""
        parts = ["journalctl"]
        if self.scope:
            parts.append(self.scope)
        parts.extend(["-u", shlex.quote(unit_name(unit)), "-n", str(int(lines)), "--no-pager"])
        return self.runner.run(" ".join(parts))

    def follow_command(self, unit: str) -> List[str]:
        """argv for following a unit's journal interactively."""
        argv = ["journalctl"]
        if self.scope:
            argv.append(self.scope)
        argv.extend(["-u", unit_name(unit), "-f"])
        return argv


@dataclass
class LinkResult:
    """Outcome of linking one deployment directory into the user's config."""
    name: str
    source: Path
    target: Path
    linked: bool
    reason: str = ""


def setup_links(deploy_dir: Path, home: Optional[Path] = None) -> List[LinkResult]:
    """Link the deployment's unit directories into the user's systemd search paths.

    - ``containers/`` -> ``~/.config/containers/systemd`` (Quadlet units)
    - every file in ``user/`` -> ``~/.config/systemd/user/`` (sockets)
    - ``secrets/`` -> ``~/.config/containers/secrets`` when present

    Existing symlinks are replaced; real files and directories are left alone.

    Args:
        deploy_dir: Deployment root
        home: Home directory (defaults to the current user's)

    Returns:
        One LinkResult per attempted link
    """
    deploy_dir = Path(deploy_dir).resolve()
    home = Path(home) if home else Path.home()
    results: List[LinkResult] = []

    directory_links = [
        ("containers", deploy_dir / "containers", home / ".config" / "containers" / "systemd"),
        ("secrets", deploy_dir / "secrets", home / ".config" / "containers" / "secrets"),
    ]
    for name, source, target in directory_links:
        results.append(_link(name, source, target))

    user_dir = deploy_dir / "user"
    if user_dir.is_dir():
        target_dir = home / ".config" / "systemd" / "user"
        target_dir.mkdir(parents=True, exist_ok=True)
        for unit_file in sorted(user_dir.iterdir()):
            if unit_file.is_file():
                results.append(_link(unit_file.name, unit_file, target_dir / unit_file.name))
    else:
        logger.debug(f"Source directory {user_dir} does not exist, skipping sockets")

    return results


def _link(name: str, source: Path, target: Path) -> LinkResult:
    if not source.exists():
        logger.debug(f"Source {source} does not exist, skipping {name}")
        return LinkResult(name, source, target, linked=False, reason="source missing")

    target.parent.mkdir(parents=True, exist_ok=True)

    if target.is_symlink():
        logger.debug(f"Removing existing symlink: {target}")
        target.unlink()
    elif target.exists():
        logger.warning(f"Target {target} exists and is not a symlink - skipping {name}")
        return LinkResult(name, source, target, linked=False, reason="target exists")

    logger.debug(f"Creating symlink: {target} -> {source}")
    target.symlink_to(source, target_is_directory=source.is_dir())
    return LinkResult(name, source, target, linked=True)
