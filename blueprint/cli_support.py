"""Shared utilities for Blueprint CLI modules."""
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from blueprint.addons import register_builtin_addons
from blueprint.core.command_runner import CommandRunner
from blueprint.core.config import get_config
from blueprint.core.orchestrator import ServiceOrchestrator
from blueprint.core.registry import ServiceRegistry
from blueprint.core.systemd import SystemdController
from blueprint.models.deployment import CONFIG_FILENAME, DeploymentConfig


def is_mock() -> bool:
    """Return True when CLI runs in mock mode."""
    return os.environ.get("BLUEPRINT_MOCK") == "1"


def find_deploy_dir(directory: Optional[str] = None) -> Path:
    """Locate the deployment directory.

    Order: explicit option, BLUEPRINT_DEPLOY_DIR, current directory.
    """
    if directory:
        return Path(directory)

    if env_dir := os.environ.get("BLUEPRINT_DEPLOY_DIR"):
        return Path(env_dir)

    return Path.cwd()


def build_runner() -> CommandRunner:
    """CommandRunner honoring mock mode."""
    return CommandRunner(mock=is_mock())


def build_registry() -> ServiceRegistry:
    """Registry populated with every built-in addon."""
    return register_builtin_addons(ServiceRegistry())


def build_orchestrator(runner: Optional[CommandRunner] = None) -> ServiceOrchestrator:
    runner = runner or build_runner()
    return ServiceOrchestrator(build_registry(), runner, config=get_config())


def build_systemd(runner: Optional[CommandRunner] = None) -> SystemdController:
    return SystemdController(runner or build_runner(), scope=get_config().systemctl_scope)


def load_deployment(deploy_dir: Path, console: Console) -> DeploymentConfig:
    """Load blueprint.yml or exit with a usage error."""
    try:
        return DeploymentConfig.load(deploy_dir)
    except FileNotFoundError:
        print_error(console, f"{deploy_dir} is not a Blueprint deployment (no {CONFIG_FILENAME})")
        console.print("[dim]Run 'blueprint init' first, or pass --directory.[/dim]")
        raise typer.Exit(2)
    except ValueError as e:
        print_error(console, f"Invalid {CONFIG_FILENAME}: {e}")
        raise typer.Exit(2)


def confirm_action(message: str, yes_flag: bool = False, mock: bool = False) -> bool:
    """Prompt user for confirmation unless --yes or mock mode.

    Args:
        message: Confirmation message to display
        yes_flag: Skip prompt if True (from --yes flag)
        mock: Skip prompt if True (mock mode)

    Returns:
        True if confirmed, False otherwise
    """
    if yes_flag or mock:
        return True
    return typer.confirm(message)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")


def mask_value(value: str) -> str:
    """Show the first and last four characters of long values only."""
    value = value.strip()
    if len(value) > 8:
        return value[:4] + "*" * max(4, len(value) - 8) + value[-4:]
    return "*" * len(value)
