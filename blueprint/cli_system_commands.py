"""systemd-level maintenance commands."""
from typing import Optional

import typer
from rich.console import Console

from blueprint.cli_support import (
    build_systemd,
    find_deploy_dir,
    handle_cli_error,
    print_info,
    print_success,
    print_warning,
)
from blueprint.core.errors import CommandError
from blueprint.core.logger import is_verbose
from blueprint.core.systemd import setup_links

SystemTyper = typer.Typer(help="systemd maintenance (reload, enable, links)")


def register_system_commands(root: typer.Typer, console: Console) -> None:
    """Attach system subcommands to the main CLI."""

    @SystemTyper.command("reload")
    def reload_command() -> None:
        """Run systemctl daemon-reload so Quadlet regenerates units."""
        try:
            build_systemd().daemon_reload()
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        print_success(console, "systemd reloaded")

    @SystemTyper.command("enable")
    def enable_command(unit: str = typer.Argument(..., help="Unit to enable.")) -> None:
        """Enable a unit (sockets and plain units; Quadlet units use [Install])."""
        try:
            build_systemd().enable(unit)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        print_success(console, f"Enabled {unit}")

    @SystemTyper.command("disable")
    def disable_command(unit: str = typer.Argument(..., help="Unit to disable.")) -> None:
        """Disable a unit."""
        try:
            build_systemd().disable(unit)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        print_success(console, f"Disabled {unit}")

    @SystemTyper.command("reset-failed")
    def reset_failed_command(
        unit: Optional[str] = typer.Argument(None, help="Unit to reset (all units if omitted)."),
    ) -> None:
        """Clear the failed state of one or all units."""
        try:
            build_systemd().reset_failed(unit)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        print_success(console, f"Reset failed state of {unit or 'all units'}")

    @SystemTyper.command("setup-links")
    def setup_links_command(
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Symlink the deployment's unit directories into ~/.config."""
        deploy_dir = find_deploy_dir(directory)
        if not (deploy_dir / "containers").is_dir():
            print_warning(console, f"{deploy_dir} has no containers/ directory")
            raise typer.Exit(2)

        try:
            results = setup_links(deploy_dir)
        except OSError as e:
            handle_cli_error(e, console, verbose=is_verbose())

        for link in results:
            if link.linked:
                print_success(console, f"{link.target} -> {link.source}")
            elif link.reason == "target exists":
                print_warning(console, f"{link.target} exists and is not a symlink, skipped")
            else:
                print_info(console, f"{link.name}: {link.reason}, skipped")

        console.print("[dim]Run 'blueprint system reload' to pick up the units.[/dim]")

    root.add_typer(SystemTyper, name="system")
