"""Addon install/remove CLI commands."""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from blueprint.cli_support import (
    build_orchestrator,
    confirm_action,
    find_deploy_dir,
    handle_cli_error,
    is_mock,
    load_deployment,
    print_error,
    print_success,
    print_warning,
)
from blueprint.core.errors import BlueprintError
from blueprint.core.logger import is_verbose
from blueprint.models.deployment import InstallOptions, RemoveOptions

AddonTyper = typer.Typer(help="Install and remove addon services")


def register_addon_commands(root: typer.Typer, console: Console) -> None:
    """Attach addon subcommands to the main CLI."""

    def _require_known(orchestrator, name: str) -> None:
        if name not in orchestrator.list():
            print_error(console, f"Unknown addon '{name}'")
            console.print(f"[dim]Available: {', '.join(sorted(orchestrator.list()))}[/dim]")
            raise typer.Exit(2)

    @AddonTyper.command("list")
    def list_command(
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """List available addons and whether they are installed."""
        deploy_dir = find_deploy_dir(directory)
        orchestrator = build_orchestrator()

        table = Table(title="Addons")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        table.add_column("Installed")

        for name in sorted(orchestrator.list()):
            descriptor = orchestrator.registry.get(name)
            installed = orchestrator.is_installed(name, deploy_dir)
            table.add_row(name, descriptor.label, "[green]yes[/green]" if installed else "[dim]no[/dim]")

        console.print(table)

    @AddonTyper.command("install")
    def install_command(
        name: str = typer.Argument(..., help="Addon to install."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
        skip_secrets: bool = typer.Option(False, "--skip-secrets", help="Keep existing secrets instead of regenerating them."),
        shared_smtp: bool = typer.Option(False, "--shared-smtp", help="Give the addon the deployment's SMTP settings."),
    ) -> None:
        """Install an addon into the deployment and start it."""
        deploy_dir = find_deploy_dir(directory)
        orchestrator = build_orchestrator()
        _require_known(orchestrator, name)

        deployment = load_deployment(deploy_dir, console)

        if orchestrator.is_installed(name, deploy_dir) and not skip_secrets:
            print_warning(console, f"{name} is already installed; its secrets will be regenerated")

        options = InstallOptions(skip_secrets=skip_secrets, shared_smtp=shared_smtp)
        try:
            orchestrator.install(name, deploy_dir, deployment, options)
        except BlueprintError as e:
            console.print("[dim]Re-run the install, or 'blueprint addon remove' to clean up.[/dim]")
            handle_cli_error(e, console, verbose=is_verbose())

        print_success(console, f"{orchestrator.registry.get(name).label} installed")

    @AddonTyper.command("remove")
    def remove_command(
        name: str = typer.Argument(..., help="Addon to remove."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
        keep_data: bool = typer.Option(False, "--keep-data", help="Keep data volumes."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
    ) -> None:
        """Stop an addon and delete its units, secrets and (unless kept) data."""
        deploy_dir = find_deploy_dir(directory)
        orchestrator = build_orchestrator()
        _require_known(orchestrator, name)

        label = orchestrator.registry.get(name).label
        prompt = f"Remove {label}?" if keep_data else f"Remove {label} and delete its data?"
        if not confirm_action(prompt, yes_flag=yes, mock=is_mock()):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        report = orchestrator.remove(name, deploy_dir, RemoveOptions(keep_data=keep_data))

        if report.clean:
            print_success(console, f"{label} removed")
        else:
            print_warning(console, f"{label} removed, but some steps failed:")
            for failure in report.failures:
                console.print(f"  - {failure}")

    @AddonTyper.command("status")
    def status_command(
        name: str = typer.Argument(..., help="Addon to check."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Show whether an addon is installed and which units it owns."""
        deploy_dir = find_deploy_dir(directory)
        orchestrator = build_orchestrator()
        _require_known(orchestrator, name)

        descriptor = orchestrator.registry.get(name)
        installed = orchestrator.is_installed(name, deploy_dir)

        console.print(f"[bold]{descriptor.label}[/bold] ({name})")
        console.print(f"  Installed:  {'[green]yes[/green]' if installed else '[dim]no[/dim]'}")
        console.print(f"  Containers: {', '.join(descriptor.containers)}")
        if descriptor.volumes:
            console.print(f"  Volumes:    {', '.join(descriptor.volumes)}")
        if descriptor.networks:
            console.print(f"  Networks:   {', '.join(descriptor.networks)}")
        if descriptor.dependencies:
            console.print(f"  Expects:    {', '.join(descriptor.dependencies)}")

    root.add_typer(AddonTyper, name="addon")
