"""Secret inspection and management commands."""
import uuid
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from blueprint.cli_support import (
    build_runner,
    confirm_action,
    find_deploy_dir,
    handle_cli_error,
    is_mock,
    load_deployment,
    mask_value,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from blueprint.core.errors import CommandError, SecretProvisionError
from blueprint.core.logger import is_verbose
from blueprint.core.secret_provisioner import (
    FileSecretBackend,
    PodmanSecretBackend,
    SecretProvisioner,
    generate_secret,
)
from blueprint.scaffold.core import base_secrets

SecretsTyper = typer.Typer(help="Inspect and manage deployment secrets")

# Name fragments of values that are configuration, not credentials
_CONFIG_MARKERS = ("DB", "USER")
_CREDENTIAL_MARKERS = ("PASSWORD", "SECRET", "KEY")


def rotated_value(name: str) -> Optional[str]:
    """New value for a secret, or None if the name marks a configuration value."""
    upper = name.upper()
    if any(marker in upper for marker in _CREDENTIAL_MARKERS):
        return generate_secret(64)
    if any(marker in upper for marker in _CONFIG_MARKERS):
        return None
    return str(uuid.uuid4())


def register_secrets_commands(root: typer.Typer, console: Console) -> None:
    """Attach secrets subcommands to the main CLI."""

    def _file_backend(directory: Optional[str]) -> FileSecretBackend:
        return FileSecretBackend(find_deploy_dir(directory) / "secrets")

    @SecretsTyper.command("list")
    def list_command() -> None:
        """List Podman secret names."""
        try:
            names = PodmanSecretBackend(build_runner()).list_names()
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())

        if not names:
            console.print("[dim]No secrets found[/dim]")
            return

        for name in sorted(names):
            console.print(name)

    @SecretsTyper.command("show")
    def show_command(
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Show file-backed secrets with their values masked."""
        backend = _file_backend(directory)
        names = backend.list_names()

        if not names:
            console.print(f"[dim]No secret files in {backend.secrets_dir}[/dim]")
            console.print("[dim]Run 'blueprint secrets setup' to create them.[/dim]")
            return

        table = Table(title="Secrets")
        table.add_column("Name", style="cyan")
        table.add_column("Value")
        for name in names:
            table.add_row(name, mask_value(backend.read(name)))
        console.print(table)

    @SecretsTyper.command("setup")
    def setup_command(
        force: bool = typer.Option(False, "--force", help="Regenerate secrets that already exist."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Write the base stack's secrets as files under secrets/.

        Existing files are kept unless --force is given, so re-running only
        fills in what is missing.
        """
        deploy_dir = find_deploy_dir(directory)
        deployment = load_deployment(deploy_dir, console)
        backend = FileSecretBackend(deploy_dir / "secrets")
        before = set(backend.list_names())

        provisioner = SecretProvisioner(backend)
        try:
            for namespace, specs in base_secrets(deployment).items():
                provisioner.provision(namespace, specs, overwrite=force)
        except SecretProvisionError as e:
            handle_cli_error(e.cause or e, console, verbose=is_verbose())

        created = sorted(set(backend.list_names()) - before)
        print_success(console, f"Secrets saved to {backend.secrets_dir}")
        if force:
            console.print(f"  Regenerated {len(backend.list_names())} secret files")
        else:
            console.print(f"  Created {len(created)}, kept {len(before)} existing")
        print_warning(console, "Keep secret files private and out of version control")

    @SecretsTyper.command("create-podman")
    def create_podman_command(
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Create (or replace) Podman secrets from the files under secrets/."""
        files = _file_backend(directory)
        if not files.secrets_dir.is_dir():
            print_error(console, "No secrets directory found. Run 'blueprint secrets setup' first.")
            raise typer.Exit(2)

        names = files.list_names()
        if not names:
            console.print("[dim]No secret files found[/dim]")
            return

        provisioner = SecretProvisioner(PodmanSecretBackend(build_runner()))
        failed = []
        for name in names:
            try:
                provisioner.replace("secrets", name, files.read(name))
            except SecretProvisionError as e:
                print_error(console, f"{name}: {e.cause}")
                failed.append(name)
                continue
            print_success(console, f"Created podman secret {name}")

        if failed:
            raise typer.Exit(1)

    @SecretsTyper.command("rotate")
    def rotate_command(
        name: str = typer.Argument(..., help="Secret file to rotate, e.g. AUTHELIA_JWT_SECRET."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Replace a file-backed secret with a freshly generated value."""
        backend = _file_backend(directory)
        if not backend.exists(name):
            print_error(console, f"Secret {name} not found")
            available = backend.list_names()
            if available:
                console.print(f"[dim]Available: {', '.join(available)}[/dim]")
            raise typer.Exit(2)

        value = rotated_value(name)
        if value is None:
            print_warning(console, f"{name} is a configuration value, not rotating")
            return

        if not confirm_action(f"Rotate {name}? This generates a new value.", yes_flag=yes, mock=is_mock()):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        backend.create(name, value)
        print_success(console, f"{name} rotated")
        print_info(console, "Run 'blueprint secrets create-podman' and restart affected services")

    root.add_typer(SecretsTyper, name="secrets")
