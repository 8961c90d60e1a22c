"""Service control commands - thin wrappers over systemctl and journalctl."""
import subprocess

import typer
from rich.console import Console

from blueprint.cli_support import build_systemd, handle_cli_error, is_mock, print_success
from blueprint.core.errors import CommandError
from blueprint.core.logger import is_verbose

ServicesTyper = typer.Typer(help="Start, stop and inspect deployment services")


def register_services_commands(root: typer.Typer, console: Console) -> None:
    """Attach service control subcommands to the main CLI."""

    def _run(action: str, unit: str) -> None:
        systemd = build_systemd()
        try:
            getattr(systemd, action)(unit)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())

    @ServicesTyper.command("list")
    def list_command(
        pattern: str = typer.Argument("*.service", help="Unit glob to list."),
    ) -> None:
        """List user units."""
        try:
            output = build_systemd().list_units(pattern)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        console.print(output, markup=False, highlight=False)

    @ServicesTyper.command("start")
    def start_command(unit: str = typer.Argument(..., help="Service to start.")) -> None:
        """Start a service."""
        _run("start", unit)
        print_success(console, f"Started {unit}")

    @ServicesTyper.command("stop")
    def stop_command(unit: str = typer.Argument(..., help="Service to stop.")) -> None:
        """Stop a service."""
        _run("stop", unit)
        print_success(console, f"Stopped {unit}")

    @ServicesTyper.command("restart")
    def restart_command(unit: str = typer.Argument(..., help="Service to restart.")) -> None:
        """Restart a service."""
        _run("restart", unit)
        print_success(console, f"Restarted {unit}")

    @ServicesTyper.command("status")
    def status_command(unit: str = typer.Argument(..., help="Service to inspect.")) -> None:
        """Show systemctl status for a service."""
        try:
            output = build_systemd().status(unit)
        except CommandError as e:
            # systemctl status exits 3 for inactive units but still prints the status
            if e.returncode == 3 and e.stdout:
                console.print(e.stdout, markup=False, highlight=False)
                raise typer.Exit(3)
            handle_cli_error(e, console, verbose=is_verbose())
        console.print(output, markup=False, highlight=False)

    @ServicesTyper.command("logs")
    def logs_command(
        unit: str = typer.Argument(..., help="Service whose journal to show."),
        follow: bool = typer.Option(False, "--follow", "-f", help="Follow new log lines."),
        lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show."),
    ) -> None:
        """Show journal logs for a service."""
        systemd = build_systemd()

        if follow:
            argv = systemd.follow_command(unit)
            if is_mock():
                console.print(f"[yellow]MOCK:[/yellow] Would run: {' '.join(argv)}")
                return
            try:
                subprocess.run(argv, check=False)
            except KeyboardInterrupt:
                pass
            return

        try:
            output = systemd.logs(unit, lines=lines)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        console.print(output, markup=False, highlight=False)

    root.add_typer(ServicesTyper, name="services")
