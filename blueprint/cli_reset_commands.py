"""Base stack reset command."""
from typing import Optional

import typer
from rich.console import Console
from rich.prompt import Prompt

from blueprint.cli_support import build_runner, confirm_action, is_mock, print_error, print_success, print_warning
from blueprint.scaffold.reset import BASE_COMPONENTS, StackResetter


def register_reset_commands(root: typer.Typer, console: Console) -> None:
    """Attach the top-level reset command."""

    @root.command("reset")
    def reset(
        volumes: bool = typer.Option(False, "--volumes", help="Wipe data volumes, keep and restart containers."),
        everything: bool = typer.Option(False, "--all", help="Remove containers, volumes and networks."),
        service: Optional[str] = typer.Option(
            None, "--service", help=f"Reset one component ({', '.join(BASE_COMPONENTS)})."
        ),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
    ) -> None:
        """Reset base stack containers and volumes for a fresh start.

        Unit files, configuration and secrets are kept.

        Examples:
            blueprint reset --service postgres
            blueprint reset --volumes -y
            blueprint reset --all
        """
        if service is not None and service not in BASE_COMPONENTS:
            print_error(console, f"Invalid service: {service}. Valid options: {', '.join(BASE_COMPONENTS)}")
            raise typer.Exit(2)

        if service is None and not volumes and not everything:
            choice = Prompt.ask(
                "What would you like to reset?", choices=["volumes", "all", "cancel"], default="cancel"
            )
            if choice == "cancel":
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(0)
            everything = choice == "all"
            volumes = True

        console.print("\n[yellow]Reset plan:[/yellow]")
        if service:
            console.print(f"  • Stop {service}, remove its container and volumes, start it again")
            prompt = f"This permanently deletes {service} data. Continue?"
        elif everything:
            console.print("  • Stop and remove all containers")
            console.print("  • Remove all volumes and shared networks")
            prompt = "This permanently deletes all data. Continue?"
        else:
            console.print("  • Stop and remove containers")
            console.print("  • Remove all volumes")
            console.print("  • Start containers again on empty data")
            prompt = "This permanently deletes all data. Continue?"

        if not confirm_action(prompt, yes_flag=yes, mock=is_mock()):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        resetter = StackResetter(build_runner())
        if service:
            report = resetter.reset_service(service)
        elif everything:
            report = resetter.reset_all()
        else:
            report = resetter.reset_volumes()

        if report.clean:
            print_success(console, "Reset completed")
        else:
            print_warning(console, "Reset finished, but some steps failed:")
            for failure in report.failures:
                console.print(f"  - {failure}")

        if everything:
            console.print("[dim]Run 'blueprint system reload' and start the services to recreate everything.[/dim]")
