"""Extra domain routes for the shared reverse proxy."""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from blueprint.cli_support import (
    build_systemd,
    confirm_action,
    find_deploy_dir,
    handle_cli_error,
    is_mock,
    load_deployment,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from blueprint.core.config import get_config
from blueprint.core.errors import CommandError, RouteExistsError
from blueprint.core.logger import is_verbose
from blueprint.core.routes import DomainRoute, RouteManager, validate_route_domain

DomainTyper = typer.Typer(help="Manage extra domain routes")


def register_domain_commands(root: typer.Typer, console: Console) -> None:
    """Attach domain subcommands to the main CLI."""

    def _apply(restart: bool) -> None:
        proxy = get_config().proxy_unit
        if not restart:
            print_info(console, f"Restart the proxy to apply: blueprint services restart {proxy}")
            return
        try:
            build_systemd().restart(proxy)
        except CommandError as e:
            handle_cli_error(e, console, verbose=is_verbose())
        print_success(console, f"Restarted {proxy}")

    @DomainTyper.command("add")
    def add(
        domain: str = typer.Argument(..., help="Domain to route, e.g. app.example.com."),
        target: Optional[str] = typer.Option(
            None, "--target", "-t", help="Upstream (http://host:port, host:port) or a directory to serve."
        ),
        respond: Optional[str] = typer.Option(None, "--respond", help="Answer with fixed text instead."),
        path: str = typer.Option("/", "--path", "-p", help="Path prefix."),
        auth: bool = typer.Option(False, "--auth", help="Require Authelia login."),
        replace: bool = typer.Option(False, "--replace", help="Overwrite an existing route."),
        restart: bool = typer.Option(False, "--restart", help="Restart the proxy afterwards."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Route a domain to a service, a directory or a fixed response.

        Examples:
            blueprint domain add app.example.com -t http://app:8080 --auth
            blueprint domain add docs.example.com -t /srv/docs
            blueprint domain add old.example.com --respond "Moved"
        """
        deploy_dir = find_deploy_dir(directory)
        deployment = load_deployment(deploy_dir, console)

        if target is None and respond is None:
            print_error(console, "Give --target or --respond")
            raise typer.Exit(2)

        try:
            route = DomainRoute(domain, target=target, path=path, require_auth=auth, respond=respond)
        except ValueError as e:
            print_error(console, str(e))
            raise typer.Exit(2)

        try:
            written = RouteManager(deploy_dir).add(route, deployment, replace=replace)
        except RouteExistsError as e:
            print_error(console, f"{e} (use --replace)")
            raise typer.Exit(2)
        except OSError as e:
            handle_cli_error(e, console, verbose=is_verbose())

        print_success(console, f"Route for {route.domain} written to {written.name}")
        _apply(restart)

    @DomainTyper.command("list")
    def list_command(
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """List routes from domain and addon fragments."""
        routes = RouteManager(find_deploy_dir(directory)).list()
        if not routes:
            console.print("[dim]No routes configured[/dim]")
            return

        table = Table(title="Routes")
        table.add_column("Site", style="cyan")
        table.add_column("Target")
        table.add_column("Auth")
        table.add_column("Source")
        for info in routes:
            target = info.upstream or (f"files: {info.root}" if info.root else "-")
            table.add_row(
                ", ".join(info.sites) or "-",
                target,
                "[yellow]yes[/yellow]" if info.auth else "no",
                "domain" if info.is_domain_route else f"addon {info.source}",
            )
        console.print(table)

    @DomainTyper.command("remove")
    def remove(
        domain: str = typer.Argument(..., help="Domain whose route is removed."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
        restart: bool = typer.Option(False, "--restart", help="Restart the proxy afterwards."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Remove a domain route (addon routes go with 'blueprint addon remove')."""
        try:
            domain = validate_route_domain(domain)
        except ValueError as e:
            print_error(console, str(e))
            raise typer.Exit(2)

        if not confirm_action(f"Remove route for {domain}?", yes_flag=yes, mock=is_mock()):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        try:
            removed = RouteManager(find_deploy_dir(directory)).remove(domain)
        except OSError as e:
            handle_cli_error(e, console, verbose=is_verbose())

        if not removed:
            print_warning(console, f"No route for {domain}")
            raise typer.Exit(1)

        print_success(console, f"Route for {domain} removed")
        _apply(restart)

    root.add_typer(DomainTyper, name="domain")
