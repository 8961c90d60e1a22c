#!/usr/bin/env python3
"""Blueprint CLI - Caddy + Authelia deployments on Podman Quadlet."""
from typing import Optional

import typer
from rich.console import Console

from blueprint.cli_addon_commands import register_addon_commands
from blueprint.cli_auth_commands import register_auth_commands
from blueprint.cli_domain_commands import register_domain_commands
from blueprint.cli_init_commands import register_init_commands
from blueprint.cli_reset_commands import register_reset_commands
from blueprint.cli_secrets_commands import register_secrets_commands
from blueprint.cli_services_commands import register_services_commands
from blueprint.cli_system_commands import register_system_commands
from blueprint.core.logger import get_logger, set_verbose, setup_file_logging

app = typer.Typer(
    name="blueprint",
    help="""Blueprint - Caddy + Authelia deployments on Podman Quadlet

Quick start:
  blueprint init                    # Scaffold a deployment
  blueprint system setup-links      # Link units into systemd
  blueprint addon install umami     # Add an addon behind Authelia
  blueprint auth add-user           # Add an Authelia user

More commands: blueprint --help
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file."),
) -> None:
    """Blueprint - Caddy + Authelia deployments on Podman Quadlet."""
    set_verbose(verbose)
    if log_file:
        setup_file_logging(log_file=log_file, verbose=verbose)


# Attach modular subcommands
register_init_commands(app, console)
register_addon_commands(app, console)
register_services_commands(app, console)
register_system_commands(app, console)
register_secrets_commands(app, console)
register_auth_commands(app, console)
register_domain_commands(app, console)
register_reset_commands(app, console)

if __name__ == "__main__":
    app()
