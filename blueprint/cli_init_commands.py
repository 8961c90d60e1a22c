"""Deployment initialization command."""
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from blueprint.cli_support import build_runner, handle_cli_error, print_error, print_success, print_warning
from blueprint.core.errors import BlueprintError
from blueprint.core.logger import is_verbose
from blueprint.models.deployment import CONFIG_FILENAME, DeploymentConfig
from blueprint.scaffold import DeploymentScaffolder, validate_admin_password


def _prompt_admin_password(console: Console) -> Optional[str]:
    """Ask for an admin password; empty input means generate one."""
    while True:
        password = Prompt.ask(
            "Admin password (leave empty to generate)", password=True, default="", show_default=False
        )
        if not password:
            return None

        problem = validate_admin_password(password)
        if problem:
            print_error(console, problem)
            continue

        if Prompt.ask("Confirm password", password=True) != password:
            print_error(console, "Passwords do not match")
            continue
        return password


def register_init_commands(root: typer.Typer, console: Console) -> None:
    """Attach the top-level init command."""

    @root.command("init")
    def init(
        name: Optional[str] = typer.Option(None, "--name", help="Deployment name (directory name)."),
        domain: Optional[str] = typer.Option(None, "--domain", help="Primary domain, e.g. example.com."),
        email: Optional[str] = typer.Option(None, "--email", help="ACME / admin email."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Parent directory for the deployment."),
        admin_password: Optional[str] = typer.Option(
            None, "--admin-password", envvar="BLUEPRINT_ADMIN_PASSWORD",
            help="Authelia admin password (generated if omitted).",
        ),
        smtp_host: Optional[str] = typer.Option(None, "--smtp-host", help="SMTP relay host."),
        smtp_port: Optional[int] = typer.Option(None, "--smtp-port", help="SMTP relay port."),
        smtp_username: Optional[str] = typer.Option(None, "--smtp-username", help="SMTP username."),
        smtp_password: Optional[str] = typer.Option(
            None, "--smtp-password", envvar="BLUEPRINT_SMTP_PASSWORD",
            help="SMTP password (a placeholder secret is stored if omitted).",
        ),
        smtp_sender: Optional[str] = typer.Option(None, "--smtp-sender", help="From address for Authelia mail."),
        no_interactive: bool = typer.Option(False, "--no-interactive", help="Skip prompts, use defaults."),
        start: bool = typer.Option(False, "--start/--no-start", help="Link units and start the base stack."),
    ) -> None:
        """Create a new Caddy + Authelia deployment.

        Examples:
            blueprint init                                   # Interactive
            blueprint init --name web --domain example.com --no-interactive
            blueprint init --domain example.com --start      # Scaffold and start
        """
        defaults = DeploymentConfig()

        if no_interactive:
            name = name or defaults.name
            domain = domain or defaults.domain
        else:
            console.print("[bold cyan]Blueprint deployment setup[/bold cyan]\n")
            name = name or Prompt.ask("Deployment name", default=defaults.name)
            domain = domain or Prompt.ask("Domain", default=defaults.domain)
            email = email or Prompt.ask("Admin email", default=f"admin@{domain}")
            if admin_password is None:
                admin_password = _prompt_admin_password(console)

            console.print("\n[bold]Mail relay (Authelia notifications)[/bold]")
            smtp_host = smtp_host or Prompt.ask("SMTP host", default=defaults.smtp_host)
            if smtp_port is None:
                smtp_port = IntPrompt.ask("SMTP port", default=defaults.smtp_port)
            smtp_username = smtp_username or Prompt.ask("SMTP username", default=f"no-reply@mg.{domain}")
            if smtp_password is None:
                smtp_password = Prompt.ask(
                    "SMTP password (leave empty to set later)", password=True, default="", show_default=False
                ) or None
            smtp_sender = smtp_sender or Prompt.ask("From address", default=smtp_username)
            if not start:
                start = Confirm.ask("Start the deployment now?", default=False)

        if admin_password is not None:
            problem = validate_admin_password(admin_password)
            if problem:
                print_error(console, problem)
                raise typer.Exit(2)

        smtp = {
            'smtp_host': smtp_host,
            'smtp_port': smtp_port,
            'smtp_username': smtp_username,
            'smtp_password': smtp_password,
            'smtp_sender': smtp_sender,
        }
        try:
            deployment = DeploymentConfig(
                name=name, domain=domain, email=email, admin_password=admin_password,
                **{key: value for key, value in smtp.items() if value is not None},
            )
        except ValidationError as e:
            print_error(console, f"Invalid settings: {e}")
            raise typer.Exit(2)

        parent = Path(directory) if directory else Path.cwd()
        if (parent / deployment.name / CONFIG_FILENAME).exists():
            print_error(console, f"A deployment already exists in {parent / deployment.name}")
            raise typer.Exit(2)

        scaffolder = DeploymentScaffolder(build_runner())
        try:
            result = scaffolder.scaffold(deployment, output_dir=parent, start=start)
        except (BlueprintError, OSError) as e:
            handle_cli_error(e, console, verbose=is_verbose())

        print_success(console, f"Deployment created at {result.deploy_dir}")

        if result.generated_admin_password:
            print_warning(console, "Generated admin password (shown once, store it safely):")
            console.print(f"  [bold]{deployment.admin_username}[/bold] / {result.generated_admin_password}",
                          highlight=False)

        if not deployment.smtp_password:
            print_warning(console, "SMTP_PASSWORD is a placeholder; set the real relay password with:")
            console.print("  printf '%s' '<password>' | podman secret create --replace SMTP_PASSWORD -",
                          highlight=False)

        if result.started:
            print_success(console, f"Started: {', '.join(result.started)}")
        else:
            console.print("\n[cyan]Next steps:[/cyan]")
            console.print(f"  cd {result.deploy_dir}")
            console.print("  blueprint system setup-links")
            console.print("  blueprint system reload")
            console.print("  blueprint services start caddy")
            console.print("  blueprint addon list")
