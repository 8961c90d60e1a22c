"""Authelia user management commands."""
from typing import List, Optional

import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from blueprint.cli_support import (
    build_runner,
    confirm_action,
    find_deploy_dir,
    handle_cli_error,
    is_mock,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from blueprint.core.config import get_config
from blueprint.core.errors import BlueprintError, UserExistsError, UserNotFoundError
from blueprint.core.logger import is_verbose
from blueprint.core.totp import generate_totp_secret, register_totp, totp_url
from blueprint.core.users import (
    DEFAULT_GROUPS,
    UserDatabase,
    validate_email,
    validate_user_password,
    validate_username,
)
from blueprint.models.deployment import DeploymentConfig
from blueprint.scaffold.core import hash_password

AuthTyper = typer.Typer(help="Manage Authelia users")


def _restart_hint(console: Console) -> None:
    print_info(console, "Restart Authelia to apply changes: blueprint services restart authelia")


def _prompt_password(console: Console) -> str:
    while True:
        password = Prompt.ask("Password", password=True)
        problem = validate_user_password(password)
        if problem:
            print_error(console, problem)
            continue
        return password


def _split_groups(groups: str) -> List[str]:
    return [g.strip() for g in groups.split(",") if g.strip()] or list(DEFAULT_GROUPS)


def register_auth_commands(root: typer.Typer, console: Console) -> None:
    """Attach auth subcommands to the main CLI."""

    def _database(directory: Optional[str]) -> UserDatabase:
        database = UserDatabase.for_deployment(find_deploy_dir(directory))
        if not database.exists():
            print_error(console, f"No users database at {database.path}")
            console.print("[dim]Run 'blueprint init' first, or pass --directory.[/dim]")
            raise typer.Exit(2)
        return database

    def _hash(password: str) -> str:
        try:
            return hash_password(build_runner(), password, get_config().authelia_image)
        except BlueprintError as e:
            handle_cli_error(e, console, verbose=is_verbose())

    @AuthTyper.command("add-user")
    def add_user(
        username: Optional[str] = typer.Option(None, "--username", "-u", help="Username."),
        password: Optional[str] = typer.Option(None, "--password", "-p", help="Password (prompted if omitted)."),
        email: Optional[str] = typer.Option(None, "--email", "-e", help="Email address."),
        groups: str = typer.Option("users", "--groups", "-g", help="Comma-separated groups."),
        display_name: Optional[str] = typer.Option(None, "--display-name", help="Display name."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Add a user to the Authelia users database.

        Examples:
            blueprint auth add-user -u alice -e alice@example.com -g users,dev
        """
        database = _database(directory)

        username = username or Prompt.ask("Username")
        email = email or Prompt.ask("Email")
        if password is None:
            password = _prompt_password(console)

        for problem in (validate_username(username), validate_email(email), validate_user_password(password)):
            if problem:
                print_error(console, problem)
                raise typer.Exit(2)

        digest = _hash(password)
        try:
            database.add_user(username, digest, email, _split_groups(groups), display_name)
        except UserExistsError as e:
            print_error(console, str(e))
            console.print("[dim]Use 'blueprint auth change-password' to update it.[/dim]")
            raise typer.Exit(2)

        print_success(console, f"User {username} added")
        _restart_hint(console)

    @AuthTyper.command("remove-user")
    def remove_user(
        username: str = typer.Argument(..., help="User to remove."),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Remove a user from the Authelia users database."""
        database = _database(directory)

        if not confirm_action(f"Remove user {username}?", yes_flag=yes, mock=is_mock()):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

        try:
            database.remove_user(username)
        except UserNotFoundError as e:
            print_warning(console, str(e))
            raise typer.Exit(1)

        print_success(console, f"User {username} removed")
        _restart_hint(console)

    @AuthTyper.command("list-users")
    def list_users(
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """List Authelia users."""
        database = _database(directory)
        try:
            users = database.list_users()
        except ValueError as e:
            handle_cli_error(e, console, verbose=is_verbose())

        if not users:
            console.print("[dim]No users found[/dim]")
            return

        table = Table(title="Authelia users")
        table.add_column("Username", style="cyan")
        table.add_column("Display name")
        table.add_column("Email")
        table.add_column("Groups")
        for user in users:
            name = f"{user.username} [dim](disabled)[/dim]" if user.disabled else user.username
            table.add_row(name, user.displayname, user.email, ", ".join(user.groups))
        console.print(table)

    @AuthTyper.command("change-password")
    def change_password(
        username: str = typer.Argument(..., help="User whose password changes."),
        password: Optional[str] = typer.Option(None, "--password", "-p", help="New password (prompted if omitted)."),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Set a new password for an existing user."""
        database = _database(directory)
        if password is None:
            password = _prompt_password(console)

        problem = validate_user_password(password)
        if problem:
            print_error(console, problem)
            raise typer.Exit(2)

        digest = _hash(password)
        try:
            database.set_password(username, digest)
        except UserNotFoundError as e:
            print_warning(console, str(e))
            raise typer.Exit(1)

        print_success(console, f"Password changed for {username}")
        _restart_hint(console)

    @AuthTyper.command("totp")
    def totp(
        username: str = typer.Argument(..., help="User to enroll."),
        register: bool = typer.Option(
            True, "--register/--no-register", help="Store the secret in the running Authelia."
        ),
        directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Deployment directory."),
    ) -> None:
        """Generate a TOTP secret for a user and print its otpauth URL."""
        deploy_dir = find_deploy_dir(directory)
        database = _database(directory)
        try:
            database.get(username)
        except UserNotFoundError as e:
            print_error(console, str(e))
            raise typer.Exit(2)

        try:
            issuer = DeploymentConfig.load(deploy_dir).name
        except (FileNotFoundError, ValueError):
            issuer = "Authelia"

        secret = generate_totp_secret()
        if register:
            try:
                register_totp(build_runner(), username, secret)
            except BlueprintError as e:
                handle_cli_error(e, console, verbose=is_verbose())

        print_success(console, f"TOTP secret generated for {username}")
        console.print(f"  Secret: {secret}", highlight=False)
        console.print(f"  URL:    {totp_url(secret, username, issuer)}", highlight=False, soft_wrap=True)
        if not register:
            print_info(console, "Not registered; add it with 'authelia storage user totp generate'")

    root.add_typer(AuthTyper, name="auth")
