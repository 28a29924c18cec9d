"""Command-line interface."""

import logging
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar, cast

import click
from rich.markup import escape

from .exceptions import GitAccountError, ProfileError
from .gitconfig import GitConfigBridge
from .profile import ProfileStore, User
from .ui import (
    confirm_action,
    console,
    print_entries,
    print_info,
    print_profile_table,
    print_success,
    print_warning,
    print_user,
    prompt_profile,
)
from .version import __version__

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def handle_errors(f: F) -> F:
    """Decorator to handle errors in CLI commands."""
    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except ProfileError as e:
            console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
            if e.profile_id and "already exists" in str(e):
                console.print(
                    f"Remove it first: [yellow]git-account remove {escape(e.profile_id)}[/yellow]"
                )
            raise click.Abort()
        except GitAccountError as e:
            console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
            if e.details:
                console.print(f"[dim]{escape(e.details)}[/dim]")
            raise click.Abort()
        except click.ClickException:
            raise
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            console.print(f"\n[bold red]Unexpected error:[/bold red] {escape(str(e))}")
            raise click.Abort()
    return cast(F, wrapper)


@click.group()
@click.version_option(__version__, prog_name="git-account")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "-C",
    "--repo",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Repository directory (default: current directory)",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, repo: Path | None) -> None:
    """Switch between git identities per repository."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled")

    ctx.obj = {
        "store": ProfileStore(),
        "bridge": GitConfigBridge(repo_dir=repo),
    }


def _active_profile_id(store: ProfileStore, bridge: GitConfigBridge) -> str | None:
    try:
        current = bridge.get_current_user()
    except GitAccountError as e:
        logger.debug(f"No current identity: {e}")
        return None
    match = store.find(current)
    return match.id if match else None


@cli.command("list")
@click.pass_obj
@handle_errors
def list_profiles(obj: dict[str, Any]) -> None:
    """List stored profiles."""
    store: ProfileStore = obj["store"]
    users = store.load()
    if not users:
        print_info("No profiles found. Add one with: git-account add")
        return

    print_profile_table(users, active_id=_active_profile_id(store, obj["bridge"]))


@cli.command()
@click.option("--id", "user_id", prompt="Profile id", help="Unique profile id")
@click.option("--name", prompt="Git user name", help="Git user name")
@click.option("--email", prompt="Git email", help="Git email address")
@click.option(
    "--private-key",
    prompt="SSH private key path",
    help="Path to the SSH private key",
)
@click.option("--gpg-key", default="", help="GPG signing key id")
@click.pass_obj
@handle_errors
def add(
    obj: dict[str, Any],
    user_id: str,
    name: str,
    email: str,
    private_key: str,
    gpg_key: str,
) -> None:
    """Add a profile."""
    key_path = str(Path(private_key).expanduser())
    if not Path(key_path).exists():
        print_warning(f"SSH key {key_path} does not exist yet")

    user = User(
        id=user_id,
        name=name,
        email=email,
        private_key=key_path,
        gpg_key=gpg_key or None,
    )
    obj["store"].add(user)
    print_success(f"Profile '{user_id}' added")


@cli.command()
@click.argument("user_id", metavar="ID")
@click.option("--force", is_flag=True, help="Remove without confirmation")
@click.pass_obj
@handle_errors
def remove(obj: dict[str, Any], user_id: str, force: bool = False) -> None:
    """Remove a profile."""
    if not force and not confirm_action(
        f"Are you sure you want to remove profile '{user_id}'?", default=False
    ):
        print_info("Operation cancelled")
        return

    obj["store"].remove(user_id)
    print_success(f"Profile '{user_id}' removed")


@cli.command()
@click.argument("user_id", metavar="[ID]", required=False)
@click.pass_obj
@handle_errors
def use(obj: dict[str, Any], user_id: str | None = None) -> None:
    """Switch this repository to a profile."""
    store: ProfileStore = obj["store"]
    user = store.get(user_id) if user_id else prompt_profile(store.load())

    entries = obj["bridge"].switch_account(user)
    print_entries(entries)
    print_success(f"Switched to profile '{user.id}'")


@cli.command()
@click.pass_obj
@handle_errors
def current(obj: dict[str, Any]) -> None:
    """Show the identity git will use in this repository."""
    user = obj["bridge"].get_current_user()
    match = obj["store"].find(user)
    print_user(user, title=f"Profile '{match.id}'" if match else "Current Identity")


@cli.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
@handle_errors
def exec_git(obj: dict[str, Any], args: tuple[str, ...]) -> None:
    """Run a git command as the current identity."""
    output = obj["bridge"].run_command(["git", *args])
    if output:
        click.echo(output)
