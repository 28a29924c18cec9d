"""Console output helpers for git-account."""

from typing import Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.theme import Theme

from .exceptions import GitAccountError
from .profile import User

theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red",
        "success": "green",
        "title": "bold cyan",
        "path": "blue",
    }
)

console = Console(theme=theme)


def print_error(message: str) -> None:
    """Print error message."""
    console.print(f"[error]Error:[/error] {message}")


def print_warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[warning]Warning:[/warning] {message}")


def print_info(message: str) -> None:
    """Print info message."""
    console.print(f"[info]Info:[/info] {message}")


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[success]Success:[/success] {message}")


def confirm_action(prompt: str, default: bool = True) -> bool:
    """Confirm an action with the user."""
    try:
        return Confirm.ask(prompt, default=default, console=console)
    except KeyboardInterrupt:
        raise GitAccountError("Operation cancelled by user") from None


def prompt_profile(users: Sequence[User]) -> User:
    """Ask the user to pick one of the stored profiles."""
    if not users:
        raise GitAccountError("No profiles found. Add one with: git-account add")

    print_profile_table(users)
    choices = [str(user.id) for user in users]
    try:
        selected = Prompt.ask(
            "Which profile should this repository use?",
            choices=choices,
            console=console,
        )
    except KeyboardInterrupt:
        raise GitAccountError("Operation cancelled by user") from None
    return next(user for user in users if user.id == selected)


def print_profile_table(users: Sequence[User], active_id: Optional[str] = None) -> None:
    """Print profiles in a table format."""
    table = Table(
        title="Git Accounts",
        box=box.ROUNDED,
        header_style="bold cyan",
        border_style="blue",
    )

    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Email", style="green")
    table.add_column("SSH Key", style="magenta")
    table.add_column("GPG Key", style="yellow")
    table.add_column("Active", justify="center", style="bold green")

    for user in users:
        table.add_row(
            str(user.id),
            user.name,
            user.email,
            user.private_key,
            user.gpg_key or "",
            "✓" if active_id is not None and user.id == active_id else "",
        )

    console.print(table)


def print_user(user: User, title: str = "Current Identity") -> None:
    """Print a single identity."""
    table = Table(title=title, box=box.ROUNDED, show_header=False, border_style="blue")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="green")
    table.add_row("Name", user.name)
    table.add_row("Email", user.email)
    table.add_row("SSH Key", user.private_key)
    table.add_row("GPG Key", user.gpg_key or "[dim]not set[/dim]")
    console.print(table)


def print_entries(entries: Mapping[str, str]) -> None:
    """Print git config entries that were written."""
    table = Table(title="Local Git Config", box=box.ROUNDED, border_style="green")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in entries.items():
        table.add_row(key, value)
    console.print(table)
