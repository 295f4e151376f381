"""Rich console output utilities."""

from rich.console import Console
from rich.text import Text


console = Console()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    # Error text often embeds tool output, so it is never parsed as markup.
    console.print(Text.assemble(("✗ ", "red"), (message, "red")))


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_banner(mode: str, environment: str) -> None:
    """Print the run banner."""
    banner = Text()
    banner.append("infra-bootstrap", style="bold red")
    banner.append("  Infrastructure Installer\n", style="bold")
    banner.append(f"mode: {mode}", style="blue")
    banner.append("  ")
    banner.append(f"environment: {environment}", style="magenta")
    console.print()
    console.print(banner)
    console.print()
