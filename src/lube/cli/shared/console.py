"""Terminal output, log routing and error reporting for CLI commands."""

import sys
from collections.abc import Callable
from functools import wraps

import typer
from loguru import logger
from rich.console import Console, ConsoleRenderable
from rich.panel import Panel

from ...errors import DeploymentError

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {message}"


class CLIConsole:
    """Rich console used for everything the user is meant to read."""

    def __init__(self) -> None:
        self.console = Console()

    def print(self, renderable: ConsoleRenderable | str | None = None) -> None:
        self.console.print(renderable)

    def header(self, title: str) -> None:
        self.console.print(Panel.fit(f"[bold blue]{title}[/bold blue]", border_style="blue"))

    def success(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def report_failure(self, error: DeploymentError) -> None:
        """Print a deployment error and, when present, its details panel."""
        self.console.print(f"[red]❌[/red] [bold red]{error.message}[/bold red]")
        if error.details:
            self.console.print(Panel(error.details, title="Details", border_style="red"))


def configure_logging(verbose: bool = False) -> None:
    """Route loguru output to stderr at INFO, or DEBUG when verbose."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format=LOG_FORMAT)


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Turn deployment errors into exit code 1 and Ctrl-C into exit code 130.

    Any other exception is a bug and propagates with its traceback.
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except DeploymentError as e:
            console.report_failure(e)
            raise typer.Exit(1) from e
        except KeyboardInterrupt:
            console.print("\n[dim]Deployment interrupted.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


console = CLIConsole()
