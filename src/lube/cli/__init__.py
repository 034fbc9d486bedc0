"""lube command line.

``lube deploy <source>`` fetches or opens a bundle and applies its entries
to the cluster in descriptor order.
"""

import typer

from .deploy_commands import deploy_app

app = typer.Typer(
    help="🛠️  lube - Ordered manifest and Helm chart bundle deployer",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(deploy_app, name="deploy")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
