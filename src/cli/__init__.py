"""Main CLI application module."""

import typer

from .directory_commands import directory_app

app = typer.Typer(
    help="🛠️  Federation Bridge CLI - remote directory operations",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(directory_app, name="directory")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
