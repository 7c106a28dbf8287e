"""CLI commands for Agora.

Provides command-line interface using Typer:
- agora serve: Run the forum server

Usage:
    agora --help
    agora serve --port 8080
"""

import typer

from agora.cli.serve import app as serve_app

# Main CLI application
app = typer.Typer(
    name="agora",
    help="Agora: server-rendered discussion forum",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")


@app.callback()
def callback() -> None:
    """Agora: server-rendered discussion forum."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
