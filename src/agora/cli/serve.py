"""CLI command for running the forum server.

Usage:
    agora serve
    agora serve --port 8080 --host 0.0.0.0
    agora serve --reload --log-level debug

The response cache is process-local, so the server always runs a single
worker process.
"""

from __future__ import annotations

import typer

app = typer.Typer(help="Run the Agora forum server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(
        "0.0.0.0",  # nosec B104 - intentional for container deployments
        "--host",
        "-h",
        help="Host to bind to",
    ),
    port: int = typer.Option(
        8080,
        "--port",
        "-p",
        help="Port to listen on",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        "-r",
        help="Enable auto-reload for development",
    ),
    log_level: str = typer.Option(
        "info",
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    access_log: bool = typer.Option(
        True,
        "--access-log/--no-access-log",
        help="Enable/disable access logging",
    ),
) -> None:
    """Run the Agora forum server with uvicorn."""
    import uvicorn

    typer.echo("Starting Agora server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Log level: {log_level}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()

    uvicorn.run(
        app="agora.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
        log_level=log_level.lower(),
        access_log=access_log,
    )
