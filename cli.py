"""CLI entry point for prefix-proxy."""

import sys
from datetime import datetime

from rich.console import Console
from rich.table import Table

from app import create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ConfigurationError
from services.targets import build_targets, mount_path
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    config = load_config()

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            return

        if arg == "--routes":
            _print_routes(config)
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    # Clear previous logs and start dashboard
    clear_logs()
    dashboard = Dashboard(config)

    try:
        app = create_app(config, dashboard)
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        console.print(f"[dim]Edit {CONFIG_FILE} and fix the routes[/dim]")
        sys.exit(1)

    import uvicorn

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="info" if config.proxy.debug else "warning",
        timeout_keep_alive=config.limits.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port, routes=len(config.routes))
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def _print_routes(config: Config):
    """Print the route table in matching order."""
    try:
        targets = build_targets(config)
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    table = Table(title="Routes", header_style="bold")
    table.add_column("Name")
    table.add_column("Base path")
    table.add_column("Upstream")
    table.add_column("Strict")
    for target in targets:
        table.add_row(
            target.name or "[dim]-[/dim]",
            mount_path(target) or "/",
            target.upstream_address,
            "yes" if target.strict_base_path else "no",
        )
    console.print(table)


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Prefix Proxy[/bold cyan]

Forwards requests under each configured base path to its upstream,
stripping the base path and hop-by-hop headers.

[bold]Usage:[/bold]
    prefix-proxy              Start with live dashboard
    prefix-proxy --routes     Show configured routes
    prefix-proxy --config     Show config location
    prefix-proxy --help       Show this help
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
