"""
Chat Gateway CLI

Command-line interface for the Chat Gateway.
"""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from . import __version__
from .config import load_config, create_default_config, GatewayConfig


console = Console()


def _mask(secret: str) -> str:
    if not secret:
        return "[red]not set[/red]"
    if len(secret) <= 8:
        return "****"
    return f"{secret[:3]}...{secret[-4:]}"


def _resolve_config(ctx) -> GatewayConfig:
    config_path = ctx.obj.get("config_path")
    if config_path and not Path(config_path).exists():
        console.print(f"[red]✗[/red] Config file not found: {config_path}")
        sys.exit(1)
    return load_config(config_path)


@click.group()
@click.version_option(__version__, prog_name="chat-gateway")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config file")
@click.option("--env-file", type=click.Path(), default=".env", show_default=True, help="Dotenv file to load")
@click.pass_context
def cli(ctx, config_path: str, env_file: str):
    """Chat Gateway - chat-completion proxy that keeps the API key server-side"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if env_file and Path(env_file).exists():
        load_dotenv(env_file)


# =============================================================================
# Server Commands
# =============================================================================

@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
@click.pass_context
def start(ctx, host: str, port: int, reload: bool):
    """Start the gateway server."""
    config = _resolve_config(ctx)
    host = host or config.server.host
    port = port or config.server.port

    if ctx.obj.get("config_path"):
        console.print(f"[green]✓[/green] Loaded config from {ctx.obj['config_path']}")
    if not config.upstream.api_key:
        console.print("[yellow]![/yellow] OPENAI_API_KEY is not set")

    console.print(Panel(
        f"[bold]Chat Gateway v{__version__}[/bold]\n"
        f"Starting server on [cyan]http://{host}:{port}[/cyan]\n"
        f"Mode: {config.cors.environment}",
        title="🚀 Starting"
    ))

    from .server import main as server_main
    server_main(ctx.obj.get("config_path"), host=host, port=port, reload=reload)


@cli.command()
@click.option("--port", "-p", default=None, type=int, help="Server port")
@click.pass_context
def status(ctx, port: int):
    """Show server status."""
    import httpx

    port = port or _resolve_config(ctx).server.port

    try:
        response = httpx.get(f"http://localhost:{port}/health")
        data = response.json()

        console.print(Panel(
            f"[bold green]Running[/bold green]\n\n"
            f"Service: {data.get('service', 'unknown')}\n"
            f"Status: {data.get('status', 'unknown')}\n"
            f"Timestamp: {data.get('timestamp', '-')}",
            title="📊 Chat Gateway Status"
        ))
    except Exception as e:
        console.print(f"[red]✗[/red] Server not running: {e}")
        sys.exit(1)


@cli.command()
@click.option("--output", "-o", default="gateway.yaml", type=click.Path(), help="File to write")
def init(output: str):
    """Initialize a new configuration file."""
    config_path = Path(output)

    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    config_path.write_text(create_default_config())
    console.print(f"[green]✓[/green] Created {config_path}")
    console.print("\nSet OPENAI_API_KEY, then run:")
    console.print(f"  [cyan]chat-gateway -c {config_path} start[/cyan]")


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the resolved configuration."""
    config = _resolve_config(ctx)

    table = Table(title="Chat Gateway Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    origins = config.cors.effective_origins()
    rows = [
        ("service_name", config.service_name),
        ("server.host", config.server.host),
        ("server.port", str(config.server.port)),
        ("server.log_level", config.server.log_level),
        ("server.max_body_bytes", str(config.server.max_body_bytes)),
        ("upstream.url", config.upstream.completions_url),
        ("upstream.api_key", _mask(config.upstream.api_key or "")),
        ("upstream.default_model", config.upstream.default_model),
        ("upstream.default_max_completion_tokens", str(config.upstream.default_max_completion_tokens)),
        ("upstream.timeout", f"{config.upstream.timeout}s"),
        ("cors.environment", config.cors.environment),
        ("cors.allowed_origins", ", ".join(origins) or "[yellow]none[/yellow]"),
        ("rate_limit.enabled", "✓" if config.rate_limit.enabled else "✗"),
        ("rate_limit.max_requests", str(config.rate_limit.max_requests)),
        ("rate_limit.window_seconds", str(config.rate_limit.window_seconds)),
        ("rate_limit.trust_forwarded_for", "✓" if config.rate_limit.trust_forwarded_for else "✗"),
    ]
    for name, value in rows:
        table.add_row(name, value)

    console.print(table)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
