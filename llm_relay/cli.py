"""
LLM Relay CLI

Command-line interface for running and operating the relay.
"""

import sys
from pathlib import Path

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from . import __version__
from .config import RelayConfig, load_config, create_default_config
from . import deploy as deploy_helpers
from .diagnose import (
    CheckStatus,
    check_env,
    check_git,
    check_python_version,
    check_relay,
    check_upstream,
    run_checks,
)
from .envcheck import check_env_file, render_env_template


console = Console()

DEFAULT_PORT = 8787

STATUS_ICONS = {
    CheckStatus.OK: "[green]✓[/green]",
    CheckStatus.WARN: "[yellow]![/yellow]",
    CheckStatus.FAIL: "[red]✗[/red]",
    CheckStatus.INFO: "[blue]i[/blue]",
}


def _relay_url(port: int) -> str:
    return f"http://localhost:{port}"


@click.group()
@click.version_option(__version__, prog_name="llm-relay")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Path to config file")
@click.option("--env-file", default=".env", type=click.Path(), help="dotenv file to load")
@click.pass_context
def cli(ctx, config_path: str, env_file: str):
    """LLM Relay - backend-for-frontend for chat completion APIs"""
    ctx.ensure_object(dict)
    load_dotenv(env_file)
    ctx.obj["config_path"] = config_path
    ctx.obj["env_file"] = env_file


def _load(ctx) -> RelayConfig:
    config_path = ctx.obj.get("config_path")
    if config_path and Path(config_path).exists():
        return load_config(config_path)
    return RelayConfig.from_env()


# =============================================================================
# Server Commands
# =============================================================================

@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
@click.pass_context
def serve(ctx, host: str, port: int, reload: bool):
    """Start the relay server."""
    config_path = ctx.obj.get("config_path")
    config = _load(ctx)

    if config_path and Path(config_path).exists():
        console.print(f"[green]✓[/green] Loaded config from {config_path}")
    else:
        config_path = None

    host = host or config.http.host
    port = port or config.http.port

    console.print(Panel(
        f"[bold]LLM Relay v{__version__}[/bold]\n"
        f"Listening: [cyan]http://{host}:{port}/api[/cyan]\n"
        f"Upstream: [cyan]{config.server.api_url}[/cyan]\n"
        f"Credential: {'[green]configured[/green]' if config.server.has_api_key else '[red]missing[/red]'}",
        title="🚀 Starting"
    ))

    from .server import main as server_main
    server_main(config_path, host=host, port=port, reload=reload)


@cli.command()
@click.option("--port", "-p", default=DEFAULT_PORT, type=int, help="Server port")
def status(port: int):
    """Show relay status."""
    try:
        response = httpx.get(f"{_relay_url(port)}/api/health")
        data = response.json()

        providers = data.get("providers", {})
        configured = [p["name"] for p in providers.values() if p.get("configured")]

        console.print(Panel(
            f"[bold green]Running[/bold green]\n\n"
            f"Version: {data.get('version', 'unknown')}\n"
            f"Credential: {'✓' if data.get('hasApiKey') else '✗'}\n"
            f"Providers: {', '.join(configured) or 'none'}\n"
            f"Timestamp: {data.get('timestamp', '-')}",
            title="📊 LLM Relay Status"
        ))
    except Exception as e:
        console.print(f"[red]✗[/red] Relay not running: {e}")
        sys.exit(1)


@cli.command()
@click.option("--provider", default=None, help="Registry provider id")
@click.option("--port", "-p", default=DEFAULT_PORT, type=int, help="Server port")
def models(provider: str, port: int):
    """List upstream models through the relay."""
    params = {"provider": provider} if provider else None

    try:
        response = httpx.get(f"{_relay_url(port)}/api/ai/models", params=params, timeout=30.0)
        data = response.json()
    except Exception as e:
        console.print(f"[red]✗[/red] Failed: {e}")
        sys.exit(1)

    if response.status_code != 200:
        console.print(f"[red]✗[/red] {data.get('error')}: {data.get('message')}")
        sys.exit(1)

    table = Table(title="Upstream Models")
    table.add_column("ID", style="cyan")
    table.add_column("Owner")

    for model in data.get("data", []):
        table.add_row(model.get("id", "-"), model.get("owned_by") or "-")

    console.print(table)


@cli.command()
@click.argument("message")
@click.option("--model", "-m", default=None, help="Model override")
@click.option("--provider", default=None, help="Registry provider id")
@click.option("--system", "-s", "system_prompt", default=None, help="System prompt")
@click.option("--temperature", "-t", default=None, type=float, help="Sampling temperature")
@click.option("--port", "-p", default=DEFAULT_PORT, type=int, help="Server port")
def chat(message: str, model: str, provider: str, system_prompt: str, temperature: float, port: int):
    """Send one message through the relay and print the reply."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": message})

    body = {"messages": messages}
    if model:
        body["model"] = model
    if provider:
        body["provider"] = provider
    if temperature is not None:
        body["temperature"] = temperature

    try:
        response = httpx.post(f"{_relay_url(port)}/api/ai/chat", json=body, timeout=120.0)
        data = response.json()
    except Exception as e:
        console.print(f"[red]✗[/red] Failed: {e}")
        sys.exit(1)

    if response.status_code != 200:
        console.print(f"[red]✗[/red] {data.get('error')} ({response.status_code}): {data.get('message')}")
        sys.exit(1)

    choices = data.get("choices") or [{}]
    content = (choices[0].get("message") or {}).get("content", "")
    console.print(Panel(content or "(empty)", title=f"🤖 {data.get('model', 'assistant')}"))


@cli.command()
def init():
    """Initialize a new configuration file."""
    config_path = Path("relay.yaml")

    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    config_path.write_text(create_default_config())
    console.print(f"[green]✓[/green] Created {config_path}")
    console.print("\nEdit the file, then run:")
    console.print("  [cyan]llm-relay -c relay.yaml serve[/cyan]")


# =============================================================================
# Environment Commands
# =============================================================================

@cli.group()
def env():
    """Validate and scaffold environment variables."""
    pass


@env.command("check")
@click.pass_context
def env_check(ctx):
    """Check that the env file holds every required variable."""
    result = check_env_file(ctx.obj["env_file"])

    console.print(Panel("[bold]LLM Relay - environment check[/bold]", title="🔍"))

    if not result.file_found:
        console.print(f"[red]✗[/red] {result.env_file} not found")
        console.print("\nCreate it from the template:")
        console.print("  [cyan]llm-relay env template && cp .env.example .env[/cyan]")
        sys.exit(1)

    console.print(f"[green]✓[/green] {result.env_file} found\n")

    table = Table()
    table.add_column("Variable", style="cyan")
    table.add_column("Description")
    table.add_column("Status")
    table.add_column("Example", style="dim")

    for item in result.statuses:
        if item.configured:
            state = "[green]✓ configured[/green]"
        elif item.spec.optional:
            state = "[yellow]! not set (optional)[/yellow]"
        else:
            state = "[red]✗ missing or placeholder[/red]"
        table.add_row(item.spec.name, item.spec.description, state, item.spec.example)

    console.print(table)

    if result.errors:
        console.print("\n[red]✗[/red] Environment check failed")
        sys.exit(result.exit_code)
    elif result.warnings:
        console.print("\n[yellow]![/yellow] Environment check passed with warnings")
    else:
        console.print("\n[green]✓[/green] Environment check passed")


@env.command("template")
@click.option("--output", "-o", default=".env.example", type=click.Path(), help="Output file")
def env_template(output: str):
    """Write an env template."""
    Path(output).write_text(render_env_template())
    console.print(f"[green]✓[/green] Created {output}")


# =============================================================================
# Diagnostics
# =============================================================================

@cli.command()
@click.option("--port", "-p", default=DEFAULT_PORT, type=int, help="Relay port to probe")
@click.pass_context
def diagnose(ctx, port: int):
    """Run project diagnostics."""
    config = _load(ctx)

    console.print("🔍 [bold]LLM Relay - diagnostics[/bold]\n")

    results = run_checks([
        ("Python version", check_python_version),
        ("Environment", lambda: check_env(ctx.obj["env_file"])),
        ("Upstream API", lambda: check_upstream(config.server)),
        ("Relay server", lambda: check_relay(_relay_url(port))),
        ("Git status", check_git),
    ])

    table = Table(title="Diagnostics")
    table.add_column("Check", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Detail")

    for result in results:
        table.add_row(result.name, STATUS_ICONS[result.status], result.message)

    console.print(table)

    if any(r.failed for r in results):
        console.print("\n[red]✗[/red] Problems found, see above")
        sys.exit(1)

    console.print("\n[green]✓[/green] All checks passed")


# =============================================================================
# Deploy Commands
# =============================================================================

@cli.group()
def deploy():
    """Build and run the relay container."""
    pass


def _execute(command):
    if not deploy_helpers.docker_available():
        console.print("[yellow]![/yellow] docker is not available or the daemon is not running")
        sys.exit(1)
    try:
        deploy_helpers.execute(command)
    except deploy_helpers.DeployError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)


@deploy.command("build")
@click.option("--image", "-i", default=deploy_helpers.DEFAULT_IMAGE, help="Image tag")
@click.option("--dry-run", is_flag=True, help="Print the command only")
def deploy_build(image: str, dry_run: bool):
    """Build the container image."""
    command = deploy_helpers.build_command(image)
    if dry_run:
        console.print(" ".join(command), soft_wrap=True)
        return
    console.print(f"📦 Building {image}...")
    _execute(command)
    console.print(f"[green]✓[/green] Built {image}")


@deploy.command("run")
@click.option("--image", "-i", default=deploy_helpers.DEFAULT_IMAGE, help="Image tag")
@click.option("--port", "-p", default=DEFAULT_PORT, type=int, help="Host port")
@click.option("--dry-run", is_flag=True, help="Print the command only")
@click.pass_context
def deploy_run(ctx, image: str, port: int, dry_run: bool):
    """Run the container with the env file."""
    env_file = ctx.obj["env_file"]
    command = deploy_helpers.run_command(
        image,
        port=port,
        env_file=env_file if Path(env_file).exists() else None,
    )
    if dry_run:
        console.print(" ".join(command), soft_wrap=True)
        return
    console.print(f"☁️  Running {image} on port {port}...")
    _execute(command)


@deploy.command("push")
@click.option("--image", "-i", default=deploy_helpers.DEFAULT_IMAGE, help="Image tag")
@click.option("--dry-run", is_flag=True, help="Print the command only")
def deploy_push(image: str, dry_run: bool):
    """Push the image to its registry."""
    command = deploy_helpers.push_command(image)
    if dry_run:
        console.print(" ".join(command), soft_wrap=True)
        return
    _execute(command)
    console.print(f"[green]✓[/green] Pushed {image}")


# =============================================================================
# Main
# =============================================================================

def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
