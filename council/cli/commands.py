"""CLI commands for council: main entry point and shared utilities."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from council import __logo__, __version__
from council.config.schema import Config

# ---------------------------------------------------------------------------
# Typer app (entry point registered in pyproject.toml)
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="council",
    help=f"{__logo__} council - a round table of emotions debating your topic",
    no_args_is_help=True,
)

console = Console()


# ---------------------------------------------------------------------------
# Version callback
# ---------------------------------------------------------------------------

def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} council v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """council - multi-persona debate simulator."""
    pass


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

_logging_configured = False


def _setup_logging() -> None:
    """Configure persistent file logging with loguru (idempotent)."""
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    from loguru import logger

    from council.config.loader import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_dir / "council.log",
        rotation="10 MB",
        retention="7 days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name}:{function}:{line} | {message}",
        level="DEBUG",
    )


# ---------------------------------------------------------------------------
# Orchestrator factory (shared by the debate command modes)
# ---------------------------------------------------------------------------

def _make_resolver(config: Config, pick_key: bool = False):
    """Create the credential resolver, optionally prompting for a key as last resort."""
    from council.providers.credentials import CredentialResolver

    selector = None
    if pick_key:
        def selector() -> str | None:
            return typer.prompt(
                "Gemini API key (leave empty to skip)",
                default="",
                show_default=False,
                hide_input=True,
            )

    return CredentialResolver(selector=selector, env_vars=config.provider.env_vars)


def _create_orchestrator(config: Config, pick_key: bool = False):
    """Wire resolver, provider factory, gateway and orchestrator from config."""
    from council.debate.gateway import DebateGateway
    from council.debate.orchestrator import DebateOrchestrator
    from council.providers.errors import MissingCredentialError
    from council.providers.factory import make_provider_factory

    resolver = _make_resolver(config, pick_key=pick_key)
    if pick_key:
        # Ask up front rather than in the middle of the first turn.
        try:
            resolver.resolve()
        except MissingCredentialError:
            console.print("[yellow]No API key available; turns will show an error notice.[/yellow]")

    gateway = DebateGateway(make_provider_factory(config, resolver), config.generation)
    return DebateOrchestrator.from_config(gateway, config.debate)


# ---------------------------------------------------------------------------
# Register commands from sub-modules
# ---------------------------------------------------------------------------

# Debate
from council.cli.debate_cmd import debate as _debate_fn  # noqa: E402
app.command()(_debate_fn)


@app.command()
def personas():
    """List the debate cast."""
    from council.debate.persona import PERSONAS

    table = Table(title=f"{__logo__} The council")
    table.add_column("", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Role")
    table.add_column("Part")
    table.add_column("Character", overflow="fold")

    for persona in PERSONAS.values():
        table.add_row(
            persona.icon,
            f"[{persona.color}]{persona.name}[/{persona.color}]",
            persona.role,
            "moderator" if persona.moderator else "debater",
            persona.description,
        )
    console.print(table)


# Status (small, kept inline)
@app.command()
def status():
    """Show council status."""
    from council.config.loader import get_config_path, load_config

    config_path: Path = get_config_path()
    config = load_config()
    resolver = _make_resolver(config)

    console.print(f"{__logo__} council Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[dim]defaults[/dim]'}")
    console.print(f"Model: {config.provider.model}")
    console.print(f"Pace: {config.debate.pacing_ms} ms, max turns: {config.debate.max_turns or 'unlimited'}")

    source = resolver.describe()
    console.print(f"API key: {'[green]✓ ' + source + '[/green]' if source else '[red]✗ not set[/red]'}")


# Sub-apps: key
from council.cli.key_cmd import key_app  # noqa: E402
app.add_typer(key_app, name="key")


if __name__ == "__main__":
    app()
