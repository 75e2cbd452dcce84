"""API key CLI subcommands."""

import typer
from rich.console import Console

from council import __logo__

console = Console()

key_app = typer.Typer(help="Manage the stored Gemini API key")

KEY_HELP_URL = "https://aistudio.google.com/app/apikey"


@key_app.command("set")
def key_set(
    key: str = typer.Argument(None, help="Gemini API key (prompted for if omitted)"),
):
    """Store an API key for future debates."""
    from council.providers.credentials import KeyStore
    from council.providers.errors import InvalidKeyError

    if not key:
        key = typer.prompt("Gemini API key", hide_input=True)

    store = KeyStore()
    try:
        store.save(key)
    except InvalidKeyError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] API key saved to {store.path}")


@key_app.command("clear")
def key_clear():
    """Remove the stored API key."""
    from council.providers.credentials import KeyStore

    if KeyStore().clear():
        console.print("[green]✓[/green] Stored API key removed")
    else:
        console.print("[dim]No stored API key[/dim]")


@key_app.command("status")
def key_status():
    """Show where the API key would come from."""
    from council.config.loader import load_config
    from council.providers.credentials import CredentialResolver

    config = load_config()
    source = CredentialResolver(env_vars=config.provider.env_vars).describe()

    console.print(f"{__logo__} API key\n")
    if source:
        console.print(f"[green]✓ connected[/green] [dim]({source})[/dim]")
    else:
        console.print("[red]✗ not set[/red]")
        console.print(f"Run [cyan]council key set[/cyan]. Get a key at: {KEY_HELP_URL}")
