"""Debate CLI command (single-topic and interactive modes)."""

import asyncio
import os
import signal

import typer
from rich.console import Console
from rich.markup import escape

from council import __logo__
from council.debate.orchestrator import DebateOrchestrator
from council.debate.persona import get_persona
from council.debate.state import DebateStore, RunState, StoreEvent

console = Console()

SPEED_RANGE_MS = (500, 4000)

_EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit", ":q"}

_HELP = (
    "Type a topic to start a debate. Commands: "
    "[bold]/stop[/bold] [bold]/conclude[/bold] [bold]/reset[/bold] "
    "[bold]/status[/bold] [bold]/speed MS[/bold] [bold]exit[/bold]"
)


def _is_exit_command(command: str) -> bool:
    return command.lower() in _EXIT_COMMANDS


def _clamp_speed(ms: int) -> int:
    low, high = SPEED_RANGE_MS
    return max(low, min(high, ms))


def _render(event: StoreEvent, store: DebateStore) -> None:
    """Print store changes as a chat transcript."""
    if event == StoreEvent.TURN:
        turn = store.transcript.last
        if turn is None:
            return
        persona = get_persona(turn.speaker_id)
        console.print(
            f"{persona.icon} [bold {persona.color}]{persona.name}[/bold {persona.color}] "
            f"[dim]{persona.role}[/dim]"
        )
        console.print(f"   {escape(turn.text)}", style="dim italic" if turn.is_notice else None)
        console.print()
    elif event == StoreEvent.SPEAKER and store.current_speaker is not None:
        persona = get_persona(store.current_speaker)
        console.print(f"  [dim]↳ {persona.name} is thinking...[/dim]")
    elif event == StoreEvent.STATE:
        if store.state == RunState.CONCLUDING:
            console.print("[dim]-- wrapping up --[/dim]")
        elif store.state == RunState.FINISHED:
            console.print("[dim]-- debate finished --[/dim]")
        elif store.state == RunState.IDLE and store.transcript:
            console.print("[yellow]-- debate stopped --[/yellow]")


def _print_status(orchestrator: DebateOrchestrator) -> None:
    state = orchestrator.state.value.lower()
    topic = orchestrator.topic or "-"
    console.print(
        f"[dim]state: {state} | topic: {escape(topic)} | turns: {len(orchestrator.transcript)} | "
        f"pace: {int(orchestrator.pacing * 1000)} ms[/dim]"
    )


def _dispatch(orchestrator: DebateOrchestrator, command: str) -> None:
    """Route one line of interactive input to the orchestrator."""
    if not command.startswith("/"):
        if not orchestrator.start(command):
            console.print("[dim]A debate is in progress. Use /stop or /conclude first.[/dim]")
        return

    name, _, arg = command.partition(" ")
    name = name.lower()
    if name == "/stop":
        accepted = orchestrator.stop()
    elif name == "/conclude":
        accepted = orchestrator.conclude()
    elif name == "/reset":
        accepted = orchestrator.reset()
        if accepted:
            console.print("[dim]-- reset --[/dim]")
    elif name == "/status":
        _print_status(orchestrator)
        return
    elif name == "/speed":
        try:
            ms = _clamp_speed(int(arg.strip()))
        except ValueError:
            console.print("[red]Usage: /speed MS[/red]")
            return
        orchestrator.set_pacing(ms / 1000)
        console.print(f"[dim]pace set to {ms} ms[/dim]")
        return
    elif name == "/help":
        console.print(_HELP)
        return
    else:
        console.print(f"[red]Unknown command: {escape(name)}[/red]")
        return

    if not accepted:
        console.print(f"[dim]{name[1:]} ignored while {orchestrator.state.value.lower()}[/dim]")


def debate(
    topic: str = typer.Argument(None, help="Debate topic (omit for interactive mode)"),
    turns: int = typer.Option(None, "--turns", "-t", min=1, help="Debater turns before the moderator wraps up"),
    speed: int = typer.Option(None, "--speed", help="Delay between turns in ms (500-4000)"),
    pick_key: bool = typer.Option(
        False, "--pick-key", help="Prompt for an API key if none is stored or in the environment"
    ),
    logs: bool = typer.Option(
        False, "--logs/--no-logs", help="Show council runtime logs during the debate"
    ),
):
    """Run a debate on a topic, or open the interactive council room."""
    from loguru import logger

    from council.cli.commands import _create_orchestrator, _setup_logging
    from council.config.loader import load_config

    config = load_config()
    if turns is not None:
        config.debate.max_turns = turns
    if speed is not None:
        config.debate.pacing_ms = _clamp_speed(speed)

    _setup_logging()
    if logs:
        logger.enable("council")
    else:
        logger.disable("council")

    orchestrator = _create_orchestrator(config, pick_key=pick_key)
    orchestrator.store.subscribe(_render)

    if topic is not None:
        # Single topic mode -- run to the conclusion, Ctrl+C stops the debate
        async def run_once():
            if not orchestrator.start(topic):
                console.print("[red]Error: topic must not be empty.[/red]")
                raise typer.Exit(1)

            loop = asyncio.get_running_loop()
            try:
                loop.add_signal_handler(signal.SIGINT, orchestrator.stop)
            except NotImplementedError:
                pass
            await orchestrator.join()

        asyncio.run(run_once())
        return

    # Interactive mode -- commands are read while the debate keeps running
    console.print(f"{__logo__} Council room (type [bold]exit[/bold] or [bold]Ctrl+C[/bold] to quit)")
    console.print(_HELP + "\n")

    def _exit_on_sigint(signum, frame):
        console.print("\nGoodbye!")
        os._exit(0)

    signal.signal(signal.SIGINT, _exit_on_sigint)

    async def run_interactive():
        try:
            while True:
                try:
                    line = await asyncio.to_thread(console.input, "[bold cyan]topic>[/bold cyan] ")
                except EOFError:
                    break
                command = line.strip()
                if not command:
                    continue
                if _is_exit_command(command):
                    break
                _dispatch(orchestrator, command)
        finally:
            orchestrator.stop()
            await orchestrator.join()
            console.print("\nGoodbye!")

    asyncio.run(run_interactive())
