"""
main.py — obs-deck command line.

CLI:
  python run.py check              connect, print OBS state, disconnect
  python run.py run                hold a session open (reconnects while OBS is away)
  python run.py trigger FILE       run one button action from a .json/.yaml file
  python run.py list-actions       print the operation lookup table
  python run.py init-config        create a default config.yaml
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from obs_deck import __version__
from obs_deck.actions import OPERATIONS, ActionRouter, SceneDispatcher, SourceDispatcher, StreamDispatcher
from obs_deck.config import OBSSettings, Settings, reload_settings
from obs_deck.core import ConnectionManager, OBSDeckError, TransportError
from obs_deck.schema import Action

console = Console()
app = typer.Typer(name="obs-deck", help="Stream-deck style remote control for OBS Studio")
log = logging.getLogger("obs_deck")


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def load_settings(config: Optional[Path], **obs_overrides) -> Settings:
    """Load config.yaml + env; a broken config is fatal for the CLI."""
    try:
        settings = reload_settings(config)
    except (ValidationError, OSError, ValueError) as e:
        console.print(f"[red]✗ Could not load configuration:[/red] {e}")
        raise typer.Exit(2)
    overrides = {k: v for k, v in obs_overrides.items() if v is not None}
    if overrides:
        obs = OBSSettings(**{**settings.obs.model_dump(), **overrides})
        settings = settings.model_copy(update={"obs": obs})
    setup_logging(settings.logging.level)
    return settings


async def connect_with_retry(manager: ConnectionManager, stop: asyncio.Event) -> bool:
    """
    Connect, retrying every reconnect_interval while auto_connect is on.
    Returns False if `stop` was set before a session came up.
    """
    interval = manager.settings.reconnect_interval
    attempt = 0
    while not stop.is_set():
        attempt += 1
        try:
            await manager.connect()
            return True
        except TransportError as e:
            if not manager.settings.auto_connect:
                raise
            log.warning(f"OBS not reachable (attempt {attempt}): {e.detail}. Retrying in {interval:.0f}s")
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
    return False


async def serve(settings: Settings) -> None:
    manager = ConnectionManager(settings.obs)
    stop = asyncio.Event()
    lost = asyncio.Event()

    async def on_connect():
        version = await manager.get_version()
        log.info(f"OBS version: {version}")

    def on_error(err: Exception):
        log.error(f"OBS error: {err}")
        lost.set()

    manager.on_connect(on_connect)
    manager.on_error(on_error)
    manager.on_scene_changed(lambda scene: log.info(f"Program scene → {scene}"))

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows

    console.rule(f"[bold blue]obs-deck v{__version__}[/bold blue]")
    while not stop.is_set():
        if not await connect_with_retry(manager, stop):
            break
        lost.clear()
        console.print(f"[green]✓ OBS[/green]  {settings.obs.address} — press Ctrl+C to stop")
        waiters = [asyncio.ensure_future(stop.wait()), asyncio.ensure_future(lost.wait())]
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        for w in waiters:
            w.cancel()
        await manager.disconnect()
        if not settings.obs.auto_connect:
            break

    await manager.disconnect()
    log.info("Goodbye!")


# ──────────────────────────────────────────────────────────────────────────────
# CLI commands
# ──────────────────────────────────────────────────────────────────────────────

_CONFIG = typer.Option(None, "--config", "-c", help="Path to config.yaml")
_HOST = typer.Option(None, "--obs-host", help="OBS WebSocket host")
_PORT = typer.Option(None, "--obs-port", help="OBS WebSocket port")
_PASSWORD = typer.Option(None, "--obs-password", help="OBS WebSocket password")


@app.command()
def run(
    config: Optional[Path] = _CONFIG,
    obs_host: Optional[str] = _HOST,
    obs_port: Optional[int] = _PORT,
    obs_password: Optional[str] = _PASSWORD,
):
    """Hold an OBS session open until Ctrl+C, reconnecting if auto_connect is set."""
    settings = load_settings(config, host=obs_host, port=obs_port, password=obs_password)
    try:
        asyncio.run(serve(settings))
    except OBSDeckError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)


@app.command("check")
def check_obs(
    config: Optional[Path] = _CONFIG,
    obs_host: Optional[str] = _HOST,
    obs_port: Optional[int] = _PORT,
    obs_password: Optional[str] = _PASSWORD,
):
    """Test OBS WebSocket connectivity and print the current state."""
    settings = load_settings(config, host=obs_host, port=obs_port, password=obs_password)

    async def _check():
        async with ConnectionManager(settings.obs) as manager:
            scenes = SceneDispatcher(manager)
            streams = StreamDispatcher(manager)
            sources = SourceDispatcher(manager)

            console.print("[green]✓ Connected to OBS[/green]")
            console.print(f"  OBS version:   {await manager.get_version()}")
            scene_list = await scenes.get_scene_list()
            console.print(f"  Scenes ({len(scene_list)}): {', '.join(scene_list)}")
            console.print(f"  Current scene: {await scenes.get_current_scene()}")
            stream = await streams.get_stream_status()
            record = await streams.get_record_status()
            console.print(f"  Streaming:     {stream.active}")
            console.print(f"  Recording:     {record.active} (paused: {record.paused})")
            inputs = await sources.get_input_list()
            console.print(f"  Inputs ({len(inputs)}): {', '.join(inputs)}")

    try:
        asyncio.run(_check())
    except OBSDeckError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)


@app.command("trigger")
def trigger_action(
    action_file: Path = typer.Argument(..., help="Action definition (.json / .yaml)"),
    config: Optional[Path] = _CONFIG,
    obs_host: Optional[str] = _HOST,
    obs_port: Optional[int] = _PORT,
    obs_password: Optional[str] = _PASSWORD,
):
    """Connect, run one button action and print the SUCCESS / ERROR payload."""
    settings = load_settings(config, host=obs_host, port=obs_port, password=obs_password)
    try:
        action = Action.from_file(action_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]✗ Invalid action file:[/red] {e}")
        raise typer.Exit(2)

    async def _trigger():
        async with ConnectionManager(settings.obs) as manager:
            return await ActionRouter.from_manager(manager).trigger(action)

    try:
        result = asyncio.run(_trigger())
    except OBSDeckError as e:
        console.print_json(json.dumps(e.to_payload().to_dict()))
        sys.exit(1)
    console.print_json(json.dumps(result.to_dict()))


@app.command("list-actions")
def list_actions_cmd():
    """Print the button operations the router understands."""
    table = Table(title="Button Operations", show_header=True)
    table.add_column("Type", style="cyan")
    table.add_column("Operation", style="green", no_wrap=True)
    table.add_column("Properties", style="yellow")
    table.add_column("Description")
    for (action_type, op_id), op in OPERATIONS.items():
        props = ", ".join(p.name if p.required else f"{p.name}?" for p in op.params)
        table.add_row(action_type.value, op_id, props or "-", op.description)
    console.print(table)


@app.command("init-config")
def init_config(
    output: Path = typer.Option(Path("config.yaml"), "--output", "-o"),
):
    """Generate a default config.yaml."""
    s = Settings()
    s.to_yaml(output)
    console.print(f"[green]✓[/green] Config written to [bold]{output}[/bold]")


if __name__ == "__main__":
    app()
