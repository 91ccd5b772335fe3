"""Watch command: run the delivery watcher against a tmux session."""

import signal
import threading

import click

from ralph_lisa_loop.clients.tmux import TmuxError, tmux_client
from ralph_lisa_loop.constants import (
    DEFAULT_LISA_PANE,
    DEFAULT_RALPH_PANE,
    DEFAULT_TMUX_SESSION,
    WATCHER_LOG_FILE,
    WATCHER_PID_FILE,
)
from ralph_lisa_loop.exceptions import RalphLisaError
from ralph_lisa_loop.models.agent import Agent
from ralph_lisa_loop.models.watcher import WatcherConfig
from ralph_lisa_loop.services.pane_inspector import TmuxPaneInspector
from ralph_lisa_loop.services.transcript_service import TranscriptManager
from ralph_lisa_loop.services.turn_listener import TurnFileListener
from ralph_lisa_loop.services.watcher_service import TurnWatcher
from ralph_lisa_loop.utils.lockfile import WatcherLock
from ralph_lisa_loop.utils.logging import resolve_level, setup_logging


@click.command()
@click.option(
    "--session",
    "session_name",
    default=DEFAULT_TMUX_SESSION,
    help=f"tmux session running both agents (default: {DEFAULT_TMUX_SESSION})",
)
@click.option("--ralph-pane", default=DEFAULT_RALPH_PANE, help="Ralph's pane as window.pane")
@click.option("--lisa-pane", default=DEFAULT_LISA_PANE, help="Lisa's pane as window.pane")
@click.option("--trigger", help="Text typed into the agent's pane on its turn")
@click.option("--no-events", is_flag=True, help="Poll only; don't listen for file events")
@click.option("--no-capture", is_flag=True, help="Don't record pane transcripts")
@click.pass_obj
def watch(store, session_name, ralph_pane, lisa_pane, trigger, no_events, no_capture):
    """Nudge whichever agent holds the turn until it reacts."""
    try:
        store.require()
    except RalphLisaError as e:
        raise click.ClickException(str(e))

    if not tmux_client.session_exists(session_name):
        raise click.ClickException(f"tmux session '{session_name}' not found")

    known = {pane["target"] for pane in tmux_client.list_panes(session_name)}
    for label, pane in (("Ralph", ralph_pane), ("Lisa", lisa_pane)):
        if f"{session_name}:{pane}" not in known:
            raise click.ClickException(f"{label}'s pane {session_name}:{pane} not found")

    setup_logging(resolve_level("INFO"), log_file=store.path(WATCHER_LOG_FILE))

    config = WatcherConfig.from_env()
    if trigger:
        config = config.model_copy(update={"trigger_text": trigger})

    panes = {
        Agent.RALPH: TmuxPaneInspector(f"{session_name}:{ralph_pane}"),
        Agent.LISA: TmuxPaneInspector(f"{session_name}:{lisa_pane}"),
    }
    transcripts = None if no_capture else TranscriptManager(store.state_dir, panes, config.max_log_bytes)
    stop_event = threading.Event()
    wake_event = threading.Event()
    watcher = TurnWatcher(store, panes, config=config, transcripts=transcripts, stop_event=stop_event)

    lock = WatcherLock(store.path(WATCHER_PID_FILE))
    previous = lock.acquire()
    if previous:
        click.echo(f"Replaced previous watcher (PID {previous})")

    def _signal_handler(signum, _frame):
        click.echo(f"\nReceived {signal.Signals(signum).name}, stopping watcher...")
        stop_event.set()
        wake_event.set()

    previous_handlers = {sig: signal.signal(sig, _signal_handler) for sig in (signal.SIGINT, signal.SIGTERM)}

    listener = None
    if not no_events:
        listener = TurnFileListener(store.state_dir, wake_event)
        if listener.available:
            listener.start()
        else:
            click.echo("inotifywait/fswatch not found; polling only")
            listener = None

    click.echo(f"Watching {session_name} (Ralph {ralph_pane}, Lisa {lisa_pane}). Ctrl-C to stop.")
    try:
        watcher.run(stop_event, wake_event)
    except TmuxError as e:
        raise click.ClickException(f"tmux error: {e}")
    finally:
        if listener:
            listener.stop()
        lock.release()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
