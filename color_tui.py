#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# color_tui.py — ColorTUIDisplay: full-screen Textual TUI for Dead Stop.
#
# Requires: pip install textual
# The game loop runs on a worker thread; every blocking Display call waits on
# a threading.Event that key handlers on the Textual side resolve.

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.events import Key
from textual.widgets import RichLog, Static

from counter import CounterState
from deadstop import Display, Event, Game, POISON_AMOUNT, play
from errors import SignalLost

logger = logging.getLogger(__name__)

_CLOSED = object()      # bridge result once the app has shut down
_COUNTER_REFRESH = 1 / 30


# ── Widgets ───────────────────────────────────────────────────────────────────

class TargetPanel(Static):
    """Top strip: this round's objectives and the scores frozen so far."""

    DEFAULT_CSS = """
    TargetPanel {
        height: auto;
        border: solid $success-darken-1;
        padding: 0 1;
    }
    """


class PlayerPanel(Static):
    """One player's stats: vitality bar, speed and strength."""

    DEFAULT_CSS = """
    PlayerPanel {
        width: 1fr;
        border: solid grey;
        padding: 1 1;
    }
    PlayerPanel.active {
        border: solid white;
    }
    """


class CounterPanel(Static):
    """The live counter for the attempt in progress.

    Redraws from the app's latest tick on its own timer, which stops when the
    panel is unmounted.
    """

    DEFAULT_CSS = """
    CounterPanel {
        height: 5;
        border: solid $accent;
        content-align: center middle;
    }
    """

    def on_mount(self) -> None:
        self.set_interval(_COUNTER_REFRESH, self.redraw)

    def redraw(self) -> None:
        tick = getattr(self.app, "_tick", None)
        if tick is None:
            self.update(_counter_markup(None, None))
        else:
            self.update(_counter_markup(*tick))


class EventLog(RichLog):
    """Scrolling log of game events."""

    DEFAULT_CSS = """
    EventLog {
        height: 1fr;
        border: solid $primary-darken-1;
        padding: 0 1;
    }
    """


class IOPanel(Static):
    """What the game is waiting for: a signal, a menu pick, or a yes/no."""

    DEFAULT_CSS = """
    IOPanel {
        height: auto;
        border: solid $warning-darken-1;
        padding: 0 1;
    }
    """


# ── Helpers ───────────────────────────────────────────────────────────────────

def _player_markup(name: str, vitality: int, speed: int, strength: int, active: bool,
                   max_vitality: int = 0) -> str:
    marker = "▶" if active else " "
    bar = ""
    if max_vitality > 0:
        filled = round(20 * vitality / max_vitality)
        bar = f"\n  [red]{'█' * filled}[/red]{'░' * (20 - filled)}"
    return (f"{marker} {name}\n  Vitality {vitality}{bar}\n"
            f"  Speed    {speed} ms\n  Strength {strength}")


def _targets_markup(targets: list[int], frozen: list[Event]) -> str:
    """One row per objective: target │ counter │ miss │ score. Unplayed rows are dimmed."""
    if not targets:
        return "Objectives: [dim]waiting for the round to start[/dim]"
    rows = ["Objective │ Counter │ Miss │ Score"]
    for i, target in enumerate(targets):
        if i < len(frozen):
            f = frozen[i]
            rows.append(f"{target:>9} │ {f.value:>7} │ {f.miss:>4} │ {_score_str(f)}")
        else:
            rows.append(f"[dim]{target:>9} │ {'·':>7} │ {'·':>4} │ ·[/dim]")
    return "\n".join(rows)


def _score_str(event: Event) -> str:
    score = event.score
    if score is None:
        return "·"
    if score.denominator == 1:
        return str(score.numerator)
    return f"{float(score):.2f}"


def _counter_markup(state: CounterState | None, target: int | None) -> str:
    if state is None or target is None:
        return "[dim]counter idle[/dim]"
    return f"Objective [b]{target}[/b]   Counter [b]{state.value:>3}[/b]   Miss {state.miss}"


def _event_to_str(event: Event) -> str | None:  # noqa: C901
    """Convert a game Event to a log string, or None if the event is silent in the TUI."""
    t = event.type
    if t == "game_start":
        return "[b]Game Start[/b]"
    if t == "round_start":
        return f"--- Round {event.value} ---"
    if t == "turn_start":
        return f"{event.player}'s turn. Objectives: {list(event.targets)}"
    if t == "freeze":
        return (f"{event.player} stopped at {event.value} for {event.target} "
                f"(miss {event.miss}): ({event.base} + {event.strength}) / {event.miss + 1}"
                f" = {_score_str(event)}")
    if t == "signal_lost":
        return f"Input lost: {event.player}'s counter stopped at {event.value}."
    if t == "turn_end":
        return f"{event.player} averages {event.value}."
    if t == "round_win":
        return f"{event.player} wins the round. {event.opponent} loses {event.value} vitality."
    if t == "round_draw":
        return "The round is a draw. No vitality lost."
    if t == "poison":
        return f"{event.player} poisons {event.opponent}: {event.stat} -{POISON_AMOUNT} (now {event.value})."
    if t == "round_end":
        return None  # panels already show the new stats
    if t == "win":
        return f"[b]{event.player} wins the game![/b]"
    if t == "draw":
        return "[b]Both players are out of vitality. The game is a draw.[/b]"
    return None  # unknown event type


# ── App ───────────────────────────────────────────────────────────────────────

class DeadStopApp(App):
    """Full-screen Dead Stop TUI."""

    TITLE = "Dead Stop"
    BINDINGS = [("q", "quit", "Quit")]
    CSS = """
    #player-area { height: auto; }
    """

    def __init__(self, game: Game | None = None,
                 display: ColorTUIDisplay | None = None,
                 new_game: Callable[[], Game] | None = None) -> None:
        super().__init__()
        if game is None and new_game is not None:
            game = new_game()
        self.game = game if game is not None else Game()
        self._new_game = new_game
        self._game_display = display
        # Bridge to the game worker: one pending request at a time
        self._bridge_event = threading.Event()
        self._bridge_result: object = None
        self._bridge_mode: str | None = None   # "signal", "pick_one", "confirm" or None
        self._menu_options: list = []
        self._menu_text: str = ""
        self._typed: str = ""
        # Round progress, written from the worker via call_from_thread
        self._active: str | None = None
        self._frozen: list[Event] = []
        self._tick: tuple[CounterState, int] | None = None
        self._max_vitality = max(p.vitality for p in self.game.players)
        self.closed = False
        if display is not None:
            display.app = self

    def compose(self) -> ComposeResult:
        yield TargetPanel("", id="targets")
        with Horizontal(id="player-area"):
            for _ in self.game.players:
                yield PlayerPanel("", classes="inactive")
        yield CounterPanel("", id="counter")
        yield EventLog(id="event-log", markup=True)
        yield IOPanel("", id="io-panel")

    def on_mount(self) -> None:
        self.update_state(self.game)
        if self._game_display is not None:
            threading.Thread(target=self._game_worker, name="game-worker", daemon=True).start()

    def on_unmount(self) -> None:
        self.close_bridge()

    def action_quit(self) -> None:
        self.close_bridge()
        self.exit()

    def add_events(self, events: list[Event]) -> None:
        """Log the events and track whose turn it is and which targets are frozen."""
        log = self.query_one(EventLog)
        for event in events:
            if event.type == "turn_start":
                self._active = event.player
                self._frozen = []
            elif event.type == "freeze":
                self._frozen.append(event)
                self._tick = None
            elif event.type in ("turn_end", "round_end"):
                self._active = None
            text = _event_to_str(event)
            if text is not None:
                log.write(text)
        self.update_state(self.game)

    def update_state(self, game: Game) -> None:
        if game is not self.game:
            # Play again: a fresh game with its own starting vitality
            self.game = game
            self._max_vitality = max(p.vitality for p in game.players)
            self._frozen = []
        self.query_one(TargetPanel).update(_targets_markup(game.targets, self._frozen))
        for panel, player in zip(self.query(PlayerPanel), game.players):
            is_active = player.name == self._active
            panel.update(_player_markup(player.name, player.vitality, player.speed, player.strength,
                                        active=is_active, max_vitality=self._max_vitality))
            panel.set_class(is_active, "active")
            panel.set_class(not is_active, "inactive")

    def set_tick(self, state: CounterState, target: int) -> None:
        """Record the newest counter state. Called from the counter thread; never blocks."""
        self._tick = (state, target)

    def _game_worker(self) -> None:
        """Play games until the players decline another, then close the app.

        A worker still mid-turn when the app closes sees SignalLost; that and
        any other error are logged, not raised into a dead UI.
        """
        try:
            if self._new_game is None:
                self.game.run(display=self._game_display)
            else:
                first = [self.game]
                play(lambda: first.pop() if first else self._new_game(), self._game_display)
            self.call_from_thread(self.exit)
        except Exception:  # noqa: BLE001
            logger.debug("Game worker stopped", exc_info=True)

    # Bridge requests: each one sets the input mode the key handlers obey

    def show_signal_prompt(self, prompt: str) -> None:
        self._bridge_mode = "signal"
        self.query_one(IOPanel).update(f"{prompt}  [dim](ENTER or SPACE)[/dim]")

    def show_prompt(self, options: list, formatter: Callable, prompt: str = "Your selection: ") -> None:
        self._menu_options = list(options)
        self._menu_text = prompt + "\n" + "\n".join(
            f"  {n}. {formatter(option)}" for n, option in enumerate(options, start=1))
        self._typed = ""
        self._bridge_mode = "pick_one"
        self._redraw_menu()

    def show_confirm_prompt(self, prompt: str) -> None:
        self._bridge_mode = "confirm"
        self.query_one(IOPanel).update(f"{prompt} [y/n]")

    def show_info_text(self, content: str) -> None:
        self.query_one(EventLog).write(content)

    def _redraw_menu(self) -> None:
        self.query_one(IOPanel).update(f"{self._menu_text}\n> {self._typed}_")

    def resolve_bridge(self, value: object) -> None:
        """Hand value to the waiting worker and leave input mode."""
        self._bridge_mode = None
        self._menu_options = []
        self._typed = ""
        self.query_one(IOPanel).update("")
        self._bridge_result = value
        self._bridge_event.set()

    def close_bridge(self) -> None:
        """Release a worker blocked on the bridge; it sees the channel as closed."""
        self.closed = True
        self._bridge_mode = None
        self._bridge_result = _CLOSED
        self._bridge_event.set()

    def on_key(self, event: Key) -> None:
        handler = {
            "signal": self._signal_key,
            "confirm": self._confirm_key,
            "pick_one": self._menu_key,
        }.get(self._bridge_mode)
        if handler is not None and handler(event):
            event.stop()

    def _signal_key(self, event: Key) -> bool:
        if event.key in ("enter", "space"):
            self.resolve_bridge(True)
            return True
        return False

    def _confirm_key(self, event: Key) -> bool:
        answer = (event.character or "").lower()
        if answer in ("y", "n"):
            self.resolve_bridge(answer == "y")
            return True
        return False

    def _menu_key(self, event: Key) -> bool:
        """Digits build a 1-based option number, backspace edits it, ENTER submits it."""
        if event.key == "backspace":
            self._typed = self._typed[:-1]
        elif event.key == "enter":
            if not self._typed.isdigit() or not 1 <= int(self._typed) <= len(self._menu_options):
                return False
            self.resolve_bridge(self._menu_options[int(self._typed) - 1])
            return True
        elif event.character and event.character.isdigit():
            if len(self._typed) < len(str(len(self._menu_options))):
                self._typed += event.character
        else:
            return False
        self._redraw_menu()
        return True


# ── ColorTUIDisplay ───────────────────────────────────────────────────────────

class ColorTUIDisplay(Display):
    """Display backed by a running DeadStopApp.

    Output calls work from any thread. wait_for_signal(), pick_one() and
    confirm() block on the app's bridge, so only the game worker may call them.
    """

    def __init__(self, app: DeadStopApp | None = None) -> None:
        self.app = app

    def _require_app(self, method: str) -> DeadStopApp:
        if self.app is None:
            raise RuntimeError(f"ColorTUIDisplay.{method}() needs a DeadStopApp; pass app= or display= to the app")
        return self.app

    def _call_on_ui(self, fn: Callable, /, *args: object) -> None:
        # Direct call on the Textual loop, call_from_thread from anywhere else
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.app.call_from_thread(fn, *args)  # type: ignore[union-attr]
        else:
            fn(*args)

    def _block(self, show: Callable, *args: object) -> object:
        """Show a prompt on the UI thread and wait for the bridge to resolve."""
        app = self.app
        # Clear before checking closed: a close_bridge() racing this call either
        # is seen here or sets the event after the clear.
        app._bridge_event.clear()
        if app.closed:
            raise SignalLost("the TUI has closed")
        self._call_on_ui(show, *args)
        app._bridge_event.wait()
        if app._bridge_result is _CLOSED:
            raise SignalLost("the TUI closed while waiting for input")
        return app._bridge_result

    def show_events(self, events: list[Event]) -> None:
        self._require_app("show_events")
        self._call_on_ui(self.app.add_events, events)

    def show_state(self, game: Game) -> None:
        self._require_app("show_state")
        self._call_on_ui(self.app.update_state, game)

    def show_info(self, content: str) -> None:
        self._require_app("show_info")
        self._call_on_ui(self.app.show_info_text, content)

    def show_tick(self, state: CounterState, target: int) -> None:
        # Runs on the counter thread: hand over the state, the CounterPanel polls it
        if self.app is not None:
            self.app.set_tick(state, target)

    def wait_for_signal(self, prompt: str) -> None:
        self._require_app("wait_for_signal")
        self._block(self.app.show_signal_prompt, prompt)

    def pick_one(self, options: list, prompt: str = "Your selection: ",
                 formatter: Callable = str) -> object:
        self._require_app("pick_one")
        return self._block(self.app.show_prompt, options, formatter, prompt)

    def confirm(self, prompt: str) -> bool:
        self._require_app("confirm")
        return bool(self._block(self.app.show_confirm_prompt, prompt))


if __name__ == "__main__":
    DeadStopApp(new_game=Game, display=ColorTUIDisplay()).run()
