#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# deadstop.py - Main game file
#
# Two players take turns stopping a running 0..100 counter as close as they
# can to each target in a shared list. The higher average score wins the
# round, knocks the difference off the loser's vitality, and poisons one of
# the loser's stats. The game ends when a player's vitality reaches zero.

from __future__ import annotations

import argparse
import enum
import logging
import random
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from fractions import Fraction
from typing import Callable

import counter
import scoring
import utility
from counter import CounterState
from errors import EmptyTargetList, GameError, InvalidStat, InvalidTarget, RoundStateError, SignalLost

logger = logging.getLogger(__name__)

POISON_AMOUNT: int = 5
POISONS: tuple[str, ...] = ("speed", "strength")
MIN_SPEED: int = 1             # ms per tick; zero would spin the counter thread
MIN_STRENGTH: int = 0
TARGET_MIN: int = 0
TARGET_MAX: int = 100

START_PROMPT = "→ Press ENTER to start the turn.."
STOP_PROMPT = "Press ENTER to stop the counter..."


class PlayerStats(object):
    def __init__(self, name: str, vitality: int, speed: int, strength: int):
        if vitality < 0:
            raise InvalidStat("{}: vitality must be 0 or more, got {}".format(name, vitality))
        if speed < MIN_SPEED:
            raise InvalidStat("{}: speed must be at least {} ms, got {}".format(name, MIN_SPEED, speed))
        if strength < MIN_STRENGTH:
            raise InvalidStat("{}: strength must be 0 or more, got {}".format(name, strength))
        self._name = name
        self.vitality = vitality
        self.speed = speed          # milliseconds between counter ticks
        self.strength = strength    # flat bonus added to every base score

    @property
    def name(self) -> str:
        return self._name

    @property
    def alive(self) -> bool:
        return self.vitality > 0

    def decrease_vitality(self, amount: int) -> int:   # Never goes below zero...
        lost = min(amount, self.vitality)
        self.vitality -= lost
        return lost                                    # ...and returns what was actually lost

    def poison(self, stat: str, amount: int = POISON_AMOUNT) -> int:
        """Lower speed (floor MIN_SPEED) or strength (floor 0) and return the new value."""
        if stat == "speed":
            self.speed = max(MIN_SPEED, self.speed - amount)
            return self.speed
        elif stat == "strength":
            self.strength = max(MIN_STRENGTH, self.strength - amount)
            return self.strength
        raise ValueError("unknown poison {!r}; expected one of {}".format(stat, POISONS))

    def describe(self) -> str:
        return "Vitality={}, Speed={}, Strength={}".format(self.vitality, self.speed, self.strength)

    def __repr__(self):
        return "PlayerStats({!r}, vitality={}, speed={}, strength={})".format(
            self.name, self.vitality, self.speed, self.strength)


# ==== Results ====

@dataclass(frozen=True)
class TargetResult:
    """One frozen counter scored against one target."""
    target: int
    value: int
    miss: int
    base: int
    strength: int
    score: Fraction
    forced: bool = False


@dataclass(frozen=True)
class TurnResult:
    """Every target a player attempted this round, plus the rounded-up average."""
    player: str
    results: tuple[TargetResult, ...]
    score: int

    @property
    def raw_scores(self) -> list[Fraction]:
        return [r.score for r in self.results]


@dataclass(frozen=True)
class RoundOutcome:
    round_number: int
    scores: tuple[int, int]
    winner: str | None = None       # None on a draw
    loser: str | None = None
    difference: int = 0             # vitality the loser gives up
    poison: str | None = None       # stat of the loser the winner lowered

    @property
    def draw(self) -> bool:
        return self.winner is None


@dataclass(frozen=True)
class GameResult:
    winner: str | None              # None when both players hit zero in the same round
    rounds: int

    @property
    def draw(self) -> bool:
        return self.winner is None


def score_attempt(target: int, state: CounterState, strength: int) -> TargetResult:
    delta = scoring.distance(state.value, target)
    return TargetResult(
        target=target,
        value=state.value,
        miss=state.miss,
        base=scoring.base_score(delta),
        strength=strength,
        score=scoring.score(delta, state.miss, strength),
        forced=state.forced,
    )


def validate_targets(targets) -> list[int]:
    targets = list(targets)
    if not targets:
        raise EmptyTargetList("a round needs at least one target")
    for t in targets:
        if not TARGET_MIN <= t <= TARGET_MAX:
            raise InvalidTarget("target {} is outside {}..{}".format(t, TARGET_MIN, TARGET_MAX))
    return targets


# ==== Events and displays ====

@dataclass
class Event:
    """One thing that happened, for a Display to render."""
    type: str
    player: str = ""
    opponent: str = ""
    value: int = 0
    target: int | None = None
    miss: int = 0
    base: int = 0
    strength: int = 0
    score: Fraction | None = None
    stat: str = ""
    targets: tuple[int, ...] = ()
    message: str = ""


def _format_score(score: Fraction) -> str:
    if score.denominator == 1:
        return str(score.numerator)
    return "{:.2f}".format(float(score))


def _terminal_line(event: Event) -> str | None:  # noqa: C901
    t = event.type
    if t == "game_start":
        return "##### Game Start #####"
    if t == "round_start":
        return "## Round {} ##".format(event.value)
    if t == "turn_start":
        return "{}'s turn ({})\n→ Objectives: {}".format(event.player, event.message, list(event.targets))
    if t == "freeze":
        return "→ Objective {}: Miss = {} | Counter = {} // Score = ({} + {}) / {} = {}".format(
            event.target, event.miss, event.value, event.base, event.strength,
            event.miss + 1, _format_score(event.score))
    if t == "signal_lost":
        return "(input lost: {}'s counter was stopped at {})".format(event.player, event.value)
    if t == "turn_end":
        return "# End of turn #\n→ Average score: {}".format(event.value)
    if t == "round_win":
        return "{} wins the round. {} loses {} vitality points.".format(
            event.player, event.opponent, event.value)
    if t == "round_draw":
        return "The round is a draw. No vitality lost."
    if t == "poison":
        return "{}'s {} reduced by {}! (now {})".format(event.opponent, event.stat, POISON_AMOUNT, event.value)
    if t == "round_end":
        return "## END of Round {} ##".format(event.value)
    if t == "win":
        return "##### Game Over #####\nWinner: {}".format(event.player)
    if t == "draw":
        return "##### Game Over #####\nBoth players ran out of vitality. The game is a draw."
    return None


class Display(ABC):
    """Where events go and where player input comes from."""

    @abstractmethod
    def show_events(self, events: list[Event]) -> None: ...

    @abstractmethod
    def show_state(self, game: Game) -> None: ...

    @abstractmethod
    def pick_one(self, options: list, prompt: str = "Your selection: ",
                 formatter: Callable = str) -> object: ...

    @abstractmethod
    def confirm(self, prompt: str) -> bool: ...

    @abstractmethod
    def show_info(self, content: str) -> None: ...

    @abstractmethod
    def wait_for_signal(self, prompt: str) -> None:
        """Block until the player presses the signal key. Raise SignalLost if input closes."""

    def show_tick(self, state: CounterState, target: int) -> None:
        """Called from the counter thread on every tick. Must not block."""


class TerminalDisplay(Display):
    """Plain stdin/stdout display."""

    def __init__(self):
        self._live = False

    def show_events(self, events: list[Event]) -> None:
        for event in events:
            line = _terminal_line(event)
            if line is None:
                continue
            if event.type == "freeze" and self._live:
                # Overwrite the live counter line with the final result
                print("\x1b[A\r\x1b[K", end="")
                self._live = False
            print(line)

    def show_state(self, game: Game) -> None:
        for player in game.players:
            print("  {:16} {}".format(player.name, player.describe()))

    def pick_one(self, options: list, prompt: str = "Your selection: ",
                 formatter: Callable = str) -> object:
        labels = [formatter(option) for option in options]
        chosen = utility.userChoice(labels, prompt)
        return options[labels.index(chosen)]

    def confirm(self, prompt: str) -> bool:
        return utility.yesOrNo(prompt)

    def show_info(self, content: str) -> None:
        print(content)

    def wait_for_signal(self, prompt: str) -> None:
        print(prompt)
        utility.waitForEnter()

    def show_tick(self, state: CounterState, target: int) -> None:
        self._live = True
        print("\r\x1b[K→ Objective {}: Miss = {} | Counter = {}".format(target, state.miss, state.value),
              end="", flush=True)


class NullDisplay(Display):
    """Discards output; every signal arrives at once and every menu takes its first option."""

    def show_events(self, events: list[Event]) -> None:
        pass

    def show_state(self, game: Game) -> None:
        pass

    def pick_one(self, options: list, prompt: str = "Your selection: ",
                 formatter: Callable = str) -> object:
        return options[0]

    def confirm(self, prompt: str) -> bool:
        return False

    def show_info(self, content: str) -> None:
        pass

    def wait_for_signal(self, prompt: str) -> None:
        pass


class RecordingDisplay(NullDisplay):
    """Keeps everything it is shown. Menu picks and confirmations can be scripted."""

    def __init__(self, choices=None, answers=None):
        self.events: list[Event] = []
        self.infos: list[str] = []
        self.prompts: list[str] = []
        self.ticks: list[CounterState] = []
        self.states: int = 0
        self.choices = deque(choices or [])
        self.answers = deque(answers or [])

    def show_events(self, events: list[Event]) -> None:
        self.events.extend(events)

    def show_state(self, game: Game) -> None:
        self.states += 1

    def pick_one(self, options: list, prompt: str = "Your selection: ",
                 formatter: Callable = str) -> object:
        self.prompts.append(prompt)
        if self.choices:
            return self.choices.popleft()
        return options[0]

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        if self.answers:
            return self.answers.popleft()
        return False

    def show_info(self, content: str) -> None:
        self.infos.append(content)

    def wait_for_signal(self, prompt: str) -> None:
        self.prompts.append(prompt)

    def show_tick(self, state: CounterState, target: int) -> None:
        self.ticks.append(state)

    def of_type(self, event_type: str) -> list[Event]:
        return [e for e in self.events if e.type == event_type]


# An Attempt runs one turn-attempt for a player against a target and
# returns the frozen counter. Tests swap in scripted ones.
Attempt = Callable[[PlayerStats, int], CounterState]


def display_attempt(display: Display) -> Attempt:
    """Real turn-attempts: a live counter stopped by the display's signal key."""
    def run(player: PlayerStats, target: int) -> CounterState:
        return counter.attempt(
            player.speed,
            lambda: display.wait_for_signal(STOP_PROMPT),
            on_tick=lambda state: display.show_tick(state, target),
        )
    return run


# ==== Round resolution ====

class RoundState(enum.Enum):
    AWAITING_PLAYER1_TURN = "awaiting player 1"
    AWAITING_PLAYER2_TURN = "awaiting player 2"
    COMPARING = "comparing"
    APPLYING_PENALTY = "applying penalty"
    ROUND_COMPLETE = "complete"


class RoundResolver(object):
    """Plays one round: both turns over the same targets, then settles the result.

    Steps must run in order (play_turn twice, compare, apply_penalty) and each
    only once; run() does all of them. Stats are only written by the final
    commit, so an error part way through leaves both players untouched.
    """

    def __init__(self, players, targets, display: Display | None = None,
                 attempt: Attempt | None = None, round_number: int = 1):
        if len(players) != 2:
            raise ValueError("a round needs exactly two players, got {}".format(len(players)))
        self.targets = validate_targets(targets)
        self.players = tuple(players)
        self.display = display if display is not None else NullDisplay()
        self.attempt = attempt if attempt is not None else display_attempt(self.display)
        self.round_number = round_number
        self.state = RoundState.AWAITING_PLAYER1_TURN
        self.turns: list[TurnResult] = []
        self.winner: PlayerStats | None = None
        self.loser: PlayerStats | None = None
        self.difference = 0
        self.outcome: RoundOutcome | None = None

    def _require(self, *states: RoundState) -> None:
        if self.state not in states:
            raise RoundStateError("round {} is {}; expected {}".format(
                self.round_number, self.state.value, " or ".join(s.value for s in states)))

    def _advance_to(self, state: RoundState) -> None:
        logger.debug("Round %d: %s -> %s", self.round_number, self.state.value, state.value)
        self.state = state

    @property
    def active_player(self) -> PlayerStats | None:
        if self.state in (RoundState.AWAITING_PLAYER1_TURN, RoundState.AWAITING_PLAYER2_TURN):
            return self.players[len(self.turns)]
        return None

    def play_turn(self) -> TurnResult:
        self._require(RoundState.AWAITING_PLAYER1_TURN, RoundState.AWAITING_PLAYER2_TURN)
        player = self.active_player
        self.display.show_events([Event(type="turn_start", player=player.name,
                                        targets=tuple(self.targets), message=player.describe())])
        self.display.wait_for_signal(START_PROMPT)
        results = []
        for target in self.targets:
            state = self.attempt(player, target)
            result = score_attempt(target, state, player.strength)
            results.append(result)
            events = []
            if result.forced:
                events.append(Event(type="signal_lost", player=player.name, target=target, value=result.value))
            events.append(Event(type="freeze", player=player.name, target=target, value=result.value,
                                miss=result.miss, base=result.base, strength=result.strength,
                                score=result.score))
            self.display.show_events(events)
        turn = TurnResult(player.name, tuple(results), scoring.turn_score(r.score for r in results))
        self.display.show_events([Event(type="turn_end", player=player.name, value=turn.score)])
        self.turns.append(turn)
        if self.state is RoundState.AWAITING_PLAYER1_TURN:
            self._advance_to(RoundState.AWAITING_PLAYER2_TURN)
        else:
            self._advance_to(RoundState.COMPARING)
        return turn

    def compare(self) -> PlayerStats | None:
        """Pick the round winner. Returns None on a draw, which also completes the round."""
        self._require(RoundState.COMPARING)
        first, second = self.turns[0].score, self.turns[1].score
        if first == second:
            self.outcome = RoundOutcome(self.round_number, (first, second))
            self.display.show_events([Event(type="round_draw", value=first)])
            self._advance_to(RoundState.ROUND_COMPLETE)
            return None
        if first > second:
            self.winner, self.loser = self.players
        else:
            self.loser, self.winner = self.players
        self.difference = abs(first - second)
        self.display.show_events([Event(type="round_win", player=self.winner.name,
                                        opponent=self.loser.name, value=self.difference)])
        self._advance_to(RoundState.APPLYING_PENALTY)
        return self.winner

    def choose_poison(self) -> RoundOutcome:
        """Ask the winner which of the loser's stats to poison, then settle the round."""
        self._require(RoundState.APPLYING_PENALTY)
        self.display.show_info("{}, you must choose which poison to apply to {}:".format(
            self.winner.name, self.loser.name))
        stat = self.display.pick_one(list(POISONS), prompt="Choose a poison: ",
                                     formatter=lambda s: "-{} {}".format(POISON_AMOUNT, s))
        return self.apply_penalty(stat)

    def apply_penalty(self, stat: str) -> RoundOutcome:
        """Commit the vitality loss and the chosen poison to the loser."""
        self._require(RoundState.APPLYING_PENALTY)
        if stat not in POISONS:
            raise ValueError("unknown poison {!r}; expected one of {}".format(stat, POISONS))
        self.loser.decrease_vitality(self.difference)
        new_value = self.loser.poison(stat)
        self.outcome = RoundOutcome(
            round_number=self.round_number,
            scores=(self.turns[0].score, self.turns[1].score),
            winner=self.winner.name,
            loser=self.loser.name,
            difference=self.difference,
            poison=stat,
        )
        self.display.show_events([Event(type="poison", player=self.winner.name,
                                        opponent=self.loser.name, stat=stat, value=new_value)])
        self._advance_to(RoundState.ROUND_COMPLETE)
        return self.outcome

    def run(self) -> RoundOutcome:
        while self.state in (RoundState.AWAITING_PLAYER1_TURN, RoundState.AWAITING_PLAYER2_TURN):
            self.play_turn()
        if self.compare() is not None:
            self.choose_poison()
        return self.outcome


# ==== Game control ====

class Game(object):
    def __init__(self, players=None, objectives: int = 5,
                 target_source: Callable[[int], list] | None = None, seed: int | None = None):
        if players is None:
            players = [PlayerStats("Player 1", 50, 50, 50), PlayerStats("Player 2", 50, 50, 50)]
        if len(players) != 2:
            raise ValueError("Dead Stop is a two-player game, got {} players".format(len(players)))
        if objectives < 1:
            raise EmptyTargetList("objectives must be at least 1, got {}".format(objectives))
        self.players: list[PlayerStats] = list(players)
        self.objectives = objectives
        self.rng = random.Random(seed)
        self.target_source = target_source if target_source is not None else self.generate_targets
        self.round = 0
        self.targets: list[int] = []
        self.history: list[RoundOutcome] = []
        self.result: GameResult | None = None

    def generate_targets(self, count: int) -> list[int]:
        return [self.rng.randint(TARGET_MIN, TARGET_MAX) for _ in range(count)]

    def check_winner(self) -> GameResult | None:
        """Set and return the result once either player is out of vitality."""
        if self.result is not None:
            return self.result
        alive = [p for p in self.players if p.alive]
        if len(alive) == len(self.players):
            return None
        winner = alive[0].name if alive else None
        self.result = GameResult(winner=winner, rounds=self.round)
        return self.result

    def play_round(self, display: Display | None = None, attempt: Attempt | None = None) -> RoundOutcome:
        if self.check_winner() is not None:
            raise RoundStateError("the game is already over")
        display = display if display is not None else NullDisplay()
        # One target list per round, shared by both players
        resolver = RoundResolver(self.players, self.target_source(self.objectives),
                                 display=display, attempt=attempt, round_number=self.round + 1)
        previous_targets = self.targets
        self.round += 1
        self.targets = resolver.targets
        try:
            display.show_events([Event(type="round_start", value=self.round)])
            outcome = resolver.run()
        except BaseException:
            # An aborted round leaves no trace: the next attempt replays this round number
            logger.debug("Round %d aborted", self.round)
            self.round -= 1
            self.targets = previous_targets
            raise
        self.history.append(outcome)
        display.show_events([Event(type="round_end", value=self.round)])
        display.show_state(self)
        self.check_winner()
        return outcome

    def run(self, display: Display | None = None, attempt: Attempt | None = None) -> GameResult:
        display = display if display is not None else TerminalDisplay()
        display.show_events([Event(type="game_start")])
        display.show_state(self)
        while self.check_winner() is None:
            self.play_round(display, attempt)
        if self.result.draw:
            display.show_events([Event(type="draw", value=self.result.rounds)])
        else:
            display.show_events([Event(type="win", player=self.result.winner, value=self.result.rounds)])
        logger.debug("Game over after %d rounds: %s", self.result.rounds, self.result)
        return self.result


# ==== Define top-level game functions ====

def newGame(name1="Player 1", name2="Player 2", vitality=50, speed=50, strength=50,
            objectives=5, seed=None) -> Game:
    players = [PlayerStats(name1, vitality, speed, strength), PlayerStats(name2, vitality, speed, strength)]
    return Game(players=players, objectives=objectives, seed=seed)


def play(new_game: Callable[[], Game], display: Display) -> GameResult:
    """Run games until the players decline another one; return the last result."""
    while True:
        result = new_game().run(display=display)
        if not display.confirm("Start a new game?"):
            return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dead Stop: stop the counter on target, two players, one key")
    parser.add_argument("--name1", default="Player 1", metavar="NAME", help="name of player 1")
    parser.add_argument("--name2", default="Player 2", metavar="NAME", help="name of player 2")
    parser.add_argument("--vitality", type=int, default=50, metavar="AMOUNT",
                        help="starting vitality for both players (default: 50)")
    parser.add_argument("--speed", type=int, default=50, metavar="MS",
                        help="starting speed for both players, in ms per counter step (default: 50)")
    parser.add_argument("--strength", type=int, default=50, metavar="AMOUNT",
                        help="starting strength for both players (default: 50)")
    parser.add_argument("--objectives", type=int, default=5, metavar="COUNT",
                        help="number of targets per round (default: 5)")
    parser.add_argument("--seed", type=int, default=None, metavar="N",
                        help="seed the target generator for a reproducible game")
    parser.add_argument("--tui", action="store_true", help="run in the full-screen Textual interface")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug diagnostics to stderr")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    def new_game() -> Game:
        return newGame(args.name1, args.name2, args.vitality, args.speed, args.strength,
                       args.objectives, args.seed)

    # Bad stats or objectives are fatal before any round starts
    try:
        new_game()
    except GameError as e:
        parser.error(str(e))

    if args.tui:
        from color_tui import ColorTUIDisplay, DeadStopApp  # noqa: PLC0415
        DeadStopApp(new_game=new_game, display=ColorTUIDisplay()).run()
        return 0

    try:
        play(new_game, TerminalDisplay())
    except SignalLost:
        print("\nInput closed; leaving the game.")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
