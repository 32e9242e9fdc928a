#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# tests/test_round.py — RoundResolver turn order, comparison, poison, and vitality loss

import unittest
from collections import deque

from counter import CounterState
from deadstop import (
    PlayerStats, RecordingDisplay, RoundResolver, RoundState, START_PROMPT,
)
from errors import EmptyTargetList, InvalidTarget, RoundStateError


def scripted(*frozen, calls=None):
    """Attempt stub that returns the given (value, miss[, forced]) tuples in order."""
    queue = deque(CounterState(*f) if len(f) < 3 else CounterState(f[0], f[1], False, f[2]) for f in frozen)

    def attempt(player, target):
        if calls is not None:
            calls.append((player.name, target, player.speed, player.strength))
        return queue.popleft()
    return attempt


class TestRoundExamples(unittest.TestCase):
    """Worked examples of whole rounds."""

    def setUp(self):
        self.a = PlayerStats("A", 100, 50, 10)
        self.b = PlayerStats("B", 100, 50, 10)

    def testExactHitBeatsNearMiss(self):
        """A hits 50 exactly, B stops at 40: 110 vs 70, B loses 40 vitality and 5 strength."""
        display = RecordingDisplay(choices=["strength"])
        resolver = RoundResolver((self.a, self.b), [50], display=display,
                                 attempt=scripted((50, 0), (40, 0)))
        outcome = resolver.run()

        self.assertEqual([t.score for t in resolver.turns], [110, 70])
        self.assertEqual(outcome.winner, "A")
        self.assertEqual(outcome.loser, "B")
        self.assertEqual(outcome.difference, 40)
        self.assertEqual(outcome.poison, "strength")
        self.assertEqual(self.b.vitality, 60)
        self.assertEqual(self.b.strength, 5)
        self.assertEqual(self.b.speed, 50)
        self.assertEqual((self.a.vitality, self.a.speed, self.a.strength), (100, 50, 10))
        self.assertIs(resolver.state, RoundState.ROUND_COMPLETE)

    def testMoreMissesLoseWithSameDelta(self):
        """Same distance, same stats: the player who wrapped the counter scores strictly lower."""
        resolver = RoundResolver((self.a, self.b), [30, 70], display=RecordingDisplay(),
                                 attempt=scripted((32, 0), (68, 0), (32, 1), (68, 0)))
        outcome = resolver.run()
        first, second = resolver.turns
        self.assertGreater(first.score, second.score)
        self.assertEqual(outcome.winner, "A")
        self.assertEqual(second.raw_scores, [45, 90])
        self.assertEqual(second.score, 68)     # ceil(67.5)

    def testSecondPlayerCanWin(self):
        display = RecordingDisplay(choices=["speed"])
        resolver = RoundResolver((self.a, self.b), [10], display=display,
                                 attempt=scripted((80, 0), (10, 0)))
        outcome = resolver.run()
        self.assertEqual(outcome.winner, "B")
        self.assertEqual(outcome.difference, 110 - 10)
        self.assertEqual(self.a.vitality, 0)
        self.assertEqual(self.a.speed, 45)

    def testTieIsADraw(self):
        """Equal turn scores: no vitality change, no poison, no poison menu."""
        display = RecordingDisplay()
        resolver = RoundResolver((self.a, self.b), [50], display=display,
                                 attempt=scripted((52, 0), (48, 0)))
        outcome = resolver.run()
        self.assertTrue(outcome.draw)
        self.assertIsNone(outcome.poison)
        self.assertEqual(outcome.difference, 0)
        self.assertEqual(outcome.scores, (90, 90))
        for player in (self.a, self.b):
            self.assertEqual((player.vitality, player.speed, player.strength), (100, 50, 10))
        self.assertNotIn("Choose a poison: ", display.prompts)
        self.assertEqual(len(display.of_type("round_draw")), 1)
        self.assertIs(resolver.state, RoundState.ROUND_COMPLETE)


class TestRoundClamping(unittest.TestCase):
    """The loser's stats never drop below their floors."""

    def testVitalityStopsAtZero(self):
        a, b = PlayerStats("A", 100, 50, 0), PlayerStats("B", 15, 50, 0)
        RoundResolver((a, b), [0], attempt=scripted((0, 0), (100, 0))).run()
        self.assertEqual(b.vitality, 0)

    def testSpeedStopsAtOne(self):
        a, b = PlayerStats("A", 100, 50, 0), PlayerStats("B", 100, 3, 0)
        display = RecordingDisplay(choices=["speed"])
        RoundResolver((a, b), [0], display=display, attempt=scripted((0, 0), (100, 0))).run()
        self.assertEqual(b.speed, 1)

    def testStrengthStopsAtZero(self):
        a, b = PlayerStats("A", 100, 50, 0), PlayerStats("B", 100, 50, 2)
        display = RecordingDisplay(choices=["strength"])
        RoundResolver((a, b), [0], display=display, attempt=scripted((0, 0), (100, 0))).run()
        self.assertEqual(b.strength, 0)


class TestRoundStateMachine(unittest.TestCase):
    """Steps run in order, each exactly once."""

    def setUp(self):
        self.a = PlayerStats("A", 100, 50, 10)
        self.b = PlayerStats("B", 100, 50, 10)
        self.resolver = RoundResolver((self.a, self.b), [50], display=RecordingDisplay(),
                                      attempt=scripted((50, 0), (40, 0)))

    def testCannotCompareBeforeBothTurns(self):
        with self.assertRaises(RoundStateError):
            self.resolver.compare()
        self.resolver.play_turn()
        with self.assertRaises(RoundStateError):
            self.resolver.compare()

    def testNoThirdTurn(self):
        self.resolver.play_turn()
        self.resolver.play_turn()
        self.assertIs(self.resolver.state, RoundState.COMPARING)
        with self.assertRaises(RoundStateError):
            self.resolver.play_turn()

    def testCannotPenaliseBeforeComparing(self):
        with self.assertRaises(RoundStateError):
            self.resolver.apply_penalty("speed")

    def testPenaltyAppliesOnce(self):
        """A second apply_penalty() is refused and changes nothing."""
        self.resolver.play_turn()
        self.resolver.play_turn()
        self.assertIs(self.resolver.compare(), self.a)
        self.resolver.apply_penalty("speed")
        with self.assertRaises(RoundStateError):
            self.resolver.apply_penalty("speed")
        self.assertEqual(self.b.vitality, 60)
        self.assertEqual(self.b.speed, 45)

    def testUnknownPoisonChangesNothing(self):
        self.resolver.play_turn()
        self.resolver.play_turn()
        self.resolver.compare()
        with self.assertRaises(ValueError):
            self.resolver.apply_penalty("vitality")
        self.assertEqual((self.b.vitality, self.b.speed, self.b.strength), (100, 50, 10))
        self.assertIs(self.resolver.state, RoundState.APPLYING_PENALTY)

    def testActivePlayerFollowsTurns(self):
        self.assertIs(self.resolver.active_player, self.a)
        self.resolver.play_turn()
        self.assertIs(self.resolver.active_player, self.b)
        self.resolver.play_turn()
        self.assertIsNone(self.resolver.active_player)


class TestRoundInputs(unittest.TestCase):
    """Targets, per-player stats, and errors part way through a round."""

    def setUp(self):
        self.a = PlayerStats("A", 100, 30, 10)
        self.b = PlayerStats("B", 100, 70, 20)

    def testEmptyTargetsRejected(self):
        with self.assertRaises(EmptyTargetList):
            RoundResolver((self.a, self.b), [])

    def testOutOfRangeTargetsRejected(self):
        for bad in ([101], [-1], [50, 200]):
            with self.subTest(targets=bad):
                with self.assertRaises(InvalidTarget):
                    RoundResolver((self.a, self.b), bad)

    def testNeedsTwoPlayers(self):
        with self.assertRaises(ValueError):
            RoundResolver((self.a,), [10])

    def testBothPlayersShareTargetsAndUseOwnStats(self):
        """Each player attempts every target in order with their own speed and strength."""
        calls = []
        resolver = RoundResolver((self.a, self.b), [5, 95, 40],
                                 attempt=scripted(*[(0, 0)] * 6, calls=calls))
        resolver.play_turn()
        resolver.play_turn()
        self.assertEqual(calls, [
            ("A", 5, 30, 10), ("A", 95, 30, 10), ("A", 40, 30, 10),
            ("B", 5, 70, 20), ("B", 95, 70, 20), ("B", 40, 70, 20),
        ])

    def testFailureMidRoundLeavesStatsUntouched(self):
        """An error during the second turn aborts the round with nothing applied."""
        def attempt(player, target):
            if player is self.b:
                raise RuntimeError("keyboard went away")
            return CounterState(target, 0)

        resolver = RoundResolver((self.a, self.b), [10, 20], attempt=attempt)
        with self.assertRaises(RuntimeError):
            resolver.run()
        for player, stats in ((self.a, (100, 30, 10)), (self.b, (100, 70, 20))):
            self.assertEqual((player.vitality, player.speed, player.strength), stats)
        self.assertIsNone(resolver.outcome)

    def testForcedStopIsReported(self):
        display = RecordingDisplay()
        resolver = RoundResolver((self.a, self.b), [20], display=display,
                                 attempt=scripted((20, 0, True), (20, 0)))
        resolver.play_turn()
        lost = display.of_type("signal_lost")
        self.assertEqual(len(lost), 1)
        self.assertEqual(lost[0].player, "A")
        self.assertTrue(resolver.turns[0].results[0].forced)

    def testTurnEventsInOrder(self):
        display = RecordingDisplay()
        resolver = RoundResolver((self.a, self.b), [20, 40], display=display,
                                 attempt=scripted((20, 0), (41, 0)))
        turn = resolver.play_turn()
        self.assertEqual([e.type for e in display.events], ["turn_start", "freeze", "freeze", "turn_end"])
        self.assertEqual(display.events[0].targets, (20, 40))
        self.assertEqual(display.prompts, [START_PROMPT])
        self.assertEqual(display.events[-1].value, turn.score)
        self.assertEqual(turn.score, 100)   # ceil((110 + 90) / 2)
        second = display.events[2]
        self.assertEqual((second.target, second.value, second.base, second.strength), (40, 41, 80, 10))


if __name__ == "__main__":
    unittest.main(buffer=True)
