#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# errors.py — Exception types shared by the counter, scoring and game modules


class GameError(Exception):
    """Base class for every error raised by Dead Stop."""


class SignalLost(GameError):
    """The stop-signal channel closed before a signal was delivered.

    Raised by a Display's blocking wait (EOF on stdin, TUI shut down).
    counter.attempt() absorbs it and reports a forced stop instead.
    """


class InvalidStat(GameError, ValueError):
    """A player was created with a non-positive speed or a negative vitality/strength."""


class EmptyTargetList(GameError, ValueError):
    """A round was started with no targets."""


class InvalidTarget(GameError, ValueError):
    """A target number fell outside 0..100."""


class RoundStateError(GameError, RuntimeError):
    """A RoundResolver step was called out of order or more than once."""
