#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# counter.py — The wrapping 0..100 counter that runs while a player waits to stop it
#
# One Counter per turn-attempt. The tick loop lives on its own thread; the
# thread that blocks on the player's input calls stop(), which freezes the
# value under the same lock the tick loop writes through, then joins the
# tick thread before returning.

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from errors import InvalidStat, SignalLost

logger = logging.getLogger(__name__)

COUNTER_MODULUS: int = 101     # values 0..100 inclusive


@dataclass(frozen=True)
class CounterState:
    """Value and wrap count of a counter at one instant."""
    value: int = 0
    miss: int = 0
    running: bool = False
    forced: bool = False       # True when the stop signal was lost, not delivered


class Counter:
    """Counts 0..100 on a background thread, one step every speed_ms milliseconds.

    Every wrap from 100 back to 0 adds one miss. stop() may be called from
    any thread; the first call freezes the state and later calls return the
    same frozen state without observing anything new.
    """

    def __init__(self, speed_ms: int, on_tick: Callable[[CounterState], None] | None = None) -> None:
        if speed_ms < 1:
            raise InvalidStat(f"counter speed must be at least 1 ms, got {speed_ms}")
        self.speed_ms = speed_ms
        self.on_tick = on_tick
        self._lock = threading.Lock()
        self._halt = threading.Event()
        self._thread: threading.Thread | None = None
        self._value = 0
        self._miss = 0
        self._frozen: CounterState | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and self._frozen is None

    def snapshot(self) -> CounterState:
        """Return the current state without stopping anything."""
        with self._lock:
            if self._frozen is not None:
                return self._frozen
            return CounterState(self._value, self._miss, running=self._thread is not None)

    def start(self) -> Counter:
        if self._thread is not None:
            raise RuntimeError("a Counter can only be started once")
        self._thread = threading.Thread(target=self._run, name="counter-tick", daemon=True)
        logger.debug("Counter starting at %d ms per tick", self.speed_ms)
        self._thread.start()
        return self

    def _run(self) -> None:
        interval = self.speed_ms / 1000.0
        deadline = time.monotonic()
        while True:
            deadline += interval
            now = time.monotonic()
            if deadline < now:     # fell behind (slow on_tick); don't burst to catch up
                deadline = now
            if self._halt.wait(deadline - now):
                break
            state = self.advance()
            if state is None:
                break
            if self.on_tick is not None:
                self.on_tick(state)

    def advance(self) -> CounterState | None:
        """Apply one tick. Returns the new state, or None once the counter is frozen."""
        with self._lock:
            if self._frozen is not None:
                return None
            self._value += 1
            if self._value >= COUNTER_MODULUS:
                self._value = 0
                self._miss += 1
            return CounterState(self._value, self._miss, running=True)

    def stop(self, forced: bool = False) -> CounterState:
        """Freeze the counter, wait for the tick thread to exit, and return the frozen state."""
        with self._lock:
            if self._frozen is None:
                self._frozen = CounterState(self._value, self._miss, running=False, forced=forced)
            frozen = self._frozen
        self._halt.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.debug("Counter stopped at value=%d miss=%d forced=%s", frozen.value, frozen.miss, frozen.forced)
        return frozen


def attempt(speed_ms: int, wait_for_stop: Callable[[], None],
            on_tick: Callable[[CounterState], None] | None = None) -> CounterState:
    """Run one turn-attempt: start a counter, block on wait_for_stop(), freeze.

    A SignalLost from wait_for_stop() becomes a forced stop at the last value
    written. Any other exception (KeyboardInterrupt included) still stops and
    joins the tick thread before it propagates.
    """
    counter = Counter(speed_ms, on_tick=on_tick).start()
    forced = False
    try:
        wait_for_stop()
    except SignalLost:
        forced = True
    finally:
        state = counter.stop(forced=forced)
    if forced:
        logger.warning("Stop signal lost; turn-attempt forced to stop at value=%d miss=%d",
                       state.value, state.miss)
    return state
