"""
Cancellable delays on a pyglet clock.

Every timed step of a session (phase durations, countdown ticks, feedback
display) is a Delay scheduled on one shared pyglet.clock.Clock. Nothing
blocks; the owning loop ticks the clock and callbacks fire from there.
"""

import logging
import time
from typing import Callable, Optional

import pyglet

logger = logging.getLogger(__name__)


def create_clock(time_function: Optional[Callable[[], float]] = None) -> pyglet.clock.Clock:
    """
    Create a private clock for one session.

    Args:
        time_function: Optional time source (tests pass a manual one)
    """
    if time_function is None:
        return pyglet.clock.Clock()
    return pyglet.clock.Clock(time_function=time_function)


class Delay:
    """
    One-shot timer that invokes callback after duration seconds.

    A cancelled delay never fires, even if its clock entry is already due
    within the current tick.
    """

    def __init__(self, clock: pyglet.clock.Clock, duration: float, callback: Callable[[], None]):
        if duration < 0:
            raise ValueError("duration must be non-negative")
        self.clock = clock
        self.duration = duration
        self.callback = callback
        self.active = False

    def start(self) -> 'Delay':
        self.active = True
        self.clock.schedule_once(self._fire, self.duration)
        return self

    def cancel(self):
        if self.active:
            self.active = False
            self.clock.unschedule(self._fire)

    def _fire(self, dt):
        if not self.active:
            return
        self.active = False
        self.callback()

    def __repr__(self):
        return f"Delay(duration={self.duration}, active={self.active})"


def run_until(clock: pyglet.clock.Clock, predicate: Callable[[], bool],
              poll_interval: float = 0.01, sleep: Callable[[float], None] = time.sleep):
    """
    Tick clock until predicate() is true (headless event loop).

    Sleeps until the next scheduled item, capped at poll_interval so external
    commands are noticed promptly.
    """
    while not predicate():
        clock.tick()
        if predicate():
            break
        wait = clock.get_sleep_time(True)
        if wait is None or wait > poll_interval:
            wait = poll_interval
        if wait > 0:
            sleep(wait)
