"""
Multi-rate Scheduler for coordinating tasks at independent frequencies.
"""
import itertools

from .logger import get_logger

logger = get_logger("physsim.scheduler")


class Scheduler:
    """
    Simple multi-rate scheduler: register tasks with individual periods.

    Periods are expressed in whatever unit ``time_fn`` returns (milliseconds
    for the headless host).
    """
    def __init__(self, time_fn):
        """
        Initialize scheduler on the clock ``time_fn`` (e.g., simulation time);
        nothing runs until ``step`` is called.
        """
        self.time_fn = time_fn
        self.tasks = {}  # token -> {'func', 'period', 'next'}
        self._tokens = itertools.count(1)

    def add_task(self, func, period):
        """
        Register a callable to be called every 'period' time units and return
        a token for ``remove_task``. The first execution is one period after
        registration.
        """
        if period <= 0:
            raise ValueError("`period` must be > 0")
        token = next(self._tokens)
        self.tasks[token] = {'func': func, 'period': period, 'next': self.time_fn() + period}
        return token

    def remove_task(self, token):
        """Unregister a task. Unknown tokens are ignored."""
        self.tasks.pop(token, None)

    def next_due(self):
        """Return the earliest scheduled execution time, or None without tasks."""
        if not self.tasks:
            return None
        return min(t['next'] for t in self.tasks.values())

    def step(self):
        """
        Execute any tasks due at the current time (real or simulation). Does not sleep.
        Tasks run in registration order; a task removed by an earlier one is skipped.
        """
        now = self.time_fn()
        for token in list(self.tasks):
            task = self.tasks.get(token)
            if task is None or now < task['next']:
                continue
            try:
                task['func']()
            except Exception:
                logger.exception("Scheduler task %d failed", token)
                raise
            finally:
                # schedule next execution
                task['next'] += task['period']

