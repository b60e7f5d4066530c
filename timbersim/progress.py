"""
Progress reporting for timbersim dataset simulation.

``simulate_dataset`` reports in row steps: every simulated row counts once
when its anchor variables are drawn and once when its derived variables
are filled in, so a run of ``n`` rows has ``2 * n`` steps. Anchor steps
arrive one subsample at a time; the derived-variable steps arrive together
when the conditional simulator returns.

Any ``callback(current, total)`` works as a reporter; two ready-made ones
are provided.
"""

import sys
from typing import Callable, Optional


class ProgressReporter:
    """Accumulates completed steps and forwards throttled updates.

    Steps may be added in chunks of any size. The callback fires whenever
    at least *update_every* steps accumulated since the last report, and
    always when the total is reached, so large chunks are never swallowed
    by the throttle.

    Args:
        total: Total number of steps.
        callback: Function called as ``callback(current, total)``.
        update_every: Minimum number of new steps between two reports.
            Defaults to 1% of *total* (at least one step).
    """

    def __init__(
        self,
        total: int,
        callback: Callable[[int, int], None],
        update_every: Optional[int] = None,
    ):
        self.total = total
        self._callback = callback
        self._current = 0
        self._reported = 0
        self.update_every = update_every if update_every is not None else max(1, total // 100)

    @property
    def current(self) -> int:
        return self._current

    def start(self):
        """Reset the counter and report ``0/total``."""
        self._current = 0
        self._reported = 0
        self._callback(0, self.total)

    def advance(self, n: int = 1):
        """Add *n* completed steps (clipped at the total)."""
        self._current = min(self._current + n, self.total)
        if self._current >= self.total or self._current - self._reported >= self.update_every:
            self._report()

    def finish(self):
        """Report completion unless it was already reported."""
        self._current = self.total
        if self._reported < self.total:
            self._report()

    def _report(self):
        self._reported = self._current
        self._callback(self._current, self.total)


class PrintReporter:
    """Writes ``\\rSimulating:  45.0% (90/200 steps)`` to stderr, ending the line when done."""

    def __init__(self, label: str = "Simulating"):
        self.label = label

    def __call__(self, current: int, total: int):
        if total <= 0:
            return
        sys.stderr.write(f"\r{self.label}: {100.0 * current / total:5.1f}% ({current}/{total} steps)")
        if current >= total:
            sys.stderr.write("\n")
        sys.stderr.flush()


class TqdmReporter:
    """Progress bar reporter; needs the ``progress`` extra (tqdm is imported on first use).

    Usage::

        from timbersim.progress import TqdmReporter
        simulate_dataset(n=50000, progress_callback=TqdmReporter(desc="boards"))
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=total, unit="step", **self._tqdm_kwargs)
        if current > self._bar.n:
            self._bar.update(current - self._bar.n)
        if current >= total:
            self._bar.close()
            self._bar = None
