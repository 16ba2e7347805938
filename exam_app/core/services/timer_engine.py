"""Countdown timer for an exam attempt."""

from __future__ import annotations

import asyncio
from enum import Enum
import logging
from typing import Callable

from exam_app.constants.exam_constants import (
    DANGER_THRESHOLD_FRACTION,
    SECONDS_PER_MINUTE,
    TICK_INTERVAL_SECONDS,
    WARNING_THRESHOLD_FRACTION,
)

logger = logging.getLogger(__name__)


class WarningLevel(str, Enum):
    """Display urgency of the remaining time."""

    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"


def compute_warning_level(remaining_seconds: int, total_seconds: int) -> WarningLevel:
    """Classify remaining time against the original total."""
    if remaining_seconds <= total_seconds * DANGER_THRESHOLD_FRACTION:
        return WarningLevel.DANGER
    if remaining_seconds <= total_seconds * WARNING_THRESHOLD_FRACTION:
        return WarningLevel.WARNING
    return WarningLevel.NORMAL


def format_clock(seconds: int) -> str:
    """Render seconds as zero-padded ``MM:SS``."""
    minutes, remaining_seconds = divmod(max(0, int(seconds)), SECONDS_PER_MINUTE)
    return f"{minutes:02d}:{remaining_seconds:02d}"


class ExamTimer:
    """Counts an exam's time limit down to zero, one second per tick.

    The expiry callback fires exactly once, when the remaining time reaches
    zero. ``start()`` schedules the tick task on the running event loop;
    ``dispose()`` (or leaving the ``with`` block) cancels it, after which no
    further ticks or callbacks happen.
    """

    def __init__(
        self,
        time_limit_minutes: int,
        on_expire: Callable[[], None],
        *,
        tick_interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        if time_limit_minutes <= 0:
            raise ValueError("Time limit must be a positive number of minutes.")
        self._total_seconds = int(time_limit_minutes * SECONDS_PER_MINUTE)
        self._remaining_seconds = self._total_seconds
        self._on_expire = on_expire
        self._tick_interval = tick_interval
        self._task: asyncio.Task[None] | None = None
        self._expired = False
        self._disposed = False
        self._last_level = WarningLevel.NORMAL

    def __enter__(self) -> ExamTimer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    @property
    def total_seconds(self) -> int:
        return self._total_seconds

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def elapsed_seconds(self) -> int:
        return self._total_seconds - self._remaining_seconds

    @property
    def fraction_remaining(self) -> float:
        return self._remaining_seconds / self._total_seconds

    @property
    def warning_level(self) -> WarningLevel:
        return compute_warning_level(self._remaining_seconds, self._total_seconds)

    @property
    def formatted_remaining(self) -> str:
        return format_clock(self._remaining_seconds)

    @property
    def is_expired(self) -> bool:
        return self._expired

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._disposed

    def start(self) -> None:
        """Begin ticking on the current event loop."""
        if self._disposed:
            raise RuntimeError("Cannot start a disposed timer.")
        if self._task is not None:
            raise RuntimeError("Timer already started.")
        self._task = asyncio.get_running_loop().create_task(self._run(), name="exam-timer")
        logger.debug("Timer started with %s remaining", self.formatted_remaining)

    def tick(self) -> None:
        """Advance the countdown by one second."""
        if self._expired or self._disposed:
            return
        self._remaining_seconds -= 1
        level = self.warning_level
        if level is not self._last_level:
            logger.debug("Timer level %s at %s", level.value, self.formatted_remaining)
            self._last_level = level
        if self._remaining_seconds <= 0:
            self._remaining_seconds = 0
            self._expired = True
            logger.info("Time limit reached")
            self._on_expire()

    def dispose(self) -> None:
        """Stop ticking for good. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("Timer disposed with %s remaining", self.formatted_remaining)

    async def _run(self) -> None:
        while not self._expired and not self._disposed:
            await asyncio.sleep(self._tick_interval)
            self.tick()
