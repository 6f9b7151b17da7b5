"""Tick clock for Morset.

The Ticker turns arbitrary, possibly irregular, frame deltas into whole
dit-length ticks. It is the only source of timing for decoding and keying.
"""
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Highest tick value; a wrapping clock cycles through PHASES values
MAX_TICK = 7
PHASES = MAX_TICK + 1


class Ticker:
    """Accumulate elapsed time into ticks of ``dit_duration`` milliseconds.

    Without ``wrap`` the tick count saturates at MAX_TICK. With ``wrap`` it
    cycles 0..MAX_TICK, which the iambic keyer needs for its phase cycle.
    """

    def __init__(self, dit_duration: float, wrap: bool = False):
        if dit_duration <= 0:
            raise ValueError(f"dit_duration must be positive, got {dit_duration!r}")
        self.dit_duration = dit_duration
        self.wrap = wrap
        self.ticks = 0
        self.elapsed = 0.0
        self._was_reset = False

    def reset(self) -> None:
        """Zero the clock; the next advance() reports a change unconditionally."""
        logger.debug("Ticker reset scheduled")
        self._was_reset = True
        self.ticks = 0
        self.elapsed = 0.0

    def remaining(self) -> float:
        """Time left until the next tick boundary."""
        return max(0.0, self.dit_duration - self.elapsed)

    def set_dit_duration(self, dit_duration: float) -> bool:
        """Change the tick length, resetting only when it actually differs.

        Returns:
            True if the duration changed (and the clock was reset).
        """
        if dit_duration <= 0:
            raise ValueError(f"dit_duration must be positive, got {dit_duration!r}")
        if dit_duration == self.dit_duration:
            return False
        self.dit_duration = dit_duration
        self.reset()
        return True

    def advance(self, delta: float) -> Optional[int]:
        """Advance the clock by ``delta`` milliseconds.

        Returns:
            The new tick count if it changed or if the clock was reset since
            the previous call, otherwise None.
        """
        was_reset = self._was_reset
        self._was_reset = False
        self.elapsed += max(0.0, delta)

        old_ticks = self.ticks
        while self.elapsed >= self.dit_duration:
            self.elapsed -= self.dit_duration
            if self.ticks < MAX_TICK:
                self.ticks += 1
            elif self.wrap:
                self.ticks = 0

        if was_reset or old_ticks != self.ticks:
            return self.ticks
        return None
