"""Keyer modes and the iambic (dual paddle) scheduler.

The scheduler works over the wrapping 8-phase tick cycle. Each paddle owns a
slot holding the phase at which its next element starts. A dot sounds for one
tick and a dash for three; each is followed by a one tick gap, so a dot
claims two phases and a dash four. Holding both paddles alternates the two
slots, each one queued behind the other.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
import logging

from morset_ticker import PHASES
from morset_utils import DAH_UNITS, ELEMENT_GAP_UNITS, Element

logger = logging.getLogger(__name__)

# Ticks an element sounds for, and ticks it claims including the trailing gap
SOUND_TICKS: Dict[Element, int] = {Element.DOT: 1, Element.DASH: DAH_UNITS}
CLAIM_TICKS: Dict[Element, int] = {el: n + ELEMENT_GAP_UNITS for el, n in SOUND_TICKS.items()}


class KeyerMode(Enum):
    """How key input is turned into elements."""
    STRAIGHT = 'straight'
    IAMBIC_A = 'iambic_a'
    IAMBIC_B = 'iambic_b'

    @property
    def is_iambic(self) -> bool:
        return self is not KeyerMode.STRAIGHT

    @property
    def label(self) -> str:
        return {'straight': 'Straight', 'iambic_a': 'Iambic A', 'iambic_b': 'Iambic B'}[self.value]

    def next(self) -> 'KeyerMode':
        """Cycle Straight -> Iambic A -> Iambic B -> Straight."""
        modes = list(KeyerMode)
        return modes[(modes.index(self) + 1) % len(modes)]

    @classmethod
    def parse(cls, value: str) -> 'KeyerMode':
        """Parse a mode name such as 'iambic-a' or 'IambicB'.

        Raises:
            ValueError: for an unknown name.
        """
        key = value.strip().lower().replace('-', '_')
        if key in ('iambica', 'iambicb'):
            key = key[:-1] + '_' + key[-1]
        return cls(key)


@dataclass
class PaddleSlot:
    """Schedule state of one paddle."""
    next_tick: Optional[int] = None
    released: bool = False
    queued_behind: bool = False


@dataclass
class KeyerStep:
    """Result of one tick: the completed element and the tone change, if any."""
    element: Optional[Element] = None
    tone: Optional[bool] = None


class IambicScheduler:
    """Resolve dot/dash paddle presses into an ordered element stream.

    Mode A and mode B share the scheduling below. They only differ when a
    paddle whose element is queued behind the other one is released before
    it starts: mode A drops it, mode B still sends it once.
    """

    def __init__(self, mode: KeyerMode = KeyerMode.IAMBIC_A):
        if not mode.is_iambic:
            raise ValueError(f"IambicScheduler needs an iambic mode, got {mode}")
        self.mode = mode
        self.slots: Dict[Element, PaddleSlot] = {Element.DOT: PaddleSlot(), Element.DASH: PaddleSlot()}
        self._sounding: Optional[Element] = None

    def __repr__(self):
        return (f"IambicScheduler(mode={self.mode.value}, dot={self.slots[Element.DOT]}, "
                f"dash={self.slots[Element.DASH]})")

    def any_active(self) -> bool:
        return any(slot.next_tick is not None for slot in self.slots.values())

    def reset(self) -> None:
        """Forget every schedule; held paddles must be pressed again."""
        for slot in self.slots.values():
            slot.next_tick = None
            slot.released = False
            slot.queued_behind = False
        self._sounding = None

    def press(self, paddle: Element, tick: int) -> None:
        slot = self.slots[paddle]
        other = self.slots[paddle.opposite]
        slot.released = False
        if slot.next_tick is not None:
            return

        if other.next_tick is not None:
            slot.next_tick = (other.next_tick + CLAIM_TICKS[paddle.opposite]) % PHASES
            slot.queued_behind = True
        else:
            slot.next_tick = tick
            slot.queued_behind = False
            self._sounding = paddle
        logger.debug("Press %s at tick %d: %r", paddle.name, tick, self)

    def release(self, paddle: Element) -> None:
        """Stop ``paddle`` from re-arming; its scheduled element still fires.

        Only in mode A is an opposite-element memory that has not started
        yet forgotten.
        """
        slot = self.slots[paddle]
        slot.released = True
        if slot.next_tick is None or self._sounding is paddle:
            return
        if not slot.queued_behind or self.mode is not KeyerMode.IAMBIC_A:
            return
        slot.next_tick = None
        slot.queued_behind = False
        logger.debug("Release %s drops its queued element", paddle.name)

    def handle_tick(self, tick: int) -> KeyerStep:
        """Advance the schedule to phase ``tick``."""
        for element in (Element.DOT, Element.DASH):
            slot = self.slots[element]
            if slot.next_tick is not None and tick == (slot.next_tick + SOUND_TICKS[element]) % PHASES:
                self._complete(element, tick)
                return KeyerStep(element=element, tone=False)

        for element, slot in self.slots.items():
            if slot.next_tick == tick:
                self._sounding = element

        if self.any_active():
            return KeyerStep(tone=True)
        return KeyerStep()

    def _complete(self, element: Element, tick: int) -> None:
        slot = self.slots[element]
        other = self.slots[element.opposite]
        if self._sounding is element:
            self._sounding = None

        if slot.released:
            slot.next_tick = None
            slot.queued_behind = False
        elif other.next_tick is not None:
            # Squeeze: wait for the opposite element and its gap
            slot.next_tick = (other.next_tick + CLAIM_TICKS[element.opposite]) % PHASES
            slot.queued_behind = True
        else:
            slot.next_tick = (tick + ELEMENT_GAP_UNITS) % PHASES
            slot.queued_behind = False
        logger.debug("Tick %d completes %s: %r", tick, element.name, self)
