"""Symbol buffer and committed-text state machine.

The decoder measures straight-key presses in ticks, collects dots and dashes
in a symbol buffer and commits characters and word spaces when the tick clock
crosses the character (3 dits) and word (7 dits) boundaries.
"""
import logging
from typing import List, Optional

from morset_ticker import Ticker
from morset_utils import Element, resolve_symbols

logger = logging.getLogger(__name__)

# Tick values at which boundary decisions fire
DASH_MIN_TICKS = 3
CHAR_BOUNDARY_TICK = 3
WORD_BOUNDARY_TICK = 7


class Decoder:
    """Own the symbol buffer and the committed text for one training session.

    The decoder shares the session's Ticker: key transitions reset it and the
    engine forwards every tick change to on_tick().
    """

    def __init__(self, ticker: Ticker):
        self.ticker = ticker
        self.buffer: List[Element] = []
        self.text = ''
        self.pressed = False

    @property
    def buffer_text(self) -> str:
        return ''.join(el.value for el in self.buffer)

    def key_down(self) -> bool:
        """Start measuring a straight-key press.

        Returns:
            True if the tone should start, False for a repeated press.
        """
        if self.pressed:
            return False
        self.pressed = True
        self.ticker.reset()
        return True

    def key_up(self) -> Optional[Element]:
        """Finish a press and classify it by its length in ticks."""
        if not self.pressed:
            return None
        self.pressed = False
        held = self.ticker.ticks
        element = Element.DOT if held < DASH_MIN_TICKS else Element.DASH
        self.buffer.append(element)
        self.ticker.reset()
        logger.debug("Key up after %d ticks: %s", held, element.value)
        return element

    def append(self, element: Element) -> None:
        """Append an element produced by the iambic keyer."""
        self.buffer.append(element)

    def on_tick(self, tick: int, suppressed: bool = False) -> str:
        """React to a tick change.

        Args:
            tick: The new tick count.
            suppressed: True while the iambic keyer still has elements to send.

        Returns:
            Text appended to the committed text (may be empty).
        """
        if self.pressed or suppressed:
            return ''

        if tick == CHAR_BOUNDARY_TICK:
            symbols = self.buffer_text
            resolved = resolve_symbols(symbols)
            # The buffer is dropped whether or not it matched
            self.buffer.clear()
            if resolved is None:
                if symbols:
                    logger.debug("Dropping unmatched sequence %r", symbols)
                return ''
            self.text += resolved
            logger.debug("Committed %r for %r", resolved, symbols)
            return resolved

        if tick == WORD_BOUNDARY_TICK and self.text and not self.text.endswith(' '):
            self.text += ' '
            return ' '
        return ''

    def cancel(self) -> None:
        """Drop the in-flight buffer and any press being measured."""
        self.buffer.clear()
        self.pressed = False

    def clear(self) -> None:
        """Clear the committed text and the symbol buffer."""
        self.buffer.clear()
        self.text = ''
