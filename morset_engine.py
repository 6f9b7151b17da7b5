"""Morset timing and keying engine.

MorsetEngine is driven once per frame with the elapsed time and the key
events of that frame. It owns the tick clock, the decoder and, in iambic
modes, the paddle scheduler, and reports the text committed during the frame
together with the tone changes the audio side should follow.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional
import logging

from morset_audio import AudioDriver
from morset_decoder import Decoder
from morset_keyer import IambicScheduler, KeyerMode
from morset_ticker import MAX_TICK, Ticker
from morset_utils import (DEFAULT_FREQUENCY, DEFAULT_VOLUME, DEFAULT_WPM, MAX_FREQUENCY, MAX_VOLUME,
                          MAX_WPM, MIN_FREQUENCY, MIN_VOLUME, MIN_WPM, Element, clamp, dit_duration)

logger = logging.getLogger(__name__)


class Key(Enum):
    """Logical keys understood by the engine."""
    STRAIGHT = 'straight'
    DOT = 'dot'
    DASH = 'dash'


class ToneCommand(Enum):
    START = 'start'
    STOP = 'stop'


@dataclass
class InputEvent:
    """A press or release of ``key``.

    ``offset`` is the time in milliseconds after the start of the frame at
    which the transition happened.
    """
    key: Key
    pressed: bool
    offset: float = 0.0


@dataclass
class EngineOutput:
    """What changed during one advance() call."""
    committed: str = ''
    buffer: str = ''
    ticks: int = 0
    tones: List[ToneCommand] = field(default_factory=list)


_PADDLES = {Key.DOT: Element.DOT, Key.DASH: Element.DASH}


class MorsetEngine:
    """Single-threaded Morse keying and decoding engine.

    Args:
        wpm: Sending speed, clamped to [MIN_WPM, MAX_WPM].
        keyer_mode: Straight key or one of the iambic modes.
        frequency: Sidetone frequency in Hz, forwarded to ``audio``.
        volume: Sidetone volume 0..100, forwarded to ``audio``.
        audio: Optional AudioDriver; tone commands are sent to it best-effort.
    """

    def __init__(self, wpm: int = DEFAULT_WPM, keyer_mode: KeyerMode = KeyerMode.STRAIGHT,
                 frequency: int = DEFAULT_FREQUENCY, volume: int = DEFAULT_VOLUME,
                 audio: Optional[AudioDriver] = None):
        self.audio = audio
        self._wpm = clamp(int(wpm), MIN_WPM, MAX_WPM)
        self._mode = keyer_mode
        self.ticker = Ticker(dit_duration(self._wpm), wrap=keyer_mode.is_iambic)
        self.decoder = Decoder(self.ticker)
        self.keyer: Optional[IambicScheduler] = IambicScheduler(keyer_mode) if keyer_mode.is_iambic else None
        self._tone_on = False
        self._tones: List[ToneCommand] = []
        self._frequency = clamp(int(frequency), MIN_FREQUENCY, MAX_FREQUENCY)
        self._volume = clamp(int(volume), MIN_VOLUME, MAX_VOLUME)
        self._send_audio('set_frequency', float(self._frequency))
        self._send_audio('set_volume', self._volume * 0.01)

    # ---- read-only state ----
    @property
    def text(self) -> str:
        return self.decoder.text

    @property
    def buffer(self) -> str:
        return self.decoder.buffer_text

    @property
    def ticks(self) -> int:
        return self.ticker.ticks

    @property
    def wpm(self) -> int:
        return self._wpm

    @property
    def dit_duration(self) -> float:
        return self.ticker.dit_duration

    @property
    def keyer_mode(self) -> KeyerMode:
        return self._mode

    @property
    def frequency(self) -> int:
        return self._frequency

    @property
    def volume(self) -> int:
        return self._volume

    @property
    def tone_on(self) -> bool:
        return self._tone_on

    # ---- frame update ----
    def advance(self, delta: float, events: Iterable[InputEvent] = ()) -> EngineOutput:
        """Run one frame of ``delta`` milliseconds with its input events."""
        start_len = len(self.decoder.text)
        self._tones = []
        elapsed = 0.0
        for event in sorted(events, key=lambda e: e.offset):
            offset = clamp(event.offset, 0.0, max(0.0, delta))
            self._drive_clock(offset - elapsed)
            elapsed = max(elapsed, offset)
            self._handle_event(event)
        self._drive_clock(max(0.0, delta) - elapsed)

        return EngineOutput(
            committed=self.decoder.text[start_len:],
            buffer=self.decoder.buffer_text,
            ticks=self.ticker.ticks,
            tones=list(self._tones),
        )

    def _drive_clock(self, delta: float) -> None:
        """Advance the ticker one tick boundary at a time."""
        remaining = max(0.0, delta)
        step = 0.0
        while True:
            tick = self.ticker.advance(step)
            if tick is not None:
                self._on_tick(tick)
            if remaining <= 0.0:
                return
            if not self.ticker.wrap and self.ticker.ticks >= MAX_TICK:
                # Saturated clock: nothing else can change
                step = remaining
            else:
                step = min(remaining, self.ticker.remaining())
            remaining -= step

    def _on_tick(self, tick: int) -> None:
        logger.debug("Tick advanced to %d", tick)
        suppressed = False
        if self.keyer is not None:
            was_active = self.keyer.any_active()
            step = self.keyer.handle_tick(tick)
            if step.element is not None:
                self.decoder.append(step.element)
            if step.tone is not None:
                self._set_tone(step.tone)
            suppressed = was_active or self.keyer.any_active()
            if was_active:
                self._check_keyer_idle()
        self.decoder.on_tick(tick, suppressed)

    def _check_keyer_idle(self) -> None:
        """Restart gap measurement once the keyer has nothing left to send."""
        if self.keyer is not None and not self.keyer.any_active():
            self._set_tone(False)
            self.ticker.reset()

    def _handle_event(self, event: InputEvent) -> None:
        if event.key is Key.STRAIGHT:
            if self.keyer is not None:
                logger.debug("Ignoring straight key in %s mode", self._mode.value)
                return
            if event.pressed:
                if self.decoder.key_down():
                    self._set_tone(True)
            elif self.decoder.key_up() is not None:
                self._set_tone(False)
            return

        if self.keyer is None:
            logger.debug("Ignoring %s paddle in straight mode", event.key.value)
            return
        paddle = _PADDLES[event.key]
        if event.pressed:
            if not self.keyer.any_active():
                self.ticker.reset()
            self.keyer.press(paddle, self.ticker.ticks)
        else:
            was_active = self.keyer.any_active()
            self.keyer.release(paddle)
            if was_active:
                self._check_keyer_idle()

    # ---- tone output ----
    def _set_tone(self, on: bool) -> None:
        if on == self._tone_on:
            return
        self._tone_on = on
        self._tones.append(ToneCommand.START if on else ToneCommand.STOP)
        self._send_audio('play' if on else 'pause')

    def _send_audio(self, method: str, *args) -> None:
        """Forward a command to the audio driver; failures never stop the engine."""
        if self.audio is None:
            return
        try:
            getattr(self.audio, method)(*args)
        except Exception as e:
            logger.warning("Audio %s failed: %s", method, e)

    # ---- settings ----
    def set_wpm(self, wpm: int) -> int:
        """Set the speed, resetting timing if the dit length changes.

        Returns:
            The effective (clamped) speed.
        """
        self._wpm = clamp(int(wpm), MIN_WPM, MAX_WPM)
        if self.ticker.set_dit_duration(dit_duration(self._wpm)):
            logger.info("Speed set to %d wpm (dit %d ms)", self._wpm, self.ticker.dit_duration)
            if self.keyer is not None:
                self.keyer.reset()
            self._set_tone(False)
        return self._wpm

    def set_keyer_mode(self, mode: KeyerMode) -> None:
        if mode is self._mode:
            return
        logger.info("Keyer mode %s -> %s", self._mode.value, mode.value)
        self._mode = mode
        self.keyer = IambicScheduler(mode) if mode.is_iambic else None
        self.ticker.wrap = mode.is_iambic
        self.ticker.reset()
        self.decoder.cancel()
        self._set_tone(False)

    def cycle_keyer_mode(self) -> KeyerMode:
        self.set_keyer_mode(self._mode.next())
        return self._mode

    def set_frequency(self, hz: int) -> int:
        self._frequency = clamp(int(hz), MIN_FREQUENCY, MAX_FREQUENCY)
        self._send_audio('set_frequency', float(self._frequency))
        return self._frequency

    def set_volume(self, level: int) -> int:
        self._volume = clamp(int(level), MIN_VOLUME, MAX_VOLUME)
        self._send_audio('set_volume', self._volume * 0.01)
        return self._volume

    def clear(self) -> None:
        """Clear the committed text and the symbol buffer."""
        self.decoder.clear()
