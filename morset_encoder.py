"""Morse encoder for playback and listening practice.

Turns text into timed tone/silence segments using the timing model, and
renders those segments into mono numpy audio buffers.
"""
from dataclasses import dataclass
from typing import Iterator, List, Optional
import re
import numpy as np

from morset_utils import (DEFAULT_FREQUENCY, DEFAULT_SAMPLE_RATE, DEFAULT_VOLUME, MAX_FREQUENCY,
                          MAX_VOLUME, MIN_FREQUENCY, MIN_VOLUME, MORSE_MAP, PROSIGNS, Timing,
                          clamp, env_ramp, timing_for)

# Audio envelope constants
RAMP_DURATION_SECONDS = 0.005

# A bracketed prosign token such as <AR>, or any single character
_TOKEN_RE = re.compile(r'<([A-Za-z]+)>|(.)', re.DOTALL)


@dataclass(frozen=True)
class Segment:
    """A stretch of tone (``tone=True``) or silence, in milliseconds."""
    tone: bool
    duration: float


def _word_codes(word: str) -> List[str]:
    """Return the dot/dash strings of the known characters in ``word``."""
    codes = []
    for m in _TOKEN_RE.finditer(word):
        prosign, ch = m.group(1), m.group(2)
        if prosign is not None:
            entry = PROSIGNS.get(prosign.upper())
            if entry is not None:
                codes.append(entry[0])
                continue
            # Not a prosign name: encode the bracketed text letter by letter
            codes.extend(MORSE_MAP[c] for c in prosign.upper() if c in MORSE_MAP)
            continue
        code = MORSE_MAP.get(ch.upper())
        if code is not None:
            codes.append(code)
    return codes


class EncodedPhrase:
    """Restartable sequence of segments for one phrase.

    Each iteration re-encodes the phrase lazily, so iterating twice yields
    identical segments.
    """

    def __init__(self, text: str, wpm: int, farnsworth: bool = False):
        self.text = text
        self.wpm = wpm
        self.farnsworth = farnsworth
        self.timing: Timing = timing_for(wpm, farnsworth)

    def __repr__(self):
        return f"EncodedPhrase({self.text!r}, wpm={self.wpm}, farnsworth={self.farnsworth})"

    def __iter__(self) -> Iterator[Segment]:
        t = self.timing
        first_word = True
        for word in self.text.split():
            codes = _word_codes(word)
            if not codes:
                continue
            if not first_word:
                yield Segment(False, t.word_gap)
            first_word = False
            for i, code in enumerate(codes):
                if i:
                    yield Segment(False, t.char_gap)
                for j, el in enumerate(code):
                    if j:
                        yield Segment(False, t.element_gap)
                    yield Segment(True, t.dit if el == '.' else t.dah)

    def total_duration(self) -> float:
        """Total length of the phrase in milliseconds."""
        return sum(seg.duration for seg in self)


def encode(text: str, wpm: int, farnsworth: bool = False) -> EncodedPhrase:
    """Encode ``text`` at ``wpm``; unknown characters are skipped."""
    return EncodedPhrase(text, wpm, farnsworth)


class PhraseSynth:
    """Render encoded segments into mono float32 audio buffers."""

    def __init__(self, frequency: float = DEFAULT_FREQUENCY, volume: int = DEFAULT_VOLUME,
                 sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.frequency = clamp(frequency, MIN_FREQUENCY, MAX_FREQUENCY)
        self.volume = clamp(volume, MIN_VOLUME, MAX_VOLUME)
        self.sample_rate = sample_rate

    @property
    def gain(self) -> float:
        return self.volume * 0.01

    def _tone(self, ms: float) -> 'np.ndarray':
        """Synthesize a tone of ``ms`` milliseconds with faded edges."""
        sr = self.sample_rate
        n = max(1, int(ms * sr / 1000.0))
        t = np.arange(n, dtype=np.float32) / sr
        sig = np.sin(2 * np.pi * self.frequency * t).astype(np.float32)

        ramp_samps = min(n // 2, max(1, int(RAMP_DURATION_SECONDS * sr)))
        if ramp_samps > 0:
            ramp = env_ramp(ramp_samps)
            sig[:ramp_samps] *= ramp
            sig[-ramp_samps:] *= ramp[::-1]
        return sig * self.gain

    def _silence(self, ms: float) -> 'np.ndarray':
        n = max(1, int(ms * self.sample_rate / 1000.0))
        return np.zeros(n, dtype=np.float32)

    def render(self, segments, lead_in: Optional[float] = None) -> 'np.ndarray':
        """Concatenate the audio for ``segments``.

        Args:
            segments: Iterable of Segment.
            lead_in: Optional silence in milliseconds before the first tone.
        """
        chunks = [self._silence(lead_in)] if lead_in else []
        for seg in segments:
            chunks.append(self._tone(seg.duration) if seg.tone else self._silence(seg.duration))
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks).astype(np.float32)
