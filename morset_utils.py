"""Utility functions and constants for Morset.

This module holds the Morse code tables (letters, digits, punctuation and
procedural signs), the timing model derived from words-per-minute, the
configured value ranges and a few small helpers shared across the package:
clamping, envelope generation, normalization and levenshtein distance.
"""
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple
import math
import re
import numpy as np

LETTERS: Dict[str, str] = {
    'A': '.-',    'B': '-...',  'C': '-.-.', 'D': '-..',  'E': '.',
    'F': '..-.',  'G': '--.',   'H': '....', 'I': '..',   'J': '.---',
    'K': '-.-',   'L': '.-..',  'M': '--',   'N': '-.',   'O': '---',
    'P': '.--.',  'Q': '--.-',  'R': '.-.',  'S': '...',  'T': '-',
    'U': '..-',   'V': '...-',  'W': '.--',  'X': '-..-', 'Y': '-.--',
    'Z': '--..',
}

NUMBERS: Dict[str, str] = {
    '1': '.----', '2': '..---', '3': '...--', '4': '....-', '5': '.....',
    '6': '-....', '7': '--...', '8': '---..', '9': '----.', '0': '-----',
}

SIGNS: Dict[str, str] = {
    '.': '.-.-.-', '!': '-.-.--', "'": '.----.', ',': '--..--',
    '?': '..--..', '/': '-..-.',  '-': '-....-', '(': '-.--.',
    ')': '-.--.-', '@': '.--.-.', '&': '.-...',
}

# Procedural signs: name -> (pattern, rendered text).
# KN (-.--.) is sent with the same pattern as '(' and decodes as the character.
PROSIGNS: Dict[str, Tuple[str, str]] = {
    'AA': ('.-.-', '<AA>\n'),
    'AR': ('.-.-.', '<AR> (End of Message)'),
    'CT': ('-.-.-', '<CT> (Start Copying)'),
    'DO': ('-..---', '<DO> (Change to WABUN Code)'),
    'KA': ('-.-.-.', '<KA> (Invitation to Transmit)'),
    'SK': ('...-.-', '<SK> (End of Contact)'),
    'SN': ('...-.', '<SN> (Understood)'),
    'SOS': ('...---...', 'SOS (Distress Signal)'),
    'ERR': ('........', '<ERR> (Erroneous Transmission)'),
}

# Combined character table used for encoding
MORSE_MAP: Dict[str, str] = {**LETTERS, **NUMBERS, **SIGNS}


def _build_decode_map() -> Dict[str, str]:
    """Invert the character and prosign tables into pattern -> text.

    Raises:
        ValueError: if two entries share a pattern, since decoding would be
            ambiguous.
    """
    out: Dict[str, str] = {}
    entries = list(MORSE_MAP.items()) + [(text, code) for code, text in PROSIGNS.values()]
    for text, code in entries:
        if code in out:
            raise ValueError(f"Duplicate Morse pattern {code!r} for {out[code]!r} and {text!r}")
        out[code] = text
    return out


DECODE_MAP: Dict[str, str] = _build_decode_map()

# Configured ranges; out-of-range values are clamped, never rejected
MIN_WPM = 1
MAX_WPM = 40
MIN_FREQUENCY = 300
MAX_FREQUENCY = 1200
MIN_VOLUME = 0
MAX_VOLUME = 100

DEFAULT_WPM = 10
DEFAULT_FREQUENCY = 550
DEFAULT_VOLUME = 20
DEFAULT_SAMPLE_RATE = 48000

# Durations in dit units
DAH_UNITS = 3
ELEMENT_GAP_UNITS = 1
CHAR_GAP_UNITS = 3
WORD_GAP_UNITS = 7
FARNSWORTH_FACTOR = 2


class Element(Enum):
    """A single Morse element as it appears in a dot/dash string."""
    DOT = '.'
    DASH = '-'

    @property
    def opposite(self) -> 'Element':
        return Element.DASH if self is Element.DOT else Element.DOT


class Timing(NamedTuple):
    """Element and gap durations in milliseconds for one speed."""
    dit: int
    dah: int
    element_gap: int
    char_gap: int
    word_gap: int


def clamp(value, lo, hi):
    """Clamp ``value`` into the closed range [lo, hi]."""
    return max(lo, min(hi, value))


def dit_duration(wpm: int) -> int:
    """Convert words-per-minute (WPM) to the duration of a 'dit' in milliseconds.

    The word PARIS is 50 dit units long, so one dit lasts
    60000 / (50 * wpm) = 1200 / wpm milliseconds, rounded up.

    Args:
        wpm: Words per minute, clamped to [MIN_WPM, MAX_WPM].

    Returns:
        Strictly positive dit duration in whole milliseconds.
    """
    wpm = clamp(wpm, MIN_WPM, MAX_WPM)
    return math.ceil(1200.0 / wpm)


def timing_for(wpm: int, farnsworth: bool = False) -> Timing:
    """Return the derived durations for ``wpm``.

    With ``farnsworth`` set, character and word gaps are stretched while the
    elements themselves keep their speed.
    """
    dit = dit_duration(wpm)
    spacing = FARNSWORTH_FACTOR if farnsworth else 1
    return Timing(
        dit=dit,
        dah=DAH_UNITS * dit,
        element_gap=ELEMENT_GAP_UNITS * dit,
        char_gap=CHAR_GAP_UNITS * dit * spacing,
        word_gap=WORD_GAP_UNITS * dit * spacing,
    )


def morse_to_char(symbols: str) -> Optional[str]:
    """Look up a dot/dash string among letters, digits and punctuation."""
    for text, code in MORSE_MAP.items():
        if code == symbols:
            return text
    return None


def resolve_symbols(symbols: str) -> Optional[str]:
    """Resolve a dot/dash string to a character or a rendered prosign.

    Returns:
        The text to commit, or None when nothing matches.
    """
    if not symbols:
        return None
    ch = morse_to_char(symbols)
    if ch is not None:
        return ch
    for code, rendered in PROSIGNS.values():
        if code == symbols:
            return rendered
    return None


def env_ramp(samples: int) -> 'np.ndarray':
    """Generate a cosine-shaped envelope ramp of length ``samples``.

    The ramp is useful to apply short fade-in/fade-out on tones to avoid clicks.

    Args:
        samples: Number of ramp samples (int).

    Returns:
        A numpy float32 array containing the ramp from ~0 to 1.
    """
    t = np.arange(samples, dtype=np.float32)
    ramp = 0.5 * (1 - np.cos(np.pi * (t + 1) / (samples + 1)))
    return ramp.astype(np.float32)


def env_approach(start: float, target: float, k: float, samples: int) -> 'np.ndarray':
    """One-pole smoothing of a level from ``start`` towards ``target``.

    Equivalent to applying ``e += (target - e) * k`` once per sample, in
    closed form: sample i is ``target + (start - target) * (1 - k) ** (i + 1)``.
    """
    decay = np.power(1.0 - k, np.arange(1, samples + 1, dtype=np.float64))
    return (target + (start - target) * decay).astype(np.float32)


def norm_text(s: str) -> str:
    """Normalize copied text for scoring.

    Uppercases, drops characters that have no Morse code and collapses runs
    of whitespace to a single space.
    """
    kept = ''.join(ch if ch in MORSE_MAP or ch.isspace() else ' ' for ch in s.upper())
    return re.sub(r'\s+', ' ', kept).strip()


def levenshtein(a: str, b: str) -> int:
    """Compute the Levenshtein (edit) distance between two strings.

    This is a memory-efficient dynamic programming implementation.
    """
    if len(a) < len(b):
        a, b = b, a
    prev = list(range(len(b)+1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            cur.append(min(prev[j] + 1,      # deletion
                           cur[j-1] + 1,     # insertion
                           prev[j-1] + cost  # substitution
                           ))
        prev = cur
    return prev[-1]
