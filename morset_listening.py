"""Listening practice for Morset.

A ListeningSession picks a target phrase, hands its encoding to a player and
scores what the operator typed against it. Nothing here decodes audio: the
target is always known.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import csv
import logging
import os
import random
import time

from morset_encoder import EncodedPhrase, encode
from morset_utils import DEFAULT_WPM, MAX_WPM, MIN_WPM, clamp, levenshtein, norm_text

logger = logging.getLogger(__name__)

DEFAULT_WORDS: List[str] = [
    'THE', 'AND', 'FOR', 'ARE', 'BUT', 'NOT', 'YOU', 'ALL', 'ANY', 'CAN',
    'HAD', 'HER', 'WAS', 'ONE', 'OUR', 'OUT', 'DAY', 'GET', 'HAS', 'HIM',
    'PARIS', 'RADIO', 'MORSE', 'CODE', 'SIGNAL', 'ANTENNA', 'QTH', 'RST',
    'NAME', 'WX', 'TNX', 'FB', 'OM', 'CQ', 'DE', '73', '599', '5NN',
    'TEST', 'KEY', 'TONE', 'SPEED', 'COPY', 'HELLO', 'WORLD', 'GOOD', 'LUCK',
]


def pick_phrase(words: Sequence[str], count: int = 1, rng: Optional[random.Random] = None) -> str:
    """Choose ``count`` words at random and join them with spaces."""
    if not words:
        raise ValueError("word list is empty")
    rng = rng or random
    return ' '.join(rng.choice(words) for _ in range(max(1, count)))


@dataclass
class ListeningResult:
    """Outcome of comparing typed text with the played phrase."""
    expected: str
    typed: str
    distance: int
    accuracy: float
    correct: bool


class ListeningSession:
    """Drive listening practice: play a known phrase, then score the copy.

    Args:
        wpm: Element speed for the played phrases.
        farnsworth: Stretch character and word gaps.
        words: Vocabulary to draw phrases from.
        words_per_phrase: Number of words per phrase.
        log_path: Optional CSV file receiving one row per checked attempt.
        player: Callable receiving each EncodedPhrase to make it audible.
        rng: Random source, injectable for repeatable sessions.
    """

    def __init__(self, wpm: int = DEFAULT_WPM, farnsworth: bool = False,
                 words: Sequence[str] = DEFAULT_WORDS, words_per_phrase: int = 1,
                 log_path: Optional[str] = None,
                 player: Optional[Callable[[EncodedPhrase], None]] = None,
                 rng: Optional[random.Random] = None):
        self.wpm = clamp(int(wpm), MIN_WPM, MAX_WPM)
        self.farnsworth = farnsworth
        self.words = list(words)
        self.words_per_phrase = max(1, words_per_phrase)
        self.log_path = log_path
        self.player = player
        self.rng = rng or random.Random()
        self.phrase: Optional[str] = None
        self.history: List[ListeningResult] = []

    def _play(self) -> EncodedPhrase:
        encoded = encode(self.phrase, self.wpm, self.farnsworth)
        if self.player is not None:
            self.player(encoded)
        return encoded

    def next_phrase(self) -> EncodedPhrase:
        """Pick a new target phrase and play it."""
        self.phrase = pick_phrase(self.words, self.words_per_phrase, self.rng)
        logger.debug("New listening phrase %r", self.phrase)
        return self._play()

    def replay(self) -> Optional[EncodedPhrase]:
        """Play the current phrase again with identical timing."""
        if self.phrase is None:
            return None
        return self._play()

    def check(self, typed: str) -> Optional[ListeningResult]:
        """Score ``typed`` against the current phrase.

        Returns:
            The result, or None when no phrase has been played yet.
        """
        if self.phrase is None:
            return None
        expected = norm_text(self.phrase)
        copied = norm_text(typed)
        total = len(expected)
        dist = levenshtein(expected, copied)
        acc = max(0.0, (1.0 - dist / max(1, total)) * 100.0)
        result = ListeningResult(expected, copied, dist, acc, dist == 0)
        self.history.append(result)
        self._log(result)
        return result

    def score(self):
        """Return (attempts, correct) for this session."""
        return len(self.history), sum(1 for r in self.history if r.correct)

    def _log(self, result: ListeningResult) -> None:
        if not self.log_path:
            return
        try:
            new_file = not os.path.exists(self.log_path)
            os.makedirs(os.path.dirname(os.path.abspath(self.log_path)), exist_ok=True)
            with open(self.log_path, 'a', newline='') as f:
                w = csv.writer(f)
                if new_file:
                    w.writerow(["timestamp", "wpm", "farnsworth", "expected", "typed", "levenshtein", "accuracy_pct"])
                w.writerow([time.time(), self.wpm, int(self.farnsworth), result.expected, result.typed,
                            result.distance, f"{result.accuracy:.2f}"])
        except OSError as e:
            logger.warning("Could not write listening log %s: %s", self.log_path, e)
