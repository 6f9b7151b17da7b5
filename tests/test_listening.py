"""Tests for the listening trainer."""
import csv
import random

import pytest

from morset_encoder import encode
from morset_listening import DEFAULT_WORDS, ListeningSession, pick_phrase


def test_pick_phrase():
    rng = random.Random(3)
    phrase = pick_phrase(DEFAULT_WORDS, 3, rng)
    assert len(phrase.split()) == 3
    assert all(w in DEFAULT_WORDS for w in phrase.split())
    with pytest.raises(ValueError):
        pick_phrase([], 1)


def test_play_and_check():
    played = []
    session = ListeningSession(wpm=15, words=["PARIS"], player=played.append)
    encoded = session.next_phrase()
    assert session.phrase == "PARIS"
    assert played == [encoded]
    assert list(encoded) == list(encode("PARIS", 15))

    result = session.check("  paris ")
    assert result.correct
    assert result.distance == 0
    assert result.accuracy == 100.0

    result = session.check("PARS")
    assert not result.correct
    assert result.distance == 1
    assert result.accuracy == pytest.approx(80.0)
    assert session.score() == (2, 1)


def test_replay_is_identical():
    played = []
    session = ListeningSession(words=["CQ", "DE"], words_per_phrase=4, rng=random.Random(7),
                               player=played.append, farnsworth=True)
    first = session.next_phrase()
    again = session.replay()
    assert list(first) == list(again)
    assert len(played) == 2


def test_nothing_to_check_before_play():
    session = ListeningSession()
    assert session.check("ABC") is None
    assert session.replay() is None
    assert session.score() == (0, 0)


def test_attempts_are_logged(tmp_path):
    log = tmp_path / "logs" / "listening.csv"
    session = ListeningSession(words=["TEST"], log_path=str(log))
    session.next_phrase()
    session.check("TEST")
    session.check("TEXT")
    with open(log, newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0][0] == "timestamp"
    assert len(rows) == 3
    assert rows[1][3:6] == ["TEST", "TEST", "0"]
    assert rows[2][5] == "1"


def test_speed_is_clamped():
    assert ListeningSession(wpm=500).wpm == 40
