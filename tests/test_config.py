"""Tests for settings and config persistence."""
import json
import sys

import pytest

from morset_config import Settings, load_config, save_config
from morset_keyer import KeyerMode


def test_defaults():
    s = Settings()
    assert (s.wpm, s.frequency, s.volume) == (10, 550, 20)
    assert s.keyer_mode is KeyerMode.STRAIGHT


def test_values_are_clamped():
    s = Settings(wpm=99, frequency=10, volume=300, words_per_phrase=0, listening_wpm=0)
    assert (s.wpm, s.frequency, s.volume) == (40, 300, 100)
    assert s.words_per_phrase == 1
    assert s.listening_wpm == 1


def test_from_dict_skips_bad_and_unknown_values():
    s = Settings.from_dict({
        'wpm': '25',
        'frequency': 'loud',
        'keyer_mode': 'iambic_b',
        'farnsworth': 1,
        'unknown': True,
    })
    assert s.wpm == 25
    assert s.frequency == 550
    assert s.keyer_mode is KeyerMode.IAMBIC_B
    assert s.farnsworth is True


def test_from_dict_bad_mode_falls_back():
    assert Settings.from_dict({'keyer_mode': 'bug'}).keyer_mode is KeyerMode.STRAIGHT


def test_to_dict_round_trip():
    s = Settings(wpm=18, keyer_mode=KeyerMode.IAMBIC_A, farnsworth=True)
    data = s.to_dict()
    assert data['keyer_mode'] == 'iambic_a'
    json.dumps(data)
    assert Settings.from_dict(data) == s


def test_save_and_load(tmp_path):
    path = str(tmp_path / "config.json")
    save_config({'wpm': 12}, path)
    assert load_config(path) == {'wpm': 12}


def test_load_missing_or_corrupt(tmp_path):
    assert load_config(str(tmp_path / "missing.json")) == {}
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    assert load_config(str(bad)) == {}
    bad.write_text("[1, 2]")
    assert load_config(str(bad)) == {}


def test_save_failure_is_not_raised(tmp_path):
    save_config({'wpm': 12}, str(tmp_path / "no" / "such" / "dir" / "config.json"))


@pytest.mark.skipif(sys.platform in ('win32', 'darwin'), reason="XDG config location is Linux only")
def test_default_path_is_used_without_argument(tmp_path, monkeypatch):
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path))
    save_config({'wpm': 15})
    assert (tmp_path / 'morset' / 'config.json').exists()
    assert load_config() == {'wpm': 15}
