"""Tests for the decode state machine."""
from morset_decoder import Decoder
from morset_ticker import Ticker
from morset_utils import Element


def make_decoder():
    return Decoder(Ticker(120))


def press(decoder, ticks):
    decoder.key_down()
    decoder.ticker.advance(120 * ticks)
    return decoder.key_up()


def test_short_press_is_dot():
    d = make_decoder()
    assert press(d, 1) is Element.DOT
    assert d.buffer_text == "."
    assert d.ticker.ticks == 0


def test_two_ticks_is_still_dot():
    d = make_decoder()
    assert press(d, 2) is Element.DOT


def test_three_ticks_is_dash():
    d = make_decoder()
    assert press(d, 3) is Element.DASH
    assert press(d, 7) is Element.DASH
    assert d.buffer_text == "--"


def test_key_down_resets_clock_and_ignores_repeats():
    d = make_decoder()
    d.ticker.advance(500)
    assert d.key_down() is True
    assert d.ticker.ticks == 0
    assert d.key_down() is False


def test_key_up_without_press_is_ignored():
    d = make_decoder()
    assert d.key_up() is None
    assert d.buffer == []


def test_character_boundary_resolves_buffer():
    d = make_decoder()
    press(d, 1)
    press(d, 1)
    assert d.on_tick(3) == "I"
    assert d.text == "I"
    assert d.buffer == []

    for ticks in (1, 1, 3):
        press(d, ticks)
    assert d.on_tick(3) == "U"
    assert d.text == "IU"


def test_unmatched_buffer_is_dropped_silently():
    d = make_decoder()
    d.buffer = [Element.DOT] * 6 + [Element.DASH]
    assert d.on_tick(3) == ""
    assert d.text == ""
    assert d.buffer == []


def test_prosign_is_committed_as_text():
    d = make_decoder()
    for el in ".-.-.":
        d.append(Element(el))
    assert d.on_tick(3) == "<AR> (End of Message)"


def test_boundaries_wait_while_pressed_or_suppressed():
    d = make_decoder()
    d.append(Element.DOT)
    d.key_down()
    assert d.on_tick(3) == ""
    assert d.buffer_text == "."
    d.key_up()
    assert d.on_tick(3, suppressed=True) == ""
    assert d.buffer_text == ".."
    assert d.on_tick(3) == "I"


def test_word_space_is_appended_once():
    d = make_decoder()
    d.append(Element.DOT)
    d.on_tick(3)
    assert d.on_tick(7) == " "
    assert d.on_tick(7) == ""
    assert d.on_tick(7) == ""
    assert d.text == "E "


def test_no_word_space_on_empty_text():
    d = make_decoder()
    assert d.on_tick(7) == ""
    assert d.text == ""


def test_other_ticks_do_nothing():
    d = make_decoder()
    d.append(Element.DOT)
    for tick in (0, 1, 2, 4, 5, 6):
        assert d.on_tick(tick) == ""
    assert d.buffer_text == "."


def test_cancel_and_clear():
    d = make_decoder()
    d.append(Element.DASH)
    d.on_tick(3)
    d.append(Element.DOT)
    d.key_down()
    d.cancel()
    assert d.buffer == []
    assert d.pressed is False
    assert d.text == "T"
    d.append(Element.DOT)
    d.clear()
    assert d.text == ""
    assert d.buffer == []
