"""Tests for the engine facade: frames, events, tone commands and settings."""
from morset_engine import EngineOutput, InputEvent, Key, MorsetEngine, ToneCommand
from morset_keyer import KeyerMode

DIT = 120  # ms at 10 wpm


def down(key=Key.STRAIGHT, offset=0.0):
    return InputEvent(key, True, offset)


def up(key=Key.STRAIGHT, offset=0.0):
    return InputEvent(key, False, offset)


def send(engine, pattern, dit=DIT):
    """Key ``pattern`` on the straight key, one dit of gap after each element."""
    for el in pattern:
        engine.advance(0, [down()])
        engine.advance(dit if el == '.' else 3 * dit)
        engine.advance(0, [up()])
        engine.advance(dit)


class RecordingAudio:
    def __init__(self):
        self.calls = []

    def play(self):
        self.calls.append('play')

    def pause(self):
        self.calls.append('pause')

    def set_frequency(self, hz):
        self.calls.append(('set_frequency', hz))

    def set_volume(self, level):
        self.calls.append(('set_volume', level))


class BrokenAudio:
    def play(self):
        raise RuntimeError("device gone")

    def pause(self):
        raise RuntimeError("device gone")

    def set_frequency(self, hz):
        raise RuntimeError("device gone")

    def set_volume(self, level):
        raise RuntimeError("device gone")


class TestStraightKey:
    def test_dot_and_dash_classification(self):
        engine = MorsetEngine(wpm=10)
        engine.advance(0, [down()])
        engine.advance(DIT)
        out = engine.advance(0, [up()])
        assert out.buffer == "."

        engine.advance(0, [down()])
        engine.advance(3 * DIT)
        out = engine.advance(0, [up()])
        assert out.buffer == ".-"

    def test_character_commits_after_three_idle_ticks(self):
        engine = MorsetEngine(wpm=10)
        send(engine, "..")
        out = engine.advance(DIT)
        assert out.committed == ""
        out = engine.advance(DIT)
        assert out.committed == "I"
        assert out.buffer == ""
        assert engine.text == "I"

    def test_dash_appended_before_boundary_changes_character(self):
        engine = MorsetEngine(wpm=10)
        send(engine, "..")
        engine.advance(2 * DIT)
        assert engine.text == "I"
        send(engine, "..-")
        engine.advance(2 * DIT)
        assert engine.text == "IU"

    def test_word_space_after_seven_idle_ticks_only_once(self):
        engine = MorsetEngine(wpm=10)
        engine.advance(0, [down()])
        engine.advance(DIT)
        engine.advance(0, [up()])
        engine.advance(3 * DIT)
        assert engine.text == "E"
        engine.advance(4 * DIT - 1)
        assert engine.text == "E"
        out = engine.advance(1)
        assert out.committed == " "
        assert engine.text == "E "
        for _ in range(10):
            engine.advance(7 * DIT)
        assert engine.text == "E "

    def test_long_frame_does_not_skip_boundaries(self):
        engine = MorsetEngine(wpm=10)
        engine.advance(0, [down()])
        engine.advance(DIT)
        engine.advance(0, [up()])
        out = engine.advance(5000)
        assert out.committed == "E "
        assert out.ticks == 7

    def test_event_offsets_inside_a_frame(self):
        engine = MorsetEngine(wpm=10)
        out = engine.advance(500, [up(offset=460), down(offset=100)])
        assert out.buffer == "-"
        assert out.committed == ""
        out = engine.advance(320)
        assert out.committed == "T"

    def test_unmatched_sequence_is_dropped(self):
        engine = MorsetEngine(wpm=10)
        send(engine, "......-")
        out = engine.advance(2 * DIT)
        assert out.committed == ""
        assert out.buffer == ""
        assert engine.text == ""

    def test_paddles_are_ignored(self):
        engine = MorsetEngine(wpm=10)
        engine.advance(0, [down(Key.DOT)])
        engine.advance(10 * DIT)
        assert engine.buffer == ""
        assert engine.text == ""

    def test_tone_commands_follow_key(self):
        engine = MorsetEngine(wpm=10)
        out = engine.advance(0, [down()])
        assert out.tones == [ToneCommand.START]
        out = engine.advance(DIT, [down(offset=10)])
        assert out.tones == []
        out = engine.advance(0, [up()])
        assert out.tones == [ToneCommand.STOP]
        assert engine.tone_on is False


class TestIambic:
    def test_single_dot_then_character(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        out = engine.advance(0, [down(Key.DOT)])
        assert out.tones == [ToneCommand.START]
        out = engine.advance(DIT, [up(Key.DOT, offset=DIT / 2)])
        assert out.buffer == "."
        assert out.tones == [ToneCommand.STOP]
        assert not engine.keyer.any_active()
        out = engine.advance(3 * DIT)
        assert out.committed == "E"

    def test_held_dot_sends_until_release(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        engine.advance(0, [down(Key.DOT)])
        engine.advance(2 * DIT)
        engine.advance(0, [up(Key.DOT)])
        out = engine.advance(DIT)
        assert out.buffer == ".."
        assert engine.text == ""
        out = engine.advance(3 * DIT)
        assert out.committed == "I"

    def test_release_in_gap_still_sends_queued_dot(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        engine.advance(0, [down(Key.DOT)])
        engine.advance(1.5 * DIT)
        engine.advance(0, [up(Key.DOT)])
        out = engine.advance(2 * DIT)
        assert out.buffer == ".."
        assert not engine.keyer.any_active()
        assert engine.tone_on is False
        out = engine.advance(3 * DIT)
        assert out.committed == "I"

    def test_no_boundary_while_keyer_active(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_B)
        engine.advance(0, [down(Key.DASH)])
        out = engine.advance(40 * DIT)
        assert out.buffer == "-" * 10
        assert engine.text == ""

    def test_squeeze_alternates(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        engine.advance(0, [down(Key.DOT), down(Key.DASH)])
        out = engine.advance(24 * DIT)
        assert out.buffer.startswith(".-.-.-")
        assert all(a != b for a, b in zip(out.buffer, out.buffer[1:]))

    def test_straight_key_is_ignored(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        engine.advance(0, [down()])
        engine.advance(DIT)
        engine.advance(0, [up()])
        assert engine.buffer == ""
        assert engine.tone_on is False

    def test_clock_wraps_in_iambic_mode(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        assert engine.ticker.wrap is True
        engine.set_keyer_mode(KeyerMode.STRAIGHT)
        assert engine.ticker.wrap is False


class TestSettings:
    def test_set_wpm_clamps_and_recomputes(self):
        engine = MorsetEngine(wpm=10)
        assert engine.dit_duration == 120
        assert engine.set_wpm(20) == 20
        assert engine.dit_duration == 60
        assert engine.set_wpm(100) == 40
        assert engine.set_wpm(0) == 1
        assert engine.dit_duration == 1200

    def test_set_wpm_resets_clock_only_on_change(self):
        engine = MorsetEngine(wpm=10)
        engine.advance(2 * DIT)
        engine.set_wpm(10)
        assert engine.ticks == 2
        engine.set_wpm(12)
        assert engine.ticks == 0

    def test_speed_change_drops_iambic_schedule(self):
        engine = MorsetEngine(wpm=10, keyer_mode=KeyerMode.IAMBIC_A)
        engine.advance(0, [down(Key.DOT)])
        assert engine.tone_on
        engine.set_wpm(15)
        assert not engine.keyer.any_active()
        assert engine.tone_on is False

    def test_mode_change_cancels_partial_character(self):
        engine = MorsetEngine(wpm=10)
        send(engine, "..")
        engine.advance(2 * DIT)
        send(engine, ".")
        engine.set_keyer_mode(KeyerMode.IAMBIC_B)
        assert engine.buffer == ""
        assert engine.text == "I"
        assert engine.keyer.mode is KeyerMode.IAMBIC_B

    def test_cycle_keyer_mode(self):
        engine = MorsetEngine()
        assert engine.cycle_keyer_mode() is KeyerMode.IAMBIC_A
        assert engine.cycle_keyer_mode() is KeyerMode.IAMBIC_B
        assert engine.cycle_keyer_mode() is KeyerMode.STRAIGHT
        assert engine.keyer is None

    def test_clear(self):
        engine = MorsetEngine(wpm=10)
        send(engine, "-")
        engine.advance(2 * DIT)
        send(engine, ".")
        engine.clear()
        assert engine.text == ""
        assert engine.buffer == ""

    def test_frequency_and_volume_are_clamped(self):
        engine = MorsetEngine()
        assert engine.set_frequency(50) == 300
        assert engine.set_frequency(5000) == 1200
        assert engine.set_volume(-3) == 0
        assert engine.set_volume(150) == 100


class TestAudio:
    def test_commands_reach_driver(self):
        audio = RecordingAudio()
        engine = MorsetEngine(wpm=10, frequency=600, volume=50, audio=audio)
        assert audio.calls == [('set_frequency', 600.0), ('set_volume', 0.5)]
        send(engine, ".")
        assert audio.calls[2:] == ['play', 'pause']

    def test_failing_driver_does_not_break_decoding(self):
        engine = MorsetEngine(wpm=10, audio=BrokenAudio())
        send(engine, ".-")
        out = engine.advance(2 * DIT)
        assert out.committed == "A"
        engine.set_frequency(700)
        engine.set_volume(10)

    def test_engine_runs_without_driver(self):
        engine = MorsetEngine(wpm=10)
        out = engine.advance(0, [down()])
        assert isinstance(out, EngineOutput)
        assert out.tones == [ToneCommand.START]
