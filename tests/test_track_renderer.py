"""Unit tests for TrackRenderer event generation."""

from fractions import Fraction

import pytest

from barline.bar_timing import BarTimingEngine
from barline.errors import PitchRangeError
from barline.notation_parser import parse_document
from barline.score_models import PerformanceEvent, Voice
from barline.track_renderer import TrackRenderer


def _render(voice: Voice, body: str, beats: int = 4) -> tuple[PerformanceEvent, ...]:
    block = parse_document(f"play {voice.name} {{ {body} }}").plays[0]
    return TrackRenderer(voice).render(block, BarTimingEngine(beats).time_play(block))


def _voice(name: str = "V", octave: int = 0, channel: int = 0, volume: int = 100) -> Voice:
    return Voice(name=name, program=0, channel=channel, volume=volume, octave=octave)


def test_single_token_bar_is_one_whole_bar_event() -> None:
    (event,) = _render(_voice("Trumpet"), ":| D |")
    assert event.pitch == 62
    assert event.start == 0
    assert event.duration == Fraction(4)
    assert event.voice == "Trumpet"


def test_four_token_bar_yields_four_quarter_events() -> None:
    events = _render(_voice("Bass"), ":| D F a F |")
    assert [e.pitch for e in events] == [62, 65, 69, 65]
    assert [e.start for e in events] == [0, 1, 2, 3]
    assert all(e.duration == 1 for e in events)


def test_octave_offset_shifts_by_twelve_semitones_per_octave() -> None:
    plain = _render(_voice("Bass"), ":| D F a F | G |")
    shifted = _render(_voice("Bass", octave=-2), ":| D F a F | G |")
    assert [s.pitch for s in shifted] == [p.pitch - 24 for p in plain]
    assert [s.start for s in shifted] == [p.start for p in plain]


def test_events_carry_voice_channel_and_velocity() -> None:
    (event,) = _render(_voice(channel=5, volume=77), "| C |")
    assert event.channel == 5
    assert event.velocity == 77


def test_rests_advance_time_without_events() -> None:
    events = _render(_voice(), "| C - - E | - |  G |")
    assert [(e.pitch, e.start) for e in events] == [(60, 0), (64, 3), (67, 8)]


def test_sustain_repeats_previous_pitch_for_its_bar() -> None:
    events = _render(_voice(), "| D | . |")
    assert len(events) == 2
    held = events[1]
    assert held.pitch == 62
    assert held.start == 4
    assert held.duration == 4
    assert held.tied is True
    assert events[0].tied is False


def test_sustain_chain_carries_the_same_pitch() -> None:
    events = _render(_voice(), "| E G | . | . . |")
    assert [e.pitch for e in events] == [64, 67, 67, 67, 67]
    assert [e.start for e in events] == [0, 2, 4, 8, 10]


def test_sustain_within_a_bar() -> None:
    events = _render(_voice(), "| C . E . |")
    assert [(e.pitch, e.start, e.tied) for e in events] == [
        (60, 0, False),
        (60, 1, True),
        (64, 2, False),
        (64, 3, True),
    ]


def test_sustain_after_rest_keeps_silence() -> None:
    events = _render(_voice(), "| C - | . | E |")
    assert [(e.pitch, e.start) for e in events] == [(60, 0), (64, 8)]


def test_sustain_uses_offset_pitch() -> None:
    events = _render(_voice(octave=1), "| C | . |")
    assert [e.pitch for e in events] == [72, 72]


def test_events_never_overlap_within_a_voice() -> None:
    events = _render(_voice(), "| C D E | F G | a b c d e f | . |")
    for earlier, later in zip(events, events[1:]):
        assert earlier.end <= later.start


def test_bar_index_is_recorded() -> None:
    events = _render(_voice(), "| C | D E |")
    assert [e.bar for e in events] == [0, 1, 1]


def test_pitch_out_of_range_fails() -> None:
    with pytest.raises(PitchRangeError) as info:
        _render(_voice(octave=4), "| C | c' |")
    assert info.value.column is not None


def test_pitch_below_range_fails() -> None:
    with pytest.raises(PitchRangeError):
        _render(_voice(octave=-5), "| C, |")
