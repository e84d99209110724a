"""End-to-end tests for the notation compiler pipeline."""

from fractions import Fraction

import pytest

from barline import compile_score
from barline.compiler import ScoreCompiler
from barline.errors import (
    DanglingSustainError,
    DuplicateVoiceError,
    NotationSyntaxError,
    UnknownVoiceError,
)
from barline.settings import CompilerSettings


def _summary(timeline) -> list[tuple[Fraction, int, str]]:
    return [(event.start, event.pitch, event.voice) for event in timeline]


def test_two_voice_piece_merges_into_one_timeline(two_voice_source: str) -> None:
    timeline = compile_score(two_voice_source)
    assert _summary(timeline) == [
        (0, 62, "Trumpet"),
        (0, 38, "Bass"),
        (1, 41, "Bass"),
        (2, 45, "Bass"),
        (3, 41, "Bass"),
        (4, 62, "Trumpet"),
        (4, 43, "Bass"),
        (6, 43, "Bass"),
        (8, 65, "Trumpet"),
        (9, 64, "Trumpet"),
        (10, 62, "Trumpet"),
    ]


def test_shorter_voice_simply_ends_early(two_voice_source: str) -> None:
    timeline = compile_score(two_voice_source)
    bass = timeline.for_voice("Bass")
    trumpet = timeline.for_voice("Trumpet")
    assert max(e.end for e in bass) == 7
    assert max(e.end for e in trumpet) == 11
    assert timeline.end == 11
    assert len(bass) + len(trumpet) == len(timeline)


def test_trumpet_whole_bar_and_sustain(two_voice_source: str) -> None:
    trumpet = compile_score(two_voice_source).for_voice("Trumpet")
    assert (trumpet[0].pitch, trumpet[0].duration) == (62, Fraction(4))
    assert (trumpet[1].pitch, trumpet[1].start, trumpet[1].duration) == (62, 4, Fraction(4))
    assert trumpet[1].tied is True


def test_voice_attributes_reach_events(two_voice_source: str) -> None:
    timeline = compile_score(two_voice_source)
    trumpet = timeline.for_voice("Trumpet")[0]
    bass = timeline.for_voice("Bass")[0]
    assert (trumpet.channel, trumpet.velocity, trumpet.program) == (0, 110, 56)
    assert (bass.channel, bass.velocity, bass.program) == (1, 100, 33)


def test_timeline_carries_voices_and_header(two_voice_source: str) -> None:
    timeline = compile_score(two_voice_source)
    assert [voice.name for voice in timeline.voices] == ["Trumpet", "Bass"]
    assert timeline.header.title == "Two Voices"
    assert timeline.header.tempo == 96
    assert timeline.bar_duration == 4


def test_compilation_is_deterministic(two_voice_source: str) -> None:
    assert compile_score(two_voice_source) == compile_score(two_voice_source)


def test_parallel_compilation_matches_sequential(two_voice_source: str) -> None:
    parallel = ScoreCompiler(CompilerSettings(max_workers=4)).compile(two_voice_source)
    assert parallel == compile_score(two_voice_source)


def test_beats_header_sets_bar_length() -> None:
    timeline = compile_score("beats: 3\nvoice A { }\nplay A { | C | D E F | }")
    assert [(e.start, e.duration) for e in timeline] == [(0, 3), (3, 1), (4, 1), (5, 1)]
    assert timeline.bar_duration == 3


def test_settings_bar_length_applies_without_header() -> None:
    timeline = compile_score("voice A { }\nplay A { | C | D E | }", CompilerSettings(beats_per_bar=2))
    assert [(e.start, e.duration) for e in timeline] == [(0, 2), (2, 1), (3, 1)]


def test_several_blocks_for_one_voice_start_together() -> None:
    timeline = compile_score("voice P { }\nplay P { | C | }\nplay P { | E G | }")
    assert [(e.start, e.pitch, e.block) for e in timeline] == [(0, 60, 0), (0, 64, 1), (2, 67, 1)]


def test_voices_without_play_blocks_produce_nothing() -> None:
    timeline = compile_score("voice Quiet { }")
    assert len(timeline) == 0
    assert timeline.end == 0
    assert [voice.name for voice in timeline.voices] == ["Quiet"]


def test_undeclared_voice_fails() -> None:
    with pytest.raises(UnknownVoiceError) as info:
        compile_score("voice Bass { }\nplay Bass { | C | }\nplay Trumpet { | D | }")
    assert (info.value.line, info.value.column) == (3, 1)


def test_duplicate_voice_fails() -> None:
    with pytest.raises(DuplicateVoiceError):
        compile_score("voice Bass { }\nvoice Bass { }\nplay Bass { | C | }")


def test_leading_sustain_fails() -> None:
    with pytest.raises(DanglingSustainError):
        compile_score("voice T { }\nplay T { | D | }\nplay T { :| . | D | }")


def test_syntax_errors_abort_compilation() -> None:
    with pytest.raises(NotationSyntaxError):
        compile_score("voice T { }\nplay T { | D | Z | }")


def test_wrapped_piece_compiles() -> None:
    timeline = compile_score("piece { tempo: 120, beats: 4\n voice V { }\n play V { :| C | } }")
    assert [(e.start, e.pitch, e.duration) for e in timeline] == [(0, 60, 4)]
    assert timeline.header.tempo == 120


def test_staves_of_one_play_block_sound_together() -> None:
    timeline = compile_score("voice D { } play D { :| C | ; :| G | }")
    assert [(e.start, e.pitch, e.duration) for e in timeline] == [(0, 60, 4), (0, 67, 4)]


def test_threes_against_twos() -> None:
    timeline = compile_score("voice Diad { } play Diad { :| C E G | ; :| c g | }")
    assert [(e.start, e.pitch) for e in timeline] == [
        (0, 60),
        (0, 72),
        (Fraction(4, 3), 64),
        (2, 79),
        (Fraction(8, 3), 67),
    ]


def test_sustain_does_not_carry_into_the_next_stave() -> None:
    timeline = compile_score("voice A { } play A { :| C E G c | ; :| - | . | }")
    assert [e.pitch for e in timeline] == [60, 64, 67, 72]


def test_stave_opening_with_sustain_is_dangling() -> None:
    with pytest.raises(DanglingSustainError):
        compile_score("voice A { } play A { :| C E G c | ; :| . g | }")
