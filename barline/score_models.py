"""Data models shared by every stage of the notation compiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Iterator

# ── Pitch constants ─────────────────────────────────────────────────────────
SEMITONES_PER_OCTAVE = 12
MIDI_MIN = 0
MIDI_MAX = 127

#: MIDI note of each uppercase letter. C..G climb from Middle C (60) while A
#: and B sit just below it, so a bare letter is always within a sixth of C4.
LETTER_PITCHES: dict[str, int] = {
    "C": 60,
    "D": 62,
    "E": 64,
    "F": 65,
    "G": 67,
    "A": 57,
    "B": 59,
}

ACCIDENTAL_SHIFTS: dict[str, int] = {"": 0, "#": 1, "b": -1}


class TokenKind(Enum):
    """Shape of one note token inside a bar."""

    PITCH = "pitch"
    REST = "rest"
    SUSTAIN = "sustain"


@dataclass(frozen=True)
class PieceHeader:
    """Optional document-level attributes (``title: "..."``, ``tempo: 96`` ...)."""

    title: str | None = None
    composer: str | None = None
    tempo: int | None = None
    beats: int | None = None


@dataclass(frozen=True)
class VoiceDecl:
    """
    A voice declaration exactly as written; omitted attributes are None.

    Attributes:
        name:    Voice identity, referenced by play blocks.
        program: Instrument program (0-127).
        channel: MIDI channel (0-15).
        volume:  Volume (0-127), used as note velocity.
        octave:  Signed octave offset applied to every pitch.
        drums:   True for a percussion voice.
        line:    Source line of the ``voice`` keyword.
        column:  Source column of the ``voice`` keyword.
    """

    name: str
    program: int | None = None
    channel: int | None = None
    volume: int | None = None
    octave: int | None = None
    drums: bool | None = None
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True)
class Voice:
    """A resolved voice with every attribute filled in."""

    name: str
    program: int
    channel: int
    volume: int
    octave: int
    drums: bool = False


@dataclass(frozen=True)
class NoteToken:
    """
    One parsed note token.

    Only ``PITCH`` tokens carry a letter; ``accidental`` is ``""``, ``"#"`` or
    ``"b"`` and ``octave_shift`` counts ``'`` (positive) or ``,`` (negative).
    """

    kind: TokenKind
    text: str
    line: int | None = None
    column: int | None = None
    letter: str | None = None
    accidental: str = ""
    octave_shift: int = 0

    @property
    def pitch(self) -> int:
        """MIDI note number of a pitch token, before any voice octave offset."""
        if self.kind is not TokenKind.PITCH or self.letter is None:
            raise ValueError(f"Token '{self.text}' has no pitch.")
        base = LETTER_PITCHES[self.letter.upper()]
        if self.letter.islower():
            base += SEMITONES_PER_OCTAVE
        return base + ACCIDENTAL_SHIFTS[self.accidental] + self.octave_shift * SEMITONES_PER_OCTAVE


@dataclass(frozen=True)
class Bar:
    """One measure: a non-empty sequence of equally long tokens."""

    tokens: tuple[NoteToken, ...]
    line: int | None = None
    column: int | None = None

    def __post_init__(self) -> None:
        if not self.tokens:
            raise ValueError("A bar must hold at least one token.")


@dataclass(frozen=True)
class PlayBlock:
    """
    The bars of one stave of a ``play`` block.

    A play block with ``;``-separated staves yields one PlayBlock per stave,
    all starting at time 0. ``index`` counts staves across the whole document
    in declaration order; ``stave`` is the position within its play block.
    """

    voice: str
    bars: tuple[Bar, ...]
    index: int = 0
    stave: int = 0
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True)
class Document:
    """Structured result of parsing: header, voice declarations and play blocks."""

    header: PieceHeader = field(default_factory=PieceHeader)
    voices: tuple[VoiceDecl, ...] = ()
    plays: tuple[PlayBlock, ...] = ()


@dataclass(frozen=True)
class TimedToken:
    """A note token annotated with its inferred duration (quarter-note beats)."""

    token: NoteToken
    duration: Fraction


@dataclass(frozen=True)
class PerformanceEvent:
    """
    A single sounding note in absolute time.

    Attributes:
        start:    Start time in quarter-note beats from the top of the piece.
        duration: Length in quarter-note beats.
        pitch:    MIDI note number after the voice's octave offset.
        channel:  MIDI channel of the voice.
        velocity: Note-on velocity, taken from the voice's volume.
        program:  Instrument program of the voice.
        voice:    Name of the voice that produced the event.
        block:    Declaration index of the play block that produced it.
        bar:      0-based bar index within that play block.
        tied:     True when produced by a sustain token continuing the
                  previous note.
    """

    start: Fraction
    duration: Fraction
    pitch: int
    channel: int
    velocity: int
    program: int
    voice: str
    block: int
    bar: int
    tied: bool = False

    @property
    def end(self) -> Fraction:
        return self.start + self.duration


@dataclass(frozen=True)
class Timeline:
    """
    The merged, time-ordered output of a compilation.

    Attributes:
        events:       Every performance event, sorted by start time.
        voices:       Resolved voices in declaration order.
        header:       Document-level attributes.
        bar_duration: Length of one bar in quarter-note beats.
    """

    events: tuple[PerformanceEvent, ...]
    voices: tuple[Voice, ...] = ()
    header: PieceHeader = field(default_factory=PieceHeader)
    bar_duration: Fraction = Fraction(4)

    def __iter__(self) -> Iterator[PerformanceEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    @property
    def end(self) -> Fraction:
        """Time at which the last event stops sounding (0 when empty)."""
        return max((event.end for event in self.events), default=Fraction(0))

    def for_voice(self, name: str) -> tuple[PerformanceEvent, ...]:
        """Events produced by the voice ``name``, in timeline order."""
        return tuple(event for event in self.events if event.voice == name)
