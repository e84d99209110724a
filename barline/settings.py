"""Compiler configuration: defaults applied where the notation is silent."""

from dataclasses import dataclass

# Standard 16-channel MIDI model; channel 10 (index 9) is General MIDI percussion.
MIDI_CHANNELS = 16
PERCUSSION_CHANNEL = 9

DEFAULT_TEMPO = 120  # BPM used for export when neither CLI nor header sets one


@dataclass(frozen=True)
class CompilerSettings:
    """
    Defaults for attributes a document may omit.

    Attributes:
        beats_per_bar:      Quarter-note beats in one bar. A ``beats:`` header
                            in the document takes precedence.
        default_program:    Instrument program for voices without ``program``.
        default_volume:     Volume (used as note velocity) for voices without
                            ``volume``.
        default_octave:     Octave offset for voices without ``octave``.
        percussion_channel: Channel given to ``drums: true`` voices that do not
                            name a channel; never auto-assigned to other voices.
        max_workers:        Thread count for rendering play blocks. ``None`` or
                            1 renders sequentially.
    """

    beats_per_bar: int = 4
    default_program: int = 0
    default_volume: int = 100
    default_octave: int = 0
    percussion_channel: int = PERCUSSION_CHANNEL
    max_workers: int | None = None
