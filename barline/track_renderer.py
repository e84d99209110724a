"""TrackRenderer: turns one voice's timed bars into absolute performance events."""

from __future__ import annotations

from fractions import Fraction
from typing import Sequence

from barline.errors import PitchRangeError
from barline.score_models import (
    MIDI_MAX,
    MIDI_MIN,
    SEMITONES_PER_OCTAVE,
    PerformanceEvent,
    PlayBlock,
    TimedToken,
    TokenKind,
    Voice,
)


class TrackRenderer:
    """
    Walks a play block's bars against its resolved voice.

    A time cursor starts at 0 and advances by every token's duration. Pitch
    tokens sound at the cursor, shifted by ``voice.octave`` octaves; rests
    only move the cursor. A sustain (``.``) repeats whatever the previous
    token did: it sounds the previous pitch again as a tied event, or keeps
    silence going after a rest. The last sounding pitch is threaded through
    the walk as local state, so one renderer may serve many blocks and
    threads at once.
    """

    def __init__(self, voice: Voice) -> None:
        self.voice = voice
        self._offset = voice.octave * SEMITONES_PER_OCTAVE

    def _event(
        self,
        start: Fraction,
        timed: TimedToken,
        pitch: int,
        block: PlayBlock,
        bar_index: int,
        tied: bool,
    ) -> PerformanceEvent:
        return PerformanceEvent(
            start=start,
            duration=timed.duration,
            pitch=pitch,
            channel=self.voice.channel,
            velocity=self.voice.volume,
            program=self.voice.program,
            voice=self.voice.name,
            block=block.index,
            bar=bar_index,
            tied=tied,
        )

    def render(
        self,
        block: PlayBlock,
        timed_bars: Sequence[Sequence[TimedToken]],
    ) -> tuple[PerformanceEvent, ...]:
        """
        Render one play block.

        Args:
            block:      The play block (used for its index and name).
            timed_bars: Output of ``BarTimingEngine.time_play(block)``.

        Returns:
            Events for this voice only, ordered by start time.

        Raises:
            PitchRangeError: If an offset pitch leaves the MIDI range 0-127.
        """
        events: list[PerformanceEvent] = []
        cursor = Fraction(0)
        carried: int | None = None  # sounding pitch a sustain would continue

        for bar_index, bar in enumerate(timed_bars):
            for timed in bar:
                token = timed.token
                if token.kind is TokenKind.PITCH:
                    pitch = token.pitch + self._offset
                    if not MIDI_MIN <= pitch <= MIDI_MAX:
                        raise PitchRangeError(
                            f"Note `{token.text}` in voice `{self.voice.name}` becomes MIDI "
                            f"{pitch} with octave offset {self.voice.octave}; expected 0-127.",
                            token.line,
                            token.column,
                        )
                    events.append(self._event(cursor, timed, pitch, block, bar_index, tied=False))
                    carried = pitch
                elif token.kind is TokenKind.SUSTAIN:
                    if carried is not None:
                        events.append(self._event(cursor, timed, carried, block, bar_index, tied=True))
                else:
                    carried = None

                cursor += timed.duration

        return tuple(events)
