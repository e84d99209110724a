"""MidiExporter: writes a compiled Timeline as a Standard MIDI File."""

from __future__ import annotations

from dataclasses import dataclass, replace
from fractions import Fraction

from midiutil import MIDIFile

from barline.score_models import Timeline
from barline.settings import DEFAULT_TEMPO

# midiutil time signatures take the denominator as a power of two (2 → quarter).
QUARTER_NOTE_DENOMINATOR = 2
MIDI_CLOCKS_PER_TICK = 24


@dataclass(frozen=True)
class NoteSpan:
    """One note as it will be written: tied events already folded together."""

    track: int
    channel: int
    pitch: int
    start: Fraction
    duration: Fraction
    velocity: int


class MidiExporter:
    """
    Writes a multi-track MIDI file from a Timeline.

    Track layout (SMF format 1)
    ---------------------------
    One track per voice that produced at least one event, in voice
    declaration order. Each track is named after its voice and opens with a
    program change on the voice's channel (percussion voices skip it). The
    piece title, when present, is written as a text event on the first track.
    Tempo and time signature live on midiutil's tempo track.

    Timing
    ------
    Timeline times are exact quarter-note beats and are converted to float
    beats only here. A tied event (from a ``.`` sustain) that starts exactly
    where the previous note of the same play block ends with the same pitch
    is merged into that note instead of being re-struck.
    """

    def __init__(self, tempo: int | None = None) -> None:
        """
        Args:
            tempo: Playback tempo in BPM. ``None`` uses the timeline's
                   ``tempo:`` header, falling back to 120.
        """
        self.tempo = tempo

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _resolve_tempo(self, timeline: Timeline) -> int:
        if self.tempo is not None:
            return self.tempo
        return timeline.header.tempo or DEFAULT_TEMPO

    def _track_names(self, timeline: Timeline) -> list[str]:
        sounding = {event.voice for event in timeline}
        return [voice.name for voice in timeline.voices if voice.name in sounding]

    def _note_spans(self, timeline: Timeline) -> list[NoteSpan]:
        """Assign events to tracks and fold tied continuations into their notes."""
        tracks = {name: index for index, name in enumerate(self._track_names(timeline))}
        spans: list[NoteSpan] = []
        last_span: dict[int, int] = {}  # play block index -> position in spans

        for event in timeline:
            previous_at = last_span.get(event.block)
            if event.tied and previous_at is not None:
                previous = spans[previous_at]
                if previous.pitch == event.pitch and previous.start + previous.duration == event.start:
                    spans[previous_at] = replace(previous, duration=previous.duration + event.duration)
                    continue

            last_span[event.block] = len(spans)
            spans.append(
                NoteSpan(
                    track=tracks[event.voice],
                    channel=event.channel,
                    pitch=event.pitch,
                    start=event.start,
                    duration=event.duration,
                    velocity=event.velocity,
                )
            )
        return spans

    def build(self, timeline: Timeline) -> MIDIFile:
        """Build the in-memory MIDIFile without touching the filesystem."""
        track_names = self._track_names(timeline)
        midi = MIDIFile(numTracks=max(1, len(track_names)), removeDuplicates=False, deinterleave=False)

        midi.addTempo(0, 0, self._resolve_tempo(timeline))
        midi.addTimeSignature(
            0,
            0,
            int(timeline.bar_duration),
            QUARTER_NOTE_DENOMINATOR,
            MIDI_CLOCKS_PER_TICK,
        )
        if timeline.header.title:
            midi.addText(0, 0, timeline.header.title)

        voices = {voice.name: voice for voice in timeline.voices}
        for track, name in enumerate(track_names):
            voice = voices[name]
            midi.addTrackName(track, 0, name)
            if not voice.drums:
                midi.addProgramChange(track, voice.channel, 0, voice.program)

        for span in self._note_spans(timeline):
            midi.addNote(
                track=span.track,
                channel=span.channel,
                pitch=span.pitch,
                time=float(span.start),
                duration=float(span.duration),
                volume=span.velocity,
            )
        return midi

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export(self, timeline: Timeline, output_path: str) -> None:
        """
        Render a timeline to a Standard MIDI File.

        Args:
            timeline:    Compiled timeline to write.
            output_path: Destination file path (e.g. "song.mid").

        Raises:
            OSError: If the output file cannot be opened for writing.
        """
        midi = self.build(timeline)
        with open(output_path, "wb") as f:
            midi.writeFile(f)
