"""ScoreCompiler: the full text-to-timeline pipeline."""

from __future__ import annotations

import logging
from fractions import Fraction

from barline.bar_timing import BarTimingEngine
from barline.notation_parser import parse_document
from barline.score_merger import RenderJob, ScoreMerger
from barline.score_models import Document, Timeline
from barline.settings import CompilerSettings
from barline.track_renderer import TrackRenderer
from barline.voice_registry import VoiceRegistry

logger = logging.getLogger(__name__)


class ScoreCompiler:
    """
    Compiles notation text into a merged Timeline.

    Stages run strictly in order (parse, resolve voices, time bars, render
    each play block, merge) and every stage raises a ``CompileError`` on the
    first problem, so a failed compilation never yields a partial timeline.

    Usage:

        timeline = ScoreCompiler().compile(source_text)
        for event in timeline:
            ...
    """

    def __init__(self, settings: CompilerSettings | None = None) -> None:
        self.settings = settings or CompilerSettings()
        self.merger = ScoreMerger()

    def bar_duration(self, document: Document) -> Fraction:
        """Bar length in quarter-note beats: the ``beats`` header, else the setting."""
        beats = document.header.beats or self.settings.beats_per_bar
        return Fraction(beats)

    def compile_document(self, document: Document) -> Timeline:
        """Run every stage after parsing on an already parsed document."""
        registry = VoiceRegistry.from_declarations(document.voices, self.settings)
        engine = BarTimingEngine(self.bar_duration(document))

        renderers: dict[str, TrackRenderer] = {}
        jobs: list[RenderJob] = []
        for block in document.plays:
            voice = registry.lookup(block.voice, block.line, block.column)
            renderer = renderers.setdefault(voice.name, TrackRenderer(voice))
            jobs.append(RenderJob(renderer, block, engine.time_play(block)))

        sequences = self.merger.render_all(jobs, self.settings.max_workers)
        events = self.merger.merge(sequences)

        logger.debug(
            "Compiled %d play block(s) into %d event(s) over %s beats",
            len(jobs),
            len(events),
            max((event.end for event in events), default=0),
        )
        return Timeline(
            events=events,
            voices=tuple(registry),
            header=document.header,
            bar_duration=engine.bar_duration,
        )

    def compile(self, text: str) -> Timeline:
        """
        Compile notation source.

        Args:
            text: Complete source of one piece.

        Returns:
            The merged Timeline.

        Raises:
            CompileError: The first syntax, voice, sustain or range error found.
        """
        return self.compile_document(parse_document(text))


def compile_score(text: str, settings: CompilerSettings | None = None) -> Timeline:
    """Compile ``text`` with the given (or default) settings."""
    return ScoreCompiler(settings).compile(text)
