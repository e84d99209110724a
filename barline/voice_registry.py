"""VoiceRegistry: resolves voice declarations into fully specified voices."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from barline.errors import DuplicateVoiceError, InvalidAttributeError, UnknownVoiceError
from barline.score_models import Voice, VoiceDecl
from barline.settings import MIDI_CHANNELS, CompilerSettings

logger = logging.getLogger(__name__)

# ── Attribute ranges ────────────────────────────────────────────────────────
PROGRAM_RANGE = range(0, 128)
CHANNEL_RANGE = range(0, MIDI_CHANNELS)
VOLUME_RANGE = range(0, 128)


def _check_range(decl: VoiceDecl, key: str, value: int | None, valid: range) -> None:
    if value is not None and value not in valid:
        raise InvalidAttributeError(
            f"Voice `{decl.name}` has {key} {value}; expected {valid.start}-{valid.stop - 1}.",
            decl.line,
            decl.column,
        )


class VoiceRegistry:
    """
    Name-to-Voice mapping built once from a document's declarations.

    Omitted attributes are filled deterministically:

    - ``program``, ``volume`` and ``octave`` take the values from
      :class:`CompilerSettings` (0, 100 and 0 by default).
    - ``channel`` is the percussion channel for ``drums: true`` voices.
      Every other voice gets the lowest channel that no declaration claims
      explicitly and that has not already been handed out, walking the
      declarations in order and never choosing the percussion channel.
    """

    def __init__(self, voices: Iterable[Voice]) -> None:
        """
        Args:
            voices: Already validated voices with unique names, normally
                    produced by :meth:`from_declarations`.
        """
        self._voices: dict[str, Voice] = {voice.name: voice for voice in voices}

    @classmethod
    def from_declarations(
        cls,
        declarations: Iterable[VoiceDecl],
        settings: CompilerSettings | None = None,
    ) -> "VoiceRegistry":
        """
        Validate declarations and resolve their defaults.

        Args:
            declarations: Voice declarations in source order.
            settings:     Default values; ``CompilerSettings()`` when omitted.

        Returns:
            A registry holding one resolved Voice per declaration.

        Raises:
            DuplicateVoiceError:   If a name is declared twice.
            InvalidAttributeError: If a value is out of range, or no channel
                                   is left for a voice without one.
        """
        settings = settings or CompilerSettings()
        declarations = list(declarations)

        seen: set[str] = set()
        for decl in declarations:
            if decl.name in seen:
                raise DuplicateVoiceError(
                    f"Voice `{decl.name}` is declared more than once.", decl.line, decl.column
                )
            seen.add(decl.name)
            _check_range(decl, "program", decl.program, PROGRAM_RANGE)
            _check_range(decl, "channel", decl.channel, CHANNEL_RANGE)
            _check_range(decl, "volume", decl.volume, VOLUME_RANGE)

        claimed = {decl.channel for decl in declarations if decl.channel is not None}
        free_channels = [
            channel
            for channel in CHANNEL_RANGE
            if channel not in claimed and channel != settings.percussion_channel
        ]

        voices: list[Voice] = []
        for decl in declarations:
            drums = bool(decl.drums)
            if decl.channel is not None:
                channel = decl.channel
            elif drums:
                channel = settings.percussion_channel
            elif free_channels:
                channel = free_channels.pop(0)
            else:
                raise InvalidAttributeError(
                    f"No free MIDI channel left for voice `{decl.name}`; give it an explicit channel.",
                    decl.line,
                    decl.column,
                )

            voice = Voice(
                name=decl.name,
                program=settings.default_program if decl.program is None else decl.program,
                channel=channel,
                volume=settings.default_volume if decl.volume is None else decl.volume,
                octave=settings.default_octave if decl.octave is None else decl.octave,
                drums=drums,
            )
            logger.debug("Resolved voice %s", voice)
            voices.append(voice)

        return cls(voices)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def lookup(self, name: str, line: int | None = None, column: int | None = None) -> Voice:
        """
        Return the voice called ``name``.

        Raises:
            UnknownVoiceError: If no voice of that name was declared. ``line``
                               and ``column`` locate the reference.
        """
        try:
            return self._voices[name]
        except KeyError:
            raise UnknownVoiceError(f"Play block refers to undeclared voice `{name}`.", line, column) from None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._voices)

    def __contains__(self, name: object) -> bool:
        return name in self._voices

    def __iter__(self) -> Iterator[Voice]:
        return iter(self._voices.values())

    def __len__(self) -> int:
        return len(self._voices)
