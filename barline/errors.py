"""Exception hierarchy raised by the notation compiler."""

from __future__ import annotations


class CompileError(Exception):
    """
    Base class for every error the compiler raises.

    Attributes:
        message: Human-readable description of the problem.
        line:    1-based source line, or None when no position is known.
        column:  1-based source column, or None when no position is known.
    """

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"line {self.line}: {self.message}"
        return f"line {self.line}, column {self.column}: {self.message}"


class NotationSyntaxError(CompileError):
    """Malformed notation: bad delimiters, unknown tokens, unterminated blocks."""


class InvalidAttributeError(CompileError):
    """Unrecognised voice key, or an attribute value outside its range."""


class DuplicateVoiceError(CompileError):
    """The same voice name was declared more than once."""


class UnknownVoiceError(CompileError):
    """A play block names a voice that was never declared."""


class DanglingSustainError(CompileError):
    """A sustain token opens a play block, so there is no note to extend."""


class PitchRangeError(CompileError):
    """A note falls outside MIDI range once the voice's octave offset is applied."""
