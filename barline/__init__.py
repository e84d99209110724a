"""barline: compiles bar-oriented music notation into performance timelines."""

from barline.compiler import ScoreCompiler, compile_score
from barline.errors import (
    CompileError,
    DanglingSustainError,
    DuplicateVoiceError,
    InvalidAttributeError,
    NotationSyntaxError,
    PitchRangeError,
    UnknownVoiceError,
)
from barline.notation_parser import parse_document
from barline.settings import CompilerSettings

__version__ = "0.3.0"

__all__ = [
    "CompileError",
    "CompilerSettings",
    "DanglingSustainError",
    "DuplicateVoiceError",
    "InvalidAttributeError",
    "NotationSyntaxError",
    "PitchRangeError",
    "ScoreCompiler",
    "UnknownVoiceError",
    "compile_score",
    "parse_document",
]
