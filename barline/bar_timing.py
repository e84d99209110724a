"""BarTimingEngine: infers note durations from the number of tokens per bar."""

from __future__ import annotations

from fractions import Fraction

from barline.errors import DanglingSustainError
from barline.score_models import Bar, PlayBlock, TimedToken, TokenKind


class BarTimingEngine:
    """
    Stretches a variable number of tokens over a fixed bar length.

    Every bar lasts ``bar_duration`` quarter-note beats no matter how many
    tokens it holds, and its tokens share that time equally:

        | D |          → one whole-bar note
        | D F a F |    → four quarter notes (in 4/4)
        | C E G |      → three notes of 4/3 beats each

    Durations are exact ``Fraction`` values, so the tokens of a bar always sum
    to the bar length with no rounding drift.
    """

    def __init__(self, bar_duration: Fraction | int = 4) -> None:
        """
        Args:
            bar_duration: Length of one bar in quarter-note beats (> 0).
        """
        bar_duration = Fraction(bar_duration)
        if bar_duration <= 0:
            raise ValueError(f"Bar duration must be positive, got {bar_duration}.")
        self.bar_duration = bar_duration

    def time_bar(self, bar: Bar) -> tuple[TimedToken, ...]:
        """Pair every token of ``bar`` with its share of the bar duration."""
        share = self.bar_duration / len(bar.tokens)
        return tuple(TimedToken(token, share) for token in bar.tokens)

    def time_play(self, block: PlayBlock) -> tuple[tuple[TimedToken, ...], ...]:
        """
        Time every bar of a play block.

        Raises:
            DanglingSustainError: If the block's very first token is a sustain,
                                  leaving nothing to extend.
        """
        if block.bars:
            first = block.bars[0].tokens[0]
            if first.kind is TokenKind.SUSTAIN:
                raise DanglingSustainError(
                    f"Play block `{block.voice}` opens with `.` but there is no earlier note to sustain.",
                    first.line,
                    first.column,
                )
        return tuple(self.time_bar(bar) for bar in block.bars)
