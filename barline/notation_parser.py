"""Notation parser: turns source text into a structured Document.

The grammar is small enough for a hand-written recursive-descent parser that
walks the text with a cursor and a handful of anchored regular expressions::

    title: "Blues in D"
    beats: 4

    voice Bass { program: 33, channel: 1, octave: -2 }

    play Bass {
        :| D F a F | G - G - | . |
    }

Whitespace (including newlines) and ``//`` comments separate tokens. Within a
play block ``|`` delimits bars, ``;`` starts another stave that plays
alongside the first, and every remaining word is one note token. The whole
document may optionally be wrapped in a single ``piece { ... }`` block.
"""

from __future__ import annotations

import bisect
import logging
import re
from typing import Final

from barline.errors import InvalidAttributeError, NotationSyntaxError
from barline.score_models import (
    Bar,
    Document,
    NoteToken,
    PieceHeader,
    PlayBlock,
    TokenKind,
    VoiceDecl,
)

logger = logging.getLogger(__name__)

SPACE_REGEX: Final = re.compile(r"(?:\s+|//[^\n]*)+")
INLINE_SPACE_REGEX: Final = re.compile(r"(?:[ \t\r]+|//[^\n]*)+")
IDENTIFIER_REGEX: Final = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
INTEGER_REGEX: Final = re.compile(r"[+-]?[0-9]+(?![A-Za-z0-9_])")
STRING_REGEX: Final = re.compile(r'"((?:[^"\\\n]|\\.)*)"')
WORD_REGEX: Final = re.compile(r"[^\s{}|:;/]+")
NOTE_REGEX: Final = re.compile(r"(?P<letter>[A-Ga-g])(?P<accidental>[#b]?)(?P<octave>'+|,+)?")
PIECE_REGEX: Final = re.compile(r"piece(?![A-Za-z0-9_])")

REST_SYMBOL: Final = "-"
SUSTAIN_SYMBOL: Final = "."
STAVE_SEPARATOR: Final = ";"

VOICE_KEYS: Final = frozenset({"program", "channel", "volume", "octave", "drums"})
HEADER_STRING_KEYS: Final = frozenset({"title", "composer"})
HEADER_INT_KEYS: Final = frozenset({"tempo", "beats"})


class _Cursor:
    """Position in the source text, with line/column bookkeeping."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def position(self, pos: int | None = None) -> tuple[int, int]:
        """Return the 1-based (line, column) of ``pos`` (default: the cursor)."""
        pos = self.pos if pos is None else pos
        line_index = bisect.bisect_right(self._line_starts, pos) - 1
        return line_index + 1, pos - self._line_starts[line_index] + 1

    def peek(self) -> str:
        return "" if self.at_end() else self.text[self.pos]

    def check(self, literal: str) -> bool:
        return self.text.startswith(literal, self.pos)

    def skip(self, literal: str) -> bool:
        if not self.check(literal):
            return False
        self.pos += len(literal)
        return True

    def match(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        found = pattern.match(self.text, self.pos)
        if found is not None:
            self.pos = found.end()
        return found

    def skip_space(self) -> None:
        self.match(SPACE_REGEX)

    def skip_inline_space(self) -> None:
        self.match(INLINE_SPACE_REGEX)


class _NotationParser:
    """Recursive-descent parser over a single source document."""

    def __init__(self, text: str) -> None:
        self.cursor = _Cursor(text)

    # ------------------------------------------------------------------
    # Error helpers
    # ------------------------------------------------------------------

    def _error(self, message: str, pos: int | None = None) -> NotationSyntaxError:
        return NotationSyntaxError(message, *self.cursor.position(pos))

    def _attribute_error(self, message: str, pos: int) -> InvalidAttributeError:
        return InvalidAttributeError(message, *self.cursor.position(pos))

    def _describe_next(self) -> str:
        if self.cursor.at_end():
            return "the end of the file"
        return f"`{self.cursor.peek()}`"

    # ------------------------------------------------------------------
    # Small grammar pieces
    # ------------------------------------------------------------------

    def _expect(self, literal: str, context: str) -> None:
        self.cursor.skip_space()
        if not self.cursor.skip(literal):
            raise self._error(f"Expected `{literal}` {context} but saw {self._describe_next()}.")

    def _parse_name(self, keyword: str) -> str:
        self.cursor.skip_space()
        name = self.cursor.match(IDENTIFIER_REGEX)
        if name is None:
            raise self._error(f"`{keyword}` must be followed by a name, not {self._describe_next()}.")
        return name.group()

    def _parse_int(self, key: str) -> int:
        value = self.cursor.match(INTEGER_REGEX)
        if value is None:
            raise self._error(f"Expected an integer value for `{key}` but saw {self._describe_next()}.")
        return int(value.group())

    def _parse_bool(self, key: str) -> bool:
        value = self.cursor.match(IDENTIFIER_REGEX)
        if value is None or value.group() not in ("true", "false"):
            raise self._error(f"Expected `true` or `false` for `{key}`.")
        return value.group() == "true"

    def _parse_string(self, key: str) -> str:
        start = self.cursor.pos
        value = self.cursor.match(STRING_REGEX)
        if value is None:
            if self.cursor.check('"'):
                raise self._error(f"Unterminated string for `{key}`.", start)
            raise self._error(f"Expected a quoted string for `{key}` but saw {self._describe_next()}.")
        return re.sub(r"\\(.)", r"\1", value.group(1))

    def _expect_separator(self, closing: str | None = None) -> None:
        """Attributes end with a comma, semicolon, newline, or the closing brace."""
        self.cursor.skip_inline_space()
        if (
            self.cursor.at_end()
            or self.cursor.skip(",")
            or self.cursor.skip(";")
            or self.cursor.check("\n")
            or (closing is not None and self.cursor.check(closing))
        ):
            return
        raise self._error(
            f"Attributes must end with a newline, comma, or semicolon, not {self._describe_next()}."
        )

    def _expect_colon(self, key: str) -> None:
        self.cursor.skip_inline_space()
        if not self.cursor.skip(":"):
            raise self._error(f"Attribute `{key}` is missing a `:` and value.")
        self.cursor.skip_inline_space()

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def _parse_header_attribute(
        self,
        key: str,
        start: int,
        header: dict[str, str | int],
        closing: str | None = None,
    ) -> None:
        if key in header:
            raise self._attribute_error(f"Header attribute `{key}` is set twice.", start)
        self._expect_colon(key)
        if key in HEADER_STRING_KEYS:
            header[key] = self._parse_string(key)
        else:
            value_pos = self.cursor.pos
            value = self._parse_int(key)
            if value < 1:
                raise self._attribute_error(f"`{key}` must be a positive integer, got {value}.", value_pos)
            header[key] = value
        self._expect_separator(closing)

    def _parse_voice(self, start: int) -> VoiceDecl:
        line, column = self.cursor.position(start)
        name = self._parse_name("voice")
        self._expect("{", f"after `voice {name}`")

        attributes: dict[str, int | bool] = {}
        while True:
            self.cursor.skip_space()
            if self.cursor.at_end():
                raise self._error(f"Voice `{name}` is missing its closing `}}`.", start)
            if self.cursor.skip("}"):
                break

            key_pos = self.cursor.pos
            key_match = self.cursor.match(IDENTIFIER_REGEX)
            if key_match is None:
                raise self._error(
                    f"Expected an attribute name in voice `{name}` but saw {self._describe_next()}."
                )
            key = key_match.group()
            if key not in VOICE_KEYS:
                known = ", ".join(sorted(VOICE_KEYS))
                raise self._attribute_error(
                    f"Unknown voice attribute `{key}` in voice `{name}`. Use one of: {known}.", key_pos
                )
            if key in attributes:
                raise self._attribute_error(f"Voice `{name}` sets `{key}` twice.", key_pos)

            self._expect_colon(key)
            attributes[key] = self._parse_bool(key) if key == "drums" else self._parse_int(key)
            self._expect_separator("}")

        return VoiceDecl(name=name, line=line, column=column, **attributes)  # type: ignore[arg-type]

    def _parse_play(self, start: int, first_index: int) -> list[PlayBlock]:
        """
        Parse one play block into one PlayBlock per stave.

        Staves are separated by ``;`` and all start at the top of the piece,
        so ``play D { :| C | ; :| G | }`` sounds C and G together.
        """
        line, column = self.cursor.position(start)
        name = self._parse_name("play")
        self._expect("{", f"after `play {name}`")

        staves: list[tuple[Bar, ...]] = []
        bars: list[Bar] = []
        tokens: list[NoteToken] = []
        bar_start = start
        opened = False

        while True:
            self.cursor.skip_space()
            pos = self.cursor.pos
            if self.cursor.at_end():
                raise self._error(f"Play block `{name}` is missing its closing `}}`.", start)

            if self.cursor.check("}") or self.cursor.check(STAVE_SEPARATOR):
                if tokens:
                    raise self._error(
                        f"Bar is missing its closing `|` before `{self.cursor.peek()}`.", bar_start
                    )
                if bars:
                    staves.append(tuple(bars))
                    bars = []
                opened = False
                if self.cursor.skip("}"):
                    break
                self.cursor.skip(STAVE_SEPARATOR)
                continue

            if self.cursor.skip(":"):
                self.cursor.skip_space()
                if not self.cursor.check("|"):
                    raise self._error("`:` must be followed by a `|` bar delimiter.", pos)
                continue

            if self.cursor.skip("|"):
                if tokens:
                    bars.append(Bar(tuple(tokens), *self.cursor.position(bar_start)))
                    tokens = []
                opened = True
                continue

            word = self.cursor.match(WORD_REGEX)
            if word is None:
                raise self._error(f"Unrecognised note token `{self.cursor.peek()}`.", pos)
            if not opened:
                raise self._error(
                    f"Note `{word.group()}` appears before the first `|` bar delimiter.", pos
                )
            if not tokens:
                bar_start = pos
            tokens.append(self._note_token(word.group(), pos))

        # An empty play block still names its voice, so it is kept as one empty stave.
        return [
            PlayBlock(
                voice=name,
                bars=bars_of_stave,
                index=first_index + stave,
                stave=stave,
                line=line,
                column=column,
            )
            for stave, bars_of_stave in enumerate(staves or [()])
        ]

    def _note_token(self, text: str, pos: int) -> NoteToken:
        line, column = self.cursor.position(pos)
        if text == REST_SYMBOL:
            return NoteToken(TokenKind.REST, text, line, column)
        if text == SUSTAIN_SYMBOL:
            return NoteToken(TokenKind.SUSTAIN, text, line, column)

        note = NOTE_REGEX.fullmatch(text)
        if note is None:
            raise self._error(f"Unrecognised note token `{text}`.", pos)

        octave_marks = note.group("octave") or ""
        shift = len(octave_marks) if octave_marks.startswith("'") else -len(octave_marks)
        return NoteToken(
            TokenKind.PITCH,
            text,
            line,
            column,
            letter=note.group("letter"),
            accidental=note.group("accidental"),
            octave_shift=shift,
        )

    def _parse_body(
        self,
        header: dict[str, str | int],
        voices: list[VoiceDecl],
        plays: list[PlayBlock],
        closing: str | None,
    ) -> None:
        """Parse header attributes, voices and plays up to ``closing`` or the end."""
        while True:
            self.cursor.skip_space()
            if self.cursor.at_end():
                return
            if closing is not None and self.cursor.check(closing):
                return

            start = self.cursor.pos
            word = self.cursor.match(IDENTIFIER_REGEX)
            if word is None:
                raise self._error(f"Unexpected {self._describe_next()} at the top level.")

            keyword = word.group()
            if keyword == "voice":
                voices.append(self._parse_voice(start))
            elif keyword == "play":
                plays.extend(self._parse_play(start, len(plays)))
            elif keyword in HEADER_STRING_KEYS or keyword in HEADER_INT_KEYS:
                self._parse_header_attribute(keyword, start, header, closing)
            elif keyword == "piece":
                raise self._error(
                    "`piece` must wrap the whole document and may appear only once.", start
                )
            else:
                raise self._error(
                    f"Expected `voice`, `play` or a header attribute but saw `{keyword}`.", start
                )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self) -> Document:
        header: dict[str, str | int] = {}
        voices: list[VoiceDecl] = []
        plays: list[PlayBlock] = []

        self.cursor.skip_space()
        start = self.cursor.pos
        wrapper = self.cursor.match(PIECE_REGEX)
        if wrapper is None:
            self._parse_body(header, voices, plays, closing=None)
        else:
            self._expect("{", "after `piece`")
            self._parse_body(header, voices, plays, closing="}")
            if not self.cursor.skip("}"):
                raise self._error("`piece` block is missing its closing `}`.", start)
            self.cursor.skip_space()
            if not self.cursor.at_end():
                raise self._error("Nothing may follow the closing `}` of the `piece` block.")

        return Document(
            header=PieceHeader(**header),  # type: ignore[arg-type]
            voices=tuple(voices),
            plays=tuple(plays),
        )


def parse_document(text: str) -> Document:
    """
    Parse notation source into a Document.

    Args:
        text: Complete source text of one piece.

    Returns:
        Document holding the header, voice declarations and play blocks in
        source order.

    Raises:
        NotationSyntaxError:   On malformed grammar, with line and column.
        InvalidAttributeError: On an unknown or repeated attribute key.
    """
    document = _NotationParser(text).parse()
    logger.debug(
        "Parsed %d voice declaration(s) and %d play block(s)",
        len(document.voices),
        len(document.plays),
    )
    return document
