"""Shared notation sources for the test suite."""

import pytest

TWO_VOICE_SOURCE = """\
title: "Two Voices"
tempo: 96

// Lead line over a walking bass
voice Trumpet { program: 56, channel: 0, volume: 110 }
voice Bass { program: 33, channel: 1, octave: -2 }

play Trumpet {
    :| D | . | F E D - |
}

play Bass {
    :| D F a F | G - G - |   // one bar shorter than the trumpet
}
"""


@pytest.fixture
def two_voice_source() -> str:
    return TWO_VOICE_SOURCE
