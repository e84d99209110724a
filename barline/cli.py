"""barline CLI entry point."""

import logging
import sys
from fractions import Fraction
from pathlib import Path

import click

from barline import __version__
from barline.compiler import ScoreCompiler
from barline.errors import CompileError
from barline.midi_exporter import MidiExporter
from barline.score_models import Timeline
from barline.settings import DEFAULT_TEMPO, CompilerSettings

LOG_FORMAT = "[%(name)s:%(lineno)s:%(levelname)s] %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def _compile_file(source: str, workers: int | None) -> Timeline:
    """Read and compile a source file, exiting with status 1 on failure."""
    try:
        text = Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        click.echo(f"  ERROR: Could not read '{source}' — {exc}", err=True)
        sys.exit(1)

    compiler = ScoreCompiler(CompilerSettings(max_workers=workers))
    try:
        return compiler.compile(text)
    except CompileError as exc:
        click.echo(f"  ERROR: {source}: {exc}", err=True)
        sys.exit(1)


def _format_beats(value: Fraction) -> str:
    """Show whole beats as integers and everything else as a fraction."""
    return str(value.numerator) if value.denominator == 1 else f"{value.numerator}/{value.denominator}"


_source_argument = click.argument(
    "source", type=click.Path(exists=True, dir_okay=False, readable=True)
)
_verbose_option = click.option(
    "--verbose", "-v", is_flag=True, help="Log every compiler stage to stderr."
)
_workers_option = click.option(
    "--workers",
    type=click.IntRange(1, 64),
    default=None,
    metavar="N",
    help="Render play blocks on N threads. Default: sequential.",
)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="barline")
def main() -> None:
    """barline — compile bar notation into MIDI performance events."""


# ── compile subcommand ─────────────────────────────────────────────────────────

@main.command(name="compile")
@_source_argument
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination MIDI file path. Defaults to SOURCE with a .mid suffix.",
)
@click.option(
    "--tempo",
    type=click.IntRange(20, 300),
    default=None,
    help=f"Playback tempo in BPM. Defaults to the piece's `tempo:` header, else {DEFAULT_TEMPO}.",
)
@_workers_option
@_verbose_option
def compile_command(
    source: str,
    output: str | None,
    tempo: int | None,
    workers: int | None,
    verbose: bool,
) -> None:
    """
    Compile a notation file and write it as a MIDI file.

    \b
    Examples:
      barline compile song.bar
      barline compile song.bar -o take2.mid --tempo 96
    """
    _configure_logging(verbose)
    resolved_output = output if output is not None else str(Path(source).with_suffix(".mid"))
    if Path(resolved_output).resolve() == Path(source).resolve():
        click.echo(
            f"  ERROR: Output '{resolved_output}' would overwrite the source file; pass a different -o.",
            err=True,
        )
        sys.exit(1)

    click.echo(f"barline v{__version__}")
    click.echo(f"  Source : {source}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    click.echo("[1/2] Compiling notation...")
    timeline = _compile_file(source, workers)
    click.echo(
        f"      {len(timeline.voices)} voice(s), {len(timeline)} event(s), "
        f"{_format_beats(timeline.end)} beat(s)"
    )

    click.echo(f"[2/2] Writing MIDI file → '{resolved_output}'...")
    exporter = MidiExporter(tempo=tempo)
    try:
        exporter.export(timeline, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write MIDI file — {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Open '{resolved_output}' in any MIDI player.")


# ── events subcommand ──────────────────────────────────────────────────────────

@main.command()
@_source_argument
@_workers_option
@_verbose_option
def events(source: str, workers: int | None, verbose: bool) -> None:
    """
    Print the merged event timeline of a notation file.

    Times and durations are in quarter-note beats.
    """
    _configure_logging(verbose)
    timeline = _compile_file(source, workers)

    click.echo(f"{'start':>8}  {'dur':>6}  {'pitch':>5}  {'ch':>2}  {'vel':>3}  voice")
    for event in timeline:
        tie = "  (tie)" if event.tied else ""
        click.echo(
            f"{_format_beats(event.start):>8}  {_format_beats(event.duration):>6}  "
            f"{event.pitch:>5}  {event.channel:>2}  {event.velocity:>3}  {event.voice}{tie}"
        )


# ── voices subcommand ──────────────────────────────────────────────────────────

@main.command()
@_source_argument
def voices(source: str) -> None:
    """Print every declared voice with its defaults filled in."""
    timeline = _compile_file(source, None)
    for voice in timeline.voices:
        kind = "  drums" if voice.drums else ""
        click.echo(
            f"{voice.name:<12} program={voice.program:<3} channel={voice.channel:<2} "
            f"volume={voice.volume:<3} octave={voice.octave:+d}{kind}"
        )
