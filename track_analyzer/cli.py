"""Command-line interface for Track Analyzer.

Provides commands for:
- transcribe: Split an audio file into per-instrument note and hit tracks
- info: Show audio file information
"""

import json
import logging
import time
from pathlib import Path
from typing import Optional

import soundfile as sf
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

app = typer.Typer(
    name="track-analyzer",
    help="Audio to Multitrack Transcription",
    rich_markup_mode="markdown",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_buffer(input_file: Path):
    """Decode an audio file into a PCMBuffer."""
    from .input import PCMBuffer

    audio, sr = sf.read(str(input_file), dtype="float64", always_2d=True)
    return PCMBuffer.create(audio.T, int(sr))


@app.command()
def transcribe(
    input_file: Path = typer.Argument(..., help="Input audio file (WAV, FLAC, OGG)"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON configuration file"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the tracks as JSON to this path"
    ),
    workers: int = typer.Option(
        0, "--workers", "-w", help="Threads for stem analysis (0 = from config)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging and every note"
    ),
):
    """Transcribe an audio file into vocals, bass, keys, guitar, other and drum tracks.

    **Examples:**

        track-analyzer transcribe song.wav

        track-analyzer transcribe song.flac -o tracks.json --workers 2
    """
    from .core import ConfigError, InputError, TranscriptionConfig, load_config
    from .transcription import MultiTrackTranscriber

    _setup_logging(verbose)

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        config = load_config(config_file) if config_file else TranscriptionConfig()
        transcriber = MultiTrackTranscriber(config, max_workers=workers or None)

        console.print(f"[blue]Loading audio:[/blue] {input_file}")
        buffer = _load_buffer(input_file)
        if verbose:
            console.print(
                f"  Duration: {buffer.duration:.2f}s, Sample rate: {buffer.sample_rate}Hz, "
                f"Channels: {buffer.channels}"
            )
    except (InputError, ConfigError, FileNotFoundError, sf.LibsndfileError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    start_time = time.time()
    tracks = None
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Transcribing...", total=transcriber.TOTAL_STAGES)
        for event in transcriber.iter_stages(buffer):
            progress.update(task, completed=event.completed, description=event.stage)
            if event.is_final:
                tracks = event.result

    console.print(f"[green][OK] Transcribed in {time.time() - start_time:.1f}s[/green]")
    _show_tracks_table(tracks)

    if verbose:
        for category, track in tracks.melodic_tracks.items():
            if len(track):
                _show_notes_table(category.value, track.notes)

    if output:
        with open(output, "w") as f:
            json.dump(tracks.to_dict(), f, indent=2)
        console.print(f"[green]Saved:[/green] {output}")


@app.command()
def info(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """Show information about an audio file."""
    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    file_info = sf.info(str(input_file))

    console.print(f"\n[bold]Audio Info:[/bold] {input_file.name}")
    console.print(f"  Duration: {file_info.duration:.2f} seconds")
    console.print(f"  Sample rate: {file_info.samplerate} Hz")
    console.print(f"  Channels: {file_info.channels}")
    console.print(f"  Samples: {file_info.frames:,}")
    console.print(f"  Format: {file_info.format} ({file_info.subtype})")


def _show_tracks_table(tracks):
    """Display per-track event counts."""
    table = Table(title="Transcribed Tracks")
    table.add_column("Track", style="cyan")
    table.add_column("Events", style="yellow")
    table.add_column("Range", style="green")

    for category, track in tracks.melodic_tracks.items():
        pitches = [n.pitch for n in track.notes]
        span = f"{min(pitches)}-{max(pitches)}" if pitches else "-"
        table.add_row(category.value.title(), str(len(track)), span)

    kinds = sorted({h.type.value for h in tracks.drums.hits})
    table.add_row("Drums", str(len(tracks.drums)), ", ".join(kinds) or "-")

    console.print(table)


def _show_notes_table(title, notes):
    """Display notes in a table."""
    table = Table(title=f"{title.title()} Notes")
    table.add_column("Pitch", style="cyan")
    table.add_column("Onset (s)", style="green")
    table.add_column("Duration (s)", style="yellow")
    table.add_column("Velocity", style="magenta")

    for note in notes:
        table.add_row(
            note.pitch_name,
            f"{note.start_time:.3f}",
            f"{note.duration:.3f}",
            f"{note.velocity:.2f}",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
