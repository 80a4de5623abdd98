"""Main entry point for the Pitch Recall CLI."""

import os
import time
from typing import List, Optional

import click

from ..core.config import ConfigManager
from ..core.factory import ComponentFactory
from ..detection.voice_range import VoiceMode
from ..logger import get_logger
from ..logging_config import LOG_LEVEL_ENV, setup_logging
from ..notes import DEFAULT_NOTES, find_note, load_notes
from ..pitch_math import (
    analyze_pitch,
    cents_from_nearest_target,
    get_note_name,
    matches_pitch_class,
    median,
    pitch_class_to_label,
)
from ..pitch_types import SampleBlock, TrackerStatus
from ..services.audio_providers import WavFileAudioProvider, list_input_devices
from ..services.pitch_tracking_service import PitchTrackingService

logger = get_logger(__name__)

REFRESH_SECONDS = 0.05


def _load_catalogue(notes_file: Optional[str]):
    return load_notes(notes_file) if notes_file else list(DEFAULT_NOTES)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Configuration directory (default: ~/.config/pitch_recall).",
)
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write logs to this file.")
@click.pass_context
def cli(ctx, debug, config_dir, log_file):
    """Pitch Recall - sing a target note in any octave."""
    level = "DEBUG" if debug else os.environ.get(LOG_LEVEL_ENV, "WARNING")
    setup_logging(level=level, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["factory"] = ComponentFactory(ConfigManager(config_dir))


@cli.command()
def devices():
    """List available audio input devices."""
    try:
        found = list_input_devices()
    except OSError as e:
        raise click.ClickException(f"Audio system unavailable: {e}")
    if not found:
        click.echo("No input devices found.")
        return
    for device in found:
        click.echo(
            f"{device['id']:>3}: {device['name']} "
            f"({device['channels']} ch, {device['default_samplerate']:.0f} Hz)"
        )


@cli.command()
@click.argument("wav_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--target", "-t", default="A", show_default=True, help="Target note label, e.g. 'C#'.")
@click.option("--notes-file", type=click.Path(exists=True, dir_okay=False), help="Note catalogue JSON.")
@click.option("--min-hz", type=float, default=None, help="Lowest frequency searched.")
@click.option("--max-hz", type=float, default=None, help="Highest frequency searched.")
@click.option("--block-size", type=int, default=2048, show_default=True, help="Samples per block.")
@click.pass_context
def analyze(ctx, wav_file, target, notes_file, min_hz, max_hz, block_size):
    """Run the tracker over WAV_FILE and report the sung pitch."""
    factory: ComponentFactory = ctx.obj["factory"]
    try:
        note = find_note(_load_catalogue(notes_file), target)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--target")

    overrides = {k: v for k, v in {"min_hz": min_hz, "max_hz": max_hz}.items() if v is not None}
    tracker = factory.create_tracker(estimator=factory.create_estimator(**overrides))
    provider = WavFileAudioProvider(wav_file, chunk_size=block_size)
    sample_rate = provider.sample_rate

    frequencies: List[float] = []
    last_line = None
    for index, samples in enumerate(provider.iter_blocks()):
        timestamp_ms = (index + 1) * block_size * 1000.0 / sample_rate
        tracker.ingest(SampleBlock(samples, sample_rate), timestamp_ms)
        frame = tracker.get_smoothed_frame(note.pitch_class, timestamp_ms)

        if frame.frequency_hz is not None:
            frequencies.append(frame.frequency_hz)
            line = f"{get_note_name(frame.frequency_hz)} {frame.cents_from_target:+.0f} cents"
        else:
            line = frame.status.value
        if line != last_line:
            click.echo(f"{timestamp_ms / 1000.0:7.2f}s  {line}")
            last_line = line

    if not frequencies:
        click.echo("No pitch detected.")
        ctx.exit(1)

    center = median(frequencies)
    stats = analyze_pitch(center)
    cents = cents_from_nearest_target(stats.note_number, note.pitch_class)
    matched = matches_pitch_class(stats.pitch_class, note.pitch_class)
    click.echo(
        f"Median pitch: {center:.1f} Hz ({get_note_name(center)}, {pitch_class_to_label(stats.pitch_class)})"
    )
    click.echo(f"Target {note.label}: {'match' if matched else 'no match'}, {cents:+.1f} cents")


@cli.command()
@click.option("--target", "-t", default=None, help="Target note label; random if omitted.")
@click.option("--notes-file", type=click.Path(exists=True, dir_okay=False), help="Note catalogue JSON.")
@click.option("--device", type=int, default=None, help="Audio input device ID.")
@click.option("--duration", "-d", type=float, default=60.0, show_default=True, help="Give up after this many seconds.")
@click.option("--hold-seconds", type=float, default=None, help="Seconds to hold the note in tune.")
@click.option("--tolerance", type=float, default=None, help="Cents tolerance (+/-).")
@click.option(
    "--voice",
    type=click.Choice([mode.value for mode in VoiceMode]),
    default=None,
    help="Voice range (default from configuration).",
)
@click.pass_context
def listen(ctx, target, notes_file, device, duration, hold_seconds, tolerance, voice):
    """Listen to the microphone until the target note is held in tune."""
    factory: ComponentFactory = ctx.obj["factory"]
    notes = _load_catalogue(notes_file)

    overrides = {"hold_seconds": hold_seconds, "cents_tolerance": tolerance, "voice_mode": voice}
    overrides = {k: v for k, v in overrides.items() if v is not None}
    session = factory.create_session(notes=notes, **overrides)
    if target:
        try:
            session.select_target(notes.index(find_note(notes, target)))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--target")
    else:
        session.next_target()

    session.events.on_wrong_note(
        lambda pc, note: logger.info(f"Heard {pitch_class_to_label(pc)} instead of {note.label}")
    )
    session.events.on_success(
        lambda note, elapsed_ms: logger.info(f"{note.label} held for {elapsed_ms / 1000.0:.1f}s")
    )

    service = PitchTrackingService(factory.create_audio_provider(device_id=device), session.tracker)
    click.echo(f"Sing {session.target.label} in any octave (Ctrl+C to stop).")

    succeeded = False
    try:
        service.start()
    except Exception as e:
        raise click.ClickException(f"Could not open audio input: {e}")

    deadline = time.monotonic() + duration
    try:
        while time.monotonic() < deadline:
            time.sleep(REFRESH_SECONDS)
            update = session.step()
            bar = "#" * int(update.progress * 20)
            offset = f"{update.line_offset_cents:+5.0f}c" if update.has_pitch else "   ---"
            click.echo(f"\r[{bar:<20}] {offset}  {update.status_text:<40}", nl=False)
            if update.success:
                succeeded = True
                break
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()
        click.echo()

    if session.tracker.latest.status is TrackerStatus.IDLE:
        click.echo("No audio was received.")
    click.echo("Success!" if succeeded else "Time is up.")
    ctx.exit(0 if succeeded else 1)


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
