"""CLI inspect command: show the tracks mkvinfo reports for a file."""

from __future__ import annotations

import json
from pathlib import Path

import click

from tracks_swapper.cli.exit_codes import ExitCode
from tracks_swapper.cli.output import error_exit
from tracks_swapper.config import SwapperConfig
from tracks_swapper.domain.models import UNKNOWN_TRACK_NUMBER, Track
from tracks_swapper.introspector import MkvinfoIntrospector


def _format_number(track: Track) -> str:
    return "?" if track.number == UNKNOWN_TRACK_NUMBER else str(track.number)


def format_tracks_human(path: Path, tracks: list[Track]) -> str:
    """Render tracks as an aligned table."""
    lines = [f"File: {path}", ""]
    header = f"{'#':>3}  {'Type':<10}  {'Language':<8}  {'Default':<7}  UID"
    lines.append(header)
    lines.append("-" * len(header))
    for track in tracks:
        lines.append(
            f"{_format_number(track):>3}  {track.type.value:<10}  "
            f"{track.language:<8}  {'yes' if track.is_default else 'no':<7}  "
            f"{track.uid}"
        )
    return "\n".join(lines)


def track_to_dict(track: Track) -> dict:
    return {
        "number": None if track.number == UNKNOWN_TRACK_NUMBER else track.number,
        "uid": track.uid,
        "type": track.type.value,
        "language": track.language,
        "default": track.is_default,
    }


@click.command("inspect")
@click.argument("file", type=click.Path(path_type=Path, dir_okay=False))
@click.option(
    "--json",
    "-j",
    "json_output",
    is_flag=True,
    default=False,
    help="Output in JSON format.",
)
@click.pass_context
def inspect_command(ctx: click.Context, file: Path, json_output: bool) -> None:
    """Display the tracks of an MKV file as read by mkvinfo.

    FILE is the path to the container to inspect.
    """
    if not file.exists():
        error_exit(f"File not found: {file}", ExitCode.TARGET_NOT_FOUND, json_output)

    config: SwapperConfig = ctx.obj["config"]
    introspector = MkvinfoIntrospector(
        tool_path=config.tools.mkvinfo,
        timeout=config.timeouts.inspect_seconds,
        use_embedded_program=config.tools.use_embedded_programs,
    )
    result = introspector.read_tracks(file)
    if not result.success:
        error_exit(
            result.error or "Unable to read tracks",
            ExitCode.OPERATION_FAILED,
            json_output,
        )

    if json_output:
        click.echo(
            json.dumps(
                {
                    "file": str(file),
                    "tracks": [track_to_dict(t) for t in result.tracks],
                    "warnings": result.warnings,
                },
                indent=2,
            )
        )
        return

    click.echo(format_tracks_human(file, result.tracks))
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if not result.tracks:
        click.echo("No track found.", err=True)
