"""CLI command that puts preferred tracks first in MKV files."""

from __future__ import annotations

import json
import logging
import sys
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any

import click
from click.core import ParameterSource

from tracks_swapper.cli import configure_cli_logging
from tracks_swapper.cli.exit_codes import ExitCode
from tracks_swapper.cli.output import error_exit, info_output
from tracks_swapper.config import (
    ProfileError,
    ProfileNotFoundError,
    SwapConfig,
    SwapperConfig,
    load_profile,
    merge_profile_with_config,
)
from tracks_swapper.domain.enums import LanguageMatch
from tracks_swapper.executor.interface import SwapSettings
from tracks_swapper.policy.swap import LanguagePreferences
from tracks_swapper.workflow import (
    FileProcessor,
    FileResult,
    ProgressTracker,
    discover_files,
    resolve_worker_count,
    run_batch,
)

logger = logging.getLogger(__name__)

NO_LANGUAGE_MESSAGE = "No language specified, nothing to do."
NO_PATH_MESSAGE = "No file specified, nothing to do."
NO_FILE_MESSAGE = "No valid file found."

# Serializes per-file lines written from the result callback
_output_lock = threading.Lock()


def _is_interactive() -> bool:
    """Check whether stderr is a terminal (progress display is useful)."""
    return sys.stderr.isatty()


def _validate_workers(
    ctx: click.Context, param: click.Parameter, value: int | None
) -> int | None:
    if value is not None and value < 1:
        raise click.BadParameter("must be at least 1")
    return value


def _validate_language(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise click.BadParameter("language must not be empty")
    return value


def _from_command_line(ctx: click.Context, name: str, value: Any) -> Any:
    """Return value if the user passed the option, else None."""
    if ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE:
        return value
    return None


def _load_profile_or_exit(name: str, json_output: bool):
    try:
        return load_profile(name)
    except ProfileNotFoundError as e:
        error_exit(str(e), ExitCode.PROFILE_NOT_FOUND, json_output)
    except ProfileError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)


def _resolve_swap_config(
    ctx: click.Context,
    config: SwapperConfig,
    profile: str | None,
    json_output: bool,
) -> SwapConfig:
    """Layer profile and explicit CLI flags over the configured [swap] section."""
    swap_config = config.swap
    if profile:
        swap_config = merge_profile_with_config(
            _load_profile_or_exit(profile, json_output), swap_config
        )

    params = ctx.params
    overrides = {
        "audio_language": params["audio"],
        "subtitles_language": params["subtitles"],
        "overwrite": _from_command_line(ctx, "overwrite", params["overwrite"]),
        "clear_other_defaults": _from_command_line(
            ctx, "clear_other_defaults", params["clear_other_defaults"]
        ),
        "skip_unchanged": _from_command_line(
            ctx, "skip_unchanged", params["skip_unchanged"]
        ),
    }
    if _from_command_line(ctx, "exact_match", params["exact_match"]):
        overrides["language_match"] = LanguageMatch.EXACT

    return replace(
        swap_config, **{k: v for k, v in overrides.items() if v is not None}
    )


def _format_result_human(result: FileResult, verbose: bool = False) -> str:
    status = "OK" if result.success else "FAILED"
    line = f"[{status}] {result.file_path.name}"
    if not result.success:
        return f"{line}: {result.message}"
    if result.output_path is not None and result.output_path != result.file_path:
        line += f" -> {result.output_path.name}"
    if verbose:
        swaps = ", ".join(result.swaps) or "none"
        line += (
            f" ({result.tracks_found} tracks, swaps: {swaps}, "
            f"{result.duration_seconds:.1f}s)"
        )
    return line


def _format_result_json(result: FileResult) -> dict[str, Any]:
    return {
        "file": str(result.file_path),
        "success": result.success,
        "message": result.message,
        "status": result.status.value if result.status else None,
        "tracks_found": result.tracks_found,
        "output": str(result.output_path) if result.output_path else None,
        "swaps": list(result.swaps),
        "warnings": list(result.warnings),
        "duration_seconds": round(result.duration_seconds, 2),
    }


@click.command("swap")
@click.option(
    "--audio",
    "-a",
    default=None,
    callback=_validate_language,
    help="Language of the audio track to put first (e.g. jpn, or 'en' prefix).",
)
@click.option(
    "--subtitles",
    "-s",
    default=None,
    callback=_validate_language,
    help="Language of the subtitle track to put first.",
)
@click.option(
    "--overwrite",
    "-f",
    is_flag=True,
    default=False,
    help="Replace the original file instead of writing <name>_swapped.mkv.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Show detailed output and info-level logs.",
)
@click.option(
    "--workers",
    "-w",
    type=int,
    default=None,
    callback=_validate_workers,
    help="Number of files processed in parallel (default: from config or 2).",
)
@click.option(
    "--exact-match",
    is_flag=True,
    default=False,
    help="Require the full language code to match (default: prefix match).",
)
@click.option(
    "--clear-other-defaults",
    is_flag=True,
    default=False,
    help="Clear the default flag of the other tracks of a swapped type.",
)
@click.option(
    "--skip-unchanged",
    is_flag=True,
    default=False,
    help="Do not remux files where no track needs to move.",
)
@click.option(
    "--profile",
    default=None,
    help="Use named profile from ~/.tracks-swapper/profiles/.",
)
@click.option(
    "--json",
    "-j",
    "json_output",
    is_flag=True,
    default=False,
    help="Output in JSON format.",
)
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.pass_context
def swap_command(
    ctx: click.Context,
    audio: str | None,
    subtitles: str | None,
    overwrite: bool,
    verbose: bool,
    workers: int | None,
    exact_match: bool,
    clear_other_defaults: bool,
    skip_unchanged: bool,
    profile: str | None,
    json_output: bool,
    paths: tuple[Path, ...],
) -> None:
    """Put the preferred audio/subtitle tracks first in MKV files.

    PATHS can be files or directories (searched recursively).

    Examples:

        tracks-swapper swap -a jpn -s eng movie.mkv

        tracks-swapper swap -a en -f /media/anime/

        tracks-swapper swap --profile anime -w 4 /media/anime/
    """
    config: SwapperConfig = ctx.obj["config"]
    if verbose:
        configure_cli_logging(ctx, verbose=True)

    swap_config = _resolve_swap_config(ctx, config, profile, json_output)
    if swap_config.audio_language is None and swap_config.subtitles_language is None:
        info_output(NO_LANGUAGE_MESSAGE, json_output)
        return

    if not paths:
        info_output(NO_PATH_MESSAGE, json_output)
        return

    files = discover_files(paths, config.processing.extensions)
    if not files:
        error_exit(NO_FILE_MESSAGE, ExitCode.TARGET_NOT_FOUND, json_output)

    settings = SwapSettings(
        preferences=LanguagePreferences(
            audio=swap_config.audio_language,
            subtitles=swap_config.subtitles_language,
            match=swap_config.language_match,
        ),
        overwrite=swap_config.overwrite,
        clear_other_defaults=swap_config.clear_other_defaults,
        skip_unchanged=swap_config.skip_unchanged,
    )
    effective_workers = resolve_worker_count(workers, config.processing.workers)
    processor = FileProcessor.from_config(config, settings)

    if verbose and not json_output:
        click.echo(f"Files: {len(files)}")
        click.echo(f"Workers: {effective_workers}")
        click.echo(f"Mode: {'overwrite' if settings.overwrite else 'copy'}")
        click.echo("")

    progress = ProgressTracker(
        total=len(files),
        enabled=not json_output and not verbose and _is_interactive(),
    )

    def on_result(result: FileResult) -> None:
        # With the progress line active, only failures are listed per file.
        if json_output or (progress.enabled and result.success):
            return
        with _output_lock:
            if progress.enabled:
                click.echo("", err=True)
            click.echo(_format_result_human(result, verbose))

    summary = run_batch(
        files,
        processor,
        workers=effective_workers,
        cancel_event=threading.Event(),
        on_result=on_result,
        progress=progress,
    )
    progress.finish()

    if json_output:
        output = {
            "workers": effective_workers,
            "summary": {
                "total": len(summary.results),
                "success": summary.success_count,
                "failed": summary.fail_count,
                "duration_seconds": round(summary.duration_seconds, 2),
                "interrupted": summary.interrupted,
            },
            "results": [_format_result_json(r) for r in summary.results],
        }
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo("")
        msg = (
            f"Processed {len(summary.results)} file(s): "
            f"{summary.success_count} ok, {summary.fail_count} failed"
        )
        click.echo(f"{msg} in {summary.duration_seconds:.1f}s")
        if summary.interrupted:
            click.echo("(Interrupted before all files were processed)")

    if summary.interrupted:
        sys.exit(ExitCode.INTERRUPTED)
    if summary.fail_count > 0:
        sys.exit(ExitCode.OPERATION_FAILED)
    sys.exit(ExitCode.SUCCESS)
