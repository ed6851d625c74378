"""CLI module for MKV Tracks Swapper."""

import dataclasses
import logging
from pathlib import Path

import click

from tracks_swapper import __version__
from tracks_swapper.cli.exit_codes import ExitCode
from tracks_swapper.cli.output import error_exit
from tracks_swapper.config import ConfigError, LoggingConfig, get_config
from tracks_swapper.logging import configure_logging

logger = logging.getLogger(__name__)


def configure_cli_logging(ctx: click.Context, verbose: bool = False) -> LoggingConfig:
    """Install logging from the loaded config and the group's log options.

    ``verbose`` lowers the level to info unless --log-level was given.
    Raises ValueError when the merged settings are invalid.
    """
    obj = ctx.ensure_object(dict)
    config = obj["config"]
    overrides: dict = {}
    level = obj.get("log_level")
    if level is None and verbose:
        level = "info"
    if level is not None:
        overrides["level"] = level
    if obj.get("log_file") is not None:
        overrides["file"] = obj["log_file"]
    if obj.get("log_json"):
        overrides["format"] = "json"

    # replace() re-runs LoggingConfig validation
    final_config = dataclasses.replace(config.logging, **overrides)
    configure_logging(final_config)
    return final_config


@click.group()
@click.version_option(version=__version__, prog_name="tracks-swapper")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.tracks-swapper/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: warning).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """MKV Tracks Swapper - put preferred audio and subtitle tracks first."""
    ctx.ensure_object(dict)

    # Preserve a config injected by tests
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = get_config(config_path=config_path)
        except ConfigError as e:
            error_exit(str(e), ExitCode.CONFIG_ERROR)

    ctx.obj["log_level"] = log_level.lower() if log_level else None
    ctx.obj["log_file"] = log_file
    ctx.obj["log_json"] = log_json

    try:
        configure_cli_logging(ctx)
    except ValueError as e:
        error_exit(f"Invalid logging configuration: {e}", ExitCode.CONFIG_ERROR)


# Defer import to avoid circular dependency
def _register_commands():
    from tracks_swapper.cli.inspect import inspect_command
    from tracks_swapper.cli.profiles import profiles_group
    from tracks_swapper.cli.swap import swap_command

    main.add_command(inspect_command)
    main.add_command(profiles_group)
    main.add_command(swap_command)


_register_commands()
