"""CLI output helpers shared by commands."""

from __future__ import annotations

import json
import sys
from typing import NoReturn

import click

from tracks_swapper.cli.exit_codes import ExitCode


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Print an error (JSON or human-readable) to stderr and exit with code."""
    if isinstance(code, ExitCode):
        code_name = code.name
    else:
        code_name = "UNKNOWN_ERROR"

    if json_output:
        click.echo(
            json.dumps(
                {
                    "status": "failed",
                    "error": {"code": code_name, "message": message},
                }
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(int(code))


def info_output(message: str, json_output: bool = False) -> None:
    """Print an informational message; JSON mode emits a status object."""
    if json_output:
        click.echo(json.dumps({"status": "completed", "message": message}))
    else:
        click.echo(message)
