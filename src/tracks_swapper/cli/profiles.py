"""CLI commands for swap profiles."""

import json

import click

from tracks_swapper.config import (
    ProfileError,
    get_profiles_directory,
    list_profiles,
    load_profile,
)


@click.group("profiles")
def profiles_group() -> None:
    """Manage swap profiles for different libraries."""
    pass


@profiles_group.command("list")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output in JSON format.",
)
def list_profiles_cmd(json_output: bool) -> None:
    """List available swap profiles.

    Profiles are stored in ~/.tracks-swapper/profiles/ as YAML files.

    Examples:

        # List all profiles
        tracks-swapper profiles list

        # Output as JSON
        tracks-swapper profiles list --json
    """
    profiles_dir = get_profiles_directory()
    profile_names = list_profiles(profiles_dir)

    if json_output:
        _output_profiles_json(profile_names)
        return

    if not profile_names:
        click.echo(f"No profiles found in {profiles_dir}")
        click.echo("\nTo create a profile, add a YAML file to the profiles directory.")
        click.echo("Example: ~/.tracks-swapper/profiles/anime.yaml")
        return

    click.echo(f"{'NAME':<15} {'AUDIO':<6} {'SUBS':<6} {'DESCRIPTION':<40}")
    click.echo("-" * 70)

    for name in profile_names:
        try:
            profile = load_profile(name, profiles_dir)
        except ProfileError as e:
            click.echo(f"{name:<15} {'-':<6} {'-':<6} (error: {e})")
            continue
        desc = (profile.description or "-")[:40]
        click.echo(
            f"{name:<15} {profile.audio or '-':<6} "
            f"{profile.subtitles or '-':<6} {desc:<40}"
        )


def _output_profiles_json(profile_names: list[str]) -> None:
    """Output profiles list in JSON format."""
    data = []
    for name in profile_names:
        try:
            profile = load_profile(name)
        except ProfileError as e:
            data.append({"name": name, "error": str(e)})
            continue
        data.append({"name": name, **profile.model_dump(mode="json")})
    click.echo(json.dumps(data, indent=2))
