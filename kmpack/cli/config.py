import click
from dataclasses import asdict
from kmpack.config import load_config, parse_setting
from kmpack.settings import load_global_settings, save_settings
from kmpack.projects import find_project_dir


@click.group()
def config() -> None:
    """Show and change build settings."""
    pass


@config.command(name="list")
def list_config_cmd() -> None:
    """List the effective build configuration.

    Values come from KMPACK_* environment variables, then project settings,
    then global settings, then the built-in defaults.
    """
    effective = asdict(load_config(find_project_dir()))
    for k, v in effective.items():
        click.echo(f"{k}: {v}")


@config.command(name="get")
@click.argument("key")
def get_config_cmd(key: str) -> None:
    """Get the effective configuration for the given key."""
    effective = asdict(load_config(find_project_dir()))
    if key in effective:
        click.echo(effective[key])
    else:
        click.echo(f"Key '{key}' not found.")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_config_cmd(key: str, value: str) -> None:
    """Set a global configuration value.

    The change is saved to ~/.kmpack/settings.json. Project-level overrides
    must be managed via manual file edits or environment variables.
    """
    try:
        parsed_value = parse_setting(key, value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'KEY' / 'VALUE'") from e
    settings = load_global_settings()
    settings[key] = parsed_value
    save_settings(settings)
    click.echo(f"Set global {key} to {parsed_value}")
