"""Administrative ``clipipe`` command: user config and registration sentinels.

Programs built on clipipe never need this; it is for people tuning the
built-in middleware on their machine::

    clipipe config show
    clipipe config set max_typo_distance 2
    clipipe config reset --force
    clipipe registration status
    clipipe registration clear

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import json

import typer
from pydantic import ValidationError

from clipipe import __version__
from clipipe.exit_codes import EXIT_INVALID_USAGE
from clipipe.output import Console

app = typer.Typer(
    name="clipipe",
    help="Manage clipipe's user configuration and suggest-tool registration.",
    no_args_is_help=True,
    add_completion=False,
)
config_app = typer.Typer(no_args_is_help=True)
registration_app = typer.Typer(no_args_is_help=True)

app.add_typer(config_app, name="config", help="Configuration management.")
app.add_typer(registration_app, name="registration", help="Suggest-tool registration sentinels.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"clipipe {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Root callback executed before every sub-command."""


# ------------------------------------------------------------------ #
# config
# ------------------------------------------------------------------ #


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Prints the config file path followed by the configuration resolved from
    the file and the ``CLIPIPE_*`` environment variables, as JSON.
    """
    from clipipe.config import get_config_dir, resolve_config

    console = Console()
    console.write_error(f"Config directory: {get_config_dir()}")
    console.write_out(json.dumps(resolve_config().model_dump(mode="json"), indent=2))


@config_app.command("path")
def config_path() -> None:
    """Print the path of the user config file."""
    from clipipe.config import get_config_dir

    Console().write_out(str(get_config_dir() / "config.json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key, e.g. 'max_typo_distance'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a value in the user config file.

    The value is validated (and coerced) against
    :class:`~clipipe.models.PipelineConfig` before saving.

    Raises:
        typer.Exit: With code 2 for an unknown key or an invalid value.

    Example::

        clipipe config set max_typo_distance 2
        clipipe config set enable_directives false
    """
    from clipipe.config import load_user_config, save_user_config
    from clipipe.models import PipelineConfig

    console = Console()
    if key not in PipelineConfig.model_fields:
        console.write_error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    data = load_user_config().model_dump(mode="json")
    data[key] = value
    try:
        config = PipelineConfig.model_validate(data)
    except ValidationError as exc:
        console.write_error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_user_config(config)
    console.write_out(f"Set {key} = {getattr(config, key)}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the user config file to defaults."""
    from clipipe.config import save_user_config
    from clipipe.models import PipelineConfig

    console = Console()
    if not force and not typer.confirm("Reset all config to defaults?"):
        console.write_error("Cancelled.")
        raise typer.Exit()

    save_user_config(PipelineConfig())
    console.write_out("Configuration reset to defaults.")


# ------------------------------------------------------------------ #
# registration
# ------------------------------------------------------------------ #


@registration_app.command("status")
def registration_status() -> None:
    """List the recorded registration outcomes, one sentinel per line."""
    from clipipe.suggest.registration import list_sentinels

    console = Console()
    sentinels = list_sentinels()
    if not sentinels:
        console.write_error("No registrations recorded.")
        return
    for path in sentinels:
        first_line = path.read_text(encoding="utf-8").split("\n", 1)[0]
        console.write_out(f"{path.name}: {first_line}")


@registration_app.command("clear")
def registration_clear() -> None:
    """Delete every sentinel so programs register again on their next run."""
    from clipipe.suggest.registration import clear_sentinels

    removed = clear_sentinels()
    Console().write_out(f"Removed {removed} sentinel(s).")


def main() -> None:
    """Console-script entry point."""
    app()
