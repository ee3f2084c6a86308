"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import typer

from lightfix import __version__
from lightfix.core.config_loader import config_search_dirs, load_config
from lightfix.core.errors import LightfixError, PluginIOError
from lightfix.core.files import PLUGIN_NAME, is_fixable_plugin
from lightfix.core.installer import data_local_dir, resolve_openmw_cfg
from lightfix.core.model import LightFlag
from lightfix.core.service import LightFixService

app = typer.Typer(help="Normalize light sources in TES3/OpenMW plugins")


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug or os.environ.get("LIGHTFIX_DEBUG") else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _flag_override(enable: bool, disable: bool) -> bool | None:
    if enable and disable:
        raise typer.BadParameter("Conflicting flags given")
    if enable:
        return True
    if disable:
        return False
    return None


@app.command("generate")
def generate(
    input_path: Path = typer.Argument(..., help="Plugin to read (.esp, .esm, .omwaddon, .omwgame)"),
    output: Path = typer.Option(Path(PLUGIN_NAME), "--output", "-o", help="Where to write the fixed plugin"),
    openmw_cfg: Path | None = typer.Option(None, "--openmw-cfg", "-c", help="openmw.cfg file or its directory"),
    config_dir: list[Path] | None = typer.Option(
        None,
        "--config-dir",
        help="Directory to search for lightconfig.toml; repeat to set the search order",
    ),
    no_flicker: bool = typer.Option(False, "--no-flicker", "-f", help="Strip flicker flags from all lights"),
    keep_flicker: bool = typer.Option(False, "--keep-flicker", help="Leave flicker flags alone"),
    write_log: bool = typer.Option(False, "--write-log", "-l", help="Save a log of every changed light"),
    auto_install: bool = typer.Option(False, "--auto-install", "-e", help="Install and enable the output in openmw.cfg"),
    classic: bool = typer.Option(False, "--classic", help="Legacy shader mode: radius 2.0 for standard lights, no interior sun"),
    standard_hue: float | None = typer.Option(None, "--standard-hue", help="Hue multiplier for standard lights"),
    standard_saturation: float | None = typer.Option(None, "--standard-saturation", "-s", help="Saturation multiplier for standard lights"),
    standard_value: float | None = typer.Option(None, "--standard-value", "-v", help="Value multiplier for standard lights"),
    standard_radius: float | None = typer.Option(None, "--standard-radius", "-r", help="Radius multiplier for standard lights"),
    colored_hue: float | None = typer.Option(None, "--colored-hue", "-H", help="Hue multiplier for colored lights"),
    colored_saturation: float | None = typer.Option(None, "--colored-saturation", "-S", help="Saturation multiplier for colored lights"),
    colored_value: float | None = typer.Option(None, "--colored-value", "-V", help="Value multiplier for colored lights"),
    colored_radius: float | None = typer.Option(None, "--colored-radius", "-R", help="Radius multiplier for colored lights"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Verbose logging"),
) -> None:
    """Write a copy of INPUT_PATH with normalized lights.

    Values given on the command line override lightconfig.toml.
    """
    _configure_logging(debug)
    overrides: dict[str, Any] = {
        "disable_flickering": _flag_override(no_flicker, keep_flicker),
        "save_log": True if write_log else None,
        "auto_install": True if auto_install else None,
        "standard_hue": standard_hue,
        "standard_saturation": standard_saturation,
        "standard_value": standard_value,
        "standard_radius": standard_radius,
        "colored_hue": colored_hue,
        "colored_saturation": colored_saturation,
        "colored_value": colored_value,
        "colored_radius": colored_radius,
    }
    try:
        if not is_fixable_plugin(input_path):
            raise PluginIOError(
                f"{input_path} is not a plugin lightfix can fix (.esp, .esm, .omwaddon, .omwgame)",
                input_path,
            )

        cfg_path = resolve_openmw_cfg(openmw_cfg)
        if config_dir:
            directories = tuple(config_dir)
        else:
            directories = config_search_dirs(
                openmw_cfg_dir=cfg_path.parent if cfg_path else None,
                data_local_dir=data_local_dir(cfg_path) if cfg_path else None,
            )
        loaded = load_config(
            directories,
            overrides=overrides,
            classic=classic,
            write_default_to=cfg_path.parent if cfg_path else None,
        )
        if loaded.written_default:
            typer.echo(f"Wrote default light config to {loaded.written_default}")

        service = LightFixService(loaded.config, openmw_cfg=cfg_path)
        result = service.run(input_path, output)
        typer.echo(
            f"Fixed {result.lights_changed} lights and {result.cells_changed} interior cells "
            f"across {result.records} records"
        )
        typer.echo(f"Wrote {result.output_path}")
        if result.log_path:
            typer.echo(f"Change log: {result.log_path}")
        if result.installed_path:
            typer.echo(f"Installed: {result.installed_path}")
    except LightfixError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("inspect")
def inspect_plugin(
    input_path: Path = typer.Argument(..., help="Plugin to summarize"),
) -> None:
    """Summarize the records, lights and cells in a plugin."""
    try:
        plugin = LightFixService().inspect(input_path)
        header = plugin.header
        if header is not None:
            typer.echo(f"Author: {header.data.author_text}")
            typer.echo(f"Description: {header.data.description_text}")
            if header.masters:
                typer.echo(f"Masters: {', '.join(header.masters)}")

        typer.echo(f"Records: {len(plugin.records)}")
        for tag, count in sorted(plugin.tag_census().items()):
            typer.echo(f"  {tag}: {count}")

        lights = list(plugin.lights())
        negative = sum(1 for light in lights if light.data.has_flag(LightFlag.NEGATIVE))
        flickering = sum(
            1
            for light in lights
            if light.data.has_flag(LightFlag.FLICKER) or light.data.has_flag(LightFlag.FLICKER_SLOW)
        )
        interiors = sum(1 for cell in plugin.cells() if cell.is_interior)
        typer.echo(f"Lights: {len(lights)} ({negative} negative, {flickering} flickering)")
        typer.echo(f"Interior cells: {interiors}")
    except LightfixError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("version")
def version() -> None:
    """Print the lightfix version."""
    typer.echo(f"lightfix {__version__}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
