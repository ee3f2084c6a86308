"""Light config discovery, parsing and validation for lightconfig.toml."""

from __future__ import annotations

import json
import logging
import math
import sys
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import ValidationError, validators

from lightfix.core.errors import ConfigLoadError, ConfigValidationError
from lightfix.core.files import atomic_write_text
from lightfix.core.model import LightFixConfig

DEFAULT_CONFIG_NAME = "lightconfig.toml"
CLASSIC_STANDARD_RADIUS = 2.0
_BOOL_KEYS = ("auto_install", "disable_flickering", "save_log", "disable_interior_sun")
_MULTIPLIER_KEYS = (
    "standard_hue",
    "standard_saturation",
    "standard_value",
    "standard_radius",
    "colored_hue",
    "colored_saturation",
    "colored_value",
    "colored_radius",
)
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedConfig:
    config: LightFixConfig
    source: Path | None
    written_default: Path | None = None


def _load_schema_validator() -> Any:
    schema_text = resources.files("lightfix.schemas").joinpath("lightconfig.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_text() -> str:
    return resources.files("lightfix.schemas").joinpath(DEFAULT_CONFIG_NAME).read_text(encoding="utf-8")


def config_search_dirs(
    *,
    openmw_cfg_dir: Path | None = None,
    data_local_dir: Path | None = None,
    executable_dir: Path | None = None,
) -> tuple[Path, ...]:
    """Candidate directories in lookup order: executable, openmw.cfg, data-local."""
    if executable_dir is None:
        executable_dir = Path(sys.argv[0]).resolve().parent
    ordered: list[Path] = []
    for directory in (executable_dir, openmw_cfg_dir, data_local_dir):
        if directory is not None and directory not in ordered:
            ordered.append(directory)
    return tuple(ordered)


def find_config(directories: Iterable[Path]) -> Path | None:
    """Return the config file in the first directory that has one.

    The file name is matched case-insensitively; ``lightConfig.toml`` and
    ``lightconfig.toml`` spellings are both in circulation.
    """
    for directory in directories:
        if not directory.is_dir():
            LOGGER.debug("Skipping missing config directory %s", directory)
            continue
        for entry in sorted(directory.iterdir()):
            if entry.name.lower() == DEFAULT_CONFIG_NAME and entry.is_file():
                LOGGER.debug("Using light config %s", entry)
                return entry
        LOGGER.debug("No %s in %s", DEFAULT_CONFIG_NAME, directory)
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read light config {path}: {exc}") from exc

    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"Invalid TOML in {path}: {exc}") from exc


def build_config(
    doc: Mapping[str, Any],
    source: Path | str = "<defaults>",
    overrides: Mapping[str, Any] | None = None,
) -> LightFixConfig:
    """Validate ``doc`` with ``overrides`` layered on top and build a config.

    Override values of ``None`` mean "not given" and are skipped. Keys the
    document leaves out take the LightFixConfig defaults.
    """
    merged: dict[str, Any] = dict(doc)
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key in merged and merged[key] != value:
            LOGGER.info("Command line overrides %s=%r from %s with %r", key, merged[key], source, value)
        merged[key] = value

    validator = _load_schema_validator()
    try:
        validator.validate(merged)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    kwargs: dict[str, Any] = {}
    for key in _BOOL_KEYS:
        if key in merged:
            kwargs[key] = merged[key]
    for key in _MULTIPLIER_KEYS:
        if key in merged:
            value = float(merged[key])
            if not math.isfinite(value):
                raise ConfigValidationError(
                    f"Schema validation failed for {source} ({key}): {merged[key]!r} is not a finite number"
                )
            kwargs[key] = value
    return LightFixConfig(**kwargs)


def apply_classic(config: LightFixConfig) -> LightFixConfig:
    """Classic mode for the legacy shader pack: wide orange lights, no interior sun."""
    return replace(config, standard_radius=CLASSIC_STANDARD_RADIUS, disable_interior_sun=True)


def load_config(
    directories: Iterable[Path],
    *,
    overrides: Mapping[str, Any] | None = None,
    classic: bool = False,
    write_default_to: Path | None = None,
) -> LoadedConfig:
    """Resolve the light config for one run.

    The first directory holding a config file supplies the whole document.
    When none does, defaults are used and, if ``write_default_to`` is given,
    the packaged template is saved there for the user to edit.
    """
    source = find_config(directories)
    written: Path | None = None
    if source is not None:
        doc = _read_toml(source)
        config = build_config(doc, source, overrides)
    else:
        config = build_config({}, "<defaults>", overrides)
        if write_default_to is not None:
            written = write_default_to / DEFAULT_CONFIG_NAME
            atomic_write_text(written, default_config_text())
            LOGGER.info("No light config found; wrote defaults to %s", written)

    if classic:
        config = apply_classic(config)
    return LoadedConfig(config=config, source=source, written_default=written)
