"""openmw.cfg discovery and installing the generated plugin into the load order."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from lightfix.core.errors import InstallError, LightfixError
from lightfix.core.files import atomic_write_bytes, atomic_write_text, read_bytes

OPENMW_CFG_NAME = "openmw.cfg"
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallResult:
    plugin_path: Path
    enabled: bool


def resolve_openmw_cfg(explicit: Path | None = None) -> Path | None:
    """Locate openmw.cfg.

    Lookup order: ``explicit`` (a file, or a directory holding one), the
    ``OPENMW_CONFIG`` and ``OPENMW_CONFIG_DIR`` environment variables, then the
    working directory.
    """
    if explicit is not None:
        candidate = explicit / OPENMW_CFG_NAME if explicit.is_dir() else explicit
        if not candidate.is_file():
            raise InstallError(f"No {OPENMW_CFG_NAME} found at {explicit}")
        return candidate

    env_file = os.environ.get("OPENMW_CONFIG")
    if env_file and Path(env_file).is_file():
        return Path(env_file)
    env_dir = os.environ.get("OPENMW_CONFIG_DIR")
    if env_dir and (Path(env_dir) / OPENMW_CFG_NAME).is_file():
        return Path(env_dir) / OPENMW_CFG_NAME

    cwd_cfg = Path.cwd() / OPENMW_CFG_NAME
    if cwd_cfg.is_file():
        return cwd_cfg
    return None


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1].replace('&"', '"').replace("&&", "&")
    return value


def read_openmw_cfg(path: Path) -> list[tuple[str, str]]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise InstallError(f"Could not read {path}: {exc}") from exc

    entries: list[tuple[str, str]] = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        entries.append((key.strip(), _unquote(value)))
    return entries


def data_local_dir(cfg_path: Path) -> Path | None:
    values = [value for key, value in read_openmw_cfg(cfg_path) if key == "data-local"]
    if not values:
        return None
    value = values[-1]
    # ?userdata? style tokens are expanded by the engine; we do not guess them.
    if "?" in value:
        LOGGER.debug("Not expanding data-local token path %s", value)
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else cfg_path.parent / path


def content_files(cfg_path: Path) -> list[str]:
    return [value for key, value in read_openmw_cfg(cfg_path) if key == "content"]


def enable_plugin(cfg_path: Path, plugin_name: str) -> bool:
    """Append ``content=<plugin_name>`` unless it is already listed."""
    if any(name.lower() == plugin_name.lower() for name in content_files(cfg_path)):
        LOGGER.debug("%s already enabled in %s", plugin_name, cfg_path)
        return False
    try:
        text = cfg_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InstallError(f"Could not read {cfg_path}: {exc}") from exc
    if text and not text.endswith("\n"):
        text += "\n"
    try:
        atomic_write_text(cfg_path, f"{text}content={plugin_name}\n")
    except LightfixError as exc:
        raise InstallError(f"Could not enable {plugin_name} in {cfg_path}: {exc}") from exc
    LOGGER.info("Enabled %s in %s", plugin_name, cfg_path)
    return True


def install_plugin(plugin_path: Path, cfg_path: Path) -> InstallResult:
    """Copy the plugin into data-local (when configured) and enable it."""
    installed = plugin_path
    target_dir = data_local_dir(cfg_path)
    if target_dir is not None and target_dir.resolve() != plugin_path.parent.resolve():
        installed = target_dir / plugin_path.name
        try:
            atomic_write_bytes(installed, read_bytes(plugin_path))
        except LightfixError as exc:
            raise InstallError(f"Could not install {plugin_path.name} into {target_dir}: {exc}") from exc
        LOGGER.info("Installed %s into %s", plugin_path.name, target_dir)
    enabled = enable_plugin(cfg_path, plugin_path.name)
    return InstallResult(plugin_path=installed, enabled=enabled)
