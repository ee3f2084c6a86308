"""Filesystem helpers: guarded reads and atomic writes via temp file + os.replace()."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from lightfix.core.errors import PluginIOError

PLUGIN_NAME = "LightFixes.omwaddon"
# Output name used by earlier releases; still our own output when found in a load order.
LEGACY_PLUGIN_NAMES = frozenset({"s3lightfixes.omwaddon"})
PLUGIN_EXTENSIONS = frozenset({".esp", ".esm", ".omwaddon", ".omwgame"})
LOGGER = logging.getLogger(__name__)


def is_fixable_plugin(path: Path) -> bool:
    """Whether ``path`` is an existing content file that is not our own output."""
    if not path.is_file():
        return False
    name = path.name.lower()
    if name == PLUGIN_NAME.lower() or name in LEGACY_PLUGIN_NAMES:
        return False
    return path.suffix.lower() in PLUGIN_EXTENSIONS


def read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise PluginIOError(f"Could not read {path}: {exc}", path) from exc


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so that readers see either the old file or the new one.

    The temp file lives beside the destination so the final rename stays on
    one filesystem. On any failure it is removed and ``path`` is untouched.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
    except OSError as exc:
        raise PluginIOError(f"Could not create output in {path.parent}: {exc}", path) from exc

    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise PluginIOError(f"Could not write {path}: {exc}", path) from exc
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    LOGGER.debug("Wrote %d bytes to %s", len(data), path)


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))
