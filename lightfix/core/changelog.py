"""Human-readable YAML log of what a run changed."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from lightfix.core.files import atomic_write_text
from lightfix.core.model import FixResult, LightFlag, LightSnapshot

LOG_NAME = "lightconfig.log"


def _flag_names(flags: int) -> list[str]:
    names = [flag.name for flag in LightFlag if flags & flag]
    unknown = flags & ~int(sum(LightFlag))
    if unknown:
        names.append(f"0x{unknown:x}")
    return names


def _snapshot_doc(snapshot: LightSnapshot) -> dict[str, Any]:
    return {
        "color": list(snapshot.color),
        "hue": round(snapshot.hue, 2),
        "saturation": round(snapshot.saturation, 4),
        "value": round(snapshot.value, 4),
        "radius": snapshot.radius,
        "flags": _flag_names(snapshot.flags),
    }


def render_changelog(result: FixResult, source: Path, output: Path) -> str:
    doc = {
        "source": str(source),
        "output": str(output),
        "lights": [
            {
                "id": change.id,
                "classification": change.classification,
                "before": _snapshot_doc(change.before),
                "after": _snapshot_doc(change.after),
            }
            for change in result.light_changes
        ],
        "cells": list(result.cell_changes),
    }
    return yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)


def write_changelog(path: Path, result: FixResult, source: Path, output: Path) -> Path:
    atomic_write_text(path, render_changelog(result, source, output))
    return path
