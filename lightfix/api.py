"""Stable public API for building tooling on top of lightfix.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from lightfix.codec.reader import read_plugin, read_plugin_path
from lightfix.codec.writer import encode_record, write_plugin, write_plugin_path
from lightfix.core.config_loader import build_config, config_search_dirs, load_config
from lightfix.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    EncodeError,
    FormatError,
    InstallError,
    LightfixError,
    PluginIOError,
)
from lightfix.core.model import (
    AtmosphereData,
    CellData,
    CellFlag,
    CellRecord,
    FixResult,
    HeaderData,
    HeaderRecord,
    LightChange,
    LightData,
    LightFixConfig,
    LightFlag,
    LightRecord,
    OpaqueRecord,
    PluginFile,
    RawSubrecord,
    RecordHeader,
    RecordKind,
    RunResult,
)
from lightfix.core.service import LightFixService
from lightfix.core.transform import transform_cell, transform_light

__all__ = [
    "LightfixError",
    "FormatError",
    "EncodeError",
    "PluginIOError",
    "ConfigLoadError",
    "ConfigValidationError",
    "InstallError",
    "AtmosphereData",
    "CellData",
    "CellFlag",
    "CellRecord",
    "FixResult",
    "HeaderData",
    "HeaderRecord",
    "LightChange",
    "LightData",
    "LightFixConfig",
    "LightFlag",
    "LightRecord",
    "OpaqueRecord",
    "PluginFile",
    "RawSubrecord",
    "RecordHeader",
    "RecordKind",
    "RunResult",
    "read_plugin",
    "read_plugin_path",
    "write_plugin",
    "write_plugin_path",
    "encode_record",
    "transform_light",
    "transform_cell",
    "build_config",
    "config_search_dirs",
    "load_config",
    "Client",
]


class Client:
    """Public client for fixing plugins with one resolved configuration.

    A `Client` wraps config resolution and the read/fix/write pipeline behind
    a stable API intended for third-party tools (mod managers, launchers,
    scripts).
    """

    def __init__(
        self,
        config: LightFixConfig | None = None,
        *,
        openmw_cfg: Path | None = None,
    ) -> None:
        self._service = LightFixService(config, openmw_cfg=openmw_cfg)

    @classmethod
    def from_options(cls, options: Mapping[str, Any], *, openmw_cfg: Path | None = None) -> Client:
        """Build a client from a plain option mapping, validated like lightconfig.toml."""
        return cls(build_config(options, "<options>"), openmw_cfg=openmw_cfg)

    @property
    def config(self) -> LightFixConfig:
        return self._service.config

    def fix_bytes(self, data: bytes) -> tuple[bytes, FixResult]:
        result = self._service.fix_plugin(read_plugin(data))
        return write_plugin(result.plugin), result

    def fix_file(
        self,
        input_path: Path,
        output_path: Path,
        *,
        log_path: Path | None = None,
    ) -> RunResult:
        return self._service.run(input_path, output_path, log_path=log_path)

    def inspect(self, input_path: Path) -> PluginFile:
        return self._service.inspect(input_path)
