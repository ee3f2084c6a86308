"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
from pathlib import Path

from lightfix.codec.reader import read_plugin_path
from lightfix.codec.writer import write_plugin_path
from lightfix.core.changelog import LOG_NAME, write_changelog
from lightfix.core.errors import PluginIOError
from lightfix.core.installer import install_plugin
from lightfix.core.model import (
    FixResult,
    LightChange,
    LightFixConfig,
    PluginFile,
    Record,
    RecordKind,
    RunResult,
)
from lightfix.core.transform import describe_light_change, transform_cell, transform_light

LOGGER = logging.getLogger(__name__)


class LightFixService:
    def __init__(
        self,
        config: LightFixConfig | None = None,
        *,
        openmw_cfg: Path | None = None,
    ) -> None:
        self.config = config or LightFixConfig()
        self.openmw_cfg = openmw_cfg

    def fix_plugin(self, plugin: PluginFile) -> FixResult:
        """Apply the light and cell transforms, keeping record order."""
        records: list[Record] = []
        light_changes: list[LightChange] = []
        cell_changes: list[str] = []

        for record in plugin.records:
            fixed = record
            if record.kind is RecordKind.LIGHT:
                fixed = transform_light(record, self.config)  # type: ignore[arg-type]
                if fixed != record:
                    light_changes.append(describe_light_change(record, fixed))  # type: ignore[arg-type]
            elif record.kind is RecordKind.CELL and record.is_interior:  # type: ignore[union-attr]
                fixed = transform_cell(record, self.config)  # type: ignore[arg-type]
                if fixed != record:
                    cell_changes.append(record.id)  # type: ignore[union-attr]
            records.append(fixed)

        return FixResult(
            plugin=PluginFile(records=tuple(records)),
            light_changes=tuple(light_changes),
            cell_changes=tuple(cell_changes),
        )

    def run(
        self,
        input_path: Path,
        output_path: Path,
        log_path: Path | None = None,
    ) -> RunResult:
        """Read ``input_path``, fix it, and write the result to ``output_path``.

        The input is never modified. Output is written atomically, so a
        failure at any step leaves no partial plugin behind.
        """
        if input_path.resolve() == output_path.resolve():
            raise PluginIOError(
                f"Refusing to overwrite the input plugin {input_path}; choose a different output path",
                output_path,
            )

        plugin = read_plugin_path(input_path)
        result = self.fix_plugin(plugin)
        bytes_written = write_plugin_path(result.plugin, output_path)
        LOGGER.info(
            "Fixed %d lights and %d cells; wrote %s",
            len(result.light_changes),
            len(result.cell_changes),
            output_path,
        )

        written_log: Path | None = None
        if self.config.save_log:
            written_log = write_changelog(
                log_path or output_path.parent / LOG_NAME,
                result,
                input_path,
                output_path,
            )
            LOGGER.info("Saved change log to %s", written_log)

        installed: Path | None = None
        if self.config.auto_install:
            if self.openmw_cfg is None:
                LOGGER.warning("auto_install is set but no openmw.cfg was found; skipping install")
            else:
                installed = install_plugin(output_path, self.openmw_cfg).plugin_path

        return RunResult(
            input_path=input_path,
            output_path=output_path,
            bytes_written=bytes_written,
            records=len(result.plugin.records),
            lights_changed=len(result.light_changes),
            cells_changed=len(result.cell_changes),
            log_path=written_log,
            installed_path=installed,
        )

    def inspect(self, input_path: Path) -> PluginFile:
        return read_plugin_path(input_path)
