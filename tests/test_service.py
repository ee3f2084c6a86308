from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from lightfix.codec.reader import read_plugin
from lightfix.codec.writer import write_plugin
from lightfix.core.errors import FormatError, PluginIOError
from lightfix.core.model import LightFixConfig, PluginFile, RecordKind
from lightfix.core.service import LightFixService
from lightfix.core.transform import transform_cell, transform_light


def _expected_output(data: bytes, config: LightFixConfig) -> bytes:
    records = []
    for record in read_plugin(data).records:
        if record.kind is RecordKind.LIGHT:
            record = transform_light(record, config)
        elif record.kind is RecordKind.CELL and record.is_interior:
            record = transform_cell(record, config)
        records.append(record)
    return write_plugin(PluginFile(records=tuple(records)))


def test_run_writes_transformed_plugin(tmp_path: Path, sample_path: Path, sample_plugin: bytes) -> None:
    output = tmp_path / "out" / "LightFixes.omwaddon"
    config = LightFixConfig()

    result = LightFixService(config).run(sample_path, output)

    assert output.read_bytes() == _expected_output(sample_plugin, config)
    assert result.bytes_written == output.stat().st_size
    assert result.records == 8
    assert result.lights_changed == 3
    assert result.cells_changed == 1
    assert result.log_path is None
    assert result.installed_path is None
    # input untouched
    assert sample_path.read_bytes() == sample_plugin


def test_run_keeps_opaque_records_and_order(tmp_path: Path, sample_path: Path) -> None:
    output = tmp_path / "LightFixes.omwaddon"
    LightFixService().run(sample_path, output)

    before = read_plugin(sample_path.read_bytes())
    after = read_plugin(output.read_bytes())
    assert [r.tag for r in after.records] == [r.tag for r in before.records]
    assert after.records[1] == before.records[1]
    assert after.records[-1] == before.records[-1]
    assert after.header.data.num_records == 7
    # exterior cells are left alone
    assert after.records[6] == before.records[6]


def test_fix_plugin_reports_changes(sample_plugin: bytes) -> None:
    result = LightFixService().fix_plugin(read_plugin(sample_plugin))
    assert [c.id for c in result.light_changes] == ["light_torch", "light_grey", "light_negative"]
    assert [c.classification for c in result.light_changes] == ["colored", "standard", "negative"]
    assert result.cell_changes == ("Caldera, Ghorak Manor",)


def test_run_saves_yaml_change_log(tmp_path: Path, sample_path: Path) -> None:
    output = tmp_path / "LightFixes.omwaddon"
    result = LightFixService(LightFixConfig(save_log=True)).run(sample_path, output)

    assert result.log_path == tmp_path / "lightconfig.log"
    doc = yaml.safe_load(result.log_path.read_text(encoding="utf-8"))
    assert doc["source"] == str(sample_path)
    assert doc["output"] == str(output)
    assert doc["cells"] == ["Caldera, Ghorak Manor"]

    negative = next(entry for entry in doc["lights"] if entry["id"] == "light_negative")
    assert negative["classification"] == "negative"
    assert negative["before"]["radius"] == 500
    assert negative["after"]["radius"] == 0
    assert "NEGATIVE" in negative["before"]["flags"]
    assert "NEGATIVE" not in negative["after"]["flags"]

    torch = next(entry for entry in doc["lights"] if entry["id"] == "light_torch")
    assert torch["before"]["color"] == [255, 170, 80, 0]
    assert "FLICKER" not in torch["after"]["flags"]


def test_run_refuses_to_overwrite_input(sample_path: Path, sample_plugin: bytes) -> None:
    with pytest.raises(PluginIOError, match="Refusing to overwrite"):
        LightFixService().run(sample_path, sample_path)
    assert sample_path.read_bytes() == sample_plugin


def test_malformed_input_leaves_no_output(tmp_path: Path, esp) -> None:
    broken = tmp_path / "Broken.esp"
    broken.write_bytes(esp.plugin(esp.light())[:-3])
    output = tmp_path / "out" / "LightFixes.omwaddon"

    with pytest.raises(FormatError):
        LightFixService().run(broken, output)
    assert not output.exists()
    assert not output.parent.exists() or list(output.parent.iterdir()) == []


def test_failed_replace_leaves_no_partial_output(
    tmp_path: Path, sample_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    output = tmp_path / "out" / "LightFixes.omwaddon"

    def broken_replace(src: str, dst: str) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(PluginIOError, match="disk full"):
        LightFixService().run(sample_path, output)
    assert list(output.parent.iterdir()) == []


def test_auto_install_enables_plugin(tmp_path: Path, sample_path: Path) -> None:
    data_local = tmp_path / "data"
    cfg = tmp_path / "openmw.cfg"
    cfg.write_text(f'data-local="{data_local}"\ncontent=Morrowind.esm\n', encoding="utf-8")
    output = tmp_path / "build" / "LightFixes.omwaddon"

    result = LightFixService(LightFixConfig(auto_install=True), openmw_cfg=cfg).run(sample_path, output)

    assert result.installed_path == data_local / "LightFixes.omwaddon"
    assert result.installed_path.read_bytes() == output.read_bytes()
    assert cfg.read_text(encoding="utf-8").splitlines()[-1] == "content=LightFixes.omwaddon"


def test_auto_install_without_cfg_is_skipped(tmp_path: Path, sample_path: Path) -> None:
    output = tmp_path / "LightFixes.omwaddon"
    result = LightFixService(LightFixConfig(auto_install=True)).run(sample_path, output)
    assert result.installed_path is None
    assert output.is_file()
