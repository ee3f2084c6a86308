from __future__ import annotations

import struct

import pytest

from lightfix.codec.reader import read_plugin, read_plugin_path
from lightfix.core.errors import FormatError, PluginIOError
from lightfix.core.model import LightFlag, RecordKind, SubrecordKind


def test_records_are_classified_once_at_decode(sample_plugin: bytes) -> None:
    plugin = read_plugin(sample_plugin)
    kinds = [r.kind for r in plugin.records]
    assert kinds == [
        RecordKind.HEADER,
        RecordKind.OPAQUE,
        RecordKind.LIGHT,
        RecordKind.LIGHT,
        RecordKind.LIGHT,
        RecordKind.CELL,
        RecordKind.CELL,
        RecordKind.OPAQUE,
    ]
    assert plugin.header is not None
    assert plugin.header.data.num_records == 7
    assert plugin.header.data.author_text == "tester"


def test_light_fields_decoded(sample_plugin: bytes) -> None:
    torch = next(read_plugin(sample_plugin).lights())
    assert torch.id == "light_torch"
    assert torch.data.color == (255, 170, 80, 0)
    assert torch.data.radius == 300
    assert torch.data.has_flag(LightFlag.FLICKER)
    assert torch.data.has_flag(LightFlag.FIRE)
    assert not torch.data.has_flag(LightFlag.NEGATIVE)
    assert [s.tag for s in torch.subrecords] == ["NAME", "MODL", "LHDT"]


def test_cell_reference_data_stays_raw(esp) -> None:
    data = esp.plugin(esp.cell("Vivec, Arena", 0x01, references=esp.reference(7, "light_x")))
    cell = next(read_plugin(data).cells())

    assert cell.id == "Vivec, Arena"
    assert cell.is_interior
    assert cell.atmosphere is not None
    assert cell.atmosphere.sunlight == (120, 90, 60, 0)
    kinds = [s.kind for s in cell.subrecords]
    assert kinds.count(SubrecordKind.CELL_DATA) == 1
    # the reference's 24-byte DATA must not be mistaken for cell data
    assert cell.subrecords[-1].kind is SubrecordKind.RAW
    assert cell.subrecords[-1].tag == "DATA"


def test_exterior_cell_id_uses_grid(esp) -> None:
    data = esp.plugin(
        esp.record(
            "CELL",
            esp.subrecord("NAME", b"\0"),
            esp.subrecord("DATA", struct.pack("<Iii", 0x02, -3, 12)),
        )
    )
    cell = next(read_plugin(data).cells())
    assert not cell.is_interior
    assert cell.id == "-3,12"
    assert cell.atmosphere is None


def test_unknown_record_is_opaque_bytes(esp) -> None:
    unknown = esp.record("XYZW", esp.subrecord("ABCD", b"\x01\x02\x03"), flags=0x2000)
    plugin = read_plugin(esp.plugin(unknown))
    assert plugin.records[1].kind is RecordKind.OPAQUE
    assert plugin.records[1].raw == unknown


def test_deleted_light_passes_through_as_opaque(esp) -> None:
    deleted = esp.record(
        "LIGH",
        esp.subrecord("NAME", esp.zstring("light_gone")),
        esp.subrecord("DELE", b"\0\0\0\0"),
    )
    plugin = read_plugin(esp.plugin(deleted))
    assert plugin.records[1].kind is RecordKind.OPAQUE
    assert plugin.records[1].raw == deleted


def test_payload_size_past_end_rejected(esp) -> None:
    data = esp.plugin(esp.light())
    with pytest.raises(FormatError, match="claims"):
        read_plugin(data[:-4])


def test_truncated_record_header_rejected(esp) -> None:
    data = esp.plugin(esp.light()) + b"LIGH\x00\x00"
    with pytest.raises(FormatError, match="Truncated record header"):
        read_plugin(data)


def test_subrecord_overrun_rejected(esp) -> None:
    # record size is consistent, but NAME claims more than the payload holds
    bad = b"LIGH" + struct.pack("<III", 8 + 4, 0, 0) + b"NAME" + struct.pack("<I", 50) + b"abcd"
    with pytest.raises(FormatError, match="NAME"):
        read_plugin(esp.plugin(bad))


def test_light_without_lhdt_rejected(esp) -> None:
    bad = esp.record("LIGH", esp.subrecord("NAME", esp.zstring("light_broken")))
    with pytest.raises(FormatError, match="LHDT"):
        read_plugin(esp.plugin(bad))


def test_wrong_lhdt_size_rejected(esp) -> None:
    bad = esp.record(
        "LIGH",
        esp.subrecord("NAME", esp.zstring("light_short")),
        esp.subrecord("LHDT", b"\0" * 20),
    )
    with pytest.raises(FormatError, match="expected 24"):
        read_plugin(esp.plugin(bad))


def test_cell_without_data_rejected(esp) -> None:
    bad = esp.record("CELL", esp.subrecord("NAME", esp.zstring("Nowhere")))
    with pytest.raises(FormatError, match="DATA"):
        read_plugin(esp.plugin(bad))


def test_header_without_hedr_rejected(esp) -> None:
    bad = esp.record("TES3", esp.subrecord("MAST", esp.zstring("Morrowind.esm")))
    with pytest.raises(FormatError, match="HEDR"):
        read_plugin(bad)


def test_empty_buffer_is_empty_plugin() -> None:
    plugin = read_plugin(b"")
    assert plugin.records == ()
    assert plugin.header is None


def test_missing_file_raises_io_error(tmp_path) -> None:
    missing = tmp_path / "missing.esp"
    with pytest.raises(PluginIOError) as exc:
        read_plugin_path(missing)
    assert exc.value.path == missing
