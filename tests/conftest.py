from __future__ import annotations

import struct
from pathlib import Path
from types import SimpleNamespace

import pytest


def subrecord(tag: str, data: bytes) -> bytes:
    return tag.encode("latin-1") + struct.pack("<I", len(data)) + data


def record(tag: str, *subrecords: bytes, header1: int = 0, flags: int = 0) -> bytes:
    payload = b"".join(subrecords)
    return tag.encode("latin-1") + struct.pack("<III", len(payload), header1, flags) + payload


def zstring(text: str) -> bytes:
    return text.encode("cp1252") + b"\0"


def tes3(num_records: int, *, masters: tuple[tuple[str, int], ...] = ()) -> bytes:
    hedr = struct.pack(
        "<fI32s256sI",
        1.3,
        0,
        b"tester",
        b"fixture plugin",
        num_records,
    )
    extra = b"".join(
        subrecord("MAST", zstring(name)) + subrecord("DATA", struct.pack("<Q", size))
        for name, size in masters
    )
    return record("TES3", subrecord("HEDR", hedr) + extra)


def lhdt(
    color: tuple[int, int, int] = (255, 200, 120),
    radius: int = 256,
    flags: int = 0,
    *,
    reserved: int = 0,
    weight: float = 1.0,
    value: int = 5,
    time: int = -1,
) -> bytes:
    return struct.pack("<fIiI4BI", weight, value, time, radius, *color, reserved, flags)


def light(
    light_id: str = "light_torch",
    color: tuple[int, int, int] = (255, 200, 120),
    radius: int = 256,
    flags: int = 0,
    *,
    reserved: int = 0,
    extra: bytes = b"",
) -> bytes:
    return record(
        "LIGH",
        subrecord("NAME", zstring(light_id)),
        subrecord("MODL", zstring("l\\torch.nif")),
        subrecord("LHDT", lhdt(color, radius, flags, reserved=reserved)),
        extra,
    )


def ambi(
    ambient: tuple[int, int, int, int] = (40, 40, 40, 0),
    sunlight: tuple[int, int, int, int] = (120, 90, 60, 0),
    fog: tuple[int, int, int, int] = (10, 10, 10, 0),
    density: float = 0.5,
) -> bytes:
    return struct.pack("<4B4B4Bf", *ambient, *sunlight, *fog, density)


def cell(
    name: str = "Balmora, Guild of Mages",
    flags: int = 0x01,
    *,
    sunlight: tuple[int, int, int, int] = (120, 90, 60, 0),
    references: bytes = b"",
) -> bytes:
    return record(
        "CELL",
        subrecord("NAME", zstring(name)),
        subrecord("DATA", struct.pack("<Iii", flags, 0, 0)),
        subrecord("AMBI", ambi(sunlight=sunlight)),
        references,
    )


def reference(ref_index: int, object_id: str) -> bytes:
    return (
        subrecord("FRMR", struct.pack("<I", ref_index))
        + subrecord("NAME", zstring(object_id))
        + subrecord("DATA", struct.pack("<6f", 1.0, 2.0, 3.0, 0.0, 0.0, 0.0))
    )


def plugin(*records: bytes, num_records: int | None = None) -> bytes:
    count = len(records) if num_records is None else num_records
    return tes3(count) + b"".join(records)


@pytest.fixture
def esp() -> SimpleNamespace:
    """Builders for hand-assembled TES3 plugin bytes."""
    return SimpleNamespace(
        subrecord=subrecord,
        record=record,
        zstring=zstring,
        tes3=tes3,
        lhdt=lhdt,
        light=light,
        ambi=ambi,
        cell=cell,
        reference=reference,
        plugin=plugin,
    )


@pytest.fixture
def sample_plugin(esp: SimpleNamespace) -> bytes:
    return esp.plugin(
        esp.record("GMST", esp.subrecord("NAME", esp.zstring("fLightRadius")), esp.subrecord("FLTV", b"\x00\x00\x80?")),
        esp.light("light_torch", (255, 170, 80), 300, 0x08 | 0x10),
        esp.light("light_grey", (128, 128, 128), 200, 0x40),
        esp.light("light_negative", (10, 20, 30), 500, 0x04 | 0x08),
        esp.cell("Caldera, Ghorak Manor", 0x01, references=esp.reference(1, "light_torch")),
        esp.cell("", 0x00),
        esp.record("ZZZZ", esp.subrecord("WHAT", b"\xde\xad\xbe\xef")),
    )


@pytest.fixture
def sample_path(tmp_path: Path, sample_plugin: bytes) -> Path:
    path = tmp_path / "Sample.esp"
    path.write_bytes(sample_plugin)
    return path
