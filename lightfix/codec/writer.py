"""Record stream writer: PluginFile -> plugin bytes.

Sizes are never carried over from decoding. Every subrecord size, record
payload size and the TES3 record count is recomputed from what is emitted.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from lightfix.codec import layout
from lightfix.core.errors import EncodeError
from lightfix.core.files import atomic_write_bytes
from lightfix.core.model import (
    AtmosphereData,
    CellData,
    Color,
    HeaderData,
    LightData,
    PluginFile,
    RawSubrecord,
    Record,
    RecordKind,
    Subrecord,
    SubrecordKind,
)

LOGGER = logging.getLogger(__name__)


def _check_u32(value: int, what: str) -> None:
    if not 0 <= value <= layout.U32_MAX:
        raise EncodeError(f"{what} {value} does not fit in an unsigned 32-bit field")


def _check_color(color: Color, what: str) -> None:
    if len(color) != 4:
        raise EncodeError(f"{what} must have 4 channels, got {len(color)}")
    for channel in color:
        if not 0 <= channel <= 255:
            raise EncodeError(f"{what} channel {channel} is outside 0..255")


def _check_fixed(value: bytes, size: int, what: str) -> None:
    if len(value) > size:
        raise EncodeError(f"{what} is {len(value)} bytes, the field holds {size}")


def _pack_raw(subrecord: RawSubrecord) -> bytes:
    return subrecord.data


def _pack_header_data(data: HeaderData) -> bytes:
    _check_fixed(data.author, layout.AUTHOR_SIZE, "HEDR author")
    _check_fixed(data.description, layout.DESCRIPTION_SIZE, "HEDR description")
    _check_u32(data.file_type, "HEDR file type")
    _check_u32(data.num_records, "HEDR record count")
    return layout.HEDR.pack(
        data.version,
        data.file_type,
        data.author,
        data.description,
        data.num_records,
    )


def _pack_light_data(data: LightData) -> bytes:
    _check_u32(data.value, "LHDT value")
    _check_u32(data.radius, "LHDT radius")
    _check_u32(data.flags, "LHDT flags")
    _check_color(data.color, "LHDT color")
    return layout.LHDT.pack(
        data.weight,
        data.value,
        data.time,
        data.radius,
        *data.color,
        data.flags,
    )


def _pack_cell_data(data: CellData) -> bytes:
    _check_u32(data.flags, "CELL flags")
    return layout.CELL_DATA.pack(data.flags, data.grid_x, data.grid_y)


def _pack_atmosphere(data: AtmosphereData) -> bytes:
    _check_color(data.ambient, "AMBI ambient")
    _check_color(data.sunlight, "AMBI sunlight")
    _check_color(data.fog_color, "AMBI fog color")
    return layout.AMBI.pack(*data.ambient, *data.sunlight, *data.fog_color, data.fog_density)


_SUBRECORD_PACKERS: dict[SubrecordKind, Callable[..., bytes]] = {
    SubrecordKind.RAW: _pack_raw,
    SubrecordKind.HEADER_DATA: _pack_header_data,
    SubrecordKind.LIGHT_DATA: _pack_light_data,
    SubrecordKind.CELL_DATA: _pack_cell_data,
    SubrecordKind.ATMOSPHERE_DATA: _pack_atmosphere,
}


def encode_subrecord(subrecord: Subrecord) -> bytes:
    try:
        data = _SUBRECORD_PACKERS[subrecord.kind](subrecord)
    except struct.error as exc:
        raise EncodeError(f"Could not pack {subrecord.tag} subrecord: {exc}") from exc
    _check_u32(len(data), f"{subrecord.tag} subrecord size")
    return layout.SUBRECORD_HEADER.pack(layout.encode_tag(subrecord.tag), len(data)) + data


def _encode_structured(record: Record) -> bytes:
    payload = b"".join(encode_subrecord(s) for s in record.subrecords)  # type: ignore[union-attr]
    header = record.header  # type: ignore[union-attr]
    _check_u32(len(payload), f"{header.tag} record size")
    _check_u32(header.header1, f"{header.tag} header1")
    _check_u32(header.flags, f"{header.tag} flags")
    return (
        layout.RECORD_HEADER.pack(layout.encode_tag(header.tag), len(payload), header.header1, header.flags)
        + payload
    )


def _encode_opaque(record: Record) -> bytes:
    return record.raw  # type: ignore[union-attr]


_RECORD_ENCODERS: dict[RecordKind, Callable[[Record], bytes]] = {
    RecordKind.HEADER: _encode_structured,
    RecordKind.LIGHT: _encode_structured,
    RecordKind.CELL: _encode_structured,
    RecordKind.OPAQUE: _encode_opaque,
}


def encode_record(record: Record) -> bytes:
    return _RECORD_ENCODERS[record.kind](record)


def _with_record_count(plugin: PluginFile) -> PluginFile:
    header = plugin.header
    if header is None:
        return plugin
    count = len(plugin.records) - 1
    if header.data.num_records == count:
        return plugin
    LOGGER.debug("Updating HEDR record count from %d to %d", header.data.num_records, count)
    fixed = header.with_data(replace(header.data, num_records=count))
    return replace(plugin, records=(fixed, *plugin.records[1:]))


def write_plugin(plugin: PluginFile) -> bytes:
    """Encode ``plugin`` to bytes, fixing up the TES3 record count.

    Raises:
        EncodeError: a field value cannot be represented in the format.
    """
    plugin = _with_record_count(plugin)
    return b"".join(encode_record(record) for record in plugin.records)


def write_plugin_path(plugin: PluginFile, path: Path) -> int:
    data = write_plugin(plugin)
    atomic_write_bytes(path, data)
    return len(data)
