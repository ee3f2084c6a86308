"""Record stream reader: plugin bytes -> PluginFile."""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from pathlib import Path

from lightfix.codec import layout
from lightfix.core.errors import FormatError
from lightfix.core.files import read_bytes
from lightfix.core.model import (
    AtmosphereData,
    CellData,
    CellRecord,
    HeaderData,
    HeaderRecord,
    LightData,
    LightRecord,
    OpaqueRecord,
    PluginFile,
    RawSubrecord,
    Record,
    RecordHeader,
    Subrecord,
)

LOGGER = logging.getLogger(__name__)

RecordDecoder = Callable[[RecordHeader, list[RawSubrecord], bytes, str], Record]


def _unpack(layout_struct: struct.Struct, subrecord: RawSubrecord, where: str) -> tuple:
    if len(subrecord.data) != layout_struct.size:
        raise FormatError(
            f"{subrecord.tag} subrecord in {where} is {len(subrecord.data)} bytes, "
            f"expected {layout_struct.size}"
        )
    return layout_struct.unpack(subrecord.data)


def _read_subrecords(payload: bytes, where: str) -> list[RawSubrecord]:
    subrecords: list[RawSubrecord] = []
    offset = 0
    while offset < len(payload):
        if offset + layout.SUBRECORD_HEADER.size > len(payload):
            raise FormatError(f"Truncated subrecord header at payload offset {offset} in {where}")
        raw_tag, size = layout.SUBRECORD_HEADER.unpack_from(payload, offset)
        tag = layout.decode_tag(raw_tag)
        start = offset + layout.SUBRECORD_HEADER.size
        end = start + size
        if end > len(payload):
            raise FormatError(
                f"Subrecord {tag} in {where} claims {size} bytes but only "
                f"{len(payload) - start} remain in the record"
            )
        subrecords.append(RawSubrecord(tag=tag, data=payload[start:end]))
        offset = end
    return subrecords


def _decode_header(header: RecordHeader, subrecords: list[RawSubrecord], raw: bytes, where: str) -> Record:
    decoded: list[Subrecord] = []
    found = False
    for subrecord in subrecords:
        if subrecord.tag == layout.TAG_HEDR and not found:
            version, file_type, author, description, num_records = _unpack(layout.HEDR, subrecord, where)
            decoded.append(
                HeaderData(
                    version=version,
                    file_type=file_type,
                    author=author,
                    description=description,
                    num_records=num_records,
                )
            )
            found = True
        else:
            decoded.append(subrecord)
    if not found:
        raise FormatError(f"{where} has no HEDR subrecord")
    return HeaderRecord(header=header, subrecords=tuple(decoded))


def _decode_light(header: RecordHeader, subrecords: list[RawSubrecord], raw: bytes, where: str) -> Record:
    # Deleted lights carry no LHDT and have nothing to fix.
    if any(s.tag == layout.TAG_DELETED for s in subrecords):
        return OpaqueRecord(tag=header.tag, raw=raw)

    decoded: list[Subrecord] = []
    found = False
    for subrecord in subrecords:
        if subrecord.tag == layout.TAG_LHDT and not found:
            weight, value, time, radius, r, g, b, a, flags = _unpack(layout.LHDT, subrecord, where)
            decoded.append(
                LightData(
                    weight=weight,
                    value=value,
                    time=time,
                    radius=radius,
                    color=(r, g, b, a),
                    flags=flags,
                )
            )
            found = True
        else:
            decoded.append(subrecord)
    if not found:
        raise FormatError(f"{where} has no LHDT subrecord")
    return LightRecord(header=header, subrecords=tuple(decoded))


def _decode_cell(header: RecordHeader, subrecords: list[RawSubrecord], raw: bytes, where: str) -> Record:
    decoded: list[Subrecord] = []
    have_data = False
    have_ambi = False
    in_references = False
    for subrecord in subrecords:
        if subrecord.tag in layout.CELL_REFERENCE_TAGS:
            in_references = True
        if in_references:
            decoded.append(subrecord)
        elif subrecord.tag == layout.TAG_CELL_DATA and not have_data:
            flags, grid_x, grid_y = _unpack(layout.CELL_DATA, subrecord, where)
            decoded.append(CellData(flags=flags, grid_x=grid_x, grid_y=grid_y))
            have_data = True
        elif subrecord.tag == layout.TAG_AMBI and not have_ambi:
            values = _unpack(layout.AMBI, subrecord, where)
            decoded.append(
                AtmosphereData(
                    ambient=tuple(values[0:4]),
                    sunlight=tuple(values[4:8]),
                    fog_color=tuple(values[8:12]),
                    fog_density=values[12],
                )
            )
            have_ambi = True
        else:
            decoded.append(subrecord)
    if not have_data:
        raise FormatError(f"{where} has no DATA subrecord")
    return CellRecord(header=header, subrecords=tuple(decoded))


_RECORD_DECODERS: dict[str, RecordDecoder] = {
    layout.TAG_HEADER: _decode_header,
    layout.TAG_LIGHT: _decode_light,
    layout.TAG_CELL: _decode_cell,
}


def _read_record(data: bytes, offset: int) -> tuple[Record, int]:
    if offset + layout.RECORD_HEADER.size > len(data):
        raise FormatError(
            f"Truncated record header at offset {offset}: "
            f"{len(data) - offset} bytes left, need {layout.RECORD_HEADER.size}"
        )
    raw_tag, size, header1, flags = layout.RECORD_HEADER.unpack_from(data, offset)
    tag = layout.decode_tag(raw_tag)
    start = offset + layout.RECORD_HEADER.size
    end = start + size
    if end > len(data):
        raise FormatError(
            f"{tag} record at offset {offset} claims {size} bytes but only "
            f"{len(data) - start} remain"
        )

    decoder = _RECORD_DECODERS.get(tag)
    if decoder is None:
        return OpaqueRecord(tag=tag, raw=data[offset:end]), end

    where = f"{tag} record at offset {offset}"
    header = RecordHeader(tag=tag, size=size, header1=header1, flags=flags)
    subrecords = _read_subrecords(data[start:end], where)
    return decoder(header, subrecords, data[offset:end], where), end


def read_plugin(data: bytes) -> PluginFile:
    """Decode a whole plugin.

    TES3, LIGH and CELL records are decoded into typed subrecords; every other
    record is kept as an opaque byte span.

    Raises:
        FormatError: the buffer is truncated or a recognized record is
            missing a subrecord it requires.
    """
    records: list[Record] = []
    offset = 0
    while offset < len(data):
        record, offset = _read_record(data, offset)
        records.append(record)
    LOGGER.debug("Decoded %d records from %d bytes", len(records), len(data))
    return PluginFile(records=tuple(records))


def read_plugin_path(path: Path) -> PluginFile:
    return read_plugin(read_bytes(path))
