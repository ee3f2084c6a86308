"""Binary layouts of the TES3 plugin format shared by reader and writer.

A plugin is a flat run of records::

    record    := tag[4] size:u32 header1:u32 flags:u32 payload[size]
    payload   := subrecord*
    subrecord := tag[4] size:u32 data[size]

All integers are little-endian. Tags are four ASCII characters; they are
handled as latin-1 text so any byte value round-trips.
"""

from __future__ import annotations

import struct

TAG_ENCODING = "latin-1"

RECORD_HEADER = struct.Struct("<4sIII")
SUBRECORD_HEADER = struct.Struct("<4sI")

# TES3 HEDR: version, file type, author[32], description[256], record count
HEDR = struct.Struct("<fI32s256sI")
# LIGH LHDT: weight, value, time, radius, r, g, b, reserved, flags
LHDT = struct.Struct("<fIiI4BI")
# CELL DATA: flags, grid x, grid y
CELL_DATA = struct.Struct("<Iii")
# CELL AMBI: ambient rgba, sunlight rgba, fog rgba, fog density
AMBI = struct.Struct("<4B4B4Bf")

TAG_HEADER = "TES3"
TAG_LIGHT = "LIGH"
TAG_CELL = "CELL"

TAG_NAME = "NAME"
TAG_DELETED = "DELE"
TAG_HEDR = "HEDR"
TAG_LHDT = "LHDT"
TAG_CELL_DATA = "DATA"
TAG_AMBI = "AMBI"

# Subrecords that open a cell's reference list; nothing after them is cell data.
CELL_REFERENCE_TAGS = frozenset({"FRMR", "MVRF"})

U32_MAX = 0xFFFFFFFF
AUTHOR_SIZE = 32
DESCRIPTION_SIZE = 256


def decode_tag(raw: bytes) -> str:
    return raw.decode(TAG_ENCODING)


def encode_tag(tag: str) -> bytes:
    return tag.encode(TAG_ENCODING)
