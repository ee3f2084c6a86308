"""Core data models used across the codec, transformers, and service."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from enum import Enum, IntFlag
from pathlib import Path
from typing import ClassVar, Union


class RecordKind(Enum):
    HEADER = "header"
    LIGHT = "light"
    CELL = "cell"
    OPAQUE = "opaque"


class SubrecordKind(Enum):
    RAW = "raw"
    HEADER_DATA = "header_data"
    LIGHT_DATA = "light_data"
    CELL_DATA = "cell_data"
    ATMOSPHERE_DATA = "atmosphere_data"


class LightFlag(IntFlag):
    DYNAMIC = 0x0001
    CAN_CARRY = 0x0002
    NEGATIVE = 0x0004
    FLICKER = 0x0008
    FIRE = 0x0010
    OFF_BY_DEFAULT = 0x0020
    FLICKER_SLOW = 0x0040
    PULSE = 0x0080
    PULSE_SLOW = 0x0100


class CellFlag(IntFlag):
    IS_INTERIOR = 0x01
    HAS_WATER = 0x02
    ILLEGAL_TO_SLEEP = 0x04
    BEHAVES_LIKE_EXTERIOR = 0x80


Color = tuple[int, int, int, int]


def decode_zstring(data: bytes) -> str:
    """Decode a zero-terminated cp1252 string as stored in NAME subrecords."""
    return data.split(b"\0", 1)[0].decode("cp1252", errors="replace")


@dataclass(frozen=True)
class RecordHeader:
    tag: str
    size: int
    header1: int = 0
    flags: int = 0


@dataclass(frozen=True)
class RawSubrecord:
    tag: str
    data: bytes

    kind: ClassVar[SubrecordKind] = SubrecordKind.RAW


@dataclass(frozen=True)
class HeaderData:
    """HEDR payload of the TES3 file header.

    ``author`` and ``description`` keep their full fixed-width bytes so that
    padding after the terminator survives a round-trip.
    """

    version: float
    file_type: int
    author: bytes
    description: bytes
    num_records: int

    tag: ClassVar[str] = "HEDR"
    kind: ClassVar[SubrecordKind] = SubrecordKind.HEADER_DATA

    @property
    def author_text(self) -> str:
        return decode_zstring(self.author)

    @property
    def description_text(self) -> str:
        return decode_zstring(self.description)


@dataclass(frozen=True)
class LightData:
    weight: float
    value: int
    time: int
    radius: int
    color: Color
    flags: int

    tag: ClassVar[str] = "LHDT"
    kind: ClassVar[SubrecordKind] = SubrecordKind.LIGHT_DATA

    def has_flag(self, flag: LightFlag) -> bool:
        return bool(self.flags & flag)

    @property
    def rgb(self) -> tuple[int, int, int]:
        return self.color[0], self.color[1], self.color[2]


@dataclass(frozen=True)
class CellData:
    flags: int
    grid_x: int
    grid_y: int

    tag: ClassVar[str] = "DATA"
    kind: ClassVar[SubrecordKind] = SubrecordKind.CELL_DATA

    @property
    def is_interior(self) -> bool:
        return bool(self.flags & CellFlag.IS_INTERIOR)


@dataclass(frozen=True)
class AtmosphereData:
    ambient: Color
    sunlight: Color
    fog_color: Color
    fog_density: float

    tag: ClassVar[str] = "AMBI"
    kind: ClassVar[SubrecordKind] = SubrecordKind.ATMOSPHERE_DATA


Subrecord = Union[RawSubrecord, HeaderData, LightData, CellData, AtmosphereData]


def _first_of_kind(subrecords: tuple[Subrecord, ...], kind: SubrecordKind) -> Subrecord | None:
    for subrecord in subrecords:
        if subrecord.kind is kind:
            return subrecord
    return None


def _replace_first_of_kind(
    subrecords: tuple[Subrecord, ...],
    new: Subrecord,
) -> tuple[Subrecord, ...]:
    replaced = list(subrecords)
    for index, subrecord in enumerate(replaced):
        if subrecord.kind is new.kind:
            replaced[index] = new
            return tuple(replaced)
    raise ValueError(f"No {new.kind.value} subrecord to replace")


def _name_of(subrecords: tuple[Subrecord, ...]) -> str:
    for subrecord in subrecords:
        if subrecord.kind is SubrecordKind.RAW and subrecord.tag == "NAME":
            return decode_zstring(subrecord.data)
    return ""


@dataclass(frozen=True)
class HeaderRecord:
    header: RecordHeader
    subrecords: tuple[Subrecord, ...]

    kind: ClassVar[RecordKind] = RecordKind.HEADER

    @property
    def tag(self) -> str:
        return self.header.tag

    @property
    def data(self) -> HeaderData:
        return _first_of_kind(self.subrecords, SubrecordKind.HEADER_DATA)  # type: ignore[return-value]

    @property
    def masters(self) -> tuple[str, ...]:
        return tuple(
            decode_zstring(s.data)
            for s in self.subrecords
            if s.kind is SubrecordKind.RAW and s.tag == "MAST"
        )

    def with_data(self, data: HeaderData) -> HeaderRecord:
        return replace(self, subrecords=_replace_first_of_kind(self.subrecords, data))


@dataclass(frozen=True)
class LightRecord:
    header: RecordHeader
    subrecords: tuple[Subrecord, ...]

    kind: ClassVar[RecordKind] = RecordKind.LIGHT

    @property
    def tag(self) -> str:
        return self.header.tag

    @property
    def id(self) -> str:
        return _name_of(self.subrecords)

    @property
    def data(self) -> LightData:
        return _first_of_kind(self.subrecords, SubrecordKind.LIGHT_DATA)  # type: ignore[return-value]

    def with_data(self, data: LightData) -> LightRecord:
        return replace(self, subrecords=_replace_first_of_kind(self.subrecords, data))


@dataclass(frozen=True)
class CellRecord:
    header: RecordHeader
    subrecords: tuple[Subrecord, ...]

    kind: ClassVar[RecordKind] = RecordKind.CELL

    @property
    def tag(self) -> str:
        return self.header.tag

    @property
    def id(self) -> str:
        name = _name_of(self.subrecords)
        if name or self.data.is_interior:
            return name
        return f"{self.data.grid_x},{self.data.grid_y}"

    @property
    def data(self) -> CellData:
        return _first_of_kind(self.subrecords, SubrecordKind.CELL_DATA)  # type: ignore[return-value]

    @property
    def atmosphere(self) -> AtmosphereData | None:
        return _first_of_kind(self.subrecords, SubrecordKind.ATMOSPHERE_DATA)  # type: ignore[return-value]

    @property
    def is_interior(self) -> bool:
        return self.data.is_interior

    def with_atmosphere(self, atmosphere: AtmosphereData) -> CellRecord:
        return replace(self, subrecords=_replace_first_of_kind(self.subrecords, atmosphere))


@dataclass(frozen=True)
class OpaqueRecord:
    """A record kept as its exact on-disk bytes, header included."""

    tag: str
    raw: bytes

    kind: ClassVar[RecordKind] = RecordKind.OPAQUE


Record = Union[HeaderRecord, LightRecord, CellRecord, OpaqueRecord]


@dataclass(frozen=True)
class PluginFile:
    records: tuple[Record, ...]

    @property
    def header(self) -> HeaderRecord | None:
        if self.records and self.records[0].kind is RecordKind.HEADER:
            return self.records[0]  # type: ignore[return-value]
        return None

    def lights(self) -> Iterator[LightRecord]:
        return (r for r in self.records if r.kind is RecordKind.LIGHT)  # type: ignore[misc]

    def cells(self) -> Iterator[CellRecord]:
        return (r for r in self.records if r.kind is RecordKind.CELL)  # type: ignore[misc]

    def tag_census(self) -> dict[str, int]:
        census: dict[str, int] = {}
        for record in self.records:
            census[record.tag] = census.get(record.tag, 0) + 1
        return census


@dataclass(frozen=True)
class Multipliers:
    hue: float
    saturation: float
    value: float
    radius: float


@dataclass(frozen=True)
class LightFixConfig:
    auto_install: bool = False
    disable_flickering: bool = True
    save_log: bool = False
    disable_interior_sun: bool = True
    standard_hue: float = 0.62
    standard_saturation: float = 0.8
    standard_value: float = 0.57
    standard_radius: float = 1.2
    colored_hue: float = 1.0
    colored_saturation: float = 0.9
    colored_value: float = 0.7
    colored_radius: float = 1.1

    def multipliers(self, colored: bool) -> Multipliers:
        if colored:
            return Multipliers(
                hue=self.colored_hue,
                saturation=self.colored_saturation,
                value=self.colored_value,
                radius=self.colored_radius,
            )
        return Multipliers(
            hue=self.standard_hue,
            saturation=self.standard_saturation,
            value=self.standard_value,
            radius=self.standard_radius,
        )


@dataclass(frozen=True)
class LightSnapshot:
    color: Color
    hue: float
    saturation: float
    value: float
    radius: int
    flags: int


@dataclass(frozen=True)
class LightChange:
    id: str
    classification: str
    before: LightSnapshot
    after: LightSnapshot


@dataclass(frozen=True)
class FixResult:
    plugin: PluginFile
    light_changes: tuple[LightChange, ...] = field(default_factory=tuple)
    cell_changes: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RunResult:
    input_path: Path
    output_path: Path
    bytes_written: int
    records: int
    lights_changed: int
    cells_changed: int
    log_path: Path | None = None
    installed_path: Path | None = None
