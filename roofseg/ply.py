"""Reading and writing point clouds as PLY files."""

from __future__ import annotations

import math
import re
import struct
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from os import PathLike
from typing import BinaryIO, Union

from .bits import system_endianness
from .geometry import Vec3
from .pointset import PointSet

PathType = Union[str, "PathLike[str]"]

_DEFAULT_NAMES = ("x", "y", "z")
_ORIGIN = Vec3(0, 0, 0)

_TYPE_CODES = {
    "float64": "d",
    "float": "f",
    "float32": "f",
    "uint64": "Q",
    "uint32": "I",
    "uint16": "H",
    "uchar": "B",
    "uint8": "B",
    "int64": "q",
    "int32": "i",
    "int16": "h",
    "char": "b",
    "int8": "b",
}

_SEPARATORS = re.compile(r"[ \t\r]+")
_ATOF = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_ATOI = re.compile(r"\s*([+-]?\d+)")


class PlyError(ValueError):
    """Raised when a PLY file is malformed or unsupported."""


@dataclass(frozen=True)
class _Property:
    name: str
    code: str

    @property
    def byte_count(self) -> int:
        return struct.calcsize("<" + self.code)


@dataclass(frozen=True)
class _Header:
    is_ascii: bool
    byte_order: str
    point_count: int
    properties: tuple[_Property, ...]


def _tokens(line: str) -> list[str]:
    return [tok for tok in _SEPARATORS.split(line) if tok]


def _atof(text: str) -> float:
    """Parse the leading number of ``text``; 0.0 when there is none."""
    match = _ATOF.match(text)
    return float(match.group(1)) if match else 0.0


def _atoi(text: str) -> int:
    """Parse the leading integer of ``text``; 0 when there is none."""
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _position(value: float) -> int:
    if not math.isfinite(value):
        raise PlyError(f"non-finite coordinate {value}")
    return int(value)


def _check_names(position_names: Sequence[str]) -> tuple[str, str, str]:
    names = tuple(position_names)
    if len(names) != 3:
        raise ValueError(f"expected three position names, got {len(names)}")
    return names  # type: ignore[return-value]


def _read_line(stream: BinaryIO) -> str:
    line = stream.readline()
    if not line:
        raise PlyError("corrupted header")
    return line.rstrip(b"\n").decode("utf-8", errors="surrogateescape")


def _read_header(stream: BinaryIO) -> _Header:
    first = stream.readline().rstrip(b"\n").decode("utf-8", errors="surrogateescape")
    tokens = _tokens(first)
    if not tokens or tokens[0] != "ply":
        raise PlyError("corrupted file: missing ply signature")

    is_ascii = False
    byte_order = "="
    version = 1.0
    point_count = 0
    in_vertex = True
    properties: list[_Property] = []

    while True:
        tokens = _tokens(_read_line(stream))
        if not tokens or tokens[0] == "comment":
            continue
        keyword = tokens[0]
        if keyword == "format":
            if len(tokens) != 3:
                raise PlyError("corrupted format info")
            is_ascii = tokens[1] == "ascii"
            byte_order = {
                "binary_little_endian": "<",
                "binary_big_endian": ">",
            }.get(tokens[1], "=")
            version = _atof(tokens[2])
        elif keyword == "element":
            if len(tokens) != 3:
                raise PlyError("corrupted element info")
            if tokens[1] == "vertex":
                point_count = _atoi(tokens[2])
            else:
                in_vertex = False
        elif keyword == "property" and in_vertex:
            if len(tokens) != 3:
                raise PlyError("corrupted property info")
            code = _TYPE_CODES.get(tokens[1])
            if code is None:
                raise PlyError(f"unsupported property type {tokens[1]!r}")
            properties.append(_Property(tokens[2], code))
        elif keyword == "end_header":
            break

    if version != 1.0:
        raise PlyError(f"unsupported version {version}")
    return _Header(is_ascii, byte_order, max(point_count, 0), tuple(properties))


def _resolve(properties: Sequence[_Property], names: tuple[str, str, str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for a, prop in enumerate(properties):
        name, size = prop.name, prop.byte_count
        if name == names[0] and size in (4, 8):
            index["x"] = a
        elif name == names[1] and size in (4, 8):
            index["y"] = a
        elif name == names[2] and size in (4, 8):
            index["z"] = a
        elif name == "red" and size == 1:
            index["r"] = a
        elif name == "green" and size == 1:
            index["g"] = a
        elif name == "blue" and size == 1:
            index["b"] = a
        elif name in ("reflectance", "refc") and size <= 2:
            index["refl"] = a
        elif name == "frameindex" and size <= 2:
            index["frame"] = a
        elif name in ("nx", "ny", "nz") and size in (4, 8):
            continue
        elif name == "laserangle":
            index["laser"] = a
    if not {"x", "y", "z"} <= index.keys():
        raise PlyError("missing coordinates")
    return index


def _store(
    cloud: PointSet,
    i: int,
    index: dict[str, int],
    scale: float,
    get_float: Callable[[int], float],
    get_int: Callable[[int], int],
) -> None:
    cloud.positions[i] = Vec3(
        _position(get_float(index["x"]) * scale),
        _position(get_float(index["y"]) * scale),
        _position(get_float(index["z"]) * scale),
    )
    if cloud.has_colors:
        cloud.colors[i] = Vec3(
            get_int(index["g"]) & 0xFFFF,
            get_int(index["b"]) & 0xFFFF,
            get_int(index["r"]) & 0xFFFF,
        )
    if cloud.has_reflectances:
        cloud.reflectances[i] = get_int(index["refl"]) & 0xFFFF
    if cloud.has_frame_index:
        cloud.frame_indices[i] = get_int(index["frame"]) & 0xFF
    if cloud.has_laser_angles:
        cloud.laser_angles[i] = _round_half_away(get_float(index["laser"]))


def _read_ascii(
    lines: Iterable[str], header: _Header, index: dict[str, int], scale: float, cloud: PointSet
) -> None:
    count = 0
    attribute_count = len(header.properties)
    for line in lines:
        if count >= header.point_count:
            break
        tokens = _tokens(line)
        if not tokens:
            continue
        if len(tokens) < attribute_count:
            raise PlyError(
                f"point {count}: expected {attribute_count} values, got {len(tokens)}"
            )
        _store(
            cloud,
            count,
            index,
            scale,
            lambda a: _atof(tokens[a]),
            lambda a: _atoi(tokens[a]),
        )
        count += 1


def _read_binary(
    data: bytes, header: _Header, index: dict[str, int], scale: float, cloud: PointSet
) -> None:
    record = struct.Struct(header.byte_order + "".join(p.code for p in header.properties))
    count = min(header.point_count, len(data) // record.size)
    for i, values in enumerate(record.iter_unpack(data[: count * record.size])):
        _store(
            cloud,
            i,
            index,
            scale,
            lambda a: float(values[a]),
            lambda a: int(values[a]),
        )


def read(
    path: PathType,
    position_names: Sequence[str] = _DEFAULT_NAMES,
    position_scale: float = 1.0,
) -> PointSet:
    """Read a PLY file into a new point set.

    Coordinates are multiplied by ``position_scale`` and truncated to
    integers. Colours, reflectances, frame indices and laser angles are
    loaded when the file has them. Raises ``PlyError`` on a malformed file.
    """
    names = _check_names(position_names)
    with open(path, "rb") as stream:
        header = _read_header(stream)
        index = _resolve(header.properties, names)

        cloud = PointSet()
        cloud.set_attributes(
            {"r", "g", "b"} <= index.keys(), "refl" in index
        )
        cloud.add_frame_index() if "frame" in index else cloud.remove_frame_index()
        cloud.add_laser_angles() if "laser" in index else cloud.remove_laser_angles()
        cloud.resize(header.point_count)

        body = stream.read()

    if header.is_ascii:
        text = body.decode("utf-8", errors="surrogateescape")
        _read_ascii(text.split("\n"), header, index, position_scale, cloud)
    else:
        _read_binary(body, header, index, position_scale, cloud)
    return cloud


def write(
    cloud: PointSet,
    path: PathType,
    position_names: Sequence[str] = _DEFAULT_NAMES,
    position_scale: float = 1.0,
    position_offset: Sequence[float] = _ORIGIN,
    as_ascii: bool = False,
) -> None:
    """Write ``cloud`` to a PLY file.

    Each position is written as ``point * position_scale + position_offset``.
    Binary files use the native byte order.
    """
    names = _check_names(position_names)
    offset = Vec3(*position_offset)
    order = system_endianness()

    lines = ["ply", "format ascii 1.0" if as_ascii else f"format binary_{order}_endian 1.0"]
    lines.append(f"element vertex {len(cloud)}")
    coord_type = "float" if as_ascii else "float64"
    lines.extend(f"property {coord_type} {name}" for name in names)
    if cloud.has_colors:
        lines += ["property uchar green", "property uchar blue", "property uchar red"]
    if cloud.has_reflectances:
        lines.append("property uint16 refc")
    if cloud.has_frame_index:
        lines.append("property uint8 frameindex")
    lines += ["element face 0", "property list uint8 int32 vertex_index", "end_header"]
    header = "".join(line + "\n" for line in lines).encode("utf-8")

    positions = [p * position_scale + offset for p in cloud.positions]

    with open(path, "wb") as stream:
        stream.write(header)
        if as_ascii:
            for i, pos in enumerate(positions):
                fields = [f"{float(v):.5f}" for v in pos]
                if cloud.has_colors:
                    fields += [str(int(c)) for c in cloud.colors[i]]
                if cloud.has_reflectances:
                    fields.append(str(int(cloud.reflectances[i])))
                if cloud.has_frame_index:
                    fields.append(str(int(cloud.frame_indices[i])))
                stream.write((" ".join(fields) + "\n").encode("ascii"))
        else:
            fmt = ("<" if order == "little" else ">") + "ddd"
            if cloud.has_colors:
                fmt += "BBB"
            if cloud.has_reflectances:
                fmt += "H"
            if cloud.has_frame_index:
                fmt += "B"
            record = struct.Struct(fmt)
            for i, pos in enumerate(positions):
                values: list[Union[int, float]] = [float(v) for v in pos]
                if cloud.has_colors:
                    values += [int(c) & 0xFF for c in cloud.colors[i]]
                if cloud.has_reflectances:
                    values.append(int(cloud.reflectances[i]) & 0xFFFF)
                if cloud.has_frame_index:
                    values.append(int(cloud.frame_indices[i]) & 0xFF)
                stream.write(record.pack(*values))