"""
reMarkable .rm stroke-record parser

Reads the tablet's "lines" files into a Document -> Layer -> Stroke model.

Supported versions:
- v3 / v5: fixed layout. Layer count, stroke count per layer, and for each
  stroke a small header followed by 24-byte points (six float32 values).
- v6: "tagged block" protocol where each value is prefixed with an index
  and type tag. Only LineItem blocks are read; text, glyphs and scene tree
  blocks are skipped.

All headers are 43 bytes: "reMarkable .lines file, version=N" padded
with spaces.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .exceptions import InvalidStrokeRecord

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

HEADER_PREFIX = b"reMarkable .lines file, version="
HEADER_LENGTH = 43


class TagType(IntEnum):
    """Tag types indicate what kind of data follows."""
    Byte1 = 0x1     # 1-byte value (bool, u8)
    Byte4 = 0x4     # 4-byte value (float32, u32)
    Byte8 = 0x8     # 8-byte value (float64)
    Length4 = 0xC   # Length-prefixed subblock
    ID = 0xF        # CRDT ID (u8 + varuint)


class BlockType(IntEnum):
    """Top-level block types in v6 format."""
    MigrationInfo = 0x00
    SceneTree = 0x01
    TreeNode = 0x02
    GlyphItem = 0x03
    GroupItem = 0x04
    LineItem = 0x05
    TextItem = 0x06
    RootText = 0x07
    TombstoneItem = 0x08
    AuthorIds = 0x09
    PageInfo = 0x0A
    SceneInfo = 0x0D


class Pen(IntEnum):
    """Pen/tool types."""
    PAINTBRUSH = 0
    PENCIL = 1
    BALLPOINT = 2
    MARKER = 3
    FINELINER = 4
    HIGHLIGHTER = 5
    ERASER = 6
    MECHANICAL_PENCIL = 7
    ERASER_AREA = 8
    PAINTBRUSH_2 = 12
    MECHANICAL_PENCIL_2 = 13
    PENCIL_2 = 14
    BALLPOINT_2 = 15
    MARKER_2 = 16
    FINELINER_2 = 17
    HIGHLIGHTER_2 = 18
    CALIGRAPHY = 21
    SHADER = 23


class PenColor(IntEnum):
    """Pen colors."""
    BLACK = 0
    GRAY = 1
    WHITE = 2
    YELLOW = 3
    GREEN = 4
    PINK = 5
    BLUE = 6
    RED = 7
    GRAY_OVERLAP = 8
    HIGHLIGHT = 9
    GREEN_2 = 10
    CYAN = 11
    MAGENTA = 12
    YELLOW_2 = 13


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Point:
    """A single point in a stroke, in tablet screen coordinates."""
    x: float
    y: float
    speed: float = 0.0
    width: float = 0.0
    direction: float = 0.0
    pressure: float = 0.0


@dataclass
class Stroke:
    """A stroke (line) with pen settings and points."""
    pen: Pen | int  # Unknown pen types kept as int
    color: PenColor | int  # Unknown colors kept as int
    thickness_scale: float
    points: list[Point] = field(default_factory=list)


@dataclass
class Layer:
    """A layer containing strokes."""
    name: str = ""
    visible: bool = True
    strokes: list[Stroke] = field(default_factory=list)


@dataclass
class Document:
    """Parsed .rm file."""
    version: int = 6
    layers: list[Layer] = field(default_factory=list)

    def all_strokes(self) -> Iterator[Stroke]:
        """Iterate over all strokes in all layers."""
        for layer in self.layers:
            yield from layer.strokes

    @property
    def stroke_count(self) -> int:
        return sum(len(layer.strokes) for layer in self.layers)


def _pen(value: int) -> Pen | int:
    try:
        return Pen(value)
    except ValueError:
        logger.warning("Unknown pen id %s", value)
        return value


def _color(value: int) -> PenColor | int:
    try:
        return PenColor(value)
    except ValueError:
        logger.warning("Unknown pen color id %s", value)
        return value


# =============================================================================
# Binary Stream Reader
# =============================================================================

class BinaryReader:
    """Little-endian reads over a binary stream."""

    def __init__(self, data: BinaryIO):
        self.data = data

    def tell(self) -> int:
        return self.data.tell()

    def seek(self, pos: int) -> None:
        self.data.seek(pos)

    def read_bytes(self, n: int) -> bytes:
        """Read exactly n bytes, raise EOFError if not enough."""
        result = self.data.read(n)
        if len(result) != n:
            raise EOFError(f"Expected {n} bytes, got {len(result)}")
        return result

    def unpack(self, fmt: str):
        return struct.unpack(fmt, self.read_bytes(struct.calcsize(fmt)))

    def read_uint8(self) -> int:
        return self.unpack("<B")[0]

    def read_uint16(self) -> int:
        return self.unpack("<H")[0]

    def read_uint32(self) -> int:
        return self.unpack("<I")[0]

    def read_float32(self) -> float:
        return self.unpack("<f")[0]

    def read_float64(self) -> float:
        return self.unpack("<d")[0]

    def read_varuint(self) -> int:
        """Read a variable-length unsigned integer."""
        result = 0
        shift = 0
        while True:
            byte = self.read_uint8()
            result |= (byte & 0x7F) << shift
            if not (byte & 0x80):
                return result
            shift += 7


# =============================================================================
# v3 / v5
# =============================================================================

def _read_fixed_layout(stream: BinaryReader, version: int) -> Document:
    """Read the pre-v6 layout: layers, strokes, 24-byte float points."""
    stroke_fmt = "<IIIfI" if version == 5 else "<IIIf"
    doc = Document(version=version)

    (num_layers,) = stream.unpack("<I")
    for layer_index in range(num_layers):
        layer = Layer(name=f"Layer {layer_index + 1}")
        (num_strokes,) = stream.unpack("<I")
        for _ in range(num_strokes):
            pen_id, color_id, _unknown, width = stream.unpack(stroke_fmt)[:4]
            (num_points,) = stream.unpack("<I")
            points = []
            for _ in range(num_points):
                x, y, speed, direction, point_width, pressure = stream.unpack("<ffffff")
                points.append(Point(x, y, speed, point_width, direction, pressure))
            layer.strokes.append(Stroke(
                pen=_pen(pen_id),
                color=_color(color_id),
                thickness_scale=width,
                points=points,
            ))
        doc.layers.append(layer)

    return doc


# =============================================================================
# v6 tagged blocks
# =============================================================================

class TaggedBlockReader:
    """Reader for the v6 tagged block format."""

    def __init__(self, stream: BinaryReader):
        self.stream = stream

    def _expect_tag(self, expected_index: int, expected_type: TagType) -> None:
        pos = self.stream.tell()
        tag = self.stream.read_varuint()
        index, tag_type = tag >> 4, tag & 0xF
        if index != expected_index or tag_type != expected_type:
            raise ValueError(
                f"Expected tag ({expected_index}, {expected_type.name}), "
                f"got ({index}, {tag_type:#x}) at position {pos}"
            )

    def peek_tag(self, expected_index: int, expected_type: TagType, end: int) -> bool:
        """Check if next tag matches, without consuming it."""
        pos = self.stream.tell()
        if pos >= end:
            return False
        try:
            tag = self.stream.read_varuint()
        except EOFError:
            return False
        finally:
            self.stream.seek(pos)
        return tag >> 4 == expected_index and tag & 0xF == expected_type

    def read_int(self, index: int) -> int:
        self._expect_tag(index, TagType.Byte4)
        return self.stream.read_uint32()

    def read_float(self, index: int) -> float:
        self._expect_tag(index, TagType.Byte4)
        return self.stream.read_float32()

    def read_double(self, index: int) -> float:
        self._expect_tag(index, TagType.Byte8)
        return self.stream.read_float64()

    def read_id(self, index: int) -> tuple[int, int]:
        """Read a tagged CRDT ID (u8 + varuint)."""
        self._expect_tag(index, TagType.ID)
        return self.stream.read_uint8(), self.stream.read_varuint()

    def read_subblock(self, index: int) -> int:
        """Read a subblock tag and return its length."""
        self._expect_tag(index, TagType.Length4)
        return self.stream.read_uint32()

    def read_block_header(self) -> Optional[tuple[int, int, int]]:
        """Return (block_type, length, current_version), or None at EOF."""
        try:
            length = self.stream.read_uint32()
        except EOFError:
            return None
        _unknown, _min_version, current_version, block_type = self.stream.unpack("<BBBB")
        return block_type, length, current_version

    def read_line(self, block_version: int) -> Stroke:
        """Read a LineItem value subblock."""
        pen_id = self.read_int(1)
        color_id = self.read_int(2)
        thickness_scale = self.read_double(3)
        _starting_length = self.read_float(4)

        points_length = self.read_subblock(5)
        points = []
        if block_version >= 2:
            for _ in range(points_length // 14):
                x, y, speed, width, direction, pressure = self.stream.unpack("<ffHHBB")
                points.append(Point(x, y, speed, width, direction, pressure))
        else:
            for _ in range(points_length // 24):
                x, y, speed, direction, width, pressure = self.stream.unpack("<ffffff")
                points.append(Point(x, y, speed, width, direction, pressure))

        return Stroke(
            pen=_pen(pen_id),
            color=_color(color_id),
            thickness_scale=thickness_scale,
            points=points,
        )


def _read_line_item(reader: TaggedBlockReader, block_version: int, end: int) -> Optional[Stroke]:
    _parent_id = reader.read_id(1)
    _item_id = reader.read_id(2)
    _left_id = reader.read_id(3)
    _right_id = reader.read_id(4)
    deleted_length = reader.read_int(5)

    # Deleted items (CRDT tombstones) have no value
    if deleted_length > 0 or not reader.peek_tag(6, TagType.Length4, end):
        return None

    reader.read_subblock(6)
    item_type = reader.stream.read_uint8()
    if item_type != 0x03:
        return None
    return reader.read_line(block_version)


def _read_tagged(stream: BinaryReader) -> Document:
    reader = TaggedBlockReader(stream)
    layer = Layer(name="Layer 1")
    doc = Document(version=6, layers=[layer])

    while True:
        header = reader.read_block_header()
        if header is None:
            break

        block_type, length, block_version = header
        block_end = stream.tell() + length
        try:
            if block_type == BlockType.LineItem:
                stroke = _read_line_item(reader, block_version, block_end)
                if stroke is not None and stroke.points:
                    layer.strokes.append(stroke)
        except (ValueError, EOFError, struct.error) as e:
            logger.warning("Skipping unreadable line block at %s: %s", block_end - length, e)
        finally:
            stream.seek(block_end)

    return doc


# =============================================================================
# Entry points
# =============================================================================

def read_version(header: bytes) -> int:
    """Return the lines-format version announced by a file header."""
    if len(header) != HEADER_LENGTH or not header.startswith(HEADER_PREFIX):
        raise InvalidStrokeRecord(f"Invalid header: {header!r}")
    try:
        return int(header[len(HEADER_PREFIX):].strip())
    except ValueError as exc:
        raise InvalidStrokeRecord(f"Invalid header: {header!r}") from exc


def parse(data: BinaryIO) -> Document:
    """Parse a stroke record from an open binary stream."""
    stream = BinaryReader(data)
    try:
        version = read_version(data.read(HEADER_LENGTH))
        if version in (3, 5):
            return _read_fixed_layout(stream, version)
        if version == 6:
            return _read_tagged(stream)
    except (EOFError, struct.error) as exc:
        raise InvalidStrokeRecord(f"Truncated stroke record: {exc}") from exc
    raise InvalidStrokeRecord(f"Unsupported lines format version {version}")


def parse_file(path: Path) -> Document:
    """Parse a .rm file."""
    with open(path, "rb") as f:
        doc = parse(f)
    logger.debug("Parsed %s: v%s, %s strokes", path, doc.version, doc.stroke_count)
    return doc
