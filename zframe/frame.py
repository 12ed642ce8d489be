"""Parsing and validation of frame headers."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO, Union

MAGIC_NUM = 0xFD2F_B528
MIN_WINDOW_SIZE = 1024
MAX_WINDOW_SIZE = (1 << 41) + 7 * (1 << 38)

SKIPPABLE_MAGIC_MIN = 0x184D2A50
SKIPPABLE_MAGIC_MAX = 0x184D2A5F

_CONTENT_SIZE_BYTES = {1: 2, 2: 4, 3: 8}
_DICT_ID_BYTES = (0, 1, 2, 4)


class FrameCheckError(ValueError):
    """A frame failed validation."""


class FrameHeaderError(FrameCheckError):
    """A frame header holds inconsistent or out-of-range values."""


class FrameDescriptorError(FrameHeaderError):
    """A frame descriptor byte is invalid."""

    def __init__(self, got: int) -> None:
        super().__init__(f"Invalid frame descriptor byte; Is: {got}, Should be in 0..=255")
        self.got = got


class ReadFrameHeaderError(Exception):
    """A frame header could not be read from the source."""


class SkipFrame(ReadFrameHeaderError):
    """A skippable frame was found where a frame header was expected."""

    def __init__(self, magic_num: int, length: int) -> None:
        super().__init__(
            f"SkippableFrame encountered with MagicNumber 0x{magic_num:X} "
            f"and length {length} bytes"
        )
        self.magic_num = magic_num
        self.length = length


@dataclass(frozen=True)
class FrameDescriptor:
    """The flag byte that follows the magic number."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 0xFF:
            raise FrameDescriptorError(self.value)

    def frame_content_size_flag(self) -> int:
        return self.value >> 6

    def reserved_flag(self) -> bool:
        return bool((self.value >> 3) & 0x1)

    def single_segment_flag(self) -> bool:
        return bool((self.value >> 5) & 0x1)

    def content_checksum_flag(self) -> bool:
        return bool((self.value >> 2) & 0x1)

    def dict_id_flag(self) -> int:
        return self.value & 0x3

    def frame_content_size_bytes(self) -> int:
        """Number of bytes used to store the frame content size."""
        flag = self.frame_content_size_flag()
        if flag == 0:
            return 1 if self.single_segment_flag() else 0
        return _CONTENT_SIZE_BYTES[flag]

    def dictionary_id_bytes(self) -> int:
        """Number of bytes used to store the dictionary id."""
        return _DICT_ID_BYTES[self.dict_id_flag()]


@dataclass
class FrameHeader:
    """The decoded fields of a frame header."""

    descriptor: FrameDescriptor
    window_descriptor: int = 0
    dict_id: bytes = b""
    frame_content_size_raw: bytes = b""

    def window_size(self) -> int:
        if self.descriptor.single_segment_flag():
            return self.frame_content_size()

        exp = self.window_descriptor >> 3
        mantissa = self.window_descriptor & 0x7
        window_base = 1 << (10 + exp)
        window_size = window_base + (window_base // 8) * mantissa

        if window_size < MIN_WINDOW_SIZE:
            raise FrameHeaderError(
                f"window_size smaller than allowed minimum. Is: {window_size}, "
                f"Should be greater than: {MIN_WINDOW_SIZE}"
            )
        if window_size >= MAX_WINDOW_SIZE:
            raise FrameHeaderError(
                f"window_size bigger than allowed maximum. Is: {window_size}, "
                f"Should be lower than: {MAX_WINDOW_SIZE}"
            )
        return window_size

    def dictionary_id(self) -> int | None:
        if self.descriptor.dict_id_flag() == 0:
            return None
        expected = self.descriptor.dictionary_id_bytes()
        if len(self.dict_id) != expected:
            raise FrameHeaderError(
                f"Not enough bytes in dict_id. Is: {len(self.dict_id)}, Should be: {expected}"
            )
        return int.from_bytes(self.dict_id, "little")

    def frame_content_size(self) -> int:
        expected = self.descriptor.frame_content_size_bytes()
        raw = self.frame_content_size_raw
        if len(raw) != expected:
            raise FrameHeaderError(
                "frame_content_size does not have the right length. "
                f"Is: {len(raw)}, Should be: {expected}"
            )
        if expected == 0:
            raise FrameHeaderError("frame_content_size was zero")
        value = int.from_bytes(raw, "little")
        if expected == 2:
            # Two-byte sizes are stored with an offset of 256.
            value += 256
        return value


@dataclass
class Frame:
    """A frame header together with its magic number."""

    magic_num: int
    header: FrameHeader

    def check_valid(self) -> None:
        """Raise FrameCheckError (or a subclass) if the frame is not valid."""
        if self.magic_num != MAGIC_NUM:
            raise FrameCheckError(
                f"magic_num wrong. Is: {self.magic_num}. Should be: {MAGIC_NUM}"
            )
        if self.header.descriptor.reserved_flag():
            raise FrameCheckError("Reserved Flag set. Must be zero")
        self.header.dictionary_id()
        self.header.window_size()
        if self.header.descriptor.single_segment_flag():
            self.header.frame_content_size()


def _read_exact(source: BinaryIO, count: int, what: str) -> bytes:
    data = source.read(count)
    if data is None or len(data) < count:
        raise ReadFrameHeaderError(
            f"Error while reading {what}: failed to fill whole buffer"
        )
    return bytes(data)


def read_frame_header(
    source: Union[bytes, bytearray, memoryview, BinaryIO],
) -> tuple[Frame, int]:
    """Read a frame header; return the frame and the number of bytes consumed."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        source = io.BytesIO(bytes(source))

    magic_num = int.from_bytes(_read_exact(source, 4, "magic number"), "little")

    if SKIPPABLE_MAGIC_MIN <= magic_num <= SKIPPABLE_MAGIC_MAX:
        skip_size = int.from_bytes(
            _read_exact(source, 4, "frame descriptor"), "little"
        )
        raise SkipFrame(magic_num, skip_size)

    descriptor = FrameDescriptor(_read_exact(source, 1, "frame descriptor")[0])
    bytes_read = 5

    window_descriptor = 0
    if not descriptor.single_segment_flag():
        window_descriptor = _read_exact(source, 1, "window descriptor")[0]
        bytes_read += 1

    dict_id = b""
    dict_len = descriptor.dictionary_id_bytes()
    if dict_len:
        dict_id = _read_exact(source, dict_len, "dictionary id")
        bytes_read += dict_len

    content_size = b""
    size_len = descriptor.frame_content_size_bytes()
    if size_len:
        content_size = _read_exact(source, size_len, "frame content size")
        bytes_read += size_len

    header = FrameHeader(
        descriptor=descriptor,
        window_descriptor=window_descriptor,
        dict_id=dict_id,
        frame_content_size_raw=content_size,
    )
    return Frame(magic_num=magic_num, header=header), bytes_read