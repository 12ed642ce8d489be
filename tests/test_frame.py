import io

import pytest

from zframe.frame import (
    MAGIC_NUM,
    MAX_WINDOW_SIZE,
    Frame,
    FrameCheckError,
    FrameDescriptor,
    FrameDescriptorError,
    FrameHeader,
    FrameHeaderError,
    ReadFrameHeaderError,
    SkipFrame,
    read_frame_header,
)

MAGIC = MAGIC_NUM.to_bytes(4, "little")


def test_skippable_frame():
    content = (0x184D2A50).to_bytes(4, "little") + (300).to_bytes(4, "little")
    assert len(content) == 8
    with pytest.raises(SkipFrame) as info:
        read_frame_header(content)
    assert info.value.magic_num == 0x184D2A50
    assert info.value.length == 300

    content = (0x184D2A5F).to_bytes(4, "little") + (0xFFFFFFFF).to_bytes(4, "little")
    with pytest.raises(SkipFrame) as info:
        read_frame_header(content)
    assert info.value.magic_num == 0x184D2A5F
    assert info.value.length == 0xFFFFFFFF


def test_skip_frame_message():
    content = (0x184D2A5A).to_bytes(4, "little") + (7).to_bytes(4, "little")
    with pytest.raises(ReadFrameHeaderError, match="0x184D2A5A and length 7 bytes"):
        read_frame_header(content)


def test_single_segment_header():
    frame, size = read_frame_header(MAGIC + bytes([0x20, 100]))
    assert size == 6
    assert frame.magic_num == MAGIC_NUM
    assert frame.header.frame_content_size() == 100
    assert frame.header.window_size() == 100
    frame.check_valid()
    assert frame.header.dictionary_id() is None


def test_window_descriptor_header_from_stream():
    frame, size = read_frame_header(io.BytesIO(MAGIC + bytes([0x00, 0x00])))
    assert size == 6
    assert frame.header.window_size() == 1024
    frame.check_valid()


def test_window_size_with_mantissa():
    header = FrameHeader(descriptor=FrameDescriptor(0), window_descriptor=0x59)
    # exponent 11, mantissa 1
    assert header.window_size() == (1 << 21) + (1 << 21) // 8


def test_dictionary_id_and_two_byte_content_size():
    data = MAGIC + bytes([0x43, 0x00, 0x01, 0x21, 0x23, 0x47, 0x10, 0x00])
    frame, size = read_frame_header(data)
    assert size == 4 + 1 + 1 + 4 + 2
    assert frame.header.dictionary_id() == 0x47232101
    assert frame.header.frame_content_size() == 272
    frame.check_valid()


def test_eight_byte_content_size():
    data = MAGIC + bytes([0xE0]) + (123456789012).to_bytes(8, "little")
    frame, size = read_frame_header(data)
    assert size == 13
    assert frame.header.frame_content_size() == 123456789012


def test_descriptor_flags():
    desc = FrameDescriptor(0b1110_1110)
    assert desc.frame_content_size_flag() == 3
    assert desc.single_segment_flag() is True
    assert desc.reserved_flag() is True
    assert desc.content_checksum_flag() is True
    assert desc.dict_id_flag() == 2
    assert desc.frame_content_size_bytes() == 8
    assert desc.dictionary_id_bytes() == 2


def test_descriptor_out_of_range():
    with pytest.raises(FrameDescriptorError):
        FrameDescriptor(256)


def test_wrong_magic_number():
    frame, _ = read_frame_header(b"\x01\x02\x03\x04" + bytes([0x20, 5]))
    with pytest.raises(FrameCheckError, match="magic_num wrong"):
        frame.check_valid()


def test_reserved_flag():
    frame, _ = read_frame_header(MAGIC + bytes([0x28, 5]))
    with pytest.raises(FrameCheckError, match="Reserved Flag"):
        frame.check_valid()


def test_content_size_missing():
    header = FrameHeader(descriptor=FrameDescriptor(0))
    with pytest.raises(FrameHeaderError, match="was zero"):
        header.frame_content_size()


def test_content_size_length_mismatch():
    header = FrameHeader(descriptor=FrameDescriptor(0x20), frame_content_size_raw=b"")
    with pytest.raises(FrameHeaderError, match="right length"):
        header.frame_content_size()


def test_dict_id_length_mismatch():
    header = FrameHeader(descriptor=FrameDescriptor(0x03), dict_id=b"\x01")
    with pytest.raises(FrameHeaderError, match="dict_id"):
        header.dictionary_id()


def test_window_too_big():
    header = FrameHeader(descriptor=FrameDescriptor(0), window_descriptor=0xFF)
    with pytest.raises(FrameHeaderError, match=str(MAX_WINDOW_SIZE)):
        header.window_size()


def test_check_valid_rejects_big_window():
    frame = Frame(MAGIC_NUM, FrameHeader(descriptor=FrameDescriptor(0), window_descriptor=0xFF))
    with pytest.raises(FrameHeaderError):
        frame.check_valid()


def test_truncated_magic():
    with pytest.raises(ReadFrameHeaderError, match="magic number"):
        read_frame_header(b"\x28\xb5")


def test_truncated_descriptor():
    with pytest.raises(ReadFrameHeaderError, match="frame descriptor"):
        read_frame_header(MAGIC)


def test_truncated_window_descriptor():
    with pytest.raises(ReadFrameHeaderError, match="window descriptor"):
        read_frame_header(MAGIC + b"\x00")


def test_truncated_content_size():
    with pytest.raises(ReadFrameHeaderError, match="frame content size"):
        read_frame_header(MAGIC + bytes([0xE0, 1, 2]))