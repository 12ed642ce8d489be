# zframe

Pure-Python building blocks for decoding Zstandard (zstd) data. The package
uses only the standard library.

It has three modules:

- `zframe.frame` reads and checks zstd frame headers. It handles the magic
  number, the frame descriptor flags, the window size, the dictionary id and
  the frame content size. It also recognises skippable frames.
- `zframe.fse` provides two bit readers, `BitReader` and `ReversedBitReader`.
  It also builds FSE tables (`FSETable`) and walks their states
  (`FSEDecoder`).
- `zframe.huff0` builds Huffman decoding tables (`HuffmanTable`) from weights
  that are either FSE-compressed or stored directly. `HuffmanDecoder` walks
  the states of such a table.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Reading a frame header

```python
from zframe.frame import read_frame_header, SkipFrame

with open("data.zst", "rb") as fh:
    try:
        frame, header_size = read_frame_header(fh)
    except SkipFrame as skip:
        print("skippable frame", hex(skip.magic_num), skip.length)
    else:
        frame.check_valid()
        print("window size:", frame.header.window_size())
        print("dictionary id:", frame.header.dictionary_id())
        print("checksum present:", frame.header.descriptor.content_checksum_flag())
```

`read_frame_header` accepts either a binary file-like object or a bytes-like
object. It returns the parsed `Frame` and the number of header bytes it
consumed.

`FrameHeader.dictionary_id()` returns `None` when the frame names no
dictionary. `FrameHeader.frame_content_size()` applies the offset of 256 that
the format defines for two-byte sizes. For single-segment frames,
`FrameHeader.window_size()` returns the frame content size.

Errors are raised as exceptions:

- `ReadFrameHeaderError` is raised when the source ends before the header is
  complete.
- `SkipFrame` is a subclass of `ReadFrameHeaderError`. It is raised when the
  magic number is in the range `0x184D2A50`–`0x184D2A5F`, and it carries
  `magic_num` and `length`.
- `FrameCheckError` is raised by `Frame.check_valid` for a wrong magic number
  or a set reserved flag.
- `FrameHeaderError` is a subclass of `FrameCheckError`. It is raised for a
  window size out of range, or for dictionary-id or content-size fields of
  the wrong length.
- `FrameDescriptorError` is a subclass of `FrameHeaderError`. It is raised
  for a descriptor value outside `0..255`.

## Building an FSE table

```python
from zframe.fse import FSETable, FSEDecoder, ReversedBitReader

table = FSETable()
table.build_from_probabilities(5, [16, 8, 4, 2, 1, -1])

decoder = FSEDecoder(table)
bits = ReversedBitReader(b"\x12\x34\x56")
decoder.init_state(bits)
symbol = decoder.decode_symbol()
decoder.update_state(bits)
```

`FSETable.build_decoder(source, max_log)` reads a normalised-count
description from `source`, builds the decoding table, and returns the number
of bytes it consumed. Failures raise the following errors:

- `FSETableError` for a bad description.
- `FSEDecoderError` for an uninitialised table or a failed read.
- `GetBitsError` from the bit readers. `BitReader` raises it when the data
  runs out.

A `ReversedBitReader` reads from the end of its data towards the start.
Reads past the start return zero bits, and `bits_remaining()` then becomes
negative.

## Building a Huffman table

```python
from zframe.fse import ReversedBitReader
from zframe.huff0 import HuffmanTable, HuffmanDecoder

table = HuffmanTable()
used = table.build_decoder(b"\x81\x11")  # two directly stored weights; used == 2

decoder = HuffmanDecoder(table)
bits = ReversedBitReader(b"\xa5")
decoder.init_state(bits)
symbol = decoder.decode_symbol()
decoder.next_state(bits)
```

`HuffmanTable.build_decoder` returns the number of bytes that the weight
description occupied. Errors are raised as `HuffmanTableError` and
`HuffmanDecoderError`.

## What it does not do

The package does not decompress data. It does not decode blocks, literals
sections or sequences, and it has no dictionary handling. It does not verify
content checksums, and it provides no streaming reader and no command-line
tool. It supplies the pieces such a decoder is built from: frame headers,
bit readers, FSE tables and Huffman tables.