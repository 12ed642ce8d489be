"""Building blocks for decoding Zstandard frames: headers, bit readers, FSE and Huffman tables."""

__version__ = "0.1.0"
__all__ = ["frame", "fse", "huff0"]