"""Huffman decoding tables and a state-based Huffman decoder."""

from __future__ import annotations

from typing import NamedTuple, Optional

from .fse import (
    FSEDecoder,
    FSEDecoderError,
    FSETable,
    FSETableError,
    GetBitsError,
    ReversedBitReader,
)

MAX_MAX_NUM_BITS = 11
_MAX_WEIGHTS = 255
_FSE_MAX_LOG = 100


class HuffmanTableError(ValueError):
    """A Huffman table could not be built from its description."""


class HuffmanDecoderError(ValueError):
    """A Huffman decoder could not read the bits it needed."""


class _Entry(NamedTuple):
    symbol: int
    num_bits: int


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


class HuffmanTable:
    """A Huffman decoding table built from a weight description."""

    def __init__(self) -> None:
        self.decode: list[_Entry] = []
        self.weights: list[int] = []
        self.max_num_bits = 0
        self.bits: list[int] = []
        self.bit_ranks: list[int] = []
        self.rank_indexes: list[int] = []
        self.fse_table = FSETable()

    def reset(self) -> None:
        self.decode = []
        self.weights = []
        self.max_num_bits = 0
        self.bits = []
        self.bit_ranks = []
        self.rank_indexes = []
        self.fse_table.reset()

    def build_decoder(self, source: bytes) -> int:
        """Build the table from `source`; return the number of bytes it used."""
        self.decode = []
        bytes_used = self._read_weights(bytes(source))
        self._build_table_from_weights()
        return bytes_used

    def _read_weights(self, source: bytes) -> int:
        if not source:
            raise HuffmanTableError("Source needs to have at least one byte")
        header = source[0]
        bits_read = 8

        if header < 128:
            bits_read += self._read_fse_weights(source[1:], header)
        else:
            weights_raw = source[1:]
            num_weights = header - 127
            bytes_needed = (num_weights + 1) // 2
            if len(weights_raw) < bytes_needed:
                raise HuffmanTableError(
                    f"Source needs to have at least {bytes_needed} bytes, "
                    f"got: {len(weights_raw)}"
                )
            weights = []
            for idx in range(num_weights):
                byte = weights_raw[idx // 2]
                weights.append(byte >> 4 if idx % 2 == 0 else byte & 0xF)
            self.weights = weights
            bits_read += 4 * num_weights

        return (bits_read + 7) // 8

    def _read_fse_weights(self, fse_stream: bytes, header: int) -> int:
        """Decode FSE-compressed weights; return the number of bits consumed."""
        if header > len(fse_stream):
            raise HuffmanTableError(
                f"Header says there should be {header} bytes for the weights but "
                f"there are only {len(fse_stream)} bytes in the stream"
            )
        try:
            used_by_header = self.fse_table.build_decoder(fse_stream, _FSE_MAX_LOG)
        except FSETableError as exc:
            raise HuffmanTableError(str(exc)) from exc

        if used_by_header > header:
            raise HuffmanTableError(
                f"FSE table used more bytes: {used_by_header} than were meant to be "
                f"used for the whole stream of huffman weights ({header})"
            )

        compressed_length = header - used_by_header
        compressed = fse_stream[used_by_header:]
        if len(compressed) < compressed_length:
            raise HuffmanTableError(
                "Not enough bytes in stream to decompress weights. "
                f"Is: {len(compressed)}, Should be: {compressed_length}"
            )
        reader = ReversedBitReader(compressed[:compressed_length])
        dec1 = FSEDecoder(self.fse_table)
        dec2 = FSEDecoder(self.fse_table)

        try:
            # Skip the zero padding and the first set bit that marks the end.
            skipped_bits = 0
            while True:
                value = reader.get_bits(1)
                skipped_bits += 1
                if value == 1 or skipped_bits > 8:
                    break
            if skipped_bits > 8:
                raise HuffmanTableError(
                    "Padding at the end of the sequence_section was more than a byte "
                    f"long: {skipped_bits} bits. Probably caused by data corruption"
                )

            dec1.init_state(reader)
            dec2.init_state(reader)

            weights: list[int] = []
            self.weights = weights
            while True:
                weights.append(dec1.decode_symbol())
                dec1.update_state(reader)
                if reader.bits_remaining() <= -1:
                    weights.append(dec2.decode_symbol())
                    break

                weights.append(dec2.decode_symbol())
                dec2.update_state(reader)
                if reader.bits_remaining() <= -1:
                    weights.append(dec1.decode_symbol())
                    break

                if len(weights) > _MAX_WEIGHTS:
                    raise HuffmanTableError(
                        f"More than 255 weights decoded (got {len(weights)} weights). "
                        "Stream is probably corrupted"
                    )
        except (GetBitsError, FSEDecoderError) as exc:
            raise HuffmanTableError(str(exc)) from exc

        return (used_by_header + compressed_length) * 8

    def _build_table_from_weights(self) -> None:
        weights = self.weights
        weight_sum = 0
        for weight in weights:
            if weight > MAX_MAX_NUM_BITS:
                raise HuffmanTableError(
                    f"Cant have weight: {weight} bigger than max_num_bits: "
                    f"{MAX_MAX_NUM_BITS}"
                )
            if weight > 0:
                weight_sum += 1 << (weight - 1)

        if weight_sum == 0:
            raise HuffmanTableError("Can't build huffman table without any weights")

        max_bits = weight_sum.bit_length()
        left_over = (1 << max_bits) - weight_sum
        if not _is_power_of_two(left_over):
            raise HuffmanTableError(
                f"Leftover must be power of two but is: {left_over}"
            )
        last_weight = left_over.bit_length()

        bits = [max_bits + 1 - w if w > 0 else 0 for w in weights]
        bits.append(max_bits + 1 - last_weight)
        self.bits = bits
        self.max_num_bits = max_bits

        if max_bits > MAX_MAX_NUM_BITS:
            raise HuffmanTableError(
                f"max_bits derived from weights is: {max_bits} should be lower than: "
                f"{MAX_MAX_NUM_BITS}"
            )

        bit_ranks = [0] * (max_bits + 1)
        for num_bits in bits:
            bit_ranks[num_bits] += 1
        self.bit_ranks = bit_ranks

        table_size = 1 << max_bits
        decode = [_Entry(0, 0)] * table_size

        # Starting index in the table for each code length.
        rank_indexes = [0] * (max_bits + 1)
        for num_bits in range(max_bits, 0, -1):
            rank_indexes[num_bits - 1] = rank_indexes[num_bits] + bit_ranks[
                num_bits
            ] * (1 << (max_bits - num_bits))

        if rank_indexes[0] != table_size:
            raise HuffmanTableError(
                f"rank_idx[0]: {rank_indexes[0]} should be: {table_size}"
            )

        for symbol, num_bits in enumerate(bits):
            if num_bits == 0:
                continue
            base = rank_indexes[num_bits]
            span = 1 << (max_bits - num_bits)
            rank_indexes[num_bits] += span
            entry = _Entry(symbol, num_bits)
            decode[base : base + span] = [entry] * span

        self.rank_indexes = rank_indexes
        self.decode = decode


class HuffmanDecoder:
    """Decodes symbols by walking the states of a HuffmanTable."""

    def __init__(self, table: HuffmanTable) -> None:
        self.table = table
        self.state = 0

    def reset(self, new_table: Optional[HuffmanTable]) -> None:
        self.state = 0
        if new_table is not None:
            self.table = new_table

    def decode_symbol(self) -> int:
        return self.table.decode[self.state].symbol

    def init_state(self, br: ReversedBitReader) -> int:
        """Load the first state; return the number of bits consumed."""
        num_bits = self.table.max_num_bits
        try:
            self.state = br.get_bits(num_bits)
        except GetBitsError as exc:
            raise HuffmanDecoderError(str(exc)) from exc
        return num_bits

    def next_state(self, br: ReversedBitReader) -> int:
        """Advance past the current symbol; return the number of bits consumed."""
        num_bits = self.table.decode[self.state].num_bits
        try:
            new_bits = br.get_bits(num_bits)
        except GetBitsError as exc:
            raise HuffmanDecoderError(str(exc)) from exc
        mask = len(self.table.decode) - 1
        self.state = ((self.state << num_bits) & mask) | new_bits
        return num_bits