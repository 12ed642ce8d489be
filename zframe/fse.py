"""Bit readers and finite state entropy (FSE) decoding tables."""

from __future__ import annotations

from dataclasses import dataclass

ACC_LOG_OFFSET = 5
MAX_BITS_PER_READ = 64
MAX_SYMBOLS = 256


class GetBitsError(ValueError):
    """A bit reader could not serve a request."""


class FSETableError(ValueError):
    """An FSE table could not be built."""


class FSEDecoderError(ValueError):
    """An FSE decoder could not decode."""


def _check_count(n: int) -> None:
    if n < 0:
        raise GetBitsError(f"Cannot read a negative number of bits: {n}")
    if n > MAX_BITS_PER_READ:
        raise GetBitsError(
            f"Cant serve this request. The reader is limited to {MAX_BITS_PER_READ} bits, "
            f"requested {n} bits"
        )


def _extract(data: bytes, start: int, count: int) -> int:
    """Return `count` bits starting at bit `start` of little-endian `data`."""
    chunk = int.from_bytes(data[start // 8 : (start + count + 7) // 8], "little")
    return (chunk >> (start % 8)) & ((1 << count) - 1)


class BitReader:
    """Reads bits from the start of a byte string, least significant bit first."""

    def __init__(self, source: bytes) -> None:
        self._data = bytes(source)
        self._idx = 0

    def get_bits(self, n: int) -> int:
        _check_count(n)
        if n == 0:
            return 0
        remaining = len(self._data) * 8 - self._idx
        if n > remaining:
            raise GetBitsError(
                f"Cant read {n} bits, only have {remaining} bits left"
            )
        value = _extract(self._data, self._idx, n)
        self._idx += n
        return value

    def return_bits(self, n: int) -> None:
        if n > self._idx:
            raise ValueError("Cannot return more bits than were read")
        self._idx -= n

    def bits_read(self) -> int:
        return self._idx


class ReversedBitReader:
    """Reads bits from the end of a byte string towards its start.

    Reading past the start yields zero bits and drives bits_remaining()
    below zero.
    """

    def __init__(self, source: bytes) -> None:
        self._data = bytes(source)
        self._idx = len(self._data) * 8

    def get_bits(self, n: int) -> int:
        _check_count(n)
        if n == 0:
            return 0
        end = self._idx
        self._idx -= n
        start = self._idx
        if start >= 0:
            return _extract(self._data, start, n)
        if end <= 0:
            return 0
        return _extract(self._data, 0, end) << (-start)

    def bits_remaining(self) -> int:
        return self._idx


@dataclass(frozen=True)
class Entry:
    """One state of an FSE decoding table."""

    base_line: int = 0
    num_bits: int = 0
    symbol: int = 0


def _next_position(position: int, table_size: int) -> int:
    position += (table_size >> 1) + (table_size >> 3) + 3
    return position & (table_size - 1)


def _baseline_and_numbits(
    num_states_total: int, num_states_symbol: int, state_number: int
) -> tuple[int, int]:
    if num_states_symbol <= 0:
        raise FSETableError("Decoding table has a slot without a probability")
    highest = num_states_symbol.bit_length()
    if 1 << (highest - 1) == num_states_symbol:
        num_state_slices = num_states_symbol
    else:
        num_state_slices = 1 << highest

    num_double_width = num_state_slices - num_states_symbol
    num_single_width = num_states_symbol - num_double_width
    slice_width = num_states_total // num_state_slices
    if slice_width == 0:
        raise FSETableError("Symbol probability exceeds the table size")
    num_bits = slice_width.bit_length() - 1

    if state_number < num_double_width:
        baseline = num_single_width * slice_width + state_number * slice_width * 2
        return baseline, num_bits + 1
    return (state_number - num_double_width) * slice_width, num_bits


class FSETable:
    """A decoding table built from a normalised probability distribution."""

    def __init__(self) -> None:
        self.decode: list[Entry] = []
        self.accuracy_log = 0
        self.symbol_probabilities: list[int] = []

    def reset(self) -> None:
        self.decode = []
        self.accuracy_log = 0
        self.symbol_probabilities = []

    def build_decoder(self, source: bytes, max_log: int) -> int:
        """Read a distribution header from `source`; return the bytes it used."""
        self.accuracy_log = 0
        bytes_read = self._read_probabilities(source, max_log)
        self._build_decoding_table()
        return bytes_read

    def build_from_probabilities(self, acc_log: int, probs) -> None:
        if acc_log == 0:
            raise FSETableError("Acclog must be at least 1")
        self.symbol_probabilities = list(probs)
        self.accuracy_log = acc_log
        self._build_decoding_table()

    def _build_decoding_table(self) -> None:
        probs = self.symbol_probabilities
        table_size = 1 << self.accuracy_log
        symbols = [0] * table_size
        negative_idx = table_size

        # Symbols with probability -1 take the topmost slots.
        less_than_one = [s for s, p in enumerate(probs) if p == -1]
        if len(less_than_one) > table_size:
            raise FSETableError("Too many low-probability symbols for the table size")
        for symbol in less_than_one:
            negative_idx -= 1
            symbols[negative_idx] = symbol

        position = 0
        for symbol, prob in enumerate(probs):
            if prob <= 0:
                continue
            if negative_idx == 0:
                raise FSETableError("No free slots left in the decoding table")
            for _ in range(prob):
                symbols[position] = symbol
                position = _next_position(position, table_size)
                while position >= negative_idx:
                    position = _next_position(position, table_size)

        counters = [0] * len(probs)
        decode: list[Entry] = []
        for symbol in symbols[:negative_idx]:
            prob = probs[symbol] if symbol < len(probs) else 0
            base_line, num_bits = _baseline_and_numbits(table_size, prob, counters[symbol] if symbol < len(counters) else 0)
            if num_bits > self.accuracy_log:
                raise FSETableError("Computed state width exceeds the accuracy log")
            counters[symbol] += 1
            decode.append(Entry(base_line, num_bits, symbol))
        decode.extend(
            Entry(0, self.accuracy_log, symbol) for symbol in symbols[negative_idx:]
        )
        self.decode = decode

    def _read_probabilities(self, source: bytes, max_log: int) -> int:
        probs: list[int] = []
        self.symbol_probabilities = probs
        reader = BitReader(source)
        try:
            self.accuracy_log = ACC_LOG_OFFSET + reader.get_bits(4)
            if self.accuracy_log > max_log:
                raise FSETableError(
                    f"Found FSE acc_log: {self.accuracy_log} bigger than allowed "
                    f"maximum in this case: {max_log}"
                )

            probability_sum = 1 << self.accuracy_log
            counter = 0
            while counter < probability_sum:
                max_remaining = probability_sum - counter + 1
                bits_to_read = max_remaining.bit_length()
                unchecked = reader.get_bits(bits_to_read)

                low_threshold = ((1 << bits_to_read) - 1) - max_remaining
                mask = (1 << (bits_to_read - 1)) - 1
                small = unchecked & mask

                if small < low_threshold:
                    reader.return_bits(1)
                    value = small
                elif unchecked > mask:
                    value = unchecked - low_threshold
                else:
                    value = unchecked

                prob = value - 1
                probs.append(prob)
                if prob > 0:
                    counter += prob
                elif prob == -1:
                    counter += 1
                else:
                    while True:
                        skip = reader.get_bits(2)
                        probs.extend([0] * skip)
                        if skip != 3:
                            break
        except GetBitsError as exc:
            raise FSETableError(str(exc)) from exc

        if counter != probability_sum:
            raise FSETableError(
                f"The counter ({counter}) exceeded the expected sum: {probability_sum}. "
                f"This means an error or corrupted data \n {probs}"
            )
        if len(probs) > MAX_SYMBOLS:
            raise FSETableError(
                f"There are too many symbols in this distribution: {len(probs)}. Max: 256"
            )
        return (reader.bits_read() + 7) // 8


class FSEDecoder:
    """Walks the states of an FSETable driven by a ReversedBitReader."""

    def __init__(self, table: FSETable) -> None:
        self.table = table
        self.state = table.decode[0] if table.decode else Entry()

    def decode_symbol(self) -> int:
        return self.state.symbol

    def init_state(self, bits: ReversedBitReader) -> None:
        if self.table.accuracy_log == 0:
            raise FSEDecoderError("Tried to use an uninitialized table!")
        try:
            index = bits.get_bits(self.table.accuracy_log)
        except GetBitsError as exc:
            raise FSEDecoderError(str(exc)) from exc
        self.state = self.table.decode[index]

    def update_state(self, bits: ReversedBitReader) -> None:
        try:
            add = bits.get_bits(self.state.num_bits)
        except GetBitsError as exc:
            raise FSEDecoderError(str(exc)) from exc
        self.state = self.table.decode[self.state.base_line + add]