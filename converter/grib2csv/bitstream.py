# grib2csv - Level Stream Decoder
# SPDX-License-Identifier: Apache-2.0

"""
Run-length level decoding for data template 7.200.

Section 7 is a bitstream of fixed-width samples (``bits_per_sample`` bits,
MSB first, no padding except at the very end to complete the last octet).
With MAXV the highest level used and ``level_count = MAXV + 1``:

- A sample below ``level_count`` is a level literal.
- Samples at or above ``level_count`` following a literal are run-length
  digits in base ``2^bits - level_count``, least significant digit first:

      acc = sum((d_k - level_count) * base^k)

  The literal then occurs ``1 + acc`` times in total.

Example (4 bits, MAXV 10, so base 5):

    3, 9, 12, 6, 4, 15, 2, 1, 0, 13, 12, 2, 3
    -> 3, 9, 9, 6, 4, 4, 4, 4, 4, 2, 1, 0 (x8), 2, 3

The expansion is purely one-dimensional; rows of the grid play no part.
"""

from typing import Iterator
import logging

import numpy as np

from grib2csv.errors import SampleCountMismatch

logger = logging.getLogger(__name__)


class BitReader:
    """
    Cursor over a byte buffer, reading big-endian bit fields.

    ``position`` is the next bit to read, counted from the MSB of octet 0.
    """

    def __init__(self, buffer: bytes, position: int = 0):
        self.buffer = bytes(buffer)
        self.position = position

    @property
    def length(self) -> int:
        """Total bits in the buffer"""
        return len(self.buffer) * 8

    @property
    def remaining(self) -> int:
        return self.length - self.position

    def read(self, nbits: int) -> int:
        """Read the next ``nbits`` bits as an unsigned integer and advance."""
        if nbits <= 0:
            raise ValueError(f"nbits must be positive, got {nbits}")
        if nbits > self.remaining:
            raise ValueError(
                f"cannot read {nbits} bits at position {self.position}, only {self.remaining} remain"
            )

        end = self.position + nbits
        first = self.position // 8
        last = (end + 7) // 8
        chunk = int.from_bytes(self.buffer[first:last], byteorder="big")
        value = (chunk >> (last * 8 - end)) & ((1 << nbits) - 1)

        self.position = end
        return value

    def read_samples(self, width: int) -> np.ndarray:
        """
        Read every remaining whole ``width``-bit sample and advance past them.

        Leftover bits (fewer than ``width``) stay unread.
        """
        if not 1 <= width <= 32:
            raise ValueError(f"sample width must be 1-32 bits, got {width}")

        count = self.remaining // width
        start = self.position
        self.position += count * width

        if count == 0:
            return np.zeros(0, dtype=np.int64)

        # Octet-aligned widths map straight onto numpy dtypes
        if start % 8 == 0 and width in (8, 16, 32):
            dtype = {8: ">u1", 16: ">u2", 32: ">u4"}[width]
            first = start // 8
            chunk = self.buffer[first:first + count * width // 8]
            return np.frombuffer(chunk, dtype=dtype).astype(np.int64)

        bits = np.unpackbits(np.frombuffer(self.buffer, dtype=np.uint8))
        bits = bits[start:start + count * width].reshape(count, width).astype(np.int64)
        weights = np.int64(1) << np.arange(width - 1, -1, -1, dtype=np.int64)
        return bits @ weights


class LevelStreamDecoder:
    """
    Expands a 7.200 bitstream into one level index per grid point.
    """

    def __init__(self, bits_per_sample: int, level_count: int):
        """
        Args:
            bits_per_sample: Width of each sample in bits (1-32)
            level_count: Number of literal levels (MAXV + 1)
        """
        if not 1 <= bits_per_sample <= 32:
            raise ValueError(f"bits_per_sample must be 1-32, got {bits_per_sample}")
        if level_count < 1 or level_count > (1 << bits_per_sample):
            raise ValueError(
                f"level_count {level_count} does not fit in {bits_per_sample} bits"
            )
        self.bits_per_sample = bits_per_sample
        self.level_count = level_count
        self.base = (1 << bits_per_sample) - level_count

    def runs(self, samples: Iterator[int]) -> Iterator[tuple[int, int, int]]:
        """
        Group samples into runs.

        Yields:
            (level, count, index) where ``index`` is the position of the
            literal sample that opened the run
        """
        level_count = self.level_count
        literal = None
        literal_index = 0
        acc = 0
        weight = 1

        for index, value in enumerate(samples):
            if value < level_count:
                if literal is not None:
                    yield literal, 1 + acc, literal_index
                literal = value
                literal_index = index
                acc = 0
                weight = 1
            else:
                if literal is None:
                    raise SampleCountMismatch(
                        f"section 7: run-length sample {value} at sample {index} has no preceding level"
                    )
                acc += (value - level_count) * weight
                weight *= self.base

        if literal is not None:
            yield literal, 1 + acc, literal_index

    def decode(self, payload: bytes, expected: int) -> np.ndarray:
        """
        Decode the section 7 payload.

        Args:
            payload: Section 7 payload (the bitstream)
            expected: Number of grid points (ni * nj)

        Returns:
            int64 array of exactly ``expected`` level indices

        Raises:
            SampleCountMismatch: stream yields fewer or more points than expected
        """
        reader = BitReader(payload)
        total_bits = reader.length
        samples = reader.read_samples(self.bits_per_sample)

        levels = []
        counts = []
        total = 0

        for level, count, index in self.runs(samples.tolist()):
            if total == expected:
                # Only the zero bits padding the last octet may follow
                start = index * self.bits_per_sample
                trailing = total_bits - start
                if trailing < 8 and BitReader(payload, start).read(trailing) == 0:
                    break
                raise SampleCountMismatch(
                    f"section 7: stream continues for {trailing} bits after all {expected} points were decoded"
                )
            levels.append(level)
            counts.append(count)
            total += count
            if total > expected:
                raise SampleCountMismatch(
                    f"section 7: run of {count} x level {level} overruns the grid "
                    f"({total} > {expected} points)"
                )

        if total != expected:
            raise SampleCountMismatch(
                f"section 7: stream exhausted after {total} of {expected} points"
            )

        logger.debug(f"Decoded {len(samples)} samples into {len(levels)} runs, {total} points")
        return np.repeat(
            np.asarray(levels, dtype=np.int64), np.asarray(counts, dtype=np.int64)
        )


def decode_levels(payload: bytes, bits_per_sample: int, level_count: int, expected: int) -> np.ndarray:
    """Convenience wrapper around ``LevelStreamDecoder.decode``."""
    return LevelStreamDecoder(bits_per_sample, level_count).decode(payload, expected)
