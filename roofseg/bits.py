"""Bit manipulation helpers.

Population counts, integer logarithms, rotations, Morton-code arithmetic
and in-place counting/radix sorting.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, MutableSequence
from functools import partial
from itertools import accumulate
from typing import Any, Optional

_MASK64 = (1 << 64) - 1

# Every third bit of a 64-bit word: the bits of one axis in a 3D Morton code.
_MORTON_AXIS_MASK = sum(1 << i for i in range(0, 64, 3))


def _require_unsigned(x: int, name: str = "x") -> None:
    if x < 0:
        raise ValueError(f"{name} must be non-negative, got {x}")


def system_endianness() -> str:
    """Return the native byte order, ``"little"`` or ``"big"``."""
    return "little" if sys.byteorder == "little" else "big"


def popcnt(x: int) -> int:
    """Return the number of bits set in the non-negative integer ``x``."""
    _require_unsigned(x)
    return x.bit_count()


def popcnt_gt1(x: int) -> int:
    """Return a non-zero value when more than one bit of ``x`` is set."""
    _require_unsigned(x)
    return x & (x - 1) if x else 0


def ceilpow2(x: int, bits: int = 32) -> int:
    """Round ``x`` up to the next power of two in a ``bits``-wide word.

    As with fixed-width unsigned arithmetic, ``0`` and values above the
    largest representable power of two wrap to ``0``.
    """
    _require_unsigned(x)
    if bits <= 0:
        raise ValueError(f"bits must be positive, got {bits}")
    mask = (1 << bits) - 1
    y = (x - 1) & mask
    return (1 << y.bit_length()) & mask


def ilog2(x: int) -> int:
    """Return floor(log2(x)); ``ilog2(0)`` is ``-1``."""
    _require_unsigned(x)
    return x.bit_length() - 1


def ceillog2(x: int) -> int:
    """Return ceil(log2(x)) for a 32-bit value; ``ceillog2(0)`` is ``32``."""
    _require_unsigned(x)
    if x == 0:
        return 32
    return (x - 1).bit_length()


def num_bits(x: int) -> int:
    """Return the number of bits needed to represent ``x`` (at least 1)."""
    _require_unsigned(x)
    return max(0, ilog2(x)) + 1


def _rotation_params(val: int, n: int, bits: int) -> tuple[int, int, int]:
    if bits <= 0 or bits & (bits - 1):
        raise ValueError(f"bits must be a positive power of two, got {bits}")
    mask = (1 << bits) - 1
    return val & mask, n & (bits - 1), mask


def rotate_left(val: int, n: int, bits: int = 32) -> int:
    """Rotate ``val`` left by ``n`` bits within a ``bits``-wide word.

    Negative ``n`` rotates right; negative ``val`` is taken as unsigned.
    """
    v, n, mask = _rotation_params(val, n, bits)
    return ((v << n) | (v >> (bits - n))) & mask


def rotate_right(val: int, n: int, bits: int = 32) -> int:
    """Rotate ``val`` right by ``n`` bits within a ``bits``-wide word.

    Negative ``n`` rotates left; negative ``val`` is taken as unsigned.
    """
    v, n, mask = _rotation_params(val, n, bits)
    return ((v >> n) | (v << (bits - n))) & mask


def morton3d_axis_dec(val: int, axis: int) -> int:
    """Decrement the ``axis``-th component of the 3D Morton code ``val``."""
    if axis not in (0, 1, 2):
        raise ValueError(f"axis must be 0, 1 or 2, got {axis}")
    val &= _MASK64
    mask0 = (_MORTON_AXIS_MASK << axis) & _MASK64
    return ((((val & mask0) - 1) & mask0) | (val & ~mask0)) & _MASK64


def morton3d_add(a: int, b: int) -> int:
    """Add two 3D Morton codes component-wise."""
    a &= _MASK64
    b &= _MASK64
    mask = _MORTON_AXIS_MASK
    val = 0
    for _ in range(3):
        val |= ((a | ~mask) + (b & mask)) & mask
        mask = (mask << 1) & _MASK64
    return val


def _counting_sort(
    items: MutableSequence[Any],
    lo: int,
    hi: int,
    radix: int,
    value_of: Callable[[Any], int],
) -> list[int]:
    counts = [0] * radix
    for item in items[lo:hi]:
        value = value_of(item)
        if not 0 <= value < radix:
            raise ValueError(f"sort key {value} outside range [0, {radix})")
        counts[value] += 1

    ptrs = list(accumulate([lo] + counts[:-1]))
    end = lo
    for i, count in enumerate(counts):
        end += count
        while ptrs[i] != end:
            p = ptrs[i]
            r = value_of(items[p])
            q = ptrs[r]
            items[p], items[q] = items[q], items[p]
            ptrs[r] += 1
    return counts


def counting_sort(
    items: MutableSequence[Any], radix: int, value_of: Callable[[Any], int]
) -> list[int]:
    """Sort ``items`` in place by ``value_of(item)`` in ``[0, radix)``.

    The sort is not stable. Returns the histogram of key values.
    """
    if radix < 1:
        raise ValueError(f"radix must be at least 1, got {radix}")
    return _counting_sort(items, 0, len(items), radix, value_of)


def radix_sort8(
    items: MutableSequence[Any],
    max_val_log2: int,
    op: Callable[[int, Any], int],
    acc: Optional[Callable[[int, list[int]], None]] = None,
) -> None:
    """Sort ``items`` in place, most significant 3-bit digit first.

    ``op(level, item)`` gives the digit in ``[0, 8)`` of ``item`` at
    ``level``, counting down from ``max_val_log2`` to 0. If ``acc`` is
    given it is called as ``acc(level, counts)`` for every bucket sorted.
    """

    def sort_range(lo: int, hi: int, level: int) -> None:
        counts = _counting_sort(items, lo, hi, 8, partial(op, level))
        if acc is not None:
            acc(level, counts)
        if level - 1 < 0:
            return
        start = lo
        for count in counts:
            if count:
                sort_range(start, start + count, level - 1)
                start += count

    sort_range(0, len(items), max_val_log2)