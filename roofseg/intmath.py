"""Fixed-point integer arithmetic helpers."""

from __future__ import annotations

import sys
from typing import TypeVar

T = TypeVar("T")


def div_exp2(x: int, shift: int) -> int:
    """Divide ``x`` by ``2**shift``, truncating towards zero."""
    return x >> shift if x >= 0 else -((-x) >> shift)


def div_exp2_round_half_up(x: int, shift: int) -> int:
    """Divide ``x`` by ``2**shift``, rounding halves towards +infinity."""
    if not shift:
        return x
    return (x + (1 << (shift - 1))) >> shift


def div_exp2_round_half_inf(x: int, shift: int) -> int:
    """Divide ``x`` by ``2**shift``, rounding halves away from zero."""
    if not shift:
        return x
    return div_exp2_round_half_inf_positive_shift(x, shift, 1 << (shift - 1))


def div_exp2_round_half_inf_positive_shift(scalar: int, shift: int, s0: int) -> int:
    """Divide by ``2**shift`` rounding away from zero, with ``s0`` the half step."""
    return (s0 + scalar) >> shift if scalar >= 0 else -((s0 - scalar) >> shift)


def recip_approx(b: int, iterations: int = 1) -> tuple[int, int]:
    """Approximate ``1 / b`` in fixed point.

    Returns ``(reciprocal, log2_scale)`` with
    ``reciprocal ~= 2**log2_scale / b``. Each iteration is one
    Newton-Raphson refinement step.
    """
    if b <= 0:
        raise ValueError(f"b must be positive, got {b}")
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")

    offset = 0
    nbits = b.bit_length()
    if nbits > 31:
        b >>= nbits - 31
        offset -= nbits - 31
    elif nbits < 31:
        b <<= 31 - nbits
        offset += 31 - nbits

    # Linear start 48/17 - 32/17 * b, 28 fractional bits.
    recip = ((0x2D2D2D2D << 31) - 0x1E1E1E1E * b) >> 28
    for _ in range(iterations):
        recip += recip * ((1 << 31) - (b * recip >> 31)) >> 31

    return recip, (31 << 1) - offset


def clip(n: T, lower: T, upper: T) -> T:
    """Clamp ``n`` into ``[lower, upper]``."""
    return max(lower, min(n, upper))


def approximately_equal(a: float, b: float, epsilon: float = sys.float_info.epsilon) -> bool:
    """Return whether ``a`` and ``b`` agree within a relative ``epsilon``."""
    return abs(a - b) <= max(abs(a), abs(b)) * epsilon