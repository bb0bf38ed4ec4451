import random
import struct

import pytest

from roofseg.bits import (
    ceillog2,
    ceilpow2,
    counting_sort,
    ilog2,
    morton3d_add,
    morton3d_axis_dec,
    num_bits,
    popcnt,
    popcnt_gt1,
    radix_sort8,
    rotate_left,
    rotate_right,
    system_endianness,
)


def _encode(x, y, z, bits=21):
    code = 0
    for i in range(bits):
        for axis, coord in enumerate((x, y, z)):
            code |= ((coord >> i) & 1) << (3 * i + axis)
    return code


def test_system_endianness_matches_native_layout():
    assert (1).to_bytes(4, system_endianness()) == struct.pack("=I", 1)


@pytest.mark.parametrize("k", range(33))
def test_popcnt_of_low_mask(k):
    assert popcnt((1 << k) - 1) == k


@pytest.mark.parametrize("x", [0, 1, 0x5A5A5A5A, 0xDEADBEEF, 0xFFFFFFFF])
def test_popcnt_complement_sums_to_width(x):
    assert popcnt(x) + popcnt(x ^ 0xFFFFFFFF) == 32


def test_popcnt_rejects_negative():
    with pytest.raises(ValueError):
        popcnt(-1)


@pytest.mark.parametrize("k", range(31))
def test_popcnt_gt1(k):
    assert not popcnt_gt1(1 << k)
    assert popcnt_gt1((1 << k) | (1 << (k + 1))) == 1 << (k + 1)


def test_popcnt_gt1_zero_is_false():
    assert not popcnt_gt1(0)


@pytest.mark.parametrize("x", [1, 2, 3, 5, 7, 8, 9, 100, 1000, 65535, 1 << 30])
def test_ceilpow2_is_next_power(x):
    r = ceilpow2(x)
    assert popcnt(r) == 1
    assert r >= x
    assert r // 2 < x


def test_ceilpow2_wraps_like_fixed_width():
    assert ceilpow2((1 << 31) + 1) == ceilpow2(0)
    wide = ceilpow2((1 << 31) + 1, 64)
    assert popcnt(wide) == 1 and wide > (1 << 31) + 1


@pytest.mark.parametrize("k", range(64))
def test_ilog2_powers(k):
    assert ilog2(1 << k) == k
    assert ilog2((1 << (k + 1)) - 1) == k


def test_ilog2_zero():
    assert ilog2(0) == -1


@pytest.mark.parametrize("k", range(1, 31))
def test_ceillog2(k):
    assert ceillog2(1 << k) == k
    assert ceillog2((1 << k) + 1) == k + 1


def test_ceillog2_zero():
    assert ceillog2(0) == 32


@pytest.mark.parametrize("x", [1, 2, 3, 255, 256, 123456])
def test_num_bits_positive(x):
    assert num_bits(x) == x.bit_length()


def test_num_bits_zero_and_negative():
    assert num_bits(0) == 1
    with pytest.raises(ValueError):
        num_bits(-5)


@pytest.mark.parametrize("n", range(-40, 40, 7))
@pytest.mark.parametrize("val", [0x12345678, 0xF0000001, 0xFFFFFFFF, 7])
def test_rotate_round_trip(val, n):
    rotated = rotate_left(val, n)
    assert rotate_right(rotated, n) == val
    assert popcnt(rotated) == popcnt(val)
    assert rotate_left(val, -n) == rotate_right(val, n)


@pytest.mark.parametrize("n", range(1, 32))
def test_rotate_left_equals_complementary_right(n):
    val = 0xCAFEBABE
    assert rotate_left(val, n) == rotate_right(val, 32 - n)


def test_rotate_treats_signed_as_unsigned():
    assert rotate_left(-1, 5) == rotate_left(0xFFFFFFFF, 5)
    assert rotate_right(-2, 3, 64) == rotate_right((1 << 64) - 2, 3, 64)


def test_rotate_identity_and_bad_width():
    assert rotate_left(0xABCD, 0) == 0xABCD
    with pytest.raises(ValueError):
        rotate_left(1, 1, bits=12)


@pytest.mark.parametrize(
    "a,b",
    [((1, 2, 3), (4, 5, 6)), ((0, 0, 0), (7, 9, 11)), ((100, 200, 300), (55, 66, 77))],
)
def test_morton3d_add(a, b):
    total = tuple(p + q for p, q in zip(a, b))
    assert morton3d_add(_encode(*a), _encode(*b)) == _encode(*total)


@pytest.mark.parametrize("axis", [0, 1, 2])
@pytest.mark.parametrize("point", [(1, 1, 1), (8, 16, 32), (123, 456, 789)])
def test_morton3d_axis_dec(point, axis):
    lowered = list(point)
    lowered[axis] -= 1
    assert morton3d_axis_dec(_encode(*point), axis) == _encode(*lowered)


def test_morton3d_axis_dec_rejects_bad_axis():
    with pytest.raises(ValueError):
        morton3d_axis_dec(0, 3)


def test_counting_sort_groups_by_key():
    rng = random.Random(4)
    items = [rng.randrange(1000) for _ in range(200)]
    original = list(items)
    counts = counting_sort(items, 5, lambda v: v % 5)
    keys = [v % 5 for v in items]
    assert keys == sorted(keys)
    assert sorted(items) == sorted(original)
    assert counts == [sum(1 for v in original if v % 5 == r) for r in range(5)]


def test_counting_sort_rejects_out_of_range_key():
    with pytest.raises(ValueError):
        counting_sort([1, 2, 3], 2, lambda v: v)


def test_radix_sort8_sorts_and_reports_counts():
    rng = random.Random(7)
    items = [rng.randrange(8 ** 3) for _ in range(300)]
    original = list(items)
    calls = []

    radix_sort8(
        items,
        2,
        lambda level, v: (v >> (3 * level)) & 7,
        lambda level, counts: calls.append((level, list(counts))),
    )

    assert items == sorted(original)
    assert calls[0][0] == 2
    assert sum(calls[0][1]) == len(original)
    assert {level for level, _ in calls} == {0, 1, 2}