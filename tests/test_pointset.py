import copy

import pytest

from roofseg.geometry import Vec3
from roofseg.pointset import AzimuthalPhiZi, PointSet


def make_cloud():
    return PointSet([Vec3(1, 2, 3), Vec3(4, 5, 6), Vec3(7, 8, 9)])


def test_new_set_is_empty_without_attributes():
    cloud = PointSet()
    assert len(cloud) == 0
    assert not cloud.has_colors
    assert not cloud.has_reflectances
    assert not cloud.has_frame_index
    assert not cloud.has_laser_angles


def test_absent_attribute_raises():
    cloud = make_cloud()
    assert not cloud.has_colors
    assert not cloud.has_reflectances
    with pytest.raises(AttributeError):
        cloud.colors
    with pytest.raises(AttributeError):
        cloud.reflectances
    cloud.add_reflectances()
    assert len(cloud.reflectances) == 3


def test_add_colors_matches_point_count():
    cloud = make_cloud()
    cloud.add_colors()
    assert cloud.has_colors
    assert cloud.colors == [Vec3(0, 0, 0)] * 3


def test_remove_colors():
    cloud = make_cloud()
    cloud.add_colors()
    cloud.remove_colors()
    assert not cloud.has_colors
    with pytest.raises(AttributeError):
        cloud.colors


def test_resize_grows_all_attributes():
    cloud = make_cloud()
    cloud.add_reflectances()
    cloud.add_frame_index()
    cloud.add_laser_angles()
    cloud.resize(5)
    assert len(cloud) == 5
    assert cloud[4] == Vec3(0, 0, 0)
    assert len(cloud.reflectances) == 5
    assert len(cloud.frame_indices) == 5
    assert len(cloud.laser_angles) == 5


def test_resize_negative_raises():
    with pytest.raises(ValueError):
        make_cloud().resize(-1)


def test_set_attributes():
    cloud = make_cloud()
    cloud.set_attributes(True, False)
    assert cloud.has_colors and not cloud.has_reflectances
    cloud.set_attributes(False, True)
    assert not cloud.has_colors and cloud.has_reflectances


def test_match_attributes_ignores_frame_index():
    ref = PointSet()
    ref.add_colors()
    ref.add_laser_angles()
    ref.add_frame_index()
    cloud = make_cloud()
    cloud.add_reflectances()
    cloud.match_attributes(ref)
    assert cloud.has_colors
    assert cloud.has_laser_angles
    assert not cloud.has_reflectances
    assert not cloud.has_frame_index


def test_clear_keeps_flags():
    cloud = make_cloud()
    cloud.add_colors()
    cloud.clear()
    assert len(cloud) == 0
    assert cloud.has_colors
    assert cloud.colors == []


def test_remove_duplicate_quantized_masks_and_dedups():
    cloud = PointSet([Vec3(0, 0, 0), Vec3(1, 1, 1), Vec3(2, 2, 2)])
    assert cloud.remove_duplicate_quantized(1) == 2
    assert cloud.positions == [Vec3(0, 0, 0), Vec3(2, 2, 2)]


def test_remove_duplicate_only_consecutive():
    a, b = Vec3(1, 1, 1), Vec3(2, 2, 2)
    cloud = PointSet([a, a, b, a])
    cloud.add_colors()
    assert cloud.remove_duplicate_quantized(0) == 3
    assert cloud.positions == [a, b, a]
    assert len(cloud.colors) == 3


def test_append_into_empty_takes_attributes():
    src = make_cloud()
    src.add_colors()
    src.colors[1] = Vec3(10, 20, 30)
    dst = PointSet()
    dst.append(src)
    assert dst.positions == src.positions
    assert dst.has_colors
    assert dst.colors[1] == Vec3(10, 20, 30)


def test_append_with_replacement_positions():
    src = make_cloud()
    dst = PointSet([Vec3(0, 0, 0)])
    replacement = [Vec3(-1, -1, -1)] * 3
    dst.append(src, replacement)
    assert len(dst) == 4
    assert dst.positions[1:] == replacement


def test_append_wrong_length_raises():
    with pytest.raises(ValueError):
        PointSet().append(make_cloud(), [Vec3(0, 0, 0)])


def test_swap_points_swaps_attributes_but_not_frame_index():
    cloud = make_cloud()
    cloud.add_colors()
    cloud.add_frame_index()
    cloud.colors[0] = Vec3(5, 5, 5)
    cloud.frame_indices[0] = 7
    cloud.swap_points(0, 2)
    assert cloud[0] == Vec3(7, 8, 9)
    assert cloud[2] == Vec3(1, 2, 3)
    assert cloud.colors[2] == Vec3(5, 5, 5)
    assert cloud.frame_indices[0] == 7


def test_swap_points_out_of_range():
    with pytest.raises(IndexError):
        make_cloud().swap_points(0, 3)


def test_bounding_box_all_and_subset():
    cloud = PointSet([Vec3(1, 8, 3), Vec3(4, 2, 9), Vec3(-5, 6, 0)])
    box = cloud.bounding_box()
    assert box.min == Vec3(-5, 2, 0)
    assert box.max == Vec3(4, 8, 9)
    sub = cloud.bounding_box([0])
    assert sub.min == Vec3(1, 8, 3) and sub.max == Vec3(1, 8, 3)


def test_bounding_box_empty_is_inverted():
    box = PointSet().bounding_box()
    assert box.min == Vec3(2147483647, 2147483647, 2147483647)
    assert box.max == Vec3(-2147483648, -2147483648, -2147483648)


def test_shift_moves_every_point():
    cloud = make_cloud()
    before = list(cloud)
    cloud.shift(Vec3(1, -1, 2))
    assert [p - Vec3(1, -1, 2) for p in cloud] == before


def test_copy_is_independent():
    cloud = make_cloud()
    cloud.add_colors()
    other = copy.copy(cloud)
    other[0] = Vec3(0, 0, 0)
    other.colors[0] = Vec3(1, 1, 1)
    assert cloud[0] == Vec3(1, 2, 3)
    assert cloud.colors[0] == Vec3(0, 0, 0)


def test_azimuthal_single_step_is_full_turn():
    az = AzimuthalPhiZi(1, [1])
    assert az.delta(0) == 6588397


def test_azimuthal_delta_times_inverse_near_unity():
    az = AzimuthalPhiZi(2, [1800, 2048])
    for i in range(2):
        product = az.delta(i) * az.inv_delta(i)
        assert abs(product - (1 << 30)) / (1 << 30) < 0.01


def test_azimuthal_too_few_counts():
    with pytest.raises(ValueError):
        AzimuthalPhiZi(3, [100])