import math

import numpy as np
import pytest
from PIL import Image

from roofseg.geometry import Vec3
from roofseg.grid import BuildingGrid
from roofseg.pointset import PointSet


def _layered_cloud():
    ground = [Vec3(5000 + i, 5000, 10) for i in range(3)]
    roof = [Vec3(100 + 7 * i, 130 + 3 * i, 3010) for i in range(5)]
    return PointSet(ground + roof)


def test_cloud_is_moved_to_origin():
    cloud = PointSet([Vec3(120, -40, 7), Vec3(400, 60, 2000)])
    grid = BuildingGrid(cloud)
    box = cloud.bounding_box()
    assert box.min == Vec3(0, 0, 0)
    assert grid.cloud.positions == cloud.positions


def test_grid_covers_every_point():
    cloud = PointSet([Vec3(0, 0, 0), Vec3(250, 999, 5)])
    grid = BuildingGrid(cloud)
    assert grid.image.shape == (grid.height, grid.width, 3)
    for pt in grid.cloud:
        assert pt.x // grid.bin_size + 1 < grid.width
        assert pt.y // grid.bin_size + 1 < grid.height


def test_empty_cloud_rejected():
    with pytest.raises(ValueError):
        BuildingGrid(PointSet())


def test_ground_threshold_skips_lower_half():
    grid = BuildingGrid(_layered_cloud())
    threshold = grid.ground_threshold()
    assert threshold == 3000
    assert threshold % grid.bin_height == 0


def test_ground_threshold_majority_on_ground():
    cloud = PointSet([Vec3(i, 0, 0) for i in range(5)] + [Vec3(0, 0, 4000)])
    grid = BuildingGrid(cloud)
    assert grid.ground_threshold() == 0


def test_mean_height_of_roof_cells():
    grid = BuildingGrid(_layered_cloud())
    grid.compute_grid_image()
    density = grid.image[:, :, 1]
    heights = grid.image[:, :, 0]
    occupied = density != 0
    assert occupied.any()
    assert np.allclose(heights[occupied], 3000)
    assert np.all(heights[~occupied] == 0)
    # Ground points lie below the threshold and leave their cells empty.
    gx, gy = grid.cloud[0].x // grid.bin_size, grid.cloud[0].y // grid.bin_size
    assert density[gy, gx] == 0


def test_single_point_density():
    grid = BuildingGrid(PointSet([Vec3(0, 0, 0)]))
    grid.compute_grid_image()
    assert grid.image[0, 0, 1] == pytest.approx(math.log(2) + 20)
    assert grid.image[1, 1, 1] == 0


def test_save_images(tmp_path):
    grid = BuildingGrid(_layered_cloud())
    grid.compute_grid_image()
    paths = grid.save_images(str(tmp_path / "out_"))
    assert len(paths) == 3
    assert all(p.exists() for p in paths)

    height_img = np.asarray(Image.open(paths[0]))
    assert height_img.shape == (grid.height, grid.width, 3)
    assert height_img[:, :, 0].max() == 255
    assert height_img[:, :, 1:].max() == 0

    density_img = np.asarray(Image.open(paths[1]))
    assert density_img[:, :, 1].max() == 255
    assert density_img[:, :, 0].max() == 0

    third = np.asarray(Image.open(paths[2]))
    assert third.max() == 0