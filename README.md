# roofseg

`roofseg` finds planar patches, such as roof faces, in point clouds from
airborne scans. It reads a PLY file, grows planes over the
k-nearest-neighbour graph of the points, gives every plane it finds its own
random colour and writes the coloured cloud back out as PLY.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Command line

```
roofseg read=input.ply save=segmented.ply
```

Each argument has the form `name=path`. The name is ignored; the path is the
text after the first `=` (up to any further `=`). The first argument names
the cloud to read, the second the file to write.

What the command does:

1. Reads `x`, `y` and `z` from the input PLY, ASCII or binary. Positions are
   multiplied by 1000 and truncated, so metres become integer millimetres.
2. Moves the cloud so that the smallest x, y and z of its bounding box are
   at zero.
3. Estimates a normal for every point by principal component analysis of up
   to 50 neighbours within 100 mm, turned to face +z (+z itself when fewer
   than three neighbours are found), and lists each point's 15 nearest
   neighbours.
4. Grows planes from seed points in point order. A seed only starts a plane
   if all 14 of its other nearest neighbours join it. A neighbour joins when
   it is unlabelled, lies within 300 mm of the plane and its normal has a
   dot product of at least 0.88 with the plane's normal. The plane's centre
   and normal are recomputed as it grows. A plane is kept only if it has
   more than 400 points.
5. Paints every point black and every kept plane a random colour with each
   channel in 55–254, then writes the cloud as binary PLY in the machine's
   byte order. Positions are written as float64 in the shifted millimetre
   coordinates.

The command exits with status 0 on success, 2 when the arguments are
missing or malformed, and 1 when the input cannot be read, holds no points,
or the output cannot be written.

## Library use

The PLY reader and writer can be used on their own:

```python
from roofseg import ply

cloud = ply.read("input.ply", ("x", "y", "z"), 1000.0)
ply.write(cloud, "copy.ply", ("x", "y", "z"), 0.001, (0.0, 0.0, 0.0), True)
```

`ply.read` returns a `PointSet` and also loads colours (`red`, `green`,
`blue`), reflectance (`reflectance` or `refc`), `frameindex` and
`laserangle` when present. It raises `ply.PlyError` when the file is
corrupt, uses an unknown property type, has a version other than 1.0, or
lacks a position property. `ply.write` writes positions as
`point * position_scale + position_offset`, as `float` with five decimals
in ASCII or `float64` in binary, followed by colours, reflectances and
frame indices when the cloud has them.

Other modules:

- `roofseg.segmentation`: `estimate_normals_and_neighbours(cloud, k)`,
  `PlaneSegmenter` (with `planes()`, `grow(idx, depth)` and
  `color_planes(planes, rng)`) and the `Plane` record it returns. Plane
  labels are kept in `PointSet.plane_idx`, `-1` meaning unassigned.
- `roofseg.grid`: `BuildingGrid`, which rasterises a cloud onto a grid of
  100-unit cells. `ground_threshold()` finds the height slice below which
  half the points lie; `compute_grid_image()` splats the points above it
  into a mean-height channel and a log point-density channel;
  `save_images(base_path)` writes three PNG files whose names are
  `base_path` followed by `grid.MEAN_HEIGHT_NAME`, `grid.DENSITY_NAME` and
  `grid.DENSITY_HEIGHT_NAME`. Building a `BuildingGrid` moves the cloud
  passed to it so its bounding box starts at the origin.
- `roofseg.pointset`: `PointSet`, a point cloud with optional colours,
  reflectances, frame indices and laser angles, and `AzimuthalPhiZi`.
- `roofseg.geometry`: the `Vec3`, `Box3` and `Rational` value types.
- `roofseg.bits` and `roofseg.intmath`: integer helpers, among them
  population count, integer logarithms, bit rotation, Morton-code
  arithmetic, counting and radix sorting, rounding shifts and reciprocal
  approximation.

## What it does not do

- The `roofseg` command does not write the height or density grid images;
  use `BuildingGrid` from Python for those.
- Nothing in the package traces building outlines from the grid images or
  builds 3D models (such as OBJ files) from them.
- Plane colours are random on every run unless a seeded `random.Random` is
  passed to `PlaneSegmenter.color_planes`.