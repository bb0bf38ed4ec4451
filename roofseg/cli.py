"""Command line entry point: segment the roof planes of a PLY point cloud."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from . import ply
from .grid import BuildingGrid
from .segmentation import PlaneSegmenter, estimate_normals_and_neighbours

# Input coordinates are metres; work in millimetres.
POSITION_SCALE = 1000.0
NEIGHBOURS = 15


@dataclass(frozen=True)
class Paths:
    """Input and output file paths."""

    read_path: str
    save_path: str


def _value(arg: str) -> str:
    parts = arg.split("=")
    if len(parts) < 2:
        raise ValueError(f"expected an argument of the form name=path, got {arg!r}")
    return parts[1]


def parse_paths(argv: Sequence[str]) -> Paths:
    """Parse ``name=path`` arguments: the first names the input, the second the output."""
    if len(argv) < 2:
        raise ValueError("expected an input and an output argument")
    return Paths(_value(argv[0]), _value(argv[1]))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Read a cloud, colour its planes and write the result. Returns the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        paths = parse_paths(args)
    except ValueError as exc:
        print(f"usage: roofseg input=<file.ply> output=<file.ply>: {exc}", file=sys.stderr)
        return 2

    try:
        cloud = ply.read(paths.read_path, ("x", "y", "z"), POSITION_SCALE)
    except (OSError, ply.PlyError) as exc:
        print(f"error: cannot read {paths.read_path}: {exc}", file=sys.stderr)
        return 1
    if len(cloud) == 0:
        print(f"error: {paths.read_path} holds no points", file=sys.stderr)
        return 1

    BuildingGrid(cloud)

    normals, neighbours = estimate_normals_and_neighbours(cloud, NEIGHBOURS)
    segmenter = PlaneSegmenter(cloud, normals, neighbours, NEIGHBOURS)
    planes = segmenter.planes()
    segmenter.color_planes(planes)

    try:
        ply.write(cloud, paths.save_path, ("x", "y", "z"), 1.0, (0, 0, 0), False)
    except OSError as exc:
        print(f"error: cannot write {paths.save_path}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())