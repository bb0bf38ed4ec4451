"""Region-growing plane segmentation of point clouds."""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from .geometry import Vec3
from .pointset import PointSet

_UP = Vec3(0.0, 0.0, 1.0)
_NAN_VEC = Vec3(math.nan, math.nan, math.nan)

# Minimum cosine between the plane normal and a candidate point's normal.
_MIN_NORMAL_COSINE = 0.88

# Neighbourhood used for normal estimation: search radius and point limit.
NORMAL_RADIUS = 100.0
NORMAL_MAX_NN = 50


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


@dataclass
class Plane:
    """A detected plane: its label, unit normal, centre and member points.

    ``point_idx`` may name a point more than once when growth reaches the
    seed point again.
    """

    id: int
    normal: Vec3 = Vec3(0.0, 0.0, 0.0)
    center: Vec3 = Vec3(0, 0, 0)
    point_idx: list[int] = field(default_factory=list)


class PlaneSegmenter:
    """Grow planes over a point cloud from per-point normals and neighbours.

    ``neighbours[i]`` lists the nearest points of point ``i``, itself first.
    A point joins the plane being grown when it is unlabelled, lies within
    ``thickness`` of the plane and its normal is close to the plane normal.
    Planes with no more than ``min_points`` members are discarded. Labels
    are kept in ``cloud.plane_idx``, ``-1`` meaning unassigned.
    """

    def __init__(
        self,
        cloud: PointSet,
        normals: Sequence[Vec3],
        neighbours: Sequence[Sequence[int]],
        k: int,
        thickness: float = 300,
        min_points: int = 400,
    ) -> None:
        count = len(cloud)
        if len(normals) != count:
            raise ValueError(f"expected {count} normals, got {len(normals)}")
        if len(neighbours) != count:
            raise ValueError(f"expected {count} neighbour lists, got {len(neighbours)}")
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")

        self.cloud = cloud
        self.normals = normals
        self.neighbours = neighbours
        self.k = k
        self.thickness = thickness
        self.min_points = min_points

        labels = cloud.plane_idx[:count]
        cloud.plane_idx = labels + [-1] * (count - len(labels))

        self._next_id = 1
        self._plane: Optional[Plane] = None
        self._normal: Vec3 = _UP
        self._center: Vec3 = Vec3(0, 0, 0)
        self._normal_sum: Vec3 = Vec3(0.0, 0.0, 0.0)
        self._center_sum: Vec3 = Vec3(0, 0, 0)

    # -- plane state ---------------------------------------------------------

    def _start(self, seed: int) -> None:
        self._plane = Plane(id=self._next_id)
        self._normal = self.normals[seed]
        self._center = self.cloud[seed]
        self._normal_sum = Vec3(0.0, 0.0, 0.0)
        self._center_sum = Vec3(0, 0, 0)
        self._add(seed)

    def _add(self, idx: int) -> None:
        self._plane.point_idx.append(idx)
        self._normal_sum = self._normal_sum + self.normals[idx]
        self._center_sum = self._center_sum + self.cloud[idx]

    def _refit(self) -> None:
        norm = math.sqrt(self._normal_sum.norm2())
        self._normal = self._normal_sum / norm if norm else _NAN_VEC
        n = len(self._plane.point_idx)
        self._center = Vec3(*(_trunc_div(int(s), n) for s in self._center_sum))

    def _select(self, idx: int) -> list[int]:
        labels = self.cloud.plane_idx
        chosen = []
        for nid in self.neighbours[idx][1:self.k]:
            if labels[nid] > 0:
                continue
            offset = self.cloud[nid] - self._center
            if (
                abs(offset.dot(self._normal)) <= self.thickness
                and self._normal.dot(self.normals[nid]) >= _MIN_NORMAL_COSINE
            ):
                chosen.append(nid)
                self._add(nid)
                labels[nid] = self._plane.id
        return chosen

    # -- public interface ----------------------------------------------------

    def grow(self, idx: int, depth: int = 0) -> bool:
        """Grow the current plane outwards from point ``idx``.

        At depth 0 growth fails, returning ``False``, unless every one of
        the ``k - 1`` neighbours of ``idx`` joins the plane. The plane fit
        is refreshed after each step and growth continues depth first.
        """
        if self._plane is None:
            raise RuntimeError("no plane is being grown")
        selected = self._select(idx)
        if depth == 0 and len(selected) < self.k - 1:
            return False
        self._refit()

        stack = [iter(selected)]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                continue
            children = self._select(child)
            self._refit()
            stack.append(iter(children))
        return True

    def planes(self) -> list[Plane]:
        """Segment the cloud and return the planes found, in seed order."""
        cloud = self.cloud
        found: list[Plane] = []
        for i in range(len(cloud)):
            if cloud.plane_idx[i] != -1:
                continue
            self._start(i)
            if not self.grow(i, 0):
                continue
            plane = self._plane
            plane.center = self._center
            plane.normal = self._normal
            if len(plane.point_idx) > self.min_points:
                found.append(plane)
                self._next_id += 1
            else:
                for pid in plane.point_idx:
                    cloud.plane_idx[pid] = -1
        return found

    def color_planes(
        self, planes: Sequence[Plane], rng: Optional[random.Random] = None
    ) -> None:
        """Paint each plane a random colour and every other point black.

        Colour channels are drawn from ``[55, 255)``. Colours are enabled on
        the cloud if it has none.
        """
        rng = rng if rng is not None else random.Random()
        cloud = self.cloud
        if not cloud.has_colors:
            cloud.add_colors()
        colors = cloud.colors
        black = Vec3(0, 0, 0)
        for i in range(len(colors)):
            colors[i] = black
        for plane in planes:
            color = Vec3(
                55 + rng.randrange(200), 55 + rng.randrange(200), 55 + rng.randrange(200)
            )
            for pid in plane.point_idx:
                colors[pid] = color


def estimate_normals_and_neighbours(
    cloud: PointSet, k: int = 15
) -> tuple[list[Vec3], list[list[int]]]:
    """Estimate a normal for every point and list its ``k`` nearest points.

    Normals come from principal component analysis of up to
    ``NORMAL_MAX_NN`` neighbours within ``NORMAL_RADIUS`` and are turned to
    face +z; with fewer than three such neighbours the normal is +z. Each
    neighbour list holds the indices of the ``k`` nearest points, nearest
    first.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")
    count = len(cloud)
    if count == 0:
        return [], []

    pts = np.array([[p.x, p.y, p.z] for p in cloud], dtype=float)
    tree = cKDTree(pts)

    dist, idx = tree.query(
        pts,
        k=min(NORMAL_MAX_NN, count),
        distance_upper_bound=np.nextafter(NORMAL_RADIUS, np.inf),
    )
    dist = np.asarray(dist).reshape(count, -1)
    idx = np.asarray(idx).reshape(count, -1)

    up = np.array([0.0, 0.0, 1.0])
    normals: list[Vec3] = []
    for row_d, row_i in zip(dist, idx):
        members = row_i[np.isfinite(row_d)]
        if len(members) >= 3:
            cov = np.cov(pts[members], rowvar=False, bias=True)
            _, vectors = np.linalg.eigh(cov)
            normal = vectors[:, 0]
        else:
            normal = up
        if np.linalg.norm(normal) == 0:
            normal = up
        elif normal @ up < 0:
            normal = -normal
        normals.append(Vec3(*(float(v) for v in normal)))

    _, knn = tree.query(pts, k=min(k, count))
    knn = np.asarray(knn).reshape(count, -1)
    neighbours = [[int(j) for j in row] for row in knn]
    return normals, neighbours