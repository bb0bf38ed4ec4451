"""A point cloud stored as parallel per-point attribute lists."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import Optional

from .geometry import Box3, Vec3

_INT32_MAX = (1 << 31) - 1
_INT32_MIN = -(1 << 31)

_ZERO = Vec3(0, 0, 0)


def _trunc_div(a: int, b: int) -> int:
    """Integer division truncating towards zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _resized(values: list, size: int, fill) -> list:
    if size <= len(values):
        return values[:size]
    return values + [fill] * (size - len(values))


class PointSet:
    """A set of integer 3D positions with optional per-point attributes.

    Positions are held in ``positions``. Colours, reflectances, frame
    indices and laser angles are each either absent or a list with one
    entry per point; reading an absent attribute raises ``AttributeError``.
    ``plane_idx`` holds per-point plane labels managed by plane segmentation.
    """

    def __init__(self, positions: Optional[Iterable[Vec3]] = None) -> None:
        self.positions: list[Vec3] = list(positions) if positions is not None else []
        self.plane_idx: list[int] = []
        self._colors: Optional[list[Vec3]] = None
        self._reflectances: Optional[list[int]] = None
        self._frame_indices: Optional[list[int]] = None
        self._laser_angles: Optional[list[int]] = None

    # -- container protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self) -> Iterator[Vec3]:
        return iter(self.positions)

    def __getitem__(self, index: int) -> Vec3:
        return self.positions[index]

    def __setitem__(self, index: int, point: Vec3) -> None:
        self.positions[index] = point

    def __copy__(self) -> PointSet:
        other = PointSet(self.positions)
        other.plane_idx = list(self.plane_idx)
        for name in ("_colors", "_reflectances", "_frame_indices", "_laser_angles"):
            values = getattr(self, name)
            setattr(other, name, None if values is None else list(values))
        return other

    # -- attribute access --------------------------------------------------

    @staticmethod
    def _present(values: Optional[list], what: str) -> list:
        if values is None:
            raise AttributeError(f"point set has no {what}")
        return values

    @property
    def colors(self) -> list[Vec3]:
        """Per-point colours."""
        return self._present(self._colors, "colors")

    @property
    def reflectances(self) -> list[int]:
        """Per-point reflectances."""
        return self._present(self._reflectances, "reflectances")

    @property
    def frame_indices(self) -> list[int]:
        """Per-point frame indices."""
        return self._present(self._frame_indices, "frame indices")

    @property
    def laser_angles(self) -> list[int]:
        """Per-point laser angles."""
        return self._present(self._laser_angles, "laser angles")

    @property
    def has_colors(self) -> bool:
        return self._colors is not None

    @property
    def has_reflectances(self) -> bool:
        return self._reflectances is not None

    @property
    def has_frame_index(self) -> bool:
        return self._frame_indices is not None

    @property
    def has_laser_angles(self) -> bool:
        return self._laser_angles is not None

    # -- adding and removing attributes ------------------------------------

    def add_colors(self) -> None:
        """Enable colours, defaulting new entries to black."""
        if self._colors is None:
            self._colors = []
        self.resize(len(self))

    def remove_colors(self) -> None:
        """Drop colours."""
        self._colors = None

    def add_reflectances(self) -> None:
        """Enable reflectances, defaulting new entries to 0."""
        if self._reflectances is None:
            self._reflectances = []
        self.resize(len(self))

    def remove_reflectances(self) -> None:
        """Drop reflectances."""
        self._reflectances = None

    def add_frame_index(self) -> None:
        """Enable frame indices, defaulting new entries to 0."""
        if self._frame_indices is None:
            self._frame_indices = []
        self.resize(len(self))

    def remove_frame_index(self) -> None:
        """Drop frame indices."""
        self._frame_indices = None

    def add_laser_angles(self) -> None:
        """Enable laser angles, defaulting new entries to 0."""
        if self._laser_angles is None:
            self._laser_angles = []
        self.resize(len(self))

    def remove_laser_angles(self) -> None:
        """Drop laser angles."""
        self._laser_angles = None

    def set_attributes(self, with_colors: bool, with_reflectances: bool) -> None:
        """Enable or drop colours and reflectances."""
        self.add_colors() if with_colors else self.remove_colors()
        self.add_reflectances() if with_reflectances else self.remove_reflectances()

    def match_attributes(self, ref: PointSet) -> None:
        """Carry the same colours, reflectances and laser angles flags as ``ref``."""
        self.add_colors() if ref.has_colors else self.remove_colors()
        self.add_reflectances() if ref.has_reflectances else self.remove_reflectances()
        self.add_laser_angles() if ref.has_laser_angles else self.remove_laser_angles()

    # -- size ----------------------------------------------------------------

    def resize(self, size: int) -> None:
        """Grow or shrink to ``size`` points; new entries are zero."""
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self.positions = _resized(self.positions, size, _ZERO)
        if self._colors is not None:
            self._colors = _resized(self._colors, size, _ZERO)
        if self._reflectances is not None:
            self._reflectances = _resized(self._reflectances, size, 0)
        if self._frame_indices is not None:
            self._frame_indices = _resized(self._frame_indices, size, 0)
        if self._laser_angles is not None:
            self._laser_angles = _resized(self._laser_angles, size, 0)

    def clear(self) -> None:
        """Remove every point, keeping which attributes are enabled."""
        self.resize(0)

    def remove_duplicate_quantized(self, min_geom_node_size_log2: int) -> int:
        """Quantise positions and drop consecutive duplicates.

        When ``min_geom_node_size_log2`` is positive, the low bits of each
        coordinate are cleared first. Attributes of the first point of each
        run of equal positions are kept. Returns the new point count.
        """
        if min_geom_node_size_log2 > 0:
            mask = -(1 << min_geom_node_size_log2)
            self.positions = [
                Vec3(p.x & mask, p.y & mask, p.z & mask) for p in self.positions
            ]

        keep = [
            i
            for i, p in enumerate(self.positions)
            if i == 0 or p != self.positions[i - 1]
        ]
        self.positions = [self.positions[i] for i in keep]
        for name in ("_colors", "_reflectances", "_frame_indices", "_laser_angles"):
            values = getattr(self, name)
            if values is not None:
                setattr(self, name, [values[i] for i in keep if i < len(values)])
        return len(self.positions)

    def append(self, src: PointSet, positions: Optional[Sequence[Vec3]] = None) -> None:
        """Append the points of ``src``.

        If ``positions`` is given it replaces the positions of ``src`` and
        must have the same length. An empty set first takes on the
        attributes of ``src``.
        """
        if positions is None:
            positions = src.positions
        elif len(positions) != len(src):
            raise ValueError(
                f"expected {len(src)} positions, got {len(positions)}"
            )

        if not len(self):
            self.match_attributes(src)

        dst_end = len(self)
        self.resize(dst_end + len(src))
        self.positions[dst_end:] = list(positions)

        if self.has_colors and src.has_colors:
            self._colors[dst_end:dst_end + len(src.colors)] = src.colors
        if self.has_reflectances and src.has_reflectances:
            self._reflectances[dst_end:dst_end + len(src.reflectances)] = src.reflectances
        if self.has_laser_angles and src.has_laser_angles:
            self._laser_angles[dst_end:dst_end + len(src.laser_angles)] = src.laser_angles

    def swap_points(self, i: int, j: int) -> None:
        """Exchange points ``i`` and ``j`` with their colours, reflectances and laser angles."""
        count = len(self)
        for index in (i, j):
            if not 0 <= index < count:
                raise IndexError(f"point index {index} out of range for {count} points")
        for values in (self.positions, self._colors, self._reflectances, self._laser_angles):
            if values is not None:
                values[i], values[j] = values[j], values[i]

    # -- geometry ------------------------------------------------------------

    def bounding_box(self, indices: Optional[Iterable[int]] = None) -> Box3:
        """Return the bounding box of all points, or of those at ``indices``.

        With no points the box runs from the largest to the smallest
        32-bit integer.
        """
        points = self.positions if indices is None else (self.positions[i] for i in indices)
        lo = [_INT32_MAX] * 3
        hi = [_INT32_MIN] * 3
        for pt in points:
            for k in range(3):
                if pt[k] > hi[k]:
                    hi[k] = pt[k]
                if pt[k] < lo[k]:
                    lo[k] = pt[k]
        return Box3(Vec3(*lo), Vec3(*hi))

    def shift(self, offset: Vec3) -> None:
        """Add ``offset`` to every position."""
        self.positions = [p + offset for p in self.positions]


class AzimuthalPhiZi:
    """Per-laser azimuthal step sizes in 2**20 fixed-point radians."""

    _K2PI = 6588397  # 2**20 * 2 * pi

    def __init__(self, num_lasers: int, num_phi: Sequence[int]) -> None:
        if len(num_phi) < num_lasers:
            raise ValueError(
                f"need {num_lasers} azimuth counts, got {len(num_phi)}"
            )
        counts = list(num_phi[:num_lasers])
        self._delta = tuple(_trunc_div(self._K2PI, n) for n in counts)
        self._inv_delta = tuple(_trunc_div(n << 30, self._K2PI) for n in counts)

    def delta(self, idx: int) -> int:
        """Return the azimuthal step of laser ``idx``."""
        return self._delta[idx]

    def inv_delta(self, idx: int) -> int:
        """Return the reciprocal azimuthal step of laser ``idx`` in 2**30 scale."""
        return self._inv_delta[idx]