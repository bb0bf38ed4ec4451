"""Three-component vectors, axis-aligned boxes and rational numbers."""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Union

Number = Union[int, float]


def _is_scalar(value: object) -> bool:
    return isinstance(value, (int, float))


@dataclass(frozen=True, order=True, slots=True)
class Vec3:
    """An immutable 3D vector.

    Ordering is lexicographic on ``(x, y, z)``. ``+``, ``-``, ``*`` and
    ``/`` work element-wise with scalars, ``+`` and ``-`` also with other
    vectors; ``@`` is the dot product and ``<<``/``>>`` shift integer
    components by a scalar or per-component amount.
    """

    x: Number = 0
    y: Number = 0
    z: Number = 0

    def __iter__(self) -> Iterator[Number]:
        yield self.x
        yield self.y
        yield self.z

    def __len__(self) -> int:
        return 3

    def __getitem__(self, index: int) -> Number:
        return (self.x, self.y, self.z)[index]

    def __str__(self) -> str:
        return f"{self.x} {self.y} {self.z}"

    # -- element-wise arithmetic -------------------------------------------

    def _combine(self, other: object, op) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3(op(self.x, other.x), op(self.y, other.y), op(self.z, other.z))
        if _is_scalar(other):
            return Vec3(op(self.x, other), op(self.y, other), op(self.z, other))
        return NotImplemented

    def __add__(self, other: object) -> Vec3:
        return self._combine(other, lambda a, b: a + b)

    def __radd__(self, other: object) -> Vec3:
        return self._combine(other, lambda a, b: b + a)

    def __sub__(self, other: object) -> Vec3:
        return self._combine(other, lambda a, b: a - b)

    def __rsub__(self, other: object) -> Vec3:
        return self._combine(other, lambda a, b: b - a)

    def __mul__(self, other: object) -> Vec3:
        if not _is_scalar(other):
            return NotImplemented
        return self._combine(other, lambda a, b: a * b)

    def __rmul__(self, other: object) -> Vec3:
        return self.__mul__(other)

    def __truediv__(self, other: object) -> Vec3:
        if not _is_scalar(other):
            return NotImplemented
        if other == 0:
            raise ZeroDivisionError("division of Vec3 by zero")
        return self._combine(other, lambda a, b: a / b)

    def __floordiv__(self, other: object) -> Vec3:
        if not _is_scalar(other):
            return NotImplemented
        if other == 0:
            raise ZeroDivisionError("division of Vec3 by zero")
        return self._combine(other, lambda a, b: a // b)

    def __neg__(self) -> Vec3:
        return Vec3(-self.x, -self.y, -self.z)

    def __lshift__(self, other: object) -> Vec3:
        if isinstance(other, Vec3) or isinstance(other, int):
            return self._combine(other, lambda a, b: a << b)
        return NotImplemented

    def __rshift__(self, other: object) -> Vec3:
        if isinstance(other, Vec3) or isinstance(other, int):
            return self._combine(other, lambda a, b: a >> b)
        return NotImplemented

    def __matmul__(self, other: object) -> Number:
        if not isinstance(other, Vec3):
            return NotImplemented
        return self.dot(other)

    # -- products and norms --------------------------------------------------

    def dot(self, other: Vec3) -> Number:
        """Return the dot product with ``other``."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def times(self, other: Vec3) -> Vec3:
        """Return the element-wise product with ``other``."""
        return Vec3(self.x * other.x, self.y * other.y, self.z * other.z)

    def norm2(self) -> Number:
        """Return the squared Euclidean norm."""
        return self.dot(self)

    def norm1(self) -> Number:
        """Return the sum of absolute components."""
        return abs(self.x) + abs(self.y) + abs(self.z)

    def norm_inf(self) -> Number:
        """Return ``max(z, |x|, |y|)``; the z component is not made absolute."""
        return max(self.z, max(abs(self.x), abs(self.y)))

    def direction(self) -> int:
        """Return a 3-bit octant code: bit 2 for x >= 0, bit 1 for y, bit 0 for z."""
        return (int(self.x >= 0) << 2) + (int(self.y >= 0) << 1) + int(self.z >= 0)

    # -- component selection -------------------------------------------------

    def min_dim(self) -> int:
        """Return the index of the first smallest component."""
        best = 0
        for i in (1, 2):
            if self[i] < self[best]:
                best = i
        return best

    def max_dim(self) -> int:
        """Return the index of the first largest component."""
        best = 0
        for i in (1, 2):
            if self[i] > self[best]:
                best = i
        return best

    def min(self) -> Number:
        """Return the smallest component."""
        return min(self.x, self.y, self.z)

    def mid(self) -> Number:
        """Return the median component."""
        return sorted((self.x, self.y, self.z))[1]

    def max(self) -> Number:
        """Return the largest component."""
        return max(self.x, self.y, self.z)

    def abs(self) -> Vec3:
        """Return the vector of absolute components."""
        return Vec3(abs(self.x), abs(self.y), abs(self.z))


@dataclass
class Box3:
    """An axis-aligned box with inclusive bounds ``min`` and ``max``."""

    min: Vec3
    max: Vec3

    @classmethod
    def from_points(cls, points: Iterable[Vec3]) -> Box3:
        """Return the bounding box of ``points``.

        An empty iterable yields an inverted box from +inf to -inf.
        """
        lo = [math.inf, math.inf, math.inf]
        hi = [-math.inf, -math.inf, -math.inf]
        for pt in points:
            for k in range(3):
                if pt[k] > hi[k]:
                    hi[k] = pt[k]
                if pt[k] < lo[k]:
                    lo[k] = pt[k]
        return cls(Vec3(*lo), Vec3(*hi))

    def contains(self, point: Vec3) -> bool:
        """Return whether ``point`` lies inside the box, bounds included."""
        return all(lo <= p <= hi for lo, p, hi in zip(self.min, point, self.max))

    def merge(self, box: Box3) -> None:
        """Grow this box to enclose ``box``."""
        self.min = Vec3(*(min(a, b) for a, b in zip(self.min, box.min)))
        self.max = Vec3(*(max(a, b) for a, b in zip(self.max, box.max)))

    def intersects(self, box: Box3) -> bool:
        """Return whether this box overlaps ``box``, touching included."""
        return all(
            hi >= olo and lo <= ohi
            for lo, hi, olo, ohi in zip(self.min, self.max, box.min, box.max)
        )

    def _gaps(self, point: Vec3) -> Iterator[Number]:
        for lo, p, hi in zip(self.min, point, self.max):
            yield max(max(lo - p, 0), p - hi)

    def dist2(self, point: Vec3) -> Number:
        """Return the squared distance from ``point`` to the box."""
        return sum(d * d for d in self._gaps(point))

    def dist1(self, point: Vec3) -> Number:
        """Return the Manhattan distance from ``point`` to the box."""
        return sum(self._gaps(point))

    def insert(self, point: Vec3) -> None:
        """Grow this box to enclose ``point``."""
        self.min = Vec3(*(min(a, b) for a, b in zip(self.min, point)))
        self.max = Vec3(*(max(a, b) for a, b in zip(self.max, point)))

    def __str__(self) -> str:
        return f"{self.min} {self.max}"


@dataclass(frozen=True)
class Rational:
    """A fraction ``numerator / denominator`` of integers."""

    numerator: int = 0
    denominator: int = 1

    def __float__(self) -> float:
        return self.numerator / self.denominator

    def reciprocal(self) -> Rational:
        """Return the fraction with numerator and denominator swapped."""
        return Rational(self.denominator, self.numerator)