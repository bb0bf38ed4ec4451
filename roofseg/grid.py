"""Height and density grid images of a building point cloud."""

from __future__ import annotations

import copy
import math
from pathlib import Path

import numpy as np
from PIL import Image

from .geometry import Box3
from .pointset import PointSet

CHANNELS = 3

# Output file suffixes: mean height, point density, density with height.
MEAN_HEIGHT_NAME = "平均高度.png"
DENSITY_NAME = "像素数量.png"
DENSITY_HEIGHT_NAME = "像素数量+高度.png"

# Added to every non-zero log density so occupied cells stand out.
_DENSITY_OFFSET = 20


class BuildingGrid:
    """Rasterise a point cloud onto a horizontal grid.

    The cloud passed in is moved so that its bounding box starts at the
    origin; the grid keeps its own copy of the moved cloud. Cells are
    ``bin_size`` units wide and heights are histogrammed in slices of
    ``bin_height`` units. ``image`` has shape ``(height, width, 3)``:
    channel 0 holds the mean height, channel 1 the log point density and
    channel 2 is left at zero.
    """

    def __init__(self, cloud: PointSet, bin_size: int = 100, bin_height: int = 1000) -> None:
        if len(cloud) == 0:
            raise ValueError("cannot build a grid from an empty point cloud")
        if bin_size <= 0 or bin_height <= 0:
            raise ValueError("bin_size and bin_height must be positive")

        self.bin_size = bin_size
        self.bin_height = bin_height
        self.box: Box3 = cloud.bounding_box()

        cloud.shift(-self.box.min)
        self.cloud = copy.copy(cloud)

        self.width = (self.box.max.x - self.box.min.x) // bin_size + 2
        self.height = (self.box.max.y - self.box.min.y) // bin_size + 2
        self.image = np.zeros((self.height, self.width, CHANNELS), dtype=float)

    def ground_threshold(self) -> int:
        """Return the height slice boundary below which half the points lie.

        The result is the lower edge of the first slice at which the
        cumulative point count exceeds half the cloud.
        """
        slices = (self.box.max.z - self.box.min.z) // self.bin_height + 1
        counts = [0] * slices
        for pt in self.cloud:
            counts[pt.z // self.bin_height] += 1

        half = len(self.cloud) // 2
        total = 0
        for i, count in enumerate(counts):
            total += count
            if total > half:
                return i * self.bin_height
        return slices * self.bin_height

    def compute_grid_image(self) -> None:
        """Splat points above the ground threshold onto the grid.

        Each point is shared bilinearly between its four surrounding cells.
        Channel 0 becomes the weighted mean height of a cell; channel 1 the
        logarithm of its weight plus one, raised by 20 where non-zero.
        """
        threshold = self.ground_threshold()
        image = self.image
        for pt in self.cloud:
            if pt.z < threshold:
                continue
            x = pt.x // self.bin_size
            y = pt.y // self.bin_size
            w = pt.x / self.bin_size - x
            h = pt.y / self.bin_size - y
            for xi, wx in ((0, 1 - w), (1, w)):
                for yi, wy in ((0, 1 - h), (1, h)):
                    s = wx * wy
                    image[y + yi, x + xi, 1] += s
                    image[y + yi, x + xi, 0] += s * pt.z

        weight = image[:, :, 1]
        occupied = weight != 0
        image[:, :, 0][occupied] /= weight[occupied]

        density = np.log(weight + 1)
        density[density != 0] += _DENSITY_OFFSET
        image[:, :, 1] = density

    def _render(self, source: int, target: int, peak: float) -> Image.Image:
        out = np.zeros((self.height, self.width, CHANNELS), dtype=np.uint8)
        if peak != 0:
            scaled = 255.0 * (self.image[:, :, source] / peak)
            out[:, :, target] = np.clip(scaled, 0, 255).astype(np.uint8)
        return Image.fromarray(out, mode="RGB")

    def save_images(self, base_path: str) -> list[Path]:
        """Write the grid as three PNG images named after ``base_path``.

        Each image shows one channel scaled so that its maximum is 255:
        mean height in red, density in green and channel 2 in green.
        Returns the paths written.
        """
        peaks = [max(0.0, float(self.image[:, :, c].max())) for c in range(CHANNELS)]
        outputs = [
            (MEAN_HEIGHT_NAME, 0, 0),
            (DENSITY_NAME, 1, 1),
            (DENSITY_HEIGHT_NAME, 2, 1),
        ]
        written = []
        for name, source, target in outputs:
            path = Path(f"{base_path}{name}")
            self._render(source, target, peaks[source]).save(path, format="PNG")
            written.append(path)
        return written