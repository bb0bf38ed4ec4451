"""Plane segmentation, grid imaging and PLY input/output for point clouds."""

__version__ = "0.1.0"