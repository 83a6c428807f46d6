"""Fractal fiducial marker sets, detector parameters and planar homography helpers."""

__version__ = "0.1.0"

__all__ = ["__version__"]