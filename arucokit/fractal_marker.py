"""A single level of a fractal marker: its bits, corners and nested submarkers."""

from __future__ import annotations

import math

import numpy as np

_TOLERANCE = 1e-6


def _round_half_away(value: float) -> int:
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


class FractalMarker:
    """One marker of a fractal set with the mask of bits not covered by submarkers."""

    def __init__(self, id, bits, corners, submarkers=()):
        self.id = int(id)
        self.bits = np.array(bits, dtype=np.uint8)
        if self.bits.ndim != 2 or self.bits.shape[0] != self.bits.shape[1]:
            raise ValueError(f"bits must form a square matrix, got shape {self.bits.shape}")
        self.points = np.array(corners, dtype=np.float64).reshape(-1, 3)
        self.submarkers = [int(s) for s in submarkers]
        self.mask = np.ones_like(self.bits)

    def __repr__(self) -> str:
        return f"FractalMarker(id={self.id}, n_bits={self.n_bits()}, submarkers={self.submarkers})"

    def n_bits(self) -> int:
        """Number of inner bits."""
        return int(self.bits.size)

    def marker_size(self) -> float:
        """Side length, the distance between the first two corners."""
        if len(self.points) < 2:
            raise ValueError("the marker has no corners")
        return float(np.linalg.norm(self.points[0] - self.points[1]))

    def add_sub_fractal_marker(self, submarker: "FractalMarker") -> None:
        """Clear the mask over the bits that ``submarker`` covers."""
        cols = self.bits.shape[1]
        bit_size = (self.points[1, 0] - self.points[0, 0]) / (cols + 2)
        n_sub_bits = (submarker.points[1, 0] - submarker.points[0, 0]) / bit_size

        x_min = _round_half_away(submarker.points[0, 0] / bit_size + cols // 2)
        y_min = _round_half_away(-submarker.points[0, 1] / bit_size + cols // 2)
        x_max = int(math.floor(x_min + n_sub_bits + _TOLERANCE))
        y_max = int(math.floor(y_min + n_sub_bits + _TOLERANCE))
        self.mask[max(y_min, 0) : max(y_max, 0), max(x_min, 0) : max(x_max, 0)] = 0

    def find_inner_corners(self) -> np.ndarray:
        """Corners between bits of different colour, as an (N, 3) array on z=0.

        Bits covered by submarkers count as white; the outer border is black.
        """
        n = int(math.sqrt(self.bits.size))
        bit_size = self.marker_size() / (n + 2)

        marker = self.bits.astype(np.int16) + (1 - self.mask.astype(np.int16))
        bordered = np.pad(marker, 1, mode="constant", constant_values=0)

        a = bordered[:-1, :-1]
        b = bordered[:-1, 1:]
        c = bordered[1:, :-1]
        d = bordered[1:, 1:]
        is_corner = ((a == d) & ((a != b) | (a != c))) | ((b == c) & ((b != a) | (b != d)))

        ys, xs = np.nonzero(is_corner)
        if len(xs) == 0:
            return np.empty((0, 3))
        return np.column_stack(
            [(xs - n / 2.0) * bit_size, -(ys - n / 2.0) * bit_size, np.zeros(len(xs))]
        )