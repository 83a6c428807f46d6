"""A set of nested fractal markers: creation, matching, unit conversion and rendering."""

from __future__ import annotations

import copy
import math
import random

import numpy as np

from arucokit.fractal_marker import FractalMarker
from arucokit.fractal_types import InfoType, dst_marker, dst_marker_to_marker

_TOLERANCE = 1e-6


def _trunc(value: float) -> int:
    """Truncate a pixel coordinate, forgiving tiny floating-point shortfalls."""
    return int(math.floor(value + _TOLERANCE)) if value >= 0 else int(value)


class FractalMarkerSet:
    """Markers nested inside one another, indexed by id; ``id_external`` is the outermost."""

    def __init__(self, info_type=InfoType.NONE, n_markers=0, id_external=0, *,
                 max_iter=10000, rng=None):
        self.info_type = InfoType(info_type)
        self.n_markers = int(n_markers)
        self.id_external = int(id_external)
        self.markers: dict[int, FractalMarker] = {}
        self.nbits_ids: dict[int, list[int]] = {}
        self.max_iter = int(max_iter)
        self.rng = rng if isinstance(rng, random.Random) else random.Random(rng)

    def __repr__(self) -> str:
        return (
            f"FractalMarkerSet(info_type={self.info_type.name}, "
            f"markers={list(self.markers)}, id_external={self.id_external})"
        )

    def add_marker(self, marker: FractalMarker) -> None:
        """Register a marker under its id and its number of bits."""
        ids = self.nbits_ids.setdefault(marker.n_bits(), [])
        if marker.id not in ids:
            ids.append(marker.id)
        self.markers[marker.id] = marker
        self.markers = dict(sorted(self.markers.items()))

    def link_submarkers(self) -> None:
        """Mask in every marker the bits covered by its submarkers."""
        for marker in self.markers.values():
            for sub_id in marker.submarkers:
                if sub_id not in self.markers:
                    raise ValueError(f"marker {marker.id} refers to unknown submarker {sub_id}")
                marker.add_sub_fractal_marker(self.markers[sub_id])

    def create(self, regions_config, pix_size=-1) -> None:
        """Build a random set from ``(n, k)`` pairs, outermost first.

        ``n`` is the bits per side of a level, ``k`` the side of the region kept
        for the next level. Without ``pix_size`` the corners are normalized.
        """
        regions = [(int(n), int(k)) for n, k in regions_config]
        if not regions:
            raise ValueError("at least one region is needed")
        if pix_size == -1:
            self.info_type = InfoType.NORM
            pix_size = 1.0
        else:
            self.info_type = InfoType.PIX
        pix_size = float(pix_size)
        self.n_markers = len(regions)
        self.id_external = 0
        self.markers = {}
        self.nbits_ids = {}

        submarkers: list[int] = []
        pix = 0.0
        for n in range(len(regions) - 1, -1, -1):
            n_val, k_val = regions[n]
            bits = self.configure_mat(n_val, k_val, self.max_iter)
            pix = (n_val + 2) * pix_size
            half = pix / 2
            corners = [[-half, half, 0.0], [half, half, 0.0], [half, -half, 0.0], [-half, -half, 0.0]]
            self.add_marker(FractalMarker(n, bits, corners, submarkers))
            submarkers = [n]
            if n > 0:
                k_val_sup = regions[n - 1][1] - 2
                if k_val_sup <= 0:
                    raise ValueError(f"region {n - 1} leaves no room for a submarker")
                pix_size *= (n_val + 2) / k_val_sup

        if self.info_type == InfoType.NORM:
            for marker in self.markers.values():
                marker.points[:, :2] /= pix / 2
        self.link_submarkers()

    def configure_mat(self, n_val, k_val, max_iter=10000) -> np.ndarray:
        """Random bits for the ring outside the central ``k``x``k`` region.

        Half of the ring is set; the inside of the central region is cleared.
        The candidate most distant from its own rotations and from the set is kept.
        """
        n_val, k_val = int(n_val), int(k_val)
        pad = (n_val - k_val) // 2
        pixels = [
            (y, x)
            for y in range(n_val)
            for x in range(n_val)
            if x <= pad - 1 or x >= k_val + pad or y <= pad - 1 or y >= k_val + pad
        ]

        best_self = 0
        best_set = 0
        best = None
        m = np.ones((n_val, n_val), dtype=np.uint8)
        for _ in range(int(max_iter) + 1):
            m = np.ones((n_val, n_val), dtype=np.uint8)
            n_zero = len(pixels) - len(pixels) // 2
            for y, x in self.rng.sample(pixels, n_zero):
                m[y, x] = 0
            d_self = dst_marker(m)
            if d_self > best_self:
                d_set = self.dst_marker_to_fractal_dict(m)
                if d_set > best_set:
                    best_self, best_set, best = d_self, d_set, m
        if best is not None:
            m = best

        lo, hi = pad + 1, k_val + pad - 1
        if hi > lo:
            m[lo:hi, lo:hi] = 0
        return m

    def dst_marker_to_fractal_dict(self, bits) -> int:
        """Smallest distance between ``bits`` and the markers of the same size."""
        m = np.asarray(bits)
        best = m.size
        for marker in self.markers.values():
            if marker.n_bits() == m.size:
                dist = dst_marker_to_marker(marker.bits, m)
                if dist == 0:
                    return 0
                best = min(best, dist)
        return best

    def is_fractal_marker(self, bits, nbits):
        """Id of the marker whose unmasked bits equal ``bits``, or ``None``."""
        m = np.asarray(bits, dtype=np.uint8)
        for marker_id in self.nbits_ids.get(int(nbits), []):
            fm = self.markers[marker_id]
            if m.shape != fm.bits.shape:
                continue
            masked = np.where(fm.mask != 0, m, 0)
            if np.array_equal(masked, fm.bits):
                return fm.id
        return None

    def fractal_size(self) -> float:
        """Side length of the outermost marker."""
        if self.id_external not in self.markers:
            raise ValueError("the external marker is not loaded")
        return self.markers[self.id_external].marker_size()

    def convert_to_meters(self, fractal_size_m) -> "FractalMarkerSet":
        """A copy with corners scaled so that the outer marker is ``fractal_size_m`` wide."""
        if self.info_type not in (InfoType.PIX, InfoType.NORM):
            raise ValueError("the fractal markers are not expressed in pixels")
        result = copy.deepcopy(self)
        result.info_type = InfoType.METERS
        scale = float(fractal_size_m) / result.fractal_size()
        for marker in result.markers.values():
            marker.points[:4] *= scale
        return result

    def normalize(self) -> "FractalMarkerSet":
        """A copy with corners scaled so that the outer marker spans -1 to 1."""
        if self.info_type not in (InfoType.PIX, InfoType.METERS):
            raise ValueError("the fractal markers are not expressed in pixels or meters")
        result = copy.deepcopy(self)
        result.info_type = InfoType.NORM
        half = result.fractal_size() / 2.0
        for marker in result.markers.values():
            marker.points[:4] /= half
        return result

    def inner_corners(self) -> dict[int, np.ndarray]:
        """Inner corners of each marker, by id."""
        return {marker_id: m.find_inner_corners() for marker_id, m in self.markers.items()}

    def fractal_marker_image(self, pix_size, border=False) -> np.ndarray:
        """Render the set; each bit of the smallest marker is ``pix_size`` pixels wide."""
        if not self.markers:
            raise ValueError("there is not any fractal marker loaded")
        inner = self.markers[max(self.markers)]
        bit_size = inner.marker_size() / (pix_size * (math.sqrt(inner.n_bits()) + 2))

        extern = self.markers[self.id_external]
        marker_size = extern.marker_size() / bit_size
        marker_bit_size = marker_size / (math.sqrt(extern.n_bits()) + 2)
        side = _trunc(marker_size)
        img = np.zeros((side, side), dtype=np.uint8)
        self._paint(img, extern.bits, marker_bit_size, 0.0, 0.0)

        for first in extern.submarkers:
            pending = [first]
            while pending:
                sub = self.markers[pending.pop()]
                sub_bit_size = (sub.marker_size() / bit_size) / (math.sqrt(sub.n_bits()) + 2)
                offset_x = abs(sub.points[0, 0] - extern.points[0, 0]) / bit_size
                offset_y = abs(sub.points[0, 1] - extern.points[0, 1]) / bit_size
                self._paint(img, sub.bits, sub_bit_size, offset_x, offset_y)
                pending.extend(sub.submarkers)

        if border:
            width = _trunc(marker_bit_size)
            img = np.pad(img, width, mode="constant", constant_values=255)
        return img

    @staticmethod
    def _paint(img, bits, bit_px, offset_x, offset_y) -> None:
        for y, x in zip(*np.nonzero(bits == 1)):
            rows = slice(_trunc((1 + y) * bit_px + offset_y), _trunc((2 + y) * bit_px + offset_y))
            cols = slice(_trunc((1 + x) * bit_px + offset_x), _trunc((2 + x) * bit_px + offset_x))
            img[rows, cols] = 255