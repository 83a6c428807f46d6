"""Configuration names, info types and bit-matrix distances of fractal marker sets."""

from __future__ import annotations

from enum import IntEnum

import numpy as np


class ConfType(IntEnum):
    """Predefined fractal configurations; ``CUSTOM`` means loaded from a file."""

    FRACTAL_2L_6 = 0
    FRACTAL_3L_6 = 1
    FRACTAL_4L_6 = 2
    FRACTAL_5L_6 = 3
    CUSTOM = 4


class InfoType(IntEnum):
    """Units in which the marker corners are expressed."""

    NONE = -1
    PIX = 0
    METERS = 1
    NORM = 2


_PREDEFINED = (
    ConfType.FRACTAL_2L_6,
    ConfType.FRACTAL_3L_6,
    ConfType.FRACTAL_4L_6,
    ConfType.FRACTAL_5L_6,
)


def type_from_string(text) -> ConfType:
    """Parse a configuration name; anything unknown is ``CUSTOM``."""
    for conf in _PREDEFINED:
        if text == conf.name:
            return conf
    return ConfType.CUSTOM


def type_string(conf_type) -> str:
    """Name of a configuration type."""
    try:
        return ConfType(conf_type).name
    except ValueError:
        return "Non valid CONF_TYPE"


def is_predefined_configuration_string(text) -> bool:
    """True when ``text`` names one of the predefined configurations."""
    return type_from_string(text) != ConfType.CUSTOM


def configurations() -> list[str]:
    """Names of all predefined configurations."""
    return [conf.name for conf in _PREDEFINED]


def _square(bits) -> np.ndarray:
    arr = np.asarray(bits)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(f"bits must form a square matrix, got shape {arr.shape}")
    return arr


def rotate_bits(bits) -> np.ndarray:
    """Rotate a square bit matrix a quarter turn clockwise."""
    return np.rot90(_square(bits), -1).copy()


def dst_marker(bits) -> int:
    """Smallest Hamming distance between a matrix and its three non-trivial rotations."""
    m = _square(bits)
    best = m.size
    rot = m
    for _ in range(3):
        rot = rotate_bits(rot)
        best = min(best, int(np.count_nonzero(rot != m)))
    return best


def dst_marker_to_marker(bits1, bits2) -> int:
    """Hamming distance between ``bits1`` and ``bits2`` turned a quarter clockwise.

    The reference algorithm evaluates the same single rotation of ``bits2`` on
    every pass, so only that rotation is compared.
    """
    m1 = _square(bits1)
    m2 = _square(bits2)
    if m1.shape != m2.shape:
        raise ValueError("bit matrices must have the same shape")
    return min(m2.size, int(np.count_nonzero(rotate_bits(m2) != m1)))