"""Reading, writing and the predefined configurations of fractal marker sets."""

from __future__ import annotations

import io
import math
import os
import struct
from pathlib import Path

import numpy as np
import yaml

from arucokit.fractal_marker import FractalMarker
from arucokit.fractal_marker_set import FractalMarkerSet
from arucokit.fractal_types import (
    ConfType,
    InfoType,
    is_predefined_configuration_string,
    type_from_string,
)

_HEADER = struct.Struct("<iii")
_ID_NBITS = struct.Struct("<ii")
_INT = struct.Struct("<i")
_CORNER_BYTES = 4 * 3 * 4

_PREDEFINED_DATA = {
    ConfType.FRACTAL_2L_6: bytes.fromhex(
        """
        02 00 00 00 02 00 00 00 00 00 00 00 00
        00 00 00 64 00 00 00 00 00 80 bf 00 00
        80 3f 00 00 00 00 00 00 80 3f 00 00 80
        3f 00 00 00 00 00 00 80 3f 00 00 80 bf
        00 00 00 00 00 00 80 bf 00 00 80 bf 00
        00 00 00 00 00 00 01 00 01 01 01 01 01
        01 00 01 00 00 00 01 01 00 01 00 00 01
        01 01 01 01 01 00 01 00 01 01 00 00 00
        00 01 01 00 00 01 01 00 00 00 00 01 00
        01 01 01 01 00 00 00 00 01 00 00 00 01
        01 00 00 00 00 01 00 00 01 01 01 01 01
        01 01 01 01 00 01 01 00 01 00 00 00 00
        01 01 01 00 01 01 00 00 01 01 00 00 01
        00 00 00 01 00 00 00 01 00 00 00 24 00
        00 00 ab aa aa be ab aa aa 3e 00 00 00
        00 ab aa aa 3e ab aa aa 3e 00 00 00 00
        ab aa aa 3e ab aa aa be 00 00 00 00 ab
        aa aa be ab aa aa be 00 00 00 00 00 01
        00 01 01 00 00 01 00 01 00 01 00 00 01
        00 01 01 01 01 00 01 01 00 01 00 00 00
        01 00 00 01 01 00 00 01 00 00 00 00
        """
    ),
    ConfType.FRACTAL_3L_6: bytes.fromhex(
        """
        02 00 00 00 03 00 00 00 00 00 00 00 00
        00 00 00 90 00 00 00 00 00 80 bf 00 00
        80 3f 00 00 00 00 00 00 80 3f 00 00 80
        3f 00 00 00 00 00 00 80 3f 00 00 80 bf
        00 00 00 00 00 00 80 bf 00 00 80 bf 00
        00 00 00 00 00 01 00 01 00 01 01 00 00
        01 01 00 01 00 00 00 01 00 00 01 01 00
        01 01 00 01 01 01 01 01 01 01 01 00 00
        01 01 01 00 00 00 00 00 00 01 00 01 00
        00 01 00 00 00 00 00 00 01 00 00 01 01
        01 00 00 00 00 00 00 01 00 01 00 00 01
        00 00 00 00 00 00 01 01 01 00 01 01 00
        00 00 00 00 00 01 01 01 01 01 01 00 00
        00 00 00 00 01 00 01 00 01 01 01 01 01
        01 01 01 01 00 00 01 00 01 01 01 00 01
        00 00 00 01 00 01 01 01 00 01 01 00 01
        00 01 00 00 01 00 00 00 01 00 00 00 01
        00 00 00 64 00 00 00 b7 6d db be b7 6d
        db 3e 00 00 00 00 b7 6d db 3e b7 6d db
        3e 00 00 00 00 b7 6d db 3e b7 6d db be
        00 00 00 00 b7 6d db be b7 6d db be 00
        00 00 00 01 01 01 01 01 01 00 01 00 00
        00 01 00 01 01 00 01 01 00 00 00 00 01
        01 01 01 01 01 00 00 01 00 01 00 00 00
        00 01 00 00 00 01 01 00 00 00 00 01 01
        00 00 01 01 00 00 00 00 01 01 00 00 00
        01 00 00 00 00 01 01 00 00 00 01 01 01
        01 01 01 00 00 01 00 01 01 00 00 01 01
        01 01 01 00 01 01 01 00 01 01 01 00 01
        00 00 00 02 00 00 00 02 00 00 00 24 00
        00 00 25 49 12 be 25 49 12 3e 00 00 00
        00 25 49 12 3e 25 49 12 3e 00 00 00 00
        25 49 12 3e 25 49 12 be 00 00 00 00 25
        49 12 be 25 49 12 be 00 00 00 00 00 00
        00 01 01 01 00 01 00 00 00 01 00 01 01
        00 01 00 01 01 01 01 01 00 01 00 00 00
        01 01 01 00 01 00 00 00 00 00 00 00
        """
    ),
    ConfType.FRACTAL_4L_6: bytes.fromhex(
        """
        02 00 00 00 04 00 00 00 00 00 00 00 00
        00 00 00 a9 00 00 00 00 00 80 bf 00 00
        80 3f 00 00 00 00 00 00 80 3f 00 00 80
        3f 00 00 00 00 00 00 80 3f 00 00 80 bf
        00 00 00 00 00 00 80 bf 00 00 80 bf 00
        00 00 00 00 01 00 00 00 01 00 00 01 00
        01 01 00 01 01 01 00 01 00 00 00 00 01
        00 00 00 01 01 01 01 01 01 01 01 01 01
        01 00 00 01 00 01 00 00 00 00 00 00 00
        01 01 00 01 00 01 00 00 00 00 00 00 00
        01 00 01 00 01 01 00 00 00 00 00 00 00
        01 01 00 01 01 01 00 00 00 00 00 00 00
        01 01 01 00 01 01 00 00 00 00 00 00 00
        01 01 01 01 00 01 00 00 00 00 00 00 00
        01 00 01 00 01 01 00 00 00 00 00 00 00
        01 00 01 00 00 01 01 01 01 01 01 01 01
        01 01 01 01 00 01 01 01 00 01 00 01 00
        01 01 00 00 01 00 00 00 00 00 01 00 01
        01 01 00 01 00 00 00 01 00 00 00 01 00
        00 00 90 00 00 00 ef ee ee be ef ee ee
        3e 00 00 00 00 ef ee ee 3e ef ee ee 3e
        00 00 00 00 ef ee ee 3e ef ee ee be 00
        00 00 00 ef ee ee be ef ee ee be 00 00
        00 00 01 00 01 00 00 00 00 00 01 01 01
        00 00 00 00 00 00 01 01 01 00 00 01 01
        01 00 01 01 01 01 01 01 01 01 01 00 01
        01 01 00 00 00 00 00 00 01 01 00 01 00
        01 00 00 00 00 00 00 01 00 01 01 00 01
        00 00 00 00 00 00 01 01 01 01 00 01 00
        00 00 00 00 00 01 00 01 01 01 01 00 00
        00 00 00 00 01 00 01 00 00 01 00 00 00
        00 00 00 01 00 01 01 01 01 01 01 01 01
        01 01 01 01 01 01 00 00 00 01 01 00 01
        01 00 00 00 01 01 00 00 00 00 00 00 01
        01 00 01 01 00 00 00 02 00 00 00 02 00
        00 00 64 00 00 00 cd cc 4c be cd cc 4c
        3e 00 00 00 00 cd cc 4c 3e cd cc 4c 3e
        00 00 00 00 cd cc 4c 3e cd cc 4c be 00
        00 00 00 cd cc 4c be cd cc 4c be 00 00
        00 00 01 00 01 00 00 01 01 00 01 00 01
        01 01 00 01 00 01 00 00 01 01 00 01 01
        01 01 01 01 01 00 00 00 01 00 00 00 00
        01 01 00 00 01 01 00 00 00 00 01 00 01
        00 00 01 00 00 00 00 01 00 00 00 01 01
        00 00 00 00 01 00 00 00 00 01 01 01 01
        01 01 01 01 01 00 00 01 01 01 00 00 01
        01 00 01 01 01 01 00 01 01 00 01 01 00
        00 00 03 00 00 00 03 00 00 00 24 00 00
        00 89 88 88 bd 89 88 88 3d 00 00 00 00
        89 88 88 3d 89 88 88 3d 00 00 00 00 89
        88 88 3d 89 88 88 bd 00 00 00 00 89 88
        88 bd 89 88 88 bd 00 00 00 00 01 01 01
        01 00 00 01 00 00 01 01 00 00 00 01 01
        01 00 00 01 00 01 00 01 00 01 01 00 00
        01 00 00 00 01 01 00 00 00 00 00
        """
    ),
    ConfType.FRACTAL_5L_6: bytes.fromhex(
        """
        02 00 00 00 05 00 00 00 00 00 00 00 00
        00 00 00 79 00 00 00 00 00 80 bf 00 00
        80 3f 00 00 00 00 00 00 80 3f 00 00 80
        3f 00 00 00 00 00 00 80 3f 00 00 80 bf
        00 00 00 00 00 00 80 bf 00 00 80 bf 00
        00 00 00 01 01 01 01 01 00 00 01 01 00
        00 01 00 00 00 00 00 01 00 01 01 00 00
        00 01 01 01 01 01 01 01 01 00 00 00 01
        00 00 00 00 00 01 01 01 00 00 01 00 00
        00 00 00 01 01 01 00 01 01 00 00 00 00
        00 01 01 00 01 01 01 00 00 00 00 00 01
        00 01 00 00 01 00 00 00 00 00 01 00 00
        00 00 01 01 01 01 01 01 01 00 01 00 01
        01 01 01 01 00 00 01 00 01 00 00 01 01
        00 01 00 01 01 01 01 01 00 00 00 01 00
        00 00 01 00 00 00 a9 00 00 00 4f ec c4
        be 4f ec c4 3e 00 00 00 00 4f ec c4 3e
        4f ec c4 3e 00 00 00 00 4f ec c4 3e 4f
        ec c4 be 00 00 00 00 4f ec c4 be 4f ec
        c4 be 00 00 00 00 01 01 01 00 01 01 00
        00 00 01 01 01 00 00 00 01 00 01 00 01
        00 01 00 00 01 00 00 00 01 01 01 01 01
        01 01 01 01 00 01 01 01 01 00 00 00 00
        00 00 00 01 01 01 01 00 01 00 00 00 00
        00 00 00 01 00 00 01 01 01 00 00 00 00
        00 00 00 01 01 00 01 01 01 00 00 00 00
        00 00 00 01 01 00 00 00 01 00 00 00 00
        00 00 00 01 01 01 00 00 01 00 00 00 00
        00 00 00 01 00 01 01 01 01 00 00 00 00
        00 00 00 01 01 01 00 00 01 01 01 01 01
        01 01 01 01 00 01 00 00 01 00 01 00 00
        00 01 00 00 01 01 00 01 01 00 00 00 01
        01 01 00 00 00 01 01 00 00 00 02 00 00
        00 02 00 00 00 90 00 00 00 7d cb 37 be
        7d cb 37 3e 00 00 00 00 7d cb 37 3e 7d
        cb 37 3e 00 00 00 00 7d cb 37 3e 7d cb
        37 be 00 00 00 00 7d cb 37 be 7d cb 37
        be 00 00 00 00 00 00 01 00 01 00 01 00
        00 00 01 00 01 01 01 01 00 01 01 01 00
        01 00 00 00 00 01 01 01 01 01 01 01 01
        00 00 00 01 01 00 00 00 00 00 00 01 00
        01 01 00 01 00 00 00 00 00 00 01 01 01
        00 01 01 00 00 00 00 00 00 01 00 01 01
        00 01 00 00 00 00 00 00 01 00 00 00 01
        01 00 00 00 00 00 00 01 00 01 01 01 01
        00 00 00 00 00 00 01 01 01 00 00 01 01
        01 01 01 01 01 01 00 01 00 00 01 00 01
        00 01 00 00 01 01 01 01 00 01 01 00 00
        01 01 00 01 01 00 01 00 00 00 03 00 00
        00 03 00 00 00 64 00 00 00 d9 89 9d bd
        d9 89 9d 3d 00 00 00 00 d9 89 9d 3d d9
        89 9d 3d 00 00 00 00 d9 89 9d 3d d9 89
        9d bd 00 00 00 00 d9 89 9d bd d9 89 9d
        bd 00 00 00 00 01 00 01 00 01 00 01 01
        00 00 00 01 00 00 00 01 01 00 01 00 00
        01 01 01 01 01 01 01 01 00 00 00 01 00
        00 00 00 01 01 00 00 00 01 00 00 00 00
        01 01 01 00 01 01 00 00 00 00 01 00 00
        01 01 01 00 00 00 00 01 00 01 00 01 01
        01 01 01 01 01 01 00 01 01 01 01 01 00
        00 00 00 00 00 01 01 00 01 01 01 01 00
        01 01 00 00 00 04 00 00 00 04 00 00 00
        24 00 00 00 21 0d d2 bc 21 0d d2 3c 00
        00 00 00 21 0d d2 3c 21 0d d2 3c 00 00
        00 00 21 0d d2 3c 21 0d d2 bc 00 00 00
        00 21 0d d2 bc 21 0d d2 bc 00 00 00 00
        00 00 00 00 00 01 00 00 01 00 00 01 01
        01 00 01 00 01 01 00 01 00 01 01 01 00
        00 01 01 01 01 01 00 01 00 00 00 00 00
        00
        """
    ),
}


def _read_exact(stream, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("truncated fractal marker stream")
    return data


def _info_type(value) -> InfoType:
    try:
        return InfoType(int(value))
    except ValueError as exc:
        raise ValueError(f"unknown info type {value}") from exc


def read_fractal_marker_set(stream) -> FractalMarkerSet:
    """Read a marker set from its binary form."""
    info, n_markers, id_external = _HEADER.unpack(_read_exact(stream, _HEADER.size))
    if n_markers < 0:
        raise ValueError(f"invalid number of markers {n_markers}")
    marker_set = FractalMarkerSet(_info_type(info), n_markers, id_external)
    for _ in range(n_markers):
        marker_id, nbits = _ID_NBITS.unpack(_read_exact(stream, _ID_NBITS.size))
        if nbits < 0:
            raise ValueError(f"invalid number of bits {nbits}")
        corners = np.frombuffer(_read_exact(stream, _CORNER_BYTES), dtype="<f4").reshape(4, 3)
        side = math.isqrt(nbits)
        bits = np.frombuffer(_read_exact(stream, side * side), dtype=np.uint8).reshape(side, side)
        (n_sub,) = _INT.unpack(_read_exact(stream, _INT.size))
        if n_sub < 0:
            raise ValueError(f"invalid number of submarkers {n_sub}")
        subs = np.frombuffer(_read_exact(stream, 4 * n_sub), dtype="<i4") if n_sub else []
        marker_set.add_marker(
            FractalMarker(marker_id, bits, corners.astype(np.float64), [int(s) for s in subs])
        )
    marker_set.link_submarkers()
    return marker_set


def write_fractal_marker_set(marker_set: FractalMarkerSet, stream) -> None:
    """Write a marker set in the binary form read by ``read_fractal_marker_set``."""
    stream.write(
        _HEADER.pack(int(marker_set.info_type), marker_set.n_markers, marker_set.id_external)
    )
    for marker_id, marker in marker_set.markers.items():
        if len(marker.points) < 4:
            raise ValueError(f"marker {marker_id} does not have four corners")
        stream.write(_ID_NBITS.pack(marker_id, marker.n_bits()))
        stream.write(np.asarray(marker.points[:4], dtype="<f4").tobytes())
        stream.write(np.asarray(marker.bits, dtype=np.uint8).tobytes())
        stream.write(_INT.pack(len(marker.submarkers)))
        stream.write(np.asarray(marker.submarkers, dtype="<i4").tobytes())


def load_predefined(conf_type) -> FractalMarkerSet:
    """One of the predefined configurations, by ``ConfType`` or by name."""
    if isinstance(conf_type, str):
        conf = type_from_string(conf_type)
    else:
        try:
            conf = ConfType(conf_type)
        except ValueError as exc:
            raise ValueError(f"invalid configuration type requested: {conf_type}") from exc
    if conf == ConfType.CUSTOM:
        raise ValueError("CUSTOM type is only set by loading from file")
    return read_fractal_marker_set(io.BytesIO(_PREDEFINED_DATA[conf]))


def load(info) -> FractalMarkerSet:
    """A predefined configuration when ``info`` names one, otherwise the file at ``info``."""
    if isinstance(info, str) and is_predefined_configuration_string(info):
        return load_predefined(info)
    return read_from_file(info)


def _strip_directive(text: str) -> str:
    lines = text.splitlines()
    if lines and lines[0].startswith("%YAML"):
        lines = lines[1:]
    return "\n".join(lines)


def read_from_file(path) -> FractalMarkerSet:
    """Read a marker set from a YAML (or JSON) description."""
    text = Path(os.fspath(path)).read_text(encoding="utf-8")
    data = yaml.safe_load(_strip_directive(text))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: not a fractal marker description")

    marker_set = FractalMarkerSet(
        _info_type(data.get("mInfoType", int(InfoType.NONE))),
        int(data.get("fractal_levels", 0)),
        int(data.get("fractal_external_id", 0)),
    )
    for entry in data.get("markers") or []:
        bits = [int(b) for b in entry.get("bits") or []]
        side = math.isqrt(len(bits))
        if side * side != len(bits):
            raise ValueError(f"{path}: marker bits do not form a square")
        corners = []
        for corner in entry.get("corners") or []:
            if len(corner) != 3:
                raise ValueError(f"{path}: invalid file type 3")
            corners.append([float(c) for c in corner])
        submarkers = [int(s) for s in entry.get("submarkers_id") or []]
        matrix = np.array(bits, dtype=np.int64).reshape(side, side).astype(np.uint8)
        marker_set.add_marker(FractalMarker(int(entry["id"]), matrix, corners, submarkers))
    marker_set.link_submarkers()
    return marker_set


def save_to_file(marker_set: FractalMarkerSet, path) -> None:
    """Write a marker set as a YAML description read by ``read_from_file``."""
    markers = []
    for marker_id, marker in marker_set.markers.items():
        markers.append(
            {
                "id": int(marker_id),
                "bits": [0 if int(v) == 2 else int(v) for v in marker.bits.ravel()],
                "corners": [[float(c) for c in point] for point in marker.points],
                "submarkers_id": [int(s) for s in marker.submarkers],
            }
        )
    document = {
        "codeid": "fractalmarkers",
        "mInfoType": int(marker_set.info_type),
        "fractal_levels": int(marker_set.n_markers),
        "fractal_external_id": int(marker_set.id_external),
        "markers": markers,
    }
    with open(os.fspath(path), "w", encoding="utf-8") as handle:
        yaml.safe_dump(document, handle, sort_keys=False, default_flow_style=None)