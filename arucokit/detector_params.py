"""Operating parameters of the marker detector and their text and binary forms."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields
from enum import IntEnum

# detectMode, maxThreads, borderDistThres, lowResMarkerSize, minSize, minSize_pix,
# enclosedMarker, thresMethod, NAttemptsAutoThresFix, AdaptiveThresWindowSize,
# ThresHold, AdaptiveThresWindowSize_range, markerWarpPixSize, cornerRefinementM,
# autoSize, ts, error_correction_rate, trackingMinDetections, closingSize
_BINARY_LAYOUT = struct.Struct("<iififi?iiiiiii?ffii")
_LENGTH = struct.Struct("<I")


class DetectionMode(IntEnum):
    """How the detector trades speed for robustness."""

    DM_NORMAL = 0
    DM_FAST = 1
    DM_VIDEO_FAST = 2


class CornerRefinementMethod(IntEnum):
    """How detected corners are refined."""

    CORNER_SUBPIX = 0
    CORNER_LINES = 1
    CORNER_NONE = 2


class ThresMethod(IntEnum):
    """How the input image is thresholded."""

    THRES_ADAPTIVE = 0
    THRES_AUTO_FIXED = 1


def detection_mode_from_string(text) -> DetectionMode:
    """Parse a detection mode name; unknown names give ``DM_NORMAL``."""
    return DetectionMode.__members__.get(str(text), DetectionMode.DM_NORMAL)


def corner_refinement_method_from_string(text) -> CornerRefinementMethod:
    """Parse a corner refinement name; unknown names give ``CORNER_SUBPIX``."""
    return CornerRefinementMethod.__members__.get(str(text), CornerRefinementMethod.CORNER_SUBPIX)


def thres_method_from_string(text) -> ThresMethod:
    """Parse a threshold method name; unknown names give ``THRES_ADAPTIVE``."""
    return ThresMethod.__members__.get(str(text), ThresMethod.THRES_ADAPTIVE)


_PLAIN_KEYS = (
    ("aruco-dictionary", "dictionary"),
    ("aruco-maxThreads", "max_threads"),
    ("aruco-borderDistThres", "border_dist_thres"),
    ("aruco-lowResMarkerSize", "low_res_marker_size"),
    ("aruco-minSize", "min_size"),
    ("aruco-minSize_pix", "min_size_pix"),
    ("aruco-enclosedMarker", "enclosed_marker"),
    ("aruco-NAttemptsAutoThresFix", "n_attempts_auto_thres_fix"),
    ("aruco-AdaptiveThresWindowSize", "adaptive_thres_window_size"),
    ("aruco-ThresHold", "thres_hold"),
    ("aruco-AdaptiveThresWindowSize_range", "adaptive_thres_window_size_range"),
    ("aruco-markerWarpPixSize", "marker_warp_pix_size"),
    ("aruco-autoSize", "auto_size"),
    ("aruco-ts", "ts"),
    ("aruco-pyrfactor", "pyrfactor"),
    ("aruco-error_correction_rate", "error_correction_rate"),
    ("aruco-trackingMinDetections", "tracking_min_detections"),
    ("aruco-closingSize", "closing_size"),
)

_ENUM_KEYS = (
    ("aruco-detectMode", "detect_mode", detection_mode_from_string),
    ("aruco-cornerRefinementM", "corner_refinement", corner_refinement_method_from_string),
    ("aruco-thresMethod", "thres_method", thres_method_from_string),
)


@dataclass
class DetectorParams:
    """Every tunable of the detector."""

    dictionary: str = "ALL_DICTS"
    detect_mode: DetectionMode = DetectionMode.DM_NORMAL
    corner_refinement: CornerRefinementMethod = CornerRefinementMethod.CORNER_SUBPIX
    thres_method: ThresMethod = ThresMethod.THRES_ADAPTIVE
    max_threads: int = 1
    border_dist_thres: float = 0.015
    low_res_marker_size: int = 20
    min_size: float = -1.0
    min_size_pix: int = -1
    enclosed_marker: bool = False
    n_attempts_auto_thres_fix: int = 3
    adaptive_thres_window_size: int = -1
    thres_hold: int = 7
    adaptive_thres_window_size_range: int = 0
    marker_warp_pix_size: int = 5
    auto_size: bool = False
    ts: float = 0.25
    pyrfactor: float = 2.0
    error_correction_rate: float = 0.0
    tracking_min_detections: int = 3
    closing_size: int = 0

    def set_threshold_method(self, method, thres_hold=-1, wsize=-1, wsize_range=0) -> None:
        """Select the threshold method; a threshold of -1 picks the method's default."""
        self.adaptive_thres_window_size = int(wsize)
        self.thres_method = ThresMethod(method)
        if thres_hold == -1:
            self.thres_hold = 100 if self.thres_method == ThresMethod.THRES_AUTO_FIXED else 7
        else:
            self.thres_hold = int(thres_hold)
        self.adaptive_thres_window_size_range = int(wsize_range)

    def set_detection_mode(self, mode, min_marker_size=0.0) -> None:
        """Select a detection mode and the threshold and size settings that go with it."""
        self.detect_mode = DetectionMode(mode)
        self.min_size = float(min_marker_size)
        if self.detect_mode == DetectionMode.DM_NORMAL:
            self.set_auto_size_speed_up(False)
            self.set_threshold_method(ThresMethod.THRES_ADAPTIVE)
        elif self.detect_mode == DetectionMode.DM_FAST:
            self.set_auto_size_speed_up(False)
            self.set_threshold_method(ThresMethod.THRES_AUTO_FIXED)
        elif self.detect_mode == DetectionMode.DM_VIDEO_FAST:
            self.set_threshold_method(ThresMethod.THRES_AUTO_FIXED)
            self.set_auto_size_speed_up(True, 0.3)

    def set_corner_refinement_method(self, method) -> None:
        """Select the corner refinement; anything but subpixel clears the minimum size."""
        self.corner_refinement = CornerRefinementMethod(method)
        if self.corner_refinement != CornerRefinementMethod.CORNER_SUBPIX:
            self.min_size = 0.0

    def set_auto_size_speed_up(self, enabled, size=0.3) -> None:
        """Enable or disable the automatic size speed-up with its size ratio."""
        self.auto_size = bool(enabled)
        self.ts = float(size)

    def save(self) -> dict:
        """The parameters as a mapping of configuration keys to plain values."""
        result = {key: getattr(self, attr) for key, attr in _PLAIN_KEYS}
        for key, attr, _ in _ENUM_KEYS:
            result[key] = getattr(self, attr).name
        return result

    def load(self, mapping) -> None:
        """Update the parameters from the keys present in ``mapping``; others stay."""
        types = {f.name: type(getattr(self, f.name)) for f in fields(self)}
        for key, attr in _PLAIN_KEYS:
            if key in mapping and mapping[key] is not None:
                setattr(self, attr, types[attr](mapping[key]))
        for key, attr, parse in _ENUM_KEYS:
            if key in mapping and mapping[key] is not None:
                setattr(self, attr, parse(mapping[key]))

    def write(self, stream) -> None:
        """Serialize to a binary stream; ``pyrfactor`` is not part of the format."""
        stream.write(
            _BINARY_LAYOUT.pack(
                int(self.detect_mode),
                self.max_threads,
                self.border_dist_thres,
                self.low_res_marker_size,
                self.min_size,
                self.min_size_pix,
                self.enclosed_marker,
                int(self.thres_method),
                self.n_attempts_auto_thres_fix,
                self.adaptive_thres_window_size,
                self.thres_hold,
                self.adaptive_thres_window_size_range,
                self.marker_warp_pix_size,
                int(self.corner_refinement),
                self.auto_size,
                self.ts,
                self.error_correction_rate,
                self.tracking_min_detections,
                self.closing_size,
            )
        )
        name = self.dictionary.encode("utf-8")
        stream.write(_LENGTH.pack(len(name)))
        stream.write(name)


def _read_exact(stream, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("truncated parameter stream")
    return data


def read_params(stream) -> DetectorParams:
    """Read parameters written by ``DetectorParams.write``."""
    (
        detect_mode,
        max_threads,
        border_dist_thres,
        low_res_marker_size,
        min_size,
        min_size_pix,
        enclosed_marker,
        thres_method,
        n_attempts,
        window,
        thres_hold,
        window_range,
        warp,
        corner_refinement,
        auto_size,
        ts,
        error_correction_rate,
        tracking,
        closing,
    ) = _BINARY_LAYOUT.unpack(_read_exact(stream, _BINARY_LAYOUT.size))
    (length,) = _LENGTH.unpack(_read_exact(stream, _LENGTH.size))
    dictionary = _read_exact(stream, length).decode("utf-8")
    return DetectorParams(
        dictionary=dictionary,
        detect_mode=DetectionMode(detect_mode),
        corner_refinement=CornerRefinementMethod(corner_refinement),
        thres_method=ThresMethod(thres_method),
        max_threads=max_threads,
        border_dist_thres=border_dist_thres,
        low_res_marker_size=low_res_marker_size,
        min_size=min_size,
        min_size_pix=min_size_pix,
        enclosed_marker=enclosed_marker,
        n_attempts_auto_thres_fix=n_attempts,
        adaptive_thres_window_size=window,
        thres_hold=thres_hold,
        adaptive_thres_window_size_range=window_range,
        marker_warp_pix_size=warp,
        auto_size=auto_size,
        ts=ts,
        error_correction_rate=error_correction_rate,
        tracking_min_detections=tracking,
        closing_size=closing,
    )