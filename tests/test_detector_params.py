import io
import struct

import pytest

from arucokit.detector_params import (
    CornerRefinementMethod,
    DetectionMode,
    DetectorParams,
    ThresMethod,
    corner_refinement_method_from_string,
    detection_mode_from_string,
    read_params,
    thres_method_from_string,
)


@pytest.mark.parametrize("mode", list(DetectionMode))
def test_detection_mode_name_round_trip(mode):
    assert detection_mode_from_string(mode.name) is mode


@pytest.mark.parametrize("method", list(CornerRefinementMethod))
def test_corner_refinement_name_round_trip(method):
    assert corner_refinement_method_from_string(method.name) is method


@pytest.mark.parametrize("method", list(ThresMethod))
def test_thres_method_name_round_trip(method):
    assert thres_method_from_string(method.name) is method


def test_unknown_names_fall_back_to_defaults():
    assert detection_mode_from_string("bogus") is DetectionMode.DM_NORMAL
    assert corner_refinement_method_from_string("bogus") is CornerRefinementMethod.CORNER_SUBPIX
    assert thres_method_from_string("bogus") is ThresMethod.THRES_ADAPTIVE


def test_threshold_default_for_auto_fixed():
    params = DetectorParams()
    params.set_threshold_method(ThresMethod.THRES_AUTO_FIXED)
    assert params.thres_hold == 100
    assert params.thres_method is ThresMethod.THRES_AUTO_FIXED


def test_threshold_default_for_adaptive():
    params = DetectorParams()
    params.set_threshold_method(ThresMethod.THRES_ADAPTIVE, -1, 15, 2)
    assert params.thres_hold == 7
    assert params.adaptive_thres_window_size == 15
    assert params.adaptive_thres_window_size_range == 2


def test_explicit_threshold_is_kept():
    params = DetectorParams()
    params.set_threshold_method(ThresMethod.THRES_AUTO_FIXED, 42)
    assert params.thres_hold == 42


def test_video_fast_mode_enables_auto_size():
    params = DetectorParams()
    params.set_detection_mode(DetectionMode.DM_VIDEO_FAST, 0.5)
    assert params.auto_size is True
    assert params.ts == pytest.approx(0.3)
    assert params.thres_method is ThresMethod.THRES_AUTO_FIXED
    assert params.min_size == 0.5


def test_fast_then_normal_mode():
    params = DetectorParams()
    params.set_detection_mode(DetectionMode.DM_VIDEO_FAST)
    params.set_detection_mode(DetectionMode.DM_FAST)
    assert params.auto_size is False
    assert params.thres_method is ThresMethod.THRES_AUTO_FIXED
    params.set_detection_mode(DetectionMode.DM_NORMAL)
    assert params.thres_method is ThresMethod.THRES_ADAPTIVE
    assert params.detect_mode is DetectionMode.DM_NORMAL


def test_non_subpix_refinement_clears_min_size():
    params = DetectorParams(min_size=0.5)
    params.set_corner_refinement_method(CornerRefinementMethod.CORNER_LINES)
    assert params.min_size == 0.0
    params.min_size = 0.5
    params.set_corner_refinement_method(CornerRefinementMethod.CORNER_SUBPIX)
    assert params.min_size == 0.5


def test_save_load_round_trip():
    params = DetectorParams(dictionary="ARUCO_MIP_36h12", max_threads=4, enclosed_marker=True)
    params.set_detection_mode(DetectionMode.DM_FAST, 0.25)
    params.set_corner_refinement_method(CornerRefinementMethod.CORNER_NONE)
    saved = params.save()
    assert saved["aruco-detectMode"] == "DM_FAST"
    restored = DetectorParams()
    restored.load(saved)
    assert restored == params


def test_load_only_changes_present_keys():
    params = DetectorParams()
    before = params.save()
    params.load({"aruco-maxThreads": "8", "aruco-thresMethod": "THRES_AUTO_FIXED"})
    assert params.max_threads == 8
    assert params.thres_method is ThresMethod.THRES_AUTO_FIXED
    after = params.save()
    changed = {k for k in before if before[k] != after[k]}
    assert changed == {"aruco-maxThreads", "aruco-thresMethod"}


def test_binary_round_trip_drops_pyrfactor():
    params = DetectorParams(
        dictionary="TAG16h5", max_threads=2, border_dist_thres=0.5, pyrfactor=4.0,
        auto_size=True, ts=0.25, closing_size=3,
    )
    params.set_detection_mode(DetectionMode.DM_VIDEO_FAST)
    buffer = io.BytesIO()
    params.write(buffer)
    buffer.seek(0)
    restored = read_params(buffer)
    assert restored.pyrfactor == DetectorParams().pyrfactor
    restored.pyrfactor = params.pyrfactor
    assert restored.ts == pytest.approx(params.ts)
    restored.ts = params.ts
    assert restored == params


def test_binary_starts_with_mode_and_ends_with_dictionary():
    params = DetectorParams(dictionary="ARUCO")
    params.set_detection_mode(DetectionMode.DM_FAST)
    buffer = io.BytesIO()
    params.write(buffer)
    data = buffer.getvalue()
    assert struct.unpack("<i", data[:4])[0] == DetectionMode.DM_FAST.value
    assert data.endswith(struct.pack("<I", len(b"ARUCO")) + b"ARUCO")


def test_truncated_stream_raises():
    buffer = io.BytesIO()
    DetectorParams().write(buffer)
    with pytest.raises(EOFError):
        read_params(io.BytesIO(buffer.getvalue()[:-2]))