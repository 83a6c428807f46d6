import numpy as np
import pytest

from arucokit.fractal_marker_set import FractalMarkerSet
from arucokit.fractal_types import InfoType, rotate_bits

REGIONS = [(8, 4), (6, 0)]


@pytest.fixture
def norm_set():
    fs = FractalMarkerSet(max_iter=30, rng=1)
    fs.create(REGIONS)
    return fs


def test_create_structure(norm_set):
    assert list(norm_set.markers) == [0, 1]
    assert norm_set.info_type == InfoType.NORM
    assert norm_set.n_markers == 2
    assert norm_set.id_external == 0
    assert norm_set.markers[0].submarkers == [1]
    assert norm_set.markers[1].submarkers == []
    assert norm_set.nbits_ids == {64: [0], 36: [1]}


def test_create_normalized_outer_corners(norm_set):
    expected = [[-1, 1, 0], [1, 1, 0], [1, -1, 0], [-1, -1, 0]]
    assert np.allclose(norm_set.markers[0].points, expected)
    assert norm_set.fractal_size() == pytest.approx(2.0)


def test_create_masks_submarker_region(norm_set):
    outer = norm_set.markers[0]
    assert np.all(outer.mask[3:5, 3:5] == 0)
    assert int(outer.mask.sum()) == outer.n_bits() - 4
    assert np.all(norm_set.markers[1].mask == 1)


def test_create_in_pixels_normalizes_to_same(norm_set):
    fs = FractalMarkerSet(max_iter=5, rng=2)
    fs.create(REGIONS, 1.0)
    assert fs.info_type == InfoType.PIX
    normalized = fs.normalize()
    assert normalized.info_type == InfoType.NORM
    for marker_id in (0, 1):
        assert np.allclose(normalized.markers[marker_id].points, norm_set.markers[marker_id].points)


def test_configure_mat_invariants():
    fs = FractalMarkerSet(rng=5)
    m = fs.configure_mat(8, 4, 20)
    assert m.shape == (8, 8)
    assert set(np.unique(m).tolist()) <= {0, 1}
    assert np.all(m[3:5, 3:5] == 0)
    pad = 2
    ring = np.ones((8, 8), dtype=bool)
    ring[pad:pad + 4, pad:pad + 4] = False
    assert int(m[ring].sum()) == int(ring.sum()) // 2


def test_is_fractal_marker_ignores_masked_bits(norm_set):
    bits = norm_set.markers[0].bits.copy()
    assert norm_set.is_fractal_marker(bits, 64) == 0
    bits[3:5, 3:5] = 1
    assert norm_set.is_fractal_marker(bits, 64) == 0


def test_is_fractal_marker_rejects_changed_bit(norm_set):
    bits = norm_set.markers[0].bits.copy()
    bits[0, 0] = 1 - bits[0, 0]
    assert norm_set.is_fractal_marker(bits, 64) is None
    assert norm_set.is_fractal_marker(bits, 10) is None


def test_dst_marker_to_fractal_dict(norm_set):
    bits = norm_set.markers[0].bits
    counter_clockwise = rotate_bits(rotate_bits(rotate_bits(bits)))
    assert norm_set.dst_marker_to_fractal_dict(counter_clockwise) == 0
    other = np.zeros((3, 3), dtype=np.uint8)
    assert norm_set.dst_marker_to_fractal_dict(other) == other.size


def test_convert_to_meters_round_trip(norm_set):
    meters = norm_set.convert_to_meters(0.5)
    assert meters.info_type == InfoType.METERS
    assert meters.fractal_size() == pytest.approx(0.5)
    assert norm_set.fractal_size() == pytest.approx(2.0)
    back = meters.normalize()
    for marker_id in (0, 1):
        assert np.allclose(back.markers[marker_id].points, norm_set.markers[marker_id].points)


def test_conversion_errors(norm_set):
    with pytest.raises(ValueError):
        norm_set.normalize()
    with pytest.raises(ValueError):
        norm_set.convert_to_meters(1.0).convert_to_meters(1.0)


def test_inner_corners(norm_set):
    corners = norm_set.inner_corners()
    assert set(corners) == {0, 1}
    for marker_id, pts in corners.items():
        assert pts.shape[1] == 3
        assert np.all(pts[:, 2] == 0)
        assert np.allclose(pts, norm_set.markers[marker_id].find_inner_corners())


def test_fractal_marker_image(norm_set):
    img = norm_set.fractal_marker_image(2)
    side = img.shape[0]
    assert img.shape == (side, side)
    assert set(np.unique(img).tolist()) <= {0, 255}
    cell = side // 10
    assert np.all(img[:cell, :] == 0)
    assert np.all(img[:, -cell:] == 0)
    bits = norm_set.markers[0].bits
    for y in range(8):
        for x in range(8):
            if norm_set.markers[0].mask[y, x]:
                centre = img[(1 + y) * cell + cell // 2, (1 + x) * cell + cell // 2]
                assert centre == 255 * int(bits[y, x])


def test_fractal_marker_image_border(norm_set):
    plain = norm_set.fractal_marker_image(2)
    framed = norm_set.fractal_marker_image(2, border=True)
    width = (framed.shape[0] - plain.shape[0]) // 2
    assert width > 0
    assert np.all(framed[:width, :] == 255)
    assert np.array_equal(framed[width:-width, width:-width], plain)


def test_empty_set_errors():
    fs = FractalMarkerSet()
    with pytest.raises(ValueError):
        fs.fractal_marker_image(2)
    with pytest.raises(ValueError):
        fs.fractal_size()
    with pytest.raises(ValueError):
        fs.create([])