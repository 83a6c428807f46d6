import numpy as np
import pytest

from arucokit.fractal_types import (
    ConfType,
    InfoType,
    configurations,
    dst_marker,
    dst_marker_to_marker,
    is_predefined_configuration_string,
    rotate_bits,
    type_from_string,
    type_string,
)


def test_configurations_list():
    assert configurations() == ["FRACTAL_2L_6", "FRACTAL_3L_6", "FRACTAL_4L_6", "FRACTAL_5L_6"]


@pytest.mark.parametrize("name", ["FRACTAL_2L_6", "FRACTAL_3L_6", "FRACTAL_4L_6", "FRACTAL_5L_6"])
def test_type_round_trip(name):
    conf = type_from_string(name)
    assert conf != ConfType.CUSTOM
    assert type_string(conf) == name
    assert is_predefined_configuration_string(name)


def test_unknown_string_is_custom():
    assert type_from_string("my_file.yml") == ConfType.CUSTOM
    assert not is_predefined_configuration_string("my_file.yml")
    assert type_string(ConfType.CUSTOM) == "CUSTOM"


def test_invalid_type_string():
    assert type_string(99) == "Non valid CONF_TYPE"


def test_norm_info_type_value_matches_stream_header():
    assert InfoType(2) == InfoType.NORM


def test_rotate_bits_clockwise():
    assert rotate_bits([[1, 2], [3, 4]]).tolist() == [[3, 1], [4, 2]]


def test_four_rotations_are_identity():
    rng = np.random.default_rng(3)
    bits = rng.integers(0, 2, size=(5, 5)).astype(np.uint8)
    rot = bits
    for _ in range(4):
        rot = rotate_bits(rot)
    assert np.array_equal(rot, bits)
    assert rot.dtype == bits.dtype


def test_rotate_rejects_non_square():
    with pytest.raises(ValueError):
        rotate_bits(np.zeros((2, 3)))


def test_dst_marker_symmetric_is_zero():
    assert dst_marker(np.zeros((4, 4), dtype=np.uint8)) == 0
    assert dst_marker(np.ones((3, 3), dtype=np.uint8)) == 0


def test_dst_marker_bounded():
    rng = np.random.default_rng(7)
    bits = rng.integers(0, 2, size=(6, 6)).astype(np.uint8)
    assert 0 <= dst_marker(bits) <= bits.size


def test_dst_marker_to_marker_matches_rotation():
    rng = np.random.default_rng(11)
    bits = rng.integers(0, 2, size=(6, 6)).astype(np.uint8)
    assert dst_marker_to_marker(rotate_bits(bits), bits) == 0


def test_dst_marker_to_marker_complement_is_full():
    bits = np.zeros((3, 3), dtype=np.uint8)
    assert dst_marker_to_marker(bits, 1 - bits) == bits.size


def test_dst_marker_to_marker_shape_mismatch():
    with pytest.raises(ValueError):
        dst_marker_to_marker(np.zeros((3, 3)), np.zeros((4, 4)))