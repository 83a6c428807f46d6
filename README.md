# arucokit

Building blocks for square fiducial markers, written with numpy:

- **Fractal marker sets** (`arucokit.fractal_marker_set`,
  `arucokit.fractal_marker`, `arucokit.fractal_io`): the predefined
  configurations `FRACTAL_2L_6` to `FRACTAL_5L_6`, random creation of new
  sets, bit matching, unit conversion, inner-corner extraction and
  rendering of a synthetic marker image. Sets can be stored in a binary
  form or as YAML.
- **Configuration names and bit distances** (`arucokit.fractal_types`):
  `ConfType`, `InfoType`, name parsing and Hamming distances between
  rotated bit matrices.
- **Detector parameters** (`arucokit.detector_params`): detection modes,
  threshold methods and corner-refinement settings, saved as a plain
  key/value mapping or in a compact binary form.
- **Planar homographies** (`arucokit.homography`): isotropic point
  normalisation, a linear homography estimate between two planar point
  sets, the closed-form homography of a square, and the rotation that turns
  a direction onto the z axis.

## Installation

```
pip install arucokit
```

To run the tests:

```
pip install "arucokit[test]"
pytest
```

## Fractal marker sets

```python
from arucokit.fractal_io import load, save_to_file, read_from_file

marker_set = load("FRACTAL_3L_6")          # a predefined configuration
print(marker_set)                           # ids, units and outer marker

image = marker_set.fractal_marker_image(10, True)   # uint8 array, 0 or 255
corners = marker_set.inner_corners()        # {marker id: (N, 3) array}

in_meters = marker_set.convert_to_meters(0.2)       # outer marker 0.2 wide
print(in_meters.fractal_size())

save_to_file(in_meters, "fractal.yml")
again = read_from_file("fractal.yml")
```

`load` takes either the name of a predefined configuration (see
`arucokit.fractal_types.configurations()`) or the path of a YAML file such as
the one written by `save_to_file`. `write_fractal_marker_set` and
`read_fractal_marker_set` use the binary form of the predefined
configurations on any binary stream.

To check whether a square bit matrix taken from an image is one of the
markers of a set, pass it with its number of bits:

```python
marker = marker_set.markers[marker_set.id_external]
print(marker_set.is_fractal_marker(marker.bits, marker.n_bits()))  # the id, or None
```

New sets are built from `(n, k)` pairs, outermost level first: `n` is the
number of bits per side and `k` the side of the central region left for the
next level. The random generator and the number of attempts per level can be
fixed:

```python
from arucokit.fractal_marker_set import FractalMarkerSet

custom = FractalMarkerSet(max_iter=200, rng=42)
custom.create([(10, 4), (6, 0)])
```

## Detector parameters

```python
import io
from arucokit.detector_params import DetectorParams, DetectionMode, read_params

params = DetectorParams()
params.set_detection_mode(DetectionMode.DM_VIDEO_FAST)
mapping = params.save()            # {"aruco-detectMode": "DM_VIDEO_FAST", ...}

other = DetectorParams()
other.load(mapping)

buffer = io.BytesIO()
params.write(buffer)
buffer.seek(0)
restored = read_params(buffer)
```

Unknown mode names read from a mapping fall back to `DM_NORMAL`,
`CORNER_SUBPIX` and `THRES_ADAPTIVE`. The binary form does not hold
`pyrfactor`.

## Homographies

```python
import numpy as np
from arucokit.homography import homography_ho, homography_from_square_points

square = np.array([[-1.0, 1.0], [1.0, 1.0], [1.0, -1.0], [-1.0, -1.0]])
target = np.array([[0.1, 0.2], [0.4, 0.25], [0.35, -0.1], [0.05, -0.05]])

h1 = homography_ho(square, target)
h2 = homography_from_square_points(target, 1.0)
```

Both results are 3x3 arrays scaled so that `H[2, 2]` is 1.

## What the package does not do

It works on marker definitions, bit matrices, point sets and parameters. It
does not find markers in camera images, does not read the bits of an image
patch, and does not estimate the pose of a marker relative to a camera; the
`DetectorParams` describe a detector but there is no detector here to run
with them. There is no command-line program.