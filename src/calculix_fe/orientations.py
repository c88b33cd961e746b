"""Local frames of 1D elements and the binary orientation map.

Beam elements get a frame whose x axis runs from the first to the last
node. The y axis is the requested up-vector projected perpendicular to x;
when the up-vector is (nearly) parallel to the element, global Z is used
instead, or global Y for elements along Z.

The orientation map is a little-endian binary file read by the user
material routine::

    int32   count
    count x (int32 element tag, 6 x float64: x axis, y axis)
"""

import struct
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import InpFormatConfig, DEFAULT_CONFIG
from .elements import Element, ElementKind
from .model import LocalFrame, Model

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

_HEADER = struct.Struct("<i")
_RECORD = struct.Struct("<i6d")


def _unit(vector: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(vector)
    if length == 0.0:
        raise ValueError("Cannot normalize a zero-length vector")
    return vector / length


def _require_line(element: Element):
    if element.element_type.kind != ElementKind.LINE:
        raise ValueError(
            f"Element {element.tag} ({element.solver_name}) is not a beam element"
        )


def element_axis(model: Model, element: Element) -> np.ndarray:
    """Unit vector from the first to the last node of a beam element."""
    _require_line(element)
    p0 = np.asarray(model.nodes[element.nodes[0]], dtype=np.float64)
    p1 = np.asarray(model.nodes[element.nodes[-1]], dtype=np.float64)
    return _unit(p1 - p0)


def line_element_frame(
    model: Model,
    element: Element,
    up: Optional[Sequence[float]] = None,
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> LocalFrame:
    """Local frame of a beam element.

    Args:
        model: Model holding the element's nodes
        element: B31 or B32 element
        up: Preferred y direction; global Y if None or zero
        config: Supplies the parallel tolerance

    Returns:
        LocalFrame at the first node with orthonormal x and y axes
    """
    x_axis = element_axis(model, element)
    y_axis = Y_AXIS if up is None else np.asarray(up, dtype=np.float64)
    if np.linalg.norm(y_axis) == 0.0:
        y_axis = Y_AXIS

    limit = 1.0 - config.parallel_tolerance
    if abs(np.dot(_unit(y_axis), x_axis)) > limit:
        y_axis = Z_AXIS if abs(np.dot(x_axis, Z_AXIS)) < limit else Y_AXIS

    y_axis = _unit(y_axis - np.dot(y_axis, x_axis) * x_axis)
    origin = model.nodes[element.nodes[0]]
    return LocalFrame(
        origin=tuple(float(c) for c in origin),
        x_axis=tuple(float(c) for c in x_axis),
        y_axis=tuple(float(c) for c in y_axis),
    )


def line_element_frames(
    model: Model,
    up: Optional[Sequence[float]] = None,
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> Dict[int, LocalFrame]:
    """Frames for every beam element of a model, keyed by element tag."""
    return {
        tag: line_element_frame(model, element, up, config)
        for tag, element in model.elements.items()
        if element.element_type.kind == ElementKind.LINE
    }


def is_vertical(
    model: Model,
    element: Element,
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> bool:
    return abs(float(np.dot(element_axis(model, element), Z_AXIS))) > config.vertical_tolerance


def split_beams_and_columns(
    model: Model,
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> Tuple[List[int], List[int]]:
    """Partition beam elements into horizontal-ish beams and vertical columns."""
    beams, columns = [], []
    for tag, element in model.elements.items():
        if element.element_type.kind != ElementKind.LINE:
            continue
        (columns if is_vertical(model, element, config) else beams).append(tag)
    return beams, columns


# =============================================================================
# Binary orientation map
# =============================================================================

def write_orientation_map(
    filepath: Union[str, Path],
    frames: Mapping[int, LocalFrame],
) -> Path:
    """Write per-element axes for the user material routine."""
    filepath = Path(filepath)
    with open(filepath, 'wb') as f:
        f.write(_HEADER.pack(len(frames)))
        for tag, frame in frames.items():
            f.write(_RECORD.pack(tag, *frame.x_axis, *frame.y_axis))
    return filepath


def read_orientation_map(
    filepath: Union[str, Path],
) -> Dict[int, Tuple[Tuple[float, float, float], Tuple[float, float, float]]]:
    """Read an orientation map back as tag -> (x axis, y axis)."""
    with open(filepath, 'rb') as f:
        data = f.read()
    (count,) = _HEADER.unpack_from(data, 0)
    expected = _HEADER.size + count * _RECORD.size
    if len(data) != expected:
        raise ValueError(f"Orientation map has {len(data)} bytes, expected {expected}")
    result = {}
    for i in range(count):
        tag, *axes = _RECORD.unpack_from(data, _HEADER.size + i * _RECORD.size)
        result[tag] = (tuple(axes[:3]), tuple(axes[3:]))
    return result
