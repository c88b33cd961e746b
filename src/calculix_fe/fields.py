"""Derived invariants of symmetric tensor fields (stress or strain).

Component order everywhere is (xx, yy, zz, xy, yz, zx), the order of the
.frd ``STRESS`` and ``TOSTRAIN`` blocks.

Scalar and batch versions of each invariant give identical results: von
Mises uses the same operations in the same order on numpy arrays, and the
principal values are computed by looping the scalar kernel.
"""

import math
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np

# Component names per tensor field in .frd results
TENSOR_COMPONENTS = {
    "STRESS": ("SXX", "SYY", "SZZ", "SXY", "SYZ", "SZX"),
    "TOSTRAIN": ("EXX", "EYY", "EZZ", "EXY", "EYZ", "EZX"),
}
DISPLACEMENT_COMPONENTS = ("D1", "D2", "D3")

# Names of the derived components added by derive_invariants()
VON_MISES = "VONMISES"
SIGNED = "SIGNED"
PRINCIPAL_NAMES = ("MAX", "MID", "MIN")
MAGNITUDE = "ALL"


# =============================================================================
# Von Mises
# =============================================================================

def von_mises(xx: float, yy: float, zz: float,
              xy: float, yz: float, zx: float) -> float:
    """Von Mises equivalent of one symmetric tensor."""
    d1 = xx - yy
    d2 = yy - zz
    d3 = zz - xx
    shear = xy * xy + yz * yz + zx * zx
    return math.sqrt(0.5 * (d1 * d1 + d2 * d2 + d3 * d3) + 3.0 * shear)


def _as_components(*components) -> Tuple[np.ndarray, ...]:
    arrays = tuple(np.asarray(c, dtype=np.float64) for c in components)
    lengths = {a.shape for a in arrays}
    if len(lengths) != 1:
        raise ValueError(
            f"Tensor components have mismatched shapes: {[a.shape for a in arrays]}"
        )
    return arrays


def von_mises_array(xx, yy, zz, xy, yz, zx) -> np.ndarray:
    """Von Mises equivalent for whole component arrays.

    Raises:
        ValueError: If the six arrays differ in length.
    """
    xx, yy, zz, xy, yz, zx = _as_components(xx, yy, zz, xy, yz, zx)
    d1 = xx - yy
    d2 = yy - zz
    d3 = zz - xx
    shear = xy * xy + yz * yz + zx * zx
    return np.sqrt(0.5 * (d1 * d1 + d2 * d2 + d3 * d3) + 3.0 * shear)


# =============================================================================
# Principal values
# =============================================================================

def invariants(xx: float, yy: float, zz: float,
               xy: float, yz: float, zx: float) -> Tuple[float, float, float]:
    """First, second and third invariants (I1, I2, I3) of a symmetric tensor."""
    i1 = xx + yy + zz
    i2 = xx * yy + yy * zz + zz * xx - xy * xy - yz * yz - zx * zx
    i3 = (xx * yy * zz - xx * yz * yz - yy * zx * zx - zz * xy * xy
          + 2.0 * xy * yz * zx)
    return i1, i2, i3


def solve_cubic(a: float, b: float, c: float, d: float) -> Tuple[float, float, float]:
    """Real roots of a*x^3 + b*x^2 + c*x + d = 0 with three real roots.

    Uses the trigonometric solution of the depressed cubic t^3 + p*t + q.
    When p >= 0 the depressed roots are taken as zero, so all three roots
    equal the shift -b/(3a); this is the triple root of an isotropic
    tensor. NaN roots are replaced by 0.

    Returns:
        Roots sorted in descending order
    """
    shift = -b / (3.0 * a)
    p = (3.0 * a * c - b * b) / (3.0 * a * a)
    q = (2.0 * b ** 3 - 9.0 * a * b * c + 27.0 * a * a * d) / (27.0 * a ** 3)

    if p >= 0.0:
        depressed = (0.0, 0.0, 0.0)
    else:
        arg = 3.0 * q / (2.0 * p) * math.sqrt(-3.0 / p)
        alpha = math.acos(min(1.0, max(-1.0, arg))) / 3.0
        radius = 2.0 * math.sqrt(-p / 3.0)
        depressed = tuple(
            radius * math.cos(alpha - k * 2.0 * math.pi / 3.0) for k in range(3)
        )

    roots = [t + shift for t in depressed]
    roots = [0.0 if math.isnan(r) else r for r in roots]
    roots.sort(reverse=True)
    return roots[0], roots[1], roots[2]


def principal_values(xx: float, yy: float, zz: float,
                     xy: float, yz: float, zx: float) -> Tuple[float, float, float]:
    """Principal values (max, mid, min) of one symmetric tensor."""
    i1, i2, i3 = invariants(xx, yy, zz, xy, yz, zx)
    # Characteristic polynomial: x^3 - I1 x^2 + I2 x - I3
    return solve_cubic(1.0, -i1, i2, -i3)


def signed_max_abs(maximum: float, minimum: float) -> float:
    """The principal value with the larger magnitude, sign kept.

    Ties (|max| == |min|) resolve to ``maximum``, i.e. tension wins.
    """
    return minimum if abs(minimum) > abs(maximum) else maximum


def principal_values_array(xx, yy, zz, xy, yz, zx) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Principal values for whole component arrays.

    Returns:
        (max, mid, min) arrays

    Raises:
        ValueError: If the six arrays differ in length.
    """
    components = _as_components(xx, yy, zz, xy, yz, zx)
    n = components[0].size
    result = np.zeros((3, n), dtype=np.float64)
    flat = [c.ravel().tolist() for c in components]
    for i, values in enumerate(zip(*flat)):
        result[:, i] = principal_values(*values)
    shape = components[0].shape
    return result[0].reshape(shape), result[1].reshape(shape), result[2].reshape(shape)


def signed_max_abs_array(maximum, minimum) -> np.ndarray:
    maximum = np.asarray(maximum, dtype=np.float64)
    minimum = np.asarray(minimum, dtype=np.float64)
    if maximum.shape != minimum.shape:
        raise ValueError("Principal value arrays have mismatched shapes")
    return np.where(np.abs(minimum) > np.abs(maximum), minimum, maximum)


# =============================================================================
# Field post-processing
# =============================================================================

def tensor_invariants(components: Mapping[str, Sequence[float]],
                      names: Sequence[str]) -> Dict[str, np.ndarray]:
    """Von Mises, principal and signed values for one tensor field.

    Args:
        components: Component name -> per-node array
        names: The six component names in (xx, yy, zz, xy, yz, zx) order

    Raises:
        KeyError: If a component is missing.
        ValueError: If component lengths differ.
    """
    arrays = [components[name] for name in names]
    maximum, middle, minimum = principal_values_array(*arrays)
    return {
        VON_MISES: von_mises_array(*arrays),
        PRINCIPAL_NAMES[0]: maximum,
        PRINCIPAL_NAMES[1]: middle,
        PRINCIPAL_NAMES[2]: minimum,
        SIGNED: signed_max_abs_array(maximum, minimum),
    }


def displacement_magnitude(components: Mapping[str, Sequence[float]]) -> np.ndarray:
    d1, d2, d3 = _as_components(*(components[name] for name in DISPLACEMENT_COMPONENTS))
    return np.sqrt(d1 * d1 + d2 * d2 + d3 * d3)


def derive_invariants(
    fields: Mapping[str, Mapping[str, Sequence[float]]],
) -> Dict[str, Dict[str, np.ndarray]]:
    """Add derived components to result fields.

    ``STRESS`` and ``TOSTRAIN`` gain ``VONMISES``, ``MAX``, ``MID``, ``MIN``
    and ``SIGNED``; ``DISP`` gains ``ALL`` (magnitude). Other fields are
    copied unchanged. The input mapping is not modified.

    Args:
        fields: Field name -> component name -> per-node array

    Returns:
        New mapping with the derived components added
    """
    derived: Dict[str, Dict[str, np.ndarray]] = {}
    for field_name, components in fields.items():
        out = {name: np.asarray(values) for name, values in components.items()}
        names = TENSOR_COMPONENTS.get(field_name)
        if names is not None and all(n in components for n in names):
            out.update(tensor_invariants(components, names))
        elif field_name == "DISP" and all(n in components for n in DISPLACEMENT_COMPONENTS):
            out[MAGNITUDE] = displacement_magnitude(components)
        derived[field_name] = out
    return derived
