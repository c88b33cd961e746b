"""Colour mapping and mesh export for result visualization.

Result values are mapped through a ``Gradient`` to per-vertex colours of a
``SkinMesh`` and exported with trimesh (GLB, PLY, OBJ, ...).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import trimesh

from .skin import SkinMesh

RGB = Tuple[int, int, int]


def hex_to_rgba_int(hex_color: str, alpha: int = 255) -> Tuple[int, int, int, int]:
    """Convert hex color string to RGBA integers (0-255 range).

    Args:
        hex_color: Color string like "#FF0000" or "FF0000"
        alpha: Alpha value (0-255)

    Returns:
        (r, g, b, a) tuple with values in 0-255 range
    """
    hex_color = hex_color.lstrip('#')
    r = int(hex_color[0:2], 16)
    g = int(hex_color[2:4], 16)
    b = int(hex_color[4:6], 16)
    return (r, g, b, alpha)


def interpolate(a: RGB, b: RGB, t: float) -> RGB:
    """Blend two colours; each channel is truncated before summing."""
    return tuple(int(cb * t) + int(ca * (1.0 - t)) for ca, cb in zip(a, b))


@dataclass
class Gradient:
    """Piecewise-linear colour ramp over ``[minimum, maximum]``.

    Values outside the range clamp to the end stops.
    """
    stops: List[RGB]
    minimum: float = 0.0
    maximum: float = 1.0

    def __post_init__(self):
        self.stops = [
            hex_to_rgba_int(s)[:3] if isinstance(s, str) else tuple(s)
            for s in self.stops
        ]
        if len(self.stops) < 2:
            raise ValueError("A gradient needs at least two colour stops")

    @classmethod
    def unsigned(cls, maximum: float = 1.0) -> "Gradient":
        """Blue (zero) through white to red (maximum), for magnitudes."""
        return cls(["#0000FF", "#FFFFFF", "#FF0000"], 0.0, maximum)

    @classmethod
    def signed(cls, limit: float = 1.0) -> "Gradient":
        """Blue (-limit) through white (zero) to red (+limit)."""
        return cls(["#0000FF", "#FFFFFF", "#FF0000"], -limit, limit)

    def color_at(self, value: float) -> RGB:
        if value <= self.minimum:
            return self.stops[0]
        if value >= self.maximum:
            return self.stops[-1]
        t = (value - self.minimum) / (self.maximum - self.minimum) * (len(self.stops) - 1)
        i = int(np.floor(t))
        return interpolate(self.stops[i], self.stops[i + 1], t - i)

    def colors_for(self, values: Sequence[float], alpha: int = 255) -> np.ndarray:
        """(n, 4) uint8 RGBA colours for an array of values."""
        colors = np.empty((len(values), 4), dtype=np.uint8)
        for i, value in enumerate(values):
            colors[i, :3] = self.color_at(float(value))
        colors[:, 3] = alpha
        return colors


def gradient_for(values: Sequence[float], signed: bool = False) -> Gradient:
    """Gradient scaled to the largest magnitude in ``values``."""
    values = np.asarray(values, dtype=np.float64)
    limit = float(np.abs(values).max()) if values.size else 0.0
    if limit == 0.0:
        limit = 1.0
    return Gradient.signed(limit) if signed else Gradient.unsigned(limit)


def apply_displacements(
    nodes: Mapping[int, Tuple[float, float, float]],
    displacements: Mapping[int, Tuple[float, float, float]],
    scale: float = 1.0,
) -> Dict[int, Tuple[float, float, float]]:
    """Apply scaled displacements to node coordinates.

    Args:
        nodes: Original node coordinates
        displacements: Node displacements (ux, uy, uz)
        scale: Displacement scale factor

    Returns:
        New dict with deformed coordinates
    """
    deformed = {}
    for nid, (x, y, z) in nodes.items():
        if nid in displacements:
            ux, uy, uz = displacements[nid]
            deformed[nid] = (x + ux * scale, y + uy * scale, z + uz * scale)
        else:
            deformed[nid] = (x, y, z)
    return deformed


def deformed_vertices(
    skin: SkinMesh,
    displacement: Mapping[str, Sequence[float]],
    scale: float = 1.0,
) -> np.ndarray:
    """Skin vertices moved by a ``DISP`` field (components D1, D2, D3)."""
    offsets = np.column_stack([skin.take(displacement[c]) for c in ("D1", "D2", "D3")])
    return skin.vertices + scale * offsets


def to_trimesh(
    skin: SkinMesh,
    values: Optional[Sequence[float]] = None,
    gradient: Optional[Gradient] = None,
    vertices: Optional[np.ndarray] = None,
    alpha: int = 255,
) -> trimesh.Trimesh:
    """Build a triangulated trimesh from a skin mesh.

    Args:
        skin: Compact skin mesh
        values: Optional per-vertex values (already picked with ``skin.take``)
        gradient: Colour ramp; scaled to ``values`` if None
        vertices: Optional replacement coordinates (e.g. deformed)
        alpha: Vertex colour alpha

    Returns:
        trimesh.Trimesh with vertex colours when values are given
    """
    coords = skin.vertices if vertices is None else np.asarray(vertices, dtype=np.float64)
    if coords.shape != skin.vertices.shape:
        raise ValueError(f"Expected vertices of shape {skin.vertices.shape}, got {coords.shape}")

    colors = None
    if values is not None:
        values = np.asarray(values, dtype=np.float64)
        if len(values) != skin.num_vertices:
            raise ValueError(f"Expected {skin.num_vertices} values, got {len(values)}")
        if gradient is None:
            gradient = gradient_for(values, signed=bool((values < 0).any()))
        colors = gradient.colors_for(values, alpha=alpha)

    return trimesh.Trimesh(
        vertices=coords,
        faces=skin.triangles(),
        vertex_colors=colors,
        process=False,
    )


def export_skin(
    skin: SkinMesh,
    output_path: Union[str, Path],
    values: Optional[Sequence[float]] = None,
    gradient: Optional[Gradient] = None,
    vertices: Optional[np.ndarray] = None,
) -> Path:
    """Export a (coloured) skin mesh; the format follows the file suffix."""
    output_path = Path(output_path)
    mesh = to_trimesh(skin, values=values, gradient=gradient, vertices=vertices)
    mesh.export(str(output_path))
    return output_path
