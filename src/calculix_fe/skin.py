"""Skin (boundary face) extraction for volume meshes.

A face shared by two elements is interior; a face used by exactly one
element lies on the outer skin. Faces are counted in a hash bucket keyed
by the sorted node tuple, computed once when the face is added, so two
elements visiting the same face in opposite winding land in the same
bucket. The first-seen winding is kept for output, which is the outward
winding of the only element that owns a skin face.

A face used three or more times means the input is not a manifold volume
mesh (duplicated elements, or three solids glued along one face).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .elements import ElementType, visualization_faces
from .model import Model

_logger = logging.getLogger(__name__)

Face = Tuple[int, ...]


class NonManifoldMeshError(ValueError):
    """Raised by strict skin extraction when a face is shared by 3+ elements."""

    def __init__(self, faces: List[Face]):
        super().__init__(
            f"{len(faces)} faces are shared by more than two elements, "
            f"e.g. {faces[0]}"
        )
        self.faces = faces


class FaceBucket:
    """Multiset of faces with order-insensitive identity.

    Example::

        bucket = FaceBucket()
        bucket.add((1, 2, 3))
        bucket.add((3, 2, 1))
        bucket.count((2, 1, 3))  # 2
    """

    def __init__(self):
        # sorted key -> [first-seen face, multiplicity]
        self._faces: Dict[Face, list] = {}
        self.total = 0

    @staticmethod
    def canonical(face: Sequence[int]) -> Face:
        return tuple(sorted(face))

    def add(self, face: Sequence[int]) -> int:
        """Add one face occurrence and return its multiplicity.

        Empty faces are ignored and return 0.
        """
        if not face:
            return 0
        face = tuple(face)
        key = self.canonical(face)
        entry = self._faces.get(key)
        if entry is None:
            entry = self._faces[key] = [face, 0]
        entry[1] += 1
        self.total += 1
        return entry[1]

    def extend(self, faces: Iterable[Sequence[int]]):
        for face in faces:
            self.add(face)

    def count(self, face: Sequence[int]) -> int:
        entry = self._faces.get(self.canonical(face))
        return entry[1] if entry else 0

    def __len__(self) -> int:
        return len(self._faces)

    def _with_count(self, predicate) -> List[Face]:
        return [face for face, count in self._faces.values() if predicate(count)]

    def unique_faces(self) -> List[Face]:
        """Faces seen exactly once, in insertion order."""
        return self._with_count(lambda c: c == 1)

    def shared_faces(self) -> List[Face]:
        return self._with_count(lambda c: c == 2)

    def non_manifold_faces(self) -> List[Face]:
        return self._with_count(lambda c: c >= 3)

    def multiplicities(self) -> Dict[int, int]:
        """Histogram: multiplicity -> number of distinct faces."""
        histogram: Dict[int, int] = {}
        for _, count in self._faces.values():
            histogram[count] = histogram.get(count, 0) + 1
        return histogram


@dataclass
class SkinFaces:
    """Result of skin extraction, faces given as node tags."""
    faces: List[Face]
    non_manifold: List[Face] = field(default_factory=list)
    total_faces: int = 0

    @property
    def is_manifold(self) -> bool:
        return not self.non_manifold


def extract_skin_faces(
    elements: Iterable[Tuple[Optional[ElementType], Sequence[int]]],
    strict: bool = False,
) -> SkinFaces:
    """Find the faces used by exactly one element.

    Args:
        elements: (element type, node tags) pairs; unknown types (None) and
            types without faces contribute nothing
        strict: Raise instead of warning on non-manifold faces

    Returns:
        SkinFaces with outward-wound skin faces

    Raises:
        NonManifoldMeshError: If ``strict`` and a face has multiplicity >= 3.
    """
    bucket = FaceBucket()
    for element_type, nodes in elements:
        bucket.extend(visualization_faces(element_type, nodes))

    non_manifold = bucket.non_manifold_faces()
    if non_manifold:
        if strict:
            raise NonManifoldMeshError(non_manifold)
        _logger.warning(
            "Non-manifold input: %d faces shared by more than two elements",
            len(non_manifold),
        )
    return SkinFaces(
        faces=bucket.unique_faces(),
        non_manifold=non_manifold,
        total_faces=bucket.total,
    )


def model_skin_faces(model: Model, strict: bool = False) -> SkinFaces:
    """Skin faces of all elements of a model."""
    return extract_skin_faces(
        ((e.element_type, e.nodes) for e in model.elements.values()),
        strict=strict,
    )


# =============================================================================
# Compact visualization mesh
# =============================================================================

def triangulate_face(face: Sequence[int]) -> List[Tuple[int, int, int]]:
    """Split a face polygon into triangles with the same winding.

    Handles 3- and 4-node faces and the quadratic 6-node (triangle) and
    8-node (quad) faces, whose mid-edge nodes follow the corners.
    """
    n = len(face)
    if n == 3:
        return [tuple(face)]
    if n == 4:
        a, b, c, d = face
        return [(a, b, c), (a, c, d)]
    if n == 6:
        a, b, c, ab, bc, ca = face
        return [(a, ab, ca), (ab, b, bc), (ca, bc, c), (ab, bc, ca)]
    if n == 8:
        a, b, c, d, ab, bc, cd, da = face
        return [
            (a, ab, da), (ab, b, bc), (bc, c, cd), (cd, d, da),
            (ab, bc, cd), (ab, cd, da),
        ]
    # Generic polygon: fan from the first node
    return [(face[0], face[i], face[i + 1]) for i in range(1, n - 1)]


@dataclass
class SkinMesh:
    """Skin faces remapped to a dense 0-based vertex numbering.

    Attributes:
        vertices: (n, 3) coordinates of the skin nodes
        faces: Face tuples indexing into ``vertices``
        node_tags: Original node tag of each vertex
        node_indices: Position of each vertex in the source node order,
            used to pick per-vertex values out of full field arrays
    """
    vertices: np.ndarray
    faces: List[Face]
    node_tags: np.ndarray
    node_indices: np.ndarray

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_faces(self) -> int:
        return len(self.faces)

    def index_of(self) -> Dict[int, int]:
        """Map from original node tag to vertex index."""
        return {int(tag): i for i, tag in enumerate(self.node_tags)}

    def take(self, values: Sequence[float]) -> np.ndarray:
        """Pick per-vertex values from an array aligned with the source nodes."""
        values = np.asarray(values)
        if len(values) <= int(self.node_indices.max(initial=-1)):
            raise ValueError(
                f"Field has {len(values)} values, skin needs index "
                f"{int(self.node_indices.max())}"
            )
        return values[self.node_indices]

    def triangles(self) -> np.ndarray:
        """(m, 3) triangle index array of the skin."""
        tris = [tri for face in self.faces for tri in triangulate_face(face)]
        return np.array(tris, dtype=np.int64).reshape(-1, 3)


def compact_skin(
    faces: Iterable[Sequence[int]],
    nodes: Mapping[int, Sequence[float]],
) -> SkinMesh:
    """Build a compact vertex array for skin faces.

    Vertices keep the iteration order of ``nodes``. Faces referencing a
    node missing from ``nodes`` are dropped with a warning.

    Args:
        faces: Skin faces as node tags
        nodes: Node tag -> coordinates, e.g. ``Model.nodes``

    Returns:
        SkinMesh with faces and vertices remapped consistently
    """
    faces = [tuple(f) for f in faces]
    used = set()
    kept = []
    dropped = 0
    for face in faces:
        if all(tag in nodes for tag in face):
            kept.append(face)
            used.update(face)
        else:
            dropped += 1
    if dropped:
        _logger.warning("%d skin faces reference unknown nodes and were dropped", dropped)

    index_of = {}
    coords = []
    tags = []
    positions = []
    for position, (tag, xyz) in enumerate(nodes.items()):
        if tag in used:
            index_of[tag] = len(tags)
            tags.append(tag)
            positions.append(position)
            coords.append(tuple(xyz))

    return SkinMesh(
        vertices=np.array(coords, dtype=np.float64).reshape(-1, 3),
        faces=[tuple(index_of[tag] for tag in face) for face in kept],
        node_tags=np.array(tags, dtype=np.int64),
        node_indices=np.array(positions, dtype=np.int64),
    )


def extract_skin(model: Model, strict: bool = False) -> SkinMesh:
    """Skin of a model as a compact visualization mesh."""
    skin = model_skin_faces(model, strict=strict)
    return compact_skin(skin.faces, model.nodes)
