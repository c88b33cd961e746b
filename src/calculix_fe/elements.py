"""Element types and their face topology.

Every supported CalculiX element type is a member of ``ElementType``. The
member carries the node count and the type codes used by the solver, gmsh
and the .frd result format, so lookups in any direction go through one
table.

Face tables list node *indices* (positions in the element's node array),
ordered so that the right-hand normal of each face points out of the
element. Node numbering follows the CalculiX convention, not gmsh's:
callers importing meshes from another mesher must permute first (see
``calculix_fe.gmsh_io``).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, List


class ElementTopologyError(NotImplementedError):
    """Raised when faces are requested for an element type without faces."""


class ElementKind(Enum):
    """Geometric family of an element type."""
    LINE = "line"
    SPRING = "spring"
    SHELL = "shell"
    SOLID = "solid"


class ElementType(Enum):
    """Supported element types.

    Value layout: (solver name, node count, kind, gmsh code, frd code).
    """
    B31 = ("B31", 2, ElementKind.LINE, 1, 11)
    B32 = ("B32", 3, ElementKind.LINE, 8, 12)
    C3D4 = ("C3D4", 4, ElementKind.SOLID, 4, 3)
    C3D10 = ("C3D10", 10, ElementKind.SOLID, 11, 6)
    C3D8 = ("C3D8", 8, ElementKind.SOLID, 5, 1)
    C3D20 = ("C3D20", 20, ElementKind.SOLID, 17, 4)
    C3D6 = ("C3D6", 6, ElementKind.SOLID, 6, 2)
    C3D15 = ("C3D15", 15, ElementKind.SOLID, 18, 5)
    S3 = ("S3", 3, ElementKind.SHELL, 2, 7)
    S6 = ("S6", 6, ElementKind.SHELL, 9, 8)
    S4 = ("S4", 4, ElementKind.SHELL, 3, 9)
    S8 = ("S8", 8, ElementKind.SHELL, 16, 10)
    SPRING2 = ("SPRING2", 2, ElementKind.SPRING, None, None)

    def __init__(self, solver_name, node_count, kind, gmsh_code, frd_code):
        self.solver_name = solver_name
        self.node_count = node_count
        self.kind = kind
        self.gmsh_code = gmsh_code
        self.frd_code = frd_code

    @property
    def has_faces(self) -> bool:
        return self.kind in (ElementKind.SOLID, ElementKind.SHELL)

    @property
    def is_quadratic(self) -> bool:
        return self in _QUADRATIC

    @classmethod
    def from_solver_name(cls, name: str) -> "ElementType":
        """Look up a type by its ``*Element, Type=`` keyword (case-insensitive)."""
        key = name.strip().upper()
        for member in cls:
            if member.solver_name == key:
                return member
        raise ValueError(f"Unknown element type: {name!r}")

    @classmethod
    def from_gmsh(cls, code: int) -> "ElementType":
        for member in cls:
            if member.gmsh_code == code and member.kind != ElementKind.SPRING:
                return member
        raise ValueError(f"Unsupported gmsh element type code: {code}")

    @classmethod
    def from_frd(cls, code: int) -> Optional["ElementType"]:
        """Map an .frd element type code, returning None for unknown codes."""
        for member in cls:
            if member.frd_code == code:
                return member
        return None


_QUADRATIC = {ElementType.B32, ElementType.C3D10, ElementType.C3D20,
              ElementType.C3D15, ElementType.S6, ElementType.S8}


# =============================================================================
# Face tables (outward normals, CalculiX node ordering)
# =============================================================================

_FACE_TABLES = {
    ElementType.C3D4: (
        (0, 2, 1),
        (0, 1, 3),
        (1, 2, 3),
        (2, 0, 3),
    ),
    # Mid-edge nodes follow the corners of each face
    ElementType.C3D10: (
        (0, 2, 1, 6, 5, 4),
        (0, 1, 3, 4, 8, 7),
        (1, 2, 3, 5, 9, 8),
        (2, 0, 3, 6, 7, 9),
    ),
    ElementType.C3D8: (
        (0, 3, 2, 1),
        (4, 5, 6, 7),
        (0, 1, 5, 4),
        (1, 2, 6, 5),
        (2, 3, 7, 6),
        (3, 0, 4, 7),
    ),
    ElementType.C3D20: (
        (0, 3, 2, 1, 11, 10, 9, 8),
        (4, 5, 6, 7, 12, 13, 14, 15),
        (0, 1, 5, 4, 8, 17, 12, 16),
        (1, 2, 6, 5, 9, 18, 13, 17),
        (2, 3, 7, 6, 10, 19, 14, 18),
        (3, 0, 4, 7, 11, 16, 15, 19),
    ),
    ElementType.C3D6: (
        (0, 2, 1),
        (3, 4, 5),
        (1, 4, 3, 0),
        (2, 5, 4, 1),
        (0, 3, 5, 2),
    ),
    ElementType.C3D15: (
        (0, 2, 1, 8, 7, 6),
        (3, 4, 5, 9, 10, 11),
        (0, 1, 4, 3, 6, 13, 9, 12),
        (1, 2, 5, 4, 7, 14, 10, 13),
        (2, 0, 3, 5, 8, 12, 11, 14),
    ),
    ElementType.S3: ((0, 1, 2),),
    ElementType.S6: ((0, 1, 2, 3, 4, 5),),
    ElementType.S4: ((0, 1, 2, 3),),
    ElementType.S8: ((0, 1, 2, 3, 4, 5, 6, 7),),
}

# Box proxy for a 2-node beam pre-expanded to 8 points by a result reader.
# Only used for display; the beam itself has no faces.
BEAM_PRISM_NODE_COUNT = 8
BEAM_PRISM_FACES = (
    (0, 1, 2, 3),
    (4, 5, 6, 7),
    (0, 4, 5, 1),
    (6, 2, 3, 7),
    (0, 3, 7, 4),
    (1, 5, 6, 2),
)


# Position in gmsh's node list of each solver node, for types whose
# mid-edge numbering differs. Types not listed share the solver ordering.
GMSH_NODE_ORDER = {
    ElementType.B32: (0, 2, 1),
    ElementType.C3D10: (0, 1, 2, 3, 4, 5, 6, 7, 9, 8),
    ElementType.C3D20: (0, 1, 2, 3, 4, 5, 6, 7,
                        8, 11, 13, 9, 16, 18, 19, 17, 10, 12, 14, 15),
    ElementType.C3D15: (0, 1, 2, 3, 4, 5, 6, 9, 7, 12, 14, 13, 8, 10, 11),
}


def from_gmsh_order(element_type: ElementType, nodes: Sequence[int]) -> Tuple[int, ...]:
    """Permute a gmsh node list into solver order."""
    _check_node_count(element_type, nodes)
    order = GMSH_NODE_ORDER.get(element_type)
    if order is None:
        return tuple(nodes)
    return tuple(nodes[i] for i in order)


# Position in the .frd element record of each solver node. Result files
# list the vertical mid-edge nodes of bricks and wedges before the top
# mid-edge nodes; both tables are their own inverse.
FRD_NODE_ORDER = {
    ElementType.C3D20: (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11,
                        16, 17, 18, 19, 12, 13, 14, 15),
    ElementType.C3D15: (0, 1, 2, 3, 4, 5, 6, 7, 8, 12, 13, 14, 9, 10, 11),
}


def from_frd_order(element_type: ElementType, nodes: Sequence[int]) -> Tuple[int, ...]:
    """Permute a .frd element record into solver (.inp) order."""
    _check_node_count(element_type, nodes)
    order = FRD_NODE_ORDER.get(element_type)
    if order is None:
        return tuple(nodes)
    return tuple(nodes[i] for i in order)


def face_indices(element_type: ElementType) -> Tuple[Tuple[int, ...], ...]:
    """Return the raw face table of an element type.

    Raises:
        ElementTopologyError: For line and spring elements.
    """
    table = _FACE_TABLES.get(element_type)
    if table is None:
        raise ElementTopologyError(
            f"{element_type.solver_name} elements have no faces"
        )
    return table


def _check_node_count(element_type: ElementType, nodes: Sequence[int]):
    if len(nodes) != element_type.node_count:
        raise ValueError(
            f"{element_type.solver_name} requires {element_type.node_count} "
            f"nodes, got {len(nodes)}"
        )


def element_faces(
    element_type: ElementType,
    nodes: Sequence[int],
) -> List[Tuple[int, ...]]:
    """Get the outward-wound faces of one element.

    Args:
        element_type: Type of the element
        nodes: Node tags in solver order; length must match the type

    Returns:
        List of faces, each a tuple of node tags

    Raises:
        ValueError: If the node count does not match the type.
        ElementTopologyError: For line and spring elements.
    """
    _check_node_count(element_type, nodes)
    return [tuple(nodes[i] for i in face) for face in face_indices(element_type)]


def visualization_faces(
    element_type: Optional[ElementType],
    nodes: Sequence[int],
) -> List[Tuple[int, ...]]:
    """Get renderable faces of an element, degrading to an empty list.

    Unknown types, types without faces and node arrays of unexpected length
    yield ``[]``. A ``B31`` given the 8 points of its box proxy is rendered
    with ``BEAM_PRISM_FACES``.
    """
    if element_type is None:
        return []
    if element_type == ElementType.B31 and len(nodes) == BEAM_PRISM_NODE_COUNT:
        return [tuple(nodes[i] for i in face) for face in BEAM_PRISM_FACES]
    if element_type not in _FACE_TABLES or len(nodes) != element_type.node_count:
        return []
    return element_faces(element_type, nodes)


@dataclass
class Element:
    """A typed connectivity record."""
    tag: int
    element_type: ElementType
    nodes: Tuple[int, ...]

    def __post_init__(self):
        self.nodes = tuple(int(n) for n in self.nodes)
        _check_node_count(self.element_type, self.nodes)

    @property
    def solver_name(self) -> str:
        return self.element_type.solver_name

    def faces(self) -> List[Tuple[int, ...]]:
        return element_faces(self.element_type, self.nodes)
