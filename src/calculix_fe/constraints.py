"""Reference points, rigid bodies and contact definitions.

A reference point does not own node tags when it is built. Its reference
and rotation nodes are allocated by ``Model.finalize`` after every real
node is known, so the tags can never collide with mesh nodes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


Vector3 = Tuple[float, float, float]


@dataclass
class ReferencePoint:
    """Synthetic point driving a node set through a rigid body.

    Args:
        name: Unique reference point name
        location: Coordinates of the reference (and rotation) node
        nset: Node set that the point controls
    """
    name: str
    location: Vector3
    nset: str


@dataclass
class RigidBody:
    """``*Rigid body`` constraint bound to a reference point by name."""
    reference_point: str

    def to_calculix(self, nset: str, ref_node: int, rot_node: int) -> str:
        return f"*Rigid body, Nset={nset}, Ref node={ref_node}, Rot node={rot_node}"


@dataclass
class Surface:
    """Element-face surface.

    ``faces`` maps a face number (1-based, solver convention S1..S6) to the
    element tags exposing that face. The writer generates one element set
    per face number named ``{name}_S{k}``.
    """
    name: str
    faces: Dict[int, List[int]] = field(default_factory=dict)

    def element_set_name(self, face_number: int) -> str:
        return f"{self.name}_S{face_number}"

    def element_sets(self) -> Dict[str, List[int]]:
        return {
            self.element_set_name(k): list(tags)
            for k, tags in self.faces.items()
        }

    def to_calculix(self) -> List[str]:
        lines = [f"*Surface, Name={self.name}, Type=Element"]
        for k in self.faces:
            lines.append(f"{self.element_set_name(k)}, S{k}")
        return lines


@dataclass
class SurfaceInteraction:
    """Tied contact behaviour with Coulomb friction."""
    name: str
    pressure_overclosure: str = "Tied"
    stiffness: float = 1e10
    friction: float = 0.1

    def to_calculix(self) -> List[str]:
        return [
            f"*Surface interaction, Name={self.name}",
            f"*Surface behavior, Pressure-overclosure={self.pressure_overclosure}",
            f"{self.stiffness:g}",
            "*Friction",
            f"{self.friction}",
        ]


@dataclass
class ContactPair:
    """Surface-to-surface contact; the slave (dependent) surface is listed first."""
    interaction: str
    slave: str
    master: str

    def to_calculix(self) -> List[str]:
        return [
            f"*Contact pair, Interaction={self.interaction}, Type=Surface to surface",
            f"{self.slave}, {self.master}",
        ]


@dataclass
class Spring:
    """Linear spring stiffness for an element set.

    The first data line is left empty, as for axial springs.
    """
    elset: str
    stiffness: float

    def to_calculix(self) -> List[str]:
        return [f"*Spring, Elset={self.elset}", "", f"{self.stiffness}"]
