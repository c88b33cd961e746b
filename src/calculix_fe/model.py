"""FE model container and the finalize phase.

Building a model is plain collection appends (``add_*`` helpers exist for
the common cases). Nothing is resolved while building: sets, orientations
and reference points are referenced by name.

``Model.finalize()`` is the second phase. It allocates the synthetic nodes
of reference points after the highest real node tag, expands surfaces into
their element sets, resolves every name reference and returns an
``ExportPlan``. Records whose references do not resolve are left out of
the plan and reported as warnings; the model itself is never mutated.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .constraints import (
    ContactPair,
    ReferencePoint,
    RigidBody,
    Spring,
    Surface,
    SurfaceInteraction,
)
from .elements import Element, ElementType
from .loads import BoundaryCondition, InitialTemperature, Load, Step
from .materials import Material
from .sections import Section

_logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]

# Conventional name of the sets holding every node / element
ALL_SET = "all"


@dataclass
class LocalFrame:
    """Local coordinate frame of one element (origin, local x and y axes)."""
    origin: Vector3
    x_axis: Vector3
    y_axis: Vector3


@dataclass
class Model:
    """Finite element model owning nodes, elements, sets and analysis data."""
    name: str = "Model"
    nodes: Dict[int, Vector3] = field(default_factory=dict)
    elements: Dict[int, Element] = field(default_factory=dict)
    node_sets: Dict[str, List[int]] = field(default_factory=dict)
    element_sets: Dict[str, List[int]] = field(default_factory=dict)
    normals: List[Tuple[int, int, Vector3]] = field(default_factory=list)  # (element, node, normal)
    distributions: Dict[str, Dict[int, LocalFrame]] = field(default_factory=dict)
    orientations: Dict[str, str] = field(default_factory=dict)  # orientation -> distribution
    materials: List[Material] = field(default_factory=list)
    springs: List[Spring] = field(default_factory=list)
    surfaces: List[Surface] = field(default_factory=list)
    surface_interactions: List[SurfaceInteraction] = field(default_factory=list)
    contact_pairs: List[ContactPair] = field(default_factory=list)
    sections: Dict[str, Section] = field(default_factory=dict)
    reference_points: Dict[str, ReferencePoint] = field(default_factory=dict)
    constraints: List[RigidBody] = field(default_factory=list)
    initial_conditions: List[InitialTemperature] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def max_node_tag(self) -> int:
        return max(self.nodes, default=0)

    # -------------------------------------------------------------------------
    # Build phase
    # -------------------------------------------------------------------------

    def add_node(self, tag: int, coords: Iterable[float]) -> int:
        if tag in self.nodes:
            raise ValueError(f"Duplicate node tag {tag}")
        x, y, z = (float(c) for c in coords)
        self.nodes[tag] = (x, y, z)
        return tag

    def add_element(
        self,
        tag: int,
        element_type: ElementType,
        nodes: Iterable[int],
    ) -> Element:
        if tag in self.elements:
            raise ValueError(f"Duplicate element tag {tag}")
        element = Element(tag, element_type, tuple(nodes))
        self.elements[tag] = element
        return element

    def add_node_set(self, name: str, tags: Iterable[int]) -> List[int]:
        """Append tags to a node set, creating it if needed."""
        members = self.node_sets.setdefault(name, [])
        members.extend(int(t) for t in tags)
        return members

    def add_element_set(self, name: str, tags: Iterable[int]) -> List[int]:
        """Append tags to an element set, creating it if needed."""
        members = self.element_sets.setdefault(name, [])
        members.extend(int(t) for t in tags)
        return members

    def add_all_sets(self, name: str = ALL_SET):
        """Fill the node and element sets holding every tag of the model."""
        self.node_sets[name] = list(self.nodes)
        self.element_sets[name] = list(self.elements)

    def add_section(self, section: Section) -> Section:
        self.sections[section.name] = section
        return section

    def add_distribution(
        self,
        name: str,
        frames: Dict[int, LocalFrame],
        orientation: Optional[str] = None,
    ):
        """Add a per-element frame table and, optionally, an orientation using it."""
        self.distributions[name] = dict(frames)
        if orientation is not None:
            self.orientations[orientation] = name

    def add_reference_point(self, point: ReferencePoint, rigid: bool = True) -> ReferencePoint:
        """Register a reference point, with a rigid body constraint by default."""
        self.reference_points[point.name] = point
        if rigid:
            self.constraints.append(RigidBody(point.name))
        return point

    def add_step(self, step: Step) -> Step:
        self.steps.append(step)
        return step

    def elements_by_type(self) -> Dict[ElementType, List[Element]]:
        """Group elements by type, types in first-seen order."""
        groups: Dict[ElementType, List[Element]] = {}
        for element in self.elements.values():
            groups.setdefault(element.element_type, []).append(element)
        return groups

    # -------------------------------------------------------------------------
    # Finalize phase
    # -------------------------------------------------------------------------

    def finalize(self) -> "ExportPlan":
        """Allocate synthetic nodes and resolve every name reference."""
        return _Finalizer(self).run()


@dataclass
class ResolvedStep:
    """A step with only the loads and boundary conditions that resolve."""
    step: Step
    loads: List[Load]
    boundary_conditions: List[BoundaryCondition]


@dataclass
class ResolvedRigidBody:
    constraint: RigidBody
    nset: str
    ref_node: int
    rot_node: int


@dataclass
class ExportPlan:
    """Everything the writer needs beyond the model's own geometry.

    Synthetic nodes come after all real nodes in the node block.
    ``element_sets`` includes the sets generated for surfaces.
    """
    model: Model
    synthetic_nodes: Dict[int, Vector3] = field(default_factory=dict)
    reference_nodes: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    element_sets: Dict[str, List[int]] = field(default_factory=dict)
    orientations: Dict[str, str] = field(default_factory=dict)
    surfaces: List[Surface] = field(default_factory=list)
    springs: List[Spring] = field(default_factory=list)
    sections: List[Tuple[Section, Optional[str]]] = field(default_factory=list)
    rigid_bodies: List[ResolvedRigidBody] = field(default_factory=list)
    contact_pairs: List[ContactPair] = field(default_factory=list)
    initial_conditions: List[InitialTemperature] = field(default_factory=list)
    steps: List[ResolvedStep] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class _Finalizer:
    """Builds an ``ExportPlan`` from a model, collecting warnings."""

    def __init__(self, model: Model):
        self.model = model
        self.plan = ExportPlan(model=model)

    def warn(self, message: str):
        _logger.warning(message)
        self.plan.warnings.append(message)

    def _resolves(self, sets: Dict[str, List[int]], kind: str, name: str, owner: str) -> bool:
        if name not in sets:
            self.warn(f"{owner}: {kind} set '{name}' not found, skipped")
            return False
        if not sets[name]:
            self.warn(f"{owner}: {kind} set '{name}' is empty, skipped")
            return False
        return True

    def node_set(self, name: str, owner: str) -> bool:
        return self._resolves(self.model.node_sets, "node", name, owner)

    def element_set(self, name: str, owner: str) -> bool:
        return self._resolves(self.plan.element_sets, "element", name, owner)

    def run(self) -> ExportPlan:
        self._check_connectivity()
        self._allocate_reference_nodes()
        self._expand_surfaces()
        self._resolve_orientations()
        self._resolve_springs()
        self._resolve_sections()
        self._resolve_constraints()
        self._resolve_contact()
        self._resolve_initial_conditions()
        self._resolve_steps()
        return self.plan

    def _check_connectivity(self):
        model = self.model
        for element in model.elements.values():
            missing = [n for n in element.nodes if n not in model.nodes]
            if missing:
                self.warn(f"Element {element.tag} references missing nodes {missing}")

    def _allocate_reference_nodes(self):
        next_tag = self.model.max_node_tag + 1
        for name, point in self.model.reference_points.items():
            ref_node, rot_node = next_tag, next_tag + 1
            next_tag += 2
            location = tuple(float(c) for c in point.location)
            self.plan.synthetic_nodes[ref_node] = location
            self.plan.synthetic_nodes[rot_node] = location
            self.plan.reference_nodes[name] = (ref_node, rot_node)
        if self.plan.reference_nodes:
            _logger.debug(
                "Allocated %d reference points after node %d",
                len(self.plan.reference_nodes), self.model.max_node_tag,
            )

    def _expand_surfaces(self):
        plan = self.plan
        plan.element_sets.update(self.model.element_sets)
        for surface in self.model.surfaces:
            generated = {
                name: tags for name, tags in surface.element_sets().items() if tags
            }
            if not generated:
                self.warn(f"Surface '{surface.name}' has no element faces, skipped")
                continue
            clashes = [name for name in generated if name in self.model.element_sets]
            if clashes:
                self.warn(f"Surface '{surface.name}' overrides element sets {clashes}")
            plan.element_sets.update(generated)
            plan.surfaces.append(Surface(
                surface.name,
                {k: tags for k, tags in surface.faces.items() if tags},
            ))

    def _resolve_orientations(self):
        for name, distribution in self.model.orientations.items():
            if distribution not in self.model.distributions:
                self.warn(f"Orientation '{name}': distribution '{distribution}' not found, skipped")
                continue
            self.plan.orientations[name] = distribution

    def _resolve_springs(self):
        for spring in self.model.springs:
            if self.element_set(spring.elset, "Spring"):
                self.plan.springs.append(spring)

    def _resolve_sections(self):
        for name, section in self.model.sections.items():
            owner = f"Section '{name}'"
            if not self.element_set(section.elset, owner):
                continue
            orientation = section.orientation
            if orientation and orientation not in self.plan.orientations:
                self.warn(f"{owner}: orientation '{orientation}' not found, option dropped")
                orientation = None
            self.plan.sections.append((section, orientation))

    def _resolve_constraints(self):
        for constraint in self.model.constraints:
            owner = f"Rigid body '{constraint.reference_point}'"
            point = self.model.reference_points.get(constraint.reference_point)
            if point is None:
                self.warn(f"{owner}: reference point not found, skipped")
                continue
            if not self.node_set(point.nset, owner):
                continue
            ref_node, rot_node = self.plan.reference_nodes[point.name]
            self.plan.rigid_bodies.append(
                ResolvedRigidBody(constraint, point.nset, ref_node, rot_node)
            )

    def _resolve_contact(self):
        surfaces = {s.name for s in self.plan.surfaces}
        interactions = {i.name for i in self.model.surface_interactions}
        for pair in self.model.contact_pairs:
            owner = f"Contact pair '{pair.slave}'/'{pair.master}'"
            if pair.interaction not in interactions:
                self.warn(f"{owner}: interaction '{pair.interaction}' not found, skipped")
                continue
            missing = [s for s in (pair.slave, pair.master) if s not in surfaces]
            if missing:
                self.warn(f"{owner}: surfaces {missing} not found, skipped")
                continue
            self.plan.contact_pairs.append(pair)

    def _resolve_initial_conditions(self):
        for condition in self.model.initial_conditions:
            if self.node_set(condition.nset, "Initial condition"):
                self.plan.initial_conditions.append(condition)

    def _resolve_steps(self):
        for index, step in enumerate(self.model.steps, start=1):
            label = step.name or f"Step {index}"
            loads = []
            for load in step.loads:
                owner = f"{label} {type(load).__name__}"
                if load.is_node_load:
                    resolved = self.node_set(load.set_name, owner)
                else:
                    resolved = self.element_set(load.set_name, owner)
                if resolved:
                    loads.append(load)
            conditions = [
                bc for bc in step.boundary_conditions
                if self.node_set(bc.nset, f"{label} boundary condition")
            ]
            self.plan.steps.append(ResolvedStep(step, loads, conditions))
