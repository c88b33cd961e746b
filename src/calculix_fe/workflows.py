"""High-level model builders for timber structures.

Two workflows turn raw nodes and connectivity into a complete, exportable
``Model``:

- ``build_beam_model``: 1D frames of B31/B32 beams. Elements are split
  into beams and (vertical) columns, every element gets a local frame,
  and sections default to a 0.05 x 0.15 rectangle.
- ``build_solid_model``: 3D solid meshes with orthotropic spruce, an
  optional per-element orientation and an optional coupled
  temperature-displacement (hygro) step.

Example::

    model = build_beam_model(
        nodes={1: (0, 0, 0), 2: (0, 0, 3), 3: (4, 0, 3)},
        elements={1: (1, 2), 2: (2, 3)},
        node_sets={"support": [1], "tip": [3]},
        loads=[ConcentratedLoad("tip", (0, 0, -1000))],
        boundary_conditions=[BoundaryCondition.fixed("support")],
    )
    result = write_model(model, "frame.inp")
"""

import dataclasses
import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Union

from .config import InpFormatConfig, DEFAULT_CONFIG
from .constraints import ReferencePoint
from .elements import ElementType, from_gmsh_order
from .loads import BoundaryCondition, InitialTemperature, Load, Step
from .materials import spruce, wood_isotropic, wood_orthotropic_umat
from .model import ALL_SET, LocalFrame, Model
from .orientations import (
    X_AXIS,
    Z_AXIS,
    line_element_frames,
    split_beams_and_columns,
    write_orientation_map,
)
from .sections import BeamSection, SolidSection

_logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "distro"
ORIENTATION_NAME = "ori"
BEAM_SET = "beamElements"
COLUMN_SET = "columnElements"

_BEAM_TYPES = {2: ElementType.B31, 3: ElementType.B32}
_SOLID_TYPES = {
    member.node_count: member
    for member in (
        ElementType.C3D4, ElementType.C3D10, ElementType.C3D8,
        ElementType.C3D20, ElementType.C3D6, ElementType.C3D15,
    )
}


def _element_type(types, tag: int, nodes: Sequence[int], family: str) -> ElementType:
    element_type = types.get(len(nodes))
    if element_type is None:
        raise ValueError(
            f"Element {tag}: {len(nodes)} nodes do not match any {family} element"
        )
    return element_type


def _zero_length(nodes: Mapping[int, Sequence[float]], element_nodes: Sequence[int]) -> bool:
    first, last = nodes.get(element_nodes[0]), nodes.get(element_nodes[-1])
    if first is None or last is None:
        return False
    return tuple(float(c) for c in first) == tuple(float(c) for c in last)


def _add_mesh(
    model: Model,
    nodes: Mapping[int, Sequence[float]],
    node_sets: Optional[Mapping[str, Iterable[int]]],
    element_sets: Optional[Mapping[str, Iterable[int]]],
):
    for tag, coords in nodes.items():
        model.add_node(int(tag), coords)
    model.add_all_sets(ALL_SET)
    for name, tags in (node_sets or {}).items():
        model.add_node_set(name, tags)
    for name, tags in (element_sets or {}).items():
        model.add_element_set(name, tags)


def _add_step(
    model: Model,
    loads: Iterable[Load],
    boundary_conditions: Iterable[BoundaryCondition],
    coupled: bool = False,
) -> Step:
    step = Step.coupled() if coupled else Step()
    step.loads.extend(loads)
    step.boundary_conditions.extend(boundary_conditions)
    return model.add_step(step)


# =============================================================================
# 1D beam frames
# =============================================================================

def build_beam_model(
    nodes: Mapping[int, Sequence[float]],
    elements: Mapping[int, Sequence[int]],
    node_sets: Optional[Mapping[str, Iterable[int]]] = None,
    element_sets: Optional[Mapping[str, Iterable[int]]] = None,
    sections: Sequence[BeamSection] = (),
    loads: Iterable[Load] = (),
    boundary_conditions: Iterable[BoundaryCondition] = (),
    orthotropic: bool = False,
    width: float = 0.05,
    height: float = 0.15,
    up: Sequence[float] = tuple(Z_AXIS),
    orientation_map_path: Optional[Union[str, Path]] = None,
    name: str = "Model1D",
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> Model:
    """Build a beam model from nodes and 2- or 3-node line elements.

    Elements whose end nodes coincide have no axis; they are left out of
    the model with a warning.

    Args:
        nodes: Node tag -> coordinates
        elements: Element tag -> node tags (2 for B31, 3 for B32)
        node_sets: Extra named node sets (loads and supports refer to these)
        element_sets: Extra named element sets
        sections: Explicit sections; each takes over its element set from
            the default beam/column sections
        loads: Loads of the single static step
        boundary_conditions: Boundary conditions of the step
        orthotropic: Use the user-material wood model instead of isotropic
        width: Width of the default rectangular section
        height: Height of the default rectangular section
        up: Preferred local y direction of the element frames
        orientation_map_path: Where to write the binary orientation map
            read by the user material; not written if None
        name: Model name for the heading
        config: Supplies the vertical and parallel tolerances

    Returns:
        Model ready for ``write_model``

    Raises:
        ValueError: If an element has neither 2 nor 3 nodes.
    """
    model = Model(name=name)
    skipped = set()
    for tag, element_nodes in elements.items():
        element_type = _element_type(_BEAM_TYPES, tag, element_nodes, "beam")
        if _zero_length(nodes, element_nodes):
            _logger.warning("Element %d has zero length, skipped", tag)
            skipped.add(int(tag))
            continue
        model.add_element(int(tag), element_type, element_nodes)
    if skipped and element_sets:
        element_sets = {
            set_name: [t for t in tags if int(t) not in skipped]
            for set_name, tags in element_sets.items()
        }
    _add_mesh(model, nodes, node_sets, element_sets)

    beams, columns = split_beams_and_columns(model, config)
    _logger.debug("Split %d beams and %d columns", len(beams), len(columns))

    frames = line_element_frames(model, up, config)
    model.add_distribution(DISTRIBUTION_NAME, frames, orientation=ORIENTATION_NAME)

    material = wood_orthotropic_umat() if orthotropic else wood_isotropic()
    model.materials.append(material)

    # Explicit sections claim their elements first
    beam_tags, column_tags = set(beams), set(columns)
    for section in sections:
        if section.elset not in model.element_sets:
            _logger.warning(
                "Section '%s': element set '%s' not found, skipped",
                section.name, section.elset,
            )
            continue
        claimed = set(model.element_sets[section.elset])
        beam_tags -= claimed
        column_tags -= claimed
        model.add_section(dataclasses.replace(
            section, material=material.name, orientation=ORIENTATION_NAME,
        ))

    model.element_sets[BEAM_SET] = [t for t in beams if t in beam_tags]
    model.element_sets[COLUMN_SET] = [t for t in columns if t in column_tags]

    model.add_section(BeamSection(
        "beamSection", BEAM_SET, material.name, ORIENTATION_NAME,
        width=width, height=height, direction=tuple(Z_AXIS),
    ))
    model.add_section(BeamSection(
        "columnSection", COLUMN_SET, material.name, ORIENTATION_NAME,
        width=width, height=height, direction=tuple(X_AXIS),
    ))

    if orientation_map_path is not None:
        write_orientation_map(orientation_map_path, frames)

    _add_step(model, loads, boundary_conditions)
    return model


# =============================================================================
# 3D solids
# =============================================================================

def build_solid_model(
    nodes: Mapping[int, Sequence[float]],
    elements: Mapping[int, Sequence[int]],
    frames: Optional[Mapping[int, LocalFrame]] = None,
    node_sets: Optional[Mapping[str, Iterable[int]]] = None,
    element_sets: Optional[Mapping[str, Iterable[int]]] = None,
    loads: Iterable[Load] = (),
    boundary_conditions: Iterable[BoundaryCondition] = (),
    reference_points: Iterable[ReferencePoint] = (),
    from_gmsh: bool = True,
    coupled: bool = False,
    initial_temperature: Optional[float] = None,
    name: str = "Model3dHygro",
) -> Model:
    """Build a solid model of spruce with optional grain orientation.

    Args:
        nodes: Node tag -> coordinates
        elements: Element tag -> node tags; the type follows the node count
        frames: Per-element grain frames; the section is oriented when given
        node_sets: Extra named node sets
        element_sets: Extra named element sets
        loads: Loads of the single step
        boundary_conditions: Boundary conditions of the step (temperature
            BCs drive the moisture field in a coupled step)
        reference_points: Each gets a rigid body on its node set
        from_gmsh: Connectivity uses gmsh node ordering
        coupled: Use a coupled temperature-displacement step
        initial_temperature: Initial value on all nodes; none if None
        name: Model name for the heading

    Returns:
        Model ready for ``write_model``

    Raises:
        ValueError: If a node count matches no solid element.
    """
    model = Model(name=name)
    for tag, element_nodes in elements.items():
        element_type = _element_type(_SOLID_TYPES, tag, element_nodes, "solid")
        if from_gmsh:
            element_nodes = from_gmsh_order(element_type, element_nodes)
        model.add_element(int(tag), element_type, element_nodes)
    _add_mesh(model, nodes, node_sets, element_sets)

    orientation = None
    if frames:
        model.add_distribution(DISTRIBUTION_NAME, frames, orientation=ORIENTATION_NAME)
        orientation = ORIENTATION_NAME

    material = spruce()
    model.materials.append(material)
    model.add_section(SolidSection("section", ALL_SET, material.name, orientation))

    for point in reference_points:
        model.add_reference_point(point)

    if initial_temperature is not None:
        model.initial_conditions.append(InitialTemperature(ALL_SET, initial_temperature))

    _add_step(model, loads, boundary_conditions, coupled=coupled)
    return model
