"""CalculiX input (.inp) writer.

``CalculiXInput`` is a line builder with one ``add_*`` method per keyword
block. ``write_model`` finalizes a model and drives the builder through the
fixed block order::

    heading, nodes, elements, normals, distributions, orientations,
    node sets, element sets, surfaces, springs, materials, sections,
    constraints, surface interactions, contact pairs, initial conditions,
    steps

Unresolved references never abort an export: the offending block is left
out and the reason is returned in ``ExportResult.warnings`` (and logged).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .config import InpFormatConfig, DEFAULT_CONFIG
from .elements import Element, ElementType
from .materials import Material
from .model import ExportPlan, LocalFrame, Model, ResolvedRigidBody, ResolvedStep
from .sections import Section

_logger = logging.getLogger(__name__)

BANNER_WIDTH = 60


def wrap_entries(entries: Sequence, per_line: int) -> List[str]:
    """Join entries with ", ", breaking after ``per_line`` entries.

    Every line but the last ends with a comma so the reader sees a
    continuation.
    """
    entries = [f"{e}" for e in entries]
    lines = []
    for start in range(0, len(entries), per_line):
        lines.append(", ".join(entries[start:start + per_line]))
    return [line + "," for line in lines[:-1]] + lines[-1:]


def _vector(values: Iterable[float]) -> str:
    return ", ".join(f"{float(v)}" for v in values)


@dataclass
class CalculiXInput:
    """Builder for CalculiX input files."""
    config: InpFormatConfig = DEFAULT_CONFIG
    lines: List[str] = field(default_factory=list)

    def add_comment(self, text: str) -> "CalculiXInput":
        self.lines.append(f"** {text}")
        return self

    def add_lines(self, lines: Iterable[str]) -> "CalculiXInput":
        self.lines.extend(lines)
        return self

    def add_banner(self, title: str) -> "CalculiXInput":
        """Add the three-line comment block that opens every section."""
        self.lines.extend([
            "**",
            f"** {title} ".ljust(BANNER_WIDTH, "+"),
            "**",
        ])
        return self

    def add_heading(self, model_name: str) -> "CalculiXInput":
        self.lines.extend([
            "**",
            "*Heading",
            f"Model: {model_name}, Unit system: {self.config.unit_system}",
        ])
        return self

    def add_nodes(self, nodes: Iterable[Tuple[int, Sequence[float]]]) -> "CalculiXInput":
        """Add node data lines (the ``*Node`` keyword is written by the caller)."""
        fmt = self.config.format_coordinate
        for tag, (x, y, z) in nodes:
            self.lines.append(f"{tag}, {fmt(x)}, {fmt(y)}, {fmt(z)}")
        return self

    def add_elements(
        self,
        element_type: ElementType,
        elements: Iterable[Element],
    ) -> "CalculiXInput":
        """Add one ``*Element`` block; long connectivity continues on the next line."""
        self.lines.append(f"*Element, Type={element_type.solver_name}")
        width = self.config.element_entries_per_line
        for element in elements:
            self.lines.extend(wrap_entries((element.tag,) + element.nodes, width))
        return self

    def add_normals(self, normals: Sequence[Tuple[int, int, Sequence[float]]]) -> "CalculiXInput":
        if not normals:
            return self
        self.lines.append("*Normal")
        for element, node, vector in normals:
            self.lines.append(f"{element}, {node}, {_vector(vector)}")
        return self

    def add_distribution(self, name: str, frames: Dict[int, LocalFrame]) -> "CalculiXInput":
        """Add a per-element distribution of local axes.

        The first data line is the default frame (global X and Y).
        """
        self.lines.append(f"*Distribution, Name={name}")
        self.lines.append(", 1, 0, 0, 0, 1, 0")
        for tag, frame in frames.items():
            self.lines.append(f"{tag}, {_vector(frame.x_axis)}, {_vector(frame.y_axis)}")
        return self

    def add_orientation(self, name: str, distribution: str) -> "CalculiXInput":
        self.lines.extend([f"*Orientation, Name={name}", distribution])
        return self

    def _add_set(self, keyword: str, option: str, name: str, tags: Sequence[int]):
        if not tags:
            self.add_comment(f"{option} {name} is empty")
            return
        self.lines.append(f"{keyword}, {option}={name}")
        self.lines.extend(wrap_entries(tags, self.config.set_entries_per_line))

    def add_node_set(self, name: str, tags: Sequence[int]) -> "CalculiXInput":
        self._add_set("*Nset", "Nset", name, tags)
        return self

    def add_element_set(self, name: str, tags: Sequence[int]) -> "CalculiXInput":
        self._add_set("*Elset", "Elset", name, tags)
        return self

    def add_material(self, material: Material) -> "CalculiXInput":
        self.lines.extend(material.to_calculix(self.config))
        return self

    def add_section(self, section: Section, orientation: Optional[str]) -> "CalculiXInput":
        self.lines.extend(section.to_calculix(orientation))
        return self

    def add_rigid_body(self, body: ResolvedRigidBody) -> "CalculiXInput":
        self.lines.append(
            body.constraint.to_calculix(body.nset, body.ref_node, body.rot_node)
        )
        return self

    def add_step(self, resolved: ResolvedStep) -> "CalculiXInput":
        """Add a step: boundaries, loads, then output requests."""
        step = resolved.step
        self.lines.extend([
            "*Step",
            f"*{step.step_type.value}",
            f"*Output, Frequency={self.config.output_frequency}",
        ])
        if resolved.boundary_conditions:
            self.lines.append("*Boundary")
            self.lines.extend(bc.to_calculix() for bc in resolved.boundary_conditions)
        for load in resolved.loads:
            self.lines.extend(load.to_calculix())
        self.lines.extend([
            step.node_output_keyword,
            ", ".join(step.node_output),
            step.element_output_keyword,
            ", ".join(step.element_output),
            "*End step",
        ])
        return self

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + "\n"

    def write(self, filepath: Union[str, Path]) -> Path:
        """Write the input file."""
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            f.write(self.text)
        return filepath


@dataclass
class ExportResult:
    """Rendered input text plus the warnings collected while finalizing."""
    text: str
    warnings: List[str]
    plan: ExportPlan
    path: Optional[Path] = None


def build_input(
    model: Model,
    plan: Optional[ExportPlan] = None,
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> CalculiXInput:
    """Render a model into a ``CalculiXInput`` in the fixed block order."""
    if plan is None:
        plan = model.finalize()
    inp = CalculiXInput(config=config)

    inp.add_heading(model.name)

    inp.add_banner("Nodes")
    inp.lines.append("*Node")
    inp.add_nodes(model.nodes.items())
    inp.add_nodes(plan.synthetic_nodes.items())

    inp.add_banner("Elements")
    for element_type, elements in model.elements_by_type().items():
        inp.add_elements(element_type, elements)

    inp.add_banner("Normals")
    inp.add_normals(model.normals)

    inp.add_banner("Distributions")
    for name, frames in model.distributions.items():
        inp.add_distribution(name, frames)

    inp.add_banner("Orientations")
    for name, distribution in plan.orientations.items():
        inp.add_orientation(name, distribution)

    inp.add_banner("Node sets")
    for name, tags in model.node_sets.items():
        inp.add_node_set(name, tags)

    inp.add_banner("Element sets")
    for name, tags in plan.element_sets.items():
        inp.add_element_set(name, tags)

    if plan.surfaces:
        inp.add_banner("Surfaces")
        for surface in plan.surfaces:
            inp.add_lines(surface.to_calculix())

    if plan.springs:
        inp.add_banner("Springs")
        for spring in plan.springs:
            inp.add_lines(spring.to_calculix())

    inp.add_banner("Materials")
    for material in model.materials:
        inp.add_material(material)

    inp.add_banner("Sections")
    for section, orientation in plan.sections:
        inp.add_section(section, orientation)

    if plan.rigid_bodies:
        inp.add_banner("Constraints")
        for body in plan.rigid_bodies:
            inp.add_rigid_body(body)

    if model.surface_interactions:
        inp.add_banner("Surface interactions")
        for interaction in model.surface_interactions:
            inp.add_lines(interaction.to_calculix())

    if plan.contact_pairs:
        inp.add_banner("Contact pairs")
        for pair in plan.contact_pairs:
            inp.add_lines(pair.to_calculix())

    if plan.initial_conditions:
        inp.add_banner("Initial conditions")
        for condition in plan.initial_conditions:
            inp.add_lines(condition.to_calculix())

    inp.add_banner("Steps")
    for resolved in plan.steps:
        inp.add_step(resolved)

    return inp


def write_model(
    model: Model,
    filepath: Optional[Union[str, Path]] = None,
    config: InpFormatConfig = DEFAULT_CONFIG,
) -> ExportResult:
    """Finalize a model and render it, optionally writing it to disk.

    Args:
        model: Model to export
        filepath: Output .inp path; nothing is written when None
        config: Formatting configuration

    Returns:
        ExportResult with the text and any warnings about skipped blocks

    Raises:
        OSError: If the file cannot be written.
    """
    plan = model.finalize()
    inp = build_input(model, plan, config)
    path = inp.write(filepath) if filepath is not None else None
    _logger.debug(
        "Exported model %s: %d nodes, %d elements, %d warnings",
        model.name, model.num_nodes + len(plan.synthetic_nodes),
        model.num_elements, len(plan.warnings),
    )
    return ExportResult(text=inp.text, warnings=list(plan.warnings), plan=plan, path=path)
