"""Loads, boundary conditions, initial conditions and analysis steps.

Each record renders its own data lines. Set names are not checked here;
the writer resolves them against the model and skips what it cannot find.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


Vector3 = Tuple[float, float, float]

# Solver degree-of-freedom numbers
DOF_UX, DOF_UY, DOF_UZ = 1, 2, 3
DOF_TEMPERATURE = 11


class Load(ABC):
    """A load applied within a step."""

    @property
    @abstractmethod
    def set_name(self) -> str:
        """Name of the node or element set the load acts on."""
        pass

    @property
    @abstractmethod
    def is_node_load(self) -> bool:
        pass

    @abstractmethod
    def to_calculix(self) -> List[str]:
        pass


@dataclass
class ConcentratedLoad(Load):
    """Force vector applied to every node of a node set.

    Only non-zero components are written; an all-zero force writes nothing.
    """
    nset: str
    force: Vector3

    @property
    def set_name(self) -> str:
        return self.nset

    @property
    def is_node_load(self) -> bool:
        return True

    def to_calculix(self) -> List[str]:
        lines = [
            f"{self.nset}, {dof}, {value}"
            for dof, value in enumerate(self.force, start=DOF_UX)
            if value != 0.0
        ]
        if not lines:
            return []
        return ["*Cload"] + lines


@dataclass
class GravityLoad(Load):
    """Body acceleration on an element set (``GRAV`` distributed load)."""
    elset: str
    direction: Vector3 = (0.0, 0.0, -1.0)
    magnitude: float = 9.81

    def __post_init__(self):
        x, y, z = (float(c) for c in self.direction)
        length = math.sqrt(x * x + y * y + z * z)
        if length > 0.0:
            x, y, z = x / length, y / length, z / length
        self.direction = (x, y, z)

    @property
    def set_name(self) -> str:
        return self.elset

    @property
    def is_node_load(self) -> bool:
        return False

    def to_calculix(self) -> List[str]:
        dx, dy, dz = self.direction
        return ["*Dload", f"{self.elset}, GRAV, {self.magnitude}, {dx}, {dy}, {dz}"]


@dataclass
class BoundaryCondition:
    """Prescribed value on a range of degrees of freedom of a node set."""
    nset: str
    dof_start: int = DOF_UX
    dof_end: int = DOF_UZ
    value: float = 0.0

    def __post_init__(self):
        if self.dof_end < self.dof_start:
            raise ValueError(
                f"DOF range is reversed: {self.dof_start}..{self.dof_end}"
            )

    @classmethod
    def fixed(cls, nset: str) -> "BoundaryCondition":
        """All translations held at zero."""
        return cls(nset, DOF_UX, DOF_UZ, 0.0)

    @classmethod
    def displacement(cls, nset: str, dof: int, value: float) -> "BoundaryCondition":
        return cls(nset, dof, dof, value)

    @classmethod
    def temperature(cls, nset: str, value: float) -> "BoundaryCondition":
        return cls(nset, DOF_TEMPERATURE, DOF_TEMPERATURE, value)

    def to_calculix(self) -> str:
        return f"{self.nset}, {self.dof_start}, {self.dof_end}, {self.value}"


@dataclass
class InitialTemperature:
    nset: str
    temperature: float

    def to_calculix(self) -> List[str]:
        return [
            "*Initial conditions, Type=Temperature",
            f"{self.nset}, {self.temperature}",
        ]


class StepType(Enum):
    """Analysis procedure of a step."""
    STATIC = "Static"
    COUPLED_TEMPERATURE_DISPLACEMENT = "Coupled temperature-displacement, Steady state"


@dataclass
class Step:
    """One analysis step with its loads, boundary conditions and outputs.

    ``binary_output`` selects ``*Node output``/``*Element output`` over the
    ``*Node file``/``*El file`` pair.
    """
    loads: List[Load] = field(default_factory=list)
    boundary_conditions: List[BoundaryCondition] = field(default_factory=list)
    node_output: List[str] = field(default_factory=lambda: ["U"])
    element_output: List[str] = field(default_factory=lambda: ["S", "E"])
    step_type: StepType = StepType.STATIC
    binary_output: bool = True
    name: Optional[str] = None

    @classmethod
    def coupled(cls, **kwargs) -> "Step":
        """Steady-state coupled temperature-displacement step."""
        return cls(step_type=StepType.COUPLED_TEMPERATURE_DISPLACEMENT, **kwargs)

    @property
    def node_output_keyword(self) -> str:
        return "*Node output" if self.binary_output else "*Node file"

    @property
    def element_output_keyword(self) -> str:
        return "*Element output" if self.binary_output else "*El file"
