"""Material definitions for CalculiX input files.

A ``Material`` is a name plus an ordered list of property records. Each
property knows how to render its own keyword block, including the number
of values per data line. Arity is checked when the property is built, so
a malformed material never reaches the writer.

Example::

    wood = Material("WOODISO", [Elastic([9700e6, 0.4]), Density(480.0)])
    lines = wood.to_calculix()
    # ['*Material, Name=WOODISO', '*Elastic', '9700000000.0, 0.4',
    #  '*Density', '480.0']
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .config import InpFormatConfig, DEFAULT_CONFIG


def _join(values: Sequence[float]) -> str:
    return ", ".join(f"{v}" for v in values)


def _require_arity(name: str, values: Sequence[float], *counts: int) -> List[float]:
    values = [float(v) for v in values]
    if len(values) not in counts:
        expected = " or ".join(str(c) for c in counts)
        raise ValueError(f"{name} property needs {expected} values, got {len(values)}")
    return values


class MaterialProperty(ABC):
    """A single keyword block inside ``*Material``."""

    @abstractmethod
    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        """Generate the keyword and data lines for this property."""
        pass


@dataclass
class Elastic(MaterialProperty):
    """Isotropic linear elasticity: Young's modulus and Poisson's ratio."""
    values: Sequence[float]

    def __post_init__(self):
        self.values = _require_arity("Elastic", self.values, 2)

    @property
    def youngs_modulus(self) -> float:
        return self.values[0]

    @property
    def poisson_ratio(self) -> float:
        return self.values[1]

    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        return ["*Elastic", _join(self.values)]


@dataclass
class EngineeringConstants(MaterialProperty):
    """Orthotropic elasticity as engineering constants.

    Value order: E1, E2, E3, nu12, nu13, nu23, G12, G13, G23. The ninth
    value goes on a continuation line.
    """
    values: Sequence[float]

    def __post_init__(self):
        self.values = _require_arity("Engineering Constants", self.values, 9)

    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        return [
            "*Elastic, Type=Engineering Constants",
            _join(self.values[:8]) + ",",
            _join(self.values[8:]),
        ]


@dataclass
class UserMaterial(MaterialProperty):
    """Constants handed to a user material subroutine (UMAT)."""
    constants: Sequence[float]

    def __post_init__(self):
        self.constants = [float(c) for c in self.constants]
        if not self.constants:
            raise ValueError("User material needs at least one constant")

    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        width = config.user_constants_per_line
        lines = [f"*User material, Constants={len(self.constants)}"]
        for start in range(0, len(self.constants), width):
            lines.append(_join(self.constants[start:start + width]))
        return lines


@dataclass
class Density(MaterialProperty):
    value: float

    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        return ["*Density", f"{float(self.value)}"]


@dataclass
class Expansion(MaterialProperty):
    """Thermal (or hygral) expansion coefficients.

    One coefficient gives an isotropic expansion, three give one per
    material axis.
    """
    coefficients: Sequence[float]
    zero: Optional[float] = None  # Reference temperature, config default if None

    def __post_init__(self):
        self.coefficients = _require_arity("Expansion", self.coefficients, 1, 3)

    @property
    def expansion_type(self) -> str:
        return "ORTHO" if len(self.coefficients) > 1 else "ISO"

    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        zero = config.expansion_zero if self.zero is None else self.zero
        return [
            f"*Expansion, Zero={zero:g}, Type={self.expansion_type}",
            f"{_join(self.coefficients)}, {zero:g}",
        ]


@dataclass
class Material:
    """Named material with ordered property blocks."""
    name: str
    properties: List[MaterialProperty] = field(default_factory=list)

    def add(self, prop: MaterialProperty) -> "Material":
        self.properties.append(prop)
        return self

    def to_calculix(self, config: InpFormatConfig = DEFAULT_CONFIG) -> List[str]:
        lines = [f"*Material, Name={self.name}"]
        for prop in self.properties:
            lines.extend(prop.to_calculix(config))
        return lines


# =============================================================================
# Wood presets (SI units: Pa, kg/m3)
# =============================================================================

# E_L, E_R, E_T, nu_LR, nu_LT, nu_RT, G_LR, G_LT, G_RT
SPRUCE_ENGINEERING_CONSTANTS = (
    9700e6, 400e6, 220e6,
    0.35, 0.6, 0.55,
    400e6, 250e6, 25e6,
)


def wood_isotropic(name: str = "WOODISO") -> Material:
    """Isotropic stand-in for softwood along the grain."""
    return Material(name, [Elastic([9700e6, 0.4]), Density(480.0)])


def wood_orthotropic_umat(name: str = "@WOODORTHO") -> Material:
    """Orthotropic softwood evaluated by a user material routine.

    The routine reads per-element axes from the orientation map written by
    ``calculix_fe.orientations.write_orientation_map``.
    """
    return Material(name, [UserMaterial(SPRUCE_ENGINEERING_CONSTANTS), Density(480.0)])


def spruce(name: str = "spruce") -> Material:
    """Orthotropic spruce with moisture expansion per material axis."""
    return Material(name, [
        EngineeringConstants(SPRUCE_ENGINEERING_CONSTANTS),
        Density(450.0),
        Expansion([0.0, 0.003, 0.007]),
    ])


def get_default_material() -> Material:
    """Get the default material used by the beam workflow."""
    return wood_isotropic()
