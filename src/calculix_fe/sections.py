"""Section assignments: material plus geometric properties for an element set."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple


Vector3 = Tuple[float, float, float]


@dataclass
class Section(ABC):
    """Common fields of all section types.

    ``elset`` and ``orientation`` are names resolved against the model at
    export time.
    """
    name: str
    elset: str
    material: str
    orientation: Optional[str] = None

    @property
    @abstractmethod
    def keyword(self) -> str:
        pass

    def _options(self) -> List[str]:
        return [f"Elset={self.elset}", f"Material={self.material}"]

    def header(self, orientation: Optional[str]) -> str:
        options = self._options()
        if orientation:
            options.append(f"Orientation={orientation}")
        options.extend(self._trailing_options())
        return ", ".join([self.keyword] + options)

    def _trailing_options(self) -> List[str]:
        return []

    def data_lines(self) -> List[str]:
        return []

    def to_calculix(self, orientation: Optional[str] = None) -> List[str]:
        """Render the section.

        Args:
            orientation: Resolved orientation name, or None to omit the option.
                The writer passes ``self.orientation`` only when it exists.
        """
        return [self.header(orientation)] + self.data_lines()


@dataclass
class SolidSection(Section):
    @property
    def keyword(self) -> str:
        return "*Solid Section"


@dataclass
class BeamSection(Section):
    """Rectangular beam cross-section.

    ``direction`` is the approximate local 1-axis of the cross-section
    (the second data line of ``*Beam Section``).
    """
    width: float = 0.05
    height: float = 0.15
    direction: Vector3 = (0.0, 0.0, 1.0)
    shape: str = "RECT"

    @property
    def keyword(self) -> str:
        return "*Beam Section"

    def _options(self) -> List[str]:
        return super()._options() + [f"Section={self.shape}"]

    def data_lines(self) -> List[str]:
        dx, dy, dz = self.direction
        return [f"{self.height}, {self.width}", f"{dx}, {dy}, {dz}"]


@dataclass
class ShellSection(Section):
    thickness: float = 0.01
    offset: Optional[float] = None

    @property
    def keyword(self) -> str:
        return "*Shell Section"

    def _trailing_options(self) -> List[str]:
        if self.offset is None:
            return []
        return [f"Offset={self.offset}"]

    def data_lines(self) -> List[str]:
        return [f"{self.thickness}"]
