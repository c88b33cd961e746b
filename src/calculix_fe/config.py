"""Central configuration for CalculiX input generation.

The wrap widths and the coordinate precision are part of the solver's
input grammar, not cosmetics: CalculiX rejects data lines with more than
16 entries and the 6-decimal fixed-point coordinates are what the reader
round-trips against.

Everything else (unit label, reference temperature, tolerances used by
the modeling workflows) can be overridden by passing a custom
``InpFormatConfig`` to the writer or the workflow builders.
"""

from dataclasses import dataclass


# =============================================================================
# Solver format limits
# =============================================================================

# Maximum entries on one data line accepted by the CalculiX parser
SOLVER_LINE_ENTRIES: int = 16

# Fixed-point digits for node coordinates
COORDINATE_PRECISION: int = 6


@dataclass(frozen=True)
class InpFormatConfig:
    """Formatting and modeling defaults for .inp export.

    Wrap widths follow the solver limits above. The tolerances are used by
    the 1D workflow to decide whether an element is a column and whether a
    requested up-vector is usable for a local frame.
    """

    coordinate_precision: int = COORDINATE_PRECISION
    set_entries_per_line: int = SOLVER_LINE_ENTRIES
    element_entries_per_line: int = SOLVER_LINE_ENTRIES
    user_constants_per_line: int = 8

    unit_system: str = "M_KG_S_C"
    output_frequency: int = 1
    expansion_zero: float = 20.0   # Reference temperature for *Expansion

    vertical_tolerance: float = 0.9999  # |axis . Z| above this -> column
    parallel_tolerance: float = 1e-6    # up-vector rejected when nearly parallel

    @property
    def coordinate_format(self) -> str:
        """Format spec used for node coordinates, e.g. ``.6f``."""
        return f".{self.coordinate_precision}f"

    def format_coordinate(self, value: float) -> str:
        return format(value, self.coordinate_format)

    def __repr__(self) -> str:
        return (
            f"InpFormatConfig(precision={self.coordinate_precision}, "
            f"set_wrap={self.set_entries_per_line}, "
            f"constants_wrap={self.user_constants_per_line}, "
            f"units={self.unit_system})"
        )


# Default configuration instance
DEFAULT_CONFIG = InpFormatConfig()
