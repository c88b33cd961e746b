"""Reader for CalculiX ASCII result files (.frd).

Reads the node block (``2C``), the element block (``3C``) and every result
block (``-4``). Result blocks are grouped by name (``DISP``, ``STRESS``,
``TOSTRAIN``, ...); when a name occurs in several increments the last one
wins. Values are returned as dense arrays aligned with the node order of
the node block, ready for ``calculix_fe.fields.derive_invariants``.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from .elements import ElementType, from_frd_order

_logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]

VALUE_WIDTH = 12  # E12.5 columns


@dataclass
class FrdElement:
    """Element of the result file, nodes in solver order (type may be unknown)."""
    tag: int
    element_type: Optional[ElementType]
    frd_code: int
    nodes: Tuple[int, ...]


@dataclass
class FrdResults:
    nodes: Dict[int, Vector3] = field(default_factory=dict)
    elements: Dict[int, FrdElement] = field(default_factory=dict)
    fields: Dict[str, Dict[str, np.ndarray]] = field(default_factory=dict)

    @property
    def node_tags(self) -> List[int]:
        return list(self.nodes)

    def element_topology(self) -> List[Tuple[Optional[ElementType], Tuple[int, ...]]]:
        """(type, nodes) pairs for skin extraction."""
        return [(e.element_type, e.nodes) for e in self.elements.values()]

    def displacements(self) -> Dict[int, Vector3]:
        """Per-node displacement vectors from the ``DISP`` field."""
        disp = self.fields.get("DISP")
        if disp is None:
            return {}
        d1, d2, d3 = disp["D1"], disp["D2"], disp["D3"]
        return {
            tag: (float(d1[i]), float(d2[i]), float(d3[i]))
            for i, tag in enumerate(self.nodes)
        }


def _fixed_values(line: str, start: int) -> List[float]:
    text = line.rstrip("\r\n")
    return [
        float(text[i:i + VALUE_WIDTH])
        for i in range(start, len(text.rstrip()), VALUE_WIDTH)
    ]


class _FrdParser:
    def __init__(self):
        self.results = FrdResults()
        self.mode: Optional[str] = None
        self.id_width = 10
        self.current: Optional[list] = None  # element under construction
        self.field_name: Optional[str] = None
        self.components: List[str] = []
        self.values: Dict[int, List[float]] = {}
        self.last_tag: Optional[int] = None

    def parse(self, lines):
        for line in lines:
            stripped = line.strip()
            if stripped.startswith("2C"):
                self._set_width(stripped)
                self.mode = "nodes"
            elif stripped.startswith("3C"):
                self.mode = "elements"
            elif stripped.startswith("-4"):
                self.mode = "field"
                self.field_name = stripped.split()[1]
                self.components = []
                self.values = {}
            elif stripped.startswith("-5") and self.mode == "field":
                self.components.append(stripped.split()[1])
            elif stripped.startswith("-3"):
                self._end_block()
            elif stripped.startswith("-1"):
                self._record(line)
            elif stripped.startswith("-2"):
                self._continuation(line)
            elif stripped == "9999":
                break
        self._end_block()
        return self.results

    def _set_width(self, header: str):
        # Last header entry is the format flag: 0 = short (I5), 1 = long (I10)
        tokens = header.split()
        if tokens and tokens[-1] == "0":
            self.id_width = 5

    def _record(self, line: str):
        id_end = 3 + self.id_width
        if self.mode == "nodes":
            tag = int(line[3:id_end])
            x, y, z = _fixed_values(line, id_end)[:3]
            self.results.nodes[tag] = (x, y, z)
        elif self.mode == "elements":
            self._store_element()
            tokens = line.split()
            self.current = [int(tokens[1]), int(tokens[2]), []]
        elif self.mode == "field":
            tag = int(line[3:id_end])
            self.values[tag] = _fixed_values(line, id_end)
            self.last_tag = tag

    def _continuation(self, line: str):
        if self.mode == "elements" and self.current is not None:
            self.current[2].extend(int(t) for t in line.split()[1:])
        elif self.mode == "field" and self.last_tag is not None:
            self.values[self.last_tag].extend(_fixed_values(line, 3 + self.id_width))

    def _store_element(self):
        if self.current is None:
            return
        tag, code, nodes = self.current
        self.current = None
        element_type = ElementType.from_frd(code)
        if element_type is None:
            _logger.debug("Element %d has unknown frd type %d", tag, code)
        elif len(nodes) != element_type.node_count:
            _logger.warning(
                "Element %d: %d nodes for %s, kept in file order",
                tag, len(nodes), element_type.solver_name,
            )
        else:
            nodes = from_frd_order(element_type, nodes)
        self.results.elements[tag] = FrdElement(tag, element_type, code, tuple(nodes))

    def _end_block(self):
        if self.mode == "elements":
            self._store_element()
        elif self.mode == "field" and self.field_name:
            self.results.fields[self.field_name] = self._field_arrays()
        self.mode = None
        self.field_name = None
        self.last_tag = None

    def _field_arrays(self) -> Dict[str, np.ndarray]:
        count = max((len(v) for v in self.values.values()), default=0)
        # Computed components (e.g. ALL) are listed but carry no data columns
        names = self.components[:count]
        index = {tag: i for i, tag in enumerate(self.results.nodes)}
        arrays = {name: np.zeros(len(index)) for name in names}
        for tag, values in self.values.items():
            i = index.get(tag)
            if i is None:
                continue
            for name, value in zip(names, values):
                arrays[name][i] = value
        return arrays


def read_frd(frd_file: Union[str, Path]) -> FrdResults:
    """Read nodes, elements and result fields from an ASCII .frd file.

    Args:
        frd_file: Path to the result file

    Returns:
        FrdResults with field arrays aligned to the node order

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: For malformed numeric columns.
    """
    frd_file = Path(frd_file)
    with open(frd_file, 'r') as f:
        results = _FrdParser().parse(f)
    _logger.debug(
        "Read %s: %d nodes, %d elements, fields %s",
        frd_file, len(results.nodes), len(results.elements), sorted(results.fields),
    )
    return results
