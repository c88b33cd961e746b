"""Reader for the geometry part of CalculiX input files.

Only the blocks needed to rebuild geometry and topology are read: nodes,
elements, node sets and element sets, plus ``*Include`` files (resolved
relative to the including file). Any other keyword ends the current block
and its data lines are ignored. Materials, sections and steps are not
read back.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from .elements import ElementType
from .model import Model

_logger = logging.getLogger(__name__)


class InpReadError(ValueError):
    """Raised for data lines that cannot be parsed."""

    def __init__(self, path: Path, line_number: int, message: str):
        super().__init__(f"{path}:{line_number}: {message}")
        self.path = path
        self.line_number = line_number


def parse_keyword(line: str) -> tuple[str, Dict[str, str]]:
    """Split a keyword line into its upper-case keyword and options.

    ``*Element, Type=C3D4, Elset=Eall`` gives
    ``("ELEMENT", {"TYPE": "C3D4", "ELSET": "Eall"})``. Flag options without
    a value map to an empty string.
    """
    parts = [p.strip() for p in line.lstrip("*").split(",")]
    keyword = parts[0].upper()
    options = {}
    for part in parts[1:]:
        if not part:
            continue
        key, _, value = part.partition("=")
        options[key.strip().upper()] = value.strip().strip('"')
    return keyword, options


def split_data(line: str) -> List[str]:
    """Split a data line on commas, dropping empty entries."""
    return [token.strip() for token in line.split(",") if token.strip()]


class _InpReader:
    """Line-by-line state machine filling a model."""

    def __init__(self, model: Model):
        self.model = model
        self.mode: Optional[str] = None
        self.set_name: Optional[str] = None
        self.generate = False
        self.element_type: Optional[ElementType] = None
        self.element_elset: Optional[str] = None
        self.node_nset: Optional[str] = None
        self.pending: List[str] = []

    def read(self, path: Path):
        path = Path(path)
        with open(path, 'r') as f:
            for line_number, raw in enumerate(f, start=1):
                line = raw.strip()
                if not line or line.startswith("**"):
                    continue
                if line.startswith("*"):
                    self._flush_element(path, line_number)
                    self._start_block(path, line_number, line)
                    continue
                self._read_data(path, line_number, line)
        self._flush_element(path, "EOF")
        self.mode = None

    def _start_block(self, path: Path, line_number: int, line: str):
        keyword, options = parse_keyword(line)
        self.mode = None

        if keyword == "NODE":
            self.mode = "node"
            self.node_nset = options.get("NSET")
        elif keyword == "ELEMENT":
            type_name = options.get("TYPE", "")
            try:
                self.element_type = ElementType.from_solver_name(type_name)
            except ValueError:
                _logger.warning("%s:%d: unsupported element type %r, block skipped",
                                path, line_number, type_name)
                return
            self.mode = "element"
            self.element_elset = options.get("ELSET")
        elif keyword in ("NSET", "ELSET"):
            self.set_name = options.get(keyword)
            if not self.set_name:
                raise InpReadError(path, line_number, f"*{keyword} without a name")
            self.mode = keyword.lower()
            self.generate = "GENERATE" in options
            sets = self.model.node_sets if keyword == "NSET" else self.model.element_sets
            sets.setdefault(self.set_name, [])
        elif keyword == "INCLUDE":
            included = options.get("INPUT")
            if not included:
                raise InpReadError(path, line_number, "*Include without Input=")
            self.read(path.parent / included)

    def _read_data(self, path: Path, line_number: int, line: str):
        if self.mode is None:
            return
        tokens = split_data(line)
        try:
            if self.mode == "node":
                self._read_node(tokens)
            elif self.mode == "element":
                # Connectivity may continue on the next line after a trailing comma
                self.pending.extend(tokens)
                complete = len(self.pending) > self.element_type.node_count
                if complete or not line.endswith(","):
                    self._flush_element(path, line_number)
            elif self.mode == "nset":
                self._read_set(self.model.node_sets, tokens)
            elif self.mode == "elset":
                self._read_set(self.model.element_sets, tokens)
        except ValueError as exc:
            raise InpReadError(path, line_number, str(exc)) from exc

    def _read_node(self, tokens: List[str]):
        tag = int(tokens[0])
        coords = [float(t) for t in tokens[1:4]]
        coords += [0.0] * (3 - len(coords))
        self.model.add_node(tag, coords)
        if self.node_nset:
            self.model.add_node_set(self.node_nset, [tag])

    def _flush_element(self, path: Path, line_number):
        if not self.pending:
            return
        tokens, self.pending = self.pending, []
        try:
            values = [int(t) for t in tokens]
            element = self.model.add_element(values[0], self.element_type, values[1:])
        except ValueError as exc:
            raise InpReadError(path, line_number, str(exc)) from exc
        if self.element_elset:
            self.model.add_element_set(self.element_elset, [element.tag])

    def _read_set(self, sets: Dict[str, List[int]], tokens: List[str]):
        members = sets[self.set_name]
        if self.generate:
            start, end = int(tokens[0]), int(tokens[1])
            step = int(tokens[2]) if len(tokens) > 2 else 1
            members.extend(range(start, end + 1, step))
            return
        for token in tokens:
            if token.lstrip("-").isdigit():
                members.append(int(token))
            elif token in sets:
                members.extend(sets[token])
            else:
                _logger.debug("Set %s: unknown member %r ignored", self.set_name, token)


def read_inp(filepath: Union[str, Path], model: Optional[Model] = None) -> Model:
    """Read nodes, elements and sets from a CalculiX input file.

    Args:
        filepath: Path to the .inp file
        model: Model to fill; a new one named after the file if None

    Returns:
        The filled model

    Raises:
        FileNotFoundError: If the file (or an included file) does not exist.
        InpReadError: For malformed data lines.
    """
    filepath = Path(filepath)
    if model is None:
        model = Model(name=filepath.stem)
    _InpReader(model).read(filepath)
    _logger.debug("Read %s: %d nodes, %d elements",
                  filepath, model.num_nodes, model.num_elements)
    return model
