"""Import of gmsh meshes into a ``Model``.

gmsh numbers the mid-edge nodes of quadratic elements differently from
CalculiX; every element is permuted with ``from_gmsh_order`` on the way in
(for the 10-node tetrahedron this swaps the last two nodes).
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import gmsh

from .elements import ElementType, from_gmsh_order
from .model import ALL_SET, Model

_logger = logging.getLogger(__name__)


def convert_gmsh_nodes(node_tags: Sequence[int], coords: Sequence[float]) -> Dict[int, Tuple[float, float, float]]:
    """Convert gmsh's flat coordinate array to tag -> (x, y, z)."""
    if len(coords) != 3 * len(node_tags):
        raise ValueError(
            f"Expected {3 * len(node_tags)} coordinates, got {len(coords)}"
        )
    nodes = {}
    for i, tag in enumerate(node_tags):
        nodes[int(tag)] = (
            float(coords[3*i]),
            float(coords[3*i + 1]),
            float(coords[3*i + 2]),
        )
    return nodes


def convert_gmsh_elements(
    element_types: Sequence[int],
    element_tags: Sequence[Sequence[int]],
    node_tags: Sequence[Sequence[int]],
) -> List[Tuple[int, ElementType, Tuple[int, ...]]]:
    """Convert the arrays returned by ``gmsh.model.mesh.getElements``.

    Args:
        element_types: gmsh type code per block
        element_tags: Element tags per block
        node_tags: Flat node tags per block, in gmsh node order

    Returns:
        List of (tag, element type, nodes in solver order); blocks of
        unsupported types are skipped with a warning
    """
    elements = []
    for code, tags, flat in zip(element_types, element_tags, node_tags):
        try:
            element_type = ElementType.from_gmsh(int(code))
        except ValueError:
            _logger.warning("Skipping %d elements of unsupported gmsh type %d", len(tags), code)
            continue
        n = element_type.node_count
        if len(flat) != n * len(tags):
            raise ValueError(
                f"gmsh type {code}: {len(flat)} node tags for {len(tags)} elements"
            )
        for i, tag in enumerate(tags):
            nodes = [int(t) for t in flat[i*n:(i + 1)*n]]
            elements.append((int(tag), element_type, from_gmsh_order(element_type, nodes)))
    return elements


def model_from_gmsh(name: Optional[str] = None, dim: int = 3) -> Model:
    """Build a model from the mesh currently loaded in gmsh.

    gmsh must be initialized and hold a generated mesh. Elements of
    dimension ``dim`` are imported, and the ``all`` sets are filled.
    """
    if name is None:
        name = gmsh.model.getCurrent()
    model = Model(name=name)

    node_tags, coords, _ = gmsh.model.mesh.getNodes()
    for tag, xyz in convert_gmsh_nodes(node_tags, coords).items():
        model.add_node(tag, xyz)

    element_types, element_tags, element_nodes = gmsh.model.mesh.getElements(dim=dim)
    for tag, element_type, nodes in convert_gmsh_elements(element_types, element_tags, element_nodes):
        model.add_element(tag, element_type, nodes)

    model.add_all_sets(ALL_SET)
    _logger.debug("Imported %d nodes, %d elements from gmsh", model.num_nodes, model.num_elements)
    return model


def read_msh(msh_file: Union[str, Path], dim: int = 3) -> Model:
    """Read a .msh file into a model.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    msh_file = Path(msh_file)
    if not msh_file.exists():
        raise FileNotFoundError(msh_file)

    gmsh.initialize()
    try:
        gmsh.option.setNumber("General.Terminal", 0)
        gmsh.open(str(msh_file))
        return model_from_gmsh(name=msh_file.stem, dim=dim)
    finally:
        gmsh.finalize()
