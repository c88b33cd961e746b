"""FE model assembly and result post-processing for CalculiX.

This package provides:
- **Model**: Nodes, typed elements, sets, materials, sections, loads and steps
- **Export**: Deterministic .inp writer and a companion reader
- **Results**: .frd reader, von Mises and principal invariants
- **Visualization**: Skin extraction, colour gradients and trimesh export

Workflow
--------
    from calculix_fe import Model, ElementType, write_model

    model = Model(name="cube")
    model.add_node(1, (0, 0, 0))
    ...
    model.add_element(1, ElementType.C3D4, (1, 2, 3, 4))
    result = write_model(model, "cube.inp")
    for warning in result.warnings:
        print(warning)

Results
-------
    from calculix_fe import read_frd, derive_invariants, extract_skin, export_skin

    results = read_frd("cube.frd")
    von_mises = derive_invariants(results.fields)["STRESS"]["VONMISES"]
    skin = extract_skin(model)

    # Field arrays follow the .frd node block, skin vertices the model's
    # nodes: pick values by node tag
    row = {tag: i for i, tag in enumerate(results.node_tags)}
    values = von_mises[[row[int(tag)] for tag in skin.node_tags]]
    export_skin(skin, "cube.glb", values=values)

``SkinMesh.take`` is the shortcut when the field arrays are already
aligned with the model's node order.

The gmsh bridge lives in ``calculix_fe.gmsh_io`` and is imported on demand.
"""

# =============================================================================
# Configuration
# =============================================================================
from .config import (
    InpFormatConfig,
    DEFAULT_CONFIG,
)

# =============================================================================
# Elements and face topology
# =============================================================================
from .elements import (
    ElementTopologyError,
    ElementKind,
    ElementType,
    Element,
    BEAM_PRISM_FACES,
    element_faces,
    visualization_faces,
    from_gmsh_order,
    from_frd_order,
)

# =============================================================================
# Data model
# =============================================================================
from .materials import (
    Material,
    MaterialProperty,
    Elastic,
    EngineeringConstants,
    UserMaterial,
    Density,
    Expansion,
    wood_isotropic,
    wood_orthotropic_umat,
    spruce,
    get_default_material,
)
from .sections import (
    Section,
    SolidSection,
    BeamSection,
    ShellSection,
)
from .loads import (
    Load,
    ConcentratedLoad,
    GravityLoad,
    BoundaryCondition,
    InitialTemperature,
    StepType,
    Step,
)
from .constraints import (
    ReferencePoint,
    RigidBody,
    Surface,
    SurfaceInteraction,
    ContactPair,
    Spring,
)
from .model import (
    ALL_SET,
    LocalFrame,
    Model,
    ExportPlan,
)

# =============================================================================
# Input files
# =============================================================================
from .writer import (
    CalculiXInput,
    ExportResult,
    build_input,
    write_model,
)
from .reader import (
    InpReadError,
    read_inp,
)

# =============================================================================
# Results and visualization
# =============================================================================
from .frd import (
    FrdResults,
    read_frd,
)
from .fields import (
    von_mises,
    von_mises_array,
    principal_values,
    principal_values_array,
    signed_max_abs,
    solve_cubic,
    derive_invariants,
)
from .skin import (
    NonManifoldMeshError,
    FaceBucket,
    SkinFaces,
    SkinMesh,
    extract_skin_faces,
    compact_skin,
    extract_skin,
)
from .visualization import (
    Gradient,
    apply_displacements,
    to_trimesh,
    export_skin,
)

# =============================================================================
# Orientations and workflows
# =============================================================================
from .orientations import (
    line_element_frame,
    is_vertical,
    write_orientation_map,
    read_orientation_map,
)
from .workflows import (
    build_beam_model,
    build_solid_model,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "InpFormatConfig",
    "DEFAULT_CONFIG",
    # Elements
    "ElementTopologyError",
    "ElementKind",
    "ElementType",
    "Element",
    "BEAM_PRISM_FACES",
    "element_faces",
    "visualization_faces",
    "from_gmsh_order",
    "from_frd_order",
    # Data model
    "Material",
    "MaterialProperty",
    "Elastic",
    "EngineeringConstants",
    "UserMaterial",
    "Density",
    "Expansion",
    "wood_isotropic",
    "wood_orthotropic_umat",
    "spruce",
    "get_default_material",
    "Section",
    "SolidSection",
    "BeamSection",
    "ShellSection",
    "Load",
    "ConcentratedLoad",
    "GravityLoad",
    "BoundaryCondition",
    "InitialTemperature",
    "StepType",
    "Step",
    "ReferencePoint",
    "RigidBody",
    "Surface",
    "SurfaceInteraction",
    "ContactPair",
    "Spring",
    "ALL_SET",
    "LocalFrame",
    "Model",
    "ExportPlan",
    # Input files
    "CalculiXInput",
    "ExportResult",
    "build_input",
    "write_model",
    "InpReadError",
    "read_inp",
    # Results
    "FrdResults",
    "read_frd",
    "von_mises",
    "von_mises_array",
    "principal_values",
    "principal_values_array",
    "signed_max_abs",
    "solve_cubic",
    "derive_invariants",
    "NonManifoldMeshError",
    "FaceBucket",
    "SkinFaces",
    "SkinMesh",
    "extract_skin_faces",
    "compact_skin",
    "extract_skin",
    "Gradient",
    "apply_displacements",
    "to_trimesh",
    "export_skin",
    # Orientations and workflows
    "line_element_frame",
    "is_vertical",
    "write_orientation_map",
    "read_orientation_map",
    "build_beam_model",
    "build_solid_model",
]
