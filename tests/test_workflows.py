import pytest

from calculix_fe.constraints import ReferencePoint
from calculix_fe.elements import ElementType
from calculix_fe.loads import BoundaryCondition, ConcentratedLoad, StepType
from calculix_fe.model import LocalFrame
from calculix_fe.orientations import read_orientation_map
from calculix_fe.sections import BeamSection
from calculix_fe.workflows import build_beam_model, build_solid_model
from calculix_fe.writer import write_model

FRAME_NODES = {1: (0.0, 0.0, 0.0), 2: (0.0, 0.0, 3.0), 3: (4.0, 0.0, 3.0)}
FRAME_ELEMENTS = {1: (1, 2), 2: (2, 3)}

# One quadratic tetrahedron, nodes in gmsh order (mid-nodes 9 and 10 swapped)
TET10_NODES = {
    1: (0.0, 0.0, 0.0), 2: (1.0, 0.0, 0.0), 3: (0.0, 1.0, 0.0), 4: (0.0, 0.0, 1.0),
    5: (0.5, 0.0, 0.0), 6: (0.5, 0.5, 0.0), 7: (0.0, 0.5, 0.0),
    8: (0.0, 0.0, 0.5), 9: (0.0, 0.5, 0.5), 10: (0.5, 0.0, 0.5),
}
TET10_ELEMENTS = {1: tuple(range(1, 11))}


@pytest.fixture
def frame_model():
    return build_beam_model(
        FRAME_NODES,
        FRAME_ELEMENTS,
        node_sets={"support": [1], "tip": [3]},
        loads=[ConcentratedLoad("tip", (0.0, 0.0, -1000.0))],
        boundary_conditions=[BoundaryCondition.fixed("support")],
    )


class TestBeamModel:
    def test_elements(self, frame_model):
        assert frame_model.name == "Model1D"
        assert frame_model.elements[1].element_type is ElementType.B31

    def test_beams_and_columns(self, frame_model):
        assert frame_model.element_sets["beamElements"] == [2]
        assert frame_model.element_sets["columnElements"] == [1]

    def test_distribution(self, frame_model):
        assert sorted(frame_model.distributions["distro"]) == [1, 2]
        assert frame_model.orientations == {"ori": "distro"}

    def test_default_sections(self, frame_model):
        beam = frame_model.sections["beamSection"]
        column = frame_model.sections["columnSection"]
        assert beam.direction == pytest.approx((0.0, 0.0, 1.0))
        assert column.direction == pytest.approx((1.0, 0.0, 0.0))
        assert (beam.width, beam.height) == (0.05, 0.15)
        assert beam.material == "WOODISO"
        assert beam.orientation == "ori"

    def test_export(self, frame_model):
        result = write_model(frame_model)
        assert result.warnings == []
        lines = result.text.splitlines()
        assert "*Element, Type=B31" in lines
        assert ("*Beam Section, Elset=beamElements, Material=WOODISO, "
                "Section=RECT, Orientation=ori") in lines
        assert "tip, 3, -1000.0" in lines

    def test_quadratic_beams(self):
        nodes = dict(FRAME_NODES)
        nodes[4] = (2.0, 0.0, 3.0)
        model = build_beam_model(nodes, {1: (2, 4, 3)})
        assert model.elements[1].element_type is ElementType.B32

    def test_bad_node_count(self):
        with pytest.raises(ValueError):
            build_beam_model(FRAME_NODES, {1: (1, 2, 3, 1)})

    def test_zero_length_beam_skipped(self, caplog):
        nodes = dict(FRAME_NODES)
        nodes[4] = (4.0, 0.0, 3.0)
        elements = dict(FRAME_ELEMENTS)
        elements[3] = (3, 4)
        with caplog.at_level("WARNING", logger="calculix_fe"):
            model = build_beam_model(nodes, elements, element_sets={"ridge": [2, 3]})
        assert "Element 3 has zero length" in caplog.text
        assert sorted(model.elements) == [1, 2]
        assert model.element_sets["ridge"] == [2]
        assert sorted(model.distributions["distro"]) == [1, 2]
        assert write_model(model).warnings == []

    def test_explicit_section_claims_elements(self):
        section = BeamSection("heavy", "ridge", "unused", width=0.1, height=0.3)
        model = build_beam_model(
            FRAME_NODES,
            FRAME_ELEMENTS,
            element_sets={"ridge": [2]},
            sections=[section],
        )
        heavy = model.sections["heavy"]
        assert heavy.material == "WOODISO"
        assert heavy.orientation == "ori"
        assert heavy.width == 0.1
        assert section.material == "unused"
        assert model.element_sets["beamElements"] == []
        # The default beam section now points at an empty set
        assert any("beamElements" in w for w in write_model(model).warnings)

    def test_explicit_section_unknown_set(self, caplog):
        section = BeamSection("heavy", "nowhere", "unused")
        with caplog.at_level("WARNING", logger="calculix_fe"):
            model = build_beam_model(FRAME_NODES, FRAME_ELEMENTS, sections=[section])
        assert "heavy" not in model.sections
        assert "nowhere" in caplog.text

    def test_orthotropic_writes_orientation_map(self, tmp_path):
        path = tmp_path / "orientations.prop"
        model = build_beam_model(
            FRAME_NODES, FRAME_ELEMENTS, orthotropic=True, orientation_map_path=path,
        )
        assert model.materials[0].name == "@WOODORTHO"
        axes = read_orientation_map(path)
        assert sorted(axes) == [1, 2]
        assert axes[2][0] == pytest.approx((1.0, 0.0, 0.0))


class TestSolidModel:
    def test_gmsh_order(self):
        model = build_solid_model(TET10_NODES, TET10_ELEMENTS)
        element = model.elements[1]
        assert element.element_type is ElementType.C3D10
        assert element.nodes == (1, 2, 3, 4, 5, 6, 7, 8, 10, 9)

    def test_solver_order(self):
        model = build_solid_model(TET10_NODES, TET10_ELEMENTS, from_gmsh=False)
        assert model.elements[1].nodes == tuple(range(1, 11))

    def test_material_and_section(self):
        model = build_solid_model(TET10_NODES, TET10_ELEMENTS)
        assert model.materials[0].name == "spruce"
        section = model.sections["section"]
        assert section.elset == "all"
        assert section.orientation is None

    def test_oriented_section(self):
        frames = {1: LocalFrame((0, 0, 0), (0, 0, 1), (0, 1, 0))}
        model = build_solid_model(TET10_NODES, TET10_ELEMENTS, frames=frames)
        assert model.sections["section"].orientation == "ori"
        text = write_model(model).text
        assert "*Solid Section, Elset=all, Material=spruce, Orientation=ori" in text

    def test_coupled_step(self):
        model = build_solid_model(
            TET10_NODES,
            TET10_ELEMENTS,
            node_sets={"wet": [1, 2, 3]},
            boundary_conditions=[BoundaryCondition.temperature("wet", 0.3)],
            coupled=True,
            initial_temperature=0.1,
        )
        assert model.steps[0].step_type is StepType.COUPLED_TEMPERATURE_DISPLACEMENT
        lines = write_model(model).text.splitlines()
        assert "*Coupled temperature-displacement, Steady state" in lines
        assert "wet, 11, 11, 0.3" in lines
        assert "all, 0.1" in lines

    def test_reference_points(self):
        model = build_solid_model(
            TET10_NODES,
            TET10_ELEMENTS,
            node_sets={"top": [4, 8, 9, 10]},
            reference_points=[ReferencePoint("rp", (0.0, 0.0, 2.0), "top")],
        )
        result = write_model(model)
        assert result.warnings == []
        assert "*Rigid body, Nset=top, Ref node=11, Rot node=12" in result.text.splitlines()

    def test_bad_node_count(self):
        with pytest.raises(ValueError):
            build_solid_model(TET10_NODES, {1: (1, 2, 3, 4, 5)})
