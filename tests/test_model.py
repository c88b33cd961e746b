import pytest

from calculix_fe.constraints import (
    ContactPair,
    ReferencePoint,
    Spring,
    Surface,
    SurfaceInteraction,
)
from calculix_fe.elements import ElementType
from calculix_fe.loads import BoundaryCondition, ConcentratedLoad, GravityLoad, Step
from calculix_fe.model import ALL_SET, LocalFrame, Model
from calculix_fe.sections import SolidSection


@pytest.fixture
def tet_model():
    model = Model(name="tet")
    model.add_node(1, (0, 0, 0))
    model.add_node(2, (1, 0, 0))
    model.add_node(3, (0, 1, 0))
    model.add_node(10, (0, 0, 1))
    model.add_element(1, ElementType.C3D4, (1, 2, 3, 10))
    model.add_all_sets()
    model.add_node_set("base", [1, 2, 3])
    model.add_node_set("top", [10])
    return model


class TestModelBuild:
    def test_add_node_and_element(self, tet_model):
        assert tet_model.num_nodes == 4
        assert tet_model.num_elements == 1
        assert tet_model.max_node_tag == 10

    def test_duplicate_node(self, tet_model):
        with pytest.raises(ValueError):
            tet_model.add_node(1, (5, 5, 5))

    def test_duplicate_element(self, tet_model):
        with pytest.raises(ValueError):
            tet_model.add_element(1, ElementType.C3D4, (1, 2, 3, 10))

    def test_wrong_node_count(self, tet_model):
        with pytest.raises(ValueError):
            tet_model.add_element(2, ElementType.C3D4, (1, 2, 3))

    def test_all_sets(self, tet_model):
        assert tet_model.node_sets[ALL_SET] == [1, 2, 3, 10]
        assert tet_model.element_sets[ALL_SET] == [1]

    def test_sets_extend(self, tet_model):
        tet_model.add_node_set("base", [10])
        assert tet_model.node_sets["base"] == [1, 2, 3, 10]

    def test_elements_by_type_first_seen_order(self):
        model = Model()
        for tag, xyz in enumerate([(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1)], start=1):
            model.add_node(tag, xyz)
        model.add_element(1, ElementType.B31, (1, 2))
        model.add_element(2, ElementType.C3D4, (1, 2, 3, 4))
        model.add_element(3, ElementType.B31, (2, 3))
        groups = model.elements_by_type()
        assert list(groups) == [ElementType.B31, ElementType.C3D4]
        assert [e.tag for e in groups[ElementType.B31]] == [1, 3]

    def test_reference_point_adds_rigid_body(self, tet_model):
        tet_model.add_reference_point(ReferencePoint("rp", (0, 0, 2), "top"))
        assert len(tet_model.constraints) == 1
        assert tet_model.constraints[0].reference_point == "rp"


class TestFinalize:
    def test_reference_nodes_after_max_tag(self, tet_model):
        tet_model.add_reference_point(ReferencePoint("rp1", (0, 0, 2), "top"))
        tet_model.add_reference_point(ReferencePoint("rp2", (1, 1, 1), "base"))
        plan = tet_model.finalize()
        assert plan.reference_nodes == {"rp1": (11, 12), "rp2": (13, 14)}
        assert plan.synthetic_nodes[11] == (0.0, 0.0, 2.0)
        assert [b.ref_node for b in plan.rigid_bodies] == [11, 13]

    def test_finalize_does_not_mutate(self, tet_model):
        tet_model.add_reference_point(ReferencePoint("rp", (0, 0, 2), "top"))
        tet_model.finalize()
        plan = tet_model.finalize()
        assert tet_model.num_nodes == 4
        assert plan.reference_nodes["rp"] == (11, 12)
        assert not plan.warnings

    def test_missing_node_set_warns(self, tet_model):
        step = Step(
            loads=[ConcentratedLoad("nowhere", (0.0, 0.0, -1.0))],
            boundary_conditions=[BoundaryCondition.fixed("base")],
        )
        tet_model.add_step(step)
        plan = tet_model.finalize()
        assert plan.steps[0].loads == []
        assert len(plan.steps[0].boundary_conditions) == 1
        assert any("'nowhere' not found" in w for w in plan.warnings)

    def test_empty_set_is_unresolved(self, tet_model):
        tet_model.add_node_set("empty", [])
        tet_model.add_step(Step(boundary_conditions=[BoundaryCondition.fixed("empty")]))
        plan = tet_model.finalize()
        assert plan.steps[0].boundary_conditions == []
        assert any("'empty' is empty" in w for w in plan.warnings)

    def test_gravity_resolves_element_set(self, tet_model):
        tet_model.add_step(Step(loads=[GravityLoad(ALL_SET)]))
        plan = tet_model.finalize()
        assert len(plan.steps[0].loads) == 1

    def test_missing_reference_point_node_set(self, tet_model):
        tet_model.add_reference_point(ReferencePoint("rp", (0, 0, 2), "missing"))
        plan = tet_model.finalize()
        assert plan.rigid_bodies == []
        # Tags are still reserved for the point
        assert plan.reference_nodes["rp"] == (11, 12)
        assert len(plan.warnings) == 1

    def test_section_with_missing_orientation(self, tet_model):
        tet_model.add_section(SolidSection("section", ALL_SET, "spruce", "ori"))
        plan = tet_model.finalize()
        section, orientation = plan.sections[0]
        assert section.name == "section"
        assert orientation is None
        assert any("orientation 'ori'" in w for w in plan.warnings)

    def test_orientation_resolves_distribution(self, tet_model):
        frame = LocalFrame((0, 0, 0), (1, 0, 0), (0, 1, 0))
        tet_model.add_distribution("distro", {1: frame}, orientation="ori")
        tet_model.orientations["bad"] = "missing"
        tet_model.add_section(SolidSection("section", ALL_SET, "spruce", "ori"))
        plan = tet_model.finalize()
        assert plan.orientations == {"ori": "distro"}
        assert plan.sections[0][1] == "ori"
        assert len(plan.warnings) == 1

    def test_section_with_missing_element_set(self, tet_model):
        tet_model.add_section(SolidSection("section", "nothing", "spruce"))
        plan = tet_model.finalize()
        assert plan.sections == []

    def test_surface_expands_to_element_sets(self, tet_model):
        tet_model.surfaces.append(Surface("contact", {1: [1], 3: []}))
        plan = tet_model.finalize()
        assert plan.element_sets["contact_S1"] == [1]
        assert "contact_S3" not in plan.element_sets
        assert "contact_S1" not in tet_model.element_sets
        assert plan.surfaces[0].faces == {1: [1]}

    def test_contact_pair_needs_surfaces_and_interaction(self, tet_model):
        tet_model.surfaces.append(Surface("a", {1: [1]}))
        tet_model.surfaces.append(Surface("b", {2: [1]}))
        tet_model.surface_interactions.append(SurfaceInteraction("tied"))
        tet_model.contact_pairs.append(ContactPair("tied", "a", "b"))
        tet_model.contact_pairs.append(ContactPair("tied", "a", "c"))
        tet_model.contact_pairs.append(ContactPair("other", "a", "b"))
        plan = tet_model.finalize()
        assert plan.contact_pairs == [ContactPair("tied", "a", "b")]
        assert len(plan.warnings) == 2

    def test_spring_needs_element_set(self, tet_model):
        tet_model.springs.append(Spring(ALL_SET, 1000.0))
        tet_model.springs.append(Spring("missing", 1000.0))
        plan = tet_model.finalize()
        assert [s.elset for s in plan.springs] == [ALL_SET]

    def test_missing_connectivity_warns(self, tet_model):
        tet_model.add_element(2, ElementType.C3D4, (1, 2, 3, 99))
        plan = tet_model.finalize()
        assert any("missing nodes [99]" in w for w in plan.warnings)
