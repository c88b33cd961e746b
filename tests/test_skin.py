import numpy as np
import pytest

from calculix_fe.elements import ElementType
from calculix_fe.model import Model
from calculix_fe.skin import (
    FaceBucket,
    NonManifoldMeshError,
    compact_skin,
    extract_skin,
    extract_skin_faces,
    model_skin_faces,
    triangulate_face,
)

TET = ElementType.C3D4


@pytest.fixture
def two_hex_model():
    model = Model(name="two_hexes")
    tag = 1
    for z in (0, 1):
        for y in (0, 1):
            for x in (0, 1, 2):
                model.add_node(tag, (x, y, z))
                tag += 1
    # Node tags: bottom layer 1-6, top layer 7-12, three nodes per row
    model.add_element(1, ElementType.C3D8, (1, 2, 5, 4, 7, 8, 11, 10))
    model.add_element(2, ElementType.C3D8, (2, 3, 6, 5, 8, 9, 12, 11))
    return model


class TestFaceBucket:
    def test_rotation_and_reversal_share_a_bucket(self):
        bucket = FaceBucket()
        bucket.add((1, 2, 3, 4))
        assert bucket.count((2, 3, 4, 1)) == 1
        assert bucket.count((4, 3, 2, 1)) == 1
        assert bucket.count((1, 2, 3, 5)) == 0

    def test_first_winding_is_kept(self):
        bucket = FaceBucket()
        bucket.add((1, 2, 3))
        bucket.add((3, 2, 1))
        assert bucket.shared_faces() == [(1, 2, 3)]
        assert bucket.unique_faces() == []

    def test_multiplicity(self):
        bucket = FaceBucket()
        assert bucket.add((1, 2, 3)) == 1
        assert bucket.add((2, 3, 1)) == 2
        assert bucket.add((3, 1, 2)) == 3
        assert bucket.non_manifold_faces() == [(1, 2, 3)]
        assert bucket.multiplicities() == {3: 1}

    def test_empty_face_ignored(self):
        bucket = FaceBucket()
        assert bucket.add(()) == 0
        assert len(bucket) == 0
        assert bucket.total == 0

    def test_unique_faces_in_insertion_order(self):
        bucket = FaceBucket()
        bucket.extend([(5, 6, 7), (1, 2, 3), (7, 6, 5)])
        assert bucket.unique_faces() == [(1, 2, 3)]
        assert len(bucket) == 2
        assert bucket.total == 3


class TestExtractSkinFaces:
    def test_single_tet(self):
        skin = extract_skin_faces([(TET, (1, 2, 3, 4))])
        assert len(skin.faces) == 4
        assert skin.total_faces == 4
        assert skin.is_manifold

    def test_two_tets_share_one_face(self):
        skin = extract_skin_faces([(TET, (1, 2, 3, 4)), (TET, (1, 3, 2, 5))])
        assert skin.total_faces == 8
        assert len(skin.faces) == 6
        assert all(set(face) != {1, 2, 3} for face in skin.faces)

    def test_skin_keeps_element_winding(self):
        skin = extract_skin_faces([(TET, (1, 2, 3, 4)), (TET, (1, 3, 2, 5))])
        assert (1, 2, 4) in skin.faces
        assert (1, 3, 5) in skin.faces

    def test_non_manifold_is_reported(self, caplog):
        elements = [(TET, (1, 2, 3, 4)), (TET, (1, 3, 2, 5)), (TET, (1, 2, 3, 6))]
        with caplog.at_level("WARNING", logger="calculix_fe"):
            skin = extract_skin_faces(elements)
        assert not skin.is_manifold
        assert skin.non_manifold == [(1, 3, 2)]
        assert "Non-manifold" in caplog.text

    def test_non_manifold_strict(self):
        elements = [(TET, (1, 2, 3, 4)), (TET, (1, 3, 2, 5)), (TET, (1, 2, 3, 6))]
        with pytest.raises(NonManifoldMeshError) as info:
            extract_skin_faces(elements, strict=True)
        assert info.value.faces == [(1, 3, 2)]

    def test_line_and_unknown_elements_skipped(self):
        skin = extract_skin_faces([(ElementType.B31, (1, 2)), (None, (1, 2, 3))])
        assert skin.faces == []
        assert skin.total_faces == 0

    def test_two_hexes(self, two_hex_model):
        skin = model_skin_faces(two_hex_model)
        assert skin.total_faces == 12
        assert len(skin.faces) == 10
        assert all(set(face) != {2, 5, 8, 11} for face in skin.faces)

    def test_quadratic_tets(self):
        first = (1, 2, 3, 4, 11, 12, 13, 14, 15, 16)
        # Shares the face (1, 2, 3) with mid-edge nodes 11, 12, 13
        second = (1, 3, 2, 5, 13, 12, 11, 17, 18, 19)
        skin = extract_skin_faces([(ElementType.C3D10, first), (ElementType.C3D10, second)])
        assert len(skin.faces) == 6
        assert all(len(face) == 6 for face in skin.faces)


class TestTriangulate:
    def test_triangle(self):
        assert triangulate_face((1, 2, 3)) == [(1, 2, 3)]

    def test_quad(self):
        assert triangulate_face((1, 2, 3, 4)) == [(1, 2, 3), (1, 3, 4)]

    def test_quadratic_triangle(self):
        triangles = triangulate_face((1, 2, 3, 4, 5, 6))
        assert len(triangles) == 4
        assert {n for tri in triangles for n in tri} == set(range(1, 7))

    def test_quadratic_quad(self):
        triangles = triangulate_face(tuple(range(1, 9)))
        assert len(triangles) == 6
        assert {n for tri in triangles for n in tri} == set(range(1, 9))

    def test_polygon_fan(self):
        assert triangulate_face((1, 2, 3, 4, 5)) == [(1, 2, 3), (1, 3, 4), (1, 4, 5)]


class TestCompactSkin:
    def test_dense_remap(self):
        nodes = {5: (9, 9, 9), 10: (0, 0, 0), 20: (1, 0, 0), 30: (0, 1, 0)}
        skin = compact_skin([(30, 10, 20)], nodes)
        assert skin.num_vertices == 3
        assert skin.node_tags.tolist() == [10, 20, 30]
        assert skin.node_indices.tolist() == [1, 2, 3]
        assert skin.faces == [(2, 0, 1)]
        np.testing.assert_array_equal(skin.vertices[2], [0.0, 1.0, 0.0])

    def test_take(self):
        nodes = {5: (9, 9, 9), 10: (0, 0, 0), 20: (1, 0, 0), 30: (0, 1, 0)}
        skin = compact_skin([(10, 20, 30)], nodes)
        assert skin.take([50.0, 100.0, 200.0, 300.0]).tolist() == [100.0, 200.0, 300.0]
        with pytest.raises(ValueError):
            skin.take([1.0, 2.0])

    def test_index_of(self):
        skin = compact_skin([(10, 20, 30)], {10: (0, 0, 0), 20: (1, 0, 0), 30: (0, 1, 0)})
        assert skin.index_of() == {10: 0, 20: 1, 30: 2}

    def test_missing_nodes_drop_face(self):
        nodes = {1: (0, 0, 0), 2: (1, 0, 0), 3: (0, 1, 0)}
        skin = compact_skin([(1, 2, 3), (1, 2, 99)], nodes)
        assert skin.num_faces == 1

    def test_empty(self):
        skin = compact_skin([], {1: (0, 0, 0)})
        assert skin.vertices.shape == (0, 3)
        assert skin.triangles().shape == (0, 3)


class TestExtractSkin:
    def test_single_tet(self):
        model = Model()
        for tag, xyz in enumerate([(0, 0, 0), (1, 0, 0), (0, 1, 0), (0, 0, 1)], start=1):
            model.add_node(tag, xyz)
        model.add_element(1, TET, (1, 2, 3, 4))
        skin = extract_skin(model)
        assert skin.num_vertices == 4
        assert skin.num_faces == 4
        assert skin.triangles().shape == (4, 3)

    def test_interior_nodes_are_dropped(self, two_hex_model):
        skin = extract_skin(two_hex_model)
        # Every node of two stacked hexes lies on the skin
        assert skin.num_vertices == 12
        assert skin.triangles().shape == (20, 3)

    def test_non_manifold_strict(self):
        model = Model()
        for tag in range(1, 7):
            model.add_node(tag, (tag, tag * tag, tag ** 3))
        model.add_element(1, TET, (1, 2, 3, 4))
        model.add_element(2, TET, (1, 3, 2, 5))
        model.add_element(3, TET, (1, 2, 3, 6))
        with pytest.raises(NonManifoldMeshError):
            extract_skin(model, strict=True)
