import math

import numpy as np
import pytest

from calculix_fe.fields import (
    derive_invariants,
    principal_values,
    principal_values_array,
    signed_max_abs,
    signed_max_abs_array,
    solve_cubic,
    von_mises,
    von_mises_array,
)


@pytest.fixture
def random_tensors():
    rng = np.random.default_rng(42)
    return rng.uniform(-200.0, 200.0, size=(6, 50))


class TestVonMises:
    def test_uniaxial(self):
        assert von_mises(100.0, 0, 0, 0, 0, 0) == pytest.approx(100.0)

    def test_hydrostatic_is_zero(self):
        assert von_mises(50.0, 50.0, 50.0, 0, 0, 0) == 0.0

    def test_pure_shear(self):
        assert von_mises(0, 0, 0, 10.0, 0, 0) == pytest.approx(10.0 * math.sqrt(3.0))

    def test_cyclic_symmetry(self):
        a = von_mises(10.0, -20.0, 35.0, 4.0, -7.0, 12.0)
        b = von_mises(-20.0, 35.0, 10.0, -7.0, 12.0, 4.0)
        c = von_mises(35.0, 10.0, -20.0, 12.0, 4.0, -7.0)
        assert a == pytest.approx(b)
        assert a == pytest.approx(c)

    def test_batch_matches_scalar(self, random_tensors):
        batch = von_mises_array(*random_tensors)
        scalar = [von_mises(*column) for column in random_tensors.T.tolist()]
        assert batch.tolist() == scalar

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            von_mises_array([1.0, 2.0], [1.0], [1.0], [1.0], [1.0], [1.0])


class TestPrincipalValues:
    def test_solve_cubic(self):
        # (x - 1)(x - 2)(x - 3)
        roots = solve_cubic(1.0, -6.0, 11.0, -6.0)
        assert roots == pytest.approx((3.0, 2.0, 1.0))

    def test_hydrostatic(self):
        assert principal_values(50.0, 50.0, 50.0, 0, 0, 0) == (50.0, 50.0, 50.0)

    @pytest.mark.parametrize("k", [0.1, 1e-3, -2.7e-4])
    def test_hydrostatic_inexact(self, k):
        expected = np.linalg.eigvalsh(np.eye(3) * k)
        values = principal_values(k, k, k, 0, 0, 0)
        assert values == pytest.approx(tuple(expected), abs=1e-12)
        assert values == pytest.approx((k, k, k), abs=1e-12)
        maximum, middle, minimum = principal_values_array([k], [k], [k], [0.0], [0.0], [0.0])
        assert (maximum[0], middle[0], minimum[0]) == values

    def test_zero_tensor(self):
        assert principal_values(0, 0, 0, 0, 0, 0) == (0.0, 0.0, 0.0)

    def test_uniaxial(self):
        assert principal_values(100.0, 0, 0, 0, 0, 0) == pytest.approx((100.0, 0.0, 0.0), abs=1e-9)

    def test_pure_shear(self):
        assert principal_values(0, 0, 0, 10.0, 0, 0) == pytest.approx((10.0, 0.0, -10.0), abs=1e-9)

    def test_diagonal_is_sorted(self):
        assert principal_values(-5.0, 20.0, 3.0, 0, 0, 0) == pytest.approx((20.0, 3.0, -5.0))

    def test_ordering_and_trace(self, random_tensors):
        for xx, yy, zz, xy, yz, zx in random_tensors.T.tolist():
            maximum, middle, minimum = principal_values(xx, yy, zz, xy, yz, zx)
            assert maximum >= middle >= minimum
            assert maximum + middle + minimum == pytest.approx(xx + yy + zz, abs=1e-6)

    def test_matches_eigenvalues(self, random_tensors):
        for xx, yy, zz, xy, yz, zx in random_tensors.T.tolist()[:10]:
            tensor = np.array([[xx, xy, zx], [xy, yy, yz], [zx, yz, zz]])
            expected = sorted(np.linalg.eigvalsh(tensor), reverse=True)
            assert principal_values(xx, yy, zz, xy, yz, zx) == pytest.approx(expected, abs=1e-6)

    def test_batch_matches_scalar(self, random_tensors):
        maximum, middle, minimum = principal_values_array(*random_tensors)
        for i, column in enumerate(random_tensors.T.tolist()):
            assert (maximum[i], middle[i], minimum[i]) == principal_values(*column)

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            principal_values_array([1.0], [1.0], [1.0], [1.0], [1.0], [1.0, 2.0])


class TestSignedMaxAbs:
    def test_compression_wins(self):
        assert signed_max_abs(3.0, -5.0) == -5.0

    def test_tension_wins(self):
        assert signed_max_abs(5.0, -3.0) == 5.0

    def test_tie_prefers_maximum(self):
        assert signed_max_abs(4.0, -4.0) == 4.0

    def test_array(self):
        result = signed_max_abs_array([3.0, 5.0, 4.0], [-5.0, -3.0, -4.0])
        assert result.tolist() == [-5.0, 5.0, 4.0]

    def test_array_mismatch(self):
        with pytest.raises(ValueError):
            signed_max_abs_array([1.0, 2.0], [1.0])


class TestDeriveInvariants:
    def test_stress_and_displacement(self):
        fields = {
            "STRESS": {
                "SXX": [100.0, 50.0], "SYY": [0.0, 50.0], "SZZ": [0.0, 50.0],
                "SXY": [0.0, 0.0], "SYZ": [0.0, 0.0], "SZX": [0.0, 0.0],
            },
            "DISP": {"D1": [3.0, 0.0], "D2": [4.0, 0.0], "D3": [0.0, 2.0]},
            "PE": {"PXX": [1.0, 2.0]},
        }
        derived = derive_invariants(fields)

        stress = derived["STRESS"]
        assert stress["VONMISES"].tolist() == pytest.approx([100.0, 0.0])
        assert stress["MAX"].tolist() == pytest.approx([100.0, 50.0])
        assert stress["MIN"].tolist() == pytest.approx([0.0, 50.0], abs=1e-9)
        assert stress["SIGNED"].tolist() == pytest.approx([100.0, 50.0])
        assert derived["DISP"]["ALL"].tolist() == [5.0, 2.0]
        assert derived["PE"]["PXX"].tolist() == [1.0, 2.0]

    def test_input_not_modified(self):
        fields = {"TOSTRAIN": {name: [0.001] for name in ("EXX", "EYY", "EZZ", "EXY", "EYZ", "EZX")}}
        derived = derive_invariants(fields)
        assert "VONMISES" in derived["TOSTRAIN"]
        assert "VONMISES" not in fields["TOSTRAIN"]

    def test_incomplete_tensor_copied(self):
        derived = derive_invariants({"STRESS": {"SXX": [1.0]}})
        assert list(derived["STRESS"]) == ["SXX"]
