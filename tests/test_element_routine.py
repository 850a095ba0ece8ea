import numpy as np
import pytest
from numpy.testing import assert_allclose

from femsolids.assembly import Formulation, Primal, element_routine
from femsolids.core import Mesh
from femsolids.errors import (DegenerateElement, InvalidParameter, UnknownFaceset,
                              UnsupportedMaterial)
from femsolids.fem.values import CellVectorValues, FaceVectorValues
from femsolids.materials import LinearElasticity
from femsolids.utils.meshgen import quadratic_mesh


def cst_stiffness(xe, material, thickness):
    """Closed-form constant-strain-triangle stiffness in Voigt notation."""
    (x1, y1), (x2, y2), (x3, y3) = xe
    two_a = (x2 - x1) * (y3 - y1) - (x3 - x1) * (y2 - y1)
    b = np.array([y2 - y3, y3 - y1, y1 - y2]) / two_a
    c = np.array([x3 - x2, x1 - x3, x2 - x1]) / two_a
    B = np.zeros((3, 6))
    B[0, 0::2] = b
    B[1, 1::2] = c
    B[2, 0::2] = c
    B[2, 1::2] = b
    return thickness * 0.5 * two_a * B.T @ material.voigt() @ B


def single_cell_mesh(xe, faceset="bottom"):
    mesh = Mesh(np.asarray(xe, dtype=float), np.array([[0, 1, 2]]))
    mesh.add_faceset(faceset, lambda x, y: np.isclose(y, 0.0))
    return mesh


def test_cst_reference_triangle(material, ref_triangle_coords):
    cv = CellVectorValues(1)
    ke, fe = np.zeros((6, 6)), np.ones(6)
    element_routine(Primal, ke, fe, cv, ref_triangle_coords, material, 1.0)
    # (lambda + 2G) + G with lambda = 4/3, G = 1, times the area 1/2
    assert np.isclose(ke[0, 0], 13.0 / 6.0)
    assert_allclose(ke, cst_stiffness(ref_triangle_coords, material, 1.0), atol=1e-12)
    assert_allclose(fe, 0.0)


def test_cst_general_triangle_and_thickness():
    mat = LinearElasticity(G=3.0, K=5.0, assumption="plane_stress")
    xe = np.array([[0.3, -0.2], [2.1, 0.4], [0.9, 1.7]])
    cv = CellVectorValues(1)
    ke, fe = np.zeros((6, 6)), np.zeros(6)
    element_routine(Formulation.PRIMAL, ke, fe, cv, xe, mat, 0.25)
    assert_allclose(ke, cst_stiffness(xe, mat, 0.25), rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize("p", [1, 2])
def test_symmetry_and_rigid_body_modes(material, p):
    lin = Mesh(np.array([[0.0, 0.0], [1.2, 0.1], [0.2, 0.9]]), np.array([[0, 1, 2]]))
    mesh = lin if p == 1 else quadratic_mesh(lin)
    xe = mesh.cell_coordinates(0)
    cv = CellVectorValues(p)
    n = cv.n_basis
    ke, fe = np.zeros((n, n)), np.zeros(n)
    element_routine(Primal, ke, fe, cv, xe, material, 1.0)
    assert_allclose(ke, ke.T, atol=1e-12)
    eig = np.linalg.eigvalsh(ke)
    tol = 1e-10 * eig.max()
    assert np.sum(np.abs(eig) < tol) == 3
    assert np.all(eig > -tol)
    # translations and the infinitesimal rotation produce no force
    for u in (np.tile([1.0, 0.0], n // 2), np.tile([0.0, 1.0], n // 2),
              np.column_stack([-xe[:, 1], xe[:, 0]]).ravel()):
        assert_allclose(ke @ u, 0.0, atol=1e-10)


def test_stiffness_scales_linearly_with_thickness(material, ref_triangle_coords):
    cv = CellVectorValues(1)
    k1, k3 = np.zeros((6, 6)), np.zeros((6, 6))
    element_routine(Primal, k1, np.zeros(6), cv, ref_triangle_coords, material, 1.0)
    element_routine(Primal, k3, np.zeros(6), cv, ref_triangle_coords, material, 3.0)
    assert_allclose(k3, 3.0 * k1)


def test_constant_traction_on_face(material, ref_triangle_coords):
    mesh = single_cell_mesh(ref_triangle_coords)
    cv, fv = CellVectorValues(1), FaceVectorValues(1)
    ke, fe = np.zeros((6, 6)), np.zeros(6)
    element_routine(Primal, ke, fe, cv, ref_triangle_coords, material, 2.0,
                    fv, mesh, 0, np.array([0.0, -1.0]), "bottom")
    # |face| = 1, thickness 2: each end node takes half of t * |face| * traction
    assert_allclose(fe, [0.0, -1.0, 0.0, -1.0, 0.0, 0.0], atol=1e-14)
    assert np.isclose(fe.sum(), -2.0)
    assert_allclose(ke, cst_stiffness(ref_triangle_coords, material, 2.0), atol=1e-12)


def test_linear_traction_on_p2_face(material):
    lin = Mesh(np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 1.0]]), np.array([[0, 1, 2]]))
    mesh = quadratic_mesh(lin)
    mesh.add_faceset("bottom", lambda x, y: np.isclose(y, 0.0))
    xe = mesh.cell_coordinates(0)
    cv, fv = CellVectorValues(2), FaceVectorValues(2)
    ke, fe = np.zeros((12, 12)), np.zeros(12)
    element_routine(Primal, ke, fe, cv, xe, material, 1.0,
                    fv, mesh, 0, lambda x: np.array([x[0], 0.0]), "bottom")
    # int_0^2 x dx = 2 goes to the x components only
    assert np.isclose(fe[0::2].sum(), 2.0)
    assert_allclose(fe[1::2], 0.0, atol=1e-14)


def test_traction_on_other_cell_is_ignored(material, unit_square_two_triangles):
    mesh = unit_square_two_triangles
    mesh.add_faceset("bottom", lambda x, y: np.isclose(y, 0.0))
    cv, fv = CellVectorValues(1), FaceVectorValues(1)
    ke, fe = np.zeros((6, 6)), np.zeros(6)
    element_routine(Primal, ke, fe, cv, mesh.cell_coordinates(1), material, 1.0,
                    fv, mesh, 1, np.array([1.0, 1.0]), "bottom")
    assert_allclose(fe, 0.0)


class TestElementRoutineErrors:

    def test_partial_boundary_group(self, material, ref_triangle_coords):
        mesh = single_cell_mesh(ref_triangle_coords)
        ke, fe = np.zeros((6, 6)), np.full(6, 7.0)
        with pytest.raises(InvalidParameter):
            element_routine(Primal, ke, fe, CellVectorValues(1), ref_triangle_coords, material, 1.0,
                            FaceVectorValues(1), mesh, 0, None, "bottom")
        assert np.all(ke == 0.0) and np.all(fe == 7.0)

    def test_unknown_faceset(self, material, ref_triangle_coords):
        mesh = single_cell_mesh(ref_triangle_coords)
        with pytest.raises(UnknownFaceset):
            element_routine(Primal, np.zeros((6, 6)), np.zeros(6), CellVectorValues(1),
                            ref_triangle_coords, material, 1.0,
                            FaceVectorValues(1), mesh, 0, np.zeros(2), "top")

    @pytest.mark.parametrize("thickness", [0.0, -1.0, np.nan])
    def test_bad_thickness(self, material, ref_triangle_coords, thickness):
        with pytest.raises(InvalidParameter):
            element_routine(Primal, np.zeros((6, 6)), np.zeros(6), CellVectorValues(1),
                            ref_triangle_coords, material, thickness)

    def test_unsupported_material(self, ref_triangle_coords):
        with pytest.raises(UnsupportedMaterial):
            element_routine(Primal, np.zeros((6, 6)), np.zeros(6), CellVectorValues(1),
                            ref_triangle_coords, {"G": 1.0, "K": 2.0}, 1.0)

    def test_wrong_output_shapes(self, material, ref_triangle_coords):
        with pytest.raises(InvalidParameter):
            element_routine(Primal, np.zeros((5, 5)), np.zeros(6), CellVectorValues(1),
                            ref_triangle_coords, material, 1.0)
        with pytest.raises(InvalidParameter):
            element_routine(Primal, np.zeros((6, 6)), np.zeros(5), CellVectorValues(1),
                            ref_triangle_coords, material, 1.0)

    def test_unknown_formulation(self, material, ref_triangle_coords):
        with pytest.raises(InvalidParameter):
            element_routine("mixed", np.zeros((6, 6)), np.zeros(6), CellVectorValues(1),
                            ref_triangle_coords, material, 1.0)

    def test_degenerate_element_leaves_outputs(self, material):
        xe = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0]])
        ke, fe = np.full((6, 6), 2.0), np.full(6, 2.0)
        with pytest.raises(DegenerateElement):
            element_routine(Primal, ke, fe, CellVectorValues(1), xe, material, 1.0)
        assert np.all(ke == 2.0) and np.all(fe == 2.0)
