import numpy as np
import pytest
from numpy.testing import assert_allclose

from femsolids.config import TransferConfig
from femsolids.core.dofhandler import DofHandler
from femsolids.errors import IncompatibleMeshes, InvalidParameter, UnsupportedElement
from femsolids.utils.adaptive_mesh import refine
from femsolids.utils.meshgen import generate_grid, quadratic_mesh
from femsolids.utils.transfer import linear_to_quadratic


def affine(x, y):
    return np.array([1.0 + 2.0 * x + 3.0 * y, -x + 0.5 * y])


def interpolate(dh, func, field="u"):
    a = np.zeros(dh.total_dofs)
    xy = dh.mesh.nodes_x_y_pos
    for d in range(dh.total_dofs):
        fld, nid, c = dh.dof_origin(d)
        if fld == field:
            a[d] = func(*xy[nid])[c]
    return a


def test_affine_field_is_reproduced():
    dh_lin = DofHandler(generate_grid(2, 2))
    dh_quad = DofHandler(generate_grid(2, 2, poly_order=2))
    a_quad = linear_to_quadratic(dh_lin, dh_quad, interpolate(dh_lin, affine))
    assert a_quad.shape == (dh_quad.total_dofs,)
    assert_allclose(a_quad, interpolate(dh_quad, affine), atol=1e-12)


def test_midpoint_averages_endpoints():
    dh_lin = DofHandler(generate_grid(1, 1))
    dh_quad = DofHandler(generate_grid(1, 1, poly_order=2))
    a_lin = np.zeros(dh_lin.total_dofs)
    a_lin[list(dh_lin.node_dofs("u", 3))] = [4.0, -2.0]      # vertex (1, 1)
    a_quad = linear_to_quadratic(dh_lin, dh_quad, a_lin)
    xy = dh_quad.mesh.nodes_x_y_pos
    for nid in dh_quad.dof_map["u"]:
        value = a_quad[list(dh_quad.node_dofs("u", nid))]
        if np.allclose(xy[nid], [1.0, 1.0]):
            assert_allclose(value, [4.0, -2.0])
        elif np.allclose(xy[nid], [0.5, 0.5]) or np.allclose(xy[nid], [1.0, 0.5]):
            assert_allclose(value, [2.0, -1.0])
        elif np.allclose(xy[nid], [0.0, 0.5]):
            assert_allclose(value, [0.0, 0.0])


def test_refined_mesh_transfer():
    lin = refine(generate_grid(3, 3, build_topology=True), [0, 4, 8])
    dh_lin = DofHandler(lin)
    dh_quad = DofHandler(quadratic_mesh(lin))
    a_quad = linear_to_quadratic(dh_lin, dh_quad, interpolate(dh_lin, affine))
    assert_allclose(a_quad, interpolate(dh_quad, affine), atol=1e-12)


def test_other_fields_stay_zero():
    dh_lin = DofHandler(generate_grid(1, 1))
    dh_quad = DofHandler(generate_grid(1, 1, poly_order=2), {"u": 2, "T": 1})
    a_quad = linear_to_quadratic(dh_lin, dh_quad, np.ones(dh_lin.total_dofs))
    off = dh_quad.field_offsets["T"]
    assert_allclose(a_quad[:off], 1.0)
    assert_allclose(a_quad[off:], 0.0)


class TestTransferErrors:

    def test_incompatible_meshes(self):
        dh_lin = DofHandler(generate_grid(2, 2))
        dh_quad = DofHandler(generate_grid(3, 3, poly_order=2))
        with pytest.raises(IncompatibleMeshes):
            linear_to_quadratic(dh_lin, dh_quad, np.zeros(dh_lin.total_dofs))

    def test_tolerance_is_absolute(self):
        dh_lin = DofHandler(generate_grid(1, 1))
        dh_quad = DofHandler(generate_grid(1, 1, (1e-6, 0.0), (1.0 + 1e-6, 1.0), poly_order=2))
        a_lin = np.zeros(dh_lin.total_dofs)
        with pytest.raises(IncompatibleMeshes):
            linear_to_quadratic(dh_lin, dh_quad, a_lin)
        out = linear_to_quadratic(dh_lin, dh_quad, a_lin, config=TransferConfig(atol=1e-5))
        assert out.shape == (dh_quad.total_dofs,)

    def test_element_orders(self):
        dh_lin = DofHandler(generate_grid(1, 1))
        dh_quad = DofHandler(generate_grid(1, 1, poly_order=2))
        with pytest.raises(UnsupportedElement):
            linear_to_quadratic(dh_quad, dh_lin, np.zeros(dh_quad.total_dofs))
        with pytest.raises(UnsupportedElement):
            linear_to_quadratic(dh_lin, dh_lin, np.zeros(dh_lin.total_dofs))

    def test_scalar_field(self):
        dh_lin = DofHandler(generate_grid(1, 1), {"T": 1})
        dh_quad = DofHandler(generate_grid(1, 1, poly_order=2), {"T": 1})
        with pytest.raises(InvalidParameter):
            linear_to_quadratic(dh_lin, dh_quad, np.zeros(dh_lin.total_dofs), field="T")

    def test_wrong_vector_length(self):
        dh_lin = DofHandler(generate_grid(1, 1))
        dh_quad = DofHandler(generate_grid(1, 1, poly_order=2))
        with pytest.raises(InvalidParameter):
            linear_to_quadratic(dh_lin, dh_quad, np.zeros(dh_lin.total_dofs + 1))
