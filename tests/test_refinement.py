import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_equal

from femsolids.config import RefinementConfig
from femsolids.core import Mesh
from femsolids.errors import InvalidMarking, MissingTopology, RefinementLimitExceeded, UnsupportedElement
from femsolids.utils.adaptive_mesh import hanging_nodes, refine
from femsolids.utils.meshgen import generate_grid


def check_conforming(mesh, area):
    assert hanging_nodes(mesh) == []
    areas = mesh.areas()
    assert np.all(areas > 0.0)
    assert np.isclose(areas.sum(), area)
    assert mesh.has_topology


def test_two_triangle_square(unit_square_two_triangles):
    fine = refine(unit_square_two_triangles, [0])
    assert fine.n_elements == 4
    assert fine.n_nodes == 5
    assert_allclose(fine.nodes_x_y_pos[4], [0.5, 0.5])
    assert_allclose(fine.areas(), 0.25)
    assert_equal(fine.corner_connectivity, [[2, 4, 1], [4, 0, 1], [0, 4, 3], [4, 2, 3]])
    check_conforming(fine, 1.0)


def test_two_triangle_square_both_marked(unit_square_two_triangles):
    fine = refine(unit_square_two_triangles, [0, 1])
    assert fine.n_elements == 4
    assert fine.n_nodes == 5
    assert_allclose(fine.nodes_x_y_pos[4], [0.5, 0.5])
    assert_equal(fine.corner_connectivity, [[2, 4, 1], [4, 0, 1], [0, 4, 3], [4, 2, 3]])
    check_conforming(fine, 1.0)


def test_original_nodes_keep_their_index():
    coarse = generate_grid(3, 3, build_topology=True)
    fine = refine(coarse, [4])
    assert_allclose(fine.nodes_x_y_pos[:coarse.n_nodes], coarse.nodes_x_y_pos)
    assert fine.n_nodes > coarse.n_nodes


def test_empty_marking_is_identity(unit_square_two_triangles):
    mesh = unit_square_two_triangles
    same = refine(mesh, [])
    assert same is not mesh
    assert_equal(same.corner_connectivity, mesh.corner_connectivity)
    assert_allclose(same.nodes_x_y_pos, mesh.nodes_x_y_pos)


def test_duplicate_marks_are_ignored(unit_square_two_triangles):
    once = refine(unit_square_two_triangles, [0])
    twice = refine(unit_square_two_triangles, [0, 0, np.int64(0)])
    assert_equal(once.corner_connectivity, twice.corner_connectivity)


def test_equilateral_tie_break():
    nodes = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, np.sqrt(3.0) / 2.0]])
    mesh = Mesh(nodes, np.array([[0, 1, 2]]), build_topology=True)
    fine = refine(mesh, [0])
    # all edges tie; (0, 1) is the smallest node pair
    assert fine.n_elements == 2
    assert_allclose(fine.nodes_x_y_pos[3], [0.5, 0.0])


@pytest.mark.parametrize("marked", [[0], [9, 10], list(range(32))])
def test_grid_refinement_conforms(marked):
    coarse = generate_grid(4, 4, build_topology=True)
    fine = refine(coarse, marked)
    assert fine.n_elements > coarse.n_elements
    check_conforming(fine, 1.0)


def test_repeated_refinement_conforms():
    mesh = generate_grid(2, 2, (0.0, 0.0), (2.0, 1.0), build_topology=True)
    for _ in range(4):
        centre = np.array([0.7, 0.3])
        p = mesh.nodes_x_y_pos[mesh.corner_connectivity].mean(axis=1)
        marked = np.argsort(np.linalg.norm(p - centre, axis=1))[:3]
        mesh = refine(mesh, marked)
        check_conforming(mesh, 2.0)


def test_input_mesh_untouched():
    coarse = generate_grid(3, 3, build_topology=True)
    conn = coarse.corner_connectivity.copy()
    xy = coarse.nodes_x_y_pos.copy()
    n_edges = coarse.topology.n_edges
    refine(coarse, [0, 5, 7])
    assert_equal(coarse.corner_connectivity, conn)
    assert_equal(coarse.nodes_x_y_pos, xy)
    assert coarse.topology.n_edges == n_edges


def test_sets_are_dropped_with_warning(caplog):
    coarse = generate_grid(2, 2, build_topology=True)
    coarse.add_faceset("left", lambda x, y: np.isclose(x, 0.0))
    with caplog.at_level(logging.WARNING, logger="femsolids.utils.adaptive_mesh"):
        fine = refine(coarse, [0])
    assert fine.facesets == {}
    assert "facesets" in caplog.text


def test_max_splits_guard():
    coarse = generate_grid(4, 4, build_topology=True)
    with pytest.raises(RefinementLimitExceeded):
        refine(coarse, list(range(32)), config=RefinementConfig(max_splits=3))


class TestRefinementErrors:

    def test_missing_topology(self):
        with pytest.raises(MissingTopology):
            refine(generate_grid(2, 2), [0])

    def test_quadratic_mesh(self):
        with pytest.raises(UnsupportedElement):
            refine(generate_grid(2, 2, poly_order=2, build_topology=True), [0])

    @pytest.mark.parametrize("marked", [[-1], [8], [1.0], [True], ["0"]])
    def test_invalid_marking(self, marked):
        with pytest.raises(InvalidMarking):
            refine(generate_grid(2, 2, build_topology=True), marked)
