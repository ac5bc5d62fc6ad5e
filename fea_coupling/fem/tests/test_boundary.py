"""경계 면 기하 테스트.

경계 검출, 경계 ID 지정, 면 순회 순서, 적분점 좌표/함수값 평가를 검증한다.
"""

import numpy as np
import pytest

from ..core.boundary import (
    BoundaryMesh,
    FaceValues,
    MappingQ1,
    MappingQ1Eulerian,
    create_box_mesh,
    create_rectangle_mesh,
    nodal_values,
)
from ..core.element import ElementType, FaceKind
from ..core.quadrature import gauss_rule


class TestBoundaryDetection:
    """경계 면 검출."""

    def test_rectangle(self):
        """2×2 QUAD4: 경계 변 8개."""
        mesh = create_rectangle_mesh(2, 2, 1.0, 1.0)
        assert mesh.dim == 2
        assert mesh.face_kind == FaceKind.LINE
        assert mesh.n_boundary_faces == 8

    def test_box(self):
        """2×2×2 HEX8: 경계 면 24개."""
        mesh = create_box_mesh(2, 2, 2, 1.0, 1.0, 1.0)
        assert mesh.dim == 3
        assert mesh.n_boundary_faces == 24

    def test_interior_face(self):
        """2×1: 요소 0의 우측 변(로컬 1)은 내부 면."""
        mesh = create_rectangle_mesh(2, 1, 2.0, 1.0)
        assert not mesh.at_boundary(0, 1)
        assert mesh.at_boundary(0, 3)

    def test_tri_mesh(self):
        """TRI3 두 개로 나눈 사각형: 대각선은 내부 면."""
        nodes = [[0, 0], [1, 0], [1, 1], [0, 1]]
        elements = [[0, 1, 2], [0, 2, 3]]
        mesh = BoundaryMesh(nodes, elements, ElementType.TRI3)
        assert mesh.n_boundary_faces == 4

    def test_bad_connectivity_shape(self):
        with pytest.raises(ValueError):
            BoundaryMesh([[0, 0], [1, 0], [1, 1]], [[0, 1]], ElementType.TRI3)

    def test_arrays_read_only(self):
        mesh = create_rectangle_mesh(1, 1, 1.0, 1.0)
        with pytest.raises(ValueError):
            mesh.nodes[0, 0] = 5.0


class TestBoundaryIds:
    """경계 ID 지정과 인터페이스 면 순회."""

    def test_mark_boundary_top(self):
        mesh = create_rectangle_mesh(3, 2, 3.0, 1.0)
        assert mesh.mark_boundary(axis=1, value=1.0, boundary_id=4) == 3
        assert all(mesh.boundary_id(f.element, f.local_face) == 4
                   for f in mesh.active_faces(4))

    def test_unmarked_faces(self):
        mesh = create_rectangle_mesh(1, 1, 1.0, 1.0)
        assert mesh.boundary_id(0, 0) == -1
        assert mesh.active_faces(0) == []

    def test_active_faces_order(self):
        """순서: 요소 인덱스 → 로컬 면 번호."""
        mesh = create_rectangle_mesh(2, 2, 1.0, 1.0)
        mesh.mark_boundary(axis=0, value=0.0, boundary_id=1)
        mesh.mark_boundary(axis=1, value=0.0, boundary_id=1)

        faces = mesh.active_faces(1)

        assert [(f.element, f.local_face) for f in faces] == [(0, 0), (0, 3), (1, 0), (2, 3)]
        assert [f.face_id for f in faces] == [0, 3, 4, 11]

    def test_active_faces_stable(self):
        mesh = create_box_mesh(2, 1, 1, 2.0, 1.0, 1.0)
        mesh.mark_boundary(axis=2, value=1.0, boundary_id=2)
        assert mesh.active_faces(2) == mesh.active_faces(2)

    def test_interior_face_rejected(self):
        mesh = create_rectangle_mesh(2, 1, 2.0, 1.0)
        with pytest.raises(ValueError, match="내부 면"):
            mesh.set_boundary_id([0], [1], 5)

    def test_negative_id_rejected(self):
        mesh = create_rectangle_mesh(1, 1, 1.0, 1.0)
        with pytest.raises(ValueError):
            mesh.set_boundary_id([0], [0], -1)

    def test_face_nodes(self):
        """요소 연결 [0, 1, 3, 2]에서 로컬 면 2 → 전역 노드 (3, 2)."""
        mesh = create_rectangle_mesh(1, 1, 1.0, 1.0)
        assert mesh.face_nodes(0, 2) == (3, 2)


class TestFaceValues:
    """면 적분점 평가."""

    def _top_face(self, mesh):
        mesh.mark_boundary(axis=1, value=1.0, boundary_id=1)
        return mesh.active_faces(1)[0]

    def test_quadrature_points(self):
        mesh = create_rectangle_mesh(1, 1, 2.0, 1.0)
        face = self._top_face(mesh)
        fe_face_values = FaceValues(mesh, MappingQ1(), gauss_rule(FaceKind.LINE, 1))
        fe_face_values.reinit(face)

        np.testing.assert_allclose(fe_face_values.quadrature_points(), [[1.0, 1.0]])
        assert list(fe_face_values.quadrature_point_indices()) == [0]

    def test_function_values_linear_exact(self):
        mesh = create_rectangle_mesh(2, 2, 1.0, 1.0)
        face = self._top_face(mesh)
        fe_face_values = FaceValues(mesh, MappingQ1(), gauss_rule(FaceKind.LINE, 3))
        fe_face_values.reinit(face)
        field = np.column_stack([mesh.nodes[:, 0], 3.0 * mesh.nodes[:, 1]])

        points = fe_face_values.quadrature_points()
        values = fe_face_values.get_function_values(field)

        np.testing.assert_allclose(values, points * np.array([1.0, 3.0]))

    def test_box_face_points(self):
        mesh = create_box_mesh(1, 1, 1, 1.0, 1.0, 1.0)
        mesh.mark_boundary(axis=2, value=1.0, boundary_id=1)
        face = mesh.active_faces(1)[0]
        fe_face_values = FaceValues(mesh, MappingQ1(), gauss_rule(FaceKind.QUAD, 2))
        fe_face_values.reinit(face)

        points = fe_face_values.quadrature_points()

        assert fe_face_values.n_quadrature_points == 4
        np.testing.assert_allclose(points[:, 2], 1.0)
        np.testing.assert_allclose(points[:, :2].mean(axis=0), [0.5, 0.5])

    def test_eulerian_uses_current_displacement(self):
        mesh = create_rectangle_mesh(1, 1, 1.0, 1.0)
        face = self._top_face(mesh)
        displacement = np.zeros((4, 2))
        fe_face_values = FaceValues(mesh, MappingQ1Eulerian(displacement), gauss_rule(FaceKind.LINE, 1))
        fe_face_values.reinit(face)

        displacement[:, 0] = 0.5

        np.testing.assert_allclose(fe_face_values.quadrature_points(), [[1.0, 1.0]])

    def test_reinit_required(self):
        mesh = create_rectangle_mesh(1, 1, 1.0, 1.0)
        fe_face_values = FaceValues(mesh, MappingQ1(), gauss_rule(FaceKind.LINE, 2))
        with pytest.raises(RuntimeError):
            fe_face_values.quadrature_points()

    def test_kind_mismatch(self):
        mesh = create_box_mesh(1, 1, 1, 1.0, 1.0, 1.0)
        with pytest.raises(ValueError):
            FaceValues(mesh, MappingQ1(), gauss_rule(FaceKind.LINE, 2))


class TestNodalValues:
    """절점 벡터장 변환."""

    def test_flat(self):
        values = nodal_values(np.arange(6.0), 3, 2)
        np.testing.assert_array_equal(values[1], [2.0, 3.0])

    def test_two_dimensional(self):
        field = np.ones((3, 2))
        assert nodal_values(field, 3, 2).shape == (3, 2)

    def test_to_numpy_object(self):
        class _Field:
            def to_numpy(self):
                return np.full((2, 3), 4.0)

        np.testing.assert_array_equal(nodal_values(_Field(), 2, 3), 4.0)

    def test_wrong_shape(self):
        with pytest.raises(ValueError):
            nodal_values(np.zeros(5), 3, 2)


class TestFromFemMesh:
    """FEM 메쉬 객체에서 생성."""

    def test_numpy_attributes(self):
        from types import SimpleNamespace

        fem_mesh = SimpleNamespace(
            X=np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]),
            elements=np.array([[0, 1, 2, 3]]),
            element_type=ElementType.QUAD4,
        )
        mesh = BoundaryMesh.from_fem_mesh(fem_mesh)

        assert mesh.n_nodes == 4
        assert mesh.n_boundary_faces == 4
