"""커플링 메쉬 정점 등록 테스트."""

import numpy as np
import pytest

from ...fem.core.boundary import MappingQ1, MappingQ1Eulerian, create_box_mesh
from ...fem.core.element import FaceKind
from ...fem.core.quadrature import equidistant_rule, gauss_rule
from ...fem.validation import ConfigurationMismatchError, NodeIndexError
from ..mesh_registrar import InterfaceNode, MeshRegistrar, MeshRole
from .conftest import INTERFACE_ID, READ_MESH, WRITE_MESH, make_geometry, make_service


class TestRegister:
    """정점 등록 개수/순서."""

    def test_single_face_two_points(self, service, geometry):
        """2D, 인터페이스 면 1개 × 적분점 2개 → 정점 2개."""
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh_id = service.get_mesh_id(WRITE_MESH)

        mesh = registrar.register(
            WRITE_MESH, mesh_id, MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.WRITE)

        assert len(mesh) == 2
        np.testing.assert_array_equal(mesh.node_ids, [0, 1])
        assert mesh.face_offsets == {}

    def test_positions_on_interface(self, service, geometry):
        """정점 좌표 = 상단 변 Gauss 점 (로컬 면 노드 순서 2→3)."""
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh = registrar.register(
            WRITE_MESH, service.get_mesh_id(WRITE_MESH),
            MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.WRITE)

        g = 0.5 / np.sqrt(3.0)
        np.testing.assert_allclose(mesh.positions, [[0.5 + g, 1.0], [0.5 - g, 1.0]])
        np.testing.assert_allclose(service.vertices(WRITE_MESH), mesh.positions)

    def test_count_matches_quadrature_sum(self, service):
        """정점 수 = Σ(인터페이스 면 적분점 수)."""
        geometry = make_geometry(nx=3, ny=2)
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        quadrature = gauss_rule(FaceKind.LINE, 3)

        mesh = registrar.register(
            READ_MESH, service.get_mesh_id(READ_MESH), MappingQ1(), quadrature, MeshRole.READ)

        n_faces = len(geometry.active_faces(INTERFACE_ID))
        assert n_faces == 3
        assert len(mesh) == n_faces * quadrature.size

    def test_read_mesh_face_offsets(self, service):
        """읽기 메쉬: 면 ID → 첫 정점 위치."""
        geometry = make_geometry(nx=2)
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh = registrar.register(
            READ_MESH, service.get_mesh_id(READ_MESH),
            MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.READ)

        # 상단 변 = 로컬 면 2, face_id = element * 4 + 2
        assert mesh.face_offsets == {2: 0, 6: 2}
        assert mesh.node_offset(6) == 2

    def test_unknown_face_offset(self, service, geometry):
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh = registrar.register(
            READ_MESH, service.get_mesh_id(READ_MESH),
            MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.READ)

        with pytest.raises(NodeIndexError):
            mesh.node_offset(0)

    def test_deterministic_order(self):
        """두 번 등록해도 같은 좌표 순서."""
        geometry = make_geometry(nx=4, ny=2)
        quadrature = equidistant_rule(FaceKind.LINE, 3)

        positions = []
        for _ in range(2):
            service = make_service()
            registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
            mesh = registrar.register(
                WRITE_MESH, service.get_mesh_id(WRITE_MESH),
                MappingQ1(), quadrature, MeshRole.WRITE)
            positions.append(mesh.positions.copy())

        np.testing.assert_array_equal(positions[0], positions[1])

    def test_untagged_geometry_registers_nothing(self, service):
        geometry = make_geometry()
        registrar = MeshRegistrar(service, geometry, interface_id=7)
        mesh = registrar.register(
            WRITE_MESH, service.get_mesh_id(WRITE_MESH),
            MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.WRITE)

        assert len(mesh) == 0
        assert mesh.positions.shape == (0, 2)

    def test_eulerian_mapping_shifts_positions(self, service, geometry):
        """변위 사상: 등록 좌표에 변위가 더해짐."""
        displacement = np.zeros((geometry.n_nodes, 2))
        displacement[:, 1] = 0.25
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh = registrar.register(
            WRITE_MESH, service.get_mesh_id(WRITE_MESH),
            MappingQ1Eulerian(displacement), gauss_rule(FaceKind.LINE, 1), MeshRole.WRITE)

        np.testing.assert_allclose(mesh.positions, [[0.5, 1.25]])

    def test_3d_box_top(self):
        """3D HEX8 상단 면 2×2 Gauss → 면당 4점."""
        geometry = create_box_mesh(2, 2, 1, 1.0, 1.0, 1.0)
        assert geometry.mark_boundary(axis=2, value=1.0, boundary_id=INTERFACE_ID) == 4
        service = make_service(dimensions=3)
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)

        mesh = registrar.register(
            WRITE_MESH, service.get_mesh_id(WRITE_MESH),
            MappingQ1(), gauss_rule(FaceKind.QUAD, 2), MeshRole.WRITE)

        assert len(mesh) == 16
        np.testing.assert_allclose(mesh.positions[:, 2], 1.0)


class TestInterfaceMesh:
    """등록 결과 불변성."""

    def test_arrays_read_only(self, service, geometry):
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh = registrar.register(
            WRITE_MESH, service.get_mesh_id(WRITE_MESH),
            MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.WRITE)

        with pytest.raises(ValueError):
            mesh.node_ids[0] = 5
        with pytest.raises(ValueError):
            mesh.positions[0, 0] = 0.0

    def test_iter_nodes(self, service, geometry):
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        mesh = registrar.register(
            READ_MESH, service.get_mesh_id(READ_MESH),
            MappingQ1(), gauss_rule(FaceKind.LINE, 2), MeshRole.READ)

        nodes = list(mesh)
        assert all(isinstance(n, InterfaceNode) for n in nodes)
        assert [n.node_id for n in nodes] == [0, 1]
        assert all(n.role == MeshRole.READ for n in nodes)


class TestDimensionCheck:
    """솔버/서비스 차원 검증."""

    def test_dimension_mismatch(self, geometry):
        with pytest.raises(ConfigurationMismatchError, match="차원"):
            MeshRegistrar(make_service(dimensions=3), geometry, INTERFACE_ID)

    def test_quadrature_kind_mismatch(self, service, geometry):
        """2D 메쉬에 사각형 면 규칙 → ValueError."""
        registrar = MeshRegistrar(service, geometry, INTERFACE_ID)
        with pytest.raises(ValueError):
            registrar.register(
                WRITE_MESH, service.get_mesh_id(WRITE_MESH),
                MappingQ1(), gauss_rule(FaceKind.QUAD, 2), MeshRole.WRITE)
