"""솔버 ↔ 커플링 서비스 데이터 교환.

쓰기: 인터페이스 면 적분점에서 솔버 벡터장을 평가해 쓰기 정점 ID 순서대로 전달.
읽기: 정점 ID 직접 조회 또는 일괄 갱신된 읽기 버퍼 조회.

읽기 버퍼는 (읽기 정점 수 × dim) 길이의 평탄 배열이며 갱신 시 통째로 교체된다.
"""

import logging

import numpy as np

from ..fem.core.boundary import BoundaryMesh, FaceValues, MappingQ1, nodal_values
from ..fem.core.quadrature import FaceQuadrature
from ..fem.validation import NodeIndexError
from .mesh_registrar import InterfaceMesh
from .service import CouplingService

logger = logging.getLogger(__name__)


class DataExchanger:
    """인터페이스 데이터 교환기.

    Args:
        service: 커플링 서비스
        geometry: 경계 메쉬
        interface_id: 인터페이스 경계 ID
        read_mesh: 등록된 읽기 메쉬
        write_mesh: 등록된 쓰기 메쉬
        read_data_id: 읽기 데이터 ID
        write_data_id: 쓰기 데이터 ID
    """

    def __init__(
        self,
        service: CouplingService,
        geometry: BoundaryMesh,
        interface_id: int,
        read_mesh: InterfaceMesh,
        write_mesh: InterfaceMesh,
        read_data_id: int,
        write_data_id: int,
    ):
        self.service = service
        self.geometry = geometry
        self.interface_id = interface_id
        self.dim = geometry.dim
        self.read_mesh = read_mesh
        self.write_mesh = write_mesh
        self.read_data_id = read_data_id
        self.write_data_id = write_data_id

        self._read_data = np.zeros(read_mesh.n_nodes * self.dim, dtype=np.float64)
        self._read_data.flags.writeable = False

    @property
    def read_data(self) -> np.ndarray:
        """읽기 버퍼 (읽기 전용 평탄 배열, 길이 = 읽기 정점 수 × dim)."""
        return self._read_data

    def write_all_quadrature_nodes(
        self,
        field,
        mapping: MappingQ1,
        write_quadrature: FaceQuadrature,
    ):
        """모든 인터페이스 면 적분점의 벡터장 값을 서비스에 쓰기.

        쓰기 정점 ID는 등록 순서와 같은 면 → 적분점 순서로 하나씩 소비한다.

        Args:
            field: 절점 벡터장 ((n_nodes, dim), 평탄 배열 또는 Taichi field)
            mapping: 등록 시 사용한 좌표 사상
            write_quadrature: 등록 시 사용한 쓰기 적분 규칙

        Raises:
            NodeIndexError: 적분점이 등록된 정점보다 많음 (적분 규칙 불일치)
        """
        values = nodal_values(field, self.geometry.n_nodes, self.dim)
        fe_face_values = FaceValues(self.geometry, mapping, write_quadrature)
        node_ids = self.write_mesh.node_ids
        n_ids = len(node_ids)
        index = 0

        for face in self.geometry.active_faces(self.interface_id):
            fe_face_values.reinit(face)
            quad_values = fe_face_values.get_function_values(values)

            for local_data in quad_values:
                if index >= n_ids:
                    raise NodeIndexError(
                        f"쓰기 정점 ID 소진: 면 {face.face_id}에서 {n_ids}개 초과 "
                        f"(등록 시와 다른 적분 규칙 사용 여부 확인)",
                        index=index,
                        size=n_ids,
                    )
                self.service.write_vector_data(self.write_data_id, int(node_ids[index]), local_data)
                index += 1

        if index < n_ids:
            logger.warning("쓰기 정점 %d개 중 %d개만 사용됨", n_ids, index)

    def read_on_quadrature_point(self, node_id: int) -> np.ndarray:
        """정점 ID로 서비스의 현재 값 직접 조회 (dim,)."""
        return np.asarray(self.service.read_vector_data(self.read_data_id, node_id))

    def read_on_quadrature_point_with_id(self, index: int) -> np.ndarray:
        """읽기 버퍼에서 시퀀스 위치 index의 벡터 조회 (dim,).

        Raises:
            NodeIndexError: 버퍼 범위 초과
        """
        n_nodes = self.read_mesh.n_nodes
        if not 0 <= index < n_nodes:
            raise NodeIndexError(
                f"읽기 버퍼 범위 초과: {index} (읽기 정점 {n_nodes}개)",
                index=index,
                size=n_nodes,
            )
        start = index * self.dim
        return self._read_data[start:start + self.dim].copy()

    def refresh(self):
        """읽기 버퍼 일괄 갱신."""
        block = self.service.read_block_vector_data(self.read_data_id, self.read_mesh.node_ids)
        data = np.array(block, dtype=np.float64).reshape(-1)
        expected = self.read_mesh.n_nodes * self.dim
        if len(data) != expected:
            raise NodeIndexError(
                f"읽기 데이터 크기 불일치: {len(data)} != {expected}",
                index=len(data),
                size=expected,
            )
        data.flags.writeable = False
        self._read_data = data
