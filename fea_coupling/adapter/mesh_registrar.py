"""커플링 메쉬 정점 등록.

인터페이스 태그가 붙은 경계 면을 순회하며 면 적분점 좌표를 커플링 서비스에
정점으로 등록하고, 등록 순서대로 정점 ID 시퀀스를 만든다.

순회 순서 (면 → 적분점)는 등록과 이후 모든 쓰기/읽기에서 동일해야 한다.
순서가 어긋나면 오류 없이 데이터 매핑이 뒤섞인다.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator

import numpy as np

from ..fem.core.boundary import BoundaryMesh, FaceValues, MappingQ1
from ..fem.core.quadrature import FaceQuadrature
from ..fem.validation import NodeIndexError, validate_dimensions
from .service import CouplingService

logger = logging.getLogger(__name__)


class MeshRole(enum.Enum):
    """커플링 메쉬 역할."""
    READ = "read"
    WRITE = "write"


@dataclass(frozen=True, eq=False)
class InterfaceNode:
    """커플링 정점 (등록 후 불변).

    Args:
        node_id: 커플링 서비스가 부여한 정점 ID
        position: 등록 시점 물리 좌표 (dim,)
        role: 소속 메쉬 역할
    """
    node_id: int
    position: np.ndarray = field(repr=False)
    role: MeshRole


@dataclass(eq=False)
class InterfaceMesh:
    """등록된 커플링 메쉬.

    Args:
        name: 메쉬 이름
        mesh_id: 커플링 서비스 메쉬 ID
        role: 메쉬 역할
        node_ids: (n_nodes,) 등록 순서 정점 ID
        positions: (n_nodes, dim) 등록 시점 좌표
        face_offsets: 면 ID → 해당 면 첫 정점의 시퀀스 위치 (읽기 메쉬만)
    """
    name: str
    mesh_id: int
    role: MeshRole
    node_ids: np.ndarray = field(repr=False)
    positions: np.ndarray = field(repr=False)
    face_offsets: Dict[int, int] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        self.node_ids = np.asarray(self.node_ids, dtype=np.int64)
        self.positions = np.asarray(self.positions, dtype=np.float64)
        self.node_ids.flags.writeable = False
        self.positions.flags.writeable = False

    @property
    def n_nodes(self) -> int:
        return len(self.node_ids)

    def __len__(self) -> int:
        return self.n_nodes

    def __iter__(self) -> Iterator[InterfaceNode]:
        for node_id, position in zip(self.node_ids, self.positions):
            yield InterfaceNode(int(node_id), position, self.role)

    def node_offset(self, face_id: int) -> int:
        """면 첫 정점의 시퀀스 위치.

        Raises:
            NodeIndexError: 면 ID가 이 메쉬에 없음
        """
        try:
            return self.face_offsets[face_id]
        except KeyError:
            raise NodeIndexError(
                f"면 {face_id}은(는) '{self.name}' 메쉬의 인터페이스 면이 아님",
                index=face_id,
                size=len(self.face_offsets),
            ) from None


class MeshRegistrar:
    """인터페이스 면 적분점 → 커플링 정점 등록기.

    Args:
        service: 커플링 서비스
        geometry: 경계 메쉬
        interface_id: 인터페이스 경계 ID
    """

    def __init__(self, service: CouplingService, geometry: BoundaryMesh, interface_id: int):
        validate_dimensions(geometry.dim, service.get_dimensions())
        self.service = service
        self.geometry = geometry
        self.interface_id = interface_id
        self.dim = geometry.dim

    def register(
        self,
        mesh_name: str,
        mesh_id: int,
        mapping: MappingQ1,
        quadrature: FaceQuadrature,
        role: MeshRole,
    ) -> InterfaceMesh:
        """경계 면 적분점을 정점으로 등록.

        Args:
            mesh_name: 메쉬 이름
            mesh_id: 커플링 서비스 메쉬 ID
            mapping: 좌표 사상
            quadrature: 면 적분 규칙
            role: 메쉬 역할 (READ면 면 → 정점 위치 맵 생성)

        Returns:
            InterfaceMesh
        """
        fe_face_values = FaceValues(self.geometry, mapping, quadrature)
        faces = self.geometry.active_faces(self.interface_id)

        node_ids = []
        positions = []
        face_offsets = {}

        for face in faces:
            fe_face_values.reinit(face)

            if role == MeshRole.READ:
                face_offsets[face.face_id] = len(node_ids)

            for q_point in fe_face_values.quadrature_points():
                node_ids.append(self.service.set_mesh_vertex(mesh_id, q_point))
                positions.append(q_point)

        positions = np.array(positions, dtype=np.float64).reshape(-1, self.dim)
        logger.debug("'%s' 메쉬 정점 등록: 면 %d개, 정점 %d개 (%s)",
                     mesh_name, len(faces), len(node_ids), quadrature.name)

        return InterfaceMesh(
            name=mesh_name,
            mesh_id=mesh_id,
            role=role,
            node_ids=np.array(node_ids, dtype=np.int64),
            positions=positions,
            face_offsets=face_offsets,
        )
