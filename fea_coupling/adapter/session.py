"""커플링 세션 (초기화/전진 수명주기 조율).

MeshRegistrar, DataExchanger, CheckpointStore를 조합해 커플링 서비스의
호출 순서를 관리한다.

사용 예:
    config = AdapterConfig.from_toml("adapter.toml")
    with CouplingSession(config, interface_id=1) as session:
        dt = session.initialize(geometry, mapping, write_q, read_q, u)
        while session.is_coupling_ongoing():
            session.save_current_state_if_required([u], time)
            ...  # 솔버 1스텝 (session.read_on_quadrature_point_with_id 사용)
            dt = session.advance(u, min(dt, solver_dt))
            session.reload_old_state_if_required([u], time)
"""

import enum
import logging
from typing import Optional, Sequence

import numpy as np

from ..fem.core.boundary import BoundaryMesh, MappingQ1
from ..fem.core.quadrature import FaceQuadrature
from ..fem.validation import (
    ConfigurationMismatchError,
    ContractViolationError,
    validate_dimensions,
)
from .checkpoint import CheckpointStore, TimeSource
from .config import AdapterConfig
from .data_exchanger import DataExchanger
from .mesh_registrar import InterfaceMesh, MeshRegistrar, MeshRole
from .service import Action, CouplingService, PreciceService
from .topology import Topology, SINGLE_RANK

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    """세션 수명주기 상태."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ADVANCING = "advancing"
    FINALIZED = "finalized"


class CouplingSession:
    """솔버 측 커플링 세션.

    Args:
        config: 어댑터 설정
        interface_id: 커플링 인터페이스 경계 ID
        service: 커플링 서비스 (None이면 설정으로 PreciceService 생성)
        topology: 프로세스 배치 (현재 단일 랭크만 지원)
    """

    def __init__(
        self,
        config: AdapterConfig,
        interface_id: int,
        service: Optional[CouplingService] = None,
        topology: Topology = SINGLE_RANK,
    ):
        if topology.is_distributed:
            raise ConfigurationMismatchError(
                "분산 실행은 지원하지 않음",
                parameter="topology",
                value=f"rank={topology.rank}, size={topology.size}",
                suggestion="단일 랭크(SINGLE_RANK)로 실행하세요",
            )

        self.config = config
        self.interface_id = interface_id
        self.topology = topology
        if service is None:
            service = PreciceService(config.participant_name, config.config_file, topology)
        self.service = service
        self.checkpoints = CheckpointStore(service)

        self._state = SessionState.UNINITIALIZED
        self._service_initialized = False
        self._geometry: Optional[BoundaryMesh] = None
        self._mapping: Optional[MappingQ1] = None
        self._write_quadrature: Optional[FaceQuadrature] = None
        self._exchanger: Optional[DataExchanger] = None

    # ───────────────── 상태 ─────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    def _require_active(self, operation: str):
        if self._state == SessionState.UNINITIALIZED:
            raise ContractViolationError(f"initialize() 전에 {operation} 호출됨")
        if self._state == SessionState.FINALIZED:
            raise ContractViolationError(f"finalize() 후에 {operation} 호출됨")

    @property
    def exchanger(self) -> DataExchanger:
        self._require_active("exchanger")
        return self._exchanger

    @property
    def read_mesh(self) -> InterfaceMesh:
        return self.exchanger.read_mesh

    @property
    def write_mesh(self) -> InterfaceMesh:
        return self.exchanger.write_mesh

    @property
    def read_node_ids(self) -> np.ndarray:
        """읽기 정점 ID (등록 순서, 읽기 전용)."""
        return self.read_mesh.node_ids

    @property
    def write_node_ids(self) -> np.ndarray:
        """쓰기 정점 ID (등록 순서, 읽기 전용)."""
        return self.write_mesh.node_ids

    # ───────────────── 수명주기 ─────────────────

    def initialize(
        self,
        geometry: BoundaryMesh,
        mapping: MappingQ1,
        write_quadrature: FaceQuadrature,
        read_quadrature: FaceQuadrature,
        field,
    ) -> float:
        """메쉬 등록 후 커플링 서비스 초기화.

        mapping과 write_quadrature는 이후 모든 advance() 쓰기에 그대로 재사용된다.

        Args:
            geometry: 인터페이스 경계 태그가 지정된 경계 메쉬
            mapping: 좌표 사상
            write_quadrature: 쓰기 메쉬 면 적분 규칙
            read_quadrature: 읽기 메쉬 면 적분 규칙
            field: 초기 쓰기 데이터용 절점 벡터장

        Returns:
            첫 스텝의 최대 허용 시간 간격

        Raises:
            ConfigurationMismatchError: 솔버/서비스 차원 불일치 또는 1차원
            ContractViolationError: 이미 초기화됨
        """
        if self._state != SessionState.UNINITIALIZED or self._service_initialized:
            raise ContractViolationError(
                f"initialize()는 한 번만 호출 가능 (현재 상태: {self._state.value})"
            )

        service = self.service
        validate_dimensions(geometry.dim, service.get_dimensions())

        config = self.config
        read_mesh_id = service.get_mesh_id(config.read_mesh_name)
        read_data_id = service.get_data_id(config.read_data_name, read_mesh_id)
        write_mesh_id = service.get_mesh_id(config.write_mesh_name)
        write_data_id = service.get_data_id(config.write_data_name, write_mesh_id)

        registrar = MeshRegistrar(service, geometry, self.interface_id)
        write_mesh = registrar.register(
            config.write_mesh_name, write_mesh_id, mapping, write_quadrature, MeshRole.WRITE)
        read_mesh = registrar.register(
            config.read_mesh_name, read_mesh_id, mapping, read_quadrature, MeshRole.READ)

        logger.info("읽기 정점 수: %d", read_mesh.n_nodes)
        logger.info("쓰기 정점 수: %d", write_mesh.n_nodes)

        self._geometry = geometry
        self._mapping = mapping
        self._write_quadrature = write_quadrature
        self._exchanger = DataExchanger(
            service, geometry, self.interface_id,
            read_mesh, write_mesh, read_data_id, write_data_id,
        )

        max_dt = service.initialize()
        # 이후 단계가 실패해도 finalize()에서 서비스를 종료해야 함
        self._service_initialized = True

        if service.is_action_required(Action.WRITE_INITIAL_DATA):
            self._exchanger.write_all_quadrature_nodes(field, mapping, write_quadrature)
            service.mark_action_fulfilled(Action.WRITE_INITIAL_DATA)
            service.initialize_data()

        self._exchanger.refresh()
        self._state = SessionState.INITIALIZED
        return max_dt

    def advance(self, field, step_length: float) -> float:
        """커플링 1스텝 전진.

        쓰기 데이터가 필요하면 쓰고, 서비스를 전진시킨 뒤
        새 읽기 데이터가 있으면 읽기 버퍼를 갱신한다.

        Args:
            field: 절점 벡터장
            step_length: 솔버가 계산한 시간 간격

        Returns:
            다음 스텝의 최대 허용 시간 간격
        """
        self._require_active("advance()")
        service = self.service

        if service.is_write_data_required(step_length):
            self._exchanger.write_all_quadrature_nodes(
                field, self._mapping, self._write_quadrature)

        max_dt = service.advance(step_length)

        if service.is_read_data_available():
            self._exchanger.refresh()

        self._state = SessionState.ADVANCING
        return max_dt

    def is_coupling_ongoing(self) -> bool:
        if self._state == SessionState.FINALIZED:
            return False
        return self.service.is_coupling_ongoing()

    def finalize(self):
        """커플링 종료 (두 번째 호출부터는 무시)."""
        if self._state == SessionState.FINALIZED:
            return
        if self._service_initialized:
            self.service.finalize()
        self._state = SessionState.FINALIZED
        logger.debug("커플링 세션 종료")

    def __enter__(self) -> "CouplingSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.finalize()
        return False

    # ───────────────── 체크포인트 ─────────────────

    def save_current_state_if_required(self, state_vectors: Sequence, time_source: TimeSource):
        self._require_active("save_current_state_if_required()")
        self.checkpoints.save_current_state_if_required(state_vectors, time_source)

    def reload_old_state_if_required(self, state_vectors: Sequence, time_source: TimeSource):
        self._require_active("reload_old_state_if_required()")
        self.checkpoints.reload_old_state_if_required(state_vectors, time_source)

    # ───────────────── 읽기 ─────────────────

    def read_on_quadrature_point(self, node_id: int) -> np.ndarray:
        return self.exchanger.read_on_quadrature_point(node_id)

    def read_on_quadrature_point_with_id(self, index: int) -> np.ndarray:
        return self.exchanger.read_on_quadrature_point_with_id(index)

    def get_node_id(self, face_id: int) -> int:
        """면의 첫 읽기 정점 시퀀스 위치.

        반환값 + 적분점 번호를 read_on_quadrature_point_with_id()에 전달한다.
        """
        return self.read_mesh.node_offset(face_id)
