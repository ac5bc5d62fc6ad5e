"""커플링 서비스 인터페이스.

어댑터가 외부 커플링 라이브러리(preCICE)에 요구하는 기능을 추상화한다.
실제 연결은 PreciceService, 테스트/드라이런은 LoopbackService가 담당한다.

서비스 호출(advance, 데이터 교환)은 내부적으로 다른 참여자와 동기화하며
무기한 블로킹될 수 있다. 어댑터는 타임아웃/취소를 제공하지 않는다.
"""

import enum
from abc import ABC, abstractmethod

import numpy as np

from .topology import Topology, SINGLE_RANK


class Action(enum.Enum):
    """커플링 서비스 액션 토큰."""
    WRITE_INITIAL_DATA = "write-initial-data"
    WRITE_ITERATION_CHECKPOINT = "write-iteration-checkpoint"
    READ_ITERATION_CHECKPOINT = "read-iteration-checkpoint"


class CouplingService(ABC):
    """커플링 서비스 공통 인터페이스."""

    @abstractmethod
    def get_dimensions(self) -> int:
        """설정 파일에 지정된 공간 차원."""

    @abstractmethod
    def get_mesh_id(self, mesh_name: str) -> int:
        """메쉬 이름 → 메쉬 ID."""

    @abstractmethod
    def get_data_id(self, data_name: str, mesh_id: int) -> int:
        """데이터 이름 → 데이터 ID."""

    @abstractmethod
    def set_mesh_vertex(self, mesh_id: int, position: np.ndarray) -> int:
        """정점 등록 후 정점 ID 반환."""

    @abstractmethod
    def initialize(self) -> float:
        """커플링 초기화. 최대 허용 시간 간격 반환."""

    @abstractmethod
    def initialize_data(self):
        """초기 데이터 교환."""

    @abstractmethod
    def advance(self, dt: float) -> float:
        """커플링 전진. 다음 최대 허용 시간 간격 반환."""

    @abstractmethod
    def finalize(self):
        """커플링 종료."""

    @abstractmethod
    def is_coupling_ongoing(self) -> bool:
        """커플링 진행 여부."""

    @abstractmethod
    def is_action_required(self, action: Action) -> bool:
        """액션 요구 여부."""

    @abstractmethod
    def mark_action_fulfilled(self, action: Action):
        """액션 수행 완료 통지."""

    @abstractmethod
    def is_write_data_required(self, dt: float) -> bool:
        """이번 스텝 길이로 쓰기 데이터가 필요한지."""

    @abstractmethod
    def is_read_data_available(self) -> bool:
        """새 읽기 데이터 존재 여부."""

    @abstractmethod
    def write_vector_data(self, data_id: int, vertex_id: int, value: np.ndarray):
        """정점 하나의 벡터 데이터 쓰기."""

    @abstractmethod
    def read_vector_data(self, data_id: int, vertex_id: int) -> np.ndarray:
        """정점 하나의 벡터 데이터 읽기 (dim,)."""

    @abstractmethod
    def read_block_vector_data(self, data_id: int, vertex_ids: np.ndarray) -> np.ndarray:
        """여러 정점 벡터 데이터 일괄 읽기 (n, dim)."""


class PreciceService(CouplingService):
    """pyprecice 2.x 기반 커플링 서비스.

    pyprecice는 생성 시점에 임포트한다 (preCICE 미설치 환경에서도
    나머지 모듈은 사용 가능).

    Args:
        participant_name: 참여자 이름
        config_file: preCICE 설정 파일 경로
        topology: 프로세스 배치
    """

    def __init__(
        self,
        participant_name: str,
        config_file: str,
        topology: Topology = SINGLE_RANK,
    ):
        import precice

        self._interface = precice.Interface(
            participant_name, str(config_file), topology.rank, topology.size
        )
        self._actions = {
            Action.WRITE_INITIAL_DATA: precice.action_write_initial_data(),
            Action.WRITE_ITERATION_CHECKPOINT: precice.action_write_iteration_checkpoint(),
            Action.READ_ITERATION_CHECKPOINT: precice.action_read_iteration_checkpoint(),
        }

    def get_dimensions(self) -> int:
        return self._interface.get_dimensions()

    def get_mesh_id(self, mesh_name: str) -> int:
        return self._interface.get_mesh_id(mesh_name)

    def get_data_id(self, data_name: str, mesh_id: int) -> int:
        return self._interface.get_data_id(data_name, mesh_id)

    def set_mesh_vertex(self, mesh_id: int, position: np.ndarray) -> int:
        return self._interface.set_mesh_vertex(mesh_id, np.asarray(position, dtype=np.float64))

    def initialize(self) -> float:
        return self._interface.initialize()

    def initialize_data(self):
        self._interface.initialize_data()

    def advance(self, dt: float) -> float:
        return self._interface.advance(dt)

    def finalize(self):
        self._interface.finalize()

    def is_coupling_ongoing(self) -> bool:
        return self._interface.is_coupling_ongoing()

    def is_action_required(self, action: Action) -> bool:
        return self._interface.is_action_required(self._actions[action])

    def mark_action_fulfilled(self, action: Action):
        self._interface.mark_action_fulfilled(self._actions[action])

    def is_write_data_required(self, dt: float) -> bool:
        return self._interface.is_write_data_required(dt)

    def is_read_data_available(self) -> bool:
        return self._interface.is_read_data_available()

    def write_vector_data(self, data_id: int, vertex_id: int, value: np.ndarray):
        self._interface.write_vector_data(data_id, vertex_id, np.asarray(value, dtype=np.float64))

    def read_vector_data(self, data_id: int, vertex_id: int) -> np.ndarray:
        return np.asarray(self._interface.read_vector_data(data_id, vertex_id))

    def read_block_vector_data(self, data_id: int, vertex_ids: np.ndarray) -> np.ndarray:
        return np.asarray(self._interface.read_block_vector_data(data_id, vertex_ids))
