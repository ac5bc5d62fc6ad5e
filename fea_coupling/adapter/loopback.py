"""프로세스 내 루프백 커플링 서비스.

실제 preCICE 상대 참여자 없이 어댑터를 구동하기 위한 CouplingService 구현.
테스트와 드라이런에 사용한다.

동작 모델:
- 시간 윈도우(window_size) 단위로 데이터를 교환한다.
  윈도우보다 짧은 스텝(서브사이클링)은 윈도우가 끝날 때까지 교환하지 않는다.
- 암시적(implicit) 모드에서는 윈도우 종료 시 쓰기 데이터의 상대 변화량으로
  수렴을 판정하고, 미수렴이면 read-iteration-checkpoint를 요구하며 윈도우 시작으로 되돌린다.
- connect()로 연결된 데이터는 윈도우 종료 시 최근접 정점 매핑으로 읽기 데이터에 복사된다.
"""

import logging
from typing import Callable, Dict, List, Optional

import numpy as np

from .service import Action, CouplingService

logger = logging.getLogger(__name__)


class LoopbackService(CouplingService):
    """프로세스 내 커플링 서비스.

    Args:
        dimensions: 공간 차원
        meshes: 메쉬 이름 → 해당 메쉬 데이터 이름 목록
        window_size: 시간 윈도우 크기 [s]
        max_time: 커플링 종료 시간 [s]
        implicit: 암시적 커플링 여부
        max_iterations: 윈도우당 최대 반복 수 (암시적)
        convergence_tol: 쓰기 데이터 상대 변화 수렴 기준 (암시적)
        requires_initial_data: write-initial-data 액션 요구 여부
    """

    def __init__(
        self,
        dimensions: int,
        meshes: Dict[str, List[str]],
        window_size: float = 1.0,
        max_time: float = 1.0,
        implicit: bool = False,
        max_iterations: int = 10,
        convergence_tol: float = 1e-6,
        requires_initial_data: bool = False,
    ):
        if window_size <= 0.0:
            raise ValueError(f"윈도우 크기는 양수여야 함: {window_size}")

        self.dimensions = dimensions
        self.window_size = float(window_size)
        self.max_time = float(max_time)
        self.implicit = implicit
        self.max_iterations = max_iterations
        self.convergence_tol = convergence_tol
        self.requires_initial_data = requires_initial_data

        self._mesh_ids: Dict[str, int] = {}
        self._vertices: List[list] = []
        self._data_ids: Dict[tuple, int] = {}
        self._data_mesh: List[int] = []
        self._data_names: List[str] = []
        self._values: List[np.ndarray] = []
        for mesh_name, data_names in meshes.items():
            mesh_id = len(self._vertices)
            self._mesh_ids[mesh_name] = mesh_id
            self._vertices.append([])
            for data_name in data_names:
                self._data_ids[(data_name, mesh_id)] = len(self._data_names)
                self._data_names.append(data_name)
                self._data_mesh.append(mesh_id)
                self._values.append(np.zeros((0, dimensions)))

        self._connections: List[tuple] = []
        self._required: set = set()
        self._initialized = False
        self._finalized = False
        self._read_available = False
        self._window_start = 0.0
        self._elapsed = 0.0
        self._iteration = 0
        self._prev_written: Optional[np.ndarray] = None

        self.calls: List[tuple] = []
        self.iterations_per_window: List[int] = []

    # ───────────────── 테스트/드라이런 보조 ─────────────────

    def connect(
        self,
        write_data: str,
        read_data: str,
        transform: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    ):
        """쓰기 데이터 → 읽기 데이터 연결 (상대 참여자 역할).

        Args:
            write_data: 참여자가 쓰는 데이터 이름
            read_data: 참여자가 읽는 데이터 이름
            transform: 값 변환 함수 (n, dim) → (n, dim) (None이면 항등)
        """
        self._connections.append((
            self._data_id_by_name(write_data),
            self._data_id_by_name(read_data),
            transform,
        ))

    def set_peer_data(self, data_name: str, values: np.ndarray):
        """상대 참여자가 쓴 값을 직접 지정.

        Args:
            data_name: 데이터 이름
            values: (n_vertices, dim) 정점 ID 순서 값
        """
        data_id = self._data_id_by_name(data_name)
        current = self._data_array(data_id)
        values = np.asarray(values, dtype=np.float64)
        if values.shape != current.shape:
            raise ValueError(f"값 형상 불일치: {values.shape} != {current.shape}")
        self._values[data_id] = values.copy()

    def data_values(self, data_name: str) -> np.ndarray:
        """데이터 현재 값 사본 (n_vertices, dim)."""
        return self._data_array(self._data_id_by_name(data_name)).copy()

    def vertices(self, mesh_name: str) -> np.ndarray:
        """등록된 정점 좌표 (n_vertices, dim)."""
        verts = self._vertices[self._mesh_ids[mesh_name]]
        return np.array(verts, dtype=np.float64).reshape(-1, self.dimensions)

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    @property
    def time(self) -> float:
        """현재 커플링 시간."""
        return self._window_start + self._elapsed

    # ───────────────── 내부 ─────────────────

    def _data_id_by_name(self, data_name: str) -> int:
        for (name, _), data_id in self._data_ids.items():
            if name == data_name:
                return data_id
        raise KeyError(f"알 수 없는 데이터 이름: {data_name}")

    def _data_array(self, data_id: int) -> np.ndarray:
        """정점 수에 맞춰 확장된 데이터 배열."""
        n_vertices = len(self._vertices[self._data_mesh[data_id]])
        values = self._values[data_id]
        if len(values) < n_vertices:
            pad = np.zeros((n_vertices - len(values), self.dimensions))
            values = np.vstack([values, pad])
            self._values[data_id] = values
        return values

    def _remaining(self) -> float:
        window_rest = self.window_size - self._elapsed
        return max(0.0, min(window_rest, self.max_time - self.time))

    def _exchange(self):
        """연결된 데이터를 최근접 정점 매핑으로 전달."""
        from scipy.spatial import cKDTree

        for src_id, dst_id, transform in self._connections:
            src_pos = np.array(self._vertices[self._data_mesh[src_id]], dtype=np.float64)
            dst_pos = np.array(self._vertices[self._data_mesh[dst_id]], dtype=np.float64)
            if len(src_pos) == 0 or len(dst_pos) == 0:
                continue
            src_values = self._data_array(src_id)
            _, nearest = cKDTree(src_pos).query(dst_pos)
            mapped = src_values[nearest]
            if transform is not None:
                mapped = np.asarray(transform(mapped), dtype=np.float64)
            self._values[dst_id] = mapped.copy()

    def _written_snapshot(self) -> np.ndarray:
        written = [self._data_array(src_id).ravel() for src_id, _, _ in self._connections]
        if not written:
            return np.zeros(0)
        return np.concatenate(written)

    def _check_convergence(self) -> bool:
        """쓰기 데이터 상대 변화량으로 수렴 판정."""
        current = self._written_snapshot()
        if self._prev_written is None or len(current) != len(self._prev_written):
            converged = False
            rel_change = float("inf")
        else:
            diff_norm = np.linalg.norm(current - self._prev_written)
            ref_norm = np.linalg.norm(current)
            rel_change = diff_norm if ref_norm < 1e-30 else diff_norm / ref_norm
            converged = rel_change < self.convergence_tol
        self._prev_written = current.copy()

        logger.debug("윈도우 t=%.6g 반복 %d: 상대 변화 %.3e",
                     self._window_start, self._iteration, rel_change)
        return converged or self._iteration >= self.max_iterations

    def _complete_window(self):
        self._exchange()
        self._read_available = True

        if self.implicit:
            self._iteration += 1
            if not self._check_convergence():
                self._elapsed = 0.0
                self._required.add(Action.READ_ITERATION_CHECKPOINT)
                return
            self.iterations_per_window.append(self._iteration)
            self._iteration = 0
            self._prev_written = None

        self._window_start += self.window_size
        self._elapsed = 0.0
        if self.implicit and self.is_coupling_ongoing():
            self._required.add(Action.WRITE_ITERATION_CHECKPOINT)

    # ───────────────── CouplingService ─────────────────

    def get_dimensions(self) -> int:
        self.calls.append(("get_dimensions",))
        return self.dimensions

    def get_mesh_id(self, mesh_name: str) -> int:
        self.calls.append(("get_mesh_id", mesh_name))
        if mesh_name not in self._mesh_ids:
            raise KeyError(f"알 수 없는 메쉬 이름: {mesh_name}")
        return self._mesh_ids[mesh_name]

    def get_data_id(self, data_name: str, mesh_id: int) -> int:
        self.calls.append(("get_data_id", data_name, mesh_id))
        key = (data_name, mesh_id)
        if key not in self._data_ids:
            raise KeyError(f"메쉬 {mesh_id}에 데이터 '{data_name}' 없음")
        return self._data_ids[key]

    def set_mesh_vertex(self, mesh_id: int, position: np.ndarray) -> int:
        if self._initialized:
            raise RuntimeError("initialize() 이후에는 정점을 등록할 수 없음")
        position = np.asarray(position, dtype=np.float64).ravel()
        if len(position) != self.dimensions:
            raise ValueError(f"정점 좌표 차원 오류: {len(position)} != {self.dimensions}")
        verts = self._vertices[mesh_id]
        verts.append(position.copy())
        vertex_id = len(verts) - 1
        self.calls.append(("set_mesh_vertex", mesh_id, vertex_id))
        return vertex_id

    def initialize(self) -> float:
        self.calls.append(("initialize",))
        self._initialized = True
        if self.requires_initial_data:
            self._required.add(Action.WRITE_INITIAL_DATA)
        if self.implicit:
            self._required.add(Action.WRITE_ITERATION_CHECKPOINT)
        self._read_available = True
        logger.info("루프백 커플링 초기화: 윈도우 %.6g, 종료 %.6g, %s",
                    self.window_size, self.max_time,
                    "암시적" if self.implicit else "명시적")
        return self._remaining()

    def initialize_data(self):
        self.calls.append(("initialize_data",))
        if Action.WRITE_INITIAL_DATA in self._required:
            raise RuntimeError("write-initial-data 액션이 완료되지 않음")
        self._exchange()
        self._read_available = True

    def advance(self, dt: float) -> float:
        self.calls.append(("advance", dt))
        if not self._initialized or self._finalized:
            raise RuntimeError("초기화되지 않았거나 종료된 커플링")
        for action in (Action.WRITE_ITERATION_CHECKPOINT, Action.READ_ITERATION_CHECKPOINT):
            if action in self._required:
                raise RuntimeError(f"요구된 액션이 완료되지 않음: {action.value}")

        eps = 1e-12 * self.window_size
        if dt <= 0.0 or self._elapsed + dt > self.window_size + eps:
            raise ValueError(
                f"시간 간격 {dt}이(가) 윈도우 잔여 시간 {self.window_size - self._elapsed}을 초과"
            )

        self._elapsed += dt
        if self._elapsed >= self.window_size - eps:
            self._complete_window()
        else:
            self._read_available = False
        return self._remaining()

    def finalize(self):
        self.calls.append(("finalize",))
        self._finalized = True

    def is_coupling_ongoing(self) -> bool:
        eps = 1e-12 * self.window_size
        return not self._finalized and self._window_start < self.max_time - eps

    def is_action_required(self, action: Action) -> bool:
        self.calls.append(("is_action_required", action))
        return action in self._required

    def mark_action_fulfilled(self, action: Action):
        self.calls.append(("mark_action_fulfilled", action))
        if action not in self._required:
            raise RuntimeError(f"요구되지 않은 액션 완료 통지: {action.value}")
        self._required.discard(action)

    def is_write_data_required(self, dt: float) -> bool:
        self.calls.append(("is_write_data_required", dt))
        eps = 1e-12 * self.window_size
        return self._elapsed + dt >= self.window_size - eps

    def is_read_data_available(self) -> bool:
        self.calls.append(("is_read_data_available",))
        return self._read_available

    def write_vector_data(self, data_id: int, vertex_id: int, value: np.ndarray):
        self.calls.append(("write_vector_data", data_id, vertex_id))
        values = self._data_array(data_id)
        if not 0 <= vertex_id < len(values):
            raise IndexError(f"정점 ID 범위 초과: {vertex_id} (정점 {len(values)}개)")
        values[vertex_id] = np.asarray(value, dtype=np.float64)

    def read_vector_data(self, data_id: int, vertex_id: int) -> np.ndarray:
        self.calls.append(("read_vector_data", data_id, vertex_id))
        values = self._data_array(data_id)
        if not 0 <= vertex_id < len(values):
            raise IndexError(f"정점 ID 범위 초과: {vertex_id} (정점 {len(values)}개)")
        return values[vertex_id].copy()

    def read_block_vector_data(self, data_id: int, vertex_ids: np.ndarray) -> np.ndarray:
        self.calls.append(("read_block_vector_data", data_id))
        values = self._data_array(data_id)
        return values[np.asarray(vertex_ids, dtype=np.int64)].copy()
