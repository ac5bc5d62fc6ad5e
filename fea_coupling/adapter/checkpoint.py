"""암시적 커플링 체크포인트 저장/복원.

외부 서비스가 write-iteration-checkpoint를 요구하면 상태 벡터와 절대 시간을
저장하고, read-iteration-checkpoint를 요구하면 저장된 값으로 되돌린다.
체크포인트는 1단계(중첩 없음)이며 새로 저장할 때마다 덮어쓴다.

상태 벡터는 numpy 배열, to_numpy()/from_numpy()를 가진 Taichi field,
또는 리스트를 지원한다. 복원은 호출자 객체를 제자리에서 덮어쓴다.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import numpy as np

from ..fem.validation import ContractViolationError
from .service import Action, CouplingService

logger = logging.getLogger(__name__)


class TimeSource(Protocol):
    """절대 시간 제공자 (fea_coupling.fem.Time 등)."""

    def current(self) -> float: ...

    def set_absolute_time(self, new_time: float): ...


@dataclass
class CheckpointRecord:
    """저장된 상태.

    Args:
        state: 상태 벡터 사본 (호출자 목록과 위치 대응)
        time: 저장 시점 절대 시간
    """
    state: List = field(default_factory=list, repr=False)
    time: float = 0.0

    def __len__(self) -> int:
        return len(self.state)


def _snapshot(vector):
    """상태 벡터 깊은 복사."""
    if hasattr(vector, "to_numpy"):
        return vector.to_numpy()
    if isinstance(vector, np.ndarray):
        return vector.copy()
    return copy.deepcopy(vector)


def _shape_of(vector):
    if hasattr(vector, "to_numpy"):
        return vector.to_numpy().shape
    if hasattr(vector, "shape"):
        return tuple(vector.shape)
    return (len(vector),)


def _restore_into(vector, saved):
    """저장값을 호출자 객체에 제자리 복사."""
    if hasattr(vector, "from_numpy"):
        vector.from_numpy(saved)
    elif isinstance(vector, np.ndarray):
        vector[...] = saved
    else:
        vector[:] = copy.deepcopy(saved)


class CheckpointStore:
    """체크포인트 저장소.

    Args:
        service: 커플링 서비스 (액션 요구 여부 조회/완료 통지)
    """

    def __init__(self, service: CouplingService):
        self.service = service
        self._record: Optional[CheckpointRecord] = None

    @property
    def record(self) -> Optional[CheckpointRecord]:
        return self._record

    def save_current_state_if_required(self, state_vectors: Sequence, time_source: TimeSource):
        """서비스가 요구하면 상태 벡터와 절대 시간 저장.

        Args:
            state_vectors: 저장할 상태 벡터 목록 (복원 시 같은 순서로 전달)
            time_source: 절대 시간 제공자
        """
        if not self.service.is_action_required(Action.WRITE_ITERATION_CHECKPOINT):
            return

        self._record = CheckpointRecord(
            state=[_snapshot(v) for v in state_vectors],
            time=float(time_source.current()),
        )
        logger.debug("체크포인트 저장: 벡터 %d개, t=%.6g", len(self._record), self._record.time)

        self.service.mark_action_fulfilled(Action.WRITE_ITERATION_CHECKPOINT)

    def reload_old_state_if_required(self, state_vectors: Sequence, time_source: TimeSource):
        """서비스가 요구하면 저장된 상태와 절대 시간 복원.

        길이/형상 검사를 모두 통과한 뒤에만 덮어쓰므로 실패 시 부분 복원은 없다.

        Args:
            state_vectors: 복원 대상 상태 벡터 목록 (저장 시와 같은 순서)
            time_source: 절대 시간 제공자

        Raises:
            ContractViolationError: 저장 기록 없음, 벡터 개수/형상 불일치
        """
        if not self.service.is_action_required(Action.READ_ITERATION_CHECKPOINT):
            return

        record = self._record
        if record is None:
            raise ContractViolationError("저장된 체크포인트 없이 복원 요청됨")
        if len(state_vectors) != len(record):
            raise ContractViolationError(
                f"상태 벡터 개수({len(state_vectors)})가 저장 시({len(record)})와 다름"
            )
        for i, (vector, saved) in enumerate(zip(state_vectors, record.state)):
            if _shape_of(vector) != _shape_of(saved):
                raise ContractViolationError(
                    f"상태 벡터 {i} 형상 {_shape_of(vector)}이(가) "
                    f"저장 시 {_shape_of(saved)}와(과) 다름"
                )

        for vector, saved in zip(state_vectors, record.state):
            _restore_into(vector, saved)
        time_source.set_absolute_time(record.time)
        logger.debug("체크포인트 복원: t=%.6g", record.time)

        self.service.mark_action_fulfilled(Action.READ_ITERATION_CHECKPOINT)
