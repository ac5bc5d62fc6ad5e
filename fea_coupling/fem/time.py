"""솔버 시간 관리.

절대 시간과 스텝 카운터를 관리한다. 서브사이클링 시 절대 시간은
스텝 수로 복원할 수 없으므로 체크포인트 복원 시 set_absolute_time()으로 되돌린다.
"""


class Time:
    """솔버 시간 클래스.

    Args:
        end_time: 종료 시간 [s]
        delta_t: 시간 간격 [s]
    """

    def __init__(self, end_time: float = 0.0, delta_t: float = 0.0):
        if delta_t < 0.0:
            raise ValueError(f"시간 간격은 음수일 수 없음: {delta_t}")
        self._end_time = float(end_time)
        self._delta_t = float(delta_t)
        self._time_current = 0.0
        self._timestep = 0

    def current(self) -> float:
        return self._time_current

    def end(self) -> float:
        return self._end_time

    def get_delta_t(self) -> float:
        return self._delta_t

    def set_delta_t(self, delta_t: float):
        """시간 간격 변경 (커플링 서비스가 스텝을 줄인 경우)."""
        if delta_t <= 0.0:
            raise ValueError(f"시간 간격은 양수여야 함: {delta_t}")
        self._delta_t = float(delta_t)

    def get_timestep(self) -> int:
        return self._timestep

    def increment(self):
        """한 스텝 전진."""
        self._time_current += self._delta_t
        self._timestep += 1

    def set_absolute_time(self, new_time: float):
        """절대 시간 설정. 스텝 카운터도 새 시간에 맞춘다."""
        self._time_current = float(new_time)
        if self._delta_t > 0.0:
            self._timestep = int(round(self._time_current / self._delta_t))
        else:
            self._timestep = 0

    def __repr__(self) -> str:
        return f"Time(t={self._time_current:.6g}, step={self._timestep}, dt={self._delta_t:.6g})"
