"""참여자 프로세스 배치."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Topology:
    """커플링 참여자의 랭크 배치.

    Args:
        rank: 현재 프로세스 랭크
        size: 전체 프로세스 수
    """
    rank: int = 0
    size: int = 1

    def __post_init__(self):
        if self.size < 1:
            raise ValueError(f"프로세스 수는 1 이상이어야 함: {self.size}")
        if not 0 <= self.rank < self.size:
            raise ValueError(f"랭크 범위 오류: rank={self.rank}, size={self.size}")

    @classmethod
    def distributed(cls, rank: int, size: int) -> "Topology":
        return cls(rank=rank, size=size)

    @property
    def is_distributed(self) -> bool:
        return self.size > 1


SINGLE_RANK = Topology()
