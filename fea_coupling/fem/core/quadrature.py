"""면 적분 규칙.

커플링 메쉬 정점은 경계 면의 적분점 위치에 생성된다.
적분점 순서가 곧 정점 등록 순서이므로, 같은 규칙은 항상 같은 순서를 반환해야 한다.

순서 규약:
- LINE/QUAD: ξ가 가장 빠르게 변하는 사전식 순서 (η 바깥 루프)
- TRI: 규칙별 고정 테이블 순서
"""

from dataclasses import dataclass

import numpy as np

from .element import FaceKind


@dataclass(frozen=True)
class FaceQuadrature:
    """경계 면 적분 규칙.

    Args:
        kind: 면 형상
        points: 참조 좌표 (n_q, dim-1)
        weights: 가중치 (n_q,)
        name: 규칙 이름 (로그용)
    """
    kind: FaceKind
    points: np.ndarray
    weights: np.ndarray
    name: str = ""

    def __post_init__(self):
        points = np.array(self.points, dtype=np.float64, ndmin=2)
        weights = np.array(self.weights, dtype=np.float64).ravel()
        if len(points) != len(weights):
            raise ValueError(
                f"적분점/가중치 개수 불일치: {len(points)} != {len(weights)}"
            )
        points.flags.writeable = False
        weights.flags.writeable = False
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "weights", weights)

    @property
    def size(self) -> int:
        """적분점 개수."""
        return len(self.weights)

    def __len__(self) -> int:
        return self.size


def _tensor_product(points_1d: np.ndarray, weights_1d: np.ndarray):
    """1D 규칙의 2D 텐서곱 (ξ 빠른 순서)."""
    xi, eta = np.meshgrid(points_1d, points_1d, indexing="xy")
    w = np.outer(weights_1d, weights_1d)
    points = np.column_stack([xi.ravel(), eta.ravel()])
    return points, w.ravel()


def gauss_rule(kind: FaceKind, n_points: int) -> FaceQuadrature:
    """Gauss-Legendre 면 적분 규칙.

    Args:
        kind: 면 형상
        n_points: 방향당 적분점 수 (TRI는 총 적분점 수 1 또는 3)

    Returns:
        FaceQuadrature
    """
    if n_points < 1:
        raise ValueError(f"적분점 수는 1 이상이어야 함: {n_points}")

    if kind == FaceKind.TRI:
        if n_points == 1:
            points = np.array([[1.0 / 3.0, 1.0 / 3.0]])
            weights = np.array([0.5])
        elif n_points == 3:
            points = np.array([
                [1.0 / 6.0, 1.0 / 6.0],
                [2.0 / 3.0, 1.0 / 6.0],
                [1.0 / 6.0, 2.0 / 3.0],
            ])
            weights = np.full(3, 1.0 / 6.0)
        else:
            raise ValueError(f"삼각형 Gauss 규칙은 1점/3점만 지원: {n_points}")
        return FaceQuadrature(kind, points, weights, name=f"gauss-tri-{n_points}")

    pts, wts = np.polynomial.legendre.leggauss(n_points)
    if kind == FaceKind.LINE:
        return FaceQuadrature(kind, pts[:, np.newaxis], wts, name=f"gauss-{n_points}")
    if kind == FaceKind.QUAD:
        points, weights = _tensor_product(pts, wts)
        return FaceQuadrature(kind, points, weights, name=f"gauss-{n_points}x{n_points}")
    raise ValueError(f"지원하지 않는 면 형상: {kind}")


def equidistant_rule(kind: FaceKind, n_points: int) -> FaceQuadrature:
    """등간격 샘플링 규칙 (쓰기 메쉬 밀도 제어용).

    각 방향을 n_points 개 구간으로 나누고 구간 중점을 사용한다.
    꼭짓점을 포함하지 않으므로 인접 면끼리 정점이 겹치지 않는다.

    Args:
        kind: 면 형상
        n_points: 방향당 샘플 수 (TRI는 변당 분할 수 → 총 n² 점)

    Returns:
        FaceQuadrature
    """
    if n_points < 1:
        raise ValueError(f"샘플 수는 1 이상이어야 함: {n_points}")

    n = n_points
    if kind == FaceKind.TRI:
        # 하위 삼각형 무게중심: 위쪽 삼각형 → 아래쪽 삼각형 순
        points = []
        for j in range(n):
            for i in range(n - j):
                points.append([(i + 1.0 / 3.0) / n, (j + 1.0 / 3.0) / n])
        for j in range(n - 1):
            for i in range(n - 1 - j):
                points.append([(i + 2.0 / 3.0) / n, (j + 2.0 / 3.0) / n])
        points = np.array(points)
        weights = np.full(len(points), 0.5 / (n * n))
        return FaceQuadrature(kind, points, weights, name=f"equidistant-tri-{n}")

    pts = -1.0 + (2.0 * np.arange(n) + 1.0) / n
    wts = np.full(n, 2.0 / n)
    if kind == FaceKind.LINE:
        return FaceQuadrature(kind, pts[:, np.newaxis], wts, name=f"equidistant-{n}")
    if kind == FaceKind.QUAD:
        points, weights = _tensor_product(pts, wts)
        return FaceQuadrature(kind, points, weights, name=f"equidistant-{n}x{n}")
    raise ValueError(f"지원하지 않는 면 형상: {kind}")
