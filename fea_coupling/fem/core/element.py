"""Finite element type definitions.

Linear 2D/3D elements and the boundary faces they expose to the coupling
interface.
"""

from enum import Enum
from dataclasses import dataclass
import numpy as np


class ElementType(Enum):
    """Supported element types (Abaqus naming convention)."""
    TRI3 = "CPS3"       # 3-node triangle
    QUAD4 = "CPS4"      # 4-node quad
    TET4 = "C3D4"       # 4-node tetrahedron
    HEX8 = "C3D8"       # 8-node hexahedron


class FaceKind(Enum):
    """경계 면 형상 (2D 요소의 면 = 변)."""
    LINE = "line"
    TRI = "tri"
    QUAD = "quad"


@dataclass(frozen=True)
class ElementInfo:
    """Element type information."""
    n_nodes: int           # Nodes per element
    dim: int               # Spatial dimension
    nodes_per_face: int    # Nodes per face
    face_kind: FaceKind


ELEMENT_INFO = {
    ElementType.TRI3: ElementInfo(3, 2, 2, FaceKind.LINE),
    ElementType.QUAD4: ElementInfo(4, 2, 2, FaceKind.LINE),
    ElementType.TET4: ElementInfo(4, 3, 3, FaceKind.TRI),
    ElementType.HEX8: ElementInfo(8, 3, 4, FaceKind.QUAD),
}


def get_element_info(elem_type: ElementType) -> ElementInfo:
    """Get element type information."""
    return ELEMENT_INFO[elem_type]


# ============================================================================
# 요소 면 정의
# ============================================================================

# 각 요소 타입별 면의 로컬 노드 인덱스
# 면 법선: 외향 (반시계 방향 순서 → 오른손 법칙)
# 면 순서가 곧 경계 순회 순서이므로 변경 금지
ELEMENT_FACES = {
    # TET4: 4 삼각형 면
    ElementType.TET4: [
        [0, 2, 1],  # 면 0: 바닥
        [0, 1, 3],  # 면 1
        [1, 2, 3],  # 면 2: 경사면
        [0, 3, 2],  # 면 3
    ],
    # HEX8: 6 사각형 면
    ElementType.HEX8: [
        [0, 3, 2, 1],  # 면 0: 바닥
        [4, 5, 6, 7],  # 면 1: 상단
        [0, 1, 5, 4],  # 면 2: 전면
        [2, 3, 7, 6],  # 면 3: 후면
        [0, 4, 7, 3],  # 면 4: 좌측
        [1, 2, 6, 5],  # 면 5: 우측
    ],
    # TRI3: 3 변
    ElementType.TRI3: [
        [0, 1],  # 변 0: 하단
        [1, 2],  # 변 1: 경사
        [2, 0],  # 변 2: 좌측
    ],
    # QUAD4: 4 변
    ElementType.QUAD4: [
        [0, 1],  # 변 0: 하단
        [1, 2],  # 변 1: 우측
        [2, 3],  # 변 2: 상단
        [3, 0],  # 변 3: 좌측
    ],
}


def get_face_nodes(elem_type: ElementType) -> list:
    """요소 타입별 면 노드 인덱스 목록 반환.

    Args:
        elem_type: 요소 타입

    Returns:
        면별 로컬 노드 인덱스 리스트의 리스트
    """
    if elem_type not in ELEMENT_FACES:
        raise ValueError(f"면 정의 미지원 요소: {elem_type}")
    return ELEMENT_FACES[elem_type]


# ============================================================================
# 면 형상함수
# ============================================================================

def _shape_line(xi: float) -> np.ndarray:
    """2노드 선분 형상함수 (ξ ∈ [-1, 1])."""
    return np.array([0.5 * (1 - xi), 0.5 * (1 + xi)])


def _shape_tri(xi: float, eta: float) -> np.ndarray:
    """3노드 삼각형 형상함수 (면적 좌표, ξ+η ≤ 1)."""
    return np.array([1 - xi - eta, xi, eta])


def _shape_quad(xi: float, eta: float) -> np.ndarray:
    """4노드 사각형 형상함수 (ξ, η ∈ [-1, 1])."""
    return np.array([
        0.25 * (1 - xi) * (1 - eta),
        0.25 * (1 + xi) * (1 - eta),
        0.25 * (1 + xi) * (1 + eta),
        0.25 * (1 - xi) * (1 + eta),
    ])


def face_shape_functions(kind: FaceKind, point: np.ndarray) -> np.ndarray:
    """면 참조 좌표에서 형상함수 값 계산.

    Args:
        kind: 면 형상
        point: 참조 좌표 (dim-1,)

    Returns:
        형상함수 값 (nodes_per_face,)
    """
    point = np.atleast_1d(np.asarray(point, dtype=np.float64))
    if kind == FaceKind.LINE:
        return _shape_line(point[0])
    if kind == FaceKind.TRI:
        return _shape_tri(point[0], point[1])
    if kind == FaceKind.QUAD:
        return _shape_quad(point[0], point[1])
    raise ValueError(f"지원하지 않는 면 형상: {kind}")
