"""경계 면 기하 및 면 적분점 평가.

솔버 메쉬에서 인터페이스 태그가 붙은 경계 면을 고정 순서로 순회하고,
면 적분점의 물리 좌표와 절점 벡터장의 적분점 값을 계산한다.

면 식별자 규약:
    face_id = element * n_faces_per_element + local_face
    메쉬가 바뀌지 않는 한 초기화와 이후 모든 스텝에서 동일하다.
    메쉬를 재생성(번호 재부여)하면 커플링 세션도 새로 만들어야 한다.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .element import (
    ElementType,
    FaceKind,
    get_element_info,
    get_face_nodes,
    face_shape_functions,
)
from .quadrature import FaceQuadrature

logger = logging.getLogger(__name__)


def nodal_values(field, n_nodes: int, dim: int) -> np.ndarray:
    """절점 벡터장을 (n_nodes, dim) 배열로 변환.

    Args:
        field: (n_nodes, dim) 배열, (n_nodes*dim,) 평탄 배열(절점별 연속),
            또는 to_numpy()를 가진 객체 (Taichi field 등)

    Returns:
        (n_nodes, dim) float64 배열
    """
    if hasattr(field, "to_numpy"):
        field = field.to_numpy()
    values = np.asarray(field, dtype=np.float64)
    if values.ndim == 1 and values.size == n_nodes * dim:
        return values.reshape(n_nodes, dim)
    if values.shape != (n_nodes, dim):
        raise ValueError(
            f"절점 벡터장 형상 불일치: {values.shape}, 기대값 ({n_nodes}, {dim})"
        )
    return values


@dataclass(frozen=True)
class BoundaryFace:
    """경계 면.

    Args:
        face_id: 전역 면 식별자
        element: 소속 요소 인덱스
        local_face: 요소 내 면 번호
        nodes: 전역 노드 인덱스 (로컬 면 노드 순서)
    """
    face_id: int
    element: int
    local_face: int
    nodes: Tuple[int, ...]


class BoundaryMesh:
    """경계 태그를 가진 선형 요소 메쉬.

    Args:
        nodes: (n_nodes, dim) 참조 좌표
        elements: (n_elements, npe) 요소 연결
        element_type: 요소 타입
    """

    def __init__(self, nodes: np.ndarray, elements: np.ndarray, element_type: ElementType):
        info = get_element_info(element_type)
        nodes = np.array(nodes, dtype=np.float64)
        elements = np.array(elements, dtype=np.int64)

        if nodes.ndim != 2 or nodes.shape[1] != info.dim:
            raise ValueError(f"노드 좌표 형상 오류: {nodes.shape} (dim={info.dim})")
        if elements.ndim != 2 or elements.shape[1] != info.n_nodes:
            raise ValueError(
                f"요소 연결 형상 오류: {elements.shape} (npe={info.n_nodes})"
            )

        nodes.flags.writeable = False
        elements.flags.writeable = False
        self.nodes = nodes
        self.elements = elements
        self.element_type = element_type
        self.dim = info.dim
        self.face_kind: FaceKind = info.face_kind
        self.n_nodes = len(nodes)
        self.n_elements = len(elements)

        self._face_defs = get_face_nodes(element_type)
        self.n_faces_per_element = len(self._face_defs)

        shape = (self.n_elements, self.n_faces_per_element)
        self._at_boundary = np.zeros(shape, dtype=bool)
        self._boundary_ids = np.full(shape, -1, dtype=np.int64)
        self._detect_boundary()

    @classmethod
    def from_fem_mesh(cls, mesh) -> "BoundaryMesh":
        """FEM 메쉬 객체에서 생성.

        X, elements (numpy 배열 또는 Taichi field), element_type 속성을 사용한다.
        """
        X = mesh.X.to_numpy() if hasattr(mesh.X, "to_numpy") else mesh.X
        elements = mesh.elements
        if hasattr(elements, "to_numpy"):
            elements = elements.to_numpy()
        return cls(X, elements, mesh.element_type)

    def _detect_boundary(self):
        """한 요소에만 속한 면 = 경계 면."""
        owners = {}
        for e in range(self.n_elements):
            for fi, local_nodes in enumerate(self._face_defs):
                key = tuple(sorted(int(self.elements[e, ln]) for ln in local_nodes))
                owners.setdefault(key, []).append((e, fi))

        for owned in owners.values():
            if len(owned) == 1:
                self._at_boundary[owned[0]] = True

    def face_id(self, element: int, local_face: int) -> int:
        """전역 면 식별자."""
        return int(element) * self.n_faces_per_element + int(local_face)

    def face_nodes(self, element: int, local_face: int) -> Tuple[int, ...]:
        """면의 전역 노드 인덱스."""
        return tuple(int(self.elements[element, ln]) for ln in self._face_defs[local_face])

    def at_boundary(self, element: int, local_face: int) -> bool:
        return bool(self._at_boundary[element, local_face])

    def boundary_id(self, element: int, local_face: int) -> int:
        """면 경계 ID (-1 = 미지정)."""
        return int(self._boundary_ids[element, local_face])

    @property
    def n_boundary_faces(self) -> int:
        return int(self._at_boundary.sum())

    def set_boundary_id(
        self,
        face_elements: np.ndarray,
        local_faces: np.ndarray,
        boundary_id: int,
    ):
        """경계 면에 ID 지정.

        Args:
            face_elements: 요소 인덱스 (n,)
            local_faces: 요소 내 면 번호 (n,)
            boundary_id: 경계 ID (0 이상)
        """
        if boundary_id < 0:
            raise ValueError(f"경계 ID는 0 이상이어야 함: {boundary_id}")

        face_elements = np.asarray(face_elements, dtype=np.int64).ravel()
        local_faces = np.asarray(local_faces, dtype=np.int64).ravel()
        if len(face_elements) != len(local_faces):
            raise ValueError(
                f"요소/면 번호 개수 불일치: {len(face_elements)} != {len(local_faces)}"
            )

        interior = ~self._at_boundary[face_elements, local_faces]
        if np.any(interior):
            e, f = face_elements[interior][0], local_faces[interior][0]
            raise ValueError(f"내부 면에는 경계 ID를 지정할 수 없음: 요소 {e}, 면 {f}")

        self._boundary_ids[face_elements, local_faces] = boundary_id

    def mark_boundary(
        self,
        axis: int,
        value: float,
        boundary_id: int,
        tol: Optional[float] = None,
    ) -> int:
        """좌표면 위의 경계 면에 ID 지정.

        면의 모든 노드가 좌표면에 위치한 경계 면을 찾는다.

        Args:
            axis: 좌표축 (0=x, 1=y, 2=z)
            value: 좌표값
            boundary_id: 지정할 경계 ID
            tol: 허용 오차 (None이면 자동 계산)

        Returns:
            지정된 면 개수
        """
        coords = self.nodes[:, axis]
        if tol is None:
            unique_sorted = np.unique(np.round(coords, decimals=10))
            if len(unique_sorted) > 1:
                tol = np.min(np.diff(unique_sorted)) * 0.5
            else:
                tol = 1e-6

        on_surface = np.abs(coords - value) < tol

        face_elements = []
        local_faces = []
        for e, fi in zip(*np.nonzero(self._at_boundary)):
            if all(on_surface[gn] for gn in self.face_nodes(e, fi)):
                face_elements.append(e)
                local_faces.append(fi)

        if face_elements:
            self.set_boundary_id(face_elements, local_faces, boundary_id)
        logger.debug("경계 ID %d 지정: 축=%d, 값=%g, 면 %d개",
                     boundary_id, axis, value, len(face_elements))
        return len(face_elements)

    def active_faces(self, boundary_id: int) -> List[BoundaryFace]:
        """경계 ID가 일치하는 경계 면 목록.

        순서: 요소 인덱스 → 요소 내 면 번호. 호출마다 동일하다.
        """
        faces = []
        for e in range(self.n_elements):
            for fi in range(self.n_faces_per_element):
                if self._at_boundary[e, fi] and self._boundary_ids[e, fi] == boundary_id:
                    faces.append(BoundaryFace(
                        face_id=self.face_id(e, fi),
                        element=e,
                        local_face=fi,
                        nodes=self.face_nodes(e, fi),
                    ))
        return faces


# ============================================================================
# 좌표 사상
# ============================================================================

class MappingQ1:
    """참조 배치 선형(등매개) 사상."""

    def node_coordinates(self, geometry: BoundaryMesh, node_ids) -> np.ndarray:
        """노드 물리 좌표 (k, dim)."""
        return geometry.nodes[list(node_ids)]


class MappingQ1Eulerian(MappingQ1):
    """변위가 더해진 현재 배치 사상.

    변위장은 참조로 보관하며 좌표 계산 시점의 값을 사용한다.

    Args:
        displacement: 절점 변위 (n_nodes, dim), 평탄 배열 또는 Taichi field
    """

    def __init__(self, displacement):
        self.displacement = displacement

    def node_coordinates(self, geometry: BoundaryMesh, node_ids) -> np.ndarray:
        u = nodal_values(self.displacement, geometry.n_nodes, geometry.dim)
        ids = list(node_ids)
        return geometry.nodes[ids] + u[ids]


# ============================================================================
# 면 적분점 평가
# ============================================================================

class FaceValues:
    """한 경계 면의 적분점 좌표/함수값 평가기.

    reinit(face)로 대상 면을 지정한 뒤 quadrature_points(),
    get_function_values()를 호출한다. 두 결과는 같은 적분점 순서를 따른다.

    Args:
        geometry: 경계 메쉬
        mapping: 좌표 사상
        quadrature: 면 적분 규칙
    """

    def __init__(self, geometry: BoundaryMesh, mapping: MappingQ1, quadrature: FaceQuadrature):
        if quadrature.kind != geometry.face_kind:
            raise ValueError(
                f"적분 규칙 면 형상({quadrature.kind.value})이 "
                f"메쉬 면 형상({geometry.face_kind.value})과 다름"
            )
        self.geometry = geometry
        self.mapping = mapping
        self.quadrature = quadrature
        # (n_q, nodes_per_face)
        self._shape = np.array([
            face_shape_functions(quadrature.kind, p) for p in quadrature.points
        ])
        self._face: Optional[BoundaryFace] = None

    @property
    def n_quadrature_points(self) -> int:
        return self.quadrature.size

    def quadrature_point_indices(self) -> range:
        return range(self.quadrature.size)

    def reinit(self, face: BoundaryFace):
        self._face = face

    def _current_face(self) -> BoundaryFace:
        if self._face is None:
            raise RuntimeError("reinit(face) 호출 전에는 평가할 수 없음")
        return self._face

    def quadrature_points(self) -> np.ndarray:
        """적분점 물리 좌표 (n_q, dim)."""
        face = self._current_face()
        coords = self.mapping.node_coordinates(self.geometry, face.nodes)
        return self._shape @ coords

    def get_function_values(self, field) -> np.ndarray:
        """절점 벡터장의 적분점 값 (n_q, dim).

        Args:
            field: 절점 벡터장 (nodal_values 참고)
        """
        face = self._current_face()
        values = nodal_values(field, self.geometry.n_nodes, self.geometry.dim)
        return self._shape @ values[list(face.nodes)]


# ============================================================================
# 구조 메쉬 생성
# ============================================================================

def create_rectangle_mesh(nx, ny, Lx, Ly, ox=0.0, oy=0.0) -> BoundaryMesh:
    """2D QUAD4 구조 메쉬 생성."""
    dx, dy = Lx / nx, Ly / ny

    nodes = []
    for j in range(ny + 1):
        for i in range(nx + 1):
            nodes.append([ox + i * dx, oy + j * dy])
    nodes = np.array(nodes, dtype=np.float64)

    elements = []
    for ey in range(ny):
        for ex in range(nx):
            n0 = ex + ey * (nx + 1)
            n1 = n0 + 1
            n2 = n0 + (nx + 1) + 1
            n3 = n0 + (nx + 1)
            elements.append([n0, n1, n2, n3])
    elements = np.array(elements, dtype=np.int64)

    return BoundaryMesh(nodes, elements, ElementType.QUAD4)


def create_box_mesh(nx, ny, nz, Lx, Ly, Lz, ox=0.0, oy=0.0, oz=0.0) -> BoundaryMesh:
    """3D HEX8 구조 메쉬 생성."""
    dx, dy, dz = Lx / nx, Ly / ny, Lz / nz

    nodes = []
    for k in range(nz + 1):
        for j in range(ny + 1):
            for i in range(nx + 1):
                nodes.append([ox + i * dx, oy + j * dy, oz + k * dz])
    nodes = np.array(nodes, dtype=np.float64)

    elements = []
    for ez in range(nz):
        for ey in range(ny):
            for ex in range(nx):
                n0 = ex + ey * (nx + 1) + ez * (nx + 1) * (ny + 1)
                n1 = n0 + 1
                n2 = n0 + (nx + 1) + 1
                n3 = n0 + (nx + 1)
                n4 = n0 + (nx + 1) * (ny + 1)
                n5 = n4 + 1
                n6 = n4 + (nx + 1) + 1
                n7 = n4 + (nx + 1)
                elements.append([n0, n1, n2, n3, n4, n5, n6, n7])
    elements = np.array(elements, dtype=np.int64)

    return BoundaryMesh(nodes, elements, ElementType.HEX8)
