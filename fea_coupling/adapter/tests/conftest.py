"""어댑터 테스트 공용 픽스처."""

import numpy as np
import pytest

from ...fem.core.boundary import create_rectangle_mesh
from ..config import AdapterConfig
from ..loopback import LoopbackService

INTERFACE_ID = 1
WRITE_MESH = "Solid-Write-Mesh"
READ_MESH = "Solid-Read-Mesh"
WRITE_DATA = "Displacement"
READ_DATA = "Stress"


def make_service(**kwargs) -> LoopbackService:
    """읽기/쓰기 메쉬가 분리된 2D 루프백 서비스."""
    meshes = {WRITE_MESH: [WRITE_DATA], READ_MESH: [READ_DATA]}
    return LoopbackService(kwargs.pop("dimensions", 2), meshes, **kwargs)


def make_geometry(nx=1, ny=1):
    """단위 사각형 QUAD4 메쉬, 상단(y=1) 변에 인터페이스 태그.

    nx=1이면 인터페이스 면 1개.
    """
    geometry = create_rectangle_mesh(nx, ny, 1.0, 1.0)
    geometry.mark_boundary(axis=1, value=1.0, boundary_id=INTERFACE_ID)
    return geometry


def constant_field(geometry, value=(1.0, 2.0)) -> np.ndarray:
    return np.tile(np.asarray(value, dtype=np.float64), (geometry.n_nodes, 1))


@pytest.fixture
def service():
    return make_service()


@pytest.fixture
def geometry():
    return make_geometry()


@pytest.fixture
def config():
    return AdapterConfig(
        participant_name="Solid",
        read_mesh_name=READ_MESH,
        write_mesh_name=WRITE_MESH,
        read_data_name=READ_DATA,
        write_data_name=WRITE_DATA,
    )
