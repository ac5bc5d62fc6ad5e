"""Taichi field 상태 벡터/벡터장 연동 테스트.

taichi 미설치 환경에서는 건너뛴다.
"""

import numpy as np
import pytest

ti = pytest.importorskip("taichi")

ti.init(arch=ti.cpu, default_fp=ti.f64)

from ..checkpoint import CheckpointStore
from ..service import Action
from ..session import CouplingSession
from .conftest import INTERFACE_ID, WRITE_DATA, make_service
from ...fem.core.boundary import MappingQ1
from ...fem.core.element import FaceKind
from ...fem.core.quadrature import gauss_rule
from ...fem.time import Time


class _ActionStub:
    def __init__(self, *required):
        self.required = set(required)

    def is_action_required(self, action):
        return action in self.required

    def mark_action_fulfilled(self, action):
        self.required.discard(action)


class TestTaichiCheckpoint:
    """Taichi field 체크포인트."""

    def test_save_reload_field(self):
        u = ti.Vector.field(2, dtype=ti.f64, shape=4)
        u.from_numpy(np.arange(8.0).reshape(4, 2))
        stub = _ActionStub(Action.WRITE_ITERATION_CHECKPOINT)
        store = CheckpointStore(stub)

        store.save_current_state_if_required([u], Time())
        u.fill(0.0)
        stub.required.add(Action.READ_ITERATION_CHECKPOINT)
        store.reload_old_state_if_required([u], Time())

        np.testing.assert_array_equal(u.to_numpy(), np.arange(8.0).reshape(4, 2))


class TestTaichiField:
    """Taichi 벡터장 쓰기."""

    def test_write_from_field(self, config, geometry):
        service = make_service()
        session = CouplingSession(config, INTERFACE_ID, service=service)
        u = ti.Vector.field(2, dtype=ti.f64, shape=geometry.n_nodes)
        u.from_numpy(np.tile([1.0, 2.0], (geometry.n_nodes, 1)))
        quadrature = gauss_rule(FaceKind.LINE, 2)

        session.initialize(geometry, MappingQ1(), quadrature, quadrature, u)
        session.advance(u, 1.0)

        np.testing.assert_allclose(service.data_values(WRITE_DATA), [[1.0, 2.0], [1.0, 2.0]])
