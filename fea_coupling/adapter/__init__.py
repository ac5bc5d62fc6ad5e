"""FE 솔버 ↔ 커플링 서비스 어댑터."""

from .checkpoint import CheckpointRecord, CheckpointStore
from .config import AdapterConfig
from .data_exchanger import DataExchanger
from .loopback import LoopbackService
from .mesh_registrar import InterfaceMesh, InterfaceNode, MeshRegistrar, MeshRole
from .service import Action, CouplingService, PreciceService
from .session import CouplingSession, SessionState
from .topology import SINGLE_RANK, Topology

__all__ = [
    "CheckpointRecord",
    "CheckpointStore",
    "AdapterConfig",
    "DataExchanger",
    "LoopbackService",
    "InterfaceMesh",
    "InterfaceNode",
    "MeshRegistrar",
    "MeshRole",
    "Action",
    "CouplingService",
    "PreciceService",
    "CouplingSession",
    "SessionState",
    "SINGLE_RANK",
    "Topology",
]
