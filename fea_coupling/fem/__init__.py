"""솔버 측 FEM 기하/시간 모듈."""

from .time import Time
from .validation import (
    ConfigurationMismatchError,
    ContractViolationError,
    NodeIndexError,
)

__all__ = [
    "Time",
    "ConfigurationMismatchError",
    "ContractViolationError",
    "NodeIndexError",
]
