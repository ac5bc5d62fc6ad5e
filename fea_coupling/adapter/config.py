"""커플링 어댑터 설정 (Pydantic 모델, TOML 로드).

TOML 예:

    [precice]
    config_file = "precice-config.xml"
    participant_name = "Solid"
    mesh_name = "Solid-Mesh"
    read_data_name = "Stress"
    write_data_name = "Displacement"
"""

import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..fem.core.element import FaceKind
from ..fem.core.quadrature import FaceQuadrature, gauss_rule, equidistant_rule


class AdapterConfig(BaseModel):
    """preCICE 어댑터 설정.

    메쉬 이름은 mesh_name 하나(읽기/쓰기 공용) 또는
    read_mesh_name + write_mesh_name 쌍 중 하나만 지정한다.
    검증 후 read_mesh_name/write_mesh_name에는 항상 실제 이름이 들어간다.
    """

    config_file: str = "precice-config.xml"
    participant_name: str = "fea-solver"
    mesh_name: Optional[str] = Field(default=None, min_length=1)
    read_mesh_name: Optional[str] = Field(default=None, min_length=1)
    write_mesh_name: Optional[str] = Field(default=None, min_length=1)
    write_sampling: Optional[int] = Field(default=None, ge=1)
    read_data_name: str = "received-data"
    write_data_name: str = "calculated-data"

    @model_validator(mode="after")
    def _resolve_mesh_names(self) -> "AdapterConfig":
        error_message = (
            "'mesh_name' 하나(읽기/쓰기 메쉬 공용) 또는 'read_mesh_name'과 "
            "'write_mesh_name' 쌍 중 하나만 지정해야 합니다. 둘 다 지정하거나 "
            f"둘 다 생략하면 안 됩니다. 설정 파일 '{self.config_file}'에 맞게 수정하세요."
        )
        if self.mesh_name is not None:
            if self.read_mesh_name is not None or self.write_mesh_name is not None:
                raise ValueError(error_message)
            self.read_mesh_name = self.mesh_name
            self.write_mesh_name = self.mesh_name
        elif self.read_mesh_name is None or self.write_mesh_name is None:
            raise ValueError(error_message)
        return self

    @property
    def shared_mesh(self) -> bool:
        """읽기/쓰기 메쉬가 같은지."""
        return self.read_mesh_name == self.write_mesh_name

    def write_quadrature(self, kind: FaceKind, n_gauss: int) -> FaceQuadrature:
        """쓰기 메쉬 적분 규칙.

        write_sampling 미지정 시 방향당 n_gauss점 Gauss 규칙,
        지정 시 방향당 write_sampling점 등간격 규칙.
        """
        if self.write_sampling is None:
            return gauss_rule(kind, n_gauss)
        return equidistant_rule(kind, self.write_sampling)

    @classmethod
    def from_toml(cls, path: str | Path) -> "AdapterConfig":
        """TOML 파일의 [precice] 테이블에서 설정 로드.

        Args:
            path: TOML 파일 경로

        Returns:
            AdapterConfig 인스턴스
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"설정 파일을 찾을 수 없습니다: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data.get("precice", {}))
