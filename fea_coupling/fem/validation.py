"""커플링 입력 검증 및 예외.

설정 불일치, 노드 순서 불일치, 호출 계약 위반을 구분해 보고한다.
세 오류 모두 복구 불가(fatal)이며 어댑터는 재시도하지 않는다.
"""


# ───────────────── 커스텀 예외 ─────────────────


class ConfigurationMismatchError(ValueError):
    """솔버와 커플링 설정 불일치.

    Attributes:
        parameter: 문제가 된 매개변수 이름
        value: 전달된 값
        suggestion: 수정 제안
    """

    def __init__(
        self,
        message: str,
        parameter: str = "",
        value=None,
        suggestion: str = "",
    ):
        self.parameter = parameter
        self.value = value
        self.suggestion = suggestion
        full_msg = f"[커플링 설정 오류] {message}"
        if suggestion:
            full_msg += f" → 제안: {suggestion}"
        super().__init__(full_msg)


class NodeIndexError(IndexError):
    """노드 ID 시퀀스/읽기 버퍼 범위 초과.

    등록 시점과 교환 시점의 면/적분점 순회가 어긋났음을 뜻한다.

    Attributes:
        index: 요청한 인덱스
        size: 유효 범위 크기
    """

    def __init__(self, message: str, index: int = -1, size: int = 0):
        self.index = index
        self.size = size
        super().__init__(f"[커플링 인덱스 오류] {message}")


class ContractViolationError(RuntimeError):
    """호출 계약 위반 (호출 측 프로그래밍 오류)."""

    def __init__(self, message: str):
        super().__init__(f"[커플링 계약 위반] {message}")


# ───────────────── 검증 함수 ─────────────────


def validate_dimensions(solver_dim: int, service_dim: int):
    """솔버 차원과 커플링 서비스 차원 검증.

    Args:
        solver_dim: 솔버 메쉬 공간 차원
        service_dim: 커플링 설정 파일의 차원

    Raises:
        ConfigurationMismatchError: 차원 불일치 또는 1D
    """
    if solver_dim != service_dim:
        raise ConfigurationMismatchError(
            f"솔버 차원({solver_dim})이 커플링 설정 차원({service_dim})과 다름",
            parameter="dimensions",
            value=solver_dim,
            suggestion="precice-config.xml의 dimensions 값을 솔버 메쉬 차원과 맞추세요",
        )
    if solver_dim < 2:
        raise ConfigurationMismatchError(
            "1D 커플링 메쉬는 지원하지 않음",
            parameter="dimensions",
            value=solver_dim,
        )
