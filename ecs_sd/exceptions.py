"""
ecs_sd/exceptions.py - 통합 예외 계층 구조

서비스 디스커버리 전체에서 사용되는 예외 클래스들을 정의합니다.
에러 메시지에 클러스터/서비스 등 식별 컨텍스트를 포함하여
최상위에서 로그 한 줄로 실패 지점을 찾을 수 있도록 합니다.

예외 계층 구조:
    SDError (베이스)
    ├── ConfigError (설정 오류 - 생성 시점에 치명적)
    ├── APICallError (ECS API 호출 실패)
    ├── AggregationError (타겟 수집 패스 실패)
    └── ServerError (HTTP 서버 수명주기)
        ├── ServerStartError
        └── ShutdownTimeoutError

Usage:
    from ecs_sd.exceptions import APICallError

    try:
        response = ecs.describe_clusters(clusters=names)
    except ClientError as e:
        raise APICallError.from_client_error("ecs", "describe_clusters", e) from e
"""

from typing import Any, Dict, List, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class SDError(Exception):
    """서비스 디스커버리 기본 예외 클래스

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 설정 관련 예외
# =============================================================================


class ConfigError(SDError):
    """설정 관련 예외

    빈 클러스터 목록, 누락된 의존성 등. 요청 단위가 아니라
    생성 시점에 발생합니다.
    """

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# AWS API 호출 관련 예외
# =============================================================================


class APICallError(SDError):
    """AWS API 호출 관련 예외

    boto3/botocore의 ClientError를 래핑하여 일관된 예외 처리를 제공합니다.
    """

    def __init__(
        self,
        service: str,
        operation: str,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        message = f"{service}.{operation}"
        if error_code:
            message = f"{message} 실패 ({error_code})"
        else:
            message = f"{message} 실패"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message, cause)
        self.service = service
        self.operation = operation
        self.error_code = error_code
        self.error_message = error_message
        self.details.update(
            {
                "service": service,
                "operation": operation,
                "error_code": error_code,
            }
        )

    def __str__(self) -> str:
        # ClientError 메시지는 error_message에 이미 포함됨
        if self.error_code or self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"

    @classmethod
    def from_client_error(
        cls,
        service: str,
        operation: str,
        client_error: Exception,
    ) -> "APICallError":
        """botocore.exceptions.ClientError로부터 생성

        Args:
            service: AWS 서비스 이름
            operation: API 작업 이름
            client_error: ClientError 예외 (BotoCoreError도 허용)

        Returns:
            APICallError 인스턴스
        """
        error_code = None
        error_message = None

        # ClientError 형식 파싱
        if hasattr(client_error, "response"):
            error_info = client_error.response.get("Error", {})
            error_code = error_info.get("Code")
            error_message = error_info.get("Message")

        return cls(
            service=service,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            cause=client_error,
        )


# =============================================================================
# 타겟 수집 관련 예외
# =============================================================================


class AggregationError(SDError):
    """타겟 수집 패스 실패

    유효한 클러스터가 없거나, stale 캐시로 흡수되지 않은 upstream 오류가
    수집 도중 발생한 경우입니다.
    """

    def __init__(
        self,
        message: str,
        clusters: Optional[List[str]] = None,
        cluster: Optional[str] = None,
        service: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        context = []
        if clusters is not None:
            context.append(f"clusters={clusters}")
        if cluster:
            context.append(f"cluster={cluster}")
        if service:
            context.append(f"service={service}")
        full_message = f"{message}: {', '.join(context)}" if context else message

        super().__init__(full_message, cause)
        self.cluster = cluster
        self.service = service
        if clusters is not None:
            self.details["clusters"] = list(clusters)
        if cluster:
            self.details["cluster"] = cluster
        if service:
            self.details["service"] = service


# =============================================================================
# HTTP 서버 관련 예외
# =============================================================================


class ServerError(SDError):
    """HTTP 서버 수명주기 관련 예외"""

    pass


class ServerStartError(ServerError):
    """서버 시작 실패 (리스너 바인딩 실패 등)"""

    def __init__(self, addr: str, cause: Optional[Exception] = None):
        super().__init__(f"service start failed: addr={addr}", cause)
        self.addr = addr
        self.details["addr"] = addr


class ShutdownTimeoutError(ServerError):
    """graceful shutdown 유예 시간 초과 (강제 종료)"""

    def __init__(self, grace_period: float):
        super().__init__(f"service shutdown timeout: grace_period={grace_period:g}s, forced to shutdown")
        self.grace_period = grace_period
        self.details["grace_period"] = grace_period
