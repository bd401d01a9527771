"""
ecs_sd/ecs/client.py - ECS 인벤토리 클라이언트

디스커버리 코어가 사용하는 ECS API 5개 작업을 Protocol로 정의하고,
boto3 기반 pass-through 구현을 제공합니다. 캐싱은 ecs_sd.ecs.cache의
CachedECSClient가 같은 Protocol을 구현하여 데코레이터로 감쌉니다.

주요 구성 요소:
- ECSClient: 인벤토리 작업 Protocol
- get_client: retry 설정이 적용된 boto3 client 생성
- BotoECSClient: boto3 ECS client pass-through 구현

재시도/백오프는 botocore retry 설정이 담당하며, 코어는 "최선의 데이터를
반환하거나 실패" 계약만 사용합니다.

Example:
    from ecs_sd.ecs.client import BotoECSClient

    ecs = BotoECSClient(region_name="ap-northeast-2")
    clusters = ecs.describe_clusters(["prod"])
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Literal, Protocol, cast

from botocore.exceptions import BotoCoreError, ClientError

from ecs_sd.exceptions import APICallError

from .types import Cluster, Tag, Task

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

# Retry mode 타입 (botocore TypedDict와 호환)
RetryMode = Literal["legacy", "standard", "adaptive"]

# 기본 retry 설정
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_MODE: RetryMode = "adaptive"
DEFAULT_CONNECT_TIMEOUT = 10  # 초
DEFAULT_READ_TIMEOUT = 30  # 초
DEFAULT_MAX_POOL_CONNECTIONS = 25  # 동시 요청 처리 스레드 수 이상 권장

# DescribeTasks 요청당 최대 task 수 (API 제한)
DESCRIBE_TASKS_BATCH_SIZE = 100


# =============================================================================
# Protocol
# =============================================================================


class ECSClient(Protocol):
    """디스커버리에 필요한 ECS 인벤토리 작업"""

    def describe_clusters(self, names: Sequence[str]) -> list[Cluster]:
        """이름 목록으로 클러스터 조회 (존재하는 클러스터만 반환)"""
        ...

    def list_services(self, cluster_arn: str) -> list[str]:
        """클러스터의 서비스 ARN 목록"""
        ...

    def list_tasks(self, cluster_arn: str, service_name: str) -> list[str]:
        """서비스의 task ARN 목록"""
        ...

    def describe_tasks(self, cluster_arn: str, task_arns: Sequence[str]) -> list[Task]:
        """task 상세 조회"""
        ...

    def list_tags_for_resource(self, resource_arn: str) -> list[Tag]:
        """리소스 태그 목록"""
        ...


# =============================================================================
# boto3 client 생성
# =============================================================================


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: int = DEFAULT_READ_TIMEOUT,
    max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
    **kwargs: Any,
) -> Any:
    """Retry가 적용된 boto3 client 생성

    Args:
        session: boto3 Session
        service_name: AWS 서비스 이름
        region_name: 리전 (None이면 세션 기본값)
        max_attempts: 최대 시도 횟수 (기본: 5)
        retry_mode: 재시도 모드 ('adaptive' 또는 'standard')
        connect_timeout: 연결 타임아웃 (초)
        read_timeout: 읽기 타임아웃 (초)
        max_pool_connections: HTTP 연결 풀 크기
        **kwargs: session.client()에 전달할 추가 인자

    Returns:
        boto3 client
    """
    from botocore.config import Config

    config = Config(
        retries={"max_attempts": max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=max_pool_connections,
    )

    # 기존 config가 있으면 병합
    if "config" in kwargs:
        existing = kwargs.pop("config")
        config = config.merge(existing)

    return session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name,
        config=config,
        **kwargs,
    )


@contextmanager
def _api_call(operation: str) -> Iterator[None]:
    """botocore 예외를 APICallError로 변환"""
    try:
        yield
    except (ClientError, BotoCoreError) as e:
        raise APICallError.from_client_error("ecs", operation, e) from e


# =============================================================================
# pass-through 구현
# =============================================================================


class BotoECSClient:
    """boto3 ECS client를 그대로 호출하는 ECSClient 구현

    Args:
        client: 이미 생성된 boto3 ECS client (테스트 주입용)
        session: boto3 Session (client가 없을 때 사용, 없으면 기본 자격증명 체인)
        region_name: 리전
    """

    def __init__(
        self,
        client: Any = None,
        session: boto3.Session | None = None,
        region_name: str | None = None,
    ) -> None:
        if client is None:
            if session is None:
                import boto3

                session = boto3.Session()
            client = get_client(session, "ecs", region_name=region_name)
        self._client = client

    def describe_clusters(self, names: Sequence[str]) -> list[Cluster]:
        with _api_call("describe_clusters"):
            response = self._client.describe_clusters(clusters=list(names))

        for failure in response.get("failures", []):
            logger.warning(
                "ECS cluster not resolved: arn=%s, reason=%s",
                failure.get("arn", ""),
                failure.get("reason", ""),
            )

        return [Cluster.from_api(c) for c in response.get("clusters", [])]

    def list_services(self, cluster_arn: str) -> list[str]:
        service_arns: list[str] = []
        with _api_call("list_services"):
            paginator = self._client.get_paginator("list_services")
            for page in paginator.paginate(cluster=cluster_arn):
                service_arns.extend(page.get("serviceArns", []))
        return service_arns

    def list_tasks(self, cluster_arn: str, service_name: str) -> list[str]:
        task_arns: list[str] = []
        with _api_call("list_tasks"):
            paginator = self._client.get_paginator("list_tasks")
            for page in paginator.paginate(cluster=cluster_arn, serviceName=service_name):
                task_arns.extend(page.get("taskArns", []))
        return task_arns

    def describe_tasks(self, cluster_arn: str, task_arns: Sequence[str]) -> list[Task]:
        arns = list(task_arns)
        tasks: list[Task] = []

        for i in range(0, len(arns), DESCRIBE_TASKS_BATCH_SIZE):
            batch = arns[i : i + DESCRIBE_TASKS_BATCH_SIZE]
            with _api_call("describe_tasks"):
                response = self._client.describe_tasks(cluster=cluster_arn, tasks=batch)
            tasks.extend(Task.from_api(t) for t in response.get("tasks", []))

        return tasks

    def list_tags_for_resource(self, resource_arn: str) -> list[Tag]:
        with _api_call("list_tags_for_resource"):
            response = self._client.list_tags_for_resource(resourceArn=resource_arn)
        return [Tag.from_api(t) for t in response.get("tags", [])]
