"""
ecs_sd/ecs/cache.py - 캐싱 ECS 클라이언트

ECSClient Protocol을 구현하는 데코레이터로, 작업별 TTL과 stale 대체 정책을
적용해 upstream 호출을 줄이고 일시적 장애에도 응답을 유지합니다.

작업별 정책:
    | 작업                     | 캐시 키               | TTL      | 오류 시 stale 대체 |
    |--------------------------|-----------------------|----------|--------------------|
    | describe_clusters        | 고정 키 1개           | 1시간    | O                  |
    | list_services            | 클러스터 ARN별        | 5분      | O                  |
    | list_tasks               | (캐시 안 함)          | -        | X                  |
    | describe_tasks           | task ARN별            | 1분      | X (부분 캐시 분할) |
    | list_tags_for_resource   | 리소스 ARN별          | 기본 15분 | O                 |

자주 바뀌지 않거나 계층 탐색의 선행 조건인 작업은 신선도보다 가용성을
우선합니다. describe_tasks는 요청한 ARN을 캐시 히트/미스로 나누어
미스분만 upstream에 요청합니다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Sequence
from datetime import timedelta
from typing import Any

from ecs_sd.cache import TTLCache

from .client import ECSClient
from .types import Cluster, Tag, Task

_module_logger = logging.getLogger(__name__)

# 작업별 TTL
TTL_DESCRIBE_CLUSTERS = timedelta(hours=1)
TTL_LIST_SERVICES = timedelta(minutes=5)
TTL_DESCRIBE_TASKS = timedelta(minutes=1)
DEFAULT_TTL = timedelta(minutes=15)  # list_tags_for_resource

# 한 번 저장되고 다시 읽히지 않는 키 정리 주기
SWEEP_INTERVAL = timedelta(minutes=30)

KEY_DESCRIBE_CLUSTERS = ("describe_clusters",)


def _format_context(context: dict[str, Any]) -> str:
    return ", ".join(f"{k}={v}" for k, v in context.items())


def new_inventory_cache() -> TTLCache:
    """캐싱 클라이언트 기본 캐시 생성 (기본 TTL 15분, sweep 30분, stale 읽기)"""
    return TTLCache(
        default_ttl=DEFAULT_TTL,
        sweep_interval=SWEEP_INTERVAL,
        return_stale=True,
    )


class CachedECSClient:
    """TTL 캐시를 적용한 ECSClient 데코레이터

    Args:
        client: 실제 upstream ECSClient
        cache: 사용할 캐시 (None이면 new_inventory_cache()로 생성, close 시 함께 닫음)
        logger: 주입할 logger (None이면 모듈 logger)
    """

    def __init__(
        self,
        client: ECSClient,
        cache: TTLCache | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._owns_cache = cache is None
        self._cache = cache if cache is not None else new_inventory_cache()
        self._logger = logger or _module_logger

    def __enter__(self) -> CachedECSClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def close(self) -> None:
        """직접 생성한 캐시를 닫음"""
        if self._owns_cache and not self._cache.closed:
            self._cache.close()

    def _fetch_with_stale_fallback(
        self,
        operation: str,
        key: Hashable,
        fetch: Callable[[], Any],
        ttl: timedelta | None,
        **context: Any,
    ) -> Any:
        """캐시 우선 조회, upstream 실패 시 stale 값으로 대체

        Args:
            operation: 로그용 작업 이름
            key: 캐시 키
            fetch: upstream 호출
            ttl: 저장 TTL (None이면 캐시 기본 TTL)
            **context: 로그 컨텍스트 (cluster, arn 등)

        Returns:
            캐시 값, upstream 결과 또는 stale 값
        """
        lookup = self._cache.get(key)
        if lookup.found:
            self._logger.debug("ECS %s cache hit: %s", operation, _format_context(context))
            return lookup.value

        try:
            value = fetch()
        except Exception as e:
            if lookup.stale:
                self._logger.warning(
                    "ECS %s failed, stale cache response found and used: %s, err=%s",
                    operation,
                    _format_context(context),
                    e,
                )
                return lookup.value
            raise

        if ttl is None:
            self._cache.set_default(key, value)
        else:
            self._cache.set(key, value, ttl)
        return value

    def describe_clusters(self, names: Sequence[str]) -> list[Cluster]:
        clusters = self._fetch_with_stale_fallback(
            "DescribeClusters",
            KEY_DESCRIBE_CLUSTERS,
            lambda: tuple(self._client.describe_clusters(names)),
            TTL_DESCRIBE_CLUSTERS,
            clusters=list(names),
        )
        return list(clusters)

    def list_services(self, cluster_arn: str) -> list[str]:
        services = self._fetch_with_stale_fallback(
            "ListServices",
            ("list_services", cluster_arn),
            lambda: tuple(self._client.list_services(cluster_arn)),
            TTL_LIST_SERVICES,
            cluster=cluster_arn,
        )
        return list(services)

    def list_tasks(self, cluster_arn: str, service_name: str) -> list[str]:
        return self._client.list_tasks(cluster_arn, service_name)

    def describe_tasks(self, cluster_arn: str, task_arns: Sequence[str]) -> list[Task]:
        cached: list[Task] = []
        uncached: list[str] = []

        for arn in task_arns:
            lookup = self._cache.get(("describe_tasks", arn))
            if lookup.found:
                self._logger.debug("ECS DescribeTasks cache hit: cluster=%s, task=%s", cluster_arn, arn)
                cached.append(lookup.value)
                continue
            uncached.append(arn)

        if not uncached:
            return cached

        fetched = list(self._client.describe_tasks(cluster_arn, uncached))
        for task in fetched:
            self._cache.set(("describe_tasks", task.arn), task, TTL_DESCRIBE_TASKS)

        return fetched + cached

    def list_tags_for_resource(self, resource_arn: str) -> list[Tag]:
        tags = self._fetch_with_stale_fallback(
            "ListTagsForResource",
            ("list_tags_for_resource", resource_arn),
            lambda: tuple(self._client.list_tags_for_resource(resource_arn)),
            None,
            arn=resource_arn,
        )
        return list(tags)
