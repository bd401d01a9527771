"""
ecs_sd/discovery/aggregator.py - ECS 타겟 수집

cluster → service → task → tag 계층을 탐색하여 Prometheus 타겟 그룹 목록을
만듭니다. 요청마다 한 번의 수집 패스를 수행하며, 동시 요청 간 중복 제거는
하지 않습니다 (캐싱은 ECSClient 구현에 맡김).

수집 패스:
    1. 설정된 클러스터 조회 (하나도 없으면 실패)
    2. 클러스터별 서비스 목록 조회
    3. 서비스별로 task 목록 → task 상세 → 서비스 태그 조회
       (서비스 단위 작업은 ThreadPoolExecutor로 병렬 처리)
    4. 태그에서 metrics_port 추출 (기본 "80")
    5. healthy이고 private IP가 있는 task마다 타겟 그룹 1개 생성

Example:
    from ecs_sd.discovery import Aggregator

    aggregator = Aggregator(client, clusters=["prod"])
    groups = aggregator.collect()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from ecs_sd.ecs.client import ECSClient
from ecs_sd.ecs.types import Cluster, TargetGroup, service_name_from_arn
from ecs_sd.exceptions import AggregationError, ConfigError

from .labels import (
    LABEL_CLUSTER_NAME,
    LABEL_SERVICE_NAME,
    LABEL_TASK_ID,
    get_tag,
    tags_to_labels,
)

METRICS_PORT_TAG = "metrics_port"
DEFAULT_METRICS_PORT = "80"

DEFAULT_MAX_WORKERS = 8


class Aggregator:
    """ECS 타겟 수집기

    Args:
        client: ECSClient 구현 (캐싱 여부와 무관)
        clusters: 대상 클러스터 이름 목록 (비어 있으면 ConfigError)
        logger: 주입할 logger (None이면 모듈 logger)
        max_workers: 서비스 병렬 처리 스레드 수
    """

    def __init__(
        self,
        client: ECSClient,
        clusters: Sequence[str],
        logger: logging.Logger | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if client is None:
            raise ConfigError("ecs.client", "aws ecs client must not be None")
        if not clusters:
            raise ConfigError("ecs.clusters", "ecs clusters must not be empty")
        if max_workers < 1:
            raise ConfigError("max_workers", f"must be >= 1, got {max_workers}")

        self._client = client
        self._clusters = list(clusters)
        self._logger = logger or logging.getLogger(__name__)
        self._max_workers = max_workers

    @property
    def clusters(self) -> list[str]:
        return list(self._clusters)

    def collect(self) -> list[TargetGroup]:
        """수집 패스 1회 실행

        Returns:
            타겟 그룹 목록 (upstream 반환 순서)

        Raises:
            AggregationError: 유효한 클러스터가 없거나 upstream 오류 발생 시
        """
        self._logger.info("scraping ECS targets: clusters=%s", self._clusters)

        try:
            clusters = self._client.describe_clusters(self._clusters)
        except Exception as e:
            raise AggregationError("describe clusters failed", clusters=self._clusters, cause=e) from e

        if not clusters:
            raise AggregationError("no valid clusters found", clusters=self._clusters)

        groups: list[TargetGroup] = []
        for cluster in clusters:
            groups.extend(self._collect_cluster(cluster))

        self._logger.info("scraped ECS targets: clusters=%s, targets=%d", self._clusters, len(groups))
        return groups

    def _collect_cluster(self, cluster: Cluster) -> list[TargetGroup]:
        self._logger.info("listing ECS services: cluster=%s", cluster.name)

        try:
            service_arns = self._client.list_services(cluster.arn)
        except Exception as e:
            raise AggregationError("listing ECS services failed", cluster=cluster.name, cause=e) from e

        if not service_arns:
            return []

        groups: list[TargetGroup] = []
        workers = min(self._max_workers, len(service_arns))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ecs-sd") as executor:
            futures = [executor.submit(self._collect_service, cluster, arn) for arn in service_arns]
            try:
                for future in futures:
                    groups.extend(future.result())
            except Exception:
                # 첫 오류에서 패스 중단, 아직 시작하지 않은 서비스는 취소
                for future in futures:
                    future.cancel()
                raise

        return groups

    def _collect_service(self, cluster: Cluster, service_arn: str) -> list[TargetGroup]:
        service_name = service_name_from_arn(service_arn)
        self._logger.info("listing ECS tasks: cluster=%s, service=%s", cluster.name, service_name)

        try:
            task_arns = self._client.list_tasks(cluster.arn, service_arn)
        except Exception as e:
            raise AggregationError(
                "listing ECS tasks failed", cluster=cluster.name, service=service_name, cause=e
            ) from e

        try:
            tasks = self._client.describe_tasks(cluster.arn, task_arns)
        except Exception as e:
            raise AggregationError(
                "describing tasks failed", cluster=cluster.name, service=service_name, cause=e
            ) from e

        # 태그는 클러스터가 아닌 서비스 ARN 기준
        try:
            tags = self._client.list_tags_for_resource(service_arn)
        except Exception as e:
            raise AggregationError(
                "listing ECS tags failed", cluster=cluster.name, service=service_name, cause=e
            ) from e

        metrics_port = get_tag(tags, METRICS_PORT_TAG) or DEFAULT_METRICS_PORT
        tag_labels = tags_to_labels(tags)
        source = f"{cluster.name}/{service_name}"

        groups: list[TargetGroup] = []
        for task in tasks:
            ip = task.private_ipv4
            if ip is None:
                self._logger.debug(
                    "ECS task has no network interfaces: cluster=%s, service=%s, task=%s",
                    cluster.name,
                    service_name,
                    task.arn,
                )
                continue

            if not task.is_healthy:
                self._logger.debug(
                    "ECS task is unhealthy: cluster=%s, service=%s, task=%s, health=%s",
                    cluster.name,
                    service_name,
                    task.arn,
                    task.health_status,
                )
                continue

            labels = dict(tag_labels)
            labels.update(
                {
                    LABEL_CLUSTER_NAME: cluster.name,
                    LABEL_SERVICE_NAME: service_name,
                    LABEL_TASK_ID: task.task_id,
                }
            )
            groups.append(TargetGroup(source=source, labels=labels, targets=[f"{ip}:{metrics_port}"]))

        return groups
