"""
tests/conftest.py - pytest 공통 픽스처

ECS API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(fake_ecs, fake_clock, make_task):
        # fake_ecs: 호출을 기록하는 ECSClient 구현
        # fake_clock: 수동으로 진행시키는 시계 (TTL 테스트용)
        # make_task: Task 팩토리 (cluster, task_id, ip, health_status)
        fake_ecs.add_service("prod", "web", tasks=[make_task("prod", "abc")])
"""

import os
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from ecs_sd.ecs.types import Cluster, Container, NetworkInterface, Tag, Task  # noqa: E402

# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    os.environ.setdefault("AWS_DEFAULT_REGION", "ap-northeast-2")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

    yield


# =============================================================================
# 시계
# =============================================================================


class FakeClock:
    """수동으로 진행시키는 단조 시계"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """TTL 테스트용 시계"""
    return FakeClock()


# =============================================================================
# ECS 모킹
# =============================================================================

ACCOUNT = "123456789012"
REGION = "ap-northeast-2"


def cluster_arn(name: str) -> str:
    return f"arn:aws:ecs:{REGION}:{ACCOUNT}:cluster/{name}"


def service_arn(cluster: str, name: str) -> str:
    return f"arn:aws:ecs:{REGION}:{ACCOUNT}:service/{cluster}/{name}"


def task_arn(cluster: str, task_id: str) -> str:
    return f"arn:aws:ecs:{REGION}:{ACCOUNT}:task/{cluster}/{task_id}"


def make_task(
    cluster: str,
    task_id: str,
    ip: Optional[str] = "10.0.0.5",
    health_status: str = "HEALTHY",
) -> Task:
    """Task 테스트 데이터 생성 (ip=None이면 네트워크 인터페이스 없음)"""
    interfaces = (NetworkInterface(private_ipv4=ip),) if ip is not None else ()
    return Task(
        arn=task_arn(cluster, task_id),
        health_status=health_status,
        last_status="RUNNING",
        containers=(Container(name="app", network_interfaces=interfaces),),
    )


@pytest.fixture(name="make_task")
def make_task_fixture():
    """Task 팩토리"""
    return make_task


@dataclass
class FakeECSClient:
    """테스트용 ECSClient

    데이터를 dict로 구성하고, 호출 기록과 작업별 오류 주입을 지원합니다.
    """

    clusters: List[Cluster] = field(default_factory=list)
    services: Dict[str, List[str]] = field(default_factory=dict)  # cluster ARN -> service ARN
    tasks: Dict[str, List[Task]] = field(default_factory=dict)  # service ARN -> task
    tags: Dict[str, List[Tag]] = field(default_factory=dict)  # resource ARN -> tag
    errors: Dict[str, Exception] = field(default_factory=dict)  # operation -> 발생시킬 예외
    calls: List[Tuple[str, Tuple[Any, ...]]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _record(self, operation: str, *args: Any) -> None:
        with self._lock:
            self.calls.append((operation, args))
        if operation in self.errors:
            raise self.errors[operation]

    def calls_for(self, operation: str) -> List[Tuple[Any, ...]]:
        with self._lock:
            return [args for op, args in self.calls if op == operation]

    def add_service(
        self,
        cluster: str,
        service: str,
        tasks: Optional[List[Task]] = None,
        tags: Optional[List[Tag]] = None,
    ) -> str:
        """클러스터/서비스/task/태그 한 번에 등록, 서비스 ARN 반환"""
        c_arn = cluster_arn(cluster)
        if all(c.arn != c_arn for c in self.clusters):
            self.clusters.append(Cluster(name=cluster, arn=c_arn))
        s_arn = service_arn(cluster, service)
        self.services.setdefault(c_arn, []).append(s_arn)
        self.tasks[s_arn] = list(tasks or [])
        self.tags[s_arn] = list(tags or [])
        return s_arn

    def describe_clusters(self, names):
        self._record("describe_clusters", tuple(names))
        return [c for c in self.clusters if c.name in names]

    def list_services(self, cluster_arn):
        self._record("list_services", cluster_arn)
        return list(self.services.get(cluster_arn, []))

    def list_tasks(self, cluster_arn, service_name):
        self._record("list_tasks", cluster_arn, service_name)
        return [t.arn for t in self.tasks.get(service_name, [])]

    def describe_tasks(self, cluster_arn, task_arns):
        self._record("describe_tasks", cluster_arn, tuple(task_arns))
        index = {t.arn: t for tasks in self.tasks.values() for t in tasks}
        return [index[arn] for arn in task_arns if arn in index]

    def list_tags_for_resource(self, resource_arn):
        self._record("list_tags_for_resource", resource_arn)
        return list(self.tags.get(resource_arn, []))


@pytest.fixture
def fake_ecs():
    """빈 FakeECSClient"""
    return FakeECSClient()


# =============================================================================
# 유틸리티 함수
# =============================================================================


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation: str = "TestOperation",
) -> Exception:
    """ClientError 생성 헬퍼"""
    from botocore.exceptions import ClientError

    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation,
    )


@pytest.fixture(name="client_error")
def client_error_fixture():
    """ClientError 팩토리"""
    return create_mock_client_error


# =============================================================================
# moto 통합
# =============================================================================


@pytest.fixture
def aws_credentials():
    """moto 사용 시 AWS 자격 증명 설정"""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = REGION


@pytest.fixture
def moto_ecs(aws_credentials):
    """moto를 사용한 ECS 모킹"""
    import boto3
    from moto import mock_aws

    with mock_aws():
        yield boto3.client("ecs", region_name=REGION)
