"""
tests/ecs/test_ecs_client.py - BotoECSClient 테스트

boto3 client는 MagicMock으로 대체하고, 마지막에 moto 기반 통합 테스트를 둡니다.
"""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import EndpointConnectionError

from ecs_sd.ecs.client import DESCRIBE_TASKS_BATCH_SIZE, BotoECSClient, get_client
from ecs_sd.ecs.types import Cluster, Tag
from ecs_sd.exceptions import APICallError


def _paginator(pages):
    paginator = MagicMock()
    paginator.paginate.return_value = iter(pages)
    return paginator


@pytest.fixture
def boto_client():
    """boto3 ECS client 모킹"""
    return MagicMock()


# =============================================================================
# get_client
# =============================================================================


class TestGetClient:
    """retry 설정 client 생성"""

    def test_applies_retry_config(self):
        session = MagicMock()

        get_client(session, "ecs", region_name="ap-northeast-2")

        _, kwargs = session.client.call_args
        config = kwargs["config"]
        assert kwargs["region_name"] == "ap-northeast-2"
        assert config.retries == {"max_attempts": 5, "mode": "adaptive"}

    def test_merges_existing_config(self):
        from botocore.config import Config

        session = MagicMock()

        get_client(session, "ecs", config=Config(read_timeout=99))

        config = session.client.call_args[1]["config"]
        assert config.read_timeout == 99
        assert config.retries["mode"] == "adaptive"

    def test_boto_client_uses_session(self):
        session = MagicMock()

        BotoECSClient(session=session, region_name="us-east-1")

        assert session.client.call_args[0][0] == "ecs"


# =============================================================================
# describe_clusters
# =============================================================================


class TestDescribeClusters:
    def test_maps_clusters(self, boto_client):
        boto_client.describe_clusters.return_value = {
            "clusters": [
                {"clusterName": "prod", "clusterArn": "arn:aws:ecs:ap-northeast-2:123:cluster/prod"},
            ],
            "failures": [],
        }

        result = BotoECSClient(client=boto_client).describe_clusters(["prod"])

        boto_client.describe_clusters.assert_called_once_with(clusters=["prod"])
        assert result == [Cluster(name="prod", arn="arn:aws:ecs:ap-northeast-2:123:cluster/prod")]

    def test_logs_failures(self, boto_client):
        """조회 실패한 클러스터는 경고 로그만 남기고 제외"""
        boto_client.describe_clusters.return_value = {
            "clusters": [],
            "failures": [{"arn": "arn:aws:ecs:ap-northeast-2:123:cluster/gone", "reason": "MISSING"}],
        }

        with patch("ecs_sd.ecs.client.logger") as mock_logger:
            result = BotoECSClient(client=boto_client).describe_clusters(["gone"])

        assert result == []
        mock_logger.warning.assert_called_once()
        assert "MISSING" in mock_logger.warning.call_args[0]

    def test_wraps_client_error(self, boto_client, client_error):
        boto_client.describe_clusters.side_effect = client_error("AccessDeniedException", "not allowed")

        with pytest.raises(APICallError) as exc_info:
            BotoECSClient(client=boto_client).describe_clusters(["prod"])

        error = exc_info.value
        assert error.service == "ecs"
        assert error.operation == "describe_clusters"
        assert error.error_code == "AccessDeniedException"
        assert "not allowed" in str(error)

    def test_wraps_botocore_error(self, boto_client):
        boto_client.describe_clusters.side_effect = EndpointConnectionError(endpoint_url="https://ecs")

        with pytest.raises(APICallError) as exc_info:
            BotoECSClient(client=boto_client).describe_clusters(["prod"])

        assert exc_info.value.error_code is None
        assert isinstance(exc_info.value.cause, EndpointConnectionError)


# =============================================================================
# 페이지네이션 작업
# =============================================================================


class TestListServices:
    def test_collects_all_pages(self, boto_client):
        paginator = _paginator([{"serviceArns": ["s1", "s2"]}, {"serviceArns": ["s3"]}, {}])
        boto_client.get_paginator.return_value = paginator

        result = BotoECSClient(client=boto_client).list_services("arn:cluster")

        boto_client.get_paginator.assert_called_once_with("list_services")
        paginator.paginate.assert_called_once_with(cluster="arn:cluster")
        assert result == ["s1", "s2", "s3"]

    def test_error_during_pagination(self, boto_client, client_error):
        paginator = MagicMock()
        paginator.paginate.side_effect = client_error("ClusterNotFoundException")
        boto_client.get_paginator.return_value = paginator

        with pytest.raises(APICallError) as exc_info:
            BotoECSClient(client=boto_client).list_services("arn:cluster")

        assert exc_info.value.operation == "list_services"


class TestListTasks:
    def test_filters_by_service(self, boto_client):
        paginator = _paginator([{"taskArns": ["t1"]}, {"taskArns": ["t2"]}])
        boto_client.get_paginator.return_value = paginator

        result = BotoECSClient(client=boto_client).list_tasks("arn:cluster", "arn:service")

        paginator.paginate.assert_called_once_with(cluster="arn:cluster", serviceName="arn:service")
        assert result == ["t1", "t2"]


# =============================================================================
# describe_tasks
# =============================================================================


class TestDescribeTasks:
    def test_maps_tasks(self, boto_client):
        boto_client.describe_tasks.return_value = {
            "tasks": [
                {
                    "taskArn": "arn:aws:ecs:ap-northeast-2:123:task/prod/abc",
                    "healthStatus": "HEALTHY",
                    "lastStatus": "RUNNING",
                    "containers": [
                        {"name": "app", "networkInterfaces": [{"privateIpv4Address": "10.0.0.5"}]},
                    ],
                }
            ]
        }

        tasks = BotoECSClient(client=boto_client).describe_tasks("arn:cluster", ["abc"])

        assert len(tasks) == 1
        assert tasks[0].task_id == "abc"
        assert tasks[0].private_ipv4 == "10.0.0.5"
        assert tasks[0].is_healthy

    def test_batches_requests(self, boto_client):
        """API 제한(100개) 단위로 나누어 요청"""
        boto_client.describe_tasks.return_value = {"tasks": []}
        arns = [f"t{i}" for i in range(DESCRIBE_TASKS_BATCH_SIZE * 2 + 5)]

        BotoECSClient(client=boto_client).describe_tasks("arn:cluster", arns)

        batches = [c.kwargs["tasks"] for c in boto_client.describe_tasks.call_args_list]
        assert [len(b) for b in batches] == [100, 100, 5]
        assert sum(batches, []) == arns

    def test_empty_input_skips_api(self, boto_client):
        assert BotoECSClient(client=boto_client).describe_tasks("arn:cluster", []) == []
        boto_client.describe_tasks.assert_not_called()


class TestListTags:
    def test_maps_tags(self, boto_client):
        boto_client.list_tags_for_resource.return_value = {
            "tags": [{"key": "metrics_port", "value": "9100"}, {"key": "team", "value": "infra"}]
        }

        tags = BotoECSClient(client=boto_client).list_tags_for_resource("arn:service")

        boto_client.list_tags_for_resource.assert_called_once_with(resourceArn="arn:service")
        assert tags == [Tag("metrics_port", "9100"), Tag("team", "infra")]


# =============================================================================
# moto 기반 통합 테스트
# =============================================================================


class TestWithMoto:
    """moto ECS 모킹으로 실제 boto3 호출 경로 검증"""

    @pytest.fixture
    def service_arn(self, moto_ecs):
        moto_ecs.create_cluster(clusterName="prod")
        moto_ecs.register_task_definition(
            family="web",
            containerDefinitions=[{"name": "app", "image": "nginx", "memory": 128}],
        )
        response = moto_ecs.create_service(
            cluster="prod",
            serviceName="web",
            taskDefinition="web",
            desiredCount=0,
            tags=[{"key": "metrics_port", "value": "9100"}],
        )
        return response["service"]["serviceArn"]

    def test_cluster_service_tags(self, moto_ecs, service_arn):
        client = BotoECSClient(client=moto_ecs)

        clusters = client.describe_clusters(["prod", "missing"])
        assert [c.name for c in clusters] == ["prod"]

        services = client.list_services(clusters[0].arn)
        assert services == [service_arn]

        tags = client.list_tags_for_resource(service_arn)
        assert Tag("metrics_port", "9100") in tags
