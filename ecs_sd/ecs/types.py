"""
ecs_sd/ecs/types.py - ECS inventory dataclasses

Transient records rebuilt on every discovery pass from ECS API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

HEALTH_STATUS_HEALTHY = "HEALTHY"


def last_path_segment(arn: str) -> str:
    """Return the part of an ARN after the last '/'"""
    return arn[arn.rfind("/") + 1 :]


def service_name_from_arn(arn: str) -> str:
    """arn:aws:ecs:...:service/cluster/web -> web"""
    return last_path_segment(arn)


@dataclass(frozen=True)
class Cluster:
    """ECS cluster"""

    name: str
    arn: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Cluster:
        return cls(name=data.get("clusterName", ""), arn=data.get("clusterArn", ""))


@dataclass(frozen=True)
class Tag:
    """Resource tag"""

    key: str
    value: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Tag:
        return cls(key=data.get("key", ""), value=data.get("value", ""))


@dataclass(frozen=True)
class NetworkInterface:
    """awsvpc network interface attached to a container"""

    private_ipv4: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> NetworkInterface:
        return cls(private_ipv4=data.get("privateIpv4Address"))


@dataclass(frozen=True)
class Container:
    """Container of a task"""

    name: str = ""
    network_interfaces: tuple[NetworkInterface, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Container:
        return cls(
            name=data.get("name", ""),
            network_interfaces=tuple(NetworkInterface.from_api(n) for n in data.get("networkInterfaces", [])),
        )


@dataclass(frozen=True)
class Task:
    """ECS task

    Publishable only when healthy and reachable through a private address.
    """

    arn: str
    health_status: str = "UNKNOWN"
    last_status: str = ""
    containers: tuple[Container, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Task:
        return cls(
            arn=data.get("taskArn", ""),
            health_status=data.get("healthStatus", "UNKNOWN"),
            last_status=data.get("lastStatus", ""),
            containers=tuple(Container.from_api(c) for c in data.get("containers", [])),
        )

    @property
    def task_id(self) -> str:
        return last_path_segment(self.arn)

    @property
    def private_ipv4(self) -> str | None:
        """First private address across containers and their interfaces"""
        for container in self.containers:
            for eni in container.network_interfaces:
                if eni.private_ipv4:
                    return eni.private_ipv4
        return None

    @property
    def is_healthy(self) -> bool:
        return self.health_status == HEALTH_STATUS_HEALTHY


@dataclass
class TargetGroup:
    """Prometheus HTTP SD target group"""

    source: str
    labels: dict[str, str] = field(default_factory=dict)
    targets: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "labels": dict(self.labels),
            "targets": list(self.targets),
        }
