"""
ecs_sd/ecs - ECS 인벤토리 접근 계층

    ECSClient (Protocol)
    ├── BotoECSClient     boto3 pass-through
    └── CachedECSClient   TTL 캐시 데코레이터

Usage:
    from ecs_sd.ecs import BotoECSClient, CachedECSClient

    client = CachedECSClient(BotoECSClient(region_name="ap-northeast-2"))
"""

from .cache import CachedECSClient
from .client import BotoECSClient, ECSClient, get_client
from .types import Cluster, Container, NetworkInterface, Tag, TargetGroup, Task

__all__ = [
    "BotoECSClient",
    "CachedECSClient",
    "Cluster",
    "Container",
    "ECSClient",
    "NetworkInterface",
    "Tag",
    "TargetGroup",
    "Task",
    "get_client",
]
