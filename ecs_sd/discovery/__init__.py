"""
ecs_sd/discovery - ECS 타겟 수집과 HTTP 엔드포인트

Usage:
    from ecs_sd.discovery import Aggregator, DiscoveryServer

    aggregator = Aggregator(client, clusters=["prod"])
    DiscoveryServer(aggregator, addr=":10101").run()
"""

from .aggregator import DEFAULT_METRICS_PORT, METRICS_PORT_TAG, Aggregator
from .labels import tag_label_name, tags_to_labels
from .server import SHUTDOWN_GRACE_PERIOD, TARGETS_PATH, DiscoveryServer, create_app, render_targets

__all__ = [
    "Aggregator",
    "DEFAULT_METRICS_PORT",
    "DiscoveryServer",
    "METRICS_PORT_TAG",
    "SHUTDOWN_GRACE_PERIOD",
    "TARGETS_PATH",
    "create_app",
    "render_targets",
    "tag_label_name",
    "tags_to_labels",
]
