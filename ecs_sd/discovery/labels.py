"""
ecs_sd/discovery/labels.py - Prometheus 메타 라벨

ECS 서비스 태그를 Prometheus 라벨 이름 규칙([a-zA-Z_][a-zA-Z0-9_]*)에 맞게
변환합니다. 변환은 순수 함수이며 입력이 같으면 결과도 항상 같습니다.

    Metrics-Port  -> __meta_ecs_service_tag_metrics_port
    CamelCaseKey  -> __meta_ecs_service_tag_camel_case_key
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ecs_sd.ecs.types import Tag

META_LABEL_PREFIX = "__meta_"
LABEL_ECS_PREFIX = META_LABEL_PREFIX + "ecs_"
LABEL_SERVICE_TAG_PREFIX = LABEL_ECS_PREFIX + "service_tag_"

LABEL_CLUSTER_NAME = LABEL_ECS_PREFIX + "cluster_name"
LABEL_SERVICE_NAME = LABEL_ECS_PREFIX + "service_name"
LABEL_TASK_ID = LABEL_ECS_PREFIX + "task_id"

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def tag_label_name(key: str, prefix: str = LABEL_SERVICE_TAG_PREFIX) -> str:
    """태그 키를 라벨 이름으로 변환

    1. 허용되지 않는 문자를 '_'로 치환
    2. 소문자 다음 대문자 사이에 '_' 삽입 (camelCase 분리)
    3. 소문자 변환
    4. prefix 부착
    """
    name = _INVALID_CHARS.sub("_", key)
    name = _CAMEL_BOUNDARY.sub(r"\1_\2", name)
    return prefix + name.lower()


def tags_to_labels(tags: Iterable[Tag]) -> dict[str, str]:
    """태그 목록을 라벨 딕셔너리로 변환 (값은 그대로)"""
    return {tag_label_name(tag.key): tag.value for tag in tags}


def get_tag(tags: Iterable[Tag], key: str) -> str:
    """키가 일치하는 첫 태그 값 (없으면 빈 문자열)"""
    for tag in tags:
        if tag.key == key:
            return tag.value
    return ""
