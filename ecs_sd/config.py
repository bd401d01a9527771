"""
ecs_sd/config.py - 중앙 설정 관리

프로세스 설정을 Settings 데이터클래스 하나로 모읍니다. 값은 CLI 옵션과
환경 변수(cli.app 참고)에서 채워지며, 생성 시점에 검증하여 잘못된 설정은
요청 처리 전에 ConfigError로 실패합니다.

Usage:
    from ecs_sd.config import Settings

    settings = Settings(ecs_clusters=["prod", "stg"], http_addr=":10101")
    host, port = settings.listen_address
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ecs_sd.exceptions import ConfigError

DEFAULT_HTTP_ADDR = ":10101"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_MAX_WORKERS = 8

# --log.level 값 → logging 레벨
LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(value: str) -> int:
    """로그 레벨 문자열 변환 (알 수 없는 값은 ERROR)"""
    return LOG_LEVELS.get(value.strip().lower(), logging.ERROR)


def parse_listen_addr(addr: str) -> tuple[str, int]:
    """리스너 주소를 (host, port)로 분리

    Examples:
        ":10101"          -> ("0.0.0.0", 10101)
        "127.0.0.1:8080"  -> ("127.0.0.1", 8080)
        "[::1]:9000"      -> ("::1", 9000)

    Raises:
        ConfigError: 형식이 잘못되었거나 포트가 범위를 벗어난 경우
    """
    host, sep, port_str = addr.strip().rpartition(":")
    if not sep:
        raise ConfigError("http.addr", f"missing port in address '{addr}'")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ConfigError("http.addr", f"IPv6 address must be bracketed: '{addr}'")

    try:
        port = int(port_str)
    except ValueError as e:
        raise ConfigError("http.addr", f"invalid port '{port_str}'", cause=e) from e

    if not 0 <= port <= 65535:
        raise ConfigError("http.addr", f"port out of range: {port}")

    return host or "0.0.0.0", port


def split_csv(values: tuple[str, ...] | list[str]) -> list[str]:
    """콤마 구분 값 펼치기 (공백/빈 항목 제거, 순서 유지)"""
    result: list[str] = []
    for value in values:
        for item in value.split(","):
            item = item.strip()
            if item and item not in result:
                result.append(item)
    return result


@dataclass
class Settings:
    """서비스 디스커버리 설정

    Attributes:
        ecs_clusters: 대상 ECS 클러스터 이름 (필수, 1개 이상)
        http_addr: HTTP 리스너 주소 (host:port)
        log_level: 로그 레벨 (debug, info, warn, error)
        aws_region: AWS 리전 (None이면 기본 자격증명 체인)
        aws_profile: AWS 프로파일 (None이면 기본 자격증명 체인)
        max_workers: 서비스 병렬 조회 스레드 수
    """

    ecs_clusters: list[str] = field(default_factory=list)
    http_addr: str = DEFAULT_HTTP_ADDR
    log_level: str = DEFAULT_LOG_LEVEL
    aws_region: str | None = None
    aws_profile: str | None = None
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        self.ecs_clusters = split_csv(self.ecs_clusters)
        if not self.ecs_clusters:
            raise ConfigError("ecs.clusters", "ecs clusters must not be empty")
        if self.max_workers < 1:
            raise ConfigError("max_workers", f"must be >= 1, got {self.max_workers}")
        # 주소 형식 검증
        parse_listen_addr(self.http_addr)

    @property
    def listen_address(self) -> tuple[str, int]:
        return parse_listen_addr(self.http_addr)

    @property
    def log_level_value(self) -> int:
        return parse_log_level(self.log_level)
