"""
ecs_sd/discovery/server.py - HTTP 서비스 디스커버리 엔드포인트

Prometheus http_sd_config가 폴링하는 단일 엔드포인트를 제공합니다.

    GET /prometheus-targets  ->  200, application/json
    [
      {"source": "prod/web", "labels": {...}, "targets": ["10.0.0.5:80"]},
      ...
    ]

요청마다 수집 패스를 동기로 실행합니다 (FastAPI 동기 핸들러는 워커
스레드 풀에서 실행됨). 수집이 실패해도 로그만 남기고 JSON 본문은 항상
응답합니다.

수명주기:
    DiscoveryServer.run()은 SIGINT/SIGTERM을 받으면 새 연결 수락을 멈추고
    진행 중인 요청을 최대 15초 기다립니다. 정상 종료, 강제 종료(유예 시간
    초과), 시작 실패를 서로 다른 결과로 보고합니다.
"""

from __future__ import annotations

import json
import logging
import signal
import threading
from collections.abc import Iterable
from typing import Any

import uvicorn
from fastapi import FastAPI
from fastapi.responses import Response

from ecs_sd.config import DEFAULT_HTTP_ADDR, parse_listen_addr
from ecs_sd.ecs.types import TargetGroup
from ecs_sd.exceptions import AggregationError, ServerStartError, ShutdownTimeoutError

from .aggregator import Aggregator

TARGETS_PATH = "/prometheus-targets"
SHUTDOWN_GRACE_PERIOD = 15.0  # 초

# 서버 스레드 상태 확인 주기 (초)
_POLL_INTERVAL = 0.2


def render_targets(groups: Iterable[TargetGroup]) -> str:
    """타겟 그룹 목록을 들여쓰기된 JSON으로 직렬화"""
    return json.dumps([group.to_dict() for group in groups], indent=2)


def create_app(aggregator: Aggregator, logger: logging.Logger | None = None) -> FastAPI:
    """디스커버리 FastAPI 앱 생성

    Args:
        aggregator: 요청마다 collect()를 호출할 수집기
        logger: 주입할 logger (None이면 모듈 logger)

    Returns:
        FastAPI 앱
    """
    log = logger or logging.getLogger(__name__)
    app = FastAPI(
        title="ECS Prometheus Service Discovery",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.aggregator = aggregator

    @app.get(TARGETS_PATH)
    def prometheus_targets() -> Response:
        groups: list[TargetGroup] = []
        try:
            groups = aggregator.collect()
        except AggregationError as e:
            log.error("build scrape config failed: %s", e)
        except Exception:
            log.exception("build scrape config failed")

        try:
            body = render_targets(groups)
        except (TypeError, ValueError) as e:
            log.error("encoding scrape config failed: %s", e)
            body = "[]"

        return Response(content=body, media_type="application/json")

    return app


class DiscoveryServer:
    """uvicorn 기반 HTTP 서버 수명주기 관리

    uvicorn은 백그라운드 스레드에서 실행되고, 호출 스레드는 종료 신호와
    서버 스레드 상태를 감시합니다. 유예 시간을 넘긴 요청은 강제로
    중단하지 않고 버려둡니다 (daemon 스레드).

    Args:
        aggregator: 수집기
        addr: 리스너 주소 (host:port)
        logger: 주입할 logger
        grace_period: graceful shutdown 유예 시간 (초)
    """

    def __init__(
        self,
        aggregator: Aggregator,
        addr: str = DEFAULT_HTTP_ADDR,
        logger: logging.Logger | None = None,
        grace_period: float = SHUTDOWN_GRACE_PERIOD,
    ) -> None:
        self._aggregator = aggregator
        self._addr = addr
        self._host, self._port = parse_listen_addr(addr)
        self._logger = logger or logging.getLogger(__name__)
        self._grace_period = grace_period
        self._app = create_app(aggregator, self._logger)
        self._server: uvicorn.Server | None = None

    @property
    def app(self) -> FastAPI:
        return self._app

    @property
    def started(self) -> bool:
        """리스너가 연결을 받을 준비가 되었으면 True"""
        return self._server is not None and self._server.started

    @property
    def port(self) -> int:
        """실제 바인딩된 포트 (port 0으로 시작한 경우 확인용)"""
        if self._server is not None and self._server.started:
            for server in getattr(self._server, "servers", []):
                for sock in server.sockets:
                    return sock.getsockname()[1]
        return self._port

    def _build_server(self) -> uvicorn.Server:
        config = uvicorn.Config(
            self._app,
            host=self._host,
            port=self._port,
            lifespan="off",
            access_log=False,
            # 프로세스 로깅 설정(cli.ui.console)을 그대로 사용
            log_config=None,
        )
        return uvicorn.Server(config)

    def serve(self, stop_event: threading.Event) -> None:
        """stop_event가 설정될 때까지 서버 실행

        Raises:
            ServerStartError: 종료 요청 전에 서버 스레드가 끝난 경우
            ShutdownTimeoutError: 유예 시간 내에 종료되지 않은 경우
        """
        server = self._build_server()
        self._server = server
        thread = threading.Thread(target=server.run, name="ecs-sd-http", daemon=True)

        self._logger.info(
            "service discovery starting in HTTP-based mode: clusters=%s",
            self._aggregator.clusters,
        )
        self._logger.info("starting service discovery HTTP server: addr=%s", self._addr)
        thread.start()

        while not stop_event.wait(_POLL_INTERVAL):
            if not thread.is_alive():
                raise ServerStartError(self._addr)

        self._logger.info("service shutting down gracefully")
        server.should_exit = True
        thread.join(self._grace_period)

        if thread.is_alive():
            # 진행 중인 요청 대기를 중단시키고 스레드는 버림
            server.force_exit = True
            raise ShutdownTimeoutError(self._grace_period)

        self._logger.info("service gracefully stopped")

    def run(self) -> None:
        """SIGINT/SIGTERM을 받을 때까지 서버 실행 (메인 스레드에서 호출)"""
        stop_event = threading.Event()

        def _handle_signal(signum: int, frame: Any) -> None:
            self._logger.info("received signal %s", signal.Signals(signum).name)
            stop_event.set()

        previous = {sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            self.serve(stop_event)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
