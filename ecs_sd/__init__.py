# ecs_sd/__init__.py
"""
ecs_sd - ECS Prometheus 서비스 디스커버리

ECS 클러스터에서 실행 중인 task를 찾아 Prometheus HTTP SD 타겟 목록으로
제공합니다. Prometheus는 이 서비스의 엔드포인트만 폴링하면 됩니다.

아키텍처:
    ecs_sd/
    ├── cache/          # TTL 캐시 (백그라운드 sweep, stale 읽기)
    ├── ecs/            # ECS 인벤토리 클라이언트 (boto3 / 캐싱 데코레이터)
    ├── discovery/      # 타겟 수집기, 라벨 변환, HTTP 엔드포인트
    ├── config.py       # 중앙 설정 관리
    └── exceptions.py   # 통합 예외 계층

흐름:
    HTTP (GET /prometheus-targets)
      → Aggregator.collect()
        → CachedECSClient (캐시 히트) / BotoECSClient (upstream)
"""

__version__ = "0.1.0"
