"""
ecs_sd/cache/ttl.py - 만료 시간 기반 메모리 캐시

임의의 키/값을 만료 시각과 함께 저장하는 스레드 안전 캐시입니다.

특징:
    - 항목별 TTL (0 이하이면 만료되지 않음)
    - 기본 TTL로 저장하는 set_default
    - stale 읽기: 만료되었지만 남아있는 값을 "신선하지 않음" 표시와 함께 반환
    - 백그라운드 sweep 스레드: 한 번 저장되고 다시 읽히지 않는 키의 메모리 회수

조회 결과는 세 가지 상태(FRESH / STALE / MISS)를 구분합니다.
"값이 아예 없음"과 "값은 있지만 오래됨"을 호출 측에서 구분해야 하기 때문입니다.

Usage:
    from datetime import timedelta
    from ecs_sd.cache import TTLCache

    with TTLCache(
        default_ttl=timedelta(minutes=15),
        sweep_interval=timedelta(minutes=30),
        return_stale=True,
    ) as cache:
        cache.set("clusters", clusters, timedelta(hours=1))

        lookup = cache.get("clusters")
        if lookup.found:
            use(lookup.value)
        elif lookup.stale:
            fallback = lookup.value  # upstream 실패 시 대체용
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable, Iterator
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Union

logger = logging.getLogger(__name__)

Duration = Union[timedelta, float, int]


def _to_seconds(duration: Duration | None) -> float | None:
    """timedelta/숫자를 초 단위 float로 변환 (None은 그대로)"""
    if duration is None:
        return None
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


# =============================================================================
# 조회 결과
# =============================================================================


class LookupState(Enum):
    """캐시 조회 결과 상태"""

    FRESH = "fresh"  # 유효한 값
    STALE = "stale"  # 만료되었지만 남아있는 값 (return_stale 설정 시)
    MISS = "miss"  # 값 없음


@dataclass(frozen=True)
class CacheLookup:
    """캐시 조회 결과

    Attributes:
        value: 캐시된 값 (MISS이면 None)
        state: 조회 상태
    """

    value: Any = None
    state: LookupState = LookupState.MISS

    @property
    def found(self) -> bool:
        """유효한(만료되지 않은) 값이면 True"""
        return self.state is LookupState.FRESH

    @property
    def stale(self) -> bool:
        """만료된 값이 반환되었으면 True"""
        return self.state is LookupState.STALE

    @property
    def missing(self) -> bool:
        """값이 전혀 없으면 True"""
        return self.state is LookupState.MISS


_MISS = CacheLookup()


# =============================================================================
# 캐시 항목 / 통계
# =============================================================================


@dataclass
class CacheEntry:
    """캐시 항목

    Attributes:
        value: 캐시된 값
        expires_at: 만료 시각 (clock 기준 초, None이면 만료되지 않음)
    """

    value: Any
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.expires_at is None:
            return False
        return now > self.expires_at


@dataclass
class CacheStats:
    """캐시 통계 (스레드 안전)

    Attributes:
        hits: 유효한 값 반환 횟수
        stale_hits: 만료된 값 반환 횟수
        misses: 미스 횟수
        sets: 저장 횟수
        evictions: sweep으로 제거된 항목 수
    """

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    hits: int = 0
    stale_hits: int = 0
    misses: int = 0
    sets: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        """캐시 히트율 (0.0 ~ 1.0, stale 반환은 히트로 세지 않음)"""
        total = self.hits + self.stale_hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def add_hit(self) -> None:
        with self._lock:
            self.hits += 1

    def add_stale_hit(self) -> None:
        with self._lock:
            self.stale_hits += 1

    def add_miss(self) -> None:
        with self._lock:
            self.misses += 1

    def add_set(self) -> None:
        with self._lock:
            self.sets += 1

    def add_eviction(self, count: int = 1) -> None:
        with self._lock:
            self.evictions += count

    def summary(self) -> str:
        """통계 요약 문자열"""
        return (
            f"hits={self.hits}, stale_hits={self.stale_hits}, misses={self.misses}, "
            f"hit_rate={self.hit_rate:.1%}, evictions={self.evictions}"
        )


# =============================================================================
# TTLCache
# =============================================================================


class TTLCache:
    """만료 시간 기반 스레드 안전 캐시

    threading.RLock으로 보호되는 dict를 저장소로 사용합니다.
    sweep 스레드는 만료 항목 목록을 스냅샷으로 뜬 뒤 항목 단위로
    잠금을 잡아 제거하므로, 읽기/쓰기를 오래 막지 않습니다.

    Args:
        default_ttl: set_default에서 사용할 TTL (None 또는 0 이하이면 만료 없음)
        sweep_interval: 백그라운드 sweep 주기 (None이면 sweep 스레드 없음)
        return_stale: True면 만료된 값을 STALE 상태로 반환
        clock: 단조 증가 시간 함수 (테스트용 주입)
    """

    def __init__(
        self,
        default_ttl: Duration | None = None,
        sweep_interval: Duration | None = None,
        return_stale: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[Hashable, CacheEntry] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._default_ttl = _to_seconds(default_ttl)
        self._return_stale = return_stale
        self._stats = CacheStats()
        self._closed = False
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

        interval = _to_seconds(sweep_interval)
        if interval is not None and interval <= 0:
            raise ValueError("sweep interval must be greater than 0")
        self._sweep_interval = interval

        if interval is not None:
            self._sweeper = threading.Thread(target=self._sweep_loop, name="ttl-cache-sweeper", daemon=True)
            self._sweeper.start()

    def __enter__(self) -> TTLCache:
        return self

    def __exit__(self, *args) -> None:
        if not self._closed:
            self.close()

    @property
    def stats(self) -> CacheStats:
        """캐시 통계 반환"""
        return self._stats

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("cache is closed")

    # -------------------------------------------------------------------------
    # 조회 / 저장
    # -------------------------------------------------------------------------

    def get(self, key: Hashable) -> CacheLookup:
        """키에 해당하는 값 조회

        만료된 항목은 여기서 삭제하지 않습니다. stale 대체 값으로
        쓰일 수 있어야 하므로 제거는 sweep이 담당합니다.

        Args:
            key: 캐시 키

        Returns:
            CacheLookup (FRESH / STALE / MISS)
        """
        with self._lock:
            self._check_open()
            entry = self._entries.get(key)

        if entry is None:
            self._stats.add_miss()
            return _MISS

        if entry.is_expired(self._clock()):
            if self._return_stale:
                self._stats.add_stale_hit()
                return CacheLookup(entry.value, LookupState.STALE)
            self._stats.add_miss()
            return _MISS

        self._stats.add_hit()
        return CacheLookup(entry.value, LookupState.FRESH)

    def set(self, key: Hashable, value: Any, ttl: Duration | None) -> None:
        """지정한 TTL로 값 저장 (기존 항목 덮어쓰기)

        Args:
            key: 캐시 키
            value: 저장할 값
            ttl: 유효 기간. 0 이하 또는 None이면 만료되지 않음
        """
        seconds = _to_seconds(ttl)
        expires_at = None
        if seconds is not None and seconds > 0:
            expires_at = self._clock() + seconds

        with self._lock:
            self._check_open()
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
        self._stats.add_set()

    def set_default(self, key: Hashable, value: Any) -> None:
        """기본 TTL로 값 저장"""
        self.set(key, value, self._default_ttl)

    def delete(self, key: Hashable) -> None:
        """키 삭제 (없으면 무시)"""
        with self._lock:
            self._check_open()
            self._entries.pop(key, None)

    def items(self) -> Iterator[tuple[Hashable, Any]]:
        """만료되지 않은 (키, 값) 순회

        호출 시점의 스냅샷을 순회하므로 순회 중 캐시를 수정해도 안전합니다.
        순서는 보장하지 않으며, 호출 측에서 break로 중단할 수 있습니다.
        """
        now = self._clock()
        with self._lock:
            self._check_open()
            snapshot = list(self._entries.items())

        for key, entry in snapshot:
            if entry.is_expired(now):
                continue
            yield key, entry.value

    def __len__(self) -> int:
        """유효한 캐시 항목 수"""
        return sum(1 for _ in self.items())

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key).found

    # -------------------------------------------------------------------------
    # 만료 항목 정리
    # -------------------------------------------------------------------------

    def sweep(self) -> int:
        """만료된 항목 제거 (sweep 스레드가 주기적으로 호출)

        Returns:
            제거된 항목 수
        """
        now = self._clock()
        with self._lock:
            if self._closed:
                return 0
            snapshot = list(self._entries.items())

        removed = 0
        for key, entry in snapshot:
            if not entry.is_expired(now):
                continue
            with self._lock:
                # 스냅샷 이후 새 값으로 갱신된 항목은 유지
                current = self._entries.get(key)
                if current is not None and current.is_expired(now):
                    del self._entries[key]
                    removed += 1

        if removed:
            self._stats.add_eviction(removed)
        return removed

    def _sweep_loop(self) -> None:
        assert self._sweep_interval is not None
        while not self._stop_event.wait(self._sweep_interval):
            removed = self.sweep()
            if removed:
                logger.debug("TTLCache: 만료 항목 %d개 정리", removed)

    def close(self) -> None:
        """sweep 스레드를 멈추고 저장소를 비움

        두 번 호출하면 RuntimeError가 발생합니다.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("cache already closed")
            self._closed = True

        self._stop_event.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join()

        with self._lock:
            size = len(self._entries)
            self._entries.clear()

        logger.debug("TTLCache: 캐시 종료 (size=%d, %s)", size, self._stats.summary())
