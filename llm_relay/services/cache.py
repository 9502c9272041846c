import asyncio
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from llm_relay.core.metrics import CACHE_ENTRIES_GAUGE, CACHE_EVICTION_COUNTER

log = logging.getLogger(__name__)

DEFAULT_TTL = 7 * 24 * 60 * 60
DEFAULT_SWEEP_INTERVAL = 10 * 60


def fingerprint(system: str, prompt: str) -> str:
    """``system + prompt`` 的 SHA-256 hex digest。

    兩段直接串接、中間沒有分隔字元，所以 ("ab", "c") 與 ("a", "bc")
    會得到同一個 fingerprint。
    """
    return hashlib.sha256((system + prompt).encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    value: str
    expires_at: float


class ResponseCache:
    """記憶體內的回應快取：key 為 fingerprint，只依時間過期（無 LRU / 容量上限）。

    過期資料不會被 get() 回傳，並由背景 sweep 定期清掉。
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ---- public API ----
    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() >= entry.expires_at:
                return None
            return entry.value

    def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
            size = len(self._entries)
        CACHE_ENTRIES_GAUGE.set(size)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            size = len(self._entries)
        CACHE_ENTRIES_GAUGE.set(size)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        CACHE_ENTRIES_GAUGE.set(0)

    def purge_expired(self) -> int:
        """清掉過期資料，回傳刪除筆數。"""
        with self._lock:
            keys = list(self._entries)

        removed = 0
        for key in keys:
            # 一次只鎖一筆，避免長時間卡住 get/set
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and self._clock() >= entry.expires_at:
                    del self._entries[key]
                    removed += 1

        size = len(self)
        CACHE_ENTRIES_GAUGE.set(size)
        if removed:
            CACHE_EVICTION_COUNTER.inc(removed)
        log.info("[CACHE] sweep removed=%d remaining=%d", removed, size)
        return removed

    # ---- sweep lifecycle ----
    @property
    def is_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """在目前的 event loop 上排程定期 sweep。"""
        if self.is_running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
        log.info("[CACHE] sweeper started interval=%ss ttl=%ss", self.sweep_interval, self.ttl)

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        log.info("[CACHE] sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.purge_expired()
            except Exception:
                log.exception("[CACHE] sweep failed")
