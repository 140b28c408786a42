import threading
import time
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from prometheus_client import Counter

cache_lookups_total = Counter(
    'tracker_cache_lookups_total',
    'TTL cache lookups',
    ['result']
)

_MISSING = object()


class TTLCache:
    """
    Cache en memoria clave -> (dato, timestamp) con tiempo de vida fijo.
    Las entradas más viejas que el TTL se consideran ausentes y se barren
    al guardar; el número de entradas está acotado por max_entries.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic,
                 max_entries: int = 10000):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._loading: Dict[Hashable, threading.Lock] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def _lookup(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        data, stored_at = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return _MISSING
        return data

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, stored_at) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now

    def _store(self, key: Hashable, data: Any) -> None:
        # Se llama con self._lock tomado
        now = self._clock()
        if now - self._last_sweep >= self.ttl_seconds or len(self._entries) >= self.max_entries:
            self._sweep(now)
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            # dict conserva el orden de inserción: la primera es la más vieja
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (data, now)

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            data = self._lookup(key)
        return default if data is _MISSING else data

    def set(self, key: Hashable, data: Any) -> None:
        with self._lock:
            self._store(key, data)

    def get_or_fetch(self, key: Hashable, fetch: Callable[[], Any]) -> Any:
        """
        Devuelve el dato en cache o lo obtiene con `fetch` y lo guarda.
        `fetch` corre fuera del lock general; las lecturas simultáneas de la
        misma clave vencida esperan a una sola carga. Los errores de `fetch`
        se propagan y no se guardan.
        """
        with self._lock:
            data = self._lookup(key)
            if data is not _MISSING:
                cache_lookups_total.labels(result='hit').inc()
                return data
            key_lock = self._loading.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                data = self._lookup(key)
            if data is not _MISSING:
                cache_lookups_total.labels(result='hit').inc()
                return data

            cache_lookups_total.labels(result='miss').inc()
            try:
                data = fetch()
                with self._lock:
                    self._store(key, data)
            finally:
                with self._lock:
                    if self._loading.get(key) is key_lock:
                        del self._loading[key]
            return data

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            keys: List[Hashable] = list(self._entries.keys())
        return {"size": len(keys), "ttl_seconds": self.ttl_seconds, "keys": [str(k) for k in keys]}


_question_cache: Optional[TTLCache] = None


def get_question_cache() -> TTLCache:
    """
    Dependency que entrega el cache de preguntas del proceso.
    """
    global _question_cache
    if _question_cache is None:
        from app.core.config import settings
        _question_cache = TTLCache(
            ttl_seconds=settings.QUESTION_CACHE_TTL_SECONDS,
            max_entries=settings.QUESTION_CACHE_MAX_ENTRIES,
        )
    return _question_cache
