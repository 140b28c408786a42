"""
Buffer de escrituras de progreso.

Las respuestas se encolan por (usuario, tema, área) y se escriben en lote:
cuando pasa el tiempo de inactividad, cuando el cliente pide una escritura
inmediata y al apagar la aplicación. No depende de ningún event loop; el reloj
se inyecta para poder probarlo.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Set

from prometheus_client import Counter

from app.schemas.progress import ProgressUpdate
from app.services.progress_aggregator import ProgressState, merge_progress

logger = logging.getLogger(__name__)

progress_flushes_total = Counter(
    'tracker_progress_flush_keys_total',
    'Progress buffer keys written, by result',
    ['result']
)


class ProgressKey(NamedTuple):
    user_id: int
    topic: str
    area: str
    email: Optional[str] = None


ProgressSink = Callable[[ProgressKey, ProgressUpdate], None]


@dataclass
class FlushReport:
    flushed: int = 0
    failed: int = 0
    pending: int = 0


def collapse_updates(updates: List[ProgressUpdate]) -> ProgressUpdate:
    """
    Reduce una secuencia de respuestas a una sola con el mismo efecto al
    combinarla con cualquier estado guardado.
    """
    state = merge_progress(ProgressState(), updates)
    return ProgressUpdate(completed=state.completed, correct=state.correct, points=state.points)


class ProgressWriteBuffer:

    def __init__(self, sink: ProgressSink, idle_delay: float = 2.0,
                 clock: Callable[[], float] = time.monotonic):
        self._sink = sink
        self.idle_delay = idle_delay
        self._clock = clock
        self._pending: Dict[ProgressKey, List[ProgressUpdate]] = {}
        self._last_enqueue: Optional[float] = None
        self._lock = threading.Lock()
        # Claves que un flush está escribiendo; se avisa al liberarlas
        self._in_flight: Set[ProgressKey] = set()
        self._released = threading.Condition(self._lock)

    def enqueue(self, key: ProgressKey, update: ProgressUpdate) -> None:
        with self._lock:
            self._pending.setdefault(key, []).append(update)
            self._last_enqueue = self._clock()

    def pending_count(self, user_id: Optional[int] = None) -> int:
        with self._lock:
            return sum(1 for key in self._pending if user_id is None or key.user_id == user_id)

    def flush(self, user_id: Optional[int] = None) -> FlushReport:
        """
        Escribe las actualizaciones pendientes (todas o solo las de un usuario).
        Una clave nunca se escribe en dos flush a la vez: si otro flush la
        está escribiendo, este espera a que termine para respetar el orden de
        las respuestas. Las claves que fallan vuelven a la cola; no lanza.
        """
        def selected(key: ProgressKey) -> bool:
            return user_id is None or key.user_id == user_id

        with self._released:
            self._released.wait_for(
                lambda: not any(selected(key) and key in self._in_flight for key in self._pending)
            )
            batch = {key: updates for key, updates in self._pending.items() if selected(key)}
            for key in batch:
                del self._pending[key]
            self._in_flight.update(batch)

        report = FlushReport()
        try:
            for key, updates in batch.items():
                try:
                    self._sink(key, collapse_updates(updates))
                    report.flushed += 1
                    progress_flushes_total.labels(result='ok').inc()
                except Exception as e:
                    report.failed += 1
                    progress_flushes_total.labels(result='error').inc()
                    logger.error(
                        f"Progress write failed for user {key.user_id} topic '{key.topic}': {e}",
                        extra={"user_id": key.user_id},
                    )
                    with self._lock:
                        # Lo que falló va antes de lo encolado mientras tanto
                        self._pending[key] = updates + self._pending.get(key, [])
        finally:
            with self._released:
                self._in_flight.difference_update(batch)
                self._released.notify_all()

        report.pending = self.pending_count()
        if batch:
            logger.info(f"Progress flush: {report.flushed} written, {report.failed} failed, {report.pending} pending")
        return report

    def flush_if_idle(self) -> Optional[FlushReport]:
        """
        Escribe solo si pasó idle_delay desde el último enqueue.
        """
        with self._lock:
            if not self._pending or self._last_enqueue is None:
                return None
            if self._clock() - self._last_enqueue < self.idle_delay:
                return None
        return self.flush()

    def flush_on_exit(self) -> FlushReport:
        report = self.flush()
        if report.pending:
            logger.warning(f"Shutting down with {report.pending} unsaved progress keys")
        return report


def database_sink(session_factory) -> ProgressSink:
    """
    Sink que guarda cada actualización en su propia sesión de base de datos.
    """
    from app.crud import crud_progress

    def _write(key: ProgressKey, update: ProgressUpdate) -> None:
        db = session_factory()
        try:
            crud_progress.apply_updates(
                db, user_id=key.user_id, topic=key.topic, area=key.area,
                updates=[update], email=key.email,
            )
        finally:
            db.close()

    return _write
