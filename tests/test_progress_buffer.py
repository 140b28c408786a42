import threading

import pytest

from app.schemas.progress import ProgressUpdate
from app.services.progress_aggregator import ProgressState, merge_progress
from app.services.progress_buffer import ProgressKey, ProgressWriteBuffer


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingSink:
    def __init__(self):
        self.writes = []
        self.fail_keys = set()

    def __call__(self, key, update):
        if key in self.fail_keys:
            raise RuntimeError("database unavailable")
        self.writes.append((key, update))


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def buffer(sink, clock):
    return ProgressWriteBuffer(sink, idle_delay=2.0, clock=clock)


KEY = ProgressKey(user_id=1, topic="lr-parsing", area="gate-cse")
OTHER = ProgressKey(user_id=2, topic="lr-parsing", area="gate-cse")


def test_updates_for_same_key_are_written_once(buffer, sink):
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"], correct=["q1"], points=100))
    buffer.enqueue(KEY, ProgressUpdate(completed=["q2"], correct=[], points=0))

    report = buffer.flush()

    assert report.flushed == 1
    assert report.pending == 0
    assert len(sink.writes) == 1
    key, update = sink.writes[0]
    assert key == KEY
    assert update.completed == ["q1", "q2"]
    assert update.correct == ["q1"]
    assert update.points == 100


def test_flush_if_idle_waits_for_delay(buffer, sink, clock):
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"]))

    clock.advance(1.0)
    assert buffer.flush_if_idle() is None
    assert sink.writes == []

    buffer.enqueue(KEY, ProgressUpdate(completed=["q2"]))
    clock.advance(1.5)
    assert buffer.flush_if_idle() is None

    clock.advance(0.5)
    report = buffer.flush_if_idle()
    assert report.flushed == 1
    assert sink.writes[0][1].completed == ["q1", "q2"]


def test_flush_if_idle_with_nothing_pending(buffer, clock):
    clock.advance(10)
    assert buffer.flush_if_idle() is None


def test_flush_for_one_user_keeps_others(buffer, sink):
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"]))
    buffer.enqueue(OTHER, ProgressUpdate(completed=["q7"]))

    report = buffer.flush(user_id=1)

    assert report.flushed == 1
    assert [k for k, _ in sink.writes] == [KEY]
    assert buffer.pending_count() == 1
    assert buffer.pending_count(user_id=2) == 1


def test_failed_key_is_requeued_before_newer_updates(buffer, sink):
    sink.fail_keys.add(KEY)
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"], correct=["q1"], points=100))

    report = buffer.flush()
    assert report.failed == 1
    assert report.pending == 1

    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"], correct=[]))
    sink.fail_keys.clear()
    report = buffer.flush()

    assert report.flushed == 1
    update = sink.writes[0][1]
    # La respuesta incorrecta posterior sigue ganando
    assert update.correct == []
    assert update.completed == ["q1"]
    assert update.points == 100


def test_flush_on_exit_writes_everything(buffer, sink):
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"]))
    buffer.enqueue(OTHER, ProgressUpdate(completed=["q2"]))

    report = buffer.flush_on_exit()

    assert report.flushed == 2
    assert buffer.pending_count() == 0


class BlockingSink(RecordingSink):
    """Detiene la primera escritura hasta que la prueba la libera."""

    def __init__(self):
        super().__init__()
        self.first_write_started = threading.Event()
        self.release_first_write = threading.Event()

    def __call__(self, key, update):
        if not self.first_write_started.is_set():
            self.first_write_started.set()
            self.release_first_write.wait(5)
        super().__call__(key, update)


def test_concurrent_flushes_keep_answer_order(clock):
    sink = BlockingSink()
    buffer = ProgressWriteBuffer(sink, idle_delay=2.0, clock=clock)
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"], correct=["q1"], points=100))

    periodic = threading.Thread(target=buffer.flush)
    periodic.start()
    assert sink.first_write_started.wait(5)

    # Respuesta incorrecta posterior mientras la primera se está escribiendo
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"], correct=[]))
    immediate = threading.Thread(target=buffer.flush, kwargs={"user_id": KEY.user_id})
    immediate.start()
    immediate.join(timeout=0.2)
    assert immediate.is_alive()
    assert sink.writes == []

    sink.release_first_write.set()
    periodic.join(timeout=5)
    immediate.join(timeout=5)

    assert [update.correct for _, update in sink.writes] == [["q1"], []]
    final = merge_progress(ProgressState(), [update for _, update in sink.writes])
    assert final.correct == []
    assert final.completed == ["q1"]


def test_flush_for_other_user_does_not_wait(clock):
    sink = BlockingSink()
    buffer = ProgressWriteBuffer(sink, idle_delay=2.0, clock=clock)
    buffer.enqueue(KEY, ProgressUpdate(completed=["q1"]))

    periodic = threading.Thread(target=buffer.flush)
    periodic.start()
    assert sink.first_write_started.wait(5)

    buffer.enqueue(OTHER, ProgressUpdate(completed=["q7"]))
    report = buffer.flush(user_id=OTHER.user_id)

    assert report.flushed == 1
    assert [key for key, _ in sink.writes] == [OTHER]

    sink.release_first_write.set()
    periodic.join(timeout=5)
    assert [key for key, _ in sink.writes] == [OTHER, KEY]
