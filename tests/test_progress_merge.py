from app.models.progress import ProgressRecord
from app.schemas.progress import ProgressUpdate
from app.services.progress_aggregator import ProgressState, merge_progress, summarize
from app.services.progress_buffer import collapse_updates


def test_merge_accumulates_completed_and_correct():
    existing = ProgressState(completed=["q1"], correct=["q1"], points=100)
    merged = merge_progress(existing, [ProgressUpdate(completed=["q2"], correct=["q2"], points=100)])

    assert merged.completed == ["q1", "q2"]
    assert merged.correct == ["q1", "q2"]
    assert merged.points == 200


def test_later_wrong_answer_reclassifies_without_touching_completed():
    existing = ProgressState(completed=["q1", "q2"], correct=["q1", "q2"], points=200)
    merged = merge_progress(existing, [ProgressUpdate(completed=["q1"], correct=[])])

    assert merged.completed == ["q1", "q2"]
    assert merged.correct == ["q2"]


def test_completed_never_shrinks():
    existing = ProgressState(completed=["q1", "q2", "q3"], correct=[], points=0)
    merged = merge_progress(existing, [ProgressUpdate()])

    assert merged.completed == ["q1", "q2", "q3"]


def test_correct_answer_counts_as_completed():
    merged = merge_progress(ProgressState(), [ProgressUpdate(correct=["q9"], points=100)])

    assert merged.completed == ["q9"]
    assert merged.correct == ["q9"]


def test_updates_apply_in_order():
    updates = [
        ProgressUpdate(completed=["q1"], correct=[]),
        ProgressUpdate(completed=["q1"], correct=["q1"], points=100),
    ]
    merged = merge_progress(ProgressState(), updates)
    assert merged.correct == ["q1"]

    merged = merge_progress(ProgressState(), list(reversed(updates)))
    assert merged.correct == []
    assert merged.completed == ["q1"]


def test_collapsed_updates_have_same_effect():
    existing = ProgressState(completed=["q1", "q5"], correct=["q1", "q5"], points=200)
    updates = [
        ProgressUpdate(completed=["q1"], correct=[]),
        ProgressUpdate(completed=["q2"], correct=["q2"], points=100),
        ProgressUpdate(completed=["q3"], correct=["q3"], points=100),
        ProgressUpdate(completed=["q3"], correct=[]),
        ProgressUpdate(completed=["q1"], correct=["q1"], points=100),
    ]

    direct = merge_progress(existing, updates)
    batched = merge_progress(existing, [collapse_updates(updates)])

    assert set(direct.completed) == set(batched.completed) == {"q1", "q2", "q3", "q5"}
    assert set(direct.correct) == set(batched.correct) == {"q1", "q2", "q5"}
    assert direct.points == batched.points == 500


def _record(topic, completed, correct, points):
    return ProgressRecord(
        user_id=1, topic=topic, area="gate-cse",
        completed_questions=completed, correct_answers=correct, points=points,
    )


def test_summarize_unions_topics():
    records = [
        _record("lr-parsing", ["q1", "q2", "q3"], ["q1", "q2"], 200),
        _record("ll1-parsing", ["q4"], [], 0),
    ]
    summary = summarize(records, total_questions=8)

    assert summary.completed_count == 4
    assert summary.correct_count == 2
    assert summary.points == 200
    assert summary.percent_complete == 50
    assert summary.accuracy == 50
    assert summary.degraded is False


def test_summarize_without_known_total():
    summary = summarize([_record("t", ["q1"], ["q1"], 100)], total_questions=0)

    assert summary.percent_complete == 0
    assert summary.accuracy == 100


def test_summarize_caps_percent_complete():
    summary = summarize([_record("t", ["q1", "q2", "q3"], [], 0)], total_questions=2)

    assert summary.percent_complete == 100
    assert summary.accuracy == 0


def test_summarize_empty():
    summary = summarize([], total_questions=19)

    assert summary.completed_count == 0
    assert summary.percent_complete == 0
    assert summary.total_questions == 19
