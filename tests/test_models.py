import uuid
import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from recallcore.exceptions import CorruptStateError
from recallcore.models import (
    Grade,
    PriorityResult,
    SchedulingState,
    Topic,
    TopicState,
    days_between,
    ensure_utc,
)


# --- Helpers ---

def test_ensure_utc_assumes_naive_is_utc():
    naive = datetime(2024, 3, 1, 12, 0)
    assert ensure_utc(naive) == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_other_zones():
    plus_two = timezone(timedelta(hours=2))
    converted = ensure_utc(datetime(2024, 3, 1, 14, 0, tzinfo=plus_two))
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 12


def test_days_between_is_fractional_and_signed(t0):
    assert days_between(t0, t0 + timedelta(hours=12)) == pytest.approx(0.5)
    assert days_between(t0 + timedelta(days=2), t0) == pytest.approx(-2.0)


# --- Enums ---

def test_topic_state_values():
    assert [s.value for s in TopicState] == ["new", "learning", "review", "relearning"]
    assert TopicState("review") is TopicState.Review


def test_grade_values():
    assert int(Grade.Again) == 1
    assert int(Grade.Easy) == 4
    assert Grade(3) is Grade.Good


# --- SchedulingState ---

def test_new_state_defaults(new_state):
    assert new_state.state == TopicState.New
    assert new_state.is_new
    assert new_state.stability is None
    assert new_state.difficulty is None
    assert new_state.due is None
    assert new_state.last_reviewed is None
    assert new_state.review_count == 0
    assert new_state.lapses == 0


def test_scheduling_state_is_frozen(review_state):
    with pytest.raises(ValidationError):
        review_state.stability = 20.0


def test_scheduling_state_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        SchedulingState(state=TopicState.New, reps=3)


@pytest.mark.parametrize("field", ["review_count", "lapses"])
def test_scheduling_state_counts_are_non_negative(field):
    with pytest.raises(ValidationError):
        SchedulingState(**{field: -1})


def test_scheduling_state_normalizes_timestamps():
    state = SchedulingState(
        state=TopicState.Review,
        stability=1.0,
        difficulty=5.0,
        due=datetime(2024, 1, 2),
        last_reviewed="2024-01-01T12:00:00+02:00",
    )
    assert state.due.tzinfo == timezone.utc
    assert state.last_reviewed == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_scheduling_state_accepts_state_strings():
    assert SchedulingState(state="relearning").state is TopicState.Relearning
    with pytest.raises(ValidationError):
        SchedulingState(state="mastered")


def test_require_memory(review_state):
    assert review_state.require_memory() == (10.0, 5.0)
    broken = review_state.model_copy(update={"difficulty": None})
    with pytest.raises(CorruptStateError, match="missing"):
        broken.require_memory()


@pytest.mark.parametrize(
    "stability,difficulty",
    [(0.0, 5.0), (-2.0, 5.0), (5.0, 0.0), (5.0, 0.99), (5.0, 10.01), (5.0, 50.0)],
)
def test_scheduling_state_rejects_out_of_range_memory(t0, stability, difficulty):
    with pytest.raises(ValidationError):
        SchedulingState(
            state=TopicState.Review,
            stability=stability,
            difficulty=difficulty,
            due=t0,
            last_reviewed=t0,
        )


@pytest.mark.parametrize("difficulty", [1.0, 10.0])
def test_scheduling_state_accepts_difficulty_bounds(difficulty):
    state = SchedulingState(state=TopicState.Review, stability=0.01, difficulty=difficulty)
    assert state.require_memory() == (0.01, difficulty)


@pytest.mark.parametrize(
    "update", [{"stability": 0.0}, {"stability": -2.0}, {"difficulty": 0.0}, {"difficulty": 50.0}]
)
def test_require_memory_rejects_unvalidated_out_of_range_values(review_state, update):
    broken = review_state.model_copy(update=update)
    with pytest.raises(CorruptStateError, match="out-of-range"):
        broken.require_memory()


def test_scheduling_state_json_round_trip(review_state):
    restored = SchedulingState.model_validate_json(review_state.model_dump_json())
    assert restored == review_state


# --- Topic ---

def test_topic_defaults():
    before = datetime.now(timezone.utc)
    topic = Topic(topic="Monads")
    assert isinstance(topic.id, uuid.UUID)
    assert topic.id.version == 4
    assert topic.summary is None
    assert topic.tags == []
    assert topic.fsrs == SchedulingState.new()
    assert before <= topic.timestamp <= datetime.now(timezone.utc)


def test_topic_ids_are_unique():
    assert Topic(topic="a").id != Topic(topic="a").id


def test_topic_requires_a_name():
    with pytest.raises(ValidationError):
        Topic(topic="")
    with pytest.raises(ValidationError):
        Topic(summary="no name")


def test_topic_strips_blank_tags():
    topic = Topic(topic="Closures", tags=[" python ", "", "   ", "functions"])
    assert topic.tags == ["python", "functions"]


def test_topic_validates_assignment(sample_topic1):
    with pytest.raises(ValidationError):
        sample_topic1.topic = ""
    sample_topic1.tags = ["rust", " "]
    assert sample_topic1.tags == ["rust"]


def test_topic_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        Topic(topic="x", deck="default")


def test_topic_parses_uuid_strings(sample_topic1):
    assert sample_topic1.id == uuid.UUID("11111111-1111-1111-1111-111111111111")


def test_topic_embeds_scheduling_state_from_dict(t0):
    topic = Topic(
        topic="Sequences",
        fsrs={
            "state": "review",
            "stability": 3.2,
            "difficulty": 4.1,
            "due": (t0 + timedelta(days=3)).isoformat(),
            "last_reviewed": t0.isoformat(),
            "review_count": 1,
        },
    )
    assert topic.fsrs.state is TopicState.Review
    assert topic.fsrs.due == t0 + timedelta(days=3)


# --- PriorityResult ---

def test_priority_result_is_frozen():
    result = PriorityResult(priority=50, is_overdue=False)
    assert result.retrievability is None
    with pytest.raises(ValidationError):
        result.priority = 10
