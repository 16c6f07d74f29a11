import pytest
from pathlib import Path
from typing import Generator
from datetime import datetime, timedelta, timezone

from recallcore.models import SchedulingState, Topic, TopicState
from recallcore.scheduler import DEFAULT_SCHEDULER_CONFIG, SchedulerConfig
from recallcore.db import TopicDatabase

UTC = timezone.utc


# each test runs with cwd in its temp dir so no stray .env is read
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    for var in ("RECALLCORE_DB_PATH", "RECALLCORE_CONFIG_PATH", "RECALLCORE_MAX_BACKUPS"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def config() -> SchedulerConfig:
    return DEFAULT_SCHEDULER_CONFIG


@pytest.fixture
def t0() -> datetime:
    return datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def new_state() -> SchedulingState:
    return SchedulingState.new()


@pytest.fixture
def review_state(t0: datetime) -> SchedulingState:
    """A topic in review with S=10, D=5, last reviewed at t0 and due 10 days later."""
    return SchedulingState(
        state=TopicState.Review,
        stability=10.0,
        difficulty=5.0,
        due=t0 + timedelta(days=10),
        last_reviewed=t0,
        review_count=3,
        lapses=1,
    )


# --- Database Fixtures ---
@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    return tmp_path / "test_topics.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_file: Path
) -> Generator[TopicDatabase, None, None]:
    """
    Provide a TopicDatabase, in-memory or file-backed, with its schema initialized.
    """
    if request.param == "memory":
        db_man = TopicDatabase(":memory:")
    else:
        db_man = TopicDatabase(db_path_file)
    db_man.initialize_schema()
    try:
        yield db_man
    finally:
        db_man.close_connection()


@pytest.fixture
def sample_topic1(t0: datetime) -> Topic:
    return Topic(
        id="11111111-1111-1111-1111-111111111111",
        topic="Python closures",
        summary="Functions capturing variables from an enclosing scope.",
        tags=["python", "functions"],
        timestamp=t0,
    )


@pytest.fixture
def sample_topic2(t0: datetime, review_state: SchedulingState) -> Topic:
    return Topic(
        id="22222222-2222-2222-2222-222222222222",
        topic="DuckDB sequences",
        summary=None,
        tags=["databases"],
        timestamp=t0 + timedelta(minutes=1),
        fsrs=review_state,
    )


@pytest.fixture
def sample_topic3(t0: datetime) -> Topic:
    return Topic(
        id="33333333-3333-3333-3333-333333333333",
        topic="Generators",
        tags=["python"],
        timestamp=t0 + timedelta(minutes=2),
    )
