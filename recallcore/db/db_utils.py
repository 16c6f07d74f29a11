"""
Utility functions for data marshalling between Pydantic models and database formats,
plus backup rotation and import of topic logs written as JSON lines.
"""

import json
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..constants import DEFAULT_MAX_BACKUPS
from ..exceptions import MarshallingError
from ..models import SchedulingState, Topic, ensure_utc

logger = logging.getLogger(__name__)

TOPIC_COLUMNS: Tuple[str, ...] = (
    "id",
    "topic",
    "summary",
    "tags",
    "logged_at",
    "state",
    "stability",
    "difficulty",
    "due",
    "last_reviewed",
    "review_count",
    "lapses",
)

_STATE_COLUMNS = (
    "state",
    "stability",
    "difficulty",
    "due",
    "last_reviewed",
    "review_count",
    "lapses",
)


def to_db_timestamp(ts: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware timestamp to the naive UTC value stored in DuckDB."""
    if ts is None:
        return None
    return ensure_utc(ts).replace(tzinfo=None)


def state_to_db_params(state: SchedulingState) -> Tuple:
    """
    Serialize a SchedulingState in `_STATE_COLUMNS` order:
    (state, stability, difficulty, due, last_reviewed, review_count, lapses).
    """
    return (
        state.state.value,
        state.stability,
        state.difficulty,
        to_db_timestamp(state.due),
        to_db_timestamp(state.last_reviewed),
        state.review_count,
        state.lapses,
    )


def topic_to_db_params_tuple(topic: Topic) -> Tuple:
    """
    Convert a Topic into a tuple ordered like `TOPIC_COLUMNS`.
    """
    return (
        topic.id,
        topic.topic,
        topic.summary,
        list(topic.tags) if topic.tags else None,
        to_db_timestamp(topic.timestamp),
    ) + state_to_db_params(topic.fsrs)


def db_row_to_topic(row_dict: Dict[str, Any]) -> Topic:
    """
    Create a Topic model from a database row dictionary.

    Raises:
        MarshallingError: If the row cannot be validated into a Topic.
    """
    try:
        fsrs = SchedulingState(
            **{column: row_dict.get(column) for column in _STATE_COLUMNS}
        )
        tags = row_dict.get("tags")
        return Topic(
            id=row_dict["id"],
            topic=row_dict["topic"],
            summary=row_dict.get("summary"),
            tags=list(tags) if tags is not None else [],
            timestamp=row_dict["logged_at"],
            fsrs=fsrs,
        )
    except (ValidationError, KeyError) as e:
        raise MarshallingError(
            f"Failed to parse topic from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def _migrate_topic_record(record: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Fill in a missing id or scheduling state. Returns (record, migrated)."""
    data = dict(record)
    migrated = False
    if not data.get("id"):
        data["id"] = uuid.uuid4()
        migrated = True
    if not data.get("fsrs"):
        data["fsrs"] = SchedulingState.new()
        migrated = True
    return data, migrated


def load_topics_jsonl(path: Path) -> List[Topic]:
    """
    Read topics from a JSON-lines log, one topic object per line.

    Records without an `id` get a fresh UUID and records without an `fsrs`
    state start as new. Unknown keys are ignored. Blank lines are skipped.

    Raises:
        MarshallingError: If a line is not valid JSON or not a valid topic.
    """
    topics: List[Topic] = []
    migrated_count = 0
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise MarshallingError(
                    f"Invalid JSON on line {line_no} of {path}: {e}",
                    original_exception=e,
                ) from e
            if not isinstance(record, dict):
                raise MarshallingError(
                    f"Line {line_no} of {path} is not a JSON object."
                )

            data, migrated = _migrate_topic_record(record)
            migrated_count += int(migrated)
            known = {k: v for k, v in data.items() if k in Topic.model_fields}
            try:
                topics.append(Topic(**known))
            except ValidationError as e:
                raise MarshallingError(
                    f"Invalid topic on line {line_no} of {path}: {e}",
                    original_exception=e,
                ) from e

    if migrated_count:
        logger.warning(
            f"{migrated_count} topic(s) in {path} lacked an id or FSRS state and were migrated."
        )
    return topics


def _list_backups(db_path: Path) -> List[Path]:
    backup_dir = db_path.parent / "backups"
    if not backup_dir.exists():
        return []
    # Names embed the timestamp, so lexical order is chronological.
    return sorted(backup_dir.glob(f"{db_path.stem}-backup-*{db_path.suffix}"))


def find_latest_backup(db_path: Path) -> Optional[Path]:
    """
    Locate the most recent backup for the given database path in the
    "backups" subdirectory next to it, or None if there is none.
    """
    backups = _list_backups(db_path)
    return backups[-1] if backups else None


def backup_database(db_path: Path, max_backups: int = DEFAULT_MAX_BACKUPS) -> Path:
    """
    Creates a timestamped backup of the database file and prunes all but
    the newest `max_backups` copies.

    Returns:
        The path to the created backup file, or `db_path` itself when
        there is no database to back up yet.
    """
    if not db_path.exists():
        return db_path

    backup_dir = db_path.parent / "backups"
    backup_dir.mkdir(exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    backup_filename = f"{db_path.stem}-backup-{timestamp}{db_path.suffix}"
    backup_path = backup_dir / backup_filename

    shutil.copy2(db_path, backup_path)
    logger.info(f"Backed up {db_path} to {backup_path}")

    backups = _list_backups(db_path)
    for stale in backups[: max(0, len(backups) - max_backups)]:
        stale.unlink()
        logger.debug(f"Removed old backup {stale}")

    return backup_path
