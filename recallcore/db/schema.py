"""
Defines the database schema for recallcore using a SQL string constant.
Timestamps are stored as naive UTC.
"""

DB_SCHEMA_SQL = """
    CREATE SEQUENCE IF NOT EXISTS topic_seq;

    CREATE TABLE IF NOT EXISTS topics (
        id UUID PRIMARY KEY,
        seq BIGINT NOT NULL DEFAULT nextval('topic_seq'),
        topic VARCHAR NOT NULL,
        summary VARCHAR,
        tags VARCHAR[],
        logged_at TIMESTAMP NOT NULL,
        state VARCHAR NOT NULL DEFAULT 'new'
            CHECK (state IN ('new', 'learning', 'review', 'relearning')),
        stability DOUBLE,
        difficulty DOUBLE,
        due TIMESTAMP,
        last_reviewed TIMESTAMP,
        review_count INTEGER NOT NULL DEFAULT 0 CHECK (review_count >= 0),
        lapses INTEGER NOT NULL DEFAULT 0 CHECK (lapses >= 0)
    );
"""
