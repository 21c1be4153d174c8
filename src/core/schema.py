"""SQLite schema management (code-first approach)."""

import logging

from src.core.db_client import get_connection


logger = logging.getLogger(__name__)


# Creation order matters: referenced tables come first
TABLE_SCHEMAS: dict[str, str] = {
    "families": """CREATE TABLE IF NOT EXISTS families (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        name TEXT NOT NULL,
        show_reset_button INTEGER NOT NULL DEFAULT 1
    )""",
    "members": """CREATE TABLE IF NOT EXISTS members (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        user_id TEXT UNIQUE,
        name TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'regular' CHECK (role IN ('admin', 'regular')),
        avatar_url TEXT
    )""",
    "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        score_value INTEGER NOT NULL DEFAULT 10 CHECK (score_value >= 0),
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'taken', 'completed', 'expired')),
        deadline TEXT,
        recurring_daily INTEGER NOT NULL DEFAULT 0,
        scheduled_days TEXT,
        default_assignee_id INTEGER REFERENCES members(id) ON DELETE SET NULL,
        created_by INTEGER REFERENCES members(id) ON DELETE SET NULL
    )""",
    "task_assignments": """CREATE TABLE IF NOT EXISTS task_assignments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        taken_at TEXT NOT NULL,
        completed_at TEXT
    )""",
    "sport_activities": """CREATE TABLE IF NOT EXISTS sport_activities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('weekly', 'extra')),
        scheduled_days TEXT,
        score_value INTEGER NOT NULL DEFAULT 10 CHECK (score_value >= 0),
        completed_at TEXT
    )""",
    "school_tasks": """CREATE TABLE IF NOT EXISTS school_tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'homework' CHECK (type IN ('homework', 'exam', 'project')),
        due_date TEXT,
        scheduled_days TEXT,
        score_value INTEGER NOT NULL DEFAULT 10 CHECK (score_value >= 0),
        completed_at TEXT
    )""",
    "scores_log": """CREATE TABLE IF NOT EXISTS scores_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        source_type TEXT NOT NULL
            CHECK (source_type IN ('house', 'sport', 'school', 'streak_bonus', 'bonus', 'fine')),
        source_id INTEGER,
        score_delta INTEGER NOT NULL CHECK (score_delta >= 0),
        description TEXT,
        created_at TEXT NOT NULL
    )""",
    "streaks": """CREATE TABLE IF NOT EXISTS streaks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        member_id INTEGER NOT NULL REFERENCES members(id) ON DELETE CASCADE,
        current_streak INTEGER NOT NULL DEFAULT 0,
        longest_streak INTEGER NOT NULL DEFAULT 0,
        last_activity_date TEXT
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_members_family_id ON members (family_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_family_status ON tasks (family_id, status)",
    # At most one live (uncompleted) assignment per task
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_task_assignments_live_task "
    "ON task_assignments (task_id) WHERE completed_at IS NULL",
    "CREATE INDEX IF NOT EXISTS idx_task_assignments_member_id ON task_assignments (member_id)",
    "CREATE INDEX IF NOT EXISTS idx_sport_activities_member_id ON sport_activities (member_id)",
    "CREATE INDEX IF NOT EXISTS idx_school_tasks_member_id ON school_tasks (member_id)",
    "CREATE INDEX IF NOT EXISTS idx_scores_log_member_created ON scores_log (member_id, created_at)",
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_streaks_member_id ON streaks (member_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist.

    Safe to call on every startup.
    """
    conn = await get_connection(db_path=db_path)

    for table_name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.debug("Ensured table", extra={"table": table_name})

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": len(TABLE_SCHEMAS)})
