"""DDL for the script store."""

SCRIPTS_TABLE = "scripts"

CREATE_SCRIPTS_TABLE = """
CREATE TABLE IF NOT EXISTS scripts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    path TEXT NOT NULL UNIQUE,
    category TEXT NOT NULL,
    description TEXT,
    usage TEXT,
    tags TEXT,
    dependencies TEXT,
    embedding_text TEXT,
    embedding TEXT,
    tokens INTEGER CHECK (tokens IS NULL OR tokens >= 0),
    created_at TIMESTAMP DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
    updated_at TIMESTAMP DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))
)
"""

CREATE_CATEGORY_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_scripts_category ON scripts(category)"
)

DROP_SCRIPTS_TABLE = "DROP TABLE IF EXISTS scripts"

SCHEMA_STATEMENTS = (CREATE_SCRIPTS_TABLE, CREATE_CATEGORY_INDEX)

# Columns a caller may change through ScriptRepository.update()
MUTABLE_COLUMNS = frozenset(
    {
        "name",
        "category",
        "description",
        "usage",
        "tags",
        "dependencies",
        "embedding_text",
        "embedding",
        "tokens",
    }
)
