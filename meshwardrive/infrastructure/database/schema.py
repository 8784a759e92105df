"""SQLite schema for wardriving samples."""

SCHEMA_VERSION = 3

DATABASE_FILE_NAME = "meshcore_wardrive.db"

SAMPLES_TABLE = "samples"

# Column order must match the order the migration steps append columns in.
CREATE_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS samples (
        id TEXT PRIMARY KEY,
        lat REAL NOT NULL,
        lon REAL NOT NULL,
        timestamp INTEGER NOT NULL,
        path TEXT,
        geohash TEXT NOT NULL,
        rssi INTEGER,
        snr INTEGER,
        pingSuccess INTEGER,
        observerNames TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_samples_geohash ON samples (geohash)",
    "CREATE INDEX IF NOT EXISTS idx_samples_timestamp ON samples (timestamp)",
)

SAMPLE_COLUMNS = (
    "id",
    "lat",
    "lon",
    "timestamp",
    "path",
    "geohash",
    "rssi",
    "snr",
    "pingSuccess",
    "observerNames",
)

INSERT_SAMPLE_SQL = (
    f"INSERT OR IGNORE INTO {SAMPLES_TABLE} ({', '.join(SAMPLE_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in SAMPLE_COLUMNS)})"
)
