"""SQLite schema, connection, and persistence of processed collections."""

import json
import os
import sqlite3

from tunebook.config import DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id         INTEGER PRIMARY KEY,
    username        TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS tunes (
    tune_id          INTEGER PRIMARY KEY,
    canonical_name   TEXT NOT NULL,
    type             TEXT,
    meter            TEXT,
    mode             TEXT,
    created_at       TEXT,
    popularity_score INTEGER DEFAULT 0,
    search_text      TEXT
);
CREATE INDEX IF NOT EXISTS idx_tunes_type ON tunes(type);

CREATE TABLE IF NOT EXISTS tune_aliases (
    id      INTEGER PRIMARY KEY,
    tune_id INTEGER NOT NULL REFERENCES tunes(tune_id) ON DELETE CASCADE,
    alias   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_aliases_tune ON tune_aliases(tune_id);

CREATE TABLE IF NOT EXISTS tune_popularity (
    tune_id        INTEGER PRIMARY KEY,
    tunebook_count INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS tune_settings (
    id                   INTEGER PRIMARY KEY,
    setting_id           INTEGER NOT NULL,
    tune_id              INTEGER NOT NULL REFERENCES tunes(tune_id) ON DELETE CASCADE,
    abc_notation         TEXT NOT NULL,
    contributor_username TEXT,
    created_at           TEXT,
    key_signature        TEXT,
    time_signature       TEXT,
    note_count           INTEGER CHECK (note_count >= 0),
    melodic_contour      TEXT,
    intervals            TEXT,
    rhythmic_pattern     TEXT
);
CREATE INDEX IF NOT EXISTS idx_settings_tune ON tune_settings(tune_id);

CREATE TABLE IF NOT EXISTS tune_sets (
    set_id           INTEGER PRIMARY KEY,
    creator_username TEXT,
    created_at       TEXT,
    is_public        INTEGER DEFAULT 1
);

CREATE TABLE IF NOT EXISTS set_compositions (
    id              INTEGER PRIMARY KEY,
    set_id          INTEGER NOT NULL REFERENCES tune_sets(set_id) ON DELETE CASCADE,
    tune_id         INTEGER NOT NULL,
    setting_id      INTEGER,
    position_in_set INTEGER NOT NULL,
    tune_name       TEXT,
    tune_type       TEXT
);
CREATE INDEX IF NOT EXISTS idx_compositions_tune ON set_compositions(tune_id);

CREATE TABLE IF NOT EXISTS artists (
    artist_id   INTEGER PRIMARY KEY,
    artist_name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS recordings (
    id           INTEGER PRIMARY KEY,
    recording_id INTEGER NOT NULL,
    album_name   TEXT,
    artist_id    INTEGER NOT NULL REFERENCES artists(artist_id)
);

CREATE TABLE IF NOT EXISTS recording_tracks (
    id           INTEGER PRIMARY KEY,
    recording    INTEGER NOT NULL REFERENCES recordings(id) ON DELETE CASCADE,
    track_id     INTEGER,
    track_number INTEGER NOT NULL,
    track_name   TEXT
);

CREATE TABLE IF NOT EXISTS track_tunes (
    id                INTEGER PRIMARY KEY,
    track             INTEGER NOT NULL REFERENCES recording_tracks(id) ON DELETE CASCADE,
    tune_id           INTEGER NOT NULL,
    tune_name         TEXT,
    position_in_track INTEGER
);
CREATE INDEX IF NOT EXISTS idx_track_tunes_tune ON track_tunes(tune_id);

CREATE TABLE IF NOT EXISTS sessions (
    id           INTEGER PRIMARY KEY,
    session_id   INTEGER NOT NULL,
    venue_name   TEXT,
    full_address TEXT,
    town         TEXT,
    area         TEXT,
    country      TEXT,
    latitude     REAL,
    longitude    REAL,
    created_at   TEXT,
    is_active    INTEGER DEFAULT 1,
    search_text  TEXT
);

CREATE TABLE IF NOT EXISTS import_errors (
    id            INTEGER PRIMARY KEY,
    entity_type   TEXT NOT NULL,
    entity_id     TEXT,
    error_message TEXT,
    raw_data      TEXT
);
"""

# Child tables first so foreign keys never dangle mid-reset.
_TABLES = (
    "import_errors", "track_tunes", "recording_tracks", "recordings", "artists",
    "set_compositions", "tune_sets", "tune_settings", "tune_aliases",
    "tune_popularity", "tunes", "sessions", "users",
)


def get_connection(db_path=None):
    """Get a SQLite connection, creating the DB and schema if needed."""
    path = db_path or DB_PATH
    directory = os.path.dirname(path)
    if path != ":memory:" and directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(SCHEMA)
    return conn


def _iso(value):
    return value.isoformat() if value is not None else None


def clear_all(conn):
    for table in _TABLES:
        conn.execute(f"DELETE FROM {table}")


# ── Inserts ────────────────────────────────────────────────────────────

def insert_user(conn, user):
    conn.execute(
        "INSERT INTO users (user_id, username) VALUES (?, ?)",
        (user.user_id, user.username),
    )


def insert_tune(conn, tune, search_text=None, popularity_score=None):
    score = tune.popularity_score if popularity_score is None else popularity_score
    conn.execute(
        """INSERT INTO tunes
           (tune_id, canonical_name, type, meter, mode, created_at,
            popularity_score, search_text)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (tune.tune_id, tune.canonical_name, tune.type, tune.meter, tune.mode,
         _iso(tune.created_at), score, search_text),
    )
    conn.executemany(
        "INSERT INTO tune_aliases (tune_id, alias) VALUES (?, ?)",
        [(tune.tune_id, alias) for alias in tune.aliases],
    )
    for setting in tune.settings:
        insert_setting(conn, setting)


def insert_setting(conn, setting):
    f = setting.musical_features
    conn.execute(
        """INSERT INTO tune_settings
           (setting_id, tune_id, abc_notation, contributor_username, created_at,
            key_signature, time_signature, note_count, melodic_contour,
            intervals, rhythmic_pattern)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (setting.setting_id, setting.tune_id, setting.abc_notation,
         setting.contributor_username, _iso(setting.created_at),
         f.key_signature if f else None,
         f.time_signature if f else None,
         f.note_count if f else None,
         json.dumps(f.melodic_contour) if f else None,
         json.dumps(f.intervals) if f else None,
         f.rhythmic_pattern if f else None),
    )


def insert_tune_set(conn, tune_set):
    conn.execute(
        """INSERT INTO tune_sets (set_id, creator_username, created_at, is_public)
           VALUES (?, ?, ?, ?)""",
        (tune_set.set_id, tune_set.creator_username, _iso(tune_set.created_at),
         int(tune_set.is_public)),
    )
    conn.executemany(
        """INSERT INTO set_compositions
           (set_id, tune_id, setting_id, position_in_set, tune_name, tune_type)
           VALUES (?, ?, ?, ?, ?, ?)""",
        [(c.set_id, c.tune_id, c.setting_id, c.position_in_set, c.tune_name,
          c.tune_type) for c in tune_set.compositions],
    )


def insert_recording(conn, recording):
    conn.execute(
        "INSERT OR IGNORE INTO artists (artist_id, artist_name) VALUES (?, ?)",
        (recording.artist_id, recording.artist_name),
    )
    cur = conn.execute(
        "INSERT INTO recordings (recording_id, album_name, artist_id) VALUES (?, ?, ?)",
        (recording.recording_id, recording.album_name, recording.artist_id),
    )
    recording_row = cur.lastrowid
    for track in recording.tracks:
        cur = conn.execute(
            """INSERT INTO recording_tracks
               (recording, track_id, track_number, track_name)
               VALUES (?, ?, ?, ?)""",
            (recording_row, track.track_id, track.track_number, track.track_name),
        )
        track_row = cur.lastrowid
        conn.executemany(
            """INSERT INTO track_tunes (track, tune_id, tune_name, position_in_track)
               VALUES (?, ?, ?, ?)""",
            [(track_row, t.tune_id, t.tune_name, t.position_in_track)
             for t in track.tunes],
        )


def insert_session(conn, session, search_text=None):
    loc = session.location
    conn.execute(
        """INSERT INTO sessions
           (session_id, venue_name, full_address, town, area, country,
            latitude, longitude, created_at, is_active, search_text)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (session.session_id, session.venue_name, session.full_address,
         loc.town, loc.area, loc.country,
         loc.coordinates.latitude, loc.coordinates.longitude,
         _iso(session.created_at), int(session.is_active), search_text),
    )


def insert_error(conn, error):
    conn.execute(
        """INSERT INTO import_errors (entity_type, entity_id, error_message, raw_data)
           VALUES (?, ?, ?, ?)""",
        (error.entity_type, error.entity_id, error.error_message,
         json.dumps(error.raw_data, default=str)),
    )


def save_output(conn, output, popularity=None, verbose=True):
    """Replace the stored import with a PipelineOutput.

    popularity is an optional {tune_id: tunebook_count} map; it fills the
    tune_popularity table and each tune's popularity_score.
    """
    popularity = popularity or {}
    clear_all(conn)

    for user in output.users:
        insert_user(conn, user)
    for item in output.searchable_tunes:
        insert_tune(conn, item.tune, search_text=item.search_text,
                    popularity_score=popularity.get(item.tune.tune_id))
    conn.executemany(
        "INSERT INTO tune_popularity (tune_id, tunebook_count) VALUES (?, ?)",
        list(popularity.items()),
    )
    for tune_set in output.sets:
        insert_tune_set(conn, tune_set)
    for recording in output.recordings:
        insert_recording(conn, recording)
    for item in output.searchable_sessions:
        insert_session(conn, item.session, search_text=item.search_text)
    for error in output.stats.errors:
        insert_error(conn, error)
    conn.commit()

    if verbose:
        stats = db_stats(conn)
        print(f"  Saved {stats['tunes']} tunes, {stats['tune_settings']} settings, "
              f"{stats['tune_sets']} sets, {stats['recordings']} recordings, "
              f"{stats['sessions']} sessions")


# ── Stats / queries ───────────────────────────────────────────────────

def db_stats(conn):
    stats = {}
    for table in ("users", "tunes", "tune_settings", "tune_aliases",
                  "tune_popularity", "tune_sets", "set_compositions", "artists",
                  "recordings", "recording_tracks", "track_tunes", "sessions",
                  "import_errors"):
        row = conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
        stats[table] = row["n"]
    return stats


def tune_type_counts(conn):
    return conn.execute(
        "SELECT type, COUNT(*) AS n FROM tunes GROUP BY type ORDER BY n DESC, type"
    ).fetchall()


def recent_errors(conn, limit=20):
    return conn.execute(
        """SELECT entity_type, entity_id, error_message FROM import_errors
           ORDER BY id LIMIT ?""",
        (limit,),
    ).fetchall()


def search_tunes(conn, text, limit=20):
    """Substring search over tune search_text, most popular first."""
    return conn.execute(
        """SELECT tune_id, canonical_name, type, mode, popularity_score FROM tunes
           WHERE search_text LIKE ?
           ORDER BY popularity_score DESC, canonical_name LIMIT ?""",
        (f"%{text.lower()}%", limit),
    ).fetchall()
