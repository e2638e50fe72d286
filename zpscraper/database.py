"""
SQLite storage for saved searches and their execution history.
"""
import json
import sqlite3
import uuid
from typing import Dict, List, Optional

from .models import ListingRecord
from .utils import now_iso


# Schema definitions
DDL_SAVED_SEARCHES = """
CREATE TABLE IF NOT EXISTS saved_searches (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  url TEXT NOT NULL,
  created_at TEXT,
  last_scraped_at TEXT
);
"""

DDL_SEARCH_EXECUTIONS = """
CREATE TABLE IF NOT EXISTS search_executions (
  id TEXT PRIMARY KEY,
  saved_search_id TEXT NOT NULL REFERENCES saved_searches(id) ON DELETE CASCADE,
  results_count INTEGER,
  results_json TEXT,
  created_at TEXT
);
"""

DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_saved_searches_created ON saved_searches(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_executions_search ON search_executions(saved_search_id);",
]


def db_connect(path: str) -> sqlite3.Connection:
    """Create database connection with optimized settings."""
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def db_init(conn: sqlite3.Connection):
    """Initialize database schema with tables and indexes."""
    conn.execute(DDL_SAVED_SEARCHES)
    conn.execute(DDL_SEARCH_EXECUTIONS)
    for ddl in DDL_INDEXES:
        conn.execute(ddl)
    conn.commit()


def row_to_dict(cur, row):
    """Convert a result row to dictionary."""
    return {desc[0]: row[i] for i, desc in enumerate(cur.description)}


def _new_id() -> str:
    return uuid.uuid4().hex


def db_create_saved_search(conn: sqlite3.Connection, name: str, url: str) -> Dict:
    """Insert a saved search and return it."""
    search_id = _new_id()
    conn.execute(
        "INSERT INTO saved_searches (id, name, url, created_at, last_scraped_at) VALUES (?, ?, ?, ?, NULL)",
        (search_id, name, url, now_iso()),
    )
    conn.commit()
    return db_get_saved_search(conn, search_id)


def db_list_saved_searches(conn: sqlite3.Connection) -> List[Dict]:
    """All saved searches, newest first."""
    cur = conn.cursor()
    cur.execute("SELECT * FROM saved_searches ORDER BY created_at DESC")
    return [row_to_dict(cur, r) for r in cur.fetchall()]


def db_get_saved_search(conn: sqlite3.Connection, search_id: str) -> Optional[Dict]:
    cur = conn.cursor()
    cur.execute("SELECT * FROM saved_searches WHERE id = ?", (search_id,))
    r = cur.fetchone()
    if not r:
        return None
    return row_to_dict(cur, r)


def db_delete_saved_search(conn: sqlite3.Connection, search_id: str) -> bool:
    """Delete a saved search and its executions. Returns False if it did not exist."""
    cur = conn.cursor()
    cur.execute("DELETE FROM search_executions WHERE saved_search_id = ?", (search_id,))
    cur.execute("DELETE FROM saved_searches WHERE id = ?", (search_id,))
    conn.commit()
    return cur.rowcount > 0


def db_add_execution(conn: sqlite3.Connection, search_id: str, records: List[ListingRecord]) -> Dict:
    """
    Store the results of one run of a saved search.

    Also stamps the search's last_scraped_at.
    """
    execution_id = _new_id()
    ts = now_iso()
    results_json = json.dumps([r.to_dict() for r in records], ensure_ascii=False)
    conn.execute(
        "INSERT INTO search_executions (id, saved_search_id, results_count, results_json, created_at) "
        "VALUES (?, ?, ?, ?, ?)",
        (execution_id, search_id, len(records), results_json, ts),
    )
    conn.execute("UPDATE saved_searches SET last_scraped_at = ? WHERE id = ?", (ts, search_id))
    conn.commit()
    return db_get_execution(conn, execution_id)


def _execution_from_row(d: Dict) -> Dict:
    d = dict(d)
    d["results"] = json.loads(d.pop("results_json") or "[]")
    return d


def db_list_executions(conn: sqlite3.Connection, search_id: str) -> List[Dict]:
    """Executions of a saved search, newest first."""
    cur = conn.cursor()
    cur.execute(
        "SELECT * FROM search_executions WHERE saved_search_id = ? ORDER BY created_at DESC",
        (search_id,),
    )
    return [_execution_from_row(row_to_dict(cur, r)) for r in cur.fetchall()]


def db_get_execution(conn: sqlite3.Connection, execution_id: str) -> Optional[Dict]:
    cur = conn.cursor()
    cur.execute("SELECT * FROM search_executions WHERE id = ?", (execution_id,))
    r = cur.fetchone()
    if not r:
        return None
    return _execution_from_row(row_to_dict(cur, r))


def execution_records(execution: Dict) -> List[ListingRecord]:
    """Rebuild ListingRecords from a stored execution."""
    return [ListingRecord.from_dict(d) for d in execution.get("results", [])]
