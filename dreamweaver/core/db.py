"""
SQLite relational dream store. Canonical source of truth for dream content, ownership and visibility.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator
from .config import get_db_path, ensure_db_directory


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    ensure_db_directory()
    conn = sqlite3.connect(get_db_path())
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize the database with required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS dreams (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                content TEXT NOT NULL,
                mood TEXT NOT NULL,
                clarity INTEGER NOT NULL CHECK (clarity >= 1 AND clarity <= 5),
                is_recurring BOOLEAN DEFAULT FALSE,
                is_public BOOLEAN DEFAULT FALSE,
                reality_connection TEXT,
                image_url TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS dream_analysis (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                dream_id TEXT NOT NULL UNIQUE REFERENCES dreams(id) ON DELETE CASCADE,
                emotional_analysis TEXT,
                creative_story TEXT,
                themes TEXT  -- JSON array
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS dream_symbols (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                dream_id TEXT NOT NULL REFERENCES dreams(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                meaning TEXT,
                type TEXT CHECK (type IN ('person', 'place', 'object', 'action'))
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_dreams_user_id ON dreams(user_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_dreams_timestamp ON dreams(timestamp)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_dreams_public ON dreams(is_public)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_dream_symbols_dream_id ON dream_symbols(dream_id)')

        conn.commit()


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [table[0] for table in cursor.fetchall()]
            required_tables = ['dreams', 'dream_analysis', 'dream_symbols']
            return all(table in table_names for table in required_tables)
    except sqlite3.Error:
        return False
