"""
Data access for dreams, their analysis and symbols.
Vector side effects are not triggered here; the API layer schedules them after a successful write.
"""

import json
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from .db import get_db
from .schema import Dream, DreamAnalysis, DreamSymbol
from ..util.logging import logger


UPDATABLE_FIELDS = ('content', 'mood', 'clarity', 'is_recurring', 'is_public', 'reality_connection', 'image_url')

_DREAM_COLUMNS = "id, user_id, timestamp, content, mood, clarity, is_recurring, is_public, reality_connection, image_url"


def sanitize_symbol_type(symbol_type: str) -> str:
    """Map free-form symbol types from the analysis model onto the stored enum."""
    lower_type = (symbol_type or "").lower()

    if 'person' in lower_type or 'character' in lower_type or 'being' in lower_type:
        return 'person'
    if 'place' in lower_type or 'location' in lower_type or 'setting' in lower_type:
        return 'place'
    if 'action' in lower_type or 'activity' in lower_type or 'event' in lower_type:
        return 'action'
    # Anything else, including 'object/element' or 'thing'
    return 'object'


def _insert_analysis(cursor, dream_id: str, analysis: DreamAnalysis):
    cursor.execute(
        "INSERT INTO dream_analysis (dream_id, emotional_analysis, creative_story, themes) VALUES (?, ?, ?, ?)",
        (dream_id, analysis.emotional_analysis, analysis.creative_story, json.dumps(list(analysis.themes)))
    )
    _insert_symbols(cursor, dream_id, analysis.symbols)


def _insert_symbols(cursor, dream_id: str, symbols: Iterable[DreamSymbol]):
    for symbol in symbols:
        cursor.execute(
            "INSERT INTO dream_symbols (dream_id, name, meaning, type) VALUES (?, ?, ?, ?)",
            (dream_id, symbol.name, symbol.meaning, sanitize_symbol_type(symbol.type))
        )


def _load_dreams(cursor, where: str = "", params: tuple = (), suffix: str = "") -> List[Dream]:
    """Load dreams matching a WHERE clause together with their analysis and symbols."""
    cursor.execute(f"SELECT {_DREAM_COLUMNS} FROM dreams {where} {suffix}", params)
    rows = cursor.fetchall()
    if not rows:
        return []

    ids = [row[0] for row in rows]
    placeholders = ",".join("?" for _ in ids)

    cursor.execute(
        f"SELECT dream_id, emotional_analysis, creative_story, themes FROM dream_analysis WHERE dream_id IN ({placeholders})",
        ids
    )
    analyses = {row[0]: row[1:] for row in cursor.fetchall()}

    cursor.execute(
        f"SELECT dream_id, name, meaning, type FROM dream_symbols WHERE dream_id IN ({placeholders}) ORDER BY id",
        ids
    )
    symbols: Dict[str, List[DreamSymbol]] = {}
    for dream_id, name, meaning, symbol_type in cursor.fetchall():
        symbols.setdefault(dream_id, []).append(DreamSymbol(name=name, meaning=meaning or "", type=symbol_type))

    dreams = []
    for row in rows:
        dream_id, user_id, timestamp, content, mood, clarity, is_recurring, is_public, reality_connection, image_url = row

        analysis = None
        if dream_id in analyses:
            emotional_analysis, creative_story, themes = analyses[dream_id]
            analysis = DreamAnalysis(
                emotional_analysis=emotional_analysis or "",
                creative_story=creative_story or "",
                themes=json.loads(themes) if themes else [],
                symbols=symbols.get(dream_id, [])
            )

        dreams.append(Dream(
            id=dream_id,
            owner_id=user_id,
            content=content,
            mood=mood,
            clarity=clarity,
            timestamp=int(timestamp),
            is_recurring=bool(is_recurring),
            is_public=bool(is_public),
            reality_connection=reality_connection,
            image_url=image_url,
            analysis=analysis
        ))
    return dreams


def create_dream(dream: Dream) -> Dream:
    """Insert a dream with its analysis and symbols."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO dreams ({_DREAM_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (dream.id, dream.owner_id, dream.timestamp, dream.content, dream.mood, dream.clarity,
                 dream.is_recurring, dream.is_public, dream.reality_connection, dream.image_url)
            )
            if dream.analysis:
                _insert_analysis(cursor, dream.id, dream.analysis)
            conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Database error during create_dream for user '{dream.owner_id}': {e}")
        raise

    logger.log_dream_operation("created", dream.id, dream.owner_id, details={"is_public": dream.is_public})
    return get_dream(dream.id)


def get_dream(dream_id: str, owner_id: Optional[str] = None) -> Optional[Dream]:
    """Get a dream by id, optionally restricted to its owner."""
    if not dream_id or not dream_id.strip():
        return None

    with get_db() as conn:
        cursor = conn.cursor()
        if owner_id is None:
            dreams = _load_dreams(cursor, "WHERE id = ?", (dream_id,))
        else:
            dreams = _load_dreams(cursor, "WHERE id = ? AND user_id = ?", (dream_id, owner_id))
    return dreams[0] if dreams else None


def list_dreams(owner_id: str) -> List[Dream]:
    """List a user's dreams, newest first."""
    if not owner_id or not owner_id.strip():
        return []

    with get_db() as conn:
        return _load_dreams(conn.cursor(), "WHERE user_id = ?", (owner_id,), "ORDER BY timestamp DESC")


def list_public_dreams(limit: Optional[int] = None) -> List[Dream]:
    """List public dreams across all users, newest first."""
    with get_db() as conn:
        if limit is None:
            return _load_dreams(conn.cursor(), "WHERE is_public = 1", (), "ORDER BY timestamp DESC")
        return _load_dreams(conn.cursor(), "WHERE is_public = 1", (limit,), "ORDER BY timestamp DESC LIMIT ?")


def get_dreams_by_ids(dream_ids: List[str]) -> Dict[str, Dream]:
    """Hydrate dreams by id; missing ids are simply absent from the result."""
    if not dream_ids:
        return {}

    placeholders = ",".join("?" for _ in dream_ids)
    with get_db() as conn:
        dreams = _load_dreams(conn.cursor(), f"WHERE id IN ({placeholders})", tuple(dream_ids))
    return {dream.id: dream for dream in dreams}


def update_dream(dream_id: str, owner_id: str, changes: Dict[str, Any],
                 analysis: Optional[Dict[str, Any]] = None) -> Optional[Dream]:
    """Apply a partial update to a dream owned by owner_id.

    ``changes`` holds dream columns from UPDATABLE_FIELDS. ``analysis`` may carry
    emotional_analysis, creative_story, themes and symbols (DreamSymbol list);
    symbols, when given, replace the stored list. Returns the updated dream, or None if the user
    owns no dream with this id.
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")

    if get_dream(dream_id, owner_id) is None:
        return None

    try:
        with get_db() as conn:
            cursor = conn.cursor()

            if changes:
                assignments = ", ".join(f"{column} = ?" for column in changes)
                cursor.execute(
                    f"UPDATE dreams SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ? AND user_id = ?",
                    (*changes.values(), dream_id, owner_id)
                )

            if analysis is not None:
                _update_analysis(cursor, dream_id, analysis)
                cursor.execute("UPDATE dreams SET updated_at = CURRENT_TIMESTAMP WHERE id = ?", (dream_id,))

            conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Database error during update_dream '{dream_id}' for user '{owner_id}': {e}")
        raise

    logger.log_dream_operation("updated", dream_id, owner_id, details={
        "fields": sorted(changes) + (["analysis"] if analysis is not None else [])
    })
    return get_dream(dream_id, owner_id)


def _update_analysis(cursor, dream_id: str, analysis: Dict[str, Any]):
    cursor.execute("SELECT id FROM dream_analysis WHERE dream_id = ?", (dream_id,))
    if cursor.fetchone():
        assignments = []
        values = []
        for column in ('emotional_analysis', 'creative_story'):
            if analysis.get(column) is not None:
                assignments.append(f"{column} = ?")
                values.append(analysis[column])
        if analysis.get('themes') is not None:
            assignments.append("themes = ?")
            values.append(json.dumps(list(analysis['themes'])))
        if assignments:
            cursor.execute(f"UPDATE dream_analysis SET {', '.join(assignments)} WHERE dream_id = ?", (*values, dream_id))
    else:
        cursor.execute(
            "INSERT INTO dream_analysis (dream_id, emotional_analysis, creative_story, themes) VALUES (?, ?, ?, ?)",
            (dream_id, analysis.get('emotional_analysis') or "", analysis.get('creative_story') or "",
             json.dumps(list(analysis.get('themes') or [])))
        )

    if analysis.get('symbols') is not None:
        cursor.execute("DELETE FROM dream_symbols WHERE dream_id = ?", (dream_id,))
        _insert_symbols(cursor, dream_id, analysis['symbols'])


def delete_dream(dream_id: str, owner_id: str) -> bool:
    """Delete a dream owned by owner_id. Analysis and symbols cascade."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM dreams WHERE id = ? AND user_id = ?", (dream_id, owner_id))
            conn.commit()
            deleted = cursor.rowcount > 0
    except sqlite3.Error as e:
        logger.error(f"Database error during delete_dream '{dream_id}' for user '{owner_id}': {e}")
        raise

    if deleted:
        logger.log_dream_operation("deleted", dream_id, owner_id)
    return deleted


def list_dream_ids(owner_id: Optional[str] = None, public_only: bool = False) -> List[str]:
    """List dream ids for one owner or all owners, optionally only public ones."""
    clauses = []
    params: List[Any] = []
    if owner_id is not None:
        clauses.append("user_id = ?")
        params.append(owner_id)
    if public_only:
        clauses.append("is_public = 1")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"SELECT id FROM dreams {where}", params)
        return [row[0] for row in cursor.fetchall()]


def list_owner_ids() -> List[str]:
    """List every user that owns at least one dream."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT DISTINCT user_id FROM dreams ORDER BY user_id")
        return [row[0] for row in cursor.fetchall()]


def get_dream_count(owner_id: Optional[str] = None) -> int:
    """Get count of dreams for a user or all users."""
    with get_db() as conn:
        cursor = conn.cursor()
        if owner_id and owner_id.strip():
            cursor.execute("SELECT COUNT(*) FROM dreams WHERE user_id = ?", (owner_id.strip(),))
        else:
            cursor.execute("SELECT COUNT(*) FROM dreams")
        result = cursor.fetchone()
        return result[0] if result else 0
