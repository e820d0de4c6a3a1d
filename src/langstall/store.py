from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from .clock import Clock, SystemClock
from .config import settings
from .logging import logger
from .scheduler import (
    INITIAL_EASE_FACTOR,
    INITIAL_INTERVAL,
    ReviewEvent,
    VocabularyItem,
    is_lapse,
    review,
    validate_quality,
)


class DuplicateVocabularyError(Exception):
    """The user already saved this word in this language."""

    def __init__(self, word: str, language: str) -> None:
        self.word = word
        self.language = language
        super().__init__(f"word already in vocabulary: {word!r} ({language})")


_ITEM_COLUMNS = (
    "id, user_id, word, translation, context, language, mnemonic, "
    "next_review, interval, ease_factor, review_count, created_at"
)


def _to_db_time(value: datetime) -> str:
    # fixed-width UTC text so that string comparison orders by time
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(raw: str) -> datetime:
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _row_to_item(row: sqlite3.Row) -> VocabularyItem:
    return VocabularyItem(
        id=int(row["id"]),
        user_id=row["user_id"],
        word=row["word"],
        translation=row["translation"],
        context=row["context"],
        language=row["language"],
        mnemonic=row["mnemonic"],
        next_review=_from_db_time(row["next_review"]),
        interval=int(row["interval"]),
        ease_factor=float(row["ease_factor"]),
        review_count=int(row["review_count"]),
        created_at=_from_db_time(row["created_at"]),
    )


class VocabularyStore:
    """SQLite-backed vocabulary store with an append-only review log.

    - every row is scoped by user_id
    - reviews run the scheduler inside BEGIN IMMEDIATE, so concurrent
      reviews of one card are serialised instead of last-writer-wins
    - review history rows are never updated; they go away only with their card
    """

    def __init__(self, db_path: str, clock: Clock | None = None) -> None:
        self.db_path = db_path
        self.clock: Clock = clock or SystemClock()
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on PRAGMA
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS vocabulary (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        word TEXT NOT NULL,
                        translation TEXT NOT NULL,
                        context TEXT,
                        language TEXT NOT NULL,
                        mnemonic TEXT,
                        next_review TEXT NOT NULL,
                        interval INTEGER NOT NULL DEFAULT {INITIAL_INTERVAL},
                        ease_factor REAL NOT NULL DEFAULT {INITIAL_EASE_FACTOR},
                        review_count INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS reviews (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        vocabulary_id INTEGER NOT NULL,
                        quality INTEGER NOT NULL,
                        reviewed_at TEXT NOT NULL,
                        FOREIGN KEY(vocabulary_id) REFERENCES vocabulary(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_vocabulary_user_id ON vocabulary(user_id);")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_vocabulary_next_review ON vocabulary(next_review);")
                conn.execute(
                    "CREATE UNIQUE INDEX IF NOT EXISTS idx_vocabulary_user_word_lang "
                    "ON vocabulary(user_id, word, language);"
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_reviews_vocabulary_id ON reviews(vocabulary_id);")
        finally:
            conn.close()

    # --- vocabulary ---
    def add(
        self,
        user_id: str,
        word: str,
        translation: str,
        language: str,
        context: str | None = None,
        mnemonic: str | None = None,
    ) -> VocabularyItem:
        """Save a new word. It is due for review immediately."""
        now = _to_db_time(self.clock.now())
        conn = self._connect()
        try:
            cur = conn.execute(
                "SELECT 1 FROM vocabulary WHERE user_id = ? AND word = ? AND language = ?;",
                (user_id, word, language),
            )
            if cur.fetchone() is not None:
                raise DuplicateVocabularyError(word, language)
            try:
                with conn:
                    cur = conn.execute(
                        """
                        INSERT INTO vocabulary(
                            user_id, word, translation, context, language, mnemonic,
                            next_review, interval, ease_factor, review_count, created_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?);
                        """,
                        (
                            user_id,
                            word,
                            translation,
                            context,
                            language,
                            mnemonic,
                            now,
                            INITIAL_INTERVAL,
                            INITIAL_EASE_FACTOR,
                            now,
                        ),
                    )
            except sqlite3.IntegrityError as exc:
                # lost a race with another insert of the same word
                raise DuplicateVocabularyError(word, language) from exc
            row = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM vocabulary WHERE id = ?;", (cur.lastrowid,)
            ).fetchone()
            return _row_to_item(row)
        finally:
            conn.close()

    def get(self, user_id: str, item_id: int) -> Optional[VocabularyItem]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM vocabulary WHERE id = ? AND user_id = ?;",
                (item_id, user_id),
            ).fetchone()
            return _row_to_item(row) if row is not None else None
        finally:
            conn.close()

    def list(self, user_id: str) -> List[VocabularyItem]:
        """All saved words, newest first."""
        conn = self._connect()
        try:
            cur = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM vocabulary WHERE user_id = ? ORDER BY created_at DESC, id DESC;",
                (user_id,),
            )
            return [_row_to_item(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def list_due(self, user_id: str, now: datetime | None = None, limit: int | None = None) -> List[VocabularyItem]:
        """Words with next_review <= now, the longest-waiting first."""
        now_s = _to_db_time(now or self.clock.now())
        conn = self._connect()
        try:
            cur = conn.execute(
                f"""
                SELECT {_ITEM_COLUMNS} FROM vocabulary
                WHERE user_id = ? AND next_review <= ?
                ORDER BY next_review ASC, id ASC
                LIMIT ?;
                """,
                (user_id, now_s, -1 if limit is None else limit),
            )
            return [_row_to_item(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def delete(self, user_id: str, item_id: int) -> bool:
        """Delete a word and its review history. False if it did not exist."""
        conn = self._connect()
        try:
            with conn:
                cur = conn.execute(
                    "DELETE FROM vocabulary WHERE id = ? AND user_id = ?;",
                    (item_id, user_id),
                )
                return cur.rowcount > 0
        finally:
            conn.close()

    # --- reviews ---
    def record_review(
        self, user_id: str, item_id: int, quality: int
    ) -> Optional[Tuple[VocabularyItem, ReviewEvent]]:
        """Apply a review to a saved word and append it to the log.

        Returns None when the word does not exist for this user.

        Raises:
            InvalidQuality: quality is not an integer in [0, 5].
        """
        validate_quality(quality)
        conn = self._connect()
        try:
            # BEGIN IMMEDIATE to avoid concurrent writers on the same row
            conn.execute("BEGIN IMMEDIATE;")
            row = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM vocabulary WHERE id = ? AND user_id = ?;",
                (item_id, user_id),
            ).fetchone()
            if row is None:
                conn.execute("ROLLBACK;")
                return None

            item = _row_to_item(row)
            updated, event = review(item, quality, self.clock.now())

            conn.execute(
                """
                UPDATE vocabulary
                SET interval = ?, ease_factor = ?, review_count = ?, next_review = ?
                WHERE id = ?;
                """,
                (
                    updated.interval,
                    updated.ease_factor,
                    updated.review_count,
                    _to_db_time(updated.next_review),
                    item.id,
                ),
            )
            conn.execute(
                "INSERT INTO reviews(vocabulary_id, quality, reviewed_at) VALUES (?, ?, ?);",
                (item.id, event.quality, _to_db_time(event.reviewed_at)),
            )
            conn.execute("COMMIT;")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK;")
            raise
        finally:
            conn.close()

        logger.info(
            "vocabulary_reviewed",
            user_id=user_id,
            vocabulary_id=item.id,
            quality=quality,
            lapse=is_lapse(quality),
            previous_review_count=item.review_count,
            interval=updated.interval,
            ease_factor=updated.ease_factor,
            review_count=updated.review_count,
        )
        return updated, event

    def list_reviews(self, user_id: str, item_id: int, limit: int = 50) -> List[ReviewEvent]:
        """Review history for a word, newest first."""
        conn = self._connect()
        try:
            cur = conn.execute(
                """
                SELECT r.vocabulary_id, r.quality, r.reviewed_at
                FROM reviews r
                JOIN vocabulary v ON v.id = r.vocabulary_id
                WHERE r.vocabulary_id = ? AND v.user_id = ?
                ORDER BY r.reviewed_at DESC, r.id DESC
                LIMIT ?;
                """,
                (item_id, user_id, limit),
            )
            return [
                ReviewEvent(
                    vocabulary_item_id=int(row["vocabulary_id"]),
                    quality=int(row["quality"]),
                    reviewed_at=_from_db_time(row["reviewed_at"]),
                )
                for row in cur.fetchall()
            ]
        finally:
            conn.close()

    # --- stats ---
    def get_stats(self, user_id: str, now: datetime | None = None) -> Tuple[int, int, int]:
        """Return (total, due_now, reviewed_today).

        reviewed_today counts reviews since 00:00 UTC of ``now``.
        """
        now = (now or self.clock.now()).astimezone(timezone.utc)
        today_start = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
        conn = self._connect()
        try:
            total = int(
                conn.execute(
                    "SELECT COUNT(1) AS c FROM vocabulary WHERE user_id = ?;", (user_id,)
                ).fetchone()["c"]
            )
            due_now = int(
                conn.execute(
                    "SELECT COUNT(1) AS c FROM vocabulary WHERE user_id = ? AND next_review <= ?;",
                    (user_id, _to_db_time(now)),
                ).fetchone()["c"]
            )
            reviewed_today = int(
                conn.execute(
                    """
                    SELECT COUNT(1) AS c FROM reviews r
                    JOIN vocabulary v ON v.id = r.vocabulary_id
                    WHERE v.user_id = ? AND r.reviewed_at >= ?;
                    """,
                    (user_id, _to_db_time(today_start)),
                ).fetchone()["c"]
            )
            return total, due_now, reviewed_today
        finally:
            conn.close()


# module-level singleton store (wired to settings)
store = VocabularyStore(db_path=settings.database_path)
