"""PasswordHistoryService: saved analyses (hash only, never the password)."""
import json
import logging
from datetime import datetime
from typing import List

from pydantic import BaseModel

from storychain.auth.security import hash_password
from storychain.db import Database
from storychain.errors import NotFoundError

from .analyzer import PasswordAnalysis, PasswordDetails

logger = logging.getLogger(__name__)


class SavedAnalysis(PasswordAnalysis):
    id: int
    createdAt: datetime


class PasswordHistoryService:

    def __init__(self, db: Database) -> None:
        self._db = db

    def save(self, password: str, analysis: PasswordAnalysis) -> SavedAnalysis:
        row = self._db.fetchone(
            """
            INSERT INTO password_analyses
                (hashed_password, score, strength, feedback, details, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id, created_at
            """,
            [hash_password(password), analysis.score, analysis.strength,
             analysis.feedback, analysis.details.model_dump_json(), datetime.utcnow()],
        )
        logger.info("[PasswordHistory] Saved analysis %s (score=%s)", row[0], analysis.score)
        return SavedAnalysis(id=row[0], createdAt=row[1], **analysis.model_dump())

    def recent(self, limit: int = 10) -> List[SavedAnalysis]:
        rows = self._db.fetchall(
            """
            SELECT id, score, strength, feedback, details, created_at
            FROM password_analyses ORDER BY created_at DESC, id DESC LIMIT ?
            """,
            [limit],
        )
        return [
            SavedAnalysis(
                id=r[0],
                score=r[1],
                strength=r[2],
                feedback=list(r[3] or []),
                details=PasswordDetails(**json.loads(r[4])),
                createdAt=r[5],
            )
            for r in rows
        ]

    def delete(self, analysis_id: int) -> None:
        """Raises NotFoundError for an unknown id."""
        deleted = self._db.fetchone(
            "DELETE FROM password_analyses WHERE id = ? RETURNING id", [analysis_id]
        )
        if deleted is None:
            raise NotFoundError("Analysis not found")

    def clear(self) -> int:
        rows = self._db.fetchall("DELETE FROM password_analyses RETURNING id")
        return len(rows)


class DeleteResult(BaseModel):
    deleted: int
