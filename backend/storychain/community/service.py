"""CommunityService: aggregate stats and moderator-featured stories."""
import logging
from datetime import datetime, timedelta, timezone
from typing import List

from storychain.db import Database
from storychain.errors import NotFoundError
from storychain.stories.service import StoryService

from .schemas import CommunityStats, FeaturedPick

logger = logging.getLogger(__name__)


class CommunityService:

    def __init__(self, db: Database) -> None:
        self._db = db

    def stats(self) -> CommunityStats:
        """Totals over all stories; "daily" counts stories since UTC midnight."""
        midnight = datetime.now(timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0, tzinfo=None
        )
        row = self._db.fetchone(
            """
            SELECT COUNT(*),
                   COUNT(DISTINCT author_id),
                   COALESCE(SUM(hearts), 0),
                   COUNT(*) FILTER (WHERE created_at >= ? AND created_at < ?)
            FROM stories
            """,
            [midnight, midnight + timedelta(days=1)],
        )
        return CommunityStats(
            totalStories=row[0],
            activeUsers=row[1],
            totalHearts=int(row[2]),
            dailyContributions=row[3],
        )

    def picks(self, limit: int = 10) -> List[FeaturedPick]:
        rows = self._db.fetchall(
            """
            SELECT id, story_id, reason, picked_by, created_at
            FROM featured_picks ORDER BY created_at DESC, id DESC LIMIT ?
            """,
            [limit],
        )
        stories = StoryService(self._db)
        return [
            FeaturedPick(
                id=r[0], storyId=r[1], reason=r[2], pickedBy=r[3], createdAt=r[4],
                story=stories.find(r[1]),
            )
            for r in rows
        ]

    def add_pick(self, story_id: str, reason: str, picked_by: str) -> FeaturedPick:
        """Feature a story.

        Raises:
            NotFoundError: No such story.
        """
        story = StoryService(self._db).find(story_id)
        if story is None:
            raise NotFoundError("Story not found")
        row = self._db.fetchone(
            """
            INSERT INTO featured_picks (story_id, reason, picked_by, created_at)
            VALUES (?, ?, ?, ?) RETURNING id, created_at
            """,
            [story_id, reason.strip(), picked_by, datetime.utcnow()],
        )
        logger.info("[CommunityService] %s featured story %s", picked_by, story_id)
        return FeaturedPick(
            id=row[0], storyId=story_id, reason=reason.strip(), pickedBy=picked_by,
            createdAt=row[1], story=story,
        )
