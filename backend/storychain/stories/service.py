"""StoryService: story persistence, chain assembly and hearts.

Sequence numbers are assigned inside ``Database.transaction()``: the
``MAX(sequence) + 1`` read and the INSERT happen while the connection lock
is held, so concurrent submissions to one chain can never observe the same
maximum. ``UNIQUE (chain_id, sequence)`` backs this up at the schema level.
"""
import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional

from storychain.auth.schemas import User
from storychain.auth.service import XP_PER_CONTRIBUTION, level_for
from storychain.db import Database
from storychain.errors import ConflictError, InvalidInputError, NotFoundError

from .schemas import HeartResult, Story, StoryChain

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, chain_id, room_id, content, author_id, author_name, sequence, "
    "hearts, comments, created_at"
)


def row_to_story(row: tuple) -> Story:
    return Story(
        id=row[0],
        chainId=row[1],
        roomId=row[2],
        content=row[3],
        authorId=row[4],
        authorName=row[5],
        sequence=row[6],
        hearts=row[7],
        comments=row[8],
        createdAt=row[9],
    )


def build_chain(stories: List[Story]) -> StoryChain:
    """Aggregate a non-empty, sequence-ordered list of one chain's stories."""
    first = stories[0]
    return StoryChain(
        chainId=first.chainId,
        roomId=first.roomId,
        stories=stories,
        totalHearts=sum(s.hearts for s in stories),
        totalComments=sum(s.comments for s in stories),
        contributorCount=len({s.authorId for s in stories}),
        createdAt=first.createdAt,
        updatedAt=max(s.createdAt for s in stories),
    )


class StoryService:
    """Story operations over the shared database."""

    def __init__(self, db: Database, max_content_length: int = 500) -> None:
        self._db = db
        self._max_content_length = max_content_length

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def create(
        self,
        author: User,
        content: str,
        chain_id: Optional[int] = None,
        room_id: Optional[str] = None,
    ) -> Story:
        """Append a story to a chain, starting a new chain when none is given.

        The author's contribution count, experience points and level are
        updated in the same transaction.

        Raises:
            InvalidInputError: Empty or over-long content, or a new ``chain_id``
                past the next free id.
            NotFoundError: ``room_id`` does not name a room.
            ConflictError: The chain already lives in a different room.
        """
        content = content.strip()
        if not content:
            raise InvalidInputError("Story content cannot be empty")
        if len(content) > self._max_content_length:
            raise InvalidInputError(
                f"Story content exceeds {self._max_content_length} characters"
            )

        story_id = str(uuid.uuid4())
        now = datetime.utcnow()

        with self._db.transaction() as conn:
            if room_id is not None and conn.execute(
                "SELECT 1 FROM rooms WHERE id = ?", [room_id]
            ).fetchone() is None:
                raise NotFoundError("Room not found")

            next_id = conn.execute(
                "SELECT COALESCE(MAX(chain_id), 0) + 1 FROM stories"
            ).fetchone()[0]
            if chain_id is None:
                chain_id = next_id
            else:
                existing = conn.execute(
                    "SELECT room_id FROM stories WHERE chain_id = ? LIMIT 1", [chain_id]
                ).fetchone()
                # A new chain may not skip ahead of the next free id.
                if existing is None and chain_id > next_id:
                    raise InvalidInputError(
                        f"Chain {chain_id} does not exist; the next new chain is {next_id}"
                    )
                if existing is not None:
                    if room_id is None:
                        room_id = existing[0]
                    elif existing[0] != room_id:
                        raise ConflictError("Chain belongs to a different room")

            sequence = conn.execute(
                "SELECT COALESCE(MAX(sequence), 0) + 1 FROM stories WHERE chain_id = ?",
                [chain_id],
            ).fetchone()[0]

            conn.execute(
                f"INSERT INTO stories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, 0, 0, ?)",
                [story_id, chain_id, room_id, content, author.id, author.username,
                 sequence, now],
            )

            xp = conn.execute(
                "SELECT experience_points FROM users WHERE id = ?", [author.id]
            ).fetchone()
            if xp is not None:
                new_xp = xp[0] + XP_PER_CONTRIBUTION
                conn.execute(
                    """
                    UPDATE users
                    SET contributions_count = contributions_count + 1,
                        experience_points = ?, level = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    [new_xp, level_for(new_xp), now, author.id],
                )

        logger.info(
            "[StoryService] Story %s: chain=%s seq=%s room=%s author=%s",
            story_id, chain_id, sequence, room_id, author.id,
        )
        return self.get(story_id)

    def toggle_heart(self, story_id: str, user_id: str) -> HeartResult:
        """Heart or un-heart a story for one user.

        The hearts row, the story's counter and the author's
        ``hearts_received`` change together or not at all.

        Raises:
            NotFoundError: No such story.
        """
        with self._db.transaction() as conn:
            story = conn.execute(
                "SELECT author_id FROM stories WHERE id = ?", [story_id]
            ).fetchone()
            if story is None:
                raise NotFoundError("Story not found")

            removed = conn.execute(
                "DELETE FROM hearts WHERE story_id = ? AND user_id = ? RETURNING story_id",
                [story_id, user_id],
            ).fetchone()
            if removed is None:
                conn.execute(
                    "INSERT INTO hearts (story_id, user_id, created_at) VALUES (?, ?, ?)",
                    [story_id, user_id, datetime.utcnow()],
                )
                delta = 1
            else:
                delta = -1

            hearts = conn.execute(
                "UPDATE stories SET hearts = hearts + ? WHERE id = ? RETURNING hearts",
                [delta, story_id],
            ).fetchone()[0]
            conn.execute(
                "UPDATE users SET hearts_received = hearts_received + ? WHERE id = ?",
                [delta, story[0]],
            )

        return HeartResult(hearted=delta > 0, hearts=hearts)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def find(self, story_id: str) -> Optional[Story]:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM stories WHERE id = ?", [story_id])
        return row_to_story(row) if row else None

    def get(self, story_id: str) -> Story:
        story = self.find(story_id)
        if story is None:
            raise NotFoundError("Story not found")
        return story

    def chain(self, chain_id: int) -> List[Story]:
        rows = self._db.fetchall(
            f"SELECT {_COLUMNS} FROM stories WHERE chain_id = ? ORDER BY sequence",
            [chain_id],
        )
        return [row_to_story(r) for r in rows]

    def chains(self, limit: int = 10, room_id: Optional[str] = None) -> List[StoryChain]:
        """Most recently extended chains first, each ordered by sequence."""
        where = "WHERE room_id = ?" if room_id is not None else ""
        params: list = [room_id] if room_id is not None else []
        ids = [
            r[0]
            for r in self._db.fetchall(
                f"""
                SELECT chain_id FROM stories {where}
                GROUP BY chain_id
                ORDER BY MAX(created_at) DESC, chain_id DESC
                LIMIT ?
                """,
                params + [limit],
            )
        ]
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        rows = self._db.fetchall(
            f"SELECT {_COLUMNS} FROM stories WHERE chain_id IN ({placeholders}) "
            "ORDER BY chain_id, sequence",
            ids,
        )
        grouped: Dict[int, List[Story]] = OrderedDict((chain_id, []) for chain_id in ids)
        for row in rows:
            story = row_to_story(row)
            grouped[story.chainId].append(story)
        return [build_chain(stories) for stories in grouped.values() if stories]

    def next_chain_id(self) -> int:
        return self._db.fetchone("SELECT COALESCE(MAX(chain_id), 0) + 1 FROM stories")[0]

    def by_author(self, user_id: str) -> List[Story]:
        rows = self._db.fetchall(
            f"SELECT {_COLUMNS} FROM stories WHERE author_id = ? ORDER BY created_at DESC",
            [user_id],
        )
        return [row_to_story(r) for r in rows]
