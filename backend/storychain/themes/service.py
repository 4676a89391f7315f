"""ThemeService: writing prompts and the theme of the day."""
import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from storychain.db import Database
from storychain.errors import NotFoundError

from .schemas import Theme, ThemeCreate

logger = logging.getLogger(__name__)

DEFAULT_THEMES = [
    ("Lost at Sea", "A message in a bottle washes ashore, addressed to you.",
     "Shipwrecks, islands and the people who wait for them."),
    ("The Last Library", "Only one library survived. Tonight someone is breaking in.",
     "Books, secrets and the cost of knowledge."),
    ("Clockwork City", "Every citizen winds their heart each morning, except one.",
     "Steampunk streets and mechanical lives."),
    ("First Contact", "The signal was not coming from the sky but from under the ice.",
     "Strangers from elsewhere and what they want."),
    ("Small Magic", "A street vendor sells spells that only work on Tuesdays.",
     "Everyday wonders and their side effects."),
    ("The Long Road Home", "Three strangers share a car on a snowed-in highway.",
     "Journeys, detours and unexpected company."),
    ("Midnight Garden", "The flowers bloom only when nobody is watching.",
     "Mystery, growth and things that hide in plain sight."),
]

_COLUMNS = "id, title, prompt, description, created_at"


def _to_theme(row: tuple) -> Theme:
    return Theme(id=row[0], title=row[1], prompt=row[2], description=row[3], createdAt=row[4])


class ThemeService:
    """Theme operations over the shared database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def seed_defaults(self) -> int:
        """Insert the built-in themes into an empty table.

        Returns:
            Number of themes inserted (0 when the table already had rows).
        """
        with self._db.transaction() as conn:
            if conn.execute("SELECT COUNT(*) FROM themes").fetchone()[0]:
                return 0
            now = datetime.utcnow()
            for title, prompt, description in DEFAULT_THEMES:
                conn.execute(
                    "INSERT INTO themes (title, prompt, description, created_at) VALUES (?, ?, ?, ?)",
                    [title, prompt, description, now],
                )
        logger.info("[ThemeService] Seeded %d default themes", len(DEFAULT_THEMES))
        return len(DEFAULT_THEMES)

    def list_themes(self) -> List[Theme]:
        rows = self._db.fetchall(f"SELECT {_COLUMNS} FROM themes ORDER BY id")
        return [_to_theme(r) for r in rows]

    def daily(self, today: Optional[date] = None) -> Theme:
        """Theme of the day: rotates through all themes, one per UTC date.

        Raises:
            NotFoundError: No themes exist.
        """
        themes = self.list_themes()
        if not themes:
            raise NotFoundError("No themes available")
        today = today or datetime.now(timezone.utc).date()
        return themes[today.toordinal() % len(themes)]

    def create(self, request: ThemeCreate) -> Theme:
        row = self._db.fetchone(
            f"INSERT INTO themes (title, prompt, description, created_at) "
            f"VALUES (?, ?, ?, ?) RETURNING {_COLUMNS}",
            [request.title.strip(), request.prompt.strip(), request.description,
             datetime.utcnow()],
        )
        logger.info("[ThemeService] Added theme %s: %s", row[0], row[1])
        return _to_theme(row)
