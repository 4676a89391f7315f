"""Render a story chain as a downloadable PDF or PNG.

PDF layout uses reportlab's platypus (title, byline, one paragraph per
contribution). The PNG is a single tall card drawn with Pillow.
"""
import logging
import re
import textwrap
from io import BytesIO
from typing import List
from xml.sax.saxutils import escape

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from storychain.stories.schemas import Story

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def export_filename(title: str, extension: str) -> str:
    """``My Story!`` -> ``my_story_.pdf``; empty titles become ``story``."""
    stem = _UNSAFE_FILENAME_CHARS.sub("_", title).lower() or "story"
    return f"{stem}.{extension}"


def _printable(text: str) -> str:
    # The bitmap fallback font only covers Latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _contributors(stories: List[Story]) -> List[str]:
    seen: List[str] = []
    for story in stories:
        if story.authorName not in seen:
            seen.append(story.authorName)
    return seen


class StoryPDFRenderer:
    """Builds an A4 PDF for one chain."""

    def __init__(self) -> None:
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name="StoryTitle",
            parent=self.styles["Title"],
            fontSize=22,
            textColor=HexColor("#1a1a1a"),
            spaceAfter=6,
            alignment=TA_CENTER,
            fontName="Helvetica-Bold",
        ))
        self.styles.add(ParagraphStyle(
            name="Byline",
            parent=self.styles["Normal"],
            fontSize=10,
            textColor=HexColor("#6b6b6b"),
            alignment=TA_CENTER,
            spaceAfter=18,
        ))
        self.styles.add(ParagraphStyle(
            name="StoryPart",
            parent=self.styles["BodyText"],
            fontSize=12,
            leading=17,
            spaceAfter=4,
        ))
        self.styles.add(ParagraphStyle(
            name="Attribution",
            parent=self.styles["Normal"],
            fontSize=8,
            textColor=HexColor("#8a8a8a"),
            spaceAfter=12,
        ))

    def render(self, title: str, stories: List[Story]) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=72,
            leftMargin=72,
            topMargin=72,
            bottomMargin=72,
            title=title,
        )

        flowables = [
            Paragraph(escape(title), self.styles["StoryTitle"]),
            Paragraph(
                escape("A collaborative story by " + ", ".join(_contributors(stories))),
                self.styles["Byline"],
            ),
            Spacer(1, 6),
        ]
        for story in stories:
            flowables.append(Paragraph(escape(story.content), self.styles["StoryPart"]))
            flowables.append(Paragraph(
                escape(f"#{story.sequence} by {story.authorName}, {story.hearts} heart(s)"),
                self.styles["Attribution"],
            ))

        doc.build(flowables)
        data = buffer.getvalue()
        logger.info(f"[Export] Rendered PDF '{title}' ({len(stories)} parts, {len(data)} bytes)")
        return data


class StoryImageRenderer:
    """Draws a chain onto a PNG card."""

    WIDTH = 800
    MARGIN = 40
    WRAP_CHARS = 90
    COLORS = {
        "background": "#fdf8f0",
        "title": "#1a1a1a",
        "text": "#2d2d2d",
        "meta": "#8a8a8a",
    }

    def __init__(self) -> None:
        self.font = ImageFont.load_default()

    def _line_height(self) -> int:
        left, top, right, bottom = self.font.getbbox("Ay")
        return (bottom - top) + 6

    def render(self, title: str, stories: List[Story]) -> bytes:
        lines = [(title, "title"), ("", "text")]
        for story in stories:
            for wrapped in textwrap.wrap(story.content, self.WRAP_CHARS) or [""]:
                lines.append((wrapped, "text"))
            lines.append((f"#{story.sequence} by {story.authorName}", "meta"))
            lines.append(("", "text"))

        line_height = self._line_height()
        height = self.MARGIN * 2 + line_height * len(lines)
        img = Image.new("RGB", (self.WIDTH, height), self.COLORS["background"])
        draw = ImageDraw.Draw(img)

        y = self.MARGIN
        for text, kind in lines:
            if text:
                draw.text((self.MARGIN, y), _printable(text), fill=self.COLORS[kind], font=self.font)
            y += line_height

        buffer = BytesIO()
        img.save(buffer, format="PNG")
        data = buffer.getvalue()
        logger.info(f"[Export] Rendered PNG '{title}' ({self.WIDTH}x{height})")
        return data
