"""
PDF Service

Renders a record transcript into a paginated A4 document with PyMuPDF.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import fitz  # PyMuPDF

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")
MARGIN = 50.0
TOP = 60.0
BOTTOM_LIMIT = PAGE_HEIGHT - 60.0

TITLE_SIZE = 16.0
META_SIZE = 12.0
TEXT_SIZE = 10.0
LINE_HEIGHT = 14.0
SEGMENT_GAP = 10.0
TEXT_INDENT = 10.0


class PdfRenderError(Exception):
    """Document could not be produced"""


@dataclass(frozen=True)
class _Face:
    name: str
    font: fitz.Font
    fontfile: Optional[str] = None

    def width(self, text: str, size: float) -> float:
        return self.font.text_length(text, fontsize=size)


def _load_face(name: str, path: Optional[str], fallback: str) -> _Face:
    if path and Path(path).is_file():
        return _Face(name=name, font=fitz.Font(fontfile=path), fontfile=path)
    if path:
        logger.warning("PDF font %s not found, falling back to built-in %s (Latin only)", path, fallback)
    return _Face(name=fallback, font=fitz.Font(fallback))


def format_timestamp(seconds: float) -> str:
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def wrap_text(text: str, measure, max_width: float) -> list[str]:
    """Greedy word wrap; words wider than a line are broken by characters"""
    if not text.strip():
        return []
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if measure(candidate) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
            current = ""
        while measure(word) > max_width and len(word) > 1:
            cut = len(word) - 1
            while cut > 1 and measure(word[:cut]) > max_width:
                cut -= 1
            lines.append(word[:cut])
            word = word[cut:]
        current = word
    if current:
        lines.append(current)
    return lines


class PdfRenderer:
    def __init__(self, regular_font: Optional[str] = None, bold_font: Optional[str] = None):
        self.regular = _load_face("F0", regular_font or settings.pdf_font_regular, "helv")
        self.bold = _load_face("F1", bold_font or settings.pdf_font_bold, "hebo")

    def render_transcript(
        self, title: str, recorded_at: datetime, segments: Sequence[tuple[float, str]]
    ) -> bytes:
        """Render (start, text) segments in the given order"""
        try:
            return self._render(title, recorded_at, segments)
        except (RuntimeError, ValueError) as e:
            raise PdfRenderError(f"Failed to render transcript for '{title}'") from e

    def _render(self, title: str, recorded_at: datetime, segments: Sequence[tuple[float, str]]) -> bytes:
        document = fitz.open()
        text_width = PAGE_WIDTH - 2 * MARGIN - TEXT_INDENT - 40

        page = document.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        y = TOP
        y = self._write(page, MARGIN, y, title, self.bold, TITLE_SIZE) + 30
        y = self._write(page, MARGIN, y, f"Date: {recorded_at:%d.%m.%Y %H:%M}", self.regular, META_SIZE) + 30

        for start, text in segments:
            if y > BOTTOM_LIMIT:
                page = document.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                y = TOP
            y = self._write(page, MARGIN, y, f"[{format_timestamp(start)}]", self.bold, TEXT_SIZE) + 2

            for line in wrap_text(text, lambda s: self.regular.width(s, TEXT_SIZE), text_width):
                if y > BOTTOM_LIMIT:
                    page = document.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                    y = TOP
                y = self._write(page, MARGIN + TEXT_INDENT, y, line, self.regular, TEXT_SIZE)
            y += SEGMENT_GAP

        data = document.tobytes(garbage=3, deflate=True)
        document.close()
        return data

    @staticmethod
    def _write(page, x: float, y: float, text: str, face: _Face, size: float) -> float:
        page.insert_text(
            (x, y),
            text,
            fontsize=size,
            fontname=face.name,
            fontfile=face.fontfile,
        )
        return y + LINE_HEIGHT
