"""
Renders the printable registration form (F4 paper) with PyMuPDF.
"""
from __future__ import annotations

import logging
import textwrap

import fitz

from .form_data_builder import RegistrationRecord
from .summary import SummarySection, build_summary

logger = logging.getLogger(__name__)

# F4 / folio, 215 x 330 mm in points
PAGE_WIDTH: float = 609.45
PAGE_HEIGHT: float = 935.43
MARGIN: float = 42.5
FONT_NAME: str = "helv"
BOLD_FONT_NAME: str = "hebo"
FONT_SIZE: int = 10
LINE_HEIGHT: float = 15.0
LABEL_WIDTH: float = 170.0
VALUE_WRAP_CHARS: int = 70

SCHOOL_HEADER: list[str] = [
    "FORMULIR PENDAFTARAN PESERTA DIDIK BARU",
    "MI ROUDLOTUT THOLIBIN WARUKULON",
    "TAHUN PELAJARAN 2025/2026",
]


class _Writer:
    """Keeps the cursor and opens new pages as text runs past the bottom margin."""

    def __init__(self, doc: fitz.Document) -> None:
        self.doc = doc
        self.page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = MARGIN

    def _ensure_room(self, lines: int = 1) -> None:
        if self.y + lines * LINE_HEIGHT > PAGE_HEIGHT - MARGIN:
            self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
            self.y = MARGIN

    def centered(self, text: str, bold: bool = True, size: int = FONT_SIZE + 2) -> None:
        self._ensure_room()
        rect = fitz.Rect(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y + LINE_HEIGHT + 4)
        self.page.insert_textbox(rect, text, fontname=BOLD_FONT_NAME if bold else FONT_NAME,
                                 fontsize=size, align=fitz.TEXT_ALIGN_CENTER)
        self.y += LINE_HEIGHT + 2

    def rule(self) -> None:
        self.page.draw_line(fitz.Point(MARGIN, self.y), fitz.Point(PAGE_WIDTH - MARGIN, self.y), width=1)
        self.y += LINE_HEIGHT * 0.6

    def text(self, text: str, bold: bool = False) -> None:
        self._ensure_room()
        self.y += LINE_HEIGHT
        self.page.insert_text((MARGIN, self.y), text, fontname=BOLD_FONT_NAME if bold else FONT_NAME,
                              fontsize=FONT_SIZE)

    def row(self, label: str, value: str) -> None:
        lines = textwrap.wrap(value, VALUE_WRAP_CHARS) or ['']
        self._ensure_room(len(lines))
        self.y += LINE_HEIGHT
        self.page.insert_text((MARGIN, self.y), label, fontname=FONT_NAME, fontsize=FONT_SIZE)
        self.page.insert_text((MARGIN + LABEL_WIDTH, self.y), ':', fontname=FONT_NAME, fontsize=FONT_SIZE)
        for i, line in enumerate(lines):
            if i:
                self.y += LINE_HEIGHT
            self.page.insert_text((MARGIN + LABEL_WIDTH + 10, self.y), line,
                                  fontname=FONT_NAME, fontsize=FONT_SIZE)


def _write_section(writer: _Writer, section: SummarySection) -> None:
    writer.y += LINE_HEIGHT * 0.5
    writer.text(section.title, bold=True)
    writer.y += 4
    writer.rule()
    if section.note:
        writer.text(section.note)
    for label, value in section.rows:
        writer.row(label, value)


def render_summary_pdf(record: RegistrationRecord, region_names: dict[str, str] | None = None) -> bytes:
    """Builds the whole printable form and returns the PDF bytes."""
    doc = fitz.open()
    try:
        writer = _Writer(doc)
        for line in SCHOOL_HEADER:
            writer.centered(line)
        writer.rule()

        for section in build_summary(record, region_names):
            _write_section(writer, section)

        # Signature block
        writer.y += LINE_HEIGHT * 2
        writer.text("Lamongan, ..........................................")
        writer.text("Orang Tua / Wali Murid,")
        writer.y += LINE_HEIGHT * 4
        writer.text("( .......................................... )")

        pdf_bytes = doc.tobytes(garbage=4, deflate=True, clean=True)
        logger.info(f"Rendered registration PDF ({doc.page_count} page(s), {len(pdf_bytes)} bytes)")
        return pdf_bytes
    finally:
        doc.close()
