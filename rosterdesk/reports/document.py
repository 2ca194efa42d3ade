"""
Word-processor (DOCX) roster for one team.

Same content as the PDF roster, but laid out by the document flow: one table
with an embedded selfie per row followed by the declaration and signature
block.
"""

import logging
from io import BytesIO
from typing import List, Optional

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Emu, Pt, Twips

from ..images import ImageFetcher, TransformProfile, load_image
from ..models import Player
from . import branding
from .pdf_report import row_values

logger = logging.getLogger(__name__)

# A4 in twentieths of a point, 0.5" margins
PAGE_WIDTH_TWIPS = 11906
PAGE_HEIGHT_TWIPS = 16838
MARGIN_TWIPS = 720

EMU_PER_PIXEL = 9525
SELFIE_WIDTH_PX = 120
SELFIE_HEIGHT_PX = 80

TEXT_SIZE = Pt(10)


def _setup_page(document) -> None:
    section = document.sections[0]
    section.page_width = Twips(PAGE_WIDTH_TWIPS)
    section.page_height = Twips(PAGE_HEIGHT_TWIPS)
    section.top_margin = Twips(MARGIN_TWIPS)
    section.bottom_margin = Twips(MARGIN_TWIPS)
    section.left_margin = Twips(MARGIN_TWIPS)
    section.right_margin = Twips(MARGIN_TWIPS)


def _header_cell(cell, text: str) -> None:
    paragraph = cell.paragraphs[0]
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = paragraph.add_run(text)
    run.bold = True


def _text_cell(cell, text) -> None:
    run = cell.paragraphs[0].add_run(str(text if text is not None else ''))
    run.font.size = TEXT_SIZE


def _selfie_cell(cell, player: Player, fetcher: ImageFetcher) -> bool:
    """Embed the selfie or write the placeholder text; returns True if embedded"""
    paragraph = cell.paragraphs[0]
    result = load_image(player.selfie_image_url, TransformProfile.ARCHIVE_PNG, fetcher)
    if result.ok:
        try:
            paragraph.add_run().add_picture(
                BytesIO(result.data),
                width=Emu(SELFIE_WIDTH_PX * EMU_PER_PIXEL),
                height=Emu(SELFIE_HEIGHT_PX * EMU_PER_PIXEL)
            )
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            return True
        except Exception as e:
            logger.warning("Could not embed selfie %s: %s", player.selfie_image_url, e)
    elif player.selfie_image_url:
        logger.warning("Could not embed selfie %s (%s)", player.selfie_image_url, result.reason.value)

    _text_cell(cell, branding.NO_IMAGE_TEXT)
    return False


def _spacer(document, points: float) -> None:
    paragraph = document.add_paragraph()
    paragraph.paragraph_format.space_before = Pt(points)


def _centred(document, text: str) -> None:
    paragraph = document.add_paragraph(text)
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER


def build_roster_document(team_name: str, players: List[Player],
                          fetcher: Optional[ImageFetcher] = None) -> bytes:
    """Build the roster .docx for one team and return its bytes"""
    fetcher = fetcher or ImageFetcher()

    document = Document()
    _setup_page(document)

    heading = document.add_heading(team_name, level=1)
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
    subtitle = document.add_heading(branding.DOCUMENT_SUBTITLE, level=2)
    subtitle.alignment = WD_ALIGN_PARAGRAPH.CENTER

    table = document.add_table(rows=1, cols=len(branding.ROSTER_COLUMNS))
    table.style = 'Table Grid'
    table.alignment = WD_TABLE_ALIGNMENT.CENTER
    table.autofit = True

    for cell, column in zip(table.rows[0].cells, branding.ROSTER_COLUMNS):
        _header_cell(cell, column.title)

    for player in players:
        values = row_values(player)
        cells = table.add_row().cells
        for cell, column in zip(cells, branding.TEXT_COLUMNS):
            _text_cell(cell, values[column.key])
        _selfie_cell(cells[7], player, fetcher)

    # Spacers: 600, 800 and 300 twips
    _spacer(document, 30)
    declaration = document.add_paragraph(branding.DECLARATION_TEXT)
    declaration.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY

    _spacer(document, 40)
    _centred(document, branding.SIGNATURE_LINE)
    _centred(document, branding.SIGNATURE_LABEL)
    _spacer(document, 15)
    _centred(document, branding.OFFICIAL_NAME_LINE)
    _centred(document, branding.OFFICIAL_ID_LINE)

    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()
