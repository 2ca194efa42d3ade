"""
Paginated PDF roster for one team.

The roster is drawn directly on a reportlab canvas with a top-down cursor
(``LayoutCursor``) instead of a flowable story: each row may carry a fetched
thumbnail, the table header has to be repeated on continuation pages and the
declaration/signature block must never be split across a page boundary.
"""

import logging
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

from reportlab.lib import colors
from reportlab.lib.enums import TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import getAscent, stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph

from .. import config
from ..images import ImageFetcher, ImageResult, PlaceholderReason, TransformProfile, load_image
from ..models import Player, TeamReportRequest
from ..utils import format_date_for_display
from . import branding

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGINS = {'top': 54, 'left': 36, 'right': 36, 'bottom': 36}

COLUMN_GAP = 6
ROW_BREAK_THRESHOLD = 130  # worst-case height of a row with a thumbnail
DECLARATION_MIN_ROOM = 180
GAP_AFTER_TEAM_TITLE = 28
GAP_BEFORE_DECLARATION = 22
GAP_AFTER_DECLARATION = 70

TABLE_HEADER_HEIGHT = 18
TABLE_HEADER_ADVANCE = 16
TABLE_HEADER_GAP = 6

THUMB_MAX_WIDTH = 58
THUMB_MAX_HEIGHT = 42
THUMB_Y_OFFSET = -2
MIN_ROW_HEIGHT = 14
THUMB_PADDING = 4
ROW_SPACING = 4

BODY_FONT_SIZE = 10
LINE_HEIGHT = 12

HEADER_LOGO_WIDTH = 52
WATERMARK_MAX_WIDTH = 320
WATERMARK_OPACITY = 0.06


@dataclass
class LayoutCursor:
    """Vertical write position on the current page, measured from the top edge"""
    y: float
    top: float
    bottom: float
    page: int = 1

    def advance(self, amount: float) -> float:
        if amount < 0:
            raise ValueError("Cursor only moves down the page")
        self.y += amount
        return self.y

    def remaining(self) -> float:
        return self.bottom - self.y

    def has_room(self, needed: float) -> bool:
        return self.y <= self.bottom - needed

    def new_page(self, content_top: float) -> None:
        self.page += 1
        self.top = content_top
        self.y = content_top


@dataclass
class PageTrace:
    """What was drawn on one page"""
    number: int
    kind: str  # 'first', 'rows' or 'declaration'
    team_title: bool = False
    table_header: bool = False
    rows: int = 0
    declaration: bool = False
    lowest_y: float = 0.0


def table_width() -> float:
    widths = sum(column.width for column in branding.ROSTER_COLUMNS)
    return widths + COLUMN_GAP * (len(branding.ROSTER_COLUMNS) - 1)


def column_offsets(start_x: float = MARGINS['left']) -> Tuple[float, ...]:
    """x position of every roster column"""
    offsets = []
    x = start_x
    for column in branding.ROSTER_COLUMNS:
        offsets.append(x)
        x += column.width + COLUMN_GAP
    return tuple(offsets)


def fit_within(width: float, height: float, max_width: float, max_height: float) -> Tuple[float, float]:
    """Scale (width, height) down or up to fit the box, keeping the aspect ratio"""
    if width <= 0 or height <= 0:
        return max_width, max_height
    scale = min(max_width / width, max_height / height)
    return width * scale, height * scale


def clip_text(text: str, font_name: str, font_size: float, max_width: float) -> str:
    """Trim text so it renders within max_width"""
    while text and stringWidth(text, font_name, font_size) > max_width:
        text = text[:-1]
    return text


def row_values(player: Player) -> dict:
    return {
        'first_name': player.first_name or '',
        'last_name': player.last_name or '',
        'age': str(player.age),
        'dob': format_date_for_display(player.dob),
        'identification': player.identification or '',
        'number': str(player.number),
        'team': player.team or '',
    }


class RosterPDFReport:
    """Renders the roster PDF for one team"""

    def __init__(self, request: TeamReportRequest, fetcher: Optional[ImageFetcher] = None,
                 logo_path: Optional[str] = None, canvas_class=canvas.Canvas):
        self.request = request
        self.fetcher = fetcher or ImageFetcher()
        self.canvas_class = canvas_class
        self.logo = self._load_logo(logo_path if logo_path is not None else config.LOGO_PATH)

        self.start_x = MARGINS['left']
        self.table_width = table_width()
        self.offsets = column_offsets(self.start_x)

        self.text_color = colors.HexColor(branding.COLOR_TEXT)
        self.declaration_style = ParagraphStyle(
            name='Declaration',
            fontName='Helvetica',
            fontSize=BODY_FONT_SIZE,
            leading=LINE_HEIGHT,
            alignment=TA_JUSTIFY,
            textColor=self.text_color
        )

        self.pages: List[PageTrace] = []
        self.thumbnails: List[ImageResult] = []

    @staticmethod
    def _load_logo(logo_path: Optional[str]) -> Optional[ImageReader]:
        """Load the league logo; reports are still produced without one"""
        if not logo_path:
            return None
        if not Path(logo_path).is_file():
            logger.warning("League logo not found at %s, rendering without logo/watermark", logo_path)
            return None
        try:
            return ImageReader(logo_path)
        except (OSError, IOError) as e:
            logger.warning("Could not read league logo %s: %s", logo_path, e)
            return None

    # Coordinate helpers: the cursor runs top-down, reportlab runs bottom-up

    @staticmethod
    def _pdf_y(top_y: float) -> float:
        return PAGE_HEIGHT - top_y

    def _draw_text(self, c: canvas.Canvas, text: str, x: float, top_y: float,
                   font_name: str = 'Helvetica', font_size: float = 9,
                   max_width: Optional[float] = None) -> None:
        if max_width is not None:
            text = clip_text(text, font_name, font_size, max_width)
        c.setFont(font_name, font_size)
        c.drawString(x, self._pdf_y(top_y + getAscent(font_name, font_size)), text)

    def _draw_centred(self, c: canvas.Canvas, text: str, top_y: float, left: float, width: float,
                      font_name: str = 'Helvetica', font_size: float = BODY_FONT_SIZE) -> None:
        c.setFont(font_name, font_size)
        c.drawCentredString(left + width / 2, self._pdf_y(top_y + getAscent(font_name, font_size)), text)

    def _draw_rule(self, c: canvas.Canvas, top_y: float, color: str, line_width: float,
                   x1: Optional[float] = None, x2: Optional[float] = None) -> None:
        x1 = self.start_x if x1 is None else x1
        x2 = self.start_x + self.table_width if x2 is None else x2
        c.saveState()
        c.setStrokeColor(colors.HexColor(color))
        c.setLineWidth(line_width)
        c.line(x1, self._pdf_y(top_y), x2, self._pdf_y(top_y))
        c.restoreState()

    def _track(self, cursor: LayoutCursor) -> None:
        page = self.pages[-1]
        page.lowest_y = max(page.lowest_y, cursor.y)

    # Page furniture

    def _draw_watermark(self, c: canvas.Canvas) -> None:
        if not self.logo:
            return
        image_width, image_height = self.logo.getSize()
        width = min(WATERMARK_MAX_WIDTH, PAGE_WIDTH * 0.45)
        height = width * image_height / image_width
        c.saveState()
        c.setFillAlpha(WATERMARK_OPACITY)
        c.drawImage(self.logo, (PAGE_WIDTH - width) / 2, (PAGE_HEIGHT - height) / 2,
                    width=width, height=height, mask='auto')
        c.restoreState()

    def _draw_header_band(self, c: canvas.Canvas) -> float:
        """Draw the institutional header and return the content top below it"""
        start_y = MARGINS['top'] - 6
        logo_space = HEADER_LOGO_WIDTH + 12 if self.logo else 0
        title_x = MARGINS['left'] + logo_space
        title_width = PAGE_WIDTH - MARGINS['left'] - MARGINS['right'] - logo_space

        if self.logo:
            image_width, image_height = self.logo.getSize()
            logo_height = HEADER_LOGO_WIDTH * image_height / image_width
            c.drawImage(self.logo, MARGINS['left'], self._pdf_y(start_y - 4) - logo_height,
                        width=HEADER_LOGO_WIDTH, height=logo_height, mask='auto')

        c.saveState()
        c.setFillColor(colors.HexColor(branding.COLOR_PRIMARY))
        self._draw_text(c, branding.LEAGUE_NAME, title_x, start_y, 'Helvetica-Bold', 14, title_width)
        c.setFillColor(self.text_color)
        self._draw_text(c, branding.LEAGUE_AGREEMENT, title_x, start_y + 20, 'Helvetica', 10, title_width)
        c.setFillColor(colors.HexColor(branding.COLOR_SECONDARY))
        self._draw_text(c, branding.ROSTER_TITLE, title_x, start_y + 36, 'Helvetica-Bold', 11, title_width)
        c.restoreState()

        line_y = start_y + 56
        self._draw_rule(c, line_y, branding.COLOR_RULE, 1,
                        x1=MARGINS['left'], x2=PAGE_WIDTH - MARGINS['right'])
        return line_y + 12

    def _draw_team_title(self, c: canvas.Canvas, cursor: LayoutCursor) -> None:
        c.saveState()
        c.setFillColor(self.text_color)
        content_width = PAGE_WIDTH - MARGINS['left'] - MARGINS['right']
        self._draw_centred(c, branding.team_title(self.request.team_name), cursor.y,
                           MARGINS['left'], content_width, 'Helvetica-Bold', 16)
        c.restoreState()
        cursor.advance(GAP_AFTER_TEAM_TITLE)
        self.pages[-1].team_title = True

    def _draw_table_header(self, c: canvas.Canvas, cursor: LayoutCursor) -> None:
        c.saveState()
        c.setFillColor(colors.HexColor(branding.COLOR_TABLE_HEADER_BG))
        c.rect(self.start_x - 2, self._pdf_y(cursor.y - 2) - TABLE_HEADER_HEIGHT,
               self.table_width + 4, TABLE_HEADER_HEIGHT, stroke=0, fill=1)
        c.setFillColor(colors.HexColor(branding.COLOR_TABLE_HEADER_TEXT))
        for column, x in zip(branding.ROSTER_COLUMNS, self.offsets):
            self._draw_text(c, column.title, x, cursor.y, 'Helvetica-Bold', 9, column.width)
        c.restoreState()

        cursor.advance(TABLE_HEADER_ADVANCE)
        self._draw_rule(c, cursor.y, branding.COLOR_HEADER_DIVIDER, 0.7)
        cursor.advance(TABLE_HEADER_GAP)
        self.pages[-1].table_header = True
        self._track(cursor)

    def _open_page(self, c: canvas.Canvas, cursor: Optional[LayoutCursor], kind: str) -> LayoutCursor:
        """Start a page: watermark and header band, nothing else"""
        if cursor is not None:
            c.showPage()
        self._draw_watermark(c)
        content_top = self._draw_header_band(c)

        if cursor is None:
            cursor = LayoutCursor(y=content_top, top=content_top, bottom=PAGE_HEIGHT - MARGINS['bottom'])
        else:
            cursor.new_page(content_top)
        self.pages.append(PageTrace(number=cursor.page, kind=kind, lowest_y=cursor.y))
        return cursor

    # Rows

    def _draw_thumbnail(self, c: canvas.Canvas, player: Player, x: float, top_y: float) -> float:
        """Draw the selfie thumbnail; returns its drawn height (0 for the placeholder)"""
        column = branding.SELFIE_COLUMN
        result = load_image(player.selfie_image_url, TransformProfile.REPORT_THUMBNAIL, self.fetcher)

        if result.ok:
            try:
                reader = ImageReader(BytesIO(result.data))
                image_width, image_height = reader.getSize()
                width, height = fit_within(image_width, image_height,
                                           min(column.width, THUMB_MAX_WIDTH), THUMB_MAX_HEIGHT)
                c.drawImage(reader, x, self._pdf_y(top_y + THUMB_Y_OFFSET) - height,
                            width=width, height=height)
                self.thumbnails.append(result)
                return height
            except Exception as e:
                logger.warning("Could not draw selfie for player %s: %s", player.id, e)
                result = ImageResult.placeholder(PlaceholderReason.RENDER_FAILED, result.url)

        self.thumbnails.append(result)
        self._draw_text(c, branding.NO_IMAGE_TEXT, x, top_y, 'Helvetica', 9, column.width)
        return 0

    def _draw_row(self, c: canvas.Canvas, cursor: LayoutCursor, player: Player) -> None:
        values = row_values(player)
        c.setFillColor(self.text_color)
        for column, x in zip(branding.TEXT_COLUMNS, self.offsets):
            self._draw_text(c, values[column.key], x, cursor.y, 'Helvetica', 9, column.width)

        thumb_height = self._draw_thumbnail(c, player, self.offsets[7], cursor.y)
        row_height = max(MIN_ROW_HEIGHT, thumb_height + THUMB_PADDING) if thumb_height else MIN_ROW_HEIGHT

        cursor.advance(row_height)
        self._draw_rule(c, cursor.y, branding.COLOR_ROW_DIVIDER, 0.5)
        cursor.advance(ROW_SPACING)
        self.pages[-1].rows += 1
        self._track(cursor)

    # Declaration and signatures

    def _signature_block_height(self) -> float:
        return GAP_AFTER_DECLARATION + LINE_HEIGHT * 2 + LINE_HEIGHT * 1.2 + LINE_HEIGHT * 2

    def _draw_declaration(self, c: canvas.Canvas, cursor: LayoutCursor) -> None:
        paragraph = Paragraph(branding.DECLARATION_TEXT, self.declaration_style)
        _, paragraph_height = paragraph.wrap(self.table_width, PAGE_HEIGHT)

        block_height = paragraph_height + self._signature_block_height()
        if not cursor.has_room(max(DECLARATION_MIN_ROOM, block_height)):
            cursor = self._open_page(c, cursor, 'declaration')

        paragraph.drawOn(c, self.start_x, self._pdf_y(cursor.y) - paragraph_height)
        cursor.advance(paragraph_height)
        cursor.advance(GAP_AFTER_DECLARATION)

        c.setFillColor(self.text_color)
        self._draw_centred(c, branding.SIGNATURE_LINE, cursor.y, self.start_x, self.table_width)
        cursor.advance(LINE_HEIGHT)
        self._draw_centred(c, branding.SIGNATURE_LABEL, cursor.y, self.start_x, self.table_width)
        cursor.advance(LINE_HEIGHT)

        cursor.advance(LINE_HEIGHT * 1.2)
        self._draw_centred(c, branding.OFFICIAL_NAME_LINE, cursor.y, self.start_x, self.table_width)
        cursor.advance(LINE_HEIGHT)
        self._draw_centred(c, branding.OFFICIAL_ID_LINE, cursor.y, self.start_x, self.table_width)
        cursor.advance(LINE_HEIGHT)

        self.pages[-1].declaration = True
        self._track(cursor)

    def build(self, output: Union[str, BinaryIO]) -> None:
        """Render the whole report into a file path or binary stream"""
        self.pages = []
        self.thumbnails = []

        c = self.canvas_class(output, pagesize=A4)
        c.setTitle(f"Roster - {self.request.team_name}")
        c.setAuthor(branding.LEAGUE_NAME)

        cursor = self._open_page(c, None, 'first')
        self._draw_team_title(c, cursor)
        self._draw_table_header(c, cursor)

        for player in self.request.players:
            if not cursor.has_room(ROW_BREAK_THRESHOLD):
                cursor = self._open_page(c, cursor, 'rows')
                self._draw_table_header(c, cursor)
            self._draw_row(c, cursor, player)

        cursor.advance(GAP_BEFORE_DECLARATION)
        self._draw_declaration(c, cursor)

        c.showPage()
        c.save()

    def render(self) -> bytes:
        buffer = BytesIO()
        self.build(buffer)
        return buffer.getvalue()


def render_roster_pdf(team_name: str, players: List[Player], fetcher: Optional[ImageFetcher] = None,
                      logo_path: Optional[str] = None) -> bytes:
    """Render the team roster PDF and return its bytes"""
    request = TeamReportRequest(team_name=team_name, players=players)
    return RosterPDFReport(request, fetcher=fetcher, logo_path=logo_path).render()
