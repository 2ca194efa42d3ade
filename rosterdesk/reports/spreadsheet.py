"""
Spreadsheet export of registered players with their ID and selfie photos.
"""

import logging
from io import BytesIO
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from ..images import ImageFetcher, TransformProfile, load_image
from ..models import Player
from ..utils import format_date_for_display
from . import branding

logger = logging.getLogger(__name__)

SHEET_TITLE = 'Players'
COLUMN_WIDTHS = (20, 20, 10, 15, 18, 15, 20, 18, 18, 18)

IMAGE_WIDTH = 120
IMAGE_HEIGHT = 80
IMAGE_ROW_HEIGHT = 80

# (player attribute, 1-based column) for the three photo cells
IMAGE_COLUMNS = (
    ('id_image_url', 8),
    ('id_back_image_url', 9),
    ('selfie_image_url', 10),
)


def _player_row(player: Player) -> list:
    return [
        player.first_name,
        player.last_name,
        f"{player.age} YEARS",
        format_date_for_display(player.dob),
        player.identification,
        player.number,
        player.team,
        '',
        '',
        '',
    ]


def _embed_image(worksheet, player: Player, attribute: str, column: int, row: int,
                 fetcher: ImageFetcher, raster_format: str, max_width: int) -> bool:
    """Place one photo at its cell; failures leave the cell blank"""
    url = getattr(player, attribute)
    result = load_image(url, TransformProfile.SPREADSHEET_RASTER, fetcher,
                        raster_format=raster_format, max_width=max_width)
    if not result.ok:
        if url:
            logger.warning("Photo %s of player %s left blank (%s)", attribute, player.id, result.reason.value)
        return False

    try:
        image = XLImage(BytesIO(result.data))
        image.width = IMAGE_WIDTH
        image.height = IMAGE_HEIGHT
        worksheet.add_image(image, f"{get_column_letter(column)}{row}")
        return True
    except Exception as e:
        logger.warning("Could not embed %s of player %s: %s", attribute, player.id, e)
        return False


def build_players_workbook(players: List[Player], fetcher: Optional[ImageFetcher] = None,
                           raster_format: str = 'jpg', max_width: int = 800) -> bytes:
    """Build the players workbook and return the .xlsx bytes

    Args:
        players: Players in the order they should appear
        fetcher: Image fetcher (a default one is created if omitted)
        raster_format: Format requested from the image host for embedded photos
        max_width: Width cap requested from the image host
    """
    fetcher = fetcher or ImageFetcher()

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    # Add headers with styling
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")

    for col_idx, header in enumerate(branding.SPREADSHEET_HEADERS, 1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.fill = header_fill
        cell.font = header_font
        ws.column_dimensions[get_column_letter(col_idx)].width = COLUMN_WIDTHS[col_idx - 1]

    # Add data rows
    for row_idx, player in enumerate(players, 2):
        for col_idx, value in enumerate(_player_row(player), 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.alignment = Alignment(vertical='center')

        ws.row_dimensions[row_idx].height = IMAGE_ROW_HEIGHT
        for attribute, column in IMAGE_COLUMNS:
            _embed_image(ws, player, attribute, column, row_idx, fetcher, raster_format, max_width)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
