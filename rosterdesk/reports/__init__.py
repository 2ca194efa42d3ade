"""
RosterDesk report generation

Three exports of the registered players:
1. Roster PDF - paginated table with selfie thumbnails and a signed declaration
2. Roster DOCX - the same roster as an editable word-processor document
3. Players XLSX - spreadsheet with the ID and selfie photos embedded
"""

from .pdf_report import RosterPDFReport, LayoutCursor, render_roster_pdf
from .document import build_roster_document
from .spreadsheet import build_players_workbook

__all__ = [
    'RosterPDFReport',
    'LayoutCursor',
    'render_roster_pdf',
    'build_roster_document',
    'build_players_workbook',
]
