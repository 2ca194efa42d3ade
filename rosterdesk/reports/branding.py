"""
Fixed texts, colours and the roster column schema shared by every export.
"""

from typing import NamedTuple, Tuple


class Column(NamedTuple):
    key: str
    title: str
    width: float


# Roster table schema (PDF widths in points)
ROSTER_COLUMNS: Tuple[Column, ...] = (
    Column('first_name', 'Names', 80),
    Column('last_name', 'Surnames', 70),
    Column('age', 'Age', 30),
    Column('dob', 'Birth date', 60),
    Column('identification', 'ID', 75),
    Column('number', 'Number', 40),
    Column('team', 'Team', 75),
    Column('selfie', 'Selfie', 62),
)

TEXT_COLUMNS = ROSTER_COLUMNS[:7]
SELFIE_COLUMN = ROSTER_COLUMNS[7]

# Spreadsheet export schema: 7 data columns followed by 3 image columns
SPREADSHEET_HEADERS = (
    'NAMES',
    'SURNAMES',
    'AGE',
    'BIRTH_DATE',
    'IDENTIFICATION',
    'PLAYER_NUMBER',
    'TEAM',
    'ID_FRONT_PHOTO',
    'ID_BACK_PHOTO',
    'SELFIE_PHOTO',
)

# Brand colours
COLOR_PRIMARY = '#c62828'  # crest red
COLOR_SECONDARY = '#0b2a6d'  # ball blue
COLOR_TEXT = '#222222'
COLOR_RULE = '#e0e0e0'
COLOR_TABLE_HEADER_BG = '#f5f5f5'
COLOR_TABLE_HEADER_TEXT = '#111111'
COLOR_HEADER_DIVIDER = '#d9d9d9'
COLOR_ROW_DIVIDER = '#eeeeee'

# Institutional header band
LEAGUE_NAME = 'Liga Deportiva Bienestar Familiar de Calderón'
LEAGUE_AGREEMENT = 'Ministerial agreement No. 0184 | 15 August 2023'
ROSTER_TITLE = "Player roster - 6th men's indoor football championship"

NO_IMAGE_TEXT = 'No image'
DOCUMENT_SUBTITLE = 'Player List'

DECLARATION_TEXT = (
    'I declare under oath that I have carefully reviewed the information listed in this document and that it '
    'corresponds to the data and documents submitted by each player. I take responsibility for reporting '
    'immediately any change or correction that must be made, and I understand that the use of false or '
    'incomplete information may lead to sanctions by the tournament organization.'
)

SIGNATURE_LINE = '_______________________________'
SIGNATURE_LABEL = 'Signature of the Team Official'
OFFICIAL_NAME_LINE = 'Official name: _______________________________'
OFFICIAL_ID_LINE = 'Official identification: ________________________'


def team_title(team_name: str) -> str:
    return f'Team: {team_name}'
