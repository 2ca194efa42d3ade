from datetime import date, datetime
from typing import List, Dict, Any, Optional
import re

from . import config

NAME_PATTERN = re.compile(r'^[A-Za-zÁÉÍÓÚáéíóúÑñ\s]+$')
IDENTIFICATION_PATTERN = re.compile(r'^[A-Za-z0-9\-]+$')

BIRTH_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def parse_birth_date(value: str) -> Optional[date]:
    """Parse a birth date given as YYYY-MM-DD or DD/MM/YYYY (strict)"""
    if not value:
        return None
    value = value.strip()
    # strptime accepts single-digit fields; the length check keeps it strict
    if len(value) != 10:
        return None
    for fmt in BIRTH_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    """Whole years between birth_date and today"""
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def requires_authorization(age: int) -> bool:
    """Players from the minimum age up to 17 need a guardian authorization"""
    return config.MIN_PLAYER_AGE <= age < config.AUTHORIZATION_REQUIRED_UNDER


def format_date_for_display(date_str: str) -> str:
    """Format an ISO date (YYYY-MM-DD) as DD/MM/YYYY"""
    if not date_str:
        return ""
    try:
        dt = datetime.strptime(date_str, "%Y-%m-%d")
        return dt.strftime("%d/%m/%Y")
    except ValueError:
        return date_str


def is_valid_name(value: Optional[str]) -> bool:
    return bool(value) and bool(NAME_PATTERN.match(value))


def is_valid_identification(value: Optional[str]) -> bool:
    return bool(value) and bool(IDENTIFICATION_PATTERN.match(value))


def parse_jersey_number(value: Any) -> Optional[int]:
    """Return the jersey number as int if it is within the allowed range"""
    try:
        number = int(str(value).strip())
    except (ValueError, TypeError):
        return None
    if number < config.MIN_JERSEY_NUMBER or number > config.MAX_JERSEY_NUMBER:
        return None
    return number


def validate_registration_data(data: Dict[str, Any]) -> List[str]:
    """Validate registration form fields and return the list of errors"""
    errors = []

    if not data.get('first_name') or not is_valid_name(data.get('first_name')):
        errors.append("Invalid first names")

    if not data.get('last_name') or not is_valid_name(data.get('last_name')):
        errors.append("Invalid last names")

    if not data.get('identification') or not is_valid_identification(data.get('identification')):
        errors.append("Invalid identification")

    if not data.get('dob'):
        errors.append("Date of birth is required")

    if parse_jersey_number(data.get('number')) is None:
        errors.append(
            f"Player number must be between {config.MIN_JERSEY_NUMBER} and {config.MAX_JERSEY_NUMBER}"
        )

    return errors


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    # Remove or replace invalid characters
    filename = re.sub(r'[<>:"/\\|?*]', '_', filename)
    # Remove multiple underscores
    filename = re.sub(r'_+', '_', filename)
    # Remove leading/trailing underscores and dots
    filename = filename.strip('_.')
    return filename


def generate_report_filename(team_name: str, extension: str) -> str:
    """Attachment name for a team report, e.g. Reporte_Halcones.pdf"""
    return f"Reporte_{sanitize_filename(team_name)}.{extension}"
