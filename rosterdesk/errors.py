"""
Exception types shared by the storage, image and HTTP layers.
"""
from typing import List, Optional


class RosterError(Exception):
    """Base class for RosterDesk errors"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_errors(self) -> List[str]:
        return [self.message]


class ValidationError(RosterError):
    """Input rejected by a registration or admin rule"""
    status_code = 400


class NotFoundError(RosterError):
    status_code = 404


class DuplicateRecordError(RosterError):
    """A unique field (username, identification, team name or code) clashes"""
    status_code = 409

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ImageError(RosterError):
    """Base class for remote image problems"""
    status_code = 502


class FetchError(ImageError):
    """Network, timeout or HTTP status failure while retrieving an image"""


class InvalidImageFormat(ImageError):
    """Payload is neither PNG nor JPEG"""


class UploadError(RosterError):
    """The image host rejected or failed an upload"""
    status_code = 502
