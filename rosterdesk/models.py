from datetime import datetime
from typing import List, Optional
import secrets

from pydantic import BaseModel, Field, validator

from . import config


def _new_id() -> str:
    return secrets.token_hex(12)


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


class Player(BaseModel):
    """A registered player (one roster row)"""
    id: str = Field(default_factory=_new_id)
    team_code: str  # Code used at registration time
    team: str  # Team name
    first_name: str
    last_name: str
    dob: str  # ISO format date string (YYYY-MM-DD)
    age: int
    identification: str
    number: int  # Jersey number
    id_image_url: str
    id_back_image_url: str
    selfie_image_url: Optional[str] = None
    authorization_url: Optional[str] = None  # Guardian authorization, players under 18
    created_at: str = Field(default_factory=_now)

    @validator('dob')
    def validate_dob(cls, v):
        try:
            datetime.strptime(v, "%Y-%m-%d")
            return v
        except ValueError:
            raise ValueError('Date of birth must be in format "YYYY-MM-DD"')

    @validator('number')
    def validate_number(cls, v):
        if v < config.MIN_JERSEY_NUMBER or v > config.MAX_JERSEY_NUMBER:
            raise ValueError(
                f'Player number must be between {config.MIN_JERSEY_NUMBER} and {config.MAX_JERSEY_NUMBER}'
            )
        return v

    @validator('age')
    def validate_age(cls, v):
        if v < 0:
            raise ValueError('Age must be non-negative')
        return v

    def public_dict(self) -> dict:
        """Roster fields without any image reference"""
        return self.model_dump(include={
            'id', 'first_name', 'last_name', 'dob', 'age', 'identification', 'number', 'team'
        })


class Official(BaseModel):
    """Team official (coach/delegate) who manages one team's roster"""
    id: str = Field(default_factory=_new_id)
    username: str
    password_hash: str
    team_name: str
    created_at: str = Field(default_factory=_now)

    @validator('username', 'team_name')
    def validate_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip()

    def public_dict(self) -> dict:
        return self.model_dump(exclude={'password_hash'})


class Team(BaseModel):
    """A team; the code is handed to players so they can register"""
    id: str = Field(default_factory=_new_id)
    name: str
    code: Optional[str] = None
    official_id: Optional[str] = None
    created_at: str = Field(default_factory=_now)

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Team name cannot be empty')
        return v.strip()

    @validator('code')
    def normalize_code(cls, v):
        # Empty codes are stored as "no code" so they never collide
        if v is None or not str(v).strip():
            return None
        return str(v).strip()


class TeamReportRequest(BaseModel):
    """One team's roster, already ordered for rendering"""
    team_name: str
    players: List[Player] = Field(default_factory=list)
