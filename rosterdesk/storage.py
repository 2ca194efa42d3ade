import json
from pathlib import Path
from typing import Optional, List, Dict, Any
from werkzeug.security import generate_password_hash, check_password_hash

from .errors import DuplicateRecordError
from .models import Player, Official, Team


class StorageManager:
    """JSON document store for players, officials and teams"""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)
        self.players_file = self.data_dir / "players.json"
        self.officials_file = self.data_dir / "officials.json"
        self.teams_file = self.data_dir / "teams.json"

        # Ensure data directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Initialize files if they don't exist
        self._initialize_files()

    def _initialize_files(self):
        """Initialize JSON files with empty collections if they don't exist"""
        for path in (self.players_file, self.officials_file, self.teams_file):
            if not path.exists():
                self._write(path, [])

    def _write(self, path: Path, records: list) -> None:
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
        except (IOError, OSError) as e:
            raise RuntimeError(f"Failed to save {path.name}: {str(e)}")

    def _read(self, path: Path) -> List[Dict[str, Any]]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data if isinstance(data, list) else []
        except (FileNotFoundError, json.JSONDecodeError):
            return []

    # Players

    def load_players(self) -> list:
        """Load raw player documents"""
        return self._read(self.players_file)

    def _save_players(self, players: list) -> None:
        self._write(self.players_file, players)

    def get_all_players(self, newest_first: bool = False) -> List[Player]:
        """Get all players ordered by registration time"""
        players = []
        for data in self.load_players():
            try:
                players.append(Player(**data))
            except (ValueError, TypeError):
                # Skip invalid records
                continue
        players.sort(key=lambda p: p.created_at, reverse=newest_first)
        return players

    def get_player(self, player_id: str) -> Optional[Player]:
        for data in self.load_players():
            if data.get('id') == player_id:
                return Player(**data)
        return None

    def find_players_by_team(self, team_name: str) -> List[Player]:
        """Players of one team, ordered by last name (case-sensitive)"""
        players = [p for p in self.get_all_players() if p.team == team_name]
        players.sort(key=lambda p: p.last_name)
        return players

    def count_players_by_team(self, team_name: str) -> int:
        return sum(1 for data in self.load_players() if data.get('team') == team_name)

    def find_player_by_number(self, team_name: str, number: int,
                              exclude_id: Optional[str] = None) -> Optional[Player]:
        for player in self.get_all_players():
            if player.team == team_name and player.number == number and player.id != exclude_id:
                return player
        return None

    def find_player_by_identification(self, identification: str,
                                      exclude_id: Optional[str] = None) -> Optional[Player]:
        for player in self.get_all_players():
            if player.identification == identification and player.id != exclude_id:
                return player
        return None

    def save_player(self, player: Player) -> str:
        """Insert or update a player; identification must stay unique"""
        if self.find_player_by_identification(player.identification, exclude_id=player.id):
            raise DuplicateRecordError("Identification already registered", field='identification')

        players = self.load_players()
        player_dict = player.model_dump()
        for i, existing in enumerate(players):
            if existing.get('id') == player.id:
                players[i] = player_dict
                break
        else:
            players.append(player_dict)

        self._save_players(players)
        return player.id

    def delete_player(self, player_id: str) -> bool:
        players = self.load_players()
        original_length = len(players)
        players = [p for p in players if p.get('id') != player_id]

        if len(players) < original_length:
            self._save_players(players)
            return True
        return False

    # Officials

    def load_officials(self) -> list:
        return self._read(self.officials_file)

    def _save_officials(self, officials: list) -> None:
        self._write(self.officials_file, officials)

    def get_all_officials(self) -> List[Official]:
        officials = []
        for data in self.load_officials():
            try:
                officials.append(Official(**data))
            except (ValueError, TypeError):
                continue
        return officials

    def find_official_by_id(self, official_id: str) -> Optional[Official]:
        for data in self.load_officials():
            if data.get('id') == official_id:
                return Official(**data)
        return None

    def get_official_by_username(self, username: str) -> Optional[Official]:
        for data in self.load_officials():
            if data.get('username') == username:
                return Official(**data)
        return None

    def create_official(self, username: str, password: str, team_name: str) -> Official:
        """Create an official with a hashed password"""
        if self.get_official_by_username(username):
            raise DuplicateRecordError("Username already exists", field='username')

        official = Official(
            username=username,
            password_hash=generate_password_hash(password),
            team_name=team_name
        )
        officials = self.load_officials()
        officials.append(official.model_dump())
        self._save_officials(officials)
        return official

    def update_official(self, official_id: str, username: Optional[str] = None,
                        password: Optional[str] = None, team_name: Optional[str] = None) -> Optional[Official]:
        """Update the given fields of an official; returns None if not found"""
        official = self.find_official_by_id(official_id)
        if not official:
            return None

        if username and username != official.username:
            if self.get_official_by_username(username):
                raise DuplicateRecordError("Username already exists", field='username')
            official.username = username
        if password:
            official.password_hash = generate_password_hash(password)
        if team_name:
            official.team_name = team_name

        officials = self.load_officials()
        for i, existing in enumerate(officials):
            if existing.get('id') == official_id:
                officials[i] = official.model_dump()
                break
        self._save_officials(officials)
        return official

    def delete_official(self, official_id: str) -> Optional[Official]:
        """Delete an official and unlink the teams it managed (teams are kept)"""
        official = self.find_official_by_id(official_id)
        if not official:
            return None

        officials = [o for o in self.load_officials() if o.get('id') != official_id]
        self._save_officials(officials)

        teams = self.load_teams()
        for team in teams:
            if team.get('official_id') == official_id:
                team['official_id'] = None
        self._save_teams(teams)
        return official

    def authenticate_official(self, username: str, password: str) -> Optional[Official]:
        official = self.get_official_by_username(username)
        if official and check_password_hash(official.password_hash, password):
            return official
        return None

    # Teams

    def load_teams(self) -> list:
        return self._read(self.teams_file)

    def _save_teams(self, teams: list) -> None:
        self._write(self.teams_file, teams)

    def get_all_teams(self) -> List[Team]:
        teams = []
        for data in self.load_teams():
            try:
                teams.append(Team(**data))
            except (ValueError, TypeError):
                continue
        return teams

    def get_team(self, team_id: str) -> Optional[Team]:
        for team in self.get_all_teams():
            if team.id == team_id:
                return team
        return None

    def get_team_by_name(self, name: str) -> Optional[Team]:
        for team in self.get_all_teams():
            if team.name == name:
                return team
        return None

    def find_team_by_code(self, code: str) -> Optional[Team]:
        if not code:
            return None
        for team in self.get_all_teams():
            if team.code is not None and team.code == code:
                return team
        return None

    def save_team(self, team: Team) -> str:
        """Insert or update a team.

        Names are unique. Codes are unique only among teams that have one.
        """
        for other in self.get_all_teams():
            if other.id == team.id:
                continue
            if other.name == team.name:
                raise DuplicateRecordError("A team with that name already exists", field='name')
            if team.code is not None and other.code == team.code:
                raise DuplicateRecordError("Code is already assigned to another team", field='code')

        teams = self.load_teams()
        team_dict = team.model_dump()
        for i, existing in enumerate(teams):
            if existing.get('id') == team.id:
                teams[i] = team_dict
                break
        else:
            teams.append(team_dict)

        self._save_teams(teams)
        return team.id

    def create_team(self, name: str, official_id: Optional[str] = None, code: Optional[str] = None) -> Team:
        team = Team(name=name, official_id=official_id, code=code)
        self.save_team(team)
        return team

    def link_team_to_official(self, team_name: str, official_id: str) -> Team:
        """Attach the named team to an official, creating it without a code if needed"""
        team = self.get_team_by_name(team_name)
        if not team:
            return self.create_team(team_name, official_id=official_id)
        team.official_id = official_id
        self.save_team(team)
        return team

    def delete_team(self, team_id: str) -> bool:
        teams = self.load_teams()
        original_length = len(teams)
        teams = [t for t in teams if t.get('id') != team_id]

        if len(teams) < original_length:
            self._save_teams(teams)
            return True
        return False
