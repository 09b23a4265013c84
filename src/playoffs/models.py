"""
Roster of teams competing in the playoff bracket.
"""
from typing import Dict, List, Optional

import yaml


class Team:
    def __init__(self, id, name, conference=None, seed=None, primary_color=None, secondary_color=None):
        self.id = id
        self.name = name
        self.conference = conference
        self.seed = seed
        self.primary_color = primary_color
        self.secondary_color = secondary_color

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'conference': self.conference,
            'seed': self.seed,
            'primary_color': self.primary_color,
            'secondary_color': self.secondary_color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            conference=data.get('conference'),
            seed=data.get('seed'),
            primary_color=data.get('primary_color'),
            secondary_color=data.get('secondary_color'),
        )

    def __eq__(self, other):
        if not isinstance(other, Team):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, conference={self.conference}, seed={self.seed})"


def build_roster(teams: List[Team]) -> Dict[str, Team]:
    """
    Index teams by id.

    Raises ValueError if a team has no id or two teams share one.
    """
    roster = {}
    for team in teams:
        if not team.id:
            raise ValueError(f"Team without an id: {team!r}")
        if team.id in roster:
            raise ValueError(f"Duplicate team id: {team.id}")
        roster[team.id] = team
    return roster


def load_roster(file_path: str) -> Dict[str, Team]:
    """
    Load a roster from a YAML file of the form::

        teams:
          - id: BOS
            name: Boston Celtics
            conference: East
            seed: 1
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    entries = data.get('teams', []) if isinstance(data, dict) else data
    try:
        teams = [Team.from_dict(entry) for entry in entries]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid team entry in {file_path}: {e}") from e
    return build_roster(teams)


def get_team(roster: Dict[str, Team], team_id: Optional[str]) -> Optional[Team]:
    """Look up a team, tolerating ids that are not on the roster."""
    if not team_id or not isinstance(team_id, str):
        return None
    return roster.get(team_id)


DEFAULT_ROSTER = build_roster([
    # Eastern Conference
    Team('BOS', 'Boston Celtics', 'East', 1, '#007A33', '#BA9653'),
    Team('NYK', 'New York Knicks', 'East', 2, '#F58426', '#006BB6'),
    Team('MIL', 'Milwaukee Bucks', 'East', 3, '#00471B', '#EEE1C6'),
    Team('CLE', 'Cleveland Cavaliers', 'East', 4, '#860038', '#041E42'),
    Team('ORL', 'Orlando Magic', 'East', 5, '#0077C0', '#C4CED4'),
    Team('IND', 'Indiana Pacers', 'East', 6, '#002D62', '#FDBB30'),
    Team('PHI', 'Philadelphia 76ers', 'East', 7, '#006BB6', '#ED174C'),
    Team('MIA', 'Miami Heat', 'East', 8, '#98002E', '#F9A01B'),
    # Western Conference
    Team('OKC', 'Oklahoma City Thunder', 'West', 1, '#007AC1', '#EF3B24'),
    Team('DEN', 'Denver Nuggets', 'West', 2, '#0E2240', '#FEC524'),
    Team('MIN', 'Minnesota Timberwolves', 'West', 3, '#0C2340', '#78BE20'),
    Team('LAC', 'Los Angeles Clippers', 'West', 4, '#C8102E', '#1D428A'),
    Team('DAL', 'Dallas Mavericks', 'West', 5, '#00538C', '#B8C4CA'),
    Team('PHX', 'Phoenix Suns', 'West', 6, '#1D1160', '#E56020'),
    Team('LAL', 'Los Angeles Lakers', 'West', 7, '#552583', '#FDB927'),
    Team('NOP', 'New Orleans Pelicans', 'West', 8, '#0C2340', '#C8102E'),
])
