"""
Bracket templates: the fixed topology of a single elimination playoff.

A template is a set of matchups forming a rooted binary tree. Every matchup
except the final names the matchup its winner advances to and the slot
('A' or 'B') the winner takes there. Round 1 matchups carry fixed seeds; all
later slots start empty and are filled by derivation.
"""
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional

import yaml

from .models import DEFAULT_ROSTER

SLOT_A = 'A'
SLOT_B = 'B'
SLOTS = (SLOT_A, SLOT_B)


class MalformedTemplateError(ValueError):
    """Raised when a bracket template violates its topology invariants."""


class Matchup(NamedTuple):
    id: str
    round: int
    slot_a: Optional[str] = None
    slot_b: Optional[str] = None
    next_matchup_id: Optional[str] = None
    advance_to_slot: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.next_matchup_id is None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'round': self.round,
            'slot_a': self.slot_a,
            'slot_b': self.slot_b,
            'next': self.next_matchup_id,
            'advance_to': self.advance_to_slot,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Matchup":
        return cls(
            id=data['id'],
            round=data['round'],
            slot_a=data.get('slot_a'),
            slot_b=data.get('slot_b'),
            next_matchup_id=data.get('next'),
            advance_to_slot=data.get('advance_to'),
        )


def get_round_name(teams_in_round: int) -> str:
    """Get the name of a round based on number of teams."""
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def _check_fields(matchup: Matchup):
    if not matchup.id or not isinstance(matchup.id, str):
        raise MalformedTemplateError(f"Matchup id must be a non-empty string, got {matchup.id!r}")
    if isinstance(matchup.round, bool) or not isinstance(matchup.round, int) or matchup.round < 1:
        raise MalformedTemplateError(f"Matchup {matchup.id}: round must be a positive integer, got {matchup.round!r}")
    if matchup.next_matchup_id is not None and not isinstance(matchup.next_matchup_id, str):
        raise MalformedTemplateError(
            f"Matchup {matchup.id}: next matchup must be an id string, got {matchup.next_matchup_id!r}"
        )
    if matchup.next_matchup_id is None:
        if matchup.advance_to_slot is not None:
            raise MalformedTemplateError(f"Matchup {matchup.id}: final matchup cannot advance to a slot")
    elif matchup.advance_to_slot not in SLOTS:
        raise MalformedTemplateError(
            f"Matchup {matchup.id}: advance_to_slot must be one of {SLOTS}, got {matchup.advance_to_slot!r}"
        )


def _check_seeds(matchup: Matchup, roster: Optional[Mapping]):
    seeds = (matchup.slot_a, matchup.slot_b)
    if matchup.round == 1:
        if not all(seeds):
            raise MalformedTemplateError(f"Round 1 matchup {matchup.id} is missing a seed")
        if not all(isinstance(s, str) for s in seeds):
            raise MalformedTemplateError(f"Matchup {matchup.id}: seeds must be team ids, got {list(seeds)}")
        if roster is not None:
            unknown = [s for s in seeds if s not in roster]
            if unknown:
                raise MalformedTemplateError(f"Matchup {matchup.id}: seeds not on the roster: {unknown}")
    elif any(s is not None for s in seeds):
        raise MalformedTemplateError(f"Round {matchup.round} matchup {matchup.id} must start with empty slots")


def _find_root(matchups: Mapping[str, Matchup]) -> str:
    roots = [m.id for m in matchups.values() if m.next_matchup_id is None]
    if len(roots) != 1:
        raise MalformedTemplateError(f"Expected exactly one final matchup, found {len(roots)}: {roots}")
    return roots[0]


def _wire_feeders(matchups: Mapping[str, Matchup]) -> Dict[str, Dict[str, Optional[str]]]:
    """Map each matchup to the matchups feeding its two slots."""
    feeders = {matchup_id: {SLOT_A: None, SLOT_B: None} for matchup_id in matchups}
    for matchup in matchups.values():
        if matchup.next_matchup_id is None:
            continue
        if matchup.next_matchup_id not in matchups:
            raise MalformedTemplateError(
                f"Matchup {matchup.id} advances to unknown matchup {matchup.next_matchup_id}"
            )
        target = feeders[matchup.next_matchup_id]
        existing = target[matchup.advance_to_slot]
        if existing is not None:
            raise MalformedTemplateError(
                f"Matchups {existing} and {matchup.id} both advance to "
                f"{matchup.next_matchup_id} slot {matchup.advance_to_slot}"
            )
        target[matchup.advance_to_slot] = matchup.id
    return feeders


def _check_acyclic(matchups: Mapping[str, Matchup]):
    # A path to the final can visit each matchup at most once.
    limit = len(matchups)
    for start in matchups.values():
        current = start
        steps = 0
        while current.next_matchup_id is not None:
            steps += 1
            if steps > limit:
                raise MalformedTemplateError(f"Cycle detected starting at matchup {start.id}")
            current = matchups[current.next_matchup_id]


def _check_rounds(matchups: Mapping[str, Matchup]):
    for matchup in matchups.values():
        if matchup.next_matchup_id is None:
            continue
        target = matchups[matchup.next_matchup_id]
        if target.round <= matchup.round:
            raise MalformedTemplateError(
                f"Round must increase from {matchup.id} (round {matchup.round}) "
                f"to {target.id} (round {target.round})"
            )


def _check_round_names(names: List[str]):
    # Round names key the display, so they must be distinct.
    duplicates = sorted(set(n for n in names if names.count(n) > 1))
    if duplicates:
        raise MalformedTemplateError(f"Duplicate round names: {duplicates}")


class BracketTemplate:
    """
    Immutable bracket topology, validated once at construction.

    Args:
        matchups: All matchups of the bracket.
        round_names: Optional display names keyed by round number.
        roster: Optional mapping of team id -> team; when given, every seed
            must be on it.

    Raises:
        MalformedTemplateError: if the matchups do not form a valid bracket.
    """

    def __init__(self, matchups: List[Matchup], round_names: Optional[Dict[int, str]] = None,
                 roster: Optional[Mapping] = None):
        by_id = {}
        for matchup in matchups:
            if not isinstance(matchup, Matchup):
                raise MalformedTemplateError(f"Expected a Matchup, got {matchup!r}")
            _check_fields(matchup)
            if matchup.id in by_id:
                raise MalformedTemplateError(f"Duplicate matchup id: {matchup.id}")
            by_id[matchup.id] = matchup
        if not by_id:
            raise MalformedTemplateError("A bracket needs at least one matchup")

        self._root = _find_root(by_id)
        feeders = _wire_feeders(by_id)
        _check_acyclic(by_id)
        _check_rounds(by_id)
        for matchup in by_id.values():
            _check_seeds(matchup, roster)

        # Stable round order, keeping declaration order within a round
        ordered = sorted(by_id.values(), key=lambda m: m.round)
        self._order = tuple(m.id for m in ordered)
        self._matchups = MappingProxyType(by_id)
        self._feeders = MappingProxyType({k: MappingProxyType(v) for k, v in feeders.items()})
        self._round_names = MappingProxyType(dict(round_names or {}))
        self._total_rounds = max(m.round for m in ordered)
        _check_round_names([self.round_name(n) for n in sorted(set(m.round for m in ordered))])

    def __getitem__(self, matchup_id: str) -> Matchup:
        return self._matchups[matchup_id]

    def __contains__(self, matchup_id) -> bool:
        return matchup_id in self._matchups

    def __iter__(self) -> Iterator[Matchup]:
        return (self._matchups[matchup_id] for matchup_id in self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self):
        return f"BracketTemplate(matchups={len(self)}, rounds={self._total_rounds}, final={self._root})"

    def get(self, matchup_id: str) -> Optional[Matchup]:
        return self._matchups.get(matchup_id)

    @property
    def root(self) -> Matchup:
        """The final matchup."""
        return self._matchups[self._root]

    @property
    def total_rounds(self) -> int:
        return self._total_rounds

    def rounds(self) -> Dict[int, List[Matchup]]:
        """Matchups grouped by round number, in round order."""
        rounds = {}
        for matchup in self:
            rounds.setdefault(matchup.round, []).append(matchup)
        return rounds

    def round_name(self, round_number: int) -> str:
        if round_number in self._round_names:
            return self._round_names[round_number]
        return get_round_name(2 ** (self._total_rounds - round_number + 1))

    def feeders(self, matchup_id: str) -> Mapping[str, Optional[str]]:
        """Ids of the matchups whose winners fill slot 'A' and slot 'B'."""
        return self._feeders[matchup_id]


def load_template(file_path: str, roster: Optional[Mapping] = None) -> BracketTemplate:
    """
    Load a bracket template from a YAML file of the form::

        round_names:
          1: First Round
        matchups:
          - {id: M1, round: 1, slot_a: A, slot_b: B, next: F, advance_to: A}
          - {id: F, round: 2}
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)
    if not isinstance(data, dict) or not data.get('matchups'):
        raise MalformedTemplateError(f"No matchups defined in {file_path}")
    try:
        matchups = [Matchup.from_dict(entry) for entry in data['matchups']]
        round_names = {int(k): str(v) for k, v in (data.get('round_names') or {}).items()}
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedTemplateError(f"Invalid matchup entry in {file_path}: {e}") from e
    return BracketTemplate(matchups, round_names=round_names, roster=roster)


NBA_ROUND_NAMES = {
    1: 'First Round',
    2: 'Conference Semifinals',
    3: 'Conference Finals',
    4: 'NBA Finals',
}

NBA_MATCHUPS = [
    # East, round 1
    Matchup('E1', 1, 'BOS', 'MIA', 'E5', SLOT_A),
    Matchup('E2', 1, 'CLE', 'ORL', 'E5', SLOT_B),
    Matchup('E3', 1, 'MIL', 'IND', 'E6', SLOT_A),
    Matchup('E4', 1, 'NYK', 'PHI', 'E6', SLOT_B),
    # West, round 1
    Matchup('W1', 1, 'OKC', 'NOP', 'W5', SLOT_A),
    Matchup('W2', 1, 'LAC', 'DAL', 'W5', SLOT_B),
    Matchup('W3', 1, 'MIN', 'PHX', 'W6', SLOT_A),
    Matchup('W4', 1, 'DEN', 'LAL', 'W6', SLOT_B),
    # Conference semifinals
    Matchup('E5', 2, next_matchup_id='E7', advance_to_slot=SLOT_A),
    Matchup('E6', 2, next_matchup_id='E7', advance_to_slot=SLOT_B),
    Matchup('W5', 2, next_matchup_id='W7', advance_to_slot=SLOT_A),
    Matchup('W6', 2, next_matchup_id='W7', advance_to_slot=SLOT_B),
    # Conference finals
    Matchup('E7', 3, next_matchup_id='F1', advance_to_slot=SLOT_A),
    Matchup('W7', 3, next_matchup_id='F1', advance_to_slot=SLOT_B),
    Matchup('F1', 4),
]


DEFAULT_TEMPLATE = BracketTemplate(NBA_MATCHUPS, round_names=NBA_ROUND_NAMES, roster=DEFAULT_ROSTER)
