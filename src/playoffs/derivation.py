"""
Bracket derivation: apply a participant's picks to a bracket template.

Each pick moves its winner exactly one hop, into the slot its matchup feeds.
Nothing is chained transitively, so a later-round entrant only appears once the
participant has picked that earlier-round matchup too. Because every slot has
at most one feeder, the result does not depend on the order of the picks.
"""
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional

from .models import get_team
from .template import SLOT_A, SLOT_B, BracketTemplate


class ResolvedMatchup(NamedTuple):
    id: str
    round: int
    slot_a: Optional[str]
    slot_b: Optional[str]
    next_matchup_id: Optional[str]
    advance_to_slot: Optional[str]
    winner: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.next_matchup_id is None

    @property
    def is_decided(self) -> bool:
        """True once both entrants are known."""
        return self.slot_a is not None and self.slot_b is not None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'round': self.round,
            'slot_a': self.slot_a,
            'slot_b': self.slot_b,
            'next': self.next_matchup_id,
            'advance_to': self.advance_to_slot,
            'winner': self.winner,
        }


class DerivedBracket:
    """Every matchup of a template with the entrants implied by a set of picks."""

    def __init__(self, matchups: Dict[str, ResolvedMatchup], champion: Optional[str] = None):
        self._matchups = matchups
        self._champion = champion

    def __getitem__(self, matchup_id: str) -> ResolvedMatchup:
        return self._matchups[matchup_id]

    def __contains__(self, matchup_id) -> bool:
        return matchup_id in self._matchups

    def __iter__(self) -> Iterator[ResolvedMatchup]:
        return iter(self._matchups.values())

    def __len__(self) -> int:
        return len(self._matchups)

    def __eq__(self, other):
        if not isinstance(other, DerivedBracket):
            return NotImplemented
        return self._champion == other._champion and self._matchups == other._matchups

    def __repr__(self):
        return f"DerivedBracket(matchups={len(self)}, champion={self._champion})"

    def get(self, matchup_id: str) -> Optional[ResolvedMatchup]:
        return self._matchups.get(matchup_id)

    @property
    def champion(self) -> Optional[str]:
        """The pick recorded for the final, if any."""
        return self._champion

    def rounds(self) -> Dict[int, List[ResolvedMatchup]]:
        rounds = {}
        for matchup in self:
            rounds.setdefault(matchup.round, []).append(matchup)
        return rounds

    def to_dict(self) -> dict:
        return {
            'matchups': {matchup_id: m.to_dict() for matchup_id, m in self._matchups.items()},
            'champion': self._champion,
        }


def derive(template: BracketTemplate, predictions: Optional[Mapping[str, str]]) -> DerivedBracket:
    """
    Derive the full bracket implied by a set of picks.

    Args:
        template: Validated bracket topology.
        predictions: Matchup id -> predicted winner. Picks for matchups the
            template does not know are ignored; winners are not checked
            against any roster. Empty winners count as no pick.

    Returns:
        A new DerivedBracket; the template is never modified.
    """
    slots = {m.id: {SLOT_A: m.slot_a, SLOT_B: m.slot_b} for m in template}
    picks = {}
    champion = None

    for matchup_id, winner in (predictions or {}).items():
        matchup = template.get(matchup_id)
        if matchup is None or not winner:
            continue
        picks[matchup_id] = winner
        if matchup.is_final:
            champion = winner
        else:
            slots[matchup.next_matchup_id][matchup.advance_to_slot] = winner

    resolved = {}
    for m in template:
        resolved[m.id] = ResolvedMatchup(
            id=m.id,
            round=m.round,
            slot_a=slots[m.id][SLOT_A],
            slot_b=slots[m.id][SLOT_B],
            next_matchup_id=m.next_matchup_id,
            advance_to_slot=m.advance_to_slot,
            winner=picks.get(m.id),
        )
    return DerivedBracket(resolved, champion)


def missing_predictions(template: BracketTemplate, predictions: Optional[Mapping[str, str]]) -> List[str]:
    """Ids of template matchups that have no pick yet, in round order."""
    predictions = predictions or {}
    return [m.id for m in template if not predictions.get(m.id)]


def _slot_label(entrant: Optional[str], feeder: Optional[str]) -> str:
    if entrant:
        return str(entrant)
    if feeder:
        return f"Winner {feeder}"
    return "TBD"


def get_bracket_display(template: BracketTemplate, predictions: Optional[Mapping[str, str]],
                        roster: Optional[Mapping] = None) -> Dict:
    """
    Get bracket data formatted for UI display.

    Returns dict with:
    - 'rounds': round name -> list of match dicts
    - 'champion' / 'champion_team': final pick and its roster entry
    - 'total_rounds', 'total_matchups', 'predicted'
    - 'missing': matchups still without a pick
    - 'is_complete': True when every matchup has a pick
    """
    bracket = derive(template, predictions)
    roster = roster or {}

    rounds = {}
    for round_number, resolved in bracket.rounds().items():
        round_name = template.round_name(round_number)
        round_matches = []
        for match in resolved:
            feeders = template.feeders(match.id)
            team1 = get_team(roster, match.slot_a)
            team2 = get_team(roster, match.slot_b)
            round_matches.append({
                'matchup_id': match.id,
                'round': round_number,
                'round_name': round_name,
                'teams': (_slot_label(match.slot_a, feeders[SLOT_A]),
                          _slot_label(match.slot_b, feeders[SLOT_B])),
                'team_details': (team1.to_dict() if team1 else None,
                                 team2.to_dict() if team2 else None),
                'winner': match.winner,
                'is_placeholder': not match.is_decided,
                'is_final': match.is_final,
            })
        rounds[round_name] = round_matches

    champion_team = get_team(roster, bracket.champion)
    missing = missing_predictions(template, predictions)

    return {
        'rounds': rounds,
        'champion': bracket.champion,
        'champion_team': champion_team.to_dict() if champion_team else None,
        'total_rounds': template.total_rounds,
        'total_matchups': len(template),
        'predicted': sum(1 for m in bracket if m.winner),
        'missing': missing,
        'is_complete': not missing,
    }
