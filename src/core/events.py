"""
Helpers for creating bracket events and tallying their results.
"""
from typing import Dict, Iterable, List, Optional

from .errors import InvalidInputError
from .leaderboard import TIERS
from .models import Participant


def validate_event_fields(name, game, kit):
    """Reject events without a name, game or kit."""
    if not all(isinstance(v, str) and v.strip() for v in (name, game, kit)):
        raise InvalidInputError("Event name, game, and kit are required.")


def resolve_tier_filter(tiers_all=None, tiers=None) -> List[str]:
    """
    Turn the submitted tier selection into a list of tiers.

    ``tiers_all`` set (``"on"`` from a checkbox), an explicit ``"all"``, or
    an empty selection all mean every tier. A single string selects one
    tier.

    Raises:
        InvalidInputError: a selected tier is not a known tier.
    """
    if tiers_all in (True, 'on', 'true', 'all'):
        return list(TIERS)
    if isinstance(tiers, str):
        selected = [tiers.strip()] if tiers.strip() else []
    elif tiers:
        selected = [str(t).strip() for t in tiers if str(t).strip()]
    else:
        selected = []
    if not selected or any(t.lower() == 'all' for t in selected):
        return list(TIERS)

    unknown = [t for t in selected if t not in TIERS]
    if unknown:
        raise InvalidInputError(f"Unknown tier(s): {', '.join(unknown)}.")
    # Keep ladder order and drop repeats
    return [t for t in TIERS if t in selected]


def select_participants(stats: Iterable[Dict], players: Dict, game: str, kit: str,
                        tiers: List[str]) -> List[Participant]:
    """
    Participants for an event, one per player, in stat row order.

    Args:
        stats: All stat rows
        players: Mapping of player id to player dict
        game, kit: Event game and kit
        tiers: Tiers allowed into the event
    """
    seen = set()
    participants = []
    for stat in stats:
        if stat.get('game') != game or stat.get('kit') != kit:
            continue
        if stat.get('tier') not in tiers:
            continue
        pid = stat.get('player_id')
        if pid is None or pid in seen:
            continue
        seen.add(pid)
        player = players.get(pid) or {}
        participants.append(Participant(id=pid, username=player.get('username') or f'Player {pid}'))
    return participants


def initial_records(event_id, participants: List[Participant]) -> List[Dict]:
    return [{'event_id': event_id, 'player_id': p.id, 'wins': 0, 'losses': 0} for p in participants]


def apply_result_tally(records: List[Dict], event_id, winner: Participant,
                       loser: Optional[Participant]) -> List[Dict]:
    """
    Add one win to the winner and one loss to the loser.

    Rows are keyed by (event id, player id); missing rows are created.
    Returns the updated list.
    """
    def _upsert(player_id):
        for record in records:
            if str(record.get('event_id')) == str(event_id) and str(record.get('player_id')) == str(player_id):
                return record
        record = {'event_id': event_id, 'player_id': player_id, 'wins': 0, 'losses': 0}
        records.append(record)
        return record

    _upsert(winner.id)['wins'] += 1
    if loser is not None:
        _upsert(loser.id)['losses'] += 1
    return records
